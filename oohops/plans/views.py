import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework import serializers as drf_serializers
from django.db import transaction
from django.db.models import Q
from django.shortcuts import get_object_or_404

from oohops.campaigns.bookings import BookingConflictError
from oohops.core.codes import generate_plan_code, generate_estimation_code
from oohops.core.exports import file_response, PDF_CONTENT_TYPE, XLSX_CONTENT_TYPE, PPTX_CONTENT_TYPE
from oohops.core.roles import PLAN_EDITORS
from oohops.core.tenancy import get_membership, require_role
from oohops.core.utils import create_audit_log
from .exports import build_plan_estimate_pdf, build_plan_workbook, build_plan_deck
from .models import Plan, PlanItem
from .serializers import (
    PlanSerializer, PlanListSerializer, PlanItemSerializer, PlanItemWriteSerializer,
    PlanActionSerializer, SharedPlanSerializer, build_plan_item,
)
from .services import (
    PlanWorkflowError, recalculate_plan_totals, submit_for_approval, process_approval,
    plan_conflicts, convert_plan_to_campaign, create_share_token,
)

logger = logging.getLogger(__name__)


def _split_items(request):
    """Separate nested items from the plan payload"""
    data = request.data.copy() if hasattr(request.data, 'copy') else dict(request.data)
    items_data = data.pop('items', None)
    return data, items_data


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def plan_list_create(request):
    """List plans or create a plan with its items"""
    membership = get_membership(request)
    company = membership.company

    if request.method == 'GET':
        queryset = Plan.objects.filter(company=company).select_related('client')
        status_filter = request.query_params.get('status')
        if status_filter:
            queryset = queryset.filter(status=status_filter)
        client_id = request.query_params.get('client')
        if client_id:
            queryset = queryset.filter(client_id=client_id)
        search = request.query_params.get('search')
        if search:
            queryset = queryset.filter(
                Q(plan_code__icontains=search) | Q(plan_name__icontains=search) | Q(client__name__icontains=search)
            )
        serializer = PlanListSerializer(queryset, many=True)
        return Response(serializer.data)

    require_role(membership, PLAN_EDITORS)
    data, items_data = _split_items(request)
    serializer = PlanSerializer(data=data, context={'company': company, 'items_data': items_data or []})
    if serializer.is_valid():
        try:
            with transaction.atomic():
                plan = serializer.save(company=company, plan_code=generate_plan_code(company), created_by=request.user)
        except drf_serializers.ValidationError as e:
            return Response(e.detail, status=status.HTTP_400_BAD_REQUEST)
        create_audit_log(request=request, action='create', model_name='Plan', object_id=plan.pk,
                         object_name=plan.plan_code, company=company)
        return Response(PlanSerializer(plan).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def plan_detail(request, pk):
    membership = get_membership(request)
    plan = get_object_or_404(Plan.objects.select_related('client'), pk=pk, company=membership.company)

    if request.method == 'GET':
        return Response(PlanSerializer(plan).data)

    require_role(membership, PLAN_EDITORS)
    if request.method in ('PUT', 'PATCH'):
        data, items_data = _split_items(request)
        serializer = PlanSerializer(plan, data=data, partial=request.method == 'PATCH',
                                    context={'company': membership.company, 'items_data': items_data})
        if serializer.is_valid():
            try:
                plan = serializer.save()
            except drf_serializers.ValidationError as e:
                return Response(e.detail, status=status.HTTP_400_BAD_REQUEST)
            create_audit_log(request=request, action='update', model_name='Plan', object_id=plan.pk,
                             object_name=plan.plan_code, changes=data, company=membership.company)
            return Response(PlanSerializer(plan).data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    if plan.status == 'Converted':
        return Response({'error': 'Converted plans cannot be deleted'}, status=status.HTTP_400_BAD_REQUEST)
    create_audit_log(request=request, action='delete', model_name='Plan', object_id=plan.pk,
                     object_name=plan.plan_code, company=membership.company)
    plan.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def plan_item_create(request, pk):
    """Add one asset to an editable plan"""
    membership = require_role(get_membership(request), PLAN_EDITORS)
    plan = get_object_or_404(Plan, pk=pk, company=membership.company)
    if not plan.is_editable:
        return Response({'error': f'Plan cannot be edited in status {plan.status}'}, status=status.HTTP_400_BAD_REQUEST)

    serializer = PlanItemWriteSerializer(data=request.data, context={'company': membership.company})
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    if plan.items.filter(asset=serializer.validated_data['asset']).exists():
        return Response({'error': 'Asset is already in this plan'}, status=status.HTTP_400_BAD_REQUEST)

    try:
        with transaction.atomic():
            item = build_plan_item(plan, serializer.validated_data)
            recalculate_plan_totals(plan)
    except drf_serializers.ValidationError as e:
        return Response(e.detail, status=status.HTTP_400_BAD_REQUEST)
    return Response(PlanItemSerializer(item).data, status=status.HTTP_201_CREATED)


@api_view(['PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def plan_item_detail(request, pk, item_pk):
    membership = require_role(get_membership(request), PLAN_EDITORS)
    plan = get_object_or_404(Plan, pk=pk, company=membership.company)
    item = get_object_or_404(PlanItem.objects.select_related('asset'), pk=item_pk, plan=plan)
    if not plan.is_editable:
        return Response({'error': f'Plan cannot be edited in status {plan.status}'}, status=status.HTTP_400_BAD_REQUEST)

    if request.method == 'DELETE':
        with transaction.atomic():
            item.delete()
            recalculate_plan_totals(plan)
        return Response(status=status.HTTP_204_NO_CONTENT)

    data = dict(request.data.items()) if hasattr(request.data, 'items') else {}
    data.setdefault('asset', item.asset_id)
    serializer = PlanItemWriteSerializer(data=data, context={'company': membership.company})
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    if serializer.validated_data['asset'].pk != item.asset_id:
        return Response({'error': 'The asset of a plan item cannot be changed'}, status=status.HTTP_400_BAD_REQUEST)
    try:
        with transaction.atomic():
            item = build_plan_item(plan, serializer.validated_data, instance=item)
            recalculate_plan_totals(plan)
    except drf_serializers.ValidationError as e:
        return Response(e.detail, status=status.HTTP_400_BAD_REQUEST)
    return Response(PlanItemSerializer(item).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def plan_submit(request, pk):
    membership = require_role(get_membership(request), PLAN_EDITORS)
    plan = get_object_or_404(Plan, pk=pk, company=membership.company)
    try:
        submit_for_approval(plan, user=request.user)
    except PlanWorkflowError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    create_audit_log(request=request, action='plan_submit', model_name='Plan', object_id=plan.pk,
                     object_name=plan.plan_code, company=membership.company)
    return Response(PlanSerializer(plan).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def plan_approval_action(request, pk):
    """Approve or reject the current approval level with the caller's membership role"""
    membership = get_membership(request)
    plan = get_object_or_404(Plan, pk=pk, company=membership.company)
    serializer = PlanActionSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    action = serializer.validated_data['action']
    try:
        approval = process_approval(plan, request.user, membership.role, action,
                                    serializer.validated_data.get('comments', ''))
    except PlanWorkflowError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(request=request, action=f'plan_{action}', model_name='Plan', object_id=plan.pk,
                     object_name=plan.plan_code, changes={'level': approval.level, 'comments': approval.comments},
                     company=membership.company)
    plan.refresh_from_db()
    return Response(PlanSerializer(plan).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def plan_conflict_check(request, pk):
    membership = get_membership(request)
    plan = get_object_or_404(Plan, pk=pk, company=membership.company)
    conflicts = plan_conflicts(plan)
    return Response({'has_conflicts': bool(conflicts), 'conflicts': conflicts})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def plan_convert(request, pk):
    """Convert an approved plan into a campaign"""
    from oohops.campaigns.serializers import CampaignSerializer

    membership = require_role(get_membership(request), PLAN_EDITORS)
    plan = get_object_or_404(Plan, pk=pk, company=membership.company)
    try:
        campaign, created = convert_plan_to_campaign(plan, user=request.user)
    except PlanWorkflowError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    except BookingConflictError as e:
        return Response({'error': str(e), 'conflicts': e.conflicts}, status=status.HTTP_409_CONFLICT)

    if created:
        create_audit_log(request=request, action='plan_convert', model_name='Plan', object_id=plan.pk,
                         object_name=plan.plan_code, changes={'campaign': campaign.campaign_code},
                         company=membership.company)
    return Response({
        'already_converted': not created,
        'campaign': CampaignSerializer(campaign).data,
    }, status=status.HTTP_201_CREATED if created else status.HTTP_200_OK)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def plan_share(request, pk):
    membership = require_role(get_membership(request), PLAN_EDITORS)
    plan = get_object_or_404(Plan, pk=pk, company=membership.company)
    token = create_share_token(plan)
    if plan.status == 'Approved':
        plan.status = 'Sent'
        plan.save(update_fields=['status', 'updated_at'])
    return Response({'share_token': token, 'path': f'/api/v1/plans/shared/{token}/'})


@api_view(['GET'])
@permission_classes([AllowAny])
def plan_shared_view(request, token):
    """Public view of a shared plan"""
    plan = get_object_or_404(Plan.objects.select_related('client'), share_token=token)
    return Response(SharedPlanSerializer(plan).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def plan_export(request, pk, fmt):
    """Download the plan as an estimate PDF, Excel sheet or PowerPoint deck"""
    membership = get_membership(request)
    plan = get_object_or_404(Plan.objects.select_related('client', 'company'), pk=pk, company=membership.company)
    try:
        if fmt == 'pdf':
            estimate_number = generate_estimation_code(plan.company)
            return file_response(build_plan_estimate_pdf(plan, estimate_number), f'{estimate_number}.pdf', PDF_CONTENT_TYPE)
        if fmt == 'excel':
            return file_response(build_plan_workbook(plan), f'{plan.plan_code}.xlsx', XLSX_CONTENT_TYPE)
        if fmt == 'ppt':
            return file_response(build_plan_deck(plan), f'{plan.plan_code}.pptx', PPTX_CONTENT_TYPE)
    except Exception as e:
        logger.error(f"Export {fmt} failed for plan {plan.pk}: {str(e)}")
        return Response({'error': f'Failed to generate {fmt} export'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
    return Response({'error': 'Unknown export format'}, status=status.HTTP_400_BAD_REQUEST)
