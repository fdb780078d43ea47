import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, parser_classes
from rest_framework.parsers import MultiPartParser, FormParser
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, AllowAny
from django.conf import settings
from django.core.mail import send_mail
from django.db import transaction
from django.db.models import Q
from django.shortcuts import get_object_or_404
from django.utils import timezone

from oohops.core.exports import file_response, PDF_CONTENT_TYPE, PPTX_CONTENT_TYPE
from oohops.core.models import CompanyUser
from oohops.core.roles import CAMPAIGN_MANAGERS, OPERATIONS_ROLES, FIELD_ROLES
from oohops.core.tenancy import get_membership, require_role
from oohops.core.utils import create_audit_log, parse_date_param
from oohops.pricing.calculator import PricingError
from .availability import get_media_availability
from .bookings import BookingConflictError
from .exports import build_proof_pdf, build_proof_deck
from .models import Campaign, CampaignAsset, ProofPhoto
from .photos import UploadError, PROOF_TYPES, derive_latest_photos, save_proof_photo, proofs_complete
from .serializers import (
    CampaignSerializer, CampaignListSerializer, CampaignCreateSerializer, CampaignAssetSerializer,
    AvailabilityAssetSerializer, MounterTaskSerializer, ProofPhotoSerializer, PhotoUploadSerializer,
    PhotoReviewSerializer, PublicCampaignSerializer,
)
from .services import (
    CampaignError, create_campaign_with_assets, confirm_campaign, extend_campaign, cancel_campaign,
    recalculate_campaign_totals, release_campaign_assets, ensure_public_token, transition_installation,
    assign_mounter,
)

logger = logging.getLogger(__name__)


def _get_campaign(membership, pk):
    return get_object_or_404(Campaign.objects.select_related('client', 'plan'), pk=pk, company=membership.company)


def _get_campaign_asset(membership, pk):
    return get_object_or_404(
        CampaignAsset.objects.select_related('campaign', 'asset'), pk=pk, campaign__company=membership.company
    )


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def campaign_list_create(request):
    """List campaigns or create one directly from a list of assets"""
    membership = get_membership(request)
    company = membership.company

    if request.method == 'GET':
        queryset = Campaign.objects.filter(company=company).select_related('client')
        status_filter = request.query_params.get('status')
        if status_filter:
            queryset = queryset.filter(status=status_filter)
        client_id = request.query_params.get('client')
        if client_id:
            queryset = queryset.filter(client_id=client_id)
        search = request.query_params.get('search')
        if search:
            queryset = queryset.filter(
                Q(campaign_code__icontains=search) | Q(campaign_name__icontains=search) | Q(client__name__icontains=search)
            )
        return Response(CampaignListSerializer(queryset, many=True).data)

    require_role(membership, CAMPAIGN_MANAGERS)
    serializer = CampaignCreateSerializer(data=request.data, context={'company': company})
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    try:
        campaign = create_campaign_with_assets(
            company, data['client'], data['campaign_name'], data['start_date'], data['end_date'],
            [dict(line) for line in data['assets']],
            user=request.user,
            gst_percent=data.get('gst_percent'),
            manual_discount_amount=data.get('manual_discount_amount'),
            billing_cycle=data['billing_cycle'],
            notes=data.get('notes', ''),
        )
    except BookingConflictError as e:
        return Response({'error': str(e), 'conflicts': e.conflicts}, status=status.HTTP_409_CONFLICT)
    except (CampaignError, PricingError) as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(request=request, action='create', model_name='Campaign', object_id=campaign.pk,
                     object_name=campaign.campaign_code, company=company)
    return Response(CampaignSerializer(campaign).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def campaign_detail(request, pk):
    membership = get_membership(request)
    campaign = _get_campaign(membership, pk)

    if request.method == 'GET':
        return Response(CampaignSerializer(campaign).data)

    require_role(membership, CAMPAIGN_MANAGERS)
    if request.method == 'PATCH':
        if campaign.status in Campaign.CLOSED_STATUSES:
            return Response({'error': f'Cannot edit a {campaign.status} campaign'}, status=status.HTTP_400_BAD_REQUEST)
        serializer = CampaignSerializer(campaign, data=request.data, partial=True)
        if serializer.is_valid():
            with transaction.atomic():
                campaign = serializer.save()
                recalculate_campaign_totals(campaign)
            create_audit_log(request=request, action='update', model_name='Campaign', object_id=campaign.pk,
                             object_name=campaign.campaign_code, changes=request.data, company=membership.company)
            return Response(CampaignSerializer(campaign).data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    if campaign.status != 'Draft':
        return Response({'error': 'Only Draft campaigns can be deleted; cancel it instead'},
                        status=status.HTTP_400_BAD_REQUEST)
    if campaign.invoices.exists():
        return Response({'error': 'Campaign has invoices and cannot be deleted'}, status=status.HTTP_400_BAD_REQUEST)
    with transaction.atomic():
        campaign.status = 'Cancelled'
        campaign.save(update_fields=['status', 'updated_at'])
        release_campaign_assets(campaign)
        create_audit_log(request=request, action='delete', model_name='Campaign', object_id=campaign.pk,
                         object_name=campaign.campaign_code, company=membership.company)
        campaign.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def campaign_confirm(request, pk):
    membership = require_role(get_membership(request), CAMPAIGN_MANAGERS)
    campaign = _get_campaign(membership, pk)
    try:
        confirm_campaign(campaign)
    except CampaignError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    create_audit_log(request=request, action='campaign_status', model_name='Campaign', object_id=campaign.pk,
                     object_name=campaign.campaign_code, changes={'status': campaign.status},
                     company=membership.company)
    return Response(CampaignSerializer(campaign).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def campaign_extend(request, pk):
    membership = require_role(get_membership(request), CAMPAIGN_MANAGERS)
    campaign = _get_campaign(membership, pk)
    new_end = parse_date_param(request.data.get('end_date'))
    if new_end is None:
        return Response({'error': 'end_date (YYYY-MM-DD) is required'}, status=status.HTTP_400_BAD_REQUEST)
    old_end = campaign.end_date
    try:
        extend_campaign(campaign, new_end)
    except BookingConflictError as e:
        return Response({'error': str(e), 'conflicts': e.conflicts}, status=status.HTTP_409_CONFLICT)
    except (CampaignError, PricingError) as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    create_audit_log(request=request, action='update', model_name='Campaign', object_id=campaign.pk,
                     object_name=campaign.campaign_code,
                     changes={'end_date': {'before': str(old_end), 'after': str(new_end)}},
                     company=membership.company)
    return Response(CampaignSerializer(campaign).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def campaign_cancel(request, pk):
    membership = require_role(get_membership(request), CAMPAIGN_MANAGERS)
    campaign = _get_campaign(membership, pk)
    try:
        released = cancel_campaign(campaign, reason=request.data.get('reason', ''))
    except CampaignError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    create_audit_log(request=request, action='campaign_status', model_name='Campaign', object_id=campaign.pk,
                     object_name=campaign.campaign_code, changes={'status': 'Cancelled', 'released_assets': released},
                     company=membership.company)
    return Response({'released_assets': released, 'campaign': CampaignSerializer(campaign).data})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def campaign_public_link(request, pk):
    membership = require_role(get_membership(request), CAMPAIGN_MANAGERS)
    campaign = _get_campaign(membership, pk)
    token = ensure_public_token(campaign)
    return Response({
        'public_token': token,
        'url': f"{settings.PUBLIC_BASE_URL}/api/v1/public/campaigns/{token}/",
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def media_availability(request):
    """Available, available-soon and booked assets for a date range"""
    membership = get_membership(request)
    start_date = parse_date_param(request.query_params.get('start_date'))
    end_date = parse_date_param(request.query_params.get('end_date'))
    if start_date is None or end_date is None:
        return Response({'error': 'start_date and end_date (YYYY-MM-DD) are required'},
                        status=status.HTTP_400_BAD_REQUEST)
    if end_date < start_date:
        return Response({'error': 'end_date cannot be before start_date'}, status=status.HTTP_400_BAD_REQUEST)

    result = get_media_availability(
        membership.company, start_date, end_date,
        city=request.query_params.get('city'),
        media_type=request.query_params.get('media_type'),
    )
    return Response({
        'available': AvailabilityAssetSerializer(result['available'], many=True).data,
        'available_soon': AvailabilityAssetSerializer(result['available_soon'], many=True).data,
        'booked': AvailabilityAssetSerializer(result['booked'], many=True).data,
        'summary': result['summary'],
    })


# Operations

@api_view(['POST'])
@permission_classes([IsAuthenticated])
def operations_assign_mounter(request):
    """Assign a mounter to one or more campaign assets"""
    membership = require_role(get_membership(request), OPERATIONS_ROLES)
    ids = request.data.get('campaign_asset_ids') or []
    mounter_id = request.data.get('mounter_id')
    if not ids or not mounter_id:
        return Response({'error': 'campaign_asset_ids and mounter_id are required'}, status=status.HTTP_400_BAD_REQUEST)

    mounter_membership = CompanyUser.objects.select_related('user').filter(
        company=membership.company, user_id=mounter_id, status='active'
    ).first()
    if mounter_membership is None:
        return Response({'error': 'Mounter is not an active member of this company'}, status=status.HTTP_400_BAD_REQUEST)

    rows = list(CampaignAsset.objects.filter(pk__in=ids, campaign__company=membership.company))
    if len(rows) != len(set(ids)):
        return Response({'error': 'One or more campaign assets were not found'}, status=status.HTTP_404_NOT_FOUND)

    with transaction.atomic():
        updated = assign_mounter(rows, mounter_membership.user)
    create_audit_log(request=request, action='mounter_assign', model_name='CampaignAsset', object_id=','.join(str(r.pk) for r in rows),
                     object_name=f'{len(rows)} assets', changes={'mounter': mounter_membership.user.username},
                     company=membership.company)
    return Response(CampaignAssetSerializer(updated, many=True).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def operations_my_tasks(request):
    """Installation tasks assigned to the current user"""
    membership = require_role(get_membership(request), FIELD_ROLES)
    queryset = CampaignAsset.objects.select_related('campaign', 'campaign__client', 'asset').filter(
        campaign__company=membership.company,
        mounter=request.user,
        campaign__status__in=Campaign.ACTIVE_STATUSES,
    ).exclude(installation_status='Completed').order_by('booking_start_date')
    status_filter = request.query_params.get('status')
    if status_filter:
        queryset = queryset.filter(installation_status=status_filter)
    return Response(MounterTaskSerializer(queryset, many=True).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def campaign_asset_status(request, pk):
    """Move a booking along the installation flow"""
    membership = require_role(get_membership(request), FIELD_ROLES)
    campaign_asset = _get_campaign_asset(membership, pk)
    new_status = request.data.get('status')
    valid = [choice for choice, _ in CampaignAsset.INSTALLATION_STATUS_CHOICES]
    if new_status not in valid:
        return Response({'error': f"status must be one of: {', '.join(valid)}"}, status=status.HTTP_400_BAD_REQUEST)
    previous = campaign_asset.installation_status
    try:
        transition_installation(campaign_asset, new_status)
    except CampaignError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    if request.data.get('notes'):
        campaign_asset.notes = request.data['notes']
        campaign_asset.save(update_fields=['notes', 'updated_at'])
    create_audit_log(request=request, action='update', model_name='CampaignAsset', object_id=campaign_asset.pk,
                     object_name=str(campaign_asset), changes={'before': previous, 'after': new_status},
                     company=membership.company)
    return Response(CampaignAssetSerializer(campaign_asset).data)


# Proof photos

@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
@parser_classes([MultiPartParser, FormParser])
def campaign_asset_photos(request, pk):
    """List proof photos of a booking or upload a new one"""
    membership = get_membership(request)
    campaign_asset = _get_campaign_asset(membership, pk)

    if request.method == 'GET':
        photos = campaign_asset.photos.select_related('uploaded_by')
        return Response(ProofPhotoSerializer(photos, many=True, context={'request': request}).data)

    require_role(membership, FIELD_ROLES)
    serializer = PhotoUploadSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data
    try:
        photo, created = save_proof_photo(
            campaign_asset, data['image'],
            user=request.user,
            photo_type=data.get('photo_type') or None,
            client_upload_id=data.get('client_upload_id') or None,
            latitude=data.get('latitude'),
            longitude=data.get('longitude'),
        )
    except UploadError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    if created:
        create_audit_log(request=request, action='proof_upload', model_name='ProofPhoto', object_id=photo.pk,
                         object_name=f'{campaign_asset} {photo.photo_type}', company=membership.company)
    return Response(
        dict(ProofPhotoSerializer(photo, context={'request': request}).data, duplicate=not created),
        status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
    )


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def proof_photo_review(request, pk):
    """Approve or reject a proof photo"""
    membership = require_role(get_membership(request), OPERATIONS_ROLES)
    photo = get_object_or_404(
        ProofPhoto.objects.select_related('campaign_asset__campaign'), pk=pk,
        campaign_asset__campaign__company=membership.company,
    )
    serializer = PhotoReviewSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    action = serializer.validated_data['action']
    photo.approval_status = 'approved' if action == 'approve' else 'rejected'
    photo.rejection_reason = serializer.validated_data.get('reason', '') if action == 'reject' else ''
    photo.reviewed_by = request.user
    photo.reviewed_at = timezone.now()
    photo.save()
    create_audit_log(request=request, action='proof_review', model_name='ProofPhoto', object_id=photo.pk,
                     object_name=str(photo), changes={'reason': photo.rejection_reason},
                     company=membership.company)
    return Response(ProofPhotoSerializer(photo, context={'request': request}).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def campaign_proof_summary(request, pk):
    """Latest proof per type for every booking, with completion counts"""
    membership = get_membership(request)
    campaign = _get_campaign(membership, pk)
    rows = []
    complete_count = 0
    for ca in campaign.campaign_assets.select_related('asset').prefetch_related('photos'):
        latest = derive_latest_photos(p for p in ca.photos.all() if p.approval_status != 'rejected')
        missing = [t for t in PROOF_TYPES if latest[t] is None]
        if not missing:
            complete_count += 1
        rows.append({
            'campaign_asset_id': ca.pk,
            'media_asset_code': ca.asset.media_asset_code,
            'location': ca.location,
            'installation_status': ca.installation_status,
            'latest_photos': {
                t: ProofPhotoSerializer(p, context={'request': request}).data if p else None
                for t, p in latest.items()
            },
            'missing': missing,
        })
    return Response({
        'campaign_id': campaign.pk,
        'total_assets': len(rows),
        'complete_assets': complete_count,
        'is_complete': bool(rows) and complete_count == len(rows),
        'proofs_notified_at': campaign.proofs_notified_at,
        'assets': rows,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def campaign_proof_notify(request, pk):
    """Email the client that proof of display is ready"""
    membership = require_role(get_membership(request), CAMPAIGN_MANAGERS)
    campaign = _get_campaign(membership, pk)
    force = request.data.get('force', False) in (True, 'true', '1')
    if not force and not proofs_complete(campaign):
        return Response({'error': 'Proofs are not complete for every asset'}, status=status.HTTP_400_BAD_REQUEST)

    recipient = campaign.client.contact_email
    if not recipient:
        return Response({'error': 'Client has no contact email'}, status=status.HTTP_400_BAD_REQUEST)

    token = ensure_public_token(campaign)
    link = f"{settings.PUBLIC_BASE_URL}/api/v1/public/campaigns/{token}/"
    try:
        send_mail(
            f"Proof of display: {campaign.campaign_name}",
            f"Dear {campaign.client.name},\n\n"
            f"Proof of display photos for your campaign {campaign.campaign_name} "
            f"({campaign.start_date:%d %b %Y} - {campaign.end_date:%d %b %Y}) are ready.\n"
            f"Track the campaign here: {link}\n\n"
            f"Regards,\n{campaign.company.name}",
            settings.DEFAULT_FROM_EMAIL,
            [recipient],
        )
    except Exception as e:
        logger.error(f"Failed to send proof notification for campaign {campaign.pk}: {str(e)}")
        return Response({'error': 'Failed to send notification email'}, status=status.HTTP_502_BAD_GATEWAY)

    campaign.proofs_notified_at = timezone.now()
    campaign.save(update_fields=['proofs_notified_at', 'updated_at'])
    create_audit_log(request=request, action='update', model_name='Campaign', object_id=campaign.pk,
                     object_name=campaign.campaign_code, changes={'recipient': recipient},
                     company=membership.company)
    return Response({'sent_to': recipient, 'proofs_notified_at': campaign.proofs_notified_at})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def campaign_proof_export(request, pk, fmt):
    membership = get_membership(request)
    campaign = _get_campaign(membership, pk)
    try:
        if fmt == 'pdf':
            return file_response(build_proof_pdf(campaign), f'{campaign.campaign_code}-proofs.pdf', PDF_CONTENT_TYPE)
        if fmt == 'ppt':
            return file_response(build_proof_deck(campaign), f'{campaign.campaign_code}-proofs.pptx', PPTX_CONTENT_TYPE)
    except Exception as e:
        logger.error(f"Proof export {fmt} failed for campaign {campaign.pk}: {str(e)}")
        return Response({'error': f'Failed to generate {fmt} export'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
    return Response({'error': 'Unknown export format'}, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET'])
@permission_classes([AllowAny])
def public_campaign_tracking(request, token):
    """Public tracking page data for a campaign"""
    campaign = get_object_or_404(Campaign.objects.select_related('client'), public_token=token)
    return Response(PublicCampaignSerializer(campaign, context={'request': request}).data)
