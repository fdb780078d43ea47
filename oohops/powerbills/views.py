import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db import transaction
from django.shortcuts import get_object_or_404

from oohops.core.roles import FINANCE_ROLES, OPERATIONS_ROLES
from oohops.core.tenancy import get_membership, require_role
from oohops.core.utils import create_audit_log, parse_date_param
from oohops.finance.services import compute_expense_amounts
from .models import AssetPowerBill, PowerBillJob
from .serializers import (
    AssetPowerBillSerializer, PowerBillCreateSerializer, MarkPaidSerializer, PowerBillJobSerializer,
)
from .services import (
    create_power_bill, mark_bill_paid, fetch_monthly_power_bills, normalize_bill_month, power_bill_summary,
)

logger = logging.getLogger(__name__)

POWER_BILL_ROLES = sorted(set(FINANCE_ROLES + OPERATIONS_ROLES))


def _bill_queryset(request, company):
    queryset = AssetPowerBill.objects.filter(company=company).select_related('asset')
    asset_id = request.query_params.get('asset')
    if asset_id:
        queryset = queryset.filter(asset_id=asset_id)
    payment_status = request.query_params.get('payment_status')
    if payment_status:
        queryset = queryset.filter(payment_status=payment_status)
    month = normalize_bill_month(request.query_params.get('month'))
    if month:
        queryset = queryset.filter(bill_month=month)
    month_from = normalize_bill_month(request.query_params.get('month_from'))
    month_to = normalize_bill_month(request.query_params.get('month_to'))
    if month_from:
        queryset = queryset.filter(bill_month__gte=month_from)
    if month_to:
        queryset = queryset.filter(bill_month__lte=month_to)
    if request.query_params.get('anomalies') in ('true', '1'):
        queryset = queryset.filter(is_anomaly=True)
    return queryset


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def power_bill_list_create(request):
    """List power bills or enter one manually"""
    membership = require_role(get_membership(request), POWER_BILL_ROLES)
    company = membership.company

    if request.method == 'GET':
        return Response(AssetPowerBillSerializer(_bill_queryset(request, company), many=True).data)

    serializer = PowerBillCreateSerializer(data=request.data, context={'company': company})
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = dict(serializer.validated_data)
    asset = data.pop('asset')
    bill = create_power_bill(asset, data, user=request.user)
    create_audit_log(request=request, action='power_bill_add', model_name='AssetPowerBill', object_id=bill.pk,
                     object_name=str(bill), changes={'total_due': str(bill.total_due), 'is_anomaly': bill.is_anomaly},
                     company=company)
    return Response(AssetPowerBillSerializer(bill).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def power_bill_detail(request, pk):
    membership = require_role(get_membership(request), POWER_BILL_ROLES)
    bill = get_object_or_404(AssetPowerBill.objects.select_related('asset'), pk=pk, company=membership.company)

    if request.method == 'GET':
        return Response(AssetPowerBillSerializer(bill).data)

    if bill.payment_status == 'Paid':
        return Response({'error': 'Paid bills cannot be changed'}, status=status.HTTP_400_BAD_REQUEST)

    if request.method == 'PATCH':
        data = request.data.copy() if hasattr(request.data, 'copy') else dict(request.data)
        data.pop('asset', None)
        data.pop('bill_month', None)
        serializer = AssetPowerBillSerializer(bill, data=data, partial=True)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        with transaction.atomic():
            bill = serializer.save()
            for expense in bill.expenses.filter(payment_status='Pending'):
                expense.amount = bill.total_due
                expense.gst_amount, expense.total_amount = compute_expense_amounts(expense.amount, expense.gst_percent)
                expense.save(update_fields=['amount', 'gst_amount', 'total_amount', 'updated_at'])
        create_audit_log(request=request, action='update', model_name='AssetPowerBill', object_id=bill.pk,
                         object_name=str(bill), changes=data, company=membership.company)
        return Response(AssetPowerBillSerializer(bill).data)

    require_role(membership, FINANCE_ROLES)
    create_audit_log(request=request, action='delete', model_name='AssetPowerBill', object_id=bill.pk,
                     object_name=str(bill), company=membership.company)
    with transaction.atomic():
        bill.expenses.filter(payment_status='Pending').delete()
        bill.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def power_bill_mark_paid(request, pk):
    """Mark a bill Paid together with its linked expense"""
    membership = require_role(get_membership(request), FINANCE_ROLES)
    bill = get_object_or_404(AssetPowerBill.objects.select_related('asset'), pk=pk, company=membership.company)
    if bill.payment_status == 'Paid':
        return Response({'error': 'Bill is already paid'}, status=status.HTTP_400_BAD_REQUEST)
    serializer = MarkPaidSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    mark_bill_paid(bill, **serializer.validated_data)
    create_audit_log(request=request, action='power_bill_paid', model_name='AssetPowerBill', object_id=bill.pk,
                     object_name=str(bill), changes={'payment_reference': bill.payment_reference},
                     company=membership.company)
    return Response(AssetPowerBillSerializer(bill).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def power_bill_fetch(request):
    """Run the monthly bill fetch for the caller's company"""
    membership = require_role(get_membership(request), ['admin'])
    results = fetch_monthly_power_bills(company=membership.company)
    return Response(results)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def power_bill_jobs(request):
    membership = require_role(get_membership(request), POWER_BILL_ROLES)
    queryset = PowerBillJob.objects.filter(company=membership.company).select_related('asset')
    job_status = request.query_params.get('status')
    if job_status:
        queryset = queryset.filter(job_status=job_status)
    return Response(PowerBillJobSerializer(queryset[:200], many=True).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def power_bill_summary_view(request):
    membership = require_role(get_membership(request), POWER_BILL_ROLES)
    return Response(power_bill_summary(_bill_queryset(request, membership.company)))
