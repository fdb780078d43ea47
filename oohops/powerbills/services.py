import logging
from datetime import date
from decimal import Decimal

from django.db import transaction
from django.db.models import Count, Q, Sum
from django.db.models.functions import TruncMonth
from django.utils import timezone

from oohops.assets.models import MediaAsset
from oohops.core.utils import parse_date_param, round_money
from oohops.finance.services import create_power_bill_expense
from .client import PowerBillFetchError, fetch_bill
from .models import AssetPowerBill, PowerBillJob

logger = logging.getLogger(__name__)

ANOMALY_THRESHOLD = Decimal('1.35')
ANOMALY_HISTORY = 6
ILLUMINATED_TYPES = ['Front-Lit', 'Back-Lit', 'Digital']


def normalize_bill_month(value):
    """First day of the month of a date, 'YYYY-MM' or 'YYYY-MM-DD' string"""
    if value in (None, ''):
        return None
    if isinstance(value, date):
        return value.replace(day=1)
    text = str(value)
    parsed = parse_date_param(text if len(text) > 7 else f'{text}-01')
    return parsed.replace(day=1) if parsed else None


def detect_anomaly(current_amount, recent_amounts):
    """
    Flag a bill as a spike when it exceeds 1.35x the average of the recent
    bills. Returns (is_anomaly, anomaly_type, details).
    """
    amounts = [Decimal(a or 0) for a in recent_amounts][:ANOMALY_HISTORY]
    if not amounts:
        return False, '', {}
    average = sum(amounts) / len(amounts)
    current = Decimal(current_amount or 0)
    if average <= 0 or current <= average * ANOMALY_THRESHOLD:
        return False, '', {}
    increase = (current - average) / average * 100
    return True, 'high_spike', {
        'current_amount': str(round_money(current)),
        'average_amount': str(round_money(average)),
        'percentage_increase': str(round_money(increase)),
    }


def recent_bill_amounts(asset, before_month):
    return list(
        AssetPowerBill.objects.filter(asset=asset, bill_month__lt=before_month)
        .order_by('-bill_month')
        .values_list('bill_amount', flat=True)[:ANOMALY_HISTORY]
    )


@transaction.atomic
def create_power_bill(asset, data, user=None, source='manual'):
    """
    Store one monthly bill with anomaly flags and its linked Power Bill
    expense. data uses AssetPowerBill field names; bill_month is normalised
    to the first of the month.
    """
    values = dict(data)
    values['bill_month'] = normalize_bill_month(values.get('bill_month')) or timezone.localdate().replace(day=1)
    for field in ('bill_date', 'due_date', 'paid_date'):
        if isinstance(values.get(field), str):
            values[field] = parse_date_param(values[field])
    if not values.get('total_due'):
        values['total_due'] = values.get('bill_amount') or Decimal('0.00')

    current = values.get('bill_amount') or values['total_due']
    is_anomaly, anomaly_type, details = detect_anomaly(current, recent_bill_amounts(asset, values['bill_month']))

    bill = AssetPowerBill.objects.create(
        company=asset.company,
        asset=asset,
        unique_service_number=values.pop('unique_service_number', None) or asset.unique_service_number or '',
        consumer_name=values.pop('consumer_name', None) or asset.consumer_name or '',
        is_anomaly=is_anomaly,
        anomaly_type=anomaly_type,
        anomaly_details=details,
        source=source,
        created_by=user,
        **values,
    )
    if is_anomaly:
        logger.warning(
            f"Power bill anomaly for asset {asset.media_asset_code} {bill.bill_month:%Y-%m}: {details}"
        )
    create_power_bill_expense(bill, user=user)
    return bill


@transaction.atomic
def mark_bill_paid(bill, paid_date=None, payment_reference=''):
    """Mark a bill and its linked expense as Paid"""
    bill.payment_status = 'Paid'
    bill.paid_date = paid_date or timezone.localdate()
    if payment_reference:
        bill.payment_reference = payment_reference
    bill.save(update_fields=['payment_status', 'paid_date', 'payment_reference', 'updated_at'])
    bill.expenses.exclude(payment_status='Paid').update(
        payment_status='Paid', paid_date=bill.paid_date, updated_at=timezone.now()
    )
    return bill


def eligible_assets(company=None):
    """Illuminated assets with an electricity connection, in active companies"""
    queryset = (
        MediaAsset.objects.select_related('company')
        .filter(illumination_type__in=ILLUMINATED_TYPES, company__status='active')
        .exclude(Q(unique_service_number__isnull=True) | Q(unique_service_number=''))
    )
    if company is not None:
        queryset = queryset.filter(company=company)
    return queryset.order_by('company_id', 'id')


def _finish_job(job, job_status, result=None, error_message=''):
    job.job_status = job_status
    job.result = result or {}
    job.error_message = error_message
    job.completed_at = timezone.now()
    job.save(update_fields=['job_status', 'result', 'error_message', 'completed_at'])


def fetch_monthly_power_bills(company=None, fetcher=fetch_bill):
    """
    Fetch the latest bill of every eligible asset.

    Each asset gets a PowerBillJob row. A bill already stored for the
    fetched month is skipped. A failing asset is recorded on its job and
    counted; the run always continues with the next asset.
    """
    results = {
        'total': 0, 'success': 0, 'failed': 0, 'skipped': 0,
        'anomalies_detected': 0, 'expenses_created': 0, 'details': [],
    }
    for asset in eligible_assets(company):
        results['total'] += 1
        job = PowerBillJob.objects.create(company=asset.company, asset=asset, job_type='monthly_fetch')
        try:
            data = fetcher(asset.unique_service_number)
            bill_month = normalize_bill_month(data.pop('bill_month', None)) or timezone.localdate().replace(day=1)
            if AssetPowerBill.objects.filter(asset=asset, bill_month=bill_month).exists():
                results['skipped'] += 1
                _finish_job(job, 'completed', {'message': 'Bill already exists', 'bill_month': f'{bill_month:%Y-%m}'})
                continue

            bill = create_power_bill(asset, dict(data, bill_month=bill_month), source='fetched')
            results['success'] += 1
            results['expenses_created'] += 1
            if bill.is_anomaly:
                results['anomalies_detected'] += 1
            _finish_job(job, 'completed', {
                'bill_id': bill.pk, 'bill_amount': str(bill.bill_amount), 'is_anomaly': bill.is_anomaly,
            })
            results['details'].append({
                'asset_id': asset.pk, 'media_asset_code': asset.media_asset_code,
                'success': True, 'bill_amount': str(bill.bill_amount),
            })
        except PowerBillFetchError as e:
            results['failed'] += 1
            _finish_job(job, 'failed', error_message=str(e))
            results['details'].append({
                'asset_id': asset.pk, 'media_asset_code': asset.media_asset_code, 'success': False, 'error': str(e),
            })
        except Exception as e:
            logger.error(f"Power bill fetch failed for asset {asset.pk}: {str(e)}", exc_info=True)
            results['failed'] += 1
            _finish_job(job, 'failed', error_message=str(e))
            results['details'].append({
                'asset_id': asset.pk, 'media_asset_code': asset.media_asset_code, 'success': False, 'error': str(e),
            })

    logger.info(
        f"Power bill fetch finished: {results['success']} new, {results['skipped']} skipped, "
        f"{results['failed']} failed of {results['total']}"
    )
    return results


def power_bill_summary(queryset):
    """Pending and paid totals, anomaly count and per-month totals"""
    totals = queryset.aggregate(
        total_amount=Sum('total_due'),
        pending_amount=Sum('total_due', filter=Q(payment_status='Pending')),
        paid_amount=Sum('total_due', filter=Q(payment_status='Paid')),
        pending_count=Count('id', filter=Q(payment_status='Pending')),
        paid_count=Count('id', filter=Q(payment_status='Paid')),
        anomaly_count=Count('id', filter=Q(is_anomaly=True)),
    )
    by_month = (
        queryset.annotate(month=TruncMonth('bill_month'))
        .values('month')
        .annotate(total=Sum('total_due'), count=Count('id'))
        .order_by('-month')
    )
    zero = Decimal('0.00')
    return {
        'total_amount': totals['total_amount'] or zero,
        'pending_amount': totals['pending_amount'] or zero,
        'paid_amount': totals['paid_amount'] or zero,
        'pending_count': totals['pending_count'],
        'paid_count': totals['paid_count'],
        'anomaly_count': totals['anomaly_count'],
        'by_month': [
            {'month': f"{row['month']:%Y-%m}", 'total': row['total'] or zero, 'count': row['count']}
            for row in by_month
        ],
    }
