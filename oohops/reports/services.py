"""
Dashboard KPIs and management reports.

Each role sees the sections relevant to its work: admin and manager get
everything, finance gets money, sales gets plans and campaigns, field
roles get installation work.
"""
import logging
from datetime import timedelta
from decimal import Decimal

from django.db.models import Count, Q, Sum
from django.db.models.functions import TruncMonth

from oohops.assets.models import MediaAsset
from oohops.campaigns.models import Campaign, CampaignAsset
from oohops.clients.models import Client
from oohops.finance.models import Invoice, Payment, Expense
from oohops.plans.models import Plan, PlanApproval
from oohops.powerbills.models import AssetPowerBill

logger = logging.getLogger('oohops.reports')

ZERO = Decimal('0.00')

ROLE_SECTIONS = {
    'admin': ['inventory', 'plans', 'campaigns', 'operations', 'finance', 'powerbills'],
    'manager': ['inventory', 'plans', 'campaigns', 'operations', 'finance', 'powerbills'],
    'finance': ['finance', 'powerbills', 'campaigns'],
    'sales': ['inventory', 'plans', 'campaigns'],
    'operations': ['inventory', 'operations', 'powerbills'],
    'installation': ['operations'],
    'monitoring': ['operations'],
    'monitor': ['operations'],
}


def _sum(queryset, field):
    return queryset.aggregate(total=Sum(field))['total'] or ZERO


def inventory_kpis(company, date_from, date_to):
    assets = MediaAsset.objects.filter(company=company)
    by_status = dict(assets.values_list('status').annotate(count=Count('id')))
    total = sum(by_status.values())
    booked = by_status.get('Booked', 0)
    return {
        'total_assets': total,
        'by_status': by_status,
        'occupancy_percent': round(booked * 100 / total, 2) if total else 0,
        'illuminated_assets': assets.filter(illumination_type__in=['Front-Lit', 'Back-Lit', 'Digital']).count(),
    }


def plan_kpis(company, date_from, date_to):
    plans = Plan.objects.filter(company=company, created_at__date__gte=date_from, created_at__date__lte=date_to)
    by_status = dict(plans.values_list('status').annotate(count=Count('id')))
    converted = by_status.get('Converted', 0)
    total = sum(by_status.values())
    return {
        'plans_created': total,
        'by_status': by_status,
        'pipeline_value': _sum(plans.filter(status__in=['Draft', 'Pending Approval', 'Approved', 'Sent']), 'grand_total'),
        'conversion_rate': round(converted * 100 / total, 2) if total else 0,
        'pending_approvals': PlanApproval.objects.filter(plan__company=company, status='pending').count(),
    }


def campaign_kpis(company, date_from, date_to):
    campaigns = Campaign.objects.filter(company=company)
    in_range = campaigns.filter(start_date__lte=date_to, end_date__gte=date_from).exclude(status='Cancelled')
    return {
        'by_status': dict(campaigns.values_list('status').annotate(count=Count('id'))),
        'active_in_period': in_range.count(),
        'booked_value': _sum(in_range.exclude(status='Draft'), 'grand_total'),
        'ending_within_week': campaigns.filter(status='Running', end_date__gte=date_to,
                                               end_date__lte=date_to + timedelta(days=7)).count(),
    }


def operations_kpis(company, date_from, date_to, user=None):
    lines = CampaignAsset.objects.filter(
        campaign__company=company, campaign__status__in=['Upcoming', 'Running'],
    )
    if user is not None:
        lines = lines.filter(mounter=user)
    by_status = dict(lines.values_list('installation_status').annotate(count=Count('id')))
    return {
        'open_tasks': lines.exclude(installation_status__in=['Verified', 'Completed']).count(),
        'by_installation_status': by_status,
        'unassigned': lines.filter(mounter__isnull=True).count() if user is None else 0,
        'awaiting_photos': lines.filter(installation_status__in=['Assigned', 'Installed']).count(),
        'photos_pending_review': lines.filter(photos__approval_status='pending').distinct().count(),
    }


def finance_kpis(company, date_from, date_to):
    invoices = Invoice.objects.filter(company=company).exclude(status__in=['Draft', 'Cancelled'])
    period_invoices = invoices.filter(invoice_date__gte=date_from, invoice_date__lte=date_to)
    payments = Payment.objects.filter(invoice__company=company, payment_date__gte=date_from,
                                      payment_date__lte=date_to)
    expenses = Expense.objects.filter(company=company, expense_date__gte=date_from, expense_date__lte=date_to)
    invoiced = _sum(period_invoices, 'total_amount')
    expense_total = _sum(expenses, 'total_amount')
    return {
        'invoiced': invoiced,
        'invoice_count': period_invoices.count(),
        'collected': _sum(payments, 'amount'),
        'outstanding': _sum(invoices.filter(status__in=Invoice.OPEN_STATUSES), 'balance_due'),
        'overdue': _sum(invoices.filter(status='Overdue'), 'balance_due'),
        'overdue_count': invoices.filter(status='Overdue').count(),
        'expenses': expense_total,
        'gross_margin': invoiced - expense_total,
    }


def powerbill_kpis(company, date_from, date_to):
    bills = AssetPowerBill.objects.filter(company=company)
    pending = bills.filter(payment_status='Pending')
    return {
        'pending_count': pending.count(),
        'pending_amount': _sum(pending, 'total_due'),
        'anomalies_in_period': bills.filter(is_anomaly=True, bill_month__gte=date_from.replace(day=1),
                                            bill_month__lte=date_to).count(),
        'overdue_bills': pending.filter(due_date__lt=date_to).count(),
    }


SECTION_BUILDERS = {
    'inventory': inventory_kpis,
    'plans': plan_kpis,
    'campaigns': campaign_kpis,
    'finance': finance_kpis,
    'powerbills': powerbill_kpis,
}


def build_dashboard_kpis(company, role, date_from, date_to, user=None):
    """KPI sections for a role. Field roles only see their own tasks."""
    data = {'role': role, 'period': {'from': date_from.isoformat(), 'to': date_to.isoformat()}}
    for section in ROLE_SECTIONS.get(role, []):
        if section == 'operations':
            own_only = role in ('installation', 'monitoring', 'monitor')
            data[section] = operations_kpis(company, date_from, date_to, user=user if own_only else None)
        else:
            data[section] = SECTION_BUILDERS[section](company, date_from, date_to)
    return data


def revenue_report(company, date_from, date_to):
    """Monthly invoiced, collected and expense totals with the resulting margin"""
    invoiced = (
        Invoice.objects.filter(company=company, invoice_date__gte=date_from, invoice_date__lte=date_to)
        .exclude(status__in=['Draft', 'Cancelled'])
        .annotate(month=TruncMonth('invoice_date')).values('month')
        .annotate(total=Sum('total_amount'), gst=Sum('gst_amount'), count=Count('id'))
    )
    collected = (
        Payment.objects.filter(invoice__company=company, payment_date__gte=date_from, payment_date__lte=date_to)
        .annotate(month=TruncMonth('payment_date')).values('month').annotate(total=Sum('amount'))
    )
    expenses = (
        Expense.objects.filter(company=company, expense_date__gte=date_from, expense_date__lte=date_to)
        .annotate(month=TruncMonth('expense_date')).values('month').annotate(total=Sum('total_amount'))
    )

    months = {}

    def row(month):
        key = f'{month:%Y-%m}'
        return months.setdefault(key, {
            'month': key, 'invoiced': ZERO, 'gst': ZERO, 'invoice_count': 0, 'collected': ZERO, 'expenses': ZERO,
        })

    for item in invoiced:
        entry = row(item['month'])
        entry['invoiced'] = item['total'] or ZERO
        entry['gst'] = item['gst'] or ZERO
        entry['invoice_count'] = item['count']
    for item in collected:
        row(item['month'])['collected'] = item['total'] or ZERO
    for item in expenses:
        row(item['month'])['expenses'] = item['total'] or ZERO

    rows = [months[key] for key in sorted(months)]
    for entry in rows:
        entry['margin'] = entry['invoiced'] - entry['expenses']
    totals = {
        field: sum((entry[field] for entry in rows), ZERO)
        for field in ('invoiced', 'gst', 'collected', 'expenses', 'margin')
    }
    return {'period': {'from': date_from.isoformat(), 'to': date_to.isoformat()}, 'months': rows, 'totals': totals}


def client_summary(company, date_from=None, date_to=None):
    """Per client: campaigns, booked value, invoiced, paid and outstanding"""
    campaigns = Q(campaigns__status__in=['Upcoming', 'Running', 'Completed', 'Archived'])
    invoices = ~Q(invoices__status__in=['Draft', 'Cancelled'])
    if date_from:
        campaigns &= Q(campaigns__end_date__gte=date_from)
        invoices &= Q(invoices__invoice_date__gte=date_from)
    if date_to:
        campaigns &= Q(campaigns__start_date__lte=date_to)
        invoices &= Q(invoices__invoice_date__lte=date_to)

    clients = Client.objects.filter(company=company)
    campaign_rows = clients.annotate(
        campaign_count=Count('campaigns', filter=campaigns, distinct=True),
        booked_value=Sum('campaigns__grand_total', filter=campaigns),
    ).values('id', 'client_code', 'name', 'campaign_count', 'booked_value')
    invoice_rows = {
        row['id']: row for row in clients.annotate(
            invoiced=Sum('invoices__total_amount', filter=invoices),
            paid=Sum('invoices__paid_amount', filter=invoices),
            outstanding=Sum('invoices__balance_due', filter=invoices & Q(invoices__status__in=Invoice.OPEN_STATUSES)),
        ).values('id', 'invoiced', 'paid', 'outstanding')
    }

    result = []
    for row in campaign_rows:
        money = invoice_rows.get(row['id'], {})
        result.append({
            'client_id': row['id'],
            'client_code': row['client_code'],
            'client_name': row['name'],
            'campaign_count': row['campaign_count'],
            'booked_value': row['booked_value'] or ZERO,
            'invoiced': money.get('invoiced') or ZERO,
            'paid': money.get('paid') or ZERO,
            'outstanding': money.get('outstanding') or ZERO,
        })
    result.sort(key=lambda r: r['invoiced'], reverse=True)
    return result
