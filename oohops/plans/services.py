"""
Plan pricing, approval workflow and conversion to campaigns.
"""
import logging
import secrets
from decimal import Decimal

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from oohops.campaigns.bookings import BookingConflictError, find_line_conflicts
from oohops.pricing.billing import BillingLine, compute_campaign_totals
from oohops.pricing.calculator import (
    calculate_discount, calculate_profit, compute_pro_rata_factor, compute_rent_amount,
    validate_duration, validate_negotiated_price,
)
from .models import Plan, PlanApproval

logger = logging.getLogger(__name__)


class PlanWorkflowError(Exception):
    """Raised when a plan action is not allowed in the plan's current state"""


def price_plan_item(item, provided_daily_rate=None):
    """
    Compute the derived pricing of a plan item in place.

    Rates default from the asset; the negotiated price (sales_price, falling
    back to the card rate) is validated against the base and card rates.
    """
    asset = item.asset
    if not item.card_rate:
        item.card_rate = asset.card_rate
    if not item.base_rate:
        item.base_rate = asset.base_rate
    if item.printing_charges is None:
        item.printing_charges = asset.printing_rate_default
    if item.mounting_charges is None:
        item.mounting_charges = asset.mounting_rate_default
    if not item.sales_price:
        item.sales_price = item.card_rate

    validate_duration(item.start_date, item.end_date)
    validate_negotiated_price(item.sales_price, item.base_rate, item.card_rate)

    result = compute_rent_amount(item.sales_price, item.start_date, item.end_date,
                                 item.billing_mode, provided_daily_rate)
    item.booked_days = result.booked_days
    item.daily_rate = result.daily_rate
    item.rent_amount = result.rent_amount

    factor = compute_pro_rata_factor(result.booked_days)
    item.discount_value, item.discount_percent = calculate_discount(item.card_rate, item.sales_price, factor)
    item.profit_value, item.profit_percent = calculate_profit(item.base_rate, item.sales_price, factor)
    return item


def recalculate_plan_totals(plan):
    lines = [
        BillingLine(
            card_rate=item.card_rate,
            negotiated_rate=item.sales_price,
            printing_charges=item.printing_charges,
            mounting_charges=item.mounting_charges,
            start_date=item.start_date,
            end_date=item.end_date,
        )
        for item in plan.items.all()
    ]
    totals = compute_campaign_totals(
        plan.start_date, plan.end_date, lines,
        gst_percent=plan.gst_percent,
        manual_discount_amount=plan.manual_discount_amount,
    )
    plan.display_cost = totals.display_cost
    plan.printing_total = totals.printing_cost
    plan.mounting_total = totals.mounting_cost
    plan.gross_amount = totals.gross_amount
    plan.manual_discount_amount = totals.manual_discount_amount
    plan.taxable_amount = totals.taxable_amount
    plan.gst_amount = totals.gst_amount
    plan.grand_total = totals.grand_total
    plan.total_assets = totals.total_assets
    plan.save()
    return totals


def approval_chain(grand_total):
    """[(level, required_role), ...] for a plan of the given grand total"""
    l2_threshold = Decimal(str(getattr(settings, 'PLAN_APPROVAL_L2_THRESHOLD', 500000)))
    l3_threshold = Decimal(str(getattr(settings, 'PLAN_APPROVAL_L3_THRESHOLD', 2000000)))
    chain = [('L1', 'manager')]
    if grand_total > l2_threshold:
        chain.append(('L2', 'finance'))
    if grand_total > l3_threshold:
        chain.append(('L3', 'admin'))
    return chain


def submit_for_approval(plan, user=None):
    """Build the approval chain and move the plan to Pending Approval, recording the submitter"""
    if plan.status not in Plan.EDITABLE_STATUSES:
        raise PlanWorkflowError(f"Only Draft or Rejected plans can be submitted (current status: {plan.status})")
    if not plan.items.exists():
        raise PlanWorkflowError('Plan has no items')

    with transaction.atomic():
        recalculate_plan_totals(plan)
        plan.approvals.all().delete()
        chain = approval_chain(plan.grand_total)
        PlanApproval.objects.bulk_create([
            PlanApproval(plan=plan, level=level, required_role=role, requested_by=user) for level, role in chain
        ])
        plan.status = 'Pending Approval'
        plan.submitted_at = timezone.now()
        plan.submitted_by = user
        plan.save(update_fields=['status', 'submitted_at', 'submitted_by', 'updated_at'])
    logger.info(f"Plan {plan.plan_code} submitted with {len(chain)} approval level(s)")
    return list(plan.approvals.all())


def process_approval(plan, user, role, action, comments=''):
    """
    Approve or reject the lowest pending approval level.

    The acting role must match the level's required role; admins may act on
    any level. Rejection rejects the plan; approving the last level approves it.
    Returns the updated PlanApproval.
    """
    if action not in ('approve', 'reject'):
        raise PlanWorkflowError("Action must be 'approve' or 'reject'")
    if plan.status != 'Pending Approval':
        raise PlanWorkflowError(f"Plan is not pending approval (current status: {plan.status})")

    approval = plan.approvals.filter(status='pending').order_by('level').first()
    if approval is None:
        raise PlanWorkflowError('No pending approval level found')
    if role != 'admin' and role != approval.required_role:
        raise PlanWorkflowError(
            f"Level {approval.level} requires the {approval.required_role} role (your role: {role})"
        )

    with transaction.atomic():
        approval.status = 'approved' if action == 'approve' else 'rejected'
        approval.approver = user
        approval.comments = comments or ''
        approval.acted_at = timezone.now()
        approval.save()

        if action == 'reject':
            plan.status = 'Rejected'
            plan.save(update_fields=['status', 'updated_at'])
        elif not plan.approvals.filter(status='pending').exists():
            plan.status = 'Approved'
            plan.approved_at = timezone.now()
            plan.save(update_fields=['status', 'approved_at', 'updated_at'])

    logger.info(f"Plan {plan.plan_code} {approval.level} {approval.status} by user {user.pk}; plan is {plan.status}")
    return approval


def plan_conflicts(plan):
    return find_line_conflicts(
        [(item.asset_id, item.start_date, item.end_date) for item in plan.items.all()],
        company=plan.company,
        exclude_plan=plan,
    )


def convert_plan_to_campaign(plan, user=None):
    """
    Turn an approved plan into a Draft campaign. Returns (campaign, created).

    A plan converted earlier returns its existing campaign with created=False.
    Raises PlanWorkflowError for plans in the wrong state or without items,
    and BookingConflictError when assets are booked for overlapping dates.
    """
    from oohops.campaigns.services import create_campaign_with_assets

    with transaction.atomic():
        plan = Plan.objects.select_for_update().get(pk=plan.pk)
        if plan.status == 'Converted':
            existing = plan.campaigns.order_by('created_at').first()
            if existing:
                return existing, False
        # Sent plans were approved before being shared with the client
        if plan.status not in ('Approved', 'Sent'):
            raise PlanWorkflowError(f'Plan must be "Approved" to convert (current status: {plan.status})')

        items = list(plan.items.select_related('asset'))
        if not items:
            raise PlanWorkflowError('Plan has no items to convert')

        conflicts = plan_conflicts(plan)
        if conflicts:
            raise BookingConflictError(f"{len(conflicts)} asset(s) already booked", conflicts)

        campaign = create_campaign_with_assets(
            plan.company,
            plan.client,
            plan.plan_name,
            plan.start_date,
            plan.end_date,
            [
                {
                    'asset': item.asset,
                    'start_date': item.start_date,
                    'end_date': item.end_date,
                    'card_rate': item.card_rate,
                    'negotiated_rate': item.negotiated_rate,
                    'printing_charges': item.printing_charges,
                    'mounting_charges': item.mounting_charges,
                    'billing_mode': item.billing_mode,
                    'daily_rate': item.daily_rate if item.billing_mode == 'DAILY' else None,
                }
                for item in items
            ],
            user=user,
            plan=plan,
            gst_percent=plan.gst_percent,
            manual_discount_amount=plan.manual_discount_amount,
            notes=plan.notes,
        )
        plan.status = 'Converted'
        plan.save(update_fields=['status', 'updated_at'])

    logger.info(f"Plan {plan.plan_code} converted to campaign {campaign.campaign_code}")
    return campaign, True


def create_share_token(plan):
    if not plan.share_token:
        plan.share_token = secrets.token_urlsafe(24)
        plan.save(update_fields=['share_token', 'updated_at'])
    return plan.share_token
