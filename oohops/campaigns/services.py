"""
Campaign lifecycle: creation, pricing, status updates, extension, cancellation
and installation progress.
"""
import logging
import secrets
from datetime import timedelta

from django.db import transaction
from django.utils import timezone

from oohops.core.codes import generate_campaign_code
from oohops.pricing.billing import BillingLine, compute_campaign_totals
from oohops.pricing.calculator import PRORATA_30, compute_rent_amount, validate_duration
from .bookings import BookingConflictError, find_line_conflicts, find_booking_conflicts
from .models import Campaign, CampaignAsset

logger = logging.getLogger(__name__)


class CampaignError(Exception):
    """Raised when a campaign operation is not allowed in its current state"""


INSTALLATION_FLOW = ['Pending', 'Assigned', 'Installed', 'PhotoUploaded', 'Verified', 'Completed']

INSTALLATION_TRANSITIONS = {
    'Pending': {'Assigned', 'Failed'},
    'Assigned': {'Installed', 'PhotoUploaded', 'Failed'},
    'Installed': {'PhotoUploaded', 'Failed'},
    'PhotoUploaded': {'Verified', 'Failed'},
    'Verified': {'Completed', 'Failed'},
    'Completed': set(),
    'Failed': {'Assigned'},
}


def status_for_dates(start_date, end_date, today=None):
    today = today or timezone.localdate()
    if today < start_date:
        return 'Upcoming'
    if today > end_date:
        return 'Completed'
    return 'Running'


def price_campaign_asset(campaign_asset, provided_daily_rate=None):
    """Fill booked_days, daily_rate and rent_amount from the booking rates and dates"""
    result = compute_rent_amount(
        campaign_asset.monthly_rate,
        campaign_asset.booking_start_date,
        campaign_asset.booking_end_date,
        campaign_asset.billing_mode,
        provided_daily_rate,
    )
    campaign_asset.booked_days = result.booked_days
    campaign_asset.daily_rate = result.daily_rate
    campaign_asset.rent_amount = result.rent_amount
    return campaign_asset


def build_campaign_asset(campaign, asset, start_date=None, end_date=None, card_rate=None,
                         negotiated_rate=None, printing_charges=None, mounting_charges=None,
                         billing_mode=PRORATA_30, daily_rate=None):
    """Unsaved booking row with asset snapshot and computed rent"""
    card = asset.card_rate if card_rate is None else card_rate
    negotiated = negotiated_rate if negotiated_rate and negotiated_rate > 0 else card
    campaign_asset = CampaignAsset(
        campaign=campaign,
        asset=asset,
        card_rate=card,
        negotiated_rate=negotiated,
        printing_charges=asset.printing_rate_default if printing_charges is None else printing_charges,
        mounting_charges=asset.mounting_rate_default if mounting_charges is None else mounting_charges,
        booking_start_date=start_date or campaign.start_date,
        booking_end_date=end_date or campaign.end_date,
        billing_mode=billing_mode or PRORATA_30,
    )
    validate_duration(campaign_asset.booking_start_date, campaign_asset.booking_end_date)
    campaign_asset.snapshot_asset()
    return price_campaign_asset(campaign_asset, daily_rate)


def billing_lines(campaign):
    return [
        BillingLine(
            card_rate=ca.card_rate,
            negotiated_rate=ca.negotiated_rate,
            printing_charges=ca.printing_charges,
            mounting_charges=ca.mounting_charges,
            start_date=ca.booking_start_date,
            end_date=ca.booking_end_date,
        )
        for ca in campaign.campaign_assets.all()
    ]


def recalculate_campaign_totals(campaign):
    totals = compute_campaign_totals(
        campaign.start_date, campaign.end_date, billing_lines(campaign),
        gst_percent=campaign.gst_percent,
        manual_discount_amount=campaign.manual_discount_amount,
    )
    campaign.display_cost = totals.display_cost
    campaign.printing_total = totals.printing_cost
    campaign.mounting_total = totals.mounting_cost
    campaign.gross_amount = totals.gross_amount
    campaign.manual_discount_amount = totals.manual_discount_amount
    campaign.taxable_amount = totals.taxable_amount
    campaign.gst_amount = totals.gst_amount
    campaign.grand_total = totals.grand_total
    campaign.total_assets = totals.total_assets
    campaign.save()
    return totals


def book_assets(campaign):
    """Mark the campaign's assets Booked for their booking windows"""
    for ca in campaign.campaign_assets.select_related('asset'):
        asset = ca.asset
        asset.status = 'Booked'
        asset.booked_from = ca.booking_start_date
        asset.booked_to = ca.booking_end_date
        asset.save(update_fields=['status', 'booked_from', 'booked_to', 'updated_at'])


def release_asset(asset, force=False, today=None, exclude_campaign=None):
    """
    Make a booked asset Available again.

    When another active campaign still holds the asset from today onwards the
    asset is moved to that booking instead, and False is returned unless force
    is set.
    """
    today = today or timezone.localdate()
    holding = CampaignAsset.objects.filter(
        asset=asset,
        campaign__status__in=Campaign.ACTIVE_STATUSES,
        booking_end_date__gte=today,
    )
    if exclude_campaign is not None:
        holding = holding.exclude(campaign=exclude_campaign)
    next_booking = holding.order_by('booking_start_date').first()

    if next_booking and not force:
        asset.status = 'Booked'
        asset.booked_from = next_booking.booking_start_date
        asset.booked_to = next_booking.booking_end_date
        asset.save(update_fields=['status', 'booked_from', 'booked_to', 'updated_at'])
        return False

    asset.status = 'Available'
    asset.booked_from = None
    asset.booked_to = None
    asset.save(update_fields=['status', 'booked_from', 'booked_to', 'updated_at'])
    logger.info(f"Released asset {asset.media_asset_code}")
    return True


def release_campaign_assets(campaign, today=None):
    released = 0
    for ca in campaign.campaign_assets.select_related('asset'):
        if ca.asset.status == 'Booked' and release_asset(ca.asset, today=today, exclude_campaign=campaign):
            released += 1
    return released


def auto_update_campaign_statuses(today=None, company=None):
    """
    Move campaigns between Upcoming, Running and Completed by date.

    Draft, Cancelled and Archived campaigns are left alone. Returns a dict of
    status -> number of campaigns moved into it.
    """
    today = today or timezone.localdate()
    campaigns = Campaign.objects.exclude(status__in=['Draft', 'Cancelled', 'Archived'])
    if company is not None:
        campaigns = campaigns.filter(company=company)

    moved = {}
    for campaign in campaigns:
        new_status = status_for_dates(campaign.start_date, campaign.end_date, today)
        if new_status == campaign.status:
            continue
        previous = campaign.status
        campaign.status = new_status
        campaign.save(update_fields=['status', 'updated_at'])
        moved[new_status] = moved.get(new_status, 0) + 1
        logger.info(f"Campaign {campaign.campaign_code}: {previous} -> {new_status}")
        if new_status == 'Completed':
            release_campaign_assets(campaign, today=today)
    return moved


def create_campaign_with_assets(company, client, campaign_name, start_date, end_date, lines, user=None,
                                plan=None, gst_percent=None, manual_discount_amount=None,
                                billing_cycle='one_time', notes=''):
    """
    Create a Draft campaign with one booking per line and book its assets.

    Each line is a dict with 'asset' and optional start_date, end_date,
    card_rate, negotiated_rate, printing_charges, mounting_charges,
    billing_mode and daily_rate. Raises BookingConflictError when any asset
    is already held for overlapping dates.
    """
    validate_duration(start_date, end_date)
    if not lines:
        raise CampaignError('A campaign needs at least one asset')

    conflicts = find_line_conflicts(
        [(line['asset'].pk, line.get('start_date') or start_date, line.get('end_date') or end_date) for line in lines],
        company=company,
        exclude_plan=plan,
    )
    if conflicts:
        raise BookingConflictError(f"{len(conflicts)} asset(s) already booked", conflicts)

    with transaction.atomic():
        campaign = Campaign.objects.create(
            company=company,
            campaign_code=generate_campaign_code(company, start_date),
            client=client,
            plan=plan,
            campaign_name=campaign_name,
            status='Draft',
            start_date=start_date,
            end_date=end_date,
            gst_percent=company.default_gst_percent if gst_percent is None else gst_percent,
            manual_discount_amount=manual_discount_amount or 0,
            billing_cycle=billing_cycle,
            notes=notes or '',
            created_by=user,
        )
        rows = []
        for line in lines:
            rows.append(build_campaign_asset(
                campaign,
                line['asset'],
                start_date=line.get('start_date'),
                end_date=line.get('end_date'),
                card_rate=line.get('card_rate'),
                negotiated_rate=line.get('negotiated_rate'),
                printing_charges=line.get('printing_charges'),
                mounting_charges=line.get('mounting_charges'),
                billing_mode=line.get('billing_mode') or PRORATA_30,
                daily_rate=line.get('daily_rate'),
            ))
        CampaignAsset.objects.bulk_create(rows)
        recalculate_campaign_totals(campaign)
        book_assets(campaign)

    logger.info(f"Created campaign {campaign.campaign_code} with {len(rows)} assets for company {company.pk}")
    return campaign


def confirm_campaign(campaign, today=None):
    """Take a Draft campaign live: Upcoming, Running or Completed by its dates"""
    if campaign.status != 'Draft':
        raise CampaignError(f"Only Draft campaigns can be confirmed (current status: {campaign.status})")
    campaign.status = status_for_dates(campaign.start_date, campaign.end_date, today)
    campaign.save(update_fields=['status', 'updated_at'])
    if campaign.status == 'Completed':
        release_campaign_assets(campaign)
    return campaign


def extend_campaign(campaign, new_end_date):
    """
    Push the campaign end date out. Bookings that ended with the campaign are
    extended and re-priced. Raises BookingConflictError when the added window
    is already booked by another campaign.
    """
    if campaign.status in Campaign.CLOSED_STATUSES:
        raise CampaignError(f"Cannot extend a {campaign.status} campaign")
    old_end = campaign.end_date
    if new_end_date <= old_end:
        raise CampaignError('New end date must be after the current end date')

    rows = list(campaign.campaign_assets.select_related('asset').filter(booking_end_date=old_end))
    window_start = old_end + timedelta(days=1)
    conflicts = find_booking_conflicts(
        [ca.asset_id for ca in rows], window_start, new_end_date,
        company=campaign.company, exclude_campaign=campaign,
    )
    if conflicts:
        raise BookingConflictError(f"{len(conflicts)} asset(s) are booked during the extension", conflicts)

    with transaction.atomic():
        for ca in rows:
            ca.booking_end_date = new_end_date
            price_campaign_asset(ca, ca.daily_rate if ca.billing_mode == 'DAILY' else None)
            ca.save()
            if ca.asset.status == 'Booked':
                ca.asset.booked_to = new_end_date
                ca.asset.save(update_fields=['booked_to', 'updated_at'])
        campaign.end_date = new_end_date
        if campaign.status == 'Completed':
            campaign.status = status_for_dates(campaign.start_date, new_end_date)
        recalculate_campaign_totals(campaign)
    logger.info(f"Extended campaign {campaign.campaign_code} from {old_end} to {new_end_date}")
    return campaign


def cancel_campaign(campaign, reason=''):
    if campaign.status in Campaign.CLOSED_STATUSES:
        raise CampaignError(f"Campaign is already {campaign.status}")
    with transaction.atomic():
        campaign.status = 'Cancelled'
        if reason:
            campaign.notes = f"{campaign.notes}\nCancelled: {reason}".strip()
        campaign.save(update_fields=['status', 'notes', 'updated_at'])
        released = release_campaign_assets(campaign)
    logger.info(f"Cancelled campaign {campaign.campaign_code}, released {released} assets")
    return released


def ensure_public_token(campaign):
    if not campaign.public_token:
        campaign.public_token = secrets.token_urlsafe(24)
        campaign.save(update_fields=['public_token', 'updated_at'])
    return campaign.public_token


def transition_installation(campaign_asset, new_status):
    """Move a booking along the installation flow; raises CampaignError on an invalid step"""
    current = campaign_asset.installation_status
    if new_status == current:
        return campaign_asset
    if new_status not in INSTALLATION_TRANSITIONS.get(current, set()):
        raise CampaignError(f"Cannot move installation from {current} to {new_status}")
    campaign_asset.installation_status = new_status
    fields = ['installation_status', 'updated_at']
    if new_status == 'Completed':
        campaign_asset.completed_at = timezone.now()
        fields.append('completed_at')
    campaign_asset.save(update_fields=fields)
    return campaign_asset


def assign_mounter(campaign_assets, mounter):
    """Assign a mounter; Pending and Failed bookings move to Assigned"""
    now = timezone.now()
    updated = []
    for ca in campaign_assets:
        ca.mounter = mounter
        ca.assigned_at = now
        if ca.installation_status in ('Pending', 'Failed'):
            ca.installation_status = 'Assigned'
        ca.save(update_fields=['mounter', 'assigned_at', 'installation_status', 'updated_at'])
        updated.append(ca)
    return updated
