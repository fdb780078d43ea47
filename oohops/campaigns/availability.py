"""
Media availability for a date range.

Bookings of active campaigns that touch the requested range are merged into
continuous intervals (bookings separated by at most one day count as one).
An asset with no overlapping booking is available from the range start; a
booked asset becomes "available soon" when its last merged booking ends
inside the range.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from typing import List, Optional

from .bookings import ranges_overlap
from .models import Campaign, CampaignAsset

logger = logging.getLogger(__name__)

AVAILABLE = 'AVAILABLE'
BOOKED = 'BOOKED'


@dataclass
class BookingInterval:
    start: date
    end: date
    info: dict = field(default_factory=dict)


@dataclass
class AvailabilityResult:
    status: str
    available_from: Optional[date]
    merged_bookings: List[BookingInterval]


def merge_intervals(intervals):
    if not intervals:
        return []
    ordered = sorted(intervals, key=lambda b: b.start)
    merged = [BookingInterval(ordered[0].start, ordered[0].end, ordered[0].info)]
    for current in ordered[1:]:
        last = merged[-1]
        if current.start <= last.end + timedelta(days=1):
            if current.end > last.end:
                last.end = current.end
        else:
            merged.append(BookingInterval(current.start, current.end, current.info))
    return merged


def compute_availability(bookings, range_start, range_end):
    """Availability of one asset given its active booking intervals"""
    overlapping = [b for b in bookings if ranges_overlap(b.start, b.end, range_start, range_end)]
    if not overlapping:
        return AvailabilityResult(AVAILABLE, range_start, [])

    merged = merge_intervals(overlapping)
    latest_end = max(b.end for b in merged)
    free_from = latest_end + timedelta(days=1)
    return AvailabilityResult(BOOKED, free_from if free_from <= range_end else None, merged)


def _booking_info(row):
    campaign = row.campaign
    return {
        'campaign_id': campaign.pk,
        'campaign_code': campaign.campaign_code,
        'campaign_name': campaign.campaign_name,
        'client_name': campaign.client.name,
        'start_date': row.booking_start_date,
        'end_date': row.booking_end_date,
        'status': campaign.status,
    }


def get_media_availability(company, start_date, end_date, city=None, media_type=None):
    """
    Classify the company's assets for start_date..end_date.

    Returns a dict with available, available_soon and booked asset lists
    (MediaAsset instances annotated with availability attributes) and a summary.
    """
    from oohops.assets.models import MediaAsset
    from .services import auto_update_campaign_statuses

    auto_update_campaign_statuses(company=company)

    assets = MediaAsset.objects.filter(company=company)
    if city and city != 'all':
        assets = assets.filter(city__iexact=city)
    if media_type and media_type != 'all':
        assets = assets.filter(media_type__iexact=media_type)
    assets = list(assets.order_by('media_asset_code'))

    intervals = {}
    all_bookings = {}
    rows = CampaignAsset.objects.select_related('campaign', 'campaign__client').filter(
        asset__in=assets
    ).order_by('booking_start_date')
    for row in rows:
        if row.booking_end_date < row.booking_start_date:
            continue
        info = _booking_info(row)
        all_bookings.setdefault(row.asset_id, []).append(info)
        if row.campaign.status in Campaign.ACTIVE_STATUSES:
            intervals.setdefault(row.asset_id, []).append(
                BookingInterval(row.booking_start_date, row.booking_end_date, info)
            )

    available, available_soon, booked = [], [], []
    for asset in assets:
        result = compute_availability(intervals.get(asset.pk, []), start_date, end_date)
        history = all_bookings.get(asset.pk, [])
        asset.available_from = result.available_from
        asset.all_bookings = history
        asset.current_booking = next(
            (b for b in history if ranges_overlap(b['start_date'], b['end_date'], start_date, end_date)), None
        )
        if result.status == AVAILABLE:
            asset.availability_status = 'available'
            available.append(asset)
        elif result.available_from:
            asset.availability_status = 'available_soon'
            available_soon.append(asset)
        else:
            asset.availability_status = 'booked'
            booked.append(asset)

    logger.info(
        f"Availability for company {company.pk} {start_date}..{end_date}: "
        f"{len(available)} available, {len(available_soon)} soon, {len(booked)} booked"
    )
    return {
        'available': available,
        'available_soon': available_soon,
        'booked': booked,
        'summary': {
            'total_assets': len(assets),
            'available_count': len(available),
            'booked_count': len(booked) + len(available_soon),
            'available_soon_count': len(available_soon),
            'total_sqft_available': sum((a.total_sqft for a in available), Decimal('0.00')),
            'potential_revenue': sum((a.card_rate for a in available), Decimal('0.00')),
        },
    }
