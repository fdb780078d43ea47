"""
Booking conflict checks.

An asset is held by every campaign asset row whose campaign is still active
(Draft, Upcoming or Running). Two bookings conflict when their inclusive date
ranges overlap.
"""
from .models import Campaign, CampaignAsset


class BookingConflictError(Exception):
    """Raised when assets are already booked for overlapping dates"""

    def __init__(self, message, conflicts=None):
        super().__init__(message)
        self.conflicts = conflicts or []


def ranges_overlap(start_a, end_a, start_b, end_b):
    return start_a <= end_b and start_b <= end_a


def find_booking_conflicts(asset_ids, start_date, end_date, company=None, exclude_plan=None, exclude_campaign=None):
    """
    Active campaign bookings of the given assets that overlap start_date..end_date.

    Returns a list of dicts describing each conflicting booking.
    """
    queryset = CampaignAsset.objects.select_related('campaign', 'asset').filter(
        asset_id__in=list(asset_ids),
        campaign__status__in=Campaign.ACTIVE_STATUSES,
        booking_start_date__lte=end_date,
        booking_end_date__gte=start_date,
    )
    if company is not None:
        queryset = queryset.filter(campaign__company=company)
    if exclude_plan is not None:
        queryset = queryset.exclude(campaign__plan=exclude_plan)
    if exclude_campaign is not None:
        queryset = queryset.exclude(campaign=exclude_campaign)

    return [
        {
            'asset_id': row.asset_id,
            'media_asset_code': row.asset.media_asset_code,
            'campaign_id': row.campaign_id,
            'campaign_code': row.campaign.campaign_code,
            'campaign_name': row.campaign.campaign_name,
            'campaign_status': row.campaign.status,
            'booking_start_date': row.booking_start_date,
            'booking_end_date': row.booking_end_date,
        }
        for row in queryset.order_by('booking_start_date')
    ]


def find_line_conflicts(lines, company=None, exclude_plan=None, exclude_campaign=None):
    """Conflicts for (asset_id, start_date, end_date) lines, each with its own dates"""
    conflicts = []
    for asset_id, start_date, end_date in lines:
        conflicts.extend(find_booking_conflicts(
            [asset_id], start_date, end_date, company=company,
            exclude_plan=exclude_plan, exclude_campaign=exclude_campaign,
        ))
    return conflicts
