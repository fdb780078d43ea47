"""
Duplicate media asset detection.

Two assets are considered duplicates when they share the same media type and
either the same normalised city + location, or coordinates within
DUPLICATE_RADIUS_METERS of each other.
"""
import logging
import math
import re
import uuid
from decimal import Decimal

from django.db import transaction

from .models import MediaAsset

logger = logging.getLogger(__name__)

DUPLICATE_RADIUS_METERS = 25
EARTH_RADIUS_METERS = 6371000


def normalize_text(value):
    """Lowercase, strip punctuation and collapse whitespace"""
    value = re.sub(r'[^0-9a-z]+', ' ', (value or '').lower())
    return ' '.join(value.split())


def duplicate_key(city, location, media_type):
    return f"{normalize_text(city)}|{normalize_text(location)}|{normalize_text(media_type)}"


def distance_meters(lat1, lon1, lat2, lon2):
    """Haversine distance between two coordinates"""
    lat1, lon1, lat2, lon2 = (math.radians(float(v)) for v in (lat1, lon1, lat2, lon2))
    dlat = lat2 - lat1
    dlon = lon2 - lon1
    a = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    return 2 * EARTH_RADIUS_METERS * math.asin(math.sqrt(a))


def _near(asset, latitude, longitude):
    if None in (asset.latitude, asset.longitude, latitude, longitude):
        return False
    return distance_meters(asset.latitude, asset.longitude, latitude, longitude) <= DUPLICATE_RADIUS_METERS


def find_potential_duplicates(company, city, location, media_type, latitude=None, longitude=None, exclude_id=None):
    """Existing assets of the company that look like the described asset"""
    candidates = MediaAsset.objects.filter(company=company, media_type__iexact=(media_type or '').strip())
    if exclude_id:
        candidates = candidates.exclude(pk=exclude_id)

    key = duplicate_key(city, location, media_type)
    matches = []
    for asset in candidates:
        reasons = []
        if duplicate_key(asset.city, asset.location, asset.media_type) == key:
            reasons.append('same_location')
        if latitude is not None and longitude is not None and _near(asset, Decimal(str(latitude)), Decimal(str(longitude))):
            reasons.append('nearby_coordinates')
        if reasons:
            matches.append({'asset': asset, 'reasons': reasons})
    return matches


def detect_duplicate_groups(company):
    """
    Group the company's duplicate assets and stamp a shared duplicate_group_id.

    Returns a list of groups, each a list of assets (two or more). Assets that
    are no longer part of any group have their duplicate_group_id cleared.
    """
    assets = list(MediaAsset.objects.filter(company=company).order_by('pk'))
    parent = {a.pk: a.pk for a in assets}

    def find(x):
        while parent[x] != x:
            parent[x] = parent[parent[x]]
            x = parent[x]
        return x

    def union(a, b):
        ra, rb = find(a), find(b)
        if ra != rb:
            parent[max(ra, rb)] = min(ra, rb)

    by_key = {}
    for asset in assets:
        by_key.setdefault(duplicate_key(asset.city, asset.location, asset.media_type), []).append(asset)
    for same in by_key.values():
        for other in same[1:]:
            union(same[0].pk, other.pk)

    located = [a for a in assets if a.latitude is not None and a.longitude is not None]
    for i, first in enumerate(located):
        for second in located[i + 1:]:
            if normalize_text(first.media_type) == normalize_text(second.media_type) and _near(first, second.latitude, second.longitude):
                union(first.pk, second.pk)

    grouped = {}
    for asset in assets:
        grouped.setdefault(find(asset.pk), []).append(asset)
    groups = [members for members in grouped.values() if len(members) > 1]

    with transaction.atomic():
        in_group = set()
        for members in groups:
            existing = next((m.duplicate_group_id for m in members if m.duplicate_group_id), None)
            group_id = existing or uuid.uuid4().hex
            for member in members:
                in_group.add(member.pk)
                if member.duplicate_group_id != group_id:
                    member.duplicate_group_id = group_id
                    MediaAsset.objects.filter(pk=member.pk).update(duplicate_group_id=group_id)
        MediaAsset.objects.filter(company=company).exclude(pk__in=in_group).exclude(
            duplicate_group_id__isnull=True
        ).update(duplicate_group_id=None)

    logger.info(f"Duplicate detection for company {company.pk}: {len(groups)} groups")
    return groups
