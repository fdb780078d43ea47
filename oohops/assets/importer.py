"""
Bulk import of media assets from an Excel workbook (openpyxl).

The first sheet must have a header row; headers are matched case-insensitively.
Each row is validated independently: valid rows are created, invalid rows are
reported with their row number and errors.
"""
import logging

from django.db import transaction
from openpyxl import load_workbook

from oohops.core.cache_signals import suspend_cache_signals
from oohops.core.cache_utils import invalidate_dashboard_cache
from oohops.core.codes import generate_asset_code
from .serializers import MediaAssetSerializer

logger = logging.getLogger(__name__)

COLUMN_MAP = {
    'city': 'city',
    'area': 'area',
    'location': 'location',
    'media type': 'media_type',
    'media_type': 'media_type',
    'category': 'category',
    'dimensions': 'dimensions',
    'size': 'dimensions',
    'card rate': 'card_rate',
    'card_rate': 'card_rate',
    'base rate': 'base_rate',
    'base_rate': 'base_rate',
    'printing rate': 'printing_rate_default',
    'mounting rate': 'mounting_rate_default',
    'illumination': 'illumination_type',
    'illumination type': 'illumination_type',
    'direction': 'direction',
    'district': 'district',
    'state': 'state',
    'latitude': 'latitude',
    'longitude': 'longitude',
    'total sqft': 'total_sqft',
    'usn': 'unique_service_number',
    'unique service number': 'unique_service_number',
}

REQUIRED_FIELDS = ['city', 'area', 'location', 'media_type', 'dimensions']


def read_rows(file_obj):
    """Yield (row_number, data dict) for each non-empty data row"""
    workbook = load_workbook(file_obj, read_only=True, data_only=True)
    sheet = workbook.worksheets[0]
    rows = sheet.iter_rows(values_only=True)
    try:
        header = next(rows)
    except StopIteration:
        return
    fields = [COLUMN_MAP.get(str(h).strip().lower()) if h is not None else None for h in header]
    for index, row in enumerate(rows, start=2):
        if row is None or all(v is None or str(v).strip() == '' for v in row):
            continue
        data = {}
        for field, value in zip(fields, row):
            if field and value is not None and str(value).strip() != '':
                data[field] = value.strip() if isinstance(value, str) else value
        yield index, data


def import_assets(file_obj, company, user=None):
    created = []
    errors = []
    with suspend_cache_signals():
        for row_number, data in read_rows(file_obj):
            missing = [f for f in REQUIRED_FIELDS if f not in data]
            if missing:
                errors.append({'row': row_number, 'errors': {f: ['This field is required.'] for f in missing}})
                continue
            serializer = MediaAssetSerializer(data=data)
            if not serializer.is_valid():
                errors.append({'row': row_number, 'errors': serializer.errors})
                continue
            with transaction.atomic():
                code = generate_asset_code(company, serializer.validated_data['city'], serializer.validated_data['media_type'])
                asset = serializer.save(company=company, media_asset_code=code, created_by=user)
            created.append(asset)
    invalidate_dashboard_cache(company.pk)
    logger.info(f"Asset import for company {company.pk}: {len(created)} created, {len(errors)} rejected")
    return created, errors
