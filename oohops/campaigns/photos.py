"""
Proof photo handling: type normalisation, tag detection from filename and
EXIF GPS (Pillow), latest photo per type, and idempotent uploads.
"""
import logging
import os
from decimal import Decimal

from django.conf import settings
from django.db import IntegrityError, transaction
from PIL import Image, ExifTags, UnidentifiedImageError

from .models import ProofPhoto

logger = logging.getLogger(__name__)

PROOF_TYPES = ['newspaper', 'geotag', 'traffic1', 'traffic2']
ALLOWED_IMAGE_FORMATS = {'JPEG', 'PNG', 'WEBP', 'GIF'}
ALLOWED_EXTENSIONS = {'.jpg', '.jpeg', '.png', '.webp', '.gif'}
GPS_IFD = 0x8825


class UploadError(Exception):
    """Raised when a proof photo cannot be accepted or delivered"""


def normalize_photo_type(category):
    """Map a free-form photo category to one of PROOF_TYPES, or None"""
    value = (category or '').strip().lower()
    if 'newspaper' in value or value == 'news':
        return 'newspaper'
    if 'geo' in value or value in ('gps', 'location'):
        return 'geotag'
    if 'traffic1' in value or 'traffic_left' in value or value == 'traffic left' or 'traffic-1' in value:
        return 'traffic1'
    if 'traffic2' in value or 'traffic_right' in value or value == 'traffic right' or 'traffic-2' in value:
        return 'traffic2'
    if 'traffic' in value and '1' not in value and '2' not in value:
        return 'traffic1'
    return None


def _to_degrees(value, ref):
    degrees, minutes, seconds = (float(v) for v in value)
    result = degrees + minutes / 60 + seconds / 3600
    if ref in ('S', 'W'):
        result = -result
    return Decimal(str(round(result, 6)))


def read_gps_coordinates(image):
    """(latitude, longitude) from EXIF GPS tags, or (None, None)"""
    try:
        gps = image.getexif().get_ifd(GPS_IFD)
    except (AttributeError, KeyError, ValueError):
        return None, None
    if not gps:
        return None, None
    tags = {ExifTags.GPSTAGS.get(key, key): val for key, val in gps.items()}
    try:
        latitude = _to_degrees(tags['GPSLatitude'], tags.get('GPSLatitudeRef', 'N'))
        longitude = _to_degrees(tags['GPSLongitude'], tags.get('GPSLongitudeRef', 'E'))
    except (KeyError, TypeError, ValueError, ZeroDivisionError):
        return None, None
    return latitude, longitude


def detect_photo_tag(filename, image=None):
    """
    Guess the proof type from the filename, falling back to 'geotag' when the
    image carries GPS coordinates. Returns (photo_type, latitude, longitude).
    """
    name = (filename or '').lower()
    latitude, longitude = read_gps_coordinates(image) if image is not None else (None, None)
    has_gps = latitude is not None and longitude is not None

    if 'news' in name or 'paper' in name:
        tag = 'newspaper'
    elif 'traffic' in name or 'road' in name:
        tag = 'traffic2' if any(k in name for k in ('traffic2', 'traffic_right', 'traffic-2', 'right')) else 'traffic1'
    elif 'geo' in name or 'map' in name or 'location' in name or has_gps:
        tag = 'geotag'
    else:
        tag = 'other'
    return tag, latitude, longitude


def derive_latest_photos(photos):
    """For each proof type, the photo with the latest uploaded_at (or None)"""
    latest = {photo_type: None for photo_type in PROOF_TYPES}
    for photo in photos:
        photo_type = normalize_photo_type(photo.photo_type)
        if not photo_type:
            continue
        current = latest[photo_type]
        if current is None or photo.uploaded_at > current.uploaded_at:
            latest[photo_type] = photo
    return latest


def validate_image_upload(upload):
    """Check size and format of an uploaded file; returns the opened Pillow image"""
    max_bytes = getattr(settings, 'PROOF_PHOTO_MAX_BYTES', 5 * 1024 * 1024)
    if upload.size > max_bytes:
        raise UploadError(f"Photo exceeds the {max_bytes // (1024 * 1024)} MB limit")
    extension = os.path.splitext(upload.name or '')[1].lower()
    if extension and extension not in ALLOWED_EXTENSIONS:
        raise UploadError('Only JPEG, PNG, WebP and GIF images are accepted')
    try:
        image = Image.open(upload)
        image.verify()
        upload.seek(0)
        image = Image.open(upload)
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        raise UploadError(f"File is not a valid image: {str(e)}")
    if image.format not in ALLOWED_IMAGE_FORMATS:
        raise UploadError('Only JPEG, PNG, WebP and GIF images are accepted')
    upload.seek(0)
    return image


def save_proof_photo(campaign_asset, upload, user=None, photo_type=None, client_upload_id=None,
                     latitude=None, longitude=None):
    """
    Store a proof photo for a booking. Returns (photo, created).

    A repeated client_upload_id for the same booking returns the photo stored
    the first time. The first proof moves the installation to PhotoUploaded.
    """
    if client_upload_id:
        existing = ProofPhoto.objects.filter(campaign_asset=campaign_asset, client_upload_id=client_upload_id).first()
        if existing:
            return existing, False

    image = validate_image_upload(upload)
    detected_type, exif_lat, exif_lon = detect_photo_tag(upload.name, image)
    if photo_type == 'other':
        chosen_type = 'other'
    else:
        chosen_type = normalize_photo_type(photo_type) or detected_type

    try:
        with transaction.atomic():
            photo = ProofPhoto.objects.create(
                campaign_asset=campaign_asset,
                photo_type=chosen_type,
                image=upload,
                latitude=latitude if latitude is not None else exif_lat,
                longitude=longitude if longitude is not None else exif_lon,
                client_upload_id=client_upload_id or None,
                uploaded_by=user,
            )
    except IntegrityError:
        # A concurrent replay of the same upload won the race
        existing = ProofPhoto.objects.filter(campaign_asset=campaign_asset, client_upload_id=client_upload_id).first()
        if existing:
            return existing, False
        raise

    if campaign_asset.installation_status in ('Pending', 'Assigned', 'Installed'):
        campaign_asset.installation_status = 'PhotoUploaded'
        campaign_asset.save(update_fields=['installation_status', 'updated_at'])

    logger.info(f"Stored {chosen_type} proof for booking {campaign_asset.pk} (upload id {client_upload_id})")
    return photo, True


def proofs_complete(campaign):
    """True when every booking of the campaign has all four proof types"""
    rows = list(campaign.campaign_assets.all())
    if not rows:
        return False
    for ca in rows:
        latest = derive_latest_photos(ca.photos.exclude(approval_status='rejected'))
        if any(latest[t] is None for t in PROOF_TYPES):
            return False
    return True
