"""
QR code generation for media assets
Uses qrcode with the Pillow image factory; the PNG is stored on the asset
"""
import io
import logging

import qrcode
from django.conf import settings
from django.core.files.base import ContentFile

logger = logging.getLogger(__name__)


def asset_public_url(asset):
    return f"{settings.PUBLIC_BASE_URL.rstrip('/')}/assets/{asset.media_asset_code}"


def build_qr_png(data, box_size=10, border=4):
    """Render data as a PNG QR code and return the bytes"""
    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=box_size,
        border=border,
    )
    qr.add_data(data)
    qr.make(fit=True)
    image = qr.make_image(fill_color='black', back_color='white')
    buffer = io.BytesIO()
    image.save(buffer, format='PNG')
    return buffer.getvalue()


def generate_asset_qr(asset):
    """Generate (or regenerate) the asset's QR code and save it"""
    url = asset_public_url(asset)
    content = build_qr_png(url)
    if asset.qr_code:
        asset.qr_code.delete(save=False)
    asset.qr_code.save(f"{asset.media_asset_code}.png", ContentFile(content), save=False)
    asset.save(update_fields=['qr_code', 'updated_at'])
    logger.info(f"Generated QR code for asset {asset.media_asset_code}")
    return url
