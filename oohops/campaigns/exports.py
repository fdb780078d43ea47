"""Proof of display documents for a campaign"""
from reportlab.lib.units import cm

from oohops.core.exports import PDFDocument, SlideDeck
from .photos import PROOF_TYPES, derive_latest_photos

PROOF_LABELS = {
    'newspaper': 'Newspaper',
    'geotag': 'Geo-tagged',
    'traffic1': 'Traffic View 1',
    'traffic2': 'Traffic View 2',
}


def _proof_rows(campaign):
    """[(campaign_asset, {photo_type: photo})] using the latest non-rejected photo per type"""
    rows = []
    for ca in campaign.campaign_assets.select_related('asset').prefetch_related('photos'):
        latest = derive_latest_photos(p for p in ca.photos.all() if p.approval_status != 'rejected')
        rows.append((ca, latest))
    return rows


def _photo_path(photo):
    if photo is None or not photo.image:
        return None
    try:
        return photo.image.path
    except NotImplementedError:
        return None


def build_proof_pdf(campaign):
    doc = PDFDocument(f"Proof of Display - {campaign.campaign_name}", company=campaign.company)
    doc.key_values([
        ('Client', campaign.client.name),
        ('Campaign', campaign.campaign_code),
        ('Period', f"{campaign.start_date:%d-%m-%Y} to {campaign.end_date:%d-%m-%Y}"),
        ('Assets', campaign.total_assets),
    ])
    for ca, latest in _proof_rows(campaign):
        doc.spacer()
        doc.heading(f"{ca.asset.media_asset_code} - {ca.area}, {ca.location}")
        doc.key_values([
            ('Media', f"{ca.media_type} ({ca.dimensions})"),
            ('Installation', ca.installation_status),
        ])
        for photo_type in PROOF_TYPES:
            photo = latest[photo_type]
            if photo is None:
                doc.paragraph(f"{PROOF_LABELS[photo_type]}: not uploaded")
                continue
            caption = f"{PROOF_LABELS[photo_type]} - {photo.uploaded_at:%d-%m-%Y %H:%M}"
            if photo.latitude is not None and photo.longitude is not None:
                caption = f"{caption} ({photo.latitude}, {photo.longitude})"
            doc.paragraph(caption)
            doc.image(_photo_path(photo), width=8 * cm, height=6 * cm)
    return doc.render()


def build_proof_deck(campaign):
    deck = SlideDeck()
    deck.title_slide(
        f"Proof of Display - {campaign.campaign_name}",
        f"{campaign.client.name}  |  {campaign.start_date:%d %b %Y} - {campaign.end_date:%d %b %Y}",
    )
    for ca, latest in _proof_rows(campaign):
        pairs = [
            ('Location', f"{ca.area}, {ca.location}"),
            ('City', ca.city),
            ('Media Type', ca.media_type),
            ('Dimensions', ca.dimensions),
            ('Installation', ca.installation_status),
        ]
        pairs += [(PROOF_LABELS[t], 'Uploaded' if latest[t] else 'Missing') for t in PROOF_TYPES]
        deck.detail_slide(
            ca.asset.media_asset_code,
            pairs,
            image_paths=[_photo_path(latest[t]) for t in PROOF_TYPES],
        )
    return deck.render()
