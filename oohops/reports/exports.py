"""Vacant media lists for sales teams, as a workbook or a slide deck"""
from oohops.core.exports import SlideDeck, build_workbook, format_money

VACANT_HEADERS = [
    'Asset Code', 'City', 'Area', 'Location', 'Direction', 'Media Type', 'Illumination', 'Dimensions',
    'Total Sqft', 'Card Rate', 'Available From',
]


def _vacant_row(asset):
    return [
        asset.media_asset_code, asset.city, asset.area, asset.location, asset.direction, asset.media_type,
        asset.illumination_type, asset.dimensions, asset.total_sqft, asset.card_rate,
        getattr(asset, 'available_from', None),
    ]


def build_vacant_media_workbook(assets, start_date, end_date):
    title = f"Vacant Media {start_date:%d-%m-%Y} to {end_date:%d-%m-%Y}"
    return build_workbook('Vacant Media', VACANT_HEADERS, [_vacant_row(a) for a in assets],
                          money_columns=(8, 9), title=title)


def build_vacant_media_deck(assets, start_date, end_date, company=None):
    deck = SlideDeck()
    subtitle = f"{start_date:%d %b %Y} - {end_date:%d %b %Y}"
    deck.title_slide(f"{company.name} - Vacant Media" if company else 'Vacant Media', subtitle)
    for asset in assets:
        pairs = [
            ('Code', asset.media_asset_code),
            ('Location', f"{asset.location}, {asset.area}, {asset.city}"),
            ('Direction', asset.direction or '-'),
            ('Media Type', asset.media_type),
            ('Illumination', asset.illumination_type),
            ('Size', f"{asset.dimensions} ({asset.total_sqft} sqft)"),
            ('Card Rate / Month', format_money(asset.card_rate)),
        ]
        image_paths = [asset.image.path] if asset.image else []
        deck.detail_slide(f"{asset.media_asset_code} - {asset.location}", pairs, image_paths=image_paths)
    return deck.render()
