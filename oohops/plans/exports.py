"""Plan documents: estimate PDF, Excel sheet and PowerPoint deck"""
from reportlab.lib.units import cm

from oohops.assets.dimensions import format_dimensions
from oohops.core.exports import PDFDocument, SlideDeck, build_workbook, format_money

EXCEL_HEADERS = [
    'S.No', 'Asset Code', 'City', 'Area', 'Location', 'Media Type', 'Dimensions', 'Sqft',
    'Illumination', 'Start Date', 'End Date', 'Days', 'Card Rate', 'Negotiated Rate',
    'Rent Amount', 'Printing', 'Mounting', 'Line Total',
]


def _items(plan):
    return list(plan.items.select_related('asset'))


def build_plan_estimate_pdf(plan, estimate_number=None):
    doc = PDFDocument(f"Estimate {estimate_number or plan.plan_code}", company=plan.company, landscape_mode=True)
    doc.key_values([
        ('Client', plan.client.name),
        ('Plan', f"{plan.plan_name} ({plan.plan_code})"),
        ('Campaign Period', f"{plan.start_date:%d-%m-%Y} to {plan.end_date:%d-%m-%Y}"),
        ('Status', plan.status),
    ])
    doc.spacer()
    rows = []
    for index, item in enumerate(_items(plan), start=1):
        asset = item.asset
        rows.append([
            index, asset.media_asset_code, f"{asset.area}, {asset.location}", asset.media_type,
            format_dimensions(asset.dimensions), asset.illumination_type,
            f"{item.start_date:%d-%m-%y} - {item.end_date:%d-%m-%y}", item.booked_days,
            format_money(item.sales_price), format_money(item.rent_amount),
            format_money(item.printing_charges), format_money(item.mounting_charges),
        ])
    doc.table(
        ['#', 'Code', 'Location', 'Type', 'Size', 'Lighting', 'Period', 'Days',
         'Monthly Rate', 'Rent', 'Printing', 'Mounting'],
        rows,
        col_widths=[0.8 * cm, 2.6 * cm, 6.2 * cm, 2.4 * cm, 2.2 * cm, 1.8 * cm, 3.2 * cm, 1.1 * cm,
                    2.1 * cm, 2.1 * cm, 1.8 * cm, 1.8 * cm],
        numeric_columns=(7, 8, 9, 10, 11),
    )
    doc.spacer()
    pairs = [
        ('Display Cost', plan.display_cost),
        ('Printing', plan.printing_total),
        ('Mounting', plan.mounting_total),
    ]
    if plan.manual_discount_amount:
        pairs.append(('Discount', -plan.manual_discount_amount))
    pairs += [
        ('Taxable Amount', plan.taxable_amount),
        (f'GST ({plan.gst_percent}%)', plan.gst_amount),
        ('Grand Total', plan.grand_total),
    ]
    doc.totals(pairs)
    if plan.notes:
        doc.heading('Notes')
        doc.paragraph(plan.notes)
    return doc.render()


def build_plan_workbook(plan):
    rows = []
    for index, item in enumerate(_items(plan), start=1):
        asset = item.asset
        rows.append([
            index, asset.media_asset_code, asset.city, asset.area, asset.location, asset.media_type,
            format_dimensions(asset.dimensions), asset.total_sqft, asset.illumination_type,
            item.start_date, item.end_date, item.booked_days, item.card_rate, item.sales_price,
            item.rent_amount, item.printing_charges, item.mounting_charges, item.line_total,
        ])
    return build_workbook(
        plan.plan_code, EXCEL_HEADERS, rows,
        money_columns=(12, 13, 14, 15, 16, 17),
        title=f"{plan.plan_name} - {plan.client.name}",
    )


def build_plan_deck(plan):
    deck = SlideDeck()
    deck.title_slide(plan.plan_name, f"{plan.client.name}  |  {plan.start_date:%d %b %Y} - {plan.end_date:%d %b %Y}")
    for item in _items(plan):
        asset = item.asset
        images = [asset.image.path] if asset.image else []
        deck.detail_slide(
            f"{asset.media_asset_code} - {asset.area}",
            [
                ('Location', asset.location),
                ('City', asset.city),
                ('Media Type', asset.media_type),
                ('Dimensions', format_dimensions(asset.dimensions)),
                ('Total Sqft', asset.total_sqft),
                ('Illumination', asset.illumination_type),
                ('Direction', asset.direction or '-'),
                ('Period', f"{item.start_date:%d-%m-%Y} to {item.end_date:%d-%m-%Y}"),
                ('Monthly Rate', format_money(item.sales_price)),
            ],
            image_paths=images,
        )
    return deck.render()
