"""Invoice PDF and invoice register workbook"""
from reportlab.lib.units import cm

from oohops.core.exports import PDFDocument, build_workbook, format_money

REGISTER_HEADERS = [
    'Invoice No', 'Invoice Date', 'Due Date', 'Client', 'Campaign', 'Status', 'Sub Total',
    'Discount', 'GST', 'Total', 'Paid', 'Balance Due',
]


def build_invoice_pdf(invoice):
    client = invoice.client
    doc = PDFDocument(f"Tax Invoice {invoice.invoice_number}", company=invoice.company)
    pairs = [
        ('Bill To', client.company_name or client.name),
        ('Client GSTIN', client.gst_number or '-'),
        ('Address', ', '.join(x for x in [client.address, client.city, client.state] if x) or '-'),
        ('Invoice Date', f"{invoice.invoice_date:%d-%m-%Y}"),
        ('Due Date', f"{invoice.due_date:%d-%m-%Y}"),
    ]
    if invoice.campaign_id:
        pairs.append(('Campaign', f"{invoice.campaign.campaign_code} - {invoice.campaign.campaign_name}"))
    if invoice.period_start and invoice.period_end:
        pairs.append(('Billing Period', f"{invoice.period_start:%d-%m-%Y} to {invoice.period_end:%d-%m-%Y}"))
    doc.key_values(pairs)
    doc.spacer()

    rows = []
    for index, item in enumerate(invoice.items.all(), start=1):
        period = ''
        if item.bill_start_date and item.bill_end_date:
            period = f"{item.bill_start_date:%d-%m-%y} - {item.bill_end_date:%d-%m-%y}"
        rows.append([
            index, item.asset_code, item.description, item.hsn_sac, period, item.billable_days,
            format_money(item.base_amount), format_money(item.printing_cost),
            format_money(item.mounting_cost), format_money(item.line_total),
        ])
    doc.table(
        ['#', 'Code', 'Description', 'HSN/SAC', 'Period', 'Days', 'Rent', 'Printing', 'Mounting', 'Amount'],
        rows,
        col_widths=[0.7 * cm, 2.2 * cm, 4.6 * cm, 1.4 * cm, 2.6 * cm, 1 * cm, 1.7 * cm, 1.5 * cm, 1.5 * cm, 1.8 * cm],
        numeric_columns=(5, 6, 7, 8, 9),
    )
    doc.spacer()
    totals = [('Sub Total', invoice.sub_total)]
    if invoice.discount_amount:
        totals.append(('Discount', -invoice.discount_amount))
    totals += [
        (f'GST ({invoice.gst_percent}%)', invoice.gst_amount),
        ('Total', invoice.total_amount),
    ]
    if invoice.paid_amount:
        totals.append(('Paid', invoice.paid_amount))
    if invoice.credit_amount:
        totals.append(('Credit Notes', -invoice.credit_amount))
    if invoice.paid_amount or invoice.credit_amount:
        totals.append(('Balance Due', invoice.balance_due))
    doc.totals(totals)
    if invoice.notes:
        doc.heading('Notes')
        doc.paragraph(invoice.notes)
    return doc.render()


def build_invoice_register(invoices):
    rows = [
        [
            inv.invoice_number, inv.invoice_date, inv.due_date, inv.client.name,
            inv.campaign.campaign_code if inv.campaign_id else '', inv.status, inv.sub_total,
            inv.discount_amount, inv.gst_amount, inv.total_amount, inv.paid_amount, inv.balance_due,
        ]
        for inv in invoices
    ]
    return build_workbook('Invoices', REGISTER_HEADERS, rows, money_columns=(6, 7, 8, 9, 10, 11),
                          title='Invoice Register')
