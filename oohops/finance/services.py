"""
Invoicing, payments, overdue tracking, aging and expenses.
"""
import logging
from datetime import timedelta
from decimal import Decimal

from django.conf import settings
from django.core.mail import send_mail
from django.db import transaction
from django.utils import timezone

from oohops.core.codes import (
    generate_invoice_code, generate_expense_code, generate_credit_note_code, generate_receipt_code,
)
from oohops.core.tenancy import get_company_setting
from oohops.core.utils import round_money, to_decimal
from oohops.pricing.billing import calculate_billing_periods
from oohops.pricing.calculator import compute_overlap_days, compute_period_rent_amount, asset_starts_in_period
from .models import Invoice, InvoiceItem, InvoiceReminder, Payment, CreditNote, CreditNoteItem, Expense

logger = logging.getLogger(__name__)

ZERO = Decimal('0.00')
AGING_BUCKETS = [('0-30', 0, 30), ('31-60', 31, 60), ('61-90', 61, 90), ('90+', 91, None)]
REMINDER_BUCKETS = [7, 15, 30, 45]


class InvoiceError(Exception):
    """Raised when an invoice cannot be created or changed in its current state"""


class PaymentError(Exception):
    """Raised when a payment is invalid for the invoice"""


class CreditNoteError(Exception):
    """Raised when a credit note is invalid for the invoice or its current state"""


def invoice_due_date(invoice_date):
    return invoice_date + timedelta(days=int(getattr(settings, 'INVOICE_DUE_DAYS', 30)))


def _campaign_invoice_lines(campaign, period_start=None, period_end=None):
    """Unsaved InvoiceItem rows for a campaign, or its overlap with a period"""
    lines = []
    for ca in campaign.campaign_assets.select_related('asset').order_by('id'):
        start, end = ca.booking_start_date, ca.booking_end_date
        if period_start and period_end:
            days = compute_overlap_days(start, end, period_start, period_end)
            if days == 0:
                continue
            bill_start, bill_end = max(start, period_start), min(end, period_end)
            base = compute_period_rent_amount(ca.monthly_rate, start, end, period_start, period_end,
                                              ca.billing_mode, ca.daily_rate if ca.billing_mode == 'DAILY' else None)
            one_time = asset_starts_in_period(start, period_start, period_end)
        else:
            days = ca.booked_days
            bill_start, bill_end = start, end
            base = ca.rent_amount
            one_time = True

        printing = ca.printing_charges if one_time else ZERO
        mounting = ca.mounting_charges if one_time else ZERO
        lines.append(InvoiceItem(
            campaign_asset=ca,
            asset_code=ca.asset.media_asset_code,
            description=' - '.join(x for x in [ca.media_type, ca.area, ca.location] if x),
            location=ca.location,
            media_type=ca.media_type,
            dimensions=ca.dimensions,
            total_sqft=ca.total_sqft,
            bill_start_date=bill_start,
            bill_end_date=bill_end,
            billable_days=days,
            rate_value=ca.monthly_rate,
            base_amount=round_money(base),
            printing_cost=printing,
            mounting_cost=mounting,
            line_total=round_money(base + printing + mounting),
        ))
    return lines


def apply_invoice_totals(invoice, lines=None):
    """Recompute sub total, GST, total and balance from the invoice lines"""
    if lines is None:
        lines = list(invoice.items.all())
    invoice.sub_total = round_money(sum((line.line_total for line in lines), ZERO))
    invoice.discount_amount = round_money(min(max(to_decimal(invoice.discount_amount), ZERO), invoice.sub_total))
    taxable = invoice.sub_total - invoice.discount_amount
    invoice.gst_amount = round_money(taxable * to_decimal(invoice.gst_percent) / 100)
    invoice.total_amount = round_money(taxable + invoice.gst_amount)
    invoice.balance_due = round_money(invoice.total_amount - to_decimal(invoice.paid_amount)
                                      - to_decimal(invoice.credit_amount))
    return invoice


def _period_discount(campaign, period_start, period_end):
    """Share of the campaign's manual discount falling in the period, prorated by overlap days"""
    discount = to_decimal(campaign.manual_discount_amount)
    if not discount:
        return ZERO
    periods = calculate_billing_periods(campaign.start_date, campaign.end_date)
    total_factor = sum((p.pro_rata_factor for p in periods), Decimal('0'))
    if not total_factor:
        return ZERO
    factor = Decimal('0')
    for p in periods:
        overlap = compute_overlap_days(p.period_start, p.period_end, period_start, period_end)
        if overlap:
            factor += p.pro_rata_factor * overlap / ((p.period_end - p.period_start).days + 1)
    return round_money(discount * factor / total_factor)


def generate_invoice_from_campaign(campaign, user=None, period_start=None, period_end=None, invoice_date=None):
    """
    Create a Draft invoice with one line per booked asset.

    Without a period the whole booking is billed. With a period, rent covers
    the overlap of each booking with it, and printing and mounting are billed
    only for assets whose booking starts in the period. Billing the same
    period twice raises InvoiceError.
    """
    if campaign.status in ('Cancelled', 'Draft'):
        raise InvoiceError(f"Cannot invoice a {campaign.status} campaign")
    if (period_start is None) != (period_end is None):
        raise InvoiceError('Both period_start and period_end are required for a period invoice')
    if period_start and period_end < period_start:
        raise InvoiceError('period_end cannot be before period_start')

    existing = campaign.invoices.exclude(status='Cancelled')
    if period_start:
        if existing.filter(period_start__isnull=True).exists():
            raise InvoiceError('Campaign already has a whole-campaign invoice')
        if existing.filter(period_start__lte=period_end, period_end__gte=period_start).exists():
            raise InvoiceError('An invoice already covers this billing period')
    elif existing.exists():
        raise InvoiceError('Campaign already has an invoice')

    lines = _campaign_invoice_lines(campaign, period_start, period_end)
    if not lines:
        raise InvoiceError('Nothing to bill for this period')

    invoice_date = invoice_date or timezone.localdate()
    company = campaign.company
    with transaction.atomic():
        invoice = Invoice(
            company=company,
            invoice_number=generate_invoice_code(company, invoice_date),
            client=campaign.client,
            campaign=campaign,
            invoice_date=invoice_date,
            due_date=invoice_due_date(invoice_date),
            period_start=period_start,
            period_end=period_end,
            status='Draft',
            gst_percent=campaign.gst_percent,
            discount_amount=(_period_discount(campaign, period_start, period_end) if period_start
                             else campaign.manual_discount_amount),
            notes=f"Generated from campaign {campaign.campaign_code}",
            created_by=user,
        )
        apply_invoice_totals(invoice, lines)
        invoice.save()
        for line in lines:
            line.invoice = invoice
        InvoiceItem.objects.bulk_create(lines)

    logger.info(f"Invoice {invoice.invoice_number} generated for campaign {campaign.campaign_code} "
                f"({len(lines)} lines, total {invoice.total_amount})")
    return invoice


def billing_schedule(campaign, today=None):
    """Monthly billing periods of a campaign with amounts and invoice coverage"""
    invoices = list(campaign.invoices.exclude(status='Cancelled'))
    schedule = []
    for period in calculate_billing_periods(campaign.start_date, campaign.end_date, today=today):
        lines = _campaign_invoice_lines(campaign, period.period_start, period.period_end)
        sub_total = round_money(sum((line.line_total for line in lines), ZERO))
        discount = _period_discount(campaign, period.period_start, period.period_end)
        taxable = sub_total - discount
        gst = round_money(taxable * to_decimal(campaign.gst_percent) / 100)
        covering = next((
            inv for inv in invoices
            if inv.period_start is None
            or (inv.period_start <= period.period_end and inv.period_end >= period.period_start)
        ), None)
        schedule.append(dict(
            period.as_dict(),
            sub_total=sub_total,
            discount=discount,
            gst_amount=gst,
            total=round_money(taxable + gst),
            invoice_id=covering.pk if covering else None,
            invoice_number=covering.invoice_number if covering else None,
            is_invoiced=covering is not None,
        ))
    return schedule


def send_invoice(invoice):
    if invoice.status != 'Draft':
        raise InvoiceError(f"Only Draft invoices can be sent (current status: {invoice.status})")
    if not invoice.items.exists():
        raise InvoiceError('Invoice has no items')
    invoice.status = 'Sent'
    invoice.sent_at = timezone.now()
    invoice.save(update_fields=['status', 'sent_at', 'updated_at'])
    return invoice


def cancel_invoice(invoice):
    if invoice.status == 'Cancelled':
        raise InvoiceError('Invoice is already cancelled')
    if invoice.paid_amount > 0:
        raise InvoiceError('Invoices with payments cannot be cancelled')
    if invoice.credit_notes.filter(status='Issued').exists():
        raise InvoiceError('Cancel the issued credit notes before cancelling the invoice')
    invoice.status = 'Cancelled'
    invoice.balance_due = ZERO
    invoice.save(update_fields=['status', 'balance_due', 'updated_at'])
    return invoice


def _open_status(invoice, today=None):
    """Status of an invoice that still has a balance after a reversal"""
    today = today or timezone.localdate()
    if invoice.due_date < today:
        return 'Overdue'
    return 'Partial' if invoice.paid_amount > 0 else 'Sent'


def gst_mode_for(invoice):
    """IGST for an inter-state supply, CGST + SGST otherwise"""
    company_state = (invoice.company.state or '').strip().lower()
    client_state = (invoice.client.state or '').strip().lower()
    if company_state and client_state and company_state != client_state:
        return 'IGST'
    return 'CGST_SGST'


def split_gst(gst_amount, gst_mode):
    """(cgst, sgst, igst) for a GST amount"""
    if gst_mode == 'IGST':
        return ZERO, ZERO, gst_amount
    cgst = round_money(gst_amount / 2)
    return cgst, gst_amount - cgst, ZERO


def credit_note_cap(invoice):
    """Amount still creditable: invoice total less non-cancelled credit notes"""
    credited = sum((cn.total_amount for cn in invoice.credit_notes.exclude(status='Cancelled')), ZERO)
    return round_money(invoice.total_amount - credited)


def _apply_credit(invoice, credit_note):
    if credit_note.total_amount > invoice.balance_due:
        raise CreditNoteError(
            f"Credit of {credit_note.total_amount} exceeds the balance due of {invoice.balance_due}"
        )
    invoice.credit_amount = round_money(invoice.credit_amount + credit_note.total_amount)
    invoice.balance_due = round_money(invoice.total_amount - invoice.paid_amount - invoice.credit_amount)
    if invoice.balance_due <= 0:
        invoice.status = 'Paid'
    invoice.save(update_fields=['credit_amount', 'balance_due', 'status', 'updated_at'])
    credit_note.status = 'Issued'
    credit_note.issued_at = timezone.now()
    credit_note.save(update_fields=['status', 'issued_at', 'updated_at'])


def create_credit_note(invoice, items, reason, notes='', issue=False, credit_note_date=None, user=None):
    """
    Create a credit note against a sent invoice.

    items is a list of {'description', 'amount'}; GST is added at the
    invoice's rate. The total may not exceed the invoice total less earlier
    credit notes. With issue=True the credit is applied to the balance at once.
    """
    if invoice.status in ('Draft', 'Cancelled'):
        raise CreditNoteError(f"Cannot credit a {invoice.status} invoice")
    if not reason:
        raise CreditNoteError('A reason is required')
    if not items:
        raise CreditNoteError('At least one item is required')
    for item in items:
        if not (item.get('description') or '').strip():
            raise CreditNoteError('Every item needs a description')
        if to_decimal(item.get('amount')) <= 0:
            raise CreditNoteError('Item amounts must be greater than zero')

    sub_total = round_money(sum((to_decimal(item['amount']) for item in items), ZERO))
    gst_amount = round_money(sub_total * to_decimal(invoice.gst_percent) / 100)
    total = round_money(sub_total + gst_amount)
    gst_mode = gst_mode_for(invoice)
    cgst, sgst, igst = split_gst(gst_amount, gst_mode)
    credit_note_date = credit_note_date or timezone.localdate()

    with transaction.atomic():
        invoice = Invoice.objects.select_for_update().select_related('company', 'client').get(pk=invoice.pk)
        cap = credit_note_cap(invoice)
        if total > cap:
            raise CreditNoteError(f"Credit of {total} exceeds the creditable amount of {cap}")
        credit_note = CreditNote.objects.create(
            company=invoice.company,
            credit_note_number=generate_credit_note_code(invoice.company, credit_note_date),
            invoice=invoice,
            client=invoice.client,
            credit_note_date=credit_note_date,
            reason=reason,
            notes=notes or '',
            sub_total=sub_total,
            gst_percent=invoice.gst_percent,
            gst_mode=gst_mode,
            gst_amount=gst_amount,
            cgst_amount=cgst,
            sgst_amount=sgst,
            igst_amount=igst,
            total_amount=total,
            created_by=user,
        )
        CreditNoteItem.objects.bulk_create([
            CreditNoteItem(credit_note=credit_note, description=item['description'].strip(),
                           amount=round_money(to_decimal(item['amount'])))
            for item in items
        ])
        if issue:
            _apply_credit(invoice, credit_note)

    logger.info(f"Credit note {credit_note.credit_note_number} ({credit_note.status}) for {total} "
                f"on invoice {invoice.invoice_number}")
    return credit_note


def issue_credit_note(credit_note):
    if credit_note.status != 'Draft':
        raise CreditNoteError(f"Only Draft credit notes can be issued (current status: {credit_note.status})")
    with transaction.atomic():
        invoice = Invoice.objects.select_for_update().get(pk=credit_note.invoice_id)
        if invoice.status == 'Cancelled':
            raise CreditNoteError('Cannot issue a credit note on a Cancelled invoice')
        _apply_credit(invoice, credit_note)
    logger.info(f"Credit note {credit_note.credit_note_number} issued; invoice balance {invoice.balance_due}")
    return credit_note


def cancel_credit_note(credit_note, today=None):
    """Cancel a credit note; an Issued one gives its amount back to the invoice balance"""
    if credit_note.status == 'Cancelled':
        raise CreditNoteError('Credit note is already cancelled')
    with transaction.atomic():
        if credit_note.status == 'Issued':
            invoice = Invoice.objects.select_for_update().get(pk=credit_note.invoice_id)
            invoice.credit_amount = round_money(max(invoice.credit_amount - credit_note.total_amount, ZERO))
            invoice.balance_due = round_money(invoice.total_amount - invoice.paid_amount - invoice.credit_amount)
            if invoice.status == 'Paid' and invoice.balance_due > 0:
                invoice.status = _open_status(invoice, today)
            invoice.save(update_fields=['credit_amount', 'balance_due', 'status', 'updated_at'])
        credit_note.status = 'Cancelled'
        credit_note.cancelled_at = timezone.now()
        credit_note.save(update_fields=['status', 'cancelled_at', 'updated_at'])
    logger.info(f"Credit note {credit_note.credit_note_number} cancelled")
    return credit_note


def record_payment(invoice, amount, payment_date=None, method='bank_transfer', reference='', notes='', user=None,
                   send_receipt=True):
    """
    Record a payment; amount must be positive and not exceed the balance.
    A numbered receipt is emailed to the client unless send_receipt is False.
    Returns the Payment.
    """
    amount = round_money(to_decimal(amount))
    if amount <= 0:
        raise PaymentError('Payment amount must be greater than zero')
    if invoice.status in ('Draft', 'Cancelled'):
        raise PaymentError(f"Cannot record a payment on a {invoice.status} invoice")

    payment_date = payment_date or timezone.localdate()
    with transaction.atomic():
        invoice = Invoice.objects.select_for_update().get(pk=invoice.pk)
        if amount > invoice.balance_due:
            raise PaymentError(f"Payment of {amount} exceeds the balance due of {invoice.balance_due}")
        payment = Payment.objects.create(
            invoice=invoice,
            receipt_number=generate_receipt_code(invoice.company, payment_date),
            amount=amount,
            payment_date=payment_date,
            method=method,
            reference=reference or '',
            notes=notes or '',
            recorded_by=user,
            receipt_status='pending' if send_receipt else 'skipped',
        )
        invoice.paid_amount = round_money(invoice.paid_amount + amount)
        invoice.balance_due = round_money(invoice.total_amount - invoice.paid_amount - invoice.credit_amount)
        invoice.status = 'Paid' if invoice.balance_due <= 0 else 'Partial'
        invoice.save(update_fields=['paid_amount', 'balance_due', 'status', 'updated_at'])

    logger.info(f"Payment {amount} recorded on invoice {invoice.invoice_number}; balance {invoice.balance_due}")
    if send_receipt:
        send_payment_receipt(payment)
    return payment


def send_payment_receipt(payment):
    """
    Email the payment receipt to the client's contact address.
    Sets receipt_status to sent, failed or skipped (no address) and returns it.
    """
    invoice = payment.invoice
    client = invoice.client
    company = invoice.company
    recipient = client.contact_email
    if not recipient:
        payment.receipt_status = 'skipped'
        payment.save(update_fields=['receipt_status'])
        logger.warning(f"No email for client {client.name}; receipt {payment.receipt_number} not sent")
        return payment.receipt_status

    lines = [
        f"Dear {client.name},",
        "",
        "We have received your payment. Thank you.",
        "",
        f"Receipt number: {payment.receipt_number}",
        f"Invoice: {invoice.invoice_number}",
        f"Payment date: {payment.payment_date:%d %b %Y}",
        f"Amount received: {payment.amount:,.2f}",
        f"Payment method: {payment.get_method_display()}",
    ]
    if payment.reference:
        lines.append(f"Reference: {payment.reference}")
    if invoice.balance_due > 0:
        lines.append(f"Balance due: {invoice.balance_due:,.2f}")
    else:
        lines.append("This invoice is now fully paid.")
    lines += ["", "Regards,", company.name, "Accounts Team"]

    try:
        send_mail(
            f"Payment Receipt {payment.receipt_number} - Invoice {invoice.invoice_number} | {company.name}",
            "\n".join(lines),
            settings.DEFAULT_FROM_EMAIL,
            [recipient],
        )
        payment.receipt_status = 'sent'
        payment.receipt_sent_at = timezone.now()
    except Exception as e:
        logger.error(f"Receipt {payment.receipt_number} for invoice {invoice.invoice_number} failed: {str(e)}")
        payment.receipt_status = 'failed'
    payment.save(update_fields=['receipt_status', 'receipt_sent_at'])
    return payment.receipt_status


def mark_overdue_invoices(today=None, company=None):
    """Move Sent and Partial invoices past their due date to Overdue; returns the count"""
    today = today or timezone.localdate()
    queryset = Invoice.objects.filter(status__in=['Sent', 'Partial'], due_date__lt=today, balance_due__gt=0)
    if company is not None:
        queryset = queryset.filter(company=company)
    count = queryset.update(status='Overdue', updated_at=timezone.now())
    if count:
        logger.info(f"Marked {count} invoice(s) overdue as of {today}")
    return count


def aging_bucket(days_past_due):
    for label, low, high in AGING_BUCKETS:
        if days_past_due >= low and (high is None or days_past_due <= high):
            return label
    return AGING_BUCKETS[0][0]


def aging_report(company, today=None):
    """
    Outstanding balances bucketed by days past due, per client and in total.
    Invoices not yet due fall in the 0-30 bucket.
    """
    today = today or timezone.localdate()
    labels = [label for label, _, _ in AGING_BUCKETS]
    totals = {label: ZERO for label in labels}
    clients = {}
    invoices = Invoice.objects.select_related('client').filter(
        company=company, status__in=Invoice.OPEN_STATUSES, balance_due__gt=0
    )
    for invoice in invoices:
        label = aging_bucket(max((today - invoice.due_date).days, 0))
        row = clients.setdefault(invoice.client_id, {
            'client_id': invoice.client_id,
            'client_name': invoice.client.name,
            'buckets': {bucket: ZERO for bucket in labels},
            'total_outstanding': ZERO,
        })
        row['buckets'][label] += invoice.balance_due
        row['total_outstanding'] += invoice.balance_due
        totals[label] += invoice.balance_due
    return {
        'as_of': today,
        'buckets': totals,
        'total_outstanding': sum(totals.values(), ZERO),
        'clients': sorted(clients.values(), key=lambda r: r['total_outstanding'], reverse=True),
    }


def reminder_bucket(days_overdue):
    """Largest reminder bucket reached, or None"""
    reached = [b for b in REMINDER_BUCKETS if days_overdue >= b]
    return reached[-1] if reached else None


def send_invoice_reminders(today=None, company=None):
    """
    Email clients about overdue invoices for companies with
    auto_reminders_enabled. One reminder per invoice per bucket.
    Returns {'sent': n, 'failed': n, 'skipped': n}.
    """
    from oohops.core.models import Company

    today = today or timezone.localdate()
    counts = {'sent': 0, 'failed': 0, 'skipped': 0}
    companies = Company.objects.filter(status='active')
    if company is not None:
        companies = companies.filter(pk=company.pk)

    for comp in companies:
        enabled = str(get_company_setting(comp, 'auto_reminders_enabled', 'false')).lower() in ('true', '1', 'yes')
        if not enabled:
            continue
        overdue = Invoice.objects.select_related('client').filter(
            company=comp, status='Overdue', balance_due__gt=0
        )
        for invoice in overdue:
            bucket = reminder_bucket((today - invoice.due_date).days)
            recipient = invoice.client.contact_email
            if bucket is None or not recipient or invoice.reminders.filter(aging_bucket=bucket).exists():
                counts['skipped'] += 1
                continue
            days = (today - invoice.due_date).days
            try:
                send_mail(
                    f"Payment Reminder - Invoice {invoice.invoice_number} | {comp.name}",
                    f"Dear {invoice.client.name},\n\n"
                    f"This is a reminder regarding invoice {invoice.invoice_number} dated "
                    f"{invoice.invoice_date:%d %b %Y}.\n"
                    f"Outstanding amount: {invoice.balance_due:,.2f}\n"
                    f"Due date: {invoice.due_date:%d %b %Y} ({days} days overdue)\n\n"
                    f"If you have already made the payment, please ignore this reminder.\n\n"
                    f"Regards,\n{comp.name}\nAccounts Team",
                    settings.DEFAULT_FROM_EMAIL,
                    [recipient],
                )
                InvoiceReminder.objects.create(invoice=invoice, aging_bucket=bucket, recipient=recipient)
                counts['sent'] += 1
            except Exception as e:
                logger.error(f"Reminder for invoice {invoice.invoice_number} failed: {str(e)}")
                counts['failed'] += 1
    return counts


def compute_expense_amounts(amount, gst_percent):
    """(gst_amount, total_amount) for an expense"""
    amount = to_decimal(amount)
    gst_amount = round_money(amount * to_decimal(gst_percent) / 100)
    return gst_amount, round_money(amount + gst_amount)


def create_power_bill_expense(power_bill, user=None):
    """Linked Power Bill expense for a bill; reuses an existing one"""
    expense = power_bill.expenses.first()
    if expense:
        return expense
    expense_date = power_bill.bill_date or timezone.localdate()
    gst_amount, total = compute_expense_amounts(power_bill.total_due or power_bill.bill_amount, 0)
    return Expense.objects.create(
        company=power_bill.company,
        expense_code=generate_expense_code(power_bill.company, expense_date),
        category='Power Bill',
        vendor_name=power_bill.consumer_name or 'Electricity Board',
        asset=power_bill.asset,
        power_bill=power_bill,
        amount=power_bill.total_due or power_bill.bill_amount,
        gst_percent=0,
        gst_amount=gst_amount,
        total_amount=total,
        payment_status='Paid' if power_bill.payment_status == 'Paid' else 'Pending',
        paid_date=power_bill.paid_date,
        expense_date=expense_date,
        bill_month=power_bill.bill_month,
        notes=f"Power bill {power_bill.bill_month:%b %Y} for {power_bill.asset.media_asset_code}",
        created_by=user,
    )
