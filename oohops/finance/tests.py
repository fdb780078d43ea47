"""
Test suite for finance
Tests: invoice generation, payments, overdue marking, aging, reminders and expenses
"""
from datetime import date, timedelta
from decimal import Decimal
from io import StringIO

from django.core import mail
from django.core.management import call_command
from django.test import SimpleTestCase, TestCase
from django.utils import timezone
from rest_framework import status

from oohops.core.models import AuditLog
from oohops.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from oohops.finance.models import CreditNote, Expense, Invoice, InvoiceReminder
from oohops.finance.services import (
    InvoiceError, PaymentError, CreditNoteError, generate_invoice_from_campaign, send_invoice, cancel_invoice,
    record_payment, mark_overdue_invoices, aging_bucket, aging_report, reminder_bucket, send_invoice_reminders,
    compute_expense_amounts, create_credit_note, issue_credit_note, cancel_credit_note, split_gst,
)


class BucketTests(SimpleTestCase):

    def test_aging_buckets(self):
        self.assertEqual(aging_bucket(0), '0-30')
        self.assertEqual(aging_bucket(30), '0-30')
        self.assertEqual(aging_bucket(31), '31-60')
        self.assertEqual(aging_bucket(90), '61-90')
        self.assertEqual(aging_bucket(400), '90+')

    def test_reminder_buckets(self):
        self.assertIsNone(reminder_bucket(6))
        self.assertEqual(reminder_bucket(7), 7)
        self.assertEqual(reminder_bucket(29), 15)
        self.assertEqual(reminder_bucket(100), 45)

    def test_expense_amounts(self):
        self.assertEqual(compute_expense_amounts(Decimal('1000'), Decimal('18')),
                         (Decimal('180.00'), Decimal('1180.00')))


class InvoiceGenerationTests(TestCase):
    """Test invoices generated from campaigns"""

    def setUp(self):
        self.company = TestDataFactory.create_company()
        self.campaign = TestDataFactory.create_campaign(self.company)

    def test_full_campaign_invoice(self):
        invoice = generate_invoice_from_campaign(self.campaign)
        self.assertEqual(invoice.status, 'Draft')
        self.assertTrue(invoice.invoice_number.startswith('INV-'))
        self.assertEqual(invoice.items.count(), 1)
        self.assertEqual(invoice.sub_total, Decimal('30000.00'))
        self.assertEqual(invoice.gst_amount, Decimal('5400.00'))
        self.assertEqual(invoice.total_amount, Decimal('35400.00'))
        self.assertEqual(invoice.balance_due, invoice.total_amount)
        self.assertEqual(invoice.due_date, invoice.invoice_date + timedelta(days=30))

    def test_duplicate_invoice_rejected(self):
        generate_invoice_from_campaign(self.campaign)
        with self.assertRaises(InvoiceError):
            generate_invoice_from_campaign(self.campaign)

    def test_cancelled_invoice_allows_regeneration(self):
        invoice = generate_invoice_from_campaign(self.campaign)
        cancel_invoice(invoice)
        generate_invoice_from_campaign(self.campaign)

    def test_draft_campaign_cannot_be_invoiced(self):
        draft = TestDataFactory.create_campaign(self.company, confirm=False)
        with self.assertRaises(InvoiceError):
            generate_invoice_from_campaign(draft)

    def test_period_invoices_do_not_overlap(self):
        campaign = TestDataFactory.create_campaign(self.company, start_date=date(2025, 1, 1), end_date=date(2025, 2, 28))
        january = generate_invoice_from_campaign(campaign, period_start=date(2025, 1, 1), period_end=date(2025, 1, 31))
        self.assertEqual(january.items.get().billable_days, 31)
        with self.assertRaises(InvoiceError):
            generate_invoice_from_campaign(campaign, period_start=date(2025, 1, 15), period_end=date(2025, 2, 14))
        generate_invoice_from_campaign(campaign, period_start=date(2025, 2, 1), period_end=date(2025, 2, 28))

    def test_whole_campaign_invoice_blocks_period_invoices(self):
        campaign = TestDataFactory.create_campaign(self.company, start_date=date(2025, 1, 1), end_date=date(2025, 3, 31))
        generate_invoice_from_campaign(campaign)
        with self.assertRaises(InvoiceError):
            generate_invoice_from_campaign(campaign, period_start=date(2025, 2, 1), period_end=date(2025, 2, 28))
        self.assertEqual(campaign.invoices.count(), 1)

    def test_period_discount_is_prorated_by_days(self):
        campaign = TestDataFactory.create_campaign(self.company, start_date=date(2025, 1, 1), end_date=date(2025, 3, 31),
                                                   manual_discount_amount=Decimal('3000'))
        half_february = generate_invoice_from_campaign(campaign, period_start=date(2025, 2, 1),
                                                       period_end=date(2025, 2, 14))
        self.assertEqual(half_february.discount_amount, Decimal('500.00'))
        march = generate_invoice_from_campaign(campaign, period_start=date(2025, 3, 1), period_end=date(2025, 3, 31))
        self.assertEqual(march.discount_amount, Decimal('1000.00'))

    def test_only_draft_invoices_can_be_sent(self):
        invoice = generate_invoice_from_campaign(self.campaign)
        send_invoice(invoice)
        self.assertEqual(invoice.status, 'Sent')
        with self.assertRaises(InvoiceError):
            send_invoice(invoice)


class PaymentTests(TestCase):
    """Test payment recording and invoice status"""

    def setUp(self):
        self.company = TestDataFactory.create_company()
        self.invoice = TestDataFactory.create_invoice(TestDataFactory.create_campaign(self.company))

    def test_partial_then_full_payment(self):
        record_payment(self.invoice, Decimal('10000'))
        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.status, 'Partial')
        self.assertEqual(self.invoice.balance_due, Decimal('25400.00'))
        record_payment(self.invoice, self.invoice.balance_due)
        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.status, 'Paid')
        self.assertEqual(self.invoice.balance_due, Decimal('0.00'))

    def test_overpayment_rejected(self):
        with self.assertRaises(PaymentError):
            record_payment(self.invoice, self.invoice.total_amount + 1)

    def test_non_positive_amount_rejected(self):
        with self.assertRaises(PaymentError):
            record_payment(self.invoice, 0)

    def test_draft_invoice_cannot_be_paid(self):
        draft = TestDataFactory.create_invoice(TestDataFactory.create_campaign(self.company), send=False)
        with self.assertRaises(PaymentError):
            record_payment(draft, 100)

    def test_paid_invoice_cannot_be_cancelled(self):
        record_payment(self.invoice, 100)
        self.invoice.refresh_from_db()
        with self.assertRaises(InvoiceError):
            cancel_invoice(self.invoice)

    def test_receipt_emailed_to_client(self):
        payment = record_payment(self.invoice, Decimal('10000'), method='upi', reference='UTR998')
        self.assertTrue(payment.receipt_number.startswith('RCT-'))
        self.assertEqual(payment.receipt_status, 'sent')
        self.assertIsNotNone(payment.receipt_sent_at)
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, [self.invoice.client.email])
        self.assertIn(payment.receipt_number, mail.outbox[0].subject)
        self.assertIn('UTR998', mail.outbox[0].body)
        self.assertIn('Balance due: 25,400.00', mail.outbox[0].body)

    def test_receipt_skipped_without_client_email(self):
        client = TestDataFactory.create_client(self.company, email='')
        invoice = TestDataFactory.create_invoice(TestDataFactory.create_campaign(self.company, client=client))
        payment = record_payment(invoice, Decimal('100'))
        self.assertEqual(payment.receipt_status, 'skipped')
        self.assertEqual(len(mail.outbox), 0)

    def test_receipt_can_be_suppressed(self):
        payment = record_payment(self.invoice, Decimal('100'), send_receipt=False)
        self.assertEqual(payment.receipt_status, 'skipped')
        self.assertTrue(payment.receipt_number)
        self.assertEqual(len(mail.outbox), 0)


class CreditNoteTests(TestCase):
    """Test credit notes against sent invoices"""

    def setUp(self):
        self.company = TestDataFactory.create_company()
        self.invoice = TestDataFactory.create_invoice(TestDataFactory.create_campaign(self.company))
        self.items = [{'description': 'Rate revision', 'amount': Decimal('10000')}]

    def test_issued_credit_note_reduces_balance(self):
        credit_note = create_credit_note(self.invoice, self.items, 'Rate adjustment', issue=True)
        self.assertTrue(credit_note.credit_note_number.startswith('CN-'))
        self.assertEqual(credit_note.status, 'Issued')
        self.assertEqual(credit_note.gst_amount, Decimal('1800.00'))
        self.assertEqual(credit_note.total_amount, Decimal('11800.00'))
        self.assertEqual(credit_note.items.count(), 1)
        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.credit_amount, Decimal('11800.00'))
        self.assertEqual(self.invoice.balance_due, Decimal('23600.00'))

    def test_draft_credit_note_leaves_balance_until_issued(self):
        credit_note = create_credit_note(self.invoice, self.items, 'Billing error')
        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.balance_due, Decimal('35400.00'))
        issue_credit_note(credit_note)
        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.balance_due, Decimal('23600.00'))
        with self.assertRaises(CreditNoteError):
            issue_credit_note(credit_note)

    def test_total_cannot_exceed_invoice_total(self):
        with self.assertRaises(CreditNoteError):
            create_credit_note(self.invoice, [{'description': 'Full refund', 'amount': Decimal('30001')}], 'Other')
        create_credit_note(self.invoice, [{'description': 'Part one', 'amount': Decimal('20000')}], 'Other')
        create_credit_note(self.invoice, [{'description': 'Part two', 'amount': Decimal('10000')}], 'Other')
        with self.assertRaises(CreditNoteError):
            create_credit_note(self.invoice, [{'description': 'Part three', 'amount': Decimal('1')}], 'Other')
        self.assertEqual(CreditNote.objects.filter(invoice=self.invoice).count(), 2)

    def test_issued_credit_cannot_exceed_balance(self):
        record_payment(self.invoice, Decimal('30000'))
        with self.assertRaises(CreditNoteError):
            create_credit_note(self.invoice, self.items, 'Rate adjustment', issue=True)
        self.assertFalse(CreditNote.objects.exists())

    def test_invalid_input_rejected(self):
        with self.assertRaises(CreditNoteError):
            create_credit_note(self.invoice, self.items, '')
        with self.assertRaises(CreditNoteError):
            create_credit_note(self.invoice, [{'description': 'Zero', 'amount': 0}], 'Other')
        with self.assertRaises(CreditNoteError):
            create_credit_note(self.invoice, [{'description': ' ', 'amount': 10}], 'Other')
        draft = TestDataFactory.create_invoice(TestDataFactory.create_campaign(self.company), send=False)
        with self.assertRaises(CreditNoteError):
            create_credit_note(draft, self.items, 'Other')

    def test_full_credit_settles_invoice_and_cancel_reopens_it(self):
        record_payment(self.invoice, Decimal('23600'))
        credit_note = create_credit_note(self.invoice, self.items, 'Service not rendered', issue=True)
        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.status, 'Paid')
        self.assertEqual(self.invoice.balance_due, Decimal('0.00'))

        cancel_credit_note(credit_note)
        self.invoice.refresh_from_db()
        self.assertEqual(credit_note.status, 'Cancelled')
        self.assertEqual(self.invoice.credit_amount, Decimal('0.00'))
        self.assertEqual(self.invoice.balance_due, Decimal('11800.00'))
        self.assertEqual(self.invoice.status, 'Partial')
        with self.assertRaises(CreditNoteError):
            cancel_credit_note(credit_note)

    def test_issued_credit_blocks_invoice_cancel(self):
        create_credit_note(self.invoice, self.items, 'Billing error', issue=True)
        self.invoice.refresh_from_db()
        with self.assertRaises(InvoiceError):
            cancel_invoice(self.invoice)

    def test_gst_split_by_client_state(self):
        intra = create_credit_note(self.invoice, self.items, 'Other')
        self.assertEqual(intra.gst_mode, 'CGST_SGST')
        self.assertEqual((intra.cgst_amount, intra.sgst_amount, intra.igst_amount),
                         (Decimal('900.00'), Decimal('900.00'), Decimal('0.00')))

        client = TestDataFactory.create_client(self.company, state='Karnataka', state_code='KA')
        invoice = TestDataFactory.create_invoice(TestDataFactory.create_campaign(self.company, client=client))
        inter = create_credit_note(invoice, self.items, 'Other')
        self.assertEqual(inter.gst_mode, 'IGST')
        self.assertEqual(inter.igst_amount, Decimal('1800.00'))

    def test_split_gst_rounding(self):
        self.assertEqual(split_gst(Decimal('0.05'), 'CGST_SGST'), (Decimal('0.03'), Decimal('0.02'), Decimal('0.00')))


class OverdueAndReminderTests(TestCase):
    """Test overdue marking, aging and payment reminders"""

    def setUp(self):
        self.today = timezone.localdate()
        self.company = TestDataFactory.create_company()
        campaign = TestDataFactory.create_campaign(
            self.company, start_date=self.today - timedelta(days=60), end_date=self.today - timedelta(days=31)
        )
        self.invoice = TestDataFactory.create_invoice(campaign, invoice_date=self.today - timedelta(days=50))

    def test_mark_overdue(self):
        self.assertEqual(mark_overdue_invoices(today=self.today), 1)
        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.status, 'Overdue')
        self.assertEqual(mark_overdue_invoices(today=self.today), 0)

    def test_aging_report(self):
        report = aging_report(self.company, today=self.today + timedelta(days=20))
        self.assertEqual(report['buckets']['31-60'], self.invoice.balance_due)
        self.assertEqual(report['total_outstanding'], self.invoice.balance_due)
        self.assertEqual(report['clients'][0]['client_id'], self.invoice.client_id)

    def test_reminders_require_opt_in(self):
        mark_overdue_invoices(today=self.today)
        self.assertEqual(send_invoice_reminders(today=self.today)['sent'], 0)
        self.assertEqual(len(mail.outbox), 0)

    def test_one_reminder_per_bucket(self):
        TestDataFactory.set_company_setting(self.company, 'auto_reminders_enabled', 'true')
        mark_overdue_invoices(today=self.today)
        counts = send_invoice_reminders(today=self.today)
        self.assertEqual(counts['sent'], 1)
        self.assertEqual(len(mail.outbox), 1)
        self.assertIn(self.invoice.invoice_number, mail.outbox[0].subject)
        self.assertEqual(InvoiceReminder.objects.get().aging_bucket, 15)

        counts = send_invoice_reminders(today=self.today)
        self.assertEqual(counts, {'sent': 0, 'failed': 0, 'skipped': 1})

        counts = send_invoice_reminders(today=self.today + timedelta(days=10))
        self.assertEqual(counts['sent'], 1)

    def test_reminder_command(self):
        TestDataFactory.set_company_setting(self.company, 'auto_reminders_enabled', 'true')
        out = StringIO()
        call_command('send_invoice_reminders', stdout=out)
        self.assertIn('Reminders sent: 1', out.getvalue())

    def test_mark_overdue_command(self):
        out = StringIO()
        call_command('mark_overdue_invoices', date=self.today.isoformat(), stdout=out)
        self.assertIn('Marked 1 invoice(s) as Overdue', out.getvalue())


class InvoiceAPITests(TestCase):
    """Test invoice and payment endpoints"""

    def setUp(self):
        self.company = TestDataFactory.create_company()
        self.user = TestDataFactory.create_member(self.company, role='finance')
        self.campaign = TestDataFactory.create_campaign(self.company)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_generate_send_and_pay(self):
        response = self.client.post(f'/api/v1/campaigns/{self.campaign.pk}/invoices/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        invoice_id = response.data['id']
        self.assertTrue(AuditLog.objects.filter(action='invoice_create', object_id=str(invoice_id)).exists())

        response = self.client.post(f'/api/v1/campaigns/{self.campaign.pk}/invoices/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.post(f'/api/v1/invoices/{invoice_id}/send/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        response = self.client.post(f'/api/v1/invoices/{invoice_id}/payments/', {
            'amount': '5000', 'method': 'upi', 'reference': 'UTR123',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['invoice']['status'], 'Partial')

        response = self.client.post(f'/api/v1/invoices/{invoice_id}/payments/', {'amount': '999999'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_credit_note_issue_and_cancel(self):
        invoice = TestDataFactory.create_invoice(self.campaign)
        url = f'/api/v1/invoices/{invoice.pk}/credit-notes/'
        response = self.client.post(url, {'reason': 'Rate adjustment', 'items': []}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.post(url, {
            'reason': 'Rate adjustment', 'items': [{'description': 'Discount agreed', 'amount': '40000'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.post(url, {
            'reason': 'Rate adjustment', 'notes': 'Agreed on call',
            'items': [{'description': 'Discount agreed', 'amount': '5000'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['credit_note']['status'], 'Draft')
        credit_note_id = response.data['credit_note']['id']

        response = self.client.post(f'/api/v1/credit-notes/{credit_note_id}/issue/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'Issued')
        invoice.refresh_from_db()
        self.assertEqual(invoice.balance_due, Decimal('29500.00'))

        response = self.client.get('/api/v1/credit-notes/', {'status': 'Issued'})
        self.assertEqual(len(response.data), 1)

        response = self.client.post(f'/api/v1/credit-notes/{credit_note_id}/cancel/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        invoice.refresh_from_db()
        self.assertEqual(invoice.balance_due, Decimal('35400.00'))
        self.assertTrue(AuditLog.objects.filter(action='credit_note_cancel', object_id=str(credit_note_id)).exists())

    def test_resend_payment_receipt(self):
        invoice = TestDataFactory.create_invoice(self.campaign)
        payment = record_payment(invoice, Decimal('1000'), send_receipt=False)
        response = self.client.post(f'/api/v1/payments/{payment.pk}/send-receipt/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['receipt_status'], 'sent')
        self.assertEqual(len(mail.outbox), 1)

    def test_sales_can_read_but_not_pay(self):
        invoice = TestDataFactory.create_invoice(self.campaign)
        sales = TestDataFactory.create_member(self.company, role='sales')
        self.client.authenticate_user(sales)
        response = self.client.get(f'/api/v1/invoices/{invoice.pk}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        response = self.client.post(f'/api/v1/invoices/{invoice.pk}/payments/', {'amount': '10'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_invoice_pdf_and_register(self):
        invoice = TestDataFactory.create_invoice(self.campaign)
        response = self.client.get(f'/api/v1/invoices/{invoice.pk}/pdf/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response['Content-Type'], 'application/pdf')
        response = self.client.get('/api/v1/invoices/export/excel/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_aging_endpoint(self):
        TestDataFactory.create_invoice(self.campaign)
        response = self.client.get('/api/v1/invoices/aging/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['clients']), 1)

    def test_other_company_invoice_hidden(self):
        other = TestDataFactory.create_invoice(TestDataFactory.create_campaign(TestDataFactory.create_company()))
        response = self.client.get(f'/api/v1/invoices/{other.pk}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(Invoice.objects.count(), 1)


class ExpenseAPITests(TestCase):
    """Test expense endpoints"""

    def setUp(self):
        self.company = TestDataFactory.create_company()
        self.user = TestDataFactory.create_member(self.company, role='finance')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_computes_gst(self):
        response = self.client.post('/api/v1/expenses/', {
            'category': 'Printing', 'vendor_name': 'Flex Printers', 'amount': '10000',
            'gst_percent': '18', 'expense_date': '2025-03-15',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['expense_code'], 'EXP-202503-0001')
        self.assertEqual(Decimal(str(response.data['total_amount'])), Decimal('11800.00'))

    def test_negative_amount_rejected(self):
        response = self.client.post('/api/v1/expenses/', {
            'category': 'Printing', 'amount': '-5', 'expense_date': '2025-03-15',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_mark_paid_and_summary(self):
        expense = Expense.objects.create(company=self.company, expense_code='EXP-202503-0009', category='Transport',
                                         amount=Decimal('500'), total_amount=Decimal('500'),
                                         expense_date=date(2025, 3, 2))
        response = self.client.post(f'/api/v1/expenses/{expense.pk}/mark-paid/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['payment_status'], 'Paid')
        response = self.client.post(f'/api/v1/expenses/{expense.pk}/mark-paid/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.get('/api/v1/expenses/summary/', {'month': '2025-03'})
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(Decimal(str(response.data['paid_amount'])), Decimal('500.00'))
