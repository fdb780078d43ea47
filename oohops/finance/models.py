from django.db import models
from decimal import Decimal
from oohops.core.models import Company, User
from oohops.clients.models import Client
from oohops.assets.models import MediaAsset
from oohops.campaigns.models import Campaign, CampaignAsset
from oohops.powerbills.models import AssetPowerBill

HSN_SAC_ADVERTISING = '998361'


class Invoice(models.Model):
    """Client invoice, generated from a campaign or entered manually"""
    STATUS_CHOICES = [
        ('Draft', 'Draft'),
        ('Sent', 'Sent'),
        ('Partial', 'Partially Paid'),
        ('Paid', 'Paid'),
        ('Overdue', 'Overdue'),
        ('Cancelled', 'Cancelled'),
    ]
    # Statuses that still expect money from the client
    OPEN_STATUSES = ['Sent', 'Partial', 'Overdue']

    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name='invoices')
    invoice_number = models.CharField(max_length=30)
    client = models.ForeignKey(Client, on_delete=models.PROTECT, related_name='invoices')
    campaign = models.ForeignKey(Campaign, on_delete=models.SET_NULL, null=True, blank=True, related_name='invoices')
    invoice_date = models.DateField()
    due_date = models.DateField()
    period_start = models.DateField(null=True, blank=True)
    period_end = models.DateField(null=True, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='Draft')
    sub_total = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    discount_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    gst_percent = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('18.00'))
    gst_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    total_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    paid_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    credit_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    balance_due = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    notes = models.TextField(blank=True)
    sent_at = models.DateTimeField(null=True, blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='created_invoices')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.invoice_number

    @property
    def taxable_amount(self):
        return self.sub_total - self.discount_amount

    class Meta:
        db_table = 'invoices'
        ordering = ['-invoice_date', '-created_at']
        unique_together = [['company', 'invoice_number']]


class InvoiceItem(models.Model):
    """Snapshot line of an invoice, one per booked asset"""
    invoice = models.ForeignKey(Invoice, on_delete=models.CASCADE, related_name='items')
    campaign_asset = models.ForeignKey(CampaignAsset, on_delete=models.SET_NULL, null=True, blank=True, related_name='invoice_items')
    asset_code = models.CharField(max_length=50, blank=True)
    description = models.CharField(max_length=500)
    location = models.CharField(max_length=500, blank=True)
    media_type = models.CharField(max_length=100, blank=True)
    dimensions = models.CharField(max_length=50, blank=True)
    total_sqft = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    hsn_sac = models.CharField(max_length=10, default=HSN_SAC_ADVERTISING)
    bill_start_date = models.DateField(null=True, blank=True)
    bill_end_date = models.DateField(null=True, blank=True)
    billable_days = models.PositiveIntegerField(default=0)
    rate_value = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    base_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    printing_cost = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    mounting_cost = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    line_total = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))

    def __str__(self):
        return f"{self.invoice.invoice_number} - {self.description}"

    class Meta:
        db_table = 'invoice_items'
        ordering = ['invoice', 'id']


class Payment(models.Model):
    """Payment received against an invoice"""
    METHOD_CHOICES = [
        ('cash', 'Cash'),
        ('bank_transfer', 'Bank Transfer'),
        ('upi', 'UPI'),
        ('cheque', 'Cheque'),
        ('card', 'Card'),
    ]
    RECEIPT_STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('sent', 'Sent'),
        ('failed', 'Failed'),
        ('skipped', 'Skipped'),
    ]

    invoice = models.ForeignKey(Invoice, on_delete=models.CASCADE, related_name='payments')
    receipt_number = models.CharField(max_length=30, blank=True)
    amount = models.DecimalField(max_digits=14, decimal_places=2)
    payment_date = models.DateField()
    method = models.CharField(max_length=20, choices=METHOD_CHOICES, default='bank_transfer')
    reference = models.CharField(max_length=200, blank=True)
    notes = models.TextField(blank=True)
    recorded_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='recorded_payments')
    receipt_status = models.CharField(max_length=20, choices=RECEIPT_STATUS_CHOICES, default='pending')
    receipt_sent_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.invoice.invoice_number} - {self.amount}"

    class Meta:
        db_table = 'payments'
        ordering = ['-payment_date', '-created_at']


class InvoiceReminder(models.Model):
    """Overdue reminder sent for an invoice, at most one per aging bucket"""
    invoice = models.ForeignKey(Invoice, on_delete=models.CASCADE, related_name='reminders')
    aging_bucket = models.PositiveIntegerField()
    recipient = models.EmailField()
    status = models.CharField(max_length=20, default='sent')
    error_message = models.TextField(blank=True)
    sent_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'invoice_reminders'
        unique_together = [['invoice', 'aging_bucket']]


class CreditNote(models.Model):
    """Credit against an issued invoice; an Issued note reduces the invoice balance"""
    STATUS_CHOICES = [
        ('Draft', 'Draft'),
        ('Issued', 'Issued'),
        ('Cancelled', 'Cancelled'),
    ]
    GST_MODE_CHOICES = [
        ('CGST_SGST', 'CGST + SGST'),
        ('IGST', 'IGST'),
    ]
    REASON_CHOICES = [
        ('Rate adjustment', 'Rate adjustment'),
        ('Service not rendered', 'Service not rendered'),
        ('Partial cancellation', 'Partial cancellation'),
        ('Billing error', 'Billing error'),
        ('Duplicate invoice', 'Duplicate invoice'),
        ('Client dispute resolution', 'Client dispute resolution'),
        ('Other', 'Other'),
    ]

    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name='credit_notes')
    credit_note_number = models.CharField(max_length=30)
    invoice = models.ForeignKey(Invoice, on_delete=models.PROTECT, related_name='credit_notes')
    client = models.ForeignKey(Client, on_delete=models.PROTECT, related_name='credit_notes')
    credit_note_date = models.DateField()
    reason = models.CharField(max_length=50, choices=REASON_CHOICES)
    notes = models.TextField(blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='Draft')
    sub_total = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    gst_percent = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('18.00'))
    gst_mode = models.CharField(max_length=10, choices=GST_MODE_CHOICES, default='CGST_SGST')
    gst_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    cgst_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    sgst_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    igst_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    total_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    issued_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='created_credit_notes')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.credit_note_number} - {self.invoice.invoice_number}"

    class Meta:
        db_table = 'credit_notes'
        ordering = ['-credit_note_date', '-created_at']
        unique_together = [['company', 'credit_note_number']]


class CreditNoteItem(models.Model):
    credit_note = models.ForeignKey(CreditNote, on_delete=models.CASCADE, related_name='items')
    description = models.CharField(max_length=500)
    amount = models.DecimalField(max_digits=14, decimal_places=2)

    class Meta:
        db_table = 'credit_note_items'
        ordering = ['credit_note', 'id']


class Expense(models.Model):
    """Operating expense, optionally tied to a campaign, asset or power bill"""
    CATEGORY_CHOICES = [
        ('Printing', 'Printing'),
        ('Mounting', 'Mounting'),
        ('Transport', 'Transport'),
        ('Electricity', 'Electricity'),
        ('Power Bill', 'Power Bill'),
        ('Other', 'Other'),
    ]
    PAYMENT_STATUS_CHOICES = [
        ('Pending', 'Pending'),
        ('Paid', 'Paid'),
    ]

    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name='expenses')
    expense_code = models.CharField(max_length=30)
    category = models.CharField(max_length=20, choices=CATEGORY_CHOICES, default='Other')
    vendor_name = models.CharField(max_length=200, blank=True)
    campaign = models.ForeignKey(Campaign, on_delete=models.SET_NULL, null=True, blank=True, related_name='expenses')
    asset = models.ForeignKey(MediaAsset, on_delete=models.SET_NULL, null=True, blank=True, related_name='expenses')
    power_bill = models.ForeignKey(AssetPowerBill, on_delete=models.SET_NULL, null=True, blank=True, related_name='expenses')
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    gst_percent = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('0.00'))
    gst_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    payment_status = models.CharField(max_length=20, choices=PAYMENT_STATUS_CHOICES, default='Pending')
    paid_date = models.DateField(null=True, blank=True)
    expense_date = models.DateField()
    bill_month = models.DateField(null=True, blank=True)
    notes = models.TextField(blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='created_expenses')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.expense_code} - {self.category}"

    class Meta:
        db_table = 'expenses'
        ordering = ['-expense_date', '-created_at']
        unique_together = [['company', 'expense_code']]
