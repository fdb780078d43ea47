from django.db import models
from decimal import Decimal
from oohops.core.models import Company, User
from oohops.clients.models import Client
from oohops.assets.models import MediaAsset
from oohops.pricing.calculator import BILLING_MODE_CHOICES, PRORATA_30


class Plan(models.Model):
    """Quotation / proposal of media assets for a client"""
    PLAN_TYPE_CHOICES = [
        ('Quotation', 'Quotation'),
        ('Proposal', 'Proposal'),
        ('Estimate', 'Estimate'),
    ]
    STATUS_CHOICES = [
        ('Draft', 'Draft'),
        ('Pending Approval', 'Pending Approval'),
        ('Approved', 'Approved'),
        ('Rejected', 'Rejected'),
        ('Sent', 'Sent'),
        ('Converted', 'Converted'),
    ]
    EDITABLE_STATUSES = ['Draft', 'Rejected']

    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name='plans')
    plan_code = models.CharField(max_length=30)
    client = models.ForeignKey(Client, on_delete=models.PROTECT, related_name='plans')
    plan_name = models.CharField(max_length=200)
    plan_type = models.CharField(max_length=20, choices=PLAN_TYPE_CHOICES, default='Quotation')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='Draft')
    start_date = models.DateField()
    end_date = models.DateField()
    gst_percent = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('18.00'))
    manual_discount_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))

    display_cost = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    printing_total = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    mounting_total = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    gross_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    taxable_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    gst_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    grand_total = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    total_assets = models.PositiveIntegerField(default=0)

    share_token = models.CharField(max_length=64, unique=True, null=True, blank=True)
    notes = models.TextField(blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='created_plans')
    submitted_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='submitted_plans')
    submitted_at = models.DateTimeField(null=True, blank=True)
    approved_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.plan_code} - {self.plan_name}"

    @property
    def is_editable(self):
        return self.status in self.EDITABLE_STATUSES

    class Meta:
        db_table = 'plans'
        ordering = ['-created_at']
        unique_together = [['company', 'plan_code']]


class PlanItem(models.Model):
    """One media asset inside a plan, with its negotiated pricing"""
    plan = models.ForeignKey(Plan, on_delete=models.CASCADE, related_name='items')
    asset = models.ForeignKey(MediaAsset, on_delete=models.PROTECT, related_name='plan_items')
    card_rate = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    base_rate = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    sales_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    printing_charges = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    mounting_charges = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    start_date = models.DateField()
    end_date = models.DateField()
    booked_days = models.PositiveIntegerField(default=1)
    billing_mode = models.CharField(max_length=20, choices=BILLING_MODE_CHOICES, default=PRORATA_30)
    daily_rate = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    rent_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    discount_value = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    discount_percent = models.DecimalField(max_digits=7, decimal_places=2, default=Decimal('0.00'))
    profit_value = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    profit_percent = models.DecimalField(max_digits=9, decimal_places=2, default=Decimal('0.00'))
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.plan.plan_code} - {self.asset.media_asset_code}"

    @property
    def negotiated_rate(self):
        return self.sales_price if self.sales_price and self.sales_price > 0 else self.card_rate

    @property
    def line_total(self):
        return self.rent_amount + self.printing_charges + self.mounting_charges

    class Meta:
        db_table = 'plan_items'
        ordering = ['id']
        unique_together = [['plan', 'asset']]


class PlanApproval(models.Model):
    """One level of the approval chain of a submitted plan"""
    LEVEL_CHOICES = [
        ('L1', 'Level 1'),
        ('L2', 'Level 2'),
        ('L3', 'Level 3'),
    ]
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('approved', 'Approved'),
        ('rejected', 'Rejected'),
    ]

    plan = models.ForeignKey(Plan, on_delete=models.CASCADE, related_name='approvals')
    level = models.CharField(max_length=5, choices=LEVEL_CHOICES)
    required_role = models.CharField(max_length=20)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending')
    requested_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='requested_plan_approvals')
    approver = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='plan_approvals')
    comments = models.TextField(blank=True)
    acted_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.plan.plan_code} {self.level} ({self.status})"

    class Meta:
        db_table = 'plan_approvals'
        ordering = ['plan', 'level']
        unique_together = [['plan', 'level']]
