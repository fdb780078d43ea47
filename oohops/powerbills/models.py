from django.db import models
from decimal import Decimal
from oohops.core.models import Company, User
from oohops.assets.models import MediaAsset


class AssetPowerBill(models.Model):
    """Monthly electricity bill of an illuminated asset"""
    PAYMENT_STATUS_CHOICES = [
        ('Pending', 'Pending'),
        ('Paid', 'Paid'),
    ]
    SOURCE_CHOICES = [
        ('manual', 'Manual'),
        ('fetched', 'Fetched'),
    ]

    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name='power_bills')
    asset = models.ForeignKey(MediaAsset, on_delete=models.CASCADE, related_name='power_bills')
    bill_month = models.DateField(help_text='First day of the billed month')
    unique_service_number = models.CharField(max_length=50, blank=True)
    consumer_name = models.CharField(max_length=200, blank=True)
    bill_date = models.DateField(null=True, blank=True)
    due_date = models.DateField(null=True, blank=True)
    bill_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    energy_charges = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    fixed_charges = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    arrears = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    total_due = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    payment_status = models.CharField(max_length=20, choices=PAYMENT_STATUS_CHOICES, default='Pending')
    paid_date = models.DateField(null=True, blank=True)
    payment_reference = models.CharField(max_length=100, blank=True)
    is_anomaly = models.BooleanField(default=False)
    anomaly_type = models.CharField(max_length=50, blank=True)
    anomaly_details = models.JSONField(default=dict, blank=True)
    source = models.CharField(max_length=20, choices=SOURCE_CHOICES, default='manual')
    notes = models.TextField(blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='power_bills')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.asset.media_asset_code} - {self.bill_month:%Y-%m}"

    class Meta:
        db_table = 'asset_power_bills'
        ordering = ['-bill_month', 'asset']
        unique_together = [['asset', 'bill_month']]


class PowerBillJob(models.Model):
    """One attempt to fetch a bill for an asset"""
    JOB_STATUS_CHOICES = [
        ('running', 'Running'),
        ('completed', 'Completed'),
        ('failed', 'Failed'),
    ]

    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name='power_bill_jobs')
    asset = models.ForeignKey(MediaAsset, on_delete=models.SET_NULL, null=True, blank=True, related_name='power_bill_jobs')
    job_type = models.CharField(max_length=30, default='monthly_fetch')
    job_status = models.CharField(max_length=20, choices=JOB_STATUS_CHOICES, default='running')
    result = models.JSONField(default=dict, blank=True)
    error_message = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    def __str__(self):
        return f"{self.job_type} {self.job_status} ({self.asset_id})"

    class Meta:
        db_table = 'power_bill_jobs'
        ordering = ['-created_at']
