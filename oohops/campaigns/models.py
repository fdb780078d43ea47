from django.db import models
from django.utils import timezone
from decimal import Decimal
from oohops.core.models import Company, User
from oohops.clients.models import Client
from oohops.assets.models import MediaAsset
from oohops.plans.models import Plan
from oohops.pricing.calculator import BILLING_MODE_CHOICES, PRORATA_30


class Campaign(models.Model):
    """Confirmed booking of media assets for a client"""
    STATUS_CHOICES = [
        ('Draft', 'Draft'),
        ('Upcoming', 'Upcoming'),
        ('Running', 'Running'),
        ('Completed', 'Completed'),
        ('Cancelled', 'Cancelled'),
        ('Archived', 'Archived'),
    ]
    BILLING_CYCLE_CHOICES = [
        ('one_time', 'One Time'),
        ('monthly', 'Monthly'),
    ]
    # Campaigns in these statuses hold their assets
    ACTIVE_STATUSES = ['Draft', 'Upcoming', 'Running']
    CLOSED_STATUSES = ['Completed', 'Cancelled', 'Archived']

    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name='campaigns')
    campaign_code = models.CharField(max_length=30)
    client = models.ForeignKey(Client, on_delete=models.PROTECT, related_name='campaigns')
    plan = models.ForeignKey(Plan, on_delete=models.SET_NULL, null=True, blank=True, related_name='campaigns')
    campaign_name = models.CharField(max_length=200)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='Draft')
    start_date = models.DateField()
    end_date = models.DateField()
    gst_percent = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('18.00'))
    manual_discount_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    billing_cycle = models.CharField(max_length=20, choices=BILLING_CYCLE_CHOICES, default='one_time')

    display_cost = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    printing_total = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    mounting_total = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    gross_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    taxable_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    gst_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    grand_total = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    total_assets = models.PositiveIntegerField(default=0)

    public_token = models.CharField(max_length=64, unique=True, null=True, blank=True)
    notes = models.TextField(blank=True)
    proofs_notified_at = models.DateTimeField(null=True, blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='created_campaigns')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.campaign_code} - {self.campaign_name}"

    @property
    def is_active(self):
        return self.status in self.ACTIVE_STATUSES

    class Meta:
        db_table = 'campaigns'
        ordering = ['-start_date', '-created_at']
        unique_together = [['company', 'campaign_code']]


class CampaignAsset(models.Model):
    """Booking of one media asset within a campaign"""
    INSTALLATION_STATUS_CHOICES = [
        ('Pending', 'Pending'),
        ('Assigned', 'Assigned'),
        ('Installed', 'Installed'),
        ('PhotoUploaded', 'Photo Uploaded'),
        ('Verified', 'Verified'),
        ('Completed', 'Completed'),
        ('Failed', 'Failed'),
    ]

    campaign = models.ForeignKey(Campaign, on_delete=models.CASCADE, related_name='campaign_assets')
    asset = models.ForeignKey(MediaAsset, on_delete=models.PROTECT, related_name='campaign_assets')

    # Snapshot of the asset at booking time
    location = models.CharField(max_length=500, blank=True)
    city = models.CharField(max_length=100, blank=True)
    area = models.CharField(max_length=200, blank=True)
    media_type = models.CharField(max_length=100, blank=True)
    dimensions = models.CharField(max_length=50, blank=True)
    total_sqft = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    illumination_type = models.CharField(max_length=20, blank=True)

    card_rate = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    negotiated_rate = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    printing_charges = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    mounting_charges = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    booking_start_date = models.DateField()
    booking_end_date = models.DateField()
    booked_days = models.PositiveIntegerField(default=1)
    billing_mode = models.CharField(max_length=20, choices=BILLING_MODE_CHOICES, default=PRORATA_30)
    daily_rate = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    rent_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))

    installation_status = models.CharField(max_length=20, choices=INSTALLATION_STATUS_CHOICES, default='Pending')
    mounter = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='mounting_tasks')
    assigned_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.campaign.campaign_code} - {self.asset.media_asset_code}"

    @property
    def monthly_rate(self):
        return self.negotiated_rate if self.negotiated_rate and self.negotiated_rate > 0 else self.card_rate

    def snapshot_asset(self):
        asset = self.asset
        self.location = asset.location
        self.city = asset.city
        self.area = asset.area
        self.media_type = asset.media_type
        self.dimensions = asset.dimensions
        self.total_sqft = asset.total_sqft
        self.illumination_type = asset.illumination_type

    class Meta:
        db_table = 'campaign_assets'
        ordering = ['campaign', 'id']
        unique_together = [['campaign', 'asset']]


class ProofPhoto(models.Model):
    """Proof-of-display photo of an installed campaign asset"""
    PHOTO_TYPE_CHOICES = [
        ('newspaper', 'Newspaper'),
        ('geotag', 'Geo-tagged'),
        ('traffic1', 'Traffic View 1'),
        ('traffic2', 'Traffic View 2'),
        ('other', 'Other'),
    ]
    APPROVAL_STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('approved', 'Approved'),
        ('rejected', 'Rejected'),
    ]

    campaign_asset = models.ForeignKey(CampaignAsset, on_delete=models.CASCADE, related_name='photos')
    photo_type = models.CharField(max_length=20, choices=PHOTO_TYPE_CHOICES, default='other')
    image = models.ImageField(upload_to='proofs/%Y/%m/')
    latitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    longitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    client_upload_id = models.CharField(max_length=64, null=True, blank=True)
    approval_status = models.CharField(max_length=20, choices=APPROVAL_STATUS_CHOICES, default='pending')
    rejection_reason = models.TextField(blank=True)
    uploaded_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='proof_photos')
    uploaded_at = models.DateTimeField(default=timezone.now)
    reviewed_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='reviewed_proof_photos')
    reviewed_at = models.DateTimeField(null=True, blank=True)

    def __str__(self):
        return f"{self.campaign_asset} - {self.photo_type}"

    class Meta:
        db_table = 'proof_photos'
        ordering = ['-uploaded_at']
        constraints = [
            models.UniqueConstraint(fields=['campaign_asset', 'client_upload_id'], name='unique_proof_client_upload'),
        ]
