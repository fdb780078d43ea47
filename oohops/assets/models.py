from django.db import models
from decimal import Decimal
from oohops.core.models import Company, User
from .dimensions import faces_as_json, calculate_total_sqft


class MediaAsset(models.Model):
    """A physical or digital advertising display (billboard, bus shelter, unipole, ...)"""
    STATUS_CHOICES = [
        ('Available', 'Available'),
        ('Booked', 'Booked'),
        ('Blocked', 'Blocked'),
        ('Maintenance', 'Maintenance'),
        ('Expired', 'Expired'),
    ]
    CATEGORY_CHOICES = [
        ('OOH', 'OOH'),
        ('DOOH', 'DOOH'),
        ('Transit', 'Transit'),
    ]
    OWNERSHIP_CHOICES = [
        ('own', 'Own'),
        ('rented', 'Rented'),
    ]
    ILLUMINATION_CHOICES = [
        ('Non-Lit', 'Non-Lit'),
        ('Front-Lit', 'Front-Lit'),
        ('Back-Lit', 'Back-Lit'),
        ('Digital', 'Digital'),
    ]

    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name='media_assets')
    media_asset_code = models.CharField(max_length=50)
    media_type = models.CharField(max_length=100)
    category = models.CharField(max_length=20, choices=CATEGORY_CHOICES, default='OOH')
    city = models.CharField(max_length=100)
    area = models.CharField(max_length=200)
    location = models.CharField(max_length=500)
    district = models.CharField(max_length=100, blank=True)
    state = models.CharField(max_length=100, blank=True)
    direction = models.CharField(max_length=100, blank=True)
    illumination_type = models.CharField(max_length=20, choices=ILLUMINATION_CHOICES, default='Non-Lit')
    latitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    longitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)

    dimensions = models.CharField(max_length=50)
    is_multi_face = models.BooleanField(default=False)
    faces = models.JSONField(default=list, blank=True)
    total_sqft = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))

    card_rate = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    base_rate = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    printing_rate_default = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    mounting_rate_default = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='Available')
    ownership = models.CharField(max_length=10, choices=OWNERSHIP_CHOICES, default='own')
    booked_from = models.DateField(null=True, blank=True)
    booked_to = models.DateField(null=True, blank=True)
    is_public = models.BooleanField(default=True)

    qr_code = models.ImageField(upload_to='qr_codes/', null=True, blank=True)
    image = models.ImageField(upload_to='assets/', null=True, blank=True)
    search_tokens = models.JSONField(default=list, blank=True)
    search_text = models.TextField(blank=True, default='')
    duplicate_group_id = models.CharField(max_length=64, null=True, blank=True, db_index=True)

    # Electricity connection, for illuminated assets
    unique_service_number = models.CharField(max_length=50, blank=True, null=True)
    service_number = models.CharField(max_length=50, blank=True, null=True)
    consumer_name = models.CharField(max_length=200, blank=True, null=True)
    ero = models.CharField(max_length=100, blank=True, null=True)
    section_name = models.CharField(max_length=100, blank=True, null=True)

    notes = models.TextField(blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='created_assets')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.media_asset_code} - {self.location}"

    @property
    def is_illuminated(self):
        return self.illumination_type in ('Front-Lit', 'Back-Lit', 'Digital')

    def refresh_derived_fields(self, recompute_sqft=True):
        """Faces, multi-face flag, total sqft and search tokens from the editable fields"""
        from .search import build_search_tokens

        self.faces = faces_as_json(self.dimensions)
        self.is_multi_face = len(self.faces) > 1
        if recompute_sqft or not self.total_sqft:
            self.total_sqft = calculate_total_sqft(self.dimensions)
        self.search_tokens = build_search_tokens(self)
        self.search_text = ' '.join(self.search_tokens)

    def save(self, *args, **kwargs):
        recompute = not getattr(self, '_explicit_total_sqft', False)
        self.refresh_derived_fields(recompute_sqft=recompute)
        super().save(*args, **kwargs)

    class Meta:
        db_table = 'media_assets'
        ordering = ['media_asset_code']
        unique_together = [['company', 'media_asset_code']]
