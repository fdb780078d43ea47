from django.contrib.auth.models import AbstractUser
from django.db import models
from django.utils.text import slugify
from decimal import Decimal


class User(AbstractUser):
    """Extended user model with additional fields"""
    phone = models.CharField(max_length=20, blank=True, null=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'users'


class Company(models.Model):
    """Tenant: a media owner, an agency, or the platform operator"""
    TYPE_CHOICES = [
        ('media_owner', 'Media Owner'),
        ('agency', 'Agency'),
        ('platform_admin', 'Platform Admin'),
    ]
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('active', 'Active'),
        ('suspended', 'Suspended'),
        ('cancelled', 'Cancelled'),
    ]

    name = models.CharField(max_length=200)
    slug = models.SlugField(max_length=220, unique=True)
    company_type = models.CharField(max_length=20, choices=TYPE_CHOICES, default='media_owner')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending')
    gstin = models.CharField(max_length=15, blank=True, null=True)
    pan = models.CharField(max_length=10, blank=True, null=True)
    address = models.TextField(blank=True)
    city = models.CharField(max_length=100, blank=True)
    state = models.CharField(max_length=100, blank=True)
    phone = models.CharField(max_length=20, blank=True, null=True)
    email = models.EmailField(blank=True, null=True)
    default_gst_percent = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('18.00'))
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        if not self.slug:
            base = slugify(self.name) or 'company'
            slug = base
            suffix = 2
            while Company.objects.filter(slug=slug).exclude(pk=self.pk).exists():
                slug = f"{base}-{suffix}"
                suffix += 1
            self.slug = slug
        super().save(*args, **kwargs)

    @property
    def is_platform_admin(self):
        return self.company_type == 'platform_admin'

    class Meta:
        db_table = 'companies'
        verbose_name_plural = 'companies'
        ordering = ['name']


class CompanyUser(models.Model):
    """Membership of a user in a company, carrying the user's role there"""
    ROLE_CHOICES = [
        ('admin', 'Admin'),
        ('manager', 'Manager'),
        ('finance', 'Finance'),
        ('sales', 'Sales'),
        ('operations', 'Operations'),
        ('installation', 'Installation'),
        ('monitoring', 'Monitoring'),
        ('monitor', 'Monitor'),
        ('user', 'User'),
    ]
    STATUS_CHOICES = [
        ('active', 'Active'),
        ('invited', 'Invited'),
        ('suspended', 'Suspended'),
    ]

    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name='memberships')
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='memberships')
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default='user')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='active')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.user.username} @ {self.company.name} ({self.role})"

    class Meta:
        db_table = 'company_users'
        unique_together = [['company', 'user']]
        ordering = ['company', 'user']


class CompanySetting(models.Model):
    """Per-company settings"""
    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name='settings')
    key = models.CharField(max_length=100)
    value = models.TextField()
    description = models.TextField(blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.key

    class Meta:
        db_table = 'company_settings'
        unique_together = [['company', 'key']]
        ordering = ['key']


class CodeCounter(models.Model):
    """Sequence counters backing the human-readable document codes"""
    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name='code_counters')
    counter_type = models.CharField(max_length=30)
    counter_key = models.CharField(max_length=50)
    period = models.CharField(max_length=20)
    current_value = models.PositiveIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.counter_type}:{self.counter_key}:{self.period}={self.current_value}"

    class Meta:
        db_table = 'code_counters'
        unique_together = [['company', 'counter_type', 'counter_key', 'period']]


class AuditLog(models.Model):
    """Audit log for critical operations"""
    ACTION_CHOICES = [
        ('create', 'Create'),
        ('update', 'Update'),
        ('delete', 'Delete'),
        ('view', 'View'),
        ('export', 'Export'),
        ('login', 'Login'),
        ('rate_change', 'Rate Change'),
        ('plan_submit', 'Plan Submitted'),
        ('plan_approve', 'Plan Approved'),
        ('plan_reject', 'Plan Rejected'),
        ('plan_convert', 'Plan Converted'),
        ('campaign_status', 'Campaign Status Changed'),
        ('asset_book', 'Asset Booked'),
        ('asset_release', 'Asset Released'),
        ('mounter_assign', 'Mounter Assigned'),
        ('proof_upload', 'Proof Uploaded'),
        ('proof_review', 'Proof Reviewed'),
        ('invoice_create', 'Invoice Created'),
        ('invoice_send', 'Invoice Sent'),
        ('invoice_cancel', 'Invoice Cancelled'),
        ('payment_add', 'Payment Added'),
        ('credit_note_create', 'Credit Note Created'),
        ('credit_note_issue', 'Credit Note Issued'),
        ('credit_note_cancel', 'Credit Note Cancelled'),
        ('expense_create', 'Expense Created'),
        ('power_bill_add', 'Power Bill Added'),
        ('power_bill_paid', 'Power Bill Paid'),
        ('member_invite', 'Member Invited'),
        ('member_update', 'Member Updated'),
        ('member_remove', 'Member Removed'),
        ('company_status', 'Company Status Changed'),
    ]

    company = models.ForeignKey(Company, on_delete=models.SET_NULL, null=True, blank=True, related_name='audit_logs')
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='audit_logs')
    action = models.CharField(max_length=50, choices=ACTION_CHOICES)
    model_name = models.CharField(max_length=100)
    object_id = models.CharField(max_length=100)
    object_name = models.CharField(max_length=255, blank=True, null=True, help_text="Human-readable name of the object (e.g., asset code, invoice number)")
    object_reference = models.CharField(max_length=255, blank=True, null=True, help_text="Reference identifier (e.g., plan code, campaign code)")
    changes = models.JSONField(default=dict, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'audit_logs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['-created_at'], name='audit_logs_created_5b5b0d_idx'),
            models.Index(fields=['action'], name='audit_logs_action_2a9ff1_idx'),
            models.Index(fields=['model_name'], name='audit_logs_model_n_7f4c1e_idx'),
            models.Index(fields=['object_reference'], name='audit_logs_object__9c3d20_idx'),
        ]
