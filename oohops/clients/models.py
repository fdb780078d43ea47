from django.db import models
from oohops.core.models import Company, User


class Client(models.Model):
    """Advertiser or agency that books media"""
    CLIENT_TYPE_CHOICES = [
        ('Agency', 'Agency'),
        ('Direct', 'Direct'),
        ('Government', 'Government'),
        ('Corporate', 'Corporate'),
        ('Business', 'Business'),
        ('Individual', 'Individual'),
        ('Other', 'Other'),
    ]

    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name='clients')
    client_code = models.CharField(max_length=30)
    name = models.CharField(max_length=100)
    client_type = models.CharField(max_length=20, choices=CLIENT_TYPE_CHOICES, default='Direct')
    company_name = models.CharField(max_length=200, blank=True)
    email = models.EmailField(blank=True, null=True)
    phone = models.CharField(max_length=20, blank=True, null=True)
    gst_number = models.CharField(max_length=15, blank=True, null=True)
    address = models.TextField(blank=True)
    city = models.CharField(max_length=100, blank=True)
    state = models.CharField(max_length=100, blank=True)
    state_code = models.CharField(max_length=5, blank=True)
    contact_person = models.CharField(max_length=200, blank=True)
    notes = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='created_clients')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.client_code} - {self.name}"

    @property
    def primary_contact(self):
        return self.contacts.filter(is_primary=True).first()

    @property
    def contact_email(self):
        """Email used for notifications: the client's own, else the primary contact's"""
        if self.email:
            return self.email
        contact = self.primary_contact
        return contact.email if contact and contact.email else None

    class Meta:
        db_table = 'clients'
        ordering = ['name']
        unique_together = [['company', 'client_code']]


class ClientContact(models.Model):
    client = models.ForeignKey(Client, on_delete=models.CASCADE, related_name='contacts')
    name = models.CharField(max_length=200)
    designation = models.CharField(max_length=100, blank=True)
    email = models.EmailField(blank=True, null=True)
    phone = models.CharField(max_length=20, blank=True, null=True)
    is_primary = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.name} ({self.client.name})"

    def save(self, *args, **kwargs):
        if self.is_primary:
            ClientContact.objects.filter(client=self.client, is_primary=True).exclude(pk=self.pk).update(is_primary=False)
        super().save(*args, **kwargs)

    class Meta:
        db_table = 'client_contacts'
        ordering = ['-is_primary', 'name']
