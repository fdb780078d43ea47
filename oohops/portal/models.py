from django.db import models
from django.utils import timezone
from oohops.core.models import Company, User
from oohops.clients.models import Client


class PortalUser(models.Model):
    """A contact of a client allowed to sign in to the client portal"""
    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name='portal_users')
    client = models.ForeignKey(Client, on_delete=models.CASCADE, related_name='portal_users')
    email = models.EmailField()
    name = models.CharField(max_length=200, blank=True)
    phone = models.CharField(max_length=20, blank=True)
    is_active = models.BooleanField(default=True)
    last_login_at = models.DateTimeField(null=True, blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='created_portal_users')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    # Request principal for portal endpoints
    is_authenticated = True
    is_anonymous = False

    def __str__(self):
        return f"{self.email} ({self.client.name})"

    class Meta:
        db_table = 'portal_users'
        ordering = ['email']
        unique_together = [['client', 'email']]


class MagicLinkToken(models.Model):
    """Single-use sign-in link; only the SHA-256 hash of the token is stored"""
    portal_user = models.ForeignKey(PortalUser, on_delete=models.CASCADE, related_name='magic_links')
    token_hash = models.CharField(max_length=64, unique=True)
    expires_at = models.DateTimeField()
    used_at = models.DateTimeField(null=True, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"Magic link for {self.portal_user.email}"

    @property
    def is_valid(self):
        return self.used_at is None and self.expires_at > timezone.now()

    class Meta:
        db_table = 'portal_magic_links'
        ordering = ['-created_at']
