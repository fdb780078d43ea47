from django.contrib import admin
from .models import PortalUser, MagicLinkToken


@admin.register(PortalUser)
class PortalUserAdmin(admin.ModelAdmin):
    list_display = ['email', 'name', 'client', 'company', 'is_active', 'last_login_at']
    list_filter = ['is_active', 'company']
    search_fields = ['email', 'name', 'client__name']


@admin.register(MagicLinkToken)
class MagicLinkTokenAdmin(admin.ModelAdmin):
    list_display = ['portal_user', 'created_at', 'expires_at', 'used_at', 'ip_address']
    readonly_fields = ['token_hash']
