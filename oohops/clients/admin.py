from django.contrib import admin
from .models import Client, ClientContact


class ClientContactInline(admin.TabularInline):
    model = ClientContact
    extra = 0


@admin.register(Client)
class ClientAdmin(admin.ModelAdmin):
    list_display = ['client_code', 'name', 'client_type', 'company', 'city', 'gst_number', 'is_active']
    list_filter = ['client_type', 'is_active', 'company']
    search_fields = ['client_code', 'name', 'company_name', 'email', 'gst_number']
    inlines = [ClientContactInline]
