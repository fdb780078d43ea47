from django.contrib import admin
from .models import Campaign, CampaignAsset, ProofPhoto


class CampaignAssetInline(admin.TabularInline):
    model = CampaignAsset
    extra = 0
    raw_id_fields = ['asset', 'mounter']
    fields = ['asset', 'booking_start_date', 'booking_end_date', 'negotiated_rate', 'rent_amount', 'installation_status', 'mounter']


@admin.register(Campaign)
class CampaignAdmin(admin.ModelAdmin):
    list_display = ['campaign_code', 'campaign_name', 'client', 'company', 'status', 'start_date', 'end_date', 'grand_total']
    list_filter = ['status', 'billing_cycle', 'company']
    search_fields = ['campaign_code', 'campaign_name', 'client__name']
    inlines = [CampaignAssetInline]


@admin.register(ProofPhoto)
class ProofPhotoAdmin(admin.ModelAdmin):
    list_display = ['campaign_asset', 'photo_type', 'approval_status', 'uploaded_by', 'uploaded_at']
    list_filter = ['photo_type', 'approval_status']
