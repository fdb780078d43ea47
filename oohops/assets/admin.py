from django.contrib import admin
from .models import MediaAsset


@admin.register(MediaAsset)
class MediaAssetAdmin(admin.ModelAdmin):
    list_display = ['media_asset_code', 'company', 'media_type', 'city', 'area', 'dimensions', 'total_sqft', 'card_rate', 'status']
    list_filter = ['status', 'media_type', 'city', 'illumination_type', 'company']
    search_fields = ['media_asset_code', 'location', 'area', 'city', 'search_text']
    readonly_fields = ['faces', 'is_multi_face', 'search_tokens', 'search_text', 'duplicate_group_id', 'created_at', 'updated_at']
