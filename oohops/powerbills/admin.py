from django.contrib import admin
from .models import AssetPowerBill, PowerBillJob


@admin.register(AssetPowerBill)
class AssetPowerBillAdmin(admin.ModelAdmin):
    list_display = ['asset', 'company', 'bill_month', 'bill_amount', 'total_due', 'payment_status', 'is_anomaly', 'source']
    list_filter = ['payment_status', 'is_anomaly', 'source', 'company']
    search_fields = ['asset__media_asset_code', 'unique_service_number', 'consumer_name']
    raw_id_fields = ['asset']


@admin.register(PowerBillJob)
class PowerBillJobAdmin(admin.ModelAdmin):
    list_display = ['job_type', 'asset', 'company', 'job_status', 'created_at', 'completed_at']
    list_filter = ['job_status', 'job_type']
    readonly_fields = ['result', 'error_message']
