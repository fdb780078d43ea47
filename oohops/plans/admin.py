from django.contrib import admin
from .models import Plan, PlanItem, PlanApproval


class PlanItemInline(admin.TabularInline):
    model = PlanItem
    extra = 0
    raw_id_fields = ['asset']


class PlanApprovalInline(admin.TabularInline):
    model = PlanApproval
    extra = 0


@admin.register(Plan)
class PlanAdmin(admin.ModelAdmin):
    list_display = ['plan_code', 'plan_name', 'client', 'company', 'status', 'start_date', 'end_date', 'grand_total']
    list_filter = ['status', 'plan_type', 'company']
    search_fields = ['plan_code', 'plan_name', 'client__name']
    inlines = [PlanItemInline, PlanApprovalInline]
