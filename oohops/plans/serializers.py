from rest_framework import serializers
from django.db import transaction
from oohops.assets.models import MediaAsset
from oohops.clients.models import Client
from oohops.pricing.calculator import PricingError, BILLING_MODES, PRORATA_30
from .models import Plan, PlanItem, PlanApproval
from .services import price_plan_item, recalculate_plan_totals


class PlanItemSerializer(serializers.ModelSerializer):
    media_asset_code = serializers.CharField(source='asset.media_asset_code', read_only=True)
    location = serializers.CharField(source='asset.location', read_only=True)
    city = serializers.CharField(source='asset.city', read_only=True)
    area = serializers.CharField(source='asset.area', read_only=True)
    media_type = serializers.CharField(source='asset.media_type', read_only=True)
    dimensions = serializers.CharField(source='asset.dimensions', read_only=True)
    total_sqft = serializers.DecimalField(source='asset.total_sqft', max_digits=10, decimal_places=2, read_only=True)
    illumination_type = serializers.CharField(source='asset.illumination_type', read_only=True)
    line_total = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)

    class Meta:
        model = PlanItem
        fields = [
            'id', 'asset', 'media_asset_code', 'location', 'city', 'area', 'media_type', 'dimensions',
            'total_sqft', 'illumination_type', 'card_rate', 'base_rate', 'sales_price',
            'printing_charges', 'mounting_charges', 'start_date', 'end_date', 'booked_days',
            'billing_mode', 'daily_rate', 'rent_amount', 'discount_value', 'discount_percent',
            'profit_value', 'profit_percent', 'line_total',
        ]


class PlanItemWriteSerializer(serializers.Serializer):
    """Input for one plan item; rates default from the asset"""
    asset = serializers.PrimaryKeyRelatedField(queryset=MediaAsset.objects.all())
    start_date = serializers.DateField(required=False)
    end_date = serializers.DateField(required=False)
    card_rate = serializers.DecimalField(max_digits=12, decimal_places=2, required=False)
    sales_price = serializers.DecimalField(max_digits=12, decimal_places=2, required=False)
    printing_charges = serializers.DecimalField(max_digits=12, decimal_places=2, required=False)
    mounting_charges = serializers.DecimalField(max_digits=12, decimal_places=2, required=False)
    billing_mode = serializers.ChoiceField(choices=BILLING_MODES, default=PRORATA_30)
    daily_rate = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True)

    def validate_asset(self, value):
        company = self.context.get('company')
        if company is not None and value.company_id != company.pk:
            raise serializers.ValidationError('Asset not found')
        return value


def build_plan_item(plan, data, instance=None):
    """Create or update a PlanItem from validated PlanItemWriteSerializer data"""
    asset = data['asset']
    item = instance or PlanItem(plan=plan, asset=asset)
    item.asset = asset
    item.start_date = data.get('start_date') or (instance.start_date if instance else plan.start_date)
    item.end_date = data.get('end_date') or (instance.end_date if instance else plan.end_date)
    item.card_rate = data.get('card_rate', item.card_rate if instance else asset.card_rate)
    item.base_rate = asset.base_rate
    item.sales_price = data.get('sales_price', item.sales_price if instance else item.card_rate)
    item.printing_charges = data.get('printing_charges', item.printing_charges if instance else asset.printing_rate_default)
    item.mounting_charges = data.get('mounting_charges', item.mounting_charges if instance else asset.mounting_rate_default)
    item.billing_mode = data.get('billing_mode', PRORATA_30)
    try:
        price_plan_item(item, data.get('daily_rate'))
    except PricingError as e:
        raise serializers.ValidationError({'items': [f"{asset.media_asset_code}: {str(e)}"]})
    item.save()
    return item


def save_plan_items(plan, items_data, company):
    seen = set()
    validated = []
    for index, item_data in enumerate(items_data):
        serializer = PlanItemWriteSerializer(data=item_data, context={'company': company})
        if not serializer.is_valid():
            raise serializers.ValidationError({'items': {index: serializer.errors}})
        asset = serializer.validated_data['asset']
        if asset.pk in seen:
            raise serializers.ValidationError({'items': [f"{asset.media_asset_code} is listed more than once"]})
        seen.add(asset.pk)
        validated.append(serializer.validated_data)

    plan.items.all().delete()
    return [build_plan_item(plan, data) for data in validated]


class PlanApprovalSerializer(serializers.ModelSerializer):
    approver_username = serializers.CharField(source='approver.username', read_only=True)

    class Meta:
        model = PlanApproval
        fields = ['id', 'level', 'required_role', 'status', 'requested_by', 'approver', 'approver_username', 'comments',
                  'acted_at', 'created_at']


class PlanSerializer(serializers.ModelSerializer):
    items = PlanItemSerializer(many=True, read_only=True)
    approvals = PlanApprovalSerializer(many=True, read_only=True)
    client_name = serializers.CharField(source='client.name', read_only=True)
    created_by_username = serializers.CharField(source='created_by.username', read_only=True)
    submitted_by_username = serializers.CharField(source='submitted_by.username', read_only=True)
    client = serializers.PrimaryKeyRelatedField(queryset=Client.objects.all())

    class Meta:
        model = Plan
        fields = [
            'id', 'plan_code', 'client', 'client_name', 'plan_name', 'plan_type', 'status',
            'start_date', 'end_date', 'gst_percent', 'manual_discount_amount',
            'display_cost', 'printing_total', 'mounting_total', 'gross_amount', 'taxable_amount',
            'gst_amount', 'grand_total', 'total_assets', 'share_token', 'notes',
            'created_by_username', 'submitted_by_username', 'submitted_at', 'approved_at', 'items', 'approvals',
            'created_at', 'updated_at',
        ]
        read_only_fields = [
            'plan_code', 'status', 'display_cost', 'printing_total', 'mounting_total', 'gross_amount',
            'taxable_amount', 'gst_amount', 'grand_total', 'total_assets', 'share_token',
            'submitted_at', 'approved_at', 'created_at', 'updated_at',
        ]

    def validate_client(self, value):
        company = self.context.get('company')
        if company is not None and value.company_id != company.pk:
            raise serializers.ValidationError('Client not found')
        return value

    def validate_manual_discount_amount(self, value):
        if value < 0:
            raise serializers.ValidationError('Discount cannot be negative')
        return value

    def validate(self, attrs):
        start = attrs.get('start_date', getattr(self.instance, 'start_date', None))
        end = attrs.get('end_date', getattr(self.instance, 'end_date', None))
        if start and end and end < start:
            raise serializers.ValidationError({'end_date': 'End date cannot be before start date'})
        if self.instance is not None and not self.instance.is_editable:
            raise serializers.ValidationError(f'Plan cannot be edited in status {self.instance.status}')
        return attrs

    def create(self, validated_data):
        items_data = self.context.get('items_data') or []
        with transaction.atomic():
            plan = Plan.objects.create(**validated_data)
            save_plan_items(plan, items_data, plan.company)
            recalculate_plan_totals(plan)
        return plan

    def update(self, instance, validated_data):
        items_data = self.context.get('items_data')
        dates_changed = any(
            f in validated_data and validated_data[f] != getattr(instance, f) for f in ('start_date', 'end_date')
        )
        with transaction.atomic():
            for attr, value in validated_data.items():
                setattr(instance, attr, value)
            instance.save()
            if items_data is not None:
                save_plan_items(instance, items_data, instance.company)
            elif dates_changed:
                # Clip item dates to the new plan range
                for item in instance.items.select_related('asset'):
                    item.start_date = max(item.start_date, instance.start_date)
                    item.end_date = min(item.end_date, instance.end_date)
                    if item.end_date < item.start_date:
                        item.start_date, item.end_date = instance.start_date, instance.end_date
                    build_plan_item(instance, {'asset': item.asset, 'billing_mode': item.billing_mode,
                                               'daily_rate': item.daily_rate if item.billing_mode == 'DAILY' else None},
                                    instance=item)
            recalculate_plan_totals(instance)
        return instance


class PlanListSerializer(serializers.ModelSerializer):
    client_name = serializers.CharField(source='client.name', read_only=True)

    class Meta:
        model = Plan
        fields = ['id', 'plan_code', 'plan_name', 'plan_type', 'client', 'client_name', 'status',
                  'start_date', 'end_date', 'total_assets', 'grand_total', 'created_at']


class PlanActionSerializer(serializers.Serializer):
    action = serializers.ChoiceField(choices=['approve', 'reject'])
    comments = serializers.CharField(required=False, allow_blank=True, default='')


class SharedPlanSerializer(serializers.ModelSerializer):
    """Public read-only view of a shared plan; no base rates or margins"""
    client_name = serializers.CharField(source='client.name', read_only=True)
    items = serializers.SerializerMethodField()

    class Meta:
        model = Plan
        fields = ['plan_code', 'plan_name', 'client_name', 'start_date', 'end_date', 'display_cost',
                  'printing_total', 'mounting_total', 'manual_discount_amount', 'taxable_amount',
                  'gst_percent', 'gst_amount', 'grand_total', 'total_assets', 'items']

    def get_items(self, obj):
        return [
            {
                'media_asset_code': item.asset.media_asset_code,
                'location': item.asset.location,
                'city': item.asset.city,
                'area': item.asset.area,
                'media_type': item.asset.media_type,
                'dimensions': item.asset.dimensions,
                'illumination_type': item.asset.illumination_type,
                'start_date': item.start_date,
                'end_date': item.end_date,
                'booked_days': item.booked_days,
                'monthly_rate': item.sales_price,
                'rent_amount': item.rent_amount,
                'printing_charges': item.printing_charges,
                'mounting_charges': item.mounting_charges,
            }
            for item in obj.items.select_related('asset')
        ]
