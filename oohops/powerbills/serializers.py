from rest_framework import serializers
from oohops.assets.models import MediaAsset
from .models import AssetPowerBill, PowerBillJob
from .services import normalize_bill_month


class BillMonthField(serializers.Field):
    """Accepts YYYY-MM or any YYYY-MM-DD in the month, stores the month start"""

    def to_internal_value(self, data):
        month = normalize_bill_month(data)
        if month is None:
            raise serializers.ValidationError('Enter the bill month as YYYY-MM')
        return month

    def to_representation(self, value):
        return f'{value:%Y-%m}'


class AssetPowerBillSerializer(serializers.ModelSerializer):
    media_asset_code = serializers.CharField(source='asset.media_asset_code', read_only=True)
    location = serializers.CharField(source='asset.location', read_only=True)
    bill_month = BillMonthField()
    expense_code = serializers.SerializerMethodField()

    class Meta:
        model = AssetPowerBill
        fields = [
            'id', 'asset', 'media_asset_code', 'location', 'bill_month', 'unique_service_number',
            'consumer_name', 'bill_date', 'due_date', 'bill_amount', 'energy_charges', 'fixed_charges',
            'arrears', 'total_due', 'payment_status', 'paid_date', 'payment_reference', 'is_anomaly',
            'anomaly_type', 'anomaly_details', 'source', 'expense_code', 'notes', 'created_at', 'updated_at',
        ]
        read_only_fields = [
            'payment_status', 'paid_date', 'payment_reference', 'is_anomaly', 'anomaly_type',
            'anomaly_details', 'source', 'created_at', 'updated_at',
        ]

    def get_expense_code(self, obj):
        expense = obj.expenses.first()
        return expense.expense_code if expense else None


class PowerBillCreateSerializer(serializers.Serializer):
    """Manual bill entry"""
    asset = serializers.PrimaryKeyRelatedField(queryset=MediaAsset.objects.all())
    bill_month = BillMonthField()
    bill_date = serializers.DateField(required=False, allow_null=True)
    due_date = serializers.DateField(required=False, allow_null=True)
    bill_amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)
    energy_charges = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False)
    fixed_charges = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False)
    arrears = serializers.DecimalField(max_digits=12, decimal_places=2, required=False)
    total_due = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False)
    unique_service_number = serializers.CharField(max_length=50, required=False, allow_blank=True)
    consumer_name = serializers.CharField(max_length=200, required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)

    def validate_asset(self, value):
        company = self.context.get('company')
        if company is not None and value.company_id != company.pk:
            raise serializers.ValidationError('Asset not found')
        return value

    def validate(self, attrs):
        if AssetPowerBill.objects.filter(asset=attrs['asset'], bill_month=attrs['bill_month']).exists():
            raise serializers.ValidationError(
                {'bill_month': f"A bill for {attrs['bill_month']:%Y-%m} already exists for this asset"}
            )
        return attrs


class MarkPaidSerializer(serializers.Serializer):
    paid_date = serializers.DateField(required=False)
    payment_reference = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')


class PowerBillJobSerializer(serializers.ModelSerializer):
    media_asset_code = serializers.CharField(source='asset.media_asset_code', read_only=True, default=None)

    class Meta:
        model = PowerBillJob
        fields = ['id', 'asset', 'media_asset_code', 'job_type', 'job_status', 'result', 'error_message',
                  'created_at', 'completed_at']
