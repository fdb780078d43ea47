from rest_framework import serializers
from oohops.clients.models import Client
from oohops.campaigns.models import Campaign
from .models import Invoice, InvoiceItem, Payment, CreditNote, CreditNoteItem, Expense, HSN_SAC_ADVERTISING
from .services import compute_expense_amounts


class InvoiceItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = InvoiceItem
        fields = [
            'id', 'campaign_asset', 'asset_code', 'description', 'location', 'media_type', 'dimensions',
            'total_sqft', 'hsn_sac', 'bill_start_date', 'bill_end_date', 'billable_days', 'rate_value',
            'base_amount', 'printing_cost', 'mounting_cost', 'line_total',
        ]
        read_only_fields = ['id', 'campaign_asset', 'line_total']


class InvoiceItemWriteSerializer(serializers.Serializer):
    """Manual invoice line; line_total = base + printing + mounting"""
    description = serializers.CharField(max_length=500)
    asset_code = serializers.CharField(max_length=50, required=False, allow_blank=True, default='')
    location = serializers.CharField(max_length=500, required=False, allow_blank=True, default='')
    media_type = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')
    dimensions = serializers.CharField(max_length=50, required=False, allow_blank=True, default='')
    hsn_sac = serializers.CharField(max_length=10, required=False, default=HSN_SAC_ADVERTISING)
    bill_start_date = serializers.DateField(required=False, allow_null=True)
    bill_end_date = serializers.DateField(required=False, allow_null=True)
    billable_days = serializers.IntegerField(required=False, min_value=0, default=0)
    rate_value = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, default=0)
    base_amount = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=0)
    printing_cost = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, default=0, min_value=0)
    mounting_cost = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, default=0, min_value=0)


class PaymentSerializer(serializers.ModelSerializer):
    recorded_by_username = serializers.CharField(source='recorded_by.username', read_only=True)
    invoice_number = serializers.CharField(source='invoice.invoice_number', read_only=True)

    class Meta:
        model = Payment
        fields = ['id', 'invoice', 'invoice_number', 'receipt_number', 'amount', 'payment_date', 'method', 'reference',
                  'notes', 'recorded_by', 'recorded_by_username', 'receipt_status', 'receipt_sent_at', 'created_at']
        read_only_fields = ['invoice', 'receipt_number', 'recorded_by', 'receipt_status', 'receipt_sent_at', 'created_at']


class PaymentCreateSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    payment_date = serializers.DateField(required=False)
    method = serializers.ChoiceField(choices=Payment.METHOD_CHOICES, default='bank_transfer')
    reference = serializers.CharField(required=False, allow_blank=True, default='')
    notes = serializers.CharField(required=False, allow_blank=True, default='')
    send_receipt = serializers.BooleanField(required=False, default=True)


class InvoiceSerializer(serializers.ModelSerializer):
    items = InvoiceItemSerializer(many=True, read_only=True)
    payments = PaymentSerializer(many=True, read_only=True)
    client_name = serializers.CharField(source='client.name', read_only=True)
    client = serializers.PrimaryKeyRelatedField(queryset=Client.objects.all())
    campaign = serializers.PrimaryKeyRelatedField(queryset=Campaign.objects.all(), required=False, allow_null=True)
    campaign_code = serializers.CharField(source='campaign.campaign_code', read_only=True)

    class Meta:
        model = Invoice
        fields = [
            'id', 'invoice_number', 'client', 'client_name', 'campaign', 'campaign_code', 'invoice_date',
            'due_date', 'period_start', 'period_end', 'status', 'sub_total', 'discount_amount',
            'gst_percent', 'gst_amount', 'total_amount', 'paid_amount', 'credit_amount', 'balance_due', 'notes', 'sent_at',
            'items', 'payments', 'created_at', 'updated_at',
        ]
        read_only_fields = [
            'invoice_number', 'status', 'sub_total', 'gst_amount', 'total_amount', 'paid_amount',
            'credit_amount', 'balance_due', 'sent_at', 'created_at', 'updated_at',
        ]
        extra_kwargs = {'due_date': {'required': False}}

    def validate_client(self, value):
        company = self.context.get('company')
        if company is not None and value.company_id != company.pk:
            raise serializers.ValidationError('Client not found')
        return value

    def validate_campaign(self, value):
        company = self.context.get('company')
        if value is not None and company is not None and value.company_id != company.pk:
            raise serializers.ValidationError('Campaign not found')
        return value

    def validate(self, attrs):
        if self.instance is not None and self.instance.status != 'Draft':
            raise serializers.ValidationError(f'Only Draft invoices can be edited (current status: {self.instance.status})')
        invoice_date = attrs.get('invoice_date', getattr(self.instance, 'invoice_date', None))
        due_date = attrs.get('due_date', getattr(self.instance, 'due_date', None))
        if invoice_date and due_date and due_date < invoice_date:
            raise serializers.ValidationError({'due_date': 'Due date cannot be before invoice date'})
        campaign = attrs.get('campaign')
        client = attrs.get('client', getattr(self.instance, 'client', None))
        if campaign is not None and client is not None and campaign.client_id != client.pk:
            raise serializers.ValidationError({'campaign': 'Campaign belongs to a different client'})
        return attrs


class InvoiceListSerializer(serializers.ModelSerializer):
    client_name = serializers.CharField(source='client.name', read_only=True)

    class Meta:
        model = Invoice
        fields = ['id', 'invoice_number', 'client', 'client_name', 'campaign', 'invoice_date', 'due_date',
                  'status', 'total_amount', 'paid_amount', 'credit_amount', 'balance_due']


class CreditNoteItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = CreditNoteItem
        fields = ['id', 'description', 'amount']


class CreditNoteSerializer(serializers.ModelSerializer):
    items = CreditNoteItemSerializer(many=True, read_only=True)
    invoice_number = serializers.CharField(source='invoice.invoice_number', read_only=True)
    client_name = serializers.CharField(source='client.name', read_only=True)
    created_by_username = serializers.CharField(source='created_by.username', read_only=True)

    class Meta:
        model = CreditNote
        fields = [
            'id', 'credit_note_number', 'invoice', 'invoice_number', 'client', 'client_name', 'credit_note_date',
            'reason', 'notes', 'status', 'sub_total', 'gst_percent', 'gst_mode', 'gst_amount', 'cgst_amount',
            'sgst_amount', 'igst_amount', 'total_amount', 'items', 'issued_at', 'cancelled_at',
            'created_by', 'created_by_username', 'created_at', 'updated_at',
        ]
        read_only_fields = fields


class CreditNoteItemWriteSerializer(serializers.Serializer):
    description = serializers.CharField(max_length=500)
    amount = serializers.DecimalField(max_digits=14, decimal_places=2)

    def validate_amount(self, value):
        if value <= 0:
            raise serializers.ValidationError('Amount must be greater than zero')
        return value


class CreditNoteCreateSerializer(serializers.Serializer):
    reason = serializers.ChoiceField(choices=CreditNote.REASON_CHOICES)
    notes = serializers.CharField(required=False, allow_blank=True, default='')
    credit_note_date = serializers.DateField(required=False)
    issue = serializers.BooleanField(required=False, default=False)
    items = CreditNoteItemWriteSerializer(many=True, allow_empty=False)


class GenerateInvoiceSerializer(serializers.Serializer):
    period_start = serializers.DateField(required=False)
    period_end = serializers.DateField(required=False)
    invoice_date = serializers.DateField(required=False)


class ExpenseSerializer(serializers.ModelSerializer):
    campaign_code = serializers.CharField(source='campaign.campaign_code', read_only=True)
    media_asset_code = serializers.CharField(source='asset.media_asset_code', read_only=True)

    class Meta:
        model = Expense
        fields = [
            'id', 'expense_code', 'category', 'vendor_name', 'campaign', 'campaign_code', 'asset',
            'media_asset_code', 'power_bill', 'amount', 'gst_percent', 'gst_amount', 'total_amount',
            'payment_status', 'paid_date', 'expense_date', 'bill_month', 'notes', 'created_at', 'updated_at',
        ]
        read_only_fields = ['expense_code', 'power_bill', 'gst_amount', 'total_amount', 'created_at', 'updated_at']

    def validate_amount(self, value):
        if value <= 0:
            raise serializers.ValidationError('Amount must be greater than zero')
        return value

    def validate_gst_percent(self, value):
        if value < 0 or value > 100:
            raise serializers.ValidationError('GST percent must be between 0 and 100')
        return value

    def validate(self, attrs):
        company = self.context.get('company')
        for field in ('campaign', 'asset'):
            related = attrs.get(field)
            if related is not None and company is not None and related.company_id != company.pk:
                raise serializers.ValidationError({field: 'Not found'})
        return attrs

    def _apply_gst(self, validated_data, instance=None):
        amount = validated_data.get('amount', getattr(instance, 'amount', 0))
        gst_percent = validated_data.get('gst_percent', getattr(instance, 'gst_percent', 0))
        validated_data['gst_amount'], validated_data['total_amount'] = compute_expense_amounts(amount, gst_percent)
        return validated_data

    def create(self, validated_data):
        return super().create(self._apply_gst(validated_data))

    def update(self, instance, validated_data):
        return super().update(instance, self._apply_gst(validated_data, instance))
