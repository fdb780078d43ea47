from rest_framework import serializers
from oohops.assets.models import MediaAsset
from oohops.assets.serializers import MediaAssetListSerializer
from oohops.clients.models import Client
from oohops.pricing.calculator import BILLING_MODES, PRORATA_30
from .models import Campaign, CampaignAsset, ProofPhoto
from .photos import derive_latest_photos


class ProofPhotoSerializer(serializers.ModelSerializer):
    image_url = serializers.SerializerMethodField()
    uploaded_by_username = serializers.CharField(source='uploaded_by.username', read_only=True)

    class Meta:
        model = ProofPhoto
        fields = [
            'id', 'campaign_asset', 'photo_type', 'image', 'image_url', 'latitude', 'longitude',
            'client_upload_id', 'approval_status', 'rejection_reason', 'uploaded_by',
            'uploaded_by_username', 'uploaded_at', 'reviewed_by', 'reviewed_at',
        ]
        read_only_fields = ['campaign_asset', 'approval_status', 'rejection_reason', 'uploaded_by',
                            'uploaded_at', 'reviewed_by', 'reviewed_at']

    def get_image_url(self, obj):
        if not obj.image:
            return None
        request = self.context.get('request')
        return request.build_absolute_uri(obj.image.url) if request else obj.image.url


class PhotoUploadSerializer(serializers.Serializer):
    image = serializers.ImageField()
    photo_type = serializers.CharField(required=False, allow_blank=True)
    client_upload_id = serializers.CharField(required=False, allow_blank=True, max_length=64)
    latitude = serializers.DecimalField(max_digits=9, decimal_places=6, required=False, allow_null=True)
    longitude = serializers.DecimalField(max_digits=9, decimal_places=6, required=False, allow_null=True)


class PhotoReviewSerializer(serializers.Serializer):
    action = serializers.ChoiceField(choices=['approve', 'reject'])
    reason = serializers.CharField(required=False, allow_blank=True, default='')

    def validate(self, attrs):
        if attrs['action'] == 'reject' and not attrs.get('reason'):
            raise serializers.ValidationError({'reason': 'A reason is required when rejecting a photo'})
        return attrs


class CampaignAssetSerializer(serializers.ModelSerializer):
    media_asset_code = serializers.CharField(source='asset.media_asset_code', read_only=True)
    mounter_username = serializers.CharField(source='mounter.username', read_only=True)
    photo_count = serializers.SerializerMethodField()

    class Meta:
        model = CampaignAsset
        fields = [
            'id', 'campaign', 'asset', 'media_asset_code', 'location', 'city', 'area', 'media_type',
            'dimensions', 'total_sqft', 'illumination_type', 'card_rate', 'negotiated_rate',
            'printing_charges', 'mounting_charges', 'booking_start_date', 'booking_end_date',
            'booked_days', 'billing_mode', 'daily_rate', 'rent_amount', 'installation_status',
            'mounter', 'mounter_username', 'assigned_at', 'completed_at', 'notes', 'photo_count',
        ]
        read_only_fields = fields

    def get_photo_count(self, obj):
        return obj.photos.count()


class CampaignAssetLineSerializer(serializers.Serializer):
    """Input line for direct campaign creation"""
    asset = serializers.PrimaryKeyRelatedField(queryset=MediaAsset.objects.all())
    start_date = serializers.DateField(required=False)
    end_date = serializers.DateField(required=False)
    card_rate = serializers.DecimalField(max_digits=12, decimal_places=2, required=False)
    negotiated_rate = serializers.DecimalField(max_digits=12, decimal_places=2, required=False)
    printing_charges = serializers.DecimalField(max_digits=12, decimal_places=2, required=False)
    mounting_charges = serializers.DecimalField(max_digits=12, decimal_places=2, required=False)
    billing_mode = serializers.ChoiceField(choices=BILLING_MODES, default=PRORATA_30)
    daily_rate = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True)

    def validate_asset(self, value):
        company = self.context.get('company')
        if company is not None and value.company_id != company.pk:
            raise serializers.ValidationError('Asset not found')
        return value


class CampaignCreateSerializer(serializers.Serializer):
    client = serializers.PrimaryKeyRelatedField(queryset=Client.objects.all())
    campaign_name = serializers.CharField(max_length=200)
    start_date = serializers.DateField()
    end_date = serializers.DateField()
    gst_percent = serializers.DecimalField(max_digits=5, decimal_places=2, required=False)
    manual_discount_amount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, min_value=0)
    billing_cycle = serializers.ChoiceField(choices=['one_time', 'monthly'], default='one_time')
    notes = serializers.CharField(required=False, allow_blank=True, default='')
    assets = CampaignAssetLineSerializer(many=True)

    def validate_client(self, value):
        company = self.context.get('company')
        if company is not None and value.company_id != company.pk:
            raise serializers.ValidationError('Client not found')
        return value

    def validate(self, attrs):
        if attrs['end_date'] < attrs['start_date']:
            raise serializers.ValidationError({'end_date': 'End date cannot be before start date'})
        if not attrs['assets']:
            raise serializers.ValidationError({'assets': 'At least one asset is required'})
        asset_ids = [line['asset'].pk for line in attrs['assets']]
        if len(asset_ids) != len(set(asset_ids)):
            raise serializers.ValidationError({'assets': 'An asset is listed more than once'})
        return attrs


class CampaignSerializer(serializers.ModelSerializer):
    client_name = serializers.CharField(source='client.name', read_only=True)
    plan_code = serializers.CharField(source='plan.plan_code', read_only=True)
    campaign_assets = CampaignAssetSerializer(many=True, read_only=True)

    class Meta:
        model = Campaign
        fields = [
            'id', 'campaign_code', 'client', 'client_name', 'plan', 'plan_code', 'campaign_name',
            'status', 'start_date', 'end_date', 'gst_percent', 'manual_discount_amount',
            'billing_cycle', 'display_cost', 'printing_total', 'mounting_total', 'gross_amount',
            'taxable_amount', 'gst_amount', 'grand_total', 'total_assets', 'public_token',
            'notes', 'proofs_notified_at', 'campaign_assets', 'created_at', 'updated_at',
        ]
        read_only_fields = [
            'campaign_code', 'client', 'plan', 'status', 'start_date', 'end_date', 'display_cost',
            'printing_total', 'mounting_total', 'gross_amount', 'taxable_amount', 'gst_amount',
            'grand_total', 'total_assets', 'public_token', 'proofs_notified_at', 'created_at', 'updated_at',
        ]


class CampaignListSerializer(serializers.ModelSerializer):
    client_name = serializers.CharField(source='client.name', read_only=True)

    class Meta:
        model = Campaign
        fields = ['id', 'campaign_code', 'campaign_name', 'client', 'client_name', 'status',
                  'start_date', 'end_date', 'total_assets', 'grand_total', 'billing_cycle']


class AssetBookingSerializer(serializers.ModelSerializer):
    """A campaign booking seen from the asset"""
    campaign_code = serializers.CharField(source='campaign.campaign_code', read_only=True)
    campaign_name = serializers.CharField(source='campaign.campaign_name', read_only=True)
    campaign_status = serializers.CharField(source='campaign.status', read_only=True)
    client_name = serializers.CharField(source='campaign.client.name', read_only=True)

    class Meta:
        model = CampaignAsset
        fields = ['id', 'campaign', 'campaign_code', 'campaign_name', 'campaign_status', 'client_name',
                  'booking_start_date', 'booking_end_date', 'negotiated_rate', 'installation_status']


class AvailabilityAssetSerializer(MediaAssetListSerializer):
    availability_status = serializers.CharField(read_only=True)
    available_from = serializers.DateField(read_only=True)
    current_booking = serializers.DictField(read_only=True, allow_null=True)
    all_bookings = serializers.ListField(read_only=True)

    class Meta(MediaAssetListSerializer.Meta):
        fields = list(MediaAssetListSerializer.Meta.fields) + [
            'availability_status', 'available_from', 'current_booking', 'all_bookings',
        ]


class MounterTaskSerializer(serializers.ModelSerializer):
    campaign_code = serializers.CharField(source='campaign.campaign_code', read_only=True)
    campaign_name = serializers.CharField(source='campaign.campaign_name', read_only=True)
    client_name = serializers.CharField(source='campaign.client.name', read_only=True)
    media_asset_code = serializers.CharField(source='asset.media_asset_code', read_only=True)
    latitude = serializers.DecimalField(source='asset.latitude', max_digits=9, decimal_places=6, read_only=True)
    longitude = serializers.DecimalField(source='asset.longitude', max_digits=9, decimal_places=6, read_only=True)
    missing_proofs = serializers.SerializerMethodField()

    class Meta:
        model = CampaignAsset
        fields = ['id', 'campaign', 'campaign_code', 'campaign_name', 'client_name', 'media_asset_code',
                  'location', 'city', 'area', 'media_type', 'dimensions', 'latitude', 'longitude',
                  'booking_start_date', 'booking_end_date', 'installation_status', 'assigned_at',
                  'missing_proofs']

    def get_missing_proofs(self, obj):
        latest = derive_latest_photos(obj.photos.exclude(approval_status='rejected'))
        return [photo_type for photo_type, photo in latest.items() if photo is None]


class PublicCampaignSerializer(serializers.ModelSerializer):
    """Client-facing tracking view; no rates"""
    client_name = serializers.CharField(source='client.name', read_only=True)
    assets = serializers.SerializerMethodField()

    class Meta:
        model = Campaign
        fields = ['campaign_code', 'campaign_name', 'client_name', 'status', 'start_date', 'end_date',
                  'total_assets', 'assets']

    def get_assets(self, obj):
        request = self.context.get('request')
        rows = []
        for ca in obj.campaign_assets.select_related('asset').prefetch_related('photos'):
            latest = derive_latest_photos(p for p in ca.photos.all() if p.approval_status != 'rejected')
            photos = {}
            for photo_type, photo in latest.items():
                if photo is None:
                    photos[photo_type] = None
                else:
                    photos[photo_type] = request.build_absolute_uri(photo.image.url) if request else photo.image.url
            rows.append({
                'media_asset_code': ca.asset.media_asset_code,
                'location': ca.location,
                'city': ca.city,
                'area': ca.area,
                'media_type': ca.media_type,
                'dimensions': ca.dimensions,
                'booking_start_date': ca.booking_start_date,
                'booking_end_date': ca.booking_end_date,
                'installation_status': ca.installation_status,
                'photos': photos,
            })
        return rows
