from rest_framework import serializers
from decimal import Decimal
from .models import MediaAsset
from .dimensions import format_dimensions

MAX_RATE = Decimal('99999999')


class MediaAssetSerializer(serializers.ModelSerializer):
    dimensions_display = serializers.SerializerMethodField()
    qr_code_url = serializers.SerializerMethodField()

    class Meta:
        model = MediaAsset
        fields = [
            'id', 'media_asset_code', 'media_type', 'category', 'city', 'area', 'location', 'district', 'state',
            'direction', 'illumination_type', 'latitude', 'longitude',
            'dimensions', 'dimensions_display', 'is_multi_face', 'faces', 'total_sqft',
            'card_rate', 'base_rate', 'printing_rate_default', 'mounting_rate_default',
            'status', 'ownership', 'booked_from', 'booked_to', 'is_public',
            'qr_code_url', 'image', 'search_tokens', 'duplicate_group_id',
            'unique_service_number', 'service_number', 'consumer_name', 'ero', 'section_name',
            'notes', 'created_at', 'updated_at',
        ]
        read_only_fields = [
            'media_asset_code', 'is_multi_face', 'faces', 'booked_from', 'booked_to',
            'search_tokens', 'duplicate_group_id', 'created_at', 'updated_at',
        ]
        extra_kwargs = {
            'total_sqft': {'required': False},
        }

    def get_dimensions_display(self, obj):
        return format_dimensions(obj.dimensions)

    def get_qr_code_url(self, obj):
        return obj.qr_code.url if obj.qr_code else None

    def _length(self, value, field, minimum, maximum):
        value = (value or '').strip()
        if len(value) < minimum:
            raise serializers.ValidationError(f"{field} must be at least {minimum} characters")
        if len(value) > maximum:
            raise serializers.ValidationError(f"{field} must be at most {maximum} characters")
        return value

    def validate_location(self, value):
        return self._length(value, 'Location', 3, 500)

    def validate_area(self, value):
        return self._length(value, 'Area', 2, 200)

    def validate_city(self, value):
        return self._length(value, 'City', 2, 100)

    def validate_media_type(self, value):
        return self._length(value, 'Media type', 1, 100)

    def validate_dimensions(self, value):
        return self._length(value, 'Dimensions', 3, 50)

    def validate_card_rate(self, value):
        if value < 0 or value > MAX_RATE:
            raise serializers.ValidationError('Card rate must be between 0 and 99,999,999')
        return value

    def validate_base_rate(self, value):
        if value < 0 or value > MAX_RATE:
            raise serializers.ValidationError('Base rate must be between 0 and 99,999,999')
        return value

    def validate_latitude(self, value):
        if value is not None and not (Decimal('-90') <= value <= Decimal('90')):
            raise serializers.ValidationError('Latitude must be between -90 and 90')
        return value

    def validate_longitude(self, value):
        if value is not None and not (Decimal('-180') <= value <= Decimal('180')):
            raise serializers.ValidationError('Longitude must be between -180 and 180')
        return value

    def validate(self, attrs):
        card = attrs.get('card_rate', getattr(self.instance, 'card_rate', Decimal('0')))
        base = attrs.get('base_rate', getattr(self.instance, 'base_rate', Decimal('0')))
        if base and card and base > card:
            raise serializers.ValidationError({'base_rate': 'Base rate cannot exceed the card rate'})
        return attrs

    def _save_with_sqft(self, instance, validated_data):
        explicit = validated_data.get('total_sqft')
        instance._explicit_total_sqft = bool(explicit and explicit > 0)
        return instance

    def create(self, validated_data):
        instance = MediaAsset(**validated_data)
        self._save_with_sqft(instance, validated_data)
        instance.save()
        return instance

    def update(self, instance, validated_data):
        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        self._save_with_sqft(instance, validated_data)
        instance.save()
        return instance


class MediaAssetListSerializer(serializers.ModelSerializer):
    dimensions_display = serializers.SerializerMethodField()

    class Meta:
        model = MediaAsset
        fields = ['id', 'media_asset_code', 'media_type', 'city', 'area', 'location', 'dimensions',
                  'dimensions_display', 'total_sqft', 'card_rate', 'illumination_type', 'status',
                  'booked_from', 'booked_to']

    def get_dimensions_display(self, obj):
        return format_dimensions(obj.dimensions)


class DuplicateCheckSerializer(serializers.Serializer):
    city = serializers.CharField()
    location = serializers.CharField()
    media_type = serializers.CharField()
    latitude = serializers.DecimalField(max_digits=9, decimal_places=6, required=False, allow_null=True)
    longitude = serializers.DecimalField(max_digits=9, decimal_places=6, required=False, allow_null=True)
    exclude_id = serializers.IntegerField(required=False)
