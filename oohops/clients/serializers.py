import re
from rest_framework import serializers
from .models import Client, ClientContact

GST_PATTERN = re.compile(r'^[0-9]{2}[A-Z]{5}[0-9]{4}[A-Z][1-9A-Z]Z[0-9A-Z]$')
PHONE_PATTERN = re.compile(r'^[0-9+\-\s()]{10,20}$')


def validate_phone_value(value):
    if value and not PHONE_PATTERN.match(value):
        raise serializers.ValidationError('Enter a valid phone number (10-20 digits)')
    return value


class ClientContactSerializer(serializers.ModelSerializer):
    class Meta:
        model = ClientContact
        fields = ['id', 'name', 'designation', 'email', 'phone', 'is_primary', 'created_at']

    def validate_phone(self, value):
        return validate_phone_value(value)


class ClientSerializer(serializers.ModelSerializer):
    contacts = ClientContactSerializer(many=True, read_only=True)
    created_by_username = serializers.CharField(source='created_by.username', read_only=True)

    class Meta:
        model = Client
        fields = [
            'id', 'client_code', 'name', 'client_type', 'company_name', 'email', 'phone', 'gst_number',
            'address', 'city', 'state', 'state_code', 'contact_person', 'notes', 'is_active',
            'contacts', 'created_by_username', 'created_at', 'updated_at'
        ]
        read_only_fields = ['client_code', 'created_at', 'updated_at']

    def validate_name(self, value):
        value = (value or '').strip()
        if len(value) < 2 or len(value) > 100:
            raise serializers.ValidationError('Name must be between 2 and 100 characters')
        return value

    def validate_phone(self, value):
        return validate_phone_value(value)

    def validate_gst_number(self, value):
        if not value:
            return None
        value = value.strip().upper()
        if not GST_PATTERN.match(value):
            raise serializers.ValidationError('Invalid GST number format')
        return value

    def validate_state_code(self, value):
        return (value or '').strip().upper()


class ClientListSerializer(serializers.ModelSerializer):
    class Meta:
        model = Client
        fields = ['id', 'client_code', 'name', 'client_type', 'company_name', 'email', 'phone', 'city', 'state', 'is_active']
