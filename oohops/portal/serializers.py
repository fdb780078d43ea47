from rest_framework import serializers
from .models import PortalUser


class PortalUserSerializer(serializers.ModelSerializer):
    client_name = serializers.CharField(source='client.name', read_only=True)

    class Meta:
        model = PortalUser
        fields = ['id', 'client', 'client_name', 'email', 'name', 'phone', 'is_active', 'last_login_at',
                  'created_at', 'updated_at']
        read_only_fields = ['client', 'last_login_at', 'created_at', 'updated_at']

    def validate_email(self, value):
        value = value.strip().lower()
        client = self.context.get('client') or getattr(self.instance, 'client', None)
        duplicates = PortalUser.objects.filter(client=client, email__iexact=value)
        if self.instance is not None:
            duplicates = duplicates.exclude(pk=self.instance.pk)
        if client is not None and duplicates.exists():
            raise serializers.ValidationError('This email already has portal access for the client')
        return value


class MagicLinkRequestSerializer(serializers.Serializer):
    email = serializers.EmailField()


class MagicLinkVerifySerializer(serializers.Serializer):
    token = serializers.CharField(max_length=200)


class PortalProfileSerializer(serializers.ModelSerializer):
    client_name = serializers.CharField(source='client.name', read_only=True)
    company_name = serializers.CharField(source='company.name', read_only=True)

    class Meta:
        model = PortalUser
        fields = ['id', 'email', 'name', 'client', 'client_name', 'company', 'company_name', 'last_login_at']
