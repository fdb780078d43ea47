from rest_framework import serializers
from django.contrib.auth.password_validation import validate_password
from .models import User, Company, CompanyUser, CompanySetting, AuditLog


class UserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['id', 'username', 'email', 'first_name', 'last_name', 'phone', 'is_active', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']


class RegisterSerializer(serializers.ModelSerializer):
    """Self-service signup: creates the user and a pending company they administer"""
    password = serializers.CharField(write_only=True, validators=[validate_password])
    password_confirm = serializers.CharField(write_only=True)
    company_name = serializers.CharField(write_only=True, max_length=200)
    company_type = serializers.ChoiceField(
        write_only=True, choices=['media_owner', 'agency'], default='media_owner'
    )

    class Meta:
        model = User
        fields = ['username', 'email', 'password', 'password_confirm', 'first_name', 'last_name', 'phone',
                  'company_name', 'company_type']

    def validate(self, attrs):
        if attrs['password'] != attrs['password_confirm']:
            raise serializers.ValidationError({"password": "Passwords don't match"})
        return attrs

    def create(self, validated_data):
        validated_data.pop('password_confirm')
        password = validated_data.pop('password')
        company_name = validated_data.pop('company_name')
        company_type = validated_data.pop('company_type', 'media_owner')
        user = User.objects.create(**validated_data, is_active=True)
        user.set_password(password)
        user.save()
        company = Company.objects.create(name=company_name, company_type=company_type, email=user.email)
        CompanyUser.objects.create(company=company, user=user, role='admin', status='active')
        return user


class CompanySerializer(serializers.ModelSerializer):
    class Meta:
        model = Company
        fields = ['id', 'name', 'slug', 'company_type', 'status', 'gstin', 'pan', 'address', 'city', 'state',
                  'phone', 'email', 'default_gst_percent', 'created_at', 'updated_at']
        read_only_fields = ['slug', 'company_type', 'status', 'created_at', 'updated_at']


class CompanyUserSerializer(serializers.ModelSerializer):
    user = UserSerializer(read_only=True)
    company_name = serializers.CharField(source='company.name', read_only=True)

    class Meta:
        model = CompanyUser
        fields = ['id', 'company', 'company_name', 'user', 'role', 'status', 'created_at', 'updated_at']
        read_only_fields = ['company', 'created_at', 'updated_at']


class MemberInviteSerializer(serializers.Serializer):
    email = serializers.EmailField()
    username = serializers.CharField(max_length=150, required=False)
    first_name = serializers.CharField(max_length=150, required=False, allow_blank=True)
    last_name = serializers.CharField(max_length=150, required=False, allow_blank=True)
    role = serializers.ChoiceField(choices=[c[0] for c in CompanyUser.ROLE_CHOICES])
    password = serializers.CharField(write_only=True, required=False, validators=[validate_password])


class CompanySettingSerializer(serializers.ModelSerializer):
    class Meta:
        model = CompanySetting
        fields = ['id', 'key', 'value', 'description', 'updated_at']

    def validate_key(self, value):
        company = self.context.get('company')
        qs = CompanySetting.objects.filter(company=company, key=value)
        if self.instance is not None:
            qs = qs.exclude(pk=self.instance.pk)
        if company is not None and qs.exists():
            raise serializers.ValidationError('A setting with this key already exists.')
        return value


class AuditLogSerializer(serializers.ModelSerializer):
    user = UserSerializer(read_only=True)

    class Meta:
        model = AuditLog
        fields = ['id', 'user', 'action', 'model_name', 'object_id', 'object_name',
                  'object_reference', 'changes', 'ip_address', 'created_at']


class PasswordResetRequestSerializer(serializers.Serializer):
    email = serializers.EmailField()


class PasswordResetConfirmSerializer(serializers.Serializer):
    uid = serializers.CharField()
    token = serializers.CharField()
    new_password = serializers.CharField(write_only=True, validators=[validate_password])
