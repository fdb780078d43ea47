import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer, TokenRefreshSerializer
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError, AuthenticationFailed
from django.conf import settings
from django.contrib.auth import get_user_model
from django.contrib.auth.tokens import default_token_generator
from django.core.exceptions import ObjectDoesNotExist
from django.core.mail import send_mail
from django.db import transaction
from django.db.models import Q
from django.shortcuts import get_object_or_404
from django.utils import timezone
from django.utils.encoding import force_bytes, force_str
from django.utils.http import urlsafe_base64_encode, urlsafe_base64_decode

from .models import Company, CompanyUser, CompanySetting, AuditLog
from .roles import resolve_primary_role, resolve_dashboard, module_access_flags
from .serializers import (
    UserSerializer, RegisterSerializer, CompanySerializer, CompanyUserSerializer,
    MemberInviteSerializer, CompanySettingSerializer, AuditLogSerializer,
    PasswordResetRequestSerializer, PasswordResetConfirmSerializer,
)
from .tenancy import get_membership, require_role, require_platform_admin
from .utils import create_audit_log, parse_date_param

User = get_user_model()
logger = logging.getLogger(__name__)


def _active_memberships(user):
    return CompanyUser.objects.select_related('company').filter(user=user, status='active')


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    def validate(self, attrs):
        data = super().validate(attrs)
        if not self.user.is_active:
            raise AuthenticationFailed('User account is disabled.')
        return data

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['username'] = user.username
        memberships = list(_active_memberships(user))
        token['roles'] = sorted({m.role for m in memberships})
        token['company_id'] = memberships[0].company_id if memberships else None
        return token


class CustomTokenObtainPairView(TokenObtainPairView):
    serializer_class = CustomTokenObtainPairSerializer


class CustomTokenRefreshSerializer(TokenRefreshSerializer):
    """Custom token refresh serializer that handles deleted users gracefully"""
    def validate(self, attrs):
        try:
            return super().validate(attrs)
        except (InvalidToken, TokenError):
            raise InvalidToken('Token is invalid or expired.')
        except (ObjectDoesNotExist, User.DoesNotExist):
            raise InvalidToken('Token is invalid. User no longer exists.')


class CustomTokenRefreshView(TokenRefreshView):
    serializer_class = CustomTokenRefreshSerializer


@api_view(['POST'])
@permission_classes([AllowAny])
def register(request):
    """Sign up a user together with a new (pending) company"""
    serializer = RegisterSerializer(data=request.data)
    if serializer.is_valid():
        with transaction.atomic():
            user = serializer.save()
        token = CustomTokenObtainPairSerializer.get_token(user)
        membership = _active_memberships(user).first()
        logger.info(f"Registered user {user.username} with company {membership.company.name}")
        return Response({
            'user': UserSerializer(user).data,
            'company': CompanySerializer(membership.company).data,
            'access': str(token.access_token),
            'refresh': str(token),
        }, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def user_me(request):
    """Current user with memberships, roles, dashboard route and module access"""
    user = request.user
    user_data = UserSerializer(user).data
    memberships = list(_active_memberships(user))
    roles = [m.role for m in memberships]
    is_platform_admin = any(m.company.is_platform_admin and m.role == 'admin' for m in memberships)
    primary_role = resolve_primary_role(roles)

    user_data['memberships'] = CompanyUserSerializer(memberships, many=True).data
    user_data['roles'] = roles
    user_data['primary_role'] = primary_role
    user_data['is_platform_admin'] = is_platform_admin
    user_data['dashboard_route'] = resolve_dashboard(roles, is_platform_admin=is_platform_admin)
    user_data.update(module_access_flags(primary_role if memberships else None))
    return Response(user_data)


@api_view(['POST'])
@permission_classes([AllowAny])
def password_reset_request(request):
    """Email a password reset link. Unknown addresses get the same response."""
    serializer = PasswordResetRequestSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    email = serializer.validated_data['email']
    user = User.objects.filter(email__iexact=email, is_active=True).first()
    if user:
        uid = urlsafe_base64_encode(force_bytes(user.pk))
        token = default_token_generator.make_token(user)
        link = f"{settings.FRONTEND_BASE_URL}/reset-password?uid={uid}&token={token}"
        try:
            send_mail(
                'Reset your password',
                f"Hello {user.get_full_name() or user.username},\n\n"
                f"Use the link below to set a new password:\n{link}\n\n"
                f"If you did not request this, you can ignore this email.",
                settings.DEFAULT_FROM_EMAIL,
                [user.email],
            )
        except Exception as e:
            logger.error(f"Failed to send password reset email to user {user.pk}: {str(e)}")
    else:
        logger.info("Password reset requested for unknown email")
    return Response({'message': 'If the email is registered, a reset link has been sent.'})


@api_view(['POST'])
@permission_classes([AllowAny])
def password_reset_confirm(request):
    serializer = PasswordResetConfirmSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    try:
        user_id = force_str(urlsafe_base64_decode(serializer.validated_data['uid']))
        user = User.objects.get(pk=user_id)
    except (TypeError, ValueError, OverflowError, User.DoesNotExist):
        user = None

    if user is None or not default_token_generator.check_token(user, serializer.validated_data['token']):
        return Response({'error': 'Invalid or expired reset link'}, status=status.HTTP_400_BAD_REQUEST)

    user.set_password(serializer.validated_data['new_password'])
    user.save()
    create_audit_log(action='update', model_name='User', object_id=user.pk, user=user,
                     object_name=user.username, changes={'password': 'reset'})
    return Response({'message': 'Password has been reset.'})


# Company views
@api_view(['GET', 'PATCH'])
@permission_classes([IsAuthenticated])
def company_current(request):
    membership = get_membership(request)
    company = membership.company
    if request.method == 'GET':
        return Response(CompanySerializer(company).data)

    require_role(membership, ['admin'])
    serializer = CompanySerializer(company, data=request.data, partial=True)
    if serializer.is_valid():
        serializer.save()
        create_audit_log(request=request, action='update', model_name='Company', object_id=company.pk,
                         object_name=company.name, changes=request.data, company=company)
        return Response(serializer.data)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def company_list(request):
    """All tenants (platform administrators only)"""
    require_platform_admin(get_membership(request))
    companies = Company.objects.all()
    status_filter = request.query_params.get('status')
    if status_filter:
        companies = companies.filter(status=status_filter)
    return Response(CompanySerializer(companies, many=True).data)


def _set_company_status(request, pk, new_status):
    membership = require_platform_admin(get_membership(request))
    company = get_object_or_404(Company, pk=pk)
    old_status = company.status
    company.status = new_status
    company.save(update_fields=['status', 'updated_at'])
    create_audit_log(request=request, action='company_status', model_name='Company', object_id=company.pk,
                     object_name=company.name, changes={'status': [old_status, new_status]},
                     company=membership.company)
    logger.info(f"Company {company.pk} status {old_status} -> {new_status}")
    return Response(CompanySerializer(company).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def company_approve(request, pk):
    return _set_company_status(request, pk, 'active')


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def company_suspend(request, pk):
    return _set_company_status(request, pk, 'suspended')


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def company_export(request):
    """Export all of the company's business records as JSON"""
    from oohops.clients.models import Client
    from oohops.clients.serializers import ClientSerializer
    from oohops.assets.models import MediaAsset
    from oohops.assets.serializers import MediaAssetSerializer
    from oohops.plans.models import Plan
    from oohops.plans.serializers import PlanSerializer
    from oohops.campaigns.models import Campaign
    from oohops.campaigns.serializers import CampaignSerializer
    from oohops.finance.models import Invoice, Expense
    from oohops.finance.serializers import InvoiceSerializer, ExpenseSerializer

    membership = require_role(get_membership(request), ['admin'])
    company = membership.company

    data = {
        'company': CompanySerializer(company).data,
        'exported_at': timezone.now().isoformat(),
        'clients': ClientSerializer(Client.objects.filter(company=company), many=True).data,
        'media_assets': MediaAssetSerializer(MediaAsset.objects.filter(company=company), many=True).data,
        'plans': PlanSerializer(Plan.objects.filter(company=company).prefetch_related('items'), many=True).data,
        'campaigns': CampaignSerializer(Campaign.objects.filter(company=company).prefetch_related('campaign_assets'), many=True).data,
        'invoices': InvoiceSerializer(Invoice.objects.filter(company=company).prefetch_related('items', 'payments'), many=True).data,
        'expenses': ExpenseSerializer(Expense.objects.filter(company=company), many=True).data,
    }
    create_audit_log(request=request, action='export', model_name='Company', object_id=company.pk,
                     object_name=company.name, company=company)
    logger.info(f"Company data export for company {company.pk} by user {request.user.pk}")
    return Response(data)


# Membership views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def company_user_list_create(request):
    """List members of the current company or invite a new one"""
    membership = require_role(get_membership(request), ['admin'])
    company = membership.company

    if request.method == 'GET':
        members = CompanyUser.objects.filter(company=company).select_related('user', 'company')
        return Response(CompanyUserSerializer(members, many=True).data)

    serializer = MemberInviteSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    with transaction.atomic():
        user = User.objects.filter(email__iexact=data['email']).first()
        if user is None:
            user = User.objects.create(
                username=data.get('username') or data['email'],
                email=data['email'],
                first_name=data.get('first_name', ''),
                last_name=data.get('last_name', ''),
                is_active=True,
            )
            if data.get('password'):
                user.set_password(data['password'])
            else:
                user.set_unusable_password()
            user.save()
        if CompanyUser.objects.filter(company=company, user=user).exists():
            return Response({'error': 'User is already a member of this company'}, status=status.HTTP_400_BAD_REQUEST)
        member = CompanyUser.objects.create(company=company, user=user, role=data['role'], status='active')

    create_audit_log(request=request, action='member_invite', model_name='CompanyUser', object_id=member.pk,
                     object_name=user.username, changes={'role': member.role}, company=company)
    return Response(CompanyUserSerializer(member).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def company_user_detail(request, pk):
    membership = require_role(get_membership(request), ['admin'])
    member = get_object_or_404(CompanyUser, pk=pk, company=membership.company)

    if request.method == 'GET':
        return Response(CompanyUserSerializer(member).data)

    if member.pk == membership.pk:
        return Response({'error': 'You cannot change your own membership'}, status=status.HTTP_400_BAD_REQUEST)

    if request.method == 'PATCH':
        serializer = CompanyUserSerializer(member, data=request.data, partial=True)
        if serializer.is_valid():
            old = {'role': member.role, 'status': member.status}
            serializer.save()
            create_audit_log(request=request, action='member_update', model_name='CompanyUser', object_id=member.pk,
                             object_name=member.user.username,
                             changes={'before': old, 'after': {'role': member.role, 'status': member.status}},
                             company=membership.company)
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(request=request, action='member_remove', model_name='CompanyUser', object_id=member.pk,
                     object_name=member.user.username, company=membership.company)
    member.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)


# Setting views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def setting_list_create(request):
    """List all settings or create a new setting"""
    membership = require_role(get_membership(request), ['admin'])
    company = membership.company
    if request.method == 'GET':
        settings_qs = CompanySetting.objects.filter(company=company)
        serializer = CompanySettingSerializer(settings_qs, many=True)
        return Response(serializer.data)
    else:
        serializer = CompanySettingSerializer(data=request.data, context={'company': company})
        if serializer.is_valid():
            serializer.save(company=company)
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def setting_detail(request, pk):
    """Retrieve, update or delete a setting"""
    membership = require_role(get_membership(request), ['admin'])
    setting = get_object_or_404(CompanySetting, pk=pk, company=membership.company)

    if request.method == 'GET':
        serializer = CompanySettingSerializer(setting)
        return Response(serializer.data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = CompanySettingSerializer(
            setting, data=request.data, partial=request.method == 'PATCH',
            context={'company': membership.company}
        )
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        setting.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


# AuditLog views (read-only)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def audit_log_list(request):
    """List audit logs of the current company with filtering"""
    membership = get_membership(request)
    queryset = AuditLog.objects.filter(company=membership.company).select_related('user')

    if membership.role != 'admin':
        queryset = queryset.filter(user=request.user)

    action_filter = request.query_params.get('action')
    if action_filter:
        queryset = queryset.filter(action=action_filter)

    model_filter = request.query_params.get('model')
    if model_filter:
        queryset = queryset.filter(model_name__iexact=model_filter)

    try:
        date_from = parse_date_param(request.query_params.get('date_from'))
        date_to = parse_date_param(request.query_params.get('date_to'))
    except ValueError:
        return Response({'error': 'Dates must be in YYYY-MM-DD format'}, status=status.HTTP_400_BAD_REQUEST)
    if date_from:
        queryset = queryset.filter(created_at__date__gte=date_from)
    if date_to:
        queryset = queryset.filter(created_at__date__lte=date_to)

    limit = min(int(request.query_params.get('limit', 200)), 1000)
    serializer = AuditLogSerializer(queryset[:limit], many=True)
    return Response(serializer.data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def audit_log_detail(request, pk):
    membership = get_membership(request)
    log = get_object_or_404(AuditLog, pk=pk, company=membership.company)
    if membership.role != 'admin' and log.user_id != request.user.pk:
        return Response({'error': 'Not found'}, status=status.HTTP_404_NOT_FOUND)
    return Response(AuditLogSerializer(log).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def global_search(request):
    """Search across assets, clients, plans, campaigns and invoices"""
    query = request.query_params.get('q', '').strip()
    if not query:
        return Response({'error': 'Search query parameter "q" is required'}, status=status.HTTP_400_BAD_REQUEST)

    from oohops.assets.models import MediaAsset
    from oohops.assets.search import search_assets
    from oohops.assets.serializers import MediaAssetListSerializer
    from oohops.clients.models import Client
    from oohops.clients.serializers import ClientSerializer
    from oohops.plans.models import Plan
    from oohops.plans.serializers import PlanListSerializer
    from oohops.campaigns.models import Campaign
    from oohops.campaigns.serializers import CampaignListSerializer
    from oohops.finance.models import Invoice
    from oohops.finance.serializers import InvoiceListSerializer

    company = get_membership(request).company
    results = {'query': query}

    assets = search_assets(MediaAsset.objects.filter(company=company), query)[:20]
    results['media_assets'] = MediaAssetListSerializer(assets, many=True).data

    clients = Client.objects.filter(company=company).filter(
        Q(name__icontains=query) |
        Q(client_code__icontains=query) |
        Q(email__icontains=query) |
        Q(phone__icontains=query) |
        Q(gst_number__icontains=query)
    )[:20]
    results['clients'] = ClientSerializer(clients, many=True).data

    plans = Plan.objects.filter(company=company).filter(
        Q(plan_code__icontains=query) | Q(plan_name__icontains=query) | Q(client__name__icontains=query)
    ).select_related('client')[:20]
    results['plans'] = PlanListSerializer(plans, many=True).data

    campaigns = Campaign.objects.filter(company=company).filter(
        Q(campaign_code__icontains=query) | Q(campaign_name__icontains=query) | Q(client__name__icontains=query)
    ).select_related('client')[:20]
    results['campaigns'] = CampaignListSerializer(campaigns, many=True).data

    invoices = Invoice.objects.filter(company=company).filter(
        Q(invoice_number__icontains=query) | Q(client__name__icontains=query)
    ).select_related('client')[:20]
    results['invoices'] = InvoiceListSerializer(invoices, many=True).data

    return Response(results)
