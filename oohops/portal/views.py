import logging
from decimal import Decimal

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, authentication_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, AllowAny
from django.db.models import Sum
from django.shortcuts import get_object_or_404

from oohops.campaigns.models import Campaign
from oohops.campaigns.serializers import CampaignListSerializer, PublicCampaignSerializer
from oohops.clients.models import Client
from oohops.core.exports import file_response, PDF_CONTENT_TYPE
from oohops.core.roles import CLIENT_EDITORS
from oohops.core.tenancy import get_membership, require_role
from oohops.core.utils import create_audit_log, get_client_ip
from oohops.finance.exports import build_invoice_pdf
from oohops.finance.models import Invoice, Payment
from oohops.finance.serializers import InvoiceSerializer, InvoiceListSerializer, PaymentSerializer
from .auth import PortalJWTAuthentication, IsPortalUser
from .models import PortalUser
from .serializers import (
    PortalUserSerializer, MagicLinkRequestSerializer, MagicLinkVerifySerializer, PortalProfileSerializer,
)
from .services import MagicLinkError, request_magic_links, send_magic_link, verify_magic_link

logger = logging.getLogger(__name__)

MAGIC_LINK_SENT_MESSAGE = 'If this email has portal access, a sign-in link has been sent.'


# Magic link sign-in

@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def portal_magic_link(request):
    """Email a sign-in link. The answer never reveals whether the email is known."""
    serializer = MagicLinkRequestSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    request_magic_links(serializer.validated_data['email'], ip_address=get_client_ip(request))
    return Response({'message': MAGIC_LINK_SENT_MESSAGE})


@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def portal_verify(request):
    serializer = MagicLinkVerifySerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    try:
        portal_user, token = verify_magic_link(serializer.validated_data['token'])
    except MagicLinkError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    logger.info(f"Portal user {portal_user.pk} signed in for client {portal_user.client_id}")
    return Response({
        'access': str(token),
        'token_type': 'Bearer',
        'expires_in': int(token.lifetime.total_seconds()),
        'portal_user': PortalProfileSerializer(portal_user).data,
    })


# Portal endpoints, authenticated with the portal token

def _client_invoices(portal_user):
    return Invoice.objects.filter(
        company_id=portal_user.company_id, client_id=portal_user.client_id,
    ).exclude(status='Draft').select_related('client', 'campaign')


def _client_campaigns(portal_user):
    return Campaign.objects.filter(
        company_id=portal_user.company_id, client_id=portal_user.client_id,
    ).exclude(status='Draft').select_related('client')


@api_view(['GET'])
@authentication_classes([PortalJWTAuthentication])
@permission_classes([IsPortalUser])
def portal_me(request):
    return Response(PortalProfileSerializer(request.user).data)


@api_view(['GET'])
@authentication_classes([PortalJWTAuthentication])
@permission_classes([IsPortalUser])
def portal_dashboard(request):
    """Campaign and invoice counts with the outstanding balance of the client"""
    portal_user = request.user
    invoices = _client_invoices(portal_user)
    campaigns = _client_campaigns(portal_user)
    open_invoices = invoices.filter(status__in=Invoice.OPEN_STATUSES)
    outstanding = open_invoices.aggregate(total=Sum('balance_due'))['total'] or Decimal('0.00')
    return Response({
        'client_name': portal_user.client.name,
        'company_name': portal_user.company.name,
        'campaigns': {
            'total': campaigns.count(),
            'running': campaigns.filter(status='Running').count(),
            'upcoming': campaigns.filter(status='Upcoming').count(),
            'completed': campaigns.filter(status='Completed').count(),
        },
        'invoices': {
            'total': invoices.exclude(status='Cancelled').count(),
            'open': open_invoices.count(),
            'overdue': invoices.filter(status='Overdue').count(),
            'paid': invoices.filter(status='Paid').count(),
        },
        'outstanding_balance': outstanding,
        'recent_invoices': InvoiceListSerializer(invoices.order_by('-invoice_date')[:5], many=True).data,
    })


@api_view(['GET'])
@authentication_classes([PortalJWTAuthentication])
@permission_classes([IsPortalUser])
def portal_invoices(request):
    invoices = _client_invoices(request.user)
    status_filter = request.query_params.get('status')
    if status_filter:
        invoices = invoices.filter(status=status_filter)
    return Response(InvoiceListSerializer(invoices, many=True).data)


@api_view(['GET'])
@authentication_classes([PortalJWTAuthentication])
@permission_classes([IsPortalUser])
def portal_invoice_detail(request, pk):
    invoice = get_object_or_404(_client_invoices(request.user), pk=pk)
    return Response(InvoiceSerializer(invoice).data)


@api_view(['GET'])
@authentication_classes([PortalJWTAuthentication])
@permission_classes([IsPortalUser])
def portal_invoice_pdf(request, pk):
    invoice = get_object_or_404(_client_invoices(request.user).select_related('company'), pk=pk)
    try:
        content = build_invoice_pdf(invoice)
    except Exception as e:
        logger.error(f"Portal invoice PDF failed for invoice {invoice.pk}: {str(e)}")
        return Response({'error': 'Failed to generate invoice PDF'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
    return file_response(content, f'{invoice.invoice_number}.pdf', PDF_CONTENT_TYPE)


@api_view(['GET'])
@authentication_classes([PortalJWTAuthentication])
@permission_classes([IsPortalUser])
def portal_payments(request):
    """Payment receipts of the client"""
    portal_user = request.user
    payments = Payment.objects.filter(
        invoice__company_id=portal_user.company_id, invoice__client_id=portal_user.client_id,
    ).select_related('invoice', 'recorded_by')
    return Response(PaymentSerializer(payments, many=True).data)


@api_view(['GET'])
@authentication_classes([PortalJWTAuthentication])
@permission_classes([IsPortalUser])
def portal_campaigns(request):
    campaigns = _client_campaigns(request.user)
    status_filter = request.query_params.get('status')
    if status_filter:
        campaigns = campaigns.filter(status=status_filter)
    return Response(CampaignListSerializer(campaigns, many=True).data)


@api_view(['GET'])
@authentication_classes([PortalJWTAuthentication])
@permission_classes([IsPortalUser])
def portal_campaign_proofs(request, pk):
    """Campaign assets with their latest proof photos; rates are not shown"""
    campaign = get_object_or_404(_client_campaigns(request.user), pk=pk)
    return Response(PublicCampaignSerializer(campaign, context={'request': request}).data)


# Staff management of portal access

@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def client_portal_users(request, client_pk):
    membership = require_role(get_membership(request), CLIENT_EDITORS)
    client = get_object_or_404(Client, pk=client_pk, company=membership.company)

    if request.method == 'GET':
        return Response(PortalUserSerializer(client.portal_users.all(), many=True).data)

    serializer = PortalUserSerializer(data=request.data, context={'client': client})
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    portal_user = serializer.save(client=client, company=membership.company, created_by=request.user)
    create_audit_log(request=request, action='create', model_name='PortalUser', object_id=portal_user.pk,
                     object_name=portal_user.email, object_reference=client.client_code, company=membership.company)
    invite_sent = False
    if request.data.get('send_invite') in (True, 'true', '1'):
        invite_sent = send_magic_link(portal_user)
    data = PortalUserSerializer(portal_user).data
    data['invite_sent'] = invite_sent
    return Response(data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def portal_user_detail(request, pk):
    membership = require_role(get_membership(request), CLIENT_EDITORS)
    portal_user = get_object_or_404(PortalUser.objects.select_related('client'), pk=pk, company=membership.company)

    if request.method == 'GET':
        return Response(PortalUserSerializer(portal_user).data)

    if request.method == 'PATCH':
        serializer = PortalUserSerializer(portal_user, data=request.data, partial=True)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        portal_user = serializer.save()
        create_audit_log(request=request, action='update', model_name='PortalUser', object_id=portal_user.pk,
                         object_name=portal_user.email, changes=request.data, company=membership.company)
        return Response(serializer.data)

    create_audit_log(request=request, action='delete', model_name='PortalUser', object_id=portal_user.pk,
                     object_name=portal_user.email, company=membership.company)
    portal_user.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def portal_user_send_link(request, pk):
    membership = require_role(get_membership(request), CLIENT_EDITORS)
    portal_user = get_object_or_404(PortalUser.objects.select_related('company'), pk=pk, company=membership.company)
    if not portal_user.is_active:
        return Response({'error': 'Portal user is inactive'}, status=status.HTTP_400_BAD_REQUEST)
    if not send_magic_link(portal_user, ip_address=get_client_ip(request)):
        return Response({'error': 'Failed to send sign-in email'}, status=status.HTTP_502_BAD_GATEWAY)
    return Response({'sent_to': portal_user.email})
