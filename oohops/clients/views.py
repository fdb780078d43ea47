import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db import transaction
from django.db.models import Q, Sum, Count
from django.shortcuts import get_object_or_404
from decimal import Decimal

from oohops.core.codes import generate_client_code
from oohops.core.roles import CLIENT_EDITORS
from oohops.core.tenancy import get_membership, require_role
from oohops.core.utils import create_audit_log
from .models import Client, ClientContact
from .serializers import ClientSerializer, ClientListSerializer, ClientContactSerializer
from .states import get_state_code

logger = logging.getLogger(__name__)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def client_list_create(request):
    """List clients or create a new client"""
    membership = get_membership(request)
    company = membership.company

    if request.method == 'GET':
        queryset = Client.objects.filter(company=company)
        search = request.query_params.get('search')
        client_type = request.query_params.get('client_type')
        is_active = request.query_params.get('is_active')
        if search:
            queryset = queryset.filter(
                Q(name__icontains=search) | Q(client_code__icontains=search) |
                Q(company_name__icontains=search) | Q(email__icontains=search) |
                Q(phone__icontains=search) | Q(gst_number__icontains=search)
            )
        if client_type:
            queryset = queryset.filter(client_type=client_type)
        if is_active in ('true', 'false'):
            queryset = queryset.filter(is_active=is_active == 'true')
        serializer = ClientListSerializer(queryset, many=True)
        return Response(serializer.data)

    require_role(membership, CLIENT_EDITORS)
    serializer = ClientSerializer(data=request.data)
    if serializer.is_valid():
        state_code = serializer.validated_data.get('state_code') or get_state_code(serializer.validated_data.get('state'))
        with transaction.atomic():
            client = serializer.save(
                company=company,
                state_code=state_code,
                client_code=generate_client_code(company, state_code),
                created_by=request.user,
            )
        create_audit_log(request=request, action='create', model_name='Client', object_id=client.pk,
                         object_name=client.name, object_reference=client.client_code, company=company)
        return Response(ClientSerializer(client).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def client_detail(request, pk):
    """Retrieve, update or delete a client"""
    membership = get_membership(request)
    client = get_object_or_404(Client, pk=pk, company=membership.company)

    if request.method == 'GET':
        return Response(ClientSerializer(client).data)

    require_role(membership, CLIENT_EDITORS)
    if request.method in ('PUT', 'PATCH'):
        serializer = ClientSerializer(client, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            create_audit_log(request=request, action='update', model_name='Client', object_id=client.pk,
                             object_name=client.name, object_reference=client.client_code,
                             changes=request.data, company=membership.company)
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    require_role(membership, ['admin', 'manager'])
    if client.plans.exists() or client.campaigns.exists() or client.invoices.exists():
        return Response(
            {'error': 'Client has plans, campaigns or invoices. Deactivate the client instead.'},
            status=status.HTTP_400_BAD_REQUEST
        )
    create_audit_log(request=request, action='delete', model_name='Client', object_id=client.pk,
                     object_name=client.name, object_reference=client.client_code, company=membership.company)
    client.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def client_contact_list_create(request, pk):
    membership = get_membership(request)
    client = get_object_or_404(Client, pk=pk, company=membership.company)

    if request.method == 'GET':
        return Response(ClientContactSerializer(client.contacts.all(), many=True).data)

    require_role(membership, CLIENT_EDITORS)
    serializer = ClientContactSerializer(data=request.data)
    if serializer.is_valid():
        serializer.save(client=client)
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def client_contact_detail(request, pk, contact_pk):
    membership = get_membership(request)
    contact = get_object_or_404(ClientContact, pk=contact_pk, client_id=pk, client__company=membership.company)

    if request.method == 'GET':
        return Response(ClientContactSerializer(contact).data)

    require_role(membership, CLIENT_EDITORS)
    if request.method == 'DELETE':
        contact.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)
    serializer = ClientContactSerializer(contact, data=request.data, partial=request.method == 'PATCH')
    if serializer.is_valid():
        serializer.save()
        return Response(serializer.data)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def client_summary(request, pk):
    """Plans, campaigns and billing position of a client"""
    membership = get_membership(request)
    client = get_object_or_404(Client, pk=pk, company=membership.company)

    plan_counts = {row['status']: row['count'] for row in client.plans.values('status').annotate(count=Count('id')).order_by()}
    campaign_counts = {row['status']: row['count'] for row in client.campaigns.values('status').annotate(count=Count('id')).order_by()}
    invoices = client.invoices.exclude(status='Cancelled')
    totals = invoices.aggregate(
        invoiced=Sum('total_amount'),
        paid=Sum('paid_amount'),
        outstanding=Sum('balance_due'),
    )
    return Response({
        'client': ClientListSerializer(client).data,
        'plans': plan_counts,
        'campaigns': campaign_counts,
        'invoice_count': invoices.count(),
        'total_invoiced': totals['invoiced'] or Decimal('0.00'),
        'total_paid': totals['paid'] or Decimal('0.00'),
        'outstanding': totals['outstanding'] or Decimal('0.00'),
        'overdue_count': invoices.filter(status='Overdue').count(),
    })
