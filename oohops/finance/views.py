import logging
from decimal import Decimal

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db import transaction
from django.db.models import Q, Sum, Count
from django.shortcuts import get_object_or_404
from django.utils import timezone

from oohops.campaigns.models import Campaign
from oohops.core.codes import generate_invoice_code, generate_expense_code
from oohops.core.exports import file_response, PDF_CONTENT_TYPE, XLSX_CONTENT_TYPE
from oohops.core.roles import FINANCE_ROLES, OPERATIONS_ROLES
from oohops.core.tenancy import get_membership, require_role
from oohops.core.utils import create_audit_log, parse_date_param, round_money
from .exports import build_invoice_pdf, build_invoice_register
from .models import Invoice, InvoiceItem, Payment, CreditNote, Expense
from .serializers import (
    InvoiceSerializer, InvoiceListSerializer, InvoiceItemWriteSerializer, PaymentSerializer,
    PaymentCreateSerializer, GenerateInvoiceSerializer, ExpenseSerializer, CreditNoteSerializer,
    CreditNoteCreateSerializer,
)
from .services import (
    InvoiceError, PaymentError, CreditNoteError, apply_invoice_totals, billing_schedule, cancel_invoice,
    generate_invoice_from_campaign, invoice_due_date, mark_overdue_invoices, aging_report,
    record_payment, send_invoice, send_payment_receipt, create_credit_note, issue_credit_note, cancel_credit_note,
)

logger = logging.getLogger(__name__)


def _split_items(request):
    data = request.data.copy() if hasattr(request.data, 'copy') else dict(request.data)
    return data, data.pop('items', None)


def _validate_items(items_data):
    """Validated manual invoice lines, or (None, errors)"""
    serializer = InvoiceItemWriteSerializer(data=items_data or [], many=True)
    if not serializer.is_valid():
        return None, {'items': serializer.errors}
    return serializer.validated_data, None


def _replace_items(invoice, items):
    invoice.items.all().delete()
    rows = [
        InvoiceItem(
            invoice=invoice,
            line_total=round_money(item['base_amount'] + item.get('printing_cost', 0) + item.get('mounting_cost', 0)),
            **item,
        )
        for item in items
    ]
    InvoiceItem.objects.bulk_create(rows)
    apply_invoice_totals(invoice, rows)
    invoice.save()


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def invoice_list_create(request):
    """List invoices or create a manual Draft invoice"""
    membership = require_role(get_membership(request), FINANCE_ROLES + ['sales'])
    company = membership.company

    if request.method == 'GET':
        queryset = Invoice.objects.filter(company=company).select_related('client')
        for param, field in (('status', 'status'), ('client', 'client_id'), ('campaign', 'campaign_id')):
            value = request.query_params.get(param)
            if value:
                queryset = queryset.filter(**{field: value})
        date_from = parse_date_param(request.query_params.get('date_from'))
        date_to = parse_date_param(request.query_params.get('date_to'))
        if date_from:
            queryset = queryset.filter(invoice_date__gte=date_from)
        if date_to:
            queryset = queryset.filter(invoice_date__lte=date_to)
        search = request.query_params.get('search')
        if search:
            queryset = queryset.filter(Q(invoice_number__icontains=search) | Q(client__name__icontains=search))
        return Response(InvoiceListSerializer(queryset, many=True).data)

    require_role(membership, FINANCE_ROLES)
    data, items_data = _split_items(request)
    serializer = InvoiceSerializer(data=data, context={'company': company})
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    items, errors = _validate_items(items_data)
    if errors:
        return Response(errors, status=status.HTTP_400_BAD_REQUEST)
    if not items:
        return Response({'items': ['At least one line item is required']}, status=status.HTTP_400_BAD_REQUEST)

    invoice_date = serializer.validated_data['invoice_date']
    with transaction.atomic():
        invoice = serializer.save(
            company=company,
            invoice_number=generate_invoice_code(company, invoice_date),
            due_date=serializer.validated_data.get('due_date') or invoice_due_date(invoice_date),
            created_by=request.user,
        )
        _replace_items(invoice, items)
    create_audit_log(request=request, action='invoice_create', model_name='Invoice', object_id=invoice.pk,
                     object_name=invoice.invoice_number, company=company)
    return Response(InvoiceSerializer(invoice).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def invoice_detail(request, pk):
    membership = require_role(get_membership(request), FINANCE_ROLES + ['sales'])
    invoice = get_object_or_404(Invoice.objects.select_related('client', 'campaign'), pk=pk, company=membership.company)

    if request.method == 'GET':
        return Response(InvoiceSerializer(invoice).data)

    require_role(membership, FINANCE_ROLES)
    if request.method in ('PUT', 'PATCH'):
        data, items_data = _split_items(request)
        serializer = InvoiceSerializer(invoice, data=data, partial=request.method == 'PATCH',
                                       context={'company': membership.company})
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        items = None
        if items_data is not None:
            items, errors = _validate_items(items_data)
            if errors:
                return Response(errors, status=status.HTTP_400_BAD_REQUEST)
        with transaction.atomic():
            invoice = serializer.save()
            if items is not None:
                _replace_items(invoice, items)
            else:
                apply_invoice_totals(invoice)
                invoice.save()
        create_audit_log(request=request, action='update', model_name='Invoice', object_id=invoice.pk,
                         object_name=invoice.invoice_number, changes=data, company=membership.company)
        return Response(InvoiceSerializer(invoice).data)

    if invoice.status != 'Draft':
        return Response({'error': 'Only Draft invoices can be deleted'}, status=status.HTTP_400_BAD_REQUEST)
    create_audit_log(request=request, action='delete', model_name='Invoice', object_id=invoice.pk,
                     object_name=invoice.invoice_number, company=membership.company)
    invoice.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def invoice_send(request, pk):
    membership = require_role(get_membership(request), FINANCE_ROLES)
    invoice = get_object_or_404(Invoice, pk=pk, company=membership.company)
    try:
        send_invoice(invoice)
    except InvoiceError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    create_audit_log(request=request, action='invoice_send', model_name='Invoice', object_id=invoice.pk,
                     object_name=invoice.invoice_number, company=membership.company)
    return Response(InvoiceSerializer(invoice).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def invoice_cancel(request, pk):
    membership = require_role(get_membership(request), FINANCE_ROLES)
    invoice = get_object_or_404(Invoice, pk=pk, company=membership.company)
    try:
        cancel_invoice(invoice)
    except InvoiceError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    create_audit_log(request=request, action='invoice_cancel', model_name='Invoice', object_id=invoice.pk,
                     object_name=invoice.invoice_number, changes={'reason': request.data.get('reason', '')},
                     company=membership.company)
    return Response(InvoiceSerializer(invoice).data)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def invoice_payments(request, pk):
    """List or record payments of an invoice"""
    membership = require_role(get_membership(request), FINANCE_ROLES)
    invoice = get_object_or_404(Invoice, pk=pk, company=membership.company)

    if request.method == 'GET':
        return Response(PaymentSerializer(invoice.payments.select_related('recorded_by'), many=True).data)

    serializer = PaymentCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    try:
        payment = record_payment(invoice, user=request.user, **serializer.validated_data)
    except PaymentError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    create_audit_log(request=request, action='payment_add', model_name='Invoice', object_id=invoice.pk,
                     object_name=invoice.invoice_number, changes={'amount': str(payment.amount), 'method': payment.method},
                     company=membership.company)
    invoice.refresh_from_db()
    return Response({
        'payment': PaymentSerializer(payment).data,
        'invoice': InvoiceListSerializer(invoice).data,
    }, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def payment_list(request):
    membership = require_role(get_membership(request), FINANCE_ROLES)
    queryset = Payment.objects.filter(invoice__company=membership.company).select_related('invoice', 'recorded_by')
    client_id = request.query_params.get('client')
    if client_id:
        queryset = queryset.filter(invoice__client_id=client_id)
    method = request.query_params.get('method')
    if method:
        queryset = queryset.filter(method=method)
    return Response(PaymentSerializer(queryset, many=True).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def payment_send_receipt(request, pk):
    """Resend the receipt email of a payment"""
    membership = require_role(get_membership(request), FINANCE_ROLES)
    payment = get_object_or_404(Payment.objects.select_related('invoice__client', 'invoice__company'),
                                pk=pk, invoice__company=membership.company)
    receipt_status = send_payment_receipt(payment)
    if receipt_status == 'skipped':
        return Response({'error': 'Client has no email address'}, status=status.HTTP_400_BAD_REQUEST)
    if receipt_status == 'failed':
        return Response({'error': 'Failed to send receipt'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
    return Response(PaymentSerializer(payment).data)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def invoice_credit_notes(request, pk):
    """List or create credit notes of an invoice"""
    membership = require_role(get_membership(request), FINANCE_ROLES)
    invoice = get_object_or_404(Invoice, pk=pk, company=membership.company)

    if request.method == 'GET':
        return Response(CreditNoteSerializer(invoice.credit_notes.prefetch_related('items'), many=True).data)

    serializer = CreditNoteCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    try:
        credit_note = create_credit_note(invoice, user=request.user, **serializer.validated_data)
    except CreditNoteError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    create_audit_log(request=request, action='credit_note_create', model_name='CreditNote', object_id=credit_note.pk,
                     object_name=credit_note.credit_note_number,
                     changes={'invoice': invoice.invoice_number, 'total': str(credit_note.total_amount)},
                     company=membership.company)
    invoice.refresh_from_db()
    return Response({
        'credit_note': CreditNoteSerializer(credit_note).data,
        'invoice': InvoiceListSerializer(invoice).data,
    }, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def credit_note_list(request):
    membership = require_role(get_membership(request), FINANCE_ROLES)
    queryset = CreditNote.objects.filter(company=membership.company).select_related(
        'invoice', 'client', 'created_by').prefetch_related('items')
    status_filter = request.query_params.get('status')
    if status_filter:
        queryset = queryset.filter(status=status_filter)
    client_id = request.query_params.get('client')
    if client_id:
        queryset = queryset.filter(client_id=client_id)
    return Response(CreditNoteSerializer(queryset, many=True).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def credit_note_detail(request, pk):
    membership = require_role(get_membership(request), FINANCE_ROLES)
    credit_note = get_object_or_404(CreditNote, pk=pk, company=membership.company)
    return Response(CreditNoteSerializer(credit_note).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def credit_note_issue(request, pk):
    membership = require_role(get_membership(request), FINANCE_ROLES)
    credit_note = get_object_or_404(CreditNote, pk=pk, company=membership.company)
    try:
        issue_credit_note(credit_note)
    except CreditNoteError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    create_audit_log(request=request, action='credit_note_issue', model_name='CreditNote', object_id=credit_note.pk,
                     object_name=credit_note.credit_note_number, company=membership.company)
    return Response(CreditNoteSerializer(credit_note).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def credit_note_cancel(request, pk):
    membership = require_role(get_membership(request), FINANCE_ROLES)
    credit_note = get_object_or_404(CreditNote, pk=pk, company=membership.company)
    try:
        cancel_credit_note(credit_note)
    except CreditNoteError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    create_audit_log(request=request, action='credit_note_cancel', model_name='CreditNote', object_id=credit_note.pk,
                     object_name=credit_note.credit_note_number, changes={'reason': request.data.get('reason', '')},
                     company=membership.company)
    return Response(CreditNoteSerializer(credit_note).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def invoice_pdf(request, pk):
    membership = require_role(get_membership(request), FINANCE_ROLES + ['sales'])
    invoice = get_object_or_404(Invoice.objects.select_related('client', 'campaign', 'company'),
                                pk=pk, company=membership.company)
    try:
        content = build_invoice_pdf(invoice)
    except Exception as e:
        logger.error(f"Invoice PDF failed for invoice {invoice.pk}: {str(e)}")
        return Response({'error': 'Failed to generate invoice PDF'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
    return file_response(content, f'{invoice.invoice_number}.pdf', PDF_CONTENT_TYPE)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def invoice_register_export(request):
    membership = require_role(get_membership(request), FINANCE_ROLES)
    invoices = Invoice.objects.filter(company=membership.company).select_related('client', 'campaign')
    status_filter = request.query_params.get('status')
    if status_filter:
        invoices = invoices.filter(status=status_filter)
    content = build_invoice_register(invoices.order_by('invoice_date', 'invoice_number'))
    return file_response(content, f'invoices-{timezone.localdate():%Y%m%d}.xlsx', XLSX_CONTENT_TYPE)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def invoice_aging(request):
    """Outstanding balances by days past due"""
    membership = require_role(get_membership(request), FINANCE_ROLES)
    today = parse_date_param(request.query_params.get('as_of'), timezone.localdate())
    return Response(aging_report(membership.company, today=today))


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def invoice_mark_overdue(request):
    membership = require_role(get_membership(request), FINANCE_ROLES)
    count = mark_overdue_invoices(company=membership.company)
    return Response({'marked_overdue': count})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def campaign_billing_schedule(request, pk):
    """Monthly billing periods of a campaign and which are already invoiced"""
    membership = require_role(get_membership(request), FINANCE_ROLES + ['sales'])
    campaign = get_object_or_404(Campaign, pk=pk, company=membership.company)
    return Response({
        'campaign_id': campaign.pk,
        'billing_cycle': campaign.billing_cycle,
        'periods': billing_schedule(campaign),
    })


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def campaign_invoices(request, pk):
    """Invoices of a campaign; POST generates one for the whole campaign or a period"""
    membership = require_role(get_membership(request), FINANCE_ROLES + ['sales'])
    campaign = get_object_or_404(Campaign.objects.select_related('client'), pk=pk, company=membership.company)

    if request.method == 'GET':
        return Response(InvoiceListSerializer(campaign.invoices.select_related('client'), many=True).data)

    require_role(membership, FINANCE_ROLES)
    serializer = GenerateInvoiceSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    try:
        invoice = generate_invoice_from_campaign(
            campaign, user=request.user,
            period_start=serializer.validated_data.get('period_start'),
            period_end=serializer.validated_data.get('period_end'),
            invoice_date=serializer.validated_data.get('invoice_date'),
        )
    except InvoiceError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    create_audit_log(request=request, action='invoice_create', model_name='Invoice', object_id=invoice.pk,
                     object_name=invoice.invoice_number, object_reference=campaign.campaign_code,
                     company=membership.company)
    return Response(InvoiceSerializer(invoice).data, status=status.HTTP_201_CREATED)


# Expenses

def _expense_queryset(request, company):
    queryset = Expense.objects.filter(company=company).select_related('campaign', 'asset')
    category = request.query_params.get('category')
    if category:
        queryset = queryset.filter(category=category)
    payment_status = request.query_params.get('payment_status')
    if payment_status:
        queryset = queryset.filter(payment_status=payment_status)
    month = request.query_params.get('month')
    if month:
        month_start = parse_date_param(f'{month}-01')
        if month_start:
            queryset = queryset.filter(expense_date__year=month_start.year, expense_date__month=month_start.month)
    for param, field in (('campaign', 'campaign_id'), ('asset', 'asset_id')):
        value = request.query_params.get(param)
        if value:
            queryset = queryset.filter(**{field: value})
    return queryset


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def expense_list_create(request):
    membership = require_role(get_membership(request), FINANCE_ROLES + OPERATIONS_ROLES)
    company = membership.company

    if request.method == 'GET':
        return Response(ExpenseSerializer(_expense_queryset(request, company), many=True).data)

    serializer = ExpenseSerializer(data=request.data, context={'company': company})
    if serializer.is_valid():
        with transaction.atomic():
            expense_date = serializer.validated_data['expense_date']
            expense = serializer.save(company=company, expense_code=generate_expense_code(company, expense_date),
                                      created_by=request.user)
        create_audit_log(request=request, action='expense_create', model_name='Expense', object_id=expense.pk,
                         object_name=expense.expense_code, company=company)
        return Response(ExpenseSerializer(expense).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def expense_detail(request, pk):
    membership = require_role(get_membership(request), FINANCE_ROLES + OPERATIONS_ROLES)
    expense = get_object_or_404(Expense, pk=pk, company=membership.company)

    if request.method == 'GET':
        return Response(ExpenseSerializer(expense).data)

    if request.method in ('PUT', 'PATCH'):
        serializer = ExpenseSerializer(expense, data=request.data, partial=request.method == 'PATCH',
                                       context={'company': membership.company})
        if serializer.is_valid():
            expense = serializer.save()
            create_audit_log(request=request, action='update', model_name='Expense', object_id=expense.pk,
                             object_name=expense.expense_code, changes=request.data, company=membership.company)
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    require_role(membership, FINANCE_ROLES)
    create_audit_log(request=request, action='delete', model_name='Expense', object_id=expense.pk,
                     object_name=expense.expense_code, company=membership.company)
    expense.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def expense_mark_paid(request, pk):
    membership = require_role(get_membership(request), FINANCE_ROLES)
    expense = get_object_or_404(Expense, pk=pk, company=membership.company)
    if expense.payment_status == 'Paid':
        return Response({'error': 'Expense is already paid'}, status=status.HTTP_400_BAD_REQUEST)
    expense.payment_status = 'Paid'
    expense.paid_date = parse_date_param(request.data.get('paid_date'), timezone.localdate())
    expense.save(update_fields=['payment_status', 'paid_date', 'updated_at'])
    create_audit_log(request=request, action='update', model_name='Expense', object_id=expense.pk,
                     object_name=expense.expense_code, changes={'payment_status': 'Paid'},
                     company=membership.company)
    return Response(ExpenseSerializer(expense).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def expense_summary(request):
    """Totals by category and payment status for the filtered expenses"""
    membership = require_role(get_membership(request), FINANCE_ROLES + OPERATIONS_ROLES)
    queryset = _expense_queryset(request, membership.company)
    by_category = queryset.values('category').annotate(
        count=Count('id'), amount=Sum('amount'), gst_amount=Sum('gst_amount'), total_amount=Sum('total_amount'),
    ).order_by('category')
    totals = queryset.aggregate(total=Sum('total_amount'))
    pending = queryset.filter(payment_status='Pending').aggregate(total=Sum('total_amount'))
    paid = queryset.filter(payment_status='Paid').aggregate(total=Sum('total_amount'))
    return Response({
        'by_category': list(by_category),
        'total_amount': totals['total'] or Decimal('0.00'),
        'pending_amount': pending['total'] or Decimal('0.00'),
        'paid_amount': paid['total'] or Decimal('0.00'),
        'count': queryset.count(),
    })
