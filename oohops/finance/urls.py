from django.urls import path
from .views import (
    invoice_list_create, invoice_detail, invoice_send, invoice_cancel, invoice_payments, invoice_pdf,
    invoice_register_export, invoice_aging, invoice_mark_overdue, payment_list, payment_send_receipt,
    invoice_credit_notes, credit_note_list, credit_note_detail, credit_note_issue, credit_note_cancel,
    campaign_billing_schedule, campaign_invoices,
    expense_list_create, expense_detail, expense_mark_paid, expense_summary
)

urlpatterns = [
    # Invoice endpoints
    path('invoices/', invoice_list_create, name='invoice-list-create'),
    path('invoices/aging/', invoice_aging, name='invoice-aging'),
    path('invoices/export/excel/', invoice_register_export, name='invoice-register-export'),
    path('invoices/mark-overdue/', invoice_mark_overdue, name='invoice-mark-overdue'),
    path('invoices/<int:pk>/', invoice_detail, name='invoice-detail'),
    path('invoices/<int:pk>/send/', invoice_send, name='invoice-send'),
    path('invoices/<int:pk>/cancel/', invoice_cancel, name='invoice-cancel'),
    path('invoices/<int:pk>/payments/', invoice_payments, name='invoice-payments'),
    path('invoices/<int:pk>/pdf/', invoice_pdf, name='invoice-pdf'),
    path('invoices/<int:pk>/credit-notes/', invoice_credit_notes, name='invoice-credit-notes'),
    path('payments/', payment_list, name='payment-list'),
    path('payments/<int:pk>/send-receipt/', payment_send_receipt, name='payment-send-receipt'),

    # Credit notes
    path('credit-notes/', credit_note_list, name='credit-note-list'),
    path('credit-notes/<int:pk>/', credit_note_detail, name='credit-note-detail'),
    path('credit-notes/<int:pk>/issue/', credit_note_issue, name='credit-note-issue'),
    path('credit-notes/<int:pk>/cancel/', credit_note_cancel, name='credit-note-cancel'),

    # Campaign billing
    path('campaigns/<int:pk>/billing-schedule/', campaign_billing_schedule, name='campaign-billing-schedule'),
    path('campaigns/<int:pk>/invoices/', campaign_invoices, name='campaign-invoices'),

    # Expense endpoints
    path('expenses/', expense_list_create, name='expense-list-create'),
    path('expenses/summary/', expense_summary, name='expense-summary'),
    path('expenses/<int:pk>/', expense_detail, name='expense-detail'),
    path('expenses/<int:pk>/mark-paid/', expense_mark_paid, name='expense-mark-paid'),
]
