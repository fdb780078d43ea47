from django.contrib import admin
from .models import Invoice, InvoiceItem, Payment, InvoiceReminder, CreditNote, CreditNoteItem, Expense


class InvoiceItemInline(admin.TabularInline):
    model = InvoiceItem
    extra = 0
    fields = ['asset_code', 'description', 'bill_start_date', 'bill_end_date', 'billable_days', 'base_amount', 'line_total']


class PaymentInline(admin.TabularInline):
    model = Payment
    extra = 0
    fields = ['receipt_number', 'amount', 'payment_date', 'method', 'reference', 'recorded_by', 'receipt_status']
    raw_id_fields = ['recorded_by']


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    list_display = ['invoice_number', 'client', 'company', 'invoice_date', 'due_date', 'status', 'total_amount', 'balance_due']
    list_filter = ['status', 'company']
    search_fields = ['invoice_number', 'client__name']
    inlines = [InvoiceItemInline, PaymentInline]


@admin.register(InvoiceReminder)
class InvoiceReminderAdmin(admin.ModelAdmin):
    list_display = ['invoice', 'aging_bucket', 'recipient', 'status', 'sent_at']
    list_filter = ['aging_bucket', 'status']


class CreditNoteItemInline(admin.TabularInline):
    model = CreditNoteItem
    extra = 0


@admin.register(CreditNote)
class CreditNoteAdmin(admin.ModelAdmin):
    list_display = ['credit_note_number', 'invoice', 'client', 'company', 'credit_note_date', 'status', 'total_amount']
    list_filter = ['status', 'gst_mode', 'company']
    search_fields = ['credit_note_number', 'invoice__invoice_number', 'client__name']
    inlines = [CreditNoteItemInline]


@admin.register(Expense)
class ExpenseAdmin(admin.ModelAdmin):
    list_display = ['expense_code', 'category', 'vendor_name', 'company', 'total_amount', 'payment_status', 'expense_date']
    list_filter = ['category', 'payment_status', 'company']
    search_fields = ['expense_code', 'vendor_name']
