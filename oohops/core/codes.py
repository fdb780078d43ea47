"""
Human-readable document codes.

Formats:
    asset       HYD-BQS-0001      (city code, media type code, permanent counter)
    plan        PLAN-202511-0007
    campaign    CMP-202511-0003   (period taken from the campaign start date)
    client      CLT-TG-0004       (state code, permanent counter)
    invoice     INV-202511-0005
    estimation  EST-202511-0012
    expense     EXP-202511-0003
    work order  WO-202511-0010
    sales order SO-202511-0008
"""
import re

from django.db import transaction
from django.utils import timezone

from .models import CodeCounter

MEDIA_TYPE_CODES = {
    'bus shelter': 'BQS',
    'bus queue shelter': 'BQS',
    'center median': 'CM',
    'unipole': 'UNI',
    'cantilever': 'CAN',
    'pole kiosk': 'PK',
    'gantry': 'GAN',
    'billboard': 'HOD',
    'hoarding': 'HOD',
}

PERMANENT = 'permanent'


def get_city_code(city):
    letters = re.sub(r'[^A-Za-z]', '', city or '')
    return (letters or 'XXX').upper()[:3]


def get_media_type_code(media_type):
    media_type = (media_type or '').strip()
    code = MEDIA_TYPE_CODES.get(media_type.lower())
    if code:
        return code
    letters = re.sub(r'[^A-Za-z]', '', media_type)
    return (letters or 'GEN').upper()[:3]


def period_for(value=None):
    """YYYYMM for a date (today when not given)"""
    value = value or timezone.localdate()
    return f"{value.year}{value.month:02d}"


def pad_number(num):
    return str(num).zfill(4)


def next_code_number(company, counter_type, counter_key, period):
    """Atomically increment and return the counter for (type, key, period)."""
    with transaction.atomic():
        counter, _ = CodeCounter.objects.select_for_update().get_or_create(
            company=company,
            counter_type=counter_type,
            counter_key=counter_key,
            period=period,
            defaults={'current_value': 0},
        )
        counter.current_value += 1
        counter.save(update_fields=['current_value', 'updated_at'])
        return counter.current_value


def generate_asset_code(company, city, media_type):
    city_code = get_city_code(city)
    type_code = get_media_type_code(media_type)
    sequence = next_code_number(company, 'ASSET', f"{city_code}_{type_code}", PERMANENT)
    return f"{city_code}-{type_code}-{pad_number(sequence)}"


def generate_client_code(company, state_code):
    state_key = (state_code or 'XX').strip().upper()
    sequence = next_code_number(company, 'CLIENT', state_key, PERMANENT)
    return f"CLT-{state_key}-{pad_number(sequence)}"


def _monthly_code(company, prefix, counter_type, on_date=None):
    period = period_for(on_date)
    sequence = next_code_number(company, counter_type, 'default', period)
    return f"{prefix}-{period}-{pad_number(sequence)}"


def generate_plan_code(company):
    return _monthly_code(company, 'PLAN', 'PLAN')


def generate_campaign_code(company, start_date=None):
    return _monthly_code(company, 'CMP', 'CAMPAIGN', start_date)


def generate_invoice_code(company, invoice_date=None):
    return _monthly_code(company, 'INV', 'INVOICE', invoice_date)


def generate_estimation_code(company):
    return _monthly_code(company, 'EST', 'ESTIMATION')


def generate_expense_code(company, expense_date=None):
    return _monthly_code(company, 'EXP', 'EXPENSE', expense_date)


def generate_credit_note_code(company, credit_note_date=None):
    return _monthly_code(company, 'CN', 'CREDIT_NOTE', credit_note_date)


def generate_receipt_code(company, payment_date=None):
    return _monthly_code(company, 'RCT', 'RECEIPT', payment_date)
