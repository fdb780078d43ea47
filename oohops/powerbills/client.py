"""
HTTP client for the electricity board bill lookup service.

The service is configured with POWER_BILL_API_URL and POWER_BILL_API_KEY.
It takes a unique service number and answers with the latest bill as JSON,
either flat or wrapped in a "data" object, with snake_case or camelCase keys.
"""
import logging
from decimal import Decimal, InvalidOperation

import requests
from django.conf import settings

logger = logging.getLogger(__name__)


class PowerBillFetchError(Exception):
    """The bill could not be fetched or the response held no bill."""


# Accepted response keys per bill field, first match wins
FIELD_KEYS = {
    'consumer_name': ('consumer_name', 'consumerName'),
    'unique_service_number': ('unique_service_number', 'uniqueServiceNumber', 'usn'),
    'bill_month': ('bill_month', 'billMonth'),
    'bill_date': ('bill_date', 'billDate'),
    'due_date': ('due_date', 'dueDate'),
    'bill_amount': ('bill_amount', 'billAmount', 'current_month_bill', 'currentMonthBill'),
    'energy_charges': ('energy_charges', 'energyCharges'),
    'fixed_charges': ('fixed_charges', 'fixedCharges'),
    'arrears': ('arrears',),
    'total_due': ('total_due', 'totalDue', 'total_amount', 'totalAmount'),
}

AMOUNT_FIELDS = ('bill_amount', 'energy_charges', 'fixed_charges', 'arrears', 'total_due')


def _amount(value):
    if value in (None, ''):
        return Decimal('0.00')
    try:
        return Decimal(str(value).replace(',', '')).quantize(Decimal('0.01'))
    except (InvalidOperation, ValueError):
        return Decimal('0.00')


def parse_bill_payload(payload, unique_service_number):
    """Normalise a bill response into AssetPowerBill field names"""
    if isinstance(payload, dict) and isinstance(payload.get('data'), dict):
        payload = payload['data']
    if not isinstance(payload, dict):
        raise PowerBillFetchError('Unexpected bill response format')

    bill = {}
    for field, keys in FIELD_KEYS.items():
        bill[field] = next((payload[k] for k in keys if payload.get(k) not in (None, '')), None)
    for field in AMOUNT_FIELDS:
        bill[field] = _amount(bill[field])
    if not bill['total_due']:
        bill['total_due'] = bill['bill_amount']
    if not bill['bill_amount']:
        bill['bill_amount'] = bill['total_due']
    bill['unique_service_number'] = bill['unique_service_number'] or unique_service_number
    bill['consumer_name'] = bill['consumer_name'] or ''

    if not bill['bill_amount'] and not bill['total_due']:
        raise PowerBillFetchError(f'No bill found for service number {unique_service_number}')
    return bill


def fetch_bill(unique_service_number, session=None):
    """
    Fetch the latest bill of one service connection.

    Returns a dict of AssetPowerBill fields (dates still as strings).
    Raises PowerBillFetchError when the service is not configured,
    unreachable, answers with an error or returns an empty bill.
    """
    api_url = getattr(settings, 'POWER_BILL_API_URL', '')
    if not api_url:
        raise PowerBillFetchError('POWER_BILL_API_URL is not configured')

    headers = {'Content-Type': 'application/json'}
    api_key = getattr(settings, 'POWER_BILL_API_KEY', '')
    if api_key:
        headers['x-api-key'] = api_key

    http = session or requests
    try:
        response = http.post(
            api_url,
            json={'unique_service_number': unique_service_number},
            headers=headers,
            timeout=getattr(settings, 'POWER_BILL_API_TIMEOUT', 20),
        )
    except requests.exceptions.RequestException as e:
        logger.warning(f"Power bill lookup failed for {unique_service_number}: {str(e)}")
        raise PowerBillFetchError(f'Bill service unreachable: {str(e)}')

    if response.status_code >= 400:
        raise PowerBillFetchError(f'Bill service returned HTTP {response.status_code}')
    try:
        payload = response.json()
    except ValueError:
        raise PowerBillFetchError('Bill service returned invalid JSON')

    if isinstance(payload, dict) and payload.get('success') is False:
        raise PowerBillFetchError(payload.get('error') or 'Bill service reported an error')
    return parse_bill_payload(payload, unique_service_number)
