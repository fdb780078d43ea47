"""
Test suite for power bills
Tests: anomaly detection, bill payload parsing, the bill service client, monthly fetch and the power bill API
"""
from datetime import date
from decimal import Decimal
from io import StringIO

import requests
from django.core.management import call_command
from django.test import SimpleTestCase, TestCase, override_settings
from rest_framework import status

from oohops.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from oohops.finance.models import Expense
from oohops.powerbills.client import PowerBillFetchError, parse_bill_payload, fetch_bill
from oohops.powerbills.models import AssetPowerBill, PowerBillJob
from oohops.powerbills.services import (
    detect_anomaly, normalize_bill_month, create_power_bill, mark_bill_paid, eligible_assets,
    fetch_monthly_power_bills,
)


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def json(self):
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload


class FakeSession:
    """Records the request and answers with a canned response"""

    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def post(self, url, json=None, headers=None, timeout=None):
        self.calls.append({'url': url, 'json': json, 'headers': headers})
        if self.error:
            raise self.error
        return self.response


class AnomalyTests(SimpleTestCase):

    def test_spike_above_threshold(self):
        is_anomaly, anomaly_type, details = detect_anomaly(Decimal('1400'), [Decimal('1000'), Decimal('1000')])
        self.assertTrue(is_anomaly)
        self.assertEqual(anomaly_type, 'high_spike')
        self.assertEqual(details['percentage_increase'], '40.00')

    def test_within_threshold(self):
        self.assertFalse(detect_anomaly(Decimal('1350'), [Decimal('1000')])[0])

    def test_no_history_or_zero_average(self):
        self.assertFalse(detect_anomaly(Decimal('5000'), [])[0])
        self.assertFalse(detect_anomaly(Decimal('5000'), [Decimal('0')])[0])

    def test_normalize_bill_month(self):
        self.assertEqual(normalize_bill_month('2025-03'), date(2025, 3, 1))
        self.assertEqual(normalize_bill_month('2025-03-17'), date(2025, 3, 1))
        self.assertEqual(normalize_bill_month(date(2025, 3, 9)), date(2025, 3, 1))
        self.assertIsNone(normalize_bill_month('March'))


@override_settings(POWER_BILL_API_URL='https://bills.example.test/lookup', POWER_BILL_API_KEY='secret')
class BillClientTests(SimpleTestCase):
    """Test the bill lookup client"""

    def test_parse_wrapped_camel_case_payload(self):
        bill = parse_bill_payload({'data': {'consumerName': 'Skyline', 'billAmount': '1,250.50',
                                            'billMonth': '2025-03'}}, 'USN1')
        self.assertEqual(bill['consumer_name'], 'Skyline')
        self.assertEqual(bill['bill_amount'], Decimal('1250.50'))
        self.assertEqual(bill['total_due'], Decimal('1250.50'))
        self.assertEqual(bill['unique_service_number'], 'USN1')

    def test_empty_bill_is_an_error(self):
        with self.assertRaises(PowerBillFetchError):
            parse_bill_payload({'consumer_name': 'Skyline'}, 'USN1')
        with self.assertRaises(PowerBillFetchError):
            parse_bill_payload(['not', 'a', 'bill'], 'USN1')

    def test_fetch_sends_key_and_service_number(self):
        session = FakeSession(FakeResponse({'bill_amount': 900, 'bill_month': '2025-04'}))
        bill = fetch_bill('USN42', session=session)
        self.assertEqual(bill['bill_amount'], Decimal('900.00'))
        self.assertEqual(session.calls[0]['json'], {'unique_service_number': 'USN42'})
        self.assertEqual(session.calls[0]['headers']['x-api-key'], 'secret')

    def test_fetch_error_responses(self):
        cases = [
            FakeSession(FakeResponse({}, status_code=503)),
            FakeSession(FakeResponse(ValueError('bad json'))),
            FakeSession(FakeResponse({'success': False, 'error': 'USN not found'})),
            FakeSession(error=requests.exceptions.ConnectionError('refused')),
        ]
        for session in cases:
            with self.assertRaises(PowerBillFetchError):
                fetch_bill('USN42', session=session)

    @override_settings(POWER_BILL_API_URL='')
    def test_unconfigured_service(self):
        with self.assertRaises(PowerBillFetchError):
            fetch_bill('USN42', session=FakeSession())


class PowerBillServiceTests(TestCase):
    """Test bill storage, expenses and the monthly fetch"""

    def setUp(self):
        self.company = TestDataFactory.create_company()
        self.asset = TestDataFactory.create_asset(
            self.company, illumination_type='Front-Lit', unique_service_number='USN-100', consumer_name='Skyline'
        )

    def test_bill_creates_linked_expense(self):
        bill = create_power_bill(self.asset, {'bill_month': '2025-03', 'bill_amount': Decimal('1200')})
        self.assertEqual(bill.bill_month, date(2025, 3, 1))
        self.assertEqual(bill.total_due, Decimal('1200'))
        expense = Expense.objects.get(power_bill=bill)
        self.assertEqual(expense.category, 'Power Bill')
        self.assertEqual(expense.total_amount, Decimal('1200.00'))

    def test_anomaly_uses_previous_months(self):
        create_power_bill(self.asset, {'bill_month': '2025-01', 'bill_amount': Decimal('1000')})
        create_power_bill(self.asset, {'bill_month': '2025-02', 'bill_amount': Decimal('1000')})
        bill = create_power_bill(self.asset, {'bill_month': '2025-03', 'bill_amount': Decimal('2000')})
        self.assertTrue(bill.is_anomaly)

    def test_mark_paid_updates_expense(self):
        bill = create_power_bill(self.asset, {'bill_month': '2025-03', 'bill_amount': Decimal('1200')})
        mark_bill_paid(bill, payment_reference='TXN9')
        self.assertEqual(Expense.objects.get(power_bill=bill).payment_status, 'Paid')

    def test_eligible_assets(self):
        TestDataFactory.create_asset(self.company, illumination_type='Non-Lit', unique_service_number='USN-200')
        TestDataFactory.create_asset(self.company, illumination_type='Back-Lit', unique_service_number='')
        suspended = TestDataFactory.create_company(status='suspended')
        TestDataFactory.create_asset(suspended, illumination_type='Digital', unique_service_number='USN-300')
        self.assertEqual(list(eligible_assets()), [self.asset])

    def test_fetch_continues_after_failure(self):
        broken = TestDataFactory.create_asset(self.company, illumination_type='Digital', unique_service_number='USN-BAD')
        existing = TestDataFactory.create_asset(self.company, illumination_type='Back-Lit',
                                                unique_service_number='USN-OLD')
        create_power_bill(existing, {'bill_month': '2025-03', 'bill_amount': Decimal('800')})

        def fetcher(usn):
            if usn == 'USN-BAD':
                raise PowerBillFetchError('USN not found')
            return {'bill_month': '2025-03', 'bill_amount': Decimal('1500'), 'total_due': Decimal('1500')}

        results = fetch_monthly_power_bills(company=self.company, fetcher=fetcher)
        self.assertEqual(results['total'], 3)
        self.assertEqual(results['success'], 1)
        self.assertEqual(results['skipped'], 1)
        self.assertEqual(results['failed'], 1)
        self.assertEqual(results['expenses_created'], 1)
        self.assertEqual(PowerBillJob.objects.get(asset=broken).job_status, 'failed')
        self.assertTrue(AssetPowerBill.objects.filter(asset=self.asset, bill_month=date(2025, 3, 1)).exists())

    @override_settings(POWER_BILL_API_URL='')
    def test_fetch_command_reports_counts(self):
        out = StringIO()
        call_command('fetch_power_bills', company_id=self.company.pk, stdout=out)
        self.assertIn('Assets: 1, new bills: 0, skipped: 0, failed: 1', out.getvalue())


class PowerBillAPITests(TestCase):
    """Test power bill endpoints"""

    def setUp(self):
        self.company = TestDataFactory.create_company()
        self.user = TestDataFactory.create_member(self.company, role='finance')
        self.asset = TestDataFactory.create_asset(self.company, illumination_type='Front-Lit',
                                                  unique_service_number='USN-100')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_manual_entry_and_duplicate_month(self):
        payload = {'asset': self.asset.pk, 'bill_month': '2025-03', 'bill_amount': '1200'}
        response = self.client.post('/api/v1/power-bills/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['bill_month'], '2025-03')
        self.assertIsNotNone(response.data['expense_code'])
        response = self.client.post('/api/v1/power-bills/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_paid_bill_is_immutable(self):
        bill = create_power_bill(self.asset, {'bill_month': '2025-03', 'bill_amount': Decimal('1200')})
        response = self.client.post(f'/api/v1/power-bills/{bill.pk}/mark-paid/', {'payment_reference': 'TXN1'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        response = self.client.patch(f'/api/v1/power-bills/{bill.pk}/', {'bill_amount': '10'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.post(f'/api/v1/power-bills/{bill.pk}/mark-paid/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_summary(self):
        create_power_bill(self.asset, {'bill_month': '2025-03', 'bill_amount': Decimal('1200')})
        response = self.client.get('/api/v1/power-bills/summary/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['pending_count'], 1)
        self.assertEqual(response.data['by_month'][0]['month'], '2025-03')

    def test_fetch_requires_admin(self):
        response = self.client.post('/api/v1/power-bills/fetch/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_sales_has_no_access(self):
        sales = TestDataFactory.create_member(self.company, role='sales')
        self.client.authenticate_user(sales)
        response = self.client.get('/api/v1/power-bills/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
