"""
Test suite for reports
Tests: role dashboards, KPI caching, revenue, client summary and vacant media exports
"""
from datetime import timedelta
from decimal import Decimal

from django.core.cache import cache
from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from oohops.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from oohops.finance.services import record_payment
from oohops.reports.services import ROLE_SECTIONS, build_dashboard_kpis, revenue_report, client_summary


class DashboardServiceTests(TestCase):
    """Test KPI sections per role"""

    def setUp(self):
        self.today = timezone.localdate()
        self.company = TestDataFactory.create_company()
        self.campaign = TestDataFactory.create_campaign(self.company)
        self.invoice = TestDataFactory.create_invoice(self.campaign)

    def test_sections_follow_role(self):
        for role, sections in ROLE_SECTIONS.items():
            data = build_dashboard_kpis(self.company, role, self.today.replace(day=1), self.today)
            self.assertEqual(set(data) - {'role', 'period'}, set(sections), role)

    def test_finance_section(self):
        record_payment(self.invoice, Decimal('1000'))
        data = build_dashboard_kpis(self.company, 'finance', self.today - timedelta(days=30), self.today)
        self.assertEqual(data['finance']['invoiced'], self.invoice.total_amount)
        self.assertEqual(data['finance']['collected'], Decimal('1000.00'))
        self.assertEqual(data['finance']['outstanding'], self.invoice.total_amount - Decimal('1000.00'))

    def test_inventory_occupancy(self):
        TestDataFactory.create_asset(self.company)
        data = build_dashboard_kpis(self.company, 'sales', self.today, self.today)
        self.assertEqual(data['inventory']['total_assets'], 2)
        self.assertEqual(data['inventory']['occupancy_percent'], 50.0)

    def test_mounter_sees_own_tasks(self):
        mounter = TestDataFactory.create_member(self.company, role='installation')
        data = build_dashboard_kpis(self.company, 'installation', self.today, self.today, user=mounter)
        self.assertEqual(data['operations']['open_tasks'], 0)
        data = build_dashboard_kpis(self.company, 'operations', self.today, self.today)
        self.assertEqual(data['operations']['open_tasks'], 1)
        self.assertEqual(data['operations']['unassigned'], 1)

    def test_unknown_role_gets_no_sections(self):
        data = build_dashboard_kpis(self.company, 'user', self.today, self.today)
        self.assertEqual(set(data), {'role', 'period'})

    def test_revenue_by_month(self):
        report = revenue_report(self.company, self.today - timedelta(days=365), self.today)
        self.assertEqual(report['totals']['invoiced'], self.invoice.total_amount)
        self.assertEqual(report['months'][-1]['month'], f'{self.today:%Y-%m}')

    def test_client_summary(self):
        rows = client_summary(self.company)
        self.assertEqual(rows[0]['client_id'], self.campaign.client_id)
        self.assertEqual(rows[0]['campaign_count'], 1)
        self.assertEqual(rows[0]['outstanding'], self.invoice.total_amount)


class ReportsAPITests(TestCase):
    """Test report endpoints"""

    def setUp(self):
        cache.clear()
        self.company = TestDataFactory.create_company()
        self.user = TestDataFactory.create_member(self.company, role='admin')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_dashboard_kpis_are_cached(self):
        response = self.client.get('/api/v1/reports/dashboard-kpis/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response['X-Cache'], 'MISS')
        self.assertIn('finance', response.data)
        response = self.client.get('/api/v1/reports/dashboard-kpis/')
        self.assertEqual(response['X-Cache'], 'HIT')

    def test_sales_dashboard_has_no_finance(self):
        sales = TestDataFactory.create_member(self.company, role='sales')
        self.client.authenticate_user(sales)
        response = self.client.get('/api/v1/reports/dashboard-kpis/')
        self.assertNotIn('finance', response.data)
        self.assertIn('plans', response.data)

    def test_revenue_requires_finance_role(self):
        response = self.client.get('/api/v1/reports/revenue/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        monitor = TestDataFactory.create_member(self.company, role='monitor')
        self.client.authenticate_user(monitor)
        response = self.client.get('/api/v1/reports/revenue/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_revenue_rejects_inverted_range(self):
        response = self.client.get('/api/v1/reports/revenue/', {'date_from': '2025-05-01', 'date_to': '2025-01-01'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_outstanding_report(self):
        TestDataFactory.create_invoice(TestDataFactory.create_campaign(self.company))
        response = self.client.get('/api/v1/reports/outstanding/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['clients']), 1)

    def test_vacant_media_excludes_booked(self):
        free = TestDataFactory.create_asset(self.company)
        TestDataFactory.create_campaign(self.company)
        today = timezone.localdate()
        params = {'start_date': today.isoformat(), 'end_date': (today + timedelta(days=10)).isoformat()}
        response = self.client.get('/api/v1/reports/vacant-media/', params)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row['id'] for row in response.data['assets']], [free.pk])

        response = self.client.get('/api/v1/reports/vacant-media/', {})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_vacant_media_exports(self):
        TestDataFactory.create_asset(self.company)
        today = timezone.localdate()
        params = {'start_date': today.isoformat(), 'end_date': (today + timedelta(days=10)).isoformat()}
        expected = {
            'excel': 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
            'ppt': 'application/vnd.openxmlformats-officedocument.presentationml.presentation',
        }
        for fmt, content_type in expected.items():
            response = self.client.get(f'/api/v1/reports/vacant-media/export/{fmt}/', params)
            self.assertEqual(response.status_code, status.HTTP_200_OK, fmt)
            self.assertEqual(response['Content-Type'], content_type)
        response = self.client.get('/api/v1/reports/vacant-media/export/csv/', params)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
