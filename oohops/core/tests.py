"""
Test suite for core: roles, dashboard routing, document codes, tenancy and auth
"""
from datetime import date

from django.test import SimpleTestCase, TestCase
from rest_framework import status

from oohops.core.codes import (
    get_city_code, get_media_type_code, generate_asset_code, generate_client_code,
    generate_plan_code, generate_campaign_code, generate_invoice_code,
)
from oohops.core.models import AuditLog, Company, CompanyUser
from oohops.core.roles import resolve_primary_role, resolve_dashboard, module_access_flags
from oohops.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from oohops.core.utils import round_money, to_decimal, parse_date_param
from decimal import Decimal


class RoleResolutionTests(SimpleTestCase):
    """Test role priority and dashboard routing"""

    def test_highest_priority_role_wins(self):
        self.assertEqual(resolve_primary_role(['sales', 'finance']), 'finance')
        self.assertEqual(resolve_primary_role(['installation', 'admin']), 'admin')

    def test_roles_are_case_insensitive(self):
        self.assertEqual(resolve_primary_role(['Manager']), 'manager')

    def test_unknown_roles_fall_back_to_user(self):
        self.assertEqual(resolve_primary_role([]), 'user')
        self.assertEqual(resolve_primary_role(['astronaut']), 'user')

    def test_dashboard_routes(self):
        self.assertEqual(resolve_dashboard(['sales']), '/admin/plans')
        self.assertEqual(resolve_dashboard(['installation']), '/mobile/installation')
        self.assertEqual(resolve_dashboard(['monitor']), '/mobile/monitoring')
        self.assertEqual(resolve_dashboard([]), '/dashboard')

    def test_platform_admin_route_overrides_roles(self):
        self.assertEqual(resolve_dashboard(['sales'], is_platform_admin=True), '/admin/platform')

    def test_module_access_flags(self):
        flags = module_access_flags('finance')
        self.assertTrue(flags['can_access_finance'])
        self.assertFalse(flags['can_access_plans'])
        self.assertFalse(any(module_access_flags(None).values()))


class UtilityTests(SimpleTestCase):

    def test_round_money_half_up(self):
        self.assertEqual(round_money(Decimal('10.005')), Decimal('10.01'))

    def test_to_decimal_default(self):
        self.assertEqual(to_decimal('abc', Decimal('1')), Decimal('1'))
        self.assertEqual(to_decimal('12.5'), Decimal('12.5'))

    def test_parse_date_param(self):
        self.assertEqual(parse_date_param('2025-03-04'), date(2025, 3, 4))
        self.assertEqual(parse_date_param('', date(2025, 1, 1)), date(2025, 1, 1))


class CodeGenerationTests(TestCase):
    """Test human-readable document codes"""

    def setUp(self):
        self.company = TestDataFactory.create_company()

    def test_city_and_media_type_codes(self):
        self.assertEqual(get_city_code('Hyderabad'), 'HYD')
        self.assertEqual(get_media_type_code('Bus Shelter'), 'BQS')
        self.assertEqual(get_media_type_code('Unipole'), 'UNI')
        self.assertEqual(get_media_type_code('Wall Wrap'), 'WAL')

    def test_asset_codes_are_sequential_per_city_and_type(self):
        self.assertEqual(generate_asset_code(self.company, 'Hyderabad', 'Bus Shelter'), 'HYD-BQS-0001')
        self.assertEqual(generate_asset_code(self.company, 'Hyderabad', 'Bus Shelter'), 'HYD-BQS-0002')
        self.assertEqual(generate_asset_code(self.company, 'Hyderabad', 'Unipole'), 'HYD-UNI-0001')

    def test_counters_are_per_company(self):
        other = TestDataFactory.create_company()
        generate_asset_code(self.company, 'Hyderabad', 'Bus Shelter')
        self.assertEqual(generate_asset_code(other, 'Hyderabad', 'Bus Shelter'), 'HYD-BQS-0001')

    def test_client_code(self):
        self.assertEqual(generate_client_code(self.company, 'tg'), 'CLT-TG-0001')

    def test_monthly_codes(self):
        self.assertEqual(generate_campaign_code(self.company, date(2025, 11, 3)), 'CMP-202511-0001')
        self.assertEqual(generate_invoice_code(self.company, date(2025, 11, 3)), 'INV-202511-0001')
        self.assertEqual(generate_invoice_code(self.company, date(2025, 12, 1)), 'INV-202512-0001')
        self.assertTrue(generate_plan_code(self.company).startswith('PLAN-'))


class AuthAPITests(TestCase):
    """Test registration, login and the current-user endpoint"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()

    def test_register_creates_pending_company(self):
        response = self.client.post('/api/v1/auth/register/', {
            'username': 'owner1',
            'email': 'owner1@test.com',
            'password': 'Str0ng-Passw0rd!',
            'password_confirm': 'Str0ng-Passw0rd!',
            'company_name': 'Skyline Media',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['company']['status'], 'pending')
        self.assertIn('access', response.data)
        company = Company.objects.get(name='Skyline Media')
        self.assertTrue(CompanyUser.objects.filter(company=company, role='admin').exists())

    def test_register_password_mismatch(self):
        response = self.client.post('/api/v1/auth/register/', {
            'username': 'owner2', 'email': 'owner2@test.com',
            'password': 'Str0ng-Passw0rd!', 'password_confirm': 'different',
            'company_name': 'Other Media',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_login_token_carries_roles(self):
        company = TestDataFactory.create_company()
        user = TestDataFactory.create_member(company, role='finance')
        response = self.client.post('/api/v1/auth/login/', {
            'username': user.username, 'password': 'testpass123',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)

    def test_me_reports_dashboard_route(self):
        company = TestDataFactory.create_company()
        user = TestDataFactory.create_member(company, role='sales')
        TestDataFactory.create_member(TestDataFactory.create_company(), role='operations', user=user)
        self.client.authenticate_user(user)
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['primary_role'], 'sales')
        self.assertEqual(response.data['dashboard_route'], '/admin/plans')
        self.assertEqual(len(response.data['memberships']), 2)
        self.assertTrue(response.data['can_access_plans'])

    def test_me_requires_authentication(self):
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class TenancyTests(TestCase):
    """Test that company data is isolated per tenant"""

    def setUp(self):
        self.company_a = TestDataFactory.create_company()
        self.company_b = TestDataFactory.create_company()
        self.user_a = TestDataFactory.create_member(self.company_a, role='admin')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user_a)
        self.asset_b = TestDataFactory.create_asset(self.company_b)

    def test_other_company_asset_not_visible(self):
        response = self.client.get(f'/api/v1/media-assets/{self.asset_b.pk}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_company_header_selects_membership(self):
        TestDataFactory.create_member(self.company_b, role='sales', user=self.user_a)
        self.client.authenticate_user(self.user_a, company=self.company_b)
        response = self.client.get('/api/v1/companies/current/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['id'], self.company_b.pk)

    def test_company_header_without_membership_is_forbidden(self):
        self.client.authenticate_user(self.user_a, company=self.company_b)
        response = self.client.get('/api/v1/companies/current/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_suspended_company_loses_access(self):
        self.company_a.status = 'suspended'
        self.company_a.save()
        response = self.client.get('/api/v1/companies/current/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class CompanyAdminAPITests(TestCase):
    """Test membership management and platform approval"""

    def setUp(self):
        self.company = TestDataFactory.create_company()
        self.admin = TestDataFactory.create_member(self.company, role='admin')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def test_invite_member(self):
        response = self.client.post('/api/v1/company-users/', {
            'email': 'mounter@test.com', 'role': 'installation',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(CompanyUser.objects.filter(company=self.company, role='installation').exists())
        self.assertTrue(AuditLog.objects.filter(company=self.company, action='member_invite').exists())

    def test_non_admin_cannot_manage_members(self):
        sales = TestDataFactory.create_member(self.company, role='sales')
        self.client.authenticate_user(sales)
        response = self.client.get('/api/v1/company-users/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_platform_admin_approves_company(self):
        platform = TestDataFactory.create_company(company_type='platform_admin')
        operator = TestDataFactory.create_member(platform, role='admin')
        pending = TestDataFactory.create_company(status='pending')
        self.client.authenticate_user(operator)
        response = self.client.post(f'/api/v1/companies/{pending.pk}/approve/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        pending.refresh_from_db()
        self.assertEqual(pending.status, 'active')

    def test_tenant_admin_cannot_approve(self):
        pending = TestDataFactory.create_company(status='pending')
        response = self.client.post(f'/api/v1/companies/{pending.pk}/approve/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
