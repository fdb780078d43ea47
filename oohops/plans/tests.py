"""
Test suite for plans
Tests: item pricing, totals, the approval chain, conversion to campaigns, booking conflicts and exports
"""
from datetime import timedelta
from decimal import Decimal

from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework import status

from oohops.campaigns.bookings import BookingConflictError
from oohops.campaigns.models import Campaign
from oohops.core.exports import PDF_CONTENT_TYPE, XLSX_CONTENT_TYPE, PPTX_CONTENT_TYPE
from oohops.core.models import AuditLog
from oohops.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from oohops.plans.models import PlanApproval
from oohops.plans.services import (
    PlanWorkflowError, approval_chain, submit_for_approval, process_approval, convert_plan_to_campaign,
)
from oohops.pricing.calculator import PricingError


class PlanPricingTests(TestCase):
    """Test plan item pricing and plan totals"""

    def setUp(self):
        self.company = TestDataFactory.create_company()
        self.asset = TestDataFactory.create_asset(self.company, card_rate=Decimal('30000'), base_rate=Decimal('20000'))
        self.plan = TestDataFactory.create_plan(self.company)

    def test_item_defaults_from_asset(self):
        item = TestDataFactory.add_plan_item(self.plan, self.asset)
        self.assertEqual(item.card_rate, Decimal('30000'))
        self.assertEqual(item.sales_price, Decimal('30000'))
        self.assertEqual(item.booked_days, 30)
        self.assertEqual(item.rent_amount, Decimal('30000.00'))

    def test_discount_and_profit(self):
        item = TestDataFactory.add_plan_item(self.plan, self.asset, sales_price=Decimal('24000'))
        self.assertEqual(item.discount_value, Decimal('6000.00'))
        self.assertEqual(item.discount_percent, Decimal('20.00'))
        self.assertEqual(item.profit_value, Decimal('4000.00'))

    def test_price_below_base_rate_rejected(self):
        with self.assertRaises(PricingError):
            TestDataFactory.add_plan_item(self.plan, self.asset, sales_price=Decimal('15000'))

    def test_plan_totals_include_gst(self):
        TestDataFactory.add_plan_item(self.plan, self.asset)
        self.plan.refresh_from_db()
        self.assertEqual(self.plan.total_assets, 1)
        self.assertEqual(self.plan.gst_amount, Decimal('5400.00'))
        self.assertEqual(self.plan.grand_total, Decimal('35400.00'))


class ApprovalWorkflowTests(TestCase):
    """Test submission and the multi-level approval chain"""

    def setUp(self):
        self.company = TestDataFactory.create_company()
        self.manager = TestDataFactory.create_member(self.company, role='manager')
        self.finance = TestDataFactory.create_member(self.company, role='finance')
        self.plan = TestDataFactory.create_plan(self.company)
        TestDataFactory.add_plan_item(self.plan, TestDataFactory.create_asset(self.company))

    def test_approval_chain_thresholds(self):
        self.assertEqual(approval_chain(Decimal('100000')), [('L1', 'manager')])
        self.assertEqual(approval_chain(Decimal('600000')), [('L1', 'manager'), ('L2', 'finance')])
        self.assertEqual(len(approval_chain(Decimal('2500000'))), 3)

    @override_settings(PLAN_APPROVAL_L2_THRESHOLD=1000)
    def test_threshold_is_configurable(self):
        self.assertEqual(approval_chain(Decimal('5000'))[-1], ('L2', 'finance'))

    def test_empty_plan_cannot_be_submitted(self):
        empty = TestDataFactory.create_plan(self.company)
        with self.assertRaises(PlanWorkflowError):
            submit_for_approval(empty)

    def test_single_level_approval(self):
        submit_for_approval(self.plan)
        self.assertEqual(self.plan.status, 'Pending Approval')
        process_approval(self.plan, self.manager, 'manager', 'approve')
        self.plan.refresh_from_db()
        self.assertEqual(self.plan.status, 'Approved')
        self.assertIsNotNone(self.plan.approved_at)

    @override_settings(PLAN_APPROVAL_L2_THRESHOLD=1000)
    def test_levels_are_processed_in_order(self):
        submit_for_approval(self.plan)
        with self.assertRaises(PlanWorkflowError):
            process_approval(self.plan, self.finance, 'finance', 'approve')
        process_approval(self.plan, self.manager, 'manager', 'approve')
        self.plan.refresh_from_db()
        self.assertEqual(self.plan.status, 'Pending Approval')
        process_approval(self.plan, self.finance, 'finance', 'approve')
        self.plan.refresh_from_db()
        self.assertEqual(self.plan.status, 'Approved')

    def test_rejection_returns_plan_for_editing(self):
        submit_for_approval(self.plan)
        approval = process_approval(self.plan, self.manager, 'manager', 'reject', 'Rates too low')
        self.assertEqual(approval.status, 'rejected')
        self.plan.refresh_from_db()
        self.assertEqual(self.plan.status, 'Rejected')
        self.assertTrue(self.plan.is_editable)

    def test_submitter_is_recorded(self):
        approvals = submit_for_approval(self.plan, user=self.manager)
        self.plan.refresh_from_db()
        self.assertEqual(self.plan.submitted_by, self.manager)
        self.assertEqual([a.requested_by_id for a in approvals], [self.manager.pk])

    def test_resubmission_rebuilds_chain(self):
        submit_for_approval(self.plan)
        process_approval(self.plan, self.manager, 'manager', 'reject')
        self.plan.refresh_from_db()
        submit_for_approval(self.plan)
        self.assertEqual(PlanApproval.objects.filter(plan=self.plan, status='pending').count(), 1)


class PlanConversionTests(TestCase):
    """Test conversion of approved plans into campaigns"""

    def setUp(self):
        self.company = TestDataFactory.create_company()
        self.user = TestDataFactory.create_member(self.company, role='sales')
        self.asset = TestDataFactory.create_asset(self.company)
        self.plan = TestDataFactory.create_plan(self.company, status='Approved')
        TestDataFactory.add_plan_item(self.plan, self.asset, sales_price=Decimal('25000'))

    def test_convert_creates_draft_campaign(self):
        campaign, created = convert_plan_to_campaign(self.plan, user=self.user)
        self.assertTrue(created)
        self.assertEqual(campaign.status, 'Draft')
        self.assertEqual(campaign.plan, self.plan)
        self.assertEqual(campaign.campaign_assets.get().negotiated_rate, Decimal('25000.00'))
        self.plan.refresh_from_db()
        self.assertEqual(self.plan.status, 'Converted')
        self.asset.refresh_from_db()
        self.assertEqual(self.asset.status, 'Booked')

    def test_convert_twice_returns_existing_campaign(self):
        first, _ = convert_plan_to_campaign(self.plan)
        second, created = convert_plan_to_campaign(self.plan)
        self.assertFalse(created)
        self.assertEqual(first.pk, second.pk)
        self.assertEqual(Campaign.objects.filter(plan=self.plan).count(), 1)

    def test_draft_plan_cannot_convert(self):
        draft = TestDataFactory.create_plan(self.company)
        TestDataFactory.add_plan_item(draft, TestDataFactory.create_asset(self.company))
        with self.assertRaises(PlanWorkflowError):
            convert_plan_to_campaign(draft)

    def test_conflicting_booking_blocks_conversion(self):
        TestDataFactory.create_campaign(self.company, assets=[self.asset],
                                        start_date=self.plan.start_date + timedelta(days=5),
                                        end_date=self.plan.end_date + timedelta(days=5))
        with self.assertRaises(BookingConflictError) as ctx:
            convert_plan_to_campaign(self.plan)
        self.assertEqual(ctx.exception.conflicts[0]['asset_id'], self.asset.pk)
        self.plan.refresh_from_db()
        self.assertEqual(self.plan.status, 'Approved')


class PlanAPITests(TestCase):
    """Test plan endpoints"""

    def setUp(self):
        self.company = TestDataFactory.create_company()
        self.sales = TestDataFactory.create_member(self.company, role='sales')
        self.manager = TestDataFactory.create_member(self.company, role='manager')
        self.client_record = TestDataFactory.create_client(self.company)
        self.asset = TestDataFactory.create_asset(self.company)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.sales)
        self.start = timezone.localdate() + timedelta(days=7)

    def _create_plan(self):
        response = self.client.post('/api/v1/plans/', {
            'client': self.client_record.pk,
            'plan_name': 'Diwali Blitz',
            'start_date': self.start.isoformat(),
            'end_date': (self.start + timedelta(days=29)).isoformat(),
            'items': [{'asset': self.asset.pk, 'sales_price': '28000'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        return response.data

    def test_create_plan_with_items(self):
        data = self._create_plan()
        self.assertTrue(data['plan_code'].startswith('PLAN-'))
        self.assertEqual(len(data['items']), 1)
        self.assertEqual(Decimal(str(data['grand_total'])), Decimal('33040.00'))

    def test_other_company_asset_rejected(self):
        foreign = TestDataFactory.create_asset(TestDataFactory.create_company())
        response = self.client.post('/api/v1/plans/', {
            'client': self.client_record.pk, 'plan_name': 'X',
            'start_date': self.start.isoformat(), 'end_date': (self.start + timedelta(days=9)).isoformat(),
            'items': [{'asset': foreign.pk}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_submit_approve_convert_flow(self):
        plan_id = self._create_plan()['id']
        response = self.client.post(f'/api/v1/plans/{plan_id}/submit/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['submitted_by_username'], self.sales.username)

        response = self.client.post(f'/api/v1/plans/{plan_id}/approval/', {'action': 'approve'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        self.client.authenticate_user(self.manager)
        response = self.client.post(f'/api/v1/plans/{plan_id}/approval/', {'action': 'approve'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'Approved')

        response = self.client.post(f'/api/v1/plans/{plan_id}/convert/')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertFalse(response.data['already_converted'])
        response = self.client.post(f'/api/v1/plans/{plan_id}/convert/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['already_converted'])
        self.assertTrue(AuditLog.objects.filter(company=self.company, action='plan_convert').exists())

    def test_pending_plan_is_locked(self):
        plan_id = self._create_plan()['id']
        self.client.post(f'/api/v1/plans/{plan_id}/submit/')
        response = self.client.patch(f'/api/v1/plans/{plan_id}/', {'plan_name': 'Renamed'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_share_marks_approved_plan_sent(self):
        plan = TestDataFactory.create_plan(self.company, status='Approved')
        TestDataFactory.add_plan_item(plan, self.asset)
        response = self.client.post(f'/api/v1/plans/{plan.pk}/share/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        plan.refresh_from_db()
        self.assertEqual(plan.status, 'Sent')

        self.client.logout()
        response = self.client.get(response.data['path'])
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertNotIn('base_rate', response.data['items'][0])

    def test_exports(self):
        plan_id = self._create_plan()['id']
        for fmt, content_type in (('pdf', PDF_CONTENT_TYPE), ('excel', XLSX_CONTENT_TYPE), ('ppt', PPTX_CONTENT_TYPE)):
            response = self.client.get(f'/api/v1/plans/{plan_id}/export/{fmt}/')
            self.assertEqual(response.status_code, status.HTTP_200_OK, fmt)
            self.assertEqual(response['Content-Type'], content_type)
        response = self.client.get(f'/api/v1/plans/{plan_id}/export/docx/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_conflict_check_endpoint(self):
        plan_id = self._create_plan()['id']
        TestDataFactory.create_campaign(self.company, assets=[self.asset], start_date=self.start,
                                        end_date=self.start + timedelta(days=3))
        response = self.client.get(f'/api/v1/plans/{plan_id}/conflicts/')
        self.assertTrue(response.data['has_conflicts'])
