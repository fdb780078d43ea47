"""
Test suite for the client portal
Tests: magic link sign-in, portal token scope, client-scoped data and staff management of portal users
"""
import re
from datetime import timedelta

from django.core import mail
from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from oohops.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from oohops.portal.auth import PortalAccessToken
from oohops.portal.models import MagicLinkToken, PortalUser
from oohops.portal.services import (
    MagicLinkError, hash_token, issue_magic_link, request_magic_links, verify_magic_link,
)


def token_from_outbox(index=-1):
    return re.search(r'token=(\S+)', mail.outbox[index].body).group(1)


class MagicLinkServiceTests(TestCase):
    """Test issuing and consuming magic links"""

    def setUp(self):
        self.company = TestDataFactory.create_company()
        self.client_record = TestDataFactory.create_client(self.company)
        self.portal_user = TestDataFactory.create_portal_user(self.client_record, email='buyer@brand.test')

    def test_only_the_hash_is_stored(self):
        raw = issue_magic_link(self.portal_user)
        link = MagicLinkToken.objects.get(portal_user=self.portal_user)
        self.assertEqual(link.token_hash, hash_token(raw))
        self.assertNotEqual(link.token_hash, raw)

    def test_request_emails_a_link(self):
        self.assertEqual(request_magic_links('Buyer@Brand.test '), 1)
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, ['buyer@brand.test'])
        portal_user, token = verify_magic_link(token_from_outbox())
        self.assertEqual(portal_user.pk, self.portal_user.pk)
        self.assertEqual(token['client_id'], self.client_record.pk)

    def test_unknown_or_inactive_email_sends_nothing(self):
        self.assertEqual(request_magic_links('nobody@brand.test'), 0)
        TestDataFactory.create_portal_user(self.client_record, email='gone@brand.test', is_active=False)
        self.assertEqual(request_magic_links('gone@brand.test'), 0)
        self.assertEqual(len(mail.outbox), 0)

    def test_link_is_single_use(self):
        raw = issue_magic_link(self.portal_user)
        verify_magic_link(raw)
        with self.assertRaises(MagicLinkError):
            verify_magic_link(raw)

    def test_expired_link_rejected(self):
        raw = issue_magic_link(self.portal_user)
        MagicLinkToken.objects.update(expires_at=timezone.now() - timedelta(minutes=1))
        with self.assertRaises(MagicLinkError):
            verify_magic_link(raw)

    def test_unknown_token_rejected(self):
        with self.assertRaises(MagicLinkError):
            verify_magic_link('not-a-token')


class PortalAPITests(TestCase):
    """Test the portal endpoints seen by a client contact"""

    def setUp(self):
        self.company = TestDataFactory.create_company()
        self.client_record = TestDataFactory.create_client(self.company)
        self.portal_user = TestDataFactory.create_portal_user(self.client_record, email='buyer@brand.test')
        self.campaign = TestDataFactory.create_campaign(self.company, client=self.client_record)
        self.invoice = TestDataFactory.create_invoice(self.campaign)
        self.client = AuthenticatedAPIClient()

    def test_magic_link_answer_does_not_reveal_email(self):
        known = self.client.post('/api/v1/portal/auth/magic-link/', {'email': 'buyer@brand.test'}, format='json')
        unknown = self.client.post('/api/v1/portal/auth/magic-link/', {'email': 'who@brand.test'}, format='json')
        self.assertEqual(known.status_code, status.HTTP_200_OK)
        self.assertEqual(known.data, unknown.data)
        self.assertEqual(len(mail.outbox), 1)

    def test_verify_returns_portal_token(self):
        self.client.post('/api/v1/portal/auth/magic-link/', {'email': 'buyer@brand.test'}, format='json')
        response = self.client.post('/api/v1/portal/auth/verify/', {'token': token_from_outbox()}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['token_type'], 'Bearer')
        self.assertEqual(response.data['portal_user']['email'], 'buyer@brand.test')

        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {response.data['access']}")
        response = self.client.get('/api/v1/portal/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_bad_token_rejected(self):
        response = self.client.post('/api/v1/portal/auth/verify/', {'token': 'nope'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_dashboard_and_invoices(self):
        TestDataFactory.create_invoice(
            TestDataFactory.create_campaign(self.company, client=self.client_record), send=False
        )
        self.client.authenticate_portal_user(self.portal_user)
        response = self.client.get('/api/v1/portal/dashboard/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['invoices']['open'], 1)
        self.assertEqual(response.data['outstanding_balance'], self.invoice.balance_due)

        response = self.client.get('/api/v1/portal/invoices/')
        self.assertEqual([row['id'] for row in response.data], [self.invoice.pk])

        response = self.client.get(f'/api/v1/portal/invoices/{self.invoice.pk}/pdf/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_other_client_data_hidden(self):
        other_client = TestDataFactory.create_client(self.company)
        other_invoice = TestDataFactory.create_invoice(TestDataFactory.create_campaign(self.company, client=other_client))
        self.client.authenticate_portal_user(self.portal_user)
        response = self.client.get(f'/api/v1/portal/invoices/{other_invoice.pk}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_campaign_proofs_hide_rates(self):
        self.client.authenticate_portal_user(self.portal_user)
        response = self.client.get(f'/api/v1/portal/campaigns/{self.campaign.pk}/proofs/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertNotIn('grand_total', response.data)
        self.assertEqual(len(response.data['assets']), 1)

    def test_portal_token_rejected_by_staff_endpoints(self):
        self.client.authenticate_portal_user(self.portal_user)
        response = self.client.get('/api/v1/clients/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_staff_token_rejected_by_portal(self):
        staff = TestDataFactory.create_member(self.company, role='admin')
        self.client.authenticate_user(staff)
        response = self.client.get('/api/v1/portal/me/')
        self.assertIn(response.status_code, (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN))

    def test_deactivated_portal_user_loses_access(self):
        token = PortalAccessToken.for_portal_user(self.portal_user)
        PortalUser.objects.filter(pk=self.portal_user.pk).update(is_active=False)
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {token}')
        response = self.client.get('/api/v1/portal/me/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class PortalUserManagementTests(TestCase):
    """Test staff endpoints that grant portal access"""

    def setUp(self):
        self.company = TestDataFactory.create_company()
        self.user = TestDataFactory.create_member(self.company, role='sales')
        self.client_record = TestDataFactory.create_client(self.company)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_with_invite(self):
        response = self.client.post(f'/api/v1/clients/{self.client_record.pk}/portal-users/', {
            'email': 'cfo@brand.test', 'name': 'CFO', 'send_invite': True,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['invite_sent'])
        self.assertEqual(len(mail.outbox), 1)

    def test_send_link_to_inactive_user(self):
        portal_user = TestDataFactory.create_portal_user(self.client_record, is_active=False)
        response = self.client.post(f'/api/v1/portal-users/{portal_user.pk}/send-link/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_other_company_client_not_found(self):
        other_client = TestDataFactory.create_client(TestDataFactory.create_company())
        response = self.client.get(f'/api/v1/clients/{other_client.pk}/portal-users/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_installation_role_forbidden(self):
        mounter = TestDataFactory.create_member(self.company, role='installation')
        self.client.authenticate_user(mounter)
        response = self.client.get(f'/api/v1/clients/{self.client_record.pk}/portal-users/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
