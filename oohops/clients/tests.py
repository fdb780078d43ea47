"""
Test suite for clients
Tests: state codes, client codes, validation, contacts and the client summary
"""
from decimal import Decimal

from django.test import SimpleTestCase, TestCase
from rest_framework import status

from oohops.clients.models import Client, ClientContact
from oohops.clients.states import get_state_code
from oohops.core.test_utils import TestDataFactory, AuthenticatedAPIClient


class StateCodeTests(SimpleTestCase):

    def test_known_states(self):
        self.assertEqual(get_state_code('Telangana'), 'TG')
        self.assertEqual(get_state_code('  tamil   nadu '), 'TN')
        self.assertEqual(get_state_code('Jammu & Kashmir'), 'JK')

    def test_unknown_and_empty(self):
        self.assertEqual(get_state_code('Atlantis'), 'AT')
        self.assertEqual(get_state_code(''), 'XX')


class ClientModelTests(TestCase):

    def setUp(self):
        self.company = TestDataFactory.create_company()

    def test_contact_email_falls_back_to_primary_contact(self):
        client = TestDataFactory.create_client(self.company, email='')
        self.assertIsNone(client.contact_email)
        ClientContact.objects.create(client=client, name='Ravi', email='ravi@brand.test', is_primary=True)
        self.assertEqual(client.contact_email, 'ravi@brand.test')

    def test_single_primary_contact(self):
        client = TestDataFactory.create_client(self.company)
        first = ClientContact.objects.create(client=client, name='A', is_primary=True)
        ClientContact.objects.create(client=client, name='B', is_primary=True)
        first.refresh_from_db()
        self.assertFalse(first.is_primary)


class ClientAPITests(TestCase):
    """Test client endpoints"""

    def setUp(self):
        self.company = TestDataFactory.create_company()
        self.user = TestDataFactory.create_member(self.company, role='sales')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_client_generates_state_code(self):
        response = self.client.post('/api/v1/clients/', {
            'name': 'Fresh Foods', 'email': 'accounts@freshfoods.test', 'state': 'Karnataka',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['client_code'], 'CLT-KA-0001')
        self.assertEqual(response.data['state_code'], 'KA')

    def test_invalid_gst_number(self):
        response = self.client.post('/api/v1/clients/', {
            'name': 'Fresh Foods', 'gst_number': '12345',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('gst_number', response.data)

    def test_valid_gst_number_is_uppercased(self):
        response = self.client.post('/api/v1/clients/', {
            'name': 'Fresh Foods', 'gst_number': '36aabcf1234k1z5', 'state': 'Telangana',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['gst_number'], '36AABCF1234K1Z5')

    def test_search(self):
        TestDataFactory.create_client(self.company, name='Sunrise Motors')
        TestDataFactory.create_client(self.company, name='Blue Bank')
        response = self.client.get('/api/v1/clients/', {'search': 'sunrise'})
        self.assertEqual(len(response.data), 1)

    def test_client_with_plans_cannot_be_deleted(self):
        manager = TestDataFactory.create_member(self.company, role='manager')
        self.client.authenticate_user(manager)
        client = TestDataFactory.create_client(self.company)
        TestDataFactory.create_plan(self.company, client=client)
        response = self.client.delete(f'/api/v1/clients/{client.pk}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(Client.objects.filter(pk=client.pk).exists())

    def test_sales_cannot_delete(self):
        client = TestDataFactory.create_client(self.company)
        response = self.client.delete(f'/api/v1/clients/{client.pk}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_add_contact(self):
        client = TestDataFactory.create_client(self.company)
        response = self.client.post(f'/api/v1/clients/{client.pk}/contacts/', {
            'name': 'Meena', 'phone': '+91 98480 22338', 'is_primary': True,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(client.primary_contact.name, 'Meena')

    def test_summary_totals(self):
        client = TestDataFactory.create_client(self.company)
        campaign = TestDataFactory.create_campaign(self.company, client=client)
        invoice = TestDataFactory.create_invoice(campaign)
        response = self.client.get(f'/api/v1/clients/{client.pk}/summary/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['invoice_count'], 1)
        self.assertEqual(Decimal(str(response.data['outstanding'])), invoice.total_amount)
