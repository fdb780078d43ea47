"""
Test utilities and factories for creating test data
"""
from django.contrib.auth import get_user_model
from django.core.files.uploadedfile import SimpleUploadedFile
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from oohops.core.models import Company, CompanyUser, CompanySetting
from oohops.clients.models import Client
from oohops.assets.models import MediaAsset
from oohops.plans.models import Plan, PlanItem
from decimal import Decimal
from datetime import date, timedelta
from PIL import Image
import io
import random
import string

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def create_user(username=None, email=None, password='testpass123', is_staff=False, is_superuser=False):
        """Create a test user"""
        if not username:
            username = f'testuser_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{username}@test.com'
        user = User.objects.create_user(
            username=username,
            email=email,
            password=password,
            is_staff=is_staff,
            is_superuser=is_superuser
        )
        return user

    @staticmethod
    def create_company(name=None, status='active', company_type='media_owner', **kwargs):
        """Create a test tenant company"""
        if not name:
            name = f'Company {TestDataFactory.random_string(6)}'
        kwargs.setdefault('city', 'Hyderabad')
        kwargs.setdefault('state', 'Telangana')
        return Company.objects.create(name=name, status=status, company_type=company_type, **kwargs)

    @staticmethod
    def create_member(company, role='admin', user=None, status='active'):
        """Create a user (unless given) with a membership in company; returns the user"""
        if user is None:
            user = TestDataFactory.create_user()
        CompanyUser.objects.create(company=company, user=user, role=role, status=status)
        return user

    @staticmethod
    def set_company_setting(company, key, value):
        setting, _ = CompanySetting.objects.update_or_create(company=company, key=key, defaults={'value': value})
        return setting

    @staticmethod
    def create_client(company, name=None, email=None, **kwargs):
        """Create a test client"""
        if not name:
            name = f'Client {TestDataFactory.random_string(6)}'
        return Client.objects.create(
            company=company,
            client_code=kwargs.pop('client_code', f'TG-{TestDataFactory.random_string(5).upper()}'),
            name=name,
            email=email if email is not None else f'{TestDataFactory.random_string(6).lower()}@client.test',
            state=kwargs.pop('state', 'Telangana'),
            state_code=kwargs.pop('state_code', 'TG'),
            **kwargs
        )

    @staticmethod
    def create_asset(company, city='Hyderabad', media_type='Bus Shelter', dimensions='20x10',
                     card_rate=Decimal('30000.00'), base_rate=Decimal('20000.00'), **kwargs):
        """Create a test media asset"""
        code = kwargs.pop('media_asset_code', f'HYD-BQS-{TestDataFactory.random_string(4).upper()}')
        return MediaAsset.objects.create(
            company=company,
            media_asset_code=code,
            media_type=media_type,
            city=city,
            area=kwargs.pop('area', 'Madhapur'),
            location=kwargs.pop('location', f'Near Metro Station {TestDataFactory.random_string(4)}'),
            dimensions=dimensions,
            card_rate=card_rate,
            base_rate=base_rate,
            printing_rate_default=kwargs.pop('printing_rate_default', Decimal('0.00')),
            mounting_rate_default=kwargs.pop('mounting_rate_default', Decimal('0.00')),
            **kwargs
        )

    @staticmethod
    def create_plan(company, client=None, start_date=None, end_date=None, status='Draft', user=None, **kwargs):
        """Create an empty plan; add items with add_plan_item"""
        from oohops.core.codes import generate_plan_code

        if client is None:
            client = TestDataFactory.create_client(company)
        start_date = start_date or date.today() + timedelta(days=10)
        end_date = end_date or start_date + timedelta(days=29)
        return Plan.objects.create(
            company=company,
            plan_code=generate_plan_code(company),
            client=client,
            plan_name=kwargs.pop('plan_name', f'Plan {TestDataFactory.random_string(5)}'),
            status=status,
            start_date=start_date,
            end_date=end_date,
            created_by=user,
            **kwargs
        )

    @staticmethod
    def add_plan_item(plan, asset, sales_price=None, start_date=None, end_date=None):
        """Add a priced item to a plan and refresh the plan totals"""
        from oohops.plans.services import price_plan_item, recalculate_plan_totals

        item = PlanItem(
            plan=plan,
            asset=asset,
            sales_price=sales_price or Decimal('0'),
            printing_charges=None,
            mounting_charges=None,
            start_date=start_date or plan.start_date,
            end_date=end_date or plan.end_date,
        )
        price_plan_item(item)
        item.save()
        recalculate_plan_totals(plan)
        return item

    @staticmethod
    def create_campaign(company, client=None, assets=None, start_date=None, end_date=None, confirm=True,
                        user=None, **kwargs):
        """Create a campaign booking the given assets; confirmed unless confirm=False"""
        from oohops.campaigns.services import create_campaign_with_assets, confirm_campaign

        if client is None:
            client = TestDataFactory.create_client(company)
        if assets is None:
            assets = [TestDataFactory.create_asset(company)]
        start_date = start_date or date.today()
        end_date = end_date or start_date + timedelta(days=29)
        campaign = create_campaign_with_assets(
            company, client, kwargs.pop('campaign_name', f'Campaign {TestDataFactory.random_string(5)}'),
            start_date, end_date, [{'asset': asset} for asset in assets], user=user, **kwargs
        )
        if confirm:
            confirm_campaign(campaign)
        return campaign

    @staticmethod
    def create_invoice(campaign, user=None, send=True, **kwargs):
        """Generate an invoice for a campaign, sent unless send=False"""
        from oohops.finance.services import generate_invoice_from_campaign, send_invoice

        invoice = generate_invoice_from_campaign(campaign, user=user, **kwargs)
        if send:
            send_invoice(invoice)
        return invoice

    @staticmethod
    def create_portal_user(client, email=None, is_active=True):
        from oohops.portal.models import PortalUser

        return PortalUser.objects.create(
            company=client.company,
            client=client,
            email=email or f'{TestDataFactory.random_string(6).lower()}@portal.test',
            name='Portal Contact',
            is_active=is_active,
        )

    @staticmethod
    def make_image(name='proof.jpg', size=(64, 48), color=(200, 40, 40)):
        """In-memory JPEG upload"""
        buffer = io.BytesIO()
        Image.new('RGB', size, color).save(buffer, format='JPEG')
        return SimpleUploadedFile(name, buffer.getvalue(), content_type='image/jpeg')


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user, company=None):
        """Authenticate the client with a user, optionally pinning the active company"""
        refresh = RefreshToken.for_user(user)
        headers = {'HTTP_AUTHORIZATION': f'Bearer {refresh.access_token}'}
        if company is not None:
            headers['HTTP_X_COMPANY_ID'] = str(company.pk)
        self.credentials(**headers)
        return self

    def authenticate_portal_user(self, portal_user):
        from oohops.portal.auth import PortalAccessToken

        token = PortalAccessToken.for_portal_user(portal_user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
