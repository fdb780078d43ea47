"""
Test suite for campaigns and operations
Tests: availability, booking lifecycle, status updates, installation flow, proof photos and the campaign API
"""
import shutil
import tempfile
from datetime import date, datetime, timedelta, timezone as dt_timezone
from decimal import Decimal
from io import StringIO
from types import SimpleNamespace

from django.core import mail
from django.core.management import call_command
from django.test import SimpleTestCase, TestCase, override_settings
from django.utils import timezone
from rest_framework import status

from oohops.campaigns.availability import BookingInterval, merge_intervals, compute_availability, get_media_availability
from oohops.campaigns.bookings import BookingConflictError
from oohops.campaigns.models import Campaign, ProofPhoto
from oohops.campaigns.photos import (
    PROOF_TYPES, normalize_photo_type, detect_photo_tag, derive_latest_photos, save_proof_photo, proofs_complete,
    UploadError,
)
from oohops.campaigns.services import (
    CampaignError, status_for_dates, auto_update_campaign_statuses, cancel_campaign, extend_campaign,
    transition_installation,
)
from oohops.core.test_utils import TestDataFactory, AuthenticatedAPIClient

MEDIA_ROOT = tempfile.mkdtemp()


class AvailabilityTests(SimpleTestCase):
    """Test interval merging and availability classification"""

    def test_adjacent_bookings_merge(self):
        merged = merge_intervals([
            BookingInterval(date(2025, 1, 11), date(2025, 1, 20)),
            BookingInterval(date(2025, 1, 1), date(2025, 1, 10)),
            BookingInterval(date(2025, 2, 1), date(2025, 2, 5)),
        ])
        self.assertEqual([(b.start, b.end) for b in merged], [
            (date(2025, 1, 1), date(2025, 1, 20)),
            (date(2025, 2, 1), date(2025, 2, 5)),
        ])

    def test_unbooked_asset_is_available_from_range_start(self):
        result = compute_availability([], date(2025, 3, 1), date(2025, 3, 31))
        self.assertEqual(result.status, 'AVAILABLE')
        self.assertEqual(result.available_from, date(2025, 3, 1))

    def test_booking_ending_inside_range_is_available_soon(self):
        bookings = [BookingInterval(date(2025, 2, 15), date(2025, 3, 10))]
        result = compute_availability(bookings, date(2025, 3, 1), date(2025, 3, 31))
        self.assertEqual(result.status, 'BOOKED')
        self.assertEqual(result.available_from, date(2025, 3, 11))

    def test_booking_covering_range_is_booked(self):
        bookings = [BookingInterval(date(2025, 2, 15), date(2025, 4, 10))]
        result = compute_availability(bookings, date(2025, 3, 1), date(2025, 3, 31))
        self.assertIsNone(result.available_from)

    def test_booking_outside_range_is_ignored(self):
        bookings = [BookingInterval(date(2025, 1, 1), date(2025, 1, 31))]
        self.assertEqual(compute_availability(bookings, date(2025, 3, 1), date(2025, 3, 31)).status, 'AVAILABLE')


class PhotoHelperTests(SimpleTestCase):
    """Test proof type normalisation and tag detection"""

    def test_normalize_photo_type(self):
        self.assertEqual(normalize_photo_type('Newspaper Ad'), 'newspaper')
        self.assertEqual(normalize_photo_type('GPS'), 'geotag')
        self.assertEqual(normalize_photo_type('traffic_right'), 'traffic2')
        self.assertEqual(normalize_photo_type('Traffic'), 'traffic1')
        self.assertIsNone(normalize_photo_type('selfie'))

    def test_detect_from_filename(self):
        self.assertEqual(detect_photo_tag('IMG_news_01.jpg')[0], 'newspaper')
        self.assertEqual(detect_photo_tag('traffic_right.jpg')[0], 'traffic2')
        self.assertEqual(detect_photo_tag('road.jpg')[0], 'traffic1')
        self.assertEqual(detect_photo_tag('DSC0001.jpg')[0], 'other')

    def test_latest_photo_per_type(self):
        older = SimpleNamespace(photo_type='geotag', uploaded_at=datetime(2025, 1, 1, tzinfo=dt_timezone.utc))
        newer = SimpleNamespace(photo_type='geotag', uploaded_at=datetime(2025, 1, 2, tzinfo=dt_timezone.utc))
        other = SimpleNamespace(photo_type='other', uploaded_at=datetime(2025, 1, 3, tzinfo=dt_timezone.utc))
        latest = derive_latest_photos([newer, older, other])
        self.assertIs(latest['geotag'], newer)
        self.assertIsNone(latest['newspaper'])
        self.assertEqual(set(latest), set(PROOF_TYPES))

    def test_status_for_dates(self):
        today = date(2025, 6, 15)
        self.assertEqual(status_for_dates(date(2025, 7, 1), date(2025, 7, 31), today), 'Upcoming')
        self.assertEqual(status_for_dates(date(2025, 6, 1), date(2025, 6, 15), today), 'Running')
        self.assertEqual(status_for_dates(date(2025, 5, 1), date(2025, 5, 31), today), 'Completed')


class CampaignLifecycleTests(TestCase):
    """Test booking, status updates, cancellation and extension"""

    def setUp(self):
        self.company = TestDataFactory.create_company()
        self.asset = TestDataFactory.create_asset(self.company)
        self.today = timezone.localdate()

    def test_campaign_books_assets_and_prices_rows(self):
        campaign = TestDataFactory.create_campaign(self.company, assets=[self.asset], start_date=self.today,
                                                   end_date=self.today + timedelta(days=14))
        self.assertEqual(campaign.status, 'Running')
        row = campaign.campaign_assets.get()
        self.assertEqual(row.booked_days, 15)
        self.assertEqual(row.rent_amount, Decimal('15000.00'))
        self.asset.refresh_from_db()
        self.assertEqual(self.asset.status, 'Booked')
        self.assertEqual(self.asset.booked_to, self.today + timedelta(days=14))

    def test_overlapping_booking_conflicts(self):
        TestDataFactory.create_campaign(self.company, assets=[self.asset])
        with self.assertRaises(BookingConflictError):
            TestDataFactory.create_campaign(self.company, assets=[self.asset], start_date=self.today + timedelta(days=10))

    def test_cancelled_campaign_releases_assets(self):
        campaign = TestDataFactory.create_campaign(self.company, assets=[self.asset])
        released = cancel_campaign(campaign, reason='Client withdrew')
        self.assertEqual(released, 1)
        self.asset.refresh_from_db()
        self.assertEqual(self.asset.status, 'Available')
        with self.assertRaises(CampaignError):
            cancel_campaign(campaign)
        TestDataFactory.create_campaign(self.company, assets=[self.asset])

    def test_auto_status_update_completes_and_releases(self):
        campaign = TestDataFactory.create_campaign(self.company, assets=[self.asset], start_date=self.today,
                                                   end_date=self.today + timedelta(days=5))
        moved = auto_update_campaign_statuses(today=self.today + timedelta(days=6))
        self.assertEqual(moved, {'Completed': 1})
        campaign.refresh_from_db()
        self.assertEqual(campaign.status, 'Completed')
        self.asset.refresh_from_db()
        self.assertEqual(self.asset.status, 'Available')

    def test_draft_campaigns_are_not_moved(self):
        TestDataFactory.create_campaign(self.company, assets=[self.asset], confirm=False)
        self.assertEqual(auto_update_campaign_statuses(today=self.today + timedelta(days=90)), {})

    def test_extend_reprices_bookings(self):
        campaign = TestDataFactory.create_campaign(self.company, assets=[self.asset], start_date=self.today,
                                                   end_date=self.today + timedelta(days=29))
        extend_campaign(campaign, self.today + timedelta(days=59))
        row = campaign.campaign_assets.get()
        self.assertEqual(row.booked_days, 60)
        self.assertEqual(row.rent_amount, Decimal('60000.00'))

    def test_extension_into_other_booking_conflicts(self):
        campaign = TestDataFactory.create_campaign(self.company, assets=[self.asset], start_date=self.today,
                                                   end_date=self.today + timedelta(days=9))
        TestDataFactory.create_campaign(self.company, assets=[self.asset], start_date=self.today + timedelta(days=20),
                                        end_date=self.today + timedelta(days=30))
        with self.assertRaises(BookingConflictError):
            extend_campaign(campaign, self.today + timedelta(days=25))

    def test_installation_flow(self):
        campaign = TestDataFactory.create_campaign(self.company, assets=[self.asset])
        row = campaign.campaign_assets.get()
        with self.assertRaises(CampaignError):
            transition_installation(row, 'Verified')
        transition_installation(row, 'Assigned')
        transition_installation(row, 'Installed')
        self.assertEqual(row.installation_status, 'Installed')

    def test_availability_classifies_assets(self):
        free = TestDataFactory.create_asset(self.company)
        TestDataFactory.create_campaign(self.company, assets=[self.asset], start_date=self.today,
                                        end_date=self.today + timedelta(days=9))
        result = get_media_availability(self.company, self.today, self.today + timedelta(days=29))
        self.assertEqual([a.pk for a in result['available']], [free.pk])
        self.assertEqual(result['available_soon'][0].available_from, self.today + timedelta(days=10))

    def test_update_statuses_command(self):
        TestDataFactory.create_campaign(self.company, assets=[self.asset], start_date=self.today,
                                        end_date=self.today + timedelta(days=5))
        out = StringIO()
        call_command('update_campaign_statuses', date=(self.today + timedelta(days=10)).isoformat(), stdout=out)
        self.assertIn('1 campaign(s) moved to Completed', out.getvalue())


@override_settings(MEDIA_ROOT=MEDIA_ROOT)
class ProofPhotoTests(TestCase):
    """Test proof uploads, idempotent replays and completion"""

    @classmethod
    def tearDownClass(cls):
        shutil.rmtree(MEDIA_ROOT, ignore_errors=True)
        super().tearDownClass()

    def setUp(self):
        self.company = TestDataFactory.create_company()
        self.mounter = TestDataFactory.create_member(self.company, role='installation')
        self.campaign = TestDataFactory.create_campaign(self.company)
        self.row = self.campaign.campaign_assets.get()

    def test_upload_moves_installation_forward(self):
        photo, created = save_proof_photo(self.row, TestDataFactory.make_image('newspaper.jpg'), user=self.mounter)
        self.assertTrue(created)
        self.assertEqual(photo.photo_type, 'newspaper')
        self.row.refresh_from_db()
        self.assertEqual(self.row.installation_status, 'PhotoUploaded')

    def test_replayed_upload_is_not_duplicated(self):
        first, _ = save_proof_photo(self.row, TestDataFactory.make_image(), photo_type='geotag', client_upload_id='abc-1')
        second, created = save_proof_photo(self.row, TestDataFactory.make_image(), photo_type='geotag',
                                           client_upload_id='abc-1')
        self.assertFalse(created)
        self.assertEqual(first.pk, second.pk)
        self.assertEqual(ProofPhoto.objects.filter(campaign_asset=self.row).count(), 1)

    def test_non_image_rejected(self):
        from django.core.files.uploadedfile import SimpleUploadedFile
        with self.assertRaises(UploadError):
            save_proof_photo(self.row, SimpleUploadedFile('proof.jpg', b'not an image', content_type='image/jpeg'))

    def test_proofs_complete_needs_all_types(self):
        for photo_type in PROOF_TYPES[:3]:
            save_proof_photo(self.row, TestDataFactory.make_image(), photo_type=photo_type)
        self.assertFalse(proofs_complete(self.campaign))
        save_proof_photo(self.row, TestDataFactory.make_image(), photo_type='traffic2')
        self.assertTrue(proofs_complete(self.campaign))

    def test_upload_api_is_idempotent(self):
        client = AuthenticatedAPIClient()
        client.authenticate_user(self.mounter)
        url = f'/api/v1/campaign-assets/{self.row.pk}/photos/'
        payload = {'photo_type': 'traffic1', 'client_upload_id': 'device-42'}
        response = client.post(url, dict(payload, image=TestDataFactory.make_image()), format='multipart')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertFalse(response.data['duplicate'])
        response = client.post(url, dict(payload, image=TestDataFactory.make_image()), format='multipart')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['duplicate'])

    def test_rejection_requires_reason(self):
        photo, _ = save_proof_photo(self.row, TestDataFactory.make_image(), photo_type='geotag')
        manager = TestDataFactory.create_member(self.company, role='operations')
        client = AuthenticatedAPIClient()
        client.authenticate_user(manager)
        response = client.post(f'/api/v1/proof-photos/{photo.pk}/review/', {'action': 'reject'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = client.post(f'/api/v1/proof-photos/{photo.pk}/review/',
                               {'action': 'reject', 'reason': 'Blurred'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['approval_status'], 'rejected')

    def test_notify_requires_complete_proofs(self):
        manager = TestDataFactory.create_member(self.company, role='manager')
        client = AuthenticatedAPIClient()
        client.authenticate_user(manager)
        url = f'/api/v1/campaigns/{self.campaign.pk}/proofs/notify/'
        response = client.post(url)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = client.post(url, {'force': True}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(mail.outbox), 1)
        self.campaign.refresh_from_db()
        self.assertIsNotNone(self.campaign.public_token)


class CampaignAPITests(TestCase):
    """Test campaign and operations endpoints"""

    def setUp(self):
        self.company = TestDataFactory.create_company()
        self.user = TestDataFactory.create_member(self.company, role='operations')
        self.client_record = TestDataFactory.create_client(self.company)
        self.asset = TestDataFactory.create_asset(self.company)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.today = timezone.localdate()

    def _payload(self, start, end):
        return {
            'client': self.client_record.pk,
            'campaign_name': 'Monsoon Sale',
            'start_date': start.isoformat(),
            'end_date': end.isoformat(),
            'assets': [{'asset': self.asset.pk, 'negotiated_rate': '25000'}],
        }

    def test_create_and_confirm(self):
        start = self.today + timedelta(days=3)
        response = self.client.post('/api/v1/campaigns/', self._payload(start, start + timedelta(days=29)), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(response.data['status'], 'Draft')
        response = self.client.post(f"/api/v1/campaigns/{response.data['id']}/confirm/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'Upcoming')

    def test_conflict_returns_409(self):
        TestDataFactory.create_campaign(self.company, assets=[self.asset])
        response = self.client.post('/api/v1/campaigns/', self._payload(self.today, self.today + timedelta(days=9)),
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['conflicts'][0]['asset_id'], self.asset.pk)

    def test_availability_endpoint(self):
        response = self.client.get('/api/v1/campaigns/availability/', {
            'start_date': self.today.isoformat(), 'end_date': (self.today + timedelta(days=10)).isoformat(),
        })
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['summary']['available_count'], 1)
        response = self.client.get('/api/v1/campaigns/availability/', {'start_date': 'bad'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_assign_mounter_and_my_tasks(self):
        campaign = TestDataFactory.create_campaign(self.company, assets=[self.asset])
        mounter = TestDataFactory.create_member(self.company, role='installation')
        row = campaign.campaign_assets.get()
        response = self.client.post('/api/v1/operations/assign-mounter/', {
            'campaign_asset_ids': [row.pk], 'mounter_id': mounter.pk,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data[0]['installation_status'], 'Assigned')

        self.client.authenticate_user(mounter)
        response = self.client.get('/api/v1/operations/my-tasks/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)

    def test_assign_outsider_rejected(self):
        campaign = TestDataFactory.create_campaign(self.company, assets=[self.asset])
        outsider = TestDataFactory.create_member(TestDataFactory.create_company(), role='installation')
        response = self.client.post('/api/v1/operations/assign-mounter/', {
            'campaign_asset_ids': [campaign.campaign_assets.get().pk], 'mounter_id': outsider.pk,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_public_tracking_hides_rates(self):
        campaign = TestDataFactory.create_campaign(self.company, assets=[self.asset])
        response = self.client.post(f'/api/v1/campaigns/{campaign.pk}/public-link/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.client.logout()
        campaign.refresh_from_db()
        response = self.client.get(f'/api/v1/public/campaigns/{campaign.public_token}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertNotIn('grand_total', response.data)

    def test_campaign_list_is_company_scoped(self):
        TestDataFactory.create_campaign(self.company, assets=[self.asset])
        TestDataFactory.create_campaign(TestDataFactory.create_company())
        response = self.client.get('/api/v1/campaigns/')
        self.assertEqual(len(response.data), 1)
        self.assertEqual(Campaign.objects.count(), 2)
