"""
Test suite for media assets
Tests: dimension parsing, search tokens, duplicate detection, QR codes, bulk import and the asset API
"""
import io
from decimal import Decimal

from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import SimpleTestCase, TestCase
from openpyxl import Workbook
from rest_framework import status

from oohops.assets.dimensions import parse_dimensions, calculate_total_sqft, format_dimensions, is_multi_face
from oohops.assets.duplicates import find_potential_duplicates, detect_duplicate_groups, distance_meters
from oohops.assets.models import MediaAsset
from oohops.assets.qr import build_qr_png
from oohops.assets.search import tokenize, search_assets
from oohops.core.models import AuditLog
from oohops.core.test_utils import TestDataFactory, AuthenticatedAPIClient


class DimensionTests(SimpleTestCase):
    """Test dimension string parsing"""

    def test_single_face_variants(self):
        for text in ('20x10', '20 x 10', '20X10', '20×10'):
            faces = parse_dimensions(text)
            self.assertEqual(len(faces), 1, text)
            self.assertEqual(faces[0]['sqft'], Decimal('200.00'))

    def test_multi_face(self):
        self.assertTrue(is_multi_face('25X5 - 12X3'))
        self.assertEqual(calculate_total_sqft('25X5 - 12X3'), Decimal('161.00'))
        self.assertEqual(calculate_total_sqft('40x20–30x10'), Decimal('1100.00'))

    def test_stored_total_wins(self):
        self.assertEqual(calculate_total_sqft('20x10', stored_total=Decimal('250')), Decimal('250.00'))

    def test_garbage_is_dropped(self):
        self.assertEqual(parse_dimensions('N/A'), [])
        self.assertEqual(parse_dimensions('0x10'), [])
        self.assertEqual(calculate_total_sqft(''), Decimal('0.00'))

    def test_format_dimensions(self):
        self.assertEqual(format_dimensions('20X10'), '20 x 10')
        self.assertEqual(format_dimensions('25X5-12X3'), '25x5 - 12x3')
        self.assertEqual(format_dimensions(''), 'N/A')


class SearchAndDuplicateHelperTests(SimpleTestCase):

    def test_tokenize_drops_short_tokens(self):
        self.assertEqual(tokenize('Near KPHB, Road-5 A'), ['near', 'kphb', 'road'])

    def test_distance_meters(self):
        self.assertLess(distance_meters(17.4486, 78.3908, 17.4487, 78.3908), 25)
        self.assertGreater(distance_meters(17.4486, 78.3908, 17.4586, 78.3908), 1000)

    def test_qr_png(self):
        content = build_qr_png('https://example.com/assets/HYD-BQS-0001')
        self.assertTrue(content.startswith(b'\x89PNG'))


class MediaAssetModelTests(TestCase):
    """Test derived fields computed on save"""

    def setUp(self):
        self.company = TestDataFactory.create_company()

    def test_save_computes_faces_and_sqft(self):
        asset = TestDataFactory.create_asset(self.company, dimensions='25X5 - 12X3')
        self.assertTrue(asset.is_multi_face)
        self.assertEqual(len(asset.faces), 2)
        self.assertEqual(asset.total_sqft, Decimal('161.00'))

    def test_search_tokens_include_compact_code(self):
        asset = TestDataFactory.create_asset(self.company, media_asset_code='HYD-BQS-0042', area='Kukatpally')
        self.assertIn('hydbqs0042', asset.search_tokens)
        self.assertIn('kukatpally', asset.search_tokens)
        found = search_assets(MediaAsset.objects.filter(company=self.company), 'kukatpally bus')
        self.assertEqual(list(found), [asset])

    def test_duplicates_by_location(self):
        first = TestDataFactory.create_asset(self.company, location='Opp. Metro Pillar 12')
        TestDataFactory.create_asset(self.company, location='opp metro pillar 12')
        matches = find_potential_duplicates(self.company, first.city, 'Opp Metro Pillar 12', first.media_type)
        self.assertEqual(len(matches), 2)
        self.assertIn('same_location', matches[0]['reasons'])

    def test_duplicate_groups_share_id(self):
        a = TestDataFactory.create_asset(self.company, latitude=Decimal('17.448600'), longitude=Decimal('78.390800'))
        b = TestDataFactory.create_asset(self.company, latitude=Decimal('17.448650'), longitude=Decimal('78.390800'))
        c = TestDataFactory.create_asset(self.company, latitude=Decimal('17.500000'), longitude=Decimal('78.390800'))
        groups = detect_duplicate_groups(self.company)
        self.assertEqual(len(groups), 1)
        a.refresh_from_db()
        b.refresh_from_db()
        c.refresh_from_db()
        self.assertIsNotNone(a.duplicate_group_id)
        self.assertEqual(a.duplicate_group_id, b.duplicate_group_id)
        self.assertIsNone(c.duplicate_group_id)


class MediaAssetAPITests(TestCase):
    """Test media asset endpoints"""

    def setUp(self):
        self.company = TestDataFactory.create_company()
        self.user = TestDataFactory.create_member(self.company, role='admin')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_asset_generates_code(self):
        response = self.client.post('/api/v1/media-assets/', {
            'media_type': 'Bus Shelter', 'city': 'Hyderabad', 'area': 'Madhapur',
            'location': 'Near Cyber Towers', 'dimensions': '20x10',
            'card_rate': '30000', 'base_rate': '20000',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['media_asset_code'], 'HYD-BQS-0001')
        self.assertEqual(Decimal(str(response.data['total_sqft'])), Decimal('200.00'))

    def test_base_rate_above_card_rate_rejected(self):
        response = self.client.post('/api/v1/media-assets/', {
            'media_type': 'Unipole', 'city': 'Hyderabad', 'area': 'Madhapur',
            'location': 'Near Cyber Towers', 'dimensions': '40x20',
            'card_rate': '20000', 'base_rate': '30000',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('base_rate', response.data)

    def test_rate_change_is_audited(self):
        asset = TestDataFactory.create_asset(self.company)
        response = self.client.patch(f'/api/v1/media-assets/{asset.pk}/', {'card_rate': '35000'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        log = AuditLog.objects.get(company=self.company, action='rate_change')
        self.assertEqual(log.changes['after']['card_rate'], '35000.00')

    def test_filter_by_city(self):
        TestDataFactory.create_asset(self.company, city='Hyderabad')
        TestDataFactory.create_asset(self.company, city='Warangal')
        response = self.client.get('/api/v1/media-assets/', {'city': 'Warangal'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)

    def test_monitor_cannot_create(self):
        monitor = TestDataFactory.create_member(self.company, role='monitor')
        self.client.authenticate_user(monitor)
        response = self.client.post('/api/v1/media-assets/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_booked_asset_cannot_be_deleted(self):
        asset = TestDataFactory.create_asset(self.company)
        TestDataFactory.create_campaign(self.company, assets=[asset])
        response = self.client.delete(f'/api/v1/media-assets/{asset.pk}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_check_duplicate(self):
        asset = TestDataFactory.create_asset(self.company, location='Opp. Metro Pillar 12')
        response = self.client.post('/api/v1/media-assets/check-duplicate/', {
            'city': asset.city, 'location': 'opp metro pillar 12', 'media_type': asset.media_type,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['has_duplicates'])

    def test_bulk_import_reports_bad_rows(self):
        workbook = Workbook()
        sheet = workbook.active
        sheet.append(['City', 'Area', 'Location', 'Media Type', 'Dimensions', 'Card Rate', 'Base Rate'])
        sheet.append(['Hyderabad', 'Ameerpet', 'Metro Station Exit 2', 'Unipole', '40x20', 90000, 60000])
        sheet.append(['Hyderabad', 'Ameerpet', 'Mall Road', 'Unipole', None, 90000, 60000])
        buffer = io.BytesIO()
        workbook.save(buffer)
        upload = SimpleUploadedFile('assets.xlsx', buffer.getvalue(),
                                    content_type='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet')
        response = self.client.post('/api/v1/media-assets/bulk-import/', {'file': upload}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['created'], ['HYD-UNI-0001'])
        self.assertEqual(response.data['errors'][0]['row'], 3)
