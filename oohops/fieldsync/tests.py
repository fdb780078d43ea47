"""
Test suite for offline field uploads
Tests: queue ordering, retry limits, the upload client and queue replay
"""
import os
import shutil
import tempfile
from io import StringIO

import requests
from django.core.management import call_command
from django.test import SimpleTestCase

from oohops.fieldsync import (
    OfflineUploadQueue, FieldSyncClient, UploadError, ConnectionUnavailable, replay_queue,
)


class FakeResponse:
    def __init__(self, status_code=201, payload=None):
        self.status_code = status_code
        self.payload = payload if payload is not None else {}
        self.text = str(self.payload)

    def json(self):
        return self.payload


class FakeSession:
    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    def post(self, url, data=None, files=None, headers=None, timeout=None):
        self.calls.append({'url': url, 'data': data, 'headers': headers, 'filename': files['image'][0]})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class ScriptedClient:
    """Stands in for FieldSyncClient; outcome per campaign asset id"""

    def __init__(self, outcomes):
        self.outcomes = outcomes
        self.uploaded = []

    def upload(self, item):
        outcome = self.outcomes.get(item.campaign_asset_id)
        if isinstance(outcome, Exception):
            raise outcome
        self.uploaded.append(item.client_upload_id)
        return {'id': len(self.uploaded)}


class FieldSyncTestCase(SimpleTestCase):

    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()
        self.queue = OfflineUploadQueue(os.path.join(self.tmpdir, 'queue.db'), max_retries=2)
        self.photo_path = os.path.join(self.tmpdir, 'traffic_left.jpg')
        with open(self.photo_path, 'wb') as fh:
            fh.write(b'\xff\xd8\xff\xe0fake-jpeg')

    def tearDown(self):
        shutil.rmtree(self.tmpdir, ignore_errors=True)


class OfflineUploadQueueTests(FieldSyncTestCase):

    def test_pending_is_fifo(self):
        first = self.queue.enqueue(1, self.photo_path, 'traffic1')
        second = self.queue.enqueue(2, self.photo_path, 'geotag', metadata={'latitude': 17.44})
        items = self.queue.pending()
        self.assertEqual([item.client_upload_id for item in items], [first, second])
        self.assertEqual(items[1].metadata, {'latitude': 17.44})
        self.assertEqual(len(self.queue.pending(limit=1)), 1)

    def test_queue_survives_reopen(self):
        upload_id = self.queue.enqueue(7, self.photo_path)
        reopened = OfflineUploadQueue(self.queue.path)
        self.assertEqual(reopened.get(upload_id).campaign_asset_id, 7)

    def test_retry_limit_moves_item_to_failed(self):
        upload_id = self.queue.enqueue(1, self.photo_path)
        self.assertEqual(self.queue.mark_failed(upload_id, 'HTTP 500'), 'pending')
        self.assertEqual(self.queue.mark_failed(upload_id, 'HTTP 500'), 'failed')
        self.assertEqual(self.queue.pending(), [])
        self.assertEqual(self.queue.get(upload_id).last_error, 'HTTP 500')

        self.assertEqual(self.queue.reset_failed(), 1)
        self.assertEqual(self.queue.get(upload_id).retry_count, 0)
        self.assertEqual(self.queue.count('pending'), 1)

    def test_remove_and_unknown_ids(self):
        upload_id = self.queue.enqueue(1, self.photo_path)
        self.assertTrue(self.queue.remove(upload_id))
        self.assertFalse(self.queue.remove(upload_id))
        self.assertIsNone(self.queue.mark_failed(upload_id, 'gone'))
        self.assertEqual(self.queue.count(), 0)


class FieldSyncClientTests(FieldSyncTestCase):

    def test_upload_posts_file_and_upload_id(self):
        upload_id = self.queue.enqueue(12, self.photo_path, 'traffic1', metadata={'latitude': 17.4, 'longitude': 78.3})
        session = FakeSession([FakeResponse(201, {'id': 5, 'duplicate': False})])
        client = FieldSyncClient('https://ops.example.test/', 'tok', session=session)
        result = client.upload(self.queue.get(upload_id))
        self.assertEqual(result['id'], 5)
        call = session.calls[0]
        self.assertEqual(call['url'], 'https://ops.example.test/api/v1/campaign-assets/12/photos/')
        self.assertEqual(call['data']['client_upload_id'], upload_id)
        self.assertEqual(call['data']['longitude'], 78.3)
        self.assertEqual(call['headers']['Authorization'], 'Bearer tok')
        self.assertEqual(call['filename'], 'traffic_left.jpg')

    def test_server_rejection(self):
        upload_id = self.queue.enqueue(12, self.photo_path)
        client = FieldSyncClient('https://ops.example.test', 'tok',
                                 session=FakeSession([FakeResponse(400, {'error': 'bad image'})]))
        with self.assertRaises(UploadError) as ctx:
            client.upload(self.queue.get(upload_id))
        self.assertEqual(ctx.exception.status_code, 400)

    def test_connection_error_means_offline(self):
        upload_id = self.queue.enqueue(12, self.photo_path)
        client = FieldSyncClient('https://ops.example.test', 'tok',
                                 session=FakeSession([requests.exceptions.ConnectionError('no route')]))
        with self.assertRaises(ConnectionUnavailable):
            client.upload(self.queue.get(upload_id))

    def test_missing_file(self):
        upload_id = self.queue.enqueue(12, os.path.join(self.tmpdir, 'gone.jpg'))
        client = FieldSyncClient('https://ops.example.test', 'tok', session=FakeSession([]))
        with self.assertRaises(UploadError):
            client.upload(self.queue.get(upload_id))


class ReplayQueueTests(FieldSyncTestCase):

    def test_successes_leave_and_rejections_count(self):
        ok = self.queue.enqueue(1, self.photo_path)
        self.queue.enqueue(2, self.photo_path)
        client = ScriptedClient({2: UploadError('HTTP 400', 400)})
        result = replay_queue(self.queue, client)
        self.assertEqual(result, {'uploaded': 1, 'failed': 1, 'remaining': 1})
        self.assertEqual(client.uploaded, [ok])

    def test_offline_stops_replay(self):
        self.queue.enqueue(1, self.photo_path)
        offline = self.queue.enqueue(2, self.photo_path)
        self.queue.enqueue(3, self.photo_path)
        client = ScriptedClient({2: ConnectionUnavailable('offline')})
        result = replay_queue(self.queue, client)
        self.assertEqual(result, {'uploaded': 1, 'failed': 0, 'remaining': 2})
        self.assertEqual(self.queue.get(offline).retry_count, 0)
        self.assertEqual(self.queue.pending()[0].client_upload_id, offline)

    def test_sync_command_with_empty_queue(self):
        out = StringIO()
        call_command('sync_field_uploads', queue=self.queue.path, api_url='https://ops.example.test',
                     token='tok', stdout=out)
        self.assertIn('Uploaded: 0, failed: 0, remaining: 0', out.getvalue())

    def test_limit(self):
        for asset_id in (1, 2, 3):
            self.queue.enqueue(asset_id, self.photo_path)
        result = replay_queue(self.queue, ScriptedClient({}), limit=2)
        self.assertEqual(result['uploaded'], 2)
        self.assertEqual(result['remaining'], 1)
