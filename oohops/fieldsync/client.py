import logging
import os

import requests

logger = logging.getLogger(__name__)


class UploadError(Exception):
    """The server rejected an upload."""

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code


class ConnectionUnavailable(UploadError):
    """The server could not be reached; the device is treated as offline."""


class FieldSyncClient:
    """Posts queued proof photos to the campaign-asset photo endpoint"""

    def __init__(self, base_url, access_token, session=None, timeout=30):
        self.base_url = base_url.rstrip('/')
        self.access_token = access_token
        self.session = session or requests.Session()
        self.timeout = timeout

    def upload_url(self, campaign_asset_id):
        return f"{self.base_url}/api/v1/campaign-assets/{campaign_asset_id}/photos/"

    def upload(self, item):
        """Upload one QueueItem; returns the decoded JSON response"""
        if not os.path.exists(item.file_path):
            raise UploadError(f'File not found: {item.file_path}')

        data = {'client_upload_id': item.client_upload_id}
        if item.photo_type:
            data['photo_type'] = item.photo_type
        for key in ('latitude', 'longitude'):
            if item.metadata.get(key) is not None:
                data[key] = item.metadata[key]

        try:
            with open(item.file_path, 'rb') as fh:
                response = self.session.post(
                    self.upload_url(item.campaign_asset_id),
                    data=data,
                    files={'image': (os.path.basename(item.file_path), fh)},
                    headers={'Authorization': f'Bearer {self.access_token}'},
                    timeout=self.timeout,
                )
        except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as e:
            raise ConnectionUnavailable(f'Server unreachable: {str(e)}')

        if not 200 <= response.status_code < 300:
            try:
                detail = response.json()
            except ValueError:
                detail = response.text[:200]
            raise UploadError(f'Upload rejected with HTTP {response.status_code}: {detail}', response.status_code)
        try:
            return response.json()
        except ValueError:
            return {}
