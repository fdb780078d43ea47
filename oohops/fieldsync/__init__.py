"""
Offline proof-photo uploads for field staff.

Photos taken without connectivity are queued in a local SQLite file and
replayed against the campaign-asset photo endpoint once the device is
online again. Each item carries a client_upload_id so a replay after a
lost response never stores the same photo twice.
"""
from .queue import OfflineUploadQueue, QueueItem
from .client import FieldSyncClient, UploadError, ConnectionUnavailable
from .replay import replay_queue

__all__ = [
    'OfflineUploadQueue', 'QueueItem', 'FieldSyncClient', 'UploadError', 'ConnectionUnavailable', 'replay_queue',
]
