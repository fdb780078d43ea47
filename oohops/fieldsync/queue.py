"""SQLite-backed FIFO of pending proof uploads"""
import json
import logging
import sqlite3
import uuid
from contextlib import closing
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

logger = logging.getLogger(__name__)

PENDING = 'pending'
FAILED = 'failed'

SCHEMA = """
CREATE TABLE IF NOT EXISTS upload_queue (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    client_upload_id TEXT NOT NULL UNIQUE,
    campaign_asset_id INTEGER NOT NULL,
    file_path TEXT NOT NULL,
    photo_type TEXT NOT NULL DEFAULT '',
    metadata TEXT NOT NULL DEFAULT '{}',
    status TEXT NOT NULL DEFAULT 'pending',
    retry_count INTEGER NOT NULL DEFAULT 0,
    last_error TEXT NOT NULL DEFAULT '',
    created_at TEXT NOT NULL
)
"""


@dataclass
class QueueItem:
    client_upload_id: str
    campaign_asset_id: int
    file_path: str
    photo_type: str = ''
    metadata: dict = field(default_factory=dict)
    status: str = PENDING
    retry_count: int = 0
    last_error: str = ''
    created_at: Optional[str] = None


class OfflineUploadQueue:
    """
    Pending uploads in insertion order.

    An item that fails max_retries times moves to status 'failed' and
    leaves the pending set until reset_failed() puts it back.
    """

    def __init__(self, path, max_retries=5):
        self.path = str(path)
        self.max_retries = max_retries
        with closing(self._connect()) as conn, conn:
            conn.execute(SCHEMA)

    def _connect(self):
        conn = sqlite3.connect(self.path)
        conn.row_factory = sqlite3.Row
        return conn

    @staticmethod
    def _to_item(row):
        return QueueItem(
            client_upload_id=row['client_upload_id'],
            campaign_asset_id=row['campaign_asset_id'],
            file_path=row['file_path'],
            photo_type=row['photo_type'],
            metadata=json.loads(row['metadata'] or '{}'),
            status=row['status'],
            retry_count=row['retry_count'],
            last_error=row['last_error'],
            created_at=row['created_at'],
        )

    def enqueue(self, campaign_asset_id, file_path, photo_type='', metadata=None):
        """Add an upload; returns its client_upload_id"""
        client_upload_id = str(uuid.uuid4())
        with closing(self._connect()) as conn, conn:
            conn.execute(
                'INSERT INTO upload_queue (client_upload_id, campaign_asset_id, file_path, photo_type, metadata, created_at) '
                'VALUES (?, ?, ?, ?, ?, ?)',
                (client_upload_id, int(campaign_asset_id), str(file_path), photo_type or '',
                 json.dumps(metadata or {}), datetime.now(timezone.utc).isoformat()),
            )
        logger.debug(f"Queued upload {client_upload_id} for campaign asset {campaign_asset_id}")
        return client_upload_id

    def pending(self, limit=None):
        sql = 'SELECT * FROM upload_queue WHERE status = ? ORDER BY seq'
        params = [PENDING]
        if limit is not None:
            sql += ' LIMIT ?'
            params.append(int(limit))
        with closing(self._connect()) as conn:
            return [self._to_item(row) for row in conn.execute(sql, params)]

    def get(self, client_upload_id):
        with closing(self._connect()) as conn:
            row = conn.execute('SELECT * FROM upload_queue WHERE client_upload_id = ?', (client_upload_id,)).fetchone()
        return self._to_item(row) if row else None

    def mark_failed(self, client_upload_id, error):
        """Count a failed attempt; returns the item's new status or None when unknown"""
        with closing(self._connect()) as conn, conn:
            row = conn.execute(
                'SELECT retry_count FROM upload_queue WHERE client_upload_id = ?', (client_upload_id,)
            ).fetchone()
            if row is None:
                return None
            retry_count = row['retry_count'] + 1
            new_status = FAILED if retry_count >= self.max_retries else PENDING
            conn.execute(
                'UPDATE upload_queue SET retry_count = ?, last_error = ?, status = ? WHERE client_upload_id = ?',
                (retry_count, str(error), new_status, client_upload_id),
            )
        if new_status == FAILED:
            logger.warning(f"Upload {client_upload_id} gave up after {retry_count} attempts: {error}")
        return new_status

    def remove(self, client_upload_id):
        with closing(self._connect()) as conn, conn:
            cursor = conn.execute('DELETE FROM upload_queue WHERE client_upload_id = ?', (client_upload_id,))
            removed = cursor.rowcount
        return removed > 0

    def count(self, status=None):
        with closing(self._connect()) as conn:
            if status is None:
                row = conn.execute('SELECT COUNT(*) FROM upload_queue').fetchone()
            else:
                row = conn.execute('SELECT COUNT(*) FROM upload_queue WHERE status = ?', (status,)).fetchone()
        return row[0]

    def reset_failed(self):
        """Put failed items back in the pending set with a fresh retry count"""
        with closing(self._connect()) as conn, conn:
            cursor = conn.execute(
                'UPDATE upload_queue SET status = ?, retry_count = 0 WHERE status = ?', (PENDING, FAILED)
            )
            reset = cursor.rowcount
        return reset
