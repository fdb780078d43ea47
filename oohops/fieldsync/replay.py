import logging

from .client import ConnectionUnavailable, UploadError

logger = logging.getLogger(__name__)


def replay_queue(queue, client, limit=None):
    """
    Upload pending items oldest first.

    Successes leave the queue, rejected uploads are marked failed. A
    connection error stops the run and leaves the current item pending
    with its retry count untouched.
    Returns {'uploaded': n, 'failed': n, 'remaining': n}.
    """
    uploaded = failed = 0
    for item in queue.pending(limit):
        try:
            client.upload(item)
        except ConnectionUnavailable as e:
            logger.info(f"Offline, stopping replay at {item.client_upload_id}: {str(e)}")
            break
        except UploadError as e:
            queue.mark_failed(item.client_upload_id, str(e))
            failed += 1
            continue
        queue.remove(item.client_upload_id)
        uploaded += 1
    return {'uploaded': uploaded, 'failed': failed, 'remaining': queue.count('pending')}
