"""
Django management command to replay queued offline proof uploads against
a running API
"""
from django.core.management.base import BaseCommand, CommandError

from oohops.fieldsync import FieldSyncClient, OfflineUploadQueue, replay_queue


class Command(BaseCommand):
    help = 'Upload proof photos waiting in an offline queue file'

    def add_arguments(self, parser):
        parser.add_argument('--queue', required=True, help='Path of the SQLite queue file')
        parser.add_argument('--api-url', required=True, help='Base URL of the API, e.g. https://ops.example.com')
        parser.add_argument('--token', required=True, help='JWT access token of the field user')
        parser.add_argument('--limit', type=int, help='Upload at most this many items')
        parser.add_argument('--retry-failed', action='store_true', help='Move failed items back to pending first')

    def handle(self, *args, **options):
        try:
            queue = OfflineUploadQueue(options['queue'])
        except Exception as e:
            raise CommandError(f"Cannot open queue {options['queue']}: {str(e)}")

        if options['retry_failed']:
            reset = queue.reset_failed()
            self.stdout.write(f"Moved {reset} failed upload(s) back to pending")

        client = FieldSyncClient(options['api_url'], options['token'])
        result = replay_queue(queue, client, limit=options.get('limit'))
        self.stdout.write(self.style.SUCCESS(
            f"Uploaded: {result['uploaded']}, failed: {result['failed']}, remaining: {result['remaining']}"
        ))
        if result['remaining'] and not result['failed'] and not result['uploaded']:
            self.stdout.write(self.style.WARNING('Server unreachable, uploads left in the queue'))
