"""
Django management command to move campaigns between Upcoming, Running and
Completed by date and release the assets of completed campaigns
"""
from django.core.management.base import BaseCommand, CommandError

from oohops.campaigns.services import auto_update_campaign_statuses
from oohops.core.models import Company
from oohops.core.utils import parse_date_param


class Command(BaseCommand):
    help = 'Update campaign statuses from their dates and release completed bookings'

    def add_arguments(self, parser):
        parser.add_argument(
            '--date',
            help='Run as of this date (YYYY-MM-DD) instead of today',
        )
        parser.add_argument(
            '--company-id',
            type=int,
            help='Only update campaigns of this company',
        )

    def handle(self, *args, **options):
        today = None
        if options.get('date'):
            today = parse_date_param(options['date'])
            if today is None:
                raise CommandError(f"Invalid date: {options['date']}")

        company = None
        if options.get('company_id'):
            company = Company.objects.filter(pk=options['company_id']).first()
            if company is None:
                raise CommandError(f"Company {options['company_id']} does not exist")

        moved = auto_update_campaign_statuses(today=today, company=company)
        if not moved:
            self.stdout.write('No campaign status changes')
            return
        for new_status, count in sorted(moved.items()):
            self.stdout.write(self.style.SUCCESS(f"{count} campaign(s) moved to {new_status}"))
