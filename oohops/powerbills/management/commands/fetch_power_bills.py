"""
Django management command to fetch the latest electricity bill of every
illuminated asset with a service connection
"""
from django.core.management.base import BaseCommand, CommandError

from oohops.core.models import Company
from oohops.powerbills.services import fetch_monthly_power_bills


class Command(BaseCommand):
    help = 'Fetch monthly power bills for illuminated assets'

    def add_arguments(self, parser):
        parser.add_argument('--company-id', type=int, help='Only fetch bills of this company')
        parser.add_argument('--verbose-details', action='store_true', help='Print one line per asset')

    def handle(self, *args, **options):
        company = None
        if options.get('company_id'):
            company = Company.objects.filter(pk=options['company_id']).first()
            if company is None:
                raise CommandError(f"Company {options['company_id']} does not exist")

        results = fetch_monthly_power_bills(company=company)

        if options['verbose_details']:
            for detail in results['details']:
                if detail['success']:
                    self.stdout.write(f"  {detail['media_asset_code']}: {detail['bill_amount']}")
                else:
                    self.stdout.write(self.style.WARNING(f"  {detail['media_asset_code']}: {detail['error']}"))

        self.stdout.write(self.style.SUCCESS(
            f"Assets: {results['total']}, new bills: {results['success']}, skipped: {results['skipped']}, "
            f"failed: {results['failed']}, anomalies: {results['anomalies_detected']}"
        ))
