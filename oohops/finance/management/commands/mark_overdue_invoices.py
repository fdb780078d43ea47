"""
Django management command to mark open invoices past their due date as Overdue
"""
from django.core.management.base import BaseCommand, CommandError

from oohops.core.models import Company
from oohops.core.utils import parse_date_param
from oohops.finance.services import mark_overdue_invoices


class Command(BaseCommand):
    help = 'Mark Sent and Partial invoices past their due date as Overdue'

    def add_arguments(self, parser):
        parser.add_argument('--date', help='Run as of this date (YYYY-MM-DD) instead of today')
        parser.add_argument('--company-id', type=int, help='Only check invoices of this company')

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

        count = mark_overdue_invoices(today=today, company=company)
        self.stdout.write(self.style.SUCCESS(f"Marked {count} invoice(s) as Overdue"))
