"""
Django management command to email payment reminders for overdue invoices.

Meant to run daily from cron. Companies opt in with the
auto_reminders_enabled setting; each invoice gets at most one reminder
per overdue bucket (7, 15, 30 and 45 days).
"""
from django.core.management.base import BaseCommand, CommandError

from oohops.core.models import Company
from oohops.core.utils import parse_date_param
from oohops.finance.services import mark_overdue_invoices, send_invoice_reminders


class Command(BaseCommand):
    help = 'Send payment reminders for overdue invoices'

    def add_arguments(self, parser):
        parser.add_argument('--date', help='Run as of this date (YYYY-MM-DD) instead of today')
        parser.add_argument('--company-id', type=int, help='Only remind clients of this company')
        parser.add_argument(
            '--skip-overdue-check',
            action='store_true',
            help='Do not mark past-due invoices as Overdue before sending',
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

        if not options['skip_overdue_check']:
            marked = mark_overdue_invoices(today=today, company=company)
            if marked:
                self.stdout.write(f"Marked {marked} invoice(s) as Overdue")

        counts = send_invoice_reminders(today=today, company=company)
        self.stdout.write(self.style.SUCCESS(
            f"Reminders sent: {counts['sent']}, failed: {counts['failed']}, skipped: {counts['skipped']}"
        ))
        if counts['failed']:
            self.stdout.write(self.style.WARNING('Some reminders failed, see the log for details'))
