"""
Management command to generate monthly_rent invoices for occupied properties.
Only does anything on the 1st of the month.

Usage:
    python manage.py generate_monthly_invoices
    python manage.py generate_monthly_invoices --dry-run --date 2026-11-01

Can be added to crontab to run automatically:
    5 0 1 * * cd /path/to/project && python manage.py generate_monthly_invoices
"""
from django.utils import timezone

from billing.services import BillingService
from common.management.base import BatchCommand


class Command(BatchCommand):
    help = 'Generate monthly rent invoices for all occupied properties'
    title = 'MONTHLY RENT INVOICES'
    supports_date = True
    supports_dry_run = True

    def handle(self, *args, **options):
        today = self.parse_date(options) or timezone.localdate()
        dry_run = options['dry_run']

        self.print_header(today.strftime('%B %Y'))
        if dry_run:
            self.stdout.write(self.style.WARNING("DRY RUN MODE - No invoices will be created\n"))

        result = BillingService().generate_monthly_invoices(today=today, dry_run=dry_run)
        self.print_result(result, dry_run=dry_run)
