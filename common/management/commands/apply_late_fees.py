"""
Accrue late fees on overdue monthly rent invoices.

Usage:
    python manage.py apply_late_fees [--date YYYY-MM-DD]

Cron (daily):
    30 0 * * * cd /path/to/project && python manage.py apply_late_fees
"""
from django.utils import timezone

from billing.services import BillingService
from common.management.base import BatchCommand


class Command(BatchCommand):
    help = 'Create late fee invoices for rent past the grace period'
    title = 'LATE FEES'
    supports_date = True

    def handle(self, *args, **options):
        today = self.parse_date(options) or timezone.localdate()
        self.print_header(today.isoformat())
        result = BillingService().apply_late_fees(today=today)
        self.print_result(result, created_label='Late fee invoices')
