"""
Send escalating rent reminders (friendly, due today, overdue, 7/15/30 days late).

Usage:
    python manage.py send_rent_reminders [--date YYYY-MM-DD]
"""
from django.utils import timezone

from billing.services import BillingService
from common.management.base import BatchCommand


class Command(BatchCommand):
    help = 'Send rent reminders, at most one per stage per invoice'
    title = 'RENT REMINDERS'
    supports_date = True

    def handle(self, *args, **options):
        today = self.parse_date(options) or timezone.localdate()
        self.print_header(today.isoformat())
        result = BillingService().send_rent_reminders(today=today)
        self.print_result(result, created_label='Sent')
