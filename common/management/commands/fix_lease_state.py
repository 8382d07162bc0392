"""
Repair lease state for paid booking deposits.

For every paid booking_deposit invoice: reserve the application, reserve the
property for the tenant, link the tenant, and create the first rent invoice
if none exists. Safe to run repeatedly.

Usage:
    python manage.py fix_lease_state [--dry-run]
"""
from django.db import transaction
from django.utils import timezone

from applications.services import LeaseService
from common.management.base import BatchCommand


class Command(BatchCommand):
    help = 'Re-apply the booking deposit transition for paid deposits'
    title = 'LEASE STATE REPAIR'
    supports_date = True
    supports_dry_run = True

    def handle(self, *args, **options):
        today = self.parse_date(options) or timezone.localdate()
        dry_run = options['dry_run']

        self.print_header(today.isoformat())
        if dry_run:
            self.stdout.write(self.style.WARNING("DRY RUN MODE - Changes will be rolled back\n"))

        with transaction.atomic():
            result = LeaseService().repair_deposit_state(today=today)
            if dry_run:
                transaction.set_rollback(True)

        self.print_result(result, created_label='Fixed', dry_run=dry_run)
