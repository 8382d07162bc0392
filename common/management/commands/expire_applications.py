"""
Expire pending/approved applications whose deposit deadline or move-in
date has passed without payment. Run every 30 minutes.

Usage:
    python manage.py expire_applications
"""
from applications.services import LeaseService
from common.management.base import BatchCommand


class Command(BatchCommand):
    help = 'Auto-expire applications that missed the payment deadline'
    title = 'APPLICATION EXPIRY'

    def handle(self, *args, **options):
        self.print_header()
        result = LeaseService().expire_overdue_applications()
        self.print_result(result, created_label='Expired')
