"""
Warn applicants whose booking deposit deadline is less than a day away.
Each application is warned once.

Usage:
    python manage.py send_expiry_warnings
"""
from applications.services import LeaseService
from common.management.base import BatchCommand


class Command(BatchCommand):
    help = 'Send booking deposit expiry warnings'
    title = 'EXPIRY WARNINGS'

    def handle(self, *args, **options):
        self.print_header()
        result = LeaseService().send_expiry_warnings()
        self.print_result(result, created_label='Warned')
