"""
Shared output for the scheduled-job commands.
"""
from datetime import datetime

from django.core.management.base import BaseCommand, CommandError


class BatchCommand(BaseCommand):
    """Base for commands that run one billing or lease sweep and print a summary"""
    title = ''
    supports_date = False
    supports_dry_run = False

    def add_arguments(self, parser):
        if self.supports_date:
            parser.add_argument(
                '--date',
                help='Run as if today were this date (YYYY-MM-DD)',
            )
        if self.supports_dry_run:
            parser.add_argument(
                '--dry-run',
                action='store_true',
                help='Show what would change without writing anything',
            )

    def parse_date(self, options):
        value = options.get('date')
        if not value:
            return None
        try:
            return datetime.strptime(value, '%Y-%m-%d').date()
        except ValueError:
            raise CommandError(f"Invalid --date {value!r}, expected YYYY-MM-DD")

    def print_header(self, subtitle=''):
        self.stdout.write(f"\n{'=' * 60}")
        self.stdout.write(f"  {self.title}{' - ' + subtitle if subtitle else ''}")
        self.stdout.write(f"{'=' * 60}\n")

    def print_result(self, result, created_label='Created', dry_run=False):
        for line in result.details:
            self.stdout.write(f"  {line}")

        self.stdout.write(f"\n{'=' * 60}")
        self.stdout.write("  SUMMARY")
        self.stdout.write(f"{'=' * 60}")
        self.stdout.write(f"  Processed: {result.processed}")
        self.stdout.write(f"  Skipped: {result.skipped}")
        if dry_run:
            self.stdout.write(self.style.WARNING(f"  {created_label} (dry run): {result.created}"))
        else:
            self.stdout.write(self.style.SUCCESS(f"  {created_label}: {result.created}"))
        if result.failed:
            self.stdout.write(self.style.ERROR(f"  Failed: {result.failed}"))
        self.stdout.write(f"{'=' * 60}\n")
