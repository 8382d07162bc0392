"""
Run the lease and billing sweeps on their schedules in this process.

Usage:
    python manage.py run_scheduler
    python manage.py run_scheduler --list
"""
import logging

from django.core.management.base import BaseCommand

from common.scheduler import build_scheduler

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = 'Start the blocking job scheduler'

    def add_arguments(self, parser):
        parser.add_argument(
            '--list',
            action='store_true',
            help='Print the registered jobs and exit',
        )

    def handle(self, *args, **options):
        scheduler = build_scheduler()

        if options['list']:
            for job in scheduler.get_jobs():
                self.stdout.write(f"  {job.id}: {job.name} ({job.trigger})")
            return

        self.stdout.write(self.style.SUCCESS("Scheduler started. Press Ctrl+C to exit."))
        try:
            scheduler.start()
        except (KeyboardInterrupt, SystemExit):
            logger.info("Scheduler stopped")
            self.stdout.write("Scheduler stopped")
