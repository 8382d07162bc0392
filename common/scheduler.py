"""
Scheduler for the lease and billing sweeps.

Runs in its own process (manage.py run_scheduler), never inside the web
server. Each job just calls the matching management command, so cron can
drive the same commands instead.
"""
import logging
from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.cron import CronTrigger
from django.core.management import call_command
from django.utils import timezone

from common.logging_config import set_request_id, clear_request_id

logger = logging.getLogger(__name__)


# (command, job name, cron fields)
JOBS = [
    ('expire_applications', 'Expire unpaid applications', {'minute': '*/30'}),
    ('send_expiry_warnings', 'Warn before deposit deadlines', {'minute': 15}),
    ('apply_late_fees', 'Accrue late fees', {'hour': 0, 'minute': 30}),
    ('send_rent_reminders', 'Send rent reminders', {'hour': 9, 'minute': 0}),
    ('generate_monthly_invoices', 'Generate monthly rent invoices', {'day': 1, 'hour': 0, 'minute': 5}),
]


def run_command_job(command):
    """
    Run one management command as a scheduled job.
    Failures are logged so the next tick still runs.
    """
    set_request_id(command)
    try:
        logger.info(f"Starting scheduled job {command}")
        call_command(command)
        logger.info(f"Scheduled job {command} completed")
    except Exception as e:
        logger.error(f"Error in scheduled job {command}: {str(e)}", exc_info=True)
    finally:
        clear_request_id()


def build_scheduler(scheduler_class=BlockingScheduler):
    """Create a scheduler with every sweep registered"""
    tz = timezone.get_current_timezone()
    scheduler = scheduler_class(timezone=tz)

    for command, name, cron in JOBS:
        scheduler.add_job(
            run_command_job,
            trigger=CronTrigger(timezone=tz, **cron),
            args=[command],
            id=command,
            name=name,
            replace_existing=True,
            max_instances=1,  # Prevent overlapping runs
            coalesce=True  # Combine missed executions into one
        )
    return scheduler
