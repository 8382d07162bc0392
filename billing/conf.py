"""
Billing configuration.

Values come from the LEASE_BILLING settings dict; anything missing falls
back to DEFAULTS.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict

from django.conf import settings

from core.constants import DefaultLimits, ReminderStage


DEFAULT_REMINDER_STAGE_SCHEDULE = {
    ReminderStage.FRIENDLY: -2,
    ReminderStage.DUE_TODAY: 0,
    ReminderStage.OVERDUE_1: 1,
    ReminderStage.WARNING_7: 7,
    ReminderStage.ALERT_15: 15,
    ReminderStage.DEFAULT_30: 30,
}

DEFAULTS = {
    'FEE_PER_DAY': 100,
    'GRACE_PERIOD_DAYS': 3,
    'DEPOSIT_WINDOW_HOURS': 48,
    'RENT_DUE_DAY': DefaultLimits.RENT_DUE_DAY,
    'MIN_BOOKING_DEPOSIT_FRACTION': '0.20',
    'EXPIRY_WARNING_HOURS': 24,
    'MAX_PENDING_APPLICATIONS': DefaultLimits.MAX_PENDING_APPLICATIONS,
    'MIN_INCOME_RENT_MULTIPLE': DefaultLimits.MIN_INCOME_RENT_MULTIPLE,
    'REMINDER_STAGE_SCHEDULE': DEFAULT_REMINDER_STAGE_SCHEDULE,
}


@dataclass(frozen=True)
class BillingConfig:
    fee_per_day: Decimal = Decimal('100')
    grace_period_days: int = 3
    deposit_window_hours: int = 48
    rent_due_day: int = DefaultLimits.RENT_DUE_DAY
    min_booking_deposit_fraction: Decimal = Decimal('0.20')
    expiry_warning_hours: int = 24
    max_pending_applications: int = DefaultLimits.MAX_PENDING_APPLICATIONS
    min_income_rent_multiple: int = DefaultLimits.MIN_INCOME_RENT_MULTIPLE
    # Stage -> days relative to the due date (negative = before due)
    reminder_stage_schedule: Dict[str, int] = field(
        default_factory=lambda: dict(DEFAULT_REMINDER_STAGE_SCHEDULE)
    )

    def __post_init__(self):
        if not 1 <= self.rent_due_day <= 28:
            raise ValueError("RENT_DUE_DAY must be between 1 and 28")
        unknown = set(self.reminder_stage_schedule) - set(DEFAULT_REMINDER_STAGE_SCHEDULE)
        if unknown:
            raise ValueError(f"Unknown reminder stages: {sorted(unknown)}")


def get_billing_config(**overrides) -> BillingConfig:
    """Build a BillingConfig from settings.LEASE_BILLING (keyword overrides win)"""
    values = dict(DEFAULTS)
    values.update(getattr(settings, 'LEASE_BILLING', {}) or {})

    schedule = dict(DEFAULT_REMINDER_STAGE_SCHEDULE)
    schedule.update(values['REMINDER_STAGE_SCHEDULE'] or {})

    config = dict(
        fee_per_day=Decimal(str(values['FEE_PER_DAY'])),
        grace_period_days=int(values['GRACE_PERIOD_DAYS']),
        deposit_window_hours=int(values['DEPOSIT_WINDOW_HOURS']),
        rent_due_day=int(values['RENT_DUE_DAY']),
        min_booking_deposit_fraction=Decimal(str(values['MIN_BOOKING_DEPOSIT_FRACTION'])),
        expiry_warning_hours=int(values['EXPIRY_WARNING_HOURS']),
        max_pending_applications=int(values['MAX_PENDING_APPLICATIONS']),
        min_income_rent_multiple=int(values['MIN_INCOME_RENT_MULTIPLE']),
        reminder_stage_schedule=schedule,
    )
    config.update(overrides)
    return BillingConfig(**config)
