"""
Validation utilities and validators.
Centralized validation logic following single responsibility principle.
"""
from decimal import Decimal
from core.exceptions import ValidationError as AppValidationError


class ApplicationValidator:
    """Validates rental application submissions"""

    @staticmethod
    def validate_move_in(preferred_move_in, today):
        """Move-in date must be today or later"""
        if preferred_move_in is None:
            raise AppValidationError(
                message="Preferred move-in date is required",
                code="MOVE_IN_REQUIRED"
            )
        if preferred_move_in < today:
            raise AppValidationError(
                message="Move-in date must be today or in the future.",
                code="INVALID_MOVE_IN_DATE"
            )

    @staticmethod
    def validate_income(monthly_income: Decimal, rent: Decimal, multiple: int):
        """Income should cover the rent the configured number of times"""
        minimum_income = rent * multiple
        if monthly_income < minimum_income:
            raise AppValidationError(
                message=f"Your monthly income should be at least {minimum_income} ({multiple}x the rent) to qualify for this property.",
                code="INSUFFICIENT_INCOME",
                details={
                    "minimum_income": str(minimum_income),
                    "monthly_income": str(monthly_income)
                }
            )

    @staticmethod
    def validate_pending_limit(current_count: int, max_allowed: int):
        """Validate the number of simultaneous pending applications"""
        if max_allowed > 0 and current_count >= max_allowed:
            raise AppValidationError(
                message=f"You can only have up to {max_allowed} pending applications at a time.",
                code="PENDING_LIMIT_EXCEEDED",
                details={
                    "current": current_count,
                    "max": max_allowed
                }
            )

