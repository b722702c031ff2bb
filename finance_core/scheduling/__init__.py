"""Recurrence scheduling package."""

from finance_core.scheduling.occurrence import (
    ConfigurationError,
    ScheduleValidationError,
    advance,
    as_date,
    is_due,
    iter_occurrences,
    month_bounds,
    next_occurrence,
    parse_frequency,
    previous_occurrence,
    resolve_frequency,
    validate_schedule,
)
from finance_core.scheduling.templates import stamp_next_occurrence, toggle_active

__all__ = [
    "ConfigurationError",
    "ScheduleValidationError",
    "advance",
    "as_date",
    "is_due",
    "iter_occurrences",
    "month_bounds",
    "next_occurrence",
    "parse_frequency",
    "previous_occurrence",
    "resolve_frequency",
    "stamp_next_occurrence",
    "toggle_active",
    "validate_schedule",
]
