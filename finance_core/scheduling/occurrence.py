"""
Occurrence Calculator

Maps a recurrence template to its next due date.

This module is the single source of truth for schedule arithmetic: it is
used both when a template's `next_occurrence` is stamped on create/update
and when the reconciler looks forward. Everything here is pure and
deterministic; the only side effect is a warning log when an unsupported
frequency is degraded to monthly.

Conventions:
- Dates are calendar dates. ISO `YYYY-MM-DD` strings are accepted anywhere
  a date is.
- `day_of_week` uses 0 = Sunday ... 6 = Saturday.
- Month-based cadences snap to min(day_of_month, days in target month),
  so a day-31 anchor lands on the 30th in a 30-day month and returns to
  the 31st in the next long month.
"""

import calendar
from datetime import date, datetime, timedelta
from typing import Iterator, Optional, Union

import structlog
from dateutil.relativedelta import relativedelta

from finance_core.models.recurring import Frequency, RecurringTemplate


logger = structlog.get_logger(__name__)

DateLike = Union[date, str]

MONTH_STEPS = {
    Frequency.MONTHLY: 1,
    Frequency.QUARTERLY: 3,
    Frequency.YEARLY: 12,
}

DAY_STEPS = {
    Frequency.DAILY: 1,
    Frequency.WEEKLY: 7,
    Frequency.BIWEEKLY: 14,
}


class ScheduleValidationError(ValueError):
    """Template is malformed; no schedule can be computed for it."""
    pass


class ConfigurationError(ValueError):
    """Unsupported frequency value."""
    pass


# =============================================================================
# HELPERS
# =============================================================================

def as_date(value: DateLike) -> date:
    """Coerce an ISO string, datetime or date to a date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(value)


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def month_bounds(day: DateLike) -> tuple[date, date]:
    """First and last calendar day of the month containing `day`."""
    day = as_date(day)
    return (
        day.replace(day=1),
        day.replace(day=days_in_month(day.year, day.month)),
    )


def parse_frequency(value: Optional[str]) -> Frequency:
    """
    Strict frequency parsing.

    Raises:
        ConfigurationError: If the value is not a supported cadence
    """
    try:
        return Frequency(value)
    except ValueError:
        raise ConfigurationError(f"Unsupported frequency: {value!r}")


def resolve_frequency(
    value: Union[Frequency, str, None],
    log_fallback: bool = True,
) -> Frequency:
    """
    Lenient frequency parsing: unknown cadences degrade to monthly.

    Pass log_fallback=False from pure callers that must not log.
    """
    if isinstance(value, Frequency):
        return value
    try:
        return parse_frequency(value)
    except ConfigurationError as e:
        if not log_fallback:
            return Frequency.MONTHLY
        logger.warning(
            "unsupported_frequency",
            frequency=value,
            fallback=Frequency.MONTHLY.value,
            error=str(e),
        )
        return Frequency.MONTHLY


def _snap_to_anchor(day: date, anchor: int) -> date:
    return day.replace(day=min(anchor, days_in_month(day.year, day.month)))


def _python_weekday(day_of_week: int) -> int:
    # 0 = Sunday -> Python's 6, 1 = Monday -> Python's 0
    return (day_of_week - 1) % 7


def _sunday_based_weekday(day: date) -> int:
    return day.isoweekday() % 7


# =============================================================================
# PERIOD ARITHMETIC
# =============================================================================

def advance(
    base: date,
    frequency: Union[Frequency, str],
    day_of_month: Optional[int] = None,
    day_of_week: Optional[int] = None,
) -> date:
    """
    Move one period forward from `base`.

    Weekly lands on the next matching weekday strictly after the base.
    Biweekly lands on the first matching weekday at least 14 days after
    the base, so two consecutive results are never closer than two weeks.
    Month-based cadences snap to the anchor day (defaults to the 1st).
    """
    frequency = resolve_frequency(frequency)

    if frequency == Frequency.DAILY:
        return base + timedelta(days=1)

    if frequency in (Frequency.WEEKLY, Frequency.BIWEEKLY):
        if day_of_week is None:
            day_of_week = _sunday_based_weekday(base)
        target = _python_weekday(day_of_week)
        if frequency == Frequency.WEEKLY:
            return base + timedelta(days=(target - base.weekday() - 1) % 7 + 1)
        earliest = base + timedelta(days=14)
        return earliest + timedelta(days=(target - earliest.weekday()) % 7)

    shifted = base + relativedelta(months=MONTH_STEPS[frequency])
    return _snap_to_anchor(shifted, day_of_month or 1)


def retreat(
    day: date,
    frequency: Union[Frequency, str],
    day_of_month: Optional[int] = None,
) -> date:
    """Move one period backward from `day`, mirroring `advance`."""
    frequency = resolve_frequency(frequency)

    if frequency in DAY_STEPS:
        return day - timedelta(days=DAY_STEPS[frequency])

    shifted = day - relativedelta(months=MONTH_STEPS[frequency])
    return _snap_to_anchor(shifted, day_of_month or day.day)


def previous_occurrence(
    day: DateLike,
    frequency: Union[Frequency, str],
    day_of_month: Optional[int] = None,
) -> date:
    """
    The occurrence one period before `day`.

    Used by the reconciler to detect a template whose stamped next
    occurrence was already advanced past the current period.

    Args:
        day: A schedule date (normally a stamped next occurrence)
        frequency: Template cadence
        day_of_month: Anchor day for month-based cadences; when omitted
            the day of `day` is used
    """
    return retreat(as_date(day), frequency, day_of_month)


# =============================================================================
# TEMPLATE-LEVEL OPERATIONS
# =============================================================================

def validate_schedule(template: RecurringTemplate) -> None:
    """
    Refuse malformed templates before any date arithmetic.

    Raises:
        ScheduleValidationError: Missing frequency or start date, or an
            end date before the start date
    """
    if not template.frequency:
        raise ScheduleValidationError(
            f"Template {template.id} has no frequency"
        )
    if template.start_date is None:
        raise ScheduleValidationError(
            f"Template {template.id} has no start date"
        )
    if template.end_date is not None and template.end_date < template.start_date:
        raise ScheduleValidationError(
            f"Template {template.id} ends ({template.end_date}) "
            f"before it starts ({template.start_date})"
        )


def schedule_anchors(template: RecurringTemplate) -> tuple[int, int]:
    """
    (day_of_month, day_of_week) used to place occurrences.

    A missing day of month anchors on the 1st; a missing weekday falls
    back to the start date's weekday.
    """
    start = template.start_date
    day_of_month = template.day_of_month or 1
    day_of_week = (
        template.day_of_week
        if template.day_of_week is not None
        else _sunday_based_weekday(start)
    )
    return day_of_month, day_of_week


def next_occurrence(
    template: RecurringTemplate,
    from_date: Optional[DateLike] = None,
) -> Optional[date]:
    """
    Next due date of a template on or after `from_date`.

    The base is the last processed date when set and not before the start
    date, otherwise the start date. The base is advanced one period, then
    repeatedly while the candidate is before `from_date`.

    Args:
        template: The recurring template
        from_date: Reference date (defaults to today)

    Returns:
        The next due date, or None when the template has ended

    Raises:
        ScheduleValidationError: If the template is malformed
    """
    validate_schedule(template)

    today = as_date(from_date) if from_date is not None else date.today()
    frequency = resolve_frequency(template.frequency)
    start = template.start_date
    end = template.end_date

    if end is not None and end < today:
        return None

    base = start
    if template.last_processed_date and template.last_processed_date >= start:
        base = template.last_processed_date

    day_of_month, day_of_week = schedule_anchors(template)

    candidate = advance(base, frequency, day_of_month, day_of_week)
    while candidate < today:
        candidate = advance(candidate, frequency, day_of_month, day_of_week)

    if candidate < start:
        candidate = start

    if end is not None and candidate > end:
        return None

    return candidate


def iter_occurrences(
    template: RecurringTemplate,
    first: DateLike,
) -> Iterator[date]:
    """
    Yield `first` and every following schedule date until the end date.

    Unbounded for templates without an end date; callers slice it.
    """
    validate_schedule(template)

    frequency = resolve_frequency(template.frequency)
    day_of_month, day_of_week = schedule_anchors(template)
    end = template.end_date

    current = as_date(first)
    while end is None or current <= end:
        yield current
        current = advance(current, frequency, day_of_month, day_of_week)


def is_due(
    template: RecurringTemplate,
    reference_date: Optional[DateLike] = None,
) -> bool:
    """Active template whose stamped next occurrence is today or earlier."""
    if not template.is_active or template.next_occurrence is None:
        return False
    today = as_date(reference_date) if reference_date is not None else date.today()
    return template.next_occurrence <= today
