"""
Template schedule stamping.

Create, update and resume all recompute `next_occurrence` with the
occurrence calculator; pausing leaves the schedule untouched.
"""

from typing import Optional

from finance_core.models.recurring import RecurringTemplate
from finance_core.scheduling.occurrence import DateLike, next_occurrence


def stamp_next_occurrence(
    template: RecurringTemplate,
    today: Optional[DateLike] = None,
) -> RecurringTemplate:
    """
    Return a copy of the template with `next_occurrence` recomputed.

    An exhausted schedule is stamped with None; the active flag is left
    for the caller to decide.

    Raises:
        ScheduleValidationError: If the template is malformed
    """
    return template.model_copy(
        update={"next_occurrence": next_occurrence(template, today)}
    )


def toggle_active(
    template: RecurringTemplate,
    today: Optional[DateLike] = None,
) -> RecurringTemplate:
    """Pause an active template, or resume a paused one with a fresh schedule."""
    if template.is_active:
        return template.model_copy(update={"is_active": False})

    resumed = template.model_copy(update={"is_active": True})
    return stamp_next_occurrence(resumed, today)
