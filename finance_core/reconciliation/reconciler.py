"""
Recurrence Reconciler

Matches recurring templates against the real transactions of one calendar
month and derives, per template, a paid/due/overdue status plus a short
forward timeline.

DESIGN DECISION: Reconciliation is a pure function of its inputs.
No I/O, no hidden state, no caching. It is re-run on every data refresh,
so identical inputs always produce identical output.

RULES (per active template):
1. Matches = this month's transactions that reference the template.
2. Paid amount sums only settling matches: income always, expenses only
   when flagged paid. An unpaid expense entry never marks a bill paid.
3. Rollover: the stored next occurrence is already past this month but
   the occurrence one period earlier falls inside it. The external
   processor only advances a template after materialising this month's
   instance, so a rollover counts as paid and shows this month's date.
4. A template appears this month if its stored next occurrence is in the
   month, its previous occurrence is in the month, its stored next
   occurrence is before the month (carried forward as missed), or it has
   at least one match.
5. Paid when paid amount >= threshold x template amount, or on rollover.
6. Status: paid, else overdue (< 0 days), else due soon (<= window),
   else upcoming.
7. Timeline: the next `timeline_length` schedule dates on or after the
   reference date. An overdue stored date is walked forward, not shown.

With `smart_match` enabled, templates without a linked transaction this
month may also claim an unlinked one (see finance_core.matching).
"""

from datetime import date
from decimal import Decimal
from itertools import dropwhile, islice
from typing import Iterable, Optional, Union

from finance_core.config import ReconciliationSettings, get_settings
from finance_core.matching import smart_match
from finance_core.models.recurring import (
    OccurrenceStatus,
    ProjectedOccurrence,
    RealizedTransaction,
    ReconciledOccurrence,
    ReconciliationResult,
    RecurringTemplate,
)
from finance_core.scheduling import (
    ScheduleValidationError,
    as_date,
    iter_occurrences,
    month_bounds,
    next_occurrence,
    previous_occurrence,
    resolve_frequency,
)


TemplateInput = Union[RecurringTemplate, dict]
TransactionInput = Union[RealizedTransaction, dict]


def _coerce(model, item):
    if isinstance(item, model):
        return item
    return model.model_validate(item)


def _schedule_view(template: RecurringTemplate) -> RecurringTemplate:
    """Copy with the cadence already resolved, so date math stays silent."""
    if not template.frequency:
        return template
    return template.model_copy(update={
        "frequency": resolve_frequency(template.frequency, log_fallback=False).value,
    })


class Reconciler:
    """
    Reconciles recurring templates with realised transactions.

    Policy knobs (paid threshold, due-soon window, timeline length) come
    from ReconciliationSettings.
    """

    def __init__(self, settings: Optional[ReconciliationSettings] = None):
        self._settings = settings or get_settings().reconciliation
        self._paid_threshold = Decimal(str(self._settings.paid_threshold))

    def reconcile(
        self,
        templates: Iterable[TemplateInput],
        transactions: Iterable[TransactionInput],
        reference_date: Union[date, str],
    ) -> ReconciliationResult:
        """
        Reconcile one calendar month.

        Args:
            templates: Recurring templates (models or plain records)
            transactions: Real transactions, normally scoped to the month
            reference_date: "Today"; selects the month and anchors
                days-until-due

        Returns:
            ReconciliationResult with both lists sorted ascending by date
        """
        reference = as_date(reference_date)
        period_start, period_end = month_bounds(reference)

        templates = [_coerce(RecurringTemplate, t) for t in templates]
        transactions = [_coerce(RealizedTransaction, t) for t in transactions]
        matches_by_template = self._group_matches(transactions, period_start, period_end)

        if self._settings.smart_match:
            self._add_smart_matches(
                matches_by_template,
                [t for t in templates if t.is_active],
                transactions,
                period_start,
                period_end,
            )

        current_items: list[ReconciledOccurrence] = []
        timeline_items: list[ProjectedOccurrence] = []

        for template in templates:
            if not template.is_active:
                continue

            item = self._reconcile_template(
                template,
                matches_by_template.get(template.id, []),
                reference,
                period_start,
                period_end,
            )
            if item is not None:
                current_items.append(item)

            timeline_items.extend(self._project(template, reference))

        current_items.sort(key=lambda item: item.calculated_next_date)
        timeline_items.sort(key=lambda item: item.projected_date)

        return ReconciliationResult(
            reference_date=reference,
            period_start=period_start,
            period_end=period_end,
            current_period_items=current_items,
            timeline_items=timeline_items,
        )

    def _group_matches(
        self,
        transactions: list[RealizedTransaction],
        period_start: date,
        period_end: date,
    ) -> dict[str, list[RealizedTransaction]]:
        """Month transactions linked to a template, earliest first."""
        grouped: dict[str, list[RealizedTransaction]] = {}
        for tx in sorted(transactions, key=lambda t: t.transaction_date):
            if not tx.recurring_template_id:
                continue
            if not (period_start <= tx.transaction_date <= period_end):
                continue
            grouped.setdefault(tx.recurring_template_id, []).append(tx)
        return grouped

    def _add_smart_matches(
        self,
        grouped: dict[str, list[RealizedTransaction]],
        templates: list[RecurringTemplate],
        transactions: list[RealizedTransaction],
        period_start: date,
        period_end: date,
    ) -> None:
        month_transactions = sorted(
            (tx for tx in transactions if period_start <= tx.transaction_date <= period_end),
            key=lambda t: t.transaction_date,
        )
        paired = smart_match(
            templates,
            month_transactions,
            Decimal(str(self._settings.smart_match_margin)),
        )
        for template_id, tx in paired.items():
            grouped.setdefault(template_id, []).append(tx)

    def _reconcile_template(
        self,
        template: RecurringTemplate,
        matches: list[RealizedTransaction],
        reference: date,
        period_start: date,
        period_end: date,
    ) -> Optional[ReconciledOccurrence]:
        def in_period(day: Optional[date]) -> bool:
            return day is not None and period_start <= day <= period_end

        paid_amount = sum(
            (abs(tx.amount) for tx in matches if tx.counts_as_settlement()),
            Decimal("0"),
        )

        stored = template.next_occurrence
        previous_due = None
        if stored is not None and template.frequency:
            previous_due = previous_occurrence(
                stored,
                resolve_frequency(template.frequency, log_fallback=False),
                template.day_of_month,
            )

        stored_in_period = in_period(stored)
        previous_in_period = in_period(previous_due)
        carried_forward = stored is not None and stored < period_start
        is_rollover = previous_in_period and stored > period_end

        if not (stored_in_period or previous_in_period or carried_forward or matches):
            return None

        is_paid = (
            paid_amount >= self._paid_threshold * abs(template.amount)
            or is_rollover
        )

        if is_rollover:
            display_date = previous_due
        elif stored_in_period or carried_forward:
            display_date = stored
        elif matches:
            # Paid this month with no schedule overlap (early or manual payment)
            display_date = matches[0].transaction_date
        else:
            display_date = stored

        days_until_due = (display_date - reference).days

        return ReconciledOccurrence(
            template=template,
            is_paid=is_paid,
            paid_amount=paid_amount,
            days_until_due=days_until_due,
            status=self._status(is_paid, days_until_due),
            calculated_next_date=display_date,
        )

    def _status(self, is_paid: bool, days_until_due: int) -> OccurrenceStatus:
        if is_paid:
            return OccurrenceStatus.PAID
        if days_until_due < 0:
            return OccurrenceStatus.OVERDUE
        if days_until_due <= self._settings.due_soon_days:
            return OccurrenceStatus.DUE_SOON
        return OccurrenceStatus.UPCOMING

    def _project(
        self,
        template: RecurringTemplate,
        reference: date,
    ) -> list[ProjectedOccurrence]:
        """Forward instances on or after the reference date."""
        schedule = _schedule_view(template)
        try:
            first = schedule.next_occurrence or next_occurrence(schedule, reference)
            if first is None:
                return []
            dates = list(islice(
                dropwhile(lambda day: day < reference, iter_occurrences(schedule, first)),
                self._settings.timeline_length,
            ))
        except ScheduleValidationError:
            # Malformed schedule: nothing to project
            return []

        return [
            ProjectedOccurrence(template=template, projected_date=day)
            for day in dates
        ]


def reconcile(
    templates: Iterable[TemplateInput],
    transactions: Iterable[TransactionInput],
    reference_date: Union[date, str],
    settings: Optional[ReconciliationSettings] = None,
) -> ReconciliationResult:
    """Reconcile with a one-off Reconciler."""
    return Reconciler(settings).reconcile(templates, transactions, reference_date)
