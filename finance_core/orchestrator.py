"""
Main Orchestrator for Finance Core

This module ties the components together and defines the flows the UI
collaborator calls into:
1. Template scheduling (create / update / pause / resume -> stamped schedule)
2. Period refresh (templates + transactions -> statuses, timeline, notifications)
3. Transaction entry (expense -> budget bucket id, bank entry -> template match)

DESIGN DECISION: The orchestrator owns wiring, not rules.
Schedule arithmetic lives in scheduling, status derivation in
reconciliation, template matching in matching, bucket uniqueness in
budgets. Flows only sequence them and audit the
outcome, so each rule has exactly one home.
"""

from datetime import date
from typing import Any, Iterable, Optional, Union
from uuid import UUID

import structlog

from finance_core.audit import AuditLogger, configure_logging, create_correlation_id
from finance_core.budgets import BudgetAllocator
from finance_core.config import get_settings
from finance_core.matching import TransactionMatcher
from finance_core.models.budget import BucketType, IncomeContext
from finance_core.models.matching import MatchResult
from finance_core.models.notification import Notification
from finance_core.models.recurring import (
    FinancialPriority,
    RealizedTransaction,
    ReconciliationResult,
    RecurringTemplate,
    TransactionType,
)
from finance_core.notifications import NotificationTrigger
from finance_core.reconciliation import Reconciler
from finance_core.scheduling import month_bounds, stamp_next_occurrence, toggle_active
from finance_core.services.notifications import (
    InMemoryNotificationSink,
    NotificationSinkInterface,
)
from finance_core.services.storage import (
    AuditStorageInterface,
    BudgetBucketStoreInterface,
    InMemoryAuditStorage,
    InMemoryBudgetBucketStore,
    PersistenceError,
)


logger = structlog.get_logger(__name__)

# Fields whose change invalidates the stamped schedule
SCHEDULE_FIELDS = {
    "frequency",
    "day_of_month",
    "day_of_week",
    "start_date",
    "end_date",
}


class TemplateScheduleFlow:
    """
    Stamps `next_occurrence` whenever a template is created or changed.

    Persistence of the template itself stays with the caller; the flow
    returns the template to save.
    """

    def __init__(self, audit_logger: Optional[AuditLogger] = None):
        self._audit_logger = audit_logger

    async def create_template(
        self,
        data: Union[RecurringTemplate, dict],
        today: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> RecurringTemplate:
        """
        Validate a new template and stamp its first due date.

        Raises:
            ScheduleValidationError: If the schedule is malformed
        """
        template = (
            data if isinstance(data, RecurringTemplate)
            else RecurringTemplate.model_validate(data)
        )
        stamped = stamp_next_occurrence(template, today)
        await self._audit_stamp(stamped, correlation_id)
        return stamped

    async def update_template(
        self,
        template: RecurringTemplate,
        changes: dict[str, Any],
        today: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> RecurringTemplate:
        """
        Apply changes and re-stamp the schedule if a schedule field changed.

        `changes` may use snake_case or camelCase keys.
        """
        merged = template.model_dump(by_alias=True)
        for name, value in changes.items():
            field = RecurringTemplate.model_fields.get(name)
            merged[field.alias if field and field.alias else name] = value
        updated = RecurringTemplate.model_validate(merged)

        schedule_changed = any(
            getattr(updated, field) != getattr(template, field)
            for field in SCHEDULE_FIELDS
        )
        if not schedule_changed and updated.next_occurrence is not None:
            return updated

        stamped = stamp_next_occurrence(updated, today)
        await self._audit_stamp(stamped, correlation_id)
        return stamped

    async def toggle_active(
        self,
        template: RecurringTemplate,
        today: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> RecurringTemplate:
        """Pause or resume; resuming re-stamps from `today`."""
        toggled = toggle_active(template, today)
        if toggled.is_active:
            await self._audit_stamp(toggled, correlation_id)
        elif self._audit_logger:
            await self._audit_logger.log_template_paused(
                template_id=toggled.id,
                correlation_id=correlation_id,
            )
        return toggled

    async def _audit_stamp(
        self,
        template: RecurringTemplate,
        correlation_id: Optional[UUID],
    ) -> None:
        if not self._audit_logger:
            return
        if template.next_occurrence is None:
            await self._audit_logger.log_template_schedule_exhausted(
                template_id=template.id,
                end_date=template.end_date.isoformat() if template.end_date else None,
                correlation_id=correlation_id,
            )
        else:
            await self._audit_logger.log_template_scheduled(
                template_id=template.id,
                next_occurrence=template.next_occurrence.isoformat(),
                correlation_id=correlation_id,
            )


class PeriodRefreshFlow:
    """
    Runs on every data refresh.

    Flow:
    1. Reconcile templates against the month's transactions (pure)
    2. Feed the result to the notification trigger (at most once per key)
    3. Audit the pass
    """

    def __init__(
        self,
        reconciler: Optional[Reconciler] = None,
        trigger: Optional[NotificationTrigger] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._reconciler = reconciler or Reconciler()
        self._trigger = trigger
        self._audit_logger = audit_logger

    async def refresh(
        self,
        templates: Iterable[Union[RecurringTemplate, dict]],
        transactions: Iterable[Union[RealizedTransaction, dict]],
        reference_date: Union[date, str],
        correlation_id: Optional[UUID] = None,
    ) -> tuple[ReconciliationResult, list[Notification]]:
        """
        Reconcile and notify.

        Returns:
            (reconciliation_result, notifications_emitted)
        """
        correlation_id = correlation_id or create_correlation_id()

        result = self._reconciler.reconcile(templates, transactions, reference_date)

        notifications: list[Notification] = []
        if self._trigger:
            notifications = await self._trigger.process_result(result, correlation_id)

        if self._audit_logger:
            await self._audit_logger.log_reconciliation_completed(
                reference_date=result.reference_date.isoformat(),
                item_count=len(result.current_period_items),
                status_counts=result.status_counts(),
                timeline_count=len(result.timeline_items),
                correlation_id=correlation_id,
            )

        return result, notifications


class TransactionEntryFlow:
    """
    Prepares a transaction before it is saved: resolves the budget bucket
    an expense must reference and proposes the template an unlinked
    bank/import transaction settles.

    All entry points (forms, imports, bank sync) should share one flow so
    they share one allocator and its in-flight arena.
    """

    def __init__(
        self,
        allocator: BudgetAllocator,
        audit_logger: Optional[AuditLogger] = None,
        matcher: Optional[TransactionMatcher] = None,
    ):
        self._allocator = allocator
        self._matcher = matcher or TransactionMatcher()
        self._audit_logger = audit_logger

    async def resolve_bucket_id(
        self,
        owner_id: str,
        transaction_date: Union[date, str],
        transaction_type: Union[TransactionType, str],
        priority: Optional[Union[FinancialPriority, str]] = None,
        income: Optional[IncomeContext] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Optional[str]:
        """
        Bucket id for an expense, None for income or unprioritised entries.

        Raises:
            PersistenceError: If the bucket cannot be found or created;
                the caller should fail the save ("could not save expense")
        """
        if TransactionType(transaction_type) != TransactionType.EXPENSE or not priority:
            return None

        correlation_id = correlation_id or create_correlation_id()
        bucket_type = BucketType(FinancialPriority(priority).value)

        try:
            bucket = await self._allocator.bucket_for_date(
                owner_id,
                transaction_date,
                bucket_type,
                income=income,
                correlation_id=correlation_id,
            )
        except PersistenceError as e:
            if self._audit_logger:
                await self._audit_logger.log_error(
                    error_type="expense_save_failed",
                    error_message=str(e),
                    details={"owner_id": owner_id, "bucket_type": bucket_type.value},
                    correlation_id=correlation_id,
                )
            raise

        return bucket.id

    async def match_transaction(
        self,
        transaction: Union[RealizedTransaction, dict],
        templates: Iterable[Union[RecurringTemplate, dict]],
        correlation_id: Optional[UUID] = None,
    ) -> MatchResult:
        """
        Score an incoming transaction against the user's templates.

        The caller links the transaction on AUTO_MATCH and asks the user on
        NEEDS_REVIEW; nothing is written here besides the audit event.
        """
        correlation_id = correlation_id or create_correlation_id()
        result = self._matcher.evaluate(transaction, templates)

        if self._audit_logger:
            await self._audit_logger.log_transaction_matched(
                transaction_id=result.transaction_id,
                status=result.status.value,
                score=result.match_confidence_score,
                template_id=result.template_id or result.suggested_template_id,
                correlation_id=correlation_id,
            )

        return result

    async def prewarm_period(
        self,
        owner_id: str,
        month_date: Union[date, str],
        income: Optional[IncomeContext] = None,
        correlation_id: Optional[UUID] = None,
    ) -> dict[BucketType, str]:
        """Ensure needs and wants buckets exist for the month of `month_date`."""
        period_start, period_end = month_bounds(month_date)
        buckets = await self._allocator.ensure_buckets(
            owner_id,
            period_start,
            period_end,
            (BucketType.NEEDS, BucketType.WANTS),
            income=income,
            correlation_id=correlation_id,
        )
        return {bucket_type: bucket.id for bucket_type, bucket in buckets.items()}


def create_app_components(
    bucket_store: Optional[BudgetBucketStoreInterface] = None,
    notification_sink: Optional[NotificationSinkInterface] = None,
    audit_storage: Optional[AuditStorageInterface] = None,
) -> tuple[TemplateScheduleFlow, PeriodRefreshFlow, TransactionEntryFlow]:
    """
    Factory function to create all application components.

    Args:
        bucket_store: Persistence collaborator for budget buckets.
                     Defaults to an in-memory store (single session).
        notification_sink: Where notifications go.
                          Defaults to an in-memory sink.
        audit_storage: Where audit events are persisted.
                      Defaults to an in-memory log.

    Returns:
        (template_schedule_flow, period_refresh_flow, transaction_entry_flow)
    """
    settings = get_settings()
    configure_logging(settings.app.log_level)

    audit_logger = AuditLogger(audit_storage or InMemoryAuditStorage())
    allocator = BudgetAllocator(
        bucket_store or InMemoryBudgetBucketStore(),
        audit_logger=audit_logger,
    )
    trigger = NotificationTrigger(
        notification_sink or InMemoryNotificationSink(),
        audit_logger=audit_logger,
    )

    logger.info(
        "components_created",
        environment=settings.app.app_environment,
        paid_threshold=settings.reconciliation.paid_threshold,
        due_soon_days=settings.reconciliation.due_soon_days,
    )

    template_flow = TemplateScheduleFlow(audit_logger=audit_logger)
    refresh_flow = PeriodRefreshFlow(
        reconciler=Reconciler(settings.reconciliation),
        trigger=trigger,
        audit_logger=audit_logger,
    )
    entry_flow = TransactionEntryFlow(
        allocator,
        audit_logger=audit_logger,
        matcher=TransactionMatcher(settings.matching),
    )

    return template_flow, refresh_flow, entry_flow
