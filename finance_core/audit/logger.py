"""
Audit Logger

DESIGN DECISION: Every decision that changes what the user sees (a
schedule stamped, a bucket created, a notification sent) is logged.
This provides:
1. Traceability of why an obligation shows as paid, due or overdue
2. Debugging capability for failed bucket allocations
3. A history the user can inspect

The audit logger:
- Is async so persistence does not block the calling flow
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from finance_core.models.audit import AuditEvent, AuditEventBuilder
from finance_core.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """Route structlog output through stdlib logging at the given level."""
    logging.basicConfig(format="%(message)s", level=getattr(logging, level))


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence and user visibility), if configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger(__name__)

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        elif event.severity.value == "debug":
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_template_scheduled(
        self,
        template_id: str,
        next_occurrence: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.template_scheduled(
            template_id=template_id,
            next_occurrence=next_occurrence,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_template_schedule_exhausted(
        self,
        template_id: str,
        end_date: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.template_schedule_exhausted(
            template_id=template_id,
            end_date=end_date,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_template_paused(
        self,
        template_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.template_paused(
            template_id=template_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_bucket_created(
        self,
        bucket_id: str,
        key: str,
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log creation of a new budget bucket."""
        event = AuditEventBuilder.bucket_created(
            bucket_id=bucket_id,
            key=key,
            amount=amount,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_bucket_reused(
        self,
        bucket_id: str,
        key: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.bucket_reused(
            bucket_id=bucket_id,
            key=key,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_bucket_allocation_failed(
        self,
        key: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a failed bucket lookup or creation."""
        event = AuditEventBuilder.bucket_allocation_failed(
            key=key,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_reconciliation_completed(
        self,
        reference_date: str,
        item_count: int,
        status_counts: dict[str, int],
        timeline_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.reconciliation_completed(
            reference_date=reference_date,
            item_count=item_count,
            status_counts=status_counts,
            timeline_count=timeline_count,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_transaction_matched(
        self,
        transaction_id: str,
        status: str,
        score: int,
        template_id: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.transaction_matched(
            transaction_id=transaction_id,
            status=status,
            score=score,
            template_id=template_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_notification_emitted(
        self,
        template_id: str,
        status: str,
        due_date: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.notification_emitted(
            template_id=template_id,
            status=status,
            due_date=due_date,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_notification_failed(
        self,
        template_id: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.notification_failed(
            template_id=template_id,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new refresh or user action.
    Pass it through all subsequent operations.
    """
    return uuid4()
