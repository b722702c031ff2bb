"""
Audit Models for Finance Core

Every state-changing decision (a schedule stamped, a bucket created, a
notification emitted) is recorded as an audit event. This provides:
1. Traceability of why a bill showed up as paid or overdue
2. Debugging information when a bucket allocation fails
3. Ability to reconstruct history

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Scheduling
    TEMPLATE_SCHEDULED = "template_scheduled"
    TEMPLATE_SCHEDULE_EXHAUSTED = "template_schedule_exhausted"
    TEMPLATE_PAUSED = "template_paused"

    # Budget buckets
    BUCKET_CREATED = "bucket_created"
    BUCKET_REUSED = "bucket_reused"
    BUCKET_ALLOCATION_FAILED = "bucket_allocation_failed"

    # Reconciliation
    RECONCILIATION_COMPLETED = "reconciliation_completed"

    # Matching
    TRANSACTION_MATCHED = "transaction_matched"

    # Notifications
    NOTIFICATION_EMITTED = "notification_emitted"
    NOTIFICATION_FAILED = "notification_failed"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'template', 'bucket', 'notification')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one data refresh)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )

    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.bucket_created(bucket_id, key, amount)
        event = AuditEventBuilder.template_scheduled(template_id, next_date)
    """

    @staticmethod
    def template_scheduled(
        template_id: str,
        next_occurrence: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TEMPLATE_SCHEDULED,
            entity_type="template",
            entity_id=template_id,
            correlation_id=correlation_id,
            description=f"Next occurrence stamped: {next_occurrence}",
            details={"next_occurrence": next_occurrence},
            is_user_action=True,
        )

    @staticmethod
    def template_schedule_exhausted(
        template_id: str,
        end_date: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TEMPLATE_SCHEDULE_EXHAUSTED,
            severity=AuditSeverity.WARNING,
            entity_type="template",
            entity_id=template_id,
            correlation_id=correlation_id,
            description="Template has no further occurrences",
            details={"end_date": end_date},
            is_user_action=True,
        )

    @staticmethod
    def template_paused(
        template_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TEMPLATE_PAUSED,
            entity_type="template",
            entity_id=template_id,
            correlation_id=correlation_id,
            description="Template paused",
            is_user_action=True,
        )

    @staticmethod
    def bucket_created(
        bucket_id: str,
        key: str,
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUCKET_CREATED,
            entity_type="bucket",
            entity_id=bucket_id,
            correlation_id=correlation_id,
            description=f"Budget bucket created for {key}",
            details={"key": key, "amount": amount},
        )

    @staticmethod
    def bucket_reused(
        bucket_id: str,
        key: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUCKET_REUSED,
            severity=AuditSeverity.DEBUG,
            entity_type="bucket",
            entity_id=bucket_id,
            correlation_id=correlation_id,
            description=f"Existing budget bucket used for {key}",
            details={"key": key},
        )

    @staticmethod
    def bucket_allocation_failed(
        key: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUCKET_ALLOCATION_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="bucket",
            correlation_id=correlation_id,
            description=f"Could not allocate budget bucket for {key}",
            details={"key": key},
            error_message=error_message,
        )

    @staticmethod
    def reconciliation_completed(
        reference_date: str,
        item_count: int,
        status_counts: dict[str, int],
        timeline_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECONCILIATION_COMPLETED,
            severity=AuditSeverity.DEBUG,
            entity_type="reconciliation",
            correlation_id=correlation_id,
            description=f"Reconciled {item_count} obligations for {reference_date}",
            details={
                "reference_date": reference_date,
                "item_count": item_count,
                "status_counts": status_counts,
                "timeline_count": timeline_count,
            },
        )

    @staticmethod
    def transaction_matched(
        transaction_id: str,
        status: str,
        score: int,
        template_id: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_MATCHED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transaction match evaluated: {status} ({score})",
            details={"status": status, "score": score, "template_id": template_id},
        )

    @staticmethod
    def notification_emitted(
        template_id: str,
        status: str,
        due_date: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.NOTIFICATION_EMITTED,
            entity_type="template",
            entity_id=template_id,
            correlation_id=correlation_id,
            description=f"Notification emitted: {status} for {due_date}",
            details={"status": status, "due_date": due_date},
        )

    @staticmethod
    def notification_failed(
        template_id: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.NOTIFICATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="template",
            entity_id=template_id,
            correlation_id=correlation_id,
            description="Notification delivery failed",
            error_message=error_message,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            correlation_id=correlation_id,
            description=f"System error: {error_type}",
            details=details or {},
            error_code=error_type,
            error_message=error_message,
        )
