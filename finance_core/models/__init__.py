"""
Data Models Package

This package contains all Pydantic models used by Finance Core.
All data flowing in from (and back to) the UI collaborator conforms to these schemas.
"""

from finance_core.models.recurring import (
    FinancialPriority,
    Frequency,
    OccurrenceStatus,
    ProjectedOccurrence,
    RealizedTransaction,
    ReconciledOccurrence,
    ReconciliationResult,
    RecurringTemplate,
    TransactionType,
)
from finance_core.models.budget import (
    BucketKey,
    BucketType,
    BudgetBucket,
    BudgetGoal,
    GoalMode,
    IncomeContext,
    quantize_amount,
)
from finance_core.models.notification import (
    Notification,
    NotificationKey,
    NotificationPriority,
)
from finance_core.models.matching import (
    MatchResult,
    MatchStatus,
    TemplateScore,
)
from finance_core.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Recurring models
    "FinancialPriority",
    "Frequency",
    "OccurrenceStatus",
    "ProjectedOccurrence",
    "RealizedTransaction",
    "ReconciledOccurrence",
    "ReconciliationResult",
    "RecurringTemplate",
    "TransactionType",
    # Budget models
    "BucketKey",
    "BucketType",
    "BudgetBucket",
    "BudgetGoal",
    "GoalMode",
    "IncomeContext",
    "quantize_amount",
    # Notification models
    "Notification",
    "NotificationKey",
    "NotificationPriority",
    # Matching models
    "MatchResult",
    "MatchStatus",
    "TemplateScore",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
