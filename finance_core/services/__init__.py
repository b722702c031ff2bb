"""Services package."""

from finance_core.services.notifications import (
    InMemoryNotificationSink,
    NotificationDeliveryError,
    NotificationSinkInterface,
)
from finance_core.services.storage import (
    AuditStorageInterface,
    BudgetBucketStoreInterface,
    DuplicateError,
    InMemoryAuditStorage,
    InMemoryBudgetBucketStore,
    NotFoundError,
    PersistenceError,
)

__all__ = [
    # Notification services
    "InMemoryNotificationSink",
    "NotificationDeliveryError",
    "NotificationSinkInterface",
    # Storage services
    "AuditStorageInterface",
    "BudgetBucketStoreInterface",
    "DuplicateError",
    "InMemoryAuditStorage",
    "InMemoryBudgetBucketStore",
    "NotFoundError",
    "PersistenceError",
]
