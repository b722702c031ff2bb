"""
Storage Services Package

Provides abstract interfaces and an in-memory implementation for the
persistence collaborator. Real backends implement the same interfaces.
"""

from finance_core.services.storage.interface import (
    AuditStorageInterface,
    BudgetBucketStoreInterface,
    DuplicateError,
    NotFoundError,
    PersistenceError,
)
from finance_core.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryBudgetBucketStore,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "BudgetBucketStoreInterface",
    # Exceptions
    "DuplicateError",
    "NotFoundError",
    "PersistenceError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryBudgetBucketStore",
]
