"""
Abstract Storage Interface

DESIGN DECISION: The hosted entity store is an external collaborator.
We define the narrow interface this package needs from it so that:
1. Any backend (hosted entity API, SQL, ...) can be plugged in
2. In-memory storage can be used for testing and local sessions
3. Business logic stays decoupled from storage implementation

The interface is intentionally tiny: bucket lookup/creation and an
append-only audit log.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from finance_core.models.audit import AuditEvent
from finance_core.models.budget import BucketKey, BudgetBucket


class BudgetBucketStoreInterface(ABC):
    """
    Abstract interface for budget bucket persistence.

    The store is the final consistency boundary for cross-process races:
    implementations should reject a second bucket for the same key with
    DuplicateError.
    """

    @abstractmethod
    async def find(self, key: BucketKey) -> Optional[BudgetBucket]:
        """
        Look up the bucket for a key.

        Args:
            key: (owner, period start, period end, bucket type)

        Returns:
            The bucket if found, None otherwise

        Raises:
            PersistenceError: If the query fails
        """
        pass

    @abstractmethod
    async def create(self, bucket: BudgetBucket) -> BudgetBucket:
        """
        Persist a new bucket.

        Args:
            bucket: The bucket to create

        Returns:
            The bucket as stored (the store may assign fields)

        Raises:
            DuplicateError: If a bucket already exists for the key
            PersistenceError: If the write fails
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one data refresh).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class PersistenceError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(PersistenceError):
    """Entity not found in storage."""
    pass


class DuplicateError(PersistenceError):
    """Attempted to insert a duplicate entity."""
    pass
