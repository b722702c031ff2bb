"""
In-Memory Storage Implementation

Backs a single UI session or a test run. Data lives for the lifetime of
the process only.

The bucket store enforces the same uniqueness rule a real backend would:
one bucket per BucketKey, a second create raises DuplicateError.
"""

from typing import Optional
from uuid import UUID

from finance_core.models.audit import AuditEvent
from finance_core.models.budget import BucketKey, BudgetBucket
from finance_core.services.storage.interface import (
    AuditStorageInterface,
    BudgetBucketStoreInterface,
    DuplicateError,
    NotFoundError,
)


class InMemoryBudgetBucketStore(BudgetBucketStoreInterface):
    """Dictionary-backed bucket store keyed by BucketKey."""

    def __init__(self, buckets: Optional[list[BudgetBucket]] = None):
        self._buckets: dict[BucketKey, BudgetBucket] = {}
        self.find_count = 0
        self.create_count = 0
        for bucket in buckets or []:
            self._buckets[bucket.key] = bucket

    async def find(self, key: BucketKey) -> Optional[BudgetBucket]:
        self.find_count += 1
        return self._buckets.get(key)

    async def create(self, bucket: BudgetBucket) -> BudgetBucket:
        self.create_count += 1
        key = bucket.key
        if key in self._buckets:
            raise DuplicateError(f"Budget bucket already exists for {key}")
        self._buckets[key] = bucket
        return bucket

    def get_by_id(self, bucket_id: str) -> BudgetBucket:
        for bucket in self._buckets.values():
            if bucket.id == bucket_id:
                return bucket
        raise NotFoundError(f"Budget bucket not found: {bucket_id}")

    def all(self) -> list[BudgetBucket]:
        return list(self._buckets.values())


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        return [e for e in self._events if e.correlation_id == correlation_id]

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        return list(reversed(self._events))[:limit]
