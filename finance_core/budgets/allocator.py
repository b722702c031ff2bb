"""
Budget Allocator

Resolves the per-period system budget bucket an expense must reference,
creating it on first use.

CONCURRENCY: Several flows may ask for the same bucket at the same time
(an expense form pre-warming needs/wants on every recompute while an
import batch does the same). Check-then-create for one key is therefore
collapsed in-process: the first request starts a single find-or-create
task and parks it in an arena keyed by BucketKey; every concurrent
request for that key awaits the same task. The entry is dropped as soon
as the task settles, so the arena only ever holds in-flight work.

Requests for different keys never share state and run fully in parallel.
Cross-process races are left to the store, which is the final consistency
boundary and rejects a second bucket for a key with DuplicateError.

There is no internal retry: a failed lookup or write surfaces to the
caller unchanged.
"""

import asyncio
from datetime import date
from typing import Iterable, Optional, Union
from uuid import UUID

import structlog

from finance_core.audit import AuditLogger
from finance_core.models.budget import (
    BucketKey,
    BucketType,
    BudgetBucket,
    IncomeContext,
)
from finance_core.scheduling import as_date, month_bounds
from finance_core.services.storage import (
    BudgetBucketStoreInterface,
    DuplicateError,
    PersistenceError,
)


logger = structlog.get_logger(__name__)

ALL_BUCKET_TYPES = (BucketType.NEEDS, BucketType.WANTS, BucketType.SAVINGS)


class BudgetAllocator:
    """
    Find-or-create for budget buckets, safe under concurrent callers.

    One instance per session; inject it wherever buckets are resolved so
    that all callers share the same in-flight arena.
    """

    def __init__(
        self,
        store: BudgetBucketStoreInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._audit_logger = audit_logger
        self._in_flight: dict[BucketKey, asyncio.Task] = {}

    @property
    def in_flight_count(self) -> int:
        """Number of keys with a creation currently pending."""
        return len(self._in_flight)

    async def ensure_bucket(
        self,
        owner_id: str,
        period_start: Union[date, str],
        period_end: Union[date, str],
        bucket_type: Union[BucketType, str],
        income: Optional[IncomeContext] = None,
        correlation_id: Optional[UUID] = None,
    ) -> BudgetBucket:
        """
        Return the unique bucket for the key, creating it if needed.

        Args:
            owner_id: Owning user
            period_start: First day of the budget period
            period_end: Last day of the budget period
            bucket_type: needs, wants or savings
            income: Income and goals used for the initial amount of a
                newly created bucket; ignored when the bucket exists
            correlation_id: Ties audit events to the calling flow

        Returns:
            The existing or newly created bucket

        Raises:
            PersistenceError: If the store lookup or creation fails
        """
        key = BucketKey(
            owner_id=owner_id,
            period_start=as_date(period_start),
            period_end=as_date(period_end),
            bucket_type=BucketType(bucket_type),
        )

        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.create_task(
                self._find_or_create(key, income or IncomeContext(), correlation_id)
            )
            self._in_flight[key] = task
            task.add_done_callback(lambda done, key=key: self._release(key, done))
        else:
            logger.debug("bucket_request_coalesced", key=str(key))

        # Shielded so one cancelled caller does not cancel the shared creation
        return await asyncio.shield(task)

    async def ensure_buckets(
        self,
        owner_id: str,
        period_start: Union[date, str],
        period_end: Union[date, str],
        bucket_types: Iterable[Union[BucketType, str]] = ALL_BUCKET_TYPES,
        income: Optional[IncomeContext] = None,
        correlation_id: Optional[UUID] = None,
    ) -> dict[BucketType, BudgetBucket]:
        """Ensure several bucket types for one period, concurrently."""
        types = [BucketType(t) for t in bucket_types]
        buckets = await asyncio.gather(*(
            self.ensure_bucket(
                owner_id,
                period_start,
                period_end,
                bucket_type,
                income=income,
                correlation_id=correlation_id,
            )
            for bucket_type in types
        ))
        return dict(zip(types, buckets))

    async def bucket_for_date(
        self,
        owner_id: str,
        day: Union[date, str],
        bucket_type: Union[BucketType, str],
        income: Optional[IncomeContext] = None,
        correlation_id: Optional[UUID] = None,
    ) -> BudgetBucket:
        """Bucket of the calendar month containing `day`."""
        period_start, period_end = month_bounds(day)
        return await self.ensure_bucket(
            owner_id,
            period_start,
            period_end,
            bucket_type,
            income=income,
            correlation_id=correlation_id,
        )

    def _release(self, key: BucketKey, task: asyncio.Task) -> None:
        if self._in_flight.get(key) is task:
            del self._in_flight[key]
        if not task.cancelled():
            # Mark retrieved; awaiting callers still receive the exception
            task.exception()

    async def _find_or_create(
        self,
        key: BucketKey,
        income: IncomeContext,
        correlation_id: Optional[UUID],
    ) -> BudgetBucket:
        try:
            existing = await self._store.find(key)
            if existing is not None:
                if self._audit_logger:
                    await self._audit_logger.log_bucket_reused(
                        bucket_id=existing.id,
                        key=str(key),
                        correlation_id=correlation_id,
                    )
                return existing

            bucket = BudgetBucket.for_key(key, income.initial_amount(key.bucket_type))
            try:
                created = await self._store.create(bucket)
            except DuplicateError:
                # Another process won the race; the store holds the winner
                winner = await self._store.find(key)
                if winner is None:
                    raise
                logger.info("bucket_create_race_lost", key=str(key), bucket_id=winner.id)
                return winner
        except PersistenceError as e:
            logger.error("bucket_allocation_failed", key=str(key), error=str(e))
            if self._audit_logger:
                await self._audit_logger.log_bucket_allocation_failed(
                    key=str(key),
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise

        logger.info(
            "bucket_created",
            key=str(key),
            bucket_id=created.id,
            amount=str(created.amount),
        )
        if self._audit_logger:
            await self._audit_logger.log_bucket_created(
                bucket_id=created.id,
                key=str(key),
                amount=str(created.amount),
                correlation_id=correlation_id,
            )
        return created
