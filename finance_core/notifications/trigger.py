"""
Notification Trigger

Watches reconciliation output and notifies the user when an obligation
becomes due soon or overdue.

Each (template, due date, status) key fires at most once per session.
The seen-set is an explicit component owned by the trigger: it lives as
long as the process and is gone after a restart. Durable dedup across
sessions is the sink's business.
"""

from typing import Iterable, Optional
from uuid import UUID

import structlog

from finance_core.audit import AuditLogger
from finance_core.models.notification import (
    Notification,
    NotificationKey,
    NotificationPriority,
)
from finance_core.models.recurring import (
    OccurrenceStatus,
    ReconciledOccurrence,
    ReconciliationResult,
)
from finance_core.services.notifications import NotificationSinkInterface


logger = structlog.get_logger(__name__)

NOTIFIABLE_STATUSES = (OccurrenceStatus.DUE_SOON, OccurrenceStatus.OVERDUE)


class SeenNotificationCache:
    """Session-lifetime set of notification keys already fired."""

    def __init__(self):
        self._keys: set[NotificationKey] = set()

    def __contains__(self, key: NotificationKey) -> bool:
        return key in self._keys

    def __len__(self) -> int:
        return len(self._keys)

    def add(self, key: NotificationKey) -> bool:
        """Record a key. Returns False if it was already present."""
        if key in self._keys:
            return False
        self._keys.add(key)
        return True

    def clear(self) -> None:
        self._keys.clear()


def build_notification(item: ReconciledOccurrence) -> Notification:
    """Render the user-facing notification for a due-soon or overdue item."""
    template = item.template
    key = NotificationKey(
        template_id=template.id,
        due_date=item.calculated_next_date,
        status=item.status,
    )
    metadata = {
        "template_id": template.id,
        "transaction_title": template.title,
        "due_date": item.calculated_next_date.isoformat(),
        "days_until_due": item.days_until_due,
    }

    if item.status == OccurrenceStatus.OVERDUE:
        return Notification(
            owner_id=template.owner_id,
            key=key,
            title="Overdue Bill",
            message=f'"{template.title}" is overdue. Mark as paid or update the schedule.',
            type="error",
            priority=NotificationPriority.URGENT,
            metadata=metadata,
        )

    return Notification(
        owner_id=template.owner_id,
        key=key,
        title="Bill Due Soon",
        message=f'"{template.title}" is due on {item.calculated_next_date.isoformat()}.',
        type="info",
        priority=NotificationPriority.MEDIUM,
        metadata=metadata,
    )


class NotificationTrigger:
    """
    Emits at-most-once notifications for due-soon and overdue obligations.

    Feed it every reconciliation result; re-renders and refreshes within
    one session do not re-fire.
    """

    def __init__(
        self,
        sink: NotificationSinkInterface,
        seen: Optional[SeenNotificationCache] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._sink = sink
        self._seen = seen if seen is not None else SeenNotificationCache()
        self._audit_logger = audit_logger

    @property
    def seen(self) -> SeenNotificationCache:
        return self._seen

    async def process(
        self,
        items: Iterable[ReconciledOccurrence],
        correlation_id: Optional[UUID] = None,
    ) -> list[Notification]:
        """
        Notify for every new due-soon/overdue key.

        A key is marked seen before delivery, so a failed delivery is not
        retried within the session. Delivery failures are logged and do
        not stop the remaining items.

        Returns:
            The notifications handed to the sink successfully
        """
        emitted = []

        for item in items:
            if item.status not in NOTIFIABLE_STATUSES:
                continue

            notification = build_notification(item)
            if not self._seen.add(notification.key):
                continue

            try:
                await self._sink.deliver(notification)
            except Exception as e:
                logger.warning(
                    "notification_delivery_failed",
                    template_id=item.template.id,
                    status=item.status.value,
                    error=str(e),
                )
                if self._audit_logger:
                    await self._audit_logger.log_notification_failed(
                        template_id=item.template.id,
                        error_message=str(e),
                        correlation_id=correlation_id,
                    )
                continue

            emitted.append(notification)
            if self._audit_logger:
                await self._audit_logger.log_notification_emitted(
                    template_id=item.template.id,
                    status=item.status.value,
                    due_date=item.calculated_next_date.isoformat(),
                    correlation_id=correlation_id,
                )

        return emitted

    async def process_result(
        self,
        result: ReconciliationResult,
        correlation_id: Optional[UUID] = None,
    ) -> list[Notification]:
        return await self.process(result.current_period_items, correlation_id)
