"""Due-soon / overdue notification package."""

from finance_core.notifications.trigger import (
    NOTIFIABLE_STATUSES,
    NotificationTrigger,
    SeenNotificationCache,
    build_notification,
)

__all__ = [
    "NOTIFIABLE_STATUSES",
    "NotificationTrigger",
    "SeenNotificationCache",
    "build_notification",
]
