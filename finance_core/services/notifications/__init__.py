"""Notification delivery services."""

from finance_core.services.notifications.sink import (
    InMemoryNotificationSink,
    NotificationDeliveryError,
    NotificationSinkInterface,
)

__all__ = [
    "InMemoryNotificationSink",
    "NotificationDeliveryError",
    "NotificationSinkInterface",
]
