"""
Notification Sink

The sink is the external collaborator that actually delivers notifications
(push, in-app list, e-mail). It is free to apply its own cross-session
dedup; the trigger only guarantees at-most-once per session.
"""

from abc import ABC, abstractmethod

from finance_core.models.notification import Notification


class NotificationDeliveryError(Exception):
    """The sink could not accept a notification."""
    pass


class NotificationSinkInterface(ABC):
    """Abstract interface for notification delivery."""

    @abstractmethod
    async def deliver(self, notification: Notification) -> None:
        """
        Hand a notification over for delivery.

        Raises:
            NotificationDeliveryError: If the sink rejects it
        """
        pass


class InMemoryNotificationSink(NotificationSinkInterface):
    """Collects delivered notifications in a list."""

    def __init__(self):
        self.delivered: list[Notification] = []

    async def deliver(self, notification: Notification) -> None:
        self.delivered.append(notification)
