"""
Notification Models

A notification is what the trigger hands to the external sink.
Delivery, read/dismiss state and cross-session dedup belong to the sink.
"""

from datetime import date, datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from finance_core.models.recurring import OccurrenceStatus


class NotificationPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class NotificationKey(BaseModel):
    """At-most-once key: one notification per template, due date and status."""

    model_config = ConfigDict(frozen=True)

    template_id: str
    due_date: date
    status: OccurrenceStatus


class Notification(BaseModel):
    """A user-facing notification about a recurring obligation."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    notification_id: UUID = Field(default_factory=uuid4)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    owner_id: str
    key: NotificationKey
    title: str = Field(..., max_length=200)
    message: str = Field(..., max_length=500)
    type: str = Field(
        default="info",
        pattern="^(info|warning|error|success|action)$"
    )
    category: str = "recurring"
    priority: NotificationPriority = NotificationPriority.MEDIUM
    metadata: dict[str, Any] = Field(default_factory=dict)
