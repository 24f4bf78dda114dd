"""Pydantic schemas for notifications."""

from datetime import datetime
from uuid import UUID

from pydantic import Field

from skillwise.core.schemas import CamelModel
from skillwise.notifications.models import Notification, NotificationType


class NotificationActor(CamelModel):
    id: UUID
    name: str | None = None


class NotificationResponse(CamelModel):
    """Single notification response."""

    id: UUID = Field(description="Notification ID")
    type: NotificationType = Field(description="Notification type")
    title: str
    message: str
    actor: NotificationActor | None = None
    reference_id: UUID | None = None
    reference_type: str | None = None
    data: dict[str, str] = Field(default_factory=dict)
    is_action_required: bool = False
    action_url: str | None = None
    is_read: bool
    read_at: datetime | None = None
    created_at: datetime

    @classmethod
    def from_notification(cls, notification: Notification) -> "NotificationResponse":
        """Create response from notification entity."""
        actor = None
        if notification.actor_id:
            actor = NotificationActor(
                id=notification.actor_id, name=notification.actor_name
            )
        return cls(
            id=notification.notification_id,
            type=notification.type,
            title=notification.title,
            message=notification.message,
            actor=actor,
            reference_id=notification.reference_id,
            reference_type=notification.reference_type,
            data=notification.data,
            is_action_required=notification.is_action_required,
            action_url=notification.action_url,
            is_read=notification.is_read,
            read_at=notification.read_at,
            created_at=notification.created_at,
        )


class NotificationListResponse(CamelModel):
    """Paginated notification list response."""

    items: list[NotificationResponse]
    unread_count: int
    has_more: bool
    next_cursor: str | None = None


class UnreadCountResponse(CamelModel):
    count: int


class MarkReadResponse(CamelModel):
    marked_count: int
    unread_count: int
