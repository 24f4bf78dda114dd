"""Database models for notifications.

Notifications are an append-only log per recipient. Only ``is_read`` and
``read_at`` change after insert; the recipient may also delete entries.

Notification types:
- ACCOUNT_BLOCKED / ACCOUNT_UNBLOCKED: moderation or age policy changes
- FRIEND_REQUEST / FRIEND_ACCEPTED / FRIEND_REJECTED: friend workflow
- PARENT_REQUEST / PARENT_APPROVAL: guardian link workflow
- POST_SHARED / POST_DELETED / REPORT_RESOLVED: community events
- SYSTEM: anything else
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid1

from skillwise.utils import ensure_utc_aware, utc_now


# ==============================================================================
# Constants
# ==============================================================================

NOTIFICATION_PREVIEW_MAX_LENGTH = 200


class NotificationType(str, Enum):
    """Types of notifications."""

    ACCOUNT_BLOCKED = "account_blocked"
    ACCOUNT_UNBLOCKED = "account_unblocked"
    FRIEND_REQUEST = "friend_request"
    FRIEND_ACCEPTED = "friend_accepted"
    FRIEND_REJECTED = "friend_rejected"
    PARENT_REQUEST = "parent_request"
    PARENT_APPROVAL = "parent_approval"
    POST_SHARED = "post_shared"
    POST_DELETED = "post_deleted"
    REPORT_RESOLVED = "report_resolved"
    SYSTEM = "system"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

# notification_id is a TIMEUUID, so clustering order is creation order
NOTIFICATION_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.notifications (
    user_id UUID,
    notification_id TIMEUUID,
    type TEXT,
    title TEXT,
    message TEXT,
    actor_id UUID,
    actor_name TEXT,
    reference_id UUID,
    reference_type TEXT,
    data MAP<TEXT, TEXT>,
    is_action_required BOOLEAN,
    action_url TEXT,
    is_read BOOLEAN,
    read_at TIMESTAMP,
    created_at TIMESTAMP,
    PRIMARY KEY ((user_id), notification_id)
) WITH CLUSTERING ORDER BY (notification_id DESC)
"""

UNREAD_COUNT_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.notification_unread_counts (
    user_id UUID PRIMARY KEY,
    count COUNTER
)
"""

NOTIFICATIONS_TABLES_CQL = [
    NOTIFICATION_TABLE_CQL,
    UNREAD_COUNT_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


@dataclass
class Notification:
    """Notification entity."""

    notification_id: UUID
    user_id: UUID
    type: NotificationType
    title: str
    message: str
    actor_id: UUID | None = None
    actor_name: str | None = None
    reference_id: UUID | None = None
    reference_type: str | None = None
    data: dict[str, str] = field(default_factory=dict)
    is_action_required: bool = False
    action_url: str | None = None
    is_read: bool = False
    read_at: datetime | None = None
    created_at: datetime = field(default_factory=utc_now)

    @classmethod
    def from_row(cls, row: Any) -> "Notification":
        """Create Notification from Cassandra row."""
        return cls(
            notification_id=row.notification_id,
            user_id=row.user_id,
            type=NotificationType(row.type),
            title=row.title,
            message=row.message,
            actor_id=row.actor_id,
            actor_name=row.actor_name,
            reference_id=row.reference_id,
            reference_type=row.reference_type,
            data=dict(row.data or {}),
            is_action_required=bool(row.is_action_required),
            action_url=row.action_url,
            is_read=bool(row.is_read),
            read_at=ensure_utc_aware(row.read_at),
            created_at=ensure_utc_aware(row.created_at),
        )


# ==============================================================================
# Factory Functions
# ==============================================================================


def _preview(text: str) -> str:
    return text[:NOTIFICATION_PREVIEW_MAX_LENGTH]


def create_notification(
    user_id: UUID,
    notification_type: NotificationType,
    title: str,
    message: str,
    actor_id: UUID | None = None,
    actor_name: str | None = None,
    reference_id: UUID | None = None,
    reference_type: str | None = None,
    data: dict[str, str] | None = None,
    is_action_required: bool = False,
    action_url: str | None = None,
) -> Notification:
    """Create a new unread notification."""
    return Notification(
        notification_id=uuid1(),
        user_id=user_id,
        type=notification_type,
        title=title,
        message=_preview(message),
        actor_id=actor_id,
        actor_name=actor_name,
        reference_id=reference_id,
        reference_type=reference_type,
        data=data or {},
        is_action_required=is_action_required,
        action_url=action_url,
    )


def create_account_status_notification(
    user_id: UUID,
    blocked: bool,
    reason: str | None = None,
    actor_id: UUID | None = None,
) -> Notification:
    if blocked:
        return create_notification(
            user_id=user_id,
            notification_type=NotificationType.ACCOUNT_BLOCKED,
            title="Account blocked",
            message=f"Your account has been blocked. Reason: {reason or 'not given'}",
            actor_id=actor_id,
            reference_type="account",
            data={"reason": reason} if reason else None,
        )
    return create_notification(
        user_id=user_id,
        notification_type=NotificationType.ACCOUNT_UNBLOCKED,
        title="Account unblocked",
        message="Your account has been unblocked. You can use all features again.",
        actor_id=actor_id,
        reference_type="account",
    )


def create_friend_notification(
    notification_type: NotificationType,
    recipient_id: UUID,
    actor_id: UUID,
    actor_name: str,
) -> Notification:
    """Friend request, acceptance or rejection notice."""
    titles = {
        NotificationType.FRIEND_REQUEST: (
            "New friend request",
            f"{actor_name} sent you a friend request",
        ),
        NotificationType.FRIEND_ACCEPTED: (
            "Friend request accepted",
            f"{actor_name} accepted your friend request",
        ),
        NotificationType.FRIEND_REJECTED: (
            "Friend request declined",
            f"{actor_name} declined your friend request",
        ),
    }
    title, message = titles[notification_type]
    return create_notification(
        user_id=recipient_id,
        notification_type=notification_type,
        title=title,
        message=message,
        actor_id=actor_id,
        actor_name=actor_name,
        reference_id=actor_id,
        reference_type="user",
        is_action_required=notification_type == NotificationType.FRIEND_REQUEST,
        action_url="/friends/requests"
        if notification_type == NotificationType.FRIEND_REQUEST
        else None,
    )


def create_guardian_request_notification(
    recipient_id: UUID,
    actor_id: UUID,
    actor_name: str,
    from_parent: bool,
) -> Notification:
    relation = "parent" if from_parent else "child"
    return create_notification(
        user_id=recipient_id,
        notification_type=NotificationType.PARENT_REQUEST,
        title="Guardian link request",
        message=f"{actor_name} wants to link with you as your {relation}",
        actor_id=actor_id,
        actor_name=actor_name,
        reference_id=actor_id,
        reference_type="user",
        data={"relation": relation},
        is_action_required=True,
        action_url="/guardians/requests",
    )


def create_guardian_decision_notification(
    recipient_id: UUID,
    actor_id: UUID,
    actor_name: str,
    decision: str,
) -> Notification:
    """Guardian link accepted, rejected or removed by ``actor``."""
    messages = {
        "accepted": f"{actor_name} accepted your guardian link request",
        "rejected": f"{actor_name} rejected your guardian link request",
        "removed": f"{actor_name} removed your guardian link",
    }
    return create_notification(
        user_id=recipient_id,
        notification_type=NotificationType.PARENT_APPROVAL,
        title=f"Guardian link {decision}",
        message=messages[decision],
        actor_id=actor_id,
        actor_name=actor_name,
        reference_id=actor_id,
        reference_type="user",
        data={"decision": decision},
    )


def create_post_shared_notification(
    author_id: UUID,
    sharer_id: UUID,
    sharer_name: str,
    post_id: UUID,
    share_id: UUID,
) -> Notification:
    return create_notification(
        user_id=author_id,
        notification_type=NotificationType.POST_SHARED,
        title="Your post was shared",
        message=f"{sharer_name} shared your post",
        actor_id=sharer_id,
        actor_name=sharer_name,
        reference_id=post_id,
        reference_type="post",
        data={"share_id": str(share_id)},
        action_url=f"/community/posts/{share_id}",
    )


def create_post_deleted_notification(
    author_id: UUID,
    moderator_id: UUID,
    post_id: UUID,
    reason: str,
) -> Notification:
    return create_notification(
        user_id=author_id,
        notification_type=NotificationType.POST_DELETED,
        title="Your post was removed",
        message=f"A moderator removed your post. Reason: {reason}",
        actor_id=moderator_id,
        reference_id=post_id,
        reference_type="post",
        data={"reason": reason},
    )


def create_report_resolved_notification(
    recipient_id: UUID,
    moderator_id: UUID,
    post_id: UUID,
    action: str,
    for_author: bool,
) -> Notification:
    if for_author:
        message = "Your post was removed after a community report was reviewed"
    elif action == "deleted_post":
        message = "Thanks for your report. The post has been removed"
    else:
        message = "Thanks for your report. The post was reviewed and kept"
    return create_notification(
        user_id=recipient_id,
        notification_type=NotificationType.REPORT_RESOLVED,
        title="Report reviewed",
        message=message,
        actor_id=moderator_id,
        reference_id=post_id,
        reference_type="post",
        data={"action": action},
    )
