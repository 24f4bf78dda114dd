# ruff: noqa: S608 - All CQL queries use keyspace from config, not user input
"""Per-user notification inbox.

Notifications are appended by the account, friend, guardian and community
workflows and read back newest first with a TIMEUUID cursor. Unread counts
live in a counter table and are cached in Redis when it is configured.
"""

import contextlib
from typing import TYPE_CHECKING
from uuid import UUID

import orjson
import structlog

from skillwise.config.settings import get_settings
from skillwise.core.redis import notification_channel, unread_count_key
from skillwise.notifications.models import Notification, NotificationType
from skillwise.notifications.schemas import (
    NotificationListResponse,
    NotificationResponse,
)
from skillwise.utils import decode_cursor, encode_cursor, utc_now


if TYPE_CHECKING:
    from cassandra.cluster import Session
    from redis.asyncio import Redis

logger = structlog.get_logger(__name__)

# Rows read per page by "mark all as read"
MARK_ALL_PAGE_SIZE = 500


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class NotificationError(Exception):
    """Base notification error."""

    def __init__(self, message: str, code: str = "notification_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class NotificationNotFoundError(NotificationError):
    def __init__(self, message: str = "Notification not found"):
        super().__init__(message, "notification_not_found")


class InvalidCursorError(NotificationError):
    def __init__(self, message: str = "Invalid pagination cursor"):
        super().__init__(message, "invalid_cursor")


# ==============================================================================
# Notification Service
# ==============================================================================


class NotificationService:
    """Append, page, mark read and count notifications."""

    def __init__(self, session: "Session", keyspace: str, redis: "Redis | None" = None):
        self.session = session
        self.keyspace = keyspace
        self.redis = redis
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare every inbox statement once per service."""
        self._insert_notification = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.notifications
            (user_id, notification_id, type, title, message, actor_id, actor_name,
             reference_id, reference_type, data, is_action_required, action_url,
             is_read, read_at, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._get_notifications = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.notifications
            WHERE user_id = ?
            LIMIT ?
        """)
        self._get_notifications_before = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.notifications
            WHERE user_id = ? AND notification_id < ?
            LIMIT ?
        """)
        self._get_notification = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.notifications
            WHERE user_id = ? AND notification_id = ?
        """)
        self._mark_read = self.session.prepare(f"""
            UPDATE {self.keyspace}.notifications
            SET is_read = true, read_at = ?
            WHERE user_id = ? AND notification_id = ?
        """)
        self._delete_notification = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.notifications
            WHERE user_id = ? AND notification_id = ?
        """)
        self._incr_unread = self.session.prepare(f"""
            UPDATE {self.keyspace}.notification_unread_counts
            SET count = count + 1
            WHERE user_id = ?
        """)
        self._decr_unread = self.session.prepare(f"""
            UPDATE {self.keyspace}.notification_unread_counts
            SET count = count - ?
            WHERE user_id = ?
        """)
        self._get_unread_count = self.session.prepare(f"""
            SELECT count FROM {self.keyspace}.notification_unread_counts
            WHERE user_id = ?
        """)

    # ==========================================================================
    # Writing
    # ==========================================================================

    async def create_notification(self, notification: Notification) -> Notification:
        """Append a notification to the recipient's log."""
        await self.session.aexecute(
            self._insert_notification,
            [
                notification.user_id,
                notification.notification_id,
                notification.type.value,
                notification.title,
                notification.message,
                notification.actor_id,
                notification.actor_name,
                notification.reference_id,
                notification.reference_type,
                notification.data,
                notification.is_action_required,
                notification.action_url,
                notification.is_read,
                notification.read_at,
                notification.created_at,
            ],
        )
        await self.session.aexecute(self._incr_unread, [notification.user_id])

        await self._invalidate_cache(notification.user_id)
        await self._publish_notification(notification)

        logger.info(
            "notification_created",
            recipient_id=str(notification.user_id),
            notification_type=notification.type.value,
        )
        return notification

    async def dispatch(self, notification: Notification) -> Notification | None:
        """Create a notification on behalf of another workflow.

        Failures are logged and swallowed: a notification that cannot be
        written never fails the state transition that triggered it.
        """
        try:
            return await self.create_notification(notification)
        except Exception as e:
            logger.warning(
                "notification_dispatch_failed",
                recipient_id=str(notification.user_id),
                notification_type=notification.type.value,
                error=str(e),
            )
            return None

    async def _publish_notification(self, notification: Notification) -> None:
        """Publish to the recipient's Redis channel when Redis is configured."""
        if not self.redis:
            return

        message = orjson.dumps(
            {
                "type": "notification",
                "data": NotificationResponse.from_notification(notification).model_dump(
                    mode="json", by_alias=True
                ),
            }
        )
        # Non-critical: clients also poll
        with contextlib.suppress(Exception):
            await self.redis.publish(
                notification_channel(str(notification.user_id)), message
            )

    # ==========================================================================
    # Inbox queries
    # ==========================================================================

    async def get_notifications(
        self,
        user_id: UUID,
        limit: int = 20,
        cursor: str | None = None,
        unread_only: bool = False,
        notification_type: NotificationType | None = None,
    ) -> NotificationListResponse:
        """Get a page of notifications, newest first.

        Filters are applied to the fetched page, so a filtered page may hold
        fewer than ``limit`` items while ``has_more`` is still true.

        Raises:
            InvalidCursorError: If ``cursor`` cannot be decoded
        """
        if cursor:
            try:
                _, last_id = decode_cursor(cursor)
            except ValueError as e:
                raise InvalidCursorError from e
            result = await self.session.aexecute(
                self._get_notifications_before, [user_id, last_id, limit + 1]
            )
        else:
            result = await self.session.aexecute(
                self._get_notifications, [user_id, limit + 1]
            )

        rows = list(result)
        has_more = len(rows) > limit
        page = [Notification.from_row(row) for row in rows[:limit]]

        next_cursor = None
        if has_more and page:
            last = page[-1]
            next_cursor = encode_cursor(last.created_at, last.notification_id)

        if unread_only:
            page = [n for n in page if not n.is_read]
        if notification_type is not None:
            page = [n for n in page if n.type == notification_type]

        return NotificationListResponse(
            items=[NotificationResponse.from_notification(n) for n in page],
            unread_count=await self.get_unread_count(user_id),
            has_more=has_more,
            next_cursor=next_cursor,
        )

    async def get_unread_count(self, user_id: UUID) -> int:
        """Unread count, never negative; served from Redis when cached."""
        key = unread_count_key(str(user_id))
        if self.redis:
            with contextlib.suppress(Exception):
                cached = await self.redis.get(key)
                if cached is not None:
                    return int(cached)

        result = await self.session.aexecute(self._get_unread_count, [user_id])
        row = result.one()
        count = max(row.count, 0) if row and row.count else 0

        if self.redis:
            with contextlib.suppress(Exception):
                await self.redis.setex(
                    key, get_settings().redis_unread_cache_ttl, str(count)
                )

        return count

    # ==========================================================================
    # Mark as Read / Delete
    # ==========================================================================

    async def mark_as_read(self, user_id: UUID, notification_id: UUID) -> bool:
        """Mark one notification as read.

        Returns:
            True if it was unread before the call.

        Raises:
            NotificationNotFoundError: If the user has no such notification
        """
        result = await self.session.aexecute(
            self._get_notification, [user_id, notification_id]
        )
        row = result.one()
        if not row:
            raise NotificationNotFoundError
        if row.is_read:
            return False

        await self.session.aexecute(
            self._mark_read, [utc_now(), user_id, notification_id]
        )
        await self.session.aexecute(self._decr_unread, [1, user_id])
        await self._invalidate_cache(user_id)
        return True

    async def mark_all_as_read(self, user_id: UUID) -> int:
        """Mark every unread notification as read. Returns how many changed."""
        now = utc_now()
        marked = 0

        cursor: UUID | None = None
        while True:
            if cursor is None:
                result = await self.session.aexecute(
                    self._get_notifications, [user_id, MARK_ALL_PAGE_SIZE]
                )
            else:
                result = await self.session.aexecute(
                    self._get_notifications_before,
                    [user_id, cursor, MARK_ALL_PAGE_SIZE],
                )
            rows = result.all()
            for row in rows:
                if not row.is_read:
                    await self.session.aexecute(
                        self._mark_read, [now, user_id, row.notification_id]
                    )
                    marked += 1
            if len(rows) < MARK_ALL_PAGE_SIZE:
                break
            cursor = rows[-1].notification_id

        if marked > 0:
            await self.session.aexecute(self._decr_unread, [marked, user_id])
            await self._invalidate_cache(user_id)

        return marked

    async def delete_notification(self, user_id: UUID, notification_id: UUID) -> None:
        """Delete one of the user's notifications.

        Raises:
            NotificationNotFoundError: If the user has no such notification
        """
        result = await self.session.aexecute(
            self._get_notification, [user_id, notification_id]
        )
        row = result.one()
        if not row:
            raise NotificationNotFoundError

        await self.session.aexecute(
            self._delete_notification, [user_id, notification_id]
        )
        if not row.is_read:
            await self.session.aexecute(self._decr_unread, [1, user_id])
            await self._invalidate_cache(user_id)

    async def _invalidate_cache(self, user_id: UUID) -> None:
        if self.redis:
            with contextlib.suppress(Exception):
                await self.redis.delete(unread_count_key(str(user_id)))
