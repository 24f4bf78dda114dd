"""Notifications module.

Provides:
- Append-only notification log per recipient
- Cursor-paginated listing
- Mark as read and delete
- Unread count tracking

Note: Router is imported directly in main.py to avoid circular imports.
"""

from skillwise.notifications.models import (
    NOTIFICATIONS_TABLES_CQL,
    Notification,
    NotificationType,
)
from skillwise.notifications.service import NotificationService


__all__ = [
    "NOTIFICATIONS_TABLES_CQL",
    "Notification",
    "NotificationService",
    "NotificationType",
]
