"""Opaque cursors for time-ordered listings (feed, notifications)."""

import base64
from datetime import datetime
from uuid import UUID

from skillwise.utils.dates import ensure_utc_aware


def encode_cursor(created_at: datetime, item_id: UUID) -> str:
    """Encode the position of the last item returned on a page."""
    cursor_str = f"{created_at.isoformat()}|{item_id}"
    return base64.urlsafe_b64encode(cursor_str.encode()).decode()


def decode_cursor(cursor: str) -> tuple[datetime, UUID]:
    """Decode a cursor produced by :func:`encode_cursor`.

    Raises:
        ValueError: If the cursor is malformed.
    """
    try:
        cursor_str = base64.urlsafe_b64decode(cursor.encode()).decode()
        created_part, id_part = cursor_str.split("|")
        created_at = ensure_utc_aware(datetime.fromisoformat(created_part))
        return created_at, UUID(id_part)
    except (ValueError, UnicodeDecodeError) as e:
        msg = f"Invalid cursor format: {e}"
        raise ValueError(msg) from e
