"""Datetime helpers."""

from datetime import UTC, datetime


def utc_now() -> datetime:
    """Current time, UTC-aware and truncated to milliseconds.

    Cassandra TIMESTAMP columns keep millisecond precision, so values written
    and later used as clustering keys must not carry microseconds.
    """
    now = datetime.now(UTC)
    return now.replace(microsecond=(now.microsecond // 1000) * 1000)


def ensure_utc_aware(dt: datetime | None) -> datetime | None:
    """Ensure datetime is UTC-aware (Cassandra returns naive datetimes)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt
