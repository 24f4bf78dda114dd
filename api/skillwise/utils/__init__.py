"""Utility helpers shared by the domain modules."""

from skillwise.utils.dates import ensure_utc_aware, utc_now
from skillwise.utils.pagination import decode_cursor, encode_cursor
from skillwise.utils.ratings import RatingStats, summarize_ratings


__all__ = [
    "RatingStats",
    "decode_cursor",
    "encode_cursor",
    "ensure_utc_aware",
    "summarize_ratings",
    "utc_now",
]
