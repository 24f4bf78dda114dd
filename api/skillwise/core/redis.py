# ruff: noqa: PLW0603
"""Optional Redis client.

Redis is not required to serve requests. When it is configured and reachable
the notification service publishes new notifications on a per-user channel
and caches unread counters; otherwise those steps are skipped.
"""

import redis.asyncio as redis

from skillwise.config import get_settings
from skillwise.core.logging import get_logger


logger = get_logger(__name__)

_redis_client: redis.Redis | None = None


async def init_redis() -> redis.Redis:
    """Create the connection pool and verify it with a PING."""
    global _redis_client

    settings = get_settings()
    client = redis.from_url(
        settings.redis_url,
        max_connections=settings.redis_max_connections,
        socket_timeout=settings.redis_socket_timeout,
        socket_connect_timeout=settings.redis_socket_connect_timeout,
        retry_on_timeout=settings.redis_retry_on_timeout,
        decode_responses=True,
    )
    try:
        await client.ping()
    except redis.ConnectionError as e:
        logger.warning("redis_connection_failed", error=str(e))
        await client.aclose()
        raise

    _redis_client = client
    logger.info("redis_connected", url=settings.redis_url)
    return client


async def shutdown_redis() -> None:
    global _redis_client

    if _redis_client is not None:
        await _redis_client.aclose()
        logger.info("redis_disconnected")
        _redis_client = None


def notification_channel(user_id: str) -> str:
    """Pub/sub channel carrying a user's new notifications."""
    return f"notifications:{user_id}"


def unread_count_key(user_id: str) -> str:
    """Cache key for a user's unread notification counter."""
    return f"notifications:unread:{user_id}"
