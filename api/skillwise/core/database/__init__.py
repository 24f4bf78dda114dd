"""Cassandra session lifecycle and keyspace schema."""

from skillwise.core.database.async_cassandra import (
    init_async_cassandra,
    shutdown_async_cassandra,
)


__all__ = ["init_async_cassandra", "shutdown_async_cassandra"]
