"""Async Cassandra connection and schema bootstrap.

Uses cassandra-asyncio-driver, whose sessions expose ``aexecute()`` on top of
the regular cassandra-driver API. Connecting is synchronous; every query the
services issue goes through ``aexecute``.
"""

import structlog
from cassandra.auth import PlainTextAuthProvider
from cassandra.policies import DCAwareRoundRobinPolicy, TokenAwarePolicy
from cassandra_asyncio.cluster import Cluster

from skillwise.auth.models import AUTH_TABLES_CQL
from skillwise.community.models import COMMUNITY_TABLES_CQL
from skillwise.config.settings import get_settings
from skillwise.courses.models import COURSES_TABLES_CQL
from skillwise.guardians.models import GUARDIANS_TABLES_CQL
from skillwise.learning.models import LEARNING_TABLES_CQL
from skillwise.notifications.models import NOTIFICATIONS_TABLES_CQL
from skillwise.skills.models import SKILLS_TABLES_CQL


logger = structlog.get_logger(__name__)


# Table groups created at startup, in dependency-free order
SCHEMA: dict[str, list[str]] = {
    "auth": AUTH_TABLES_CQL,
    "courses": COURSES_TABLES_CQL,
    "learning": LEARNING_TABLES_CQL,
    "community": COMMUNITY_TABLES_CQL,
    "guardians": GUARDIANS_TABLES_CQL,
    "notifications": NOTIFICATIONS_TABLES_CQL,
    "skills": SKILLS_TABLES_CQL,
}


class AsyncCassandraConnection:
    """Process-wide cluster and session holder."""

    _cluster: Cluster | None = None
    _session = None

    @classmethod
    def connect(cls):
        """Connect to the cluster, reusing the session when already open.

        Raises:
            ConnectionError: If the cluster cannot be reached.
        """
        if cls._session is not None:
            return cls._session

        settings = get_settings()

        auth_provider = None
        if settings.cassandra_username and settings.cassandra_password:
            auth_provider = PlainTextAuthProvider(
                username=settings.cassandra_username,
                password=settings.cassandra_password,
            )

        cls._cluster = Cluster(
            contact_points=settings.cassandra_hosts,
            port=settings.cassandra_port,
            auth_provider=auth_provider,
            protocol_version=settings.cassandra_protocol_version,
            load_balancing_policy=TokenAwarePolicy(DCAwareRoundRobinPolicy()),
            connect_timeout=settings.cassandra_connect_timeout,
        )

        try:
            cls._session = cls._cluster.connect()
        except Exception as e:
            logger.error("cassandra_connection_failed", error=str(e))
            msg = f"Failed to connect to Cassandra: {e}"
            raise ConnectionError(msg) from e

        cls._session.default_timeout = settings.cassandra_request_timeout
        logger.info(
            "cassandra_connected",
            hosts=settings.cassandra_hosts,
            port=settings.cassandra_port,
        )
        return cls._session

    @classmethod
    def disconnect(cls) -> None:
        if cls._session is not None:
            cls._session.shutdown()
            cls._session = None
        if cls._cluster is not None:
            cls._cluster.shutdown()
            cls._cluster = None
            logger.info("cassandra_disconnected")

    @classmethod
    def is_connected(cls) -> bool:
        return cls._session is not None and not cls._session.is_shutdown


def replication_options(production: bool) -> str:
    """Keyspace replication clause for the environment."""
    if production:
        return "{'class': 'NetworkTopologyStrategy', 'datacenter1': 3}"
    return "{'class': 'SimpleStrategy', 'replication_factor': 1}"


async def init_async_keyspace(session, keyspace: str) -> None:
    settings = get_settings()
    await session.aexecute(
        f"CREATE KEYSPACE IF NOT EXISTS {keyspace} "
        f"WITH replication = {replication_options(settings.is_production)} "
        "AND durable_writes = true"
    )
    logger.info("keyspace_ready", keyspace=keyspace)


async def init_async_tables(session, keyspace: str) -> None:
    """Create every table group listed in ``SCHEMA``."""
    for group, statements in SCHEMA.items():
        for cql_template in statements:
            await session.aexecute(cql_template.format(keyspace=keyspace))
        logger.info("tables_ready", group=group, count=len(statements))


async def init_async_cassandra():
    """Connect, then create the keyspace and tables when missing.

    Returns:
        Session supporting ``aexecute()``.
    """
    settings = get_settings()
    session = AsyncCassandraConnection.connect()

    await init_async_keyspace(session, settings.cassandra_keyspace)
    session.set_keyspace(settings.cassandra_keyspace)
    await init_async_tables(session, settings.cassandra_keyspace)

    logger.info("cassandra_initialized", keyspace=settings.cassandra_keyspace)
    return session


async def shutdown_async_cassandra() -> None:
    AsyncCassandraConnection.disconnect()
