"""Async Cassandra database connection using cassandra-asyncio-driver.

Provides:
- Async connection pool management
- Session with aexecute() for non-blocking queries
- Keyspace and table initialization

The cassandra-asyncio-driver extends the standard cassandra-driver
with `session.aexecute()` method for async/await support.
"""

import structlog
from cassandra.auth import PlainTextAuthProvider
from cassandra.policies import DCAwareRoundRobinPolicy, TokenAwarePolicy
from cassandra_asyncio.cluster import Cluster

from edumarket.config.settings import get_settings
from edumarket.courses.models import COURSES_TABLES_CQL
from edumarket.enrollments.models import ENROLLMENTS_TABLES_CQL
from edumarket.progress.models import PROGRESS_TABLES_CQL
from edumarket.purchases.models import PURCHASES_TABLES_CQL
from edumarket.users.models import USERS_TABLES_CQL


logger = structlog.get_logger(__name__)

# (module name, CQL templates) in creation order
LEDGER_SCHEMA: list[tuple[str, list[str]]] = [
    ("users", USERS_TABLES_CQL),
    ("courses", COURSES_TABLES_CQL),
    ("enrollments", ENROLLMENTS_TABLES_CQL),
    ("purchases", PURCHASES_TABLES_CQL),
    ("progress", PROGRESS_TABLES_CQL),
]


class AsyncCassandraConnection:
    """Async Cassandra connection manager.

    Connection is synchronous; queries go through ``session.aexecute()``.
    """

    _cluster: Cluster | None = None
    _session = None  # Session type from cassandra_asyncio

    @classmethod
    def connect(cls):
        """Establish connection to Cassandra cluster.

        Raises:
            ConnectionError: If connection fails
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
            logger.info(
                "async_cassandra_connected",
                hosts=settings.cassandra_hosts,
                port=settings.cassandra_port,
                protocol_version=settings.cassandra_protocol_version,
            )
        except Exception as e:
            logger.error("async_cassandra_connection_failed", error=str(e))
            raise ConnectionError(f"Failed to connect to Cassandra: {e}") from e

        return cls._session

    @classmethod
    def get_session(cls):
        """Get active session, connecting if necessary."""
        if cls._session is None:
            return cls.connect()
        return cls._session

    @classmethod
    def disconnect(cls) -> None:
        """Close connection to Cassandra."""
        if cls._session is not None:
            cls._session.shutdown()
            cls._session = None
            logger.info("async_cassandra_session_closed")

        if cls._cluster is not None:
            cls._cluster.shutdown()
            cls._cluster = None
            logger.info("async_cassandra_cluster_closed")

    @classmethod
    def is_connected(cls) -> bool:
        """Check if connection is active."""
        return cls._session is not None and not cls._session.is_shutdown


async def init_async_keyspace(session, keyspace: str) -> None:
    """Create keyspace if not exists."""
    settings = get_settings()

    if settings.is_production:
        replication = """
            'class': 'NetworkTopologyStrategy',
            'datacenter1': 3
        """
    else:
        replication = f"""
            'class': 'SimpleStrategy',
            'replication_factor': {settings.cassandra_replication_factor}
        """

    cql = f"""
        CREATE KEYSPACE IF NOT EXISTS {keyspace}
        WITH replication = {{{replication}}}
        AND durable_writes = true
    """

    await session.aexecute(cql)
    logger.info("async_keyspace_created", keyspace=keyspace)


async def init_async_tables(session, keyspace: str) -> None:
    """Create every ledger table that does not exist yet."""
    for module_name, statements in LEDGER_SCHEMA:
        for cql_template in statements:
            await session.aexecute(cql_template.format(keyspace=keyspace))
        logger.info("async_tables_created", module=module_name, keyspace=keyspace)


async def init_async_cassandra():
    """Initialize async Cassandra connection and schema.

    Returns:
        Configured Cassandra session with aexecute() support
    """
    settings = get_settings()

    session = AsyncCassandraConnection.connect()
    await init_async_keyspace(session, settings.cassandra_keyspace)
    session.set_keyspace(settings.cassandra_keyspace)
    await init_async_tables(session, settings.cassandra_keyspace)

    logger.info(
        "async_cassandra_initialized",
        keyspace=settings.cassandra_keyspace,
    )

    return session


async def shutdown_async_cassandra() -> None:
    """Shutdown async Cassandra connection."""
    AsyncCassandraConnection.disconnect()
