"""Cassandra connection for the comment service (cassandra-asyncio-driver).

The driver adds `session.aexecute()` to the standard cassandra-driver
session. Connecting stays synchronous and happens once at startup; every
query after that is awaited.

Startup also creates the keyspace and the document and comment tables.
"""

from typing import TYPE_CHECKING

from cassandra.auth import PlainTextAuthProvider
from cassandra.policies import DCAwareRoundRobinPolicy, TokenAwarePolicy
from cassandra_asyncio.cluster import Cluster

from lawcomments.comments.models import COMMENTS_TABLES_CQL
from lawcomments.config.settings import get_settings
from lawcomments.core.logging import get_logger
from lawcomments.documents.models import DOCUMENTS_TABLES_CQL


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from lawcomments.config.settings import Settings


logger = get_logger(__name__)

SCHEMA_GROUPS = {
    "documents": DOCUMENTS_TABLES_CQL,
    "comments": COMMENTS_TABLES_CQL,
}


class AsyncCassandraConnection:
    """Process-wide cluster and session holder."""

    _cluster: Cluster | None = None
    _session: "Session | None" = None

    @classmethod
    def connect(cls) -> "Session":
        """Connect once and reuse the session afterwards.

        Raises:
            ConnectionError: If no contact point can be reached
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
            load_balancing_policy=TokenAwarePolicy(
                DCAwareRoundRobinPolicy(local_dc=settings.cassandra_datacenter)
            ),
            connect_timeout=settings.cassandra_connect_timeout,
        )

        try:
            cls._session = cls._cluster.connect()
        except Exception as e:
            logger.error(
                "cassandra_connection_failed",
                hosts=settings.cassandra_hosts,
                error=str(e),
            )
            cls._cluster.shutdown()
            cls._cluster = None
            raise ConnectionError(f"Failed to connect to Cassandra: {e}") from e

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


def replication_options(settings: "Settings") -> str:
    """CQL replication map for a newly created keyspace."""
    factor = settings.cassandra_replication_factor
    if settings.cassandra_datacenter:
        return (
            "{'class': 'NetworkTopologyStrategy', "
            f"'{settings.cassandra_datacenter}': {factor}}}"
        )
    return f"{{'class': 'SimpleStrategy', 'replication_factor': {factor}}}"


async def create_schema(session: "Session", settings: "Settings") -> None:
    """Create the keyspace and every table group if missing."""
    keyspace = settings.cassandra_keyspace
    await session.aexecute(
        f"CREATE KEYSPACE IF NOT EXISTS {keyspace} "
        f"WITH replication = {replication_options(settings)} "
        "AND durable_writes = true"
    )
    for group, templates in SCHEMA_GROUPS.items():
        for cql_template in templates:
            await session.aexecute(cql_template.format(keyspace=keyspace))
        logger.info("cassandra_tables_ready", keyspace=keyspace, group=group)


async def init_async_cassandra() -> "Session":
    """Connect, create the schema and bind the session to the keyspace."""
    settings = get_settings()
    session = AsyncCassandraConnection.connect()

    await create_schema(session, settings)
    session.set_keyspace(settings.cassandra_keyspace)

    logger.info("cassandra_initialized", keyspace=settings.cassandra_keyspace)
    return session


async def shutdown_async_cassandra() -> None:
    AsyncCassandraConnection.disconnect()
