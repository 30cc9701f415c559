"""Database connection module for the comment service."""

from lawcomments.core.database.async_cassandra import (
    AsyncCassandraConnection,
    create_schema,
    init_async_cassandra,
    replication_options,
    shutdown_async_cassandra,
)


__all__ = [
    "AsyncCassandraConnection",
    "create_schema",
    "init_async_cassandra",
    "replication_options",
    "shutdown_async_cassandra",
]
