"""Database connection module for EduMarket."""

from edumarket.core.database.async_cassandra import (
    AsyncCassandraConnection,
    init_async_cassandra,
    shutdown_async_cassandra,
)
from edumarket.core.database.conditional import execute_conditional


__all__ = [
    "AsyncCassandraConnection",
    "execute_conditional",
    "init_async_cassandra",
    "shutdown_async_cassandra",
]
