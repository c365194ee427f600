# Core infrastructure
from edumarket.core.context import (
    clear_context,
    get_context,
    get_request_id,
    get_trace_id,
    get_user_id,
    set_request_id,
    set_trace_id,
    set_user_id,
)
from edumarket.core.database import init_async_cassandra, shutdown_async_cassandra
from edumarket.core.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidArgumentError,
    LedgerError,
    NotEnrolledError,
    NotFoundError,
    UpstreamUnavailableError,
)
from edumarket.core.logging import configure_structlog, get_logger
from edumarket.core.middleware import RequestContextMiddleware


__all__ = [
    "ConflictError",
    "ForbiddenError",
    "InvalidArgumentError",
    "LedgerError",
    "NotEnrolledError",
    "NotFoundError",
    "RequestContextMiddleware",
    "UpstreamUnavailableError",
    "clear_context",
    "configure_structlog",
    "get_context",
    "get_logger",
    "get_request_id",
    "get_trace_id",
    "get_user_id",
    "init_async_cassandra",
    "set_request_id",
    "set_trace_id",
    "set_user_id",
    "shutdown_async_cassandra",
]
