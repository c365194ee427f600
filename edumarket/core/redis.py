# ruff: noqa: PLW0603
"""Redis connection management.

Provides an async Redis client used as a read-through cache for
enrollment membership. Redis is optional: every caller treats
``None`` as "no cache" and goes to Cassandra.
"""

import redis.asyncio as redis

from edumarket.config import get_settings
from edumarket.core.logging import get_logger


logger = get_logger(__name__)

# Global Redis client
_redis_client: redis.Redis | None = None


async def init_redis() -> redis.Redis:
    """Initialize Redis connection pool."""
    global _redis_client

    settings = get_settings()

    _redis_client = redis.from_url(
        settings.redis_url,
        max_connections=settings.redis_max_connections,
        socket_timeout=settings.redis_socket_timeout,
        socket_connect_timeout=settings.redis_socket_connect_timeout,
        decode_responses=True,
    )

    # Test connection
    try:
        await _redis_client.ping()
        logger.info("redis_connected", url=settings.redis_url)
    except redis.ConnectionError as e:
        logger.warning("redis_connection_failed", error=str(e))
        _redis_client = None
        raise

    return _redis_client


async def shutdown_redis() -> None:
    """Close Redis connection."""
    global _redis_client

    if _redis_client:
        await _redis_client.aclose()
        logger.info("redis_disconnected")
        _redis_client = None


def get_redis() -> redis.Redis | None:
    """Get Redis client instance."""
    return _redis_client


# Cache key patterns
def enrollment_cache_key(user_id: str, course_id: str) -> str:
    """Key marking that ``user_id`` is enrolled in ``course_id``."""
    return f"enrollment:{course_id}:{user_id}"
