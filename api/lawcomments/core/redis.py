# ruff: noqa: PLW0603
"""Redis connection management.

Provides the async Redis client used for:
- Moderation stats and public view caching
- Pub/Sub notifications when a cached view is revalidated
"""

import redis.asyncio as redis

from lawcomments.config import get_settings
from lawcomments.core.logging import get_logger


logger = get_logger(__name__)

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
        retry_on_timeout=settings.redis_retry_on_timeout,
        health_check_interval=settings.redis_health_check_interval,
        decode_responses=True,
    )

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


def view_cache_key(path: str) -> str:
    """Cache key for a rendered public view."""
    return f"views:{path}"


def stats_cache_key(document_id: str) -> str:
    """Cache key for a document's moderation stats."""
    return f"law_comments:stats:{document_id}"
