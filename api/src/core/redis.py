# ruff: noqa: PLW0603
"""Redis connection management.

Redis backs the row id sequences: every table gets a dense integer id from
an atomic INCR on its own key.
"""

import redis.asyncio as redis

from src.config import get_settings
from src.core.logging import get_logger


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


class IdAllocator:
    """Allocates increasing integer ids per table from Redis counters."""

    def __init__(self, client: redis.Redis, prefix: str = "quitcode:ids"):
        self.client = client
        self.prefix = prefix

    def key(self, table: str) -> str:
        """Redis key holding the last id issued for a table."""
        return f"{self.prefix}:{table}"

    async def next_id(self, table: str) -> int:
        """Reserve the next id for a table."""
        return int(await self.client.incr(self.key(table)))
