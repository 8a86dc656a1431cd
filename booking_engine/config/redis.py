"""Redis client for the notification broker host"""
import time
from typing import Optional

import redis.asyncio as redis

from booking_engine.config.settings import get_settings

settings = get_settings()

_redis_pool: Optional[redis.ConnectionPool] = None


def get_redis_pool() -> redis.ConnectionPool:
    """Get or create Redis connection pool"""
    global _redis_pool
    if _redis_pool is None:
        # Short socket timeouts: a stalled broker must not hang a health probe
        _redis_pool = redis.ConnectionPool.from_url(
            settings.REDIS_URL,
            max_connections=settings.REDIS_MAX_CONNECTIONS,
            socket_connect_timeout=settings.NOTIFICATION_PUBLISH_TIMEOUT_SECONDS,
            socket_timeout=settings.NOTIFICATION_PUBLISH_TIMEOUT_SECONDS,
        )
    return _redis_pool


async def get_redis() -> redis.Redis:
    """Get Redis client from pool"""
    return redis.Redis(connection_pool=get_redis_pool())


async def ping_redis() -> float:
    """Round-trip a PING and return the latency in milliseconds."""
    client = await get_redis()
    started = time.perf_counter()
    try:
        await client.ping()
    finally:
        await client.aclose()
    return round((time.perf_counter() - started) * 1000, 2)
