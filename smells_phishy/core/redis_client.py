"""
Redis client configuration.

Redis is optional: it backs the per-caller rate limiter when ``REDIS_URL`` is
set and reachable. Without it the limiter keeps its windows in process memory.
"""

from typing import Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from smells_phishy.config.logging import get_logger
from smells_phishy.config.settings import get_settings

logger = get_logger(__name__)


def create_redis_client(url: str, socket_timeout: float = 2.0) -> aioredis.Redis:
    """Create an asyncio Redis client with a pooled connection."""
    return aioredis.Redis.from_url(
        url,
        decode_responses=True,
        socket_timeout=socket_timeout,
        socket_connect_timeout=socket_timeout,
        health_check_interval=30,
    )


async def connect_redis(url: Optional[str] = None) -> Optional[aioredis.Redis]:
    """
    Connect to Redis and verify it answers PING.

    Returns None when Redis is not configured or not reachable.
    """
    url = url or get_settings().REDIS_URL
    if not url:
        logger.info("Redis not configured, using in-memory rate limiting")
        return None

    client = create_redis_client(url)
    try:
        await client.ping()
    except (RedisError, OSError) as e:
        logger.warning("Redis not available, using in-memory rate limiting", error=str(e))
        await client.aclose()
        return None

    logger.info("Redis connection established")
    return client


async def redis_healthy(client: Optional[aioredis.Redis]) -> bool:
    """Test Redis connection."""
    if client is None:
        return False
    try:
        return bool(await client.ping())
    except (RedisError, OSError) as e:
        logger.error("Redis ping failed", error=str(e))
        return False
