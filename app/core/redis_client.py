"""Redis connection and JSON cache helpers.

Redis is optional for scheduling: it backs the doctor profile cache and the
appointment event channel. Every helper here degrades instead of raising
when Redis is unreachable.
"""

import json
from typing import Any, cast

import redis
import structlog

from app.config import settings

logger = structlog.get_logger(__name__)

# Socket errors surface as OSError before redis-py wraps them
REDIS_ERRORS = (redis.RedisError, OSError)

# Global Redis client instance
_redis_client: redis.Redis | None = None


def get_redis_client() -> redis.Redis:
    """Return the process-wide Redis client, creating it on first use."""
    global _redis_client

    if _redis_client is None:
        _redis_client = redis.Redis(
            host=settings.redis_host,
            port=settings.redis_port,
            username=settings.redis_username,
            password=settings.redis_password or None,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_keepalive=True,
            health_check_interval=30,
        )

    return _redis_client


async def check_redis_connection() -> bool:
    """Return True when Redis answers a PING."""
    try:
        get_redis_client().ping()
    except REDIS_ERRORS as e:
        logger.warning("redis_check_failed", error=str(e))
        return False
    return True


def close_redis_connection() -> None:
    """Close Redis connection."""
    global _redis_client

    if _redis_client is not None:
        _redis_client.close()
        _redis_client = None


class CacheManager:
    """JSON values in Redis, where every failure reads as a cache miss."""

    def __init__(self, redis_client: redis.Redis):
        self.redis = redis_client

    def get_json(self, key: str) -> Any | None:
        """Return the decoded value stored under ``key``, or None on miss/error."""
        try:
            value = cast(str | None, self.redis.get(key))
        except REDIS_ERRORS as e:
            logger.warning("cache_read_failed", key=key, error=str(e))
            return None
        if not value:
            return None
        try:
            return json.loads(value)
        except ValueError:
            logger.warning("cache_entry_corrupt", key=key)
            return None

    def set_json(self, key: str, value: Any, ttl: int | None = None) -> bool:
        """
        Serialize and store a value.

        Args:
            key: Cache key
            value: Value to serialize (dates and UUIDs are stored as strings)
            ttl: Time to live in seconds

        Returns:
            True if stored, False if Redis rejected the write
        """
        payload = json.dumps(value, default=str)
        try:
            if ttl:
                self.redis.setex(key, ttl, payload)
            else:
                self.redis.set(key, payload)
        except REDIS_ERRORS as e:
            logger.warning("cache_write_failed", key=key, error=str(e))
            return False
        return True

    def delete(self, key: str) -> bool:
        """Delete key from cache."""
        try:
            self.redis.delete(key)
        except REDIS_ERRORS as e:
            logger.warning("cache_delete_failed", key=key, error=str(e))
            return False
        return True
