"""
Redis key/value cache for the API service.
"""

import asyncio
import json
from typing import Any, Optional, TYPE_CHECKING

import redis.asyncio as redis
from redis.exceptions import RedisError

from shared.errors import CacheMiss, CacheUnavailable, SerializationFailure
from shared.logging import get_logger

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


class RedisCache:
    """JSON values in Redis with optional TTL.

    Expiry is enforced by Redis itself; nothing is buffered locally.
    """

    def __init__(
        self,
        redis_url: str,
        *,
        client: Optional[redis.Redis] = None,
        metrics: Optional["MetricsCollector"] = None,
    ):
        self.redis_url = redis_url
        self.logger = get_logger("api.cache.redis")
        self.metrics = metrics
        self.redis: redis.Redis = client or redis.from_url(
            redis_url,
            # Raw bytes; values are decoded in get() so bad UTF-8 is a corrupt entry
            socket_connect_timeout=5,
            socket_timeout=5,
            health_check_interval=30,
        )

    async def start(self):
        """Check connectivity. An unreachable Redis only produces a warning."""
        if await self.ping():
            self.logger.info("Connected to Redis", url=self.redis_url)
        else:
            self.logger.warning("Redis connection failed", url=self.redis_url)

    async def stop(self):
        """Close the connection pool."""
        await self.redis.aclose()
        self.logger.info("Redis cache stopped")

    async def get(self, key: str) -> Any:
        """Decoded value stored under ``key``.

        Raises:
            CacheMiss: key absent or expired
            SerializationFailure: stored value is not UTF-8 JSON
            CacheUnavailable: Redis error
        """
        try:
            raw = await self.redis.get(key)
        except RedisError as e:
            self.logger.error("Redis GET error", key=key, error=str(e))
            raise CacheUnavailable("Failed to read cache", {"key": key, "error": str(e)})

        if raw is None:
            raise CacheMiss(key)

        try:
            if isinstance(raw, bytes):
                raw = raw.decode("utf-8")
            return json.loads(raw)
        except (UnicodeDecodeError, ValueError) as e:
            raise SerializationFailure("Cached value is not JSON", {"key": key, "error": str(e)})

    async def set(self, key: str, value: Any, ttl: int = 0) -> None:
        """Store ``value`` as JSON, overwriting unconditionally. ttl=0 means no expiry."""
        try:
            payload = json.dumps(value, allow_nan=False)
        except (TypeError, ValueError) as e:
            raise SerializationFailure("Value is not JSON serializable", {"key": key, "error": str(e)})

        try:
            await self.redis.set(key, payload, ex=ttl if ttl > 0 else None)
        except RedisError as e:
            self.logger.error("Redis SET error", key=key, error=str(e))
            raise CacheUnavailable("Failed to write cache", {"key": key, "error": str(e)})

        self.logger.debug("Cached value", key=key, ttl=ttl)

    async def delete(self, key: str) -> int:
        """Remove ``key``; returns the number of keys removed (0 or 1)."""
        try:
            return int(await self.redis.delete(key))
        except RedisError as e:
            self.logger.error("Redis DEL error", key=key, error=str(e))
            raise CacheUnavailable("Failed to delete cache key", {"key": key, "error": str(e)})

    async def ping(self) -> bool:
        """Check Redis health."""
        try:
            return bool(await self.redis.ping())
        except (RedisError, OSError, asyncio.TimeoutError) as e:
            self.logger.debug("Redis ping failed", error=str(e))
            return False
