"""
Unit tests for the Redis cache.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from redis.exceptions import ConnectionError as RedisConnectionError

from service_api.app.cache.redis_cache import RedisCache
from shared.errors import CacheMiss, CacheUnavailable, SerializationFailure


class TestRedisCache:
    """Test cases for RedisCache."""

    @pytest.fixture
    def redis_client(self):
        """Mock redis.asyncio client."""
        client = MagicMock()
        client.get = AsyncMock(return_value=None)
        client.set = AsyncMock(return_value=True)
        client.delete = AsyncMock(return_value=0)
        client.ping = AsyncMock(return_value=True)
        client.aclose = AsyncMock()
        return client

    @pytest.fixture
    def cache(self, redis_client):
        """Create RedisCache instance."""
        return RedisCache("redis://localhost:6379/0", client=redis_client)

    def test_default_client_returns_bytes(self):
        """The connection does not decode, so bad bytes reach get() intact."""
        with patch("service_api.app.cache.redis_cache.redis.from_url") as from_url:
            RedisCache("redis://localhost:6379/0")

        from_url.assert_called_once()
        assert "decode_responses" not in from_url.call_args.kwargs

    @pytest.mark.asyncio
    async def test_get_decodes_json(self, cache, redis_client):
        """Stored JSON text is decoded."""
        redis_client.get.return_value = '{"a": 1}'

        assert await cache.get("k1") == {"a": 1}
        redis_client.get.assert_called_once_with("k1")

    @pytest.mark.asyncio
    async def test_get_miss(self, cache):
        """Absent keys raise CacheMiss."""
        with pytest.raises(CacheMiss) as exc_info:
            await cache.get("missing")
        assert exc_info.value.key == "missing"

    @pytest.mark.asyncio
    async def test_get_not_json(self, cache, redis_client):
        """Non-JSON text raises SerializationFailure."""
        redis_client.get.return_value = "plain text"

        with pytest.raises(SerializationFailure):
            await cache.get("k1")

    @pytest.mark.asyncio
    async def test_get_decodes_bytes(self, cache, redis_client):
        """Raw UTF-8 bytes from the connection are decoded."""
        redis_client.get.return_value = '{"name": "café"}'.encode("utf-8")

        assert await cache.get("k1") == {"name": "café"}

    @pytest.mark.asyncio
    async def test_get_invalid_utf8(self, cache, redis_client):
        """Bytes that are not UTF-8 raise SerializationFailure."""
        redis_client.get.return_value = b"\xff\xfe\x00garbage"

        with pytest.raises(SerializationFailure):
            await cache.get("k1")

    @pytest.mark.asyncio
    async def test_get_unavailable(self, cache, redis_client):
        """Redis errors raise CacheUnavailable."""
        redis_client.get.side_effect = RedisConnectionError("connection refused")

        with pytest.raises(CacheUnavailable):
            await cache.get("k1")

    @pytest.mark.asyncio
    async def test_set_without_ttl(self, cache, redis_client):
        """ttl=0 stores without expiry."""
        await cache.set("k1", {"a": 1}, 0)

        redis_client.set.assert_called_once_with("k1", '{"a": 1}', ex=None)

    @pytest.mark.asyncio
    async def test_set_with_ttl(self, cache, redis_client):
        """A positive ttl becomes EX seconds."""
        await cache.set("k1", [1, 2], 60)

        redis_client.set.assert_called_once_with("k1", "[1, 2]", ex=60)

    @pytest.mark.asyncio
    async def test_set_unserializable(self, cache, redis_client):
        """Values without a JSON form are rejected before reaching Redis."""
        with pytest.raises(SerializationFailure):
            await cache.set("k1", {1, 2})
        redis_client.set.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("value", [float("nan"), {"a": [float("inf")]}])
    async def test_set_non_finite(self, cache, redis_client, value):
        """NaN and Infinity have no JSON form and are rejected."""
        with pytest.raises(SerializationFailure):
            await cache.set("k1", value)
        redis_client.set.assert_not_called()

    @pytest.mark.asyncio
    async def test_set_unavailable(self, cache, redis_client):
        """Redis errors raise CacheUnavailable."""
        redis_client.set.side_effect = RedisConnectionError("connection refused")

        with pytest.raises(CacheUnavailable):
            await cache.set("k1", "v")

    @pytest.mark.asyncio
    async def test_delete_returns_count(self, cache, redis_client):
        """Delete reports how many keys were removed."""
        redis_client.delete.return_value = 1
        assert await cache.delete("k1") == 1

        redis_client.delete.return_value = 0
        assert await cache.delete("k1") == 0

    @pytest.mark.asyncio
    async def test_delete_unavailable(self, cache, redis_client):
        """Redis errors raise CacheUnavailable."""
        redis_client.delete.side_effect = RedisConnectionError("connection refused")

        with pytest.raises(CacheUnavailable):
            await cache.delete("k1")

    @pytest.mark.asyncio
    async def test_ping(self, cache, redis_client):
        """Ping reflects Redis reachability."""
        assert await cache.ping() is True

        redis_client.ping.side_effect = RedisConnectionError("connection refused")
        assert await cache.ping() is False

    @pytest.mark.asyncio
    async def test_start_tolerates_unreachable_redis(self, cache, redis_client):
        """Startup only warns when Redis is down."""
        redis_client.ping.side_effect = RedisConnectionError("connection refused")

        await cache.start()

        redis_client.ping.assert_called_once()

    @pytest.mark.asyncio
    async def test_stop_closes_client(self, cache, redis_client):
        """Stop closes the connection pool."""
        await cache.stop()
        redis_client.aclose.assert_called_once()
