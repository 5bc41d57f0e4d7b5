"""
Cache-aside access to items.

Reads go cache first, then DynamoDB, then back-fill the cache. Writes go to
DynamoDB and then drop the cached copy. The store is always authoritative:
a broken or unreachable cache can slow a read down but never fail it.
"""

from typing import Any, Dict, Optional, Tuple, TYPE_CHECKING

from pydantic import ValidationError

from shared.errors import CacheMiss, CacheUnavailable, SerializationFailure
from shared.logging import get_logger
from ..models import Item, ItemSource

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector
    from ..adapters.dynamo_store import DynamoItemStore
    from .redis_cache import RedisCache


ITEM_KEY_PREFIX = "item:"
DEFAULT_ITEM_TTL = 300  # 5 minutes


class ItemCache:
    """Read-through/write-invalidate accessor over RedisCache + DynamoItemStore."""

    def __init__(
        self,
        cache: "RedisCache",
        store: "DynamoItemStore",
        *,
        ttl_seconds: int = DEFAULT_ITEM_TTL,
        metrics: Optional["MetricsCollector"] = None,
    ):
        self.cache = cache
        self.store = store
        self.ttl_seconds = ttl_seconds
        self.metrics = metrics
        self.logger = get_logger("api.cache.items")

    @staticmethod
    def cache_key(item_id: str) -> str:
        return f"{ITEM_KEY_PREFIX}{item_id}"

    async def get_item(self, item_id: str) -> Tuple[Item, ItemSource]:
        """Latest version of ``item_id`` and where it came from.

        Raises:
            NotFound: the id has no stored versions
            StoreUnavailable: DynamoDB failed on a cache miss
        """
        key = self.cache_key(item_id)

        cached = await self._read_cached(key)
        if cached is not None:
            return cached, ItemSource.CACHE

        item = await self.store.find_latest(item_id)
        await self._populate(key, item)
        return item, ItemSource.DATABASE

    async def update_item(self, item_id: str, timestamp: int, data: Dict[str, Any]) -> None:
        await self.store.update(item_id, timestamp, data)
        await self.invalidate(item_id)

    async def delete_item(self, item_id: str, timestamp: int) -> None:
        await self.store.delete(item_id, timestamp)
        await self.invalidate(item_id)

    async def invalidate(self, item_id: str) -> int:
        """Drop the cached copy of ``item_id``.

        Raises:
            CacheUnavailable: the entry may still be cached
        """
        removed = await self.cache.delete(self.cache_key(item_id))
        self.logger.debug("Invalidated cached item", item_id=item_id, removed=removed)
        return removed

    async def _read_cached(self, key: str) -> Optional[Item]:
        """Cached item, or None for anything that is not a clean hit."""
        try:
            payload = await self.cache.get(key)
        except CacheMiss:
            self._record("miss")
            return None
        except SerializationFailure as e:
            self.logger.warning("Ignoring corrupt cache entry", key=key, error=str(e))
            self._record("corrupt")
            return None
        except CacheUnavailable as e:
            self.logger.warning("Cache read failed, falling back to store", key=key, error=str(e))
            self._record("error")
            return None

        try:
            item = Item.model_validate(payload)
        except ValidationError as e:
            self.logger.warning("Ignoring corrupt cache entry", key=key, error=str(e))
            self._record("corrupt")
            return None

        self._record("hit")
        return item

    async def _populate(self, key: str, item: Item) -> None:
        """Best-effort back-fill; failures are logged only."""
        try:
            await self.cache.set(key, item.to_dict(), ttl=self.ttl_seconds)
        except (CacheUnavailable, SerializationFailure) as e:
            self.logger.warning("Failed to cache item", key=key, error=str(e))

    def _record(self, result: str) -> None:
        if self.metrics:
            self.metrics.record_cache_lookup("items", result)
