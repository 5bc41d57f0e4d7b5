"""
Cache package for the API service.

Provides the Redis-backed key/value cache used by the /api/cache routes and
the cache-aside accessor that fronts DynamoDB for single-item reads.
"""

from .redis_cache import RedisCache
from .item_cache import ItemCache, ITEM_KEY_PREFIX, DEFAULT_ITEM_TTL

__all__ = ["RedisCache", "ItemCache", "ITEM_KEY_PREFIX", "DEFAULT_ITEM_TTL"]
