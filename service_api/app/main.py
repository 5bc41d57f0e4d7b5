"""
API service: HTTP façade over DynamoDB, S3 and Redis.
"""

from typing import Optional

from fastapi import Body, HTTPException

from shared.base_service import BaseService
from shared.config import ServiceConfig, get_config
from shared.errors import (
    CacheMiss,
    CacheUnavailable,
    NotFound,
    SerializationFailure,
    StoreUnavailable,
)

from .adapters.blob_store import S3BlobStore
from .adapters.dynamo_store import DynamoItemStore
from .cache.item_cache import ItemCache
from .cache.redis_cache import RedisCache
from .models import (
    CreateItemRequest,
    DeleteItemRequest,
    SetCacheRequest,
    UpdateItemRequest,
)

ITEM_LIST_LIMIT = 20
FILE_LIST_LIMIT = 100

STORE_ERRORS = (StoreUnavailable, SerializationFailure)
CACHE_ERRORS = (CacheUnavailable, SerializationFailure)


class ApiService(BaseService):
    """API service implementation.

    Backend adapters are built from config unless passed in, which is how
    tests substitute in-memory fakes.
    """

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        *,
        item_store: Optional[DynamoItemStore] = None,
        blob_store: Optional[S3BlobStore] = None,
        cache: Optional[RedisCache] = None,
    ):
        super().__init__("api", config)

        self.item_store = item_store or DynamoItemStore(
            self.config.dynamodb_table,
            self.config.aws_region,
            endpoint_url=self.config.aws_endpoint_url,
            metrics=self.metrics,
        )
        self.blob_store = blob_store or S3BlobStore(
            self.config.s3_bucket_data,
            self.config.s3_bucket_static,
            self.config.aws_region,
            endpoint_url=self.config.aws_endpoint_url,
            metrics=self.metrics,
        )
        self.cache = cache or RedisCache(self.config.redis_url, metrics=self.metrics)
        self.item_cache = ItemCache(self.cache, self.item_store, metrics=self.metrics)

        self._setup_api_routes()
        self.app.state.api_service = self

    def _setup_api_routes(self):
        """Set up /api routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": self.service_name,
                "message": "DynamoDB, S3 and Redis API",
                "version": "1.0.0",
                "environment": self.config.environment,
                "uptime_seconds": round(self._get_uptime(), 3),
            }

        # Items

        @self.app.post("/api/items", status_code=201)
        async def create_item(request: CreateItemRequest):
            """Create a new item version."""
            try:
                item = await self.item_store.write(request.data, item_id=request.id)
            except STORE_ERRORS as e:
                self.logger.error("DynamoDB PutItem error", error=str(e), details=e.details)
                raise HTTPException(status_code=500, detail="Failed to create item")

            self.logger.info("Item created", item_id=item.id, timestamp=item.timestamp)
            return {
                "message": "Item created successfully",
                "item": item.to_dict(),
            }

        @self.app.get("/api/items/{item_id}")
        async def get_item(item_id: str):
            """Latest version of an item, cache first."""
            try:
                item, source = await self.item_cache.get_item(item_id)
            except NotFound:
                raise HTTPException(status_code=404, detail="Item not found")
            except STORE_ERRORS as e:
                self.logger.error("DynamoDB Query error", item_id=item_id, error=str(e), details=e.details)
                raise HTTPException(status_code=500, detail="Failed to query item")

            return {
                "source": source.value,
                "item": item.to_dict(),
            }

        @self.app.get("/api/items")
        async def list_items():
            """Up to ITEM_LIST_LIMIT items in table order."""
            try:
                items = await self.item_store.list_recent(ITEM_LIST_LIMIT)
            except STORE_ERRORS as e:
                self.logger.error("DynamoDB Scan error", error=str(e), details=e.details)
                raise HTTPException(status_code=500, detail="Failed to list items")

            return {
                "count": len(items),
                "items": [item.to_dict() for item in items],
            }

        @self.app.put("/api/items/{item_id}")
        async def update_item(item_id: str, request: UpdateItemRequest):
            """Replace the data of one version and invalidate the cached copy."""
            try:
                await self.item_cache.update_item(item_id, request.timestamp, request.data)
            except STORE_ERRORS + CACHE_ERRORS as e:
                self.logger.error("DynamoDB UpdateItem error", item_id=item_id, error=str(e), details=e.details)
                raise HTTPException(status_code=500, detail="Failed to update item")

            self.logger.info("Item updated", item_id=item_id, timestamp=request.timestamp)
            return {"message": "Item updated successfully"}

        @self.app.delete("/api/items/{item_id}")
        async def delete_item(item_id: str, request: DeleteItemRequest = Body(...)):
            """Delete one version and invalidate the cached copy."""
            try:
                await self.item_cache.delete_item(item_id, request.timestamp)
            except STORE_ERRORS + CACHE_ERRORS as e:
                self.logger.error("DynamoDB DeleteItem error", item_id=item_id, error=str(e), details=e.details)
                raise HTTPException(status_code=500, detail="Failed to delete item")

            self.logger.info("Item deleted", item_id=item_id, timestamp=request.timestamp)
            return {"message": "Item deleted successfully"}

        # Cache

        @self.app.post("/api/cache")
        async def set_cache(request: SetCacheRequest):
            """Store a JSON value under a key."""
            try:
                await self.cache.set(request.key, request.value, request.ttl)
            except CACHE_ERRORS as e:
                self.logger.error("Redis SET error", key=request.key, error=str(e), details=e.details)
                raise HTTPException(status_code=500, detail="Failed to set cache")

            return {
                "message": "Value cached successfully",
                "key": request.key,
                "ttl": request.ttl,
            }

        @self.app.get("/api/cache/{key}")
        async def get_cache(key: str):
            """Read a cached value."""
            try:
                value = await self.cache.get(key)
            except CacheMiss:
                raise HTTPException(status_code=404, detail="Key not found in cache")
            except SerializationFailure as e:
                # Written by something other than this service; report it as null
                self.logger.warning("Cached value is not JSON", key=key, details=e.details)
                value = None
            except CacheUnavailable as e:
                self.logger.error("Redis GET error", key=key, error=str(e), details=e.details)
                raise HTTPException(status_code=500, detail="Failed to get cache")

            return {
                "key": key,
                "value": value,
            }

        @self.app.delete("/api/cache/{key}")
        async def delete_cache(key: str):
            """Remove a cached key."""
            try:
                removed = await self.cache.delete(key)
            except CacheUnavailable as e:
                self.logger.error("Redis DEL error", key=key, error=str(e), details=e.details)
                raise HTTPException(status_code=500, detail="Failed to delete cache")

            return {
                "message": "Key deleted successfully",
                "deleted": removed > 0,
            }

        # Files

        @self.app.post("/api/upload")
        async def upload():
            """Placeholder; uploads are not implemented."""
            return {"message": "Upload endpoint - implement multipart file upload"}

        @self.app.get("/api/files")
        async def list_files():
            """Up to FILE_LIST_LIMIT objects of the data bucket."""
            try:
                files = await self.blob_store.list_objects(max_keys=FILE_LIST_LIMIT)
            except StoreUnavailable as e:
                self.logger.error("S3 ListObjects error", error=str(e), details=e.details)
                raise HTTPException(status_code=500, detail="Failed to list files")

            return {
                "bucket": self.blob_store.data_bucket,
                "count": len(files),
                "files": [entry.to_dict() for entry in files],
            }

    async def _check_dependencies(self):
        """Redis is pinged; DynamoDB and S3 report their configured names."""
        return {
            "redis": "healthy" if await self.cache.ping() else "unhealthy",
            "dynamodb": self.item_store.table_name,
            "s3": self.blob_store.data_bucket,
        }

    async def start(self):
        """Start API service components."""
        self.logger.info(
            "Server starting",
            port=self.config.port,
            environment=self.config.environment,
            dynamodb_table=self.config.dynamodb_table,
            s3_bucket_data=self.config.s3_bucket_data,
            redis=self.config.redis_address,
        )
        await self.cache.start()

    async def stop(self):
        """Stop API service components."""
        await self.cache.stop()
        self.logger.info("API service stopped")


def create_app(config: Optional[ServiceConfig] = None, **backends):
    """Create API service application."""
    service = ApiService(config, **backends)
    return service.app


def main() -> None:
    """Entry point for running the service directly."""
    service = ApiService(get_config("api"))
    service.run()


if __name__ == "__main__":
    main()
