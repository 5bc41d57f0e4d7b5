"""
API Service application package.

This package exposes item storage, a key/value cache and bucket listings
over HTTP. It provides:

- app.main: FastAPI routes, health and service lifecycle.
- app.adapters: DynamoDB item store and S3 bucket listing.
- app.cache: Redis cache and the cache-aside item accessor.
- app.models: Request, item and listing models.

Guidelines:
- The service is stateless; all state lives in DynamoDB, S3 and Redis.
- DynamoDB is the source of truth for items; Redis only speeds reads up.
- Backend errors are logged in full and reported to clients generically.
"""
