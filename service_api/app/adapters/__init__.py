"""
Adapters package for the API service.

Wraps the AWS backends the service fronts:

- DynamoItemStore: timestamped item versions in a DynamoDB table
- S3BlobStore: object listings of the data bucket

Adapters raise shared errors (StoreUnavailable, NotFound,
SerializationFailure) and never retry.
"""

from .dynamo_store import DynamoItemStore, TimestampClock
from .blob_store import S3BlobStore

__all__ = [
    "DynamoItemStore",
    "TimestampClock",
    "S3BlobStore",
]
