"""
S3 bucket listing.
"""

from typing import Any, List, Optional, TYPE_CHECKING

import boto3

from ..models import BlobObject
from .base import AwsAdapter

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


DEFAULT_MAX_KEYS = 100


class S3BlobStore(AwsAdapter):
    """Read-only view of the data and static buckets."""

    backend = "s3"

    def __init__(
        self,
        data_bucket: str,
        static_bucket: str = "",
        region: str = "us-east-1",
        *,
        endpoint_url: Optional[str] = None,
        client: Any = None,
        metrics: Optional["MetricsCollector"] = None,
    ):
        if client is None:
            client = boto3.client("s3", region_name=region, endpoint_url=endpoint_url)
        super().__init__(client, metrics=metrics)
        self.data_bucket = data_bucket
        self.static_bucket = static_bucket

    async def list_objects(self, bucket: Optional[str] = None, max_keys: int = DEFAULT_MAX_KEYS) -> List[BlobObject]:
        """List up to ``max_keys`` objects in backend order (data bucket by default)."""
        bucket = bucket or self.data_bucket
        response = await self._call("list_objects_v2", Bucket=bucket, MaxKeys=max_keys)

        return [
            BlobObject(
                key=obj["Key"],
                size=obj.get("Size", 0),
                last_modified=obj.get("LastModified"),
            )
            for obj in response.get("Contents", [])[:max_keys]
        ]
