"""
DynamoDB item store.

Items are stored one row per version under the composite key
(id: S, timestamp: N).
"""

import base64
import json
import time
import uuid
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, TYPE_CHECKING

import boto3
from boto3.dynamodb.types import Binary, TypeDeserializer, TypeSerializer

from shared.errors import NotFound, SerializationFailure
from ..models import Item, format_timestamp, utc_now_string
from .base import AwsAdapter

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


DEFAULT_LIST_LIMIT = 20


class TimestampClock:
    """Millisecond clock that never repeats or goes backwards within a process.

    Only called from the event loop thread, so no locking.
    """

    def __init__(self, now: Callable[[], float] = time.time):
        self._now = now
        self._last = 0

    def next(self) -> int:
        timestamp = int(self._now() * 1000)
        if timestamp <= self._last:
            timestamp = self._last + 1
        self._last = timestamp
        return timestamp


def _to_plain(value: Any) -> Any:
    """Convert deserialized DynamoDB values into JSON-friendly Python values."""
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {k: _to_plain(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_to_plain(v) for v in value]
    if isinstance(value, (set, frozenset)):
        return sorted(_to_plain(v) for v in value)
    if isinstance(value, Binary):
        return base64.b64encode(value.value).decode("ascii")
    return value


class DynamoItemStore(AwsAdapter):
    """Item reads and writes against a DynamoDB table."""

    backend = "dynamodb"

    def __init__(
        self,
        table_name: str,
        region: str = "us-east-1",
        *,
        endpoint_url: Optional[str] = None,
        client: Any = None,
        clock: Optional[TimestampClock] = None,
        metrics: Optional["MetricsCollector"] = None,
    ):
        if client is None:
            client = boto3.client("dynamodb", region_name=region, endpoint_url=endpoint_url)
        super().__init__(client, metrics=metrics)
        self.table_name = table_name
        self.clock = clock or TimestampClock()
        self._serializer = TypeSerializer()
        self._deserializer = TypeDeserializer()

    def _marshal(self, value: Any) -> Dict[str, Any]:
        """Serialize one value into a DynamoDB attribute value."""
        try:
            # DynamoDB numbers are decimals; floats are rejected by the serializer
            prepared = json.loads(json.dumps(value), parse_float=Decimal)
            return self._serializer.serialize(prepared)
        except (TypeError, ValueError, ArithmeticError) as e:
            raise SerializationFailure("Failed to marshal attribute", {"error": str(e)})

    def _to_attributes(self, item: Item) -> Dict[str, Any]:
        return {name: self._marshal(value) for name, value in item.to_dict().items()}

    def _to_item(self, attributes: Dict[str, Any]) -> Item:
        try:
            document = {
                name: _to_plain(self._deserializer.deserialize(value))
                for name, value in attributes.items()
            }
            return Item.model_validate(document)
        except (TypeError, ValueError, ArithmeticError) as e:
            raise SerializationFailure("Failed to unmarshal item", {"error": str(e)})

    @staticmethod
    def _key(item_id: str, timestamp: int) -> Dict[str, Any]:
        return {
            "id": {"S": item_id},
            "timestamp": {"N": str(timestamp)},
        }

    async def write(self, data: Dict[str, Any], item_id: Optional[str] = None) -> Item:
        """Store a new version; timestamp and createdAt are assigned here."""
        timestamp = self.clock.next()
        item = Item(
            id=item_id or uuid.uuid4().hex,
            timestamp=timestamp,
            data=data,
            created_at=format_timestamp(timestamp),
        )

        await self._call("put_item", TableName=self.table_name, Item=self._to_attributes(item))
        self.logger.debug("Item written", item_id=item.id, timestamp=item.timestamp)
        return item

    async def find_latest(self, item_id: str) -> Item:
        """Version of ``item_id`` with the greatest timestamp.

        Raises:
            NotFound: if the id has no stored versions
        """
        response = await self._call(
            "query",
            TableName=self.table_name,
            KeyConditionExpression="id = :id",
            ExpressionAttributeValues={":id": {"S": item_id}},
            ScanIndexForward=False,
            Limit=1,
        )

        rows = response.get("Items", [])
        if not rows:
            raise NotFound("Item not found", {"item_id": item_id})
        return self._to_item(rows[0])

    async def list_recent(self, limit: int = DEFAULT_LIST_LIMIT) -> List[Item]:
        """Capped scan in table order; not a complete enumeration."""
        response = await self._call("scan", TableName=self.table_name, Limit=limit)
        return [self._to_item(row) for row in response.get("Items", [])[:limit]]

    async def update(self, item_id: str, timestamp: int, data: Dict[str, Any]) -> None:
        """Replace ``data`` on one exact version and stamp ``updatedAt``.

        Conditionless: a key that does not exist yet is created.
        """
        await self._call(
            "update_item",
            TableName=self.table_name,
            Key=self._key(item_id, timestamp),
            UpdateExpression="SET #data = :data, updatedAt = :updatedAt",
            ExpressionAttributeNames={"#data": "data"},
            ExpressionAttributeValues={
                ":data": self._marshal(data),
                ":updatedAt": self._marshal(utc_now_string()),
            },
        )

    async def delete(self, item_id: str, timestamp: int) -> None:
        """Delete one exact version. Deleting a missing key is not an error."""
        await self._call(
            "delete_item",
            TableName=self.table_name,
            Key=self._key(item_id, timestamp),
        )
