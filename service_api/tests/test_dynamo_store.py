"""
Unit tests for the DynamoDB item store.
"""

import pytest
from unittest.mock import MagicMock

from botocore.exceptions import ClientError, EndpointConnectionError

from service_api.app.adapters.dynamo_store import DynamoItemStore, TimestampClock
from service_api.app.models import Item
from service_api.test_helpers import ItemFactory
from shared.errors import NotFound, SerializationFailure, StoreUnavailable


class TestTimestampClock:
    """Test cases for TimestampClock."""

    def test_uses_wall_clock_milliseconds(self):
        """Timestamps are epoch milliseconds."""
        clock = TimestampClock(now=lambda: 1_700_000_000.123)
        assert clock.next() == 1_700_000_000_123

    def test_strictly_increasing_when_clock_stalls(self):
        """Several calls within the same millisecond still increase."""
        clock = TimestampClock(now=lambda: 1_700_000_000.0)
        values = [clock.next() for _ in range(5)]
        assert values == sorted(set(values))
        assert values[-1] - values[0] == 4

    def test_never_goes_backwards(self):
        """A clock step backwards does not produce a smaller timestamp."""
        readings = iter([1_700_000_000.5, 1_699_999_999.0])
        clock = TimestampClock(now=lambda: next(readings))
        first = clock.next()
        assert clock.next() == first + 1


class TestDynamoItemStore:
    """Test cases for DynamoItemStore."""

    @pytest.fixture
    def client(self):
        """Mock boto3 DynamoDB client."""
        return MagicMock()

    @pytest.fixture
    def store(self, client):
        """Store with a frozen clock."""
        return DynamoItemStore(
            "items-test",
            client=client,
            clock=TimestampClock(now=lambda: 1_700_000_000.0),
        )

    @pytest.mark.asyncio
    async def test_write_assigns_timestamp_and_created_at(self, store, client):
        """Server-side timestamp and RFC 3339 createdAt are set."""
        item = await store.write({"n": 1}, item_id="x")

        assert item.id == "x"
        assert item.timestamp == 1_700_000_000_000
        assert item.created_at == "2023-11-14T22:13:20Z"
        assert item.data == {"n": 1}
        client.put_item.assert_called_once()

    @pytest.mark.asyncio
    async def test_write_marshals_attribute_values(self, store, client):
        """Floats become DynamoDB numbers, nested objects become maps."""
        await store.write({"price": 1.5, "n": 2, "nested": {"ok": True}, "tags": ["a"]}, item_id="x")

        kwargs = client.put_item.call_args.kwargs
        assert kwargs["TableName"] == "items-test"
        assert kwargs["Item"]["id"] == {"S": "x"}
        assert kwargs["Item"]["timestamp"] == {"N": "1700000000000"}
        assert kwargs["Item"]["createdAt"] == {"S": "2023-11-14T22:13:20Z"}
        assert kwargs["Item"]["data"] == {
            "M": {
                "price": {"N": "1.5"},
                "n": {"N": "2"},
                "nested": {"M": {"ok": {"BOOL": True}}},
                "tags": {"L": [{"S": "a"}]},
            }
        }
        assert "updatedAt" not in kwargs["Item"]

    @pytest.mark.asyncio
    async def test_write_generates_id_when_missing(self, store):
        """An id is generated when the caller supplies none."""
        item = await store.write({"n": 1})
        assert item.id
        assert len(item.id) == 32

    @pytest.mark.asyncio
    async def test_write_timestamps_increase_for_same_id(self, store):
        """Consecutive writes to one id get strictly increasing timestamps."""
        first = await store.write({"n": 1}, item_id="x")
        second = await store.write({"n": 2}, item_id="x")
        assert second.timestamp > first.timestamp

    @pytest.mark.asyncio
    async def test_write_unserializable_data(self, store, client):
        """Values with no DynamoDB representation fail before any call."""
        with pytest.raises(SerializationFailure):
            await store.write({"bad": object()}, item_id="x")
        client.put_item.assert_not_called()

    @pytest.mark.asyncio
    async def test_write_client_error(self, store, client):
        """Backend errors surface as StoreUnavailable."""
        client.put_item.side_effect = ClientError(
            {"Error": {"Code": "ResourceNotFoundException", "Message": "no table"}},
            "PutItem",
        )

        with pytest.raises(StoreUnavailable) as exc_info:
            await store.write({"n": 1}, item_id="x")

        assert exc_info.value.store == "dynamodb"
        assert "no table" in exc_info.value.details["error"]

    @pytest.mark.asyncio
    async def test_find_latest_queries_newest_first(self, store, client):
        """Latest lookup is a descending query limited to one row."""
        client.query.return_value = {"Items": [ItemFactory.create_dynamo_row("x", 1_700_000_000_123, {"a": "b"})]}

        item = await store.find_latest("x")

        client.query.assert_called_once_with(
            TableName="items-test",
            KeyConditionExpression="id = :id",
            ExpressionAttributeValues={":id": {"S": "x"}},
            ScanIndexForward=False,
            Limit=1,
        )
        assert isinstance(item, Item)
        assert item.timestamp == 1_700_000_000_123
        assert item.data == {"a": "b"}

    @pytest.mark.asyncio
    async def test_find_latest_converts_numbers(self, store, client):
        """DynamoDB decimals come back as int or float."""
        client.query.return_value = {
            "Items": [
                {
                    "id": {"S": "x"},
                    "timestamp": {"N": "5"},
                    "data": {"M": {"n": {"N": "1"}, "f": {"N": "2.5"}, "l": {"L": [{"N": "3"}]}}},
                    "createdAt": {"S": "2024-01-01T00:00:00Z"},
                    "updatedAt": {"S": "2024-01-02T00:00:00Z"},
                }
            ]
        }

        item = await store.find_latest("x")

        assert item.data == {"n": 1, "f": 2.5, "l": [3]}
        assert isinstance(item.data["n"], int)
        assert isinstance(item.timestamp, int)
        assert item.updated_at == "2024-01-02T00:00:00Z"

    @pytest.mark.asyncio
    async def test_find_latest_not_found(self, store, client):
        """Zero versions is NotFound."""
        client.query.return_value = {"Items": []}

        with pytest.raises(NotFound):
            await store.find_latest("missing")

    @pytest.mark.asyncio
    async def test_find_latest_unreadable_row(self, store, client):
        """Rows that are not items raise SerializationFailure."""
        client.query.return_value = {"Items": [{"id": {"S": "x"}}]}

        with pytest.raises(SerializationFailure):
            await store.find_latest("x")

    @pytest.mark.asyncio
    async def test_find_latest_connection_error(self, store, client):
        """Transport errors surface as StoreUnavailable."""
        client.query.side_effect = EndpointConnectionError(endpoint_url="http://localhost:8000")

        with pytest.raises(StoreUnavailable):
            await store.find_latest("x")

    @pytest.mark.asyncio
    async def test_list_recent_scans_with_limit(self, store, client):
        """Listing is a capped scan."""
        client.scan.return_value = {
            "Items": [ItemFactory.create_dynamo_row(f"id-{i}", 1000 + i, {}) for i in range(3)]
        }

        items = await store.list_recent(20)

        client.scan.assert_called_once_with(TableName="items-test", Limit=20)
        assert [item.id for item in items] == ["id-0", "id-1", "id-2"]

    @pytest.mark.asyncio
    async def test_list_recent_empty_table(self, store, client):
        """An empty scan lists nothing."""
        client.scan.return_value = {}
        assert await store.list_recent() == []

    @pytest.mark.asyncio
    async def test_update_sets_data_and_updated_at(self, store, client):
        """Update targets the exact key and aliases the reserved word 'data'."""
        await store.update("x", 1_700_000_000_000, {"n": 2})

        kwargs = client.update_item.call_args.kwargs
        assert kwargs["Key"] == {"id": {"S": "x"}, "timestamp": {"N": "1700000000000"}}
        assert kwargs["UpdateExpression"] == "SET #data = :data, updatedAt = :updatedAt"
        assert kwargs["ExpressionAttributeNames"] == {"#data": "data"}
        assert kwargs["ExpressionAttributeValues"][":data"] == {"M": {"n": {"N": "2"}}}
        assert kwargs["ExpressionAttributeValues"][":updatedAt"]["S"].endswith("Z")
        assert "ConditionExpression" not in kwargs

    @pytest.mark.asyncio
    async def test_delete_exact_key(self, store, client):
        """Delete targets the exact key."""
        await store.delete("x", 42)

        client.delete_item.assert_called_once_with(
            TableName="items-test",
            Key={"id": {"S": "x"}, "timestamp": {"N": "42"}},
        )

    @pytest.mark.asyncio
    async def test_delete_error(self, store, client):
        """Delete errors surface as StoreUnavailable."""
        client.delete_item.side_effect = ClientError(
            {"Error": {"Code": "ProvisionedThroughputExceededException", "Message": "slow down"}},
            "DeleteItem",
        )

        with pytest.raises(StoreUnavailable):
            await store.delete("x", 42)
