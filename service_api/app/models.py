"""
Data models for the API service.
"""

import math
from typing import Annotated, Dict, Any, Optional
from datetime import datetime, timezone
from enum import Enum

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, StrictInt, StrictStr, field_validator


def format_timestamp(epoch_ms: int) -> str:
    """RFC 3339 UTC string, second precision, for a millisecond epoch."""
    moment = datetime.fromtimestamp(epoch_ms / 1000, tz=timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%SZ")


def utc_now_string() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def require_finite(value: Any) -> Any:
    """Reject NaN and +/-Infinity anywhere in a decoded JSON value.

    The request body parser accepts these literals but they have no JSON
    representation, so they could never be served back.
    """
    if isinstance(value, float) and not math.isfinite(value):
        raise ValueError("non-finite numbers are not valid JSON")
    if isinstance(value, dict):
        for nested in value.values():
            require_finite(nested)
    elif isinstance(value, list):
        for nested in value:
            require_finite(nested)
    return value


FiniteJson = Annotated[Any, AfterValidator(require_finite)]
FiniteJsonObject = Annotated[Dict[str, Any], AfterValidator(require_finite)]


class ItemSource(str, Enum):
    """Where an item read was served from."""
    CACHE = "cache"
    DATABASE = "database"


class Item(BaseModel):
    """One timestamped version of a stored item.

    The primary key is (id, timestamp); the latest version of an id is the
    one with the greatest timestamp.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., description="Item ID")
    timestamp: int = Field(..., description="Server-assigned epoch milliseconds")
    data: Dict[str, Any] = Field(default_factory=dict, description="Arbitrary JSON payload")
    # Empty on rows an update created (updates are upserts)
    created_at: str = Field("", alias="createdAt", description="RFC 3339 creation time")
    updated_at: Optional[str] = Field(None, alias="updatedAt", description="RFC 3339 last update time")

    @field_validator("data", mode="before")
    @classmethod
    def _null_data_is_empty(cls, value: Any) -> Any:
        return {} if value is None else value

    def to_dict(self) -> Dict[str, Any]:
        """Wire representation (camelCase, unset fields omitted)."""
        return self.model_dump(by_alias=True, exclude_none=True)


class BlobObject(BaseModel):
    """Entry of a bucket listing."""

    model_config = ConfigDict(populate_by_name=True)

    key: str
    size: int = 0
    last_modified: Optional[datetime] = Field(None, alias="lastModified")

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class CreateItemRequest(BaseModel):
    """Request model for item creation."""
    id: Optional[StrictStr] = Field(None, min_length=1, description="Item ID, generated when omitted")
    data: FiniteJsonObject = Field(..., description="Item payload")


class UpdateItemRequest(BaseModel):
    """Request model for item update."""
    timestamp: StrictInt = Field(..., description="Timestamp of the version to update")
    data: FiniteJsonObject = Field(..., description="Replacement payload")


class DeleteItemRequest(BaseModel):
    """Request model for item deletion."""
    timestamp: StrictInt = Field(..., description="Timestamp of the version to delete")


class SetCacheRequest(BaseModel):
    """Request model for a cache write."""
    key: StrictStr = Field(..., min_length=1, description="Cache key")
    value: FiniteJson = Field(None, description="JSON value to cache")
    ttl: StrictInt = Field(0, ge=0, description="Seconds until expiry, 0 for none")

