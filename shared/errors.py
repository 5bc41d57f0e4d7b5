"""
Shared error handling for the API façade.

Backends raise the domain errors below; route handlers translate them into
HTTP responses with a generic ``{"error": <message>}`` body. Raw backend
error text goes to the logs through ``details`` and never to the client.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response format."""

    error: str


class AccessLayerException(Exception):
    """Base exception for façade services."""

    status_code: int = 500

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(error=self.message)


class BadRequest(AccessLayerException):
    """Malformed or unparseable request input."""

    status_code = 400

    def __init__(self, message: str = "Invalid request body", details: Optional[Dict[str, Any]] = None):
        super().__init__("BAD_REQUEST", message, details)


class NotFound(AccessLayerException):
    """No matching item or cache key."""

    status_code = 404

    def __init__(self, message: str = "Not found", details: Optional[Dict[str, Any]] = None):
        super().__init__("NOT_FOUND", message, details)


class CacheMiss(NotFound):
    """Key absent from the cache."""

    def __init__(self, key: str):
        super().__init__("Key not found in cache", {"key": key})
        self.key = key


class CacheUnavailable(AccessLayerException):
    """Cache backend unreachable or erroring."""

    status_code = 503

    def __init__(self, message: str = "Cache unavailable", details: Optional[Dict[str, Any]] = None):
        super().__init__("CACHE_UNAVAILABLE", message, details)


class StoreUnavailable(AccessLayerException):
    """Document or blob store unreachable or erroring."""

    def __init__(self, store: str, message: str = "Store unavailable", details: Optional[Dict[str, Any]] = None):
        super().__init__("STORE_UNAVAILABLE", f"{store}: {message}", details)
        self.store = store


class SerializationFailure(AccessLayerException):
    """Marshal/unmarshal error against a backend's native format."""

    def __init__(self, message: str = "Serialization failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("SERIALIZATION_FAILURE", message, details)
