"""
Shared error handling for the tagged cache layer.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response format."""

    code: str
    message: str
    details: Dict[str, Any] = {}


class TaggedCacheException(Exception):
    """Base exception for the tagged cache layer."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            code=self.code,
            message=self.message,
            details=self.details
        )


class ValidationError(TaggedCacheException):
    """Validation-related errors."""

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)


class InvalidKeyError(ValidationError):
    """Cache key or tag name that cannot be used."""

    def __init__(self, key: Any, reason: str):
        super().__init__(f"Invalid key {key!r}: {reason}", {"key": str(key), "reason": reason})
        self.code = "INVALID_KEY"


class StoreUnavailableError(TaggedCacheException):
    """The underlying store failed or timed out.

    Never interpreted as a cache miss: treating an outage as a miss would send
    every caller to recompute against a backend that is already down.
    """

    def __init__(self, operation: str, message: str = "Cache store unavailable", details: Optional[Dict[str, Any]] = None):
        details = dict(details or {})
        details.setdefault("operation", operation)
        super().__init__("STORE_UNAVAILABLE", f"{operation}: {message}", details)
        self.operation = operation


class MalformedEnvelopeError(TaggedCacheException):
    """Bytes read back from the store are not a valid envelope."""

    def __init__(self, message: str = "Malformed cache envelope", details: Optional[Dict[str, Any]] = None):
        super().__init__("MALFORMED_ENVELOPE", message, details)


class LockHeldError(TaggedCacheException):
    """Another caller holds the lock for a key."""

    def __init__(self, key: str):
        super().__init__("LOCK_HELD", f"Lock for {key!r} is held by another caller", {"key": key})
        self.key = key


class WaitCancelledError(TaggedCacheException):
    """A wait for unlock was cancelled before it finished."""

    def __init__(self, key: str, waited_ms: int):
        super().__init__(
            "WAIT_CANCELLED",
            f"Wait for unlock of {key!r} cancelled after {waited_ms} ms",
            {"key": key, "waited_ms": waited_ms}
        )
        self.key = key
        self.waited_ms = waited_ms
