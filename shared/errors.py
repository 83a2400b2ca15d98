"""
Shared error handling for the cached serializer.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error payload, suitable for API error bodies."""

    code: str
    message: str
    details: Dict[str, Any] = {}


class CachedSerializerException(Exception):
    """Base exception for the cached serializer."""

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


class ConfigurationError(CachedSerializerException):
    """Invalid attribute declaration or registry configuration."""

    def __init__(self, message: str = "Invalid serializer configuration", details: Optional[Dict[str, Any]] = None):
        super().__init__("CONFIGURATION_ERROR", message, details)


class SubjectTypeMismatchError(CachedSerializerException):
    """Subject handed to a serializer is not of the declared subject type."""

    def __init__(self, expected: type, actual: type, details: Optional[Dict[str, Any]] = None):
        details = dict(details or {})
        details.setdefault("expected", expected.__name__)
        details.setdefault("actual", actual.__name__)
        super().__init__(
            "TYPE_MISMATCH",
            f"Expected a {expected.__name__} subject, got {actual.__name__}",
            details,
        )


class SubjectResolutionError(CachedSerializerException):
    """Subject type or subject identity cannot be determined."""

    def __init__(self, message: str = "Cannot resolve subject", details: Optional[Dict[str, Any]] = None):
        super().__init__("SUBJECT_RESOLUTION_ERROR", message, details)


class CacheBackendError(CachedSerializerException):
    """Cache backend errors."""

    def __init__(self, backend: str, message: str = "Cache backend error", details: Optional[Dict[str, Any]] = None):
        super().__init__("CACHE_BACKEND_ERROR", f"{backend}: {message}", details)
