"""
Shared error handling for the query cache.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error payload, suitable for surfacing to view code or logs."""

    code: str
    message: str
    details: Dict[str, Any] = {}


class QueryCacheException(Exception):
    """Base exception for the query cache."""

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


class UnknownQueryError(QueryCacheException):
    """A query name that was never registered with the coordinator."""

    def __init__(self, query: str, details: Optional[Dict[str, Any]] = None):
        self.query = query
        super().__init__("UNKNOWN_QUERY", f"Query '{query}' is not registered", details or {"query": query})


class ConfigurationError(QueryCacheException):
    """Invalid query definitions or coordinator settings."""

    def __init__(self, message: str = "Invalid configuration", details: Optional[Dict[str, Any]] = None):
        super().__init__("CONFIGURATION_ERROR", message, details)


class KeyCodecError(QueryCacheException):
    """Parameters that cannot be turned into a cache key, or a key that cannot be decoded."""

    def __init__(self, message: str = "Key codec error", details: Optional[Dict[str, Any]] = None):
        super().__init__("KEY_CODEC_ERROR", message, details)


class ExternalServiceError(QueryCacheException):
    """External service errors."""

    def __init__(self, service: str, message: str = "External service error", details: Optional[Dict[str, Any]] = None):
        super().__init__("EXTERNAL_SERVICE_ERROR", f"{service}: {message}", details)
