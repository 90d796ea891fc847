"""
Centralized Exceptions
Error taxonomy and structured error handling for the sync engine.
"""

from typing import Dict, Any, Optional
from fastapi import HTTPException, status


class LockwatchError(Exception):
    """Base exception for lockwatch."""

    def __init__(self, message: str, error_code: str = "UNKNOWN", details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class FetchError(LockwatchError):
    """Poll request failed (non-2xx, network failure or unreadable body). Always transient."""

    def __init__(self, message: str = "Fetch failed", status_code: Optional[int] = None,
                 url: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.status_code = status_code
        self.url = url
        merged = dict(details or {})
        if status_code is not None:
            merged["status_code"] = status_code
        if url is not None:
            merged["url"] = url
        super().__init__(message, "FETCH_ERROR", merged)


class ProtocolError(LockwatchError):
    """Inbound push frame could not be parsed or validated."""

    def __init__(self, message: str = "Malformed frame", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "PROTOCOL_ERROR", details)


class TransportError(LockwatchError):
    """Push transport could not be used."""

    def __init__(self, message: str = "Connection error", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "TRANSPORT_ERROR", details)


class ValidationError(LockwatchError):
    """Data validation error."""

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "VALIDATION_ERROR", details)


class ConfigurationError(LockwatchError):
    """Configuration error."""

    def __init__(self, message: str = "Configuration error", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "CONFIG_ERROR", details)


# Error mapping to HTTP responses
ERROR_TO_HTTP_STATUS = {
    FetchError: status.HTTP_503_SERVICE_UNAVAILABLE,
    ProtocolError: status.HTTP_502_BAD_GATEWAY,
    TransportError: status.HTTP_503_SERVICE_UNAVAILABLE,
    ValidationError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ConfigurationError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def create_http_exception(error: LockwatchError) -> HTTPException:
    """Convert LockwatchError to HTTPException with proper status code."""
    status_code = ERROR_TO_HTTP_STATUS.get(type(error), status.HTTP_500_INTERNAL_SERVER_ERROR)

    return HTTPException(
        status_code=status_code,
        detail={
            "error": error.error_code,
            "message": error.message,
            "details": error.details
        }
    )


def create_structured_error_response(error: Exception) -> Dict[str, Any]:
    """Create structured error response for logging and API responses."""
    if isinstance(error, LockwatchError):
        return {
            "error_type": error.error_code,
            "message": error.message,
            "details": error.details,
        }
    return {
        "error_type": "UNKNOWN_ERROR",
        "message": str(error),
        "details": {},
    }
