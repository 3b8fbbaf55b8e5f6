"""
Distimo API Client Error Classes

Every failure raised by the client derives from :class:`DistimoError`.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    """Error codes returned by the Distimo API that the client reacts to."""
    # Values must match the vendor's error_codes table literally; non-string
    # codes are never treated as expiry.
    ACCESS_TOKEN_EXPIRED = "ACCESS_TOKEN_EXPIRED"
    AUTHORIZATION_CODE_EXPIRED = "AUTHORIZATION_CODE_EXPIRED"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


# Codes that trigger a single token refresh and retry
TOKEN_EXPIRED_CODES = frozenset({
    ErrorCode.ACCESS_TOKEN_EXPIRED.value,
    ErrorCode.AUTHORIZATION_CODE_EXPIRED.value,
})


class DistimoError(Exception):
    """Base error class for the Distimo API client."""

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 0,
        details: Optional[Any] = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details if details is not None else {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "name": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "status_code": self.status_code,
            "details": self.details,
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"


class TransportError(DistimoError):
    """The HTTP request itself failed (connection, DNS, timeout)."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("TRANSPORT_ERROR", message, 0, details)


class ParseError(DistimoError):
    """The response body is not valid JSON."""

    def __init__(self, message: str, status_code: int = 0, details: Optional[Dict[str, Any]] = None):
        super().__init__("PARSE_ERROR", message, status_code, details)


class APIError(DistimoError):
    """The API answered with a non-200 status."""

    @classmethod
    def from_api_response(cls, body: Any, status_code: int) -> "APIError":
        """Create error from a parsed error body."""
        code = None
        message = None
        if isinstance(body, dict):
            code = body.get("code")
            message = body.get("message")
        return cls(
            code=str(code) if code is not None else ErrorCode.UNKNOWN_ERROR.value,
            message=str(message) if message else f"HTTP {status_code}",
            status_code=status_code,
            details=body,
        )


class AuthExpiredError(APIError):
    """Access token or authorization code expired; handled inside the client."""


class TokenRefreshError(APIError):
    """The refresh token could not be exchanged for a new access token."""

    def __init__(
        self,
        message: str,
        code: str = "TOKEN_REFRESH_FAILED",
        status_code: int = 0,
        details: Optional[Any] = None,
    ):
        super().__init__(code, message, status_code, details)


class ConfigurationError(DistimoError):
    """Configuration error."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("CONFIGURATION_ERROR", message, 0, details)


def is_distimo_error(error: Any) -> bool:
    """Check if error is a DistimoError."""
    return isinstance(error, DistimoError)


def is_token_expired_code(code: Any) -> bool:
    """Check if an API error code means the access token must be refreshed."""
    if isinstance(code, ErrorCode):
        code = code.value
    return isinstance(code, str) and code in TOKEN_EXPIRED_CODES
