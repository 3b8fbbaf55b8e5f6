"""
Distimo API Python Client

A Python client for the Distimo mobile-analytics API (v4) with request
signing, automatic access-token refresh, and sync/async clients.
"""

from .client import (
    DistimoClient,
    DistimoAsyncClient,
    create_distimo_client,
    create_async_distimo_client,
)
from .types import (
    DistimoConfig,
    TokenResult,
    Application,
)
from .errors import (
    ErrorCode,
    DistimoError,
    TransportError,
    ParseError,
    APIError,
    TokenRefreshError,
    ConfigurationError,
    is_distimo_error,
    is_token_expired_code,
)
from .settings import Settings, SETTING_KEYS
from .signing import build_query_string, compute_signature, sign_params, verify_signature

__version__ = "0.1.0"
__all__ = [
    # Clients
    "DistimoClient",
    "DistimoAsyncClient",
    "create_distimo_client",
    "create_async_distimo_client",
    # Types
    "DistimoConfig",
    "TokenResult",
    "Application",
    # Errors
    "ErrorCode",
    "DistimoError",
    "TransportError",
    "ParseError",
    "APIError",
    "TokenRefreshError",
    "ConfigurationError",
    "is_distimo_error",
    "is_token_expired_code",
    # Settings
    "Settings",
    "SETTING_KEYS",
    # Signing
    "build_query_string",
    "compute_signature",
    "sign_params",
    "verify_signature",
]
