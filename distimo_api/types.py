"""
Distimo API Client Type Definitions

Configuration and the small typed results returned by the client.
"""

import os
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from .errors import ConfigurationError
from .settings import (
    ACCESS_TOKEN,
    CLIENT_ID,
    CLIENT_SECRET,
    HASH_GENERATOR,
    PRIVATE_KEY,
    REFRESH_TOKEN,
)


BASE_URL = "https://analytics.distimo.com"

# Option name -> DistimoConfig field
OPTION_FIELDS = {
    CLIENT_ID: "client_id",
    CLIENT_SECRET: "client_secret",
    PRIVATE_KEY: "private_key",
    ACCESS_TOKEN: "access_token",
    REFRESH_TOKEN: "refresh_token",
    HASH_GENERATOR: "hash_generator",
}

TRUTHY = {"1", "true", "yes", "on"}


@dataclass
class DistimoConfig:
    """Client configuration options."""

    # OAuth client credentials
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    # Shared key used to sign every request
    private_key: Optional[str] = None
    # Tokens from a previous authorization; replaced on refresh
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    # hashlib digest used for request signatures (default: sha1)
    hash_generator: Optional[str] = None
    # API base URL (default: https://analytics.distimo.com)
    base_url: str = BASE_URL
    # Request timeout in seconds (default: 30)
    timeout: float = 30.0
    # Enable debug logging (default: False)
    debug: bool = False
    # Custom headers to include in requests
    headers: Optional[Dict[str, str]] = None

    @classmethod
    def from_options(cls, options: Optional[Mapping[str, Any]]) -> "DistimoConfig":
        """
        Create from an options mapping.

        Accepts the camelCase option names (``clientID``, ``privateKey``, ...)
        as well as the field names. Unrecognized keys are ignored.
        """
        options = options or {}
        field_names = set(cls.__dataclass_fields__)
        values: Dict[str, Any] = {}
        for key, value in options.items():
            name = OPTION_FIELDS.get(key, key)
            if name in field_names:
                values[name] = value
        return cls(**values)

    @classmethod
    def from_env(
        cls,
        prefix: str = "DISTIMO_",
        environ: Optional[Mapping[str, str]] = None,
    ) -> "DistimoConfig":
        """Create from environment variables (``DISTIMO_CLIENT_ID`` etc.)."""
        env = os.environ if environ is None else environ
        values: Dict[str, Any] = {}
        for name in OPTION_FIELDS.values():
            value = env.get(prefix + name.upper())
            if value:
                values[name] = value
        if env.get(prefix + "BASE_URL"):
            values["base_url"] = env[prefix + "BASE_URL"]
        if env.get(prefix + "TIMEOUT"):
            try:
                values["timeout"] = float(env[prefix + "TIMEOUT"])
            except ValueError as e:
                raise ConfigurationError(
                    f"{prefix}TIMEOUT must be a number of seconds",
                    {"value": env[prefix + "TIMEOUT"]},
                ) from e
        if env.get(prefix + "DEBUG"):
            values["debug"] = env[prefix + "DEBUG"].strip().lower() in TRUTHY
        return cls(**values)

    def to_settings(self) -> Dict[str, str]:
        """Credential fields keyed by their option names, unset ones left out."""
        result: Dict[str, str] = {}
        for key, name in OPTION_FIELDS.items():
            value = getattr(self, name)
            if value is not None:
                result[key] = value
        return result


@dataclass
class TokenResult:
    """Tokens returned by the OAuth token endpoint."""

    access_token: str
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    token_type: str = "bearer"
    scope: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TokenResult":
        """Create from dictionary."""
        return cls(
            access_token=data.get("access_token", ""),
            refresh_token=data.get("refresh_token"),
            expires_in=data.get("expires_in"),
            token_type=data.get("token_type", "bearer"),
            scope=data.get("scope"),
        )


@dataclass
class Application:
    """An application as listed by the downloads breakdown."""

    id: str
    name: Optional[str] = None

    @classmethod
    def from_breakdown(cls, key: Any, item: Any) -> "Application":
        """Create from one entry of a ``breakdown=application`` response."""
        name = item.get("application") if isinstance(item, dict) else None
        return cls(id=str(key), name=name)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {"id": self.id, "name": self.name}
