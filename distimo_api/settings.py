"""
Distimo API Client Settings Store

Holds credentials and tokens for a single client instance.
"""

import threading
from typing import Any, Dict, Optional


CLIENT_ID = "clientID"
CLIENT_SECRET = "clientSecret"
PRIVATE_KEY = "privateKey"
ACCESS_TOKEN = "accessToken"
REFRESH_TOKEN = "refreshToken"
HASH_GENERATOR = "hashGenerator"

SETTING_KEYS = (
    CLIENT_ID,
    CLIENT_SECRET,
    PRIVATE_KEY,
    ACCESS_TOKEN,
    REFRESH_TOKEN,
    HASH_GENERATOR,
)


class Settings:
    """In-memory settings keyed by name (non-persistent)."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None) -> None:
        self._values: Dict[str, Any] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        """Get a setting; unset and falsy values read as None."""
        with self._lock:
            return self._values.get(key) or None

    def set(self, key: str, value: Any) -> None:
        """Overwrite a setting."""
        with self._lock:
            self._values[key] = value

    def set_tokens(self, access_token: str, refresh_token: Optional[str]) -> None:
        """Replace both tokens at once."""
        with self._lock:
            self._values[ACCESS_TOKEN] = access_token
            self._values[REFRESH_TOKEN] = refresh_token

    def as_dict(self) -> Dict[str, Any]:
        """Snapshot of all stored values."""
        with self._lock:
            return dict(self._values)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.get(key) is not None

    def __repr__(self) -> str:
        return f"Settings(keys={sorted(self.as_dict())!r})"
