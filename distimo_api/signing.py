"""
Request Signing for the Distimo API

Every API request carries an HMAC of its query string and the current unix
timestamp, keyed with the account's private key:

    hash = HMAC-SHA1(private_key, query_string + str(timestamp))

The query string is built from the caller's parameters (plus ``format``) in
insertion order, before ``hash``, ``apikey``, ``t`` and ``access_token`` are
appended. The server rebuilds the same string, so the order and encoding
produced by :func:`build_query_string` must also be what goes on the wire.

Example:
    from distimo_api.signing import sign_params, build_query_string

    signed = sign_params({"format": "json"}, "private", "client-id", "token")
    url = "https://analytics.distimo.com/api/v4/downloads?" + build_query_string(signed)
"""

import hmac
import time
from typing import Any, Dict, Mapping, Optional
from urllib.parse import quote


DEFAULT_DIGEST = "sha1"

# Characters encodeURIComponent leaves untouched besides alphanumerics
URI_COMPONENT_SAFE = "-_.!~*'()"


def encode_value(value: Any) -> str:
    """
    Percent-encode a single query value.

    Booleans are written as ``true``/``false`` and sequences are joined
    with commas before encoding.
    """
    if isinstance(value, bool):
        text = "true" if value else "false"
    elif isinstance(value, (list, tuple)):
        text = ",".join(str(item) for item in value)
    else:
        text = str(value)
    return quote(text, safe=URI_COMPONENT_SAFE)


def build_query_string(params: Optional[Mapping[str, Any]]) -> str:
    """
    Convert a mapping into ``key1=value1&key2=value2``.

    Keys keep their insertion order and are not encoded; values are.

    Args:
        params: Query parameters

    Returns:
        The query string, without a leading ``?``
    """
    return "&".join(
        f"{key}={encode_value(value)}" for key, value in (params or {}).items()
    )


def compute_signature(
    query_string: str,
    timestamp: Any,
    private_key: str,
    digestmod: Optional[str] = None,
) -> str:
    """
    Compute the request signature.

    Args:
        query_string: Output of :func:`build_query_string`
        timestamp: Unix timestamp in seconds
        private_key: Shared signing key
        digestmod: hashlib digest name (default: sha1)

    Returns:
        Lowercase hex digest
    """
    message = f"{query_string}{timestamp}"
    return hmac.new(
        private_key.encode("utf-8"),
        message.encode("utf-8"),
        digestmod or DEFAULT_DIGEST,
    ).hexdigest()


def verify_signature(
    query_string: str,
    timestamp: Any,
    private_key: str,
    signature: str,
    digestmod: Optional[str] = None,
) -> bool:
    """Check a signature against the query string and timestamp in constant time."""
    expected = compute_signature(query_string, timestamp, private_key, digestmod)
    return hmac.compare_digest(expected, signature.lower())


def sign_params(
    params: Mapping[str, Any],
    private_key: str,
    client_id: Optional[str],
    access_token: Optional[str],
    timestamp: Optional[int] = None,
    digestmod: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Return a copy of ``params`` with the authentication fields appended.

    The signature covers ``params`` only. ``apikey`` and ``access_token``
    are left out when not available.
    """
    if timestamp is None:
        timestamp = int(time.time())
    t = str(timestamp)

    signed: Dict[str, Any] = dict(params)
    signed["hash"] = compute_signature(build_query_string(params), t, private_key, digestmod)
    if client_id is not None:
        signed["apikey"] = client_id
    signed["t"] = t
    if access_token is not None:
        signed["access_token"] = access_token
    return signed
