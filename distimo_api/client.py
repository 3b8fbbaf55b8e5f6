"""
Distimo API Client

Synchronous and asynchronous clients for the Distimo analytics API (v4).
Every request is signed with the account's private key; an expired access
token is refreshed once and the request retried.
"""

import hmac
import inspect
import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Union
from urllib.parse import urlparse

import httpx

from .errors import (
    APIError,
    AuthExpiredError,
    ConfigurationError,
    ParseError,
    TokenRefreshError,
    TransportError,
    is_token_expired_code,
)
from .settings import (
    ACCESS_TOKEN,
    CLIENT_ID,
    CLIENT_SECRET,
    HASH_GENERATOR,
    PRIVATE_KEY,
    REFRESH_TOKEN,
    Settings,
)
from .signing import build_query_string, sign_params
from .types import Application, DistimoConfig, TokenResult


logger = logging.getLogger("distimo_api")

API_NAMESPACE = "/api/v4"
OAUTH_NAMESPACE = "/oauth"

# Merged under the caller's parameters; caller values win
DEFAULT_PARAMS = {"format": "json"}

ConfigInput = Union[DistimoConfig, Mapping[str, Any], None]
TokenListener = Callable[[TokenResult], Any]


class BaseDistimoClient:
    """
    State and request handling shared by the sync and async clients.

    Subclasses only add the I/O: sending requests and notifying listeners.
    """

    def __init__(self, config: ConfigInput = None) -> None:
        config = self._coerce_config(config)
        self._validate_config(config)

        self._base_url = config.base_url.rstrip("/")
        self._timeout = config.timeout
        self._debug = config.debug
        self._custom_headers = config.headers or {}

        # State
        self._settings = Settings(config.to_settings())
        self._token_listeners: List[TokenListener] = []

    @staticmethod
    def _coerce_config(config: ConfigInput) -> DistimoConfig:
        """Accept a DistimoConfig, an options mapping, or nothing."""
        if config is None:
            return DistimoConfig()
        if isinstance(config, DistimoConfig):
            return config
        if isinstance(config, Mapping):
            return DistimoConfig.from_options(config)
        raise ConfigurationError(
            f"Expected DistimoConfig or a mapping of options, got {type(config).__name__}"
        )

    def _validate_config(self, config: DistimoConfig) -> None:
        """Validate configuration."""
        parsed = urlparse(config.base_url or "")
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ConfigurationError("base_url must be a valid http(s) URL")
        if config.hash_generator:
            try:
                hmac.new(b"", b"", config.hash_generator).hexdigest()
            except (TypeError, ValueError) as e:
                raise ConfigurationError(
                    f"Unsupported hash_generator: {config.hash_generator!r}"
                ) from e

    def _log(self, message: str, *args: Any) -> None:
        """Log debug message."""
        if self._debug:
            logger.debug(f"[Distimo] {message}", *args)

    # =========================================================================
    # Settings
    # =========================================================================

    @property
    def settings(self) -> Settings:
        """The settings store owned by this client."""
        return self._settings

    def get(self, key: str) -> Optional[Any]:
        """Get a setting by key (``clientID``, ``accessToken``, ...)."""
        return self._settings.get(key)

    def set(self, key: str, value: Any) -> None:
        """Set a setting by key."""
        self._settings.set(key, value)

    # =========================================================================
    # Token Listeners
    # =========================================================================

    def add_token_listener(self, listener: TokenListener) -> None:
        """
        Register a callback invoked with the new TokenResult after every
        successful refresh. Use it to persist tokens between runs.
        """
        self._token_listeners.append(listener)

    def remove_token_listener(self, listener: TokenListener) -> None:
        """Unregister a token listener."""
        if listener in self._token_listeners:
            self._token_listeners.remove(listener)

    # =========================================================================
    # Internal Methods
    # =========================================================================

    def _api_url(self, endpoint: str) -> str:
        return f"{self._base_url}{API_NAMESPACE}/{endpoint.lstrip('/')}"

    def _token_url(self) -> str:
        return f"{self._base_url}{OAUTH_NAMESPACE}/token"

    def _request_headers(self) -> Dict[str, str]:
        return {"Accept": "application/json", **self._custom_headers}

    def _build_call_url(self, endpoint: str, params: Optional[Mapping[str, Any]]) -> str:
        """
        Build the signed request URL for one attempt.

        The query string is encoded here rather than by httpx so the text on
        the wire is exactly the text that was signed.
        """
        private_key = self._settings.get(PRIVATE_KEY)
        if not private_key:
            raise ConfigurationError("privateKey is required to sign API requests")

        query = {key: value for key, value in (params or {}).items() if value is not None}
        for key, value in DEFAULT_PARAMS.items():
            query.setdefault(key, value)

        digestmod = self._settings.get(HASH_GENERATOR)
        try:
            signed = sign_params(
                query,
                private_key,
                self._settings.get(CLIENT_ID),
                self._settings.get(ACCESS_TOKEN),
                digestmod=digestmod,
            )
        except (TypeError, ValueError) as e:
            raise ConfigurationError(
                f"Cannot sign request with hashGenerator {digestmod!r}: {e}"
            ) from e
        return f"{self._api_url(endpoint)}?{build_query_string(signed)}"

    def _refresh_form(self) -> Dict[str, str]:
        """Form body for the refresh_token grant."""
        refresh_token = self._settings.get(REFRESH_TOKEN)
        if not refresh_token:
            raise TokenRefreshError("No refresh token available")
        return {
            "refresh_token": refresh_token,
            "client_id": self._settings.get(CLIENT_ID) or "",
            "client_secret": self._settings.get(CLIENT_SECRET) or "",
            "grant_type": "refresh_token",
        }

    def _parse_body(self, response: httpx.Response) -> Any:
        """Parse a JSON body; an empty body reads as an empty object."""
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise ParseError(
                f"Invalid JSON in response: {e}",
                response.status_code,
                {"body": response.text[:500]},
            ) from e

    def _handle_response(self, response: httpx.Response, refreshable: bool) -> Any:
        """Return the parsed body of a 200 response, raise for anything else."""
        data = self._parse_body(response)

        if response.status_code == 200:
            return data

        error_cls = APIError
        if refreshable and isinstance(data, dict) and is_token_expired_code(data.get("code")):
            error_cls = AuthExpiredError
        raise error_cls.from_api_response(data, response.status_code)

    def _handle_token_response(self, response: httpx.Response) -> TokenResult:
        """Store the tokens from a token endpoint response."""
        data = self._parse_body(response)

        if response.status_code != 200:
            raise TokenRefreshError.from_api_response(data, response.status_code)

        if not isinstance(data, dict) or not data.get("access_token"):
            raise TokenRefreshError(
                "Token response did not contain an access_token",
                status_code=response.status_code,
                details=data,
            )

        result = TokenResult.from_dict(data)
        if not result.refresh_token:
            # Server kept the refresh token
            result.refresh_token = self._settings.get(REFRESH_TOKEN)
        self._settings.set_tokens(result.access_token, result.refresh_token)
        return result

    @staticmethod
    def _to_applications(response: Any) -> List[Application]:
        """Reshape a downloads breakdown keyed by application id."""
        if isinstance(response, dict):
            items = list(response.items())
        else:
            items = list(enumerate(response or []))
        return [Application.from_breakdown(key, item) for key, item in items]


class DistimoClient(BaseDistimoClient):
    """
    Distimo API Client - Synchronous entry point.

    Example:
        with DistimoClient({"clientID": "...", "privateKey": "...",
                            "accessToken": "...", "refreshToken": "..."}) as client:
            for app in client.applications():
                print(app.id, app.name)
    """

    def __init__(self, config: ConfigInput = None) -> None:
        """Initialize the Distimo API client."""
        super().__init__(config)

        # HTTP client
        self._http_client = httpx.Client(
            timeout=self._timeout,
            headers=self._request_headers(),
        )

        self._log("DistimoClient initialized")

    # =========================================================================
    # API Methods
    # =========================================================================

    def api_call(self, endpoint: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        """
        Make a signed GET request to the API.

        Args:
            endpoint: Path under /api/v4, e.g. "/downloads"
            params: Query parameters; ``format`` defaults to "json"

        Returns:
            The parsed JSON response

        Raises:
            APIError: If the API answers with a non-200 status
            TransportError: If the request could not be sent
            ParseError: If the response is not JSON
        """
        try:
            return self._execute_call(endpoint, params, refreshable=True)
        except AuthExpiredError as error:
            self._log(f"{error.code} on {endpoint}, refreshing access token")

        self.refresh_access_token()
        return self._execute_call(endpoint, params, refreshable=False)

    def applications(self) -> List[Application]:
        """List the account's applications."""
        response = self.api_call("/downloads", {"breakdown": "application"})
        return self._to_applications(response)

    def downloads(self, params: Optional[Mapping[str, Any]] = None) -> Any:
        """Get download statistics."""
        return self.api_call("/downloads", params)

    def apps(self, params: Optional[Mapping[str, Any]] = None) -> Any:
        """Get app assets."""
        return self.api_call("/assets/apps", params)

    def refresh_access_token(self) -> TokenResult:
        """
        Exchange the refresh token for a new token pair.

        Returns:
            TokenResult with the new tokens, already stored in settings
        """
        form = self._refresh_form()
        self._log("Refreshing access token")

        response = self._send("POST", self._token_url(), data=form)
        result = self._handle_token_response(response)

        for listener in list(self._token_listeners):
            listener(result)

        self._log("Access token refreshed")
        return result

    # =========================================================================
    # Internal Methods
    # =========================================================================

    def _execute_call(
        self,
        endpoint: str,
        params: Optional[Mapping[str, Any]],
        refreshable: bool,
    ) -> Any:
        """Execute a single signed request."""
        url = self._build_call_url(endpoint, params)
        self._log(f"GET {endpoint} (retry={not refreshable})")
        response = self._send("GET", url)
        return self._handle_response(response, refreshable)

    def _send(
        self,
        method: str,
        url: str,
        data: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        try:
            return self._http_client.request(method, url, data=data)
        except httpx.TimeoutException as e:
            raise TransportError("Request timeout", {"timeout": self._timeout}) from e
        except httpx.RequestError as e:
            raise TransportError(str(e) or type(e).__name__) from e

    def close(self) -> None:
        """Close the HTTP client."""
        self._http_client.close()

    def __enter__(self) -> "DistimoClient":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


# =============================================================================
# Async Client
# =============================================================================

class DistimoAsyncClient(BaseDistimoClient):
    """
    Distimo API Async Client - Asynchronous entry point.

    Same operations as DistimoClient as coroutines. Cancelling an
    ``api_call`` also cancels a refresh it has started; the stored tokens
    are left as they were.
    """

    def __init__(self, config: ConfigInput = None) -> None:
        """Initialize the async Distimo API client."""
        super().__init__(config)

        # HTTP client (created lazily)
        self._http_client: Optional[httpx.AsyncClient] = None

        self._log("DistimoAsyncClient initialized")

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=self._timeout,
                headers=self._request_headers(),
            )
        return self._http_client

    # =========================================================================
    # API Methods
    # =========================================================================

    async def api_call(self, endpoint: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        """Make a signed GET request to the API (see DistimoClient.api_call)."""
        try:
            return await self._execute_call(endpoint, params, refreshable=True)
        except AuthExpiredError as error:
            self._log(f"{error.code} on {endpoint}, refreshing access token")

        await self.refresh_access_token()
        return await self._execute_call(endpoint, params, refreshable=False)

    async def applications(self) -> List[Application]:
        """List the account's applications."""
        response = await self.api_call("/downloads", {"breakdown": "application"})
        return self._to_applications(response)

    async def downloads(self, params: Optional[Mapping[str, Any]] = None) -> Any:
        """Get download statistics."""
        return await self.api_call("/downloads", params)

    async def apps(self, params: Optional[Mapping[str, Any]] = None) -> Any:
        """Get app assets."""
        return await self.api_call("/assets/apps", params)

    async def refresh_access_token(self) -> TokenResult:
        """Exchange the refresh token for a new token pair."""
        form = self._refresh_form()
        self._log("Refreshing access token")

        response = await self._send("POST", self._token_url(), data=form)
        result = self._handle_token_response(response)

        for listener in list(self._token_listeners):
            outcome = listener(result)
            if inspect.isawaitable(outcome):
                await outcome

        self._log("Access token refreshed")
        return result

    # =========================================================================
    # Internal Methods
    # =========================================================================

    async def _execute_call(
        self,
        endpoint: str,
        params: Optional[Mapping[str, Any]],
        refreshable: bool,
    ) -> Any:
        """Execute a single signed request."""
        url = self._build_call_url(endpoint, params)
        self._log(f"GET {endpoint} (retry={not refreshable})")
        response = await self._send("GET", url)
        return self._handle_response(response, refreshable)

    async def _send(
        self,
        method: str,
        url: str,
        data: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        try:
            client = self._get_client()
            return await client.request(method, url, data=data)
        except httpx.TimeoutException as e:
            raise TransportError("Request timeout", {"timeout": self._timeout}) from e
        except httpx.RequestError as e:
            raise TransportError(str(e) or type(e).__name__) from e

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def __aenter__(self) -> "DistimoAsyncClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()


# =============================================================================
# Factory Functions
# =============================================================================

def create_distimo_client(config: ConfigInput = None) -> DistimoClient:
    """Create a new synchronous Distimo client."""
    return DistimoClient(config)


def create_async_distimo_client(config: ConfigInput = None) -> DistimoAsyncClient:
    """Create a new asynchronous Distimo client."""
    return DistimoAsyncClient(config)
