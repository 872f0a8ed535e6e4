"""
Spotify Web API gateway

All Web API traffic goes through SpotifyClient.invoke(). It attaches the
bearer token obtained from the token manager, sends the request over a
shared requests.Session and turns every outcome into an ApiResult:

- 2xx: decoded JSON, or None for empty bodies (204 No Content)
- anything else: an ApiError classified by ErrorKind

Nothing raised by requests or by JSON decoding escapes invoke(). Each
failure is reported to the user once, here, so handlers only have to look
at ``result.ok``. NO_ACTIVE_DEVICE is the exception: the command layer
owns that message because it may recover by retrying on the preferred
device.

Requests are never retried automatically. A 401 discards the stored login
and starts one re-authorization, a 429 waits ``network.rate_limit_delay``
seconds; in both cases the user re-runs the command.
"""

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import requests

from ..config.auth import TokenManager, get_auth
from ..config.settings import Settings, get_settings
from ..exceptions import ErrorKind
from ..utils.logger import get_logger

logger = get_logger(__name__)

METHODS = ('GET', 'POST', 'PUT', 'DELETE')
PLAYER_PATH = '/me/player'


@dataclass(frozen=True)
class ApiError:
    """Classified Web API failure."""
    kind: ErrorKind
    status: Optional[int]
    message: str


@dataclass(frozen=True)
class ApiResult:
    """
    Outcome of one Web API call

    Attributes:
        data: Decoded JSON body, None for empty responses or failures
        error: ApiError on failure, None on success
    """
    data: Any = None
    error: Optional[ApiError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def kind(self) -> Optional[ErrorKind]:
        return self.error.kind if self.error else None


def _error_body(response: requests.Response) -> Dict[str, Any]:
    """Extract ``{'status', 'message', 'reason'}`` from an error response."""
    try:
        body = response.json()
    except ValueError:
        return {'message': response.text.strip()}
    if isinstance(body, dict):
        error = body.get('error')
        if isinstance(error, dict):
            return error
        if isinstance(error, str):
            return {'message': body.get('error_description') or error}
    return {}


class SpotifyClient:
    """
    Thin gateway over the Spotify Web API

    Attributes:
        token_manager: Source of access tokens
        settings: Network settings (base URL, timeout, rate-limit delay)
        interactive: Whether authorization may open a browser
    """

    def __init__(
        self,
        token_manager: Optional[TokenManager] = None,
        settings: Optional[Settings] = None,
        session: Optional[requests.Session] = None,
        interactive: bool = True,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.settings = settings or get_settings()
        self.token_manager = token_manager or get_auth()
        self.interactive = interactive
        self.sleep = sleep
        self._session = session or requests.Session()
        self._session.headers.update({'User-Agent': self.settings.network.user_agent})

    def close(self) -> None:
        self._session.close()

    def get(self, path: str, query: Optional[Dict[str, Any]] = None) -> ApiResult:
        return self.invoke('GET', path, query=query)

    def post(self, path: str, query: Optional[Dict[str, Any]] = None, body: Any = None) -> ApiResult:
        return self.invoke('POST', path, query=query, body=body)

    def put(self, path: str, query: Optional[Dict[str, Any]] = None, body: Any = None) -> ApiResult:
        return self.invoke('PUT', path, query=query, body=body)

    def delete(self, path: str, query: Optional[Dict[str, Any]] = None, body: Any = None) -> ApiResult:
        return self.invoke('DELETE', path, query=query, body=body)

    def invoke(
        self,
        method: str,
        path: str,
        query: Optional[Dict[str, Any]] = None,
        body: Any = None,
    ) -> ApiResult:
        """
        Perform one authenticated Web API call

        Args:
            method: GET, POST, PUT or DELETE
            path: API path starting with '/', relative to the base URL
            query: Query parameters; None values are dropped
            body: JSON-serializable request body

        Returns:
            ApiResult; never raises for HTTP, transport or decoding problems
        """
        method = method.upper()
        if method not in METHODS:
            raise ValueError(f"Unsupported HTTP method: {method}")

        token = self.token_manager.get_valid_token(interactive=self.interactive)
        if not token:
            # The token manager has already told the user what to do
            return ApiResult(error=ApiError(ErrorKind.AUTH_REQUIRED, None, "Authorization required"))

        url = f"{self.settings.network.api_base_url.rstrip('/')}{path}"
        params = {k: v for k, v in (query or {}).items() if v is not None}
        headers = {'Authorization': f"Bearer {token}"}
        if body is not None:
            headers['Content-Type'] = 'application/json'

        logger.debug(f"{method} {path} {params if params else ''}")
        try:
            response = self._session.request(
                method,
                url,
                params=params or None,
                json=body,
                headers=headers,
                timeout=self.settings.network.request_timeout,
            )
        except requests.RequestException as e:
            return self._fail(ErrorKind.NETWORK, None, f"Network error talking to Spotify: {e}")

        if 200 <= response.status_code < 300:
            if not response.content or not response.content.strip():
                return ApiResult()
            try:
                return ApiResult(data=response.json())
            except ValueError:
                return self._fail(ErrorKind.INVALID_RESPONSE, response.status_code,
                                  "Spotify returned a response that could not be read")

        return self._classify(response, path)

    def _classify(self, response: requests.Response, path: str) -> ApiResult:
        status = response.status_code
        error = _error_body(response)
        detail = error.get('message') or response.reason or f"HTTP {status}"
        reason = str(error.get('reason') or '')

        if status == 401:
            new_token = self.token_manager.reauthorize(interactive=self.interactive)
            if new_token:
                message = "Spotify rejected the stored login. You are logged in again; please retry the command."
            else:
                message = "Spotify rejected the stored login. Run 'login' and retry the command."
            return self._fail(ErrorKind.UNAUTHORIZED, status, message)

        if status == 403:
            if 'premium' in detail.lower() or reason == 'PREMIUM_REQUIRED':
                message = "This action requires Spotify Premium."
            else:
                message = f"Spotify refused the request: {detail}"
            return self._fail(ErrorKind.FORBIDDEN, status, message)

        if status == 404:
            if path.startswith(PLAYER_PATH) or reason == 'NO_ACTIVE_DEVICE':
                return self._fail(ErrorKind.NO_ACTIVE_DEVICE, status, "No active playback device")
            return self._fail(ErrorKind.NOT_FOUND, status, f"Not found: {detail}")

        if status == 429:
            delay = self.settings.network.rate_limit_delay
            logger.warning(f"Rate limited by Spotify, waiting {delay} seconds...")
            self.sleep(delay)
            return self._fail(ErrorKind.RATE_LIMITED, status,
                              "Spotify is rate limiting requests. Try again in a moment.")

        if status >= 500:
            return self._fail(ErrorKind.SERVER_ERROR, status,
                              f"Spotify is having trouble (HTTP {status}). Try again shortly.")

        return self._fail(ErrorKind.BAD_REQUEST, status, f"Request rejected (HTTP {status}): {detail}")

    def _fail(self, kind: ErrorKind, status: Optional[int], message: str) -> ApiResult:
        if kind == ErrorKind.NO_ACTIVE_DEVICE:
            logger.debug(f"{kind.value}: {message}")
        else:
            logger.error(message)
        return ApiResult(error=ApiError(kind, status, message))
