"""
OAuth2 authorization and access-token lifecycle for the Spotify Web API

This module owns everything between "a command needs to call the API" and
"here is a bearer token that will be accepted":

- AuthFlowController runs the interactive authorization code flow once:
  it starts a local callback listener on the registered redirect URI,
  opens the browser on the consent page, waits (bounded) for exactly one
  callback, checks the anti-forgery state, exchanges the code for tokens
  and persists the resulting bundle.
- TokenManager hands out a currently-valid access token. It checks the
  stored bundle's scopes and freshness, refreshes it with the refresh
  token when it is stale, and reports a classified AuthRequired reason
  when only a full re-authorization can help.

Failure handling follows one rule: network and parsing problems during a
refresh never reach the caller as exceptions. The caller always gets a
token or a reason, and in interactive mode the reason is turned into one
authorization attempt.
"""

import secrets
import threading
import time
import webbrowser
import urllib.parse
from dataclasses import dataclass, replace
from http.server import HTTPServer, BaseHTTPRequestHandler
from typing import Callable, Dict, List, Optional

import requests

from .credentials import Credentials, get_credentials
from .settings import REQUIRED_SCOPES, Settings, get_settings
from .tokens import TokenBundle, TokenStore
from ..exceptions import AuthFailure, AuthorizationError, AuthRequired, CredentialsError
from ..utils.logger import get_logger

logger = get_logger(__name__)


SUCCESS_PAGE = """
<html>
<head><title>spotcli - Authorization complete</title></head>
<body style="font-family: Arial, sans-serif; text-align: center; margin-top: 50px;">
    <h1 style="color: #1DB954;">Authorization received</h1>
    <p>You can close this window and return to the terminal.</p>
</body>
</html>
"""

ERROR_PAGE = """
<html>
<head><title>spotcli - Authorization failed</title></head>
<body style="font-family: Arial, sans-serif; text-align: center; margin-top: 50px;">
    <h1 style="color: #E22134;">Authorization failed</h1>
    <p>Error: {error}</p>
    <p>Return to the terminal and try again.</p>
</body>
</html>
"""


class CallbackHandler(BaseHTTPRequestHandler):
    """
    HTTP request handler for the OAuth2 redirect

    Only the first request on the redirect path is recorded; everything
    else (favicon requests, repeated reloads) is answered without touching
    the recorded result. Validation of ``state`` happens in the waiting
    thread, not here.
    """

    def do_GET(self):
        parsed_url = urllib.parse.urlparse(self.path)
        if parsed_url.path != self.server.callback_path:
            self.send_response(404)
            self.end_headers()
            return

        query_params = urllib.parse.parse_qs(parsed_url.query)
        params = {key: values[0] for key, values in query_params.items() if values}

        if not self.server.callback_event.is_set():
            self.server.callback_params = params
            self.server.callback_event.set()

        if 'error' in params or 'code' not in params:
            error = params.get('error', 'missing authorization code')
            self._respond(400, ERROR_PAGE.format(error=error))
        else:
            self._respond(200, SUCCESS_PAGE)

    def _respond(self, status: int, body: str) -> None:
        self.send_response(status)
        self.send_header('Content-type', 'text/html')
        self.end_headers()
        self.wfile.write(body.encode('utf-8'))

    def log_message(self, format, *args):
        """Keep the HTTP server quiet; the terminal belongs to the shell."""
        pass


class CallbackServer(HTTPServer):
    """HTTPServer carrying the state of one pending callback."""

    def __init__(self, address, callback_path: str):
        super().__init__(address, CallbackHandler)
        self.callback_path = callback_path or '/'
        self.callback_params: Dict[str, str] = {}
        self.callback_event = threading.Event()


class AuthFlowController:
    """
    Interactive authorization code flow

    One call to run() talks to the outside world exactly once: one browser
    window, one listener, one code exchange. The controller refuses to run
    twice at the same time.

    Attributes:
        settings: Application settings (redirect URL, scopes, endpoints)
        store: Where the new bundle is persisted
        browser_opener: Callable used to open the consent page
        http: Object exposing ``post`` (the requests module by default)
        clock: Returns the current Unix time
    """

    def __init__(
        self,
        store: TokenStore,
        settings: Optional[Settings] = None,
        browser_opener: Callable[[str], bool] = webbrowser.open,
        http=None,
        clock: Callable[[], float] = time.time,
    ):
        self.settings = settings or get_settings()
        self.store = store
        self.browser_opener = browser_opener
        self.http = http or requests
        self.clock = clock
        self._running = False

    @property
    def redirect_uri(self) -> str:
        return self.settings.spotify.redirect_url

    @property
    def scope(self) -> str:
        """Required scopes plus any extra ones configured in settings."""
        extra = [s for s in self.settings.spotify.scopes if s not in REQUIRED_SCOPES]
        return " ".join(REQUIRED_SCOPES + extra)

    def build_authorization_url(self, client_id: str, state: str) -> str:
        """Consent page URL for this application and state token."""
        params = {
            'client_id': client_id,
            'response_type': 'code',
            'redirect_uri': self.redirect_uri,
            'scope': self.scope,
            'state': state,
            'show_dialog': 'false',
        }
        return f"{self.settings.network.authorize_url}?{urllib.parse.urlencode(params)}"

    def run(self, timeout: Optional[float] = None) -> TokenBundle:
        """
        Perform the full authorization flow

        Args:
            timeout: Seconds to wait for the browser callback, defaults to
                     ``auth.callback_timeout`` from settings

        Returns:
            The new TokenBundle, already persisted

        Raises:
            AuthorizationError: With the AuthFailure kind of the failed step
        """
        if self._running:
            raise AuthorizationError(AuthFailure.BUSY, "An authorization is already in progress")

        try:
            credentials = get_credentials(self.settings)
        except CredentialsError as e:
            raise AuthorizationError(AuthFailure.MISSING_CREDENTIALS, e.message, e.details)

        self._running = True
        try:
            timeout = timeout if timeout is not None else self.settings.auth.callback_timeout
            state = secrets.token_urlsafe(16)
            code = self._obtain_code(credentials, state, timeout)
            bundle = self.exchange_code(code, credentials)
            self.store.save(bundle)
            logger.console_info("Authorization successful!")
            return bundle
        finally:
            self._running = False

    def _start_listener(self) -> CallbackServer:
        parsed = urllib.parse.urlparse(self.redirect_uri)
        host = parsed.hostname or '127.0.0.1'
        port = parsed.port or 80
        try:
            return CallbackServer((host, port), parsed.path)
        except OSError as e:
            raise AuthorizationError(
                AuthFailure.BIND_FAILED,
                f"Could not listen on {host}:{port} for the authorization callback ({e}). "
                f"Another program may be using the port, or binding to it needs elevated "
                f"permission. Free the port or register a different redirect URL.",
                details={'host': host, 'port': port, 'errno': e.errno},
            )

    def _obtain_code(self, credentials: Credentials, state: str, timeout: float) -> str:
        server = self._start_listener()
        server_thread = threading.Thread(target=server.serve_forever, kwargs={'poll_interval': 0.2})
        server_thread.daemon = True
        server_thread.start()

        try:
            authorization_url = self.build_authorization_url(credentials.client_id, state)
            logger.console_info("Opening browser for Spotify authorization...")
            logger.console_info(f"If the browser doesn't open, visit: {authorization_url}")
            if self.settings.auth.open_browser:
                try:
                    self.browser_opener(authorization_url)
                except webbrowser.Error as e:
                    logger.warning(f"Could not open a browser: {e}")

            logger.console_info(f"Waiting up to {int(timeout)}s for the authorization callback...")
            if not server.callback_event.wait(timeout):
                raise AuthorizationError(
                    AuthFailure.TIMEOUT,
                    f"No authorization callback received within {int(timeout)} seconds",
                )
            params = dict(server.callback_params)
        finally:
            server.shutdown()
            server.server_close()
            server_thread.join(timeout=1)

        return self.validate_callback(params, state)

    @staticmethod
    def validate_callback(params: Dict[str, str], expected_state: str) -> str:
        """
        Check a callback's query parameters and extract the code

        Raises:
            AuthorizationError: DENIED, STATE_MISMATCH or MISSING_CODE
        """
        if 'error' in params:
            raise AuthorizationError(AuthFailure.DENIED, f"Authorization failed: {params['error']}")

        if params.get('state') != expected_state:
            raise AuthorizationError(
                AuthFailure.STATE_MISMATCH,
                "Authorization response did not match this request (state mismatch). "
                "The callback may have been forged; no tokens were stored.",
            )

        code = params.get('code')
        if not code:
            raise AuthorizationError(AuthFailure.MISSING_CODE, "No authorization code received")
        return code

    def exchange_code(self, code: str, credentials: Credentials) -> TokenBundle:
        """
        Exchange an authorization code for a token bundle

        Raises:
            AuthorizationError: EXCHANGE_FAILED on transport, HTTP or parse errors
        """
        data = {
            'grant_type': 'authorization_code',
            'code': code,
            'redirect_uri': self.redirect_uri,
            **credentials.as_form(),
        }
        try:
            response = self.http.post(
                self.settings.network.token_url,
                data=data,
                headers={'Content-Type': 'application/x-www-form-urlencoded'},
                timeout=self.settings.network.request_timeout,
            )
            response.raise_for_status()
            token_data = response.json()
            return TokenBundle(
                access_token=str(token_data['access_token']),
                refresh_token=token_data.get('refresh_token'),
                token_type=token_data.get('token_type', 'Bearer'),
                expires_in=int(token_data.get('expires_in', 3600)),
                obtained_at=int(self.clock()),
                scopes=self.scope,
            )
        except (requests.RequestException, ValueError, KeyError, TypeError) as e:
            raise AuthorizationError(AuthFailure.EXCHANGE_FAILED, f"Failed to exchange authorization code: {e}")


@dataclass(frozen=True)
class TokenResult:
    """Outcome of asking for a token: either a token or the reason there is none."""
    access_token: Optional[str] = None
    reason: Optional[AuthRequired] = None

    @property
    def ok(self) -> bool:
        return self.access_token is not None


class TokenManager:
    """
    Access-token lifecycle

    Attributes:
        store: Persistent token storage
        auth_flow: Controller used when a full re-authorization is needed
        required_scopes: Scopes every usable bundle must carry
    """

    def __init__(
        self,
        store: TokenStore,
        settings: Optional[Settings] = None,
        auth_flow: Optional[AuthFlowController] = None,
        http=None,
        clock: Callable[[], float] = time.time,
        required_scopes: Optional[List[str]] = None,
    ):
        self.settings = settings or get_settings()
        self.store = store
        self.http = http or requests
        self.clock = clock
        self.auth_flow = auth_flow or AuthFlowController(store, self.settings, http=self.http, clock=clock)
        self.required_scopes = list(required_scopes if required_scopes is not None else REQUIRED_SCOPES)
        self._bundle: Optional[TokenBundle] = None
        self._flow_used = False

    def start_command(self) -> None:
        """Allow one automatic authorization for the next command."""
        self._flow_used = False

    def get_access_token(self) -> TokenResult:
        """
        Return a currently-valid access token or the reason there is none

        Never runs the interactive flow and never raises for network or
        parse problems.
        """
        if self._bundle is None:
            self._bundle = self.store.load()

        bundle = self._bundle
        if bundle is None or not bundle.access_token:
            return TokenResult(reason=AuthRequired.NO_TOKEN)

        if not bundle.has_scopes(self.required_scopes):
            logger.debug(f"Stored token lacks scopes: {bundle.missing_scopes(self.required_scopes)}")
            return TokenResult(reason=AuthRequired.INSUFFICIENT_SCOPE)

        if bundle.is_fresh(self.clock()):
            return TokenResult(access_token=bundle.access_token)

        if not bundle.refresh_token:
            return TokenResult(reason=AuthRequired.NO_REFRESH_TOKEN)

        try:
            credentials = get_credentials(self.settings)
        except CredentialsError:
            return TokenResult(reason=AuthRequired.MISSING_CREDENTIALS)

        logger.debug("Access token expired, refreshing...")
        refreshed = self._refresh(bundle, credentials)
        if refreshed is None:
            return TokenResult(reason=AuthRequired.REFRESH_FAILED)

        self._bundle = refreshed
        self.store.save(refreshed)
        return TokenResult(access_token=refreshed.access_token)

    def _refresh(self, bundle: TokenBundle, credentials: Credentials) -> Optional[TokenBundle]:
        """
        Exchange the refresh token for a new access token

        Returns:
            Updated copy of the bundle, or None on any failure. The original
            bundle is never modified, so a failed refresh leaves nothing half
            updated.
        """
        data = {
            'grant_type': 'refresh_token',
            'refresh_token': bundle.refresh_token,
            **credentials.as_form(),
        }
        try:
            response = self.http.post(
                self.settings.network.token_url,
                data=data,
                headers={'Content-Type': 'application/x-www-form-urlencoded'},
                timeout=self.settings.network.request_timeout,
            )
            response.raise_for_status()
            new_token = response.json()
            return replace(
                bundle,
                access_token=str(new_token['access_token']),
                token_type=new_token.get('token_type', bundle.token_type),
                expires_in=int(new_token.get('expires_in', 3600)),
                obtained_at=int(self.clock()),
                # Spotify rotates refresh tokens only sometimes
                refresh_token=new_token.get('refresh_token') or bundle.refresh_token,
            )
        except (requests.RequestException, ValueError, KeyError, TypeError) as e:
            logger.warning(f"Failed to refresh login: {e}")
            return None

    def authorize(self) -> TokenResult:
        """
        Run the interactive authorization flow once

        Returns:
            TokenResult with the new token, or AUTHORIZATION_FAILED /
            MISSING_CREDENTIALS after reporting the failure to the user
        """
        try:
            bundle = self.auth_flow.run()
        except AuthorizationError as e:
            logger.error(e.message)
            reason = (AuthRequired.MISSING_CREDENTIALS if e.kind == AuthFailure.MISSING_CREDENTIALS
                      else AuthRequired.AUTHORIZATION_FAILED)
            return TokenResult(reason=reason)

        self._bundle = bundle
        return TokenResult(access_token=bundle.access_token)

    def get_valid_token(self, interactive: bool = True) -> Optional[str]:
        """
        Get a usable token, re-authorizing at most once when allowed

        Args:
            interactive: Run the browser flow when authorization is required.
                         In library mode the user is told to log in instead.

        Returns:
            Access token, or None after the reason has been reported
        """
        result = self.get_access_token()
        if result.ok:
            return result.access_token

        if result.reason == AuthRequired.MISSING_CREDENTIALS:
            try:
                get_credentials(self.settings)
            except CredentialsError as e:
                logger.error(e.message)
            return None

        if not interactive:
            logger.warning(f"{result.reason.description}. Run 'spotcli auth login' to authenticate.")
            return None

        if self._flow_used:
            logger.warning(f"{result.reason.description}. Run 'login' and retry the command.")
            return None

        logger.console_info(f"{result.reason.description}; starting authorization...")
        self._flow_used = True
        result = self.authorize()
        return result.access_token

    def reauthorize(self, interactive: bool = True) -> Optional[str]:
        """
        Discard the current bundle after the API rejected it

        Returns:
            New access token when an interactive authorization succeeded
        """
        self._bundle = None
        if not interactive:
            logger.warning("Spotify rejected the stored login. Run 'spotcli auth login' to authenticate.")
            return None
        if self._flow_used:
            return None
        logger.console_info("Spotify rejected the stored login; starting authorization...")
        self._flow_used = True
        return self.authorize().access_token

    def invalidate(self) -> None:
        """Forget the in-memory bundle so the next call re-reads the store."""
        self._bundle = None

    def revoke(self) -> bool:
        """
        Delete stored tokens (logout)

        Only local storage is cleared; the tokens stay valid on Spotify's
        side until they expire.
        """
        self._bundle = None
        return self.store.clear()

    def describe(self) -> Dict[str, object]:
        """Summary of the stored login for ``auth status``."""
        bundle = self._bundle or self.store.load()
        if bundle is None:
            return {'logged_in': False}
        now = self.clock()
        return {
            'logged_in': True,
            'fresh': bundle.is_fresh(now),
            'seconds_left': max(bundle.seconds_left(now), 0),
            'has_refresh_token': bool(bundle.refresh_token),
            'missing_scopes': bundle.missing_scopes(self.required_scopes),
        }


# Global token manager, shared by the CLI and the shell
_auth_instance: Optional[TokenManager] = None


def get_auth() -> TokenManager:
    """
    Get the global token manager (singleton pattern)

    Returns:
        TokenManager bound to the configured token file
    """
    global _auth_instance
    if not _auth_instance:
        settings = get_settings()
        _auth_instance = TokenManager(TokenStore(settings.get_token_storage_path()), settings)
    return _auth_instance


def reset_auth() -> None:
    """
    Reset the global token manager

    This does not delete stored tokens; use TokenManager.revoke() for logout.
    """
    global _auth_instance
    _auth_instance = None
