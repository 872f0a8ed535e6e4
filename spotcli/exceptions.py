"""
Exception classes and failure taxonomies for spotcli.

The core (token manager, API gateway, session references) reports failures
as classified results rather than raising. The few exceptions defined here
are raised at well-defined seams and caught at the next boundary up:

Exception Hierarchy:
    SpotCliError (base)
        ConfigError - settings or preference file issues
            CredentialsError - client id / client secret missing
        AuthorizationError - the interactive authorization flow failed

Enumerations:
    AuthRequired - why the token manager cannot hand out a token
    AuthFailure - why an interactive authorization attempt failed
    ErrorKind - classification of a failed Web API call
"""

from enum import Enum
from typing import Optional


class SpotCliError(Exception):
    """
    Base exception for all spotcli errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional context for logging.
    """

    def __init__(self, message: str, details: Optional[dict] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


class ConfigError(SpotCliError):
    """
    Raised when a settings or preference value cannot be used.

    Common causes:
        - Invalid value passed to ``config <key> <value>``
        - Unknown preference key
        - Settings file with invalid YAML
    """
    pass


class CredentialsError(ConfigError):
    """
    Raised when the Spotify client credentials are not configured.

    This blocks every authenticated operation but never the process:
    the shell keeps running so the user can fix the environment and retry.
    """

    def __init__(self, missing: list) -> None:
        names = ", ".join(missing)
        super().__init__(
            f"Missing Spotify credentials: {names}. "
            f"Set them in your environment or in a .env file "
            f"(see https://developer.spotify.com/dashboard).",
            details={'missing': list(missing)},
        )
        self.missing = list(missing)


class AuthRequired(Enum):
    """Reasons the token manager needs a full re-authorization."""

    NO_TOKEN = "no_token"
    INSUFFICIENT_SCOPE = "insufficient_scope"
    NO_REFRESH_TOKEN = "no_refresh_token"
    REFRESH_FAILED = "refresh_failed"
    MISSING_CREDENTIALS = "missing_credentials"
    AUTHORIZATION_FAILED = "authorization_failed"

    @property
    def description(self) -> str:
        return _AUTH_REQUIRED_TEXT[self]


_AUTH_REQUIRED_TEXT = {
    AuthRequired.NO_TOKEN: "You are not logged in",
    AuthRequired.INSUFFICIENT_SCOPE: "Stored login is missing required permissions",
    AuthRequired.NO_REFRESH_TOKEN: "Login expired and cannot be renewed",
    AuthRequired.REFRESH_FAILED: "Login expired and renewal failed",
    AuthRequired.MISSING_CREDENTIALS: "Spotify client credentials are not configured",
    AuthRequired.AUTHORIZATION_FAILED: "Authorization did not complete",
}


class AuthFailure(Enum):
    """Failure modes of the interactive authorization flow."""

    MISSING_CREDENTIALS = "missing_credentials"
    BIND_FAILED = "bind_failed"
    DENIED = "denied"
    STATE_MISMATCH = "state_mismatch"
    MISSING_CODE = "missing_code"
    TIMEOUT = "timeout"
    EXCHANGE_FAILED = "exchange_failed"
    BUSY = "busy"


class AuthorizationError(SpotCliError):
    """
    Raised when the browser authorization handshake does not yield tokens.

    Attributes:
        kind: AuthFailure describing which step failed. STATE_MISMATCH is
              kept distinct from every other failure because it indicates
              a possibly forged callback.
    """

    def __init__(self, kind: AuthFailure, message: str, details: Optional[dict] = None) -> None:
        super().__init__(message, details)
        self.kind = kind


class ErrorKind(Enum):
    """Classification of a failed Web API call."""

    AUTH_REQUIRED = "auth_required"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NO_ACTIVE_DEVICE = "no_active_device"
    NOT_FOUND = "not_found"
    RATE_LIMITED = "rate_limited"
    SERVER_ERROR = "server_error"
    BAD_REQUEST = "bad_request"
    NETWORK = "network"
    INVALID_RESPONSE = "invalid_response"
