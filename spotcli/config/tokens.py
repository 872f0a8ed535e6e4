"""
Token bundle model and on-disk token storage

A TokenBundle is what the Spotify accounts service hands back after an
authorization-code exchange, plus the two facts needed to judge it later:
when it was obtained and which scopes were requested. The store keeps one
bundle in a JSON file under the user's application directory.
"""

import json
import time
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

from ..utils.helpers import atomic_write_json
from ..utils.logger import get_logger

logger = get_logger(__name__)

# Refresh this many seconds before the service-declared expiry
SAFETY_MARGIN = 60


@dataclass
class TokenBundle:
    """
    Access/refresh token pair with expiry bookkeeping

    Attributes:
        access_token: Bearer token attached to Web API calls
        refresh_token: Long-lived token used to obtain a new access token
        token_type: Usually "Bearer"
        expires_in: Lifetime of access_token in seconds
        obtained_at: Unix timestamp when access_token was issued
        scopes: Space-delimited scopes granted to this bundle
    """
    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "Bearer"
    expires_in: int = 3600
    obtained_at: int = 0
    scopes: str = ""

    def is_fresh(self, now: Optional[float] = None) -> bool:
        """True while the access token is usable with the safety margin applied."""
        if now is None:
            now = time.time()
        return now - self.obtained_at < self.expires_in - SAFETY_MARGIN

    def has_scopes(self, required: Iterable[str]) -> bool:
        """True if every required scope was granted."""
        granted = set(self.scopes.split())
        return all(scope in granted for scope in required)

    def missing_scopes(self, required: Iterable[str]) -> list:
        granted = set(self.scopes.split())
        return [scope for scope in required if scope not in granted]

    def seconds_left(self, now: Optional[float] = None) -> int:
        if now is None:
            now = time.time()
        return int(self.obtained_at + self.expires_in - now)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TokenBundle':
        """
        Build a bundle from persisted JSON

        Raises:
            KeyError: If access_token is missing
            ValueError / TypeError: If numeric fields are malformed
        """
        return cls(
            access_token=str(data['access_token']),
            refresh_token=data.get('refresh_token') or None,
            token_type=str(data.get('token_type') or 'Bearer'),
            expires_in=int(data.get('expires_in', 3600)),
            obtained_at=int(data.get('obtained_at', 0)),
            scopes=str(data.get('scopes') or ''),
        )


class TokenStore:
    """
    JSON file holding the current TokenBundle

    The parent directory is created on first save. Any problem reading the
    file is reported as a warning and treated as "no token", which leads
    the token manager to ask for a fresh login.
    """

    def __init__(self, path: Path):
        self.path = Path(path).expanduser()

    def load(self) -> Optional[TokenBundle]:
        """
        Load the stored bundle

        Returns:
            TokenBundle, or None when absent, unreadable or malformed
        """
        if not self.path.exists():
            return None

        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            bundle = TokenBundle.from_dict(data)
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning(f"Stored login at {self.path} is unreadable ({e}); you will need to log in again")
            return None

        if not bundle.access_token:
            return None
        return bundle

    def save(self, bundle: TokenBundle) -> bool:
        """
        Persist the bundle atomically with owner-only permissions

        Returns:
            True on success. Failures are logged, not raised: the in-memory
            token still works for the rest of the session.
        """
        try:
            atomic_write_json(self.path, bundle.to_dict(), mode=0o600)
            logger.debug(f"Token bundle saved to {self.path}")
            return True
        except OSError as e:
            logger.warning(f"Failed to save login to {self.path}: {e}")
            return False

    def clear(self) -> bool:
        """Delete the stored bundle. Returns True if a file was removed."""
        try:
            self.path.unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.warning(f"Failed to delete {self.path}: {e}")
            return False
