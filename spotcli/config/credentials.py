"""
Spotify client credentials

The client id and secret identify this application to the Spotify accounts
service. They are read from settings (which pull them from the environment
or a .env file); this module only checks that both are present.
"""

from dataclasses import dataclass
from typing import Optional

from .settings import Settings, get_settings
from ..exceptions import CredentialsError


@dataclass(frozen=True)
class Credentials:
    client_id: str
    client_secret: str

    def as_form(self) -> dict:
        """Client authentication fields for a token endpoint request."""
        return {'client_id': self.client_id, 'client_secret': self.client_secret}


def get_credentials(settings: Optional[Settings] = None) -> Credentials:
    """
    Read the client credentials

    Args:
        settings: Settings to read from, defaults to the global instance

    Returns:
        Credentials with both values present

    Raises:
        CredentialsError: Naming every missing environment variable
    """
    settings = settings or get_settings()
    missing = []
    if not settings.spotify.client_id:
        missing.append('SPOTIFY_CLIENT_ID')
    if not settings.spotify.client_secret:
        missing.append('SPOTIFY_CLIENT_SECRET')
    if missing:
        raise CredentialsError(missing)
    return Credentials(settings.spotify.client_id, settings.spotify.client_secret)


def has_credentials(settings: Optional[Settings] = None) -> bool:
    try:
        get_credentials(settings)
    except CredentialsError:
        return False
    return True
