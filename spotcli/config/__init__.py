"""
Configuration and authorization for spotcli

Application settings (settings.py) come from YAML and the environment and
are rarely edited. User preferences (preferences.py) are edited from the
shell and stored as JSON. The remaining modules handle the Spotify login:

- credentials.py: client id / client secret lookup
- tokens.py: TokenBundle and its JSON file
- auth.py: the browser authorization flow and the token manager

Typical usage:

    from spotcli.config import get_settings, get_auth

    settings = get_settings()
    token = get_auth().get_valid_token()
"""

from .settings import get_settings, reload_settings, Settings, REQUIRED_SCOPES
from .credentials import Credentials, get_credentials, has_credentials
from .tokens import TokenBundle, TokenStore, SAFETY_MARGIN
from .auth import get_auth, reset_auth, AuthFlowController, TokenManager, TokenResult
from .preferences import Preferences, PreferencesStore

__all__ = [
    # Settings
    'get_settings',
    'reload_settings',
    'Settings',
    'REQUIRED_SCOPES',

    # Credentials and tokens
    'Credentials',
    'get_credentials',
    'has_credentials',
    'TokenBundle',
    'TokenStore',
    'SAFETY_MARGIN',

    # Authorization
    'get_auth',
    'reset_auth',
    'AuthFlowController',
    'TokenManager',
    'TokenResult',

    # Preferences
    'Preferences',
    'PreferencesStore',
]
