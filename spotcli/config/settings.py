"""
Application settings for spotcli

This module loads the runtime settings that the user rarely touches: the
Spotify application registration, network behaviour, authorization timeouts,
logging and file locations. Settings come from a YAML file and from
environment variables (a local .env file is honoured through python-dotenv).

The configuration is organized into logical sections using dataclasses:
- Spotify application settings (credentials, redirect URL, scopes)
- Network settings (API base URL, timeouts, rate-limit delay)
- Authorization flow settings (callback timeout)
- Logging settings (level, file, rotation)
- Storage locations (tokens, preferences, history)

User-facing preferences edited from the shell (colors, aliases, compact
mode...) live in preferences.py and are stored separately as JSON.
"""

import os
import yaml
from pathlib import Path
from typing import Dict, Any, Optional, List
from dataclasses import dataclass, field, asdict
from urllib.parse import urlparse
from dotenv import load_dotenv

from ..exceptions import ConfigError

# Load environment variables from .env file if present
load_dotenv()


# Permissions every stored token must carry for the command set to work.
REQUIRED_SCOPES: List[str] = [
    "user-read-playback-state",
    "user-modify-playback-state",
    "user-read-currently-playing",
    "user-library-read",
    "user-library-modify",
    "user-read-recently-played",
    "playlist-read-private",
]


@dataclass
class SpotifyConfig:
    """
    Spotify application registration

    Sensitive values (client_id, client_secret) should be provided via
    environment variables. The redirect URL must match the one registered
    in the Spotify developer dashboard exactly.
    """
    client_id: str = ""
    client_secret: str = ""
    redirect_url: str = "http://127.0.0.1:8080/callback"
    scope: str = " ".join(REQUIRED_SCOPES)

    @property
    def scopes(self) -> List[str]:
        return self.scope.split()


@dataclass
class NetworkConfig:
    """Web API endpoints, request timeout and rate-limit wait."""
    api_base_url: str = "https://api.spotify.com/v1"
    authorize_url: str = "https://accounts.spotify.com/authorize"
    token_url: str = "https://accounts.spotify.com/api/token"
    request_timeout: int = 15
    rate_limit_delay: int = 5
    user_agent: str = "spotcli/1.0"


@dataclass
class AuthConfig:
    """Interactive authorization flow settings."""
    callback_timeout: int = 120
    open_browser: bool = True


@dataclass
class LoggingConfig:
    """
    Logging configuration and output settings

    Controls log level, optional file output with rotation, and console
    formatting. The file is only written when ``file`` is set here or the
    ``Logging`` preference is switched on.
    """
    level: str = "INFO"
    file: str = ""
    max_size: str = "5MB"
    backup_count: int = 3
    console_output: bool = True
    colored_output: bool = True


@dataclass
class SecurityConfig:
    """
    Storage locations

    Paths for the token bundle, user preferences and command history.
    All of them live under the per-user application directory by default.
    """
    config_directory: str = "~/.spotcli/"
    token_storage_path: str = "~/.spotcli/tokens.json"
    preferences_path: str = "~/.spotcli/preferences.json"
    history_path: str = "~/.spotcli/history"


class Settings:
    """
    Main settings class

    Loads configuration from the first YAML file found, then overrides
    secrets from environment variables. Directories are not created here;
    each store creates its own parent directory on first write.
    """

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize settings from config file and environment variables

        Args:
            config_path: Path to custom config file, if None uses default locations
        """
        self.config_path = config_path
        self.config_dir = Path.home() / ".spotcli"

        self.spotify = SpotifyConfig()
        self.network = NetworkConfig()
        self.auth = AuthConfig()
        self.logging = LoggingConfig()
        self.security = SecurityConfig()

        self._load_config()
        self._load_environment_variables()

    def _sections(self) -> Dict[str, Any]:
        return {
            'spotify': self.spotify,
            'network': self.network,
            'auth': self.auth,
            'logging': self.logging,
            'security': self.security,
        }

    def _load_config(self) -> None:
        """
        Load configuration from YAML file

        Searches the explicit path, the user directory and the working
        directory. The first file found wins.

        Raises:
            ConfigError: If an explicitly requested file cannot be parsed
        """
        config_paths = [
            self.config_path,
            self.config_dir / "settings.yaml",
            Path("spotcli.yaml"),
        ]

        config_data: Dict[str, Any] = {}
        for path in config_paths:
            if path and Path(path).expanduser().exists():
                try:
                    with open(Path(path).expanduser(), 'r', encoding='utf-8') as f:
                        config_data = yaml.safe_load(f) or {}
                    break
                except (OSError, yaml.YAMLError) as e:
                    if path == self.config_path:
                        raise ConfigError(f"Failed to load settings from {path}: {e}")
                    print(f"Warning: Failed to load settings from {path}: {e}")

        self._apply_config(config_data)

    def _apply_config(self, config_data: Dict[str, Any]) -> None:
        """
        Apply configuration data to dataclass instances

        Only attributes that exist on both sides are updated; unknown keys
        are ignored.

        Args:
            config_data: Dictionary containing configuration sections
        """
        config_mapping = self._sections()

        for section_name, section_data in config_data.items():
            if section_name in config_mapping and isinstance(section_data, dict):
                config_obj = config_mapping[section_name]
                for key, value in section_data.items():
                    if hasattr(config_obj, key):
                        setattr(config_obj, key, value)

    def _load_environment_variables(self) -> None:
        """Environment variables take precedence over the file for secrets."""
        env_mappings = {
            'SPOTIFY_CLIENT_ID': lambda v: setattr(self.spotify, 'client_id', v),
            'SPOTIFY_CLIENT_SECRET': lambda v: setattr(self.spotify, 'client_secret', v),
            'SPOTIFY_REDIRECT_URL': lambda v: setattr(self.spotify, 'redirect_url', v),
            'SPOTCLI_LOG_LEVEL': lambda v: setattr(self.logging, 'level', v),
        }

        for env_var, setter in env_mappings.items():
            value = os.getenv(env_var)
            if value:
                setter(value)

    def get_config_directory(self) -> Path:
        return Path(self.security.config_directory).expanduser()

    def get_token_storage_path(self) -> Path:
        return Path(self.security.token_storage_path).expanduser()

    def get_preferences_path(self) -> Path:
        return Path(self.security.preferences_path).expanduser()

    def get_history_path(self) -> Path:
        return Path(self.security.history_path).expanduser()

    def to_dict(self, include_secrets: bool = False) -> Dict[str, Dict[str, Any]]:
        """
        Serialize all sections

        Args:
            include_secrets: Keep client_id / client_secret in the output

        Returns:
            Mapping of section name to its fields
        """
        data = {name: asdict(section) for name, section in self._sections().items()}
        if not include_secrets:
            data['spotify']['client_id'] = "***" if self.spotify.client_id else ""
            data['spotify']['client_secret'] = "***" if self.spotify.client_secret else ""
        return data

    def validate(self) -> List[str]:
        """
        Validate current configuration

        Returns:
            List of human-readable problems, empty when the settings are usable
        """
        errors = []

        if not self.spotify.client_id or not self.spotify.client_secret:
            errors.append("Spotify client_id and client_secret are required "
                          "(SPOTIFY_CLIENT_ID / SPOTIFY_CLIENT_SECRET)")

        redirect = urlparse(self.spotify.redirect_url)
        if redirect.scheme not in ('http', 'https') or not redirect.hostname or not redirect.port:
            errors.append(f"Redirect URL must include scheme, host and port: {self.spotify.redirect_url}")

        missing_scopes = [s for s in REQUIRED_SCOPES if s not in self.spotify.scopes]
        if missing_scopes:
            errors.append(f"Configured scope is missing: {' '.join(missing_scopes)}")

        if self.logging.level.upper() not in ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'):
            errors.append(f"Invalid log level: {self.logging.level}")

        if self.network.rate_limit_delay < 0:
            errors.append("network.rate_limit_delay cannot be negative")

        return errors

    def __str__(self) -> str:
        sections = [
            f"Redirect: {self.spotify.redirect_url}",
            f"API: {self.network.api_base_url}",
            f"Tokens: {self.security.token_storage_path}",
        ]
        return f"Settings({', '.join(sections)})"


# Global settings instance, created on first access
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get the global settings instance

    Returns:
        The shared Settings instance, created lazily
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reload_settings(config_path: Optional[str] = None) -> Settings:
    """
    Reload settings from configuration files

    Args:
        config_path: Optional path to specific config file

    Returns:
        New Settings instance with reloaded configuration
    """
    global _settings
    _settings = Settings(config_path)
    return _settings
