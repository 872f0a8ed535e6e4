"""
User preferences edited from the shell

Preferences are the knobs a user turns while using spotcli: colors,
compact output, aliases, the preferred playback device, history and the
auto-refresh interval of ``watch``. They are stored as a flat JSON object
with PascalCase keys, separate from the YAML application settings.

Loading always succeeds: missing keys are filled from defaults, unknown
keys are carried along untouched, and an unreadable file degrades to
defaults with a warning.
"""

import copy
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from ..exceptions import ConfigError
from ..utils.helpers import atomic_write_json
from ..utils.logger import get_logger
from ..utils.validation import parse_bool, parse_int

logger = get_logger(__name__)


DEFAULT_COLORS: Dict[str, str] = {
    'accent': 'green',
    'track': 'bright_white',
    'artist': 'cyan',
    'album': 'magenta',
    'index': 'yellow',
    'device': 'blue',
    'error': 'red',
    'muted': 'bright_black',
}

# Names accepted by click.style()
VALID_COLORS = {
    'black', 'red', 'green', 'yellow', 'blue', 'magenta', 'cyan', 'white', 'reset',
    'bright_black', 'bright_red', 'bright_green', 'bright_yellow', 'bright_blue',
    'bright_magenta', 'bright_cyan', 'bright_white',
}

# key -> (attribute, kind, min, max)
FIELDS = {
    'Device': ('device', str, None, None),
    'CompactMode': ('compact_mode', bool, None, None),
    'Notifications': ('notifications', bool, None, None),
    'AutoRefreshInterval': ('auto_refresh_interval', int, 1, 3600),
    'Logging': ('logging', bool, None, None),
    'History': ('history', bool, None, None),
    'HistoryLimit': ('history_limit', int, 0, 100000),
}


@dataclass
class Preferences:
    """
    In-memory preferences record

    Attributes:
        device: Preferred device id or name used when no device is active
        compact_mode: One-line rendering for listings and status
        notifications: Track-change notifications (delivery is platform specific)
        auto_refresh_interval: Seconds between refreshes in ``watch``
        logging: Write a detailed log file under the config directory
        history: Record shell input to the history file
        history_limit: Number of history lines kept
        colors: Color name per output role
        aliases: User alias name -> command
        extra: Persisted keys this version does not know about
    """
    device: str = ""
    compact_mode: bool = False
    notifications: bool = False
    auto_refresh_interval: int = 5
    logging: bool = False
    history: bool = True
    history_limit: int = 100
    colors: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_COLORS))
    aliases: Dict[str, str] = field(default_factory=dict)
    extra: Dict[str, Any] = field(default_factory=dict)

    def color(self, role: str) -> str:
        return self.colors.get(role) or DEFAULT_COLORS.get(role, 'reset')

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Preferences':
        """
        Merge persisted data over defaults

        Values of the wrong type are replaced by the default and logged;
        unknown keys go to ``extra``.
        """
        prefs = cls()
        for key, value in data.items():
            if key in FIELDS:
                attr, kind, _, _ = FIELDS[key]
                if kind is int and isinstance(value, bool):
                    logger.warning(f"Ignoring invalid preference {key}={value!r}")
                elif isinstance(value, kind):
                    setattr(prefs, attr, value)
                else:
                    logger.warning(f"Ignoring invalid preference {key}={value!r}")
            elif key == 'Colors':
                if isinstance(value, dict):
                    prefs.colors.update({k: v for k, v in value.items() if isinstance(v, str)})
            elif key == 'Aliases':
                if isinstance(value, dict):
                    prefs.aliases = {k: v for k, v in value.items() if isinstance(v, str)}
            else:
                prefs.extra[key] = value
        return prefs

    def to_dict(self) -> Dict[str, Any]:
        data = copy.deepcopy(self.extra)
        for key, (attr, _, _, _) in FIELDS.items():
            data[key] = getattr(self, attr)
        data['Colors'] = dict(self.colors)
        data['Aliases'] = dict(self.aliases)
        return data

    def set_value(self, key: str, value: str) -> str:
        """
        Change one preference from user text

        Args:
            key: Preference name (case-insensitive), ``color.<role>`` or
                 ``alias.<name>``
            value: Raw user input; an empty value removes an alias

        Returns:
            Canonical key that was changed

        Raises:
            ConfigError: Unknown key or invalid value
        """
        lowered = key.lower()

        if lowered.startswith('color.'):
            role = lowered.split('.', 1)[1]
            if role not in DEFAULT_COLORS:
                raise ConfigError(f"Unknown color role '{role}'. Roles: {', '.join(DEFAULT_COLORS)}")
            color = value.strip().lower()
            if color not in VALID_COLORS:
                raise ConfigError(f"Unknown color '{value}'. Colors: {', '.join(sorted(VALID_COLORS))}")
            self.colors[role] = color
            return f"Colors.{role}"

        if lowered.startswith('alias.'):
            name = key.split('.', 1)[1].strip()
            if not name or any(ch.isspace() for ch in name):
                raise ConfigError("Alias names must be a single word")
            if value.strip():
                self.aliases[name] = value.strip()
            else:
                self.aliases.pop(name, None)
            return f"Aliases.{name}"

        for canonical, (attr, kind, minimum, maximum) in FIELDS.items():
            if canonical.lower() != lowered:
                continue
            if kind is bool:
                parsed = parse_bool(value)
                if parsed is None:
                    raise ConfigError(f"{canonical} expects on/off, true/false or yes/no")
                setattr(self, attr, parsed)
            elif kind is int:
                parsed = parse_int(value, minimum, maximum)
                if parsed is None:
                    raise ConfigError(f"{canonical} expects a whole number between {minimum} and {maximum}")
                setattr(self, attr, parsed)
            else:
                setattr(self, attr, value.strip())
            return canonical

        raise ConfigError(f"Unknown setting '{key}'. Run 'config' to list settings.")


class PreferencesStore:
    """JSON file holding the user's Preferences."""

    def __init__(self, path: Path):
        self.path = Path(path).expanduser()

    def load(self) -> Preferences:
        if not self.path.exists():
            return Preferences()

        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError("top-level value is not an object")
        except (OSError, ValueError) as e:
            logger.warning(f"Preferences file {self.path} is unreadable ({e}); using defaults")
            return Preferences()

        return Preferences.from_dict(data)

    def save(self, prefs: Preferences) -> bool:
        """
        Write preferences atomically

        Returns:
            False when the file could not be written (the change still
            applies to the running session)
        """
        try:
            atomic_write_json(self.path, prefs.to_dict())
            return True
        except OSError as e:
            logger.warning(f"Failed to save preferences to {self.path}: {e}")
            return False

    def reset(self, keep_unknown: bool = True) -> Preferences:
        """Restore defaults and persist them."""
        current = self.load() if keep_unknown else Preferences()
        prefs = Preferences(extra=current.extra if keep_unknown else {})
        self.save(prefs)
        return prefs
