"""
Input validation utilities
"""
import re
from typing import Optional, Tuple

SPOTIFY_ID_PATTERN = re.compile(r'^[a-zA-Z0-9]{22}$')
SPOTIFY_TYPES = ('track', 'episode', 'album', 'playlist', 'artist', 'show')

TRUE_WORDS = {'on', 'true', 'yes', '1', 'enable', 'enabled'}
FALSE_WORDS = {'off', 'false', 'no', '0', 'disable', 'disabled'}


def parse_bool(value: str) -> Optional[bool]:
    """
    Parse an on/off style word

    Returns:
        True, False, or None when the word is not recognised
    """
    word = str(value).strip().lower()
    if word in TRUE_WORDS:
        return True
    if word in FALSE_WORDS:
        return False
    return None


def is_digits(text: str) -> bool:
    """True for a non-empty run of ASCII digits."""
    return text.isascii() and text.isdigit()


def parse_int(value: str, minimum: Optional[int] = None, maximum: Optional[int] = None) -> Optional[int]:
    """Parse a whole number within optional bounds, None if invalid."""
    text = str(value).strip()
    digits = text[1:] if text[:1] in ("+", "-") else text
    if not is_digits(digits):
        return None
    number = int(text)
    if minimum is not None and number < minimum:
        return None
    if maximum is not None and number > maximum:
        return None
    return number


def validate_volume(value: str) -> Tuple[Optional[int], Optional[str]]:
    """
    Validate a volume percentage

    Returns:
        Tuple of (volume, error_message)
    """
    volume = parse_int(value, 0, 100)
    if volume is None:
        return None, "Volume must be a whole number from 0 to 100"
    return volume, None


def validate_seek(value: str) -> Tuple[Optional[int], bool, Optional[str]]:
    """
    Validate a seek argument

    ``+15`` and ``-10`` are relative to the current position, ``90`` and
    ``1:30`` are absolute.

    Returns:
        Tuple of (seconds, is_relative, error_message)
    """
    text = str(value).strip()
    if not text:
        return None, False, "Seek needs a position in seconds"

    relative = text[0] in '+-'
    sign = -1 if text[0] == '-' else 1
    body = text[1:] if relative else text

    if ':' in body:
        minutes, _, seconds = body.partition(':')
        if not (is_digits(minutes) and is_digits(seconds)) or int(seconds) >= 60:
            return None, relative, f"Invalid position: {value}"
        total = int(minutes) * 60 + int(seconds)
    elif is_digits(body):
        total = int(body)
    else:
        return None, relative, f"Invalid position: {value}"

    return sign * total, relative, None


def validate_shuffle(value: str) -> Tuple[Optional[str], Optional[str]]:
    """
    Returns:
        Tuple of ('on' | 'off' | 'toggle', error_message)
    """
    word = str(value).strip().lower()
    if word == 'toggle':
        return word, None
    state = parse_bool(word)
    if state is None:
        return None, "Shuffle expects on, off or toggle"
    return ('on' if state else 'off'), None


def validate_repeat(value: str) -> Tuple[Optional[str], Optional[str]]:
    """
    Returns:
        Tuple of ('track' | 'context' | 'off', error_message)
    """
    word = str(value).strip().lower()
    if word in ('track', 'context', 'off'):
        return word, None
    if word in ('all', 'playlist', 'album'):
        return 'context', None
    if word in ('one', 'song'):
        return 'track', None
    return None, "Repeat expects track, context or off"


def parse_spotify_reference(text: str) -> Tuple[Optional[str], Optional[str]]:
    """
    Extract type and id from a Spotify URI or open.spotify.com URL

    Args:
        text: ``spotify:track:<id>`` or ``https://open.spotify.com/track/<id>?si=...``

    Returns:
        Tuple of (type, id); (None, None) when the text is neither
    """
    if not text:
        return None, None

    if text.startswith('spotify:'):
        parts = text.split(':')
        if len(parts) >= 3 and parts[1] in SPOTIFY_TYPES:
            return parts[1], parts[2]
        return None, None

    if 'open.spotify.com/' in text:
        path = text.split('open.spotify.com/', 1)[1].split('?')[0].strip('/')
        segments = path.split('/')
        # Localised links look like /intl-de/track/<id>
        if segments and segments[0].startswith('intl-'):
            segments = segments[1:]
        if len(segments) >= 2 and segments[0] in SPOTIFY_TYPES:
            return segments[0], segments[1]

    return None, None


def to_spotify_uri(text: str, default_type: str) -> Optional[str]:
    """
    Normalise user input into a ``spotify:<type>:<id>`` URI

    Bare 22-character ids are taken as ``default_type``.
    """
    kind, item_id = parse_spotify_reference(text)
    if kind and item_id:
        return f"spotify:{kind}:{item_id}"
    if SPOTIFY_ID_PATTERN.match(text or ''):
        return f"spotify:{default_type}:{text}"
    return None
