"""
Utility functions and helpers for spotcli
Common functions for file handling, string formatting and time display
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Optional, Union


def atomic_write_json(path: Union[str, Path], data: Any, mode: Optional[int] = None) -> None:
    """
    Write JSON so that readers never see a half-written file

    Writes to a temporary file in the same directory, then renames it over
    the target. The parent directory is created if needed.

    Args:
        path: Destination file
        data: JSON-serializable object
        mode: Optional permission bits applied before the rename (e.g. 0o600)

    Raises:
        OSError: If the directory cannot be created or the file written
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
    try:
        with os.fdopen(fd, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2)
            f.flush()
            os.fsync(f.fileno())
        if mode is not None:
            try:
                os.chmod(tmp_name, mode)
            except OSError:
                # Windows ignores POSIX permission bits
                pass
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise


def format_duration(seconds: Union[int, float]) -> str:
    """
    Format duration in seconds to human-readable string

    Args:
        seconds: Duration in seconds

    Returns:
        Formatted duration string
    """
    if seconds < 0:
        return "0:00"

    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = int(seconds % 60)

    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    else:
        return f"{minutes}:{secs:02d}"


def format_ms(milliseconds: Optional[int]) -> str:
    """Format a millisecond position or length as m:ss."""
    if not milliseconds:
        return "0:00"
    return format_duration(milliseconds / 1000)


def truncate_string(text: str, max_length: int, suffix: str = "...") -> str:
    """
    Truncate string to maximum length with suffix

    Args:
        text: Original text
        max_length: Maximum length including suffix
        suffix: Suffix to add when truncating

    Returns:
        Truncated string
    """
    if len(text) <= max_length:
        return text

    truncate_length = max_length - len(suffix)
    if truncate_length <= 0:
        return suffix[:max_length]

    return text[:truncate_length] + suffix


def progress_bar(position: int, total: int, width: int = 20) -> str:
    """Plain-text bar such as ``[######--------------]``."""
    if total <= 0:
        return "[" + "-" * width + "]"
    filled = int(width * min(max(position, 0), total) / total)
    return "[" + "#" * filled + "-" * (width - filled) + "]"
