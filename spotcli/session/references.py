"""
Numbered references to the most recent listings

After ``search``, ``devices``, ``playlists`` or ``albums`` the user sees a
numbered list and can refer to an entry by its number in the next
command (``play 3``, ``transfer 2``). The table remembers the latest
listing of each kind, at most ten entries per kind.

Slots are independent: listing devices does not forget search results.
A new listing of the same kind replaces the previous one entirely.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..utils.validation import is_digits

MAX_ITEMS = 10


class SlotKind(Enum):
    """Listing kinds, with the command that fills each one."""

    SEARCH = "search"
    DEVICES = "devices"
    PLAYLISTS = "playlists"
    ALBUMS = "albums"

    @property
    def listing_command(self) -> str:
        return {
            SlotKind.SEARCH: "search",
            SlotKind.DEVICES: "devices",
            SlotKind.PLAYLISTS: "playlists",
            SlotKind.ALBUMS: "albums or search-albums",
        }[self]


@dataclass(frozen=True)
class Resolution:
    """
    Result of resolving a number against a slot

    Attributes:
        ok: True when ``item`` is set
        item: The referenced object
        message: User-facing explanation when resolution failed
    """
    ok: bool
    item: Any = None
    message: str = ""


class SessionReferences:
    """
    Latest listing per kind, for the lifetime of the process

    One instance is created by the application context and handed to
    every command handler.
    """

    def __init__(self):
        self._slots: Dict[SlotKind, List[Any]] = {kind: [] for kind in SlotKind}

    def set_slot(self, kind: SlotKind, items: Iterable[Any]) -> List[Any]:
        """
        Replace a slot with the first MAX_ITEMS entries of ``items``

        Returns:
            The stored entries, in order
        """
        stored = []
        for item in items:
            if len(stored) >= MAX_ITEMS:
                break
            stored.append(item)
        self._slots[kind] = stored
        return list(stored)

    def items(self, kind: SlotKind) -> List[Any]:
        return list(self._slots[kind])

    def resolve(self, kind: SlotKind, index: int) -> Resolution:
        """
        Look up the 1-based ``index`` in a slot

        Out-of-range and empty-slot lookups are normal outcomes with a
        message, not errors.
        """
        slot = self._slots[kind]
        if not slot:
            return Resolution(False, message=(
                f"No {kind.value} listed yet. Run '{kind.listing_command}' first."
            ))
        if 1 <= index <= len(slot):
            return Resolution(True, item=slot[index - 1])
        return Resolution(False, message=(
            f"Invalid number {index}: choose 1-{len(slot)} from the last {kind.value} list, "
            f"or run '{kind.listing_command}' again."
        ))


def parse_reference(text: str) -> Tuple[Optional[int], Optional[str]]:
    """
    Split user input into an index or a raw identifier

    ``"3"`` -> (3, None); ``"spotify:track:..."`` -> (None, text).
    Numbers that do not fit a slot are still returned as indices so that
    resolve() can explain the valid range.

    Returns:
        Tuple of (index, identifier); (None, None) for empty input
    """
    text = (text or "").strip()
    if not text:
        return None, None
    if is_digits(text) and len(text) <= 6:
        return int(text), None
    return None, text
