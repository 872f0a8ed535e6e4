"""
Per-process session state shared by command handlers
"""

from .references import MAX_ITEMS, Resolution, SessionReferences, SlotKind, parse_reference

__all__ = [
    'MAX_ITEMS',
    'Resolution',
    'SessionReferences',
    'SlotKind',
    'parse_reference',
]
