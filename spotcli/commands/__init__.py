"""
Interactive commands

- context.py: AppContext, the state every handler receives
- handlers.py: one function per command
- render.py: colored / compact terminal output
- dispatcher.py: command table and aliases
- shell.py: the read-eval-print loop and its history file
"""

from .context import AppContext, create_context
from .dispatcher import BUILTIN_ALIASES, COMMANDS, Command, Dispatcher
from .render import Renderer
from .shell import CommandHistory, Shell, create_shell

__all__ = [
    'AppContext',
    'create_context',
    'BUILTIN_ALIASES',
    'COMMANDS',
    'Command',
    'Dispatcher',
    'Renderer',
    'CommandHistory',
    'Shell',
    'create_shell',
]
