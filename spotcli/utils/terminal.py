"""
Keypress polling for the auto-refresh loop

``watch`` redraws the player status on a timer and returns to the prompt
as soon as any key is pressed. That needs the terminal in cbreak mode so a
single key is delivered without Enter. Without a TTY (pipes, tests,
Windows consoles without termios) callers fall back to a single render.
"""

import select
import sys
import time
from contextlib import contextmanager
from typing import Callable, Iterator

try:
    import termios
    import tty
except ImportError:
    termios = None
    tty = None


def can_poll_keys() -> bool:
    """True when stdin is an interactive terminal that supports cbreak mode."""
    try:
        return sys.stdin.isatty() and termios is not None and tty is not None
    except (AttributeError, ValueError):
        return False


@contextmanager
def cbreak_mode() -> Iterator[None]:
    """Deliver keys one at a time without echo; restores the terminal on exit."""
    fd = sys.stdin.fileno()
    old_attrs = termios.tcgetattr(fd)
    try:
        tty.setcbreak(fd)
        yield
    finally:
        termios.tcsetattr(fd, termios.TCSADRAIN, old_attrs)


def key_pressed(timeout: float) -> bool:
    """
    Wait up to ``timeout`` seconds for a key

    Must be called inside cbreak_mode(). Escape sequences (arrow keys) are
    drained so they count as one press.
    """
    try:
        ready, _, _ = select.select([sys.stdin], [], [], timeout)
    except (OSError, ValueError):
        return False
    if not ready:
        return False

    char = sys.stdin.read(1)
    if char == "\x1b":
        while True:
            try:
                more, _, _ = select.select([sys.stdin], [], [], 0.001)
            except (OSError, ValueError):
                break
            if not more:
                break
            sys.stdin.read(1)
    return True


def wait_for_key(seconds: float, poll_interval: float = 0.1,
                 clock: Callable[[], float] = time.monotonic) -> bool:
    """
    Sleep for ``seconds`` unless a key arrives first

    Returns:
        True if a key was pressed
    """
    deadline = clock() + seconds
    while True:
        remaining = deadline - clock()
        if remaining <= 0:
            return False
        if key_pressed(min(poll_interval, remaining)):
            return True
