"""
Interactive shell

A read-eval-print loop over the dispatcher: read a line, split it with
shell quoting rules, run the command, repeat until ``quit`` or end of
input. Lines are appended to a history file (when the History preference
is on) that is trimmed to HistoryLimit entries.
"""

import shlex
from pathlib import Path
from typing import Callable, List

import click

from ..utils.logger import get_logger
from .context import AppContext
from .dispatcher import Dispatcher

logger = get_logger(__name__)

PROMPT = "spotcli> "


class CommandHistory:
    """
    Shell input history stored one line per entry

    Write failures are logged and otherwise ignored; history is a
    convenience, not something worth interrupting the user for.
    """

    def __init__(self, path: Path, enabled: bool = True, limit: int = 100):
        self.path = Path(path).expanduser()
        self.enabled = enabled
        self.limit = limit

    def configure(self, enabled: bool, limit: int) -> None:
        self.enabled = enabled
        self.limit = limit
        if enabled:
            self._write(self.entries())

    def entries(self) -> List[str]:
        try:
            with open(self.path, 'r', encoding='utf-8', errors='replace') as f:
                lines = [line.rstrip('\n') for line in f if line.strip()]
        except FileNotFoundError:
            return []
        except OSError as e:
            logger.warning(f"Could not read history file {self.path}: {e}")
            return []
        return lines[-self.limit:] if self.limit else []

    def append(self, line: str) -> None:
        if not self.enabled or not line.strip():
            return
        self._write(self.entries() + [line.strip()])

    def _write(self, lines: List[str]) -> None:
        lines = lines[-self.limit:] if self.limit else []
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, 'w', encoding='utf-8', errors='replace') as f:
                f.writelines(line + '\n' for line in lines)
        except (OSError, ValueError) as e:
            logger.warning(f"Could not write history file {self.path}: {e}")


class Shell:
    """
    The interactive loop

    Attributes:
        ctx: Application context shared by all commands
        dispatcher: Command table
        read_line: input()-like prompt function (raises EOFError at end of input)
    """

    def __init__(self, ctx: AppContext, dispatcher: Dispatcher,
                 read_line: Callable[[str], str] = input):
        self.ctx = ctx
        self.dispatcher = dispatcher
        self.read_line = read_line
        dispatcher.bind(ctx)

    def banner(self) -> None:
        self.ctx.out.success("spotcli - Spotify in your terminal")
        self.ctx.out.muted("Type 'help' for commands, 'quit' to leave.")

    def execute(self, line: str) -> bool:
        """Run one input line; returns the command's success flag."""
        try:
            argv = shlex.split(line)
        except ValueError as e:
            self.ctx.out.error(f"Could not parse input: {e}")
            return False
        if not argv:
            return True
        if self.ctx.history is not None:
            self.ctx.history.append(line)
        return self.dispatcher.dispatch(self.ctx, argv)

    def run(self) -> int:
        """
        Loop until ``quit`` or end of input

        Ctrl-C cancels the current line or command and keeps the shell running.

        Returns:
            Exit code (0)
        """
        self.banner()
        while self.ctx.running:
            try:
                line = self.read_line(PROMPT)
            except EOFError:
                click.echo()
                break
            except KeyboardInterrupt:
                click.echo()
                continue

            try:
                self.execute(line)
            except KeyboardInterrupt:
                click.echo()
                self.ctx.out.muted("Cancelled")
            except Exception as e:
                logger.debug(f"Unexpected error running '{line}'", exc_info=True)
                self.ctx.out.error(f"Command failed: {e}")
        return 0


def create_shell(ctx: AppContext, read_line: Callable[[str], str] = input) -> Shell:
    """Shell with history wired to the configured history file."""
    ctx.history = CommandHistory(ctx.settings.get_history_path(), ctx.prefs.history, ctx.prefs.history_limit)
    return Shell(ctx, Dispatcher(user_aliases=ctx.prefs.aliases), read_line)
