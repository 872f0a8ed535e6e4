"""
Command table and alias resolution

The dispatcher maps a command word to its handler through a static table.
Short names come from a fixed list of built-in aliases plus the user's
``Aliases`` preference. A user alias may carry arguments
(``mix = play-playlist 3``); extra words typed after the alias are
appended.

Rules:
- aliases never shadow a command name
- an alias must point at a command, never at another alias
- the table is rebuilt whenever the user's aliases change
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from ..exceptions import SpotCliError
from ..utils.logger import get_logger
from . import handlers
from .context import AppContext

logger = get_logger(__name__)

Handler = Callable[[AppContext, List[str]], bool]


@dataclass(frozen=True)
class Command:
    name: str
    handler: Handler
    usage: str
    summary: str
    group: str


COMMANDS: Sequence[Command] = (
    Command('search', handlers.cmd_search, 'search <query>', 'Search tracks', 'Search'),
    Command('search-episodes', handlers.cmd_search_episodes, 'search-episodes <query>',
            'Search podcast episodes', 'Search'),
    Command('search-albums', handlers.cmd_search_albums, 'search-albums <query>', 'Search albums', 'Search'),

    Command('play', handlers.cmd_play, 'play [n|uri]', 'Play search result n or a URI; resume without argument',
            'Playback'),
    Command('play-album', handlers.cmd_play_album, 'play-album <n|uri>', 'Play album n from the last album list',
            'Playback'),
    Command('play-playlist', handlers.cmd_play_playlist, 'play-playlist <n|uri>',
            'Play playlist n from the last playlist list', 'Playback'),
    Command('pause', handlers.cmd_pause, 'pause', 'Pause playback', 'Playback'),
    Command('resume', handlers.cmd_resume, 'resume', 'Resume playback', 'Playback'),
    Command('next', handlers.cmd_next, 'next', 'Skip to the next track', 'Playback'),
    Command('previous', handlers.cmd_previous, 'previous', 'Go back to the previous track', 'Playback'),

    Command('queue', handlers.cmd_queue, 'queue [n|uri]', 'Show the queue, or add search result n to it',
            'Queue and devices'),
    Command('devices', handlers.cmd_devices, 'devices', 'List available devices', 'Queue and devices'),
    Command('transfer', handlers.cmd_transfer, 'transfer <n|device id>', 'Move playback to device n',
            'Queue and devices'),

    Command('volume', handlers.cmd_volume, 'volume <0-100>', 'Set the volume', 'Player settings'),
    Command('seek', handlers.cmd_seek, 'seek <+/-seconds|seconds|m:ss>', 'Jump within the current track',
            'Player settings'),
    Command('shuffle', handlers.cmd_shuffle, 'shuffle <on|off|toggle>', 'Set shuffle', 'Player settings'),
    Command('repeat', handlers.cmd_repeat, 'repeat <track|context|off>', 'Set repeat mode', 'Player settings'),

    Command('status', handlers.cmd_status, 'status', 'Show what is playing', 'Status'),
    Command('watch', handlers.cmd_watch, 'watch [seconds]', 'Keep refreshing the status until a key is pressed',
            'Status'),

    Command('like', handlers.cmd_like, 'like [n]', 'Like the current track or search result n', 'Library'),
    Command('liked', handlers.cmd_liked, 'liked', 'List liked songs', 'Library'),
    Command('recent', handlers.cmd_recent, 'recent', 'List recently played tracks', 'Library'),
    Command('playlists', handlers.cmd_playlists, 'playlists', 'List your playlists', 'Library'),
    Command('playlist', handlers.cmd_playlist, 'playlist <n|id>', 'List the tracks of playlist n', 'Library'),
    Command('albums', handlers.cmd_albums, 'albums', 'List saved albums', 'Library'),

    Command('config', handlers.cmd_config, 'config [reset | <key> [value]]', 'Show or change settings',
            'Session'),
    Command('history', handlers.cmd_history, 'history', 'Show command history', 'Session'),
    Command('login', handlers.cmd_login, 'login', 'Log in to Spotify in the browser', 'Session'),
    Command('logout', handlers.cmd_logout, 'logout', 'Forget the stored login', 'Session'),
    Command('help', handlers.cmd_help, 'help [command]', 'Show help', 'Session'),
    Command('quit', handlers.cmd_quit, 'quit', 'Leave the shell', 'Session'),
)

BUILTIN_ALIASES: Sequence[Tuple[str, str]] = (
    ('s', 'search'),
    ('se', 'search-episodes'),
    ('sa', 'search-albums'),
    ('p', 'play'),
    ('pa', 'play-album'),
    ('pp', 'play-playlist'),
    ('stop', 'pause'),
    ('n', 'next'),
    ('skip', 'next'),
    ('prev', 'previous'),
    ('back', 'previous'),
    ('qu', 'queue'),
    ('d', 'devices'),
    ('vol', 'volume'),
    ('st', 'status'),
    ('now', 'status'),
    ('pl', 'playlists'),
    ('?', 'help'),
    ('q', 'quit'),
    ('exit', 'quit'),
)


class Dispatcher:
    """
    Resolves command words and runs handlers

    Attributes:
        commands: Command name -> Command
        aliases: Alias name -> (command name, preset arguments)
    """

    def __init__(
        self,
        commands: Sequence[Command] = COMMANDS,
        builtin_aliases: Sequence[Tuple[str, str]] = BUILTIN_ALIASES,
        user_aliases: Optional[Mapping[str, str]] = None,
    ):
        self.commands: Dict[str, Command] = {command.name: command for command in commands}
        self._builtin_aliases = list(builtin_aliases)
        self.aliases: Dict[str, Tuple[str, List[str]]] = {}
        self.rebuild(user_aliases or {})

    def rebuild(self, user_aliases: Mapping[str, str]) -> None:
        """Recompute the alias table from built-in and user aliases."""
        aliases: Dict[str, Tuple[str, List[str]]] = {}
        for alias, target in self._builtin_aliases:
            if alias not in self.commands and target in self.commands:
                aliases[alias] = (target, [])

        for alias, expansion in user_aliases.items():
            name = alias.lower()
            words = expansion.split()
            if name in self.commands:
                logger.warning(f"Alias '{alias}' ignored: it is the name of a command")
                continue
            if not words or words[0].lower() not in self.commands:
                logger.warning(f"Alias '{alias}' ignored: '{expansion}' does not start with a command")
                continue
            aliases[name] = (words[0].lower(), words[1:])

        self.aliases = aliases

    def bind(self, ctx: AppContext) -> None:
        """Attach to a context so ``help`` works and alias changes rebuild the table."""
        ctx.dispatcher = self
        ctx.alias_listeners.append(lambda: self.rebuild(ctx.prefs.aliases))
        self.rebuild(ctx.prefs.aliases)

    def resolve(self, word: str) -> Tuple[Optional[Command], List[str]]:
        """
        Find the command for a typed word

        Returns:
            Tuple of (command, preset arguments); (None, []) when unknown
        """
        name = word.lower()
        if name in self.commands:
            return self.commands[name], []
        if name in self.aliases:
            target, preset = self.aliases[name]
            return self.commands[target], list(preset)
        return None, []

    def dispatch(self, ctx: AppContext, argv: List[str]) -> bool:
        """
        Run one command line (already split into words)

        Returns:
            The handler's success flag; False for unknown commands
        """
        if not argv:
            return True

        command, preset = self.resolve(argv[0])
        if command is None:
            ctx.out.error(f"Unknown command '{argv[0]}'. Type 'help' for a list of commands.")
            return False

        logger.debug(f"Dispatching {command.name} {preset + argv[1:]}")
        ctx.auth.start_command()
        try:
            return bool(command.handler(ctx, preset + argv[1:]))
        except SpotCliError as e:
            ctx.out.error(e.message)
            return False

    def help_text(self, name: Optional[str] = None) -> Optional[str]:
        """
        Help for one command, or the grouped command list

        Returns:
            Text to print, None when ``name`` is unknown
        """
        if name:
            command, preset = self.resolve(name)
            if command is None:
                return None
            names = [a for a, (target, _) in sorted(self.aliases.items()) if target == command.name]
            lines = [f"{command.usage}", f"  {command.summary}"]
            if names:
                lines.append(f"  Aliases: {', '.join(names)}")
            if preset:
                lines.append(f"  '{name}' runs: {command.name} {' '.join(preset)}")
            return "\n".join(lines)

        lines = []
        groups: Dict[str, List[Command]] = {}
        for command in self.commands.values():
            groups.setdefault(command.group, []).append(command)
        width = max(len(command.usage) for command in self.commands.values())
        for group, commands in groups.items():
            lines.append(f"{group}:")
            for command in commands:
                lines.append(f"  {command.usage:<{width}}  {command.summary}")
        lines.append("")
        lines.append("Numbers refer to the most recent list of that kind (search, devices, playlists, albums).")
        lines.append("Type 'help <command>' for details and aliases.")
        return "\n".join(lines)
