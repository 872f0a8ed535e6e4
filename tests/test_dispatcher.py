"""Tests for command dispatch, aliases and the shell loop"""

from unittest.mock import Mock

import pytest

from spotcli.commands.dispatcher import COMMANDS, Command, Dispatcher
from spotcli.commands.shell import CommandHistory, Shell
from spotcli.exceptions import ConfigError


@pytest.fixture
def recorder():
    """Two fake commands that record their arguments"""
    calls = []

    def make(name):
        def handler(ctx, args):
            calls.append((name, args))
            return True
        return handler

    commands = [
        Command('play', make('play'), 'play [n]', 'Play', 'Playback'),
        Command('pause', make('pause'), 'pause', 'Pause', 'Playback'),
    ]
    return commands, calls


class TestDispatcher:
    """Test command resolution"""

    def test_every_command_is_unique(self):
        names = [command.name for command in COMMANDS]
        assert len(names) == len(set(names))

    def test_builtin_aliases(self):
        """Short names resolve to their command"""
        dispatcher = Dispatcher()
        assert dispatcher.resolve('p')[0].name == 'play'
        assert dispatcher.resolve('q')[0].name == 'quit'
        assert dispatcher.resolve('qu')[0].name == 'queue'
        assert dispatcher.resolve('PAUSE')[0].name == 'pause'
        assert dispatcher.resolve('nope') == (None, [])

    def test_dispatch_passes_arguments(self, app, recorder):
        commands, calls = recorder
        dispatcher = Dispatcher(commands, [('p', 'play')])

        assert dispatcher.dispatch(app, ['p', '3']) is True
        assert calls == [('play', ['3'])]

    def test_unknown_command(self, app, capsys):
        """Unknown words are reported, never guessed"""
        assert Dispatcher().dispatch(app, ['plya', '1']) is False
        assert "Unknown command 'plya'" in capsys.readouterr().err

    def test_user_alias_with_preset_arguments(self, app, recorder):
        """Words typed after an alias follow its preset arguments"""
        commands, calls = recorder
        dispatcher = Dispatcher(commands, [], {'fav': 'play 2'})

        dispatcher.dispatch(app, ['fav', 'extra'])

        assert calls == [('play', ['2', 'extra'])]

    def test_alias_cannot_shadow_command(self, recorder, caplog):
        """A user alias named like a command is ignored"""
        commands, calls = recorder
        dispatcher = Dispatcher(commands, [], {'pause': 'play'})

        assert dispatcher.resolve('pause')[0].name == 'pause'
        assert "ignored" in caplog.text

    def test_alias_chains_are_not_followed(self, recorder):
        """Aliases must point at commands, not at other aliases"""
        commands, _ = recorder
        dispatcher = Dispatcher(commands, [('p', 'play')], {'x': 'p 1'})
        assert dispatcher.resolve('x') == (None, [])

    def test_builtin_alias_to_missing_command_is_dropped(self, recorder):
        commands, _ = recorder
        dispatcher = Dispatcher(commands, [('n', 'next')])
        assert 'n' not in dispatcher.aliases

    def test_alias_change_rebuilds_table(self, app):
        """'config alias.x ...' takes effect immediately"""
        dispatcher = app.dispatcher
        assert dispatcher.resolve('mix') == (None, [])

        assert dispatcher.dispatch(app, ['config', 'alias.mix', 'play-playlist', '3']) is True

        command, preset = dispatcher.resolve('mix')
        assert command.name == 'play-playlist'
        assert preset == ['3']

    def test_each_command_may_authorize_once(self, app, recorder):
        """Every dispatched command gets its own automatic login attempt"""
        commands, _ = recorder
        dispatcher = Dispatcher(commands, [])
        dispatcher.dispatch(app, ['play'])
        dispatcher.dispatch(app, ['pause'])
        assert app.auth.start_command.call_count == 2

    def test_handler_errors_are_reported(self, app, capsys):
        def broken(ctx, args):
            raise ConfigError("bad value")

        dispatcher = Dispatcher([Command('boom', broken, 'boom', 'Boom', 'Test')], [])
        assert dispatcher.dispatch(app, ['boom']) is False
        assert "bad value" in capsys.readouterr().err

    def test_help_lists_groups(self):
        text = Dispatcher().help_text()
        assert "Playback:" in text
        assert "search <query>" in text

    def test_help_for_alias(self):
        text = Dispatcher().help_text('p')
        assert text.startswith("play [n|uri]")
        assert Dispatcher().help_text('nope') is None


class TestShell:
    """Test the interactive loop"""

    def test_runs_until_quit(self, app):
        lines = iter(['help', 'quit', 'never reached'])
        read_line = Mock(side_effect=lambda prompt: next(lines))

        shell = Shell(app, Dispatcher(), read_line)

        assert shell.run() == 0
        assert read_line.call_count == 2
        assert app.running is False

    def test_end_of_input_stops(self, app):
        shell = Shell(app, Dispatcher(), Mock(side_effect=EOFError))
        assert shell.run() == 0

    def test_ctrl_c_keeps_running(self, app):
        answers = [KeyboardInterrupt(), 'quit']

        def read_line(prompt):
            answer = answers.pop(0)
            if isinstance(answer, BaseException):
                raise answer
            return answer

        assert Shell(app, Dispatcher(), read_line).run() == 0
        assert answers == []

    def test_unexpected_error_keeps_running(self, app, capsys):
        """A failing command is reported and the prompt comes back"""
        def broken(ctx, args):
            raise RuntimeError("boom")

        lines = iter(['boom', 'quit'])
        dispatcher = Dispatcher([Command('boom', broken, 'boom', 'Boom', 'Test')] + list(COMMANDS), [])
        shell = Shell(app, dispatcher, lambda prompt: next(lines))

        assert shell.run() == 0
        assert "boom" in capsys.readouterr().err

    def test_superscript_number_keeps_running(self, app):
        lines = iter(['play \u00b3', 'quit'])
        assert Shell(app, Dispatcher(), lambda prompt: next(lines)).run() == 0
        assert app.running is False

    def test_quoted_arguments(self, app, recorder):
        commands, calls = recorder
        shell = Shell(app, Dispatcher(commands, []), input)
        assert shell.execute('play "two words"') is True
        assert calls == [('play', ['two words'])]

    def test_unbalanced_quotes(self, app, capsys):
        shell = Shell(app, Dispatcher(), input)
        assert shell.execute('search "oops') is False
        assert "Could not parse input" in capsys.readouterr().err

    def test_history_recorded(self, app, temp_dir):
        app.history = CommandHistory(temp_dir / "history", enabled=True, limit=100)
        shell = Shell(app, Dispatcher(), input)
        shell.execute('help')
        shell.execute('   ')
        assert app.history.entries() == ['help']


class TestCommandHistory:
    """Test the history file"""

    def test_trimmed_to_limit(self, temp_dir):
        history = CommandHistory(temp_dir / "history", enabled=True, limit=3)
        for n in range(5):
            history.append(f"cmd {n}")
        assert history.entries() == ['cmd 2', 'cmd 3', 'cmd 4']

    def test_disabled(self, temp_dir):
        history = CommandHistory(temp_dir / "history", enabled=False)
        history.append("status")
        assert history.entries() == []
        assert not history.path.exists()

    def test_undecodable_file_does_not_break_append(self, temp_dir):
        """A corrupt history file is read with replacement characters"""
        path = temp_dir / "history"
        path.write_bytes(b"play 1\n\xff\xfe bad\n")
        history = CommandHistory(path, enabled=True, limit=10)

        history.append("status")

        entries = history.entries()
        assert entries[0] == "play 1"
        assert entries[-1] == "status"
        assert len(entries) == 3

    def test_unencodable_line_is_not_fatal(self, temp_dir):
        """Lone surrogates from the terminal are written as replacements"""
        history = CommandHistory(temp_dir / "history", enabled=True, limit=10)
        history.append("search \udcff")
        history.append("status")
        assert history.entries()[-1] == "status"
        assert len(history.entries()) == 2

    def test_lowering_limit_trims_file(self, temp_dir):
        history = CommandHistory(temp_dir / "history", enabled=True, limit=10)
        for n in range(6):
            history.append(f"cmd {n}")
        history.configure(True, 2)
        assert history.path.read_text().splitlines() == ['cmd 4', 'cmd 5']
