# tests/test_utils.py
"""Test utilities and helpers"""

import json

import pytest

from spotcli.utils.helpers import (
    atomic_write_json,
    format_duration,
    format_ms,
    progress_bar,
    truncate_string,
)
from spotcli.utils.logger import ConsoleMessageFilter, parse_size
from spotcli.utils.validation import (
    parse_bool,
    parse_int,
    parse_spotify_reference,
    to_spotify_uri,
    validate_repeat,
    validate_seek,
    validate_shuffle,
    validate_volume,
)


class TestHelpers:
    """Test helper functions"""

    def test_format_duration(self):
        """Test duration formatting"""
        assert format_duration(90) == "1:30"
        assert format_duration(3661) == "1:01:01"
        assert format_duration(0) == "0:00"
        assert format_duration(-10) == "0:00"

    def test_format_ms(self):
        assert format_ms(210000) == "3:30"
        assert format_ms(None) == "0:00"

    def test_truncate_string(self):
        assert truncate_string("short", 10) == "short"
        assert truncate_string("a very long title", 10) == "a very ..."
        assert truncate_string("abc", 2) == ".."

    def test_progress_bar(self):
        assert progress_bar(50, 100, width=10) == "[#####-----]"
        assert progress_bar(200, 100, width=4) == "[####]"
        assert progress_bar(10, 0, width=4) == "[----]"

    def test_atomic_write_json(self, temp_dir):
        """Test that the parent directory is created and content replaced"""
        target = temp_dir / "a" / "b.json"
        atomic_write_json(target, {'x': 1})
        atomic_write_json(target, {'x': 2})
        assert json.loads(target.read_text()) == {'x': 2}
        assert [p.name for p in target.parent.iterdir()] == ['b.json']

    def test_atomic_write_json_failure_keeps_old_file(self, temp_dir):
        """Unserializable data leaves the previous content in place"""
        target = temp_dir / "data.json"
        atomic_write_json(target, {'x': 1})
        with pytest.raises(TypeError):
            atomic_write_json(target, {'x': object()})
        assert json.loads(target.read_text()) == {'x': 1}
        assert [p.name for p in temp_dir.iterdir()] == ['data.json']


class TestLogging:
    """Test logging helpers"""

    def test_parse_size(self):
        assert parse_size("5MB") == 5 * 1024 ** 2
        assert parse_size("512 KB") == 512 * 1024
        with pytest.raises(ValueError):
            parse_size("lots")

    def test_console_filter(self):
        """Only warnings and marked messages reach the console"""
        import logging
        console_filter = ConsoleMessageFilter()
        info = logging.LogRecord('spotcli.x', logging.INFO, __file__, 1, "debug detail", None, None)
        marked = logging.LogRecord('spotcli.x', logging.INFO, __file__, 1, "for the user", None, None)
        marked.console_output = True
        warning = logging.LogRecord('spotcli.x', logging.WARNING, __file__, 1, "careful", None, None)
        assert not console_filter.filter(info)
        assert console_filter.filter(marked)
        assert console_filter.filter(warning)


class TestValidation:
    """Test user input validation"""

    @pytest.mark.parametrize("word,expected", [
        ("on", True), ("YES", True), ("1", True),
        ("off", False), ("false", False), ("0", False),
        ("maybe", None), ("", None),
    ])
    def test_parse_bool(self, word, expected):
        assert parse_bool(word) is expected

    def test_parse_int(self):
        assert parse_int("5") == 5
        assert parse_int(" 7 ", 1, 10) == 7
        assert parse_int("0", 1, 10) is None
        assert parse_int("11", 1, 10) is None
        assert parse_int("x") is None
        assert parse_int("+5") == 5
        assert parse_int("-3") == -3
        assert parse_int("+-5") is None
        assert parse_int("\u00b3") is None
        assert parse_int("5.0") is None

    def test_validate_volume(self):
        assert validate_volume("0") == (0, None)
        assert validate_volume("100") == (100, None)
        volume, error = validate_volume("150")
        assert volume is None and "0 to 100" in error

    @pytest.mark.parametrize("text,expected", [
        ("90", (90, False, None)),
        ("1:30", (90, False, None)),
        ("+15", (15, True, None)),
        ("-10", (-10, True, None)),
        ("-0:30", (-30, True, None)),
    ])
    def test_validate_seek(self, text, expected):
        assert validate_seek(text) == expected

    @pytest.mark.parametrize("text", ["", "abc", "1:75", "+", "1:2:3", "+\u00b2", "\u00b9:30"])
    def test_validate_seek_invalid(self, text):
        seconds, _, error = validate_seek(text)
        assert seconds is None
        assert error

    def test_validate_shuffle(self):
        assert validate_shuffle("on") == ('on', None)
        assert validate_shuffle("false") == ('off', None)
        assert validate_shuffle("Toggle") == ('toggle', None)
        assert validate_shuffle("sideways")[0] is None

    def test_validate_repeat(self):
        assert validate_repeat("track") == ('track', None)
        assert validate_repeat("all") == ('context', None)
        assert validate_repeat("one") == ('track', None)
        assert validate_repeat("twice")[0] is None

    @pytest.mark.parametrize("text,expected", [
        ("spotify:track:4uLU6hMCjMI75M1A2tKUQC", ("track", "4uLU6hMCjMI75M1A2tKUQC")),
        ("spotify:playlist:37i9dQZF1DXcBWIGoYBM5M", ("playlist", "37i9dQZF1DXcBWIGoYBM5M")),
        ("https://open.spotify.com/album/1DFixLWuPkv3KT3TnV35m3?si=abc", ("album", "1DFixLWuPkv3KT3TnV35m3")),
        ("https://open.spotify.com/intl-fr/track/4uLU6hMCjMI75M1A2tKUQC", ("track", "4uLU6hMCjMI75M1A2tKUQC")),
        ("spotify:user:someone", (None, None)),
        ("https://example.com/track/x", (None, None)),
        ("", (None, None)),
    ])
    def test_parse_spotify_reference(self, text, expected):
        assert parse_spotify_reference(text) == expected

    def test_to_spotify_uri(self):
        assert to_spotify_uri("4uLU6hMCjMI75M1A2tKUQC", "track") == "spotify:track:4uLU6hMCjMI75M1A2tKUQC"
        assert to_spotify_uri("37i9dQZF1DXcBWIGoYBM5M", "playlist") == "spotify:playlist:37i9dQZF1DXcBWIGoYBM5M"
        assert to_spotify_uri("https://open.spotify.com/episode/512ojhOuo1ktJprKbVcKyQ", "track") == \
            "spotify:episode:512ojhOuo1ktJprKbVcKyQ"
        assert to_spotify_uri("short", "track") is None
