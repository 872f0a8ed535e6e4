"""
Terminal output for command results

All user-visible command output goes through a Renderer so that colors
and compact mode are applied in one place. Colors come from the user's
preferences (``Colors`` roles) and are applied with click.style();
click.echo() strips them automatically when output is not a terminal.
"""

from typing import Callable, Iterable, List, Optional, Sequence

import click

from ..config.preferences import Preferences
from ..spotify.models import (
    PlaybackState,
    SpotifyAlbum,
    SpotifyDevice,
    SpotifyEpisode,
    SpotifyPlaylist,
    SpotifyTrack,
)
from ..utils.helpers import format_ms, progress_bar, truncate_string

TITLE_WIDTH = 48


class Renderer:
    """
    Formats and prints command output

    Attributes:
        prefs: Current preferences (colors, compact mode, notifications)
        echo: Output function, click.echo by default
    """

    def __init__(self, prefs: Preferences, echo: Callable[..., None] = click.echo):
        self.prefs = prefs
        self.echo = echo

    def style(self, text: str, role: str, bold: bool = False) -> str:
        return click.style(text, fg=self.prefs.color(role), bold=bold)

    # Plain messages

    def info(self, message: str) -> None:
        self.echo(message)

    def success(self, message: str) -> None:
        self.echo(self.style(message, 'accent'))

    def muted(self, message: str) -> None:
        self.echo(self.style(message, 'muted'))

    def error(self, message: str) -> None:
        self.echo(self.style(message, 'error'), err=True)

    def notify(self, message: str) -> None:
        """Track-change notice when the Notifications preference is on."""
        if self.prefs.notifications:
            self.echo("\a" + self.style(message, 'accent', bold=True))

    def heading(self, text: str) -> None:
        if not self.prefs.compact_mode:
            self.echo(self.style(text, 'accent', bold=True))

    # Listing lines

    def _index(self, number: int) -> str:
        return self.style(f"{number:>2}.", 'index')

    def track_line(self, number: Optional[int], track: SpotifyTrack) -> str:
        parts = [self.style(truncate_string(track.name, TITLE_WIDTH), 'track'),
                 self.style(track.all_artists, 'artist')]
        line = " - ".join(parts)
        if not self.prefs.compact_mode:
            if track.album_name:
                line += " " + self.style(f"({truncate_string(track.album_name, 32)})", 'album')
            line += " " + self.style(track.duration_str, 'muted')
        return f"{self._index(number)} {line}" if number is not None else line

    def episode_line(self, number: Optional[int], episode: SpotifyEpisode) -> str:
        line = " - ".join([self.style(truncate_string(episode.name, TITLE_WIDTH), 'track'),
                           self.style(episode.show_name or "Podcast", 'artist')])
        if not self.prefs.compact_mode:
            line += " " + self.style(f"[episode] {episode.duration_str}", 'muted')
        return f"{self._index(number)} {line}" if number is not None else line

    def playable_line(self, number: Optional[int], item) -> str:
        if isinstance(item, SpotifyEpisode):
            return self.episode_line(number, item)
        return self.track_line(number, item)

    def album_line(self, number: int, album: SpotifyAlbum) -> str:
        line = " - ".join([self.style(truncate_string(album.name, TITLE_WIDTH), 'album'),
                           self.style(album.all_artists, 'artist')])
        if not self.prefs.compact_mode:
            details = [d for d in (album.year, f"{album.total_tracks} tracks" if album.total_tracks else "") if d]
            if details:
                line += " " + self.style(f"({', '.join(details)})", 'muted')
        return f"{self._index(number)} {line}"

    def playlist_line(self, number: int, playlist: SpotifyPlaylist) -> str:
        line = self.style(truncate_string(playlist.name, TITLE_WIDTH), 'album')
        if not self.prefs.compact_mode:
            owner = f"by {playlist.owner_name}, " if playlist.owner_name else ""
            line += " " + self.style(f"({owner}{playlist.total_tracks} tracks)", 'muted')
        return f"{self._index(number)} {line}"

    def device_line(self, number: int, device: SpotifyDevice) -> str:
        marker = self.style("*", 'accent', bold=True) if device.is_active else " "
        line = f"{marker} {self.style(device.name, 'device')}"
        if not self.prefs.compact_mode:
            details = [device.type]
            if device.volume_percent is not None:
                details.append(f"vol {device.volume_percent}%")
            if device.is_restricted:
                details.append("restricted")
            line += " " + self.style(f"({', '.join(details)})", 'muted')
        return f"{self._index(number)} {line}"

    # Listings

    def playables(self, items: Sequence, heading: str) -> None:
        self.heading(heading)
        for number, item in enumerate(items, 1):
            self.echo(self.playable_line(number, item))

    def albums(self, albums: Sequence[SpotifyAlbum], heading: str) -> None:
        self.heading(heading)
        for number, album in enumerate(albums, 1):
            self.echo(self.album_line(number, album))

    def playlists(self, playlists: Sequence[SpotifyPlaylist], heading: str = "Your playlists") -> None:
        self.heading(heading)
        for number, playlist in enumerate(playlists, 1):
            self.echo(self.playlist_line(number, playlist))

    def devices(self, devices: Sequence[SpotifyDevice]) -> None:
        self.heading("Devices (* = active)")
        for number, device in enumerate(devices, 1):
            self.echo(self.device_line(number, device))

    def queue(self, current, upcoming: Sequence) -> None:
        if current is not None:
            self.echo(self.style("Now: ", 'accent') + self.playable_line(None, current))
        if not upcoming:
            self.muted("Queue is empty")
            return
        self.heading("Up next")
        for number, item in enumerate(upcoming, 1):
            self.echo(self.playable_line(number, item))

    def now_playing(self, state: PlaybackState) -> None:
        item = state.item
        status = "Playing" if state.is_playing else "Paused"
        if item is None:
            self.muted(f"{status}: nothing to show (advertisement or loading)")
            return

        position = f"{format_ms(state.progress_ms)}/{format_ms(state.duration_ms)}"
        if self.prefs.compact_mode:
            self.echo(f"{self.style(status, 'accent')} {self.playable_line(None, item)} "
                      f"{self.style('[' + position + ']', 'muted')}")
            return

        self.echo(f"{self.style(status + ':', 'accent', bold=True)} {self.style(item.name, 'track', bold=True)}")
        if isinstance(item, SpotifyEpisode):
            self.echo(f"  {self.style(item.show_name, 'artist')}")
        else:
            self.echo(f"  {self.style(item.all_artists, 'artist')}")
            if item.album_name:
                self.echo(f"  {self.style(item.album_name, 'album')}")
        bar = progress_bar(state.progress_ms, state.duration_ms)
        self.echo(f"  {self.style(bar, 'accent')} {position}")

        details = []
        if state.device:
            volume = f", vol {state.device.volume_percent}%" if state.device.volume_percent is not None else ""
            details.append(f"Device: {self.style(state.device.name, 'device')}{volume}")
        details.append(f"Shuffle: {'on' if state.shuffle_state else 'off'}")
        details.append(f"Repeat: {state.repeat_state}")
        self.echo("  " + " | ".join(details))

    def preferences(self, rows: Iterable) -> None:
        self.heading("Settings")
        for key, value in rows:
            self.echo(f"  {self.style(key, 'index')}: {value}")

    def lines(self, lines: List[str], numbered: bool = True) -> None:
        for number, line in enumerate(lines, 1):
            self.echo(f"{self._index(number)} {line}" if numbered else line)
