"""
Data models for Spotify Web API objects

Typed views over the JSON the Web API returns for the objects spotcli
lists and plays: tracks, podcast episodes, albums, playlists, devices and
the current playback state. Every model is built through a
``from_spotify_data()`` factory that tolerates the partial objects the API
embeds in other responses (simplified albums inside tracks, local files
without ids, playlists without an owner display name).

Each listable model exposes ``uri`` and ``title`` so that the session
reference table and the renderer can treat search results uniformly.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from ..utils.helpers import format_ms


@dataclass
class SpotifyArtist:
    """Artist reference as embedded in tracks and albums."""
    id: str
    name: str
    uri: Optional[str] = None

    @classmethod
    def from_spotify_data(cls, data: Dict[str, Any]) -> 'SpotifyArtist':
        return cls(
            id=data.get('id') or '',
            name=data.get('name') or 'Unknown Artist',
            uri=data.get('uri'),
        )


def _join_artists(artists: List[SpotifyArtist]) -> str:
    return ", ".join(artist.name for artist in artists) or "Unknown Artist"


@dataclass
class SpotifyAlbum:
    """
    Album metadata

    Attributes:
        id: Spotify album id
        name: Album title
        uri: ``spotify:album:<id>``, used as playback context
        artists: Contributing artists
        album_type: album, single or compilation
        release_date: Date string with varying precision (YYYY, YYYY-MM, YYYY-MM-DD)
        total_tracks: Number of tracks on the album
    """
    id: str
    name: str
    uri: Optional[str] = None
    artists: List[SpotifyArtist] = field(default_factory=list)
    album_type: str = "album"
    release_date: str = ""
    total_tracks: int = 0

    @classmethod
    def from_spotify_data(cls, data: Dict[str, Any]) -> 'SpotifyAlbum':
        artists = [SpotifyArtist.from_spotify_data(artist) for artist in data.get('artists') or []]
        return cls(
            id=data.get('id') or '',
            name=data.get('name') or 'Unknown Album',
            uri=data.get('uri'),
            artists=artists,
            album_type=data.get('album_type') or 'album',
            release_date=data.get('release_date') or '',
            total_tracks=data.get('total_tracks') or 0,
        )

    @property
    def title(self) -> str:
        return self.name

    @property
    def all_artists(self) -> str:
        return _join_artists(self.artists)

    @property
    def year(self) -> str:
        return self.release_date[:4]


@dataclass
class SpotifyTrack:
    """
    Track metadata

    Attributes:
        id: Spotify track id (empty for local files)
        name: Track title
        uri: ``spotify:track:<id>``
        artists: Performing artists, primary first
        album: Simplified album the track belongs to
        duration_ms: Length in milliseconds
        explicit: Explicit content flag
        is_local: Local file added to a playlist (cannot be queued by URI)
    """
    id: str
    name: str
    uri: Optional[str] = None
    artists: List[SpotifyArtist] = field(default_factory=list)
    album: Optional[SpotifyAlbum] = None
    duration_ms: int = 0
    explicit: bool = False
    is_local: bool = False

    @classmethod
    def from_spotify_data(cls, data: Dict[str, Any]) -> 'SpotifyTrack':
        """
        Build a track from an API track object

        Playlist and library responses wrap the track in
        ``{'track': {...}, 'added_at': ...}``; both shapes are accepted.
        """
        track_data = data.get('track') if isinstance(data.get('track'), dict) else data
        album_data = track_data.get('album')
        return cls(
            id=track_data.get('id') or '',
            name=track_data.get('name') or 'Unknown Track',
            uri=track_data.get('uri'),
            artists=[SpotifyArtist.from_spotify_data(a) for a in track_data.get('artists') or []],
            album=SpotifyAlbum.from_spotify_data(album_data) if album_data else None,
            duration_ms=track_data.get('duration_ms') or 0,
            explicit=bool(track_data.get('explicit', False)),
            is_local=bool(track_data.get('is_local', False)),
        )

    @property
    def title(self) -> str:
        return self.name

    @property
    def duration_str(self) -> str:
        return format_ms(self.duration_ms)

    @property
    def all_artists(self) -> str:
        return _join_artists(self.artists)

    @property
    def album_name(self) -> str:
        return self.album.name if self.album else ""


@dataclass
class SpotifyEpisode:
    """Podcast episode metadata."""
    id: str
    name: str
    uri: Optional[str] = None
    show_name: str = ""
    duration_ms: int = 0
    release_date: str = ""

    @classmethod
    def from_spotify_data(cls, data: Dict[str, Any]) -> 'SpotifyEpisode':
        show = data.get('show') or {}
        return cls(
            id=data.get('id') or '',
            name=data.get('name') or 'Unknown Episode',
            uri=data.get('uri'),
            show_name=show.get('name') or '',
            duration_ms=data.get('duration_ms') or 0,
            release_date=data.get('release_date') or '',
        )

    @property
    def title(self) -> str:
        return self.name

    @property
    def duration_str(self) -> str:
        return format_ms(self.duration_ms)

    @property
    def all_artists(self) -> str:
        return self.show_name


@dataclass
class SpotifyPlaylist:
    """
    Playlist summary as returned by /me/playlists

    Track listings are fetched separately and go to the search slot, so the
    model only carries what the listing shows.
    """
    id: str
    name: str
    uri: Optional[str] = None
    owner_name: str = ""
    total_tracks: int = 0
    public: Optional[bool] = None
    collaborative: bool = False
    description: str = ""

    @classmethod
    def from_spotify_data(cls, data: Dict[str, Any]) -> 'SpotifyPlaylist':
        owner = data.get('owner') or {}
        # /me/playlists returns {'tracks': {'total': n}}; newer responses use 'items'
        tracks_info = data.get('tracks') or data.get('items') or {}
        return cls(
            id=data.get('id') or '',
            name=data.get('name') or 'Untitled Playlist',
            uri=data.get('uri'),
            owner_name=owner.get('display_name') or owner.get('id') or '',
            total_tracks=tracks_info.get('total', 0) if isinstance(tracks_info, dict) else 0,
            public=data.get('public'),
            collaborative=bool(data.get('collaborative', False)),
            description=data.get('description') or '',
        )

    @property
    def title(self) -> str:
        return self.name


@dataclass
class SpotifyDevice:
    """
    Spotify Connect device

    Attributes:
        id: Device id used for transfer and device_id query parameters
        name: User-visible device name
        type: Computer, Smartphone, Speaker...
        is_active: Currently the playback target
        is_restricted: Device does not accept Web API commands
        volume_percent: Current volume, None when the device does not report it
    """
    id: str
    name: str
    type: str = "Unknown"
    is_active: bool = False
    is_restricted: bool = False
    volume_percent: Optional[int] = None

    @classmethod
    def from_spotify_data(cls, data: Dict[str, Any]) -> 'SpotifyDevice':
        return cls(
            id=data.get('id') or '',
            name=data.get('name') or 'Unknown Device',
            type=data.get('type') or 'Unknown',
            is_active=bool(data.get('is_active', False)),
            is_restricted=bool(data.get('is_restricted', False)),
            volume_percent=data.get('volume_percent'),
        )

    @property
    def title(self) -> str:
        return self.name

    @property
    def uri(self) -> str:
        return self.id


PlayableItem = Union[SpotifyTrack, SpotifyEpisode]


def playable_from_spotify_data(data: Optional[Dict[str, Any]]) -> Optional[PlayableItem]:
    """Build a track or an episode depending on the object's ``type``."""
    if not data:
        return None
    if data.get('type') == 'episode':
        return SpotifyEpisode.from_spotify_data(data)
    return SpotifyTrack.from_spotify_data(data)


@dataclass
class PlaybackState:
    """
    Current playback as returned by GET /me/player

    Attributes:
        is_playing: Playback running (False when paused)
        progress_ms: Position in the current item
        item: Current track or episode, None during ads or between items
        device: Active device
        shuffle_state: Shuffle on/off
        repeat_state: off, track or context
        context_uri: Album/playlist being played, if any
    """
    is_playing: bool = False
    progress_ms: int = 0
    item: Optional[PlayableItem] = None
    device: Optional[SpotifyDevice] = None
    shuffle_state: bool = False
    repeat_state: str = "off"
    context_uri: Optional[str] = None

    @classmethod
    def from_spotify_data(cls, data: Dict[str, Any]) -> 'PlaybackState':
        context = data.get('context') or {}
        device_data = data.get('device')
        return cls(
            is_playing=bool(data.get('is_playing', False)),
            progress_ms=data.get('progress_ms') or 0,
            item=playable_from_spotify_data(data.get('item')),
            device=SpotifyDevice.from_spotify_data(device_data) if device_data else None,
            shuffle_state=bool(data.get('shuffle_state', False)),
            repeat_state=data.get('repeat_state') or 'off',
            context_uri=context.get('uri'),
        )

    @property
    def duration_ms(self) -> int:
        return self.item.duration_ms if self.item else 0
