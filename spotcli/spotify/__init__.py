"""
Spotify Web API integration

Two modules:

1. client.py: the gateway every command uses. SpotifyClient.invoke()
   attaches the access token, sends the request and classifies the
   outcome into an ApiResult instead of raising.

2. models.py: dataclasses for the objects spotcli lists and plays
   (tracks, episodes, albums, playlists, devices, playback state), each
   built with a ``from_spotify_data()`` factory.
"""

from .client import (
    ApiError,
    ApiResult,
    SpotifyClient,
)
from .models import (
    PlaybackState,
    SpotifyAlbum,
    SpotifyArtist,
    SpotifyDevice,
    SpotifyEpisode,
    SpotifyPlaylist,
    SpotifyTrack,
    playable_from_spotify_data,
)

__all__ = [
    # Gateway
    'ApiError',
    'ApiResult',
    'SpotifyClient',

    # Models
    'PlaybackState',
    'SpotifyAlbum',
    'SpotifyArtist',
    'SpotifyDevice',
    'SpotifyEpisode',
    'SpotifyPlaylist',
    'SpotifyTrack',
    'playable_from_spotify_data',
]
