"""
Command handlers

Every handler has the signature ``handler(ctx, args) -> bool``: it gets
the application context and the command's arguments (already split) and
returns True when the command did what was asked. Handlers never raise
for API problems; the gateway has already reported those, so a failed
ApiResult usually just means returning False.

Listing commands store what they show in the session reference table so
that follow-up commands can use the displayed numbers.
"""

from typing import Any, Dict, List, Optional, Tuple

import click

from ..exceptions import ConfigError, ErrorKind
from ..config.preferences import DEFAULT_COLORS, FIELDS
from ..session.references import SlotKind, parse_reference
from ..spotify.client import ApiResult
from ..spotify.models import (
    PlaybackState,
    SpotifyAlbum,
    SpotifyDevice,
    SpotifyEpisode,
    SpotifyPlaylist,
    SpotifyTrack,
    playable_from_spotify_data,
)
from ..utils.logger import configure_from_settings, get_logger
from ..utils.terminal import can_poll_keys, cbreak_mode, wait_for_key
from ..utils.validation import (
    parse_int,
    parse_spotify_reference,
    to_spotify_uri,
    validate_repeat,
    validate_seek,
    validate_shuffle,
    validate_volume,
)
from .context import AppContext

logger = get_logger(__name__)

LIST_LIMIT = 10
CONTEXT_TYPES = ('album', 'playlist', 'artist', 'show')


# Shared helpers

def _usage(ctx: AppContext, usage: str) -> bool:
    ctx.out.error(f"Usage: {usage}")
    return False


def _report_no_device(ctx: AppContext) -> None:
    ctx.out.error("No active playback device. Run 'devices' to list your devices, "
                  "then 'transfer <n>' to pick one.")


def _find_preferred_device(ctx: AppContext) -> Optional[SpotifyDevice]:
    """Look up the preferred device (by id or case-insensitive name) among available devices."""
    wanted = ctx.prefs.device.strip()
    result = ctx.client.get('/me/player/devices')
    if not result.ok or not result.data:
        return None
    for data in result.data.get('devices') or []:
        device = SpotifyDevice.from_spotify_data(data)
        if device.id == wanted or device.name.lower() == wanted.lower():
            return device
    return None


def _player_call(
    ctx: AppContext,
    method: str,
    path: str,
    query: Optional[Dict[str, Any]] = None,
    body: Any = None,
    use_preferred_device: bool = False,
) -> ApiResult:
    """
    Call a player endpoint, handling the "no active device" case

    With ``use_preferred_device`` the call is repeated once against the
    preferred device when Spotify reports that nothing is active.
    """
    result = ctx.client.invoke(method, path, query=query, body=body)
    if result.kind != ErrorKind.NO_ACTIVE_DEVICE:
        return result

    if use_preferred_device and ctx.prefs.device:
        device = _find_preferred_device(ctx)
        if device is None:
            ctx.out.error(f"Preferred device '{ctx.prefs.device}' is not available.")
        else:
            logger.debug(f"Retrying {method} {path} on preferred device {device.id}")
            ctx.out.muted(f"No active device, using preferred device '{device.name}'")
            retry_query = dict(query or {})
            retry_query['device_id'] = device.id
            result = ctx.client.invoke(method, path, query=retry_query, body=body)
            if result.kind != ErrorKind.NO_ACTIVE_DEVICE:
                return result

    _report_no_device(ctx)
    return result


def _resolve(ctx: AppContext, kind: SlotKind, text: str, default_type: str) -> Optional[Any]:
    """
    Turn ``n`` or a link/URI/id into something playable

    Returns:
        The referenced model object, a ``spotify:`` URI string, or None
        after an error has been shown
    """
    index, raw = parse_reference(text)
    if index is not None:
        resolution = ctx.refs.resolve(kind, index)
        if not resolution.ok:
            ctx.out.error(resolution.message)
            return None
        return resolution.item

    uri = to_spotify_uri(raw or '', default_type)
    if uri is None:
        ctx.out.error(f"'{text}' is neither a number from the last {kind.value} list "
                      f"nor a Spotify link or URI")
    return uri


def _uri_of(target: Any) -> Optional[str]:
    return target if isinstance(target, str) else getattr(target, 'uri', None)


def _target_uri(ctx: AppContext, target: Any) -> Optional[str]:
    if target is None:
        return None
    uri = _uri_of(target)
    if not uri:
        ctx.out.error(f"'{_label(target)}' cannot be played from spotcli (local file?)")
    return uri


def _label(target: Any) -> str:
    if isinstance(target, str):
        return target
    if isinstance(target, (SpotifyTrack, SpotifyEpisode)):
        return f"{target.name} - {target.all_artists}"
    return getattr(target, 'title', str(target))


def _fetch_state(ctx: AppContext) -> Tuple[bool, Optional[PlaybackState]]:
    """GET /me/player; (True, None) means nothing is playing."""
    result = ctx.client.get('/me/player')
    if not result.ok:
        if result.kind == ErrorKind.NO_ACTIVE_DEVICE:
            return True, None
        return False, None
    if not result.data:
        return True, None
    return True, PlaybackState.from_spotify_data(result.data)


def _items(result: ApiResult, *keys: str) -> List[Dict[str, Any]]:
    """Follow ``keys`` into the response and return the ``items`` list."""
    data = result.data or {}
    for key in keys:
        data = data.get(key) or {}
    return [item for item in data.get('items') or [] if item]


# Search

def _search(ctx: AppContext, args: List[str], search_type: str, usage: str) -> Optional[List[Dict[str, Any]]]:
    query = " ".join(args).strip()
    if not query:
        _usage(ctx, usage)
        return None
    params = {'q': query, 'type': search_type, 'limit': LIST_LIMIT}
    if search_type == 'episode':
        params['market'] = 'from_token'
    result = ctx.client.get('/search', params)
    if not result.ok:
        return None
    return _items(result, f"{search_type}s")


def cmd_search(ctx: AppContext, args: List[str]) -> bool:
    """Search tracks; results become the search list."""
    found = _search(ctx, args, 'track', 'search <query>')
    if found is None:
        return False
    tracks = ctx.refs.set_slot(SlotKind.SEARCH, [SpotifyTrack.from_spotify_data(t) for t in found])
    if not tracks:
        ctx.out.muted(f"No tracks found for '{' '.join(args)}'")
        return True
    ctx.out.playables(tracks, f"Tracks matching '{' '.join(args)}'")
    return True


def cmd_search_episodes(ctx: AppContext, args: List[str]) -> bool:
    found = _search(ctx, args, 'episode', 'search-episodes <query>')
    if found is None:
        return False
    episodes = ctx.refs.set_slot(SlotKind.SEARCH, [SpotifyEpisode.from_spotify_data(e) for e in found])
    if not episodes:
        ctx.out.muted(f"No episodes found for '{' '.join(args)}'")
        return True
    ctx.out.playables(episodes, f"Episodes matching '{' '.join(args)}'")
    return True


def cmd_search_albums(ctx: AppContext, args: List[str]) -> bool:
    found = _search(ctx, args, 'album', 'search-albums <query>')
    if found is None:
        return False
    albums = ctx.refs.set_slot(SlotKind.ALBUMS, [SpotifyAlbum.from_spotify_data(a) for a in found])
    if not albums:
        ctx.out.muted(f"No albums found for '{' '.join(args)}'")
        return True
    ctx.out.albums(albums, f"Albums matching '{' '.join(args)}'")
    return True


# Playback

def _play(ctx: AppContext, body: Optional[Dict[str, Any]], label: str) -> bool:
    result = _player_call(ctx, 'PUT', '/me/player/play', body=body, use_preferred_device=True)
    if not result.ok:
        return False
    ctx.out.success(f"Playing: {label}" if label else "Resumed playback")
    return True


def cmd_play(ctx: AppContext, args: List[str]) -> bool:
    """
    ``play`` resumes; ``play n`` plays search result n; ``play <uri>``
    plays a track/episode, or an album/playlist/artist/show as context.
    """
    if not args:
        return _play(ctx, None, "")

    target = _resolve(ctx, SlotKind.SEARCH, args[0], 'track')
    uri = _target_uri(ctx, target)
    if not uri:
        return False

    kind = uri.split(':')[1] if uri.count(':') >= 2 else 'track'
    body = {'context_uri': uri} if kind in CONTEXT_TYPES else {'uris': [uri]}
    return _play(ctx, body, _label(target))


def _play_context(ctx: AppContext, args: List[str], kind: SlotKind, default_type: str, usage: str) -> bool:
    if not args:
        return _usage(ctx, usage)
    target = _resolve(ctx, kind, args[0], default_type)
    uri = _target_uri(ctx, target)
    if not uri:
        return False
    return _play(ctx, {'context_uri': uri}, _label(target))


def cmd_play_album(ctx: AppContext, args: List[str]) -> bool:
    return _play_context(ctx, args, SlotKind.ALBUMS, 'album', 'play-album <n|uri>')


def cmd_play_playlist(ctx: AppContext, args: List[str]) -> bool:
    return _play_context(ctx, args, SlotKind.PLAYLISTS, 'playlist', 'play-playlist <n|uri>')


def cmd_pause(ctx: AppContext, args: List[str]) -> bool:
    if not _player_call(ctx, 'PUT', '/me/player/pause').ok:
        return False
    ctx.out.success("Paused")
    return True


def cmd_resume(ctx: AppContext, args: List[str]) -> bool:
    return _play(ctx, None, "")


def cmd_next(ctx: AppContext, args: List[str]) -> bool:
    if not _player_call(ctx, 'POST', '/me/player/next').ok:
        return False
    ctx.out.success("Skipped to next track")
    return True


def cmd_previous(ctx: AppContext, args: List[str]) -> bool:
    if not _player_call(ctx, 'POST', '/me/player/previous').ok:
        return False
    ctx.out.success("Back to previous track")
    return True


# Queue and devices

def cmd_queue(ctx: AppContext, args: List[str]) -> bool:
    """Show the queue, or add a search result / URI to it."""
    if not args:
        result = _player_call(ctx, 'GET', '/me/player/queue')
        if not result.ok:
            return False
        data = result.data or {}
        current = playable_from_spotify_data(data.get('currently_playing'))
        upcoming = [playable_from_spotify_data(item) for item in (data.get('queue') or [])[:LIST_LIMIT] if item]
        ctx.out.queue(current, upcoming)
        return True

    target = _resolve(ctx, SlotKind.SEARCH, args[0], 'track')
    uri = _target_uri(ctx, target)
    if not uri:
        return False
    if not _player_call(ctx, 'POST', '/me/player/queue', query={'uri': uri}, use_preferred_device=True).ok:
        return False
    ctx.out.success(f"Queued: {_label(target)}")
    return True


def cmd_devices(ctx: AppContext, args: List[str]) -> bool:
    result = ctx.client.get('/me/player/devices')
    if not result.ok and result.kind != ErrorKind.NO_ACTIVE_DEVICE:
        return False
    devices = [SpotifyDevice.from_spotify_data(d) for d in (result.data or {}).get('devices') or []]
    devices = ctx.refs.set_slot(SlotKind.DEVICES, devices)
    if not devices:
        ctx.out.muted("No devices found. Open Spotify on a phone, computer or speaker first.")
        return True
    ctx.out.devices(devices)
    return True


def cmd_transfer(ctx: AppContext, args: List[str]) -> bool:
    """Move playback to device n from the last ``devices`` list, or to a device id/name."""
    if not args:
        return _usage(ctx, 'transfer <n|device id>')

    text = " ".join(args)
    index, raw = parse_reference(text)
    if index is not None:
        resolution = ctx.refs.resolve(SlotKind.DEVICES, index)
        if not resolution.ok:
            ctx.out.error(resolution.message)
            return False
        device_id, name = resolution.item.id, resolution.item.name
    else:
        matches = [d for d in ctx.refs.items(SlotKind.DEVICES) if d.name.lower() == raw.lower()]
        device_id, name = (matches[0].id, matches[0].name) if matches else (raw, raw)

    result = ctx.client.put('/me/player', body={'device_ids': [device_id]})
    if not result.ok:
        if result.kind == ErrorKind.NO_ACTIVE_DEVICE:
            ctx.out.error(f"Device '{name}' was not found. Run 'devices' to refresh the list.")
        return False
    ctx.out.success(f"Playback transferred to {name}")
    return True


# Player settings

def cmd_volume(ctx: AppContext, args: List[str]) -> bool:
    if not args:
        return _usage(ctx, 'volume <0-100>')
    volume, error = validate_volume(args[0])
    if error:
        ctx.out.error(error)
        return False
    if not _player_call(ctx, 'PUT', '/me/player/volume', query={'volume_percent': volume}).ok:
        return False
    ctx.out.success(f"Volume set to {volume}%")
    return True


def cmd_seek(ctx: AppContext, args: List[str]) -> bool:
    """``seek 90`` / ``seek 1:30`` jump to a position, ``seek +15`` / ``seek -10`` move relative to it."""
    if not args:
        return _usage(ctx, 'seek <+/-seconds|seconds|m:ss>')
    seconds, relative, error = validate_seek(args[0])
    if error:
        ctx.out.error(error)
        return False

    position_ms = seconds * 1000
    if relative:
        ok, state = _fetch_state(ctx)
        if not ok:
            return False
        if state is None or state.item is None:
            ctx.out.error("Nothing is playing")
            return False
        position_ms = state.progress_ms + seconds * 1000
        position_ms = max(0, min(position_ms, state.duration_ms))

    if not _player_call(ctx, 'PUT', '/me/player/seek', query={'position_ms': position_ms}).ok:
        return False
    ctx.out.success(f"Position: {position_ms // 60000}:{(position_ms // 1000) % 60:02d}")
    return True


def cmd_shuffle(ctx: AppContext, args: List[str]) -> bool:
    if not args:
        return _usage(ctx, 'shuffle <on|off|toggle>')
    mode, error = validate_shuffle(args[0])
    if error:
        ctx.out.error(error)
        return False

    if mode == 'toggle':
        ok, state = _fetch_state(ctx)
        if not ok:
            return False
        if state is None:
            _report_no_device(ctx)
            return False
        enabled = not state.shuffle_state
    else:
        enabled = mode == 'on'

    query = {'state': 'true' if enabled else 'false'}
    if not _player_call(ctx, 'PUT', '/me/player/shuffle', query=query).ok:
        return False
    ctx.out.success(f"Shuffle {'on' if enabled else 'off'}")
    return True


def cmd_repeat(ctx: AppContext, args: List[str]) -> bool:
    if not args:
        return _usage(ctx, 'repeat <track|context|off>')
    mode, error = validate_repeat(args[0])
    if error:
        ctx.out.error(error)
        return False
    if not _player_call(ctx, 'PUT', '/me/player/repeat', query={'state': mode}).ok:
        return False
    ctx.out.success(f"Repeat: {mode}")
    return True


# Status

def cmd_status(ctx: AppContext, args: List[str]) -> bool:
    ok, state = _fetch_state(ctx)
    if not ok:
        return False
    if state is None:
        ctx.out.muted("Nothing is playing")
        return True
    ctx.out.now_playing(state)
    return True


def cmd_watch(ctx: AppContext, args: List[str]) -> bool:
    """
    Redraw ``status`` every AutoRefreshInterval seconds until a key is pressed

    ``watch 2`` overrides the interval for this run. Without an
    interactive terminal the status is shown once.
    """
    interval = ctx.prefs.auto_refresh_interval
    if args:
        interval = parse_int(args[0], 1, 3600)
        if interval is None:
            ctx.out.error("Interval must be a whole number of seconds (1-3600)")
            return False

    if not ctx.interactive or not can_poll_keys():
        return cmd_status(ctx, [])

    last_uri = None
    with cbreak_mode():
        while True:
            click.clear()
            ok, state = _fetch_state(ctx)
            if not ok:
                return False
            if state is None:
                ctx.out.muted("Nothing is playing")
            else:
                ctx.out.now_playing(state)
                uri = state.item.uri if state.item else None
                if last_uri and uri and uri != last_uri:
                    ctx.out.notify(f"Now playing: {_label(state.item)}")
                last_uri = uri or last_uri
            ctx.out.muted(f"Refreshing every {interval}s, press any key to return to the prompt")
            if wait_for_key(interval):
                break
    return True


# Library

def cmd_like(ctx: AppContext, args: List[str]) -> bool:
    """Save the current track, or search result n, to Liked Songs."""
    if args:
        target = _resolve(ctx, SlotKind.SEARCH, args[0], 'track')
        if target is None:
            return False
    else:
        result = ctx.client.get('/me/player/currently-playing')
        if not result.ok and result.kind != ErrorKind.NO_ACTIVE_DEVICE:
            return False
        target = playable_from_spotify_data((result.data or {}).get('item'))
        if target is None:
            ctx.out.error("Nothing is playing")
            return False

    uri = _uri_of(target) or ''
    kind, item_id = parse_spotify_reference(uri)
    if kind != 'track' or not item_id:
        ctx.out.error("Only tracks can be added to Liked Songs")
        return False

    if not ctx.client.put('/me/tracks', body={'ids': [item_id]}).ok:
        return False
    ctx.out.success(f"Liked: {_label(target)}")
    return True


def _track_listing(ctx: AppContext, result: ApiResult, heading: str, empty: str) -> bool:
    if not result.ok:
        return False
    items = [playable_from_spotify_data(entry.get('track')) for entry in _items(result)]
    items = ctx.refs.set_slot(SlotKind.SEARCH, [item for item in items if item is not None])
    if not items:
        ctx.out.muted(empty)
        return True
    ctx.out.playables(items, heading)
    return True


def cmd_liked(ctx: AppContext, args: List[str]) -> bool:
    result = ctx.client.get('/me/tracks', {'limit': LIST_LIMIT})
    return _track_listing(ctx, result, "Liked Songs", "No liked songs yet")


def cmd_recent(ctx: AppContext, args: List[str]) -> bool:
    result = ctx.client.get('/me/player/recently-played', {'limit': LIST_LIMIT})
    return _track_listing(ctx, result, "Recently played", "Nothing played recently")


def cmd_playlists(ctx: AppContext, args: List[str]) -> bool:
    result = ctx.client.get('/me/playlists', {'limit': LIST_LIMIT})
    if not result.ok:
        return False
    playlists = ctx.refs.set_slot(SlotKind.PLAYLISTS,
                                  [SpotifyPlaylist.from_spotify_data(p) for p in _items(result)])
    if not playlists:
        ctx.out.muted("You have no playlists")
        return True
    ctx.out.playlists(playlists)
    return True


def cmd_playlist(ctx: AppContext, args: List[str]) -> bool:
    """List the first tracks of playlist n (or a playlist link/id) as the search list."""
    if not args:
        return _usage(ctx, 'playlist <n|id>')
    target = _resolve(ctx, SlotKind.PLAYLISTS, args[0], 'playlist')
    if target is None:
        return False
    if isinstance(target, SpotifyPlaylist):
        playlist_id, name = target.id, target.name
    else:
        kind, playlist_id = parse_spotify_reference(target)
        if kind != 'playlist':
            ctx.out.error(f"'{args[0]}' is not a playlist")
            return False
        name = playlist_id

    result = ctx.client.get(f'/playlists/{playlist_id}/tracks', {'limit': LIST_LIMIT})
    return _track_listing(ctx, result, f"Playlist: {name}", "This playlist is empty")


def cmd_albums(ctx: AppContext, args: List[str]) -> bool:
    result = ctx.client.get('/me/albums', {'limit': LIST_LIMIT})
    if not result.ok:
        return False
    albums = [SpotifyAlbum.from_spotify_data(entry['album']) for entry in _items(result) if entry.get('album')]
    albums = ctx.refs.set_slot(SlotKind.ALBUMS, albums)
    if not albums:
        ctx.out.muted("No saved albums")
        return True
    ctx.out.albums(albums, "Saved albums")
    return True


# Session and meta

def _display(value: Any) -> str:
    if isinstance(value, bool):
        return 'on' if value else 'off'
    if value == "":
        return '(not set)'
    return str(value)


def preference_rows(prefs) -> List[Tuple[str, str]]:
    rows = [(key, _display(getattr(prefs, attr))) for key, (attr, _, _, _) in FIELDS.items()]
    rows += [(f"color.{role}", prefs.color(role)) for role in DEFAULT_COLORS]
    rows += [(f"alias.{name}", target) for name, target in sorted(prefs.aliases.items())]
    return rows


def cmd_config(ctx: AppContext, args: List[str]) -> bool:
    """
    ``config`` lists settings, ``config <key>`` shows one,
    ``config <key> <value>`` changes it and ``config reset`` restores defaults.
    """
    if not args:
        ctx.out.preferences(preference_rows(ctx.prefs))
        return True

    if len(args) == 1 and args[0].lower() == 'reset':
        ctx.replace_preferences(ctx.prefs_store.reset())
        ctx.aliases_changed()
        ctx.out.success("Settings restored to defaults")
        return True

    if len(args) == 1:
        wanted = args[0].lower()
        rows = [row for row in preference_rows(ctx.prefs) if row[0].lower() == wanted]
        if not rows:
            ctx.out.error(f"Unknown setting '{args[0]}'. Run 'config' to list settings.")
            return False
        ctx.out.preferences(rows)
        return True

    try:
        key = ctx.prefs.set_value(args[0], " ".join(args[1:]))
    except ConfigError as e:
        ctx.out.error(e.message)
        return False

    ctx.prefs_store.save(ctx.prefs)
    if key.startswith('Aliases.'):
        ctx.aliases_changed()
    elif key in ('History', 'HistoryLimit') and ctx.history is not None:
        ctx.history.configure(ctx.prefs.history, ctx.prefs.history_limit)
    elif key == 'Logging':
        configure_from_settings(file_logging=ctx.prefs.logging)

    row_key = key.replace('Colors.', 'color.', 1).replace('Aliases.', 'alias.', 1)
    shown = dict(preference_rows(ctx.prefs)).get(row_key, "(removed)")
    ctx.out.success(f"{key} = {shown}")
    return True


def cmd_history(ctx: AppContext, args: List[str]) -> bool:
    if ctx.history is None:
        ctx.out.error("History is only available in the interactive shell")
        return False
    if not ctx.prefs.history:
        ctx.out.muted("History is off. Turn it on with 'config History on'.")
        return True
    entries = ctx.history.entries()
    if not entries:
        ctx.out.muted("No history yet")
        return True
    ctx.out.lines(entries)
    return True


def cmd_login(ctx: AppContext, args: List[str]) -> bool:
    result = ctx.auth.authorize()
    if not result.ok:
        return False
    ctx.out.success("Logged in to Spotify")
    return True


def cmd_logout(ctx: AppContext, args: List[str]) -> bool:
    if ctx.auth.revoke():
        ctx.out.success("Logged out. Stored tokens were removed.")
    else:
        ctx.out.muted("No stored login to remove")
    return True


def cmd_help(ctx: AppContext, args: List[str]) -> bool:
    if ctx.dispatcher is None:
        return False
    text = ctx.dispatcher.help_text(args[0] if args else None)
    if text is None:
        ctx.out.error(f"Unknown command '{args[0]}'. Type 'help' for a list of commands.")
        return False
    ctx.out.info(text)
    return True


def cmd_quit(ctx: AppContext, args: List[str]) -> bool:
    ctx.running = False
    return True
