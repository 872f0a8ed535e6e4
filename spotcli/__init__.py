"""
spotcli: control Spotify from your terminal

spotcli is an interactive shell and command-line client for the Spotify
Web API. It logs in once through the browser, keeps the access token
fresh on its own, and relays playback commands (play, pause, skip, seek,
volume, shuffle, repeat, queue, device transfer) while rendering search,
library and playlist listings as numbered terminal output.

## Package layout

**Configuration (`spotcli/config/`)**
- Application settings from YAML and environment variables
- Client credentials, token storage and the token lifecycle
- Browser-based OAuth2 authorization code flow
- User preferences (colors, compact mode, aliases, device preference)

**Spotify integration (`spotcli/spotify/`)**
- Web API gateway returning classified results instead of raising
- Data models for tracks, episodes, albums, playlists, devices and playback

**Session state (`spotcli/session/`)**
- Numbered references to the latest search, device, playlist and album lists

**Commands (`spotcli/commands/`)**
- Command handlers, output rendering, dispatch table with aliases
- The interactive shell with history and the auto-refresh ``watch`` loop

**Utilities (`spotcli/utils/`)**
- Logging with console/file separation, helpers, input validation, key polling

## Quick start

```bash
pip install -e .
export SPOTIFY_CLIENT_ID=... SPOTIFY_CLIENT_SECRET=...
spotcli auth login
spotcli            # opens the shell
```
"""

__version__ = "1.0.0"

__author__ = "spotcli contributors"

__description__ = "Control Spotify playback and browse your library from the terminal"

__all__ = [
    "__version__",
    "__author__",
    "__description__"
]
