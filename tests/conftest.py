"""Test configuration and fixtures"""

import pytest
import tempfile
from pathlib import Path
from unittest.mock import Mock

import requests

from spotcli.config.preferences import Preferences, PreferencesStore
from spotcli.config.settings import Settings
from spotcli.config.tokens import TokenBundle, TokenStore
from spotcli.commands.context import AppContext
from spotcli.commands.dispatcher import Dispatcher
from spotcli.commands.render import Renderer
from spotcli.session.references import SessionReferences
from spotcli.spotify.client import ApiResult

NOW = 1_700_000_000


class FakeClock:
    """Callable clock whose time only moves when a test moves it"""

    def __init__(self, now=NOW):
        self.now = now

    def __call__(self):
        return self.now


def make_response(status=200, json_data=None, text=None, headers=None):
    """Mock of requests.Response good enough for the token endpoint and the gateway"""
    response = Mock(spec=requests.Response)
    response.status_code = status
    response.reason = "Test Reason"
    response.headers = headers or {}
    if json_data is not None:
        import json
        response.text = json.dumps(json_data)
        response.json.return_value = json_data
    else:
        response.text = text or ""
        response.json.side_effect = ValueError("No JSON object could be decoded")
    response.content = response.text.encode('utf-8')
    if status >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f"{status} Error")
    else:
        response.raise_for_status.return_value = None
    return response


@pytest.fixture
def temp_dir():
    """Create temporary directory for tests"""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings(temp_dir, monkeypatch):
    """Settings isolated from the real home directory and environment"""
    monkeypatch.setenv("HOME", str(temp_dir))
    monkeypatch.chdir(temp_dir)
    monkeypatch.setenv("SPOTIFY_CLIENT_ID", "test-client-id")
    monkeypatch.setenv("SPOTIFY_CLIENT_SECRET", "test-client-secret")
    monkeypatch.delenv("SPOTIFY_REDIRECT_URL", raising=False)
    monkeypatch.delenv("SPOTCLI_LOG_LEVEL", raising=False)

    settings = Settings()
    settings.security.config_directory = str(temp_dir / "app")
    settings.security.token_storage_path = str(temp_dir / "app" / "tokens.json")
    settings.security.preferences_path = str(temp_dir / "app" / "preferences.json")
    settings.security.history_path = str(temp_dir / "app" / "history")
    settings.network.rate_limit_delay = 0
    return settings


@pytest.fixture
def token_store(settings):
    return TokenStore(settings.get_token_storage_path())


@pytest.fixture
def make_bundle(settings, clock):
    """Factory for bundles, fresh and fully scoped unless told otherwise"""
    def factory(**overrides):
        values = {
            'access_token': 'access-1',
            'refresh_token': 'refresh-1',
            'token_type': 'Bearer',
            'expires_in': 3600,
            'obtained_at': clock.now - 100,
            'scopes': settings.spotify.scope,
        }
        values.update(overrides)
        return TokenBundle(**values)
    return factory


@pytest.fixture
def gateway():
    """Mock gateway whose invoke() answers from a per-test list of results"""
    client = Mock()
    client.calls = []

    def invoke(method, path, query=None, body=None):
        client.calls.append((method, path, query, body))
        responder = client.responder
        return responder(method, path, query, body) if responder else ApiResult()

    client.responder = None
    client.invoke.side_effect = invoke
    client.get.side_effect = lambda path, query=None: invoke('GET', path, query)
    client.put.side_effect = lambda path, query=None, body=None: invoke('PUT', path, query, body)
    client.post.side_effect = lambda path, query=None, body=None: invoke('POST', path, query, body)
    client.delete.side_effect = lambda path, query=None, body=None: invoke('DELETE', path, query, body)
    return client


@pytest.fixture
def app(settings, gateway):
    """Application context wired to a mock gateway and a mock token manager"""
    prefs = Preferences()
    ctx = AppContext(
        client=gateway,
        refs=SessionReferences(),
        prefs=prefs,
        prefs_store=PreferencesStore(settings.get_preferences_path()),
        settings=settings,
        auth=Mock(),
        out=Renderer(prefs),
        interactive=False,
    )
    Dispatcher().bind(ctx)
    return ctx


@pytest.fixture
def sample_track_data():
    """Sample track data for testing"""
    return {
        'id': '4uLU6hMCjMI75M1A2tKUQC',
        'name': 'Test Song',
        'uri': 'spotify:track:4uLU6hMCjMI75M1A2tKUQC',
        'type': 'track',
        'artists': [{'id': 'artist_123', 'name': 'Test Artist'}],
        'album': {
            'id': 'album_123',
            'name': 'Test Album',
            'uri': 'spotify:album:album_123',
            'album_type': 'album',
            'total_tracks': 12,
            'release_date': '2023-01-01',
            'artists': [{'id': 'artist_123', 'name': 'Test Artist'}]
        },
        'duration_ms': 210000,  # 3:30
        'explicit': False,
    }


def track_data(n):
    """Minimal track object number n"""
    return {
        'id': f"track{n:017d}",
        'name': f"Song {n}",
        'uri': f"spotify:track:track{n:017d}",
        'type': 'track',
        'artists': [{'id': f"artist{n}", 'name': f"Artist {n}"}],
        'duration_ms': 180000,
    }


@pytest.fixture
def response():
    """Factory building mock HTTP responses"""
    return make_response


@pytest.fixture
def tracks():
    """Five minimal track objects"""
    return [track_data(n) for n in range(1, 6)]
