"""Tests for the access-token lifecycle"""

import logging
from unittest.mock import Mock

import pytest
import requests

from spotcli.config.auth import TokenManager
from spotcli.config.settings import REQUIRED_SCOPES
from spotcli.exceptions import AuthFailure, AuthorizationError, AuthRequired
from spotcli.spotify.client import SpotifyClient


@pytest.fixture
def http():
    """Stand-in for the requests module; fails the test if used unexpectedly"""
    mock = Mock()
    mock.post.side_effect = AssertionError("unexpected token endpoint call")
    return mock


@pytest.fixture
def auth_flow():
    return Mock()


@pytest.fixture
def manager(token_store, settings, auth_flow, http, clock):
    return TokenManager(token_store, settings, auth_flow=auth_flow, http=http, clock=clock)


class TestGetAccessToken:
    """Test token lookup without user interaction"""

    def test_no_token_file(self, manager, http):
        """No stored login asks for authorization without any network call"""
        result = manager.get_access_token()
        assert not result.ok
        assert result.reason == AuthRequired.NO_TOKEN
        http.post.assert_not_called()

    def test_fresh_token_is_returned(self, manager, token_store, make_bundle, http):
        """A fresh bundle is handed out as is"""
        token_store.save(make_bundle())
        result = manager.get_access_token()
        assert result.ok
        assert result.access_token == 'access-1'
        http.post.assert_not_called()

    def test_stale_token_is_refreshed_once(self, manager, token_store, make_bundle, http, clock, response):
        """An expired bundle is refreshed with one POST and persisted"""
        token_store.save(make_bundle(expires_in=3600, obtained_at=clock.now - 3700))
        http.post.side_effect = None
        http.post.return_value = response(200, {
            'access_token': 'access-2',
            'token_type': 'Bearer',
            'expires_in': 3600,
        })

        result = manager.get_access_token()

        assert result.access_token == 'access-2'
        assert http.post.call_count == 1
        data = http.post.call_args.kwargs['data']
        assert data['grant_type'] == 'refresh_token'
        assert data['refresh_token'] == 'refresh-1'
        assert data['client_id'] == 'test-client-id'

        stored = token_store.load()
        assert stored.access_token == 'access-2'
        assert stored.refresh_token == 'refresh-1'
        assert stored.obtained_at == clock.now

    def test_refresh_keeps_rotated_refresh_token(self, manager, token_store, make_bundle, http, clock, response):
        """A refresh token returned by the service replaces the old one"""
        token_store.save(make_bundle(obtained_at=clock.now - 4000))
        http.post.side_effect = None
        http.post.return_value = response(200, {'access_token': 'access-2', 'refresh_token': 'refresh-2'})

        manager.get_access_token()

        assert token_store.load().refresh_token == 'refresh-2'

    def test_refreshed_token_is_cached(self, manager, token_store, make_bundle, http, clock, response):
        """Subsequent calls reuse the refreshed token"""
        token_store.save(make_bundle(obtained_at=clock.now - 4000))
        http.post.side_effect = None
        http.post.return_value = response(200, {'access_token': 'access-2', 'expires_in': 3600})

        manager.get_access_token()
        clock.now += 60
        assert manager.get_access_token().access_token == 'access-2'
        assert http.post.call_count == 1

    def test_insufficient_scope(self, token_store, settings, http, clock, make_bundle):
        """Missing a required scope forces re-authorization even when fresh"""
        manager = TokenManager(token_store, settings, auth_flow=Mock(), http=http, clock=clock,
                               required_scopes=["A", "B", "C"])
        token_store.save(make_bundle(scopes="A B"))

        result = manager.get_access_token()

        assert result.reason == AuthRequired.INSUFFICIENT_SCOPE
        http.post.assert_not_called()

    def test_narrowed_scope_setting_does_not_relax_check(self, token_store, settings, http, clock, make_bundle):
        """Required scopes are fixed; settings.yaml cannot shrink them"""
        settings.spotify.scope = "user-read-private"
        manager = TokenManager(token_store, settings, auth_flow=Mock(), http=http, clock=clock)
        token_store.save(make_bundle(scopes="user-read-private"))

        assert manager.required_scopes == REQUIRED_SCOPES
        assert manager.get_access_token().reason == AuthRequired.INSUFFICIENT_SCOPE

    def test_scope_checked_before_refresh(self, token_store, settings, http, clock, make_bundle):
        """A stale bundle with too few scopes is not refreshed"""
        manager = TokenManager(token_store, settings, auth_flow=Mock(), http=http, clock=clock,
                               required_scopes=["A", "B", "C"])
        token_store.save(make_bundle(scopes="A B", obtained_at=clock.now - 4000))

        assert manager.get_access_token().reason == AuthRequired.INSUFFICIENT_SCOPE
        http.post.assert_not_called()

    def test_no_refresh_token(self, manager, token_store, make_bundle, clock):
        """A stale bundle without a refresh token cannot be renewed"""
        token_store.save(make_bundle(refresh_token=None, obtained_at=clock.now - 4000))
        assert manager.get_access_token().reason == AuthRequired.NO_REFRESH_TOKEN

    def test_missing_credentials(self, manager, token_store, make_bundle, clock, settings, http):
        """Refreshing needs the client credentials"""
        settings.spotify.client_secret = ""
        token_store.save(make_bundle(obtained_at=clock.now - 4000))
        assert manager.get_access_token().reason == AuthRequired.MISSING_CREDENTIALS
        http.post.assert_not_called()

    @pytest.mark.parametrize("failure", [
        "http_error",
        "network_error",
        "bad_json",
        "no_access_token",
    ])
    def test_refresh_failure_leaves_file_untouched(self, manager, token_store, make_bundle, http, clock,
                                                    response, failure):
        """Failed refreshes are reported as a reason and change nothing on disk"""
        token_store.save(make_bundle(obtained_at=clock.now - 4000))
        before = token_store.path.read_bytes()

        http.post.side_effect = None
        if failure == "http_error":
            http.post.return_value = response(400, {'error': 'invalid_grant'})
        elif failure == "network_error":
            http.post.side_effect = requests.ConnectionError("offline")
        elif failure == "bad_json":
            http.post.return_value = response(200, text="<html>")
        else:
            http.post.return_value = response(200, {'token_type': 'Bearer'})

        result = manager.get_access_token()

        assert result.reason == AuthRequired.REFRESH_FAILED
        assert token_store.path.read_bytes() == before

    def test_invalidate_rereads_store(self, manager, token_store, make_bundle):
        """After invalidate() the next call sees the file again"""
        token_store.save(make_bundle())
        assert manager.get_access_token().ok
        token_store.save(make_bundle(access_token='access-9'))
        assert manager.get_access_token().access_token == 'access-1'
        manager.invalidate()
        assert manager.get_access_token().access_token == 'access-9'


class TestGetValidToken:
    """Test the interactive wrapper around get_access_token"""

    def test_interactive_runs_authorization_once(self, manager, auth_flow, make_bundle):
        """No stored login starts exactly one authorization"""
        auth_flow.run.return_value = make_bundle(access_token='new-token')

        assert manager.get_valid_token(interactive=True) == 'new-token'
        auth_flow.run.assert_called_once()

    def test_interactive_failure_returns_none(self, manager, auth_flow, caplog):
        """A failed authorization is reported, not raised"""
        auth_flow.run.side_effect = AuthorizationError(AuthFailure.TIMEOUT, "No authorization callback")

        with caplog.at_level(logging.ERROR):
            assert manager.get_valid_token(interactive=True) is None
        assert "No authorization callback" in caplog.text
        auth_flow.run.assert_called_once()

    def test_non_interactive_tells_user_to_log_in(self, manager, auth_flow, caplog):
        """Library mode never opens the browser"""
        with caplog.at_level(logging.WARNING):
            assert manager.get_valid_token(interactive=False) is None
        assert "spotcli auth login" in caplog.text
        auth_flow.run.assert_not_called()

    def test_missing_credentials_never_authorizes(self, manager, auth_flow, settings, token_store,
                                                  make_bundle, clock, caplog):
        """Without credentials the browser flow cannot help"""
        settings.spotify.client_id = ""
        token_store.save(make_bundle(obtained_at=clock.now - 4000))

        with caplog.at_level(logging.ERROR):
            assert manager.get_valid_token(interactive=True) is None
        assert "SPOTIFY_CLIENT_ID" in caplog.text
        auth_flow.run.assert_not_called()

    def test_fresh_token_skips_authorization(self, manager, auth_flow, token_store, make_bundle):
        """A usable token is returned directly"""
        token_store.save(make_bundle())
        assert manager.get_valid_token() == 'access-1'
        auth_flow.run.assert_not_called()

    def test_one_authorization_per_command(self, manager, auth_flow, caplog):
        """A failed login is not retried until the next command starts"""
        auth_flow.run.side_effect = AuthorizationError(AuthFailure.DENIED, "Authorization denied")

        assert manager.get_valid_token(interactive=True) is None
        with caplog.at_level(logging.WARNING):
            assert manager.get_valid_token(interactive=True) is None
        assert "retry the command" in caplog.text
        auth_flow.run.assert_called_once()

        manager.start_command()
        manager.get_valid_token(interactive=True)
        assert auth_flow.run.call_count == 2

    def test_rejected_new_login_is_not_authorized_again(self, manager, auth_flow, settings,
                                                         make_bundle, response):
        """A 401 right after logging in does not open the browser a second time"""
        auth_flow.run.return_value = make_bundle(access_token='new-token')
        session = Mock()
        session.request.return_value = response(401, {'error': {'status': 401, 'message': 'Invalid access token'}})
        client = SpotifyClient(manager, settings, session=session, interactive=True, sleep=Mock())

        result = client.get('/me/player')

        assert not result.ok
        auth_flow.run.assert_called_once()
        assert session.request.call_count == 1

    def test_reauthorize_runs_flow_when_not_yet_used(self, manager, auth_flow, make_bundle):
        """A rejected stored token gets one fresh login"""
        auth_flow.run.return_value = make_bundle(access_token='new-token')
        assert manager.reauthorize(interactive=True) == 'new-token'
        assert manager.reauthorize(interactive=True) is None
        auth_flow.run.assert_called_once()


class TestAuthorizeAndRevoke:
    """Test explicit login and logout"""

    def test_authorize_caches_new_bundle(self, manager, auth_flow, make_bundle, http):
        """The bundle from the flow is used without re-reading the file"""
        auth_flow.run.return_value = make_bundle(access_token='fresh')
        assert manager.authorize().access_token == 'fresh'
        assert manager.get_access_token().access_token == 'fresh'

    def test_authorize_missing_credentials_reason(self, manager, auth_flow):
        """Credential problems keep their own reason"""
        auth_flow.run.side_effect = AuthorizationError(AuthFailure.MISSING_CREDENTIALS, "Missing")
        assert manager.authorize().reason == AuthRequired.MISSING_CREDENTIALS

    def test_authorize_state_mismatch(self, manager, auth_flow):
        """Other flow failures map to AUTHORIZATION_FAILED"""
        auth_flow.run.side_effect = AuthorizationError(AuthFailure.STATE_MISMATCH, "state mismatch")
        assert manager.authorize().reason == AuthRequired.AUTHORIZATION_FAILED

    def test_reauthorize_non_interactive(self, manager, auth_flow, token_store, make_bundle, caplog):
        """Rejected tokens are dropped from memory and the user is told to log in"""
        token_store.save(make_bundle())
        manager.get_access_token()
        with caplog.at_level(logging.WARNING):
            assert manager.reauthorize(interactive=False) is None
        assert "spotcli auth login" in caplog.text
        auth_flow.run.assert_not_called()

    def test_revoke(self, manager, token_store, make_bundle):
        """Logout deletes the stored bundle"""
        token_store.save(make_bundle())
        manager.get_access_token()
        assert manager.revoke() is True
        assert not token_store.path.exists()
        assert manager.get_access_token().reason == AuthRequired.NO_TOKEN

    def test_describe(self, manager, token_store, make_bundle, clock):
        """Status summary of the stored login"""
        assert manager.describe() == {'logged_in': False}
        token_store.save(make_bundle(obtained_at=clock.now - 600))
        info = manager.describe()
        assert info['logged_in'] is True
        assert info['fresh'] is True
        assert info['seconds_left'] == 3000
        assert info['has_refresh_token'] is True
        assert info['missing_scopes'] == []
