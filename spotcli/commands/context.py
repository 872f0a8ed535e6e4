"""
Application context handed to every command handler
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, List, Optional

from ..config.auth import TokenManager, get_auth
from ..config.preferences import Preferences, PreferencesStore
from ..config.settings import Settings, get_settings
from ..session.references import SessionReferences
from ..spotify.client import SpotifyClient
from .render import Renderer

if TYPE_CHECKING:
    from .dispatcher import Dispatcher
    from .shell import CommandHistory


@dataclass
class AppContext:
    """
    Everything a handler may touch

    Attributes:
        client: Web API gateway
        refs: Numbered references to the latest listings
        prefs: Current user preferences
        prefs_store: Where preference changes are saved
        settings: Application settings
        auth: Token manager (login/logout)
        out: Output renderer
        interactive: Running inside the shell (browser login allowed)
        history: Shell history, None outside the shell
        dispatcher: Set by the dispatcher so ``help`` can list commands
        running: Cleared by ``quit``
    """
    client: SpotifyClient
    refs: SessionReferences
    prefs: Preferences
    prefs_store: PreferencesStore
    settings: Settings
    auth: TokenManager
    out: Renderer
    interactive: bool = True
    history: Optional['CommandHistory'] = None
    dispatcher: Optional['Dispatcher'] = None
    running: bool = True
    alias_listeners: List[Callable[[], None]] = field(default_factory=list)

    def replace_preferences(self, prefs: Preferences) -> None:
        """Swap in a new preferences object (after ``config reset``)."""
        self.prefs = prefs
        self.out.prefs = prefs
        if self.history is not None:
            self.history.configure(prefs.history, prefs.history_limit)

    def aliases_changed(self) -> None:
        for listener in self.alias_listeners:
            listener()


def create_context(
    settings: Optional[Settings] = None,
    interactive: bool = True,
    auth: Optional[TokenManager] = None,
    client: Optional[SpotifyClient] = None,
) -> AppContext:
    """
    Build the context from the global settings, token manager and preferences

    Args:
        settings: Settings to use, defaults to the global instance
        interactive: Allow the browser authorization flow
        auth: Token manager override
        client: Gateway override
    """
    settings = settings or get_settings()
    auth = auth or get_auth()
    prefs_store = PreferencesStore(settings.get_preferences_path())
    prefs = prefs_store.load()
    client = client or SpotifyClient(auth, settings, interactive=interactive)
    return AppContext(
        client=client,
        refs=SessionReferences(),
        prefs=prefs,
        prefs_store=prefs_store,
        settings=settings,
        auth=auth,
        out=Renderer(prefs),
        interactive=interactive,
    )
