"""
VlossomClient - one entry point bundling every API client.

All clients share a single ApiClient (one cookie jar, one CSRF token) and a
single QueryCache, so a mutation through one client invalidates reads made
through another.
"""

from typing import Any, Optional

import requests

from .api.admin import AdminClient
from .api.bookings import BookingClient
from .api.favorites import FavoritesClient
from .api.hair_health import HairHealthClient
from .api.http import ApiClient
from .api.properties import PropertyClient
from .api.stylist_context import StylistContextClient
from .auth.client import AuthClient
from .auth.session_manager import SessionManager
from .cache import QueryCache
from .config.settings import Settings
from .domain.session import Session
from .live.updates import LiveUpdatesClient


class VlossomClient:
    """
    Facade over the Vlossom REST API.

    Args:
        settings: Client settings (read from env/YAML when omitted)
        session: Optional requests.Session to reuse
    """

    def __init__(self, settings: Optional[Settings] = None, session: Optional[requests.Session] = None):
        self.settings = settings or Settings()
        self.api = ApiClient(self.settings, session=session)
        self.cache = QueryCache(stale_times=self.settings.stale_time_overrides)

        self.auth = AuthClient(self.api)
        self.bookings = BookingClient(self.api, self.cache)
        self.properties = PropertyClient(self.api, self.cache)
        self.hair_health = HairHealthClient(self.api, self.cache)
        self.favorites = FavoritesClient(self.api, self.cache)
        self.stylist_context = StylistContextClient(self.api, self.cache)
        self.admin = AdminClient(self.api)
        self.sessions = SessionManager(self.settings.session_file)
        self.email: Optional[str] = None

    def live(self, booking_id: str, **callbacks: Any) -> LiveUpdatesClient:
        """Live tracker for a booking; keyword arguments go to LiveUpdatesClient."""
        return LiveUpdatesClient(self.api, booking_id, **callbacks)

    def restore_session(self) -> bool:
        """Load stored login cookies for this API URL into the cookie jar."""
        stored = self.sessions.apply_to(self.api.session, self.settings.api_url)
        if stored is None:
            return False
        self.email = stored.email
        return True

    def save_session(self, email: Optional[str] = None) -> None:
        """Persist the current cookie jar for later invocations."""
        if email:
            self.email = email
        self.sessions.save_session(
            Session.from_cookie_jar(self.settings.api_url, self.api.session.cookies, email=self.email)
        )

    def logout(self) -> None:
        """Log out on the server, drop the stored session and the cache."""
        self.auth.logout()
        self.sessions.clear_session()
        self.cache.clear()
