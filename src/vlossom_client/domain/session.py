"""
Session domain model for persisted API login cookies.

Holds the cookies issued by the Vlossom API (session cookie, refresh cookie,
CSRF cookie) so a later CLI invocation can reuse the login.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

import requests

from ..utils.timezone import now_utc, parse_timestamp, to_iso


@dataclass
class Session:
    """
    Persisted login for one API base URL.

    Attributes:
        api_url: Base URL the cookies were issued for
        cookies: Cookie dicts (name, value, domain, path, expires, secure)
        email: Account the session belongs to, for display only
        saved_at: When the session was written
    """

    api_url: str
    cookies: List[Dict[str, Any]] = field(default_factory=list)
    email: Optional[str] = None
    saved_at: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Session":
        cookies = data.get("cookies", [])
        if not isinstance(cookies, list):
            raise ValueError("Session cookies must be a list")
        return cls(
            api_url=data.get("api_url", ""),
            cookies=cookies,
            email=data.get("email"),
            saved_at=parse_timestamp(data.get("saved_at")),
        )

    @classmethod
    def from_cookie_jar(
        cls, api_url: str, jar: requests.cookies.RequestsCookieJar, email: Optional[str] = None
    ) -> "Session":
        """
        Snapshot a requests cookie jar.

        Args:
            api_url: Base URL the jar talks to
            jar: Cookie jar of a logged-in requests.Session
            email: Account email

        Returns:
            Session instance stamped with the current time
        """
        cookies = [
            {
                "name": cookie.name,
                "value": cookie.value,
                "domain": cookie.domain,
                "path": cookie.path,
                "expires": cookie.expires,
                "secure": cookie.secure,
            }
            for cookie in jar
        ]
        return cls(api_url=api_url, cookies=cookies, email=email, saved_at=now_utc())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "api_url": self.api_url,
            "cookies": self.cookies,
            "email": self.email,
            "saved_at": to_iso(self.saved_at) if self.saved_at else None,
        }

    def apply_to(self, jar: requests.cookies.RequestsCookieJar) -> None:
        """Load the stored cookies into a jar."""
        for cookie in self.cookies:
            jar.set(
                cookie["name"],
                cookie["value"],
                domain=cookie.get("domain") or "",
                path=cookie.get("path") or "/",
                expires=cookie.get("expires"),
                secure=bool(cookie.get("secure", False)),
            )

    def is_empty(self) -> bool:
        return len(self.cookies) == 0

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """
        True when every cookie carrying an expiry has passed it.

        Session cookies without an expiry never expire on the client side;
        the server rejects them instead.
        """
        if self.is_empty():
            return True
        now_ts = (now or now_utc()).timestamp()
        expiries = [c["expires"] for c in self.cookies if c.get("expires")]
        if not expiries:
            return False
        return all(expires <= now_ts for expires in expiries)
