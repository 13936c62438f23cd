"""
Email/password authentication against the Vlossom API.

The backend answers login and signup with httpOnly cookies (access token,
refresh token) plus the readable CSRF cookie. They land in the ApiClient's
cookie jar, so nothing token-shaped is handled here directly.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from ..api.exceptions import ApiError, AuthenticationError, NotFoundError
from ..api.http import ApiClient
from ..utils.logger import get_logger, log_operation, mask_email

logger = get_logger(__name__)


class UserRole(str, Enum):
    CUSTOMER = "CUSTOMER"
    STYLIST = "STYLIST"
    PROPERTY_OWNER = "PROPERTY_OWNER"
    ADMIN = "ADMIN"


@dataclass
class AuthUser:
    id: str
    email: Optional[str]
    roles: List[str]
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    wallet_address: Optional[str] = None
    extra_fields: Dict[str, Any] = field(default_factory=dict)

    CORE_KEYS = frozenset({"id", "email", "role", "roles", "displayName", "avatarUrl", "walletAddress"})

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AuthUser":
        # Older payloads carry a single `role`, newer ones a `roles` list
        roles = data.get("roles")
        if not roles:
            roles = [data["role"]] if data.get("role") else []
        return cls(
            id=data["id"],
            email=data.get("email"),
            roles=list(roles),
            display_name=data.get("displayName"),
            avatar_url=data.get("avatarUrl"),
            wallet_address=data.get("walletAddress"),
            extra_fields={k: v for k, v in data.items() if k not in cls.CORE_KEYS},
        )

    def has_role(self, role: str) -> bool:
        return UserRole(role).value in self.roles


class AuthClient:
    """Signup, login, logout and current-user lookup."""

    def __init__(self, api: ApiClient):
        self.api = api

    @log_operation("signup")
    def signup(
        self,
        email: str,
        password: str,
        role: str = UserRole.CUSTOMER.value,
        display_name: Optional[str] = None,
    ) -> AuthUser:
        payload: Dict[str, Any] = {
            "email": email,
            "password": password,
            "role": UserRole(role).value,
        }
        if display_name:
            payload["displayName"] = display_name
        data = self.api.post("/auth/signup", json=payload, error_message="Signup failed")
        user = AuthUser.from_dict(data["user"])
        logger.info(
            "Account created",
            operation="signup",
            context={"email": mask_email(email), "roles": user.roles},
        )
        return user

    @log_operation("login")
    def login(self, email: str, password: str) -> AuthUser:
        """
        Log in with email and password.

        Raises:
            AuthenticationError: Wrong credentials
            ApiError: Any other failure
        """
        data = self.api.post(
            "/auth/login",
            json={"email": email, "password": password},
            error_message="Login failed",
        )
        user = AuthUser.from_dict(data["user"])
        logger.info(
            "Logged in",
            operation="login",
            context={"email": mask_email(email), "csrf_cookie": self.api.is_authenticated()},
        )
        return user

    def logout(self) -> None:
        """Tell the server to drop the session, then clear local cookies regardless."""
        try:
            self.api.post("/auth/logout", error_message="Logout failed")
        except ApiError as e:
            logger.warning("Server logout failed; clearing local session anyway", operation="logout", error=str(e))
        finally:
            self.api.session.cookies.clear()

    def current_user(self) -> Optional[AuthUser]:
        """Return the logged-in user, or None when there is no valid session."""
        try:
            data = self.api.get("/auth/me", error_message="Failed to load current user")
        except (AuthenticationError, NotFoundError):
            return None
        return AuthUser.from_dict(data["user"])

    def refresh(self) -> bool:
        return self.api.refresh()
