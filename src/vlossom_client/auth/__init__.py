"""Auth module - email/password login and stored session cookies"""

from .client import AuthClient, AuthUser, UserRole
from .session_manager import SessionManager

__all__ = ["AuthClient", "AuthUser", "SessionManager", "UserRole"]
