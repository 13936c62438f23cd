"""Vlossom client - REST client, booking lifecycle rules and live session tracking."""

from .api.exceptions import ApiError, AuthenticationError, NetworkError, NotFoundError
from .client import VlossomClient
from .config.settings import ConfigurationError, Settings

__version__ = "0.1.0"

__all__ = [
    "ApiError",
    "AuthenticationError",
    "ConfigurationError",
    "NetworkError",
    "NotFoundError",
    "Settings",
    "VlossomClient",
]
