"""Configuration - settings, credentials and log redaction."""

from .settings import (
    ConfigurationError,
    SecretRedactionFilter,
    Settings,
    get_credentials,
    setup_logging_redaction,
)

__all__ = [
    "ConfigurationError",
    "SecretRedactionFilter",
    "Settings",
    "get_credentials",
    "setup_logging_redaction",
]
