"""
Configuration loader for the Vlossom API client.

Resolves the API base URL and tuning knobs from environment variables and an
optional YAML file (validated against client.schema.json), and fetches login
credentials from the environment, a local secrets file, or AWS Secrets
Manager with exponential backoff.
"""

import json
import logging
import os
import time
from pathlib import Path
from typing import Dict, Any, Optional

import boto3
import jsonschema
import yaml
from botocore.exceptions import BotoCoreError, ClientError

from ..utils.logger import add_log_filter

logger = logging.getLogger(__name__)


class ConfigurationError(Exception):
    """Exception raised for configuration-related errors."""

    pass


# Secret NAME in Secrets Manager, not the secret value.
CREDENTIALS_SECRET_ID = "vlossom-client/credentials"  # nosec B105
SECRETS_REGION = os.getenv("VLOSSOM_SECRETS_REGION", "af-south-1")

DEFAULT_API_URL = "http://localhost:3002"
DEFAULT_TIMEOUT_SECONDS = 10.0
DEFAULT_CONFIG_FILE = "config/client.yaml"
SCHEMA_PATH = Path(__file__).resolve().parent / "client.schema.json"

CSRF_COOKIE_NAME = "vlossom_csrf"
CSRF_HEADER_NAME = "X-CSRF-Token"

# Live session tracking: delay = min(base * 2**attempt, max) milliseconds
LIVE_MAX_RECONNECT_ATTEMPTS = 5
LIVE_BASE_DELAY_MS = 1000
LIVE_MAX_DELAY_MS = 30000


def _use_local_secrets() -> bool:
    return os.getenv("USE_LOCAL_SECRETS_FILE", "false").lower() == "true"


def _local_secrets_path() -> str:
    return os.getenv("LOCAL_SECRETS_FILE_PATH", ".local/secrets.json")


class SecretRedactionFilter(logging.Filter):
    """
    Logging filter that redacts secret values from log records.
    Replaces secret substrings with ***REDACTED*** to prevent accidental leakage.
    """

    def __init__(self, secrets: Optional[Dict[str, Any]] = None):
        super().__init__()
        self.secrets = secrets or {}
        self.redacted_values: set[str] = set()
        if self.secrets:
            self._extract_secret_values(self.secrets)

    def _extract_secret_values(self, obj: Any, max_depth: int = 5) -> None:
        """Recursively extract all secret values from nested structures."""
        if max_depth <= 0:
            return

        if isinstance(obj, dict):
            for value in obj.values():
                self._extract_secret_values(value, max_depth - 1)
        elif isinstance(obj, (list, tuple)):
            for item in obj:
                self._extract_secret_values(item, max_depth - 1)
        elif isinstance(obj, str) and len(obj) > 3:
            self.redacted_values.add(obj)

    def add_secret(self, value: Optional[str]) -> None:
        """Register a value discovered at runtime (e.g. a fresh CSRF token)."""
        if value and len(value) > 3:
            self.redacted_values.add(value)

    def filter(self, record: logging.LogRecord) -> bool:
        """Filter and redact log record."""
        try:
            record.msg = self._redact_string(str(record.msg))
            if record.args:
                if isinstance(record.args, dict):
                    record.args = {k: self._redact_string(str(v)) for k, v in record.args.items()}
                elif isinstance(record.args, (list, tuple)):
                    record.args = tuple(self._redact_string(str(arg)) for arg in record.args)
        except Exception as e:
            logger.warning(f"Error during secret redaction: {e}")
        return True

    def _redact_string(self, text: str) -> str:
        for secret in self.redacted_values:
            if secret in text:
                text = text.replace(secret, "***REDACTED***")
        return text


class Settings:
    """
    Client configuration.

    Precedence for every knob: explicit constructor argument, environment
    variable, YAML config file, built-in default.
    """

    def __init__(
        self,
        api_url: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        config_path: Optional[str] = None,
    ):
        """
        Initialize Settings.

        Args:
            api_url: Override for the API base URL
            timeout_seconds: Override for the per-request timeout
            config_path: Path to a YAML config file (defaults to VLOSSOM_CONFIG_FILE)
        """
        self.config_path = config_path or os.getenv("VLOSSOM_CONFIG_FILE", DEFAULT_CONFIG_FILE)
        self.file_config: Dict[str, Any] = self.load_config_file(self.config_path)

        live_config = self.file_config.get("live_updates", {})
        cache_config = self.file_config.get("cache", {})

        self.api_url = (
            api_url
            or os.getenv("VLOSSOM_API_URL")
            or self.file_config.get("api_url")
            or DEFAULT_API_URL
        ).rstrip("/")

        env_timeout = os.getenv("VLOSSOM_REQUEST_TIMEOUT")
        if timeout_seconds is not None:
            self.timeout_seconds = float(timeout_seconds)
        elif env_timeout:
            try:
                self.timeout_seconds = float(env_timeout)
            except ValueError as e:
                raise ConfigurationError(
                    f"VLOSSOM_REQUEST_TIMEOUT must be a number, got {env_timeout!r}"
                ) from e
        else:
            self.timeout_seconds = float(
                self.file_config.get("timeout_seconds", DEFAULT_TIMEOUT_SECONDS)
            )

        self.live_max_reconnect_attempts = int(
            live_config.get("max_reconnect_attempts", LIVE_MAX_RECONNECT_ATTEMPTS)
        )
        self.live_max_delay_ms = int(live_config.get("max_delay_ms", LIVE_MAX_DELAY_MS))
        self.stale_time_overrides: Dict[str, int] = dict(cache_config.get("stale_times", {}))
        self.session_file = os.getenv(
            "VLOSSOM_SESSION_FILE", self.file_config.get("session_file", "")
        ) or str(Path.home() / ".vlossom" / "session.json")

    @property
    def api_root(self) -> str:
        """Base URL plus the versioned API prefix."""
        return f"{self.api_url}/api/v1"

    @staticmethod
    def load_config_file(config_path: str) -> Dict[str, Any]:
        """
        Load and validate the YAML config file.

        A missing file is not an error (all knobs have defaults).

        Raises:
            ConfigurationError: If the YAML is malformed or fails schema validation
        """
        path = Path(config_path)
        if not path.exists():
            logger.debug(f"No client config file at {config_path}; using defaults")
            return {}

        try:
            with path.open("r", encoding="utf-8") as f:
                content = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

        if not content:
            logger.warning(f"Empty client config file: {config_path}")
            return {}

        with SCHEMA_PATH.open("r", encoding="utf-8") as f:
            schema = json.load(f)

        try:
            jsonschema.validate(instance=content, schema=schema)
        except jsonschema.ValidationError as e:
            raise ConfigurationError(f"Client config validation failed: {e.message}") from e

        logger.info(f"Loaded client config from {config_path}")
        return content

    @staticmethod
    def _get_secret_value(
        secret_id: str, max_retries: int = 3, base_wait: float = 1.0
    ) -> Dict[str, Any]:
        """
        Fetch secret from Secrets Manager with exponential backoff.

        Args:
            secret_id: Secret identifier in Secrets Manager
            max_retries: Maximum number of retry attempts
            base_wait: Base wait time in seconds for exponential backoff

        Returns:
            Parsed secret JSON as dictionary

        Raises:
            ConfigurationError: If secret cannot be retrieved after retries
        """
        client = boto3.client("secretsmanager", region_name=SECRETS_REGION)

        for attempt in range(max_retries):
            try:
                response = client.get_secret_value(SecretId=secret_id)
                secret_string = response.get("SecretString")
                if not secret_string:
                    raise ConfigurationError(f"Secret {secret_id} has empty value")
                return json.loads(secret_string)
            except ClientError as e:
                error_code = e.response["Error"]["Code"]
                if error_code == "ResourceNotFoundException":
                    raise ConfigurationError(
                        f"Secret '{secret_id}' not found in Secrets Manager ({SECRETS_REGION})"
                    ) from e
                elif error_code in ["AccessDeniedException", "UnauthorizedOperation"]:
                    raise ConfigurationError(
                        f"Access denied to secret '{secret_id}'. "
                        f"Grant secretsmanager:GetSecretValue to the calling role"
                    ) from e
                elif error_code == "DecryptionFailure":
                    raise ConfigurationError(
                        f"Failed to decrypt secret '{secret_id}'. Check KMS key permissions"
                    ) from e

                if attempt < max_retries - 1:
                    wait_time = base_wait * (2**attempt)
                    logger.warning(
                        f"Transient error fetching secret {secret_id}: {error_code}. "
                        f"Retrying in {wait_time}s (attempt {attempt + 1}/{max_retries})"
                    )
                    time.sleep(wait_time)
                else:
                    raise ConfigurationError(
                        f"Failed to retrieve secret '{secret_id}' after {max_retries} attempts: {error_code}"
                    ) from e
            except BotoCoreError as e:
                raise ConfigurationError(
                    f"Could not reach Secrets Manager for '{secret_id}': {e}"
                ) from e
            except json.JSONDecodeError as e:
                raise ConfigurationError(f"Secret '{secret_id}' contains invalid JSON: {e}") from e

        raise ConfigurationError(
            f"Failed to retrieve secret '{secret_id}' - exhausted all retry attempts"
        )

    @staticmethod
    def _load_from_local_file(filepath: str) -> Dict[str, Any]:
        """
        Load secrets from a local JSON file for development.

        Raises:
            ConfigurationError: If file cannot be read or contains invalid JSON
        """
        try:
            with open(filepath, "r", encoding="utf-8") as f:
                return json.load(f)
        except FileNotFoundError as e:
            raise ConfigurationError(
                f"Local secrets file not found: {filepath}. "
                f"Set LOCAL_SECRETS_FILE_PATH or unset USE_LOCAL_SECRETS_FILE"
            ) from e
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Local secrets file contains invalid JSON: {e}") from e

    @staticmethod
    def load_credentials() -> Dict[str, str]:
        """
        Resolve login credentials.

        Priority:
        1. VLOSSOM_EMAIL / VLOSSOM_PASSWORD environment variables
        2. Local secrets file (USE_LOCAL_SECRETS_FILE=true), key "vlossom"
        3. Secrets Manager secret vlossom-client/credentials

        Returns:
            Dictionary with 'email' and 'password' keys

        Raises:
            ConfigurationError: If credentials cannot be loaded or are incomplete
        """
        env_email = os.getenv("VLOSSOM_EMAIL")
        env_password = os.getenv("VLOSSOM_PASSWORD")
        if env_email and env_password:
            return {"email": env_email, "password": env_password}

        if _use_local_secrets():
            credentials = Settings._load_from_local_file(_local_secrets_path()).get("vlossom", {})
        else:
            credentials = Settings._get_secret_value(CREDENTIALS_SECRET_ID)

        if "email" not in credentials or "password" not in credentials:
            raise ConfigurationError(
                f"Vlossom credentials missing required keys. "
                f"Expected: email, password. Got: {sorted(credentials.keys())}"
            )
        return credentials

    @staticmethod
    def setup_redaction_filter(logger_instance: Optional[logging.Logger] = None) -> SecretRedactionFilter:
        """
        Attach a SecretRedactionFilter seeded with whatever credentials resolve.

        Without a logger the filter goes on every structured logger handler.

        Returns the filter so callers can register runtime secrets later.
        """
        secrets: Dict[str, Any] = {}
        try:
            secrets.update(Settings.load_credentials())
        except ConfigurationError:
            # No credentials configured; filter still catches runtime tokens
            pass

        redaction_filter = SecretRedactionFilter(secrets)
        if logger_instance is None:
            add_log_filter(redaction_filter)
        else:
            logger_instance.addFilter(redaction_filter)
        return redaction_filter


def get_credentials() -> Dict[str, str]:
    """Get login credentials."""
    return Settings.load_credentials()


def setup_logging_redaction() -> SecretRedactionFilter:
    """Redact credentials from every structured log line."""
    return Settings.setup_redaction_filter()
