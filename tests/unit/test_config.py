"""
Unit tests for configuration loader (vlossom_client/config/settings.py)

Tests covering:
- SecretRedactionFilter for logging
- Settings precedence (argument, env, YAML, default) and schema validation
- Credential resolution from env, local file and Secrets Manager
"""

import json
import logging
import os

import boto3
import pytest
from botocore.exceptions import ClientError
from moto import mock_aws
from unittest.mock import patch

from vlossom_client.config import settings as settings_module
from vlossom_client.config.settings import (
    CREDENTIALS_SECRET_ID,
    DEFAULT_API_URL,
    LIVE_MAX_DELAY_MS,
    LIVE_MAX_RECONNECT_ATTEMPTS,
    ConfigurationError,
    SecretRedactionFilter,
    Settings,
    get_credentials,
    setup_logging_redaction,
)
from vlossom_client.utils.logger import get_logger, remove_log_filter


@pytest.fixture
def aws_credentials(monkeypatch):
    """Fixture for AWS credentials."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", settings_module.SECRETS_REGION)


@pytest.fixture(autouse=True)
def cleanup_env(monkeypatch):
    """Start every test without client configuration in the environment."""
    for key in list(os.environ.keys()):
        if key.startswith("VLOSSOM_") or key in ("USE_LOCAL_SECRETS_FILE", "LOCAL_SECRETS_FILE_PATH"):
            monkeypatch.delenv(key, raising=False)


def _write_yaml(tmp_path, text):
    path = tmp_path / "client.yaml"
    path.write_text(text, encoding="utf-8")
    return str(path)


class TestSecretRedactionFilter:
    def test_initialization_without_secrets(self):
        filter_obj = SecretRedactionFilter()
        assert filter_obj.secrets == {}
        assert filter_obj.redacted_values == set()

    def test_nested_values_collected(self):
        filter_obj = SecretRedactionFilter({"vlossom": {"password": "hunter22"}, "keys": ["key-1111"]})
        assert {"hunter22", "key-1111"} <= filter_obj.redacted_values

    def test_short_values_ignored(self):
        filter_obj = SecretRedactionFilter({"x": "abc"})
        assert filter_obj.redacted_values == set()

    def test_redacts_message_and_args(self):
        filter_obj = SecretRedactionFilter({"password": "hunter22"})
        record = logging.LogRecord(
            name="test",
            level=logging.INFO,
            pathname="",
            lineno=0,
            msg="login with hunter22 and %s",
            args=("hunter22",),
            exc_info=None,
        )
        assert filter_obj.filter(record) is True
        assert "hunter22" not in record.getMessage()
        assert record.getMessage().count("***REDACTED***") == 2

    def test_add_secret_at_runtime(self):
        filter_obj = SecretRedactionFilter()
        filter_obj.add_secret("csrf-token-value")
        filter_obj.add_secret(None)
        assert filter_obj.redacted_values == {"csrf-token-value"}


class TestSettings:
    def test_defaults(self, tmp_path):
        settings = Settings(config_path=str(tmp_path / "missing.yaml"))
        assert settings.api_url == DEFAULT_API_URL
        assert settings.api_root == f"{DEFAULT_API_URL}/api/v1"
        assert settings.timeout_seconds == 10.0
        assert settings.live_max_reconnect_attempts == LIVE_MAX_RECONNECT_ATTEMPTS
        assert settings.live_max_delay_ms == LIVE_MAX_DELAY_MS
        assert settings.stale_time_overrides == {}
        assert settings.session_file.endswith(os.path.join(".vlossom", "session.json"))

    def test_trailing_slash_stripped(self, tmp_path):
        settings = Settings(api_url="https://api.vlossom.test/", config_path=str(tmp_path / "none.yaml"))
        assert settings.api_root == "https://api.vlossom.test/api/v1"

    def test_yaml_values_loaded(self, tmp_path):
        path = _write_yaml(
            tmp_path,
            "api_url: https://staging.vlossom.test\n"
            "timeout_seconds: 3\n"
            "live_updates:\n  max_reconnect_attempts: 2\n  max_delay_ms: 5000\n"
            "cache:\n  stale_times:\n    dynamic: 1000\n",
        )
        settings = Settings(config_path=path)
        assert settings.api_url == "https://staging.vlossom.test"
        assert settings.timeout_seconds == 3.0
        assert settings.live_max_reconnect_attempts == 2
        assert settings.live_max_delay_ms == 5000
        assert settings.stale_time_overrides == {"dynamic": 1000}

    def test_env_overrides_yaml_and_argument_overrides_env(self, tmp_path, monkeypatch):
        path = _write_yaml(tmp_path, "api_url: https://yaml.vlossom.test\n")
        monkeypatch.setenv("VLOSSOM_API_URL", "https://env.vlossom.test")
        assert Settings(config_path=path).api_url == "https://env.vlossom.test"
        assert Settings(api_url="https://arg.vlossom.test", config_path=path).api_url == "https://arg.vlossom.test"

    def test_config_path_from_env(self, tmp_path, monkeypatch):
        path = _write_yaml(tmp_path, "timeout_seconds: 4.5\n")
        monkeypatch.setenv("VLOSSOM_CONFIG_FILE", path)
        assert Settings().timeout_seconds == 4.5

    def test_invalid_timeout_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("VLOSSOM_REQUEST_TIMEOUT", "soon")
        with pytest.raises(ConfigurationError, match="VLOSSOM_REQUEST_TIMEOUT"):
            Settings(config_path=str(tmp_path / "none.yaml"))

    def test_schema_rejects_unknown_key(self, tmp_path):
        path = _write_yaml(tmp_path, "api_url: https://ok.test\nretries: 3\n")
        with pytest.raises(ConfigurationError, match="validation failed"):
            Settings(config_path=path)

    def test_schema_rejects_bad_url(self, tmp_path):
        path = _write_yaml(tmp_path, "api_url: ftp://nope\n")
        with pytest.raises(ConfigurationError):
            Settings(config_path=path)

    def test_malformed_yaml(self, tmp_path):
        path = _write_yaml(tmp_path, "api_url: [unclosed\n")
        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            Settings(config_path=path)

    def test_empty_yaml_uses_defaults(self, tmp_path):
        path = _write_yaml(tmp_path, "")
        assert Settings(config_path=path).api_url == DEFAULT_API_URL


class TestCredentials:
    def test_environment_variables_win(self, monkeypatch):
        monkeypatch.setenv("VLOSSOM_EMAIL", "thandi@example.com")
        monkeypatch.setenv("VLOSSOM_PASSWORD", "hunter22")
        assert get_credentials() == {"email": "thandi@example.com", "password": "hunter22"}

    def test_local_secrets_file(self, tmp_path, monkeypatch):
        path = tmp_path / "secrets.json"
        path.write_text(json.dumps({"vlossom": {"email": "a@b.co", "password": "pw-local"}}))
        monkeypatch.setenv("USE_LOCAL_SECRETS_FILE", "true")
        monkeypatch.setenv("LOCAL_SECRETS_FILE_PATH", str(path))
        assert get_credentials()["password"] == "pw-local"

    def test_local_secrets_file_missing(self, tmp_path, monkeypatch):
        monkeypatch.setenv("USE_LOCAL_SECRETS_FILE", "true")
        monkeypatch.setenv("LOCAL_SECRETS_FILE_PATH", str(tmp_path / "nope.json"))
        with pytest.raises(ConfigurationError, match="not found"):
            get_credentials()

    def test_local_secrets_missing_keys(self, tmp_path, monkeypatch):
        path = tmp_path / "secrets.json"
        path.write_text(json.dumps({"vlossom": {"email": "a@b.co"}}))
        monkeypatch.setenv("USE_LOCAL_SECRETS_FILE", "true")
        monkeypatch.setenv("LOCAL_SECRETS_FILE_PATH", str(path))
        with pytest.raises(ConfigurationError, match="missing required keys"):
            get_credentials()

    @mock_aws
    def test_secrets_manager(self, aws_credentials):
        client = boto3.client("secretsmanager", region_name=settings_module.SECRETS_REGION)
        client.create_secret(
            Name=CREDENTIALS_SECRET_ID,
            SecretString=json.dumps({"email": "ops@vlossom.test", "password": "from-aws"}),
        )
        assert get_credentials() == {"email": "ops@vlossom.test", "password": "from-aws"}

    @mock_aws
    def test_secrets_manager_missing_secret(self, aws_credentials):
        with pytest.raises(ConfigurationError, match="not found"):
            get_credentials()

    def test_transient_errors_retried_with_backoff(self, aws_credentials):
        error = ClientError({"Error": {"Code": "ThrottlingException", "Message": "slow down"}}, "GetSecretValue")
        with patch("vlossom_client.config.settings.boto3.client") as client_factory, patch(
            "vlossom_client.config.settings.time.sleep"
        ) as sleep:
            client_factory.return_value.get_secret_value.side_effect = [
                error,
                error,
                {"SecretString": json.dumps({"email": "a@b.co", "password": "third-time"})},
            ]
            assert get_credentials()["password"] == "third-time"
        assert [c.args[0] for c in sleep.call_args_list] == [1.0, 2.0]

    def test_retries_exhausted(self, aws_credentials):
        error = ClientError({"Error": {"Code": "ThrottlingException", "Message": "slow down"}}, "GetSecretValue")
        with patch("vlossom_client.config.settings.boto3.client") as client_factory, patch(
            "vlossom_client.config.settings.time.sleep"
        ):
            client_factory.return_value.get_secret_value.side_effect = error
            with pytest.raises(ConfigurationError, match="after 3 attempts"):
                get_credentials()


def test_setup_logging_redaction_attaches_filter(monkeypatch):
    monkeypatch.setenv("VLOSSOM_EMAIL", "thandi@example.com")
    monkeypatch.setenv("VLOSSOM_PASSWORD", "hunter22")
    redaction = setup_logging_redaction()
    try:
        assert "hunter22" in redaction.redacted_values
        handler = get_logger("vlossom_client.api.http").logger.handlers[0]
        assert redaction in handler.filters
        assert redaction not in logging.getLogger().filters
    finally:
        remove_log_filter(redaction)
