"""Tests for configuration loading and credential resolution."""

import pytest
from pydantic import ValidationError

from twitter_adaptor.config import (
    AppOnly,
    Bearer,
    ServiceConfig,
    UserContext,
    load_config,
)


class TestServiceConfig:
    """Test ServiceConfig defaults and credential precedence."""

    def test_defaults(self):
        """Test unset options fall back to their defaults."""
        config = ServiceConfig(api_key="key", api_secret="secret")

        assert config.poll_interval_ms == 60000
        assert config.thread_history_limit == 50
        assert config.since_id is None
        assert config.include_own_tweets is False
        assert config.log_level == "info"
        assert config.max_retries == 5
        assert config.base_delay_ms == 5000

    def test_user_context_wins(self):
        """Test access token and secret select user-context credentials."""
        config = ServiceConfig(
            api_key="key",
            api_secret="secret",
            access_token="token",
            access_token_secret="token-secret",
            bearer_token="bearer",
        )

        assert config.credentials == UserContext("key", "secret", "token", "token-secret")

    def test_partial_user_context_falls_back_to_bearer(self):
        """Test an access token without its secret is not enough for user context."""
        config = ServiceConfig(
            api_key="key",
            api_secret="secret",
            access_token="token",
            bearer_token="bearer",
        )

        assert config.credentials == Bearer("bearer")

    def test_app_only(self):
        """Test the bare app key and secret are used as a last resort."""
        config = ServiceConfig(api_key="key", api_secret="secret")

        assert config.credentials == AppOnly("key", "secret")

    def test_secrets_are_masked(self):
        """Test secrets do not leak through repr."""
        config = ServiceConfig(api_key="key", api_secret="super-secret")

        assert "super-secret" not in repr(config)

    def test_thread_history_limit_must_be_positive(self):
        """Test a zero history limit is rejected."""
        with pytest.raises(ValidationError):
            ServiceConfig(api_key="key", api_secret="secret", thread_history_limit=0)

    def test_missing_api_key_is_rejected(self):
        """Test the app key is required."""
        with pytest.raises(ValidationError):
            ServiceConfig(api_secret="secret")

    def test_config_is_frozen(self):
        """Test options cannot change after construction."""
        config = ServiceConfig(api_key="key", api_secret="secret")

        with pytest.raises(ValidationError):
            config.poll_interval_ms = 10


class TestLoadConfig:
    """Test YAML loading with environment expansion."""

    def test_load_with_env_expansion(self, tmp_path, monkeypatch):
        """Test ${VAR} values are read from the environment."""
        monkeypatch.setenv("X_API_KEY", "env-key")
        monkeypatch.setenv("X_API_SECRET", "env-secret")
        path = tmp_path / "config.yaml"
        path.write_text(
            "twitter:\n"
            "  api_key: ${X_API_KEY}\n"
            "  api_secret: ${X_API_SECRET}\n"
            "  poll_interval_ms: 30000\n"
            "  since_id: '1700000000000000000'\n"
            "webhook:\n"
            "  port: 9000\n"
        )

        config = load_config(path)

        assert config.twitter.api_key.get_secret_value() == "env-key"
        assert config.twitter.poll_interval_ms == 30000
        assert config.twitter.since_id == "1700000000000000000"
        assert config.webhook.port == 9000
        assert config.webhook.host == "127.0.0.1"

    def test_missing_file(self, tmp_path):
        """Test a missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.yaml")

    def test_unset_env_var(self, tmp_path, monkeypatch):
        """Test an unset environment variable is reported by name."""
        monkeypatch.delenv("X_MISSING_SECRET", raising=False)
        path = tmp_path / "config.yaml"
        path.write_text("twitter:\n  api_key: key\n  api_secret: ${X_MISSING_SECRET}\n")

        with pytest.raises(ValueError, match="X_MISSING_SECRET"):
            load_config(path)

    def test_empty_file_is_invalid(self, tmp_path):
        """Test an empty file fails validation instead of crashing."""
        path = tmp_path / "config.yaml"
        path.write_text("")

        with pytest.raises(ValidationError):
            load_config(path)

    def test_embedded_env_reference(self, tmp_path, monkeypatch):
        """Test ${VAR} is substituted inside a longer string."""
        monkeypatch.setenv("X_BIND_SUFFIX", "0.1")
        path = tmp_path / "config.yaml"
        path.write_text(
            "twitter:\n"
            "  api_key: key\n"
            "  api_secret: secret\n"
            "webhook:\n"
            "  host: 127.0.${X_BIND_SUFFIX}\n"
        )

        config = load_config(path)

        assert config.webhook.host == "127.0.0.1"

    def test_bare_twitter_section(self, tmp_path, monkeypatch):
        """Test a file holding only the service options is accepted."""
        monkeypatch.setenv("X_API_SECRET", "env-secret")
        path = tmp_path / "config.yaml"
        path.write_text(
            "api_key: key\n"
            "api_secret: ${X_API_SECRET}\n"
            "bearer_token: bearer\n"
            "include_own_tweets: true\n"
        )

        config = load_config(path)

        assert config.twitter.api_secret.get_secret_value() == "env-secret"
        assert config.twitter.include_own_tweets is True
        assert config.twitter.credentials == Bearer("bearer")
        assert config.webhook.port == 8080
