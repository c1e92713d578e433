"""Configuration management for the Twitter adaptor."""

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, SecretStr


@dataclass(frozen=True)
class UserContext:
    """OAuth 1.0a user-context credentials (app key plus access token)."""

    api_key: str
    api_secret: str
    access_token: str
    access_token_secret: str


@dataclass(frozen=True)
class Bearer:
    """OAuth 2.0 bearer token credentials."""

    token: str


@dataclass(frozen=True)
class AppOnly:
    """App key and secret only; exchanged for a bearer token on first use."""

    api_key: str
    api_secret: str


Credentials = Union[UserContext, Bearer, AppOnly]


class ServiceConfig(BaseModel):
    """Twitter service settings."""

    model_config = ConfigDict(frozen=True)

    api_key: SecretStr = Field(..., description="Twitter API key")
    api_secret: SecretStr = Field(..., description="Twitter API secret")
    access_token: Optional[SecretStr] = Field(default=None, description="User access token")
    access_token_secret: Optional[SecretStr] = Field(
        default=None, description="User access token secret"
    )
    bearer_token: Optional[SecretStr] = Field(default=None, description="OAuth 2.0 bearer token")

    poll_interval_ms: int = Field(default=60000, ge=1, description="Milliseconds between polls")
    thread_history_limit: int = Field(default=50, ge=1)
    since_id: Optional[str] = Field(default=None, description="Seed cursor for the first poll")
    include_own_tweets: bool = False
    log_level: Literal["debug", "info", "warning", "error"] = "info"

    # Backoff policy
    max_retries: int = Field(default=5, ge=0)
    base_delay_ms: int = Field(default=5000, ge=0)

    _credentials: Credentials = PrivateAttr()

    def model_post_init(self, __context) -> None:
        self._credentials = resolve_credentials(self)

    @property
    def credentials(self) -> Credentials:
        """Credentials resolved once when the config was constructed."""
        return self._credentials


class WebhookConfig(BaseModel):
    """Webhook server settings."""

    host: str = "127.0.0.1"
    port: int = Field(default=8080, ge=1, le=65535)


class Config(BaseModel):
    """Root configuration model."""

    twitter: ServiceConfig
    webhook: WebhookConfig = WebhookConfig()


def resolve_credentials(config: ServiceConfig) -> Credentials:
    """Pick the most specific credentials available.

    User context wins when both access token and secret are present, then a
    bearer token, then the bare app key and secret.
    """
    api_key = config.api_key.get_secret_value()
    api_secret = config.api_secret.get_secret_value()

    if config.access_token and config.access_token_secret:
        return UserContext(
            api_key=api_key,
            api_secret=api_secret,
            access_token=config.access_token.get_secret_value(),
            access_token_secret=config.access_token_secret.get_secret_value(),
        )
    if config.bearer_token:
        return Bearer(token=config.bearer_token.get_secret_value())
    return AppOnly(api_key=api_key, api_secret=api_secret)


ENV_REFERENCE = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


def expand_env_vars(value: Any, source: Path) -> Any:
    """Substitute ``${NAME}`` references anywhere inside string values.

    Raises:
        ValueError: If a referenced variable is not set.
    """
    if isinstance(value, dict):
        return {k: expand_env_vars(v, source) for k, v in value.items()}
    if isinstance(value, list):
        return [expand_env_vars(item, source) for item in value]
    if not isinstance(value, str):
        return value

    def substitute(match: re.Match) -> str:
        name = match.group(1)
        env_value = os.getenv(name)
        if env_value is None:
            raise ValueError(f"Environment variable '{name}' referenced in {source} is not set")
        return env_value

    return ENV_REFERENCE.sub(substitute, value)


def load_config(config_path: str | Path = "config.yaml") -> Config:
    """Load and validate the adaptor configuration from a YAML file.

    The file either has ``twitter:`` and optional ``webhook:`` sections, or
    is a bare ``twitter`` section (credentials and polling options at the top
    level), in which case webhook defaults apply.

    Raises:
        FileNotFoundError: If the config file doesn't exist.
        ValueError: If a referenced environment variable is not set.
        ValidationError: If the config is invalid.
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(
            f"Config file not found: {path}\n"
            "Copy config.example.yaml to config.yaml and fill in your values."
        )

    with path.open() as f:
        raw = yaml.safe_load(f) or {}

    raw = expand_env_vars(raw, path)
    if isinstance(raw, dict) and "twitter" not in raw and "api_key" in raw:
        raw = {"twitter": raw}

    return Config.model_validate(raw)
