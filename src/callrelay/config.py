"""Configuration management for callrelay.

This module defines the configuration schema using Pydantic settings,
supporting TOML files, environment variables, and programmatic overrides.

Configuration loading priority (highest to lowest):
1. Programmatic overrides (passed to CallrelayConfig constructor)
2. Environment variables (CALLRELAY_* prefix)
3. TOML configuration file
4. Default values defined in this module

Example TOML configuration:
    [slack]
    channel_id = "C0123456789"

    [review]
    ttl_seconds = 1800

Example environment variable override:
    CALLRELAY_LINEAR__API_KEY="lin_api_..."
    CALLRELAY_STORE__BACKEND="rest"
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import tomli
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Hosted key-value stores export their REST credentials under these names.
_REST_URL_ENV_VARS = ("KV_REST_API_URL", "UPSTASH_REDIS_REST_URL")
_REST_TOKEN_ENV_VARS = ("KV_REST_API_TOKEN", "UPSTASH_REDIS_REST_TOKEN")


class LoggingConfig(BaseSettings):
    """Logging configuration.

    Attributes:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format: Log format (json or console)
        file: Optional log file path (None for stdout only)
        rotation_size_mb: Log file rotation size in megabytes
        retention_count: Number of rotated log files to keep
    """

    model_config = SettingsConfigDict(
        env_prefix="CALLRELAY_LOGGING__",
        extra="forbid",
    )

    level: str = Field(default="INFO")
    format: str = Field(default="json")
    file: Path | None = Field(default=None)
    rotation_size_mb: int = Field(default=50, ge=1, le=1000)
    retention_count: int = Field(default=10, ge=1, le=100)

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level is recognized."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v_upper

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        """Validate log format is recognized."""
        valid_formats = {"json", "console"}
        v_lower = v.lower()
        if v_lower not in valid_formats:
            raise ValueError(f"Invalid log format: {v}. Must be one of {valid_formats}")
        return v_lower


class WebConfig(BaseSettings):
    """HTTP server configuration.

    Attributes:
        host: Bind host address
        port: Bind port number
        environment: Deployment environment (development or production)
    """

    model_config = SettingsConfigDict(
        env_prefix="CALLRELAY_WEB__",
        extra="forbid",
    )

    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3000, ge=1, le=65535)
    environment: str = Field(default="development")

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment is recognized."""
        valid = {"development", "production"}
        v_lower = v.lower()
        if v_lower not in valid:
            raise ValueError(f"Invalid environment: {v}. Must be one of {valid}")
        return v_lower


class FathomConfig(BaseSettings):
    """Recording webhook configuration.

    Attributes:
        webhook_secret: Shared secret used to sign inbound webhooks
    """

    model_config = SettingsConfigDict(
        env_prefix="CALLRELAY_FATHOM__",
        extra="forbid",
    )

    webhook_secret: str = Field(default="")


class OpenAIConfig(BaseSettings):
    """LLM configuration for action item extraction and recaps.

    Attributes:
        api_key: OpenAI API key
        model: Chat completion model name
        timeout_seconds: Request timeout in seconds
    """

    model_config = SettingsConfigDict(
        env_prefix="CALLRELAY_OPENAI__",
        extra="forbid",
    )

    api_key: str = Field(default="")
    model: str = Field(default="gpt-5-mini")
    timeout_seconds: int = Field(default=60, ge=1, le=600)


class LinearConfig(BaseSettings):
    """Linear issue tracker configuration.

    Attributes:
        api_key: Linear personal API key
        api_url: GraphQL endpoint
        team_id: Team that receives created issues
        project_id: Optional project for created issues
        state_id: Optional initial workflow state
        timeout_seconds: Request timeout in seconds
    """

    model_config = SettingsConfigDict(
        env_prefix="CALLRELAY_LINEAR__",
        extra="forbid",
    )

    api_key: str = Field(default="")
    api_url: str = Field(default="https://api.linear.app/graphql")
    team_id: str = Field(default="")
    project_id: str | None = Field(default=None)
    state_id: str | None = Field(default=None)
    timeout_seconds: int = Field(default=15, ge=1, le=120)


class SlackConfig(BaseSettings):
    """Slack review workflow configuration.

    Attributes:
        bot_token: Bot OAuth token (xoxb-...)
        signing_secret: Signing secret for interactivity requests
        channel_id: Channel receiving review and recap messages
        api_url: Slack Web API base URL
        timeout_seconds: Request timeout in seconds
    """

    model_config = SettingsConfigDict(
        env_prefix="CALLRELAY_SLACK__",
        extra="forbid",
    )

    bot_token: str = Field(default="")
    signing_secret: str = Field(default="")
    channel_id: str = Field(default="")
    api_url: str = Field(default="https://slack.com/api")
    timeout_seconds: int = Field(default=10, ge=1, le=60)

    @property
    def enabled(self) -> bool:
        """Whether all credentials needed for the review workflow are set."""
        return bool(self.bot_token and self.signing_secret and self.channel_id)


class GitHubConfig(BaseSettings):
    """Transcript archive configuration.

    Attributes:
        token: GitHub token with contents write access
        repo_owner: Repository owner
        repo_name: Repository name
        api_url: GitHub REST API base URL
        path_prefix: Directory in the repository for archived transcripts
    """

    model_config = SettingsConfigDict(
        env_prefix="CALLRELAY_GITHUB__",
        extra="forbid",
    )

    token: str = Field(default="")
    repo_owner: str = Field(default="")
    repo_name: str = Field(default="")
    api_url: str = Field(default="https://api.github.com")
    path_prefix: str = Field(default="call_transcript")


class StoreConfig(BaseSettings):
    """Review state store configuration.

    The memory backend keeps state in the current process and only suits
    single-process local development. The rest backend talks to a hosted
    key-value store over its REST API.

    Attributes:
        backend: Store backend ("memory" or "rest")
        rest_url: REST endpoint of the key-value store
        rest_token: Bearer token for the key-value store
        timeout_seconds: Request timeout in seconds
    """

    model_config = SettingsConfigDict(
        env_prefix="CALLRELAY_STORE__",
        extra="forbid",
    )

    backend: str = Field(default="memory")
    rest_url: str | None = Field(default=None)
    rest_token: str | None = Field(default=None)
    timeout_seconds: float = Field(default=5.0, gt=0, le=60)

    @field_validator("backend")
    @classmethod
    def validate_backend(cls, v: str) -> str:
        """Validate store backend is recognized."""
        valid = {"memory", "rest"}
        v_lower = v.lower()
        if v_lower not in valid:
            raise ValueError(f"Invalid store backend: {v}. Must be one of {valid}")
        return v_lower

    @model_validator(mode="after")
    def fill_rest_credentials(self) -> StoreConfig:
        """Fall back to the hosting platform's key-value variables."""
        if self.rest_url is None:
            self.rest_url = _first_env(_REST_URL_ENV_VARS)
        if self.rest_token is None:
            self.rest_token = _first_env(_REST_TOKEN_ENV_VARS)
        if self.backend == "rest" and not (self.rest_url and self.rest_token):
            raise ValueError("rest store backend requires rest_url and rest_token")
        return self


class ReviewConfig(BaseSettings):
    """Review lifecycle and issue creation retry configuration.

    Attributes:
        ttl_seconds: Lifetime of a review from creation
        max_attempts: Maximum create attempts per issue
        initial_delay_seconds: First backoff delay
        max_delay_seconds: Backoff ceiling
        multiplier: Backoff growth factor per attempt
        batch_delay_seconds: Pause after each successful create in a batch
    """

    model_config = SettingsConfigDict(
        env_prefix="CALLRELAY_REVIEW__",
        extra="forbid",
    )

    ttl_seconds: int = Field(default=1800, ge=60, le=86400)  # 30 min
    max_attempts: int = Field(default=3, ge=1, le=10)
    initial_delay_seconds: float = Field(default=1.0, ge=0.0, le=60.0)
    max_delay_seconds: float = Field(default=10.0, ge=0.0, le=600.0)
    multiplier: float = Field(default=2.0, ge=1.0, le=10.0)
    batch_delay_seconds: float = Field(default=0.2, ge=0.0, le=10.0)


class CallrelayConfig(BaseSettings):
    """Root configuration for callrelay.

    Aggregates all subsystem configurations. Configuration can be loaded from:
    1. TOML files (using load_config function)
    2. Environment variables (CALLRELAY_* prefix)
    3. Direct instantiation with keyword arguments

    Environment variable format for nested config:
        CALLRELAY_<SECTION>__<KEY>=value
    """

    model_config = SettingsConfigDict(
        env_prefix="CALLRELAY_",
        env_nested_delimiter="__",
        extra="forbid",
    )

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    web: WebConfig = Field(default_factory=WebConfig)
    fathom: FathomConfig = Field(default_factory=FathomConfig)
    openai: OpenAIConfig = Field(default_factory=OpenAIConfig)
    linear: LinearConfig = Field(default_factory=LinearConfig)
    slack: SlackConfig = Field(default_factory=SlackConfig)
    github: GitHubConfig = Field(default_factory=GitHubConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    review: ReviewConfig = Field(default_factory=ReviewConfig)

    def missing_required(self) -> list[str]:
        """List required settings that are unset.

        Returns:
            Dotted setting names, empty when the configuration is complete.
        """
        required = {
            "fathom.webhook_secret": self.fathom.webhook_secret,
            "github.token": self.github.token,
            "github.repo_owner": self.github.repo_owner,
            "github.repo_name": self.github.repo_name,
            "openai.api_key": self.openai.api_key,
            "linear.api_key": self.linear.api_key,
            "linear.team_id": self.linear.team_id,
            "slack.bot_token": self.slack.bot_token,
            "slack.signing_secret": self.slack.signing_secret,
            "slack.channel_id": self.slack.channel_id,
        }
        return [name for name, value in required.items() if not value]


def _first_env(names: tuple[str, ...]) -> str | None:
    for name in names:
        value = os.environ.get(name)
        if value:
            return value
    return None


def load_config(config_path: Path | None = None) -> CallrelayConfig:
    """Load configuration from TOML file with environment variable overrides.

    Configuration search order (first found is used):
    1. config_path if explicitly provided
    2. ./callrelay.toml (current directory)
    3. ~/.config/callrelay/config.toml (user config directory)

    Args:
        config_path: Explicit path to TOML config file. If None, searches
                    default locations.

    Returns:
        CallrelayConfig: Fully resolved configuration instance.

    Raises:
        FileNotFoundError: If config_path is explicitly provided but doesn't exist.
        ValueError: If TOML file contains invalid configuration.
    """
    toml_data: dict[str, Any] = {}

    if config_path is not None:
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        selected_path = config_path
    else:
        search_paths = [
            Path.cwd() / "callrelay.toml",
            Path.home() / ".config" / "callrelay" / "config.toml",
        ]
        selected_path = None
        for path in search_paths:
            if path.exists():
                selected_path = path
                break

    if selected_path is not None:
        with open(selected_path, "rb") as f:
            toml_data = tomli.load(f)

    # Pydantic overlays environment variables on top of the TOML data
    try:
        return CallrelayConfig(**toml_data)
    except Exception as e:
        if selected_path:
            raise ValueError(
                f"Invalid configuration in {selected_path}: {e}"
            ) from e
        else:
            raise ValueError(f"Invalid configuration: {e}") from e
