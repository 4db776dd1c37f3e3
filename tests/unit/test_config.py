"""Unit tests for configuration management.

Tests cover:
- Default configuration values
- TOML file loading
- Environment variable overrides
- Hosted key-value store credential fallback
- Required-setting reporting
"""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from callrelay.config import (
    CallrelayConfig,
    LinearConfig,
    ReviewConfig,
    SlackConfig,
    StoreConfig,
    WebConfig,
    load_config,
)
from callrelay.retry import RetryPolicy

KV_ENV_VARS = (
    "KV_REST_API_URL",
    "KV_REST_API_TOKEN",
    "UPSTASH_REDIS_REST_URL",
    "UPSTASH_REDIS_REST_TOKEN",
)


@pytest.fixture(autouse=True)
def clean_kv_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in KV_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestWebConfig:
    """Test WebConfig defaults and validation."""

    def test_default_values(self) -> None:
        config = WebConfig()
        assert config.host == "0.0.0.0"
        assert config.port == 3000
        assert config.environment == "development"

    def test_environment_validation(self) -> None:
        """Environment is case-insensitive and limited to known values."""
        assert WebConfig(environment="PRODUCTION").environment == "production"
        with pytest.raises(ValidationError):
            WebConfig(environment="staging")

    def test_port_validation(self) -> None:
        with pytest.raises(ValidationError):
            WebConfig(port=0)
        with pytest.raises(ValidationError):
            WebConfig(port=65536)


class TestLinearConfig:
    """Test LinearConfig defaults."""

    def test_default_values(self) -> None:
        config = LinearConfig()
        assert config.api_url == "https://api.linear.app/graphql"
        assert config.project_id is None
        assert config.timeout_seconds == 15


class TestSlackConfig:
    """Test the Slack review toggle."""

    def test_disabled_without_credentials(self) -> None:
        assert SlackConfig().enabled is False
        assert SlackConfig(bot_token="xoxb-1", signing_secret="s").enabled is False

    def test_enabled_with_all_credentials(self) -> None:
        config = SlackConfig(bot_token="xoxb-1", signing_secret="s", channel_id="C1")
        assert config.enabled is True


class TestStoreConfig:
    """Test StoreConfig backend selection and credential fallback."""

    def test_memory_is_default(self) -> None:
        config = StoreConfig()
        assert config.backend == "memory"
        assert config.rest_url is None

    def test_rest_requires_credentials(self) -> None:
        with pytest.raises(ValidationError, match="rest_url and rest_token"):
            StoreConfig(backend="rest")

    def test_rest_with_explicit_credentials(self) -> None:
        config = StoreConfig(backend="REST", rest_url="https://kv.example.com", rest_token="tok")
        assert config.backend == "rest"
        assert config.rest_url == "https://kv.example.com"

    def test_falls_back_to_hosted_kv_variables(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("KV_REST_API_URL", "https://kv.vercel.example")
        monkeypatch.setenv("UPSTASH_REDIS_REST_TOKEN", "upstash-token")

        config = StoreConfig(backend="rest")

        assert config.rest_url == "https://kv.vercel.example"
        assert config.rest_token == "upstash-token"

    def test_invalid_backend(self) -> None:
        with pytest.raises(ValidationError):
            StoreConfig(backend="redis")


class TestReviewConfig:
    """Test ReviewConfig defaults and retry policy derivation."""

    def test_default_values(self) -> None:
        config = ReviewConfig()
        assert config.ttl_seconds == 1800
        assert config.max_attempts == 3
        assert config.initial_delay_seconds == 1.0

    def test_ttl_validation(self) -> None:
        with pytest.raises(ValidationError):
            ReviewConfig(ttl_seconds=0)

    def test_retry_policy_from_config(self) -> None:
        policy = RetryPolicy.from_config(ReviewConfig(max_attempts=5, max_delay_seconds=4.0))
        assert policy.max_attempts == 5
        assert policy.max_delay_seconds == 4.0


class TestCallrelayConfig:
    """Test root configuration."""

    def test_missing_required_lists_everything_by_default(self) -> None:
        missing = CallrelayConfig().missing_required()
        assert "fathom.webhook_secret" in missing
        assert "linear.team_id" in missing
        assert "slack.channel_id" in missing

    def test_missing_required_empty_when_complete(self) -> None:
        config = CallrelayConfig(
            fathom={"webhook_secret": "whsec"},
            github={"token": "ghp", "repo_owner": "acme", "repo_name": "calls"},
            openai={"api_key": "sk-test"},
            linear={"api_key": "lin_api", "team_id": "team-1"},
            slack={"bot_token": "xoxb", "signing_secret": "s", "channel_id": "C1"},
        )
        assert config.missing_required() == []

    def test_unknown_section_rejected(self) -> None:
        with pytest.raises(ValidationError):
            CallrelayConfig(database={"url": "x"})


class TestLoadConfig:
    """Test TOML configuration loading."""

    def test_explicit_path_not_found(self) -> None:
        with pytest.raises(FileNotFoundError, match="Config file not found"):
            load_config(Path("/nonexistent/callrelay.toml"))

    def test_load_from_toml_file(self, tmp_path: Path) -> None:
        config_file = tmp_path / "callrelay.toml"
        config_file.write_text("""
[slack]
channel_id = "C0123"

[review]
ttl_seconds = 900

[logging]
level = "debug"
format = "console"
""")

        config = load_config(config_file)
        assert config.slack.channel_id == "C0123"
        assert config.review.ttl_seconds == 900
        assert config.logging.level == "DEBUG"
        assert config.review.max_attempts == 3

    def test_invalid_toml_values_raise(self, tmp_path: Path) -> None:
        config_file = tmp_path / "bad.toml"
        config_file.write_text("""
[web]
port = "not a number"
""")

        with pytest.raises(ValueError, match="Invalid configuration"):
            load_config(config_file)

    def test_search_current_directory(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        (tmp_path / "callrelay.toml").write_text("""
[web]
port = 8123
""")
        monkeypatch.chdir(tmp_path)

        assert load_config().web.port == 8123

    def test_environment_variables_without_toml(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("CALLRELAY_LINEAR__TEAM_ID", "team-env")
        monkeypatch.setenv("CALLRELAY_WEB__ENVIRONMENT", "production")

        config = load_config()
        assert config.linear.team_id == "team-env"
        assert config.web.environment == "production"
