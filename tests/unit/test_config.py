"""Unit tests for settings and credential resolution."""

import base64

import pytest

from central_publisher.config import (
    DEFAULT_CENTRAL_API_URL,
    Settings,
    build_portal_config,
    resolve_bearer_token,
)
from central_publisher.core.exceptions import ValidationError


def make_settings(**overrides) -> Settings:
    values = {
        "central_bearer_token": "",
        "central_username": "",
        "central_password": "",
        "central_bearer_create": False,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


class TestResolveBearerToken:
    """Tests for picking the bearer token."""

    def test_explicit_token_wins(self):
        settings = make_settings(
            central_bearer_token="token",
            central_username="user",
            central_password="pass",
            central_bearer_create=True,
        )

        assert resolve_bearer_token(settings) == "token"

    def test_token_built_from_credentials(self):
        settings = make_settings(
            central_username="user",
            central_password="pass",
            central_bearer_create=True,
        )

        assert resolve_bearer_token(settings) == base64.b64encode(b"user:pass").decode()

    def test_password_used_as_token(self):
        settings = make_settings(central_username="user", central_password="pre-encoded")

        assert resolve_bearer_token(settings) == "pre-encoded"

    def test_bearer_create_needs_both_parts(self):
        settings = make_settings(central_password="pass", central_bearer_create=True)

        with pytest.raises(ValidationError):
            resolve_bearer_token(settings)

    def test_no_credentials(self):
        with pytest.raises(ValidationError) as exc_info:
            resolve_bearer_token(make_settings())

        assert "CENTRAL_BEARER_TOKEN" in exc_info.value.message


class TestPortalConfig:
    """Tests for build_portal_config."""

    def test_trailing_slash_removed(self):
        settings = make_settings(
            central_bearer_token="token",
            central_api_url="https://portal.test/api/v1/publisher/",
            central_request_timeout=12,
        )

        config = build_portal_config(settings)

        assert config.base_url == "https://portal.test/api/v1/publisher"
        assert config.request_timeout == 12

    def test_blank_url_uses_default(self):
        config = build_portal_config(make_settings(central_bearer_token="token", central_api_url=""))

        assert config.base_url == DEFAULT_CENTRAL_API_URL

    def test_token_hidden_from_repr(self):
        config = build_portal_config(make_settings(central_bearer_token="very-secret"))

        assert "very-secret" not in repr(config)


class TestSettings:
    """Tests for Settings defaults."""

    def test_lifecycle_defaults(self, monkeypatch):
        for name in ("PUBLISHING_TYPE", "MAX_WAIT_VALIDATION", "MAX_WAIT_PUBLISHING", "POLL_INTERVAL"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings(_env_file=None)

        assert settings.publishing_type == "USER_MANAGED"
        assert settings.max_wait_validation == 300
        assert settings.max_wait_publishing == 600
        assert settings.poll_interval == 5
        assert settings.status_retries == 0

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("CENTRAL_NAMESPACE", "com.example")
        monkeypatch.setenv("POLL_INTERVAL", "2.5")

        settings = Settings(_env_file=None)

        assert settings.central_namespace == "com.example"
        assert settings.poll_interval == 2.5
