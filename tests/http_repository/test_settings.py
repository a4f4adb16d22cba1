"""Tests for RESTKIT_* environment configuration."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from RestKit.HttpRepository import (
    HttpRepositorySettings,
    NamingPolicy,
    RequestKind,
    get_settings,
    reset_settings,
)
from RestKit.HttpRepository.settings import LoggingSettings, RetrySettings


class TestDefaults:
    def test_retry_defaults_follow_idempotency(self):
        settings = HttpRepositorySettings()

        attempts = {kind: settings.retry.for_kind(kind).max_attempts for kind in RequestKind}
        assert attempts == {
            RequestKind.GET: 3,
            RequestKind.POST: 1,
            RequestKind.PUT: 3,
            RequestKind.PATCH: 1,
            RequestKind.DELETE: 3,
        }

    def test_serializer_defaults(self):
        options = HttpRepositorySettings().serializer_options()

        assert options.naming_policy is NamingPolicy.CAMEL
        assert options.ignore_none is True

    def test_build_pipelines_covers_every_kind(self):
        registry = HttpRepositorySettings().build_pipelines()

        assert set(registry) == set(RequestKind)
        assert registry.for_kind(RequestKind.GET).breaker is not None


class TestEnvironment:
    def test_nested_overrides(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("RESTKIT_RETRY__POST__MAX_ATTEMPTS", "2")
        monkeypatch.setenv("RESTKIT_TRANSPORT__READ_TIMEOUT", "12.5")
        monkeypatch.setenv("RESTKIT_SERIALIZATION__NAMING_POLICY", "snake")
        monkeypatch.setenv("RESTKIT_LOGGING__LEVEL", "debug")

        settings = HttpRepositorySettings()

        assert settings.retry.post.max_attempts == 2
        assert settings.transport.read_timeout == 12.5
        assert settings.serialization.naming_policy is NamingPolicy.SNAKE
        assert settings.logging.level == "DEBUG"
        assert settings.build_pipelines().for_kind("POST").policy.max_attempts == 2

    def test_invalid_values_rejected(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("RESTKIT_RETRY__GET__MAX_ATTEMPTS", "0")

        with pytest.raises(ValidationError):
            HttpRepositorySettings()

    def test_get_settings_is_cached_until_reset(self, monkeypatch: pytest.MonkeyPatch):
        first = get_settings()
        assert get_settings() is first

        monkeypatch.setenv("RESTKIT_TRANSPORT__HTTP2", "true")
        assert get_settings().transport.http2 is False

        reset_settings()
        assert get_settings().transport.http2 is True


class TestRetrySettings:
    def test_to_policy(self):
        policy = RetrySettings(
            max_attempts=4, timeout_s=5.0, breaker_fail_max=7, retry_statuses={503}
        ).to_policy()

        assert policy.max_attempts == 4
        assert policy.timeout_s == 5.0
        assert policy.retry_statuses == frozenset({503})
        assert policy.breaker.fail_max == 7

    def test_breaker_can_be_disabled(self):
        assert RetrySettings(breaker_enabled=False).to_policy().breaker is None

    def test_rejects_non_status_codes(self):
        with pytest.raises(ValidationError, match="retry_statuses"):
            RetrySettings(retry_statuses={503, 42})


class TestLoggingSettings:
    def test_rejects_unknown_level(self):
        with pytest.raises(ValidationError):
            LoggingSettings(level="chatty")
