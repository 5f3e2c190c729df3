"""Tests for Settings validation and parsing."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from gapwatch.core.config import Settings


def test_cors_parsing_accepts_comma_separated():
    settings = Settings(
        CORS_ALLOW_ORIGINS="https://app.example.com, http://localhost:9000"
    )

    assert settings.cors_allow_origins == [
        "https://app.example.com",
        "http://localhost:9000",
    ]


def test_cors_parsing_rejects_wildcard():
    with pytest.raises(ValidationError):
        Settings(CORS_ALLOW_ORIGINS="http://localhost:3000, *")


def test_valkey_url_accepts_redis_alias(monkeypatch):
    monkeypatch.setenv("REDIS_URL", "redis://example:6379/1")

    settings = Settings()

    assert settings.valkey_url == "redis://example:6379/1"


def test_upstream_urls_are_normalized():
    settings = Settings(GAPS_API_BASE_URL="https://gaps.example/api/")

    assert settings.gaps_api_base_url == "https://gaps.example/api"


def test_upstream_urls_must_be_http():
    with pytest.raises(ValidationError):
        Settings(STRIDE_API_BASE_URL="ftp://stride.example")


def test_unknown_display_timezone_is_rejected():
    with pytest.raises(ValidationError):
        Settings(DISPLAY_TIMEZONE="Mars/Olympus")


def test_lookback_bounds_enforced():
    with pytest.raises(ValidationError):
        Settings(GAPS_DEFAULT_LOOKBACK_DAYS=0)
    with pytest.raises(ValidationError):
        Settings(GAPS_DEFAULT_LOOKBACK_DAYS=91)


def test_production_requires_secure_session_cookie():
    with pytest.raises(ValidationError, match="SESSION_COOKIE_SECURE"):
        Settings(ENVIRONMENT="production")

    settings = Settings(ENVIRONMENT="production", SESSION_COOKIE_SECURE=True)
    assert settings.session_cookie_secure is True
