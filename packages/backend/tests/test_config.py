"""Configuration tests — durations and secret validation."""

import pytest
from pydantic import ValidationError

from marketplace.config import (
    DEV_JWT_REFRESH_SECRET,
    DEV_JWT_SECRET,
    Settings,
    parse_duration,
)


@pytest.mark.parametrize(
    "value,seconds",
    [("900", 900), ("30s", 30), ("15m", 900), ("12h", 43200), ("7d", 604800)],
)
def test_parse_duration(value, seconds):
    assert parse_duration(value) == seconds


@pytest.mark.parametrize("value", ["", "m", "15 minutes", "-5m", "1.5h"])
def test_parse_duration_rejects_garbage(value):
    with pytest.raises(ValueError):
        parse_duration(value)


def test_development_defaults():
    config = Settings(environment="development")

    assert config.jwt_secret == DEV_JWT_SECRET
    assert config.jwt_refresh_secret == DEV_JWT_REFRESH_SECRET
    assert config.access_token_seconds == 900
    assert config.refresh_token_seconds == 7 * 86400
    assert not config.is_production


def test_production_requires_real_secrets():
    with pytest.raises(ValidationError):
        Settings(environment="production")


def test_production_with_real_secrets():
    config = Settings(
        environment="production",
        jwt_secret="a-long-random-access-secret",
        jwt_refresh_secret="a-long-random-refresh-secret",
    )
    assert config.is_production


def test_secrets_must_differ():
    with pytest.raises(ValidationError):
        Settings(jwt_secret="shared", jwt_refresh_secret="shared")


def test_bad_duration_is_rejected():
    with pytest.raises(ValidationError):
        Settings(jwt_expires_in="forever")


def test_env_prefix(monkeypatch):
    monkeypatch.setenv("MARKETPLACE_JWT_EXPIRES_IN", "1h")
    monkeypatch.setenv("MARKETPLACE_DEFAULT_PAGE_SIZE", "20")

    config = Settings(environment="development")
    assert config.access_token_seconds == 3600
    assert config.default_page_size == 20
