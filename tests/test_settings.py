"""Tests for environment-dependent settings rules."""

import pytest
from pydantic import ValidationError

from workorder_access.settings import DEFAULT_JWT_SECRET, Settings


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ("APP_ENVIRONMENT", "APP_JWT_SECRET", "APP_JWKS_URI", "APP_TRUST_FORWARDED_FOR"):
        monkeypatch.delenv(name, raising=False)


@pytest.mark.parametrize("secret", [DEFAULT_JWT_SECRET, ""])
def test_production_refuses_default_or_empty_secret(secret):
    with pytest.raises(ValidationError, match="APP_JWT_SECRET"):
        Settings(environment="production", jwt_secret=secret)


def test_production_with_default_secret_from_env_refused(monkeypatch):
    monkeypatch.setenv("APP_ENVIRONMENT", "production")
    with pytest.raises(ValidationError):
        Settings()


def test_production_accepts_own_secret_or_jwks():
    assert Settings(environment="production", jwt_secret="a-real-deployment-secret-0123456789").is_production
    assert Settings(environment="production", jwks_uri="https://id.example.com/jwks").jwks_uri


def test_development_keeps_default_secret():
    settings = Settings(environment="development")
    assert settings.jwt_secret == DEFAULT_JWT_SECRET
    assert settings.trust_forwarded_for is False
