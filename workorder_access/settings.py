from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_JWT_SECRET = "dev-secret-key-change-me-0123456789"


class Settings(BaseSettings):
    """
    App settings.

    Notes:
    - Defaults are local and deterministic (SQLite file, bundled permission source).
    - Every field can be overridden with an ``APP_`` prefixed env var.
    - ``dev_auth_enabled`` only matters outside production; production never
      accepts internal-test tokens regardless of this flag.
    """

    model_config = SettingsConfigDict(env_prefix="APP_", extra="ignore")

    environment: Literal["development", "test", "production"] = "development"
    dev_auth_enabled: bool = True

    db_url: str | None = None
    permissions_path: str | None = None
    log_level: str = "INFO"

    # Token verification. HS256 with a shared secret unless a JWKS endpoint is set.
    jwt_secret: str = DEFAULT_JWT_SECRET
    jwt_algorithm: str = "HS256"
    jwt_audience: str | None = None
    jwt_issuer: str | None = None
    jwks_uri: str | None = None
    jwks_cache_ttl_seconds: int = 3600
    clock_skew_seconds: int = 30

    # Set only behind a proxy that overwrites X-Forwarded-For.
    trust_forwarded_for: bool = False

    @model_validator(mode="after")
    def _require_real_secret_in_production(self) -> Settings:
        if self.is_production and not self.jwks_uri and self.jwt_secret in ("", DEFAULT_JWT_SECRET):
            raise ValueError("APP_JWT_SECRET must be set to a non-default value in production (or set APP_JWKS_URI)")
        return self

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def dev_auth_allowed(self) -> bool:
        return self.dev_auth_enabled and not self.is_production

    def resolved_db_url(self) -> str:
        if self.db_url:
            return self.db_url

        repo_root = Path(__file__).resolve().parents[1]
        db_path = repo_root / "app.db"
        return f"sqlite:///{db_path}"

    def resolved_permissions_path(self) -> Path:
        if self.permissions_path:
            return Path(self.permissions_path)

        repo_root = Path(__file__).resolve().parents[1]
        return repo_root / "config" / "permissions.yaml"


@lru_cache
def get_settings() -> Settings:
    return Settings()
