"""
Token verification primitive: signature + expiry, typed failures.

Two signing modes:

1. **Shared secret** (HS256 by default). Both internal-test and external
   tokens are accepted as long as they are signed with ``APP_JWT_SECRET``.
2. **JWKS** (RS256). When ``APP_JWKS_URI`` is set, the signing key is looked
   up by the token header's ``kid`` in the provider's published key set.

Only signature, lifetime and (when configured) issuer/audience are checked
here. Claim semantics (``sub``, ``provider``, ``role``) belong to the
IdentityVerifier.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import jwt
import requests
from jwt.exceptions import InvalidJTIError, InvalidSubjectError

from workorder_access.identity.jwks_cache import JWKSCache
from workorder_access.settings import Settings

logger = logging.getLogger(__name__)


class TokenValidationError(Exception):
    """
    Raised when a token fails verification. Never log the token itself.

    ``claims`` marks a good signature carrying malformed registered claims.
    """

    def __init__(self, message: str, *, expired: bool = False, claims: bool = False) -> None:
        super().__init__(message)
        self.expired = expired
        self.claims = claims


@dataclass(frozen=True)
class TokenConfig:
    secret: str | None
    algorithm: str = "HS256"
    audience: str | None = None
    issuer: str | None = None
    jwks_uri: str | None = None
    jwks_cache_ttl_seconds: int = 3600
    clock_skew_seconds: int = 30

    @classmethod
    def from_settings(cls, settings: Settings) -> TokenConfig:
        return cls(
            secret=settings.jwt_secret,
            algorithm="RS256" if settings.jwks_uri else settings.jwt_algorithm,
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
            jwks_uri=settings.jwks_uri,
            jwks_cache_ttl_seconds=settings.jwks_cache_ttl_seconds,
            clock_skew_seconds=settings.clock_skew_seconds,
        )


def _get_kid(token: str) -> str | None:
    """Read ``kid`` from the header without validating the token."""
    try:
        header = jwt.get_unverified_header(token)
    except jwt.InvalidTokenError:
        return None
    kid = header.get("kid") if isinstance(header, dict) else None
    return kid if isinstance(kid, str) and kid else None


class TokenVerifier:
    def __init__(self, config: TokenConfig) -> None:
        self._config = config
        self._jwks = JWKSCache(config.jwks_uri, config.jwks_cache_ttl_seconds) if config.jwks_uri else None
        if self._jwks is None and not config.secret:
            raise ValueError("TokenConfig needs a secret or a jwks_uri")

    def _signing_key(self, token: str) -> Any:
        if self._jwks is None:
            return self._config.secret

        kid = _get_kid(token)
        if not kid:
            logger.debug("Token missing or invalid kid")
            raise TokenValidationError("Invalid token: missing key id")

        try:
            signing_key = self._jwks.get_signing_key(kid)
        except requests.RequestException as exc:
            logger.warning("JWKS fetch failed: %s", type(exc).__name__)
            raise TokenValidationError("Invalid token: signing keys unavailable") from exc
        if signing_key is None:
            logger.debug("No signing key found for kid")
            raise TokenValidationError("Invalid token: unknown signing key")
        return signing_key.key

    def verify(self, token: str) -> dict[str, Any]:
        """Return the verified claims or raise TokenValidationError."""
        key = self._signing_key(token)
        cfg = self._config

        try:
            payload = jwt.decode(
                token,
                key,
                algorithms=[cfg.algorithm],
                audience=cfg.audience,
                issuer=cfg.issuer,
                leeway=cfg.clock_skew_seconds,
                options={
                    "verify_signature": True,
                    "verify_exp": True,
                    "verify_nbf": True,
                    "verify_iss": cfg.issuer is not None,
                    "verify_aud": cfg.audience is not None,
                    # sub and jti are checked with the other claims by the IdentityVerifier.
                    "verify_sub": False,
                    "verify_jti": False,
                    "require": ["exp"],
                },
            )
        except jwt.ExpiredSignatureError as e:
            logger.info("Token expired")
            raise TokenValidationError("Token expired", expired=True) from e
        except jwt.InvalidIssuerError as e:
            logger.info("Token invalid issuer")
            raise TokenValidationError("Invalid token: issuer") from e
        except jwt.InvalidAudienceError as e:
            logger.info("Token invalid audience")
            raise TokenValidationError("Invalid token: audience") from e
        except (InvalidSubjectError, InvalidJTIError) as e:
            logger.info("Token invalid claims: %s", type(e).__name__)
            raise TokenValidationError("Invalid token: claims", claims=True) from e
        except jwt.InvalidTokenError as e:
            logger.info("Token invalid: %s", type(e).__name__)
            raise TokenValidationError("Invalid token") from e

        if not isinstance(payload, dict):
            raise TokenValidationError("Invalid token: claims")
        return payload
