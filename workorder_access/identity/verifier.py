"""
Bearer token -> Caller, or a rejection.

Decision chain:

    no token                          -> 401
    bad signature / expired           -> 403
    missing or malformed claims       -> 403
    internal-test token in production -> 403, CRITICAL security event
    resolver: unknown / inactive user -> 403
    internal-test caller mutating     -> 403 (dev callers are read-only)
    otherwise                         -> Caller

Every rejection emits a security event before ``AuthenticationError``
leaves this module.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from workorder_access.errors import AuthenticationError
from workorder_access.identity.context import Caller, Provider
from workorder_access.identity.resolvers import IdentityResolver
from workorder_access.identity.tokens import TokenValidationError, TokenVerifier
from workorder_access.permissions.config import normalize_role_name
from workorder_access.security.events import RequestInfo, SecurityEventSink, record_security_event
from workorder_access.security.responses import Rejection

logger = logging.getLogger(__name__)

MUTATING_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})

# Session operations an internal-test caller may still POST to.
DEV_ALLOWED_WRITE_PATHS = frozenset({"/auth/logout", "/auth/refresh"})

_INVALID_TOKEN = "Invalid or expired token"


def _invalid_claims(detail: str) -> AuthenticationError:
    return AuthenticationError(_INVALID_TOKEN, event_kind="AUTH_INVALID_CLAIMS", detail=detail)


def check_claims(claims: Mapping[str, Any]) -> Provider:
    """
    Validate the claims the verifier relies on and return the provider.

    ``provider`` must be exactly one of the known provider strings: lists,
    empty strings and other types are rejected rather than coerced.
    """

    sub = claims.get("sub")
    if not isinstance(sub, str) or not sub.strip():
        raise _invalid_claims('missing or invalid "sub" claim')

    provider = claims.get("provider")
    if not isinstance(provider, str) or provider not in {p.value for p in Provider}:
        raise _invalid_claims('missing or invalid "provider" claim')

    if claims.get("role") is not None and normalize_role_name(claims["role"]) is None:
        raise _invalid_claims('invalid "role" claim')

    return Provider(provider)


class IdentityVerifier:
    def __init__(
        self,
        tokens: TokenVerifier,
        resolvers: Mapping[Provider, IdentityResolver],
        events: SecurityEventSink,
        *,
        production: bool,
        dev_auth_enabled: bool = True,
    ) -> None:
        self._tokens = tokens
        self._resolvers = dict(resolvers)
        self._events = events
        self._production = production
        self._dev_auth_enabled = dev_auth_enabled

    def authenticate(self, token: str | None, request: RequestInfo) -> Caller:
        """Return the Caller or raise AuthenticationError (event already emitted)."""
        try:
            return self._authenticate(token, request)
        except AuthenticationError as exc:
            record_security_event(
                self._events,
                exc.event_kind,
                request,
                severity=exc.severity,
                status=exc.status_code,
                reason=exc.detail or exc.message,
            )
            raise

    def authenticate_caller(self, token: str | None, request: RequestInfo) -> Caller | Rejection:
        try:
            return self.authenticate(token, request)
        except AuthenticationError as exc:
            return Rejection.from_error(exc)

    def _authenticate(self, token: str | None, request: RequestInfo) -> Caller:
        if not token:
            raise AuthenticationError("Access token required", status_code=401, event_kind="AUTH_MISSING_TOKEN")

        try:
            claims = self._tokens.verify(token)
        except TokenValidationError as exc:
            if exc.expired:
                raise AuthenticationError("Token expired", event_kind="AUTH_TOKEN_EXPIRED", severity="INFO") from exc
            if exc.claims:
                raise _invalid_claims(str(exc)) from exc
            raise AuthenticationError(_INVALID_TOKEN, event_kind="AUTH_INVALID_TOKEN", detail=str(exc)) from exc

        provider = check_claims(claims)

        if provider is Provider.INTERNAL_TEST:
            self._check_dev_auth_allowed()

        resolver = self._resolvers.get(provider)
        if resolver is None:
            raise AuthenticationError(
                _INVALID_TOKEN,
                event_kind="AUTH_PROVIDER_UNAVAILABLE",
                detail=f"no resolver for provider={provider.value}",
            )

        caller = resolver.resolve(claims)

        if not caller.is_active:
            raise AuthenticationError(
                "Account has been deactivated",
                event_kind="AUTH_DEACTIVATED_USER",
                detail=f"user_id={caller.id}",
            )

        if provider is Provider.INTERNAL_TEST and self._is_blocked_dev_write(request):
            raise AuthenticationError(
                "Development users are read-only. Authenticate with the external provider to modify data.",
                event_kind="DEV_WRITE_BLOCKED",
                detail=f"method={request.method} role={caller.role}",
            )

        logger.debug("Authenticated caller id=%s role=%s provider=%s", caller.id, caller.role, provider.value)
        return caller

    def _check_dev_auth_allowed(self) -> None:
        if self._production:
            raise AuthenticationError(
                "Development authentication is not permitted in production mode.",
                event_kind="AUTH_DEV_TOKEN_IN_PRODUCTION",
                severity="CRITICAL",
                detail="internal-test token presented in production",
            )
        if not self._dev_auth_enabled:
            raise AuthenticationError(
                "Development authentication is disabled.",
                event_kind="AUTH_DEV_AUTH_DISABLED",
                detail="internal-test token presented while dev auth is disabled",
            )

    @staticmethod
    def _is_blocked_dev_write(request: RequestInfo) -> bool:
        if request.method.upper() not in MUTATING_METHODS:
            return False
        path = (request.path or "").rstrip("/")
        return path not in DEV_ALLOWED_WRITE_PATHS
