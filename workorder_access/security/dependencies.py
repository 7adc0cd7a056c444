from __future__ import annotations

from collections.abc import Callable

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from workorder_access.db.directory import SqlAlchemyUserDirectory
from workorder_access.db.filters import RowScope, attach_row_scope
from workorder_access.db.session import get_db
from workorder_access.identity.context import Caller, Provider
from workorder_access.identity.resolvers import ExternalResolver, InternalTestResolver
from workorder_access.identity.tokens import TokenVerifier
from workorder_access.identity.verifier import IdentityVerifier
from workorder_access.permissions.config import PolicyConfig
from workorder_access.permissions.loader import PolicyConfigLoader
from workorder_access.rls.policies import RLSPolicyResolver
from workorder_access.security.events import RequestInfo, SecurityEventSink
from workorder_access.security.gate import AuthorizationGate
from workorder_access.settings import Settings

BEARER_PREFIX = "Bearer "


def _app_state(request: Request, name: str):
    value = getattr(request.app.state, name, None)
    if value is None:
        raise RuntimeError(f"{name} not configured. Did app startup run?")
    return value


def get_app_settings(request: Request) -> Settings:
    return _app_state(request, "settings")


def get_permissions_loader(request: Request) -> PolicyConfigLoader:
    return _app_state(request, "permissions_loader")


def get_policy_config(loader: PolicyConfigLoader = Depends(get_permissions_loader)) -> PolicyConfig:
    """
    The PolicyConfig reference for this request.

    Captured once (FastAPI caches dependencies per request), so a concurrent
    reload never changes the config halfway through a request.
    """
    return loader.config


def get_security_events(request: Request) -> SecurityEventSink:
    return _app_state(request, "security_events")


def get_token_verifier(request: Request) -> TokenVerifier:
    return _app_state(request, "token_verifier")


def request_info(request: Request) -> RequestInfo:
    settings = getattr(request.app.state, "settings", None)
    forwarded = None
    if settings is not None and settings.trust_forwarded_for:
        forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        ip = forwarded.split(",")[0].strip()
    else:
        ip = request.client.host if request.client else None
    return RequestInfo(
        ip=ip,
        user_agent=request.headers.get("user-agent"),
        path=request.url.path,
        method=request.method.upper(),
    )


def extract_bearer_token(request: Request) -> str | None:
    raw = request.headers.get("Authorization")
    if not raw or not raw.startswith(BEARER_PREFIX):
        return None
    token = raw[len(BEARER_PREFIX) :].strip()
    return token or None


def get_identity_verifier(
    settings: Settings = Depends(get_app_settings),
    tokens: TokenVerifier = Depends(get_token_verifier),
    events: SecurityEventSink = Depends(get_security_events),
    db: Session = Depends(get_db),
) -> IdentityVerifier:
    resolvers = {
        Provider.INTERNAL_TEST: InternalTestResolver(),
        Provider.EXTERNAL: ExternalResolver(SqlAlchemyUserDirectory(db)),
    }
    return IdentityVerifier(
        tokens,
        resolvers,
        events,
        production=settings.is_production,
        dev_auth_enabled=settings.dev_auth_enabled,
    )


def authenticate_request(
    request: Request,
    verifier: IdentityVerifier = Depends(get_identity_verifier),
    config: PolicyConfig = Depends(get_policy_config),
    db: Session = Depends(get_db),
) -> Caller:
    """
    Authenticate the caller and scope this request's DB session to them.

    Raises AuthenticationError; the app's exception handler renders it.
    """

    caller = verifier.authenticate(extract_bearer_token(request), request_info(request))
    request.state.caller = caller
    attach_row_scope(db, RowScope(caller=caller, resolver=RLSPolicyResolver(config)))
    return caller


def get_authorization_gate(
    config: PolicyConfig = Depends(get_policy_config),
    events: SecurityEventSink = Depends(get_security_events),
) -> AuthorizationGate:
    return AuthorizationGate(config, events)


def get_rls_resolver(config: PolicyConfig = Depends(get_policy_config)) -> RLSPolicyResolver:
    return RLSPolicyResolver(config)


def require_minimum_role(minimum_role: str) -> Callable[..., Caller]:
    """
    Dependency factory: caller's role must be at least ``minimum_role``.

        @router.post("/reload", dependencies=[Depends(require_minimum_role("admin"))])
    """

    def dependency(
        request: Request,
        caller: Caller = Depends(authenticate_request),
        gate: AuthorizationGate = Depends(get_authorization_gate),
    ) -> Caller:
        gate.require_minimum_role(caller, minimum_role, request_info(request))
        return caller

    return dependency


def require_permission(resource: str, operation: str) -> Callable[..., Caller]:
    """Dependency factory: caller's role must be granted ``operation`` on ``resource``."""

    def dependency(
        request: Request,
        caller: Caller = Depends(authenticate_request),
        gate: AuthorizationGate = Depends(get_authorization_gate),
    ) -> Caller:
        gate.require_permission(caller, resource, operation, request_info(request))
        return caller

    return dependency
