"""
Role and permission gates.

Both checks are pure functions of (caller, PolicyConfig). On denial a
security event carrying the attempted role/resource/operation is emitted,
then ``AuthorizationError`` is raised.
"""

from __future__ import annotations

import logging
from typing import NoReturn

from workorder_access.errors import AuthorizationError
from workorder_access.identity.context import Caller
from workorder_access.permissions.config import PolicyConfig
from workorder_access.security.events import RequestInfo, SecurityEventSink, record_security_event

logger = logging.getLogger(__name__)


class AuthorizationGate:
    def __init__(self, config: PolicyConfig, events: SecurityEventSink) -> None:
        self._config = config
        self._events = events

    @property
    def config(self) -> PolicyConfig:
        return self._config

    def _deny(self, kind: str, message: str, caller: Caller | None, request: RequestInfo, **details: object) -> NoReturn:
        record_security_event(
            self._events,
            kind,
            request,
            user_id=caller.id if caller else None,
            user_role=caller.role if caller else None,
            **details,
        )
        raise AuthorizationError(message)

    def require_minimum_role(self, caller: Caller | None, minimum_role: str, request: RequestInfo) -> None:
        if caller is None or not caller.role:
            self._deny("AUTH_NO_ROLE", "User has no assigned role", caller, request, minimum_role=minimum_role)

        if not self._config.has_minimum_role(caller.role, minimum_role):
            self._deny(
                "AUTH_INSUFFICIENT_ROLE",
                f"Minimum role required: {minimum_role}",
                caller,
                request,
                minimum_role=minimum_role,
            )

    def require_permission(self, caller: Caller | None, resource: str, operation: str, request: RequestInfo) -> None:
        if caller is None or not caller.role:
            self._deny(
                "AUTH_NO_ROLE",
                "User has no assigned role",
                caller,
                request,
                resource=resource,
                operation=operation,
            )

        if not self._config.has_permission(caller.role, resource, operation):
            self._deny(
                "AUTH_INSUFFICIENT_PERMISSION",
                f"Insufficient permissions to {operation} {resource}",
                caller,
                request,
                resource=resource,
                operation=operation,
            )

        logger.debug("Permission granted role=%s resource=%s operation=%s", caller.role, resource, operation)
