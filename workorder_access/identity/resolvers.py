"""
Identity resolvers: verified claims -> Caller.

One resolver per provider, selected by the token's ``provider`` claim:

- ``InternalTestResolver`` looks callers up in an in-memory fixture set.
- ``ExternalResolver`` finds (or creates) the durable user record through a
  ``UserDirectory`` collaborator.

Whether the internal-test provider may be used at all is decided by the
IdentityVerifier, not here.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Protocol

from workorder_access.errors import AuthenticationError
from workorder_access.identity.context import Caller, Provider
from workorder_access.identity.fixtures import INTERNAL_TEST_USERS, InternalTestUser
from workorder_access.permissions.config import normalize_role_name

logger = logging.getLogger(__name__)


class IdentityResolver(Protocol):
    def resolve(self, claims: Mapping[str, Any]) -> Caller: ...


@dataclass(frozen=True)
class DirectoryUser:
    """What the durable user directory knows about a caller."""

    id: int
    role: str | None
    is_active: bool
    email: str | None = None


class UserDirectory(Protocol):
    def find_or_create(self, claims: Mapping[str, Any]) -> DirectoryUser: ...


class InternalTestResolver:
    def __init__(self, users: Iterable[InternalTestUser] = INTERNAL_TEST_USERS) -> None:
        self._users = tuple(users)

    def _find(self, subject: str, email: str | None) -> InternalTestUser | None:
        for user in self._users:
            if user.subject == subject:
                return user
        if email:
            wanted = email.strip().lower()
            for user in self._users:
                if user.email.lower() == wanted:
                    return user
        return None

    def resolve(self, claims: Mapping[str, Any]) -> Caller:
        email = claims.get("email")
        user = self._find(str(claims["sub"]), email if isinstance(email, str) else None)
        if user is None:
            raise AuthenticationError(
                "Invalid or expired token",
                event_kind="AUTH_UNKNOWN_USER",
                detail="internal-test user not found",
            )

        return Caller(
            id=user.id,
            role=normalize_role_name(user.role) or "",
            provider=Provider.INTERNAL_TEST,
            is_active=user.is_active,
            subject=user.subject,
            email=user.email,
        )


class ExternalResolver:
    def __init__(self, directory: UserDirectory) -> None:
        self._directory = directory

    def resolve(self, claims: Mapping[str, Any]) -> Caller:
        record = self._directory.find_or_create(claims)

        # The signed role claim wins over the stored role.
        role = normalize_role_name(claims.get("role")) or normalize_role_name(record.role) or ""
        if not role:
            logger.info("External caller has no role user_id=%s", record.id)

        email = claims.get("email")
        return Caller(
            id=record.id,
            role=role,
            provider=Provider.EXTERNAL,
            is_active=record.is_active,
            subject=str(claims["sub"]),
            email=email if isinstance(email, str) else record.email,
        )
