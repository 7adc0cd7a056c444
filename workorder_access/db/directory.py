"""Durable user directory backed by SQLAlchemy (external provider only)."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from workorder_access.errors import AuthenticationError
from workorder_access.identity.resolvers import DirectoryUser
from workorder_access.models.security import Role, User
from workorder_access.permissions.config import normalize_role_name

logger = logging.getLogger(__name__)


def _to_directory_user(user: User) -> DirectoryUser:
    return DirectoryUser(
        id=user.id,
        role=user.role.name if user.role is not None else None,
        is_active=user.is_active,
        email=user.email,
    )


def load_user_by_subject(db: Session, subject: str) -> User | None:
    return db.execute(
        select(User).where(User.external_subject == subject).options(selectinload(User.role))
    ).scalar_one_or_none()


def _identity_conflict() -> AuthenticationError:
    return AuthenticationError(
        "Invalid or expired token",
        event_kind="AUTH_IDENTITY_CONFLICT",
        detail="email already linked to another subject",
    )


class SqlAlchemyUserDirectory:
    """
    ``UserDirectory`` implementation: find the user by ``sub``, create on first login.

    New users get the role named by the signed ``role`` claim when that role
    exists, else ``default_role``. A first login whose email already belongs
    to another subject is refused, never merged into the existing account.
    """

    def __init__(self, db: Session, default_role: str = "customer") -> None:
        self._db = db
        self._default_role = default_role

    def _role_for(self, claims: Mapping[str, Any]) -> Role | None:
        for candidate in (normalize_role_name(claims.get("role")), self._default_role):
            if candidate is None:
                continue
            role = self._db.execute(select(Role).where(Role.name == candidate)).scalar_one_or_none()
            if role is not None:
                return role
        return None

    def _email_taken(self, email: str) -> bool:
        return self._db.execute(select(User.id).where(User.email == email)).first() is not None

    def find_or_create(self, claims: Mapping[str, Any]) -> DirectoryUser:
        subject = str(claims["sub"])
        user = load_user_by_subject(self._db, subject)
        if user is not None:
            return _to_directory_user(user)

        email = claims.get("email")
        email = email if isinstance(email, str) else None
        if email is not None and self._email_taken(email):
            logger.warning("Refusing first login: email already linked to another subject")
            raise _identity_conflict()

        user = User(
            external_subject=subject,
            email=email,
            first_name=claims.get("given_name") if isinstance(claims.get("given_name"), str) else None,
            last_name=claims.get("family_name") if isinstance(claims.get("family_name"), str) else None,
            role=self._role_for(claims),
            is_active=True,
        )
        self._db.add(user)
        try:
            self._db.commit()
        except IntegrityError:
            # Another request created this subject (or claimed the email) first.
            self._db.rollback()
            existing = load_user_by_subject(self._db, subject)
            if existing is None:
                raise _identity_conflict() from None
            return _to_directory_user(existing)
        logger.info("Created user from external identity user_id=%s", user.id)

        user = load_user_by_subject(self._db, subject)
        return _to_directory_user(user)
