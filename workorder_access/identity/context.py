"""Serializable caller identity produced by the IdentityVerifier."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Provider(str, Enum):
    """Identity provider declared in the token's ``provider`` claim."""

    INTERNAL_TEST = "internal-test"
    EXTERNAL = "external"


@dataclass(frozen=True)
class Caller:
    """
    Authenticated caller for one request.

    Discarded at request end; never shared across requests.
    """

    id: int | None
    """Durable user id (external) or synthetic fixture id (internal-test)."""

    role: str
    """Canonical (lowercase) role name."""

    provider: Provider

    is_active: bool = True

    subject: str | None = None
    """Token ``sub`` claim."""

    email: str | None = None

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-serializable dict."""
        return {
            "id": self.id,
            "role": self.role,
            "provider": self.provider.value,
            "is_active": self.is_active,
            "subject": self.subject,
            "email": self.email,
        }
