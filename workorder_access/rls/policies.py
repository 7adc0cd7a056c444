"""
Row-level security policies and their resolution per (caller, resource).

Policies are a closed enum. Anything that is not a member, including the
empty string, resolves to ``DENY_ALL``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from workorder_access.errors import PolicyResolutionError
from workorder_access.permissions.config import PolicyConfig, normalize_role_name

if TYPE_CHECKING:
    from workorder_access.identity.context import Caller

logger = logging.getLogger(__name__)


class RLSPolicy(str, Enum):
    ALL_RECORDS = "all_records"
    PUBLIC_RESOURCE = "public_resource"
    OWN_RECORD_ONLY = "own_record_only"
    OWN_WORK_ORDERS_ONLY = "own_work_orders_only"
    ASSIGNED_WORK_ORDERS_ONLY = "assigned_work_orders_only"
    OWN_INVOICES_ONLY = "own_invoices_only"
    OWN_CONTRACTS_ONLY = "own_contracts_only"
    DENY_ALL = "deny_all"

    @classmethod
    def values(cls) -> frozenset[str]:
        return frozenset(member.value for member in cls)

    @classmethod
    def parse(cls, value: Any) -> RLSPolicy:
        """Strict parse; raises PolicyResolutionError for anything unknown."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value)
            except ValueError:
                pass
        raise PolicyResolutionError(value)


def coerce_policy(value: Any) -> RLSPolicy:
    """Lenient parse used on the request path: unknown -> DENY_ALL."""
    try:
        return RLSPolicy.parse(value)
    except PolicyResolutionError as exc:
        logger.warning("%s; denying access", exc)
        return RLSPolicy.DENY_ALL


@dataclass(frozen=True)
class RLSContext:
    """Per-request row-visibility context for one resource."""

    policy: RLSPolicy | str | None
    user_id: int | None = None


class RLSPolicyResolver:
    """Maps (caller, resource) to an RLSContext using a PolicyConfig."""

    def __init__(self, config: PolicyConfig) -> None:
        self._config = config

    def get_row_level_security_policy(self, role: Any, resource: str) -> RLSPolicy | None:
        """
        Policy for ``role`` on ``resource``.

        - resource without a rowLevelSecurity section: None (no row ownership)
        - section present, role absent or not a valid role name: DENY_ALL
        - configured name that is not a known policy: DENY_ALL
        """

        if not self._config.has_row_level_security(resource):
            return None

        if normalize_role_name(role) is None:
            logger.warning("RLS: invalid role for resource=%s; denying access", resource)
            return RLSPolicy.DENY_ALL

        raw = self._config.row_level_security(role, resource)
        if raw is None:
            logger.info("RLS: no policy for role=%s resource=%s; denying access", role, resource)
            return RLSPolicy.DENY_ALL

        return coerce_policy(raw)

    def resolve(self, caller: Caller, resource: str) -> RLSContext | None:
        policy = self.get_row_level_security_policy(caller.role, resource)
        if policy is None:
            return None
        return RLSContext(policy=policy, user_id=caller.id)
