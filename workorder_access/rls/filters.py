"""
Build parameterized row-level security WHERE fragments.

Usage:
    result = build_row_filter(RLSContext("own_work_orders_only", 42), TABLES["work_orders"], 2)
    # RLSFilterResult(clause="customer_id = $3", params=(42,), applied=True)

The fragment is meant to be ANDed into a query that already uses
``$1..$param_offset``. Values only ever travel in ``params``; the only text
interpolated into ``clause`` is a field name from trusted ``TableMetadata``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from workorder_access.rls.metadata import TableMetadata
from workorder_access.rls.policies import RLSContext, RLSPolicy, coerce_policy

logger = logging.getLogger(__name__)

DENY_CLAUSE = "1=0"

_DEFAULT_METADATA = TableMetadata()

# Policies that need no predicate at all.
_UNFILTERED = frozenset({RLSPolicy.ALL_RECORDS, RLSPolicy.PUBLIC_RESOURCE})

# Ownership policies -> TableMetadata attribute holding the filter column.
_OWNERSHIP_FIELDS: dict[RLSPolicy, str] = {
    RLSPolicy.OWN_RECORD_ONLY: "id_field",
    RLSPolicy.OWN_WORK_ORDERS_ONLY: "customer_field",
    RLSPolicy.ASSIGNED_WORK_ORDERS_ONLY: "assigned_field",
    RLSPolicy.OWN_INVOICES_ONLY: "customer_field",
    RLSPolicy.OWN_CONTRACTS_ONLY: "customer_field",
}

_DENIED = frozenset({RLSPolicy.DENY_ALL})

_covered = _UNFILTERED | _DENIED | frozenset(_OWNERSHIP_FIELDS)
if _covered != frozenset(RLSPolicy):
    raise RuntimeError(f"RLS policies without a filter rule: {sorted(p.value for p in set(RLSPolicy) - _covered)}")


@dataclass(frozen=True)
class RLSFilterResult:
    clause: str
    params: tuple[Any, ...]
    applied: bool

    @classmethod
    def unapplied(cls) -> RLSFilterResult:
        return cls(clause="", params=(), applied=False)

    @classmethod
    def deny(cls) -> RLSFilterResult:
        return cls(clause=DENY_CLAUSE, params=(), applied=True)


def ownership_field(policy: RLSPolicy, metadata: TableMetadata) -> str | None:
    """Column an ownership policy filters on, or None for non-ownership policies."""
    attr = _OWNERSHIP_FIELDS.get(policy)
    if attr is None:
        return None
    return getattr(metadata, attr)


def _check_offset(param_offset: Any) -> int:
    if isinstance(param_offset, bool) or not isinstance(param_offset, int) or param_offset < 0:
        raise ValueError(f"param_offset must be a non-negative integer, got {param_offset!r}")
    return param_offset


def build_row_filter(
    context: RLSContext | None,
    metadata: TableMetadata | None = None,
    param_offset: int = 0,
) -> RLSFilterResult:
    """
    Row filter for ``context`` against a table described by ``metadata``.

    No context (or a None policy) is a no-op: the caller must already have
    verified full access some other way, e.g. ``require_minimum_role("admin")``.
    """

    offset = _check_offset(param_offset)
    metadata = metadata or _DEFAULT_METADATA

    if context is None or context.policy is None:
        logger.debug("RLS: no context table=%s", metadata.table_name)
        return RLSFilterResult.unapplied()

    policy = coerce_policy(context.policy)

    if policy in _UNFILTERED:
        return RLSFilterResult.unapplied()

    if policy in _DENIED:
        return RLSFilterResult.deny()

    if context.user_id is None:
        logger.warning("RLS: ownership policy=%s without a user id table=%s; denying", policy.value, metadata.table_name)
        return RLSFilterResult.deny()

    field = ownership_field(policy, metadata)
    result = RLSFilterResult(clause=f"{field} = ${offset + 1}", params=(context.user_id,), applied=True)
    logger.debug("RLS: policy=%s table=%s clause=%s", policy.value, metadata.table_name, result.clause)
    return result


def build_row_filter_for_find_by_id(
    context: RLSContext | None,
    metadata: TableMetadata | None = None,
    param_offset: int = 0,
) -> RLSFilterResult:
    """
    Same as ``build_row_filter`` with one extra slot reserved for the primary key.

    Final query shape: ``WHERE <pk> = $1 AND <clause>``.
    """

    return build_row_filter(context, metadata, _check_offset(param_offset) + 1)


def policy_allows_access(policy: Any) -> bool:
    """True when ``policy`` is a known policy that can return any rows."""
    try:
        return RLSPolicy.parse(policy) not in _DENIED
    except LookupError:
        return False


def supported_policies() -> list[str]:
    return [policy.value for policy in RLSPolicy]
