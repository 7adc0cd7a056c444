from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sqlalchemy import event, false
from sqlalchemy.orm import Session, with_loader_criteria

from workorder_access.identity.context import Caller
from workorder_access.rls.filters import DENY_CLAUSE, build_row_filter, ownership_field
from workorder_access.rls.metadata import TableMetadata, get_table_metadata
from workorder_access.rls.policies import RLSContext, RLSPolicyResolver, coerce_policy

ROW_SCOPE_KEY = "rls_scope"


@dataclass(frozen=True)
class RowScope:
    """What the ORM listener needs to scope queries for one request."""

    caller: Caller
    resolver: RLSPolicyResolver


def attach_row_scope(db: Session, scope: RowScope) -> None:
    db.info[ROW_SCOPE_KEY] = scope


def row_filter_criteria(model: Any, context: RLSContext | None, metadata: TableMetadata) -> Any | None:
    """
    ORM form of ``build_row_filter``: a boolean SQL expression, or None for no filter.

    Built from the textual builder's decision so both forms always agree.
    """

    result = build_row_filter(context, metadata)
    if not result.applied:
        return None
    if result.clause == DENY_CLAUSE:
        return false()

    field = ownership_field(coerce_policy(context.policy), metadata)
    return getattr(model, field) == result.params[0]


def _scoped_models() -> list[tuple[Any, TableMetadata]]:
    # Local import to avoid cycles.
    from workorder_access.models.security import User  # noqa: WPS433 (local import)
    from workorder_access.models.work_orders import Contract, Invoice, WorkOrder  # noqa: WPS433

    scoped = []
    for model in (User, WorkOrder, Invoice, Contract):
        metadata = get_table_metadata(model.__tablename__)
        if metadata is not None:
            scoped.append((model, metadata))
    return scoped


@event.listens_for(Session, "do_orm_execute")
def _apply_row_level_security(execute_state) -> None:
    """
    Transparent row scoping.

    Keeps query code unchanged:
        db.scalars(select(WorkOrder)).all()
    returns only the rows the caller's policy allows once a RowScope is
    attached to the session.
    """

    if not execute_state.is_select:
        return

    scope = execute_state.session.info.get(ROW_SCOPE_KEY)
    if scope is None:
        return

    stmt = execute_state.statement
    for model, metadata in _scoped_models():
        context = scope.resolver.resolve(scope.caller, metadata.rls_resource)
        criteria = row_filter_criteria(model, context, metadata)
        if criteria is None:
            continue
        stmt = stmt.options(with_loader_criteria(model, criteria, include_aliases=True))

    execute_state.statement = stmt
