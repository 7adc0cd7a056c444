"""
Per-table metadata consumed by the RLS filter builder.

Adding row-level security to a new table is a new ``TableMetadata`` entry,
not new code. Field names here are trusted identifiers: they are validated at
construction and never come from request input.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


@dataclass(frozen=True)
class TableMetadata:
    table_name: str = ""
    rls_resource: str = ""
    primary_key: str = "id"
    id_field: str = "id"
    customer_field: str = "customer_id"
    assigned_field: str = "assigned_technician_id"

    def __post_init__(self) -> None:
        for attr in ("primary_key", "id_field", "customer_field", "assigned_field"):
            value = getattr(self, attr)
            if not isinstance(value, str) or not _IDENTIFIER_RE.fullmatch(value):
                raise ValueError(f"Invalid identifier for {attr}: {value!r}")
        if self.table_name and not _IDENTIFIER_RE.fullmatch(self.table_name):
            raise ValueError(f"Invalid table name: {self.table_name!r}")


TABLES: dict[str, TableMetadata] = {
    "users": TableMetadata(table_name="users", rls_resource="users"),
    "roles": TableMetadata(table_name="roles", rls_resource="roles"),
    "customers": TableMetadata(table_name="customers", rls_resource="customers"),
    "technicians": TableMetadata(table_name="technicians", rls_resource="technicians"),
    "work_orders": TableMetadata(table_name="work_orders", rls_resource="work_orders"),
    "invoices": TableMetadata(table_name="invoices", rls_resource="invoices"),
    "contracts": TableMetadata(table_name="contracts", rls_resource="contracts"),
}


def get_table_metadata(resource: str) -> TableMetadata | None:
    return TABLES.get(resource)
