"""Row-level security: policy resolution and parameterized filter building."""

from .filters import (
    RLSFilterResult,
    build_row_filter,
    build_row_filter_for_find_by_id,
    ownership_field,
    policy_allows_access,
    supported_policies,
)
from .metadata import TABLES, TableMetadata, get_table_metadata
from .policies import RLSContext, RLSPolicy, RLSPolicyResolver, coerce_policy

__all__ = [
    "RLSContext",
    "RLSFilterResult",
    "RLSPolicy",
    "RLSPolicyResolver",
    "TABLES",
    "TableMetadata",
    "build_row_filter",
    "build_row_filter_for_find_by_id",
    "coerce_policy",
    "get_table_metadata",
    "ownership_field",
    "policy_allows_access",
    "supported_policies",
]
