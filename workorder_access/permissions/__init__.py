"""Declarative role/permission configuration: models, validation and loading."""

from .config import (
    OPERATIONS,
    PolicyConfig,
    ResourcePermission,
    Role,
    RoleHierarchy,
    normalize_role_name,
)
from .loader import PolicyConfigLoader, policy_config_from_dict, validate

__all__ = [
    "OPERATIONS",
    "PolicyConfig",
    "PolicyConfigLoader",
    "ResourcePermission",
    "Role",
    "RoleHierarchy",
    "normalize_role_name",
    "policy_config_from_dict",
    "validate",
]
