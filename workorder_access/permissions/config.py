"""
Permission source models and the immutable in-memory PolicyConfig.

Two layers:

- pydantic models (``PermissionDocument`` and friends) describe the persisted
  YAML/JSON shape and do type-level validation only;
- frozen dataclasses (``Role``, ``ResourcePermission``, ``PolicyConfig``) are
  what the rest of the app queries. They are built by
  ``workorder_access.permissions.loader`` after cross-field validation.

Priority-hierarchy RBAC: roles are totally ordered by integer priority and
every check is a single ``>=`` comparison. A new role automatically inherits
every permission granted to lower priorities.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictInt

OPERATIONS: tuple[str, ...] = ("create", "read", "update", "delete")

ROLE_NAME_RE = re.compile(r"^[a-z][a-z0-9_]*$")


def normalize_role_name(value: Any) -> str | None:
    """
    Canonical form of a role name, or None if it cannot be a role name.

    This is the only place role names are normalized: strip, lowercase, then
    require the role pattern. Non-strings and anything carrying punctuation
    (``"admin; DROP TABLE users;--"``) come back as None.
    """

    if not isinstance(value, str):
        return None
    normalized = value.strip().lower()
    if not ROLE_NAME_RE.fullmatch(normalized):
        return None
    return normalized


# ---- Persisted source shape ----------------------------------------------------------


class RoleSource(BaseModel):
    model_config = ConfigDict(extra="allow")

    priority: StrictInt
    description: str | None = None


class PermissionSource(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    minimum_role: str | None = Field(default=None, alias="minimumRole")
    minimum_priority: StrictInt = Field(alias="minimumPriority")
    disabled: StrictBool = False


class ResourceSource(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    permissions: dict[str, PermissionSource]
    row_level_security: dict[str, str] = Field(default_factory=dict, alias="rowLevelSecurity")


class PermissionDocument(BaseModel):
    """Top-level permission source: ``roles`` and ``resources``."""

    model_config = ConfigDict(extra="ignore")

    roles: dict[str, RoleSource]
    resources: dict[str, ResourceSource]


# ---- Runtime structures --------------------------------------------------------------


@dataclass(frozen=True)
class Role:
    name: str
    priority: int
    description: str | None = None


@dataclass(frozen=True)
class ResourcePermission:
    resource: str
    operation: str
    minimum_role: str | None
    minimum_priority: int
    disabled: bool = False


@dataclass(frozen=True)
class RoleHierarchy:
    """Read-only view: role name -> priority."""

    priorities: Mapping[str, int]

    def priority(self, role: Any) -> int | None:
        """Priority for ``role`` (case-insensitive), or None when unknown."""
        name = normalize_role_name(role)
        if name is None:
            return None
        return self.priorities.get(name)

    def meets_minimum(self, role: Any, required: Any) -> bool:
        user_priority = self.priority(role)
        required_priority = self.priority(required)
        if user_priority is None or required_priority is None:
            return False
        return user_priority >= required_priority

    def as_dict(self) -> dict[str, int]:
        return dict(self.priorities)


@dataclass(frozen=True)
class PolicyConfig:
    """
    Fully-validated, immutable permission configuration.

    Replaced wholesale on reload; never mutated in place. Equality is
    structural so two loads of the same source compare equal.
    """

    roles: Mapping[str, Role]
    resources: Mapping[str, Mapping[str, ResourcePermission]]
    rls_rules: Mapping[str, Mapping[str, str]]
    source: str | None = field(default=None, compare=False)

    @classmethod
    def build(
        cls,
        roles: Mapping[str, Role],
        resources: Mapping[str, Mapping[str, ResourcePermission]],
        rls_rules: Mapping[str, Mapping[str, str]],
        source: str | None = None,
    ) -> PolicyConfig:
        return cls(
            roles=MappingProxyType(dict(roles)),
            resources=MappingProxyType({name: MappingProxyType(dict(ops)) for name, ops in resources.items()}),
            rls_rules=MappingProxyType(
                {name: MappingProxyType(dict(rules)) for name, rules in rls_rules.items()}
            ),
            source=source,
        )

    # ---- Derived views -------------------------------------------------------------

    @property
    def hierarchy(self) -> RoleHierarchy:
        return RoleHierarchy(MappingProxyType({name: role.priority for name, role in self.roles.items()}))

    def role_hierarchy(self) -> dict[str, int]:
        return {name: role.priority for name, role in self.roles.items()}

    def permission_matrix(self) -> dict[str, dict[str, int]]:
        """resource -> operation -> minimum priority (0 for disabled operations)."""
        return {
            resource: {op: perm.minimum_priority for op, perm in ops.items()}
            for resource, ops in self.resources.items()
        }

    def role_priority(self, role: Any) -> int | None:
        return self.hierarchy.priority(role)

    def permission(self, resource: str, operation: str) -> ResourcePermission | None:
        ops = self.resources.get(resource)
        if ops is None:
            return None
        return ops.get(operation)

    def minimum_role(self, resource: str, operation: str) -> str | None:
        perm = self.permission(resource, operation)
        if perm is None or perm.disabled:
            return None
        return perm.minimum_role

    # ---- Decisions -----------------------------------------------------------------

    def has_permission(self, role: Any, resource: str, operation: str) -> bool:
        """
        Fail-closed permission check.

        Unknown role, unknown resource, unknown operation and disabled
        operations all answer False.
        """

        user_priority = self.role_priority(role)
        if user_priority is None:
            return False

        perm = self.permission(resource, operation)
        if perm is None or perm.disabled:
            return False

        return user_priority >= perm.minimum_priority

    def has_minimum_role(self, role: Any, required: Any) -> bool:
        return self.hierarchy.meets_minimum(role, required)

    def row_level_security(self, role: Any, resource: str) -> str | None:
        """
        Raw policy name configured for (role, resource).

        None when the resource has no rowLevelSecurity section, or the role
        has no entry in it. Interpreting None is the resolver's job.
        """

        rules = self.rls_rules.get(resource)
        if not rules:
            return None
        name = normalize_role_name(role)
        if name is None:
            return None
        return rules.get(name)

    def has_row_level_security(self, resource: str) -> bool:
        return bool(self.rls_rules.get(resource))
