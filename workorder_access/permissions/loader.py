"""
Load, validate and cache the permission source.

Expected shape (simplified):

    roles:
      customer: {priority: 1}
      admin:    {priority: 5}

    resources:
      work_orders:
        permissions:
          create: {minimumRole: customer, minimumPriority: 1}
          read:   {minimumRole: customer, minimumPriority: 1}
          update: {minimumRole: admin,    minimumPriority: 5}
          delete: {minimumRole: null, minimumPriority: 0, disabled: true}
        rowLevelSecurity:
          customer: own_work_orders_only
          admin: all_records

Loading is keyed by a file fingerprint (mtime + size), so repeated
``load()`` calls are cheap. ``reload()`` always re-parses. A failed load
raises ``ConfigError`` and leaves the previously loaded config in place.
"""

from __future__ import annotations

import logging
import os
import threading
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from workorder_access.errors import ConfigError
from workorder_access.permissions.config import (
    OPERATIONS,
    ROLE_NAME_RE,
    PermissionDocument,
    PolicyConfig,
    ResourcePermission,
    Role,
)

logger = logging.getLogger(__name__)

Fingerprint = tuple[int, int]


def parse_permission_document(raw: Any, *, source: str = "<memory>") -> PermissionDocument:
    if not isinstance(raw, dict):
        raise ConfigError(f"Permission source must be a mapping: {source}")
    try:
        return PermissionDocument.model_validate(raw)
    except ValidationError as exc:
        raise ConfigError(f"Invalid permission source {source}: {exc}") from exc


def validate(document: PermissionDocument) -> None:
    """
    Cross-field validation of a parsed permission document.

    Mismatches are rejected, never auto-corrected: a silently fixed
    ``minimumPriority`` would hide a misconfigured source.
    """

    # Imported here so the RLS package can depend on permissions without a cycle.
    from workorder_access.rls.policies import RLSPolicy

    if not document.roles:
        raise ConfigError("At least one role must be defined")
    if not document.resources:
        raise ConfigError("At least one resource must be defined")

    seen: dict[int, str] = {}
    for role_name, role in document.roles.items():
        if not ROLE_NAME_RE.fullmatch(role_name):
            raise ConfigError(f"Invalid role name {role_name!r}: must match {ROLE_NAME_RE.pattern}")
        if role.priority < 1:
            raise ConfigError(f"Invalid priority for role {role_name!r}: must be a positive integer")
        if role.priority in seen:
            raise ConfigError(
                f"Duplicate priority {role.priority} for roles {seen[role.priority]!r} and {role_name!r}"
            )
        seen[role.priority] = role_name

    for resource_name, resource in document.resources.items():
        ops = set(resource.permissions)
        missing = [op for op in OPERATIONS if op not in ops]
        if missing:
            raise ConfigError(f"Missing {missing} permission(s) for resource {resource_name!r}")
        unknown = sorted(ops.difference(OPERATIONS))
        if unknown:
            raise ConfigError(f"Unknown operation(s) {unknown} for resource {resource_name!r}")

        for op in OPERATIONS:
            perm = resource.permissions[op]
            where = f"{resource_name}.{op}"

            if perm.disabled:
                if perm.minimum_role is not None or perm.minimum_priority != 0:
                    raise ConfigError(
                        f"Invalid disabled operation {where}: expected minimumRole=null and minimumPriority=0"
                    )
                continue

            if perm.minimum_role is None or perm.minimum_role not in document.roles:
                raise ConfigError(f"Invalid minimumRole {perm.minimum_role!r} for {where}")

            expected = document.roles[perm.minimum_role].priority
            if perm.minimum_priority != expected:
                raise ConfigError(
                    f"Priority mismatch for {where}: minimumPriority={perm.minimum_priority} "
                    f"but role {perm.minimum_role!r} has priority={expected}"
                )

        for role_name, policy in resource.row_level_security.items():
            if role_name not in document.roles:
                raise ConfigError(f"rowLevelSecurity for {resource_name!r} references unknown role {role_name!r}")
            if policy not in RLSPolicy.values():
                # Resolves to deny_all at runtime.
                logger.warning(
                    "Unknown row-level security policy resource=%s role=%s policy=%r",
                    resource_name,
                    role_name,
                    policy,
                )


def build_policy_config(document: PermissionDocument, *, source: str | None = None) -> PolicyConfig:
    validate(document)

    roles = {
        name: Role(name=name, priority=role.priority, description=role.description)
        for name, role in document.roles.items()
    }
    resources = {
        resource_name: {
            op: ResourcePermission(
                resource=resource_name,
                operation=op,
                minimum_role=resource.permissions[op].minimum_role,
                minimum_priority=resource.permissions[op].minimum_priority,
                disabled=resource.permissions[op].disabled,
            )
            for op in OPERATIONS
        }
        for resource_name, resource in document.resources.items()
    }
    rls_rules = {
        resource_name: dict(resource.row_level_security)
        for resource_name, resource in document.resources.items()
        if resource.row_level_security
    }
    return PolicyConfig.build(roles, resources, rls_rules, source=source)


def policy_config_from_dict(raw: Any) -> PolicyConfig:
    """Build a PolicyConfig straight from a mapping (tests, embedded defaults)."""
    return build_policy_config(parse_permission_document(raw))


class PolicyConfigLoader:
    """
    Owns the process-wide PolicyConfig for one permission source.

    Readers call ``config`` (or ``load()``) once per request and keep that
    reference; ``reload()`` swaps the reference in a single assignment so a
    request never observes a half-applied update.
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)
        self._config: PolicyConfig | None = None
        self._fingerprint: Fingerprint | None = None
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    @property
    def config(self) -> PolicyConfig:
        current = self._config
        if current is not None:
            return current
        return self.load()

    def _stat(self) -> Fingerprint:
        try:
            st = os.stat(self._path)
        except OSError as exc:
            raise ConfigError(f"Cannot read permission source {self._path}: {exc}") from exc
        return (st.st_mtime_ns, st.st_size)

    def _read(self) -> PolicyConfig:
        try:
            raw_text = self._path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigError(f"Cannot read permission source {self._path}: {exc}") from exc

        try:
            raw = yaml.safe_load(raw_text)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Malformed permission source {self._path}: {exc}") from exc

        document = parse_permission_document(raw, source=str(self._path))
        return build_policy_config(document, source=str(self._path))

    def load(self, force_reload: bool = False) -> PolicyConfig:
        with self._lock:
            try:
                fingerprint = self._stat()
                if not force_reload and self._config is not None and fingerprint == self._fingerprint:
                    return self._config

                config = self._read()
            except ConfigError:
                logger.error(
                    "Permission source rejected path=%s (keeping previous config: %s)",
                    self._path,
                    self._config is not None,
                )
                raise

            self._config = config
            self._fingerprint = fingerprint
            logger.info(
                "Loaded permissions path=%s roles=%d resources=%d",
                self._path,
                len(config.roles),
                len(config.resources),
            )
            return config

    def validate(self, candidate: PermissionDocument) -> None:
        validate(candidate)

    def reload(self) -> PolicyConfig:
        logger.info("Reloading permissions path=%s", self._path)
        return self.load(force_reload=True)

    # ---- Derived queries (always against the current reference) ---------------------

    def role_hierarchy(self) -> dict[str, int]:
        return self.config.role_hierarchy()

    def permission_matrix(self) -> dict[str, dict[str, int]]:
        return self.config.permission_matrix()

    def role_priority(self, role: Any) -> int | None:
        return self.config.role_priority(role)

    def minimum_role(self, resource: str, operation: str) -> str | None:
        return self.config.minimum_role(resource, operation)

    def has_permission(self, role: Any, resource: str, operation: str) -> bool:
        return self.config.has_permission(role, resource, operation)

    def has_minimum_role(self, role: Any, required: Any) -> bool:
        return self.config.has_minimum_role(role, required)

    def row_level_security(self, role: Any, resource: str) -> str | None:
        return self.config.row_level_security(role, resource)
