from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class CallerOut(BaseModel):
    id: int | None
    role: str
    provider: str
    is_active: bool
    subject: str | None = None
    email: str | None = None


class RoleHierarchyOut(BaseModel):
    roles: dict[str, int]


class PermissionMatrixOut(BaseModel):
    resources: dict[str, dict[str, int]]


class RowFilterOut(BaseModel):
    resource: str
    policy: str | None
    clause: str
    params: list[Any]
    applied: bool


class ReloadOut(BaseModel):
    roles: int
    resources: int


class LogoutOut(BaseModel):
    status: str
