from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from workorder_access.errors import ConfigError
from workorder_access.identity.context import Caller
from workorder_access.permissions.config import PolicyConfig
from workorder_access.permissions.loader import PolicyConfigLoader
from workorder_access.rls.filters import build_row_filter
from workorder_access.rls.metadata import TableMetadata, get_table_metadata
from workorder_access.rls.policies import RLSPolicyResolver
from workorder_access.schemas.security import PermissionMatrixOut, ReloadOut, RoleHierarchyOut, RowFilterOut
from workorder_access.security.dependencies import (
    authenticate_request,
    get_permissions_loader,
    get_policy_config,
    get_rls_resolver,
    require_minimum_role,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/permissions", tags=["permissions"], dependencies=[Depends(authenticate_request)])


@router.get("/roles", response_model=RoleHierarchyOut)
def role_hierarchy(config: PolicyConfig = Depends(get_policy_config)) -> RoleHierarchyOut:
    return RoleHierarchyOut(roles=config.role_hierarchy())


@router.get("/matrix", response_model=PermissionMatrixOut)
def permission_matrix(config: PolicyConfig = Depends(get_policy_config)) -> PermissionMatrixOut:
    return PermissionMatrixOut(resources=config.permission_matrix())


@router.get("/rls/{resource}", response_model=RowFilterOut)
def row_filter_for_caller(
    resource: str,
    caller: Caller = Depends(authenticate_request),
    config: PolicyConfig = Depends(get_policy_config),
    resolver: RLSPolicyResolver = Depends(get_rls_resolver),
) -> RowFilterOut:
    # Unknown resources are reported as not found, never as "unfiltered".
    if resource not in config.resources:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Resource not found")

    metadata = get_table_metadata(resource) or TableMetadata(rls_resource=resource)
    context = resolver.resolve(caller, resource)
    result = build_row_filter(context, metadata)
    return RowFilterOut(
        resource=resource,
        policy=context.policy.value if context is not None else None,
        clause=result.clause,
        params=list(result.params),
        applied=result.applied,
    )


@router.post("/reload", response_model=ReloadOut, dependencies=[Depends(require_minimum_role("admin"))])
def reload_permissions(loader: PolicyConfigLoader = Depends(get_permissions_loader)) -> ReloadOut:
    try:
        config = loader.reload()
    except ConfigError:
        logger.exception("Permission reload failed; previous configuration kept")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Permission reload failed; previous configuration is still active",
        ) from None
    return ReloadOut(roles=len(config.roles), resources=len(config.resources))
