from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from workorder_access.identity.context import Caller
from workorder_access.schemas.security import CallerOut, LogoutOut
from workorder_access.security.dependencies import authenticate_request

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/me", response_model=CallerOut)
def me(caller: Caller = Depends(authenticate_request)) -> CallerOut:
    return CallerOut(**caller.to_dict())


@router.post("/logout", response_model=LogoutOut)
def logout(caller: Caller = Depends(authenticate_request)) -> LogoutOut:
    # Tokens are stateless; the client discards its token.
    logger.info("Logout user_id=%s provider=%s", caller.id, caller.provider.value)
    return LogoutOut(status="logged_out")
