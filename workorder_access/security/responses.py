"""
The two client-visible rejection bodies and the FastAPI handlers that emit them.

    401 -> {"error": "Unauthorized", "message": ..., "timestamp": ...}
    403 -> {"error": "Forbidden",    "message": ..., "timestamp": ...}

Only the public ``message`` of an error is ever returned; ``detail`` and
exception chains stay in the logs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from workorder_access.errors import AuthenticationError, AuthorizationError

_ERROR_NAMES = {
    status.HTTP_401_UNAUTHORIZED: "Unauthorized",
    status.HTTP_403_FORBIDDEN: "Forbidden",
}


@dataclass(frozen=True)
class Rejection:
    status: int
    message: str
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    @property
    def error(self) -> str:
        return _ERROR_NAMES.get(self.status, "Forbidden")

    @classmethod
    def from_error(cls, exc: AuthenticationError | AuthorizationError) -> Rejection:
        code = exc.status_code if exc.status_code in _ERROR_NAMES else status.HTTP_403_FORBIDDEN
        return cls(status=code, message=exc.message)

    def body(self) -> dict[str, str]:
        return {"error": self.error, "message": self.message, "timestamp": self.timestamp}

    def to_response(self) -> JSONResponse:
        headers = {"WWW-Authenticate": "Bearer"} if self.status == status.HTTP_401_UNAUTHORIZED else None
        return JSONResponse(status_code=self.status, content=self.body(), headers=headers)


async def _authentication_error_handler(request: Request, exc: AuthenticationError) -> JSONResponse:
    return Rejection.from_error(exc).to_response()


async def _authorization_error_handler(request: Request, exc: AuthorizationError) -> JSONResponse:
    return Rejection.from_error(exc).to_response()


def register_rejection_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AuthenticationError, _authentication_error_handler)
    app.add_exception_handler(AuthorizationError, _authorization_error_handler)
