"""
Structured, append-only security events.

Every authentication rejection and authorization denial emits one event
before the error leaves the core. The default sink writes to the
``workorder_access.security.events`` logger with the event dict attached as
``extra={"security_event": ...}`` so a JSON formatter can pick it up.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Protocol

from workorder_access.logging_config import SECURITY_EVENTS_LOGGER

_LEVELS = {
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


@dataclass(frozen=True)
class RequestInfo:
    """The bits of a request that go into security events."""

    ip: str | None = None
    user_agent: str | None = None
    path: str | None = None
    method: str = "GET"


@dataclass(frozen=True)
class SecurityEvent:
    kind: str
    severity: str
    ip: str | None
    user_agent: str | None
    path: str | None
    details: dict[str, Any] = field(default_factory=dict)
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "severity": self.severity,
            "ip": self.ip,
            "user_agent": self.user_agent,
            "path": self.path,
            "details": dict(self.details),
            "timestamp": self.timestamp,
        }


class SecurityEventSink(Protocol):
    def emit(self, event: SecurityEvent) -> None: ...


class LoggingSecurityEventSink:
    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger(SECURITY_EVENTS_LOGGER)

    def emit(self, event: SecurityEvent) -> None:
        level = _LEVELS.get(event.severity, logging.WARNING)
        self._logger.log(
            level,
            "security_event kind=%s severity=%s path=%s ip=%s",
            event.kind,
            event.severity,
            event.path,
            event.ip,
            extra={"security_event": event.to_dict()},
        )


def record_security_event(
    sink: SecurityEventSink,
    kind: str,
    request: RequestInfo,
    *,
    severity: str = "WARNING",
    **details: Any,
) -> SecurityEvent:
    event = SecurityEvent(
        kind=kind,
        severity=severity,
        ip=request.ip,
        user_agent=request.user_agent,
        path=request.path,
        details={k: v for k, v in details.items() if v is not None},
    )
    sink.emit(event)
    return event
