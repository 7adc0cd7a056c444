"""
Error taxonomy for the access-control core.

Only ``ConfigError`` is allowed to reach process startup. Authentication and
authorization errors are rendered into fixed rejection bodies at the HTTP
boundary (see ``workorder_access.security.responses``), and
``PolicyResolutionError`` never leaves the RLS package: it is mapped to
``deny_all``.
"""

from __future__ import annotations


class ConfigError(ValueError):
    """Raised when the permission source is malformed or inconsistent."""


class AuthenticationError(Exception):
    """
    Caller identity could not be established.

    ``status_code`` is 401 when no credentials were presented and 403 when
    credentials were presented but rejected. ``message`` is safe to return to
    the client; ``detail`` is for logs and security events only.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int = 403,
        event_kind: str = "AUTH_INVALID_TOKEN",
        severity: str = "WARNING",
        detail: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.event_kind = event_kind
        self.severity = severity
        self.detail = detail


class AuthorizationError(Exception):
    """Caller is authenticated but lacks the required role or permission."""

    status_code = 403

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class PolicyResolutionError(LookupError):
    """Raised when a row-level security policy name is not a known policy."""

    def __init__(self, policy: object) -> None:
        super().__init__(f"Unknown row-level security policy: {policy!r}")
        self.policy = policy
