from __future__ import annotations

import logging

PACKAGE_LOGGER = "workorder_access"
SECURITY_EVENTS_LOGGER = "workorder_access.security.events"


def configure_app_logging(level: str = "INFO") -> None:
    """
    Minimal logging configuration for this repo.

    Notes:
    - stdlib logging only; uvicorn (or the host process) owns the handlers.
    - ``APP_LOG_LEVEL`` controls verbosity of ``workorder_access.*``.
    - Security events always stay at INFO or above so they are never filtered
      out by a quieter package level.
    """

    normalized = level.upper()
    logging.getLogger(PACKAGE_LOGGER).setLevel(normalized)
    logging.getLogger(PACKAGE_LOGGER).propagate = True

    events = logging.getLogger(SECURITY_EVENTS_LOGGER)
    if events.getEffectiveLevel() > logging.INFO:
        events.setLevel(logging.INFO)
