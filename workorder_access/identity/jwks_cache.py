"""
Signing keys for RS256 external tokens, fetched from the provider's JWKS endpoint.

Keys are parsed once per fetch and indexed by ``kid``. The index is reused
for ``ttl_seconds``. A token naming an unknown ``kid`` (key rotation) forces
one refresh, but forced refreshes are spaced at least
``min_refresh_interval_seconds`` apart so tokens with made-up key ids cannot
turn every request into an outbound fetch.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any

import requests
from jwt import PyJWK
from jwt.exceptions import InvalidKeyError, PyJWKError

logger = logging.getLogger(__name__)


def _index_keys(jwks: Any) -> dict[str, PyJWK]:
    keys: dict[str, PyJWK] = {}
    entries = jwks.get("keys") if isinstance(jwks, dict) else None
    for entry in entries or []:
        kid = entry.get("kid") if isinstance(entry, dict) else None
        if not isinstance(kid, str) or not kid:
            continue
        try:
            keys[kid] = PyJWK.from_dict(entry)
        except (InvalidKeyError, PyJWKError) as exc:
            logger.warning("Skipping unusable JWKS key kid=%s: %s", kid, exc)
    return keys


class JWKSCache:
    def __init__(self, jwks_uri: str, ttl_seconds: int, min_refresh_interval_seconds: float = 30.0) -> None:
        self._uri = jwks_uri
        self._ttl = ttl_seconds
        self._min_refresh_interval = min_refresh_interval_seconds
        self._keys: dict[str, PyJWK] | None = None
        self._fetched_at = 0.0
        self._lock = threading.Lock()

    def _refresh(self) -> dict[str, PyJWK]:
        resp = requests.get(self._uri, timeout=10)
        resp.raise_for_status()
        self._keys = _index_keys(resp.json())
        self._fetched_at = time.monotonic()
        logger.debug("JWKS refreshed uri=%s keys=%d", self._uri, len(self._keys))
        return self._keys

    def get_signing_key(self, kid: str) -> PyJWK | None:
        """
        Return the key for ``kid``, or None when the provider does not publish it.

        Network failures propagate as ``requests.RequestException``; the token
        verifier turns them into a rejection.
        """
        with self._lock:
            age = time.monotonic() - self._fetched_at
            keys = self._keys
            if keys is None or age >= self._ttl:
                keys = self._refresh()
                age = 0.0

            key = keys.get(kid)
            if key is not None or age < self._min_refresh_interval:
                return key

            logger.info("Unknown kid; refreshing JWKS for possible key rotation")
            return self._refresh().get(kid)
