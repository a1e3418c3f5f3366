"""Redis-backed revocation registry shared between service instances."""

from __future__ import annotations

import logging
import time
from typing import Callable

from redis import Redis

from .tokens import token_fingerprint

logger = logging.getLogger(__name__)

# Longest lifetime the issuer ever grants (30 days).
DEFAULT_MAX_TTL_SECONDS = 30 * 24 * 60 * 60


class RedisRevocationRegistry:
    """Revocation set stored as one Redis key per token fingerprint.

    Keys expire with the token they describe, so the set never outgrows the
    population of still-valid tokens. Tokens without a readable expiry, or
    claiming to live longer than ``max_ttl_seconds``, are stored without a TTL.
    """

    def __init__(
        self,
        client: Redis,
        *,
        key_prefix: str = "revoked",
        max_ttl_seconds: int = DEFAULT_MAX_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialise the Redis client and key namespace."""
        self._client = client
        self._key_prefix = key_prefix
        self._max_ttl_seconds = max_ttl_seconds
        self._clock = clock

    def _key(self, token: str) -> str:
        return f"{self._key_prefix}:{token_fingerprint(token)}"

    def revoke(self, token: str, expires_at: int | None = None) -> None:
        """Record ``token`` as revoked; re-revoking never shortens an entry."""
        key = self._key(token)
        ttl = None if expires_at is None else int(expires_at - self._clock())
        if ttl is None or ttl > self._max_ttl_seconds:
            # exp is unverified; a forged far-future value must not reach SET EX
            self._client.set(key, 1)
        else:
            # nx keeps the first entry, which already lives as long as the token.
            self._client.set(key, 1, ex=max(ttl, 1), nx=True)
        logger.info("token revoked fingerprint=%s", key.rsplit(":", 1)[-1][:12])

    def is_revoked(self, token: str) -> bool:
        return bool(self._client.exists(self._key(token)))
