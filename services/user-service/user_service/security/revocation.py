"""Revocation registry contract and the in-process implementation."""

from __future__ import annotations

import heapq
import logging
import time
from threading import Lock
from typing import Callable, Protocol

from .tokens import token_fingerprint

logger = logging.getLogger(__name__)


class RevocationRegistry(Protocol):
    """Set of bearer tokens that must no longer be honoured.

    ``expires_at`` is the token's own ``exp`` claim; the entry stops counting
    as revoked once that moment has passed, since the token is dead anyway.
    ``None`` keeps the entry indefinitely.
    """

    def revoke(self, token: str, expires_at: int | None = None) -> None: ...

    def is_revoked(self, token: str) -> bool: ...


class InMemoryRevocationRegistry:
    """Thread-safe revocation set evicting entries past their token expiry.

    Expiring entries are also kept in a min-heap keyed by expiry so pruning
    only touches entries that are actually due.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        """Initialise the token -> expiry map and expiry heap guarded by a lock."""
        self._entries: dict[str, int | None] = {}
        self._expiries: list[tuple[int, str]] = []
        self._lock = Lock()
        self._clock = clock

    def revoke(self, token: str, expires_at: int | None = None) -> None:
        """Mark ``token`` revoked; repeated calls are no-ops."""
        with self._lock:
            self._prune_locked()
            if token in self._entries:
                return
            self._entries[token] = expires_at
            if expires_at is not None:
                heapq.heappush(self._expiries, (expires_at, token))
        logger.info("token revoked fingerprint=%s", token_fingerprint(token)[:12])

    def is_revoked(self, token: str) -> bool:
        with self._lock:
            if token not in self._entries:
                return False
            expires_at = self._entries[token]
            if expires_at is not None and expires_at <= self._clock():
                del self._entries[token]
                return False
            return True

    def prune(self) -> int:
        """Drop entries whose tokens have expired and return how many were removed."""
        with self._lock:
            return self._prune_locked()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _prune_locked(self) -> int:
        now = self._clock()
        removed = 0
        while self._expiries and self._expiries[0][0] <= now:
            expires_at, token = heapq.heappop(self._expiries)
            # is_revoked may already have evicted it
            if token in self._entries and self._entries[token] == expires_at:
                del self._entries[token]
                removed += 1
        return removed
