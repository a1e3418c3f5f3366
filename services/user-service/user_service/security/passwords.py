"""Salted one-way hashing for account secrets."""

from __future__ import annotations

import logging

import bcrypt

logger = logging.getLogger(__name__)

# bcrypt ignores input past this many bytes.
MAX_SECRET_BYTES = 72


class PasswordHasher:
    """bcrypt-backed hasher; every call draws a fresh salt."""

    def __init__(self, rounds: int = 10) -> None:
        """Store the bcrypt cost factor (log2 of the key-expansion rounds)."""
        self._rounds = rounds

    def hash(self, secret: str) -> str:
        """Return a ``$2b$`` modular-crypt string for ``secret``.

        Raises
        ------
        ValueError
            If the encoded secret is longer than :data:`MAX_SECRET_BYTES`.
        """
        encoded = secret.encode("utf-8")
        if len(encoded) > MAX_SECRET_BYTES:
            raise ValueError(f"secret exceeds {MAX_SECRET_BYTES} bytes")
        hashed = bcrypt.hashpw(encoded, bcrypt.gensalt(rounds=self._rounds))
        logger.info("password hashed")
        return hashed.decode("utf-8")

    def verify(self, secret: str, hashed: str) -> bool:
        """Return ``True`` only when ``secret`` produced ``hashed``."""
        encoded = secret.encode("utf-8")
        if len(encoded) > MAX_SECRET_BYTES:
            logger.info("password verification failed")
            return False
        try:
            matched = bcrypt.checkpw(encoded, hashed.encode("utf-8"))
        except ValueError:
            logger.warning("password verification failed: stored hash is malformed")
            return False
        logger.info("password verification %s", "succeeded" if matched else "failed")
        return matched
