"""Business errors surfaced by the authentication coordinator."""

from __future__ import annotations


class AuthError(Exception):
    """Base class for errors raised by :class:`~user_service.domain.service.AuthService`."""


class IdentityAlreadyRegistered(AuthError):
    """Registration attempted for an identity that already has an account."""

    def __init__(self, identity: str) -> None:
        self.identity = identity
        super().__init__("Email already registered")


class InvalidCredentials(AuthError):
    """Unknown identity or wrong secret; the two cases are deliberately indistinguishable."""

    def __init__(self) -> None:
        super().__init__("Invalid credentials")


class AccountNotFound(AuthError):
    """Internal absence signal; folded into ``InvalidCredentials`` before reaching callers."""

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"account not found: {key}")


class InvalidToken(AuthError):
    """Bearer token is malformed, expired, forged or revoked."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)
