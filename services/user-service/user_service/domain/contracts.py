"""Domain-level request contracts shared by multiple layers."""

from __future__ import annotations

from dataclasses import dataclass

from schemas import AccountView


@dataclass(slots=True)
class RegistrationInput:
    """Validated inputs required to register an account."""

    identity: str
    secret: str
    roles: list[str] | None = None


@dataclass(slots=True)
class CredentialsInput:
    """Identity/secret pair presented at login."""

    identity: str
    secret: str


@dataclass(slots=True)
class AuthResult:
    """Freshly minted bearer token together with the account it represents."""

    access_token: str
    expires_in: int
    account: AccountView
