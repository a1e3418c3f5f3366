from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from schemas import AccountView

BASELINE_ROLES: tuple[str, ...] = ("user",)


def normalize_identity(identity: str) -> str:
    """Return the comparison/storage form of a login identity."""
    return identity.lower()


@dataclass(slots=True)
class Account:
    """Aggregate root for a registered user."""

    account_id: str
    identity: str
    secret_hash: str = field(repr=False)
    roles: list[str]
    created_at: datetime
    updated_at: datetime

    def public_view(self) -> AccountView:
        """Return the redacted projection handed to callers."""
        return AccountView(id=self.account_id, identity=self.identity, roles=list(self.roles))
