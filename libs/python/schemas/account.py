"""Account-related DTOs shared across services."""

from __future__ import annotations

from pydantic import BaseModel


class AccountView(BaseModel):
    """Public projection of an account; never carries the secret hash."""

    id: str
    identity: str
    roles: list[str]
