"""Bearer token claim contracts decoded by relying services."""

from __future__ import annotations

from pydantic import BaseModel, Field


class TokenClaims(BaseModel):
    """Claims carried in the second segment of a user-service bearer token."""

    sub: str
    identity: str
    roles: list[str] = Field(default_factory=list)
    iat: int
    exp: int
    jti: str | None = None

    @property
    def ttl_seconds(self) -> int:
        return self.exp - self.iat

    def is_expired(self, now: int) -> bool:
        return now >= self.exp
