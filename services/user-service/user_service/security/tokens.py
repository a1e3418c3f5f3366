"""Utilities for issuing and decoding user-service bearer tokens."""

from __future__ import annotations

import hashlib
import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Iterable

import jwt
from pydantic import ValidationError

from schemas import TokenClaims

from ..domain.errors import InvalidToken

logger = logging.getLogger(__name__)

SIGNED_ALGORITHM = "HS256"
UNSIGNED_ALGORITHM = "none"


def token_fingerprint(token: str) -> str:
    """Return the SHA-256 hex digest for a raw token string."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class TokenIssuer:
    """Mint and decode three-segment JWTs carrying identity and role claims.

    Without a signing key the tokens are emitted in the unsigned form
    (``alg: none`` and an empty third segment): anyone who knows the encoding
    can forge one. Configure ``signing_key`` to append an HS256 tag instead.
    """

    def __init__(
        self,
        *,
        ttl_seconds: int,
        signing_key: str | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._ttl_seconds = ttl_seconds
        self._signing_key = signing_key
        self._clock = clock

    @property
    def ttl_seconds(self) -> int:
        return self._ttl_seconds

    @property
    def signed(self) -> bool:
        return self._signing_key is not None

    def issue(self, subject_id: str, identity: str, roles: Iterable[str]) -> str:
        """Create a token representing an authenticated account.

        Parameters
        ----------
        subject_id:
            Account identifier embedded in the ``sub`` claim.
        identity:
            Normalized login identity.
        roles:
            Role labels copied into the ``roles`` claim; may be empty.

        Returns
        -------
        str
            The encoded ``header.claims.tag`` string.
        """
        now = int(self._clock())
        role_list = list(roles)
        payload: dict[str, Any] = {
            "sub": subject_id,
            "identity": identity,
            "roles": role_list,
            "iat": now,
            "exp": now + self._ttl_seconds,
            "jti": uuid.uuid4().hex,
        }
        if self._signing_key is not None:
            token = jwt.encode(payload, self._signing_key, algorithm=SIGNED_ALGORITHM)
        else:
            token = jwt.encode(payload, None, algorithm=UNSIGNED_ALGORITHM)

        logger.info(
            "generated token sub=%s roles=%d expires_at=%s",
            subject_id,
            len(role_list),
            datetime.fromtimestamp(payload["exp"], tz=timezone.utc).isoformat(),
        )
        return token

    def decode(self, token: str) -> TokenClaims:
        """Decode ``token`` and validate its expiry (and tag, when signing).

        Raises
        ------
        InvalidToken
            When the token is malformed, expired, or fails signature checks.
        """
        try:
            if self._signing_key is not None:
                payload = jwt.decode(
                    token,
                    self._signing_key,
                    algorithms=[SIGNED_ALGORITHM],
                    options={"require": ["sub", "iat", "exp"]},
                )
            else:
                payload = jwt.decode(
                    token,
                    options={
                        "verify_signature": False,
                        "verify_exp": True,
                        "require": ["sub", "iat", "exp"],
                    },
                )
        except jwt.ExpiredSignatureError as exc:
            raise InvalidToken("token expired") from exc
        except jwt.PyJWTError as exc:
            raise InvalidToken("token invalid") from exc

        try:
            return TokenClaims.model_validate(payload)
        except ValidationError as exc:
            raise InvalidToken("token claims malformed") from exc

    def peek_expiry(self, token: str) -> int | None:
        """Return the unverified ``exp`` claim, or ``None`` if it cannot be read."""
        try:
            payload = jwt.decode(token, options={"verify_signature": False})
        except jwt.PyJWTError:
            return None
        exp = payload.get("exp")
        return exp if isinstance(exp, int) else None
