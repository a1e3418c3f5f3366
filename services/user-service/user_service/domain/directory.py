"""User directory contract and the in-process implementation."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from threading import Lock
from typing import TYPE_CHECKING, Iterable, Protocol

from .account import BASELINE_ROLES, Account, normalize_identity

if TYPE_CHECKING:
    from ..security.passwords import PasswordHasher

logger = logging.getLogger(__name__)

DEMO_SECRET = "password123"
# Fixed ids so other services can reference the seeded accounts.
DEMO_ACCOUNTS: tuple[tuple[str, str, tuple[str, ...]], ...] = (
    ("550e8400-e29b-41d4-a716-446655440001", "admin@example.com", ("admin", "user")),
    ("550e8400-e29b-41d4-a716-446655440002", "user@example.com", ("user",)),
    ("550e8400-e29b-41d4-a716-446655440003", "manager@example.com", ("manager", "user")),
    ("550e8400-e29b-41d4-a716-446655440004", "test@example.com", ("user",)),
)


class DuplicateIdentityError(Exception):
    """Raised by ``create`` when the normalized identity is already stored."""

    def __init__(self, identity: str) -> None:
        self.identity = identity
        super().__init__(f"identity already present: {identity}")


class UserDirectory(Protocol):
    """Keyed account storage enforcing unique, case-insensitive identities.

    ``create`` must be atomic with respect to other ``create`` calls for the
    same identity and signal a clash with :class:`DuplicateIdentityError`.
    """

    def find_by_identity(self, identity: str) -> Account | None: ...

    def find_by_id(self, account_id: str) -> Account | None: ...

    def create(
        self,
        identity: str,
        secret_hash: str,
        roles: Iterable[str],
        account_id: str | None = None,
    ) -> Account: ...

    def touch(self, account_id: str) -> None: ...

    def list_all(self) -> list[Account]: ...


def _effective_roles(roles: Iterable[str] | None) -> list[str]:
    stored = list(roles or [])
    return stored if stored else list(BASELINE_ROLES)


class InMemoryUserDirectory:
    """Thread-safe, process-local directory used in development and tests."""

    def __init__(self) -> None:
        self._accounts: dict[str, Account] = {}
        self._ids_by_identity: dict[str, str] = {}
        self._lock = Lock()

    def find_by_identity(self, identity: str) -> Account | None:
        account_id = self._ids_by_identity.get(normalize_identity(identity))
        account = self._accounts.get(account_id) if account_id else None
        logger.debug("lookup by identity %s: %s", identity, "found" if account else "absent")
        return account

    def find_by_id(self, account_id: str) -> Account | None:
        account = self._accounts.get(account_id)
        logger.debug("lookup by id %s: %s", account_id, "found" if account else "absent")
        return account

    def create(
        self,
        identity: str,
        secret_hash: str,
        roles: Iterable[str],
        account_id: str | None = None,
    ) -> Account:
        key = normalize_identity(identity)
        now = datetime.now(timezone.utc)
        with self._lock:
            if key in self._ids_by_identity:
                raise DuplicateIdentityError(key)
            if account_id is not None and account_id in self._accounts:
                raise ValueError(f"account id already in use: {account_id}")
            account = Account(
                account_id=account_id or str(uuid.uuid4()),
                identity=key,
                secret_hash=secret_hash,
                roles=_effective_roles(roles),
                created_at=now,
                updated_at=now,
            )
            self._accounts[account.account_id] = account
            self._ids_by_identity[key] = account.account_id
        logger.info(
            "account created id=%s identity=%s roles=%s",
            account.account_id,
            account.identity,
            account.roles,
        )
        return account

    def touch(self, account_id: str) -> None:
        account = self._accounts.get(account_id)
        if account is None:
            return
        account.updated_at = datetime.now(timezone.utc)
        logger.debug("account touched id=%s", account_id)

    def list_all(self) -> list[Account]:
        with self._lock:
            return list(self._accounts.values())


def seed_demo_accounts(directory: UserDirectory, hasher: PasswordHasher) -> int:
    """Insert the well-known development accounts, skipping ones already present.

    All seeded accounts share :data:`DEMO_SECRET`. Returns the number created.
    """
    secret_hash = hasher.hash(DEMO_SECRET)
    created = 0
    for account_id, identity, roles in DEMO_ACCOUNTS:
        try:
            directory.create(identity, secret_hash, roles, account_id=account_id)
        except DuplicateIdentityError:
            continue
        created += 1
    logger.info("seeded %d demo accounts for development", created)
    return created
