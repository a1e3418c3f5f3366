"""Database-backed user directory."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Iterable

from psycopg import errors
from psycopg.rows import tuple_row
from psycopg_pool import ConnectionPool

from .domain.account import BASELINE_ROLES, Account, normalize_identity
from .domain.directory import DuplicateIdentityError

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS user_accounts (
    account_id UUID PRIMARY KEY,
    identity TEXT NOT NULL UNIQUE,
    secret_hash TEXT NOT NULL,
    roles TEXT[] NOT NULL,
    created_at TIMESTAMPTZ NOT NULL,
    updated_at TIMESTAMPTZ NOT NULL
)
"""

_COLUMNS = "account_id::text, identity, secret_hash, roles, created_at, updated_at"


class PostgresUserDirectory:
    """Postgres-backed directory; identity uniqueness is enforced by the table constraint."""

    def __init__(self, pool: ConnectionPool) -> None:
        """Store the connection pool used for all database interactions."""
        self._pool = pool

    def ensure_schema(self) -> None:
        """Create the ``user_accounts`` table when it does not exist yet."""
        with self._pool.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(SCHEMA_SQL)
                conn.commit()

    def find_by_identity(self, identity: str) -> Account | None:
        """Fetch an account by case-insensitive identity or return ``None``."""
        return self._fetch_one(
            f"SELECT {_COLUMNS} FROM user_accounts WHERE identity = %s",
            (normalize_identity(identity),),
        )

    def find_by_id(self, account_id: str) -> Account | None:
        """Fetch an account by identifier or return ``None``."""
        try:
            uuid.UUID(account_id)
        except ValueError:
            return None
        return self._fetch_one(
            f"SELECT {_COLUMNS} FROM user_accounts WHERE account_id = %s",
            (account_id,),
        )

    def create(
        self,
        identity: str,
        secret_hash: str,
        roles: Iterable[str],
        account_id: str | None = None,
    ) -> Account:
        """Insert an account, mapping a unique-constraint violation to ``DuplicateIdentityError``."""
        key = normalize_identity(identity)
        stored_roles = list(roles) or list(BASELINE_ROLES)
        now = datetime.now(timezone.utc)
        with self._pool.connection() as conn:
            with conn.cursor(row_factory=tuple_row) as cur:
                try:
                    cur.execute(
                        f"""
                        INSERT INTO user_accounts (account_id, identity, secret_hash, roles, created_at, updated_at)
                        VALUES (%s, %s, %s, %s, %s, %s)
                        RETURNING {_COLUMNS}
                        """,
                        (account_id or str(uuid.uuid4()), key, secret_hash, stored_roles, now, now),
                    )
                except errors.UniqueViolation as exc:
                    conn.rollback()
                    raise DuplicateIdentityError(key) from exc
                row = cur.fetchone()
                conn.commit()

        account = self._map_record(row)
        logger.info(
            "account created id=%s identity=%s roles=%s",
            account.account_id,
            account.identity,
            account.roles,
        )
        return account

    def touch(self, account_id: str) -> None:
        """Advance ``updated_at``; unknown identifiers are ignored."""
        try:
            uuid.UUID(account_id)
        except ValueError:
            return
        with self._pool.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "UPDATE user_accounts SET updated_at = %s WHERE account_id = %s",
                    (datetime.now(timezone.utc), account_id),
                )
                conn.commit()

    def list_all(self) -> list[Account]:
        with self._pool.connection() as conn:
            with conn.cursor(row_factory=tuple_row) as cur:
                cur.execute(f"SELECT {_COLUMNS} FROM user_accounts")
                rows = cur.fetchall()
        return [self._map_record(row) for row in rows]

    def _fetch_one(self, query: str, params: tuple) -> Account | None:
        with self._pool.connection() as conn:
            with conn.cursor(row_factory=tuple_row) as cur:
                cur.execute(query, params)
                row = cur.fetchone()
                if not row:
                    return None
        return self._map_record(row)

    def _map_record(self, row: tuple) -> Account:
        """Convert a raw database tuple into the domain ``Account`` dataclass."""
        return Account(
            account_id=row[0],
            identity=row[1],
            secret_hash=row[2],
            roles=list(row[3]),
            created_at=row[4],
            updated_at=row[5],
        )
