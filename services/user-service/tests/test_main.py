from __future__ import annotations

import asyncio
import logging

import psycopg_pool
import pytest
from fastapi import FastAPI

from user_service import main, repository
from user_service.config import Settings
from user_service.domain.contracts import CredentialsInput
from user_service.domain.directory import InMemoryUserDirectory
from user_service.domain.errors import InvalidCredentials


class FakeConnectionPool:
    instances: list["FakeConnectionPool"] = []

    def __init__(self, conninfo: str, open: bool = True) -> None:
        self.conninfo = conninfo
        self.opened = open
        self.closed = False
        self.waited = False
        FakeConnectionPool.instances.append(self)

    def open(self) -> None:
        self.opened = True

    def close(self) -> None:
        self.closed = True

    def wait_close(self) -> None:
        self.waited = True


@pytest.fixture()
def postgres_settings(monkeypatch):
    FakeConnectionPool.instances = []
    monkeypatch.setattr(psycopg_pool, "ConnectionPool", FakeConnectionPool)
    monkeypatch.setattr(
        main,
        "settings",
        Settings(
            directory_backend="postgres",
            database_url="postgres://test@localhost/users",
            revocation_backend="memory",
            seed_demo_accounts=False,
            bcrypt_rounds=4,
            token_ttl_override=None,
        ),
    )


async def _enter_lifespan(app: FastAPI) -> None:
    async with main.lifespan(app):
        assert app.state.auth_service is not None


def test_lifespan_closes_pool_when_schema_setup_fails(postgres_settings, monkeypatch):
    def broken_schema(self) -> None:
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(repository.PostgresUserDirectory, "ensure_schema", broken_schema)

    with pytest.raises(RuntimeError):
        asyncio.run(_enter_lifespan(FastAPI()))

    (pool,) = FakeConnectionPool.instances
    assert pool.opened
    assert pool.closed
    assert pool.waited


def test_lifespan_closes_pool_on_shutdown(postgres_settings, monkeypatch):
    monkeypatch.setattr(repository.PostgresUserDirectory, "ensure_schema", lambda self: None)
    app = FastAPI()

    asyncio.run(_enter_lifespan(app))

    (pool,) = FakeConnectionPool.instances
    assert pool.conninfo == "postgres://test@localhost/users"
    assert pool.closed
    assert isinstance(app.state.auth_service._directory, repository.PostgresUserDirectory)


def test_importing_app_leaves_service_logs_visible(caplog):
    assert logging.getLogger("user_service").propagate

    service = main.build_service(
        Settings(revocation_backend="memory", seed_demo_accounts=False, bcrypt_rounds=4),
        InMemoryUserDirectory(),
    )
    with caplog.at_level(logging.WARNING, logger="user_service"):
        with pytest.raises(InvalidCredentials):
            service.authenticate(CredentialsInput(identity="ghost@example.com", secret="whatever"))

    assert "unknown identity" in caplog.text


def test_unsigned_tokens_warn_in_production(caplog):
    with caplog.at_level(logging.INFO, logger="user_service"):
        main.build_service(
            Settings(
                environment="production",
                revocation_backend="memory",
                seed_demo_accounts=False,
                token_signing_key=None,
                bcrypt_rounds=4,
            ),
            InMemoryUserDirectory(),
        )

    notices = [r for r in caplog.records if "TOKEN_SIGNING_KEY" in r.getMessage()]
    assert [r.levelno for r in notices] == [logging.WARNING]
