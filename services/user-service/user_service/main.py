"""FastAPI application wiring for the user service."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware

from .api.routes import router as auth_router
from .config import Settings, get_settings
from .domain.directory import InMemoryUserDirectory, UserDirectory, seed_demo_accounts
from .domain.service import AuthService
from .logging_config import get_logging_config
from .security.passwords import PasswordHasher
from .security.revocation import InMemoryRevocationRegistry, RevocationRegistry
from .security.tokens import TokenIssuer

logger = logging.getLogger(__name__)

settings = get_settings()


def _build_revocation_registry(settings: Settings) -> RevocationRegistry:
    """Instantiate the configured revocation backend, preferring Redis when available."""
    if settings.revocation_backend == "redis" and settings.redis_url:
        try:
            import redis

            from .security.redis_revocation import DEFAULT_MAX_TTL_SECONDS, RedisRevocationRegistry

            client = redis.from_url(settings.redis_url)
            # ensure connectivity early to fail fast and fall back
            client.ping()
            logger.info("revocation registry configured for redis backend at %s", settings.redis_url)
            return RedisRevocationRegistry(
                client,
                max_ttl_seconds=max(settings.token_ttl_seconds, DEFAULT_MAX_TTL_SECONDS),
            )
        except Exception as exc:  # pragma: no cover - depends on a live redis
            logger.warning("redis revocation registry unavailable, falling back to in-memory: %s", exc)

    logger.info("revocation registry using in-memory backend")
    return InMemoryRevocationRegistry()


def build_service(settings: Settings, directory: UserDirectory) -> AuthService:
    """Assemble the coordinator and its collaborators from settings."""
    hasher = PasswordHasher(rounds=settings.bcrypt_rounds)
    issuer = TokenIssuer(
        ttl_seconds=settings.token_ttl_seconds,
        signing_key=settings.token_signing_key,
    )
    if not issuer.signed:
        log = logger.warning if settings.is_production else logger.info
        log("TOKEN_SIGNING_KEY is not set; issued tokens carry no integrity tag")
    service = AuthService(directory, hasher, issuer, _build_revocation_registry(settings))
    if settings.seed_demo_accounts:
        seed_demo_accounts(directory, hasher)
    return service


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialise shared resources (directory backend, services) for the app lifecycle."""
    pool = None
    try:
        if settings.directory_backend == "postgres":
            from psycopg_pool import ConnectionPool

            from .repository import PostgresUserDirectory

            pool = ConnectionPool(settings.database_url, open=False)
            pool.open()
            postgres_directory = PostgresUserDirectory(pool)
            postgres_directory.ensure_schema()
            directory: UserDirectory = postgres_directory
            logger.info("user directory using postgres backend")
        else:
            directory = InMemoryUserDirectory()
            logger.info("user directory using in-memory backend")

        app.state.auth_service = build_service(settings, directory)
        yield
    finally:
        if pool is not None:
            pool.close()
            pool.wait_close()


app = FastAPI(title=settings.app_name, version=settings.version, lifespan=lifespan)

# CORS for local frontend dev
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["GET", "HEAD", "PUT", "PATCH", "POST", "DELETE"],
    allow_headers=["*"],
    max_age=600,
)


@app.get("/health", tags=["health"])
def health() -> dict[str, str]:
    """Return a minimal readiness indicator used by orchestration systems."""
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}


app.include_router(auth_router)


# Prometheus metrics endpoint for Prometheus scrapes
try:
    from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

    @app.get("/metrics")
    def metrics() -> Response:
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
except ImportError:  # pragma: no cover - metrics are optional in dev
    pass


def run() -> None:
    """Serve the application with uvicorn; uvicorn applies the logging config."""
    import uvicorn

    uvicorn.run(
        app,
        host=settings.http_host,
        port=settings.http_port,
        log_level=settings.log_level.lower(),
        log_config=get_logging_config(settings.log_level),
    )


if __name__ == "__main__":
    run()
