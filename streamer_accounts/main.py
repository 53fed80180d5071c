"""FastAPI application wiring for the account service."""

from __future__ import annotations

import logging
from contextlib import ExitStack, asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from .api.routes import install_error_handlers, router as v1_router
from .config import Settings, get_settings
from .domain.service import AccountService
from .store.base import AccountStore, StoreConfig

settings = get_settings()

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)


def build_store(settings: Settings, stack: ExitStack) -> AccountStore:
    """Construct the configured store adapter, registering cleanup on ``stack``."""
    config = StoreConfig.from_settings(settings.table_name, settings.consistency_mode)

    if settings.store_backend == "postgres":
        from psycopg_pool import ConnectionPool

        from .store.postgres import PostgresAccountStore

        def _open(url: str) -> ConnectionPool:
            pool = ConnectionPool(url, open=False)
            pool.open()
            stack.callback(pool.wait_close)
            stack.callback(pool.close)
            return pool

        pool = _open(settings.database_url)
        read_pool = _open(settings.database_replica_url) if settings.database_replica_url else None
        store = PostgresAccountStore(pool, config=config, read_pool=read_pool)
        store.ensure_schema()
        logger.info("account store using postgres table %s", config.table_name)
        return store

    if settings.store_backend == "redis":
        import redis

        from .store.redis_store import RedisAccountStore

        client = redis.from_url(settings.redis_url)
        stack.callback(client.close)
        read_client = None
        if settings.redis_replica_url:
            read_client = redis.from_url(settings.redis_replica_url)
            stack.callback(read_client.close)
        logger.info("account store using redis prefix %s", config.table_name)
        return RedisAccountStore(client, config=config, read_client=read_client)

    if settings.store_backend == "memory":
        from .store.memory import InMemoryAccountStore

        return InMemoryAccountStore(config)

    raise ValueError(f"unknown STORE_BACKEND: {settings.store_backend!r}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialise the store adapter and account service for the app lifecycle."""
    with ExitStack() as stack:
        store = build_store(settings, stack)
        app.state.account_service = AccountService(
            store,
            stale_after=timedelta(seconds=settings.takeover_after_seconds),
            anonymous_attempts=settings.anonymous_create_attempts,
        )
        yield


app = FastAPI(title=settings.app_name, version=settings.version, lifespan=lifespan)

# Browser clients call the API directly from any origin.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["POST", "GET", "OPTIONS"],
    allow_headers=["*"],
    max_age=600,
)

install_error_handlers(app)


@app.get("/healthz", tags=["health"])
def healthz() -> dict[str, str]:
    """Return a minimal readiness indicator used by orchestration systems."""
    return {"status": "ok"}


@app.get("/metrics")
def metrics() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


app.include_router(v1_router)
