# tourneypos/bootstrap.py
"""
Startup plumbing: wait for the store, create schema, seed the default
catalog and the admin credential. Shared by the server's startup hook and
the `init_store.py` script.
"""
from __future__ import annotations
import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

import redis.asyncio as redis
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker

from .auth.credentials import make_credential
from .config import Settings
from .infra.sql import Gated
from .model import catalog, credential
from .model.orm import create_schema

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def with_retries(
    what: str,
    fn: Callable[[], Awaitable[T]],
    retries: int,
    delay: float,
) -> T:
    """Run `fn`, retrying store connection errors up to `retries` times."""
    attempts = max(1, retries)
    for attempt in range(1, attempts + 1):
        try:
            return await fn()
        except (SQLAlchemyError, RedisError, OSError) as e:
            if attempt == attempts:
                logger.error("%s: giving up after %d attempts", what, attempt)
                raise
            logger.warning("%s not ready (attempt %d/%d): %s; retrying in "
                           "%.1fs", what, attempt, attempts, e, delay)
            await asyncio.sleep(delay)
    raise AssertionError("unreachable")


async def _seed(catalog_store, credential_store, settings: Settings) -> None:
    if settings.seed_catalog:
        added = await catalog_store.seed_defaults(catalog.DEFAULT_CATALOG)
        if added:
            logger.info("seeded %d catalog items", added)

    if settings.admin_password:
        if not settings.admin_salt:
            logger.warning("ADMIN_PASSWORD set without ADMIN_SALT; "
                           "using a random salt")
        cred = make_credential(settings.admin_password, settings.admin_salt)
        await credential_store.save(cred)
        logger.info("admin credential seeded from environment")


async def bootstrap_sql(
    engine: AsyncEngine,
    SessionAsync: async_sessionmaker,
    gated: Gated,
    settings: Settings,
) -> None:
    async def _ddl():
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
            await create_schema(conn)

    await with_retries("database", _ddl,
                       settings.store_connect_retries,
                       settings.store_connect_retry_delay)

    async with SessionAsync() as session:
        await _seed(
            catalog.new_store(backend="pg", db=session, gated=gated),
            credential.new_store(backend="pg", db=session, gated=gated),
            settings,
        )


async def bootstrap_redis(r: redis.Redis, settings: Settings) -> None:
    await with_retries("redis", r.ping,
                       settings.store_connect_retries,
                       settings.store_connect_retry_delay)
    await _seed(
        catalog.new_store(backend="redis", r=r),
        credential.new_store(backend="redis", r=r),
        settings,
    )


def redis_from_settings(settings: Settings) -> redis.Redis:
    return redis.from_url(
        settings.redis_url,
        decode_responses=True,
        max_connections=settings.redis_max_conn,
        socket_timeout=2.0,
        socket_connect_timeout=2.0,
        retry_on_timeout=True,
    )


async def bootstrap(settings: Settings, *,
                    engine: Optional[AsyncEngine] = None,
                    SessionAsync: Optional[async_sessionmaker] = None,
                    gated: Optional[Gated] = None,
                    r: Optional[redis.Redis] = None) -> None:
    if settings.store_backend == "pg":
        await bootstrap_sql(engine, SessionAsync, gated, settings)
    else:
        await bootstrap_redis(r, settings)
