import asyncio
from contextlib import asynccontextmanager
from typing import AsyncContextManager, Callable

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    create_async_engine, async_sessionmaker, AsyncSession
)

Gated = Callable[[], AsyncContextManager[None]]


def normalize_async_url(url: str) -> str:
    if url.startswith("sqlite://"):
        return url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+asyncpg://", 1)
    return url


# DB-GATE: at most `limit` transactions in flight per engine
@asynccontextmanager
async def _gated(sem: asyncio.Semaphore):
    await sem.acquire()
    try:
        yield
    finally:
        sem.release()


def make_async_engine(
    database_url: str,
    *,
    pool_size: int = 10,
    max_overflow: int = 10,
    pool_timeout: int = 30,
    command_timeout: float = 10.0,
    gate_limit: int | None = None,
):
    """
    Build (engine, session factory, gated) for `database_url`.

    `gated()` is an async context manager bounding concurrent transactions
    to the pool size (or `gate_limit`), so callers queue in-process instead
    of piling onto the pool timeout.
    """
    db_url = normalize_async_url(database_url)
    kw = dict(future=True, pool_pre_ping=True)

    if db_url.startswith("postgresql+asyncpg://"):
        kw.update(
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_timeout=pool_timeout,
            connect_args={"command_timeout": command_timeout},
        )
    elif db_url.startswith("sqlite+aiosqlite://"):
        kw.update(pool_timeout=pool_timeout)

    engine = create_async_engine(db_url, **kw)

    if db_url.startswith("sqlite+aiosqlite://"):
        busy_ms = int(command_timeout * 1000)

        @event.listens_for(engine.sync_engine, "connect")
        def _sqlite_pragmas(dbapi_connection, _):
            cur = dbapi_connection.cursor()
            cur.execute("PRAGMA journal_mode=WAL;")
            cur.execute(f"PRAGMA busy_timeout={busy_ms};")
            cur.execute("PRAGMA synchronous=NORMAL;")
            cur.execute("PRAGMA foreign_keys=ON;")
            cur.close()

    SessionAsync = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    db_gate = asyncio.Semaphore(max(1, gate_limit or pool_size))

    def gated():
        return _gated(db_gate)

    return engine, SessionAsync, gated
