# model/credential/__init__.py
from typing import Optional, Union

import redis.asyncio as redis
from sqlalchemy.ext.asyncio import AsyncSession

from ...infra.sql import Gated
from ._postgres import CredentialStore as SqlCredentialStore
from ._redis import CredentialStore as RedisCredentialStore
from .common import AdminCredential

CredentialStore = Union[SqlCredentialStore, RedisCredentialStore]


def new_store(*, backend: str,
              db: Optional[AsyncSession] = None,
              r: Optional[redis.Redis] = None,
              gated: Optional[Gated] = None) -> CredentialStore:
    if backend == "pg":
        if db is None or gated is None:
            raise RuntimeError(
                "CredentialStore(pg) requires db=AsyncSession and gated=Gated"
            )
        return SqlCredentialStore(db=db, gated=gated)
    if backend == "redis":
        if r is None:
            raise RuntimeError(
                "CredentialStore(redis) requires r=redis.Redis"
            )
        return RedisCredentialStore(r)
    raise RuntimeError(f"unknown store backend: {backend!r}")


__all__ = [
    "AdminCredential", "CredentialStore", "SqlCredentialStore",
    "RedisCredentialStore", "new_store",
]
