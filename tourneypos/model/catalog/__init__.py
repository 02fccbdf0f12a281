# model/catalog/__init__.py
from typing import Optional, Union

import redis.asyncio as redis
from sqlalchemy.ext.asyncio import AsyncSession

from ...infra.sql import Gated
from ._postgres import CatalogStore as SqlCatalogStore
from ._redis import CatalogStore as RedisCatalogStore
from .common import DEFAULT_CATALOG

CatalogStore = Union[SqlCatalogStore, RedisCatalogStore]


def new_store(*, backend: str,
              db: Optional[AsyncSession] = None,
              r: Optional[redis.Redis] = None,
              gated: Optional[Gated] = None) -> CatalogStore:
    if backend == "pg":
        if db is None or gated is None:
            raise RuntimeError(
                "CatalogStore(pg) requires db=AsyncSession and gated=Gated"
            )
        return SqlCatalogStore(db=db, gated=gated)
    if backend == "redis":
        if r is None:
            raise RuntimeError("CatalogStore(redis) requires r=redis.Redis")
        return RedisCatalogStore(r)
    raise RuntimeError(f"unknown store backend: {backend!r}")


__all__ = [
    "CatalogStore", "SqlCatalogStore", "RedisCatalogStore", "new_store",
    "DEFAULT_CATALOG",
]
