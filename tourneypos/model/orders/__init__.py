# model/orders/__init__.py
from typing import Optional, Union

import redis.asyncio as redis
from sqlalchemy.ext.asyncio import AsyncSession

from ...infra.sql import Gated
from ._postgres import OrderLedger as SqlOrderLedger
from ._redis import OrderLedger as RedisOrderLedger
from .common import (
    STATUS_PAID, STATUS_PENDING, derive_status, format_order_id,
)

OrderLedger = Union[SqlOrderLedger, RedisOrderLedger]


# Factory keeps server.py simple and constructor-agnostic:
def new_store(*, backend: str,
              db: Optional[AsyncSession] = None,
              r: Optional[redis.Redis] = None,
              gated: Optional[Gated] = None,
              deferred_payment_type: str = "Venmo",
              id_width: int = 4) -> OrderLedger:
    if backend == "pg":
        if db is None or gated is None:
            raise RuntimeError(
                "OrderLedger(pg) requires db=AsyncSession and gated=Gated"
            )
        return SqlOrderLedger(
            db=db, gated=gated,
            deferred_payment_type=deferred_payment_type, id_width=id_width,
        )
    if backend == "redis":
        if r is None:
            raise RuntimeError("OrderLedger(redis) requires r=redis.Redis")
        return RedisOrderLedger(
            r, deferred_payment_type=deferred_payment_type, id_width=id_width,
        )
    raise RuntimeError(f"unknown store backend: {backend!r}")


__all__ = [
    "OrderLedger", "SqlOrderLedger", "RedisOrderLedger", "new_store",
    "STATUS_PAID", "STATUS_PENDING", "derive_status", "format_order_id",
]
