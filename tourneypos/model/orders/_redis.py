# model/orders/_redis.py
from __future__ import annotations
from typing import Any, Dict, List, Sequence

import orjson
import redis.asyncio as redis
from redis.exceptions import WatchError

from ...errors import InfrastructureError, store_errors
from ...helpers import now_ts
from ...validation import LineItemInput, OrderInput
from .common import (
    DEFERRED_PAYMENT_TYPE, ORDER_ID_WIDTH,
    derive_status, format_order_id, group_order_rows, item_dict, order_dict,
)


# ---- keys
K_COUNTER = "counter:orders"
IDX_ORDERS = "idx:orders"  # zset: order_id -> seq


def k_order(oid: str) -> str: return f"order:{oid}"
def k_items(oid: str) -> str: return f"order:{oid}:items"


def _encode_items(items: Sequence[LineItemInput]) -> List[bytes]:
    return [
        orjson.dumps({
            "name": it.name,
            "qty": it.qty,
            "line_total_cents": it.line_total_cents,
        })
        for it in items
    ]


class OrderLedger:
    """
    Optimistic counter: WATCH the counter, read it, then queue the counter
    bump together with the order hash, its items and the index entry in one
    MULTI/EXEC. If another submitter advanced the counter in between, EXEC
    aborts with WatchError and we retry from a fresh read. Nothing is
    written on an aborted attempt, so no ID is consumed.
    """

    def __init__(
        self, r: redis.Redis, *,
        deferred_payment_type: str = DEFERRED_PAYMENT_TYPE,
        id_width: int = ORDER_ID_WIDTH,
        max_retries: int = 64,
    ) -> None:
        self.r = r
        self.deferred_payment_type = deferred_payment_type
        self.id_width = id_width
        self.max_retries = max_retries

    async def submit(self, order: OrderInput) -> Dict[str, Any]:
        status = derive_status(order.payment_type, self.deferred_payment_type)
        async with store_errors("orders.submit"):
            for _ in range(self.max_retries):
                async with self.r.pipeline(transaction=True) as pipe:
                    try:
                        await pipe.watch(K_COUNTER)
                        seq = int(await pipe.get(K_COUNTER) or 0) + 1
                        order_id = format_order_id(seq, self.id_width)
                        encoded = _encode_items(order.items)
                        created_at = now_ts()

                        pipe.multi()
                        pipe.set(K_COUNTER, seq)
                        pipe.hset(k_order(order_id), mapping={
                            "order_id": order_id,
                            "seq": seq,
                            "total_cents": order.total_cents,
                            "payment_type": order.payment_type,
                            "status": status,
                            "created_at": repr(created_at),
                        })
                        if encoded:
                            pipe.rpush(k_items(order_id), *encoded)
                        pipe.zadd(IDX_ORDERS, {order_id: seq})
                        await pipe.execute()
                    except WatchError:
                        continue
                break
            else:
                raise InfrastructureError(
                    "orders.submit failed: counter contention, retry later"
                )

        return order_dict(
            order_id=order_id,
            total_cents=order.total_cents,
            payment_type=order.payment_type,
            status=status,
            created_at=created_at,
            items=[
                item_dict(it.name, it.qty, it.line_total_cents)
                for it in order.items
            ],
        )

    async def list_orders(self) -> List[Dict[str, Any]]:
        async with store_errors("orders.list"):
            oids = await self.r.zrevrange(IDX_ORDERS, 0, -1)
            pipe = self.r.pipeline()
            for oid in oids:
                pipe.hgetall(k_order(oid))
                pipe.lrange(k_items(oid), 0, -1)
            res = await pipe.execute()

        rows: List[Dict[str, Any]] = []
        for i, oid in enumerate(oids):
            h, raw_items = res[2 * i], res[2 * i + 1]
            if not h:
                continue
            header = {
                "order_id": h["order_id"],
                "total_cents": int(h["total_cents"]),
                "payment_type": h["payment_type"],
                "status": h["status"],
                "created_at": float(h["created_at"]),
            }
            if not raw_items:
                rows.append({**header, "item_name": None})
            for raw in raw_items:
                it = orjson.loads(raw)
                rows.append({
                    **header,
                    "item_name": it["name"],
                    "quantity": it["qty"],
                    "line_total_cents": it["line_total_cents"],
                })
        return group_order_rows(rows)

    async def counter_value(self) -> int:
        async with store_errors("orders.counter"):
            return int(await self.r.get(K_COUNTER) or 0)
