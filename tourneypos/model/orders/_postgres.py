# model/orders/_postgres.py
"""
Relational order ledger (PostgreSQL via asyncpg, SQLite via aiosqlite).

The counter row is advanced with `UPDATE ... RETURNING` as the first
statement of the submission transaction. That statement takes the row lock
(PostgreSQL) or the database write lock (SQLite) and holds it until commit,
so concurrent submitters queue behind it and IDs are handed out in commit
order. A rollback releases the lock without advancing the counter.
"""
from __future__ import annotations
from typing import Any, Dict, List, Sequence

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from ...errors import InfrastructureError, store_errors
from ...helpers import now_ts
from ...infra.sql import Gated
from ...validation import LineItemInput, OrderInput
from ..orm import COUNTER_ORDERS
from .common import (
    DEFERRED_PAYMENT_TYPE, ORDER_ID_WIDTH,
    derive_status, format_order_id, group_order_rows, item_dict, order_dict,
)


# UN-GATED internal function, must run inside a transaction
async def _advance_counter(db: AsyncSession) -> int:
    row = (await db.execute(text("""
        UPDATE order_counter SET value = value + 1
        WHERE name = :n
        RETURNING value
    """), {"n": COUNTER_ORDERS})).first()
    if row is None:
        raise InfrastructureError("order counter is not initialized")
    return int(row[0])


# UN-GATED internal function, must run inside a transaction
async def _insert_line_items(
    db: AsyncSession, order_id: str, items: Sequence[LineItemInput]
) -> None:
    await db.execute(text("""
        INSERT INTO order_items (order_id, name, quantity, line_total_cents)
        VALUES (:order_id, :name, :quantity, :line_total_cents)
    """), [
        {
            "order_id": order_id,
            "name": it.name,
            "quantity": it.qty,
            "line_total_cents": it.line_total_cents,
        }
        for it in items
    ])


class OrderLedger:
    def __init__(
        self, *, db: AsyncSession, gated: Gated,
        deferred_payment_type: str = DEFERRED_PAYMENT_TYPE,
        id_width: int = ORDER_ID_WIDTH,
    ) -> None:
        self.db = db
        self.gated = gated
        self.deferred_payment_type = deferred_payment_type
        self.id_width = id_width

    async def submit(self, order: OrderInput) -> Dict[str, Any]:
        status = derive_status(order.payment_type, self.deferred_payment_type)
        created_at = now_ts()
        async with store_errors("orders.submit"):
            async with self.gated():
                async with self.db.begin():
                    seq = await _advance_counter(self.db)
                    order_id = format_order_id(seq, self.id_width)
                    await self.db.execute(text("""
                        INSERT INTO orders (
                          order_id, seq, total_cents, payment_type, status,
                          created_at
                        ) VALUES (
                          :order_id, :seq, :total_cents, :payment_type,
                          :status, :created_at
                        )
                    """), {
                        "order_id": order_id,
                        "seq": seq,
                        "total_cents": order.total_cents,
                        "payment_type": order.payment_type,
                        "status": status,
                        "created_at": created_at,
                    })
                    await _insert_line_items(self.db, order_id, order.items)

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
            async with self.gated():
                async with self.db.begin():
                    rows = (await self.db.execute(text("""
                        SELECT
                          o.order_id, o.total_cents, o.payment_type,
                          o.status, o.created_at,
                          i.name AS item_name, i.quantity,
                          i.line_total_cents
                        FROM orders AS o
                        LEFT JOIN order_items AS i ON i.order_id = o.order_id
                        ORDER BY o.seq DESC, i.id ASC
                    """))).mappings().all()
        return group_order_rows(rows)

    async def counter_value(self) -> int:
        async with store_errors("orders.counter"):
            async with self.gated():
                async with self.db.begin():
                    value = (await self.db.execute(
                        text("SELECT value FROM order_counter WHERE name=:n"),
                        {"n": COUNTER_ORDERS},
                    )).scalar_one_or_none()
        return int(value or 0)
