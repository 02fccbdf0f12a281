# model/orders/common.py
# Backend-neutral order rules shared by the SQL and Redis ledgers.
from __future__ import annotations
from typing import Any, Dict, Iterable, List

from ...helpers import from_cents, to_iso

STATUS_PENDING = "pending"
STATUS_PAID = "paid"

DEFERRED_PAYMENT_TYPE = "Venmo"
ORDER_ID_WIDTH = 4


def format_order_id(seq: int, width: int = ORDER_ID_WIDTH) -> str:
    # zero-padded, grows past `width` instead of wrapping
    return str(seq).zfill(width)


def derive_status(payment_type: str,
                  deferred_label: str = DEFERRED_PAYMENT_TYPE) -> str:
    return STATUS_PENDING if payment_type == deferred_label else STATUS_PAID


def item_dict(name: str, qty: int, line_total_cents: int) -> Dict[str, Any]:
    return {
        "name": name,
        "qty": int(qty),
        "total": from_cents(line_total_cents),
    }


def order_dict(
    *,
    order_id: str,
    total_cents: int,
    payment_type: str,
    status: str,
    created_at: float,
    items: Iterable[Dict[str, Any]],
) -> Dict[str, Any]:
    return {
        "orderId": order_id,
        "totalAmount": from_cents(total_cents),
        "paymentType": payment_type,
        "status": status,
        "timestamp": to_iso(created_at),
        "items": list(items),
    }


def group_order_rows(rows: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Regroup flat (order x item) join rows into orders with nested items,
    preserving row order. Rows from a LEFT JOIN with no item carry
    item_name=None and produce an empty item list.
    """
    orders: Dict[str, Dict[str, Any]] = {}
    for r in rows:
        oid = r["order_id"]
        o = orders.get(oid)
        if o is None:
            o = order_dict(
                order_id=oid,
                total_cents=r["total_cents"],
                payment_type=r["payment_type"],
                status=r["status"],
                created_at=r["created_at"],
                items=[],
            )
            orders[oid] = o
        if r.get("item_name") is not None:
            o["items"].append(item_dict(
                r["item_name"], r["quantity"], r["line_total_cents"]
            ))
    return list(orders.values())
