"""
Input schemas and pure validation for untyped request payloads.

Nothing here performs I/O. Each parser collects every violated rule before
raising, so a caller can surface all problems at once.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

from .errors import ValidationError
from .helpers import to_cents

TABS = ("raffles", "concessions")
DEFAULT_COLOR = "gray-600"
DEFAULT_ORDER_INDEX = 0


@dataclass(frozen=True)
class LineItemInput:
    name: str
    qty: int
    unit_price_cents: int

    @property
    def line_total_cents(self) -> int:
        return self.qty * self.unit_price_cents


@dataclass(frozen=True)
class OrderInput:
    total_cents: int
    payment_type: str
    items: Tuple[LineItemInput, ...]


@dataclass(frozen=True)
class CatalogItemInput:
    tab: str
    category: str
    name: str
    data_name: str
    price_cents: int
    color: str = DEFAULT_COLOR
    order_index: int = DEFAULT_ORDER_INDEX


def _non_empty_str(value: Any) -> bool:
    return isinstance(value, str) and value.strip() != ""


def _non_negative_cents(value: Any) -> Optional[int]:
    try:
        cents = to_cents(value)
    except ValueError:
        return None
    return cents if cents >= 0 else None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    return None


# ----------------------------
# Orders
# ----------------------------
def parse_order(payload: Any) -> OrderInput:
    if not isinstance(payload, dict):
        raise ValidationError(["order payload must be a JSON object"])

    errs: List[str] = []

    total = _non_negative_cents(payload.get("totalAmount"))
    if total is None:
        errs.append("'totalAmount' must be a non-negative number")

    payment_type = payload.get("paymentType")
    if not _non_empty_str(payment_type):
        errs.append("'paymentType' is required")

    raw_items = payload.get("items")
    items: List[LineItemInput] = []
    if not isinstance(raw_items, list) or not raw_items:
        errs.append("'items' must be a non-empty list")
        raw_items = []

    for i, raw in enumerate(raw_items):
        where = f"items[{i}]"
        if not isinstance(raw, dict):
            errs.append(f"'{where}' must be an object")
            continue
        name = raw.get("name")
        qty = _as_int(raw.get("qty"))
        price = _non_negative_cents(raw.get("price"))
        ok = True
        if not _non_empty_str(name):
            errs.append(f"'{where}.name' is required")
            ok = False
        if qty is None or qty <= 0:
            errs.append(f"'{where}.qty' must be a positive integer")
            ok = False
        if price is None:
            errs.append(f"'{where}.price' must be a non-negative number")
            ok = False
        if ok:
            items.append(LineItemInput(
                name=name.strip(), qty=qty, unit_price_cents=price
            ))

    if errs:
        raise ValidationError(errs)
    return OrderInput(
        total_cents=total,
        payment_type=payment_type.strip(),
        items=tuple(items),
    )


# ----------------------------
# Catalog
# ----------------------------
def validate_catalog_item(item: Any) -> List[str]:
    errs: List[str] = []
    if not item or not isinstance(item, dict):
        errs.append("Missing item payload")
        return errs
    tab = item.get("tab")
    if tab not in TABS:
        errs.append("'tab' is required and must be 'raffles' or "
                    "'concessions'")
    if not _non_empty_str(item.get("category")):
        errs.append("'category' is required")
    if not _non_empty_str(item.get("name")):
        errs.append("'name' is required")
    if not _non_empty_str(item.get("dataName")):
        errs.append("'dataName' is required")
    if _non_negative_cents(item.get("price")) is None:
        errs.append("'price' must be a non-negative number")
    order_index = item.get("orderIndex")
    if order_index not in (None, "") and _as_int(order_index) is None:
        errs.append("'orderIndex' must be an integer")
    return errs


def parse_catalog_item(item: Any) -> CatalogItemInput:
    errs = validate_catalog_item(item)
    if errs:
        raise ValidationError(errs)
    color = item.get("color")
    order_index = item.get("orderIndex")
    return CatalogItemInput(
        tab=item["tab"],
        category=item["category"].strip(),
        name=item["name"].strip(),
        data_name=item["dataName"].strip(),
        price_cents=to_cents(item["price"]),
        color=color.strip() if _non_empty_str(color) else DEFAULT_COLOR,
        order_index=(
            DEFAULT_ORDER_INDEX if order_index in (None, "")
            else _as_int(order_index)
        ),
    )
