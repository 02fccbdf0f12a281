# model/catalog/common.py
from __future__ import annotations
from typing import Any, Dict, List, Mapping

from ...helpers import from_cents
from ...validation import CatalogItemInput


def catalog_dict(item_id: int, item: CatalogItemInput) -> Dict[str, Any]:
    return {
        "id": int(item_id),
        "tab": item.tab,
        "category": item.category,
        "name": item.name,
        "dataName": item.data_name,
        "price": from_cents(item.price_cents),
        "color": item.color,
        "orderIndex": item.order_index,
    }


def row_to_input(r: Mapping[str, Any]) -> CatalogItemInput:
    return CatalogItemInput(
        tab=r["tab"],
        category=r["category"],
        name=r["name"],
        data_name=r["data_name"],
        price_cents=int(r["price_cents"]),
        color=r["color"],
        order_index=int(r["order_index"]),
    )


def sort_key(d: Mapping[str, Any]):
    return (d["tab"], d["category"], d["orderIndex"], d["id"])


# ----------------------------
# Default catalog, seeded into an empty store
# ----------------------------
def _item(tab, category, name, data_name, price, order_index):
    return CatalogItemInput(
        tab=tab, category=category, name=name, data_name=data_name,
        price_cents=price * 100, color="gray-600", order_index=order_index,
    )


DEFAULT_CATALOG: List[CatalogItemInput] = [
    # raffles
    _item("raffles", "Raffles 🎟️", "Single Ticket", "single_ticket", 1, 1),
    _item("raffles", "Raffles 🎟️", "6 Pack Ticket", "6pack_ticket", 5, 2),
    _item("raffles", "Raffles 🎟️", "14 Pack Ticket", "14pack_ticket", 10, 3),
    _item("raffles", "Raffles 🎟️", "30 Pack Ticket", "30pack_ticket", 20, 4),
    # concessions: snacks
    _item("concessions", "Snacks", "Pizza Slice 🍕", "pizza", 3, 1),
    _item("concessions", "Snacks", "Donuts 🍩", "donuts", 2, 2),
    _item("concessions", "Snacks", "Muffins 🧁", "muffins", 3, 3),
    _item("concessions", "Snacks", "Chips 🍟", "chips", 2, 4),
    # concessions: candy
    _item("concessions", "Candy", "Candy Bar 🍫", "candy_bar", 3, 1),
    _item("concessions", "Candy", "Nerds", "nerds", 2, 2),
    _item("concessions", "Candy", "Ring Pop 💍", "ring_pop", 2, 3),
    _item("concessions", "Candy", "Sour Patch Kids 🍋", "sour_patch", 2, 4),
    _item("concessions", "Candy", "Skittles/Starburst 🌟",
          "skittles_starburst", 2, 5),
    _item("concessions", "Candy", "Air Head Extremes 🌈", "air_heads", 2, 6),
    _item("concessions", "Candy", "Other", "candy_other", 2, 7),
    # concessions: drinks
    _item("concessions", "Drinks 🥤", "Gatorade", "gatorade", 3, 1),
    _item("concessions", "Drinks 🥤", "Water 💧", "water", 2, 2),
    _item("concessions", "Drinks 🥤", "Coffee ☕", "coffee", 3, 3),
    _item("concessions", "Drinks 🥤", "Other Drink", "drink_other", 2, 4),
]
