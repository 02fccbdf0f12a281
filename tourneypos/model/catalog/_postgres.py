# model/catalog/_postgres.py
from __future__ import annotations
from typing import Any, Dict, List, Sequence

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from ...errors import NotFoundError, store_errors
from ...infra.sql import Gated
from ...validation import CatalogItemInput
from .common import catalog_dict, row_to_input


def _params(item: CatalogItemInput) -> Dict[str, Any]:
    return {
        "tab": item.tab,
        "category": item.category,
        "name": item.name,
        "data_name": item.data_name,
        "price_cents": item.price_cents,
        "color": item.color,
        "order_index": item.order_index,
    }


SQL_INSERT_ITEM = """
    INSERT INTO catalog_items (
      tab, category, name, data_name, price_cents, color, order_index
    ) VALUES (
      :tab, :category, :name, :data_name, :price_cents, :color, :order_index
    )
"""


class CatalogStore:
    """Direct writes, last write wins; no coupling to orders."""

    def __init__(self, *, db: AsyncSession, gated: Gated) -> None:
        self.db = db
        self.gated = gated

    async def list(self) -> List[Dict[str, Any]]:
        async with store_errors("catalog.list"):
            async with self.gated():
                async with self.db.begin():
                    rows = (await self.db.execute(text("""
                        SELECT id, tab, category, name, data_name,
                               price_cents, color, order_index
                        FROM catalog_items
                        ORDER BY tab, category, order_index, id
                    """))).mappings().all()
        return [catalog_dict(r["id"], row_to_input(r)) for r in rows]

    async def create(self, item: CatalogItemInput) -> Dict[str, Any]:
        async with store_errors("catalog.create"):
            async with self.gated():
                async with self.db.begin():
                    new_id = (await self.db.execute(
                        text(SQL_INSERT_ITEM + " RETURNING id"),
                        _params(item),
                    )).scalar_one()
        return catalog_dict(new_id, item)

    async def update(self, item_id: int,
                     item: CatalogItemInput) -> Dict[str, Any]:
        async with store_errors("catalog.update"):
            async with self.gated():
                async with self.db.begin():
                    res = await self.db.execute(text("""
                        UPDATE catalog_items SET
                          tab=:tab, category=:category, name=:name,
                          data_name=:data_name, price_cents=:price_cents,
                          color=:color, order_index=:order_index
                        WHERE id=:id
                    """), {**_params(item), "id": item_id})
        if res.rowcount == 0:
            raise NotFoundError(f"catalog item {item_id} not found")
        return catalog_dict(item_id, item)

    async def delete(self, item_id: int) -> Dict[str, Any]:
        async with store_errors("catalog.delete"):
            async with self.gated():
                async with self.db.begin():
                    res = await self.db.execute(
                        text("DELETE FROM catalog_items WHERE id=:id"),
                        {"id": item_id},
                    )
        if res.rowcount == 0:
            raise NotFoundError(f"catalog item {item_id} not found")
        return {"id": item_id}

    async def seed_defaults(self, items: Sequence[CatalogItemInput]) -> int:
        """Insert `items` only if the catalog is empty. Returns rows added."""
        async with store_errors("catalog.seed"):
            async with self.gated():
                async with self.db.begin():
                    count = (await self.db.execute(
                        text("SELECT COUNT(*) FROM catalog_items")
                    )).scalar_one()
                    if count or not items:
                        return 0
                    await self.db.execute(
                        text(SQL_INSERT_ITEM), [_params(i) for i in items]
                    )
        return len(items)
