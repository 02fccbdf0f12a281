# model/catalog/_redis.py
from __future__ import annotations
from typing import Any, Dict, List, Sequence

import redis.asyncio as redis

from ...errors import NotFoundError, store_errors
from ...validation import CatalogItemInput
from .common import catalog_dict, row_to_input, sort_key


# ---- keys
K_NEXT_ID = "catalog:next_id"
IDX_CATALOG = "idx:catalog"  # set of item ids


def k_item(item_id: int | str) -> str: return f"catalog:item:{item_id}"


def _mapping(item: CatalogItemInput) -> Dict[str, Any]:
    # mapping values should be strings for decode_responses=True
    return {
        "tab": item.tab,
        "category": item.category,
        "name": item.name,
        "data_name": item.data_name,
        "price_cents": str(item.price_cents),
        "color": item.color,
        "order_index": str(item.order_index),
    }


class CatalogStore:
    def __init__(self, r: redis.Redis) -> None:
        self.r = r

    async def list(self) -> List[Dict[str, Any]]:
        async with store_errors("catalog.list"):
            ids = await self.r.smembers(IDX_CATALOG)
            ids = sorted(int(i) for i in ids)
            pipe = self.r.pipeline()
            for i in ids:
                pipe.hgetall(k_item(i))
            rows = await pipe.execute()
        items = [
            catalog_dict(i, row_to_input(h))
            for i, h in zip(ids, rows) if h
        ]
        return sorted(items, key=sort_key)

    async def _insert(self, item: CatalogItemInput) -> int:
        new_id = int(await self.r.incr(K_NEXT_ID))
        pipe = self.r.pipeline(transaction=True)
        pipe.hset(k_item(new_id), mapping=_mapping(item))
        pipe.sadd(IDX_CATALOG, new_id)
        await pipe.execute()
        return new_id

    async def create(self, item: CatalogItemInput) -> Dict[str, Any]:
        async with store_errors("catalog.create"):
            new_id = await self._insert(item)
        return catalog_dict(new_id, item)

    async def update(self, item_id: int,
                     item: CatalogItemInput) -> Dict[str, Any]:
        async with store_errors("catalog.update"):
            if not await self.r.sismember(IDX_CATALOG, item_id):
                raise NotFoundError(f"catalog item {item_id} not found")
            await self.r.hset(k_item(item_id), mapping=_mapping(item))
        return catalog_dict(item_id, item)

    async def delete(self, item_id: int) -> Dict[str, Any]:
        async with store_errors("catalog.delete"):
            pipe = self.r.pipeline(transaction=True)
            pipe.srem(IDX_CATALOG, item_id)
            pipe.delete(k_item(item_id))
            removed, _ = await pipe.execute()
        if not removed:
            raise NotFoundError(f"catalog item {item_id} not found")
        return {"id": item_id}

    async def seed_defaults(self, items: Sequence[CatalogItemInput]) -> int:
        async with store_errors("catalog.seed"):
            if await self.r.scard(IDX_CATALOG) or not items:
                return 0
            for item in items:
                await self._insert(item)
        return len(items)
