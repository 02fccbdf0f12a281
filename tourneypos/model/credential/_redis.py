# model/credential/_redis.py
from __future__ import annotations
from typing import Optional

import redis.asyncio as redis

from ...errors import store_errors
from .common import AdminCredential

K_CREDENTIAL = "admin:credential"


class CredentialStore:
    def __init__(self, r: redis.Redis) -> None:
        self.r = r

    async def load(self) -> Optional[AdminCredential]:
        async with store_errors("credential.load"):
            h = await self.r.hgetall(K_CREDENTIAL)
        if not h or not h.get("salt") or not h.get("hash"):
            return None
        return AdminCredential(salt=h["salt"], hash=h["hash"])

    async def save(self, cred: AdminCredential) -> None:
        async with store_errors("credential.save"):
            await self.r.hset(K_CREDENTIAL, mapping={
                "salt": cred.salt, "hash": cred.hash,
            })

    async def is_configured(self) -> bool:
        return await self.load() is not None
