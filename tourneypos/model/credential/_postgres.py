# model/credential/_postgres.py
from __future__ import annotations
from typing import Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from ...errors import store_errors
from ...infra.sql import Gated
from .common import AdminCredential

ADMIN_ID = 1


class CredentialStore:
    def __init__(self, *, db: AsyncSession, gated: Gated) -> None:
        self.db = db
        self.gated = gated

    async def load(self) -> Optional[AdminCredential]:
        async with store_errors("credential.load"):
            async with self.gated():
                async with self.db.begin():
                    row = (await self.db.execute(
                        text("SELECT salt, hash FROM admin_credential "
                             "WHERE id=:id"),
                        {"id": ADMIN_ID},
                    )).mappings().first()
        if not row or not row["salt"] or not row["hash"]:
            return None
        return AdminCredential(salt=row["salt"], hash=row["hash"])

    async def save(self, cred: AdminCredential) -> None:
        async with store_errors("credential.save"):
            async with self.gated():
                async with self.db.begin():
                    await self.db.execute(text("""
                        INSERT INTO admin_credential (id, salt, hash)
                        VALUES (:id, :salt, :hash)
                        ON CONFLICT (id) DO UPDATE
                        SET salt=EXCLUDED.salt, hash=EXCLUDED.hash
                    """), {"id": ADMIN_ID, "salt": cred.salt,
                           "hash": cred.hash})

    async def is_configured(self) -> bool:
        return await self.load() is not None
