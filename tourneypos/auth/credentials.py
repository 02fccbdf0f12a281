# auth/credentials.py
"""
Admin password check against a stored PBKDF2 salt/hash pair.

A missing credential is a valid state ("not configured") and simply fails
every check. Storage and derivation errors also fail the check instead of
propagating, so an attacker cannot tell a broken store from a wrong password.
"""
from __future__ import annotations
import hashlib
import logging
import secrets
from typing import Optional

from starlette.concurrency import run_in_threadpool

from ..helpers import ct_equal
from ..model.credential import AdminCredential, CredentialStore

logger = logging.getLogger(__name__)

PBKDF2_DIGEST = "sha512"
PBKDF2_ITERATIONS = 100_000
PBKDF2_KEY_LENGTH = 64


def derive_hash(password: str, salt: str) -> str:
    return hashlib.pbkdf2_hmac(
        PBKDF2_DIGEST,
        password.encode("utf-8"),
        salt.encode("utf-8"),
        PBKDF2_ITERATIONS,
        PBKDF2_KEY_LENGTH,
    ).hex()


def make_credential(password: str,
                    salt: Optional[str] = None) -> AdminCredential:
    salt = salt or secrets.token_hex(16)
    return AdminCredential(salt=salt, hash=derive_hash(password, salt))


class CredentialGuard:
    def __init__(self, store: CredentialStore) -> None:
        self.store = store

    async def verify(self, password: str) -> bool:
        if not isinstance(password, str):
            return False
        try:
            cred = await self.store.load()
            if cred is None:
                return False
            # ~100ms of CPU; keep it off the event loop
            candidate = await run_in_threadpool(
                derive_hash, password, cred.salt
            )
        except Exception:
            logger.warning("admin credential check failed", exc_info=True)
            return False
        return ct_equal(candidate, cred.hash.strip().lower())

    async def is_configured(self) -> bool:
        try:
            return await self.store.is_configured()
        except Exception:
            logger.warning("admin credential lookup failed", exc_info=True)
            return False
