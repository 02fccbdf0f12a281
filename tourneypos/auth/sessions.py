# auth/sessions.py
from __future__ import annotations
import secrets
from typing import Callable, Dict, Optional

from ..helpers import now_ts

ADMIN_SESSION_TTL = 30 * 60  # seconds
TOKEN_BYTES = 24


class SessionManager:
    """
    Opaque admin tokens with sliding expiry, held in process memory.

    Every successful `validate` pushes the expiry to now + ttl. Expired
    tokens are dropped when next presented and swept on every `issue`.
    State is lost on restart; admins log in again.
    """

    def __init__(self, ttl_seconds: int = ADMIN_SESSION_TTL,
                 clock: Callable[[], float] = now_ts) -> None:
        self.ttl = ttl_seconds
        self._clock = clock
        self._tokens: Dict[str, float] = {}  # token -> expires_at

    def issue(self) -> str:
        self.purge_expired()
        token = secrets.token_hex(TOKEN_BYTES)
        self._tokens[token] = self._clock() + self.ttl
        return token

    def validate(self, token: Optional[str]) -> bool:
        if not token:
            return False
        expires_at = self._tokens.get(token)
        if expires_at is None:
            return False
        now = self._clock()
        if now > expires_at:
            del self._tokens[token]
            return False
        self._tokens[token] = now + self.ttl
        return True

    def revoke(self, token: Optional[str]) -> bool:
        if not token:
            return False
        return self._tokens.pop(token, None) is not None

    def purge_expired(self) -> int:
        now = self._clock()
        stale = [t for t, exp in self._tokens.items() if now > exp]
        for t in stale:
            del self._tokens[t]
        return len(stale)

    def __len__(self) -> int:
        return len(self._tokens)
