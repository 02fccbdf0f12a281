# auth/throttle.py
"""
Per-client login throttle.

    clear --fail--> accumulating(1) --fail--> ... --fail (count == max)--> locked
      ^                  |                                                   |
      +----success-------+                                                   |
      +------------------------- now >= locked_until ------------------------+

A failure after the window elapsed starts a fresh window. While locked,
`begin_attempt` rejects before the password is ever looked at.

Attempts still being verified count against the limit: `begin_attempt`
reserves a slot synchronously, so parallel requests from one client cannot
all slip past the check before the first failure is recorded. Every
`begin_attempt` must be paired with `end_attempt`.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from ..errors import RateLimitedError
from ..helpers import now_ts

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 5
WINDOW_SECONDS = 15 * 60
LOCK_TIME = 15 * 60


@dataclass
class AttemptRecord:
    count: int
    window_start: float
    locked_until: Optional[float] = None


class LoginThrottle:
    def __init__(self, max_attempts: int = MAX_ATTEMPTS,
                 window_seconds: int = WINDOW_SECONDS,
                 lockout_seconds: int = LOCK_TIME,
                 clock: Callable[[], float] = now_ts) -> None:
        self.max_attempts = max_attempts
        self.window = window_seconds
        self.lockout = lockout_seconds
        self._clock = clock
        self._records: Dict[str, AttemptRecord] = {}
        self._inflight: Dict[str, int] = {}

    def _current(self, client: str, now: float) -> Optional[AttemptRecord]:
        rec = self._records.get(client)
        if rec is None:
            return None
        if rec.locked_until is not None:
            if now >= rec.locked_until:
                del self._records[client]
                return None
            return rec
        if now - rec.window_start >= self.window:
            del self._records[client]
            return None
        return rec

    def is_locked(self, client: str) -> bool:
        rec = self._current(client, self._clock())
        return rec is not None and rec.locked_until is not None

    def attempts(self, client: str) -> int:
        """Failures counted in the current window."""
        rec = self._current(client, self._clock())
        return rec.count if rec else 0

    def begin_attempt(self, client: str) -> None:
        """Reserve an attempt for `client` or raise RateLimitedError."""
        if self.is_locked(client):
            raise RateLimitedError()
        inflight = self._inflight.get(client, 0)
        if self.attempts(client) + inflight >= self.max_attempts:
            raise RateLimitedError()
        self._inflight[client] = inflight + 1

    def end_attempt(self, client: str) -> None:
        left = self._inflight.get(client, 0) - 1
        if left > 0:
            self._inflight[client] = left
        else:
            self._inflight.pop(client, None)

    def record_failure(self, client: str) -> bool:
        """Count a failed attempt. Returns True if it triggered a lockout."""
        now = self._clock()
        rec = self._current(client, now)
        if rec is None:
            rec = AttemptRecord(count=1, window_start=now)
            self._records[client] = rec
        elif rec.locked_until is None:
            rec.count += 1
        if rec.locked_until is None and rec.count >= self.max_attempts:
            rec.locked_until = now + self.lockout
            logger.warning("login locked out for %s after %d failures",
                           client, rec.count)
            return True
        return False

    def record_success(self, client: str) -> None:
        self._records.pop(client, None)
