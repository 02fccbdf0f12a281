import time
import hmac
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional

from fastapi import Request


# ----------------------------
# Helpers
# ----------------------------
def now_ts() -> float:
    return time.time()


def to_iso(ts: float | None) -> Optional[str]:
    if ts is None:
        return None
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


def ct_equal(a: str, b: str) -> bool:
    return hmac.compare_digest(a.encode(), b.encode())


_CENT = Decimal("0.01")


def to_cents(value: Any) -> int:
    """
    Parse a currency amount (int, float, or numeric string) into integer
    cents, rounding half-up. Raises ValueError for anything else.
    """
    if isinstance(value, bool) or value is None:
        raise ValueError(f"not a number: {value!r}")
    if isinstance(value, str):
        value = value.strip()
        if not value:
            raise ValueError("empty amount")
    try:
        # str() keeps floats like 2.3 from turning into 2.2999...
        d = Decimal(str(value))
        if not d.is_finite():
            raise ValueError(f"not a finite number: {value!r}")
        return int((d.quantize(_CENT, rounding=ROUND_HALF_UP) * 100)
                   .to_integral_value())
    except InvalidOperation:
        raise ValueError(f"not a number: {value!r}") from None


def from_cents(cents: int | None) -> float:
    if cents is None:
        return 0.0
    return float(Decimal(int(cents)) / 100)


def client_id(request: Request, trust_proxy: bool = False) -> str:
    if trust_proxy:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"
