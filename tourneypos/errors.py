"""
Error kinds surfaced by the core.

Every error carries a stable machine-readable `kind`, the HTTP status the
boundary maps it to, and a human-readable message.
"""
from __future__ import annotations
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Iterable, List

from redis.exceptions import RedisError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

logger = logging.getLogger(__name__)


class PosError(Exception):
    kind = "error"
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.kind, "message": self.message}


class ValidationError(PosError):
    kind = "validation"
    status_code = 400

    def __init__(self, violations: Iterable[str]) -> None:
        self.violations: List[str] = list(violations)
        super().__init__("; ".join(self.violations) or "invalid input")

    def to_dict(self) -> dict:
        d = super().to_dict()
        d["violations"] = self.violations
        return d


class AuthError(PosError):
    kind = "auth"
    status_code = 401


class RateLimitedError(PosError):
    kind = "rate_limited"
    status_code = 429

    def __init__(self, message: str = "too many attempts, try again later"):
        super().__init__(message)


class NotFoundError(PosError):
    kind = "not_found"
    status_code = 404


class InfrastructureError(PosError):
    kind = "infrastructure"
    status_code = 500
    retryable = True


@asynccontextmanager
async def store_errors(op: str):
    """
    Translate driver exceptions raised inside the block into
    InfrastructureError. PosError subclasses pass through untouched.
    """
    try:
        yield
    except PosError:
        raise
    except IntegrityError as e:
        logger.error("%s: constraint violation", op, exc_info=True)
        raise InfrastructureError(f"{op} failed: conflicting write") from e
    except (SQLAlchemyError, RedisError, OSError, asyncio.TimeoutError) as e:
        logger.error("%s: store failure", op, exc_info=True)
        raise InfrastructureError(
            f"{op} failed: store unavailable, retry later"
        ) from e
