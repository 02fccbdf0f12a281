import logging
import os
from dataclasses import dataclass, field
from typing import Optional, Tuple


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    return int(os.environ.get(name, str(default)))


def _env_float(name: str, default: float) -> float:
    return float(os.environ.get(name, str(default)))


# ----------------------------
# Config & Constants
# ----------------------------
@dataclass(frozen=True)
class Settings:
    store_backend: str = "pg"  # 'pg' | 'redis'
    database_url: str = "sqlite:///./tourneypos.db"
    db_pool_size: int = 10
    db_max_overflow: int = 10
    db_pool_timeout: int = 30
    db_gate_limit: Optional[int] = None
    db_command_timeout: float = 10.0

    redis_url: str = "redis://127.0.0.1:6379"
    redis_max_conn: int = 64

    store_connect_retries: int = 5
    store_connect_retry_delay: float = 3.0

    admin_password: Optional[str] = field(default=None, repr=False)
    admin_salt: Optional[str] = field(default=None, repr=False)
    admin_auth_disabled: bool = False
    admin_allow_unconfigured: bool = True
    admin_session_ttl: int = 30 * 60

    login_max_attempts: int = 5
    login_window: int = 15 * 60
    login_lockout: int = 15 * 60

    deferred_payment_type: str = "Venmo"
    order_id_width: int = 4
    seed_catalog: bool = True

    cors_origins: Tuple[str, ...] = ("*",)
    static_dir: str = "public"
    trust_proxy_headers: bool = False
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        gate = os.environ.get("DB_GATE_LIMIT")
        origins = os.environ.get("CORS_ORIGINS", "*")
        return cls(
            store_backend=os.environ.get("STORE_BACKEND", "pg").lower(),
            database_url=os.environ.get(
                "DATABASE_URL", "sqlite:///./tourneypos.db"
            ),
            db_pool_size=_env_int("DB_POOL_SIZE", 10),
            db_max_overflow=_env_int("DB_MAX_OVERFLOW", 10),
            db_pool_timeout=_env_int("DB_POOL_TIMEOUT", 30),
            db_gate_limit=int(gate) if gate else None,
            db_command_timeout=_env_float("DB_COMMAND_TIMEOUT", 10.0),
            redis_url=os.environ.get("REDIS_URL", "redis://127.0.0.1:6379"),
            redis_max_conn=_env_int("REDIS_MAX_CONN", 64),
            store_connect_retries=_env_int("STORE_CONNECT_RETRIES", 5),
            store_connect_retry_delay=_env_float(
                "STORE_CONNECT_RETRY_DELAY", 3.0
            ),
            admin_password=os.environ.get("ADMIN_PASSWORD") or None,
            admin_salt=os.environ.get("ADMIN_SALT") or None,
            admin_auth_disabled=_env_bool("ADMIN_AUTH_DISABLED", False),
            admin_allow_unconfigured=_env_bool(
                "ADMIN_ALLOW_UNCONFIGURED", True
            ),
            admin_session_ttl=_env_int("ADMIN_SESSION_TTL", 30 * 60),
            login_max_attempts=_env_int("LOGIN_MAX_ATTEMPTS", 5),
            login_window=_env_int("LOGIN_WINDOW", 15 * 60),
            login_lockout=_env_int("LOGIN_LOCKOUT", 15 * 60),
            deferred_payment_type=os.environ.get(
                "DEFERRED_PAYMENT_TYPE", "Venmo"
            ),
            order_id_width=_env_int("ORDER_ID_WIDTH", 4),
            seed_catalog=_env_bool("SEED_CATALOG", True),
            cors_origins=tuple(
                o.strip() for o in origins.split(",") if o.strip()
            ),
            static_dir=os.environ.get("STATIC_DIR", "public"),
            trust_proxy_headers=_env_bool("TRUST_PROXY_HEADERS", False),
            log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        )


def configure_logging(level: str = "INFO") -> None:
    # no-op when uvicorn (or a test runner) already installed handlers
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )
