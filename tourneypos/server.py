from __future__ import annotations
import logging
import os
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, Optional

import redis.asyncio as redis
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from fastapi.staticfiles import StaticFiles
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from .auth.credentials import CredentialGuard
from .auth.sessions import SessionManager
from .auth.throttle import LoginThrottle
from .bootstrap import bootstrap, redis_from_settings
from .config import Settings, configure_logging
from .errors import AuthError, InfrastructureError, PosError, ValidationError
from .helpers import client_id
from .infra import timings
from .infra.sql import make_async_engine
from .infra.timings import timeit
from .model import catalog, credential, orders
from .validation import parse_catalog_item, parse_order

logger = logging.getLogger(__name__)

ADMIN_COOKIE = "admin_token"


@dataclass
class Stores:
    orders: orders.OrderLedger
    catalog: catalog.CatalogStore
    credential: credential.CredentialStore


# ----------------------------
# Dependencies
# ----------------------------
async def get_stores(request: Request):
    st = request.app.state
    s: Settings = st.settings
    if s.store_backend == "pg":
        async with st.SessionAsync() as session:
            yield Stores(
                orders=orders.new_store(
                    backend="pg", db=session, gated=st.gated,
                    deferred_payment_type=s.deferred_payment_type,
                    id_width=s.order_id_width,
                ),
                catalog=catalog.new_store(
                    backend="pg", db=session, gated=st.gated
                ),
                credential=credential.new_store(
                    backend="pg", db=session, gated=st.gated
                ),
            )
    else:
        yield Stores(
            orders=orders.new_store(
                backend="redis", r=st.redis,
                deferred_payment_type=s.deferred_payment_type,
                id_width=s.order_id_width,
            ),
            catalog=catalog.new_store(backend="redis", r=st.redis),
            credential=credential.new_store(backend="redis", r=st.redis),
        )


def extract_token(request: Request) -> Optional[str]:
    auth = request.headers.get("authorization", "")
    scheme, _, value = auth.partition(" ")
    if scheme.lower() == "bearer" and value.strip():
        return value.strip()
    return request.cookies.get(ADMIN_COOKIE) or None


async def require_admin(
    request: Request, stores: Stores = Depends(get_stores)
) -> None:
    st = request.app.state
    s: Settings = st.settings
    if s.admin_auth_disabled:
        return
    if st.sessions.validate(extract_token(request)):
        return
    if s.admin_allow_unconfigured:
        if not await CredentialGuard(stores.credential).is_configured():
            return
    raise AuthError("admin login required")


async def json_body(request: Request) -> Any:
    try:
        return await request.json()
    except ValueError:
        raise ValidationError(["request body must be valid JSON"]) from None


# ----------------------------
# App factory
# ----------------------------
def create_app(settings: Optional[Settings] = None, *,
               redis_client: Optional[redis.Redis] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    # ---
    # startup / shutdown
    # ---
    async def _say_hello():
        backend = ("SQL (" + settings.database_url.split("://")[0] + ")"
                   if settings.store_backend == "pg" else "Redis")
        logger.info("=" * 50)
        logger.info("TourneyPOS is starting up...")
        logger.info("   - Store backend: %s", backend)
        logger.info("   - Admin auth: %s",
                    "disabled" if settings.admin_auth_disabled else "enabled")
        logger.info("=" * 50)

    async def _store_start(app: FastAPI):
        if settings.store_backend == "redis" and app.state.redis is None:
            app.state.redis = redis_from_settings(settings)
        await bootstrap(
            settings,
            engine=app.state.engine,
            SessionAsync=getattr(app.state, "SessionAsync", None),
            gated=getattr(app.state, "gated", None),
            r=app.state.redis,
        )

    async def _store_stop(app: FastAPI):
        engine = app.state.engine
        if engine is not None:
            await engine.dispose()
        r = app.state.redis
        if r is not None and app.state.owns_redis:
            await r.aclose()
            app.state.redis = None

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await _say_hello()
        await _store_start(app)
        try:
            yield
        finally:
            await _store_stop(app)

    app = FastAPI(
        title="TourneyPOS",
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.sessions = SessionManager(ttl_seconds=settings.admin_session_ttl)
    app.state.throttle = LoginThrottle(
        max_attempts=settings.login_max_attempts,
        window_seconds=settings.login_window,
        lockout_seconds=settings.login_lockout,
    )
    app.state.engine = None
    app.state.redis = redis_client
    app.state.owns_redis = redis_client is None

    if settings.store_backend == "pg":
        engine, SessionAsync, gated = make_async_engine(
            settings.database_url,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_timeout=settings.db_pool_timeout,
            command_timeout=settings.db_command_timeout,
            gate_limit=settings.db_gate_limit,
        )
        app.state.engine = engine
        app.state.SessionAsync = SessionAsync
        app.state.gated = gated
    elif settings.store_backend != "redis":
        raise RuntimeError(
            f"STORE_BACKEND must be 'pg' or 'redis', "
            f"got {settings.store_backend!r}"
        )

    allow_all = "*" in settings.cors_origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=not allow_all,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ---
    # errors
    # ---
    @app.exception_handler(PosError)
    async def _pos_error(request: Request, exc: PosError):
        return ORJSONResponse(exc.to_dict(), status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def _request_validation(request: Request,
                                  exc: RequestValidationError):
        violations = [
            f"'{'.'.join(str(p) for p in e.get('loc', ()))}': {e.get('msg')}"
            for e in exc.errors()
        ]
        return ORJSONResponse(ValidationError(violations).to_dict(),
                              status_code=400)

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception):
        # anything the stores did not translate still gets a stable kind
        logger.error("unhandled error on %s %s", request.method,
                     request.url.path, exc_info=exc)
        err = InfrastructureError("internal error, retry later")
        return ORJSONResponse(err.to_dict(), status_code=err.status_code)

    # ----------------------------
    # API: orders
    # ----------------------------
    @app.post("/api/orders")
    async def submit_order(request: Request,
                           stores: Stores = Depends(get_stores)):
        order = parse_order(await json_body(request))
        async with timeit("orders.submit"):
            result = await stores.orders.submit(order)
        logger.info("order %s recorded (%s, %s)", result["orderId"],
                    result["paymentType"], result["status"])
        return result

    @app.get("/api/orders")
    async def list_orders(stores: Stores = Depends(get_stores)):
        async with timeit("orders.list"):
            return await stores.orders.list_orders()

    # ----------------------------
    # API: catalog
    # ----------------------------
    @app.get("/api/items")
    async def list_items(stores: Stores = Depends(get_stores)):
        async with timeit("catalog.list"):
            return await stores.catalog.list()

    @app.post("/api/admin/items", dependencies=[Depends(require_admin)])
    async def create_item(request: Request,
                          stores: Stores = Depends(get_stores)):
        item = parse_catalog_item(await json_body(request))
        return await stores.catalog.create(item)

    @app.put("/api/admin/items/{item_id}",
             dependencies=[Depends(require_admin)])
    async def update_item(item_id: int, request: Request,
                          stores: Stores = Depends(get_stores)):
        item = parse_catalog_item(await json_body(request))
        return await stores.catalog.update(item_id, item)

    @app.delete("/api/admin/items/{item_id}",
                dependencies=[Depends(require_admin)])
    async def delete_item(item_id: int,
                          stores: Stores = Depends(get_stores)):
        return await stores.catalog.delete(item_id)

    # ----------------------------
    # API: admin session
    # ----------------------------
    @app.post("/api/admin/login")
    async def admin_login(request: Request,
                          stores: Stores = Depends(get_stores)):
        st = request.app.state
        who = client_id(request, settings.trust_proxy_headers)
        # locked clients never reach the password check; the slot is taken
        # before the first await so parallel guesses count too
        st.throttle.begin_attempt(who)
        try:
            payload = await json_body(request)
            password = payload.get("password") \
                if isinstance(payload, dict) else None

            async with timeit("admin.verify"):
                ok = await CredentialGuard(stores.credential).verify(password)
            if not ok:
                st.throttle.record_failure(who)
                logger.warning("admin login failed from %s (%d/%d)", who,
                               st.throttle.attempts(who),
                               st.throttle.max_attempts)
                raise AuthError("invalid credentials")
            st.throttle.record_success(who)
        finally:
            st.throttle.end_attempt(who)

        token = st.sessions.issue()
        logger.info("admin login from %s", who)
        response = ORJSONResponse({
            "ok": True,
            "token": token,
            "expiresIn": st.sessions.ttl,
        })
        response.set_cookie(
            ADMIN_COOKIE, token,
            max_age=st.sessions.ttl, httponly=True, samesite="strict",
        )
        return response

    @app.post("/api/admin/logout")
    async def admin_logout(request: Request):
        revoked = request.app.state.sessions.revoke(extract_token(request))
        if revoked:
            logger.info("admin logout")
        response = ORJSONResponse({"ok": True, "revoked": revoked})
        response.delete_cookie(ADMIN_COOKIE)
        return response

    @app.get("/api/admin/status")
    async def admin_status(request: Request,
                           stores: Stores = Depends(get_stores)):
        st = request.app.state
        return {
            "required": not settings.admin_auth_disabled,
            "configured": await CredentialGuard(
                stores.credential
            ).is_configured(),
            "authenticated": st.sessions.validate(extract_token(request)),
        }

    # ----------------------------
    # Health
    # ----------------------------
    @app.get("/api/health")
    async def health(request: Request):
        st = request.app.state
        ok = True
        try:
            if settings.store_backend == "pg":
                async with st.engine.connect() as conn:
                    await conn.execute(text("SELECT 1"))
            else:
                await st.redis.ping()
        except (SQLAlchemyError, RedisError, OSError):
            logger.error("health check: store unreachable", exc_info=True)
            ok = False
        return ORJSONResponse({
            "status": "ok" if ok else "degraded",
            "backend": settings.store_backend,
            "timings": timings.snapshot(),
        }, status_code=200 if ok else 503)

    # front end, if one is shipped next to the server
    if settings.static_dir and os.path.isdir(settings.static_dir):
        app.mount("/", StaticFiles(directory=settings.static_dir, html=True),
                  name="static")

    return app


app = create_app()
