"""
One-shot store bootstrap: create schema, seed the default catalog and the
admin credential from the environment (see tourneypos/config.py).

    STORE_BACKEND=pg DATABASE_URL=postgresql://... \
        ADMIN_PASSWORD=... ADMIN_SALT=... python init_store.py

Print a salt/hash pair without touching any store:

    python init_store.py --hash-password 'hunter2' [--salt 'pepper']
"""
import argparse
import asyncio

from tourneypos.auth.credentials import make_credential
from tourneypos.bootstrap import bootstrap, redis_from_settings
from tourneypos.config import Settings, configure_logging
from tourneypos.infra.sql import make_async_engine


async def _run(settings: Settings) -> None:
    if settings.store_backend == "pg":
        engine, SessionAsync, gated = make_async_engine(
            settings.database_url,
            pool_size=settings.db_pool_size,
            command_timeout=settings.db_command_timeout,
        )
        try:
            await bootstrap(settings, engine=engine,
                            SessionAsync=SessionAsync, gated=gated)
        finally:
            await engine.dispose()
    else:
        r = redis_from_settings(settings)
        try:
            await bootstrap(settings, r=r)
        finally:
            await r.aclose()
    print(f'✅ store ready ({settings.store_backend})')


def main() -> None:
    ap = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    ap.add_argument("--hash-password", metavar="PASSWORD",
                    help="print a salt/hash pair and exit")
    ap.add_argument("--salt", help="salt for --hash-password "
                                   "(random if omitted)")
    args = ap.parse_args()

    if args.hash_password:
        cred = make_credential(args.hash_password, args.salt)
        print(f"salt={cred.salt}")
        print(f"hash={cred.hash}")
        return

    settings = Settings.from_env()
    configure_logging(settings.log_level)
    asyncio.run(_run(settings))


if __name__ == '__main__':
    main()
