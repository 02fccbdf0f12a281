import pytest
from fakeredis import FakeAsyncRedis, FakeServer
from sqlalchemy import text

from tourneypos.infra.sql import make_async_engine
from tourneypos.model.orm import create_schema


class FakeClock:
    def __init__(self, start: float = 1_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
async def sql(tmp_path):
    engine, SessionAsync, gated = make_async_engine(
        f"sqlite:///{tmp_path}/pos.db", command_timeout=30.0
    )
    async with engine.begin() as conn:
        await create_schema(conn)
    yield engine, SessionAsync, gated
    await engine.dispose()


@pytest.fixture
async def r():
    client = FakeAsyncRedis(server=FakeServer(), decode_responses=True)
    yield client
    await client.aclose()


@pytest.fixture
def set_sql_counter(sql):
    engine, _, _ = sql

    async def _set(value: int) -> None:
        async with engine.begin() as conn:
            await conn.execute(
                text("UPDATE order_counter SET value=:v WHERE name='orders'"),
                {"v": value},
            )
    return _set
