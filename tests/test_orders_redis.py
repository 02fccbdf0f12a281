import asyncio

import pytest
from fakeredis import FakeAsyncRedis, FakeServer
from redis.exceptions import RedisError

from tourneypos.errors import InfrastructureError
from tourneypos.model.orders import RedisOrderLedger, _redis
from tourneypos.model.orders._redis import K_COUNTER
from tourneypos.validation import parse_order

PIZZA_AND_WATER = [
    {"name": "Pizza Slice", "qty": 2, "price": 3},
    {"name": "Water", "qty": 1, "price": 2},
]


def payload(payment_type="Cash", items=PIZZA_AND_WATER, total=8):
    return parse_order({
        "totalAmount": total, "paymentType": payment_type, "items": items,
    })


async def test_submit_assigns_next_padded_id(r):
    await r.set(K_COUNTER, 41)
    ledger = RedisOrderLedger(r)

    order = await ledger.submit(payload())

    assert order["orderId"] == "0042"
    assert order["status"] == "paid"
    assert order["totalAmount"] == 8
    assert [i["total"] for i in order["items"]] == [6, 2]
    assert await ledger.counter_value() == 42


async def test_deferred_payment_is_pending(r):
    order = await RedisOrderLedger(r).submit(payload(payment_type="Venmo"))
    assert order["status"] == "pending"
    assert order["orderId"] == "0001"


async def test_custom_deferred_label(r):
    ledger = RedisOrderLedger(r, deferred_payment_type="IOU")
    assert (await ledger.submit(payload(payment_type="IOU")))["status"] \
        == "pending"
    assert (await ledger.submit(payload(payment_type="Venmo")))["status"] \
        == "paid"


async def test_list_orders_roundtrip(r):
    ledger = RedisOrderLedger(r)
    await ledger.submit(payload())
    await ledger.submit(payload(payment_type="Venmo", items=[
        {"name": "Gatorade", "qty": 3, "price": 3},
    ], total=9))

    orders = await ledger.list_orders()

    assert [o["orderId"] for o in orders] == ["0002", "0001"]
    assert orders[0]["status"] == "pending"
    assert orders[0]["items"] == [{"name": "Gatorade", "qty": 3, "total": 9}]
    assert [i["name"] for i in orders[1]["items"]] == ["Pizza Slice", "Water"]
    assert orders[1]["totalAmount"] == 8


async def test_concurrent_submissions_get_gapless_unique_ids(r):
    await r.set(K_COUNTER, 100)
    n = 25

    results = await asyncio.gather(
        *(RedisOrderLedger(r).submit(payload()) for _ in range(n))
    )

    ids = sorted(int(o["orderId"]) for o in results)
    assert ids == list(range(101, 101 + n))
    assert int(await r.get(K_COUNTER)) == 100 + n
    assert len(await RedisOrderLedger(r).list_orders()) == n


async def test_failure_before_exec_writes_nothing(r, monkeypatch):
    await r.set(K_COUNTER, 5)

    def _boom(items):
        raise RuntimeError("encoder exploded")

    monkeypatch.setattr(_redis, "_encode_items", _boom)
    ledger = RedisOrderLedger(r)

    with pytest.raises(RuntimeError):
        await ledger.submit(payload())

    assert await ledger.counter_value() == 5
    assert await ledger.list_orders() == []

    monkeypatch.undo()
    assert (await ledger.submit(payload()))["orderId"] == "0006"


async def test_unreachable_redis_is_infrastructure_error():
    server = FakeServer()
    r = FakeAsyncRedis(server=server, decode_responses=True)
    await r.set(K_COUNTER, 3)
    ledger = RedisOrderLedger(r)

    server.connected = False
    with pytest.raises(InfrastructureError) as info:
        await ledger.submit(payload())
    assert isinstance(info.value.__cause__, RedisError)
    with pytest.raises(InfrastructureError):
        await ledger.list_orders()

    server.connected = True
    assert await ledger.counter_value() == 3
    assert (await ledger.submit(payload()))["orderId"] == "0004"
    await r.aclose()
