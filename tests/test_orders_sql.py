import asyncio

import pytest
from sqlalchemy import text

from tourneypos.errors import InfrastructureError
from tourneypos.model.orders import SqlOrderLedger, _postgres
from tourneypos.validation import parse_order


def order_payload(payment_type="Cash", items=None, total=8):
    return {
        "totalAmount": total,
        "paymentType": payment_type,
        "items": items if items is not None else [
            {"name": "Pizza Slice", "qty": 2, "price": 3},
            {"name": "Water", "qty": 1, "price": 2},
        ],
    }


async def submit(sql, payload):
    _, SessionAsync, gated = sql
    async with SessionAsync() as session:
        ledger = SqlOrderLedger(db=session, gated=gated)
        return await ledger.submit(parse_order(payload))


async def list_all(sql):
    _, SessionAsync, gated = sql
    async with SessionAsync() as session:
        return await SqlOrderLedger(db=session, gated=gated).list_orders()


async def counter(sql):
    _, SessionAsync, gated = sql
    async with SessionAsync() as session:
        return await SqlOrderLedger(db=session, gated=gated).counter_value()


async def test_submit_assigns_next_padded_id(sql, set_sql_counter):
    await set_sql_counter(41)

    order = await submit(sql, order_payload())

    assert order["orderId"] == "0042"
    assert order["status"] == "paid"
    assert order["totalAmount"] == 8
    assert order["paymentType"] == "Cash"
    assert order["items"] == [
        {"name": "Pizza Slice", "qty": 2, "total": 6},
        {"name": "Water", "qty": 1, "total": 2},
    ]
    assert order["timestamp"].endswith("+00:00")
    assert await counter(sql) == 42


async def test_deferred_payment_is_pending(sql):
    order = await submit(sql, order_payload(payment_type="Venmo"))
    assert order["status"] == "pending"

    # exact match only
    order = await submit(sql, order_payload(payment_type="venmo"))
    assert order["status"] == "paid"


async def test_line_totals_are_computed_server_side(sql):
    order = await submit(sql, order_payload(items=[
        {"name": "Raffle 6 Pack", "qty": 3, "price": "2.50",
         "total": 999},
    ], total=7.5))
    assert order["items"][0]["total"] == 7.5

    stored = (await list_all(sql))[0]
    assert stored["items"][0]["total"] == 7.5
    assert stored["totalAmount"] == 7.5


async def test_id_grows_past_four_digits(sql, set_sql_counter):
    await set_sql_counter(9999)
    order = await submit(sql, order_payload())
    assert order["orderId"] == "10000"

    order = await submit(sql, order_payload())
    assert order["orderId"] == "10001"
    # newest first follows the counter, not string order
    assert [o["orderId"] for o in await list_all(sql)] == ["10001", "10000"]


async def test_list_orders_newest_first_with_items_in_order(sql):
    await submit(sql, order_payload())
    await submit(sql, order_payload(items=[
        {"name": "Coffee", "qty": 1, "price": 3},
        {"name": "Donuts", "qty": 2, "price": 2},
        {"name": "Chips", "qty": 1, "price": 2},
    ], total=9))

    orders = await list_all(sql)

    assert [o["orderId"] for o in orders] == ["0002", "0001"]
    assert [i["name"] for i in orders[0]["items"]] == [
        "Coffee", "Donuts", "Chips"
    ]
    assert [i["name"] for i in orders[1]["items"]] == ["Pizza Slice", "Water"]


async def test_order_without_items_lists_with_empty_items(sql):
    engine, _, _ = sql
    async with engine.begin() as conn:
        await conn.execute(text("""
            INSERT INTO orders (order_id, seq, total_cents, payment_type,
                                status, created_at)
            VALUES ('0007', 7, 0, 'Cash', 'paid', 0)
        """))

    orders = await list_all(sql)
    assert orders[0]["orderId"] == "0007"
    assert orders[0]["items"] == []


async def test_concurrent_submissions_get_gapless_unique_ids(
    sql, set_sql_counter
):
    await set_sql_counter(10)
    n = 20

    results = await asyncio.gather(
        *(submit(sql, order_payload()) for _ in range(n))
    )

    ids = sorted(int(o["orderId"]) for o in results)
    assert ids == list(range(11, 11 + n))
    assert await counter(sql) == 10 + n
    assert len(await list_all(sql)) == n


async def test_failure_mid_submission_rolls_everything_back(
    sql, set_sql_counter, monkeypatch
):
    await set_sql_counter(5)

    async def _boom(db, order_id, items):
        raise RuntimeError("disk full")

    monkeypatch.setattr(_postgres, "_insert_line_items", _boom)

    with pytest.raises(RuntimeError):
        await submit(sql, order_payload())

    assert await counter(sql) == 5
    assert await list_all(sql) == []

    # the failed attempt did not consume an id
    monkeypatch.undo()
    order = await submit(sql, order_payload())
    assert order["orderId"] == "0006"


async def test_missing_counter_row_is_infrastructure_error(sql):
    engine, _, _ = sql
    async with engine.begin() as conn:
        await conn.execute(text("DELETE FROM order_counter"))

    with pytest.raises(InfrastructureError):
        await submit(sql, order_payload())
    assert await list_all(sql) == []


async def test_store_failure_is_translated_and_rolled_back(
    sql, set_sql_counter
):
    engine, _, _ = sql
    await set_sql_counter(7)
    async with engine.begin() as conn:
        await conn.execute(text("DROP TABLE order_items"))

    with pytest.raises(InfrastructureError) as info:
        await submit(sql, order_payload())

    assert info.value.retryable is True
    assert info.value.__cause__ is not None
    assert await counter(sql) == 7
    async with engine.connect() as conn:
        n = (await conn.execute(text("SELECT COUNT(*) FROM orders"))).scalar()
    assert n == 0
