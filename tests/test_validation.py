import pytest

from tourneypos.errors import ValidationError
from tourneypos.helpers import from_cents, to_cents
from tourneypos.validation import (
    parse_catalog_item, parse_order, validate_catalog_item,
)


@pytest.mark.parametrize("value,cents", [
    (3, 300),
    (2.5, 250),
    ("2.50", 250),
    (" 1.005 ", 101),
    (0.1 + 0.2, 30),
    (0, 0),
])
def test_to_cents(value, cents):
    assert to_cents(value) == cents


@pytest.mark.parametrize("value", [
    None, True, "", "abc", float("nan"), float("inf"), [], {},
])
def test_to_cents_rejects(value):
    with pytest.raises(ValueError):
        to_cents(value)


def test_from_cents():
    assert from_cents(850) == 8.5
    assert from_cents(None) == 0.0


def test_parse_order():
    order = parse_order({
        "totalAmount": "8",
        "paymentType": " Cash ",
        "items": [
            {"name": "Pizza Slice", "qty": 2, "price": 3},
            {"name": "Water", "qty": 1.0, "price": "2"},
        ],
    })

    assert order.total_cents == 800
    assert order.payment_type == "Cash"
    assert [(i.name, i.qty, i.line_total_cents) for i in order.items] == [
        ("Pizza Slice", 2, 600), ("Water", 1, 200),
    ]


def test_parse_order_reports_every_violation():
    with pytest.raises(ValidationError) as exc:
        parse_order({
            "totalAmount": -1,
            "items": [
                {"name": "", "qty": 0, "price": -2},
                "not an item",
                {"name": "Chips", "qty": 1.5, "price": 2},
            ],
        })

    v = exc.value.violations
    assert "'totalAmount' must be a non-negative number" in v
    assert "'paymentType' is required" in v
    assert "'items[0].name' is required" in v
    assert "'items[0].qty' must be a positive integer" in v
    assert "'items[0].price' must be a non-negative number" in v
    assert "'items[1]' must be an object" in v
    assert "'items[2].qty' must be a positive integer" in v
    assert len(v) == 7


@pytest.mark.parametrize("payload", [None, [], "order", 42])
def test_parse_order_requires_object(payload):
    with pytest.raises(ValidationError):
        parse_order(payload)


def test_parse_order_requires_items():
    with pytest.raises(ValidationError) as exc:
        parse_order({"totalAmount": 0, "paymentType": "Cash", "items": []})
    assert exc.value.violations == ["'items' must be a non-empty list"]


def test_catalog_validation_names_all_problems_at_once():
    errs = validate_catalog_item({"tab": "other", "name": "", "price": -1})

    assert errs == [
        "'tab' is required and must be 'raffles' or 'concessions'",
        "'category' is required",
        "'name' is required",
        "'dataName' is required",
        "'price' must be a non-negative number",
    ]


def test_catalog_validation_missing_tab():
    errs = validate_catalog_item({
        "category": "Snacks", "name": "Chips", "dataName": "chips",
        "price": 2,
    })
    assert errs == [
        "'tab' is required and must be 'raffles' or 'concessions'"
    ]


def test_catalog_validation_whitespace_only_fields():
    errs = validate_catalog_item({
        "tab": "raffles", "category": "  ", "name": "\t", "dataName": " ",
        "price": "0", "orderIndex": "first",
    })
    assert errs == [
        "'category' is required",
        "'name' is required",
        "'dataName' is required",
        "'orderIndex' must be an integer",
    ]


def test_catalog_validation_missing_payload():
    assert validate_catalog_item(None) == ["Missing item payload"]


def test_parse_catalog_item_defaults_and_trims():
    item = parse_catalog_item({
        "tab": "raffles", "category": " Raffles ", "name": " Single ",
        "dataName": "single_ticket", "price": "1",
    })
    assert item.category == "Raffles"
    assert item.name == "Single"
    assert item.price_cents == 100
    assert item.color == "gray-600"
    assert item.order_index == 0


def test_parse_catalog_item_raises_with_violations():
    with pytest.raises(ValidationError) as exc:
        parse_catalog_item({"tab": "other"})
    assert len(exc.value.violations) == 5
    assert exc.value.to_dict()["error"] == "validation"
