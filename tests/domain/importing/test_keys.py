from __future__ import annotations

import pytest

from stockmerge.domain.importing.keys import (
    SINGLETON_KEY,
    index_keys,
    lookup_keys,
    name_key,
    normalize_amount,
    normalize_text,
)
from stockmerge.domain.model import EntityType


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("  Mya  ", "mya"),
        ("R.E.M.!", "rem"),
        ("Corner   Shop", "corner shop"),
        ("ＡＢＣ", "abc"),
        ("   ", None),
        (None, None),
    ],
)
def test_normalize_text(raw: object, expected: str | None) -> None:
    assert normalize_text(raw) == expected


@pytest.mark.parametrize(
    ("raw", "expected"),
    [(12, "12.00"), ("12.5", "12.50"), (0.1 + 0.2, "0.30"), ("abc", None), (True, None)],
)
def test_normalize_amount(raw: object, expected: str | None) -> None:
    assert normalize_amount(raw) == expected


def test_keys_are_deterministic_and_case_insensitive() -> None:
    first = lookup_keys(EntityType.CATEGORY, {"name": "Dry Goods"})
    second = lookup_keys(EntityType.CATEGORY, {"name": "  dry goods "})

    assert first == second == (("category:name", "dry goods"),)


def test_product_keys_include_barcode_when_present() -> None:
    assert lookup_keys(EntityType.PRODUCT, {"name": "Rice", "barcode": " 400123 "}) == (
        ("product:name", "rice"),
        ("product:barcode", "400123"),
    )
    assert lookup_keys(EntityType.PRODUCT, {"name": "Rice", "barcode": None}) == (
        ("product:name", "rice"),
    )


def test_customer_lookup_prefers_name_and_phone() -> None:
    with_phone = {"name": "Mya", "phone": "+1 (555) 010-2000"}

    assert lookup_keys(EntityType.CUSTOMER, with_phone) == (
        ("customer:name-phone", "mya", "15550102000"),
    )
    assert lookup_keys(EntityType.CUSTOMER, {"name": "Mya", "phone": ""}) == (
        ("customer:name", "mya"),
    )


def test_stored_customers_are_also_indexed_by_name() -> None:
    keys = index_keys(EntityType.CUSTOMER, {"name": "Mya", "phone": "555"})

    assert keys == (("customer:name-phone", "mya", "555"), ("customer:name", "mya"))


def test_sale_uses_voucher_before_composite_key() -> None:
    with_voucher = {"voucher_id": "V-1", "total": 10, "payment_method": "cash"}
    without_voucher = {"created_at": "2024-05-01T10:00:00", "total": 10, "payment_method": "Cash"}

    assert lookup_keys(EntityType.SALE, with_voucher) == (("sale:voucher", "V-1"),)
    assert lookup_keys(EntityType.SALE, without_voucher) == (
        ("sale:time-total-method", "2024-05-01T10:00:00", "10.00", "cash"),
    )


def test_incomplete_keys_are_dropped() -> None:
    assert lookup_keys(EntityType.STOCK_MOVEMENT, {"type": "stock_in", "quantity": 2}) == ()
    assert lookup_keys(EntityType.BULK_PRICING, {"min_quantity": 5}) == ()


def test_untimed_sale_falls_back_to_content_key() -> None:
    values = {
        "total": 13,
        "payment_method": "Cash",
        "customer_id": None,
        "items": [{"product_id": "p-1", "quantity": 1, "price": 10, "discount": 0}],
    }

    assert lookup_keys(EntityType.SALE, values) == (
        ("sale:content", "13.00", "cash", (None, (("p-1", 1, "10.00", "0.00"),))),
    )


def test_untimed_expense_falls_back_to_content_key() -> None:
    assert lookup_keys(EntityType.EXPENSE, {"amount": 5, "description": "Rent"}) == (
        ("expense:content", "5.00", "rent", (None,)),
    )


@pytest.mark.parametrize(
    ("incoming", "stored"),
    [
        (
            {"product_id": "p-1", "type": "stock_in", "quantity": 5, "reason": ""},
            {"product_id": "p-1", "type": "stock_in", "quantity": 5.0, "reason": None},
        ),
        (
            {"product_id": "p-1", "type": "stock_out", "quantity": 2, "unit_cost": 1.5},
            {"product_id": "p-1", "type": "stock_out", "quantity": 2, "unit_cost": "1.50"},
        ),
    ],
)
def test_untimed_movement_matches_its_stored_copy(
    incoming: dict[str, object], stored: dict[str, object]
) -> None:
    (key,) = lookup_keys(EntityType.STOCK_MOVEMENT, incoming)

    assert key[0] == "stock_movement:content"
    assert key in index_keys(EntityType.STOCK_MOVEMENT, stored)


def test_untimed_movements_differing_in_content_get_distinct_keys() -> None:
    base = {"product_id": "p-1", "type": "stock_in", "quantity": 5}

    assert lookup_keys(EntityType.STOCK_MOVEMENT, base) != lookup_keys(
        EntityType.STOCK_MOVEMENT, {**base, "reference_number": "PO-7"}
    )


def test_shop_settings_share_one_key() -> None:
    assert lookup_keys(EntityType.SHOP_SETTINGS, {"shop_name": "A"}) == (SINGLETON_KEY,)
    assert lookup_keys(EntityType.SHOP_SETTINGS, {"shop_name": "B"}) == (SINGLETON_KEY,)


def test_name_key_ignores_blank_names() -> None:
    assert name_key(EntityType.SUPPLIER, "Acme Ltd.") == ("supplier:name", "acme ltd")
    assert name_key(EntityType.SUPPLIER, " ") is None
