from __future__ import annotations

import pytest

from stockmerge.domain.importing import IMPORT_ORDER, check_availability, scope_entity_types
from stockmerge.domain.model import EntityType
from tests.helpers.payloads import customer, product, snapshot


def test_all_scope_counts_every_collection() -> None:
    payload = snapshot(customers=[customer("Mya"), customer("Ade")], products=[product("Rice")])

    result = check_availability(payload)

    assert result.is_valid
    assert result.scope == "all"
    assert result.available_types == ["products", "customers"]
    assert result.detailed_counts["customers"] == 2
    assert result.detailed_counts["products"] == 1
    assert result.detailed_counts["sales"] == 0
    assert len(result.detailed_counts) == len(IMPORT_ORDER)


def test_empty_payload_is_unavailable() -> None:
    result = check_availability(snapshot(customers=[]))

    assert not result.is_valid
    assert result.available_types == []
    assert result.message == "Import file contains no importable data."


def test_scope_with_records_is_available() -> None:
    result = check_availability({"customers": [customer("Mya")]}, "customers")

    assert result.is_valid
    assert result.message == "Import file contains 1 customers record(s)."


def test_scope_without_records_names_available_collections() -> None:
    payload = {"customers": [customer("Mya")], "products": [product("Rice"), product("Oil")]}

    result = check_availability(payload, "sales")

    assert not result.is_valid
    assert result.available_types == ["products", "customers"]
    assert result.message.startswith("No transactions found in the import file.")
    assert "catalog items (2)" in result.message
    assert "customers (1)" in result.message


def test_unknown_scope_is_rejected() -> None:
    result = check_availability({"customers": [customer("Mya")]}, "widgets")

    assert not result.is_valid
    assert result.message.startswith("Unknown data type 'widgets'")


@pytest.mark.parametrize(
    ("scope", "expected"),
    [
        ("all", IMPORT_ORDER),
        ("products", (EntityType.PRODUCT,)),
        ("expenseCategories", (EntityType.EXPENSE_CATEGORY,)),
    ],
)
def test_scope_entity_types(scope: str, expected: tuple[EntityType, ...]) -> None:
    assert scope_entity_types(scope) == expected
