from __future__ import annotations

import pytest

from stockmerge.domain.importing import IdentityIndex
from stockmerge.domain.model import EntityType, IdFormat
from tests.helpers.store import FakeStore


def test_build_lists_each_type_once() -> None:
    store = FakeStore()
    store.seed(EntityType.CUSTOMER, {"id": "c-1", "name": "Mya", "phone": ""})
    store.seed(EntityType.PRODUCT, {"id": "p-1", "name": "Rice", "barcode": None})

    with store.unit_of_work() as uow:
        index = IdentityIndex.build(
            uow.repositories, (EntityType.PRODUCT, EntityType.CUSTOMER)
        )

    assert store.list_calls == [EntityType.PRODUCT, EntityType.CUSTOMER]
    assert len(index) == 2
    assert index.by_strong_id(EntityType.CUSTOMER, "c-1") == {
        "id": "c-1",
        "name": "Mya",
        "phone": "",
    }


def test_natural_key_lookup_uses_normalized_values() -> None:
    index = IdentityIndex()
    index.register(EntityType.CATEGORY, {"id": "cat-1", "name": "Dry Goods"})

    found = index.by_natural_key(EntityType.CATEGORY, ("category:name", "dry goods"))

    assert found is not None
    assert found["id"] == "cat-1"


def test_first_record_under_a_key_wins() -> None:
    index = IdentityIndex()
    index.register(EntityType.CATEGORY, {"id": "cat-1", "name": "Dry Goods"})
    index.register(EntityType.CATEGORY, {"id": "cat-2", "name": "dry goods"})

    assert index.resolve_reference(EntityType.CATEGORY, None, "DRY GOODS") == "cat-1"


def test_register_refreshes_keys_of_an_updated_record() -> None:
    index = IdentityIndex()
    index.register(EntityType.CATEGORY, {"id": "cat-1", "name": "Dry Goods"})
    index.register(EntityType.CATEGORY, {"id": "cat-1", "name": "Pantry"})

    assert index.by_natural_key(EntityType.CATEGORY, ("category:name", "dry goods")) is None
    assert index.resolve_reference(EntityType.CATEGORY, None, "pantry") == "cat-1"
    assert len(index) == 1


def test_register_requires_an_id() -> None:
    index = IdentityIndex()

    with pytest.raises(ValueError, match="has no id"):
        index.register(EntityType.CATEGORY, {"name": "Dry Goods"})


def test_strong_id_lookup_respects_id_format() -> None:
    index = IdentityIndex(id_format=IdFormat.UUID4)
    index.register(EntityType.CUSTOMER, {"id": "c-1", "name": "Mya"})

    assert index.by_strong_id(EntityType.CUSTOMER, "c-1") is None


def test_aliases_resolve_file_identifiers() -> None:
    index = IdentityIndex()
    index.register(EntityType.PRODUCT, {"id": "p-1", "name": "Rice"})
    index.alias(EntityType.PRODUCT, "legacy-7", "p-1")

    assert index.resolve_id(EntityType.PRODUCT, "legacy-7") == "p-1"
    assert index.resolve_id(EntityType.PRODUCT, "p-1") == "p-1"
    assert index.resolve_id(EntityType.PRODUCT, "p-2") is None


def test_reference_resolution_falls_back_to_name() -> None:
    index = IdentityIndex()
    index.register(EntityType.SUPPLIER, {"id": "s-1", "name": "Acme"})

    assert index.resolve_reference(EntityType.SUPPLIER, "unknown", "acme") == "s-1"
    assert index.resolve_reference(EntityType.SUPPLIER, "unknown", None) is None
    assert index.resolve_reference(EntityType.SUPPLIER, None, "Globex") is None
