"""Deterministic natural keys per entity type.

Two key sets exist per record:

- ``lookup_keys``: what an incoming record is matched by, in priority order
- ``index_keys``: what a stored record is reachable under (a superset of the
  lookup keys, e.g. customers are also indexed by name alone)

Keys are tuples whose first element names the scheme (``"product:name"``) so
keys of different schemes never collide. Incomplete keys are dropped; optional
fields are bundled into one nested tuple so a blank one keeps the key complete.

Sales, expenses and stock movements without a voucher or timestamp fall back to
a content key over their stored columns.
"""

from __future__ import annotations

import unicodedata
from collections.abc import Callable, Hashable, Mapping
from typing import Final

from stockmerge.domain.model import EntityType

type NaturalKey = tuple[Hashable, ...]
type KeyStrategy = Callable[[Mapping[str, object]], tuple[NaturalKey, ...]]

SINGLETON_KEY: Final[NaturalKey] = ("shop_settings:singleton",)


def lookup_keys(entity_type: EntityType, values: Mapping[str, object]) -> tuple[NaturalKey, ...]:
    return _filter_and_dedupe_keys(_LOOKUP_STRATEGIES[entity_type](values))


def index_keys(entity_type: EntityType, values: Mapping[str, object]) -> tuple[NaturalKey, ...]:
    strategy = _INDEX_STRATEGIES.get(entity_type, _LOOKUP_STRATEGIES[entity_type])
    return _filter_and_dedupe_keys(strategy(values))


def name_key(entity_type: EntityType, name: object) -> NaturalKey | None:
    """Key a reference by display name resolves through, or ``None`` for blank names."""

    normalized = normalize_text(name)
    if normalized is None:
        return None
    return (f"{entity_type.value}:name", normalized)


def normalize_text(value: object) -> str | None:
    if value is None:
        return None
    text = unicodedata.normalize("NFKC", str(value))
    text = text.casefold()
    text = "".join(ch for ch in text if not unicodedata.category(ch).startswith("P"))
    text = " ".join(text.split())
    return text or None


def normalize_amount(value: object) -> str | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return f"{float(str(value)):.2f}"
    except ValueError:
        return None


def normalize_token(value: object) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


# Strategies ---------------------------------------------------------------------------


def _named(entity_type: EntityType) -> KeyStrategy:
    def strategy(values: Mapping[str, object]) -> tuple[NaturalKey, ...]:
        key = name_key(entity_type, values.get("name"))
        return (key,) if key is not None else ()

    return strategy


def _product_keys(values: Mapping[str, object]) -> tuple[NaturalKey, ...]:
    return (
        ("product:name", normalize_text(values.get("name"))),
        ("product:barcode", normalize_token(values.get("barcode"))),
    )


def _customer_lookup_keys(values: Mapping[str, object]) -> tuple[NaturalKey, ...]:
    name = normalize_text(values.get("name"))
    phone = _normalize_phone(values.get("phone"))
    if phone is not None:
        return (("customer:name-phone", name, phone),)
    return (("customer:name", name),)


def _customer_index_keys(values: Mapping[str, object]) -> tuple[NaturalKey, ...]:
    name = normalize_text(values.get("name"))
    phone = _normalize_phone(values.get("phone"))
    return (
        ("customer:name-phone", name, phone),
        ("customer:name", name),
    )


def _sale_keys(values: Mapping[str, object]) -> tuple[NaturalKey, ...]:
    voucher = normalize_token(values.get("voucher_id"))
    if voucher is not None:
        return (("sale:voucher", voucher),)
    total = normalize_amount(values.get("total"))
    method = normalize_text(values.get("payment_method"))
    created_at = normalize_token(values.get("created_at"))
    if created_at is not None:
        return (("sale:time-total-method", created_at, total, method),)
    return (
        (
            "sale:content",
            total,
            method,
            (values.get("customer_id"), _items_key(values.get("items"))),
        ),
    )


def _expense_keys(values: Mapping[str, object]) -> tuple[NaturalKey, ...]:
    amount = normalize_amount(values.get("amount"))
    description = normalize_text(values.get("description"))
    date = normalize_token(values.get("date"))
    if date is not None:
        return (("expense:date-amount-description", date, amount, description),)
    return (("expense:content", amount, description, (values.get("category_id"),)),)


def _bulk_pricing_keys(values: Mapping[str, object]) -> tuple[NaturalKey, ...]:
    return (
        (
            "bulk_pricing:product-min-quantity",
            values.get("product_id"),
            _normalize_count(values.get("min_quantity")),
        ),
    )


def _stock_movement_keys(values: Mapping[str, object]) -> tuple[NaturalKey, ...]:
    product_id = values.get("product_id")
    movement_type = normalize_text(values.get("type"))
    quantity = _normalize_count(values.get("quantity"))
    created_at = normalize_token(values.get("created_at"))
    if created_at is not None:
        return (
            (
                "stock_movement:product-type-quantity-time",
                product_id,
                movement_type,
                quantity,
                created_at,
            ),
        )
    return (
        (
            "stock_movement:content",
            product_id,
            movement_type,
            quantity,
            (
                normalize_text(values.get("reason")),
                normalize_token(values.get("reference_number")),
                values.get("supplier_id"),
                normalize_amount(values.get("unit_cost")),
            ),
        ),
    )


def _shop_settings_keys(_values: Mapping[str, object]) -> tuple[NaturalKey, ...]:
    return (SINGLETON_KEY,)


_LOOKUP_STRATEGIES: Final[dict[EntityType, KeyStrategy]] = {
    EntityType.CATEGORY: _named(EntityType.CATEGORY),
    EntityType.SUPPLIER: _named(EntityType.SUPPLIER),
    EntityType.PRODUCT: _product_keys,
    EntityType.CUSTOMER: _customer_lookup_keys,
    EntityType.EXPENSE_CATEGORY: _named(EntityType.EXPENSE_CATEGORY),
    EntityType.SALE: _sale_keys,
    EntityType.EXPENSE: _expense_keys,
    EntityType.BULK_PRICING: _bulk_pricing_keys,
    EntityType.STOCK_MOVEMENT: _stock_movement_keys,
    EntityType.SHOP_SETTINGS: _shop_settings_keys,
}

_INDEX_STRATEGIES: Final[dict[EntityType, KeyStrategy]] = {
    EntityType.CUSTOMER: _customer_index_keys,
}


# Helpers --------------------------------------------------------------------------------


def _normalize_phone(value: object) -> str | None:
    if value is None:
        return None
    digits = "".join(ch for ch in str(value) if ch.isalnum())
    return digits or None


def _normalize_count(value: object) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(str(value))
    except ValueError:
        return None
    if not number.is_integer():
        return None
    return int(number)


def _items_key(items: object) -> tuple[Hashable, ...]:
    if not isinstance(items, list):
        return ()
    return tuple(
        (
            item.get("product_id"),
            _normalize_count(item.get("quantity")),
            normalize_amount(item.get("price")),
            normalize_amount(item.get("discount")),
        )
        for item in items
        if isinstance(item, Mapping)
    )


def _filter_and_dedupe_keys(keys: tuple[NaturalKey, ...]) -> tuple[NaturalKey, ...]:
    """Drop incomplete keys and dedupe while preserving first-seen order."""

    seen: set[NaturalKey] = set()
    filtered: list[NaturalKey] = []
    for key in keys:
        if any(value is None or value == "" for value in key) or key in seen:
            continue
        seen.add(key)
        filtered.append(key)
    return tuple(filtered)
