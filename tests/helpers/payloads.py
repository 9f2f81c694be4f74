"""Builders for snapshot payloads used across import tests."""

from __future__ import annotations


def category(name: str, **fields: object) -> dict[str, object]:
    return {"name": name, **fields}


def supplier(name: str, **fields: object) -> dict[str, object]:
    return {"name": name, **fields}


def product(
    name: str,
    *,
    price: float = 10.0,
    cost: float = 6.0,
    **fields: object,
) -> dict[str, object]:
    return {"name": name, "price": price, "cost": cost, **fields}


def customer(name: str, **fields: object) -> dict[str, object]:
    return {"name": name, **fields}


def sale_item(
    product_name: str | None = None,
    *,
    quantity: int = 1,
    price: float = 10.0,
    **fields: object,
) -> dict[str, object]:
    item: dict[str, object] = {"quantity": quantity, "price": price, **fields}
    if product_name is not None:
        item["product_name"] = product_name
    return item


def sale(
    total: float,
    *,
    payment_method: str = "cash",
    items: list[dict[str, object]] | None = None,
    **fields: object,
) -> dict[str, object]:
    return {"total": total, "payment_method": payment_method, "items": items or [], **fields}


def expense(description: str, amount: float, **fields: object) -> dict[str, object]:
    return {"description": description, "amount": amount, **fields}


def stock_movement(
    product_name: str,
    *,
    movement_type: str = "stock_in",
    quantity: int = 1,
    **fields: object,
) -> dict[str, object]:
    return {"product_name": product_name, "type": movement_type, "quantity": quantity, **fields}


def snapshot(**collections: object) -> dict[str, object]:
    """Export envelope carrying ``collections`` under ``data``."""

    return {"version": "1.0", "exportDate": "2024-05-01T09:00:00Z", "data": dict(collections)}
