"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class EntityType(StrEnum):
    """Record kinds held by the shop store."""

    CATEGORY = "category"
    SUPPLIER = "supplier"
    PRODUCT = "product"
    CUSTOMER = "customer"
    EXPENSE_CATEGORY = "expense_category"
    SALE = "sale"
    EXPENSE = "expense"
    BULK_PRICING = "bulk_pricing"
    STOCK_MOVEMENT = "stock_movement"
    SHOP_SETTINGS = "shop_settings"


class ConflictKind(StrEnum):
    DUPLICATE = "duplicate"
    REFERENCE_MISSING = "reference_missing"
    VALIDATION_FAILED = "validation_failed"


class MatchedBy(StrEnum):
    """Identity scheme that matched an incoming record to a stored one."""

    STRONG_ID = "strong_id"
    NATURAL_KEY = "natural_key"
    NONE = "none"


class ResolutionAction(StrEnum):
    APPLY_INCOMING = "apply_incoming"
    KEEP_EXISTING = "keep_existing"
    SKIP = "skip"


class IdFormat(StrEnum):
    """Accepted shapes for a strong identifier."""

    OPAQUE = "opaque"
    UUID = "uuid"
    UUID4 = "uuid4"


class MovementType(StrEnum):
    STOCK_IN = "stock_in"
    STOCK_OUT = "stock_out"
