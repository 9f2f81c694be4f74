"""Static per-entity metadata used by every import stage.

Each profile answers the questions the stages ask about an entity type: where
its records live in the payload, which fields the schema gate requires, which
model validates it, which other entities it points at, and which fields the
store keeps.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Final

from stockmerge.domain.model import EntityType

from .records import (
    BulkPricingRecord,
    CategoryRecord,
    CustomerRecord,
    ExpenseCategoryRecord,
    ExpenseRecord,
    ImportRecordModel,
    ProductRecord,
    SaleRecord,
    ShopSettingsRecord,
    StockMovementRecord,
    SupplierRecord,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

# One entry per required field; a tuple lists accepted alternatives.
type RequiredFields = tuple[tuple[str, ...], ...]


@dataclass(frozen=True, slots=True, kw_only=True)
class ReferenceSpec:
    """A foreign reference held by a record, given by id and/or display name.

    ``within`` names a list field whose elements carry the reference (sale items).
    """

    target: EntityType
    id_field: str
    name_field: str | None = None
    required: bool = False
    within: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class EntityProfile:
    entity_type: EntityType
    collection: str
    label: str
    model: type[ImportRecordModel]
    required: RequiredFields
    columns: tuple[str, ...]
    references: tuple[ReferenceSpec, ...] = ()
    nested_required: Mapping[str, RequiredFields] = field(default_factory=dict)
    display_field: str | None = "name"
    stand_in_defaults: Mapping[str, object] | None = None

    def display_name(self, values: Mapping[str, object]) -> str | None:
        if self.display_field is None:
            return None
        value = values.get(self.display_field)
        if value is None:
            return None
        return str(value)


_PRODUCT_REFERENCE = ReferenceSpec(
    target=EntityType.PRODUCT,
    id_field="product_id",
    name_field="product_name",
    required=True,
)

PROFILES: Final[dict[EntityType, EntityProfile]] = {
    EntityType.CATEGORY: EntityProfile(
        entity_type=EntityType.CATEGORY,
        collection="categories",
        label="categories",
        model=CategoryRecord,
        required=(("name",),),
        columns=("name", "description"),
        stand_in_defaults={"description": ""},
    ),
    EntityType.SUPPLIER: EntityProfile(
        entity_type=EntityType.SUPPLIER,
        collection="suppliers",
        label="suppliers",
        model=SupplierRecord,
        required=(("name",),),
        columns=("name", "contact_name", "phone", "email", "address"),
        stand_in_defaults={"contact_name": "", "phone": "", "email": "", "address": ""},
    ),
    EntityType.PRODUCT: EntityProfile(
        entity_type=EntityType.PRODUCT,
        collection="products",
        label="catalog items",
        model=ProductRecord,
        required=(("name",), ("price",), ("cost",)),
        columns=(
            "name",
            "barcode",
            "category_id",
            "supplier_id",
            "price",
            "cost",
            "quantity",
            "min_stock",
        ),
        references=(
            ReferenceSpec(
                target=EntityType.CATEGORY, id_field="category_id", name_field="category"
            ),
            ReferenceSpec(
                target=EntityType.SUPPLIER, id_field="supplier_id", name_field="supplier"
            ),
        ),
        stand_in_defaults={
            "barcode": None,
            "category_id": None,
            "supplier_id": None,
            "price": 0.0,
            "cost": 0.0,
            "quantity": 0,
            "min_stock": 0,
        },
    ),
    EntityType.CUSTOMER: EntityProfile(
        entity_type=EntityType.CUSTOMER,
        collection="customers",
        label="customers",
        model=CustomerRecord,
        required=(("name",),),
        columns=("name", "phone", "email", "address"),
        stand_in_defaults={"phone": "", "email": "", "address": ""},
    ),
    EntityType.EXPENSE_CATEGORY: EntityProfile(
        entity_type=EntityType.EXPENSE_CATEGORY,
        collection="expenseCategories",
        label="expense categories",
        model=ExpenseCategoryRecord,
        required=(("name",),),
        columns=("name", "description"),
        stand_in_defaults={"description": ""},
    ),
    EntityType.SALE: EntityProfile(
        entity_type=EntityType.SALE,
        collection="sales",
        label="transactions",
        model=SaleRecord,
        required=(("total",), ("payment_method",)),
        columns=(
            "total",
            "payment_method",
            "note",
            "customer_id",
            "voucher_id",
            "created_at",
            "items",
        ),
        references=(
            ReferenceSpec(
                target=EntityType.CUSTOMER, id_field="customer_id", name_field="customer_name"
            ),
            ReferenceSpec(
                target=EntityType.PRODUCT,
                id_field="product_id",
                name_field="product_name",
                required=True,
                within="items",
            ),
        ),
        nested_required={"items": (("product_id", "product_name"), ("quantity",), ("price",))},
        display_field="voucher_id",
    ),
    EntityType.EXPENSE: EntityProfile(
        entity_type=EntityType.EXPENSE,
        collection="expenses",
        label="expenses",
        model=ExpenseRecord,
        required=(("amount",), ("description",)),
        columns=("category_id", "amount", "description", "date"),
        references=(
            ReferenceSpec(
                target=EntityType.EXPENSE_CATEGORY, id_field="category_id", name_field="category"
            ),
        ),
        display_field="description",
    ),
    EntityType.BULK_PRICING: EntityProfile(
        entity_type=EntityType.BULK_PRICING,
        collection="bulkPricing",
        label="priced-tier rules",
        model=BulkPricingRecord,
        required=(("product_id", "product_name"), ("min_quantity",), ("bulk_price",)),
        columns=("product_id", "min_quantity", "bulk_price"),
        references=(_PRODUCT_REFERENCE,),
        display_field="product_name",
    ),
    EntityType.STOCK_MOVEMENT: EntityProfile(
        entity_type=EntityType.STOCK_MOVEMENT,
        collection="stockMovements",
        label="inventory movements",
        model=StockMovementRecord,
        required=(("product_id", "product_name"), ("type", "movement_type"), ("quantity",)),
        columns=(
            "product_id",
            "type",
            "quantity",
            "reason",
            "supplier_id",
            "reference_number",
            "unit_cost",
            "created_at",
        ),
        references=(
            _PRODUCT_REFERENCE,
            ReferenceSpec(
                target=EntityType.SUPPLIER, id_field="supplier_id", name_field="supplier"
            ),
        ),
        display_field="product_name",
    ),
    EntityType.SHOP_SETTINGS: EntityProfile(
        entity_type=EntityType.SHOP_SETTINGS,
        collection="shopSettings",
        label="shop configuration",
        model=ShopSettingsRecord,
        required=(("shop_name",),),
        columns=("shop_name", "address", "phone", "email", "logo_path", "receipt_footer"),
        display_field="shop_name",
    ),
}

# Reference targets come before the records pointing at them.
IMPORT_ORDER: Final[tuple[EntityType, ...]] = (
    EntityType.CATEGORY,
    EntityType.SUPPLIER,
    EntityType.PRODUCT,
    EntityType.CUSTOMER,
    EntityType.EXPENSE_CATEGORY,
    EntityType.SALE,
    EntityType.EXPENSE,
    EntityType.BULK_PRICING,
    EntityType.STOCK_MOVEMENT,
    EntityType.SHOP_SETTINGS,
)

PROFILE_BY_COLLECTION: Final[dict[str, EntityProfile]] = {
    profile.collection: profile for profile in PROFILES.values()
}

LEGACY_SALE_ITEMS_COLLECTION: Final[str] = "saleItems"


def profile_for(entity_type: EntityType) -> EntityProfile:
    return PROFILES[entity_type]


def reference_targets(entity_types: tuple[EntityType, ...]) -> tuple[EntityType, ...]:
    """Return ``entity_types`` plus every type they reference, in import order."""

    wanted = set(entity_types)
    for entity_type in entity_types:
        wanted.update(spec.target for spec in PROFILES[entity_type].references)
    return tuple(entity_type for entity_type in IMPORT_ORDER if entity_type in wanted)
