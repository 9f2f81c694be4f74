"""Pydantic models describing one incoming record per entity type.

These models carry the entity rules that go beyond the schema gate's minimum
(types, signs, enumerations). A record the model rejects is classified as
``validation_failed``; it is never offered to the operator as a choice.
"""

from __future__ import annotations

from typing import Annotated

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, StringConstraints, field_validator

from stockmerge.domain.model import MovementType

NonBlank = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
Money = Annotated[float, Field(ge=0, allow_inf_nan=False)]


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


def _none_to_blank(value: object) -> object:
    return "" if value is None else value


class ImportRecordModel(BaseModel):
    """Base model: unknown keys are dropped, numbers are accepted where text is expected."""

    model_config = ConfigDict(
        extra="ignore",
        populate_by_name=True,
        coerce_numbers_to_str=True,
        str_strip_whitespace=True,
    )

    id: str | None = None

    _normalize_id = field_validator("id", mode="before")(_blank_to_none)

    def to_values(self) -> dict[str, object]:
        """Return the record's field values keyed by store column name."""

        return self.model_dump(mode="json", by_alias=True, exclude={"id"})


class CategoryRecord(ImportRecordModel):
    name: NonBlank
    description: str = ""

    _normalize_blank = field_validator("description", mode="before")(_none_to_blank)


class SupplierRecord(ImportRecordModel):
    name: NonBlank
    contact_name: str = ""
    phone: str = ""
    email: str = ""
    address: str = ""

    _normalize_blank = field_validator(
        "contact_name", "phone", "email", "address", mode="before"
    )(_none_to_blank)


class ProductRecord(ImportRecordModel):
    name: NonBlank
    barcode: str | None = None
    price: Money
    cost: Money
    quantity: int = Field(default=0, ge=0)
    min_stock: int = Field(default=10, ge=0)
    category_id: str | None = None
    category: str | None = None
    supplier_id: str | None = None
    supplier: str | None = None

    _normalize_optional = field_validator(
        "barcode", "category_id", "category", "supplier_id", "supplier", mode="before"
    )(_blank_to_none)


class CustomerRecord(ImportRecordModel):
    name: NonBlank
    phone: str = ""
    email: str = ""
    address: str = ""

    _normalize_blank = field_validator("phone", "email", "address", mode="before")(
        _none_to_blank
    )


class ExpenseCategoryRecord(ImportRecordModel):
    name: NonBlank
    description: str = ""

    _normalize_blank = field_validator("description", mode="before")(_none_to_blank)


class SaleItemRecord(ImportRecordModel):
    product_id: str | None = None
    product_name: str | None = None
    quantity: int = Field(gt=0)
    price: Money
    cost: Money = 0.0
    discount: Money = 0.0
    subtotal: float | None = None

    _normalize_optional = field_validator("product_id", "product_name", mode="before")(
        _blank_to_none
    )

    def to_values(self) -> dict[str, object]:
        values = super().to_values()
        if values["subtotal"] is None:
            values["subtotal"] = round(self.quantity * self.price - self.discount, 2)
        return values


class SaleRecord(ImportRecordModel):
    total: Money
    payment_method: NonBlank
    note: str | None = None
    customer_id: str | None = None
    customer_name: str | None = None
    voucher_id: str | None = None
    created_at: str | None = None
    items: list[SaleItemRecord] = Field(default_factory=list["SaleItemRecord"])

    _normalize_optional = field_validator(
        "note", "customer_id", "customer_name", "voucher_id", "created_at", mode="before"
    )(_blank_to_none)

    def to_values(self) -> dict[str, object]:
        values = super().to_values()
        values["items"] = [item.to_values() for item in self.items]
        return values


class ExpenseRecord(ImportRecordModel):
    amount: float = Field(gt=0, allow_inf_nan=False)
    description: NonBlank
    category: str | None = None
    category_id: str | None = None
    date: str | None = None

    _normalize_optional = field_validator("category", "category_id", "date", mode="before")(
        _blank_to_none
    )


class BulkPricingRecord(ImportRecordModel):
    product_id: str | None = None
    product_name: str | None = None
    min_quantity: int = Field(gt=0)
    bulk_price: Money

    _normalize_optional = field_validator("product_id", "product_name", mode="before")(
        _blank_to_none
    )


class StockMovementRecord(ImportRecordModel):
    product_id: str | None = None
    product_name: str | None = None
    movement_type: MovementType = Field(
        validation_alias=AliasChoices("type", "movement_type"),
        serialization_alias="type",
    )
    quantity: int = Field(gt=0)
    reason: str = ""
    supplier_id: str | None = None
    supplier: str | None = None
    reference_number: str = ""
    unit_cost: float | None = Field(default=None, ge=0)
    created_at: str | None = None

    _normalize_optional = field_validator(
        "product_id", "product_name", "supplier_id", "supplier", "created_at", mode="before"
    )(_blank_to_none)
    _normalize_blank = field_validator("reason", "reference_number", mode="before")(
        _none_to_blank
    )

    @field_validator("movement_type", mode="before")
    @classmethod
    def _lower_movement_type(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().lower()
        return value


class ShopSettingsRecord(ImportRecordModel):
    shop_name: NonBlank
    address: str = ""
    phone: str = ""
    email: str = ""
    logo_path: str | None = None
    receipt_footer: str = ""

    _normalize_blank = field_validator(
        "address", "phone", "email", "receipt_footer", mode="before"
    )(_none_to_blank)
    _normalize_optional = field_validator("logo_path", mode="before")(_blank_to_none)
