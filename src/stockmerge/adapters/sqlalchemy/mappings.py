"""SQLAlchemy Core tables for the shop store."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Final

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    Float,
    ForeignKey,
    Integer,
    String,
    Table,
    Text,
    orm,
)

from stockmerge.domain.model import EntityType

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)

IdColumnType = String(128)

mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# Reference entities ------------------------------------------------------------

category_table = Table(
    "category",
    mapper_registry.metadata,
    Column("id", IdColumnType, primary_key=True),
    Column("name", String, nullable=False),
    Column("description", Text, nullable=False, default=""),
)

supplier_table = Table(
    "supplier",
    mapper_registry.metadata,
    Column("id", IdColumnType, primary_key=True),
    Column("name", String, nullable=False),
    Column("contact_name", String, nullable=False, default=""),
    Column("phone", String, nullable=False, default=""),
    Column("email", String, nullable=False, default=""),
    Column("address", Text, nullable=False, default=""),
)

expense_category_table = Table(
    "expense_category",
    mapper_registry.metadata,
    Column("id", IdColumnType, primary_key=True),
    Column("name", String, nullable=False),
    Column("description", Text, nullable=False, default=""),
)

# Catalog and people ------------------------------------------------------------

product_table = Table(
    "product",
    mapper_registry.metadata,
    Column("id", IdColumnType, primary_key=True),
    Column("name", String, nullable=False),
    Column("barcode", String, nullable=True, unique=True),
    Column(
        "category_id",
        IdColumnType,
        ForeignKey("category.id", ondelete="SET NULL"),
        nullable=True,
    ),
    Column(
        "supplier_id",
        IdColumnType,
        ForeignKey("supplier.id", ondelete="SET NULL"),
        nullable=True,
    ),
    Column("price", Float, nullable=False),
    Column("cost", Float, nullable=False),
    Column("quantity", Integer, nullable=False, default=0),
    Column("min_stock", Integer, nullable=False, default=10),
    CheckConstraint("price >= 0", name="price_non_negative"),
    CheckConstraint("cost >= 0", name="cost_non_negative"),
)

customer_table = Table(
    "customer",
    mapper_registry.metadata,
    Column("id", IdColumnType, primary_key=True),
    Column("name", String, nullable=False),
    Column("phone", String, nullable=False, default=""),
    Column("email", String, nullable=False, default=""),
    Column("address", Text, nullable=False, default=""),
)

bulk_pricing_table = Table(
    "bulk_pricing",
    mapper_registry.metadata,
    Column("id", IdColumnType, primary_key=True),
    Column(
        "product_id",
        IdColumnType,
        ForeignKey("product.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("min_quantity", Integer, nullable=False),
    Column("bulk_price", Float, nullable=False),
    CheckConstraint("min_quantity > 0", name="min_quantity_positive"),
)

# Activity ------------------------------------------------------------------------

sale_table = Table(
    "sale",
    mapper_registry.metadata,
    Column("id", IdColumnType, primary_key=True),
    Column("total", Float, nullable=False),
    Column("payment_method", String, nullable=False),
    Column("note", Text, nullable=True),
    Column(
        "customer_id",
        IdColumnType,
        ForeignKey("customer.id", ondelete="SET NULL"),
        nullable=True,
    ),
    Column("voucher_id", String, nullable=True),
    Column("created_at", String, nullable=True),
    # line items travel with their sale and are never addressed on their own
    Column("items", JSON, nullable=False, default=list),
)

expense_table = Table(
    "expense",
    mapper_registry.metadata,
    Column("id", IdColumnType, primary_key=True),
    Column(
        "category_id",
        IdColumnType,
        ForeignKey("expense_category.id", ondelete="SET NULL"),
        nullable=True,
    ),
    Column("amount", Float, nullable=False),
    Column("description", Text, nullable=False),
    Column("date", String, nullable=True),
)

stock_movement_table = Table(
    "stock_movement",
    mapper_registry.metadata,
    Column("id", IdColumnType, primary_key=True),
    Column(
        "product_id",
        IdColumnType,
        ForeignKey("product.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("type", String(16), nullable=False),
    Column("quantity", Integer, nullable=False),
    Column("reason", Text, nullable=False, default=""),
    Column(
        "supplier_id",
        IdColumnType,
        ForeignKey("supplier.id", ondelete="SET NULL"),
        nullable=True,
    ),
    Column("reference_number", String, nullable=False, default=""),
    Column("unit_cost", Float, nullable=True),
    Column("created_at", String, nullable=True),
    CheckConstraint("quantity > 0", name="quantity_positive"),
)

shop_settings_table = Table(
    "shop_settings",
    mapper_registry.metadata,
    Column("id", IdColumnType, primary_key=True),
    Column("shop_name", String, nullable=False),
    Column("address", Text, nullable=False, default=""),
    Column("phone", String, nullable=False, default=""),
    Column("email", String, nullable=False, default=""),
    Column("logo_path", String, nullable=True),
    Column("receipt_footer", Text, nullable=False, default=""),
)

TABLE_BY_ENTITY_TYPE: Final[dict[EntityType, Table]] = {
    EntityType.CATEGORY: category_table,
    EntityType.SUPPLIER: supplier_table,
    EntityType.PRODUCT: product_table,
    EntityType.CUSTOMER: customer_table,
    EntityType.EXPENSE_CATEGORY: expense_category_table,
    EntityType.SALE: sale_table,
    EntityType.EXPENSE: expense_table,
    EntityType.BULK_PRICING: bulk_pricing_table,
    EntityType.STOCK_MOVEMENT: stock_movement_table,
    EntityType.SHOP_SETTINGS: shop_settings_table,
}


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the store metadata."""

    log.info("Creating all tables")
    mapper_registry.metadata.create_all(engine)
