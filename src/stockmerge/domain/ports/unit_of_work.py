"""Unit-of-work abstractions for coordinating repositories."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from stockmerge.domain.model import EntityType

if TYPE_CHECKING:
    from types import TracebackType

    from stockmerge.domain.ports.persistence import RecordRepository


@runtime_checkable
class RepositoryCollection(Protocol):
    """Marker protocol for groups of repositories managed together."""


@runtime_checkable
class UnitOfWork[TRepositories: RepositoryCollection](Protocol):
    """Generic unit-of-work boundary around a repository collection.

    One entered unit of work is one transactional scope: everything written through
    its repositories is committed together by ``commit`` or discarded by
    ``rollback`` (and by leaving the context with an exception).
    """

    @property
    def repositories(self) -> TRepositories: ...

    def __enter__(self) -> UnitOfWork[TRepositories]: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


@dataclass(slots=True)
class ImportRepositories(RepositoryCollection):
    """Repositories touched by a snapshot import."""

    categories: RecordRepository
    suppliers: RecordRepository
    products: RecordRepository
    customers: RecordRepository
    expense_categories: RecordRepository
    sales: RecordRepository
    expenses: RecordRepository
    bulk_pricing: RecordRepository
    stock_movements: RecordRepository
    shop_settings: RecordRepository

    def for_type(self, entity_type: EntityType) -> RecordRepository:
        return getattr(self, _ATTRIBUTE_BY_TYPE[entity_type])


_ATTRIBUTE_BY_TYPE: dict[EntityType, str] = {
    EntityType.CATEGORY: "categories",
    EntityType.SUPPLIER: "suppliers",
    EntityType.PRODUCT: "products",
    EntityType.CUSTOMER: "customers",
    EntityType.EXPENSE_CATEGORY: "expense_categories",
    EntityType.SALE: "sales",
    EntityType.EXPENSE: "expenses",
    EntityType.BULK_PRICING: "bulk_pricing",
    EntityType.STOCK_MOVEMENT: "stock_movements",
    EntityType.SHOP_SETTINGS: "shop_settings",
}


type ImportUnitOfWork = UnitOfWork[ImportRepositories]
