"""In-memory store fakes for import engine tests."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal

from stockmerge.domain.model import EntityType, new_id
from stockmerge.domain.ports import ImportRepositories, StoreWriteError

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping
    from types import TracebackType

    from stockmerge.domain.model import Record

type Tables = dict[EntityType, dict[str, Record]]
type FailurePredicate = Callable[[EntityType, Record], bool]


class FakeRecordRepository:
    """Repository over one staged table of a ``FakeUnitOfWork``."""

    def __init__(self, store: FakeStore, table: dict[str, Record], entity_type: EntityType) -> None:
        self._store = store
        self._table = table
        self._entity_type = entity_type

    def find_by_strong_id(self, record_id: str) -> Record | None:
        record = self._table.get(record_id)
        return dict(record) if record is not None else None

    def list_all(self) -> list[Record]:
        self._store.list_calls.append(self._entity_type)
        return [dict(record) for record in self._table.values()]

    def insert(self, values: Record) -> str:
        self._store.check_write(self._entity_type, values)
        record_id = values.get("id")
        stored_id = record_id if isinstance(record_id, str) and record_id else new_id()
        if stored_id in self._table:
            raise StoreWriteError(f"duplicate primary key {stored_id}")
        self._table[stored_id] = {**values, "id": stored_id}
        return stored_id

    def update(self, record_id: str, values: Record) -> None:
        self._store.check_write(self._entity_type, values)
        if record_id not in self._table:
            raise StoreWriteError(f"{self._entity_type} {record_id} does not exist")
        self._table[record_id] = {**self._table[record_id], **values, "id": record_id}


@dataclass
class FakeStore:
    """Committed tables plus counters describing how the engine used them."""

    tables: Tables = field(default_factory=dict["EntityType", "dict[str, Record]"])
    opened: int = 0
    commits: int = 0
    rollbacks: int = 0
    list_calls: list[EntityType] = field(default_factory=list["EntityType"])
    fail_when: FailurePredicate | None = None

    def seed(self, entity_type: EntityType, *records: Record) -> None:
        table = self.tables.setdefault(entity_type, {})
        for record in records:
            stored = dict(record)
            stored.setdefault("id", new_id())
            table[str(stored["id"])] = stored

    def records(self, entity_type: EntityType) -> list[Record]:
        return [dict(record) for record in self.tables.get(entity_type, {}).values()]

    def get(self, entity_type: EntityType, record_id: str) -> Record | None:
        return self.tables.get(entity_type, {}).get(record_id)

    def count(self, entity_type: EntityType) -> int:
        return len(self.tables.get(entity_type, {}))

    def counts(self) -> dict[EntityType, int]:
        return {entity_type: self.count(entity_type) for entity_type in EntityType}

    def check_write(self, entity_type: EntityType, values: Record) -> None:
        if self.fail_when is not None and self.fail_when(entity_type, values):
            raise StoreWriteError(f"injected failure for {entity_type} {values.get('name')!r}")

    def unit_of_work(self) -> FakeUnitOfWork:
        return FakeUnitOfWork(self)


class FakeUnitOfWork:
    """Stages writes on a copy of the store; ``commit`` publishes them."""

    def __init__(self, store: FakeStore) -> None:
        self._store = store
        self._staged: Tables | None = None
        self._repositories: ImportRepositories | None = None

    @property
    def repositories(self) -> ImportRepositories:
        if self._repositories is None:
            raise RuntimeError("unit of work not entered")
        return self._repositories

    def __enter__(self) -> FakeUnitOfWork:
        self._store.opened += 1
        self._staged = copy.deepcopy(self._store.tables)
        staged = self._staged

        def repository(entity_type: EntityType) -> FakeRecordRepository:
            return FakeRecordRepository(
                self._store, staged.setdefault(entity_type, {}), entity_type
            )

        self._repositories = ImportRepositories(
            categories=repository(EntityType.CATEGORY),
            suppliers=repository(EntityType.SUPPLIER),
            products=repository(EntityType.PRODUCT),
            customers=repository(EntityType.CUSTOMER),
            expense_categories=repository(EntityType.EXPENSE_CATEGORY),
            sales=repository(EntityType.SALE),
            expenses=repository(EntityType.EXPENSE),
            bulk_pricing=repository(EntityType.BULK_PRICING),
            stock_movements=repository(EntityType.STOCK_MOVEMENT),
            shop_settings=repository(EntityType.SHOP_SETTINGS),
        )
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        if exc_type is not None:
            self.rollback()
        self._staged = None
        self._repositories = None
        return False

    def commit(self) -> None:
        if self._staged is None:
            raise RuntimeError("unit of work not entered")
        self._store.tables = copy.deepcopy(self._staged)
        self._store.commits += 1

    def rollback(self) -> None:
        self._store.rollbacks += 1


class UnreachableStore:
    """Unit-of-work factory that fails the test if the engine opens the store."""

    def __init__(self) -> None:
        self.calls = 0

    def __call__(self) -> FakeUnitOfWork:
        self.calls += 1
        raise AssertionError("the store must not be opened")


def seeded_store(records: Mapping[EntityType, Iterable[Record]]) -> FakeStore:
    store = FakeStore()
    for entity_type, entity_records in records.items():
        store.seed(entity_type, *entity_records)
    return store
