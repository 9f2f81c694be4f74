"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import insert, select, update
from sqlalchemy.exc import SQLAlchemyError

from stockmerge.domain.model import new_id
from stockmerge.domain.ports import StoreWriteError

if TYPE_CHECKING:
    from sqlalchemy import Table
    from sqlalchemy.orm import Session

    from stockmerge.domain.model import Record


class SqlAlchemyRecordRepository:
    """Plain-mapping access to one store table."""

    def __init__(self, session: Session, table: Table) -> None:
        self.session = session
        self._table = table
        self._columns = frozenset(column.name for column in table.columns)

    def find_by_strong_id(self, record_id: str) -> Record | None:
        stmt = select(self._table).where(self._table.c.id == record_id)
        row = self.session.execute(stmt).mappings().one_or_none()
        return dict(row) if row is not None else None

    def list_all(self) -> list[Record]:
        stmt = select(self._table).order_by(self._table.c.id)
        return [dict(row) for row in self.session.execute(stmt).mappings()]

    def insert(self, values: Record) -> str:
        record_id = values.get("id")
        stored_id = record_id if isinstance(record_id, str) and record_id else new_id()
        stmt = insert(self._table).values({**self._known(values), "id": stored_id})
        try:
            self.session.execute(stmt)
        except SQLAlchemyError as exc:
            raise StoreWriteError(f"insert into {self._table.name} failed: {exc}") from exc
        return stored_id

    def update(self, record_id: str, values: Record) -> None:
        changes = {key: value for key, value in self._known(values).items() if key != "id"}
        stmt = update(self._table).where(self._table.c.id == record_id).values(changes)
        try:
            result = self.session.execute(stmt)
        except SQLAlchemyError as exc:
            message = f"update of {self._table.name} {record_id} failed: {exc}"
            raise StoreWriteError(message) from exc
        if result.rowcount == 0:
            raise StoreWriteError(f"{self._table.name} {record_id} does not exist")

    def _known(self, values: Record) -> Record:
        return {key: value for key, value in values.items() if key in self._columns}
