"""Ports for persisting shop records."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence

    from stockmerge.domain.model import Record


class StoreWriteError(RuntimeError):
    """Raised by store adapters when a write is rejected (constraint, missing row, I/O)."""


@runtime_checkable
class RecordRepository(Protocol):
    """Minimal store contract for one entity type.

    Records are plain mappings of column name to value. Stored records always carry
    a string ``id``.
    """

    def find_by_strong_id(self, record_id: str) -> Record | None: ...

    def list_all(self) -> Sequence[Record]: ...

    def insert(self, values: Record) -> str:
        """Persist a new record and return its stored id.

        Adapters keep ``values["id"]`` when given and generate one otherwise.
        """
        ...

    def update(self, record_id: str, values: Record) -> None: ...
