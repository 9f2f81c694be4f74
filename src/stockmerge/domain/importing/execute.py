"""Chunked, transactional execution of planned operations.

Each chunk holds operations of a single entity type and runs inside its own unit
of work. A ``StoreWriteError`` rolls back that chunk only; the executor records
its writes as failed and carries on with the next chunk.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from itertools import batched, groupby
from typing import TYPE_CHECKING

from stockmerge.domain.ports import StoreWriteError

from .contracts import ErrorCode, ImportProgress
from .plan import Operation, OperationKind
from .profiles import PROFILES

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from stockmerge.domain.model import EntityType, Record
    from stockmerge.domain.ports import ImportRepositories, ImportUnitOfWork

    from .index import IdentityIndex
    from .results import ResultAggregator

log = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class Chunk:
    entity_type: EntityType
    operations: tuple[Operation, ...]

    def __len__(self) -> int:
        return len(self.operations)


def build_chunks(operations: Iterable[Operation], batch_size: int) -> list[Chunk]:
    """Split ordered operations into per-type chunks of at most ``batch_size``."""

    if batch_size <= 0:
        raise ValueError(f"batch_size must be a positive integer, got {batch_size}")
    chunks: list[Chunk] = []
    for entity_type, group in groupby(operations, key=lambda operation: operation.entity_type):
        chunks.extend(Chunk(entity_type, batch) for batch in batched(group, batch_size))
    return chunks


class BatchExecutor:
    """Execute chunks against the store and keep the identity index current."""

    def __init__(
        self,
        unit_of_work_factory: Callable[[], ImportUnitOfWork],
        index: IdentityIndex,
        aggregator: ResultAggregator,
        *,
        total: int,
    ) -> None:
        self._unit_of_work_factory = unit_of_work_factory
        self._index = index
        self._aggregator = aggregator
        self._total = total
        self._processed = 0

    def execute(self, chunk: Chunk) -> ImportProgress | None:
        """Run one chunk; return its progress event, or ``None`` if it was rolled back."""

        prepared: list[tuple[Operation, Record]] = []
        for operation in chunk.operations:
            if operation.kind is OperationKind.SKIP:
                self._aggregator.skipped(operation)
                continue
            values = self._materialize(operation)
            if values is not None:
                prepared.append((operation, values))
        self._processed += len(chunk)

        if prepared:
            try:
                with self._unit_of_work_factory() as uow:
                    written = [
                        (operation, self._write(uow.repositories, operation, values))
                        for operation, values in prepared
                    ]
                    uow.commit()
            except StoreWriteError as exc:
                log.warning(
                    "Rolled back %s chunk of %d operation(s): %s",
                    chunk.entity_type,
                    len(chunk),
                    exc,
                )
                self._aggregator.chunk_aborted()
                for operation, _values in prepared:
                    self._aggregator.failed(
                        operation, f"batch rolled back: {exc}", ErrorCode.WRITE_FAILED
                    )
                return None
            for operation, stored in written:
                self._remember(operation, stored)
            log.info("Committed %s chunk with %d write(s)", chunk.entity_type, len(written))

        return ImportProgress(
            stage=f"Importing {PROFILES[chunk.entity_type].label}",
            current=self._processed,
            total=self._total,
        )

    def cancel(self, chunk: Chunk) -> None:
        """Account for a chunk that will not run because the caller cancelled."""

        for operation in chunk.operations:
            if operation.kind is OperationKind.SKIP:
                self._aggregator.skipped(operation)
            else:
                self._aggregator.failed(
                    operation, "import cancelled before this batch ran", ErrorCode.CANCELLED
                )
        self._processed += len(chunk)

    # Internals ---------------------------------------------------------------------------

    def _materialize(self, operation: Operation) -> Record | None:
        """Stored values for a write, with references swapped for stored ids."""

        if operation.kind is OperationKind.CREATE_REFERENCE:
            if operation.stand_in is None:
                raise RuntimeError("create-reference operation carries no stand-in")
            stand_in_values = operation.stand_in.values()
            if operation.stand_in.record_id is not None:
                stand_in_values["id"] = operation.stand_in.record_id
            return stand_in_values

        record = operation.record
        if record is None or record.values is None:
            raise RuntimeError(f"{operation.kind} operation carries no validated record")
        values: Record = {
            key: list(value) if isinstance(value, list) else value
            for key, value in record.values.items()
        }
        for query in record.references:
            resolved = self._index.resolve_reference(query.target, query.ref_id, query.ref_name)
            if resolved is None and query.spec.required:
                self._aggregator.failed(
                    operation,
                    f"{query.field_path} could not be resolved to a stored {query.target}",
                    ErrorCode.REFERENCE_UNRESOLVED,
                )
                return None
            if resolved is None:
                log.warning(
                    "Dropping unresolved reference %s=%r of %s",
                    query.field_path,
                    query.display,
                    operation.ref,
                )
            if query.spec.within is None:
                values[query.spec.id_field] = resolved
                continue
            items = values[query.spec.within]
            if not isinstance(items, list) or query.item is None:
                raise TypeError(f"{query.spec.within} of {operation.ref} is not a list of items")
            item = items[query.item]
            if isinstance(item, Mapping):
                items[query.item] = {**item, query.spec.id_field: resolved}

        profile = PROFILES[operation.entity_type]
        stored: Record = {column: values.get(column) for column in profile.columns}
        if operation.kind is OperationKind.INSERT and record.record_id is not None:
            stored["id"] = record.record_id
        return stored

    def _write(
        self,
        repositories: ImportRepositories,
        operation: Operation,
        values: Record,
    ) -> Record:
        repository = repositories.for_type(operation.entity_type)
        if operation.kind is OperationKind.UPDATE:
            if operation.target_id is None:
                raise RuntimeError("update operation carries no target id")
            existing = repository.find_by_strong_id(operation.target_id)
            if existing is None:
                raise StoreWriteError(
                    f"{operation.entity_type} {operation.target_id} no longer exists"
                )
            repository.update(operation.target_id, values)
            return {**existing, **values, "id": operation.target_id}
        stored_id = repository.insert(values)
        return {**values, "id": stored_id}

    def _remember(self, operation: Operation, stored: Record) -> None:
        entity_type = operation.entity_type
        self._index.register(entity_type, stored)
        if operation.stand_in is not None:
            raw_id = operation.stand_in.raw_id
        else:
            if operation.record is None:
                raise RuntimeError(f"{operation.kind} operation carries no record")
            raw_id = operation.record.raw_id
        if raw_id is not None:
            self._index.alias(entity_type, raw_id, str(stored["id"]))
        self._aggregator.written(operation)
