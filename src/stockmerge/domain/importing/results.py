"""Accumulate executor outcomes into an ``ImportResult``."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .contracts import EntityCounts, ErrorCode, ImportResult, RecordError
from .plan import OperationKind
from .profiles import PROFILES

if TYPE_CHECKING:
    from collections.abc import Iterable

    from stockmerge.domain.model import EntityType

    from .contracts import DataConflict
    from .plan import Operation


class ResultAggregator:
    def __init__(self, entity_types: Iterable[EntityType] = ()) -> None:
        self._counts: dict[EntityType, EntityCounts] = {
            entity_type: EntityCounts() for entity_type in entity_types
        }
        self._errors: list[RecordError] = []
        self._aborted_chunks = 0
        self._cancelled = False

    @property
    def aborted_chunks(self) -> int:
        return self._aborted_chunks

    def written(self, operation: Operation) -> None:
        counts = self._counts_for(operation.entity_type)
        match operation.kind:
            case OperationKind.INSERT:
                counts.imported += 1
            case OperationKind.UPDATE:
                counts.updated += 1
            case OperationKind.CREATE_REFERENCE:
                counts.created_references += 1
            case OperationKind.SKIP:
                raise ValueError("skip operations are recorded with skipped()")

    def skipped(self, operation: Operation) -> None:
        """Count a planned skip, logging an error when it carries a code."""

        self._counts_for(operation.entity_type).skipped += 1
        if operation.code is not None:
            self.error(operation, operation.reason, operation.code)

    def failed(self, operation: Operation, message: str, code: ErrorCode) -> None:
        """Record an operation that was meant to write but did not."""

        if operation.counts_as_incoming:
            self._counts_for(operation.entity_type).skipped += 1
        self.error(operation, message, code)

    def error(self, operation: Operation, message: str, code: ErrorCode) -> None:
        self._errors.append(
            RecordError(
                entity_type=operation.entity_type,
                record=operation.ref,
                message=message,
                code=code,
            )
        )

    def chunk_aborted(self) -> None:
        self._aborted_chunks += 1

    def cancelled(self) -> None:
        self._cancelled = True

    def build(self, conflicts: list[DataConflict] | None = None) -> ImportResult:
        totals = EntityCounts()
        for counts in self._counts.values():
            totals.imported += counts.imported
            totals.updated += counts.updated
            totals.skipped += counts.skipped
            totals.created_references += counts.created_references
        result = ImportResult(
            success=self._aborted_chunks == 0 and not self._cancelled,
            totals=totals,
            counts={entity_type: counts for entity_type, counts in self._counts.items()},
            errors=list(self._errors),
            conflicts=list(conflicts or []),
            cancelled=self._cancelled,
            aborted_chunks=self._aborted_chunks,
        )
        result.message = describe_result(result)
        return result

    def _counts_for(self, entity_type: EntityType) -> EntityCounts:
        counts = self._counts.get(entity_type)
        if counts is None:
            counts = EntityCounts()
            self._counts[entity_type] = counts
        return counts


def describe_result(result: ImportResult) -> str:
    """Operator-facing summary of a finished run."""

    if result.cancelled:
        headline = "Import cancelled; records committed before cancellation were kept."
    elif not result.success:
        headline = (
            f"Import finished with {result.aborted_chunks} failed batch(es); "
            "other batches were committed."
        )
    else:
        headline = "Import completed."

    lines = [
        headline,
        "",
        (
            f"Total: {result.totals.imported} imported, {result.totals.updated} updated, "
            f"{result.totals.skipped} skipped"
        ),
    ]
    processed = [
        (entity_type, counts)
        for entity_type, counts in result.counts.items()
        if counts.processed or counts.created_references
    ]
    if processed:
        lines.extend(["", "Processed:"])
        for entity_type, counts in processed:
            line = (
                f"- {PROFILES[entity_type].label}: {counts.imported} imported, "
                f"{counts.updated} updated, {counts.skipped} skipped"
            )
            if counts.created_references:
                line += f", {counts.created_references} created as missing references"
            lines.append(line)
    if result.errors:
        lines.extend(["", f"Warnings: {len(result.errors)} issue(s) encountered during import"])
        codes = sorted(
            {error.code for error in result.errors if error.code is not ErrorCode.CANCELLED}
        )
        if codes:
            lines.append("Issue types: " + ", ".join(code.value for code in codes))
    return "\n".join(lines)
