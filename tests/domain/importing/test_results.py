from __future__ import annotations

import pytest

from stockmerge.domain.importing import (
    ErrorCode,
    Operation,
    OperationKind,
    RecordRef,
    ResultAggregator,
)
from stockmerge.domain.model import EntityType


def _operation(
    kind: OperationKind,
    entity_type: EntityType = EntityType.PRODUCT,
    position: int | None = 0,
    code: ErrorCode | None = None,
) -> Operation:
    return Operation(
        kind=kind,
        entity_type=entity_type,
        ref=RecordRef(entity_type=entity_type, position=position, label="Rice"),
        reason="kept existing record" if code is None else "invalid",
        code=code,
    )


def test_counts_and_totals_add_up() -> None:
    aggregator = ResultAggregator((EntityType.PRODUCT, EntityType.CUSTOMER))
    aggregator.written(_operation(OperationKind.INSERT))
    aggregator.written(_operation(OperationKind.INSERT, position=1))
    aggregator.written(_operation(OperationKind.UPDATE, EntityType.CUSTOMER))
    aggregator.skipped(_operation(OperationKind.SKIP, EntityType.CUSTOMER, 1))
    aggregator.written(_operation(OperationKind.CREATE_REFERENCE, position=None))

    result = aggregator.build()

    assert result.success
    assert result.counts_for(EntityType.PRODUCT).imported == 2
    assert result.counts_for(EntityType.PRODUCT).created_references == 1
    assert result.counts_for(EntityType.CUSTOMER).processed == 2
    assert (result.totals.imported, result.totals.updated, result.totals.skipped) == (2, 1, 1)
    assert result.errors == []


def test_coded_skip_is_also_an_error() -> None:
    aggregator = ResultAggregator()
    aggregator.skipped(_operation(OperationKind.SKIP, code=ErrorCode.VALIDATION_FAILED))

    result = aggregator.build()

    assert result.totals.skipped == 1
    (error,) = result.errors
    assert error.code is ErrorCode.VALIDATION_FAILED
    assert str(error.record) == 'product #0 "Rice"'


def test_failed_stand_in_is_not_counted_as_skipped() -> None:
    aggregator = ResultAggregator()
    aggregator.failed(
        _operation(OperationKind.CREATE_REFERENCE, position=None),
        "batch rolled back",
        ErrorCode.WRITE_FAILED,
    )
    aggregator.failed(_operation(OperationKind.INSERT), "batch rolled back", ErrorCode.WRITE_FAILED)
    aggregator.chunk_aborted()

    result = aggregator.build()

    assert not result.success
    assert result.totals.skipped == 1
    assert len(result.errors) == 2
    assert result.aborted_chunks == 1
    assert result.message.startswith("Import finished with 1 failed batch(es)")


def test_skip_operations_cannot_be_recorded_as_written() -> None:
    with pytest.raises(ValueError, match="skipped"):
        ResultAggregator().written(_operation(OperationKind.SKIP))


def test_message_lists_processed_types() -> None:
    aggregator = ResultAggregator((EntityType.CATEGORY, EntityType.PRODUCT))
    aggregator.written(_operation(OperationKind.INSERT))
    aggregator.skipped(_operation(OperationKind.SKIP, position=1, code=ErrorCode.REFERENCE_MISSING))

    message = aggregator.build().message

    assert message.splitlines() == [
        "Import completed.",
        "",
        "Total: 1 imported, 0 updated, 1 skipped",
        "",
        "Processed:",
        "- catalog items: 1 imported, 0 updated, 1 skipped",
        "",
        "Warnings: 1 issue(s) encountered during import",
        "Issue types: REFERENCE_MISSING",
    ]


def test_cancelled_run_is_not_successful() -> None:
    aggregator = ResultAggregator()
    aggregator.cancelled()

    result = aggregator.build()

    assert result.cancelled
    assert not result.success
    assert result.message.startswith("Import cancelled;")
