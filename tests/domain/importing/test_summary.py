from __future__ import annotations

import pytest

from stockmerge.domain.importing import DataConflict, build_conflict_summary
from stockmerge.domain.model import ConflictKind, EntityType


def _conflict(entity_type: EntityType, position: int, kind: ConflictKind) -> DataConflict:
    existing = {"id": f"{entity_type}-{position}"} if kind is ConflictKind.DUPLICATE else None
    return DataConflict(
        entity_type=entity_type,
        kind=kind,
        position=position,
        incoming={},
        message=f"{entity_type} #{position}",
        existing=existing,
    )


def test_summary_counts_conflicts_per_type_and_kind() -> None:
    conflicts = [
        _conflict(EntityType.PRODUCT, 0, ConflictKind.DUPLICATE),
        _conflict(EntityType.PRODUCT, 3, ConflictKind.VALIDATION_FAILED),
        _conflict(EntityType.SALE, 1, ConflictKind.REFERENCE_MISSING),
        _conflict(EntityType.PRODUCT, 5, ConflictKind.DUPLICATE),
    ]

    summary = build_conflict_summary(conflicts)

    assert summary.total_conflicts == 4
    assert summary.has_conflicts
    products = summary.statistics[EntityType.PRODUCT]
    assert (products.total, products.duplicate, products.validation_failed) == (3, 2, 1)
    assert summary.statistics[EntityType.SALE].reference_missing == 1
    assert [c.position for c in summary.conflicts_by_type[EntityType.PRODUCT]] == [0, 3, 5]


def test_summary_lists_requested_types_without_conflicts() -> None:
    summary = build_conflict_summary([], (EntityType.CUSTOMER, EntityType.SALE))

    assert not summary.has_conflicts
    assert summary.statistics[EntityType.CUSTOMER].total == 0
    assert summary.conflicts_by_type == {EntityType.CUSTOMER: [], EntityType.SALE: []}


def test_duplicate_requires_existing_record() -> None:
    with pytest.raises(ValueError, match="existing record"):
        DataConflict(
            entity_type=EntityType.CUSTOMER,
            kind=ConflictKind.DUPLICATE,
            position=0,
            incoming={},
            message="missing existing",
        )
