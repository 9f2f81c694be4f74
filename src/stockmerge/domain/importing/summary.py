"""Group classified conflicts for the operator."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .contracts import ConflictStatistics, ConflictSummary

if TYPE_CHECKING:
    from collections.abc import Iterable

    from stockmerge.domain.model import EntityType

    from .contracts import DataConflict


def build_conflict_summary(
    conflicts: Iterable[DataConflict],
    entity_types: Iterable[EntityType] = (),
) -> ConflictSummary:
    """Group ``conflicts`` by entity type, keeping production order inside each group.

    ``entity_types`` pre-seeds empty groups so a summary lists every touched type.
    """

    statistics: dict[EntityType, ConflictStatistics] = {
        entity_type: ConflictStatistics() for entity_type in entity_types
    }
    conflicts_by_type: dict[EntityType, list[DataConflict]] = {
        entity_type: [] for entity_type in statistics
    }
    total = 0
    for conflict in conflicts:
        statistics.setdefault(conflict.entity_type, ConflictStatistics()).count(conflict.kind)
        conflicts_by_type.setdefault(conflict.entity_type, []).append(conflict)
        total += 1
    return ConflictSummary(
        total_conflicts=total,
        statistics=statistics,
        conflicts_by_type=conflicts_by_type,
    )
