"""Operations the batch executor carries out, one per incoming record or stand-in."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from .profiles import IMPORT_ORDER

if TYPE_CHECKING:
    from collections.abc import Iterable

    from stockmerge.domain.model import EntityType

    from .classify import ClassifiedRecord, StandIn
    from .contracts import ErrorCode, RecordRef


class OperationKind(StrEnum):
    INSERT = "insert"
    UPDATE = "update"
    SKIP = "skip"
    CREATE_REFERENCE = "create_reference"


@dataclass(slots=True, frozen=True, kw_only=True)
class Operation:
    kind: OperationKind
    entity_type: EntityType
    ref: RecordRef
    record: ClassifiedRecord | None = None
    stand_in: StandIn | None = None
    target_id: str | None = None
    reason: str = ""
    code: ErrorCode | None = None

    @property
    def is_write(self) -> bool:
        return self.kind is not OperationKind.SKIP

    @property
    def counts_as_incoming(self) -> bool:
        """Stand-ins are extra records; everything else answers for one incoming record."""

        return self.kind is not OperationKind.CREATE_REFERENCE


def order_operations(operations: Iterable[Operation]) -> list[Operation]:
    """Sort into import order; within a type, stand-ins go first, then file order."""

    phase = {entity_type: rank for rank, entity_type in enumerate(IMPORT_ORDER)}

    def sort_key(operation: Operation) -> tuple[int, int, int]:
        is_record = 0 if operation.kind is OperationKind.CREATE_REFERENCE else 1
        position = operation.ref.position if operation.ref.position is not None else -1
        return (phase[operation.entity_type], is_record, position)

    return sorted(operations, key=sort_key)
