"""Turn a classification plus operator decisions into executable operations."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from stockmerge.domain.model import ConflictKind, ResolutionAction

from .contracts import ConflictingDecisionsError, ErrorCode
from .plan import Operation, OperationKind, order_operations

if TYPE_CHECKING:
    from collections.abc import Mapping

    from .classify import Classification, ClassifiedRecord
    from .contracts import ConflictKey, DataConflict, ImportOptions, ResolutionDecision

log = logging.getLogger(__name__)

_SKIP_REASONS: dict[ResolutionAction, str] = {
    ResolutionAction.KEEP_EXISTING: "kept existing record",
    ResolutionAction.SKIP: "skipped by operator",
}


class ResolutionPolicy:
    """Pick the action for each duplicate.

    Lookup order: the decision for that conflict, then the run's apply-to-all
    decision, then ``ImportOptions.default_resolution``.
    """

    def __init__(
        self,
        options: ImportOptions,
        decisions: Mapping[ConflictKey, ResolutionDecision] | None = None,
    ) -> None:
        self._decisions = dict(decisions or {})
        self._default = options.default_resolution
        blanket = {
            decision.action for decision in self._decisions.values() if decision.apply_to_all
        }
        if len(blanket) > 1:
            actions = ", ".join(sorted(action.value for action in blanket))
            raise ConflictingDecisionsError(
                f"apply-to-all decisions disagree: {actions}; pass at most one"
            )
        self._blanket = blanket.pop() if blanket else None

    def action_for(self, conflict: DataConflict) -> ResolutionAction:
        explicit = self._decisions.get(conflict.key)
        if explicit is not None:
            return explicit.action
        if self._blanket is not None:
            return self._blanket
        return self._default


def plan_operations(
    classification: Classification,
    options: ImportOptions,
    decisions: Mapping[ConflictKey, ResolutionDecision] | None = None,
) -> list[Operation]:
    """Map every classified record (and stand-in) to exactly one operation."""

    policy = ResolutionPolicy(options, decisions)
    operations = [
        Operation(
            kind=OperationKind.CREATE_REFERENCE,
            entity_type=stand_in.entity_type,
            ref=stand_in.ref,
            stand_in=stand_in,
        )
        for stand_in in classification.stand_ins
    ]
    operations.extend(_operation_for(record, policy) for record in classification.records)
    ordered = order_operations(operations)
    log.debug("Planned %d operation(s)", len(ordered))
    return ordered


def _operation_for(record: ClassifiedRecord, policy: ResolutionPolicy) -> Operation:
    conflict = record.conflict
    if conflict is None:
        return Operation(
            kind=OperationKind.INSERT,
            entity_type=record.entity_type,
            ref=record.ref,
            record=record,
        )

    match conflict.kind:
        case ConflictKind.VALIDATION_FAILED:
            return _skip(record, conflict.message, ErrorCode.VALIDATION_FAILED)
        case ConflictKind.REFERENCE_MISSING:
            return _skip(record, conflict.message, ErrorCode.REFERENCE_MISSING)
        case ConflictKind.DUPLICATE:
            action = policy.action_for(conflict)
            if action is ResolutionAction.APPLY_INCOMING:
                if conflict.existing is None:
                    raise RuntimeError("duplicate conflict carries no existing record")
                return Operation(
                    kind=OperationKind.UPDATE,
                    entity_type=record.entity_type,
                    ref=record.ref,
                    record=record,
                    target_id=str(conflict.existing["id"]),
                )
            return _skip(record, _SKIP_REASONS[action], None)


def _skip(record: ClassifiedRecord, reason: str, code: ErrorCode | None) -> Operation:
    return Operation(
        kind=OperationKind.SKIP,
        entity_type=record.entity_type,
        ref=record.ref,
        record=record,
        reason=reason,
        code=code,
    )
