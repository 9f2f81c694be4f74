"""Value types shared by the import stages and returned to callers.

This module intentionally holds only plain dataclasses/enums and the error
hierarchy; stage logic lives in the sibling modules.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Final

from stockmerge.domain.model import ConflictKind, EntityType, MatchedBy, ResolutionAction

if TYPE_CHECKING:
    from collections.abc import Mapping

    from stockmerge.domain.model import Record

ALL_DATA: Final[str] = "all"

type ConflictKey = tuple[EntityType, int]


class ErrorCode(StrEnum):
    """Machine-readable codes attached to validation issues and run errors."""

    INVALID_PAYLOAD = "INVALID_PAYLOAD"
    INVALID_COLLECTION = "INVALID_COLLECTION"
    INVALID_RECORD = "INVALID_RECORD"
    MISSING_REQUIRED_FIELD = "MISSING_REQUIRED_FIELD"
    INVALID_ID_FORMAT = "INVALID_ID_FORMAT"
    VALIDATION_FAILED = "VALIDATION_FAILED"
    REFERENCE_MISSING = "REFERENCE_MISSING"
    REFERENCE_UNRESOLVED = "REFERENCE_UNRESOLVED"
    WRITE_FAILED = "WRITE_FAILED"
    CANCELLED = "CANCELLED"


# Errors -------------------------------------------------------------------------


class ImportEngineError(Exception):
    """Base class for errors raised by the import engine."""


class ImportRejectedError(ImportEngineError):
    """Raised when a run cannot start; the store has not been touched."""


class PayloadDecodeError(ImportRejectedError):
    """Raised when the raw snapshot text cannot be decoded."""


class PayloadValidationError(ImportRejectedError):
    """Raised when a payload fails the structural schema checks."""

    def __init__(self, result: ValidationResult) -> None:
        self.result = result
        first = result.errors[0] if result.errors else None
        detail = f"{first.path}: {first.message}" if first else "invalid payload"
        extra = len(result.errors) - 1
        suffix = f" (and {extra} more)" if extra > 0 else ""
        super().__init__(f"Import payload is malformed: {detail}{suffix}")


class DataUnavailableError(ImportRejectedError):
    """Raised when the requested scope has no records in the payload."""

    def __init__(self, result: AvailabilityResult) -> None:
        self.result = result
        super().__init__(result.message)


class ConflictingDecisionsError(ImportEngineError, ValueError):
    """Raised when several apply-to-all decisions disagree."""


# Schema gate / availability ------------------------------------------------------


@dataclass(slots=True, frozen=True, kw_only=True)
class ValidationIssue:
    path: str
    message: str
    code: ErrorCode


@dataclass(slots=True, kw_only=True)
class ValidationResult:
    errors: list[ValidationIssue] = field(default_factory=list["ValidationIssue"])
    warnings: list[ValidationIssue] = field(default_factory=list["ValidationIssue"])

    @property
    def is_valid(self) -> bool:
        return not self.errors


@dataclass(slots=True, kw_only=True)
class AvailabilityResult:
    is_valid: bool
    scope: str
    available_types: list[str]
    detailed_counts: dict[str, int]
    message: str


# Classification ------------------------------------------------------------------


@dataclass(slots=True, frozen=True, kw_only=True)
class RecordRef:
    """Points back at an incoming record (or a synthesized stand-in)."""

    entity_type: EntityType
    position: int | None
    record_id: str | None = None
    label: str | None = None

    def __str__(self) -> str:
        where = f"#{self.position}" if self.position is not None else "stand-in"
        name = f' "{self.label}"' if self.label else ""
        return f"{self.entity_type.value} {where}{name}"


@dataclass(slots=True, frozen=True, kw_only=True)
class FieldChange:
    existing: object
    incoming: object


@dataclass(slots=True, kw_only=True)
class DataConflict:
    """One incoming record that cannot be inserted without a decision.

    ``existing`` is set exactly when ``kind`` is ``DUPLICATE``.
    """

    entity_type: EntityType
    kind: ConflictKind
    position: int
    incoming: Mapping[str, object]
    message: str
    matched_by: MatchedBy = MatchedBy.NONE
    existing: Record | None = None
    field_name: str | None = None
    differences: dict[str, FieldChange] = field(default_factory=dict["str", "FieldChange"])

    def __post_init__(self) -> None:
        if (self.kind is ConflictKind.DUPLICATE) != (self.existing is not None):
            raise ValueError("existing record must be present iff the conflict is a duplicate")

    @property
    def key(self) -> ConflictKey:
        return (self.entity_type, self.position)


@dataclass(slots=True, kw_only=True)
class ConflictStatistics:
    total: int = 0
    duplicate: int = 0
    reference_missing: int = 0
    validation_failed: int = 0

    def count(self, kind: ConflictKind) -> None:
        self.total += 1
        match kind:
            case ConflictKind.DUPLICATE:
                self.duplicate += 1
            case ConflictKind.REFERENCE_MISSING:
                self.reference_missing += 1
            case ConflictKind.VALIDATION_FAILED:
                self.validation_failed += 1


@dataclass(slots=True, kw_only=True)
class ConflictSummary:
    total_conflicts: int
    statistics: dict[EntityType, ConflictStatistics]
    conflicts_by_type: dict[EntityType, list[DataConflict]]

    @property
    def has_conflicts(self) -> bool:
        return self.total_conflicts > 0


@dataclass(slots=True, frozen=True, kw_only=True)
class StandInPreview:
    entity_type: EntityType
    name: str
    record_id: str | None
    requested_by: tuple[RecordRef, ...]


@dataclass(slots=True, kw_only=True)
class ImportPreview:
    record_counts: dict[str, int]
    new_records: dict[EntityType, int]
    conflicts: list[DataConflict]
    conflict_summary: ConflictSummary
    stand_ins: list[StandInPreview]
    warnings: list[ValidationIssue]
    sample_data: dict[str, list[Mapping[str, object]]]

    @property
    def total_new(self) -> int:
        return sum(self.new_records.values())


# Decisions / options ---------------------------------------------------------------


@dataclass(slots=True, frozen=True, kw_only=True)
class ResolutionDecision:
    action: ResolutionAction
    apply_to_all: bool = False


@dataclass(slots=True, frozen=True, kw_only=True)
class ImportOptions:
    batch_size: int = 25
    default_resolution: ResolutionAction = ResolutionAction.KEEP_EXISTING
    validate_references: bool = True
    create_missing_references: bool = False
    scope: str = ALL_DATA

    def __post_init__(self) -> None:
        if self.batch_size <= 0:
            raise ValueError(f"batch_size must be a positive integer, got {self.batch_size}")


# Progress / results -------------------------------------------------------------------


@dataclass(slots=True, frozen=True, kw_only=True)
class ImportProgress:
    stage: str
    current: int
    total: int

    @property
    def percentage(self) -> float:
        if self.total <= 0:
            return 0.0
        return self.current / self.total * 100


@dataclass(slots=True, kw_only=True)
class EntityCounts:
    imported: int = 0
    updated: int = 0
    skipped: int = 0
    created_references: int = 0

    @property
    def processed(self) -> int:
        return self.imported + self.updated + self.skipped


@dataclass(slots=True, frozen=True, kw_only=True)
class RecordError:
    entity_type: EntityType
    record: RecordRef
    message: str
    code: ErrorCode


@dataclass(slots=True, kw_only=True)
class ImportResult:
    success: bool
    totals: EntityCounts
    counts: dict[EntityType, EntityCounts]
    errors: list[RecordError] = field(default_factory=list["RecordError"])
    conflicts: list[DataConflict] = field(default_factory=list["DataConflict"])
    cancelled: bool = False
    aborted_chunks: int = 0
    message: str = ""

    def counts_for(self, entity_type: EntityType) -> EntityCounts:
        return self.counts.get(entity_type, EntityCounts())
