"""Snapshot import: schema gate, identity index, classification, policy, execution.

Stages (leaves first):

- ``schema``: structural checks; failure rejects the run before any store access
- ``availability``: which collections the payload carries for the requested scope
- ``index``/``keys``: strong-id and natural-key lookups over resident records
- ``classify``: one outcome per incoming record (validation_failed,
  reference_missing, duplicate, new)
- ``summary``: conflicts grouped for the operator
- ``policy``/``plan``: decisions mapped to insert/update/skip operations
- ``execute``: chunked transactional writes
- ``results``: counts and errors folded into an ``ImportResult``

``engine.ImportEngine`` ties the stages together.
"""

from __future__ import annotations

from .availability import check_availability, scope_entity_types
from .classify import Classification, ClassifiedRecord, ConflictClassifier, StandIn
from .contracts import (
    ALL_DATA,
    AvailabilityResult,
    ConflictingDecisionsError,
    ConflictKey,
    ConflictStatistics,
    ConflictSummary,
    DataConflict,
    DataUnavailableError,
    EntityCounts,
    ErrorCode,
    FieldChange,
    ImportEngineError,
    ImportOptions,
    ImportPreview,
    ImportProgress,
    ImportRejectedError,
    ImportResult,
    PayloadDecodeError,
    PayloadValidationError,
    RecordError,
    RecordRef,
    ResolutionDecision,
    StandInPreview,
    ValidationIssue,
    ValidationResult,
)
from .engine import ImportEngine, ImportRun
from .execute import BatchExecutor, Chunk, build_chunks
from .index import IdentityIndex
from .plan import Operation, OperationKind
from .policy import ResolutionPolicy, plan_operations
from .profiles import IMPORT_ORDER, PROFILE_BY_COLLECTION, PROFILES, EntityProfile
from .results import ResultAggregator, describe_result
from .schema import extract_collections, validate_payload
from .summary import build_conflict_summary

__all__ = [
    "ALL_DATA",
    "IMPORT_ORDER",
    "PROFILES",
    "PROFILE_BY_COLLECTION",
    "AvailabilityResult",
    "BatchExecutor",
    "Chunk",
    "Classification",
    "ClassifiedRecord",
    "ConflictClassifier",
    "ConflictKey",
    "ConflictStatistics",
    "ConflictSummary",
    "ConflictingDecisionsError",
    "DataConflict",
    "DataUnavailableError",
    "EntityCounts",
    "EntityProfile",
    "ErrorCode",
    "FieldChange",
    "IdentityIndex",
    "ImportEngine",
    "ImportEngineError",
    "ImportOptions",
    "ImportPreview",
    "ImportProgress",
    "ImportRejectedError",
    "ImportResult",
    "ImportRun",
    "Operation",
    "OperationKind",
    "PayloadDecodeError",
    "PayloadValidationError",
    "RecordError",
    "RecordRef",
    "ResolutionDecision",
    "ResolutionPolicy",
    "ResultAggregator",
    "StandIn",
    "StandInPreview",
    "ValidationIssue",
    "ValidationResult",
    "build_chunks",
    "build_conflict_summary",
    "check_availability",
    "describe_result",
    "extract_collections",
    "plan_operations",
    "scope_entity_types",
    "validate_payload",
]
