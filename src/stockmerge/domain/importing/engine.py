"""Import engine facade: validate, preview and commit a snapshot payload.

The engine owns no store state. Each ``preview``/``start`` builds a fresh identity
index from one read-only unit of work, classifies the payload against it, and (for
commits) hands the planned operations to the batch executor. Progress is pulled
from an ``ImportRun`` or pushed to the single observer given to the engine.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING

from stockmerge.domain.model import IdFormat

from .availability import check_availability, scope_entity_types
from .classify import ConflictClassifier
from .contracts import (
    ALL_DATA,
    DataUnavailableError,
    ImportOptions,
    ImportPreview,
    PayloadValidationError,
)
from .execute import BatchExecutor, build_chunks
from .index import IdentityIndex
from .plan import OperationKind
from .policy import plan_operations
from .profiles import PROFILES, reference_targets
from .results import ResultAggregator
from .schema import extract_collections, validate_payload
from .summary import build_conflict_summary

if TYPE_CHECKING:
    from collections.abc import Iterator

    from stockmerge.domain.ports import ImportUnitOfWork

    from .classify import Classification
    from .contracts import (
        AvailabilityResult,
        ConflictKey,
        DataConflict,
        ImportProgress,
        ImportResult,
        ResolutionDecision,
        ValidationResult,
    )
    from .execute import Chunk
    from .schema import Collections

type UnitOfWorkFactory = Callable[[], ImportUnitOfWork]
type ProgressObserver = Callable[[ImportProgress], None]
type Decisions = Mapping[ConflictKey, ResolutionDecision]

SAMPLE_SIZE = 3

log = logging.getLogger(__name__)


class ImportRun:
    """One commit in progress; iterate it to execute one chunk per step.

    Each ``next()`` runs chunks until one commits and returns its progress event.
    Rolled-back chunks produce no event. ``cancel()`` stops further chunks from
    starting; chunks already committed stay committed.
    """

    def __init__(
        self,
        executor: BatchExecutor,
        chunks: list[Chunk],
        aggregator: ResultAggregator,
        conflicts: list[DataConflict],
        observer: ProgressObserver | None = None,
    ) -> None:
        self._executor = executor
        self._chunks = chunks
        self._aggregator = aggregator
        self._conflicts = conflicts
        self._observer = observer
        self._position = 0
        self._cancel_requested = False
        self._result: ImportResult | None = None

    def __iter__(self) -> Iterator[ImportProgress]:
        return self

    def __next__(self) -> ImportProgress:
        while self._result is None and self._position < len(self._chunks):
            if self._cancel_requested:
                self._cancel_remaining()
                break
            chunk = self._chunks[self._position]
            self._position += 1
            progress = self._executor.execute(chunk)
            if progress is not None:
                if self._observer is not None:
                    self._observer(progress)
                return progress
        self._finish()
        raise StopIteration

    def cancel(self) -> None:
        self._cancel_requested = True

    @property
    def finished(self) -> bool:
        return self._result is not None

    @property
    def result(self) -> ImportResult:
        if self._result is None:
            raise RuntimeError("import run has not finished yet")
        return self._result

    def run_to_completion(self) -> ImportResult:
        for _progress in self:
            pass
        return self.result

    def _cancel_remaining(self) -> None:
        remaining = self._chunks[self._position :]
        self._position = len(self._chunks)
        for chunk in remaining:
            self._executor.cancel(chunk)
        self._aggregator.cancelled()
        log.info("Import cancelled with %d chunk(s) not started", len(remaining))

    def _finish(self) -> None:
        if self._result is not None:
            return
        self._result = self._aggregator.build(self._conflicts)
        totals = self._result.totals
        log.info(
            "Finished import: imported=%d, updated=%d, skipped=%d, aborted_chunks=%d, cancelled=%s",
            totals.imported,
            totals.updated,
            totals.skipped,
            self._result.aborted_chunks,
            self._result.cancelled,
        )


class ImportEngine:
    """Entry point for snapshot imports against an injected store."""

    def __init__(
        self,
        unit_of_work_factory: UnitOfWorkFactory,
        *,
        observer: ProgressObserver | None = None,
        id_format: IdFormat = IdFormat.OPAQUE,
    ) -> None:
        self._unit_of_work_factory = unit_of_work_factory
        self._observer = observer
        self._id_format = id_format

    def validate(self, payload: object) -> ValidationResult:
        return validate_payload(payload, id_format=self._id_format)

    def check_availability(
        self, payload: Mapping[str, object], scope: str = ALL_DATA
    ) -> AvailabilityResult:
        return check_availability(payload, scope)

    def preview(self, payload: object, options: ImportOptions | None = None) -> ImportPreview:
        """Classify ``payload`` against the store without writing anything."""

        options = options or ImportOptions()
        collections, validation = self._admit(payload, options)
        _index, classification = self._classify(collections, options)
        conflicts = classification.conflicts
        in_scope = {PROFILES[entity_type].collection for entity_type in classification.entity_types}
        return ImportPreview(
            record_counts={
                PROFILES[entity_type].collection: count
                for entity_type, count in classification.record_counts().items()
            },
            new_records=classification.new_counts(),
            conflicts=conflicts,
            conflict_summary=build_conflict_summary(conflicts, classification.entity_types),
            stand_ins=[stand_in.preview() for stand_in in classification.stand_ins],
            warnings=list(validation.warnings),
            sample_data={
                key: records[:SAMPLE_SIZE]
                for key, records in collections.items()
                if key in in_scope
            },
        )

    def start(
        self,
        payload: object,
        options: ImportOptions | None = None,
        decisions: Decisions | None = None,
    ) -> ImportRun:
        """Validate and plan a commit; chunks run as the returned run is iterated."""

        options = options or ImportOptions()
        collections, _validation = self._admit(payload, options)
        index, classification = self._classify(collections, options)
        operations = plan_operations(classification, options, decisions)
        chunks = build_chunks(operations, options.batch_size)
        aggregator = ResultAggregator(classification.entity_types)
        executor = BatchExecutor(
            self._unit_of_work_factory,
            index,
            aggregator,
            total=len(operations),
        )
        log.info(
            "Starting import: scope=%s, %d operation(s) (%d stand-in(s)) in %d chunk(s)",
            options.scope,
            len(operations),
            sum(1 for op in operations if op.kind is OperationKind.CREATE_REFERENCE),
            len(chunks),
        )
        return ImportRun(executor, chunks, aggregator, classification.conflicts, self._observer)

    def commit(
        self,
        payload: object,
        options: ImportOptions | None = None,
        decisions: Decisions | None = None,
    ) -> ImportResult:
        return self.start(payload, options, decisions).run_to_completion()

    def _admit(
        self, payload: object, options: ImportOptions
    ) -> tuple[Collections, ValidationResult]:
        validation = validate_payload(payload, id_format=self._id_format)
        if not validation.is_valid:
            raise PayloadValidationError(validation)
        if not isinstance(payload, Mapping):
            raise TypeError("a valid payload is always a mapping")
        availability = check_availability(payload, options.scope)
        if not availability.is_valid:
            raise DataUnavailableError(availability)
        return extract_collections(payload), validation

    def _classify(
        self, collections: Collections, options: ImportOptions
    ) -> tuple[IdentityIndex, Classification]:
        entity_types = scope_entity_types(options.scope)
        with self._unit_of_work_factory() as uow:
            index = IdentityIndex.build(
                uow.repositories,
                reference_targets(entity_types),
                id_format=self._id_format,
            )
        classifier = ConflictClassifier(index, options)
        return index, classifier.classify(collections, entity_types)
