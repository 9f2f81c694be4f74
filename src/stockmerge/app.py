"""Application orchestration entry points."""

from __future__ import annotations

from collections.abc import Callable
from functools import partial
from logging import getLogger
from typing import TYPE_CHECKING

from stockmerge.adapters.jsonfile import read_payload
from stockmerge.adapters.sqlalchemy.unit_of_work import SqlAlchemyImportUnitOfWork, startup
from stockmerge.config import get_import_config
from stockmerge.domain.importing import ALL_DATA, ImportEngine, ImportOptions
from stockmerge.domain.model import ResolutionAction
from stockmerge.domain.ports import ImportUnitOfWork

if TYPE_CHECKING:
    from pathlib import Path

    from stockmerge.config import ImportConfig
    from stockmerge.domain.importing import (
        ImportPreview,
        ImportProgress,
        ImportResult,
        ValidationResult,
    )
    from stockmerge.domain.importing.engine import Decisions

UnitOfWorkFactory = Callable[[], ImportUnitOfWork]


log = getLogger(__name__)


def build_import_options(
    config: ImportConfig | None = None,
    *,
    scope: str = ALL_DATA,
    default_resolution: ResolutionAction = ResolutionAction.KEEP_EXISTING,
    batch_size: int | None = None,
    create_missing_references: bool | None = None,
    validate_references: bool = True,
) -> ImportOptions:
    """Combine configured defaults with per-run overrides."""

    effective = config or get_import_config()
    return ImportOptions(
        batch_size=batch_size if batch_size is not None else effective.batch_size,
        default_resolution=default_resolution,
        validate_references=validate_references,
        create_missing_references=(
            create_missing_references
            if create_missing_references is not None
            else effective.create_missing_references
        ),
        scope=scope,
    )


def build_engine(
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    observer: Callable[[ImportProgress], None] | None = None,
    config: ImportConfig | None = None,
) -> ImportEngine:
    effective_config = config or get_import_config()
    effective_uow = unit_of_work_factory or partial(SqlAlchemyImportUnitOfWork, startup())
    return ImportEngine(effective_uow, observer=observer, id_format=effective_config.id_format)


def validate_snapshot(path: Path, *, config: ImportConfig | None = None) -> ValidationResult:
    """Run the schema gate over an export file without opening the store."""

    effective_config = config or get_import_config()
    payload = read_payload(path)
    engine = ImportEngine(_no_store, id_format=effective_config.id_format)
    return engine.validate(payload)


def preview_snapshot(
    path: Path,
    *,
    options: ImportOptions | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    config: ImportConfig | None = None,
) -> ImportPreview:
    """Classify an export file against the store without writing."""

    payload = read_payload(path)
    engine = build_engine(unit_of_work_factory=unit_of_work_factory, config=config)
    effective_options = options or build_import_options(config)
    log.info("Previewing %s: scope=%s", path, effective_options.scope)
    return engine.preview(payload, effective_options)


def import_snapshot(
    path: Path,
    *,
    options: ImportOptions | None = None,
    decisions: Decisions | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    observer: Callable[[ImportProgress], None] | None = None,
    config: ImportConfig | None = None,
) -> ImportResult:
    """Merge an export file into the store."""

    payload = read_payload(path)
    engine = build_engine(
        unit_of_work_factory=unit_of_work_factory, observer=observer, config=config
    )
    effective_options = options or build_import_options(config)
    log.info(
        "Starting snapshot import of %s: scope=%s, batch_size=%s, default_resolution=%s",
        path,
        effective_options.scope,
        effective_options.batch_size,
        effective_options.default_resolution,
    )
    result = engine.commit(payload, effective_options, decisions)
    log.info(
        "Finished snapshot import: imported=%d, updated=%d, skipped=%d, success=%s",
        result.totals.imported,
        result.totals.updated,
        result.totals.skipped,
        result.success,
    )
    return result


def _no_store() -> ImportUnitOfWork:
    raise RuntimeError("validation does not open the store")
