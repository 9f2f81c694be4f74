"""SQLAlchemy adapter package for stockmerge."""

from __future__ import annotations

from .mappings import TABLE_BY_ENTITY_TYPE, create_all_tables, mapper_registry
from .repositories import SqlAlchemyRecordRepository
from .unit_of_work import (
    BaseSqlAlchemyUnitOfWork,
    SqlAlchemyImportUnitOfWork,
    StartupError,
    startup,
)

__all__ = [
    "TABLE_BY_ENTITY_TYPE",
    "BaseSqlAlchemyUnitOfWork",
    "SqlAlchemyImportUnitOfWork",
    "SqlAlchemyRecordRepository",
    "StartupError",
    "create_all_tables",
    "mapper_registry",
    "startup",
]
