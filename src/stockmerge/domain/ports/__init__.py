"""Domain port definitions for adapters."""

from __future__ import annotations

from .persistence import RecordRepository, StoreWriteError
from .unit_of_work import (
    ImportRepositories,
    ImportUnitOfWork,
    RepositoryCollection,
    UnitOfWork,
)

__all__ = [
    "ImportRepositories",
    "ImportUnitOfWork",
    "RecordRepository",
    "RepositoryCollection",
    "StoreWriteError",
    "UnitOfWork",
]
