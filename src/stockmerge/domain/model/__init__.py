"""Domain model package for stockmerge records."""

from __future__ import annotations

from .enums import (
    ConflictKind,
    EntityType,
    IdFormat,
    MatchedBy,
    MovementType,
    ResolutionAction,
)
from .identifiers import NIL_ID, canonical_id_or_none, is_canonical_id, new_id

type Record = dict[str, object]

__all__ = [
    "NIL_ID",
    "ConflictKind",
    "EntityType",
    "IdFormat",
    "MatchedBy",
    "MovementType",
    "Record",
    "ResolutionAction",
    "canonical_id_or_none",
    "is_canonical_id",
    "new_id",
]
