"""Resolve which entity types a payload actually carries."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .contracts import ALL_DATA, AvailabilityResult
from .profiles import IMPORT_ORDER, PROFILE_BY_COLLECTION, PROFILES
from .schema import extract_collections

if TYPE_CHECKING:
    from collections.abc import Mapping

    from stockmerge.domain.model import EntityType


def check_availability(payload: Mapping[str, object], scope: str = ALL_DATA) -> AvailabilityResult:
    """Count records per collection and decide whether ``scope`` has anything to import.

    ``scope`` is ``"all"`` or a collection key such as ``"products"``. The payload
    must already have passed the schema gate.
    """

    collections = extract_collections(payload)
    detailed_counts = {
        PROFILES[entity_type].collection: len(collections.get(PROFILES[entity_type].collection, ()))
        for entity_type in IMPORT_ORDER
    }
    available = [key for key, count in detailed_counts.items() if count > 0]

    if scope != ALL_DATA and scope not in PROFILE_BY_COLLECTION:
        known = ", ".join(PROFILE_BY_COLLECTION)
        return AvailabilityResult(
            is_valid=False,
            scope=scope,
            available_types=available,
            detailed_counts=detailed_counts,
            message=f"Unknown data type '{scope}'. Expected '{ALL_DATA}' or one of: {known}.",
        )

    if scope == ALL_DATA:
        is_valid = bool(available)
    else:
        is_valid = detailed_counts[scope] > 0

    return AvailabilityResult(
        is_valid=is_valid,
        scope=scope,
        available_types=available,
        detailed_counts=detailed_counts,
        message=_availability_message(scope, available, detailed_counts, is_valid=is_valid),
    )


def scope_entity_types(scope: str) -> tuple[EntityType, ...]:
    """Entity types imported for ``scope``, in import order."""

    if scope == ALL_DATA:
        return IMPORT_ORDER
    return (PROFILE_BY_COLLECTION[scope].entity_type,)


def _availability_message(
    scope: str,
    available: list[str],
    counts: dict[str, int],
    *,
    is_valid: bool,
) -> str:
    present = ", ".join(
        f"{PROFILE_BY_COLLECTION[key].label} ({counts[key]})" for key in available
    )
    if not available:
        return "Import file contains no importable data."
    if is_valid and scope == ALL_DATA:
        return f"Import file contains: {present}."
    if is_valid:
        label = PROFILE_BY_COLLECTION[scope].label
        return f"Import file contains {counts[scope]} {label} record(s)."
    label = PROFILE_BY_COLLECTION[scope].label
    return (
        f"No {label} found in the import file. "
        f"Available data: {present}. Choose one of: {', '.join(available)} or '{ALL_DATA}'."
    )
