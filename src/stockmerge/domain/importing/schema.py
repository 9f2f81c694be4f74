"""Schema gate: structural checks run before anything touches the store.

The gate only checks shape (mappings, lists, required fields). Type and range
rules live in the record models and surface later as ``validation_failed``
conflicts.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING

from stockmerge.domain.model import EntityType, IdFormat, is_canonical_id

from .contracts import ErrorCode, ValidationIssue, ValidationResult
from .profiles import IMPORT_ORDER, LEGACY_SALE_ITEMS_COLLECTION, PROFILES

if TYPE_CHECKING:
    from .profiles import EntityProfile, RequiredFields

type Collections = dict[str, list[Mapping[str, object]]]

_LEGACY_SALE_ITEM_REQUIRED: RequiredFields = (
    ("sale_id",),
    ("product_id", "product_name"),
    ("quantity",),
    ("price",),
)

log = logging.getLogger(__name__)


def validate_payload(
    payload: object,
    *,
    id_format: IdFormat = IdFormat.OPAQUE,
) -> ValidationResult:
    """Check ``payload`` structurally. Never mutates it."""

    result = ValidationResult()
    if not isinstance(payload, Mapping):
        result.errors.append(
            ValidationIssue(
                path="$",
                message=f"payload must be a JSON object, got {_type_name(payload)}",
                code=ErrorCode.INVALID_PAYLOAD,
            )
        )
        return result

    root, prefix = _collection_root(payload)
    if root is None:
        result.errors.append(
            ValidationIssue(
                path="data",
                message=f"data must be a JSON object, got {_type_name(payload.get('data'))}",
                code=ErrorCode.INVALID_PAYLOAD,
            )
        )
        return result

    for entity_type in IMPORT_ORDER:
        profile = PROFILES[entity_type]
        if profile.collection not in root:
            continue
        records = _as_record_list(root[profile.collection], entity_type)
        path = f"{prefix}{profile.collection}"
        if records is None:
            result.errors.append(
                ValidationIssue(
                    path=path,
                    message=(
                        "expected a list of records, "
                        f"got {_type_name(root[profile.collection])}"
                    ),
                    code=ErrorCode.INVALID_COLLECTION,
                )
            )
            continue
        for position, record in enumerate(records):
            _check_record(result, f"{path}[{position}]", record, profile, id_format)

    if LEGACY_SALE_ITEMS_COLLECTION in root:
        _check_legacy_sale_items(
            result, f"{prefix}{LEGACY_SALE_ITEMS_COLLECTION}", root[LEGACY_SALE_ITEMS_COLLECTION]
        )

    if result.errors:
        log.debug("Schema gate rejected payload with %d error(s)", len(result.errors))
    return result


def extract_collections(payload: Mapping[str, object]) -> Collections:
    """Return the known collections of a payload that passed ``validate_payload``.

    Collections are keyed by their payload key and kept in import order. Legacy
    top-level sale items are folded into their sales.
    """

    root, _prefix = _collection_root(payload)
    if root is None:
        return {}
    collections: Collections = {}
    for entity_type in IMPORT_ORDER:
        profile = PROFILES[entity_type]
        records = _as_record_list(root.get(profile.collection), entity_type)
        if records:
            collections[profile.collection] = list(records)

    legacy_items = root.get(LEGACY_SALE_ITEMS_COLLECTION)
    sales_key = PROFILES[EntityType.SALE].collection
    if isinstance(legacy_items, list) and sales_key in collections:
        collections[sales_key] = _fold_sale_items(collections[sales_key], legacy_items)
    return collections


# Internals ---------------------------------------------------------------------------


def _collection_root(payload: Mapping[str, object]) -> tuple[Mapping[str, object] | None, str]:
    if "data" not in payload:
        return payload, ""
    data = payload["data"]
    if isinstance(data, Mapping):
        return data, "data."
    return None, "data."


def _as_record_list(value: object, entity_type: EntityType) -> list[object] | None:
    if isinstance(value, list):
        return value
    # shop settings exports carry a single object rather than a list
    if entity_type is EntityType.SHOP_SETTINGS and isinstance(value, Mapping):
        return [value]
    return None


def _check_record(
    result: ValidationResult,
    path: str,
    record: object,
    profile: EntityProfile,
    id_format: IdFormat,
) -> None:
    if not isinstance(record, Mapping):
        result.errors.append(
            ValidationIssue(
                path=path,
                message=f"expected a record object, got {_type_name(record)}",
                code=ErrorCode.INVALID_RECORD,
            )
        )
        return

    _check_required(result, path, record, profile.required)
    _warn_on_identifiers(result, path, record, ("id",), id_format)
    reference_fields = tuple(
        spec.id_field for spec in profile.references if spec.within is None
    )
    _warn_on_identifiers(result, path, record, reference_fields, id_format)

    for nested_field, required in profile.nested_required.items():
        nested = record.get(nested_field)
        if nested is None:
            continue
        nested_path = f"{path}.{nested_field}"
        if not isinstance(nested, list):
            result.errors.append(
                ValidationIssue(
                    path=nested_path,
                    message=f"expected a list, got {_type_name(nested)}",
                    code=ErrorCode.INVALID_COLLECTION,
                )
            )
            continue
        nested_references = tuple(
            spec.id_field for spec in profile.references if spec.within == nested_field
        )
        for position, item in enumerate(nested):
            item_path = f"{nested_path}[{position}]"
            if not isinstance(item, Mapping):
                result.errors.append(
                    ValidationIssue(
                        path=item_path,
                        message=f"expected an object, got {_type_name(item)}",
                        code=ErrorCode.INVALID_RECORD,
                    )
                )
                continue
            _check_required(result, item_path, item, required)
            _warn_on_identifiers(result, item_path, item, nested_references, id_format)


def _check_legacy_sale_items(result: ValidationResult, path: str, value: object) -> None:
    if not isinstance(value, list):
        result.errors.append(
            ValidationIssue(
                path=path,
                message=f"expected a list of records, got {_type_name(value)}",
                code=ErrorCode.INVALID_COLLECTION,
            )
        )
        return
    for position, item in enumerate(value):
        item_path = f"{path}[{position}]"
        if not isinstance(item, Mapping):
            result.errors.append(
                ValidationIssue(
                    path=item_path,
                    message=f"expected a record object, got {_type_name(item)}",
                    code=ErrorCode.INVALID_RECORD,
                )
            )
            continue
        _check_required(result, item_path, item, _LEGACY_SALE_ITEM_REQUIRED)


def _check_required(
    result: ValidationResult,
    path: str,
    record: Mapping[str, object],
    required: RequiredFields,
) -> None:
    for alternatives in required:
        if any(_is_present(record.get(name)) for name in alternatives):
            continue
        if len(alternatives) == 1:
            message = f"missing required field '{alternatives[0]}'"
        else:
            names = ", ".join(f"'{name}'" for name in alternatives)
            message = f"missing required field: one of {names}"
        result.errors.append(
            ValidationIssue(
                path=f"{path}.{alternatives[0]}",
                message=message,
                code=ErrorCode.MISSING_REQUIRED_FIELD,
            )
        )


def _warn_on_identifiers(
    result: ValidationResult,
    path: str,
    record: Mapping[str, object],
    fields: tuple[str, ...],
    id_format: IdFormat,
) -> None:
    for name in fields:
        value = record.get(name)
        if not _is_present(value):
            continue
        if is_canonical_id(str(value), id_format):
            continue
        result.warnings.append(
            ValidationIssue(
                path=f"{path}.{name}",
                message=f"invalid {id_format.value} identifier for {name}: {value}",
                code=ErrorCode.INVALID_ID_FORMAT,
            )
        )


def _is_present(value: object) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


def _fold_sale_items(
    sales: list[Mapping[str, object]],
    legacy_items: list[object],
) -> list[Mapping[str, object]]:
    items_by_sale: dict[str, list[Mapping[str, object]]] = {}
    for item in legacy_items:
        if isinstance(item, Mapping) and _is_present(item.get("sale_id")):
            items_by_sale.setdefault(str(item["sale_id"]), []).append(item)

    folded: list[Mapping[str, object]] = []
    for sale in sales:
        sale_id = sale.get("id") if isinstance(sale, Mapping) else None
        extra = items_by_sale.get(str(sale_id)) if _is_present(sale_id) else None
        if extra and isinstance(sale, Mapping) and not sale.get("items"):
            folded.append({**sale, "items": extra})
        else:
            folded.append(sale)
    return folded


def _type_name(value: object) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int | float):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    return type(value).__name__
