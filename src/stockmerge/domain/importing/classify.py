"""Conflict classification for incoming records.

Every incoming record gets exactly one outcome, decided in this order:

1. ``validation_failed``: the record model rejects it, or it repeats an earlier
   record of the same file
2. ``reference_missing``: a reference resolves nowhere and no stand-in may be
   created for it
3. ``duplicate``: strong-id match, else natural-key match against the index
4. new

Classification never writes to the store. It may add aliases to the identity
index so that later references to a duplicate's file identifier resolve to the
stored record.
"""

from __future__ import annotations

import logging
from collections.abc import Hashable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from pydantic import ValidationError

from stockmerge.domain.model import ConflictKind, MatchedBy, canonical_id_or_none

from .contracts import DataConflict, FieldChange, RecordRef, StandInPreview
from .keys import NaturalKey, index_keys, lookup_keys, name_key
from .profiles import IMPORT_ORDER, PROFILES

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from stockmerge.domain.model import EntityType, Record

    from .contracts import ImportOptions
    from .index import IdentityIndex
    from .profiles import EntityProfile, ReferenceSpec
    from .schema import Collections

log = logging.getLogger(__name__)

# Resolution tokens: a stored id (str), or a marker for a record not yet stored.
type ResolutionToken = Hashable


@dataclass(slots=True, kw_only=True)
class ReferenceQuery:
    """One reference carried by an incoming record."""

    spec: ReferenceSpec
    ref_id: str | None
    ref_name: str | None
    item: int | None = None
    token: ResolutionToken | None = None

    @property
    def target(self) -> EntityType:
        return self.spec.target

    @property
    def display(self) -> str:
        return self.ref_name or self.ref_id or ""

    @property
    def field_path(self) -> str:
        name = self.spec.id_field if self.ref_id is not None else self.spec.name_field
        if self.spec.within is None:
            return str(name)
        return f"{self.spec.within}[{self.item}].{name}"


@dataclass(slots=True, kw_only=True)
class ClassifiedRecord:
    entity_type: EntityType
    position: int
    incoming: Mapping[str, object]
    values: Record | None = None
    raw_id: str | None = None
    record_id: str | None = None
    label: str | None = None
    references: list[ReferenceQuery] = field(default_factory=list["ReferenceQuery"])
    conflict: DataConflict | None = None

    @property
    def is_new(self) -> bool:
        return self.conflict is None

    @property
    def ref(self) -> RecordRef:
        return RecordRef(
            entity_type=self.entity_type,
            position=self.position,
            record_id=self.raw_id,
            label=self.label,
        )


@dataclass(slots=True, kw_only=True)
class StandIn:
    """A minimal record synthesized for a reference the store cannot satisfy."""

    entity_type: EntityType
    name: str
    raw_id: str | None
    record_id: str | None
    requested_by: list[RecordRef] = field(default_factory=list["RecordRef"])

    @property
    def token(self) -> ResolutionToken:
        return ("stand-in", self.entity_type, self.name)

    @property
    def ref(self) -> RecordRef:
        return RecordRef(
            entity_type=self.entity_type, position=None, record_id=self.raw_id, label=self.name
        )

    def values(self) -> Record:
        profile = PROFILES[self.entity_type]
        values: Record = dict(profile.stand_in_defaults or {})
        values[profile.display_field or "name"] = self.name
        return values

    def preview(self) -> StandInPreview:
        return StandInPreview(
            entity_type=self.entity_type,
            name=self.name,
            record_id=self.record_id,
            requested_by=tuple(self.requested_by),
        )


@dataclass(slots=True, kw_only=True)
class Classification:
    entity_types: tuple[EntityType, ...]
    records: list[ClassifiedRecord]
    stand_ins: list[StandIn] = field(default_factory=list["StandIn"])

    @property
    def conflicts(self) -> list[DataConflict]:
        return [record.conflict for record in self.records if record.conflict is not None]

    def records_of(self, entity_type: EntityType) -> Iterator[ClassifiedRecord]:
        return (record for record in self.records if record.entity_type is entity_type)

    def record_counts(self) -> dict[EntityType, int]:
        counts = dict.fromkeys(self.entity_types, 0)
        for record in self.records:
            counts[record.entity_type] = counts.get(record.entity_type, 0) + 1
        return counts

    def new_counts(self) -> dict[EntityType, int]:
        counts = dict.fromkeys(self.entity_types, 0)
        for record in self.records:
            if record.is_new:
                counts[record.entity_type] = counts.get(record.entity_type, 0) + 1
        return counts


@dataclass(slots=True)
class _FileRecords:
    """Identifiers and keys of the records already accepted from this file."""

    ids: dict[str, int] = field(default_factory=dict["str", "int"])
    keys: dict[NaturalKey, int] = field(default_factory=dict["NaturalKey", "int"])


class ConflictClassifier:
    """Classify incoming records against an identity index."""

    def __init__(self, index: IdentityIndex, options: ImportOptions) -> None:
        self._index = index
        self._options = options
        self._id_format = index.id_format
        self._seen: dict[EntityType, _FileRecords] = {}
        self._stand_ins: dict[tuple[EntityType, NaturalKey], StandIn] = {}
        self._stand_ins_by_id: dict[tuple[EntityType, str], StandIn] = {}

    def classify(
        self,
        collections: Collections,
        entity_types: Iterable[EntityType],
    ) -> Classification:
        wanted = set(entity_types)
        ordered = tuple(entity_type for entity_type in IMPORT_ORDER if entity_type in wanted)
        self._seen = {}
        self._stand_ins = {}
        self._stand_ins_by_id = {}

        records: list[ClassifiedRecord] = []
        for entity_type in ordered:
            profile = PROFILES[entity_type]
            for position, raw in enumerate(collections.get(profile.collection, ())):
                record = self._classify_record(profile, position, raw)
                if record.conflict is not None:
                    log.debug(
                        "Classified %s #%d as %s: %s",
                        entity_type,
                        position,
                        record.conflict.kind,
                        record.conflict.message,
                    )
                records.append(record)

        classification = Classification(
            entity_types=ordered,
            records=records,
            stand_ins=list(self._stand_ins.values()),
        )
        log.info(
            "Classified %d record(s): %d conflict(s), %d stand-in(s)",
            len(records),
            len(classification.conflicts),
            len(classification.stand_ins),
        )
        return classification

    # Per record ------------------------------------------------------------------------

    def _classify_record(
        self,
        profile: EntityProfile,
        position: int,
        raw: Mapping[str, object],
    ) -> ClassifiedRecord:
        entity_type = profile.entity_type
        try:
            model = profile.model.model_validate(raw)
        except ValidationError as exc:
            return self._rejected(profile, position, raw, exc)

        values = model.to_values()
        record = ClassifiedRecord(
            entity_type=entity_type,
            position=position,
            incoming=dict(raw),
            values=values,
            raw_id=model.id,
            record_id=canonical_id_or_none(model.id, self._id_format),
            label=profile.display_name(values),
        )
        record.references = list(_reference_queries(profile, values))
        for query in record.references:
            query.token = self._resolve(query, record.ref)

        key_values = _with_resolved_references(values, record.references)
        keys = lookup_keys(entity_type, key_values)

        earlier = self._earlier_occurrence(entity_type, record.raw_id, keys)
        if earlier is not None:
            record.conflict = DataConflict(
                entity_type=entity_type,
                kind=ConflictKind.VALIDATION_FAILED,
                position=position,
                incoming=record.incoming,
                message=f"{profile.label} #{position} repeats record #{earlier} of this file",
                field_name="id" if record.raw_id is not None else None,
            )
            return record

        missing = self._handle_unresolved(record)
        if missing is not None:
            target_label = PROFILES[missing.target].label
            record.conflict = DataConflict(
                entity_type=entity_type,
                kind=ConflictKind.REFERENCE_MISSING,
                position=position,
                incoming=record.incoming,
                message=(
                    f"{profile.label} #{position} references {target_label} "
                    f'"{missing.display}" which does not exist'
                ),
                field_name=missing.field_path,
            )
            return record

        key_values = _with_resolved_references(values, record.references)
        keys = lookup_keys(entity_type, key_values)
        existing, matched_by = self._match_existing(entity_type, record.record_id, keys)
        if existing is not None:
            existing_id = str(existing["id"])
            record.conflict = DataConflict(
                entity_type=entity_type,
                kind=ConflictKind.DUPLICATE,
                position=position,
                incoming=record.incoming,
                existing=existing,
                matched_by=matched_by,
                message=_duplicate_message(profile, position, existing_id, matched_by),
                differences=_differences(profile, existing, key_values, values),
            )
            if record.raw_id is not None:
                self._index.alias(entity_type, record.raw_id, existing_id)

        self._remember(entity_type, position, record.raw_id, index_keys(entity_type, key_values))
        return record

    def _rejected(
        self,
        profile: EntityProfile,
        position: int,
        raw: Mapping[str, object],
        exc: ValidationError,
    ) -> ClassifiedRecord:
        first = exc.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        raw_id = raw.get("id")
        record = ClassifiedRecord(
            entity_type=profile.entity_type,
            position=position,
            incoming=dict(raw),
            raw_id=str(raw_id) if raw_id is not None else None,
            label=profile.display_name(raw),
        )
        record.conflict = DataConflict(
            entity_type=profile.entity_type,
            kind=ConflictKind.VALIDATION_FAILED,
            position=position,
            incoming=record.incoming,
            message=f"{profile.label} #{position} is invalid: {location}: {first['msg']}",
            field_name=location or None,
        )
        return record

    # References ---------------------------------------------------------------------

    def _resolve(self, query: ReferenceQuery, requester: RecordRef) -> ResolutionToken | None:
        target = query.target
        stored = self._index.resolve_reference(target, query.ref_id, query.ref_name)
        if stored is not None:
            return stored

        seen = self._seen.get(target)
        if seen is not None:
            if query.ref_id is not None and query.ref_id in seen.ids:
                return ("pending", target, seen.ids[query.ref_id])
            key = name_key(target, query.ref_name)
            if key is not None and key in seen.keys:
                return ("pending", target, seen.keys[key])

        stand_in = self._find_stand_in(query)
        if stand_in is not None:
            stand_in.requested_by.append(requester)
            return stand_in.token
        return None

    def _handle_unresolved(self, record: ClassifiedRecord) -> ReferenceQuery | None:
        """Plan stand-ins for unresolved references; return the first missing one."""

        for query in record.references:
            if query.token is not None:
                continue
            if self._options.create_missing_references:
                query.token = self._plan_stand_in(query, record.ref)
                continue
            if self._options.validate_references:
                return query
            log.debug("Ignoring unresolved reference %s of %s", query.field_path, record.ref)
        return None

    def _find_stand_in(self, query: ReferenceQuery) -> StandIn | None:
        key = name_key(query.target, query.ref_name)
        if key is not None and (query.target, key) in self._stand_ins:
            return self._stand_ins[(query.target, key)]
        if query.ref_id is not None:
            return self._stand_ins_by_id.get((query.target, query.ref_id))
        return None

    def _plan_stand_in(self, query: ReferenceQuery, requester: RecordRef) -> ResolutionToken:
        name = query.ref_name or query.ref_id or ""
        key = name_key(query.target, name) or (f"{query.target}:id", name)
        stand_in = self._stand_ins.get((query.target, key))
        if stand_in is None:
            stand_in = StandIn(
                entity_type=query.target,
                name=name,
                raw_id=query.ref_id,
                record_id=canonical_id_or_none(query.ref_id, self._id_format),
            )
            self._stand_ins[(query.target, key)] = stand_in
            log.debug("Planned stand-in %s %r", query.target, name)
        if query.ref_id is not None:
            self._stand_ins_by_id.setdefault((query.target, query.ref_id), stand_in)
        stand_in.requested_by.append(requester)
        return stand_in.token

    # Identity -----------------------------------------------------------------------

    def _earlier_occurrence(
        self,
        entity_type: EntityType,
        raw_id: str | None,
        keys: tuple[NaturalKey, ...],
    ) -> int | None:
        seen = self._seen.get(entity_type)
        if seen is None:
            return None
        if raw_id is not None and raw_id in seen.ids:
            return seen.ids[raw_id]
        for key in keys:
            if key in seen.keys:
                return seen.keys[key]
        return None

    def _match_existing(
        self,
        entity_type: EntityType,
        record_id: str | None,
        keys: tuple[NaturalKey, ...],
    ) -> tuple[Record | None, MatchedBy]:
        if record_id is not None:
            existing = self._index.by_strong_id(entity_type, record_id)
            if existing is not None:
                return existing, MatchedBy.STRONG_ID
        existing = self._index.first_by_natural_keys(entity_type, keys)
        if existing is not None:
            return existing, MatchedBy.NATURAL_KEY
        return None, MatchedBy.NONE

    def _remember(
        self,
        entity_type: EntityType,
        position: int,
        raw_id: str | None,
        keys: tuple[NaturalKey, ...],
    ) -> None:
        seen = self._seen.setdefault(entity_type, _FileRecords())
        if raw_id is not None:
            seen.ids.setdefault(raw_id, position)
        for key in keys:
            seen.keys.setdefault(key, position)


# Helpers ------------------------------------------------------------------------------


def _reference_queries(
    profile: EntityProfile, values: Mapping[str, object]
) -> Iterator[ReferenceQuery]:
    for spec in profile.references:
        if spec.within is None:
            query = _query_for(spec, values, None)
            if query is not None:
                yield query
            continue
        nested = values.get(spec.within)
        if not isinstance(nested, list):
            continue
        for item_position, item in enumerate(nested):
            if isinstance(item, Mapping):
                query = _query_for(spec, item, item_position)
                if query is not None:
                    yield query


def _query_for(
    spec: ReferenceSpec,
    values: Mapping[str, object],
    item: int | None,
) -> ReferenceQuery | None:
    ref_id = values.get(spec.id_field)
    ref_name = values.get(spec.name_field) if spec.name_field else None
    if ref_id is None and ref_name is None:
        return None
    return ReferenceQuery(
        spec=spec,
        ref_id=str(ref_id) if ref_id is not None else None,
        ref_name=str(ref_name) if ref_name is not None else None,
        item=item,
    )


def _with_resolved_references(values: Record, references: list[ReferenceQuery]) -> Record:
    """Copy ``values`` with reference id fields replaced by their resolution tokens."""

    resolved: Record = dict(values)
    nested_copies: dict[str, list[object]] = {}
    for query in references:
        if query.token is None:
            continue
        spec = query.spec
        if spec.within is None:
            resolved[spec.id_field] = query.token
            continue
        items = nested_copies.get(spec.within)
        if items is None:
            original = values.get(spec.within)
            items = (
                [dict(item) if isinstance(item, Mapping) else item for item in original]
                if isinstance(original, list)
                else []
            )
            nested_copies[spec.within] = items
            resolved[spec.within] = items
        item = items[query.item] if query.item is not None else None
        if isinstance(item, dict):
            item[spec.id_field] = query.token
    return resolved


def _duplicate_message(
    profile: EntityProfile,
    position: int,
    existing_id: str,
    matched_by: MatchedBy,
) -> str:
    how = "identifier" if matched_by is MatchedBy.STRONG_ID else "natural key"
    return f"{profile.label} #{position} matches existing record {existing_id} by {how}"


def _differences(
    profile: EntityProfile,
    existing: Record,
    resolved: Record,
    values: Record,
) -> dict[str, FieldChange]:
    differences: dict[str, FieldChange] = {}
    for column in profile.columns:
        if column not in resolved:
            continue
        current = existing.get(column)
        proposed = resolved.get(column)
        if isinstance(proposed, tuple):
            # reference to a record this run has not stored yet
            differences[column] = FieldChange(existing=current, incoming=values.get(column))
            continue
        if not _same_value(current, proposed):
            differences[column] = FieldChange(existing=current, incoming=proposed)
    return differences


def _same_value(left: object, right: object) -> bool:
    if left in (None, "") and right in (None, ""):
        return True
    if isinstance(left, int | float) and isinstance(right, int | float):
        return float(left) == float(right)
    return left == right
