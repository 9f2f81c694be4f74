"""In-memory identity index over the store's resident records.

Built once per run with a single ``list_all`` per entity type; every later
lookup is a dict access. The executor keeps it current by registering the
records it writes, so references to records inserted earlier in the same run
resolve without touching the store again.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from stockmerge.domain.model import IdFormat, is_canonical_id

from .keys import NaturalKey, index_keys, name_key

if TYPE_CHECKING:
    from collections.abc import Iterable

    from stockmerge.domain.model import EntityType, Record
    from stockmerge.domain.ports import ImportRepositories

log = logging.getLogger(__name__)


@dataclass(slots=True)
class _TypeIndex:
    by_id: dict[str, Record] = field(default_factory=dict["str", "Record"])
    by_key: dict[NaturalKey, str] = field(default_factory=dict["NaturalKey", "str"])
    keys_by_id: dict[str, tuple[NaturalKey, ...]] = field(
        default_factory=dict["str", "tuple[NaturalKey, ...]"]
    )
    aliases: dict[str, str] = field(default_factory=dict["str", "str"])


class IdentityIndex:
    """Strong-id and natural-key lookups per entity type."""

    def __init__(self, *, id_format: IdFormat = IdFormat.OPAQUE) -> None:
        self.id_format = id_format
        self._types: dict[EntityType, _TypeIndex] = {}

    @classmethod
    def build(
        cls,
        repositories: ImportRepositories,
        entity_types: Iterable[EntityType],
        *,
        id_format: IdFormat = IdFormat.OPAQUE,
    ) -> IdentityIndex:
        index = cls(id_format=id_format)
        for entity_type in entity_types:
            records = repositories.for_type(entity_type).list_all()
            for record in records:
                index.register(entity_type, record)
            log.debug("Indexed %d resident %s record(s)", len(records), entity_type)
        return index

    def register(self, entity_type: EntityType, record: Record) -> None:
        """Add or refresh ``record``; the first record indexed under a key keeps it."""

        record_id = record.get("id")
        if not isinstance(record_id, str) or not record_id:
            raise ValueError(f"stored {entity_type} record has no id: {record!r}")
        table = self._table(entity_type)
        for key in table.keys_by_id.pop(record_id, ()):
            if table.by_key.get(key) == record_id:
                del table.by_key[key]
        keys = index_keys(entity_type, record)
        table.by_id[record_id] = dict(record)
        table.keys_by_id[record_id] = keys
        for key in keys:
            table.by_key.setdefault(key, record_id)

    def alias(self, entity_type: EntityType, raw_id: str, stored_id: str) -> None:
        """Make ``raw_id`` (an identifier from the file) resolve to ``stored_id``."""

        if raw_id == stored_id:
            return
        self._table(entity_type).aliases[raw_id] = stored_id

    def by_strong_id(self, entity_type: EntityType, record_id: str) -> Record | None:
        if not is_canonical_id(record_id, self.id_format):
            return None
        return self._table(entity_type).by_id.get(record_id)

    def by_natural_key(self, entity_type: EntityType, key: NaturalKey) -> Record | None:
        table = self._table(entity_type)
        record_id = table.by_key.get(key)
        if record_id is None:
            return None
        return table.by_id[record_id]

    def first_by_natural_keys(
        self, entity_type: EntityType, keys: Iterable[NaturalKey]
    ) -> Record | None:
        for key in keys:
            record = self.by_natural_key(entity_type, key)
            if record is not None:
                return record
        return None

    def resolve_id(self, entity_type: EntityType, raw_id: str) -> str | None:
        """Stored id for an identifier from the file, via direct hit or alias."""

        table = self._table(entity_type)
        if raw_id in table.aliases:
            return table.aliases[raw_id]
        if raw_id in table.by_id:
            return raw_id
        return None

    def resolve_reference(
        self,
        target: EntityType,
        ref_id: str | None,
        ref_name: str | None,
    ) -> str | None:
        """Stored id of the record a reference points at (id first, then name)."""

        if ref_id is not None:
            resolved = self.resolve_id(target, ref_id)
            if resolved is not None:
                return resolved
        if ref_name is not None:
            key = name_key(target, ref_name)
            if key is not None:
                return self._table(target).by_key.get(key)
        return None

    def records(self, entity_type: EntityType) -> list[Record]:
        return list(self._table(entity_type).by_id.values())

    def __len__(self) -> int:
        return sum(len(table.by_id) for table in self._types.values())

    def _table(self, entity_type: EntityType) -> _TypeIndex:
        table = self._types.get(entity_type)
        if table is None:
            table = _TypeIndex()
            self._types[entity_type] = table
        return table
