"""Strong identifier checks and generation."""

from __future__ import annotations

import re
from typing import Final
from uuid import uuid4

from .enums import IdFormat

_PATTERNS: Final[dict[IdFormat, re.Pattern[str]]] = {
    IdFormat.OPAQUE: re.compile(r"^[A-Za-z0-9][A-Za-z0-9._:-]{0,127}$"),
    IdFormat.UUID: re.compile(
        r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-8][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
        re.IGNORECASE,
    ),
    IdFormat.UUID4: re.compile(
        r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
        re.IGNORECASE,
    ),
}

NIL_ID: Final[str] = "00000000-0000-0000-0000-000000000000"


def new_id() -> str:
    return str(uuid4())


def is_canonical_id(value: object, id_format: IdFormat = IdFormat.OPAQUE) -> bool:
    """Return whether ``value`` is usable as a strong identity under ``id_format``."""

    if not isinstance(value, str) or value == NIL_ID:
        return False
    return _PATTERNS[id_format].match(value) is not None


def canonical_id_or_none(value: object, id_format: IdFormat = IdFormat.OPAQUE) -> str | None:
    if isinstance(value, str) and is_canonical_id(value, id_format):
        return value
    return None
