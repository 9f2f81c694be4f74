from __future__ import annotations

import pytest

from stockmerge.domain.model import NIL_ID, IdFormat, canonical_id_or_none, is_canonical_id, new_id


@pytest.mark.parametrize(
    ("value", "id_format", "expected"),
    [
        ("c-1", IdFormat.OPAQUE, True),
        ("prod:42", IdFormat.OPAQUE, True),
        ("has space", IdFormat.OPAQUE, False),
        ("", IdFormat.OPAQUE, False),
        (NIL_ID, IdFormat.OPAQUE, False),
        ("c-1", IdFormat.UUID, False),
        ("6ba7b810-9dad-11d1-80b4-00c04fd430c8", IdFormat.UUID, True),
        ("6ba7b810-9dad-11d1-80b4-00c04fd430c8", IdFormat.UUID4, False),
        (42, IdFormat.OPAQUE, False),
    ],
)
def test_is_canonical_id(
    value: object,
    id_format: IdFormat,
    expected: bool,  # noqa: FBT001
) -> None:
    assert is_canonical_id(value, id_format) is expected


def test_generated_ids_are_canonical_in_every_format() -> None:
    generated = new_id()

    assert all(is_canonical_id(generated, id_format) for id_format in IdFormat)
    assert canonical_id_or_none(generated, IdFormat.UUID4) == generated
    assert canonical_id_or_none("not a uuid", IdFormat.UUID4) is None
