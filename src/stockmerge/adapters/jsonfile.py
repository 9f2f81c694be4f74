"""Read snapshot payloads from exported JSON files."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from stockmerge.domain.importing import PayloadDecodeError

if TYPE_CHECKING:
    from pathlib import Path

log = logging.getLogger(__name__)


def decode_payload(text: str) -> object:
    """Parse exported snapshot text. A leading BOM is tolerated."""

    try:
        return json.loads(text.removeprefix("\ufeff"))
    except json.JSONDecodeError as exc:
        raise PayloadDecodeError(
            f"Import file is not valid JSON (line {exc.lineno}, column {exc.colno}): {exc.msg}"
        ) from exc


def read_payload(path: Path) -> object:
    try:
        text = path.read_text(encoding="utf-8-sig")
    except UnicodeDecodeError as exc:
        raise PayloadDecodeError(f"Import file {path} is not UTF-8 text") from exc
    log.debug("Read %d characters from %s", len(text), path)
    return decode_payload(text)
