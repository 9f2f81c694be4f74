"""Import run defaults."""

from __future__ import annotations

import os
from dataclasses import dataclass

from stockmerge.domain.model import IdFormat

from .env import env_bool, env_int
from .errors import ConfigurationError

DEFAULT_IMPORT_BATCH_SIZE = 25


@dataclass(frozen=True, slots=True)
class ImportConfig:
    batch_size: int = DEFAULT_IMPORT_BATCH_SIZE
    id_format: IdFormat = IdFormat.OPAQUE
    create_missing_references: bool = False

    def __post_init__(self) -> None:
        if self.batch_size <= 0:
            raise ConfigurationError(f"Batch size must be positive, got {self.batch_size}")


def get_import_config() -> ImportConfig:
    raw_format = os.getenv("STOCKMERGE_ID_FORMAT", IdFormat.OPAQUE.value).strip().lower()
    try:
        id_format = IdFormat(raw_format)
    except ValueError as exc:
        allowed = ", ".join(member.value for member in IdFormat)
        raise ConfigurationError(
            f"STOCKMERGE_ID_FORMAT must be one of {allowed}, got {raw_format!r}"
        ) from exc
    return ImportConfig(
        batch_size=env_int("STOCKMERGE_BATCH_SIZE", DEFAULT_IMPORT_BATCH_SIZE),
        id_format=id_format,
        create_missing_references=env_bool(
            "STOCKMERGE_CREATE_MISSING_REFERENCES",
            False,  # noqa: FBT003
        ),
    )
