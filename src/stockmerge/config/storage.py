"""Location of the local shop store."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from .env import env_bool

APP_DIR_NAME: Final[str] = "stockmerge"
DEFAULT_DB_FILENAME: Final[str] = "shop.db"


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    uri: str
    echo: bool = False

    @property
    def is_sqlite(self) -> bool:
        return self.uri.startswith("sqlite")


def data_dir() -> Path:
    """Directory holding the default SQLite store.

    ``STOCKMERGE_DATA_DIR`` wins; otherwise the platform's per-user data directory.
    """

    override = os.getenv("STOCKMERGE_DATA_DIR")
    if override:
        return Path(override).expanduser().resolve()
    if os.name == "nt":
        base = os.getenv("LOCALAPPDATA")
        root = Path(base) if base else Path.home() / "AppData" / "Local"
    else:
        base = os.getenv("XDG_DATA_HOME")
        root = Path(base) if base else Path.home() / ".local" / "share"
    return (root / APP_DIR_NAME).expanduser().resolve()


def get_database_config(*, directory: Path | None = None) -> DatabaseConfig:
    """Resolve the store URI from ``DATABASE_URI`` or a SQLite file in the data directory."""

    echo = env_bool("STOCKMERGE_SQL_ECHO", False)  # noqa: FBT003
    env_uri = os.getenv("DATABASE_URI")
    if env_uri:
        return DatabaseConfig(uri=env_uri, echo=echo)
    target = directory or data_dir()
    target.mkdir(parents=True, exist_ok=True)
    return DatabaseConfig(uri=f"sqlite+pysqlite:///{target / DEFAULT_DB_FILENAME}", echo=echo)
