"""Logging setup for the stockmerge CLI and app entry points."""

from __future__ import annotations

import logging
import os

from .errors import ConfigurationError

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
_NOISY_LOGGERS = ("sqlalchemy.engine",)


def configure_logging(*, level: int | str | None = None, force: bool = False) -> None:
    """Initialise the root logger for CLI output.

    ``level`` falls back to ``STOCKMERGE_LOG_LEVEL`` and then INFO. SQLAlchemy's
    engine logger stays at WARNING unless DEBUG is requested. Pass ``force=True``
    to reconfigure during tests.
    """

    resolved = _resolve_level(level if level is not None else os.getenv("STOCKMERGE_LOG_LEVEL"))
    logging.basicConfig(
        level=resolved,
        format=LOG_FORMAT,
        datefmt="%H:%M:%S",
        force=force,
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(resolved if resolved <= logging.DEBUG else logging.WARNING)


def _resolve_level(level: int | str | None) -> int:
    if level is None or level == "":
        return logging.INFO
    if isinstance(level, int):
        return level
    resolved = logging.getLevelNamesMapping().get(level.strip().upper())
    if resolved is None:
        raise ConfigurationError(f"Unknown log level {level!r}")
    return resolved
