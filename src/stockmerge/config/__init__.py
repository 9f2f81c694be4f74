"""Application configuration helpers."""

from __future__ import annotations

from .env import env_bool, env_int
from .errors import ConfigurationError
from .importing import DEFAULT_IMPORT_BATCH_SIZE, ImportConfig, get_import_config
from .logging import configure_logging
from .storage import DatabaseConfig, data_dir, get_database_config

__all__ = [
    "DEFAULT_IMPORT_BATCH_SIZE",
    "ConfigurationError",
    "DatabaseConfig",
    "ImportConfig",
    "configure_logging",
    "data_dir",
    "env_bool",
    "env_int",
    "get_database_config",
    "get_import_config",
]
