"""Application configuration helpers."""

from __future__ import annotations

from .errors import ConfigurationError
from .logging import configure_logging
from .storage import (
    DatabaseConfig,
    StorageConfig,
    StoreBackend,
    get_database_config,
    get_storage_config,
)

__all__ = [
    "ConfigurationError",
    "DatabaseConfig",
    "StorageConfig",
    "StoreBackend",
    "configure_logging",
    "get_database_config",
    "get_storage_config",
]
