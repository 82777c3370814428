"""Data storage configuration helpers."""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import Final

from .errors import ConfigurationError

APP_DIR_NAME: Final[str] = "tankobon"
DEFAULT_SNAPSHOT_FILENAME: Final[str] = "entities.json"
DEFAULT_DB_FILENAME: Final[str] = "tankobon.db"


class StoreBackend(StrEnum):
    JSON = "json"
    SQLALCHEMY = "sqlalchemy"


@dataclass(frozen=True, slots=True)
class StorageConfig:
    data_dir: Path
    backend: StoreBackend = StoreBackend.JSON
    snapshot_filename: str = DEFAULT_SNAPSHOT_FILENAME
    database_filename: str = DEFAULT_DB_FILENAME

    def resolve_data_dir(self) -> Path:
        return self.data_dir.expanduser().resolve()

    def ensure_data_dir(self) -> Path:
        data_dir = self.resolve_data_dir()
        data_dir.mkdir(parents=True, exist_ok=True)
        return data_dir

    def snapshot_path(self, *, ensure: bool = True) -> Path:
        base = self.ensure_data_dir() if ensure else self.resolve_data_dir()
        return base / self.snapshot_filename

    def database_path(self, *, ensure: bool = True) -> Path:
        base = self.ensure_data_dir() if ensure else self.resolve_data_dir()
        return base / self.database_filename

    def database_uri(self) -> str:
        return f"sqlite+pysqlite:///{self.database_path()}"


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    uri: str


def _default_data_dir() -> Path:
    if os.name == "nt":
        base = os.getenv("LOCALAPPDATA")
        base_path = Path(base) if base else (Path.home() / "AppData" / "Local")
    else:
        base = os.getenv("XDG_DATA_HOME")
        base_path = Path(base) if base else (Path.home() / ".local" / "share")
    return (base_path / APP_DIR_NAME).expanduser().resolve()


def _backend_from_env() -> StoreBackend:
    raw = os.getenv("TANKOBON_STORE_BACKEND")
    if raw is None or not raw.strip():
        return StoreBackend.JSON
    try:
        return StoreBackend(raw.strip().lower())
    except ValueError as exc:
        choices = ", ".join(backend.value for backend in StoreBackend)
        raise ConfigurationError(
            f"Invalid TANKOBON_STORE_BACKEND={raw!r} (expected one of: {choices})"
        ) from exc


def get_storage_config() -> StorageConfig:
    env_dir = os.getenv("TANKOBON_DATA_DIR")
    data_dir = Path(env_dir) if env_dir else _default_data_dir()
    return StorageConfig(data_dir=data_dir, backend=_backend_from_env())


def get_database_config(*, storage: StorageConfig | None = None) -> DatabaseConfig:
    env_uri = os.getenv("DATABASE_URI")
    if env_uri:
        return DatabaseConfig(uri=env_uri)
    storage_config = storage or get_storage_config()
    return DatabaseConfig(uri=storage_config.database_uri())
