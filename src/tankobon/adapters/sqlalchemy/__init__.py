"""SQLAlchemy adapter package for tankobon."""

from __future__ import annotations

from .mappings import create_all_tables, metadata
from .snapshot import SqlAlchemySnapshotBackend, create_snapshot_engine

__all__ = [
    "SqlAlchemySnapshotBackend",
    "create_all_tables",
    "create_snapshot_engine",
    "metadata",
]
