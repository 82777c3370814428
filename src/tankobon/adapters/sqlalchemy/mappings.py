"""SQLAlchemy table metadata for the entity snapshot."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Dialect,
    Enum,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    TypeDecorator,
)

from tankobon.domain.model import EditionFormat, MediaType

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


metadata = MetaData(
    naming_convention={
        "ix": "ix_%(column_0_label)s",
        "uq": "uq_%(table_name)s_%(column_0_label)s",
        "ck": "ck_%(table_name)s_%(constraint_name)s",
        "pk": "pk_%(table_name)s",
    }
)

# Entity tables -----------------------------------------------------------------
# The ``record`` column holds the full serialized entity; the other columns are
# projections for ad-hoc querying and are rewritten with every snapshot.

series_table = Table(
    "series",
    metadata,
    Column("id", String, primary_key=True),
    Column("title", String, nullable=False),
    Column("normalized_title", String, nullable=False),
    Column("media_type", Enum(MediaType, native_enum=False), nullable=False),
    Column("parent_series_id", String, nullable=True),
    Column("updated_at", UTCDateTime(), nullable=False),
    Column("record", JSON, nullable=False),
    Index(None, "normalized_title"),
)

volume_table = Table(
    "volume",
    metadata,
    Column("id", String, primary_key=True),
    Column("series_id", String, nullable=False),
    Column("volume_number", Integer, nullable=False),
    Column("updated_at", UTCDateTime(), nullable=False),
    Column("record", JSON, nullable=False),
    Index(None, "series_id", "volume_number"),
)

edition_table = Table(
    "edition",
    metadata,
    Column("id", String, primary_key=True),
    Column("isbn", String, nullable=False),
    Column("format", Enum(EditionFormat, native_enum=False), nullable=False),
    Column("language", String, nullable=False),
    Column("updated_at", UTCDateTime(), nullable=False),
    Column("record", JSON, nullable=False),
    Index(None, "isbn"),
)

# Secondary indices ---------------------------------------------------------------

index_entry_table = Table(
    "index_entry",
    metadata,
    Column("index_name", String, primary_key=True),
    Column("key", String, primary_key=True),
    Column("target_id", String, nullable=False),
)

snapshot_meta_table = Table(
    "snapshot_meta",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("version", Integer, nullable=False),
    Column("written_at", UTCDateTime(), nullable=False),
)


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the snapshot metadata."""

    log.info("Creating all tables")
    metadata.create_all(engine)
