from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import func, insert, select, update

from tankobon.adapters.sqlalchemy import SqlAlchemySnapshotBackend
from tankobon.adapters.sqlalchemy.mappings import (
    edition_table,
    index_entry_table,
    series_table,
    snapshot_meta_table,
)
from tankobon.app import build_catalog
from tankobon.domain.model import MediaType
from tankobon.domain.ports.persistence import (
    SNAPSHOT_VERSION,
    SnapshotFormatError,
    StoreSnapshot,
)
from tankobon.domain.store import EntityStore

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine
    from sqlalchemy.sql.schema import Table

    from tankobon.domain.model import SourceSeries


def _count(engine: Engine, table: Table) -> int:
    with engine.connect() as conn:
        return conn.execute(select(func.count()).select_from(table)).scalar_one()


def test_read_returns_none_on_fresh_database(sqlite_engine: Engine) -> None:
    assert SqlAlchemySnapshotBackend(sqlite_engine).read() is None


@pytest.mark.asyncio
async def test_snapshot_round_trip(sqlite_engine: Engine, frieren_payload: SourceSeries) -> None:
    backend = SqlAlchemySnapshotBackend(sqlite_engine)
    catalog = build_catalog(EntityStore(backend))
    await catalog.integrator.create_entities_from_primary_source(frieren_payload)

    first = backend.read()
    assert first is not None
    second = SqlAlchemySnapshotBackend(sqlite_engine, create_tables=False).read()

    assert second == first
    assert len(first.series) == 1
    assert len(first.volumes) == 3
    assert len(first.editions) == 5
    assert len(first.isbn_index) == 5
    assert first.external_index == {
        "wikipedia:61234567": next(iter(first.series)),
    }


@pytest.mark.asyncio
async def test_columns_mirror_records(
    sqlite_engine: Engine, frieren_payload: SourceSeries
) -> None:
    catalog = build_catalog(EntityStore(SqlAlchemySnapshotBackend(sqlite_engine)))
    result = await catalog.integrator.create_entities_from_primary_source(frieren_payload)

    with sqlite_engine.connect() as conn:
        row = conn.execute(select(series_table)).one()
        isbns = set(conn.execute(select(edition_table.c.isbn)).scalars())

    assert row.id == result.series.id
    assert row.normalized_title == result.series.normalized_title
    assert row.media_type is MediaType.MANGA
    assert row.updated_at.tzinfo is not None
    assert "9784098503343" in isbns


@pytest.mark.asyncio
async def test_write_replaces_previous_rows(
    sqlite_engine: Engine, frieren_payload: SourceSeries
) -> None:
    backend = SqlAlchemySnapshotBackend(sqlite_engine)
    catalog = build_catalog(EntityStore(backend))
    await catalog.integrator.create_entities_from_primary_source(frieren_payload)
    snapshot = backend.read()
    assert snapshot is not None

    snapshot.editions.clear()
    snapshot.isbn_index.clear()
    backend.write(snapshot)

    assert _count(sqlite_engine, edition_table) == 0
    assert _count(sqlite_engine, index_entry_table) == 2
    assert _count(sqlite_engine, snapshot_meta_table) == 1


@pytest.mark.asyncio
async def test_store_reload_from_database(
    sqlite_engine: Engine, frieren_payload: SourceSeries
) -> None:
    catalog = build_catalog(EntityStore(SqlAlchemySnapshotBackend(sqlite_engine)))
    result = await catalog.integrator.create_entities_from_primary_source(frieren_payload)

    reopened = EntityStore(SqlAlchemySnapshotBackend(sqlite_engine))
    found = await reopened.get_series_by_wikipedia_id(61234567)
    volumes = await reopened.get_volumes_by_series_id(result.series.id)

    assert found == result.series
    assert [volume.volume_number for volume in volumes] == [1, 2, 3]


def test_unknown_index_rows_are_ignored(
    sqlite_engine: Engine, caplog: pytest.LogCaptureFixture
) -> None:
    backend = SqlAlchemySnapshotBackend(sqlite_engine)
    backend.write(StoreSnapshot())
    with sqlite_engine.begin() as conn:
        conn.execute(
            insert(index_entry_table),
            [{"index_name": "legacy", "key": "k", "target_id": "s_x"}],
        )

    with caplog.at_level(logging.WARNING):
        snapshot = backend.read()

    assert snapshot is not None
    assert snapshot.title_index == {}
    assert "legacy" in caplog.text


def test_newer_database_version_is_rejected(sqlite_engine: Engine) -> None:
    backend = SqlAlchemySnapshotBackend(sqlite_engine)
    backend.write(StoreSnapshot())
    with sqlite_engine.begin() as conn:
        conn.execute(update(snapshot_meta_table).values(version=SNAPSHOT_VERSION + 1))

    with pytest.raises(SnapshotFormatError, match="newer version"):
        backend.read()


def test_invalid_record_raises_format_error(sqlite_engine: Engine) -> None:
    backend = SqlAlchemySnapshotBackend(sqlite_engine)
    backend.write(StoreSnapshot())
    with sqlite_engine.begin() as conn:
        conn.execute(
            insert(series_table),
            [
                {
                    "id": "s_x",
                    "title": "X",
                    "normalized_title": "x",
                    "media_type": MediaType.MANGA,
                    "parent_series_id": None,
                    "updated_at": datetime(2025, 1, 1, tzinfo=UTC),
                    "record": {"id": "s_x"},
                }
            ],
        )

    with pytest.raises(SnapshotFormatError, match="Invalid record"):
        backend.read()

