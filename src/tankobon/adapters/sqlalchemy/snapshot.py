"""Snapshot backend that stores the entity graph in a relational database."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy import create_engine, delete, insert, select
from sqlalchemy.pool import StaticPool

from tankobon.adapters.snapshot_codec import (
    check_version,
    dump_record,
    edition_adapter,
    load_record,
    series_adapter,
    volume_adapter,
)
from tankobon.adapters.sqlalchemy.mappings import (
    create_all_tables,
    edition_table,
    index_entry_table,
    series_table,
    snapshot_meta_table,
    volume_table,
)
from tankobon.domain.model import utcnow
from tankobon.domain.ports.persistence import StoreSnapshot

if TYPE_CHECKING:
    from sqlalchemy.engine import Connection, Engine

log = logging.getLogger(__name__)

TITLE_INDEX = "title"
EXTERNAL_INDEX = "external"
ISBN_INDEX = "isbn"


def create_snapshot_engine(database_uri: str) -> Engine:
    """Create an engine usable from the worker threads the store writes on."""

    if database_uri.startswith("sqlite") and ":memory:" in database_uri:
        return create_engine(
            database_uri,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(database_uri)


class SqlAlchemySnapshotBackend:
    """Rewrites every table inside one transaction per snapshot.

    Readers either see the previous snapshot or the new one, never a mix.
    """

    def __init__(self, engine: Engine, *, create_tables: bool = True) -> None:
        self.engine = engine
        if create_tables:
            create_all_tables(engine)

    def read(self) -> StoreSnapshot | None:
        source = f"database {self.engine.url.render_as_string(hide_password=True)}"
        with self.engine.connect() as conn:
            meta = conn.execute(
                select(snapshot_meta_table.c.version).where(snapshot_meta_table.c.id == 1)
            ).first()
            if meta is None:
                return None
            check_version(meta.version, source=source)

            snapshot = StoreSnapshot(version=meta.version)
            for row in conn.execute(select(series_table.c.record)):
                series = load_record(series_adapter, row.record, source=source)
                snapshot.series[series.id] = series
            for row in conn.execute(select(volume_table.c.record)):
                volume = load_record(volume_adapter, row.record, source=source)
                snapshot.volumes[volume.id] = volume
            for row in conn.execute(select(edition_table.c.record)):
                edition = load_record(edition_adapter, row.record, source=source)
                snapshot.editions[edition.id] = edition

            indices = {
                TITLE_INDEX: snapshot.title_index,
                EXTERNAL_INDEX: snapshot.external_index,
                ISBN_INDEX: snapshot.isbn_index,
            }
            for row in conn.execute(select(index_entry_table)):
                target = indices.get(row.index_name)
                if target is None:
                    log.warning("Ignoring unknown index %r in %s", row.index_name, source)
                    continue
                target[row.key] = row.target_id

        log.debug(
            "Read snapshot from %s: series=%s volumes=%s editions=%s",
            source,
            len(snapshot.series),
            len(snapshot.volumes),
            len(snapshot.editions),
        )
        return snapshot

    def write(self, snapshot: StoreSnapshot) -> None:
        with self.engine.begin() as conn:
            for table in (
                series_table,
                volume_table,
                edition_table,
                index_entry_table,
                snapshot_meta_table,
            ):
                conn.execute(delete(table))
            self._insert_entities(conn, snapshot)
            self._insert_indices(conn, snapshot)
            conn.execute(
                insert(snapshot_meta_table),
                [{"id": 1, "version": snapshot.version, "written_at": utcnow()}],
            )
        log.debug(
            "Wrote snapshot: series=%s volumes=%s editions=%s",
            len(snapshot.series),
            len(snapshot.volumes),
            len(snapshot.editions),
        )

    @staticmethod
    def _insert_entities(conn: Connection, snapshot: StoreSnapshot) -> None:
        series_rows: list[dict[str, Any]] = [
            {
                "id": series.id,
                "title": series.title,
                "normalized_title": series.normalized_title,
                "media_type": series.media_type,
                "parent_series_id": series.parent_series_id,
                "updated_at": series.updated_at,
                "record": dump_record(series_adapter, series),
            }
            for series in snapshot.series.values()
        ]
        volume_rows: list[dict[str, Any]] = [
            {
                "id": volume.id,
                "series_id": volume.series_id,
                "volume_number": volume.volume_number,
                "updated_at": volume.updated_at,
                "record": dump_record(volume_adapter, volume),
            }
            for volume in snapshot.volumes.values()
        ]
        edition_rows: list[dict[str, Any]] = [
            {
                "id": edition.id,
                "isbn": edition.isbn,
                "format": edition.format,
                "language": edition.language,
                "updated_at": edition.updated_at,
                "record": dump_record(edition_adapter, edition),
            }
            for edition in snapshot.editions.values()
        ]
        for table, rows in (
            (series_table, series_rows),
            (volume_table, volume_rows),
            (edition_table, edition_rows),
        ):
            if rows:
                conn.execute(insert(table), rows)

    @staticmethod
    def _insert_indices(conn: Connection, snapshot: StoreSnapshot) -> None:
        rows = [
            {"index_name": name, "key": key, "target_id": target_id}
            for name, index in (
                (TITLE_INDEX, snapshot.title_index),
                (EXTERNAL_INDEX, snapshot.external_index),
                (ISBN_INDEX, snapshot.isbn_index),
            )
            for key, target_id in index.items()
        ]
        if rows:
            conn.execute(insert(index_entry_table), rows)
