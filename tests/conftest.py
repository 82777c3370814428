from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

import pytest
from sqlalchemy.engine import Engine  # noqa: TC002

from tankobon.adapters.json_snapshot import JsonSnapshotBackend
from tankobon.adapters.memory import InMemorySnapshotBackend
from tankobon.adapters.sqlalchemy import create_snapshot_engine
from tankobon.app import Catalog, build_catalog
from tankobon.domain.model import SourceSeries, SourceVolume
from tankobon.domain.store import EntityStore

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("TANKOBON_DATA_DIR", str(tmp_path / "data"))
    for name in ("DATABASE_URI", "TANKOBON_STORE_BACKEND", "TANKOBON_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2025, 6, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def memory_backend() -> InMemorySnapshotBackend:
    return InMemorySnapshotBackend()


@pytest.fixture
def store(memory_backend: InMemorySnapshotBackend) -> EntityStore:
    return EntityStore(memory_backend)


@pytest.fixture
def catalog(store: EntityStore) -> Catalog:
    return build_catalog(store)


@pytest.fixture
def json_backend(tmp_path: Path) -> JsonSnapshotBackend:
    return JsonSnapshotBackend(tmp_path / "snapshots" / "entities.json")


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_snapshot_engine("sqlite+pysqlite:///:memory:")
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def frieren_payload() -> SourceSeries:
    return SourceSeries(
        page_id=61234567,
        title="Frieren: Beyond Journey's End",
        author="Kanehito Yamada",
        artist="Tsukasa Abe",
        is_complete=False,
        volumes=(
            SourceVolume(
                volume_number=1,
                japanese_isbn="978-4-09-850334-3",
                japanese_release_date="2020-08-18",
                english_isbn="978-1-9747-2572-5",
                english_release_date="2021-11-09",
            ),
            SourceVolume(
                volume_number=2,
                japanese_isbn="978-4-09-850335-0",
                english_isbn="978-1-9747-2573-2",
            ),
            SourceVolume(volume_number=3, japanese_isbn="978-4-09-850336-7"),
        ),
    )
