"""Application orchestration entry points."""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from pydantic import TypeAdapter

from tankobon.adapters.catalog import (
    CatalogSeries,
    VolumeAvailabilityPayload,
    catalog_url,
    copy_totals,
    edition_data,
    parse_catalog_series,
)
from tankobon.adapters.json_snapshot import JsonSnapshotBackend
from tankobon.adapters.sqlalchemy import SqlAlchemySnapshotBackend, create_snapshot_engine
from tankobon.adapters.wiki import WikiSeries, parse_wiki_series
from tankobon.config import StoreBackend, get_database_config, get_storage_config
from tankobon.domain.availability import get_full_volume_display_info
from tankobon.domain.integration import CatalogIntegrator, IngestResult
from tankobon.domain.model import Volume
from tankobon.domain.resolution import EditionResolver, KeyedLock, SeriesResolver, VolumeResolver
from tankobon.domain.store import EntityStore

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from datetime import datetime
    from pathlib import Path

    from tankobon.config import StorageConfig
    from tankobon.domain.availability import CopyTotals, VolumeDisplayInfo
    from tankobon.domain.model import Edition, Series
    from tankobon.domain.ports.persistence import SnapshotBackend
    from tankobon.domain.store import StoreStats

log = getLogger(__name__)

_wiki_payloads: TypeAdapter[list[WikiSeries] | WikiSeries] = TypeAdapter(
    list[WikiSeries] | WikiSeries
)
_catalog_payloads: TypeAdapter[list[CatalogSeries] | CatalogSeries] = TypeAdapter(
    list[CatalogSeries] | CatalogSeries
)


@dataclass(slots=True)
class Catalog:
    """The store plus the resolvers wired to it, sharing one lock table."""

    store: EntityStore
    series: SeriesResolver
    volumes: VolumeResolver
    editions: EditionResolver
    integrator: CatalogIntegrator


@dataclass(slots=True)
class EntityView:
    entity: Series | Volume
    volumes: list[Volume] = field(default_factory=list)
    editions: dict[str, list[Edition]] = field(default_factory=dict)


@dataclass(slots=True)
class VolumeStatusReport:
    info: VolumeDisplayInfo
    copy_totals: CopyTotals | None
    catalog_url: str | None


def build_snapshot_backend(config: StorageConfig | None = None) -> SnapshotBackend:
    storage = config or get_storage_config()
    if storage.backend is StoreBackend.SQLALCHEMY:
        database = get_database_config(storage=storage)
        log.debug("Using SQLAlchemy snapshot backend")
        return SqlAlchemySnapshotBackend(create_snapshot_engine(database.uri))
    path = storage.snapshot_path()
    log.debug("Using JSON snapshot backend at %s", path)
    return JsonSnapshotBackend(path)


def build_catalog(store: EntityStore) -> Catalog:
    locks = KeyedLock()
    editions = EditionResolver(store, locks=locks)
    volumes = VolumeResolver(store, editions=editions, locks=locks)
    series = SeriesResolver(store, locks=locks)
    return Catalog(
        store=store,
        series=series,
        volumes=volumes,
        editions=editions,
        integrator=CatalogIntegrator(series, volumes, store),
    )


@asynccontextmanager
async def open_catalog(*, backend: SnapshotBackend | None = None) -> AsyncIterator[Catalog]:
    async with EntityStore(backend or build_snapshot_backend()) as store:
        yield build_catalog(store)


async def ingest_wiki_file(
    path: Path, *, backend: SnapshotBackend | None = None
) -> list[IngestResult]:
    """Ingest one wiki series payload, or a JSON array of them, from ``path``."""

    parsed = _wiki_payloads.validate_json(path.read_bytes())
    payloads = parsed if isinstance(parsed, list) else [parsed]
    log.info("Ingesting %s wiki series from %s", len(payloads), path)
    results: list[IngestResult] = []
    async with open_catalog(backend=backend) as catalog:
        for payload in payloads:
            results.append(
                await catalog.integrator.create_entities_from_primary_source(
                    parse_wiki_series(payload)
                )
            )
    return results


async def ingest_catalog_file(
    path: Path, *, backend: SnapshotBackend | None = None
) -> list[IngestResult]:
    parsed = _catalog_payloads.validate_json(path.read_bytes())
    payloads = parsed if isinstance(parsed, list) else [parsed]
    log.info("Ingesting %s catalog series from %s", len(payloads), path)
    results: list[IngestResult] = []
    async with open_catalog(backend=backend) as catalog:
        for payload in payloads:
            record = parse_catalog_series(payload)
            results.append(
                await catalog.integrator.create_entities_from_fallback_source(
                    record.title, record.volumes, record.media_type
                )
            )
    return results


async def lookup_entity(
    id_or_title: str, *, backend: SnapshotBackend | None = None
) -> EntityView | None:
    async with open_catalog(backend=backend) as catalog:
        entity = await catalog.integrator.resolve_entity(id_or_title)
        if entity is None:
            return None
        if isinstance(entity, Volume):
            return EntityView(
                entity=entity,
                editions={
                    entity.id: await catalog.integrator.get_volume_edition_data(entity.id)
                },
            )
        volumes = await catalog.integrator.get_series_volumes(entity.id)
        editions = {
            volume.id: await catalog.integrator.get_volume_edition_data(volume.id)
            for volume in volumes
        }
        return EntityView(entity=entity, volumes=volumes, editions=editions)


async def store_stats(*, backend: SnapshotBackend | None = None) -> StoreStats:
    async with open_catalog(backend=backend) as catalog:
        return await catalog.store.stats()


def volume_status(path: Path, *, now: datetime | None = None) -> VolumeStatusReport:
    """Display status for a volume availability payload; touches no store."""

    payload = VolumeAvailabilityPayload.model_validate_json(path.read_bytes())
    totals = copy_totals(payload)
    url = catalog_url(payload)
    info = get_full_volume_display_info(edition_data(payload), totals, url, now=now)
    return VolumeStatusReport(info=info, copy_totals=totals, catalog_url=url)
