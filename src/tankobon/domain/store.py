"""Indexed in-memory entity store backed by whole-snapshot persistence.

The store is the single source of truth for Series, Volumes and Editions. It keeps
the canonical records in memory, maintains the secondary indices (normalized
title, external id, ISBN) and rewrites the complete snapshot on every save, so
the indices can never be persisted out of step with the records they point at.

Getters return detached clones. Callers mutate a clone and hand it back through
one of the ``save_*`` mutators.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Self

from tankobon.domain.identity import normalize_isbn, normalize_title
from tankobon.domain.model import ExternalNamespace
from tankobon.domain.ports.persistence import StoreSnapshot

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterable
    from types import TracebackType

    from tankobon.domain.model import Edition, Series, Volume
    from tankobon.domain.ports.persistence import SnapshotBackend

log = logging.getLogger(__name__)


def external_key(namespace: ExternalNamespace | str, value: object) -> str:
    return f"{namespace}:{value}"


@dataclass(frozen=True, slots=True)
class StoreStats:
    series_count: int
    volume_count: int
    edition_count: int
    isbn_index_count: int
    external_index_count: int
    title_index_count: int


@dataclass(slots=True)
class _Cache:
    series: dict[str, Series] = field(default_factory=dict)
    volumes: dict[str, Volume] = field(default_factory=dict)
    editions: dict[str, Edition] = field(default_factory=dict)
    title_index: dict[str, str] = field(default_factory=dict)
    external_index: dict[str, str] = field(default_factory=dict)
    isbn_index: dict[str, str] = field(default_factory=dict)
    # derived only, rebuilt on load
    volume_number_index: dict[tuple[str, int], str] = field(default_factory=dict)
    volumes_by_series: dict[str, list[str]] = field(default_factory=dict)
    editions_by_volume: dict[str, list[str]] = field(default_factory=dict)

    @classmethod
    def from_snapshot(cls, snapshot: StoreSnapshot) -> _Cache:
        cache = cls(
            series=dict(snapshot.series),
            volumes=dict(snapshot.volumes),
            editions=dict(snapshot.editions),
            title_index={k: v for k, v in snapshot.title_index.items() if v in snapshot.series},
            external_index={
                k: v for k, v in snapshot.external_index.items() if v in snapshot.series
            },
            isbn_index={k: v for k, v in snapshot.isbn_index.items() if v in snapshot.editions},
        )
        for series in cache.series.values():
            cache.index_series(series)
        for volume in cache.volumes.values():
            cache.index_volume(volume)
        for edition in cache.editions.values():
            cache.index_edition(edition, previous=None)
        return cache

    def to_snapshot(self) -> StoreSnapshot:
        return StoreSnapshot(
            series={key: value.clone() for key, value in self.series.items()},
            volumes={key: value.clone() for key, value in self.volumes.items()},
            editions={key: value.clone() for key, value in self.editions.items()},
            title_index=dict(self.title_index),
            external_index=dict(self.external_index),
            isbn_index=dict(self.isbn_index),
        )

    def index_series(self, series: Series) -> None:
        if series.normalized_title:
            self.title_index.setdefault(series.normalized_title, series.id)
        for namespace, value in series.external_ids.items():
            key = external_key(namespace, value)
            owner = self.external_index.setdefault(key, series.id)
            if owner != series.id:
                log.warning(
                    "External id %s already indexed to %s; not re-pointing to %s",
                    key,
                    owner,
                    series.id,
                )

    def index_volume(self, volume: Volume) -> None:
        self.volume_number_index.setdefault((volume.series_id, volume.volume_number), volume.id)
        owned = self.volumes_by_series.setdefault(volume.series_id, [])
        if volume.id not in owned:
            owned.append(volume.id)

    def index_edition(self, edition: Edition, *, previous: Edition | None) -> None:
        owner = self.isbn_index.setdefault(edition.isbn, edition.id)
        if owner != edition.id:
            log.warning(
                "ISBN %s already indexed to edition %s; not re-pointing to %s",
                edition.isbn,
                owner,
                edition.id,
            )
        if previous is not None:
            for volume_id in set(previous.volume_ids).difference(edition.volume_ids):
                linked = self.editions_by_volume.get(volume_id, [])
                if edition.id in linked:
                    linked.remove(edition.id)
        for volume_id in edition.volume_ids:
            linked = self.editions_by_volume.setdefault(volume_id, [])
            if edition.id not in linked:
                linked.append(edition.id)


class EntityStore:
    """Durable, indexed storage for all three entity kinds.

    The composition root owns one instance and passes it to the resolvers::

        async with EntityStore(JsonSnapshotBackend(path)) as store:
            series = await store.get_series("s_...")

    Every mutator persists the full snapshot before returning, unless it runs
    inside ``batch()``, in which case a single save happens when the outermost
    batch of the calling task exits. The store does not check referential integrity.
    """

    def __init__(self, backend: SnapshotBackend) -> None:
        self._backend = backend
        self._cache: _Cache | None = None
        self._load_lock = asyncio.Lock()
        self._write_lock = asyncio.Lock()
        # per task: only code running inside the batch defers its save
        self._batch_depth: ContextVar[int] = ContextVar(f"store_batch_{id(self)}", default=0)
        self._dirty = False

    # Lifecycle ---------------------------------------------------------------

    async def open(self) -> Self:
        await self.load()
        return self

    async def close(self) -> None:
        if self._cache is not None and self._dirty:
            await self.save()
        self._cache = None

    async def __aenter__(self) -> Self:
        return await self.open()

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        await self.close()

    @property
    def is_loaded(self) -> bool:
        return self._cache is not None

    async def load(self) -> None:
        """Read the persisted snapshot into memory; a no-op once loaded."""

        if self._cache is not None:
            return
        async with self._load_lock:
            if self._cache is not None:
                return
            snapshot = await asyncio.to_thread(self._backend.read)
            if snapshot is None:
                log.info("No persisted snapshot found; starting with an empty store")
                snapshot = StoreSnapshot()
            self._cache = _Cache.from_snapshot(snapshot)
            log.debug(
                "Loaded store: series=%s volumes=%s editions=%s",
                len(self._cache.series),
                len(self._cache.volumes),
                len(self._cache.editions),
            )

    def clear_cache(self) -> None:
        """Drop the in-memory cache so the next ``load()`` re-reads durable storage."""

        self._cache = None
        self._dirty = False

    async def save(self) -> None:
        """Write the whole snapshot; concurrent saves are serialized."""

        cache = await self._loaded()
        async with self._write_lock:
            snapshot = cache.to_snapshot()
            self._dirty = False
            try:
                await asyncio.to_thread(self._backend.write, snapshot)
            except BaseException:
                self._dirty = True
                raise

    @asynccontextmanager
    async def batch(self) -> AsyncIterator[Self]:
        """Defer persistence of every mutation inside the block to one save."""

        await self.load()
        depth = self._batch_depth.get()
        token = self._batch_depth.set(depth + 1)
        try:
            yield self
        finally:
            self._batch_depth.reset(token)
            if depth == 0 and self._dirty:
                await self.save()

    async def _loaded(self) -> _Cache:
        await self.load()
        if self._cache is None:  # cleared while awaiting the load lock
            raise RuntimeError("Entity store cache was cleared during load")
        return self._cache

    async def _persist(self) -> None:
        if self._batch_depth.get() > 0:
            self._dirty = True
            return
        await self.save()

    # Series ------------------------------------------------------------------

    async def get_series(self, series_id: str) -> Series | None:
        cache = await self._loaded()
        series = cache.series.get(series_id)
        return series.clone() if series is not None else None

    async def get_series_by_title(self, title: str) -> Series | None:
        cache = await self._loaded()
        series_id = cache.title_index.get(normalize_title(title))
        if series_id is None:
            return None
        return await self.get_series(series_id)

    async def get_series_by_external_id(
        self, namespace: ExternalNamespace, value: object
    ) -> Series | None:
        cache = await self._loaded()
        series_id = cache.external_index.get(external_key(namespace, value))
        if series_id is None:
            return None
        return await self.get_series(series_id)

    async def get_series_by_wikipedia_id(self, page_id: int | str) -> Series | None:
        return await self.get_series_by_external_id(ExternalNamespace.WIKIPEDIA, page_id)

    async def list_series(self) -> list[Series]:
        cache = await self._loaded()
        return [series.clone() for series in cache.series.values()]

    async def save_series(self, series: Series) -> None:
        cache = await self._loaded()
        stored = series.clone()
        cache.series[stored.id] = stored
        cache.index_series(stored)
        await self._persist()

    # Volumes -----------------------------------------------------------------

    async def get_volume(self, volume_id: str) -> Volume | None:
        cache = await self._loaded()
        volume = cache.volumes.get(volume_id)
        return volume.clone() if volume is not None else None

    async def get_volume_by_series_and_number(
        self, series_id: str, volume_number: int
    ) -> Volume | None:
        cache = await self._loaded()
        volume_id = cache.volume_number_index.get((series_id, volume_number))
        if volume_id is None:
            return None
        return await self.get_volume(volume_id)

    async def get_volumes_by_series_id(self, series_id: str) -> list[Volume]:
        """Volumes in the series' reading order, then any unlisted ones by number."""

        cache = await self._loaded()
        series = cache.series.get(series_id)
        ordered = list(series.volume_ids) if series is not None else []
        listed = set(ordered)
        unlisted = [
            cache.volumes[volume_id]
            for volume_id in cache.volumes_by_series.get(series_id, [])
            if volume_id not in listed
        ]
        unlisted.sort(key=lambda volume: volume.volume_number)
        ordered.extend(volume.id for volume in unlisted)
        return [cache.volumes[v].clone() for v in ordered if v in cache.volumes]

    async def save_volume(self, volume: Volume) -> None:
        await self.save_volumes([volume])

    async def save_volumes(self, volumes: Iterable[Volume]) -> None:
        cache = await self._loaded()
        for volume in volumes:
            stored = volume.clone()
            cache.volumes[stored.id] = stored
            cache.index_volume(stored)
        await self._persist()

    # Editions ----------------------------------------------------------------

    async def get_edition(self, edition_id: str) -> Edition | None:
        cache = await self._loaded()
        edition = cache.editions.get(edition_id)
        return edition.clone() if edition is not None else None

    async def get_edition_by_isbn(self, isbn: str) -> Edition | None:
        cache = await self._loaded()
        edition_id = cache.isbn_index.get(normalize_isbn(isbn))
        if edition_id is None:
            return None
        return await self.get_edition(edition_id)

    async def get_editions_by_volume_id(self, volume_id: str) -> list[Edition]:
        """Editions the volume links, plus editions that claim the volume."""

        cache = await self._loaded()
        volume = cache.volumes.get(volume_id)
        edition_ids = list(volume.edition_ids) if volume is not None else []
        for edition_id in cache.editions_by_volume.get(volume_id, []):
            if edition_id not in edition_ids:
                edition_ids.append(edition_id)
        return [cache.editions[e].clone() for e in edition_ids if e in cache.editions]

    async def save_edition(self, edition: Edition) -> None:
        await self.save_editions([edition])

    async def save_editions(self, editions: Iterable[Edition]) -> None:
        cache = await self._loaded()
        for edition in editions:
            stored = edition.clone()
            previous = cache.editions.get(stored.id)
            cache.editions[stored.id] = stored
            cache.index_edition(stored, previous=previous)
        await self._persist()

    # Diagnostics -------------------------------------------------------------

    async def stats(self) -> StoreStats:
        cache = await self._loaded()
        return StoreStats(
            series_count=len(cache.series),
            volume_count=len(cache.volumes),
            edition_count=len(cache.editions),
            isbn_index_count=len(cache.isbn_index),
            external_index_count=len(cache.external_index),
            title_index_count=len(cache.title_index),
        )
