"""Volume find-or-create keyed by ``(series_id, volume_number)``."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from tankobon.domain.errors import AmbiguousEditionError, DanglingReferenceError
from tankobon.domain.identity import generate_id, normalize_title
from tankobon.domain.model import EditionInput, EntityKind, Volume, utcnow
from tankobon.domain.resolution.editions import EditionResolver
from tankobon.domain.resolution.locks import KeyedLock, lock_key

if TYPE_CHECKING:
    from collections.abc import Iterable

    from tankobon.domain.model import EditionData, Series, VolumeInput
    from tankobon.domain.store import EntityStore

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class VolumeWithSeries:
    volume: Volume
    series: Series


class VolumeResolver:
    def __init__(
        self,
        store: EntityStore,
        *,
        editions: EditionResolver | None = None,
        locks: KeyedLock | None = None,
    ) -> None:
        self.store = store
        self._locks = locks or KeyedLock()
        self.editions = editions or EditionResolver(store, locks=self._locks)

    async def create_volume(self, data: VolumeInput) -> Volume:
        if await self.store.get_series(data.series_id) is None:
            raise DanglingReferenceError(
                EntityKind.SERIES,
                data.series_id,
                referenced_by=f"volume {data.volume_number}",
            )

        now = utcnow()
        volume = Volume(
            id=generate_id(EntityKind.VOLUME),
            created_at=now,
            updated_at=now,
            series_id=data.series_id,
            volume_number=data.volume_number,
            title=data.title,
        )
        await self.store.save_volume(volume)
        log.info(
            "Created volume %s - Vol. %s%s",
            volume.id,
            volume.volume_number,
            f" {volume.title!r}" if volume.title is not None else "",
        )
        return await self._attach_editions(volume, data.editions)

    async def find_or_create_volume(self, data: VolumeInput) -> Volume:
        """Resolve by ``(series_id, volume_number)``; new editions are unioned in."""

        async with self._locks.hold(lock_key("volume", data.series_id, data.volume_number)):
            existing = await self.store.get_volume_by_series_and_number(
                data.series_id, data.volume_number
            )
            if existing is None:
                return await self.create_volume(data)

            log.debug("Found volume %s - Vol. %s", existing.id, existing.volume_number)
            if data.title:
                await self._reconcile_title(existing, data.title)
            return await self._attach_editions(existing, data.editions)

    async def find_or_create_volumes(self, inputs: Iterable[VolumeInput]) -> list[Volume]:
        """Resolve in input order with one save for the whole batch.

        Not transactional: a failure part-way leaves earlier volumes in place.
        """

        results: list[Volume] = []
        created = 0
        async with self.store.batch():
            for data in inputs:
                known = await self.store.get_volume_by_series_and_number(
                    data.series_id, data.volume_number
                )
                if known is None:
                    created += 1
                results.append(await self.find_or_create_volume(data))
        log.info("Found %s existing volumes, created %s new", len(results) - created, created)
        return results

    async def link_edition_to_volume(self, volume_id: str, edition_id: str) -> None:
        await self.editions.link_volume_to_edition(volume_id, edition_id)

    async def get_volumes_with_series(self, isbn: str) -> list[VolumeWithSeries]:
        """Every (volume, series) pair the edition with ``isbn`` belongs to."""

        edition = await self.store.get_edition_by_isbn(isbn)
        if edition is None:
            return []
        pairs: list[VolumeWithSeries] = []
        for volume_id in edition.volume_ids:
            volume = await self.store.get_volume(volume_id)
            if volume is None:
                log.warning("Edition %s links unknown volume %s", edition.id, volume_id)
                continue
            series = await self.store.get_series(volume.series_id)
            if series is None:
                log.warning("Volume %s has invalid series_id: %s", volume.id, volume.series_id)
                continue
            pairs.append(VolumeWithSeries(volume=volume, series=series))
        return pairs

    async def get_volume_with_series(
        self, isbn: str, *, volume_number: int | None = None
    ) -> VolumeWithSeries | None:
        """Resolve an ISBN to one volume and its series.

        For an omnibus edition the caller must say which volume it means via
        ``volume_number``; otherwise ``AmbiguousEditionError`` is raised.
        """

        candidates = await self.get_volumes_with_series(isbn)
        if volume_number is not None:
            candidates = [c for c in candidates if c.volume.volume_number == volume_number]
        if not candidates:
            return None
        if len(candidates) > 1:
            raise AmbiguousEditionError(isbn, [c.volume.id for c in candidates])
        return candidates[0]

    async def _attach_editions(self, volume: Volume, editions: list[EditionData]) -> Volume:
        if not editions:
            return volume
        before = len(volume.edition_ids)
        for data in editions:
            await self.editions.find_or_create_edition(
                EditionInput.from_data(data, volume_ids=[volume.id])
            )
        refreshed = await self.store.get_volume(volume.id)
        if refreshed is None:  # pragma: no cover - saved above
            return volume
        if len(refreshed.edition_ids) != before:
            log.info(
                "Updated edition links for %s: now has %s editions",
                refreshed.id,
                len(refreshed.edition_ids),
            )
        return refreshed

    async def _reconcile_title(self, volume: Volume, title: str) -> None:
        if volume.title is None:
            volume.title = title
            volume.touch()
            await self.store.save_volume(volume)
            return
        if normalize_title(volume.title) != normalize_title(title):
            # TODO: model special/fractional volumes so these stop sharing a number
            log.warning(
                "Volume %s (series %s, Vol. %s) is titled %r; source reports %r. "
                "Keeping the stored title",
                volume.id,
                volume.series_id,
                volume.volume_number,
                volume.title,
                title,
            )
