"""Edition find-or-create and the Volume <-> Edition many-to-many links."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from tankobon.domain.errors import DanglingReferenceError, NotFoundError
from tankobon.domain.identity import generate_id, normalize_isbn
from tankobon.domain.model import Edition, EditionInput, EntityKind, utcnow
from tankobon.domain.resolution.locks import KeyedLock, lock_key

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from tankobon.domain.store import EntityStore

log = logging.getLogger(__name__)


def merge_edition_inputs(inputs: Iterable[EditionInput]) -> list[EditionInput]:
    """Collapse inputs sharing an ISBN, unioning their volume ids (first seen wins)."""

    by_isbn: dict[str, EditionInput] = {}
    for data in inputs:
        isbn = normalize_isbn(data.isbn)
        existing = by_isbn.get(isbn)
        if existing is None:
            by_isbn[isbn] = EditionInput(
                isbn=isbn,
                format=data.format,
                language=data.language,
                volume_ids=list(dict.fromkeys(data.volume_ids)),
                release_date=data.release_date,
            )
            continue
        for volume_id in data.volume_ids:
            if volume_id not in existing.volume_ids:
                existing.volume_ids.append(volume_id)
    return list(by_isbn.values())


class EditionResolver:
    """Resolves editions by ISBN and keeps both sides of each link in step."""

    def __init__(self, store: EntityStore, *, locks: KeyedLock | None = None) -> None:
        self.store = store
        self._locks = locks or KeyedLock()

    async def create_edition(self, data: EditionInput) -> Edition:
        volume_ids = list(dict.fromkeys(data.volume_ids))
        await self._require_volumes(volume_ids, referenced_by=f"edition {data.isbn}")

        now = utcnow()
        edition = Edition(
            id=generate_id(EntityKind.EDITION),
            created_at=now,
            updated_at=now,
            isbn=data.isbn,
            format=data.format,
            language=data.language,
            release_date=data.release_date,
            volume_ids=volume_ids,
        )
        async with self.store.batch():
            await self.store.save_edition(edition)
            await self._link_volume_sides(edition.id, volume_ids)
        log.info(
            "Created edition %s - ISBN %s (%s/%s) for %s volume(s)",
            edition.id,
            edition.isbn,
            edition.language,
            edition.format,
            len(edition.volume_ids),
        )
        return edition

    async def find_or_create_edition(self, data: EditionInput) -> Edition:
        """Return the edition for ``data.isbn``, creating it when unseen.

        An existing edition keeps its facts; only new volume links are attached.
        """

        isbn = normalize_isbn(data.isbn)
        async with self._locks.hold(lock_key("edition:isbn", isbn)):
            existing = await self.store.get_edition_by_isbn(isbn)
            if existing is None:
                return await self.create_edition(data)

            log.debug("Found edition %s - ISBN %s", existing.id, existing.isbn)
            new_volume_ids = [
                v for v in dict.fromkeys(data.volume_ids) if v not in existing.volume_ids
            ]
            if not new_volume_ids:
                return existing
            await self._require_volumes(new_volume_ids, referenced_by=f"edition {isbn}")
            async with self.store.batch():
                for volume_id in new_volume_ids:
                    existing.add_volume(volume_id)
                existing.touch()
                await self.store.save_edition(existing)
                await self._link_volume_sides(existing.id, new_volume_ids)
            log.info(
                "Updated edition %s with new volumes: %s total",
                existing.id,
                len(existing.volume_ids),
            )
            return existing

    async def find_or_create_editions(self, inputs: Iterable[EditionInput]) -> list[Edition]:
        return [await self.find_or_create_edition(data) for data in merge_edition_inputs(inputs)]

    async def link_volume_to_edition(self, volume_id: str, edition_id: str) -> None:
        """Add the cross reference on both sides; a no-op when already linked."""

        edition = await self.store.get_edition(edition_id)
        if edition is None:
            raise NotFoundError(EntityKind.EDITION, edition_id)
        if await self.store.get_volume(volume_id) is None:
            raise NotFoundError(EntityKind.VOLUME, volume_id)

        async with self.store.batch():
            if edition.add_volume(volume_id):
                edition.touch()
                await self.store.save_edition(edition)
            await self._link_volume_sides(edition_id, [volume_id])
        log.debug("Linked volume %s to edition %s", volume_id, edition_id)

    async def _link_volume_sides(self, edition_id: str, volume_ids: Sequence[str]) -> None:
        now = utcnow()
        for volume_id in volume_ids:
            volume = await self.store.get_volume(volume_id)
            if volume is None:
                raise NotFoundError(EntityKind.VOLUME, volume_id)
            if volume.add_edition(edition_id):
                volume.touch(now)
                await self.store.save_volume(volume)

    async def _require_volumes(self, volume_ids: Sequence[str], *, referenced_by: str) -> None:
        for volume_id in volume_ids:
            if await self.store.get_volume(volume_id) is None:
                raise DanglingReferenceError(
                    EntityKind.VOLUME, volume_id, referenced_by=referenced_by
                )
