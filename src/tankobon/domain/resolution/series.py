"""Series find-or-create, linking and media-type classification."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

from tankobon.domain.errors import DanglingReferenceError, NotFoundError
from tankobon.domain.identity import generate_id, normalize_title
from tankobon.domain.model import (
    EntityKind,
    ExternalNamespace,
    MediaType,
    Series,
    SeriesStatus,
    utcnow,
)
from tankobon.domain.resolution.locks import KeyedLock, lock_key

if TYPE_CHECKING:
    from collections.abc import Sequence

    from tankobon.domain.model import SeriesInput, SeriesRelationship
    from tankobon.domain.store import EntityStore

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class MediaTypeHints:
    """Classification supplied by an upstream source; outranks title sniffing."""

    is_light_novel: bool = False
    is_manga: bool = False

    @classmethod
    def from_media_type(cls, media_type: MediaType | None) -> MediaTypeHints:
        return cls(
            is_light_novel=media_type is MediaType.LIGHT_NOVEL,
            is_manga=media_type is MediaType.MANGA,
        )


def detect_media_type(title: str, hints: MediaTypeHints | None = None) -> MediaType:
    if hints is not None and hints.is_light_novel:
        return MediaType.LIGHT_NOVEL
    if hints is not None and hints.is_manga:
        return MediaType.MANGA
    lower_title = title.lower()
    if "light novel" in lower_title:
        return MediaType.LIGHT_NOVEL
    if "manga" in lower_title:
        return MediaType.MANGA
    if "artbook" in lower_title or "art book" in lower_title:
        return MediaType.ARTBOOK
    if "guidebook" in lower_title or "guide book" in lower_title:
        return MediaType.GUIDEBOOK
    return MediaType.MANGA


def _title_key(title: str) -> tuple[str, ...]:
    return lock_key("series:title", normalize_title(title))


def _id_key(series_id: str) -> tuple[str, ...]:
    return lock_key("series:id", series_id)


class SeriesResolver:
    """Find-or-create and linking operations for Series, built on the store."""

    def __init__(self, store: EntityStore, *, locks: KeyedLock | None = None) -> None:
        self.store = store
        self._locks = locks or KeyedLock()

    async def create_series(self, data: SeriesInput) -> Series:
        if data.parent_series_id is not None:
            parent = await self.store.get_series(data.parent_series_id)
            if parent is None:
                raise DanglingReferenceError(
                    EntityKind.SERIES, data.parent_series_id, referenced_by=f"series {data.title!r}"
                )

        now = utcnow()
        series = Series(
            id=generate_id(EntityKind.SERIES),
            created_at=now,
            updated_at=now,
            title=data.title,
            media_type=data.media_type,
            external_ids=dict(data.external_ids),
            volume_ids=list(data.volume_ids),
            related_series_ids=list(dict.fromkeys(data.related_series_ids)),
            parent_series_id=data.parent_series_id,
            relationship=data.relationship,
            author=data.author,
            artist=data.artist,
            description=data.description,
            status=data.status or SeriesStatus.UNKNOWN,
        )
        await self.store.save_series(series)
        log.info(
            "Created series %s %r%s",
            series.id,
            series.title,
            f" ({series.relationship})" if series.relationship else "",
        )
        return series

    async def find_or_create_series_by_external_id(
        self,
        namespace: ExternalNamespace,
        value: str | int,
        data: SeriesInput,
    ) -> Series:
        """Resolve by external id, falling back to the normalized title.

        A title match that lacks an id in ``namespace`` gets the id backfilled. A
        title match carrying a different id in ``namespace`` is another work with
        the same name, so a new series is created.
        """

        external_value = str(value)
        async with self._locks.hold(
            lock_key("series:external", namespace, external_value), _title_key(data.title)
        ):
            existing = await self.store.get_series_by_external_id(namespace, external_value)
            if existing is not None:
                log.debug("Found series %s by %s id %s", existing.id, namespace, external_value)
                return existing

            by_title = await self.store.get_series_by_title(data.title)
            if by_title is not None:
                current = by_title.external_id(namespace)
                if current is None:
                    return await self._backfill_external_id(by_title.id, namespace, external_value)
                log.info(
                    "Series %s matches title %r but has %s id %s, not %s; creating a new series",
                    by_title.id,
                    data.title,
                    namespace,
                    current,
                    external_value,
                )

            external_ids = {**data.external_ids, namespace: external_value}
            return await self.create_series(_with_external_ids(data, external_ids))

    async def find_or_create_series_by_wikipedia(
        self, page_id: int | str, data: SeriesInput
    ) -> Series:
        return await self.find_or_create_series_by_external_id(
            ExternalNamespace.WIKIPEDIA, page_id, data
        )

    async def find_or_create_series_by_title(self, data: SeriesInput) -> Series:
        """Resolve by normalized title only; for sources without durable ids."""

        async with self._locks.hold(_title_key(data.title)):
            existing = await self.store.get_series_by_title(data.title)
            if existing is not None:
                log.debug("Found series %s by title %r", existing.id, existing.title)
                return existing
            return await self.create_series(data)

    async def update_series_volumes(self, series_id: str, volume_ids: Sequence[str]) -> Series:
        """Replace the series' ordered volume list wholesale."""

        async with self._locks.hold(_id_key(series_id)):
            series = await self._require(series_id)
            series.volume_ids = list(volume_ids)
            series.touch()
            await self.store.save_series(series)
        log.info("Updated volumes for %s: %s volumes", series_id, len(series.volume_ids))
        return series

    async def link_related_series(self, parent_id: str, related_id: str) -> Series:
        async with self._locks.hold(_id_key(parent_id)):
            parent = await self._require(parent_id)
            if parent.add_related(related_id):
                parent.touch()
                await self.store.save_series(parent)
                log.info("Linked related series %s to parent %s", related_id, parent_id)
        return parent

    async def attach_parent(
        self,
        series_id: str,
        parent_id: str,
        relationship: SeriesRelationship | None,
    ) -> Series:
        """Move an unlinked series to linked; an existing parent is never replaced."""

        async with self._locks.hold(_id_key(series_id)):
            series = await self._require(series_id)
            await self._require(parent_id)
            if series.parent_series_id is not None:
                if series.parent_series_id != parent_id:
                    log.debug(
                        "Series %s already linked to %s; ignoring parent %s",
                        series_id,
                        series.parent_series_id,
                        parent_id,
                    )
                return series
            if await self.would_create_cycle(series_id, parent_id):
                log.warning(
                    "Refusing to link %s under %s: the parent chain already contains it",
                    series_id,
                    parent_id,
                )
                return series
            series.parent_series_id = parent_id
            series.relationship = relationship
            series.touch()
            await self.store.save_series(series)
        log.info("Series %s is now a %s of %s", series_id, relationship, parent_id)
        return series

    async def would_create_cycle(self, series_id: str, parent_id: str) -> bool:
        """Whether making ``parent_id`` the parent of ``series_id`` closes a loop."""

        seen: set[str] = set()
        current: str | None = parent_id
        while current is not None and current not in seen:
            if current == series_id:
                return True
            seen.add(current)
            ancestor = await self.store.get_series(current)
            current = ancestor.parent_series_id if ancestor is not None else None
        return current is not None

    async def _backfill_external_id(
        self, series_id: str, namespace: ExternalNamespace, value: str
    ) -> Series:
        async with self._locks.hold(_id_key(series_id)):
            series = await self._require(series_id)
            if series.external_id(namespace) is None:
                series.external_ids[namespace] = value
                series.touch()
                await self.store.save_series(series)
                log.info("Backfilled %s id %s onto series %s", namespace, value, series.id)
        return series

    async def _require(self, series_id: str) -> Series:
        series = await self.store.get_series(series_id)
        if series is None:
            raise NotFoundError(EntityKind.SERIES, series_id)
        return series


def _with_external_ids(
    data: SeriesInput, external_ids: dict[ExternalNamespace, str]
) -> SeriesInput:
    return replace(data, external_ids=external_ids)
