"""Drive the resolvers from source payloads.

The integrator turns a translated source record into resolver calls: series
first, then its volumes (with editions), then the ordered volume list written
back onto the series, then any related series, recursively. Each step persists
on its own; a failure part-way leaves the earlier steps in place.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Final

from tankobon.domain.errors import NotFoundError
from tankobon.domain.identity import id_prefix
from tankobon.domain.model import (
    EditionData,
    EditionFormat,
    EditionLanguage,
    EntityKind,
    ExternalNamespace,
    MediaType,
    SeriesInput,
    SeriesStatus,
    VolumeInput,
)
from tankobon.domain.resolution.series import MediaTypeHints, detect_media_type

if TYPE_CHECKING:
    from collections.abc import Sequence

    from tankobon.domain.model import (
        Edition,
        FallbackVolume,
        Series,
        SourceRelatedSeries,
        SourceSeries,
        SourceVolume,
        Volume,
    )
    from tankobon.domain.resolution import SeriesResolver, VolumeResolver
    from tankobon.domain.store import EntityStore

log = logging.getLogger(__name__)

MEDIA_TYPE_LABELS: Final[dict[MediaType, str]] = {
    MediaType.MANGA: "Manga",
    MediaType.LIGHT_NOVEL: "Light Novel",
    MediaType.ARTBOOK: "Artbook",
    MediaType.GUIDEBOOK: "Guidebook",
}

_TITLE_BASE_SPLIT = re.compile(r"[:(]")


@dataclass(slots=True)
class IngestResult:
    series: Series
    volumes: list[Volume] = field(default_factory=list)
    related_series: list[Series] = field(default_factory=list)


def related_series_title(
    parent_title: str,
    related_title: str,
    *,
    parent_media_type: MediaType,
    related_media_type: MediaType,
) -> str:
    """Disambiguate a related series title against its parent.

    ``"Side Story"`` under ``"Frieren"`` becomes ``"Frieren: Side Story"``. A
    related series of another media type gains a suffix such as
    ``" (Light Novel)"`` unless its title already says so.
    """

    title = related_title.strip()
    parent_base = _TITLE_BASE_SPLIT.split(parent_title.lower(), maxsplit=1)[0].strip()
    if parent_base and parent_base not in title.lower():
        title = f"{parent_title}: {title}"

    label = MEDIA_TYPE_LABELS.get(related_media_type)
    if related_media_type != parent_media_type and label and label.lower() not in title.lower():
        title = f"{title} ({label})"
    return title


def _volume_input(series_id: str, volume: SourceVolume) -> VolumeInput:
    editions: list[EditionData] = []
    if volume.japanese_isbn:
        editions.append(
            EditionData(
                isbn=volume.japanese_isbn,
                format=EditionFormat.PHYSICAL,
                language=EditionLanguage.JAPANESE,
                release_date=volume.japanese_release_date,
            )
        )
    if volume.english_isbn:
        editions.append(
            EditionData(
                isbn=volume.english_isbn,
                format=EditionFormat.PHYSICAL,
                language=EditionLanguage.ENGLISH,
                release_date=volume.english_release_date,
            )
        )
    return VolumeInput(
        series_id=series_id,
        volume_number=volume.volume_number,
        title=volume.title,
        editions=editions,
    )


class CatalogIntegrator:
    """Builds and reads the entity graph on behalf of source adapters and callers."""

    def __init__(
        self,
        series: SeriesResolver,
        volumes: VolumeResolver,
        store: EntityStore,
    ) -> None:
        self.series = series
        self.volumes = volumes
        self.store = store

    # Ingestion ---------------------------------------------------------------

    async def create_entities_from_primary_source(self, payload: SourceSeries) -> IngestResult:
        media_type = detect_media_type(
            payload.title, MediaTypeHints.from_media_type(payload.media_type)
        )
        series = await self.series.find_or_create_series_by_wikipedia(
            payload.page_id,
            SeriesInput(
                title=payload.title,
                media_type=media_type,
                author=payload.author,
                artist=payload.artist,
                description=payload.description,
                status=SeriesStatus.COMPLETED if payload.is_complete else SeriesStatus.ONGOING,
            ),
        )
        series, volumes = await self._ingest_volumes(series, payload.volumes)
        log.info(
            "Ingested series %r (%s) with %s volumes from page %s",
            series.title,
            series.id,
            len(volumes),
            payload.page_id,
        )

        related: list[Series] = []
        visited = {series.id}
        for item in payload.related_series:
            await self._ingest_related(series, item, visited=visited, results=related)
        if related:
            log.info("Resolved %s related series for %s", len(related), series.id)

        refreshed = await self.store.get_series(series.id)
        return IngestResult(series=refreshed or series, volumes=volumes, related_series=related)

    async def create_entities_from_fallback_source(
        self,
        title: str,
        volumes: Sequence[FallbackVolume],
        media_type: MediaType,
    ) -> IngestResult:
        """Ingest a title-keyed volume list; every edition is English and physical."""

        series = await self.series.find_or_create_series_by_title(
            SeriesInput(title=title, media_type=media_type, status=SeriesStatus.UNKNOWN)
        )
        inputs = [
            VolumeInput(
                series_id=series.id,
                volume_number=volume.volume_number,
                title=volume.title or f"{title}, Vol. {volume.volume_number}",
                editions=[EditionData(isbn=volume.isbn)] if volume.isbn else [],
            )
            for volume in volumes
        ]
        resolved = await self.volumes.find_or_create_volumes(inputs)
        if resolved:
            series = await self.series.update_series_volumes(
                series.id, list(dict.fromkeys(volume.id for volume in resolved))
            )
        log.info(
            "Ingested series %r (%s) with %s volumes from the fallback source",
            series.title,
            series.id,
            len(resolved),
        )
        return IngestResult(series=series, volumes=resolved)

    async def _ingest_volumes(
        self, series: Series, volumes: Sequence[SourceVolume]
    ) -> tuple[Series, list[Volume]]:
        resolved = await self.volumes.find_or_create_volumes(
            [_volume_input(series.id, volume) for volume in volumes]
        )
        if resolved:
            series = await self.series.update_series_volumes(
                series.id, list(dict.fromkeys(volume.id for volume in resolved))
            )
        return series, resolved

    async def _ingest_related(
        self,
        parent: Series,
        related: SourceRelatedSeries,
        *,
        visited: set[str],
        results: list[Series],
    ) -> None:
        media_type = detect_media_type(
            related.title, MediaTypeHints.from_media_type(related.media_type)
        )
        title = related_series_title(
            parent.title,
            related.title,
            parent_media_type=parent.media_type,
            related_media_type=media_type,
        )
        series = await self.series.find_or_create_series_by_title(
            SeriesInput(
                title=title,
                media_type=media_type,
                author=parent.author,
                status=SeriesStatus.UNKNOWN,
                parent_series_id=parent.id,
                relationship=related.relationship,
            )
        )
        if series.id in visited:
            log.warning(
                "Related series %r resolves to %s, already part of this ingest; skipping",
                title,
                series.id,
            )
            return
        visited.add(series.id)

        series = await self.series.attach_parent(series.id, parent.id, related.relationship)
        if series.parent_series_id != parent.id:
            log.warning(
                "Related series %r (%s) belongs under %s, not %s; not linking",
                title,
                series.id,
                series.parent_series_id,
                parent.id,
            )
            return
        await self.series.link_related_series(parent.id, series.id)
        series, volumes = await self._ingest_volumes(series, related.volumes)
        log.info(
            "Related series %r (%s, %s) has %s volumes",
            series.title,
            series.id,
            series.relationship,
            len(volumes),
        )
        results.append(series)

        for nested in related.related_series:
            await self._ingest_related(series, nested, visited=visited, results=results)

    # Read path ---------------------------------------------------------------

    async def resolve_entity(self, id_or_title: str) -> Series | Volume | None:
        """Look up by series id, volume id, ISBN, then title. Never creates.

        An ISBN of an omnibus edition raises ``AmbiguousEditionError``.
        """

        key = id_or_title.strip()
        if not key:
            return None
        match id_prefix(key):
            case "s":
                if (series := await self.store.get_series(key)) is not None:
                    return series
            case "v":
                if (volume := await self.store.get_volume(key)) is not None:
                    return volume
            case _:
                pass

        by_isbn = await self.volumes.get_volume_with_series(key)
        if by_isbn is not None:
            return by_isbn.volume
        return await self.store.get_series_by_title(key)

    async def resolve_by_external_id(
        self, namespace: ExternalNamespace, value: str | int
    ) -> Series | None:
        return await self.store.get_series_by_external_id(namespace, str(value))

    async def get_series_volumes(self, series_id: str) -> list[Volume]:
        if await self.store.get_series(series_id) is None:
            raise NotFoundError(EntityKind.SERIES, series_id)
        return await self.store.get_volumes_by_series_id(series_id)

    async def get_volume_edition_data(self, volume_id: str) -> list[Edition]:
        if await self.store.get_volume(volume_id) is None:
            raise NotFoundError(EntityKind.VOLUME, volume_id)
        return await self.store.get_editions_by_volume_id(volume_id)
