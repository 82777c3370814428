"""Translate catalog payloads into integrator inputs and status-engine inputs."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from logging import getLogger

from tankobon.domain.availability import CopyTotals, compute_copy_totals, merge_copy_totals
from tankobon.domain.model import EditionData, FallbackVolume, MediaType

from .schema import CatalogSeries, VolumeAvailabilityPayload

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CatalogSeriesRecord:
    title: str
    volumes: list[FallbackVolume]
    media_type: MediaType


def parse_catalog_series(payload: CatalogSeries | Mapping[str, object]) -> CatalogSeriesRecord:
    series = (
        payload if isinstance(payload, CatalogSeries) else CatalogSeries.model_validate(payload)
    )
    volumes = [
        FallbackVolume(volume_number=volume.volume_number, isbn=volume.isbn, title=volume.title)
        for volume in series.volumes
    ]
    missing_isbn = sum(1 for volume in volumes if volume.isbn is None)
    if missing_isbn:
        log.debug("%s of %s catalog volumes have no ISBN", missing_isbn, len(volumes))
    return CatalogSeriesRecord(
        title=series.series_title, volumes=volumes, media_type=series.media_type
    )


def edition_data(payload: VolumeAvailabilityPayload) -> list[EditionData]:
    return [
        EditionData(
            isbn=edition.isbn,
            format=edition.format,
            language=edition.language,
            release_date=edition.release_date,
        )
        for edition in payload.editions
    ]


def copy_totals(payload: VolumeAvailabilityPayload) -> CopyTotals | None:
    """Per-library totals merged into one; ``None`` when no catalog data exists."""

    if payload.libraries is None:
        return None
    return merge_copy_totals(compute_copy_totals(library.holdings) for library in payload.libraries)


def catalog_url(payload: VolumeAvailabilityPayload) -> str | None:
    if payload.catalog_url:
        return payload.catalog_url
    return next((lib.catalog_url for lib in payload.libraries or [] if lib.catalog_url), None)
