"""Translate wiki payloads into source-neutral records for the integrator."""

from __future__ import annotations

from collections.abc import Mapping
from logging import getLogger
from typing import TypeAlias

from tankobon.domain.model import SourceRelatedSeries, SourceSeries, SourceVolume

from .schema import WikiRelatedSeries, WikiSeries, WikiVolume

log = getLogger(__name__)

WikiSeriesInput: TypeAlias = WikiSeries | Mapping[str, object]


def _ensure_wiki_series(payload: WikiSeriesInput) -> WikiSeries:
    if isinstance(payload, WikiSeries):
        return payload
    return WikiSeries.model_validate(payload)


def parse_wiki_series(payload: WikiSeriesInput) -> SourceSeries:
    series = _ensure_wiki_series(payload)
    if series.total_volumes is not None and series.total_volumes != len(series.volumes):
        log.debug(
            "Wiki page %s lists %s volumes but reports %s in total",
            series.page_id,
            len(series.volumes),
            series.total_volumes,
        )
    return SourceSeries(
        page_id=series.page_id,
        title=series.title,
        author=series.author,
        artist=series.artist,
        description=series.description,
        media_type=series.media_type,
        is_complete=series.is_complete,
        volumes=_volumes(series.volumes, owner=series.title),
        related_series=tuple(_related(item) for item in series.related_series),
    )


def _related(payload: WikiRelatedSeries) -> SourceRelatedSeries:
    return SourceRelatedSeries(
        title=payload.title,
        media_type=payload.media_type,
        relationship=payload.relationship,
        volumes=_volumes(payload.volumes, owner=payload.title),
        related_series=tuple(_related(item) for item in payload.related_series),
    )


def _volumes(volumes: list[WikiVolume], *, owner: str) -> tuple[SourceVolume, ...]:
    translated: list[SourceVolume] = []
    for volume in volumes:
        if volume.volume_number < 0:
            log.warning("Skipping volume %s of %r: negative number", volume.volume_number, owner)
            continue
        translated.append(
            SourceVolume(
                volume_number=volume.volume_number,
                title=volume.title,
                japanese_isbn=volume.japanese_isbn,
                japanese_release_date=volume.japanese_release_date,
                english_isbn=volume.english_isbn,
                english_release_date=volume.english_release_date,
            )
        )
    return tuple(translated)
