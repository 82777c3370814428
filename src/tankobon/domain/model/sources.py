"""Source-neutral records handed to the integrator by the adapter translators."""

from __future__ import annotations

from dataclasses import dataclass, field

from tankobon.domain.model.enums import MediaType, SeriesRelationship


@dataclass(frozen=True, kw_only=True)
class SourceVolume:
    volume_number: int
    title: str | None = None
    japanese_isbn: str | None = None
    japanese_release_date: str | None = None
    english_isbn: str | None = None
    english_release_date: str | None = None


@dataclass(frozen=True, kw_only=True)
class SourceRelatedSeries:
    title: str
    media_type: MediaType | None = None
    relationship: SeriesRelationship | None = None
    volumes: tuple[SourceVolume, ...] = ()
    related_series: tuple[SourceRelatedSeries, ...] = ()


@dataclass(frozen=True, kw_only=True)
class SourceSeries:
    """A series as described by the primary (wiki) source."""

    page_id: int
    title: str
    author: str | None = None
    artist: str | None = None
    description: str | None = None
    media_type: MediaType | None = None
    is_complete: bool = False
    volumes: tuple[SourceVolume, ...] = ()
    related_series: tuple[SourceRelatedSeries, ...] = field(default=())


@dataclass(frozen=True, kw_only=True)
class FallbackVolume:
    """One volume row from the lower-confidence catalog source."""

    volume_number: int
    isbn: str | None = None
    title: str | None = None
