"""Creation inputs for the resolvers (records without generated fields)."""

from __future__ import annotations

from dataclasses import dataclass, field

from tankobon.domain.model.enums import (
    EditionFormat,
    EditionLanguage,
    ExternalNamespace,
    MediaType,
    SeriesRelationship,
    SeriesStatus,
)


@dataclass(kw_only=True)
class SeriesInput:
    title: str
    media_type: MediaType = MediaType.MANGA
    external_ids: dict[ExternalNamespace, str] = field(default_factory=dict)
    volume_ids: list[str] = field(default_factory=list)
    related_series_ids: list[str] = field(default_factory=list)
    parent_series_id: str | None = None
    relationship: SeriesRelationship | None = None
    author: str | None = None
    artist: str | None = None
    description: str | None = None
    status: SeriesStatus | None = None


@dataclass(frozen=True, kw_only=True)
class EditionData:
    """Edition facts as reported by a source, before it is tied to volumes."""

    isbn: str
    format: EditionFormat = EditionFormat.PHYSICAL
    language: str = EditionLanguage.ENGLISH
    release_date: str | None = None


@dataclass(kw_only=True)
class EditionInput:
    isbn: str
    format: EditionFormat = EditionFormat.PHYSICAL
    language: str = EditionLanguage.ENGLISH
    volume_ids: list[str] = field(default_factory=list)
    release_date: str | None = None

    @classmethod
    def from_data(cls, data: EditionData, *, volume_ids: list[str]) -> EditionInput:
        return cls(
            isbn=data.isbn,
            format=data.format,
            language=data.language,
            volume_ids=list(volume_ids),
            release_date=data.release_date,
        )


@dataclass(kw_only=True)
class VolumeInput:
    series_id: str
    volume_number: int
    title: str | None = None
    editions: list[EditionData] = field(default_factory=list)
