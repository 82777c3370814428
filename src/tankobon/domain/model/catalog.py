"""Catalog entities: a Series owns Volumes; Volumes and Editions link m:n.

Entities reference each other by id only. The store holds the canonical copy of
every record and hands out detached clones.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar

from tankobon.domain.identity import normalize_isbn, normalize_title
from tankobon.domain.model.entity import Entity
from tankobon.domain.model.enums import (
    EditionFormat,
    EntityKind,
    ExternalNamespace,
    MediaType,
    SeriesRelationship,
    SeriesStatus,
)


@dataclass(kw_only=True, slots=True)
class Series(Entity):
    KIND: ClassVar[EntityKind] = EntityKind.SERIES

    title: str
    normalized_title: str = ""
    media_type: MediaType = MediaType.MANGA
    external_ids: dict[ExternalNamespace, str] = field(default_factory=dict)
    volume_ids: list[str] = field(default_factory=list)
    related_series_ids: list[str] = field(default_factory=list)
    parent_series_id: str | None = None
    relationship: SeriesRelationship | None = None
    author: str | None = None
    artist: str | None = None
    description: str | None = None
    status: SeriesStatus = SeriesStatus.UNKNOWN

    def __post_init__(self) -> None:
        if not self.normalized_title:
            self.normalized_title = normalize_title(self.title)

    @property
    def is_linked(self) -> bool:
        return self.parent_series_id is not None

    def external_id(self, namespace: ExternalNamespace) -> str | None:
        return self.external_ids.get(namespace)

    def add_related(self, series_id: str) -> bool:
        if series_id in self.related_series_ids:
            return False
        self.related_series_ids.append(series_id)
        return True


@dataclass(kw_only=True, slots=True)
class Volume(Entity):
    KIND: ClassVar[EntityKind] = EntityKind.VOLUME

    series_id: str
    volume_number: int
    title: str | None = None
    edition_ids: list[str] = field(default_factory=list)

    def add_edition(self, edition_id: str) -> bool:
        if edition_id in self.edition_ids:
            return False
        self.edition_ids.append(edition_id)
        return True


@dataclass(kw_only=True, slots=True)
class Edition(Entity):
    KIND: ClassVar[EntityKind] = EntityKind.EDITION

    isbn: str
    format: EditionFormat
    language: str
    release_date: str | None = None
    volume_ids: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.isbn = normalize_isbn(self.isbn)

    @property
    def is_omnibus(self) -> bool:
        return len(self.volume_ids) > 1

    def add_volume(self, volume_id: str) -> bool:
        if volume_id in self.volume_ids:
            return False
        self.volume_ids.append(volume_id)
        return True
