"""Public domain model surface."""

from __future__ import annotations

from tankobon.domain.model.catalog import Edition, Series, Volume
from tankobon.domain.model.entity import Entity, utcnow
from tankobon.domain.model.enums import (
    EditionFormat,
    EditionLanguage,
    EntityKind,
    ExternalNamespace,
    MediaType,
    SeriesRelationship,
    SeriesStatus,
)
from tankobon.domain.model.inputs import EditionData, EditionInput, SeriesInput, VolumeInput
from tankobon.domain.model.sources import (
    FallbackVolume,
    SourceRelatedSeries,
    SourceSeries,
    SourceVolume,
)

__all__ = [  # noqa: RUF022
    # base
    "Entity",
    "utcnow",
    # catalog
    "Series",
    "Volume",
    "Edition",
    # inputs
    "SeriesInput",
    "VolumeInput",
    "EditionInput",
    "EditionData",
    # source records
    "SourceSeries",
    "SourceVolume",
    "SourceRelatedSeries",
    "FallbackVolume",
    # enums
    "EditionFormat",
    "EditionLanguage",
    "EntityKind",
    "ExternalNamespace",
    "MediaType",
    "SeriesRelationship",
    "SeriesStatus",
]
