"""Find-or-create resolvers for series, volumes and editions."""

from __future__ import annotations

from tankobon.domain.resolution.editions import EditionResolver
from tankobon.domain.resolution.locks import KeyedLock
from tankobon.domain.resolution.series import MediaTypeHints, SeriesResolver, detect_media_type
from tankobon.domain.resolution.volumes import VolumeResolver, VolumeWithSeries

__all__ = [
    "EditionResolver",
    "KeyedLock",
    "MediaTypeHints",
    "SeriesResolver",
    "VolumeResolver",
    "VolumeWithSeries",
    "detect_media_type",
]
