"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class EntityKind(StrEnum):
    SERIES = "series"
    VOLUME = "volume"
    EDITION = "edition"


class MediaType(StrEnum):
    MANGA = "manga"
    LIGHT_NOVEL = "light_novel"
    ARTBOOK = "artbook"
    GUIDEBOOK = "guidebook"
    UNKNOWN = "unknown"


class SeriesStatus(StrEnum):
    ONGOING = "ongoing"
    COMPLETED = "completed"
    HIATUS = "hiatus"
    UNKNOWN = "unknown"


class SeriesRelationship(StrEnum):
    SPINOFF = "spinoff"
    SEQUEL = "sequel"
    SIDE_STORY = "side_story"
    ANTHOLOGY = "anthology"
    PREQUEL = "prequel"
    ADAPTATION = "adaptation"


class ExternalNamespace(StrEnum):
    """Sources that hand out durable series identifiers."""

    WIKIPEDIA = "wikipedia"
    ANILIST = "anilist"
    MYANIMELIST = "myanimelist"


class EditionFormat(StrEnum):
    PHYSICAL = "physical"
    DIGITAL = "digital"


class EditionLanguage(StrEnum):
    ENGLISH = "en"
    JAPANESE = "ja"
