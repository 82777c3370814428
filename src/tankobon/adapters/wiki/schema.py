"""Pydantic models describing wiki series payloads."""

from __future__ import annotations

import logging
from typing import ClassVar

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from tankobon.domain.model import MediaType, SeriesRelationship

log = logging.getLogger(__name__)


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


def _enum_token(value: object) -> object:
    """``"Light novel"`` -> ``"light_novel"``; blank or ``"unknown"`` -> ``None``."""

    if isinstance(value, str):
        token = value.strip().lower().replace("-", "_").replace(" ", "_")
        if not token or token == "unknown":
            return None
        return token
    return value


class WikiBaseModel(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)
    _logged_extra_keys: ClassVar[set[str]] = set()

    def model_post_init(self, _context: object, /) -> None:
        extras = self.__pydantic_extra__
        if not extras:
            return
        new_keys = set(extras).difference(self._logged_extra_keys)
        if not new_keys:
            return
        self._logged_extra_keys.update(new_keys)
        log.warning(
            "Wiki %s: unmodeled keys: %s",
            type(self).__name__,
            ", ".join(sorted(new_keys)),
        )


class WikiVolume(WikiBaseModel):
    volume_number: int = Field(alias="volumeNumber")
    title: str | None = None
    japanese_isbn: str | None = Field(default=None, alias="japaneseISBN")
    japanese_release_date: str | None = Field(default=None, alias="japaneseReleaseDate")
    english_isbn: str | None = Field(default=None, alias="englishISBN")
    english_release_date: str | None = Field(default=None, alias="englishReleaseDate")
    media_type: MediaType | None = Field(default=None, alias="mediaType")

    _normalize_blanks = field_validator(
        "title",
        "japanese_isbn",
        "japanese_release_date",
        "english_isbn",
        "english_release_date",
        mode="before",
    )(_blank_to_none)
    _normalize_media_type = field_validator("media_type", mode="before")(_enum_token)


class WikiRelatedSeries(WikiBaseModel):
    title: str
    media_type: MediaType | None = Field(default=None, alias="mediaType")
    relationship: SeriesRelationship | None = None
    volumes: list[WikiVolume] = Field(default_factory=list)
    related_series: list[WikiRelatedSeries] = Field(default_factory=list, alias="relatedSeries")

    _normalize_enums = field_validator("media_type", "relationship", mode="before")(_enum_token)


class WikiSeries(WikiBaseModel):
    page_id: int = Field(validation_alias=AliasChoices("pageId", "pageid", "page_id"))
    title: str
    author: str | None = None
    artist: str | None = None
    publisher: str | None = None
    description: str | None = None
    is_complete: bool = Field(default=False, alias="isComplete")
    media_type: MediaType | None = Field(default=None, alias="mediaType")
    total_volumes: int | None = Field(default=None, alias="totalVolumes")
    chapter_list_page_id: int | None = Field(default=None, alias="chapterListPageId")
    volumes: list[WikiVolume] = Field(default_factory=list)
    related_series: list[WikiRelatedSeries] = Field(default_factory=list, alias="relatedSeries")

    _normalize_blanks = field_validator(
        "author", "artist", "publisher", "description", mode="before"
    )(_blank_to_none)
    _normalize_media_type = field_validator("media_type", mode="before")(_enum_token)
