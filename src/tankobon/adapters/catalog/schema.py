"""Pydantic models describing library catalog payloads."""

from __future__ import annotations

import logging
from typing import ClassVar

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from tankobon.domain.availability import CopyStatusCategory, categorize_copy_status
from tankobon.domain.model import EditionFormat, EditionLanguage, MediaType

log = logging.getLogger(__name__)


class CatalogBaseModel(BaseModel):
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
            "Catalog %s: unmodeled keys: %s",
            type(self).__name__,
            ", ".join(sorted(new_keys)),
        )


class CatalogVolume(CatalogBaseModel):
    volume_number: int = Field(alias="volumeNumber")
    isbn: str | None = None
    title: str | None = None

    @field_validator("isbn", "title", mode="before")
    @classmethod
    def _blank_to_none(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip() or None
        return value


class CatalogSeries(CatalogBaseModel):
    series_title: str = Field(alias="seriesTitle")
    volumes: list[CatalogVolume] = Field(default_factory=list)
    media_type: MediaType = Field(default=MediaType.MANGA, alias="mediaType")


class CatalogHolding(CatalogBaseModel):
    status: str
    library_code: str | None = Field(default=None, alias="libraryCode")
    library_name: str | None = Field(default=None, alias="libraryName")
    location: str | None = None
    call_number: str | None = Field(default=None, alias="callNumber")
    barcode: str | None = None

    @property
    def status_category(self) -> CopyStatusCategory:
        return categorize_copy_status(self.status)


class CatalogLibrary(CatalogBaseModel):
    """Holdings of one library system for a single volume."""

    library_code: str | None = Field(default=None, alias="libraryCode")
    catalog_url: str | None = Field(default=None, alias="catalogUrl")
    holdings: list[CatalogHolding] = Field(default_factory=list)


class CatalogEdition(CatalogBaseModel):
    isbn: str
    format: EditionFormat = EditionFormat.PHYSICAL
    language: str = EditionLanguage.ENGLISH
    release_date: str | None = Field(
        default=None, validation_alias=AliasChoices("releaseDate", "release_date")
    )


class VolumeAvailabilityPayload(CatalogBaseModel):
    """Editions of one volume plus whatever the catalog reported for it.

    ``libraries`` is ``None`` when the catalog was not consulted or had no record.
    """

    editions: list[CatalogEdition] = Field(default_factory=list)
    libraries: list[CatalogLibrary] | None = None
    catalog_url: str | None = Field(default=None, alias="catalogUrl")
