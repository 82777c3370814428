from __future__ import annotations

from typing import TYPE_CHECKING

from tankobon.domain.model import (
    EditionData,
    EditionFormat,
    EditionLanguage,
    MediaType,
    SeriesInput,
    VolumeInput,
)

if TYPE_CHECKING:
    from tankobon.app import Catalog
    from tankobon.domain.model import Series, Volume


async def make_series(
    catalog: Catalog,
    title: str = "Blue Period",
    *,
    media_type: MediaType = MediaType.MANGA,
) -> Series:
    return await catalog.series.create_series(SeriesInput(title=title, media_type=media_type))


async def make_volume(
    catalog: Catalog,
    series: Series,
    number: int,
    *,
    title: str | None = None,
    isbns: tuple[str, ...] = (),
) -> Volume:
    return await catalog.volumes.find_or_create_volume(
        VolumeInput(
            series_id=series.id,
            volume_number=number,
            title=title,
            editions=[EditionData(isbn=isbn) for isbn in isbns],
        )
    )


def english_physical(isbn: str, release_date: str | None = None) -> EditionData:
    return EditionData(
        isbn=isbn,
        format=EditionFormat.PHYSICAL,
        language=EditionLanguage.ENGLISH,
        release_date=release_date,
    )


def english_digital(isbn: str, release_date: str | None = None) -> EditionData:
    return EditionData(
        isbn=isbn,
        format=EditionFormat.DIGITAL,
        language=EditionLanguage.ENGLISH,
        release_date=release_date,
    )


def japanese_physical(isbn: str, release_date: str | None = None) -> EditionData:
    return EditionData(
        isbn=isbn,
        format=EditionFormat.PHYSICAL,
        language=EditionLanguage.JAPANESE,
        release_date=release_date,
    )
