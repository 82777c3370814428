from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

import pytest

from tankobon.domain.errors import DanglingReferenceError, NotFoundError
from tankobon.domain.model import (
    ExternalNamespace,
    MediaType,
    SeriesInput,
    SeriesRelationship,
    SeriesStatus,
)
from tankobon.domain.resolution import MediaTypeHints, detect_media_type

from tests.helpers.catalog import make_series

if TYPE_CHECKING:
    from tankobon.app import Catalog


@pytest.mark.asyncio
async def test_create_series_applies_defaults(catalog: Catalog) -> None:
    series = await catalog.series.create_series(SeriesInput(title="Dandadan"))

    assert series.id.startswith("s_")
    assert series.status is SeriesStatus.UNKNOWN
    assert series.volume_ids == []
    assert series.created_at == series.updated_at
    assert series.normalized_title == "dandadan"


@pytest.mark.asyncio
async def test_create_series_rejects_unknown_parent(catalog: Catalog) -> None:
    with pytest.raises(DanglingReferenceError):
        await catalog.series.create_series(
            SeriesInput(title="Side", parent_series_id="s_missing")
        )


@pytest.mark.asyncio
async def test_find_or_create_by_external_id_is_idempotent(catalog: Catalog) -> None:
    first = await catalog.series.find_or_create_series_by_wikipedia(
        42, SeriesInput(title="Chainsaw Man")
    )
    second = await catalog.series.find_or_create_series_by_wikipedia(
        "42", SeriesInput(title="Something Else Entirely")
    )

    assert second.id == first.id
    assert len(await catalog.store.list_series()) == 1


@pytest.mark.asyncio
async def test_title_fallback_backfills_external_id(catalog: Catalog) -> None:
    by_title = await catalog.series.find_or_create_series_by_title(
        SeriesInput(title="Kaiju No. 8")
    )

    by_wiki = await catalog.series.find_or_create_series_by_wikipedia(
        777, SeriesInput(title="kaiju no 8")
    )

    assert by_wiki.id == by_title.id
    assert by_wiki.external_id(ExternalNamespace.WIKIPEDIA) == "777"
    stored = await catalog.store.get_series_by_wikipedia_id(777)
    assert stored is not None
    assert stored.id == by_title.id
    assert len(await catalog.store.list_series()) == 1


@pytest.mark.asyncio
async def test_title_match_with_other_external_id_creates_new_series(catalog: Catalog) -> None:
    original = await catalog.series.find_or_create_series_by_wikipedia(
        1, SeriesInput(title="Monster")
    )

    other = await catalog.series.find_or_create_series_by_wikipedia(
        2, SeriesInput(title="Monster")
    )

    assert other.id != original.id
    assert other.external_id(ExternalNamespace.WIKIPEDIA) == "2"
    again = await catalog.series.find_or_create_series_by_wikipedia(2, SeriesInput(title="x"))
    assert again.id == other.id


@pytest.mark.asyncio
async def test_concurrent_find_or_create_creates_one_series(catalog: Catalog) -> None:
    results = await asyncio.gather(
        *(
            catalog.series.find_or_create_series_by_wikipedia(
                99, SeriesInput(title="Oshi no Ko")
            )
            for _ in range(10)
        )
    )

    assert len({series.id for series in results}) == 1
    assert len(await catalog.store.list_series()) == 1


@pytest.mark.asyncio
async def test_concurrent_title_resolution_creates_one_series(catalog: Catalog) -> None:
    results = await asyncio.gather(
        catalog.series.find_or_create_series_by_title(SeriesInput(title="Vinland Saga")),
        catalog.series.find_or_create_series_by_title(SeriesInput(title="VINLAND SAGA")),
        catalog.series.find_or_create_series_by_wikipedia(5, SeriesInput(title="Vinland saga")),
    )

    assert len({series.id for series in results}) == 1


@pytest.mark.asyncio
async def test_update_series_volumes_replaces_list(catalog: Catalog) -> None:
    series = await make_series(catalog)
    await catalog.series.update_series_volumes(series.id, ["v_a", "v_b"])

    updated = await catalog.series.update_series_volumes(series.id, ["v_c"])

    assert updated.volume_ids == ["v_c"]
    assert updated.updated_at >= series.updated_at


@pytest.mark.asyncio
async def test_update_series_volumes_requires_series(catalog: Catalog) -> None:
    with pytest.raises(NotFoundError):
        await catalog.series.update_series_volumes("s_missing", [])


@pytest.mark.asyncio
async def test_link_related_series_is_idempotent(catalog: Catalog) -> None:
    parent = await make_series(catalog, "Jujutsu Kaisen")
    related = await make_series(catalog, "Jujutsu Kaisen 0")

    await catalog.series.link_related_series(parent.id, related.id)
    linked = await catalog.series.link_related_series(parent.id, related.id)

    assert linked.related_series_ids == [related.id]


@pytest.mark.asyncio
async def test_link_related_series_requires_parent(catalog: Catalog) -> None:
    with pytest.raises(NotFoundError):
        await catalog.series.link_related_series("s_missing", "s_other")


@pytest.mark.asyncio
async def test_attach_parent_never_reparents(catalog: Catalog) -> None:
    first = await make_series(catalog, "Bleach")
    second = await make_series(catalog, "Burn the Witch")
    child = await make_series(catalog, "Bleach: Can't Fear Your Own World")

    linked = await catalog.series.attach_parent(child.id, first.id, SeriesRelationship.SPINOFF)
    again = await catalog.series.attach_parent(child.id, second.id, SeriesRelationship.SEQUEL)

    assert linked.parent_series_id == first.id
    assert again.parent_series_id == first.id
    assert again.relationship is SeriesRelationship.SPINOFF


@pytest.mark.asyncio
async def test_attach_parent_refuses_cycles(
    catalog: Catalog, caplog: pytest.LogCaptureFixture
) -> None:
    root = await make_series(catalog, "Root")
    child = await make_series(catalog, "Child")
    await catalog.series.attach_parent(child.id, root.id, SeriesRelationship.SEQUEL)

    with caplog.at_level(logging.WARNING):
        unchanged = await catalog.series.attach_parent(
            root.id, child.id, SeriesRelationship.PREQUEL
        )

    assert unchanged.parent_series_id is None
    assert "Refusing to link" in caplog.text
    assert await catalog.series.would_create_cycle(root.id, root.id)


@pytest.mark.parametrize(
    ("title", "hints", "expected"),
    [
        ("Overlord", MediaTypeHints(is_light_novel=True, is_manga=True), MediaType.LIGHT_NOVEL),
        ("Overlord (light novel)", MediaTypeHints(is_manga=True), MediaType.MANGA),
        ("Overlord (light novel)", None, MediaType.LIGHT_NOVEL),
        ("Light Novel and Manga", None, MediaType.LIGHT_NOVEL),
        ("Overlord (manga) art book", None, MediaType.MANGA),
        ("Frieren Artbook", None, MediaType.ARTBOOK),
        ("Frieren Art Book", None, MediaType.ARTBOOK),
        ("One Piece Guide Book", None, MediaType.GUIDEBOOK),
        ("One Piece", None, MediaType.MANGA),
        ("One Piece", MediaTypeHints(), MediaType.MANGA),
    ],
)
def test_detect_media_type_priority(
    title: str, hints: MediaTypeHints | None, expected: MediaType
) -> None:
    assert detect_media_type(title, hints) is expected
