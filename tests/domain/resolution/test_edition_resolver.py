from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import pytest

from tankobon.domain.errors import DanglingReferenceError, NotFoundError
from tankobon.domain.model import EditionFormat, EditionInput
from tankobon.domain.resolution.editions import merge_edition_inputs

from tests.helpers.catalog import make_series, make_volume

if TYPE_CHECKING:
    from tankobon.app import Catalog


@pytest.mark.asyncio
async def test_omnibus_edition_links_both_sides(catalog: Catalog) -> None:
    series = await make_series(catalog)
    first = await make_volume(catalog, series, 1)
    second = await make_volume(catalog, series, 2)

    omnibus = await catalog.editions.create_edition(
        EditionInput(isbn="978-1-2345-6789-7", volume_ids=[first.id, second.id])
    )

    by_isbn = await catalog.store.get_edition_by_isbn("9781234567897")
    assert by_isbn is not None
    assert by_isbn.id == omnibus.id
    for volume_id in (first.id, second.id):
        volume = await catalog.store.get_volume(volume_id)
        assert volume is not None
        assert volume.edition_ids == [omnibus.id]
        editions = await catalog.store.get_editions_by_volume_id(volume_id)
        assert [e.id for e in editions] == [omnibus.id]


@pytest.mark.asyncio
async def test_find_or_create_edition_keeps_existing_facts(catalog: Catalog) -> None:
    series = await make_series(catalog)
    first = await make_volume(catalog, series, 1)
    second = await make_volume(catalog, series, 2)
    created = await catalog.editions.find_or_create_edition(
        EditionInput(isbn="100", volume_ids=[first.id], release_date="2024-01-01")
    )

    found = await catalog.editions.find_or_create_edition(
        EditionInput(
            isbn="100",
            format=EditionFormat.DIGITAL,
            volume_ids=[second.id],
            release_date="2030-01-01",
        )
    )

    assert found.id == created.id
    assert found.format is EditionFormat.PHYSICAL
    assert found.release_date == "2024-01-01"
    assert found.volume_ids == [first.id, second.id]


@pytest.mark.asyncio
async def test_concurrent_find_or_create_converges_on_one_edition(catalog: Catalog) -> None:
    series = await make_series(catalog)
    first = await make_volume(catalog, series, 1)
    second = await make_volume(catalog, series, 2)

    left, right = await asyncio.gather(
        catalog.editions.find_or_create_edition(
            EditionInput(isbn="978-1-9747-2572-5", volume_ids=[first.id])
        ),
        catalog.editions.find_or_create_edition(
            EditionInput(isbn="9781974725725", volume_ids=[second.id])
        ),
    )

    stats = await catalog.store.stats()
    stored = await catalog.store.get_edition_by_isbn("9781974725725")
    assert left.id == right.id
    assert stats.edition_count == 1
    assert stored is not None
    assert sorted(stored.volume_ids) == sorted([first.id, second.id])
    for volume_id in (first.id, second.id):
        volume = await catalog.store.get_volume(volume_id)
        assert volume is not None
        assert volume.edition_ids == [stored.id]


@pytest.mark.asyncio
async def test_edition_with_unknown_volume_is_rejected(catalog: Catalog) -> None:
    with pytest.raises(DanglingReferenceError):
        await catalog.editions.create_edition(EditionInput(isbn="1", volume_ids=["v_missing"]))

    assert await catalog.store.get_edition_by_isbn("1") is None


@pytest.mark.asyncio
async def test_link_volume_to_edition_is_idempotent(catalog: Catalog) -> None:
    series = await make_series(catalog)
    first = await make_volume(catalog, series, 1, isbns=("700",))
    second = await make_volume(catalog, series, 2)
    edition = await catalog.store.get_edition_by_isbn("700")
    assert edition is not None

    await catalog.volumes.link_edition_to_volume(second.id, edition.id)
    await catalog.editions.link_volume_to_edition(second.id, edition.id)

    linked = await catalog.store.get_edition(edition.id)
    volume = await catalog.store.get_volume(second.id)
    assert linked is not None
    assert volume is not None
    assert linked.volume_ids == [first.id, second.id]
    assert volume.edition_ids == [edition.id]


@pytest.mark.asyncio
async def test_link_volume_to_edition_requires_both(catalog: Catalog) -> None:
    series = await make_series(catalog)
    volume = await make_volume(catalog, series, 1, isbns=("800",))
    edition = await catalog.store.get_edition_by_isbn("800")
    assert edition is not None

    with pytest.raises(NotFoundError):
        await catalog.editions.link_volume_to_edition(volume.id, "e_missing")
    with pytest.raises(NotFoundError):
        await catalog.editions.link_volume_to_edition("v_missing", edition.id)


@pytest.mark.asyncio
async def test_find_or_create_editions_groups_by_isbn(catalog: Catalog) -> None:
    series = await make_series(catalog)
    first = await make_volume(catalog, series, 1)
    second = await make_volume(catalog, series, 2)

    editions = await catalog.editions.find_or_create_editions(
        [
            EditionInput(isbn="978-0", volume_ids=[first.id]),
            EditionInput(isbn="9780", volume_ids=[second.id]),
            EditionInput(isbn="555", volume_ids=[second.id]),
        ]
    )

    assert [e.isbn for e in editions] == ["9780", "555"]
    assert editions[0].volume_ids == [first.id, second.id]


def test_merge_edition_inputs_unions_volume_ids() -> None:
    merged = merge_edition_inputs(
        [
            EditionInput(isbn="1-2", volume_ids=["v_a", "v_a"]),
            EditionInput(isbn="12", volume_ids=["v_b", "v_a"]),
        ]
    )

    assert len(merged) == 1
    assert merged[0].isbn == "12"
    assert merged[0].volume_ids == ["v_a", "v_b"]
