from __future__ import annotations

import pytest

from tankobon.domain.identity import generate_id, id_prefix, normalize_isbn, normalize_title
from tankobon.domain.model import EntityKind


@pytest.mark.parametrize(
    ("kind", "prefix"),
    [(EntityKind.SERIES, "s"), (EntityKind.VOLUME, "v"), (EntityKind.EDITION, "e")],
)
def test_generate_id_is_prefixed_by_kind(kind: EntityKind, prefix: str) -> None:
    entity_id = generate_id(kind)

    assert entity_id.startswith(f"{prefix}_")
    assert id_prefix(entity_id) == prefix
    # 9 random bytes encode to 12 url-safe characters
    assert len(entity_id) == len(prefix) + 1 + 12


def test_generate_id_does_not_repeat() -> None:
    ids = {generate_id(EntityKind.SERIES) for _ in range(1000)}

    assert len(ids) == 1000


def test_id_prefix_rejects_unprefixed_values() -> None:
    assert id_prefix("One Piece") is None
    assert id_prefix("x_abc") is None
    assert id_prefix("9781974725724") is None


@pytest.mark.parametrize(
    ("title", "expected"),
    [
        ("Frieren: Beyond Journey's End", "frieren beyond journey s end"),
        ("  Spy×Family  ", "spy family"),
        ("ＯＮＥ　ＰＩＥＣＥ", "one piece"),
        ("Re:Zero -Starting Life in Another World-", "re zero starting life in another world"),
        ("", ""),
        ("!!!", ""),
    ],
)
def test_normalize_title(title: str, expected: str) -> None:
    assert normalize_title(title) == expected


@pytest.mark.parametrize("title", ["Frieren: Beyond", "ＳＰＹ×ＦＡＭＩＬＹ", "Straße", "", "  a--b  "])
def test_normalize_title_is_idempotent(title: str) -> None:
    once = normalize_title(title)

    assert normalize_title(once) == once


def test_normalize_isbn_strips_separators() -> None:
    assert normalize_isbn("978-1-9747-2572-5") == "9781974725725"
    assert normalize_isbn(" 0-306-40615-x ") == "030640615X"
