"""Identifier generation and match-key normalization.

Nothing here touches the store; these are the primitives the store indexes and
the resolvers match on.
"""

from __future__ import annotations

import re
import secrets
import unicodedata
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from tankobon.domain.model.enums import EntityKind

# 9 random bytes -> 12 url-safe characters, 72 bits of entropy
ID_TOKEN_BYTES: Final[int] = 9

_KIND_PREFIXES: Final[dict[str, str]] = {
    "series": "s",
    "volume": "v",
    "edition": "e",
}

_NON_ALNUM_RUN = re.compile(r"[\W_]+")
_ISBN_SEPARATORS = re.compile(r"[\s\-‐‑–]+")


def generate_id(kind: EntityKind) -> str:
    """Return a new unpredictable id such as ``s_Xw3k9...`` for ``kind``."""

    try:
        prefix = _KIND_PREFIXES[kind]
    except KeyError:
        raise ValueError(f"Unknown entity kind: {kind!r}") from None
    return f"{prefix}_{secrets.token_urlsafe(ID_TOKEN_BYTES)}"


def id_prefix(entity_id: str) -> str | None:
    head, sep, _ = entity_id.partition("_")
    if not sep or head not in _KIND_PREFIXES.values():
        return None
    return head


def normalize_title(title: str) -> str:
    """Lower-case and collapse every non-alphanumeric run to a single space.

    Total (``""`` maps to ``""``) and idempotent.
    """

    text = unicodedata.normalize("NFKC", title)
    text = unicodedata.normalize("NFKC", text.casefold())
    text = _NON_ALNUM_RUN.sub(" ", text)
    return text.strip()


def normalize_isbn(isbn: str) -> str:
    text = unicodedata.normalize("NFKC", isbn)
    return _ISBN_SEPARATORS.sub("", text).upper()
