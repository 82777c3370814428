"""Errors raised by the catalog core."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from tankobon.domain.model import EntityKind


class CatalogError(RuntimeError):
    """Base class for catalog-core failures."""


class NotFoundError(CatalogError):
    """An operation required an existing entity and none resolved."""

    def __init__(self, kind: EntityKind, entity_id: str) -> None:
        super().__init__(f"{kind} not found: {entity_id}")
        self.kind = kind
        self.entity_id = entity_id


class DanglingReferenceError(CatalogError):
    """An input references an entity that does not exist in the store."""

    def __init__(self, kind: EntityKind, entity_id: str, *, referenced_by: str) -> None:
        super().__init__(f"{referenced_by} references unknown {kind}: {entity_id}")
        self.kind = kind
        self.entity_id = entity_id
        self.referenced_by = referenced_by


class AmbiguousEditionError(CatalogError):
    """An ISBN resolved to an omnibus edition linking several volumes."""

    def __init__(self, isbn: str, volume_ids: Sequence[str]) -> None:
        joined = ", ".join(volume_ids)
        super().__init__(
            f"ISBN {isbn} is an omnibus spanning volumes [{joined}]; pass volume_number"
        )
        self.isbn = isbn
        self.volume_ids = tuple(volume_ids)
