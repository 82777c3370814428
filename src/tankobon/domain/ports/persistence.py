"""Ports for persisting the entity store."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Final, Protocol, runtime_checkable

from tankobon.domain.model import Edition, Series, Volume

SNAPSHOT_VERSION: Final[int] = 1


@dataclass(kw_only=True)
class StoreSnapshot:
    """Everything the store persists: three keyed collections plus their indices."""

    version: int = SNAPSHOT_VERSION
    series: dict[str, Series] = field(default_factory=dict)
    volumes: dict[str, Volume] = field(default_factory=dict)
    editions: dict[str, Edition] = field(default_factory=dict)
    title_index: dict[str, str] = field(default_factory=dict)
    external_index: dict[str, str] = field(default_factory=dict)
    isbn_index: dict[str, str] = field(default_factory=dict)


@runtime_checkable
class SnapshotBackend(Protocol):
    """Durable storage that reads and writes a whole snapshot at once.

    Implementations are blocking; the store calls them off the event loop.
    ``write`` must be atomic: a reader sees either the old or the new snapshot.
    """

    def read(self) -> StoreSnapshot | None: ...

    def write(self, snapshot: StoreSnapshot) -> None: ...


class SnapshotFormatError(RuntimeError):
    """Raised when persisted data cannot be decoded into a snapshot."""
