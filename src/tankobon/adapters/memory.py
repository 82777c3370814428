"""In-memory snapshot backend for tests and throwaway sessions."""

from __future__ import annotations

import copy

from tankobon.domain.ports.persistence import StoreSnapshot


class InMemorySnapshotBackend:
    def __init__(self, snapshot: StoreSnapshot | None = None) -> None:
        self._snapshot = copy.deepcopy(snapshot)
        self.writes = 0

    def read(self) -> StoreSnapshot | None:
        return copy.deepcopy(self._snapshot)

    def write(self, snapshot: StoreSnapshot) -> None:
        self._snapshot = copy.deepcopy(snapshot)
        self.writes += 1
