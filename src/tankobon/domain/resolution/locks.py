"""Per-identity-key async mutual exclusion for find-or-create sequences."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, TypeAlias

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Hashable

LockKey: TypeAlias = tuple[str, ...]


@dataclass(slots=True)
class _Entry:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    holders: int = 0


class KeyedLock:
    """One ``asyncio.Lock`` per key, created on demand and dropped when idle.

    ``hold(*keys)`` acquires every key in sorted order, so two callers asking
    for overlapping key sets cannot deadlock.
    """

    def __init__(self) -> None:
        self._entries: dict[LockKey, _Entry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    @asynccontextmanager
    async def hold(self, *keys: LockKey) -> AsyncIterator[None]:
        ordered = sorted(set(keys))
        acquired: list[LockKey] = []
        try:
            for key in ordered:
                entry = self._entries.setdefault(key, _Entry())
                entry.holders += 1
                try:
                    await entry.lock.acquire()
                except BaseException:
                    self._release_entry(key, locked=False)
                    raise
                acquired.append(key)
            yield
        finally:
            for key in reversed(acquired):
                self._release_entry(key, locked=True)

    def _release_entry(self, key: LockKey, *, locked: bool) -> None:
        entry = self._entries[key]
        if locked:
            entry.lock.release()
        entry.holders -= 1
        if entry.holders == 0:
            del self._entries[key]


def lock_key(kind: str, *parts: Hashable) -> LockKey:
    return (kind, *(str(part) for part in parts))
