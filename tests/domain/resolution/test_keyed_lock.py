from __future__ import annotations

import asyncio

import pytest

from tankobon.domain.resolution.locks import KeyedLock, lock_key


@pytest.mark.asyncio
async def test_same_key_is_exclusive() -> None:
    locks = KeyedLock()
    events: list[str] = []

    async def worker(name: str) -> None:
        async with locks.hold(lock_key("series:title", "frieren")):
            events.append(f"{name}-in")
            await asyncio.sleep(0)
            events.append(f"{name}-out")

    await asyncio.gather(worker("a"), worker("b"))

    assert events == ["a-in", "a-out", "b-in", "b-out"]
    assert len(locks) == 0


@pytest.mark.asyncio
async def test_overlapping_key_sets_do_not_deadlock() -> None:
    locks = KeyedLock()
    first, second = lock_key("k", 1), lock_key("k", 2)

    async def worker(*keys: tuple[str, ...]) -> None:
        async with locks.hold(*keys):
            await asyncio.sleep(0)

    await asyncio.wait_for(
        asyncio.gather(worker(first, second), worker(second, first)), timeout=1
    )

    assert len(locks) == 0


@pytest.mark.asyncio
async def test_entries_released_after_error() -> None:
    locks = KeyedLock()

    with pytest.raises(RuntimeError):
        async with locks.hold(lock_key("k", "x")):
            raise RuntimeError("boom")

    assert len(locks) == 0
