"""Tests for the per-itinerary lock registry."""

import asyncio
import gc
import uuid

import pytest

from itinera.app.db.locks import LockRegistry


@pytest.mark.asyncio
async def test_same_key_serializes() -> None:
    """Critical sections on one key never overlap."""
    registry = LockRegistry()
    key = uuid.uuid4()
    inside = 0
    max_inside = 0

    async def worker() -> None:
        nonlocal inside, max_inside
        async with registry.hold(key):
            inside += 1
            max_inside = max(max_inside, inside)
            await asyncio.sleep(0.001)
            inside -= 1

    await asyncio.gather(*(worker() for _ in range(10)))

    assert max_inside == 1


@pytest.mark.asyncio
async def test_different_keys_run_concurrently() -> None:
    registry = LockRegistry()
    first_held = asyncio.Event()
    release = asyncio.Event()

    async def hold_first() -> None:
        async with registry.hold(uuid.uuid4()):
            first_held.set()
            await release.wait()

    task = asyncio.create_task(hold_first())
    await first_held.wait()

    # A second key is not blocked by the first
    async with registry.hold(uuid.uuid4()):
        pass

    release.set()
    await task


@pytest.mark.asyncio
async def test_unused_locks_are_dropped() -> None:
    registry = LockRegistry()

    async with registry.hold(uuid.uuid4()):
        assert len(registry) == 1

    gc.collect()
    assert len(registry) == 0
