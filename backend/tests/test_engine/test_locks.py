"""Tests for the keyed asyncio lock."""

import asyncio

import pytest

from hotelops.engine.locks import KeyedLock

pytestmark = pytest.mark.asyncio


async def test_same_key_serialises():
    locks = KeyedLock("test")
    order = []

    async def worker(name: str):
        async with locks.hold("R1"):
            order.append(f"{name}-in")
            await asyncio.sleep(0.01)
            order.append(f"{name}-out")

    await asyncio.gather(worker("a"), worker("b"))
    assert order in (["a-in", "a-out", "b-in", "b-out"], ["b-in", "b-out", "a-in", "a-out"])


async def test_different_keys_do_not_block():
    locks = KeyedLock("test")
    async with locks.hold("R1"):
        assert locks.locked("R1")
        async with locks.hold("R2"):
            assert locks.locked("R2")


async def test_lock_dropped_when_released():
    locks = KeyedLock("test")
    async with locks.hold("R1"):
        assert len(locks) == 1
    assert len(locks) == 0
    assert not locks.locked("R1")


async def test_lock_released_on_error():
    locks = KeyedLock("test")
    with pytest.raises(RuntimeError):
        async with locks.hold("R1"):
            raise RuntimeError("boom")
    assert len(locks) == 0
    async with locks.hold("R1"):
        pass
