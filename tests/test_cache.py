"""Tests for the in-process TTL cache."""
import asyncio

import pytest

from axiss_nav.cache import MemoryCache, cached, cleanup_loop


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_get_set_and_default():
    c = MemoryCache(clock=FakeClock())
    assert c.get("k") is None
    assert c.get("k", "dflt") == "dflt"
    c.set("k", {"a": 1})
    assert c.get("k") == {"a": 1}


def test_entry_expires_after_ttl():
    clock = FakeClock()
    c = MemoryCache(default_ttl=10, clock=clock)
    c.set("k", "v")
    clock.now += 10
    assert c.get("k") == "v"
    clock.now += 0.5
    assert c.get("k") is None
    assert c.stats()["size"] == 0


def test_per_entry_ttl():
    clock = FakeClock()
    c = MemoryCache(default_ttl=100, clock=clock)
    c.set("short", 1, ttl=1)
    c.set("long", 2)
    clock.now += 5
    assert c.get("short") is None
    assert c.get("long") == 2


def test_cleanup_counts_removed_entries():
    clock = FakeClock()
    c = MemoryCache(default_ttl=10, clock=clock)
    c.set("a", 1)
    c.set("b", 2, ttl=50)
    clock.now += 20
    assert c.cleanup() == 1
    assert c.stats() == {"size": 1, "keys": ["b"]}


def test_delete_and_clear():
    c = MemoryCache(clock=FakeClock())
    c.set("a", 1)
    c.set("b", 2)
    c.delete("a")
    c.delete("missing")
    assert c.stats()["keys"] == ["b"]
    c.clear()
    assert c.stats()["size"] == 0


def test_cached_calls_once_per_key():
    c = MemoryCache(clock=FakeClock())
    calls = []

    async def compute():
        calls.append(1)
        return "result"

    async def run():
        first = await cached("key", compute, store=c)
        second = await cached("key", compute, store=c)
        return first, second

    assert asyncio.run(run()) == ("result", "result")
    assert len(calls) == 1


def test_cached_stores_falsy_values():
    c = MemoryCache(clock=FakeClock())
    calls = []

    async def compute():
        calls.append(1)
        return None

    asyncio.run(cached("none", compute, store=c))
    asyncio.run(cached("none", compute, store=c))
    assert len(calls) == 1


def test_cached_skips_values_rejected_by_should_cache():
    c = MemoryCache(clock=FakeClock())
    results = iter(["temporary", "real"])

    async def compute():
        return next(results)

    async def run():
        keep = lambda value: value != "temporary"
        first = await cached("key", compute, store=c, should_cache=keep)
        second = await cached("key", compute, store=c, should_cache=keep)
        third = await cached("key", compute, store=c, should_cache=keep)
        return first, second, third

    assert asyncio.run(run()) == ("temporary", "real", "real")
    assert c.stats()["keys"] == ["key"]


# ── periodic cleanup ────────────────────────────────────────────


def test_cleanup_loop_sweeps_expired_entries_without_reads():
    clock = FakeClock()
    c = MemoryCache(default_ttl=10, clock=clock)
    c.set("stale", 1)
    c.set("fresh", 2, ttl=100)
    clock.now += 20

    async def run():
        task = asyncio.create_task(cleanup_loop(c, interval=0))
        for _ in range(10):
            await asyncio.sleep(0)
            if c.stats()["size"] == 1:
                break
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(run())
    assert c.stats() == {"size": 1, "keys": ["fresh"]}
