from __future__ import annotations

import asyncio

import pytest

from bible_reader.core.errors import StoreError
from bible_reader.services.query_cache import QueryCache


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class CountingLoader:
    def __init__(self, *values) -> None:
        self.values = list(values)
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        value = self.values.pop(0)
        if isinstance(value, Exception):
            raise value
        return value


def make_cache(clock: FakeClock) -> QueryCache:
    return QueryCache(fresh_seconds=3600, retain_seconds=86400, clock=clock)


def test_fresh_entry_is_served_without_reloading() -> None:
    clock = FakeClock()
    cache = make_cache(clock)
    loader = CountingLoader("first", "second")

    assert asyncio.run(cache.fetch("k", loader)) == "first"
    clock.now += 3599
    assert asyncio.run(cache.fetch("k", loader)) == "first"
    assert loader.calls == 1


def test_stale_entry_is_reloaded() -> None:
    clock = FakeClock()
    cache = make_cache(clock)
    loader = CountingLoader("first", "second")

    asyncio.run(cache.fetch("k", loader))
    clock.now += 3601
    assert asyncio.run(cache.fetch("k", loader)) == "second"
    assert loader.calls == 2


def test_stale_entry_served_when_reload_fails() -> None:
    clock = FakeClock()
    cache = make_cache(clock)
    loader = CountingLoader("first", StoreError("get_verses"))

    asyncio.run(cache.fetch("k", loader))
    clock.now += 7200
    assert asyncio.run(cache.fetch("k", loader)) == "first"


def test_entry_past_retention_is_dropped() -> None:
    clock = FakeClock()
    cache = make_cache(clock)
    loader = CountingLoader("first", StoreError("get_verses"))

    asyncio.run(cache.fetch("k", loader))
    clock.now += 86401
    assert "k" not in cache
    with pytest.raises(StoreError):
        asyncio.run(cache.fetch("k", loader))


def test_expired_entries_pruned_on_write() -> None:
    clock = FakeClock()
    cache = make_cache(clock)

    async def fill() -> None:
        for index in range(1000):
            await cache.fetch(("chapter", index), CountingLoader(index))

    asyncio.run(fill())
    assert len(cache) == 1000

    clock.now += 86401
    assert asyncio.run(cache.fetch("new", CountingLoader("value"))) == "value"
    assert len(cache) == 1
    assert cache.prune() == 0


def test_loader_errors_other_than_store_errors_are_not_cached() -> None:
    cache = make_cache(FakeClock())
    loader = CountingLoader(LookupError("missing"), "found")

    with pytest.raises(LookupError):
        asyncio.run(cache.fetch("k", loader))
    assert "k" not in cache
    assert asyncio.run(cache.fetch("k", loader)) == "found"


def test_invalidate_tag_only_touches_tagged_entries() -> None:
    cache = make_cache(FakeClock())
    verses = CountingLoader("v1", "v2")
    colors = CountingLoader({1: "yellow"}, {1: "blue"})

    asyncio.run(cache.fetch("verses", verses, tags=("verses",)))
    asyncio.run(cache.fetch("colors", colors, tags=("verse-highlights",)))

    assert cache.invalidate_tag("verse-highlights") == 1
    assert asyncio.run(cache.fetch("verses", verses, tags=("verses",))) == "v1"
    assert asyncio.run(cache.fetch("colors", colors, tags=("verse-highlights",))) == {1: "blue"}
    assert verses.calls == 1
    assert colors.calls == 2


def test_invalidate_single_key() -> None:
    cache = make_cache(FakeClock())
    loader = CountingLoader("first", "second")

    asyncio.run(cache.fetch("k", loader))
    cache.invalidate("k")
    assert "k" in cache
    assert asyncio.run(cache.fetch("k", loader)) == "second"

    cache.clear()
    assert len(cache) == 0
