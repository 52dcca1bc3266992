"""
Unit tests for the pronunciation cache.
"""

import json

import pytest

from wortdrill.audio.cache import CACHE_KEY, SECONDS_PER_DAY, PronunciationCache
from wortdrill.storage import MemoryStore


class FakeClock:
    """Manually advanced clock in epoch seconds."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(store, clock):
    return PronunciationCache(store, max_entries=3, clock=clock)


class TestLookupInsert:

    @pytest.mark.asyncio
    async def test_miss_returns_none(self, cache):
        assert await cache.lookup("Haus") is None

    @pytest.mark.asyncio
    async def test_keys_are_case_folded(self, cache):
        await cache.insert("Haus", "QUJD")

        assert await cache.lookup("haus") == "QUJD"
        assert await cache.lookup("HAUS") == "QUJD"
        assert len(cache) == 1

    @pytest.mark.asyncio
    async def test_hit_bumps_access_stats(self, cache, clock):
        await cache.insert("Haus", "QUJD")
        clock.advance(10)

        await cache.lookup("Haus")
        await cache.lookup("Haus")

        stats = cache.stats()
        assert stats.total_accesses == 2
        assert stats.most_accessed_word == "haus"

    @pytest.mark.asyncio
    async def test_contains_does_not_bump(self, cache):
        await cache.insert("Haus", "QUJD")

        assert cache.contains("HAUS")
        assert "haus" in cache
        assert cache.stats().total_accesses == 0

    @pytest.mark.asyncio
    async def test_insert_persists(self, cache, store):
        await cache.insert("Hund", "AAAA")

        saved = json.loads(await store.get(CACHE_KEY))
        assert saved[0]["word"] == "hund"
        assert saved[0]["audioData"] == "AAAA"

    @pytest.mark.asyncio
    async def test_replacing_keeps_access_count(self, cache):
        await cache.insert("Hund", "AAAA")
        await cache.lookup("Hund")

        await cache.insert("Hund", "BBBB")

        assert await cache.lookup("Hund") == "BBBB"
        assert cache.stats().total_accesses == 2


class TestEviction:

    @pytest.mark.asyncio
    async def test_full_cache_evicts_least_accessed(self, cache, clock):
        for word in ("eins", "zwei", "drei"):
            await cache.insert(word, "x")
            clock.advance(1)
        await cache.lookup("eins")
        await cache.lookup("drei")

        await cache.insert("vier", "x")

        assert len(cache) == 3
        assert not cache.contains("zwei")
        assert cache.contains("vier")

    @pytest.mark.asyncio
    async def test_ties_evict_oldest_access(self, cache, clock):
        for word in ("eins", "zwei", "drei"):
            await cache.insert(word, "x")
            clock.advance(1)

        await cache.insert("vier", "x")

        assert not cache.contains("eins")
        assert len(cache) == 3

    @pytest.mark.asyncio
    async def test_101st_entry_evicts_exactly_one(self, store, clock):
        cache = PronunciationCache(store, clock=clock)
        for i in range(100):
            await cache.insert(f"wort{i}", "x")
            clock.advance(1)
            if i != 42:
                await cache.lookup(f"wort{i}")

        await cache.insert("neu", "x")

        assert len(cache) == 100
        assert not cache.contains("wort42")


class TestExpiryAndStats:

    @pytest.mark.asyncio
    async def test_load_purges_expired(self, clock):
        now = clock()
        entries = [
            {"word": "alt", "audioData": "x", "timestamp": now - 31 * SECONDS_PER_DAY, "accessCount": 9},
            {"word": "neu", "audioData": "x", "timestamp": now - 2 * SECONDS_PER_DAY, "accessCount": 1},
        ]
        store = MemoryStore({CACHE_KEY: json.dumps(entries)})
        cache = PronunciationCache(store, clock=clock)

        assert await cache.load() == 1
        assert cache.contains("neu")
        assert [e["word"] for e in json.loads(await store.get(CACHE_KEY))] == ["neu"]

    @pytest.mark.asyncio
    async def test_stats(self, cache):
        await cache.insert("Haus", "a" * 2048)
        await cache.insert("Hund", "b" * 1024)
        await cache.lookup("Hund")

        stats = cache.stats()
        assert stats.count == 2
        assert stats.total_bytes == 3072
        assert stats.total_kb == 3
        assert stats.most_accessed_word == "hund"
        assert stats.max_entries == 3

    @pytest.mark.asyncio
    async def test_remove_and_clear(self, cache):
        await cache.insert("Haus", "x")
        await cache.insert("Hund", "x")

        assert await cache.remove("HAUS") is True
        assert await cache.remove("Haus") is False

        await cache.clear()
        assert len(cache) == 0
        assert cache.stats().most_accessed_word is None
