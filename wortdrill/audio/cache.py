"""
Pronunciation cache.

Synthesized audio keyed by the lower-cased word text, held in memory and
persisted as one JSON list under ``german_pronunciation_cache``.

Bounds:
- At most ``max_entries`` entries (default 100). Inserting into a full
  cache evicts the entry with the fewest accesses; ties go to the one
  accessed longest ago.
- Entries older than ``ttl_days`` (default 30) are purged on load.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable

from loguru import logger

from wortdrill.errors import StorageError, require_word

CACHE_KEY = "german_pronunciation_cache"

DEFAULT_MAX_ENTRIES = 100
DEFAULT_TTL_DAYS = 30

SECONDS_PER_DAY = 24 * 60 * 60


@dataclass
class CachedPronunciation:
    """One cached audio payload with its usage stats."""

    word: str
    audio_data: str  # base64
    created_at: float
    access_count: int = 0
    last_accessed: float = 0.0

    @property
    def size_bytes(self) -> int:
        return len(self.audio_data)

    def to_dict(self) -> dict:
        return {
            "word": self.word,
            "audioData": self.audio_data,
            "timestamp": self.created_at,
            "accessCount": self.access_count,
            "lastAccessed": self.last_accessed,
        }

    @classmethod
    def from_dict(cls, data: dict) -> CachedPronunciation:
        return cls(
            word=str(data["word"]).lower(),
            audio_data=data["audioData"],
            created_at=float(data["timestamp"]),
            access_count=int(data.get("accessCount", 0)),
            last_accessed=float(data.get("lastAccessed", data["timestamp"])),
        )


@dataclass
class CacheStats:
    count: int
    total_bytes: int
    total_accesses: int
    most_accessed_word: str | None
    max_entries: int

    @property
    def total_kb(self) -> int:
        return round(self.total_bytes / 1024)


class PronunciationCache:
    """
    Bounded, usage-weighted store of synthesized pronunciations.

    Example:
        cache = PronunciationCache(store)
        await cache.load()
        payload = await cache.lookup("Haus")
        if payload is None:
            await cache.insert("Haus", synthesize("Haus"))
    """

    def __init__(
        self,
        store,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        ttl_days: int = DEFAULT_TTL_DAYS,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the cache.

        Args:
            store: KeyValueStore used for persistence
            max_entries: Capacity before eviction kicks in
            ttl_days: Age in days after which entries are purged on load
            clock: Returns the current time in epoch seconds
        """
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self.store = store
        self.max_entries = max_entries
        self.ttl_seconds = ttl_days * SECONDS_PER_DAY
        self.clock = clock
        self._entries: dict[str, CachedPronunciation] = {}
        self.dirty = False

    async def load(self) -> int:
        """Read persisted entries and purge expired ones. Returns the entry count."""
        data = await self.store.get_json(CACHE_KEY, default=[]) or []
        entries: dict[str, CachedPronunciation] = {}
        for item in data:
            try:
                entry = CachedPronunciation.from_dict(item)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping unreadable pronunciation cache entry: {e}")
                continue
            entries[entry.word] = entry

        self._entries = entries
        removed = await self.purge_expired()
        logger.info(f"Loaded {len(self._entries)} cached pronunciations ({removed} expired)")
        return len(self._entries)

    async def purge_expired(self) -> int:
        """Drop entries older than the TTL. Returns the number removed."""
        cutoff = self.clock() - self.ttl_seconds
        expired = [key for key, e in self._entries.items() if e.created_at <= cutoff]
        for key in expired:
            del self._entries[key]
        if expired:
            await self._save()
        return len(expired)

    async def lookup(self, word: str) -> str | None:
        """Return the cached payload for word, bumping its access stats on a hit."""
        entry = self._entries.get(word.strip().lower())
        if entry is None:
            return None
        entry.access_count += 1
        entry.last_accessed = self.clock()
        await self._save()
        return entry.audio_data

    def contains(self, word: str) -> bool:
        """Membership test without touching access stats."""
        return word.strip().lower() in self._entries

    __contains__ = contains

    def __len__(self) -> int:
        return len(self._entries)

    async def insert(self, word: str, audio_data: str) -> CachedPronunciation:
        """
        Store a payload, evicting one entry first if the cache is full.

        Replacing an existing key keeps its access stats.
        """
        key = require_word(word).lower()
        now = self.clock()

        existing = self._entries.get(key)
        if existing is not None:
            existing.audio_data = audio_data
            existing.created_at = now
            await self._save()
            return existing

        if len(self._entries) >= self.max_entries:
            self._evict_one()

        entry = CachedPronunciation(
            word=key, audio_data=audio_data, created_at=now, access_count=0, last_accessed=now
        )
        self._entries[key] = entry
        assert len(self._entries) <= self.max_entries

        await self._save()
        logger.debug(f"Cached pronunciation for \"{key}\" ({len(self._entries)}/{self.max_entries})")
        return entry

    def _evict_one(self) -> None:
        victim = min(self._entries.values(), key=lambda e: (e.access_count, e.last_accessed))
        del self._entries[victim.word]
        logger.debug(
            f"Evicted pronunciation \"{victim.word}\" "
            f"(accesses: {victim.access_count})"
        )

    async def remove(self, word: str) -> bool:
        if self._entries.pop(word.strip().lower(), None) is None:
            return False
        await self._save()
        return True

    async def clear(self) -> None:
        self._entries.clear()
        await self._save()
        logger.info("Pronunciation cache cleared")

    def stats(self) -> CacheStats:
        entries = list(self._entries.values())
        most_used = max(entries, key=lambda e: e.access_count, default=None)
        return CacheStats(
            count=len(entries),
            total_bytes=sum(e.size_bytes for e in entries),
            total_accesses=sum(e.access_count for e in entries),
            most_accessed_word=most_used.word if most_used else None,
            max_entries=self.max_entries,
        )

    async def _save(self) -> None:
        try:
            await self.store.set_json(CACHE_KEY, [e.to_dict() for e in self._entries.values()])
        except StorageError as e:
            logger.warning(f"Failed to save pronunciation cache: {e}")
            self.dirty = True
            return
        self.dirty = False
