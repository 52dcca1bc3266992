"""
Tests for the performance ledger.

Covers:
- Three-slot FIFO window and score recomputation
- Legacy and current storage shapes
- Reset and migration
- Write failures leaving memory authoritative
"""

import json

import pytest

from wortdrill.errors import EmptyWordError, StorageError
from wortdrill.learning.ledger import RESULTS_KEY, PerformanceLedger, WordHistory
from wortdrill.learning.words import Outcome, Word
from wortdrill.storage import MemoryStore

C = Outcome.CORRECT
W = Outcome.WRONG


class FailingStore(MemoryStore):
    """Store whose writes fail until ``healthy`` is set."""

    def __init__(self):
        super().__init__()
        self.healthy = False

    async def set(self, key, value):
        if not self.healthy:
            raise StorageError("disk full")
        await super().set(key, value)


class TestRecordOutcome:

    @pytest.mark.asyncio
    async def test_unknown_word_starts_empty(self, ledger):
        assert ledger.get_history("der Hund") == WordHistory((), 0)

        h = await ledger.record_outcome("der Hund", "correct")

        assert h.last_results == (C,)
        assert h.score == 1

    @pytest.mark.asyncio
    async def test_fourth_outcome_drops_oldest(self, ledger):
        for outcome in (C, C, W):
            await ledger.record_outcome("das Haus", outcome)

        h = await ledger.record_outcome("das Haus", C)

        assert h.last_results == (C, W, C)
        assert h.score == 2

    @pytest.mark.asyncio
    async def test_score_always_matches_window(self, ledger, rng):
        for _ in range(50):
            outcome = rng.choice([C, W])
            h = await ledger.record_outcome("gehen", outcome)
            assert len(h.last_results) <= 3
            assert h.score == sum(1 for r in h.last_results if r is C)

    @pytest.mark.asyncio
    async def test_empty_word_rejected(self, ledger):
        with pytest.raises(EmptyWordError):
            await ledger.record_outcome("   ", C)

    @pytest.mark.asyncio
    async def test_persists_current_shape(self, store, ledger):
        await ledger.record_outcome("die Katze", W)

        stored = json.loads(await store.get(RESULTS_KEY))
        assert stored == {"die Katze": {"lastResults": ["wrong"], "score": 0}}


class TestLoad:

    @pytest.mark.asyncio
    async def test_reads_legacy_list_records(self):
        store = MemoryStore({RESULTS_KEY: json.dumps({"lesen": ["wrong", "correct", "correct", "correct"]})})
        ledger = PerformanceLedger(store)

        assert await ledger.load() == 1
        h = ledger.get_history("lesen")
        assert h.last_results == (C, C, C)
        assert h.score == 3

    @pytest.mark.asyncio
    async def test_skips_unreadable_records(self):
        store = MemoryStore({RESULTS_KEY: json.dumps({"ok": ["correct"], "bad": ["maybe"]})})
        ledger = PerformanceLedger(store)

        assert await ledger.load() == 1
        assert "bad" not in ledger


class TestResetAndMigrate:

    @pytest.mark.asyncio
    async def test_reset_single_word(self, ledger):
        await ledger.record_outcome("heute", C)
        await ledger.record_outcome("morgen", C)

        await ledger.reset("heute")

        assert ledger.score("heute") == 0
        assert ledger.score("morgen") == 1

    @pytest.mark.asyncio
    async def test_reset_all(self, ledger):
        await ledger.record_outcome("heute", C)
        await ledger.reset_all()

        assert len(ledger) == 0
        assert ledger.studied_count() == 0

    @pytest.mark.asyncio
    async def test_recalculate_fixes_stale_scores_idempotently(self):
        raw = {"schnell": {"lastResults": ["correct", "correct"], "score": 0}}
        ledger = PerformanceLedger(MemoryStore({RESULTS_KEY: json.dumps(raw)}))
        await ledger.load()

        assert await ledger.recalculate_all() == 1
        assert ledger.score("schnell") == 2
        assert await ledger.recalculate_all() == 0

    @pytest.mark.asyncio
    async def test_recalculate_adopts_projection_history(self, ledger):
        legacy = Word(text="langsam", translation="slow", last_results=(C, W), score=0)

        await ledger.recalculate_all([legacy])

        assert ledger.get_history("langsam") == WordHistory((C, W), 1)


    @pytest.mark.asyncio
    async def test_migrate_once_is_guarded_by_flag(self):
        raw = {"schnell": {"lastResults": ["correct", "correct", "correct"], "score": 0}}
        store = MemoryStore({RESULTS_KEY: json.dumps(raw)})
        ledger = PerformanceLedger(store)
        await ledger.load()

        assert await ledger.migrate_once(flag_key="migrated") == 1
        assert ledger.score("schnell") == 3
        assert await store.get("migrated") == "true"

        await ledger.record_outcome("neu", W)
        legacy = [Word(text="alt", translation="", last_results=(C,))]
        assert await ledger.migrate_once(legacy, flag_key="migrated") == 0
        assert "alt" not in ledger

    @pytest.mark.asyncio
    async def test_migration_flag_follows_ledger_key(self, store):
        b1 = PerformanceLedger(store, key="word-results-B1")
        a2 = PerformanceLedger(store, key="word-results-A2")

        await b1.migrate_once()

        assert await store.get("scores-migrated-v1:word-results-B1") == "true"
        assert await store.get("scores-migrated-v1:word-results-A2") is None
        await a2.record_outcome("der Hund", C)
        assert "der Hund" in await store.get_json("word-results-A2")
        assert await store.get_json("word-results-B1") == {}


class TestWriteFailures:

    @pytest.mark.asyncio
    async def test_migration_flag_not_set_when_flush_fails(self):
        store = FailingStore()
        ledger = PerformanceLedger(store)

        await ledger.migrate_once(flag_key="migrated")

        assert await store.get("migrated") is None
        assert ledger.dirty is True

    @pytest.mark.asyncio
    async def test_failed_write_keeps_memory_and_sets_dirty(self):
        store = FailingStore()
        ledger = PerformanceLedger(store)

        h = await ledger.record_outcome("der Weg", C)

        assert h.score == 1
        assert ledger.score("der Weg") == 1
        assert ledger.dirty is True

    @pytest.mark.asyncio
    async def test_flush_retries_after_recovery(self):
        store = FailingStore()
        ledger = PerformanceLedger(store)
        await ledger.record_outcome("der Weg", C)

        store.healthy = True
        assert await ledger.flush() is True
        assert ledger.dirty is False
        assert "der Weg" in await store.get_json(RESULTS_KEY)
