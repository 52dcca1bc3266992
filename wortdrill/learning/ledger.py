"""
Performance Ledger.

Single writer of per-word outcome history. Each word keeps the last three
outcomes (oldest first) and a cached score equal to the number of correct
entries in that window. There is no time decay: recency is captured only
by the fixed window.

Storage key: ``word-results`` (one per language level when levels are in use)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from loguru import logger

from wortdrill.errors import StorageError, require_word
from wortdrill.learning.words import HISTORY_WINDOW, Outcome, Word, score_of
from wortdrill.storage import KeyValueStore

RESULTS_KEY = "word-results"
SCORES_MIGRATED_KEY = "scores-migrated-v1"


@dataclass(frozen=True)
class WordHistory:
    """Outcome window and cached score for one word."""

    last_results: tuple[Outcome, ...] = ()
    score: int = 0

    def to_dict(self) -> dict:
        return {"lastResults": [r.value for r in self.last_results], "score": self.score}

    @classmethod
    def from_stored(cls, data) -> WordHistory:
        """
        Parse a stored record.

        Legacy records are a bare list of outcomes; their score is derived
        on the spot. Current records carry ``lastResults`` and ``score``.
        """
        if isinstance(data, list):
            results = tuple(Outcome(r) for r in data[-HISTORY_WINDOW:])
            return cls(last_results=results, score=score_of(results))
        results = tuple(Outcome(r) for r in (data.get("lastResults") or [])[-HISTORY_WINDOW:])
        score = data.get("score")
        return cls(last_results=results, score=score_of(results) if score is None else int(score))


EMPTY_HISTORY = WordHistory()


class PerformanceLedger:
    """
    Durable rolling outcome history per word.

    Writes go to memory first and are then persisted. A failed write is
    logged and leaves ``dirty`` set; memory stays authoritative and
    ``flush()`` retries.
    """

    def __init__(self, store: KeyValueStore, key: str = RESULTS_KEY):
        self.store = store
        self.key = key
        self._history: dict[str, WordHistory] = {}
        self.dirty = False

    async def load(self) -> int:
        """
        Load the ledger from storage.

        Returns:
            Number of words with recorded history
        """
        data = await self.store.get_json(self.key, default={}) or {}
        history: dict[str, WordHistory] = {}
        for word, record in data.items():
            try:
                history[word] = WordHistory.from_stored(record)
            except (ValueError, TypeError, AttributeError) as e:
                logger.warning(f"Skipping unreadable history for '{word}': {e}")
        self._history = history
        logger.info(f"Loaded results for {len(self._history)} words")
        return len(self._history)

    async def flush(self) -> bool:
        """Persist the full ledger. Returns True on success."""
        payload = {word: h.to_dict() for word, h in self._history.items()}
        try:
            await self.store.set_json(self.key, payload)
        except StorageError as e:
            logger.error(f"Error saving word results: {e}")
            self.dirty = True
            return False
        self.dirty = False
        return True

    # =========================================================================
    # Queries
    # =========================================================================

    def get_history(self, word: str) -> WordHistory:
        """Return the history for word, ``([], 0)`` when unknown."""
        return self._history.get(word, EMPTY_HISTORY)

    def score(self, word: str) -> int:
        return self.get_history(word).score

    def studied_count(self) -> int:
        """Number of words with at least one recorded outcome."""
        return sum(1 for h in self._history.values() if h.last_results)

    def __contains__(self, word: str) -> bool:
        return word in self._history

    def __len__(self) -> int:
        return len(self._history)

    # =========================================================================
    # Mutations
    # =========================================================================

    async def record_outcome(self, word: str, outcome: Outcome | str) -> WordHistory:
        """
        Append an outcome to a word's window and persist.

        Args:
            word: Word key
            outcome: ``correct`` or ``wrong``

        Returns:
            The updated history
        """
        word = require_word(word)
        outcome = Outcome(outcome)

        results = (self.get_history(word).last_results + (outcome,))[-HISTORY_WINDOW:]
        updated = WordHistory(last_results=results, score=score_of(results))
        self._history[word] = updated

        assert len(updated.last_results) <= HISTORY_WINDOW
        assert updated.score == score_of(updated.last_results)

        await self.flush()
        logger.debug(
            f"Updated results for \"{word}\": "
            f"{', '.join(r.value for r in results)}, score: {updated.score}"
        )
        return updated

    async def reset(self, word: str) -> None:
        """Clear history for one word (score drops to 0)."""
        if self._history.pop(word, None) is not None:
            await self.flush()

    async def reset_all(self) -> None:
        """Clear history for every word."""
        self._history.clear()
        await self.flush()
        logger.info("Cleared all word results")

    async def recalculate_all(self, words: Iterable[Word] = ()) -> int:
        """
        Derive cached scores from existing outcome windows.

        Migrates data written before scores were cached. Histories carried on
        Word projections are adopted when the ledger has none for that word.
        Running it again changes nothing.

        Returns:
            Number of words whose stored score changed
        """
        updated = 0
        for word in words:
            if word.text not in self._history and word.last_results:
                self._history[word.text] = WordHistory(last_results=tuple(word.last_results))

        for key, h in list(self._history.items()):
            expected = score_of(h.last_results)
            if h.score != expected:
                self._history[key] = WordHistory(last_results=h.last_results, score=expected)
                updated += 1

        await self.flush()
        logger.info(f"Score calculation complete. Updated {updated} words.")
        return updated

    async def migrate_once(self, words: Iterable[Word] = (), flag_key: str | None = None) -> int:
        """
        Run ``recalculate_all`` unless the flag key says it already ran.

        Returns:
            Number of words whose stored score changed (0 when skipped)
        """
        flag_key = flag_key or f"{SCORES_MIGRATED_KEY}:{self.key}"
        try:
            if await self.store.get(flag_key):
                return 0
        except StorageError as e:
            logger.error(f"Error reading migration flag: {e}")
            return 0

        updated = await self.recalculate_all(words)
        if not self.dirty:
            try:
                await self.store.set(flag_key, "true")
            except StorageError as e:
                logger.error(f"Error saving migration flag: {e}")
        return updated
