"""
Weighted word selection.

Picks the next word to study from the ledger's scores:
- Words with score 3 are fully learned and never drawn
- Remaining words enter a flat pool once per unit of weight:
  score 0 -> 5, score 1 -> 3, score 2 -> 1
- One uniform draw over the pool gives sampling odds of 5:3:1

The pool costs O(eligible x 5) entries per call, fine for vocabularies of
a few thousand words.
"""

from __future__ import annotations

import random
from typing import Sequence

from loguru import logger

from wortdrill.learning.ledger import PerformanceLedger
from wortdrill.learning.words import MASTERED_SCORE, Word

SCORE_WEIGHTS: dict[int, int] = {
    0: 5,  # New/struggling words get highest priority
    1: 3,  # Partially learned
    2: 1,  # Nearly learned
}


def weight(score: int) -> int:
    """Pool multiplicity for a score; 0 for anything outside 0-2."""
    return SCORE_WEIGHTS.get(score, 0)


def _expand(words: Sequence[Word]) -> list[Word]:
    pool: list[Word] = []
    for word in words:
        pool.extend([word] * weight(word.score))
    return pool


class SelectionEngine:
    """Draws the next study word using the ledger's cached scores."""

    def __init__(self, ledger: PerformanceLedger, rng: random.Random | None = None):
        """
        Initialize the engine.

        Args:
            ledger: Source of truth for word scores
            rng: Random generator (a fresh unseeded one if None)
        """
        self.ledger = ledger
        self.rng = rng or random.Random()

    def resolve(self, word: Word) -> Word:
        """Copy of word carrying the ledger's current history."""
        h = self.ledger.get_history(word.text)
        return word.with_history(h.last_results, h.score)

    def eligible(self, words: Sequence[Word]) -> list[Word]:
        """Words below the mastered score, re-resolved against the ledger."""
        resolved = (self.resolve(w) for w in words)
        return [w for w in resolved if w.score < MASTERED_SCORE]

    def build_pool(self, words: Sequence[Word]) -> list[Word]:
        """Flat candidate pool with each eligible word repeated ``weight(score)`` times."""
        return _expand(self.eligible(words))

    def select_next(self, words: Sequence[Word]) -> Word | None:
        """
        Draw the next word to study.

        Returns:
            A snapshot of the drawn word, or None when every word is mastered.
            Callers should re-resolve by key before using it after any
            further ledger write.
        """
        eligible = self.eligible(words)
        if not eligible:
            logger.debug("No eligible words found (all words have score 3)")
            return None

        pool = _expand(eligible)
        if not pool:
            logger.debug("No words in weighted pool")
            return eligible[0]

        selected = pool[self.rng.randrange(len(pool))]
        logger.debug(f"Selected word: \"{selected.text}\" (score: {selected.score})")
        return selected
