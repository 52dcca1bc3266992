"""
Vocabulary value types.

Word objects are read-only projections. The performance ledger owns the
authoritative outcome history; a Word carries a copy taken at refresh time.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum

# Outcomes kept per word; older entries fall out FIFO.
HISTORY_WINDOW = 3

# Score at which a word is considered fully learned.
MASTERED_SCORE = HISTORY_WINDOW


class Outcome(str, Enum):
    """Result of a single drill answer as seen by the ledger."""

    CORRECT = "correct"
    WRONG = "wrong"


def score_of(results) -> int:
    """Count the correct entries in an outcome history."""
    return sum(1 for r in results if Outcome(r) is Outcome.CORRECT)


@dataclass(frozen=True)
class Word:
    """A single vocabulary item as presented to the learner."""

    text: str
    translation: str
    bookmarked: bool = False
    last_results: tuple[Outcome, ...] = field(default_factory=tuple)
    score: int = 0
    is_custom: bool = False

    @property
    def key(self) -> str:
        return self.text

    @property
    def is_mastered(self) -> bool:
        return self.score >= MASTERED_SCORE

    @property
    def is_studied(self) -> bool:
        return bool(self.last_results)

    def with_history(self, last_results, score: int) -> Word:
        """Return a copy carrying the given history."""
        return replace(self, last_results=tuple(Outcome(r) for r in last_results), score=score)

    @classmethod
    def from_dict(cls, data: dict, is_custom: bool = False) -> Word:
        """
        Create a Word from a vocabulary JSON entry.

        Accepts ``{"word": ..., "translation": ...}`` plus the optional
        ``bookmarked``, ``lastResults`` and ``score`` fields written by
        older exports.
        """
        results = tuple(Outcome(r) for r in (data.get("lastResults") or [])[-HISTORY_WINDOW:])
        score = data.get("score")
        return cls(
            text=str(data["word"]).strip(),
            translation=str(data.get("translation", "")).strip(),
            bookmarked=bool(data.get("bookmarked", False)),
            last_results=results,
            score=score_of(results) if score is None else int(score),
            is_custom=is_custom,
        )

    def to_dict(self) -> dict:
        return {
            "word": self.text,
            "translation": self.translation,
            "bookmarked": self.bookmarked,
            "lastResults": [r.value for r in self.last_results],
            "score": self.score,
        }
