"""
Progress summary and word-progress view over the current word set.

A word is ``new`` with no history, ``mastered`` at the maximum score and
``learning`` otherwise. Its source is ``custom`` for learner-added words
and ``dictionary`` for seed words.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Sequence

from wortdrill.learning.words import HISTORY_WINDOW, Word, score_of


@dataclass
class ProgressSummary:
    """Aggregate learning progress for display."""

    total_words: int
    studied_words: int
    learned_words: int
    practice_words: int
    bookmarked_words: int
    overall_progress: int  # percent of the maximum possible score

    @property
    def unstudied_words(self) -> int:
        return self.total_words - self.studied_words


def overall_progress(words: Sequence[Word]) -> int:
    """Sum of scores over the maximum possible sum, as a whole percent."""
    if not words:
        return 0
    total = sum(w.score for w in words)
    return math.floor(total * 100 / (len(words) * HISTORY_WINDOW) + 0.5)


def practice_words(words: Sequence[Word]) -> list[Word]:
    """Studied words still scoring 0 or 1."""
    return [w for w in words if w.is_studied and w.score <= 1]


def summarize(words: Sequence[Word]) -> ProgressSummary:
    return ProgressSummary(
        total_words=len(words),
        studied_words=sum(1 for w in words if w.is_studied),
        learned_words=sum(1 for w in words if w.is_mastered),
        practice_words=len(practice_words(words)),
        bookmarked_words=sum(1 for w in words if w.bookmarked),
        overall_progress=overall_progress(words),
    )


# =============================================================================
# Word progress view
# =============================================================================


class WordStatus(str, Enum):
    NEW = "new"
    LEARNING = "learning"
    MASTERED = "mastered"


class WordSource(str, Enum):
    DICTIONARY = "dictionary"
    CUSTOM = "custom"


class SortBy(str, Enum):
    ALPHABETICAL = "alphabetical"
    PRACTICE_COUNT = "practiceCount"


def word_status(word: Word) -> WordStatus:
    if not word.is_studied:
        return WordStatus.NEW
    if word.is_mastered:
        return WordStatus.MASTERED
    return WordStatus.LEARNING


def word_source(word: Word) -> WordSource:
    return WordSource.CUSTOM if word.is_custom else WordSource.DICTIONARY


@dataclass
class WordFilters:
    """Filter and sort options; ``None`` means no restriction."""

    status: WordStatus | None = None
    source: WordSource | None = None
    search_term: str = ""
    sort_by: SortBy = SortBy.ALPHABETICAL
    descending: bool = False


def filter_words(words: Sequence[Word], filters: WordFilters | None = None) -> list[Word]:
    """
    Filter by status, source and search term, then sort.

    The search term matches the word or its translation, case-insensitively.
    Practice count is the number of outcomes in the word's window. Ties keep
    their input order in both directions.
    """
    filters = filters or WordFilters()
    result = list(words)

    if filters.status is not None:
        result = [w for w in result if word_status(w) is WordStatus(filters.status)]
    if filters.source is not None:
        result = [w for w in result if word_source(w) is WordSource(filters.source)]

    needle = filters.search_term.strip().lower()
    if needle:
        result = [
            w for w in result
            if needle in w.text.lower() or needle in w.translation.lower()
        ]

    if SortBy(filters.sort_by) is SortBy.PRACTICE_COUNT:
        return sorted(result, key=lambda w: len(w.last_results), reverse=filters.descending)
    return sorted(result, key=lambda w: w.text.casefold(), reverse=filters.descending)


@dataclass
class WordStatistics:
    """Counts per status and source plus answer accuracy over the windows."""

    total_words: int
    new_words: int
    learning_words: int
    mastered_words: int
    total_practices: int
    overall_accuracy: int  # percent of windowed answers that were correct
    dictionary_words: int
    custom_words: int


def word_statistics(words: Sequence[Word]) -> WordStatistics:
    statuses = [word_status(w) for w in words]
    practices = sum(len(w.last_results) for w in words)
    correct = sum(score_of(w.last_results) for w in words)
    return WordStatistics(
        total_words=len(words),
        new_words=statuses.count(WordStatus.NEW),
        learning_words=statuses.count(WordStatus.LEARNING),
        mastered_words=statuses.count(WordStatus.MASTERED),
        total_practices=practices,
        overall_accuracy=math.floor(correct * 100 / practices + 0.5) if practices else 0,
        dictionary_words=sum(1 for w in words if not w.is_custom),
        custom_words=sum(1 for w in words if w.is_custom),
    )
