"""
Learning core: outcome ledger, weighted selection, vocabulary and sessions.
"""

from wortdrill.learning.ledger import PerformanceLedger, WordHistory
from wortdrill.learning.levels import LanguageLevel, LevelKeys, LevelService, asset_path
from wortdrill.learning.selection import SelectionEngine, weight
from wortdrill.learning.session import (
    CardStatus,
    CompletedSession,
    SessionConfig,
    SessionMachine,
    SessionProgress,
    SessionState,
    SessionType,
)
from wortdrill.learning.statistics import (
    ProgressSummary,
    SortBy,
    WordFilters,
    WordSource,
    WordStatistics,
    WordStatus,
    filter_words,
    summarize,
    word_statistics,
    word_status,
)
from wortdrill.learning.vocabulary import VocabularyBook, load_seed_words
from wortdrill.learning.words import Outcome, Word

__all__ = [
    "CardStatus",
    "CompletedSession",
    "LanguageLevel",
    "LevelKeys",
    "LevelService",
    "Outcome",
    "PerformanceLedger",
    "ProgressSummary",
    "SelectionEngine",
    "SessionConfig",
    "SessionMachine",
    "SessionProgress",
    "SessionState",
    "SessionType",
    "SortBy",
    "VocabularyBook",
    "Word",
    "WordFilters",
    "WordHistory",
    "WordSource",
    "WordStatistics",
    "WordStatus",
    "asset_path",
    "filter_words",
    "load_seed_words",
    "summarize",
    "weight",
    "word_statistics",
    "word_status",
]
