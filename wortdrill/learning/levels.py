"""
Language levels.

Each level (B1, A2) has its own vocabulary file and its own ledger,
bookmarks and custom words. The selected level is persisted under
``current-level``.

Stores written before levels existed kept everything under unsuffixed
keys; ``initialize()`` copies those to B1 once, guarded by
``data-migrated-v1``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from loguru import logger

from wortdrill.errors import StorageError
from wortdrill.storage import KeyValueStore

CURRENT_LEVEL_KEY = "current-level"
LEVEL_MIGRATION_KEY = "data-migrated-v1"


class LanguageLevel(str, Enum):
    B1 = "B1"
    A2 = "A2"


DEFAULT_LEVEL = LanguageLevel.B1


@dataclass(frozen=True)
class LevelKeys:
    """Storage keys for one level's learner data."""

    results: str
    bookmarks: str
    custom_words: str

    @classmethod
    def for_level(cls, level: LanguageLevel | str) -> LevelKeys:
        level = LanguageLevel(level).value
        return cls(
            results=f"word-results-{level}",
            bookmarks=f"bookmarked-words-{level}",
            custom_words=f"custom-words-{level}",
        )


# Unsuffixed keys used before levels, with the B1 key each one moves to.
_LEGACY_KEYS = {
    "bookmarked-words": "bookmarks",
    "word-results": "results",
    "german-flashcard-custom-words": "custom_words",
    "custom-words": "custom_words",
}


def asset_path(words_dir: Path, level: LanguageLevel | str) -> Path:
    """Vocabulary file for a level: ``<words_dir>/words_<L>.json``."""
    return Path(words_dir) / f"words_{LanguageLevel(level).value}.json"


class LevelService:
    """Tracks the selected level and migrates pre-level data."""

    def __init__(self, store: KeyValueStore):
        self.store = store
        self.current = DEFAULT_LEVEL

    def available_levels(self) -> list[LanguageLevel]:
        return list(LanguageLevel)

    async def initialize(self) -> LanguageLevel:
        """
        Run the one-time key migration, then load the saved level.

        An unset or unknown saved level falls back to B1 and is saved.

        Returns:
            The current level
        """
        try:
            if not await self.store.get(LEVEL_MIGRATION_KEY):
                await self._migrate_legacy_keys()
                await self.store.set(LEVEL_MIGRATION_KEY, "true")

            saved = await self.store.get(CURRENT_LEVEL_KEY)
        except StorageError as e:
            logger.error(f"Error initializing language level: {e}")
            return self.current

        if saved in {level.value for level in LanguageLevel}:
            self.current = LanguageLevel(saved)
        else:
            await self.set_current_level(DEFAULT_LEVEL)

        logger.info(f"Level service initialized with level: {self.current.value}")
        return self.current

    async def set_current_level(self, level: LanguageLevel | str) -> LanguageLevel:
        self.current = LanguageLevel(level)
        try:
            await self.store.set(CURRENT_LEVEL_KEY, self.current.value)
        except StorageError as e:
            logger.error(f"Error saving language level: {e}")
        logger.info(f"Switched to level: {self.current.value}")
        return self.current

    async def _migrate_legacy_keys(self) -> None:
        target = LevelKeys.for_level(LanguageLevel.B1)
        for legacy, field_name in _LEGACY_KEYS.items():
            value = await self.store.get(legacy)
            if value is None:
                continue
            destination = getattr(target, field_name)
            if await self.store.get(destination) is not None:
                continue
            await self.store.set(destination, value)
            logger.info(f"Migrated '{legacy}' to '{destination}'")
