"""
Vocabulary Book: word source and read-only projections.

Merges three inputs into the word set the engine selects from:
- Seed words from a JSON file (read-only, ``[{"word", "translation"}]``)
- Learner-added custom words (custom wins on key collision)
- Bookmarks

Every projection carries the ledger's current history. After any ledger
write, call ``refresh()`` rather than patching Word objects in place.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Iterable

from loguru import logger

from wortdrill.errors import DuplicateWordError, StorageError, require_word
from wortdrill.learning.ledger import PerformanceLedger
from wortdrill.learning.words import Word
from wortdrill.storage import KeyValueStore

CUSTOM_WORDS_KEY = "german-flashcard-custom-words"
BOOKMARKS_KEY = "bookmarked-words"


def load_seed_words(path: Path) -> list[Word]:
    """
    Read seed vocabulary from a JSON file.

    Entries without a usable ``word`` are skipped; a later duplicate key
    replaces an earlier one.

    Args:
        path: JSON file holding a list of word objects

    Returns:
        Words in file order
    """
    if not path.exists():
        logger.warning(f"Vocabulary file not found: {path}")
        return []

    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    words: dict[str, Word] = {}
    for entry in data:
        if not isinstance(entry, dict) or not str(entry.get("word", "")).strip():
            continue
        word = Word.from_dict(entry)
        words[word.text] = word

    logger.info(f"Loaded {len(words)} words from {path}")
    return list(words.values())


class VocabularyBook:
    """Merged word set with bookmarks and ledger-backed projections."""

    def __init__(
        self,
        store: KeyValueStore,
        ledger: PerformanceLedger,
        seed_words: Iterable[Word] = (),
        custom_words_key: str = CUSTOM_WORDS_KEY,
        bookmarks_key: str = BOOKMARKS_KEY,
    ):
        self.store = store
        self.ledger = ledger
        self.custom_words_key = custom_words_key
        self.bookmarks_key = bookmarks_key
        self._seed: dict[str, Word] = {w.text: w for w in seed_words}
        self._custom: dict[str, Word] = {}
        self._original_translations: dict[str, str] = {}
        self._bookmarks: set[str] = set()
        self._words: list[Word] = []
        self._index: dict[str, Word] = {}

    async def load(self) -> int:
        """
        Load custom words and bookmarks, then build projections.

        Returns:
            Total number of words after the merge
        """
        custom = await self.store.get_json(self.custom_words_key, default=[]) or []
        self._custom = {}
        for entry in custom:
            if not isinstance(entry, dict) or not str(entry.get("word", "")).strip():
                continue
            word = Word.from_dict(entry, is_custom=True)
            self._custom[word.text] = word
            if entry.get("originalTranslation"):
                self._original_translations[word.text] = entry["originalTranslation"]

        self._bookmarks = set(await self.store.get_json(self.bookmarks_key, default=[]) or [])
        self.refresh()
        return len(self._words)

    def refresh(self) -> list[Word]:
        """Rebuild projections from seed + custom + bookmarks + ledger."""
        merged: dict[str, Word] = dict(self._seed)
        merged.update(self._custom)

        words = []
        for key, word in merged.items():
            h = self.ledger.get_history(key)
            words.append(
                Word(
                    text=word.text,
                    translation=word.translation,
                    bookmarked=key in self._bookmarks,
                    last_results=h.last_results,
                    score=h.score,
                    is_custom=key in self._custom,
                )
            )

        self._words = words
        self._index = {w.text: w for w in words}
        return list(words)

    # =========================================================================
    # Queries
    # =========================================================================

    def words(self) -> list[Word]:
        return list(self._words)

    def get(self, text: str) -> Word | None:
        return self._index.get(text)

    def find(self, term: str) -> Word | None:
        """Case-insensitive exact match first, then substring match."""
        needle = term.strip().lower()
        if not needle:
            return None
        for word in self._words:
            if word.text.lower() == needle:
                return word
        for word in self._words:
            if needle in word.text.lower():
                return word
        return None

    def seed_words(self) -> list[Word]:
        """Seed entries as read from the file, including any legacy history."""
        return list(self._seed.values())

    def custom_words(self) -> list[Word]:
        return [self._index[k] for k in self._custom if k in self._index]

    def bookmarked_words(self) -> list[Word]:
        return [w for w in self._words if w.bookmarked]

    def __len__(self) -> int:
        return len(self._words)

    # =========================================================================
    # Custom words
    # =========================================================================

    async def add_custom_word(self, text: str, translation: str) -> Word:
        """
        Add a learner word.

        Raises:
            EmptyWordError: text is empty
            DuplicateWordError: the word already exists
        """
        text = require_word(text)
        if text in self._custom:
            raise DuplicateWordError(f"'{text}' already exists in your custom dictionary")
        if text in self._seed:
            raise DuplicateWordError(f"'{text}' already exists in the original dictionary")

        self._custom[text] = Word(text=text, translation=translation.strip(), is_custom=True)
        await self._save_custom()
        self.refresh()
        return self._index[text]

    async def update_translation(self, text: str, translation: str) -> Word:
        """
        Override the translation of an existing word with a custom entry.

        The original translation is remembered so the override can be
        removed later.
        """
        text = require_word(text)
        current = self._index.get(text)
        if current is not None and text not in self._original_translations:
            self._original_translations[text] = current.translation

        self._custom[text] = Word(text=text, translation=translation.strip(), is_custom=True)
        await self._save_custom()
        self.refresh()
        return self._index[text]

    async def remove_custom_word(self, text: str) -> bool:
        if self._custom.pop(text, None) is None:
            return False
        self._original_translations.pop(text, None)
        await self._save_custom()
        self.refresh()
        return True

    async def _save_custom(self) -> None:
        payload = []
        for key, word in self._custom.items():
            entry = {"word": word.text, "translation": word.translation}
            if key in self._original_translations:
                entry["originalTranslation"] = self._original_translations[key]
            payload.append(entry)
        try:
            await self.store.set_json(self.custom_words_key, payload)
        except StorageError as e:
            logger.error(f"Error saving custom words: {e}")

    # =========================================================================
    # Bookmarks
    # =========================================================================

    async def toggle_bookmark(self, text: str) -> bool:
        """Flip the bookmark flag. Returns the new state."""
        if text in self._bookmarks:
            self._bookmarks.discard(text)
            state = False
        else:
            self._bookmarks.add(text)
            state = True
        await self._save_bookmarks()
        self.refresh()
        return state

    async def clear_bookmarks(self) -> None:
        self._bookmarks.clear()
        await self._save_bookmarks()
        self.refresh()

    async def _save_bookmarks(self) -> None:
        try:
            await self.store.set_json(self.bookmarks_key, sorted(self._bookmarks))
        except StorageError as e:
            logger.error(f"Error saving bookmarked words: {e}")
