"""
Tests for the vocabulary book: seed loading, custom words, bookmarks, projections.
"""

import json

import pytest

from wortdrill.errors import DuplicateWordError, EmptyWordError
from wortdrill.learning.vocabulary import (
    BOOKMARKS_KEY,
    CUSTOM_WORDS_KEY,
    VocabularyBook,
    load_seed_words,
)
from wortdrill.learning.words import Outcome
from wortdrill.storage import MemoryStore


@pytest.fixture
def words_file(tmp_path):
    path = tmp_path / "words.json"
    path.write_text(
        json.dumps([
            {"word": "der Hund", "translation": "the dog"},
            {"word": "die Katze", "translation": "the cat"},
            {"word": "  ", "translation": "blank"},
            {"word": "der Hund", "translation": "the hound"},
        ]),
        encoding="utf-8",
    )
    return path


class TestLoadSeedWords:

    def test_skips_blank_and_last_duplicate_wins(self, words_file):
        words = load_seed_words(words_file)

        assert [w.text for w in words] == ["der Hund", "die Katze"]
        assert words[0].translation == "the hound"

    def test_missing_file_gives_empty_list(self, tmp_path):
        assert load_seed_words(tmp_path / "absent.json") == []


class TestVocabularyBook:

    @pytest.fixture
    def book(self, store, ledger, sample_words):
        return VocabularyBook(store, ledger, sample_words)

    @pytest.mark.asyncio
    async def test_projections_follow_ledger_after_refresh(self, book, ledger):
        await book.load()
        await ledger.record_outcome("der Hund", Outcome.CORRECT)

        assert book.get("der Hund").score == 0
        book.refresh()
        assert book.get("der Hund").score == 1
        assert book.get("der Hund").is_studied

    @pytest.mark.asyncio
    async def test_add_custom_word(self, book, store):
        await book.load()

        word = await book.add_custom_word("  der Baum ", "the tree")

        assert word.text == "der Baum"
        assert word.is_custom
        assert len(book) == 6
        assert await store.get_json(CUSTOM_WORDS_KEY) == [{"word": "der Baum", "translation": "the tree"}]

    @pytest.mark.asyncio
    async def test_add_rejects_empty_and_duplicates(self, book):
        await book.load()

        with pytest.raises(EmptyWordError):
            await book.add_custom_word("", "nothing")
        with pytest.raises(DuplicateWordError):
            await book.add_custom_word("das Haus", "the house")

        await book.add_custom_word("der Baum", "the tree")
        with pytest.raises(DuplicateWordError):
            await book.add_custom_word("der Baum", "the tree")

    @pytest.mark.asyncio
    async def test_custom_entry_wins_on_collision(self, ledger, sample_words):
        store = MemoryStore({CUSTOM_WORDS_KEY: json.dumps([{"word": "das Haus", "translation": "the home"}])})
        book = VocabularyBook(store, ledger, sample_words)
        await book.load()

        assert len(book) == 5
        assert book.get("das Haus").translation == "the home"

    @pytest.mark.asyncio
    async def test_update_and_remove_translation_override(self, book):
        await book.load()

        await book.update_translation("die Katze", "the kitty")
        assert book.get("die Katze").translation == "the kitty"

        assert await book.remove_custom_word("die Katze") is True
        assert book.get("die Katze").translation == "the cat"
        assert await book.remove_custom_word("die Katze") is False

    @pytest.mark.asyncio
    async def test_toggle_bookmark(self, book, store):
        await book.load()

        assert await book.toggle_bookmark("der Tisch") is True
        assert [w.text for w in book.bookmarked_words()] == ["der Tisch"]
        assert await store.get_json(BOOKMARKS_KEY) == ["der Tisch"]

        assert await book.toggle_bookmark("der Tisch") is False
        assert book.bookmarked_words() == []

    @pytest.mark.asyncio
    async def test_find_prefers_exact_match(self, book):
        await book.load()

        assert book.find("DER HUND").text == "der Hund"
        assert book.find("schul").text == "die Schule"
        assert book.find("xyz") is None
