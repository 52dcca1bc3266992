"""
Integration tests for the study flow over a real SQLite store.

Each "run" opens a fresh workspace on the same database file, the way
separate CLI invocations would.
"""

import json
from collections import Counter

import pytest

from config import Settings
from wortdrill.learning import LanguageLevel, Outcome, SessionConfig
from wortdrill.learning.words import Word
from wortdrill.storage import MemoryStore
from wortdrill.workspace import open_workspace


@pytest.fixture
def settings(tmp_path):
    words_file = tmp_path / "words.json"
    words_file.write_text(
        json.dumps([
            {"word": "der Hund", "translation": "the dog"},
            {"word": "die Katze", "translation": "the cat"},
        ]),
        encoding="utf-8",
    )
    return Settings(data_dir=tmp_path, words_file=words_file, cards_per_session=2)


async def answer_session(ws, hund_correct: bool):
    """Run one full session; der Hund gets the given answer, anything else is practice-again."""
    session = await ws.machine.start_session(ws.book.words())
    while not session.is_complete:
        card = ws.machine.current_word(session, ws.book.words())
        if card.text == "der Hund":
            await ws.machine.record_outcome(session, is_correct=hund_correct)
        else:
            await ws.machine.record_outcome(session, is_correct=False, is_practice_again=True)
        ws.book.refresh()
    return session


class TestStudyFlow:

    @pytest.mark.asyncio
    async def test_three_sessions_leave_hund_in_weight_three_tier(self, settings):
        for hund_correct in (False, False, True):
            ws = await open_workspace(settings)
            try:
                await answer_session(ws, hund_correct)
            finally:
                ws.close()

        ws = await open_workspace(settings)
        try:
            history = ws.ledger.get_history("der Hund")
            assert history.last_results == (Outcome.WRONG, Outcome.WRONG, Outcome.CORRECT)
            assert history.score == 1

            pool = Counter(w.text for w in ws.engine.build_pool(ws.book.words()))
            assert pool["der Hund"] == 3
            assert ws.engine.select_next([ws.book.get("der Hund")]).text == "der Hund"

            sessions = await ws.machine.history()
            assert len(sessions) == 3
            assert "die Katze" not in ws.ledger
        finally:
            ws.close()

    @pytest.mark.asyncio
    async def test_interrupted_session_resumes_in_next_run(self, settings):
        ws = await open_workspace(settings)
        try:
            session = await ws.machine.start_session(ws.book.words())
            await ws.machine.record_outcome(session, is_correct=True)
            first_card = session.session_cards[0].text
        finally:
            ws.close()

        ws = await open_workspace(settings)
        try:
            resumed = await ws.machine.resume()
            assert resumed.session_id == session.session_id
            assert resumed.current_index == 1
            assert ws.ledger.score(first_card) == 1

            await ws.machine.record_outcome(resumed, is_correct=True)
            assert resumed.is_complete
            assert await ws.machine.resume() is None
        finally:
            ws.close()

    @pytest.mark.asyncio
    async def test_custom_word_joins_sessions(self, settings):
        ws = await open_workspace(settings)
        try:
            await ws.book.add_custom_word("der Baum", "the tree")
            await ws.machine.update_config(cards_per_session=10)
        finally:
            ws.close()

        ws = await open_workspace(settings)
        try:
            assert ws.machine.config.cards_per_session == 10
            session = await ws.machine.start_session(ws.book.words())
            assert sorted(w.text for w in session.session_cards) == ["der Baum", "der Hund", "die Katze"]
        finally:
            ws.close()

    @pytest.mark.asyncio
    async def test_startup_adopts_legacy_seed_history(self, tmp_path):
        words_file = tmp_path / "legacy.json"
        words_file.write_text(
            json.dumps([{"word": "lesen", "translation": "to read", "lastResults": ["correct", "wrong"]}]),
            encoding="utf-8",
        )
        ws = await open_workspace(Settings(data_dir=tmp_path, words_file=words_file))
        try:
            assert ws.book.get("lesen").score == 1
            assert ws.ledger.get_history("lesen").last_results == (Outcome.CORRECT, Outcome.WRONG)
            assert await ws.ledger.recalculate_all(ws.book.seed_words()) == 0
        finally:
            ws.close()

    @pytest.mark.asyncio
    async def test_stale_stored_score_is_fixed_before_selection(self, settings):
        store = MemoryStore({
            "word-results-B1": json.dumps({
                "der Hund": {"lastResults": ["correct", "correct", "correct"], "score": 0},
            }),
        })

        ws = await open_workspace(settings, store=store)

        assert ws.ledger.score("der Hund") == 3
        assert ws.book.get("der Hund").is_mastered
        assert [w.text for w in ws.engine.eligible(ws.book.words())] == ["die Katze"]
        for _ in range(20):
            assert ws.engine.select_next(ws.book.words()).text == "die Katze"

    @pytest.mark.asyncio
    async def test_score_migration_runs_once(self, settings):
        store = MemoryStore()
        await open_workspace(settings, store=store)

        # Written after the first open; the flag keeps it as stored
        await store.set_json("word-results-B1", {"der Hund": {"lastResults": ["correct"], "score": 0}})
        ws = await open_workspace(settings, store=store)

        assert ws.ledger.score("der Hund") == 0

    @pytest.mark.asyncio
    async def test_session_config_defaults_come_from_settings(self, settings):
        ws = await open_workspace(settings)
        try:
            assert ws.machine.config == SessionConfig(cards_per_session=2)
            assert isinstance(ws.book.words()[0], Word)
        finally:
            ws.close()


class TestLevels:

    @pytest.fixture
    def level_settings(self, tmp_path):
        for level, word in (("B1", "die Erfahrung"), ("A2", "der Hund")):
            (tmp_path / f"words_{level}.json").write_text(
                json.dumps([{"word": word, "translation": ""}]), encoding="utf-8"
            )
        return Settings(data_dir=tmp_path, words_dir=tmp_path)

    @pytest.mark.asyncio
    async def test_each_level_has_its_own_words_and_history(self, level_settings):
        ws = await open_workspace(level_settings)
        try:
            assert ws.level is LanguageLevel.B1
            assert [w.text for w in ws.book.words()] == ["die Erfahrung"]
            await ws.ledger.record_outcome("die Erfahrung", Outcome.CORRECT)
            await ws.book.toggle_bookmark("die Erfahrung")
            await ws.levels.set_current_level("A2")
        finally:
            ws.close()

        ws = await open_workspace(level_settings)
        try:
            assert ws.level is LanguageLevel.A2
            assert [w.text for w in ws.book.words()] == ["der Hund"]
            assert len(ws.ledger) == 0
            assert ws.book.bookmarked_words() == []
        finally:
            ws.close()

        ws = await open_workspace(level_settings, level="B1")
        try:
            assert ws.ledger.score("die Erfahrung") == 1
            assert ws.book.get("die Erfahrung").bookmarked
        finally:
            ws.close()
