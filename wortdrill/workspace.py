"""
Component wiring.

Builds the ledger, vocabulary, selection engine, session machine and
pronunciation cache over one key-value store, loading each in dependency
order.
"""

from __future__ import annotations

from dataclasses import dataclass

from loguru import logger

from config import Settings
from wortdrill.audio import AudioFallbackChain, OpenAISpeechClient, PronunciationCache
from wortdrill.learning import (
    LanguageLevel,
    LevelKeys,
    LevelService,
    PerformanceLedger,
    SelectionEngine,
    SessionConfig,
    SessionMachine,
    VocabularyBook,
    load_seed_words,
)
from wortdrill.storage import KeyValueStore, SqliteStore


@dataclass
class Workspace:
    store: KeyValueStore
    ledger: PerformanceLedger
    book: VocabularyBook
    engine: SelectionEngine
    machine: SessionMachine
    cache: PronunciationCache
    settings: Settings
    levels: LevelService
    level: LanguageLevel

    def speech_client(self) -> OpenAISpeechClient:
        return OpenAISpeechClient(
            api_key=self.settings.openai_api_key,
            base_url=self.settings.openai_base_url,
            model=self.settings.tts_model,
            voice=self.settings.tts_voice,
            timeout_seconds=self.settings.tts_timeout_seconds,
        )

    def audio_chain(self, remote=None, player=None, local=None) -> AudioFallbackChain:
        return AudioFallbackChain(
            cache=self.cache,
            player=player,
            remote=remote,
            local=local,
            remote_timeout=self.settings.tts_timeout_seconds,
        )

    def close(self) -> None:
        if isinstance(self.store, SqliteStore):
            self.store.close()


async def open_workspace(
    settings: Settings,
    store: KeyValueStore | None = None,
    level: LanguageLevel | str | None = None,
) -> Workspace:
    """
    Create and load every component.

    The language level comes from the argument, then settings, then the
    saved level. Cached scores are recalculated once per level on first
    open.

    Args:
        settings: Application settings
        store: Store to use (SQLite at the configured path if None)
        level: Language level override for this run

    Returns:
        Loaded workspace
    """
    store = store or SqliteStore(settings.resolved_state_db_path)

    levels = LevelService(store)
    await levels.initialize()
    level = LanguageLevel(level or settings.level or levels.current)
    keys = LevelKeys.for_level(level)

    ledger = PerformanceLedger(store, key=keys.results)
    await ledger.load()

    book = VocabularyBook(
        store,
        ledger,
        load_seed_words(settings.words_file_for(level.value)),
        custom_words_key=keys.custom_words,
        bookmarks_key=keys.bookmarks,
    )
    await book.load()

    await ledger.migrate_once(book.seed_words())
    book.refresh()

    engine = SelectionEngine(ledger)
    machine = SessionMachine(
        store,
        ledger,
        engine,
        history_limit=settings.session_history_limit,
        default_config=SessionConfig(
            cards_per_session=settings.cards_per_session,
            session_type=settings.session_type,
        ),
    )
    await machine.load_config()

    cache = PronunciationCache(
        store,
        max_entries=settings.pronunciation_cache_max_entries,
        ttl_days=settings.pronunciation_cache_ttl_days,
    )
    await cache.load()

    logger.debug(
        f"Workspace ready at level {level.value}: {len(book)} words, {len(ledger)} with history"
    )
    return Workspace(
        store=store,
        ledger=ledger,
        book=book,
        engine=engine,
        machine=machine,
        cache=cache,
        settings=settings,
        levels=levels,
        level=level,
    )
