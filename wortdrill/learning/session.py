"""
Study session state machine.

A session fixes its card list up front, then tracks position, per-card
answers, navigation and completion:

    Idle -> Active -> Complete

The SessionProgress handle is passed into and returned from every
operation. One session is live at a time; it is checkpointed after every
mutation so an interrupted run resumes exactly where it stopped.

Storage keys:
- session_config: learner's SessionConfig
- current_session_progress: checkpoint of the live session
- session_history: archived CompletedSession records (last 50)
"""

from __future__ import annotations

import math
import random
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Sequence

from loguru import logger

from wortdrill.errors import (
    NoActiveSessionError,
    NoWordsAvailableError,
    SessionCompleteError,
    StorageError,
)
from wortdrill.learning.ledger import PerformanceLedger
from wortdrill.learning.selection import SelectionEngine
from wortdrill.learning.words import Outcome, Word

SESSION_CONFIG_KEY = "session_config"
CURRENT_SESSION_KEY = "current_session_progress"
SESSION_HISTORY_KEY = "session_history"

DEFAULT_HISTORY_LIMIT = 50


# =============================================================================
# Types
# =============================================================================


class SessionType(str, Enum):
    """Which words a session draws from. Selection is weighted in every mode."""

    MIXED = "mixed"
    NEW = "new"  # never answered
    REVIEW = "review"  # answered at least once
    DIFFICULT = "difficult"  # answered, score 0-1


class SessionState(Enum):
    IDLE = "idle"
    ACTIVE = "active"
    COMPLETE = "complete"


class CardStatus(str, Enum):
    """Answer committed for a card within one session."""

    CORRECT = "correct"
    INCORRECT = "incorrect"
    PRACTICE_AGAIN = "practice-again"
    UNVISITED = "unvisited"


@dataclass
class SessionConfig:
    """Learner-configurable session parameters."""

    cards_per_session: int = 20
    session_type: SessionType = SessionType.MIXED

    def __post_init__(self):
        self.session_type = SessionType(self.session_type)
        if int(self.cards_per_session) <= 0:
            raise ValueError("cards_per_session must be a positive integer")
        self.cards_per_session = int(self.cards_per_session)

    def to_dict(self) -> dict:
        return {"cards_per_session": self.cards_per_session, "session_type": self.session_type.value}

    @classmethod
    def from_dict(cls, data: dict) -> SessionConfig:
        return cls(
            cards_per_session=data.get("cards_per_session", data.get("cardsPerSession", 20)),
            session_type=data.get("session_type", data.get("sessionType", "mixed")),
        )


def success_rate(correct: int, incorrect: int) -> int:
    """Correct share of scored answers as a whole percent, rounded half up; 0 if none."""
    answered = correct + incorrect
    if answered == 0:
        return 0
    return math.floor(correct * 100 / answered + 0.5)


@dataclass
class SessionProgress:
    """Serializable state of one study session."""

    session_id: str
    session_cards: list[Word]
    config: SessionConfig
    started_at: datetime
    current_index: int = 0
    correct_count: int = 0
    incorrect_count: int = 0
    practice_again_count: int = 0
    visited: dict[int, CardStatus] = field(default_factory=dict)
    answers: dict[int, CardStatus] = field(default_factory=dict)
    is_complete: bool = False
    # Set on completion; not checkpointed
    summary: CompletedSession | None = field(default=None, compare=False, repr=False)

    @property
    def total_cards(self) -> int:
        return len(self.session_cards)

    @property
    def state(self) -> SessionState:
        return SessionState.COMPLETE if self.is_complete else SessionState.ACTIVE

    @property
    def answered_count(self) -> int:
        return len(self.answers)

    @property
    def success_rate(self) -> int:
        return success_rate(self.correct_count, self.incorrect_count)

    def to_dict(self) -> dict:
        return {
            "session_id": self.session_id,
            "session_cards": [w.to_dict() for w in self.session_cards],
            "config": self.config.to_dict(),
            "started_at": self.started_at.isoformat(),
            "current_index": self.current_index,
            "correct_count": self.correct_count,
            "incorrect_count": self.incorrect_count,
            "practice_again_count": self.practice_again_count,
            "visited": {str(i): s.value for i, s in self.visited.items()},
            "answers": {str(i): s.value for i, s in self.answers.items()},
            "is_complete": self.is_complete,
        }

    @classmethod
    def from_dict(cls, data: dict) -> SessionProgress:
        visited = {int(i): CardStatus(s) for i, s in (data.get("visited") or {}).items()}
        if "answers" in data:
            answers = {int(i): CardStatus(s) for i, s in (data.get("answers") or {}).items()}
        else:
            # Checkpoints written before committed answers were tracked
            answers = {i: s for i, s in visited.items() if s is not CardStatus.UNVISITED}

        return cls(
            session_id=data["session_id"],
            session_cards=[Word.from_dict(w) for w in data["session_cards"]],
            config=SessionConfig.from_dict(data.get("config") or {}),
            started_at=datetime.fromisoformat(data["started_at"]),
            current_index=int(data.get("current_index", 0)),
            correct_count=int(data.get("correct_count", 0)),
            incorrect_count=int(data.get("incorrect_count", 0)),
            practice_again_count=int(data.get("practice_again_count", 0)),
            visited=visited,
            answers=answers,
            is_complete=bool(data.get("is_complete", False)),
        )


@dataclass
class CompletedSession:
    """Archived summary of a finished (or ended) session."""

    id: str
    started_at: datetime
    ended_at: datetime
    total_cards: int
    correct_count: int
    incorrect_count: int
    practice_again_count: int
    session_type: str
    cards_per_session: int
    success_rate: int

    def to_dict(self) -> dict:
        data = asdict(self)
        data["started_at"] = self.started_at.isoformat()
        data["ended_at"] = self.ended_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: dict) -> CompletedSession:
        data = dict(data)
        data["started_at"] = datetime.fromisoformat(data["started_at"])
        data["ended_at"] = datetime.fromisoformat(data["ended_at"])
        return cls(**data)


_ANSWER_COUNTERS = {
    CardStatus.CORRECT: "correct_count",
    CardStatus.INCORRECT: "incorrect_count",
    CardStatus.PRACTICE_AGAIN: "practice_again_count",
}


def filter_for_session_type(words: Sequence[Word], session_type: SessionType) -> list[Word]:
    """Narrow the candidate words for a session type."""
    if session_type is SessionType.NEW:
        return [w for w in words if not w.is_studied]
    if session_type is SessionType.REVIEW:
        return [w for w in words if w.is_studied]
    if session_type is SessionType.DIFFICULT:
        return [w for w in words if w.is_studied and w.score <= 1]
    return list(words)


# =============================================================================
# Session Machine
# =============================================================================


class SessionMachine:
    """
    Runs study sessions over a weighted word selection.

    Handles:
    - Card list construction (weighted draws, per-session dedup, fallback)
    - Outcome recording with re-answer correction
    - Forward/backward navigation
    - Checkpointing, resume and history archival
    """

    def __init__(
        self,
        store,
        ledger: PerformanceLedger,
        engine: SelectionEngine,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        rng: random.Random | None = None,
        default_config: SessionConfig | None = None,
    ):
        """
        Initialize the machine.

        Args:
            store: KeyValueStore for config, checkpoint and history
            ledger: PerformanceLedger receiving scored outcomes
            engine: SelectionEngine used to fill the card list
            history_limit: Completed sessions kept in history
            rng: Random generator for fallback tie-breaks
            default_config: Config used until a saved one is loaded
        """
        self.store = store
        self.ledger = ledger
        self.engine = engine
        self.history_limit = history_limit
        self.rng = rng or random.Random()

        self.default_config = default_config or SessionConfig()
        self.config = self.default_config
        self.dirty = False
        self._live_id: str | None = None
        self._last_completed_id: str | None = None

    @property
    def state(self) -> SessionState:
        if self._live_id is not None:
            return SessionState.ACTIVE
        if self._last_completed_id is not None:
            return SessionState.COMPLETE
        return SessionState.IDLE

    # =========================================================================
    # Configuration
    # =========================================================================

    async def load_config(self) -> SessionConfig:
        try:
            data = await self.store.get_json(SESSION_CONFIG_KEY)
        except StorageError as e:
            logger.error(f"Error loading session config: {e}")
            self.dirty = True
            return self.config
        if data:
            try:
                self.config = SessionConfig.from_dict(data)
            except ValueError as e:
                logger.warning(f"Ignoring invalid session config: {e}")
        return self.config

    async def update_config(self, **changes) -> SessionConfig:
        """Merge changes into the saved config (e.g. ``cards_per_session=10``)."""
        merged = {**self.config.to_dict(), **changes}
        self.config = SessionConfig.from_dict(merged)
        try:
            await self.store.set_json(SESSION_CONFIG_KEY, self.config.to_dict())
        except StorageError as e:
            logger.error(f"Error saving session config: {e}")
        return self.config

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start_session(
        self,
        words: Sequence[Word],
        config: SessionConfig | None = None,
    ) -> SessionProgress:
        """
        Start a new session, replacing any live one.

        Args:
            words: Current word set
            config: Session parameters (saved config if None)

        Returns:
            The new session handle

        Raises:
            NoWordsAvailableError: no words match the session type
        """
        config = config or self.config
        resolved = [self.engine.resolve(w) for w in words]
        candidates = filter_for_session_type(resolved, config.session_type)
        if not candidates:
            raise NoWordsAvailableError(
                f"No words available for a '{config.session_type.value}' session"
            )

        if self._live_id is not None:
            logger.warning(f"Replacing unfinished session {self._live_id}")

        cards = self._select_cards(candidates, config.cards_per_session)
        session = SessionProgress(
            session_id=uuid.uuid4().hex[:8],
            session_cards=cards,
            config=config,
            started_at=datetime.now(),
        )

        self._live_id = session.session_id
        self._last_completed_id = None
        await self._checkpoint(session)

        logger.info(f"Started new session with {session.total_cards} cards")
        return session

    def _select_cards(self, candidates: list[Word], cards_per_session: int) -> list[Word]:
        target = min(cards_per_session, len(candidates))
        cards: list[Word] = []
        used: set[str] = set()

        for _ in range(target):
            word = self.engine.select_next(candidates)
            if word is None or word.text in used:
                word = self._fallback(candidates, used)
                if word is None:
                    break
            cards.append(word)
            used.add(word.text)

        assert len(used) == len(cards), "duplicate card in session"
        logger.debug(
            f"Selected {len(cards)} words for session: "
            + ", ".join(f"{w.text}({w.score})" for w in cards)
        )
        return cards

    def _fallback(self, candidates: list[Word], used: set[str]) -> Word | None:
        """Lowest-scoring unused word, ties broken randomly."""
        available = [w for w in candidates if w.text not in used]
        if not available:
            return None
        return min(available, key=lambda w: (w.score, self.rng.random()))

    async def resume(self) -> SessionProgress | None:
        """Restore the checkpointed session, if any."""
        try:
            data = await self.store.get_json(CURRENT_SESSION_KEY)
        except StorageError as e:
            logger.error(f"Error loading session checkpoint: {e}")
            self.dirty = True
            return None
        if not data:
            return None
        try:
            session = SessionProgress.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Discarding unreadable session checkpoint: {e}")
            return None

        if session.is_complete:
            return None

        self._live_id = session.session_id
        logger.info(
            f"Resumed session {session.session_id} at card "
            f"{session.current_index + 1}/{session.total_cards}"
        )
        return session

    def _check_live(self, session: SessionProgress | None) -> SessionProgress:
        if session is None:
            raise NoActiveSessionError("No active session")
        if session.is_complete:
            raise SessionCompleteError(f"Session {session.session_id} is already complete")
        if session.session_id != self._live_id:
            raise NoActiveSessionError(f"Session {session.session_id} is not the live session")
        return session

    # =========================================================================
    # Answers
    # =========================================================================

    async def record_outcome(
        self,
        session: SessionProgress,
        is_correct: bool,
        is_practice_again: bool = False,
    ) -> SessionProgress:
        """
        Commit an answer for the current card and advance.

        Re-answering a card (after navigating back) replaces its previous
        answer in the counters instead of adding to them. Correct/incorrect
        answers are written to the ledger; practice-again is session-only.

        Raises:
            NoActiveSessionError: session is missing or not the live one
            SessionCompleteError: session already finished
        """
        session = self._check_live(session)
        index = session.current_index
        card = session.session_cards[index]

        if is_practice_again:
            answer = CardStatus.PRACTICE_AGAIN
        elif is_correct:
            answer = CardStatus.CORRECT
        else:
            answer = CardStatus.INCORRECT

        previous = session.answers.get(index)
        if previous is not None:
            counter = _ANSWER_COUNTERS[previous]
            setattr(session, counter, getattr(session, counter) - 1)
        counter = _ANSWER_COUNTERS[answer]
        setattr(session, counter, getattr(session, counter) + 1)

        session.visited[index] = answer
        session.answers[index] = answer

        assert min(session.correct_count, session.incorrect_count, session.practice_again_count) >= 0
        assert (
            session.correct_count + session.incorrect_count + session.practice_again_count
            == len(session.answers)
        )

        if answer is not CardStatus.PRACTICE_AGAIN:
            await self.ledger.record_outcome(
                card.text, Outcome.CORRECT if is_correct else Outcome.WRONG
            )

        session.current_index += 1
        if session.current_index >= session.total_cards:
            await self._complete(session)
        else:
            await self._checkpoint(session)
        return session

    # =========================================================================
    # Navigation
    # =========================================================================

    def can_navigate_forward(self, session: SessionProgress) -> bool:
        return session.current_index < session.total_cards - 1

    def can_navigate_backward(self, session: SessionProgress) -> bool:
        return session.current_index > 0

    async def navigate_forward(self, session: SessionProgress) -> bool:
        """Move to the next card without scoring. False at the last card."""
        session = self._check_live(session)
        if not self.can_navigate_forward(session):
            return False
        session.current_index += 1
        await self._checkpoint(session)
        return True

    async def navigate_backward(self, session: SessionProgress) -> bool:
        """Move to the previous card. False at the first card."""
        session = self._check_live(session)
        if not self.can_navigate_backward(session):
            return False
        session.current_index -= 1
        await self._checkpoint(session)
        return True

    def card_status(self, session: SessionProgress, index: int) -> CardStatus:
        return session.visited.get(index, CardStatus.UNVISITED)

    def is_current_card_visited(self, session: SessionProgress) -> bool:
        """True when the current card already has a committed answer."""
        return session.current_index in session.answers

    def current_word(
        self,
        session: SessionProgress,
        words: Sequence[Word] | None = None,
    ) -> Word | None:
        """
        Current card resolved by key against the live word set.

        Out-of-band edits (a corrected translation, new history) show up
        without re-selecting the card. Falls back to the stored snapshot.
        """
        if session.current_index >= session.total_cards:
            return None
        stored = session.session_cards[session.current_index]
        for word in words or ():
            if word.text == stored.text:
                return word
        return self.engine.resolve(stored)

    # =========================================================================
    # Completion & history
    # =========================================================================

    async def end_early(self, session: SessionProgress) -> CompletedSession:
        """Complete the session with whatever has been answered so far."""
        session = self._check_live(session)
        return await self._complete(session)

    async def _complete(self, session: SessionProgress) -> CompletedSession:
        session.is_complete = True
        record = CompletedSession(
            id=f"session_{session.session_id}",
            started_at=session.started_at,
            ended_at=datetime.now(),
            total_cards=session.total_cards,
            correct_count=session.correct_count,
            incorrect_count=session.incorrect_count,
            practice_again_count=session.practice_again_count,
            session_type=session.config.session_type.value,
            cards_per_session=session.config.cards_per_session,
            success_rate=session.success_rate,
        )

        session.summary = record
        self._live_id = None
        self._last_completed_id = session.session_id

        try:
            history = await self._read_history()
            history.append(record)
            await self.store.set_json(
                SESSION_HISTORY_KEY, [h.to_dict() for h in history[-self.history_limit:]]
            )
        except StorageError as e:
            logger.error(f"Error archiving session {session.session_id}: {e}")
            self.dirty = True

        try:
            await self.store.remove(CURRENT_SESSION_KEY)
        except StorageError as e:
            logger.error(f"Error clearing checkpoint for session {session.session_id}: {e}")
            self.dirty = True

        logger.info(
            f"Session completed: {record.correct_count} correct, "
            f"{record.incorrect_count} incorrect, {record.practice_again_count} again "
            f"({record.success_rate}%)"
        )
        return record

    async def history(self) -> list[CompletedSession]:
        """Archived sessions, oldest first. Empty when the archive cannot be read."""
        try:
            return await self._read_history()
        except StorageError as e:
            logger.error(f"Error loading session history: {e}")
            self.dirty = True
            return []

    async def _read_history(self) -> list[CompletedSession]:
        data = await self.store.get_json(SESSION_HISTORY_KEY, default=[]) or []
        records = []
        for item in data:
            try:
                records.append(CompletedSession.from_dict(item))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping unreadable session record: {e}")
        return records

    async def last_completed(self) -> CompletedSession | None:
        history = await self.history()
        return history[-1] if history else None

    async def reset_all_sessions(self) -> None:
        """Drop the live session, history and saved config."""
        for key in (CURRENT_SESSION_KEY, SESSION_HISTORY_KEY, SESSION_CONFIG_KEY):
            try:
                await self.store.remove(key)
            except StorageError as e:
                logger.error(f"Error removing '{key}': {e}")
                self.dirty = True
        self._live_id = None
        self._last_completed_id = None
        self.config = self.default_config

    async def _checkpoint(self, session: SessionProgress) -> None:
        try:
            await self.store.set_json(CURRENT_SESSION_KEY, session.to_dict())
        except StorageError as e:
            logger.error(f"Error saving current session: {e}")
            self.dirty = True
            return
        self.dirty = False
