"""
Audio fallback chain.

Resolves a pronunciation request through three ordered stages, each tried
only when the previous one is unavailable or fails:

1. Cache hit: play the cached payload. A payload that fails to play is
   evicted.
2. Remote synthesis: synthesize, cache, then play. Waits are capped.
3. On-device synthesis: speak directly.

Nothing raises past ``pronounce()``; every outcome is a PronunciationResult.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Protocol, Sequence, runtime_checkable

from loguru import logger

from wortdrill.audio.cache import PronunciationCache
from wortdrill.errors import EmptyWordError, SynthesisError, require_word
from wortdrill.learning.words import Word

DEFAULT_REMOTE_TIMEOUT = 15.0


# =============================================================================
# Collaborators
# =============================================================================


@runtime_checkable
class RemoteSynthesizer(Protocol):
    async def synthesize(self, word: str) -> str:
        """Return a base64 audio payload or raise SynthesisError."""
        ...


@runtime_checkable
class LocalSpeaker(Protocol):
    def is_supported(self) -> bool:
        ...

    async def speak(self, word: str) -> None:
        """Speak word aloud; raise on failure."""
        ...


@runtime_checkable
class AudioPlayer(Protocol):
    async def play(self, audio_data: str) -> None:
        """Play a base64 payload; raise on failure."""
        ...


# =============================================================================
# Results
# =============================================================================


class AudioSource(str, Enum):
    CACHE = "cache"
    REMOTE = "remote"
    LOCAL = "local"


class FailureReason(str, Enum):
    EMPTY_WORD = "empty_word"
    UNSUPPORTED_DEVICE = "unsupported_device"
    SYNTHESIS_FAILED = "synthesis_failed"


class RemoteFailure(str, Enum):
    NETWORK = "network"
    TIMEOUT = "timeout"
    QUOTA = "quota"
    NOT_CONFIGURED = "not_configured"
    PLAYBACK = "playback"

    @classmethod
    def from_kind(cls, kind: str) -> RemoteFailure:
        try:
            return cls(kind)
        except ValueError:
            return cls.NETWORK


_FAILURE_MESSAGES = {
    FailureReason.EMPTY_WORD: "Nothing to pronounce.",
    FailureReason.UNSUPPORTED_DEVICE: "Speech synthesis is not supported on this device.",
    FailureReason.SYNTHESIS_FAILED: (
        "Both remote and device speech synthesis failed. "
        "Please check your internet connection or device settings."
    ),
}

_REMOTE_MESSAGES = {
    RemoteFailure.NETWORK: "network error",
    RemoteFailure.TIMEOUT: "request timed out",
    RemoteFailure.QUOTA: "quota exceeded",
    RemoteFailure.NOT_CONFIGURED: "remote speech not configured",
    RemoteFailure.PLAYBACK: "audio playback failed",
}


@dataclass
class PronunciationResult:
    """Outcome of one pronounce() call."""

    word: str
    source: AudioSource | None = None
    reason: FailureReason | None = None
    remote_failure: RemoteFailure | None = None

    @property
    def ok(self) -> bool:
        return self.source is not None

    @property
    def message(self) -> str:
        if self.ok:
            return f"Played \"{self.word}\" from {self.source.value}"
        text = _FAILURE_MESSAGES[self.reason]
        if self.remote_failure is not None:
            text += f" (remote: {_REMOTE_MESSAGES[self.remote_failure]})"
        return text


@dataclass
class PreloadReport:
    loaded: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


def preload_candidates(
    words: Sequence[Word],
    common_count: int = 20,
    practice_count: int = 15,
) -> list[str]:
    """
    Words worth warming the cache for, in priority order.

    The first ``common_count`` words (vocabulary files are ordered by
    frequency), every bookmarked word, then up to ``practice_count`` words
    scoring 0 or 1.
    """
    picked: dict[str, None] = {}
    for word in words[:common_count]:
        picked[word.text] = None
    for word in words:
        if word.bookmarked:
            picked[word.text] = None
    for word in [w for w in words if w.score <= 1][:practice_count]:
        picked[word.text] = None
    return list(picked)


# =============================================================================
# Chain
# =============================================================================


class AudioFallbackChain:
    """Cache, then remote synthesis, then on-device synthesis."""

    def __init__(
        self,
        cache: PronunciationCache,
        player: AudioPlayer | None = None,
        remote: RemoteSynthesizer | None = None,
        local: LocalSpeaker | None = None,
        remote_timeout: float = DEFAULT_REMOTE_TIMEOUT,
    ):
        """
        Initialize the chain.

        Args:
            cache: Pronunciation cache consulted first
            player: Plays base64 payloads from the cache or remote stage
                (None skips both; only the device stage can speak)
            remote: Remote synthesizer (stage skipped when None)
            local: On-device speaker (stage skipped when None)
            remote_timeout: Seconds to wait for remote synthesis and playback
        """
        self.cache = cache
        self.player = player
        self.remote = remote
        self.local = local
        self.remote_timeout = remote_timeout

    async def pronounce(self, word: str) -> PronunciationResult:
        try:
            word = require_word(word)
        except EmptyWordError:
            return PronunciationResult(word="", reason=FailureReason.EMPTY_WORD)

        if self.player is None:
            # Payload stages need a player; go straight to the device
            return await self._speak_local(word, RemoteFailure.PLAYBACK)

        if await self._play_cached(word):
            return PronunciationResult(word=word, source=AudioSource.CACHE)

        remote_failure = await self._play_remote(word)
        if remote_failure is None:
            return PronunciationResult(word=word, source=AudioSource.REMOTE)

        return await self._speak_local(word, remote_failure)

    async def _play_cached(self, word: str) -> bool:
        payload = await self.cache.lookup(word)
        if payload is None:
            return False
        try:
            await self.player.play(payload)
        except Exception as e:
            logger.warning(f"Failed to play cached audio for \"{word}\", evicting: {e}")
            await self.cache.remove(word)
            return False
        return True

    async def _play_remote(self, word: str) -> RemoteFailure | None:
        """Run the remote stage. Returns None on success, else the failure kind."""
        if self.remote is None:
            return RemoteFailure.NOT_CONFIGURED

        try:
            payload = await asyncio.wait_for(self.remote.synthesize(word), self.remote_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Remote synthesis timed out for \"{word}\"")
            return RemoteFailure.TIMEOUT
        except SynthesisError as e:
            logger.warning(f"Remote synthesis failed for \"{word}\": {e}")
            return RemoteFailure.from_kind(e.kind)
        except Exception as e:
            logger.warning(f"Remote synthesis failed for \"{word}\": {e}")
            return RemoteFailure.NETWORK

        await self.cache.insert(word, payload)
        try:
            await asyncio.wait_for(self.player.play(payload), self.remote_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Remote audio playback timed out for \"{word}\"")
            return RemoteFailure.TIMEOUT
        except Exception as e:
            logger.warning(f"Remote audio playback failed for \"{word}\": {e}")
            return RemoteFailure.PLAYBACK
        return None

    async def _speak_local(self, word: str, remote_failure: RemoteFailure) -> PronunciationResult:
        try:
            supported = self.local is not None and self.local.is_supported()
        except Exception as e:
            logger.warning(f"Device speech support check failed: {e}")
            supported = False

        if not supported:
            return PronunciationResult(
                word=word, reason=FailureReason.UNSUPPORTED_DEVICE, remote_failure=remote_failure
            )

        try:
            await self.local.speak(word)
        except Exception as e:
            logger.error(f"Device speech synthesis failed for \"{word}\": {e}")
            return PronunciationResult(
                word=word, reason=FailureReason.SYNTHESIS_FAILED, remote_failure=remote_failure
            )

        return PronunciationResult(word=word, source=AudioSource.LOCAL, remote_failure=remote_failure)

    async def preload(self, words: Iterable[str]) -> PreloadReport:
        """
        Warm the cache through the remote synthesizer without playing anything.

        Words already cached are skipped. Never raises.
        """
        report = PreloadReport()
        for word in words:
            word = word.strip()
            if not word:
                continue
            if self.cache.contains(word):
                report.skipped.append(word)
                continue
            if self.remote is None:
                report.failed.append(word)
                continue
            try:
                payload = await asyncio.wait_for(self.remote.synthesize(word), self.remote_timeout)
            except Exception as e:
                logger.warning(f"Failed to preload pronunciation for \"{word}\": {e}")
                report.failed.append(word)
                continue
            await self.cache.insert(word, payload)
            report.loaded.append(word)

        logger.info(
            f"Preloaded {len(report.loaded)} pronunciations "
            f"({len(report.failed)} failed, {len(report.skipped)} already cached)"
        )
        return report
