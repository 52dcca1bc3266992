"""
Pronunciation audio: bounded cache and the cache/remote/device fallback chain.
"""

from wortdrill.audio.cache import CachedPronunciation, CacheStats, PronunciationCache
from wortdrill.audio.fallback import (
    AudioFallbackChain,
    AudioPlayer,
    AudioSource,
    FailureReason,
    LocalSpeaker,
    PreloadReport,
    PronunciationResult,
    RemoteFailure,
    RemoteSynthesizer,
    preload_candidates,
)
from wortdrill.audio.openai_tts import OpenAISpeechClient

__all__ = [
    "AudioFallbackChain",
    "AudioPlayer",
    "AudioSource",
    "CacheStats",
    "CachedPronunciation",
    "FailureReason",
    "LocalSpeaker",
    "OpenAISpeechClient",
    "PreloadReport",
    "PronunciationCache",
    "PronunciationResult",
    "RemoteFailure",
    "RemoteSynthesizer",
    "preload_candidates",
]
