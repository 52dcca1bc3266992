"""
Exception taxonomy for wortdrill.

Input errors and lifecycle errors are raised to the caller as typed
exceptions. Transient storage and synthesis failures are caught at the
component boundary, logged, and converted into results.
"""

from __future__ import annotations


class WortdrillError(Exception):
    """Base class for all wortdrill errors."""
    pass


class EmptyWordError(WortdrillError, ValueError):
    """Raised when a word key is empty or whitespace."""
    pass


class DuplicateWordError(WortdrillError, ValueError):
    """Raised when adding a word that already exists."""
    pass


class NoWordsAvailableError(WortdrillError):
    """Raised when a session cannot be built because no words are left to study."""
    pass


class NoActiveSessionError(WortdrillError, RuntimeError):
    """Raised when a session operation targets no live session."""
    pass


class SessionCompleteError(NoActiveSessionError):
    """Raised when a session operation targets a session that already completed."""
    pass


class StorageError(WortdrillError):
    """Raised by a key-value backend when a read or write fails."""
    pass


class SynthesisError(WortdrillError):
    """Raised by a remote synthesizer; ``kind`` names the failure class."""

    def __init__(self, message: str, kind: str = "network"):
        super().__init__(message)
        self.kind = kind


def require_word(word: str | None) -> str:
    """Return the stripped word or raise EmptyWordError."""
    if word is None or not str(word).strip():
        raise EmptyWordError("Word cannot be empty")
    return str(word).strip()
