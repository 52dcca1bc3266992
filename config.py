"""
Configuration settings for wortdrill.

Uses Pydantic Settings for environment variable management with .env file support.
Variables are read with the ``WORTDRILL_`` prefix, except the OpenAI key which
also honours the plain ``OPENAI_API_KEY``.
"""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="WORTDRILL_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Storage
    # ========================================
    data_dir: Path = Field(
        default=Path.home() / ".wortdrill",
        description="Directory for local state",
    )
    state_db_path: Path | None = Field(
        default=None,
        description="SQLite key-value store path (defaults to <data_dir>/state.db)",
    )
    words_dir: Path = Field(
        default=Path("assets"),
        description="Directory holding the per-level vocabulary files (words_<LEVEL>.json)",
    )
    words_file: Path | None = Field(
        default=None,
        description="Seed vocabulary JSON file (overrides the per-level file)",
    )

    # ========================================
    # Language level
    # ========================================
    level: Literal["B1", "A2"] | None = Field(
        default=None,
        description="Language level for this run (saved level if unset)",
    )

    # ========================================
    # Sessions
    # ========================================
    cards_per_session: int = Field(
        default=20,
        gt=0,
        description="Default number of cards per session",
    )
    session_type: Literal["mixed", "new", "review", "difficult"] = Field(
        default="mixed",
        description="Default session type",
    )
    session_history_limit: int = Field(
        default=50,
        gt=0,
        description="Completed sessions kept in history",
    )

    # ========================================
    # Pronunciation
    # ========================================
    pronunciation_cache_max_entries: int = Field(
        default=100,
        gt=0,
        description="Maximum cached pronunciations before eviction",
    )
    pronunciation_cache_ttl_days: int = Field(
        default=30,
        gt=0,
        description="Age in days after which cached audio is purged",
    )
    openai_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("WORTDRILL_OPENAI_API_KEY", "OPENAI_API_KEY"),
        description="OpenAI API key for remote speech synthesis",
    )
    openai_base_url: str = Field(
        default="https://api.openai.com/v1",
        description="OpenAI API base URL",
    )
    tts_model: str = Field(
        default="tts-1",
        description="OpenAI text-to-speech model",
    )
    tts_voice: str = Field(
        default="alloy",
        description="OpenAI text-to-speech voice",
    )
    tts_timeout_seconds: float = Field(
        default=15.0,
        gt=0,
        description="Cap on remote synthesis and playback waits",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Logging verbosity level",
    )

    @property
    def resolved_state_db_path(self) -> Path:
        return self.state_db_path or self.data_dir / "state.db"

    def words_file_for(self, level: str) -> Path:
        """Seed vocabulary for a level; an explicit words_file wins."""
        return self.words_file or self.words_dir / f"words_{level}.json"

    def has_remote_tts_configured(self) -> bool:
        """Check if remote speech synthesis is configured."""
        return bool(self.openai_api_key)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
