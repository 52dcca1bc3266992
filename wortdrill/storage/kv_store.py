"""
Durable key-value store for wortdrill.

Every component persists one JSON blob per logical key:
- word-results: performance ledger
- bookmarked-words / german-flashcard-custom-words: vocabulary overlays
- session_config / current_session_progress / session_history: sessions
- german_pronunciation_cache: pronunciation cache

Backends:
- MemoryStore: in-process dict (tests, ephemeral runs)
- SqliteStore: single-table SQLite file (default ~/.wortdrill/state.db)
"""

from __future__ import annotations

import asyncio
import json
import sqlite3
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from loguru import logger

from wortdrill.errors import StorageError


class KeyValueStore(ABC):
    """Async string key-value port with JSON convenience helpers."""

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the stored string for key, or None."""

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous value."""

    @abstractmethod
    async def remove(self, key: str) -> None:
        """Delete key. Missing keys are ignored."""

    async def get_json(self, key: str, default: Any = None) -> Any:
        """
        Load and decode the JSON blob under key.

        A corrupt blob is logged and treated as missing so a damaged
        checkpoint never blocks startup.
        """
        raw = await self.get(key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"Discarding corrupt JSON under '{key}': {e}")
            return default

    async def set_json(self, key: str, value: Any) -> None:
        """Encode value as JSON and store it under key."""
        await self.set(key, json.dumps(value, ensure_ascii=False))


class MemoryStore(KeyValueStore):
    """Dict-backed store. Nothing survives the process."""

    def __init__(self, initial: dict[str, str] | None = None):
        self._data: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> str | None:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return sorted(self._data)


class SqliteStore(KeyValueStore):
    """
    SQLite-backed key-value persistence.

    Blocking sqlite3 calls run in a worker thread; a lock serializes them
    so a write is committed before the next read is issued.
    """

    DEFAULT_DB_PATH = Path.home() / ".wortdrill" / "state.db"

    def __init__(self, db_path: Path | None = None):
        """
        Initialize the store.

        Args:
            db_path: Custom database path (defaults to ~/.wortdrill/state.db)
        """
        self.db_path = db_path or self.DEFAULT_DB_PATH
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._conn: sqlite3.Connection | None = None
        self._lock = asyncio.Lock()
        self._init_schema()

        logger.info(f"SqliteStore initialized at {self.db_path}")

    @property
    def conn(self) -> sqlite3.Connection:
        """Get or create database connection."""
        if self._conn is None:
            self._conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
        return self._conn

    def _init_schema(self) -> None:
        cursor = self.conn.cursor()
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS kv_store (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)
        self.conn.commit()

    def _get_sync(self, key: str) -> str | None:
        cursor = self.conn.cursor()
        cursor.execute("SELECT value FROM kv_store WHERE key = ?", (key,))
        row = cursor.fetchone()
        return None if row is None else row[0]

    def _set_sync(self, key: str, value: str) -> None:
        cursor = self.conn.cursor()
        cursor.execute(
            """
            INSERT INTO kv_store (key, value, updated_at)
            VALUES (?, ?, CURRENT_TIMESTAMP)
            ON CONFLICT(key) DO UPDATE SET
                value = excluded.value,
                updated_at = excluded.updated_at
        """,
            (key, value),
        )
        self.conn.commit()

    def _remove_sync(self, key: str) -> None:
        cursor = self.conn.cursor()
        cursor.execute("DELETE FROM kv_store WHERE key = ?", (key,))
        self.conn.commit()

    async def _run(self, func, *args):
        async with self._lock:
            try:
                return await asyncio.to_thread(func, *args)
            except sqlite3.Error as e:
                raise StorageError(f"SQLite operation failed on {self.db_path}: {e}") from e

    async def get(self, key: str) -> str | None:
        return await self._run(self._get_sync, key)

    async def set(self, key: str, value: str) -> None:
        await self._run(self._set_sync, key, value)

    async def remove(self, key: str) -> None:
        await self._run(self._remove_sync, key)

    def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None
