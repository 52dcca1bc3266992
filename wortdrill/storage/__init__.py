"""Durable key-value persistence shared by the ledger, sessions and pronunciation cache."""

from .kv_store import KeyValueStore, MemoryStore, SqliteStore

__all__ = [
    "KeyValueStore",
    "MemoryStore",
    "SqliteStore",
]
