"""Durable key-value stores for reconciliation state."""

from .store import InMemoryStore, JsonFileStore, KeyValueStore

__all__ = ["InMemoryStore", "JsonFileStore", "KeyValueStore"]
