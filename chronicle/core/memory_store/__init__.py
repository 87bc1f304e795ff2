"""Memory store: namespaced key-value pairs with lazy TTL expiry."""

from chronicle.core.memory_store.memory_store import MemoryStore

__all__ = [
    "MemoryStore",
]
