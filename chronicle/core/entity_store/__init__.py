"""Entity store: named entities with version history and typed relations."""

from chronicle.core.entity_store.entity_store import EntityStore

__all__ = [
    "EntityStore",
]
