"""Timeline store: temporal events with lazily expanded full details."""

from chronicle.core.timeline_store.timeline_store import TimelineStore

__all__ = [
    "TimelineStore",
]
