"""
Shared test fixtures for all test modules.

Every test gets its own SQLite file under tmp_path and a controllable clock,
so TTL and ordering behaviour is deterministic.
"""

from collections.abc import AsyncGenerator

import pytest

from chronicle.core.database import Database
from chronicle.core.entity_store import EntityStore
from chronicle.core.memory_store import MemoryStore
from chronicle.core.timeline_store import TimelineStore

# 2024-01-15T10:00:00Z
START_MS = 1705312800000


class FakeClock:
    """Epoch-millisecond clock that only moves when told to."""

    def __init__(self, start: int = START_MS):
        self.current = start

    def __call__(self) -> int:
        return self.current

    def advance(self, seconds: float = 0, ms: int = 0) -> int:
        self.current += int(seconds * 1000) + ms
        return self.current


@pytest.fixture
def clock() -> FakeClock:
    """Create a fake clock starting at a fixed instant."""
    return FakeClock()


@pytest.fixture
async def database(tmp_path, clock) -> AsyncGenerator:
    """Create an initialized database in a temporary directory."""
    db = Database(db_path=str(tmp_path / "chronicle.db"), clock=clock)
    await db.initialize()

    yield db

    await db.close()


@pytest.fixture
def timeline_store(database) -> TimelineStore:
    return TimelineStore(database)


@pytest.fixture
def entity_store(database) -> EntityStore:
    return EntityStore(database)


@pytest.fixture
def memory_store(database) -> MemoryStore:
    return MemoryStore(database)
