"""
Database schema and migrations.

Migrations are applied in order, each in its own transaction, and recorded in
`schema_version`. Every statement is idempotent so re-running initialization
against an existing database is safe.
"""

from typing import NamedTuple


class Migration(NamedTuple):
    """A numbered schema change."""

    version: int
    description: str
    statements: tuple[str, ...]


BOOTSTRAP_STATEMENTS: tuple[str, ...] = (
    """
    CREATE TABLE IF NOT EXISTS schema_version (
        version INTEGER PRIMARY KEY,
        applied_at INTEGER NOT NULL,
        description TEXT
    )
    """,
)


_INITIAL_SCHEMA: tuple[str, ...] = (
    # Full details - lazily loaded event payloads
    """
    CREATE TABLE IF NOT EXISTS full_details (
        key TEXT PRIMARY KEY,
        data TEXT NOT NULL,
        created_at INTEGER NOT NULL,
        accessed_at INTEGER NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_full_details_accessed ON full_details(accessed_at)",
    # Timeline events - no cascade to full_details, the timeline store deletes the detail itself
    """
    CREATE TABLE IF NOT EXISTS timeline_events (
        id TEXT PRIMARY KEY,
        timestamp INTEGER NOT NULL,
        date TEXT NOT NULL,
        type TEXT NOT NULL,
        namespace TEXT,
        title TEXT,
        metadata TEXT,
        full_data_key TEXT REFERENCES full_details(key),
        created_at INTEGER NOT NULL,
        updated_at INTEGER NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_timeline_date ON timeline_events(date)",
    "CREATE INDEX IF NOT EXISTS idx_timeline_timestamp ON timeline_events(timestamp)",
    "CREATE INDEX IF NOT EXISTS idx_timeline_type ON timeline_events(type)",
    "CREATE INDEX IF NOT EXISTS idx_timeline_namespace ON timeline_events(namespace)",
    "CREATE INDEX IF NOT EXISTS idx_timeline_date_type ON timeline_events(date, type)",
    "CREATE INDEX IF NOT EXISTS idx_timeline_full_data_key ON timeline_events(full_data_key)",
    # Memories - key-value with optional expiry
    """
    CREATE TABLE IF NOT EXISTS memories (
        key TEXT PRIMARY KEY,
        value TEXT NOT NULL,
        namespace TEXT,
        created_at INTEGER NOT NULL,
        updated_at INTEGER NOT NULL,
        expires_at INTEGER
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_memories_namespace ON memories(namespace)",
    "CREATE INDEX IF NOT EXISTS idx_memories_expires ON memories(expires_at)",
    # Entities
    """
    CREATE TABLE IF NOT EXISTS entities (
        id TEXT PRIMARY KEY,
        type TEXT NOT NULL,
        name TEXT NOT NULL UNIQUE,
        properties TEXT NOT NULL,
        created_at INTEGER NOT NULL,
        updated_at INTEGER NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_entities_type ON entities(type)",
    # Entity versions - append-only snapshots
    """
    CREATE TABLE IF NOT EXISTS entity_versions (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        entity_id TEXT NOT NULL,
        version INTEGER NOT NULL,
        properties TEXT NOT NULL,
        changed_by TEXT NOT NULL,
        changed_at INTEGER NOT NULL,
        change_reason TEXT,
        UNIQUE (entity_id, version),
        FOREIGN KEY (entity_id) REFERENCES entities(id) ON DELETE CASCADE
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_entity_versions_changed_at ON entity_versions(changed_at)",
    # Relations - typed directed edges
    """
    CREATE TABLE IF NOT EXISTS relations (
        id TEXT PRIMARY KEY,
        from_entity_id TEXT NOT NULL,
        relation_type TEXT NOT NULL,
        to_entity_id TEXT NOT NULL,
        properties TEXT,
        created_at INTEGER NOT NULL,
        FOREIGN KEY (from_entity_id) REFERENCES entities(id) ON DELETE CASCADE,
        FOREIGN KEY (to_entity_id) REFERENCES entities(id) ON DELETE CASCADE
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_rel_from ON relations(from_entity_id)",
    "CREATE INDEX IF NOT EXISTS idx_rel_to ON relations(to_entity_id)",
    "CREATE INDEX IF NOT EXISTS idx_rel_type ON relations(relation_type)",
    "CREATE INDEX IF NOT EXISTS idx_rel_from_type ON relations(from_entity_id, relation_type)",
    "CREATE INDEX IF NOT EXISTS idx_rel_to_type ON relations(to_entity_id, relation_type)",
)


MIGRATIONS: tuple[Migration, ...] = (
    Migration(1, "Initial schema creation", _INITIAL_SCHEMA),
)

SCHEMA_VERSION = MIGRATIONS[-1].version
