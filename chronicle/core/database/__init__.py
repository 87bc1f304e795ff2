"""
Persistence engine for Chronicle.

Provides the single SQLite connection, schema migrations and the
transactional primitive shared by all stores.
"""

from chronicle.core.database.engine import Database, Transaction
from chronicle.core.database.schema import MIGRATIONS, SCHEMA_VERSION, Migration

__all__ = [
    "Database",
    "Transaction",
    "Migration",
    "MIGRATIONS",
    "SCHEMA_VERSION",
]
