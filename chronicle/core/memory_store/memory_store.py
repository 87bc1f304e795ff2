"""
Memory store - namespaced key-value pairs with optional TTL.

Expiry is lazy: once `expires_at` has passed, a memory is invisible to every
read, but its row stays until `clean_expired_memories` sweeps it. The core
never schedules that sweep; callers invoke it.
"""

import sqlite3
from collections.abc import Iterable, Mapping
from typing import Any

from chronicle.core.database import Database, Transaction
from chronicle.models.memory import Memory, MemoryInput, MemoryStats
from chronicle.utils.documents import dump_document, load_document
from chronicle.utils.exceptions import NotFoundError, ValidationError
from chronicle.utils.logger import get_logger
from chronicle.utils.patterns import contains_pattern, key_pattern
from chronicle.utils.validation import coerce_input, require_text

logger = get_logger(__name__)

DEFAULT_NAMESPACE_LABEL = "default"
DEFAULT_SEARCH_LIMIT = 100

_MEMORY_COLUMNS = "key, value, namespace, created_at, updated_at, expires_at"
_LIVE = "(expires_at IS NULL OR expires_at >= ?)"


class MemoryStore:
    """
    Store for key-value memories.

    A memory is expired when `expires_at` is set and lies strictly before
    the current time.
    """

    def __init__(self, database: Database):
        """
        Initialize memory store.

        Args:
            database: Shared persistence engine
        """
        self.db = database

    # ═══════════════════════════════════════════════════════════
    # SINGLE-KEY OPERATIONS
    # ═══════════════════════════════════════════════════════════

    async def store_memory(self, memory: MemoryInput | Mapping[str, Any]) -> Memory:
        """
        Create or replace a memory.

        Overwriting a live memory keeps its `created_at`; overwriting an
        expired one starts it afresh.

        Args:
            memory: Memory input (ttl in seconds, optional)

        Returns:
            The stored memory

        Raises:
            ValidationError: If key or value is missing, or ttl isn't positive
        """
        memory = coerce_input(MemoryInput, memory)
        require_text(memory.key, "Memory key is required")
        values = self._prepare(memory, self.db.now())

        async def _store(tx: Transaction) -> Memory:
            await self._upsert(tx, values)
            row = await tx.query_one(
                f"SELECT {_MEMORY_COLUMNS} FROM memories WHERE key = ?", (memory.key,)
            )
            return self._row_to_memory(row)

        stored = await self.db.run_in_transaction(_store)
        logger.debug(f"Stored memory {memory.key}")
        return stored

    async def retrieve_memory(self, key: str) -> Memory:
        """
        Get a live memory by key.

        Raises:
            NotFoundError: If the key is absent or the memory has expired
        """
        row = await self.db.query_one(
            f"SELECT {_MEMORY_COLUMNS} FROM memories WHERE key = ?", (key,)
        )
        if not row:
            raise NotFoundError(f"Memory not found: {key}", {"key": key})

        memory = self._row_to_memory(row)
        if memory.is_expired(self.db.now()):
            raise NotFoundError(f"Memory expired: {key}", {"key": key, "expired": True})
        return memory

    async def has_memory(self, key: str) -> bool:
        """Check that a live memory exists, without loading its value."""
        row = await self.db.query_one(
            f"SELECT 1 FROM memories WHERE key = ? AND {_LIVE}", (key, self.db.now())
        )
        return row is not None

    async def delete_memory(self, key: str) -> bool:
        """
        Delete a memory.

        Returns:
            True if a row was removed, False if it didn't exist
        """
        deleted = await self.db.execute("DELETE FROM memories WHERE key = ?", (key,))
        return deleted > 0

    async def update_memory_ttl(self, key: str, ttl: int | None) -> bool:
        """
        Reset a memory's expiry relative to now, or clear it with None.

        Expired memories are not revived.

        Returns:
            True if a live memory was updated

        Raises:
            ValidationError: If ttl is neither None nor a positive integer
        """
        if ttl is not None and (isinstance(ttl, bool) or not isinstance(ttl, int) or ttl <= 0):
            raise ValidationError("TTL must be a positive integer or None", {"ttl": ttl})

        now = self.db.now()
        expires_at = now + ttl * 1000 if ttl is not None else None

        updated = await self.db.execute(
            f"UPDATE memories SET expires_at = ?, updated_at = ? WHERE key = ? AND {_LIVE}",
            (expires_at, now, key, now),
        )
        return updated > 0

    async def get_or_set_memory(
        self,
        key: str,
        default: Any,
        namespace: str | None = None,
        ttl: int | None = None,
    ) -> Any:
        """
        Return the live value under `key`, storing `default` first if there is none.
        """
        memory = coerce_input(
            MemoryInput, {"key": key, "value": default, "namespace": namespace, "ttl": ttl}
        )
        require_text(memory.key, "Memory key is required")
        now = self.db.now()
        values = self._prepare(memory, now)

        async def _get_or_set(tx: Transaction) -> Any:
            row = await tx.query_one(
                f"SELECT value FROM memories WHERE key = ? AND {_LIVE}", (key, now)
            )
            if row:
                return load_document(row["value"])
            await self._upsert(tx, values)
            return default

        return await self.db.run_in_transaction(_get_or_set)

    async def rename_memory(self, old_key: str, new_key: str) -> bool:
        """
        Move a live memory to a new key.

        Raises:
            NotFoundError: If `old_key` is absent or expired
            ValidationError: If `new_key` is empty or already holds a live memory
        """
        require_text(new_key, "New memory key is required")
        now = self.db.now()

        async def _rename(tx: Transaction) -> bool:
            current = await tx.query_one(
                f"SELECT 1 FROM memories WHERE key = ? AND {_LIVE}", (old_key, now)
            )
            if not current:
                raise NotFoundError(f"Memory not found: {old_key}", {"key": old_key})

            conflict = await tx.query_one(
                f"SELECT 1 FROM memories WHERE key = ? AND {_LIVE}", (new_key, now)
            )
            if conflict:
                raise ValidationError(
                    f"Memory already exists with key: {new_key}", {"key": new_key}
                )

            # An expired row may still occupy the target key
            await tx.execute("DELETE FROM memories WHERE key = ?", (new_key,))
            updated = await tx.execute(
                "UPDATE memories SET key = ?, updated_at = ? WHERE key = ?",
                (new_key, now, old_key),
            )
            return updated > 0

        return await self.db.run_in_transaction(_rename)

    # ═══════════════════════════════════════════════════════════
    # LISTING & SEARCH
    # ═══════════════════════════════════════════════════════════

    async def list_memories(
        self, namespace: str | None = None, pattern: str | None = None
    ) -> list[Memory]:
        """
        List live memories, most recently updated first.

        Args:
            namespace: Exact namespace filter
            pattern: Key pattern; "*" is the wildcard, everything else is literal
        """
        conditions = [_LIVE]
        params: list[Any] = [self.db.now()]

        if namespace:
            conditions.append("namespace = ?")
            params.append(namespace)

        if pattern:
            conditions.append("key LIKE ? ESCAPE '\\'")
            params.append(key_pattern(pattern))

        rows = await self.db.query(
            f"""
            SELECT {_MEMORY_COLUMNS} FROM memories
            WHERE {' AND '.join(conditions)}
            ORDER BY updated_at DESC, key ASC
            """,
            params,
        )
        return [self._row_to_memory(row) for row in rows]

    async def search_memories(
        self, term: str, namespace: str | None = None, limit: int = DEFAULT_SEARCH_LIMIT
    ) -> list[Memory]:
        """
        Live memories whose serialized value contains `term` literally.

        Raises:
            ValidationError: If term is empty
        """
        require_text(term, "Search term is required")

        sql = f"""
            SELECT {_MEMORY_COLUMNS} FROM memories
            WHERE value LIKE ? ESCAPE '\\' AND {_LIVE}
        """
        params: list[Any] = [contains_pattern(term), self.db.now()]

        if namespace:
            sql += " AND namespace = ?"
            params.append(namespace)

        sql += " ORDER BY updated_at DESC, key ASC LIMIT ?"
        params.append(limit)

        rows = await self.db.query(sql, params)
        return [self._row_to_memory(row) for row in rows]

    # ═══════════════════════════════════════════════════════════
    # BULK OPERATIONS
    # ═══════════════════════════════════════════════════════════

    async def bulk_store_memories(
        self, memories: Iterable[MemoryInput | Mapping[str, Any]]
    ) -> int:
        """
        Store many memories atomically: either all are committed or none.

        Every input is validated before the transaction starts.

        Returns:
            Number of memories stored
        """
        inputs = [coerce_input(MemoryInput, memory) for memory in memories]
        for memory in inputs:
            require_text(memory.key, "Memory key is required")

        if not inputs:
            return 0

        now = self.db.now()
        rows = [self._prepare(memory, now) for memory in inputs]

        async def _store_all(tx: Transaction) -> None:
            for values in rows:
                await self._upsert(tx, values)

        await self.db.run_in_transaction(_store_all)
        logger.info(f"Bulk stored {len(rows)} memories")
        return len(rows)

    async def bulk_delete_memories(self, pattern: str) -> int:
        """
        Delete every memory whose key matches `pattern` ("*" wildcard).

        Returns:
            Number of memories deleted
        """
        require_text(pattern, "Pattern is required")

        async def _delete_all(tx: Transaction) -> int:
            return await tx.execute(
                "DELETE FROM memories WHERE key LIKE ? ESCAPE '\\'", (key_pattern(pattern),)
            )

        deleted = await self.db.run_in_transaction(_delete_all)
        logger.info(f"Bulk deleted {deleted} memories matching {pattern!r}")
        return deleted

    # ═══════════════════════════════════════════════════════════
    # MAINTENANCE
    # ═══════════════════════════════════════════════════════════

    async def get_memory_stats(self) -> MemoryStats:
        """Total rows, rows per namespace, and expired rows awaiting cleanup."""
        total_row = await self.db.query_one("SELECT COUNT(*) AS count FROM memories")
        namespace_rows = await self.db.query(
            "SELECT namespace, COUNT(*) AS count FROM memories GROUP BY namespace"
        )
        expired_row = await self.db.query_one(
            "SELECT COUNT(*) AS count FROM memories WHERE expires_at IS NOT NULL AND expires_at < ?",
            (self.db.now(),),
        )

        by_namespace: dict[str, int] = {}
        for row in namespace_rows:
            label = row["namespace"] or DEFAULT_NAMESPACE_LABEL
            by_namespace[label] = by_namespace.get(label, 0) + row["count"]

        return MemoryStats(
            total=total_row["count"],
            by_namespace=by_namespace,
            expired=expired_row["count"],
        )

    async def clean_expired_memories(self) -> int:
        """
        Physically delete every expired memory. Idempotent.

        Returns:
            Number of rows removed
        """
        deleted = await self.db.execute(
            "DELETE FROM memories WHERE expires_at IS NOT NULL AND expires_at < ?",
            (self.db.now(),),
        )
        if deleted:
            logger.info(f"Cleaned {deleted} expired memories")
        return deleted

    # ═══════════════════════════════════════════════════════════
    # HELPER METHODS
    # ═══════════════════════════════════════════════════════════

    @staticmethod
    def _prepare(memory: MemoryInput, now: int) -> tuple:
        """Row values for an upsert; serializes the value before any write."""
        expires_at = now + memory.ttl * 1000 if memory.ttl is not None else None
        return (memory.key, dump_document(memory.value), memory.namespace, now, now, expires_at)

    async def _upsert(self, tx: Transaction, values: tuple) -> None:
        await tx.execute(
            f"""
            INSERT INTO memories ({_MEMORY_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET
                value = excluded.value,
                namespace = excluded.namespace,
                created_at = CASE
                    WHEN memories.expires_at IS NOT NULL AND memories.expires_at < excluded.updated_at
                    THEN excluded.created_at
                    ELSE memories.created_at
                END,
                updated_at = excluded.updated_at,
                expires_at = excluded.expires_at
            """,
            values,
        )

    def _row_to_memory(self, row: sqlite3.Row) -> Memory:
        """Convert database row to Memory."""
        return Memory(
            key=row["key"],
            value=load_document(row["value"]),
            namespace=row["namespace"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            expires_at=row["expires_at"],
        )
