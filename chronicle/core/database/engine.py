"""
SQLite persistence engine.

Owns the single aiosqlite connection shared by all stores, applies the schema,
and provides the transactional primitive every multi-statement write goes
through.
"""

import asyncio
import sqlite3
from collections.abc import AsyncIterator, Awaitable, Callable, Sequence
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, TypeVar

import aiosqlite

from chronicle.core.database.schema import BOOTSTRAP_STATEMENTS, MIGRATIONS
from chronicle.models.database import DatabaseStats, HealthChecks, HealthState, HealthStatus
from chronicle.utils.exceptions import StorageError
from chronicle.utils.logger import get_logger
from chronicle.utils.timestamps import now_ms

logger = get_logger(__name__)

T = TypeVar("T")

Params = Sequence[Any]

JOURNAL_MODES = ("DELETE", "TRUNCATE", "PERSIST", "MEMORY", "WAL", "OFF")


def _brief(statement: str) -> str:
    """Single-line statement preview for error context."""
    return " ".join(statement.split())[:200]


async def _run(conn: aiosqlite.Connection, statement: str, params: Params = ()) -> int:
    try:
        cursor = await conn.execute(statement, tuple(params))
    except sqlite3.Error as e:
        raise StorageError(f"Statement failed: {e}", {"statement": _brief(statement)}) from e
    rowcount = cursor.rowcount
    await cursor.close()
    return rowcount


async def _fetch(conn: aiosqlite.Connection, statement: str, params: Params = ()) -> list[sqlite3.Row]:
    try:
        cursor = await conn.execute(statement, tuple(params))
        rows = await cursor.fetchall()
    except sqlite3.Error as e:
        raise StorageError(f"Query failed: {e}", {"statement": _brief(statement)}) from e
    await cursor.close()
    return list(rows)


class Transaction:
    """
    Handle passed to transaction bodies.

    Statements issued through it run inside the enclosing transaction. The
    handle is unusable once the transaction has committed or rolled back.
    """

    def __init__(self, connection: aiosqlite.Connection):
        self._connection = connection
        self._active = True

    def _conn(self) -> aiosqlite.Connection:
        if not self._active:
            raise StorageError("Transaction is no longer active")
        return self._connection

    async def execute(self, statement: str, params: Params = ()) -> int:
        """Execute a statement, returning the number of rows affected."""
        return await _run(self._conn(), statement, params)

    async def query(self, statement: str, params: Params = ()) -> list[sqlite3.Row]:
        """Run a query and return all rows."""
        return await _fetch(self._conn(), statement, params)

    async def query_one(self, statement: str, params: Params = ()) -> sqlite3.Row | None:
        """Run a query and return the first row, if any."""
        rows = await _fetch(self._conn(), statement, params)
        return rows[0] if rows else None

    def close(self) -> None:
        self._active = False


class Database:
    """
    Persistence engine around one SQLite connection.

    Features:
    - Idempotent schema creation with numbered migrations
    - Foreign-key cascades (entities -> versions, relations)
    - WAL journal and busy timeout for concurrent readers
    - Single-writer transactions: an asyncio lock serializes every statement
      and holds for the whole of a transaction, so readers only observe
      committed state

    Stores receive an instance of this class; there is no global handle.
    """

    def __init__(
        self,
        db_path: str = "data/chronicle.db",
        busy_timeout_ms: int = 5000,
        journal_mode: str = "WAL",
        clock: Callable[[], int] | None = None,
    ):
        """
        Initialize the persistence engine.

        Args:
            db_path: Path to SQLite database file (":memory:" for a private in-memory database)
            busy_timeout_ms: How long SQLite waits on a locked database
            journal_mode: SQLite journal mode (WAL recommended)
            clock: Callable returning the current time in epoch milliseconds
        """
        if journal_mode.upper() not in JOURNAL_MODES:
            raise ValueError(f"Unsupported journal mode: {journal_mode}")

        self.db_path = db_path
        self.busy_timeout_ms = busy_timeout_ms
        self.journal_mode = journal_mode.upper()
        self.connection: aiosqlite.Connection | None = None
        self._clock = clock or now_ms
        self._lock = asyncio.Lock()
        self._owner: asyncio.Task | None = None

        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    def now(self) -> int:
        """Current time in epoch milliseconds, from the configured clock."""
        return self._clock()

    # ═══════════════════════════════════════════════════════════
    # LIFECYCLE
    # ═══════════════════════════════════════════════════════════

    async def _open(self) -> aiosqlite.Connection:
        if self.connection is None:
            try:
                connection = await aiosqlite.connect(self.db_path, isolation_level=None)
            except sqlite3.Error as e:
                raise StorageError(f"Cannot open database: {e}", {"db_path": self.db_path}) from e
            connection.row_factory = aiosqlite.Row
            await _run(connection, f"PRAGMA busy_timeout = {int(self.busy_timeout_ms)}")
            await _run(connection, "PRAGMA foreign_keys = ON")
            await _fetch(connection, f"PRAGMA journal_mode = {self.journal_mode}")
            await _run(connection, "PRAGMA synchronous = NORMAL")
            self.connection = connection
            logger.info(f"Opened database at {self.db_path}")
        return self.connection

    async def connect(self) -> None:
        """Establish the connection (no-op when already connected)."""
        async with self._lock:
            await self._open()

    async def initialize(self) -> None:
        """Connect and bring the schema up to date. Safe to call repeatedly."""
        await self.connect()

        for statement in BOOTSTRAP_STATEMENTS:
            await self.execute(statement)

        row = await self.query_one("SELECT MAX(version) AS version FROM schema_version")
        current = row["version"] if row and row["version"] is not None else 0

        for migration in MIGRATIONS:
            if migration.version <= current:
                continue
            async with self.transaction() as tx:
                for statement in migration.statements:
                    await tx.execute(statement)
                await tx.execute(
                    "INSERT INTO schema_version (version, applied_at, description) VALUES (?, ?, ?)",
                    (migration.version, self.now(), migration.description),
                )
            logger.info(f"Applied schema migration {migration.version}: {migration.description}")

    async def close(self) -> None:
        """Close the connection."""
        async with self._lock:
            if self.connection is not None:
                await self.connection.close()
                self.connection = None
                logger.info(f"Closed database at {self.db_path}")

    async def __aenter__(self) -> "Database":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # ═══════════════════════════════════════════════════════════
    # STATEMENTS
    # ═══════════════════════════════════════════════════════════

    def _check_not_in_transaction(self) -> None:
        if self._owner is not None and self._owner is asyncio.current_task():
            raise StorageError("Use the Transaction handle for statements inside a transaction")

    async def execute(self, statement: str, params: Params = ()) -> int:
        """
        Execute a single statement in autocommit mode.

        Returns:
            Number of rows affected
        """
        self._check_not_in_transaction()
        async with self._lock:
            conn = await self._open()
            return await _run(conn, statement, params)

    async def query(self, statement: str, params: Params = ()) -> list[sqlite3.Row]:
        """Run a query and return all rows."""
        self._check_not_in_transaction()
        async with self._lock:
            conn = await self._open()
            return await _fetch(conn, statement, params)

    async def query_one(self, statement: str, params: Params = ()) -> sqlite3.Row | None:
        """Run a query and return the first row, if any."""
        rows = await self.query(statement, params)
        return rows[0] if rows else None

    # ═══════════════════════════════════════════════════════════
    # TRANSACTIONS
    # ═══════════════════════════════════════════════════════════

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[Transaction]:
        """
        Run a block atomically.

        Commits when the block exits normally. On any exception the
        transaction is rolled back and the exception propagates unchanged.
        """
        self._check_not_in_transaction()
        async with self._lock:
            conn = await self._open()
            await _run(conn, "BEGIN IMMEDIATE")
            self._owner = asyncio.current_task()
            tx = Transaction(conn)
            try:
                yield tx
            except BaseException:
                tx.close()
                await self._rollback(conn)
                raise
            else:
                tx.close()
                try:
                    await _run(conn, "COMMIT")
                except StorageError:
                    await self._rollback(conn)
                    raise
            finally:
                self._owner = None

    async def _rollback(self, conn: aiosqlite.Connection) -> None:
        if not conn.in_transaction:
            return
        try:
            await conn.execute("ROLLBACK")
        except sqlite3.Error as e:
            logger.error(f"Rollback failed: {e}")
        else:
            logger.warning("Transaction rolled back")

    async def run_in_transaction(self, fn: Callable[[Transaction], Awaitable[T]]) -> T:
        """
        Execute `fn` inside a transaction and return its result.

        Args:
            fn: Async callable receiving the Transaction handle

        Returns:
            Whatever `fn` returns, after the commit has completed
        """
        async with self.transaction() as tx:
            return await fn(tx)

    # ═══════════════════════════════════════════════════════════
    # MAINTENANCE
    # ═══════════════════════════════════════════════════════════

    async def health_check(self) -> HealthStatus:
        """
        Report liveness for adapters. Never raises.

        Healthy means connected, WAL journal, foreign keys enabled and able to
        take the write lock.
        """
        try:
            async with self._lock:
                conn = await self._open()
                journal_row = await _fetch(conn, "PRAGMA journal_mode")
                fk_row = await _fetch(conn, "PRAGMA foreign_keys")
                writable = True
                try:
                    await conn.execute("BEGIN IMMEDIATE")
                    await conn.execute("ROLLBACK")
                except sqlite3.Error as e:
                    logger.warning(f"Database not writable: {e}")
                    writable = False

            checks = HealthChecks(
                connection=True,
                wal_mode=str(journal_row[0][0]).lower() == "wal",
                foreign_keys=fk_row[0][0] == 1,
                writable=writable,
            )
            healthy = all(checks.model_dump().values())
            return HealthStatus(
                status=HealthState.HEALTHY if healthy else HealthState.DEGRADED,
                checks=checks,
            )
        except Exception as e:
            logger.error(f"Health check failed: {e}")
            return HealthStatus(status=HealthState.UNHEALTHY, error=str(e))

    async def get_stats(self) -> DatabaseStats:
        """Row counts per table plus storage settings."""

        async def count(table: str) -> int:
            row = await self.query_one(f"SELECT COUNT(*) AS count FROM {table}")
            return row["count"] if row else 0

        page_count = await self.query_one("PRAGMA page_count")
        page_size = await self.query_one("PRAGMA page_size")
        journal_mode = await self.query_one("PRAGMA journal_mode")
        busy_timeout = await self.query_one("PRAGMA busy_timeout")

        return DatabaseStats(
            event_count=await count("timeline_events"),
            memory_count=await count("memories"),
            entity_count=await count("entities"),
            relation_count=await count("relations"),
            journal_mode=str(journal_mode[0]),
            busy_timeout=int(busy_timeout[0]),
            db_path=self.db_path,
            db_size=int(page_count[0]) * int(page_size[0]),
        )

    async def vacuum(self) -> None:
        """Rebuild the database file, reclaiming free pages."""
        await self.execute("VACUUM")
        logger.info("Database vacuumed")
