"""
Factory for wiring the persistence engine and the stores.

Every store receives the same Database instance; there is no module-level
connection.
"""

from collections.abc import Callable

from chronicle.config import Config, DatabaseConfig
from chronicle.core.database import Database
from chronicle.core.entity_store import EntityStore
from chronicle.core.memory_store import MemoryStore
from chronicle.core.timeline_store import TimelineStore
from chronicle.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)


class ChronicleStores:
    """The three stores sharing one initialized engine."""

    def __init__(self, database: Database):
        self.database = database
        self.timeline = TimelineStore(database)
        self.entities = EntityStore(database)
        self.memories = MemoryStore(database)

    async def close(self) -> None:
        await self.database.close()

    async def __aenter__(self) -> "ChronicleStores":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


class StoreFactory:
    """Factory for creating the engine and stores from configuration."""

    @staticmethod
    def create_database(
        config: DatabaseConfig, clock: Callable[[], int] | None = None
    ) -> Database:
        """
        Create an (unconnected) engine from database configuration.

        Args:
            config: Database section of the main configuration
            clock: Optional epoch-millisecond clock, mainly for tests

        Returns:
            Database instance
        """
        return Database(
            db_path=config.path,
            busy_timeout_ms=config.busy_timeout_ms,
            journal_mode=config.journal_mode,
            clock=clock,
        )

    @staticmethod
    async def create(
        config: Config | None = None,
        clock: Callable[[], int] | None = None,
        configure_logging: bool = False,
    ) -> ChronicleStores:
        """
        Build an initialized engine and the stores around it.

        Args:
            config: Main configuration (defaults to `Config.from_env()`)
            clock: Optional epoch-millisecond clock
            configure_logging: Apply `config.logging` to the global logger first

        Returns:
            ChronicleStores ready for use; close it when done
        """
        config = config or Config.from_env()

        if configure_logging:
            setup_logging(
                level=config.logging.level,
                log_to_file=config.logging.log_to_file,
                log_dir=config.logging.log_dir,
                file_rotation=config.logging.file_rotation,
                file_retention=config.logging.file_retention,
                compression=config.logging.compression,
                serialize=config.logging.serialize,
            )

        database = StoreFactory.create_database(config.database, clock)
        await database.initialize()

        logger.info(
            f"Configuration: db={config.database.path}, "
            f"journal={config.database.journal_mode}, "
            f"busy_timeout={config.database.busy_timeout_ms}ms"
        )
        return ChronicleStores(database)
