"""
Database lifecycle coordinator.

Opens the shared connection, creates the schema and closes everything on
shutdown. Repositories never open connections themselves; they receive one
from :data:`db_connection` through ``read()`` or ``transaction()``.
"""

from __future__ import annotations

from pathlib import Path

from modledger.database.db_connection import ConnectionManager, db_connection
from modledger.database.db_schema import SchemaManager
from modledger.util.logger import get_logger

logger = get_logger("database")

DB_PATH = Path("./data/modledger.db").resolve()


class Database:
    """
    Owns the connection lifecycle.

    Lifecycle:
        1. ``await initialize()`` at startup
        2. repositories use ``connection_manager``
        3. ``await shutdown()`` at exit
    """

    def __init__(self, db_path: Path = DB_PATH, connection_manager: ConnectionManager = db_connection):
        self.db_path = db_path
        self.connection_manager = connection_manager
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> bool:
        """
        Open the database and create the schema.

        Returns:
            True if the database is ready, False if initialization failed.
        """
        if self._initialized:
            logger.debug("[DATABASE] Already initialized, skipping")
            return True

        try:
            await self.connection_manager.open(self.db_path)
            async with self.connection_manager.transaction() as conn:
                await SchemaManager.initialize_schema(conn)
        except Exception as exc:
            logger.error("[DATABASE] Database initialization failed: %s", exc)
            await self.connection_manager.close()
            return False

        self._initialized = True
        logger.info("[DATABASE] Database initialized at %s", self.db_path)
        return True

    async def shutdown(self) -> None:
        """Close the shared connection. Safe to call more than once."""
        if not self._initialized:
            return

        await self.connection_manager.close()
        self._initialized = False
        logger.info("[DATABASE] Database shutdown complete")


database = Database()


def get_db() -> Database:
    """Return the global Database instance."""
    return database
