"""
Database schema creation and version tracking.
"""

import aiosqlite
from modledger.util.logger import get_logger

logger = get_logger("database_schema")

SCHEMA_VERSION = 1


class SchemaManager:
    """Creates the tables and indexes used by the ledger."""

    @staticmethod
    async def initialize_schema(db: aiosqlite.Connection) -> None:
        """
        Create all tables and indexes if they are missing.

        Args:
            db: Open database connection
        """
        await SchemaManager._create_tables(db)
        await SchemaManager._create_indexes(db)
        await SchemaManager._update_schema_version(db)
        await db.commit()
        logger.info("[SCHEMA] Database schema initialized (version %d)", SCHEMA_VERSION)

    @staticmethod
    async def _create_tables(db: aiosqlite.Connection) -> None:
        await db.execute("""
            CREATE TABLE IF NOT EXISTS guild_settings (
                guild_id INTEGER PRIMARY KEY,
                mod_log_channel_id INTEGER,
                mute_role_id INTEGER,
                embed_role_id INTEGER,
                emoji_role_id INTEGER,
                reaction_role_id INTEGER,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        # case_id is the visible number; id only records creation order
        await db.execute("""
            CREATE TABLE IF NOT EXISTS cases (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                guild_id INTEGER NOT NULL,
                case_id INTEGER NOT NULL,
                log_channel_id INTEGER,
                log_message_id INTEGER,
                target_id INTEGER NOT NULL,
                target_tag TEXT NOT NULL,
                mod_id INTEGER NOT NULL,
                mod_tag TEXT NOT NULL,
                action INTEGER NOT NULL CHECK (action BETWEEN 1 AND 10),
                reason TEXT NOT NULL DEFAULT '',
                duration INTEGER,
                ref_case_id INTEGER,
                created_at INTEGER NOT NULL,
                UNIQUE (guild_id, case_id)
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY,
                applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

    @staticmethod
    async def _create_indexes(db: aiosqlite.Connection) -> None:
        await db.execute("CREATE INDEX IF NOT EXISTS idx_cases_target ON cases(target_id, guild_id)")
        await db.execute("CREATE INDEX IF NOT EXISTS idx_cases_action ON cases(action, created_at)")

    @staticmethod
    async def _update_schema_version(db: aiosqlite.Connection) -> None:
        await db.execute("INSERT OR IGNORE INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,))
