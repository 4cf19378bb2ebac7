"""
Database schema initialization and migration management.

Channel ids, keywords, and exceptions are stored as JSON text arrays. Channel
ids inside the array are encoded as strings so 64-bit snowflakes never pass
through a float during (de)serialization.
"""

import aiosqlite
from nekovilo.util.logger import get_logger

logger = get_logger("database_schema")

SCHEMA_VERSION = 2


class SchemaManager:
    """Creates the trigger tables and migrates older layouts."""

    @staticmethod
    async def initialize_schema(db: aiosqlite.Connection) -> None:
        """
        Create or update all database tables and indexes.

        Args:
            db: Open database connection
        """
        await SchemaManager._create_tables(db)
        await SchemaManager._migrate_single_channel_column(db)
        await SchemaManager._create_indexes(db)
        await SchemaManager._update_schema_version(db)
        await db.commit()
        logger.info("[SCHEMA] Database schema initialized")

    @staticmethod
    async def _create_tables(db: aiosqlite.Connection) -> None:
        """Create all required database tables."""
        await db.execute("""
            CREATE TABLE IF NOT EXISTS rules (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                guild_id INTEGER NOT NULL,
                channel_ids TEXT NOT NULL DEFAULT '[]',
                keywords TEXT NOT NULL,
                response TEXT NOT NULL,
                exceptions TEXT NOT NULL DEFAULT '[]',
                enabled INTEGER NOT NULL DEFAULT 1,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY,
                applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

    @staticmethod
    async def _rule_columns(db: aiosqlite.Connection) -> set[str]:
        async with db.execute("PRAGMA table_info(rules)") as cursor:
            rows = await cursor.fetchall()
        return {row[1] for row in rows}

    @staticmethod
    async def _migrate_single_channel_column(db: aiosqlite.Connection) -> None:
        """Convert the legacy single ``channel_id`` column into ``channel_ids``.

        Version 1 databases stored exactly one channel per rule. Each value is
        wrapped into a one-element JSON array and the old column is dropped.
        """
        columns = await SchemaManager._rule_columns(db)
        if "channel_id" not in columns:
            return

        logger.warning("[SCHEMA] Migrating legacy rules.channel_id column to channel_ids")
        if "channel_ids" not in columns:
            await db.execute("ALTER TABLE rules ADD COLUMN channel_ids TEXT NOT NULL DEFAULT '[]'")
        await db.execute("""
            UPDATE rules
            SET channel_ids = json_array(CAST(channel_id AS TEXT))
            WHERE channel_id IS NOT NULL AND channel_ids = '[]'
        """)
        await db.execute("ALTER TABLE rules DROP COLUMN channel_id")
        logger.info("[SCHEMA] Legacy channel_id migration complete")

    @staticmethod
    async def _create_indexes(db: aiosqlite.Connection) -> None:
        """Create indexes for the guild listing and the enabled-rules load."""
        await db.execute("CREATE INDEX IF NOT EXISTS idx_rules_guild ON rules(guild_id, id)")
        await db.execute("CREATE INDEX IF NOT EXISTS idx_rules_enabled ON rules(enabled, id)")

    @staticmethod
    async def _update_schema_version(db: aiosqlite.Connection) -> None:
        await db.execute("INSERT OR IGNORE INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,))
