"""
Database schema initialization and version tracking.

Two tables make up the external contract of the binding store:

- ``relay_channels``: one row per input channel, naming the server, the
  output channel and the relay category.
- ``relay_roles``: the role to mention per (server, category).
"""

import aiosqlite
from linkrelay.util.logger import get_logger

logger = get_logger("database_schema")

SCHEMA_VERSION = 1


class SchemaManager:
    """Creates the relay tables, indexes and triggers."""

    @staticmethod
    async def initialize_schema(db: aiosqlite.Connection) -> None:
        """
        Create or update all database tables, indexes, and triggers.

        Args:
            db: Open database connection
        """
        await SchemaManager._create_tables(db)
        await SchemaManager._create_indexes(db)
        await SchemaManager._create_triggers(db)
        await SchemaManager._update_schema_version(db)
        await db.commit()
        logger.info("[SCHEMA] Database schema initialized (version %d)", SCHEMA_VERSION)

    @staticmethod
    async def _create_tables(db: aiosqlite.Connection) -> None:
        await db.execute("""
            CREATE TABLE IF NOT EXISTS relay_channels (
                input_channel_id INTEGER NOT NULL UNIQUE,
                server_id INTEGER NOT NULL,
                output_channel_id INTEGER NOT NULL,
                category TEXT NOT NULL CHECK (category <> ''),
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                UNIQUE (server_id, category)
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS relay_roles (
                server_id INTEGER NOT NULL,
                category TEXT NOT NULL CHECK (category <> ''),
                role_id INTEGER NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                PRIMARY KEY (server_id, category)
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
        await db.execute("CREATE INDEX IF NOT EXISTS idx_relay_channels_category ON relay_channels(category)")
        await db.execute("CREATE INDEX IF NOT EXISTS idx_relay_roles_server ON relay_roles(server_id)")

    @staticmethod
    async def _create_triggers(db: aiosqlite.Connection) -> None:
        await db.execute("""
            CREATE TRIGGER IF NOT EXISTS update_relay_channels_timestamp
            AFTER UPDATE ON relay_channels
            FOR EACH ROW
            BEGIN
                UPDATE relay_channels SET updated_at = CURRENT_TIMESTAMP
                WHERE input_channel_id = NEW.input_channel_id;
            END
        """)

    @staticmethod
    async def _update_schema_version(db: aiosqlite.Connection) -> None:
        await db.execute("INSERT OR IGNORE INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,))
