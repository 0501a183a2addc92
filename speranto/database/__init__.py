"""
Database backends for row translation.
"""

from speranto.config import DatabaseConfig
from speranto.core.exceptions import ConfigurationError
from speranto.database.adapter import DatabaseAdapter, SourceRow, TranslationRow
from speranto.database.sqlite import SQLiteAdapter


def create_database_adapter(config: DatabaseConfig) -> DatabaseAdapter:
    """
    Factory function to create a database adapter.

    Raises:
        ConfigurationError: unsupported or unknown database type
    """
    db_type = (config.type or "").lower()
    if db_type == "sqlite":
        return SQLiteAdapter(config.connection)
    if db_type in ("postgres", "postgresql"):
        # SQLAlchemy is an optional extra, only needed for PostgreSQL
        from speranto.database.postgres import PostgresAdapter
        return PostgresAdapter(config.connection)
    if db_type == "mysql":
        raise ConfigurationError("MySQL adapter not yet implemented")
    raise ConfigurationError(f"Unknown database type: {config.type}",
                             {'supported': "sqlite, postgres"})


__all__ = [
    'DatabaseAdapter',
    'SourceRow',
    'TranslationRow',
    'SQLiteAdapter',
    'create_database_adapter',
]
