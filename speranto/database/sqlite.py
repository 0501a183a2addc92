"""
SQLite adapter.
"""

import asyncio
import os
import sqlite3
import threading
from typing import List, Optional, Set

from speranto.config import TableConfig
from speranto.core.exceptions import ConnectivityError, TranslationError
from speranto.database.adapter import (
    DatabaseAdapter,
    SourceRow,
    TranslationRow,
    check_identifier,
)


class SQLiteAdapter(DatabaseAdapter):
    """
    Translation tables in an SQLite database file.

    One connection is shared by every task of a run; calls are serialized
    with a lock and executed in a worker thread.
    """

    def __init__(self, db_path: str):
        self.db_path = db_path
        self._connection: Optional[sqlite3.Connection] = None
        self._lock = threading.RLock()

    def _get_connection(self) -> sqlite3.Connection:
        if self._connection is None:
            raise TranslationError("Database not connected", {'path': self.db_path})
        return self._connection

    async def _run(self, func, *args):
        return await asyncio.to_thread(self._locked, func, *args)

    def _locked(self, func, *args):
        with self._lock:
            return func(self._get_connection(), *args)

    async def connect(self) -> None:
        def _open():
            directory = os.path.dirname(self.db_path)
            if directory and not os.path.isdir(directory):
                raise ConnectivityError(
                    f"SQLite database directory does not exist: {directory}",
                    remediation="Check the 'connection' path of the database configuration.",
                )
            try:
                conn = sqlite3.connect(self.db_path, check_same_thread=False, timeout=30.0)
            except sqlite3.Error as e:
                raise ConnectivityError(
                    f"Cannot open SQLite database {self.db_path}: {e}",
                    remediation="Check the 'connection' path of the database configuration.",
                ) from e
            conn.row_factory = sqlite3.Row
            return conn

        self._connection = await asyncio.to_thread(_open)

    async def close(self) -> None:
        if self._connection is not None:
            with self._lock:
                self._connection.close()
                self._connection = None

    def get_translation_table_name(self, table: TableConfig, suffix: str) -> str:
        return check_identifier(f"{table.name}{suffix}")

    async def ensure_translation_table(self, table: TableConfig, suffix: str) -> None:
        translation_table = self.get_translation_table_name(table, suffix)
        column_defs = ",\n".join(f"    {check_identifier(col)} TEXT" for col in table.columns)

        def _create(conn: sqlite3.Connection):
            cursor = conn.cursor()
            cursor.execute(f"""
                CREATE TABLE IF NOT EXISTS {translation_table} (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    source_id TEXT NOT NULL,
                    lang TEXT NOT NULL,
                {column_defs},
                    created_at TEXT DEFAULT CURRENT_TIMESTAMP,
                    updated_at TEXT DEFAULT CURRENT_TIMESTAMP,
                    UNIQUE(source_id, lang)
                )
            """)
            cursor.execute(f"""
                CREATE INDEX IF NOT EXISTS idx_{translation_table}_source_lang
                ON {translation_table}(source_id, lang)
            """)
            conn.commit()

        await self._run(_create)

    async def get_source_rows(self, table: TableConfig) -> List[SourceRow]:
        id_column = check_identifier(table.id_column)
        columns = [check_identifier(col) for col in table.columns]
        sql = f"SELECT {', '.join([id_column] + columns)} FROM {check_identifier(table.name)} ORDER BY {id_column}"

        def _select(conn: sqlite3.Connection):
            return conn.execute(sql).fetchall()

        rows = await self._run(_select)
        return [
            SourceRow(id=row[id_column], columns={col: row[col] for col in columns})
            for row in rows
        ]

    async def get_translated_ids(self, table: TableConfig, lang: str, suffix: str) -> Set[str]:
        translation_table = self.get_translation_table_name(table, suffix)

        def _select(conn: sqlite3.Connection):
            return conn.execute(
                f"SELECT source_id FROM {translation_table} WHERE lang = ?", (lang,)
            ).fetchall()

        return {str(row['source_id']) for row in await self._run(_select)}

    async def upsert_translation(self, table: TableConfig, row: TranslationRow, suffix: str) -> None:
        translation_table = self.get_translation_table_name(table, suffix)
        names = [check_identifier(col) for col in row.columns]
        placeholders = ", ".join("?" for _ in names)
        update_set = ", ".join(f"{col} = excluded.{col}" for col in names)
        sql = f"""
            INSERT INTO {translation_table} (source_id, lang, {', '.join(names)}, updated_at)
            VALUES (?, ?, {placeholders}, CURRENT_TIMESTAMP)
            ON CONFLICT(source_id, lang) DO UPDATE SET
                {update_set},
                updated_at = CURRENT_TIMESTAMP
        """
        values = (str(row.source_id), row.lang, *(row.columns[col] for col in names))

        def _upsert(conn: sqlite3.Connection):
            conn.execute(sql, values)
            conn.commit()

        await self._run(_upsert)
