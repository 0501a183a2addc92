"""
Database adapter interface.

Translated rows live in a shadow table next to each source table
(``{table}{suffix}``, e.g. ``posts_translations``) holding one row per
(source_id, lang) with one TEXT column per translatable column.
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Union

from speranto.config import TableConfig
from speranto.core.exceptions import ConfigurationError

RowId = Union[str, int]

_IDENTIFIER_RE = re.compile(r'^[A-Za-z_][A-Za-z0-9_]*$')


@dataclass
class SourceRow:
    id: RowId
    columns: Dict[str, Optional[str]] = field(default_factory=dict)


@dataclass
class TranslationRow:
    source_id: RowId
    lang: str
    columns: Dict[str, str] = field(default_factory=dict)


def check_identifier(name: str) -> str:
    """Table and column names come from the config file and end up in SQL text."""
    if not name or not _IDENTIFIER_RE.match(name):
        raise ConfigurationError(f"Invalid SQL identifier: {name!r}")
    return name


class DatabaseAdapter(ABC):
    """
    Abstract interface for a translation database.

    Drivers are synchronous; adapters run them off the event loop so the
    pipeline can await every call.
    """

    @abstractmethod
    async def connect(self) -> None:
        """
        Open the connection.

        Raises:
            ConnectivityError: the database cannot be reached
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        pass

    @abstractmethod
    def get_translation_table_name(self, table: TableConfig, suffix: str) -> str:
        pass

    @abstractmethod
    async def ensure_translation_table(self, table: TableConfig, suffix: str) -> None:
        """Create the translation table and its (source_id, lang) index if missing."""
        pass

    @abstractmethod
    async def get_source_rows(self, table: TableConfig) -> List[SourceRow]:
        pass

    @abstractmethod
    async def get_translated_ids(self, table: TableConfig, lang: str, suffix: str) -> Set[str]:
        """Source ids (as strings) already translated into ``lang``."""
        pass

    @abstractmethod
    async def upsert_translation(self, table: TableConfig, row: TranslationRow, suffix: str) -> None:
        """Insert or update the (source_id, lang) row; ``updated_at`` is refreshed."""
        pass
