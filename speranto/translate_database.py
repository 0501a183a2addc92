"""
Database translation pipeline.

Every row of every configured table is one translation unit: its non-empty
translatable columns go to the LLM in a single request and the result is
upserted into the table's translation table. Rows already present for a
language are skipped; there is no column-level change detection.
"""

from functools import partial
from typing import Optional

from speranto.config import Config, TableConfig
from speranto.core.exceptions import ConfigurationError
from speranto.core.llm.factory import create_llm_provider
from speranto.core.tasks import EventBus, Task, TaskRunner
from speranto.core.translator import Translator
from speranto.database import create_database_adapter
from speranto.database.adapter import DatabaseAdapter, SourceRow, TranslationRow
from speranto.translate_files import (
    ProviderFactory,
    RunSummary,
    build_provider,
    build_translators,
    raise_fatal,
)
from speranto.utils.progress import ProgressReporter
from speranto.utils.unified_logger import LogType, info


class DatabasePipeline:
    """Translates the rows of the configured tables."""

    def __init__(self, config: Config, adapter: DatabaseAdapter, translators: dict, summary: RunSummary):
        self.config = config
        self.database = config.database
        self.adapter = adapter
        self.translators = translators
        self.summary = summary

    @property
    def row_concurrency(self) -> int:
        return 1 if self.config.sequential else max(1, self.database.concurrency)

    def build_tree(self) -> Task:
        language_tasks = []
        for lang in self.config.target_langs:
            table_tasks = [
                Task(table.name, run=partial(self.translate_table, table=table, lang=lang),
                     concurrent=True, concurrency=self.row_concurrency)
                for table in self.database.tables
            ]
            language_tasks.append(Task(lang, children=table_tasks, concurrent=True))
        return Task("Translate database", children=language_tasks, concurrent=True)

    async def translate_table(self, task: Task, table: TableConfig, lang: str):
        suffix = self.database.translation_table_suffix
        rows = await self.adapter.get_source_rows(table)
        if self.config.retranslate:
            pending = list(rows)
        else:
            translated_ids = await self.adapter.get_translated_ids(table, lang, suffix)
            pending = [row for row in rows if str(row.id) not in translated_ids]

        if not pending:
            self.summary.skipped.append(f"{table.name} ({lang})")
            task.skip(f"all {len(rows)} rows already translated")
            return None

        task.title = f"{table.name} ({len(pending)} of {len(rows)} rows)"
        return [
            Task(f"row {row.id}", run=partial(self.translate_row, table=table, row=row, lang=lang))
            for row in pending
        ]

    async def translate_row(self, task: Task, table: TableConfig, row: SourceRow, lang: str) -> None:
        label = f"{table.name}#{row.id} ({lang})"
        translator: Translator = self.translators[lang]
        fields = {col: row.columns.get(col) or "" for col in table.columns}
        try:
            translated = await translator.translate_fields(fields, label=f"row_{row.id}")
            await self.adapter.upsert_translation(
                table,
                TranslationRow(source_id=row.id, lang=lang, columns=translated),
                self.database.translation_table_suffix,
            )
        except Exception as e:
            self.summary.failed.append(f"{label}: {e}")
            raise
        self.summary.written.append(label)


async def translate_database(config: Config, provider_factory: ProviderFactory = create_llm_provider,
                             adapter: Optional[DatabaseAdapter] = None,
                             reporter: Optional[ProgressReporter] = None) -> RunSummary:
    """
    Translate every configured table into every target language.

    Args:
        config: Effective configuration; ``config.database`` is required
        provider_factory: Builds the LLM provider (tests inject mocks)
        adapter: Database adapter; built from the configuration when omitted
        reporter: Optional console reporter attached to the task events

    Raises:
        ConfigurationError: no database configured, no tables, unsupported type
        ConnectivityError: the database or the LLM backend is unreachable
    """
    database = config.database
    if database is None:
        raise ConfigurationError("No database configured (set database.type and database.connection)")
    if not database.tables:
        raise ConfigurationError("Database configuration lists no tables")

    adapter = adapter or create_database_adapter(database)
    summary = RunSummary()

    info("Translation started", LogType.TRANSLATION_START, {
        'source_lang': config.source_lang,
        'target_langs': config.target_langs,
        'model': config.model,
        'provider': config.provider,
        'source': f"{database.type} ({len(database.tables)} tables)",
    })

    provider = build_provider(config, provider_factory)
    try:
        await adapter.connect()
        translators = build_translators(config, provider)
        for translator in translators.values():
            await translator.ensure_ready()

        for table in database.tables:
            await adapter.ensure_translation_table(table, database.translation_table_suffix)

        event_bus = EventBus()
        if reporter is not None:
            reporter.attach(event_bus)

        pipeline = DatabasePipeline(config, adapter, translators, summary)
        root = pipeline.build_tree()
        try:
            await TaskRunner(event_bus, sequential=config.sequential).run(root)
        finally:
            if reporter is not None:
                reporter.close()
        raise_fatal(root)
    finally:
        await adapter.close()
        await provider.close()

    info("Translation finished", LogType.TRANSLATION_END, {'stats': summary.stats()})
    return summary
