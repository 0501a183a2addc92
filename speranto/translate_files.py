"""
File translation pipeline.

For every target language and every discovered source file:
read -> parse -> extract units -> split -> classify against the existing
output -> translate what changed -> reconstruct -> write.

Files and languages run as a task tree; a failure in one file never stops
the others. An output is written only when every unit of that file and
language succeeded, so a valid existing translation is never overwritten
with source-language fallback text.
"""

from dataclasses import dataclass, field
from functools import partial
from pathlib import Path
from typing import Callable, List, Optional

from speranto.config import Config
from speranto.core.chunking.splitter import split
from speranto.core.exceptions import ConfigurationError, ConnectivityError, ParseError, UnitTranslationError
from speranto.core.llm.base import LLMProvider
from speranto.core.llm.factory import create_llm_provider
from speranto.core.orchestrator import UNIT_FAILED, UNIT_REUSED, Orchestrator
from speranto.core.parsers import get_parser_for_path
from speranto.core.parsers.base import FormatParser
from speranto.core.parsers.markdown import MarkdownParser
from speranto.core.tasks import EventBus, Task, TaskRunner
from speranto.core.translator import Translator
from speranto.utils.file_utils import (
    append_trailer,
    discover_source_files,
    get_output_path,
    read_optional_text_file,
    read_text_file,
    split_trailer,
    write_text_file,
)
from speranto.utils.progress import ProgressReporter
from speranto.utils.unified_logger import LogType, debug, info, warning

ProviderFactory = Callable[..., LLMProvider]


@dataclass
class RunSummary:
    """What a run did, one entry per (item, language)."""
    written: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return not self.failed

    def stats(self) -> dict:
        return {
            'translated': len(self.written),
            'skipped': len(self.skipped),
            'failed': len(self.failed),
        }


def build_provider(config: Config, provider_factory: ProviderFactory) -> LLMProvider:
    return provider_factory(
        config.provider,
        model=config.model,
        api_key=config.api_key,
        api_endpoint=config.api_endpoint,
    )


def build_translators(config: Config, provider: LLMProvider) -> dict:
    return {
        lang: Translator(
            provider,
            source_lang=config.source_lang,
            target_lang=lang,
            temperature=config.temperature,
            instructions_dir=config.instructions_dir,
        )
        for lang in config.target_langs
    }


class UnitProgress:
    """
    Keeps a file task's title at "translated N/M" while its units settle.

    Called by the orchestrator with (unit key, outcome) for every unit.
    """

    def __init__(self, task: Task, total: int):
        self.task = task
        self.total = total
        self.settled = 0
        self.reused = 0
        self.failed = 0

    def __call__(self, key: str, status: str) -> None:
        if status == UNIT_FAILED:
            self.failed += 1
        else:
            self.settled += 1
            if status == UNIT_REUSED:
                self.reused += 1
        self.task.title = f"{self.task.label} ({self.summary()})"
        debug(f"{self.task.label}: {key} {status} ({self.summary()})")

    def summary(self) -> str:
        text = f"translated {self.settled}/{self.total}"
        if self.reused:
            text += f", {self.reused} reused"
        if self.failed:
            text += f", {self.failed} failed"
        return text


def raise_fatal(root: Task) -> None:
    """Re-raise a connectivity failure recorded anywhere in the tree."""
    for task in root.failures():
        if isinstance(task.error, ConnectivityError):
            raise task.error


class FilePipeline:
    """Translates the files of one configuration."""

    def __init__(self, config: Config, translators: dict, summary: RunSummary):
        self.config = config
        self.files = config.files
        self.translators = translators
        self.summary = summary

    def build_tree(self, sources: List[Path]) -> Task:
        language_tasks = []
        for lang in self.config.target_langs:
            file_tasks = [
                Task(self._relative(source), run=partial(self.translate_file, source_path=source, lang=lang))
                for source in sources
            ]
            language_tasks.append(Task(lang, children=file_tasks, concurrent=True))
        return Task("Translate files", children=language_tasks, concurrent=True)

    def _relative(self, source: Path) -> str:
        return source.relative_to(Path(self.files.source_dir)).as_posix()

    async def _load_existing(self, parser: FormatParser, output_path: Path):
        content = await read_optional_text_file(output_path)
        if content is None:
            return None
        chunk_keys = None
        if isinstance(parser, MarkdownParser):
            content, chunk_keys = split_trailer(content)
        try:
            units = parser.extract_units(parser.parse(content))
        except ParseError as e:
            warning(f"Existing translation {output_path} could not be parsed, translating from scratch: {e.message}")
            return None
        if chunk_keys is None:
            return units
        restored = parser.restore_keys(units, chunk_keys)
        if restored is None:
            warning(f"Chunks of {output_path} do not match its recorded source keys, translating from scratch")
        return restored

    async def translate_file(self, task: Task, source_path: Path, lang: str) -> None:
        label = f"{self._relative(source_path)} ({lang})"
        try:
            await self._translate_file(task, source_path, lang, label)
        except Exception as e:
            self.summary.failed.append(f"{label}: {e}")
            raise

    async def _translate_file(self, task: Task, source_path: Path, lang: str, label: str) -> None:
        parser = get_parser_for_path(str(source_path))
        output_path = get_output_path(
            source_path, self.files.source_dir, self.files.target_dir, lang,
            self.files.use_lang_code_as_filename,
        )

        tree = parser.parse(await read_text_file(source_path))
        source_units = parser.extract_units(tree)
        existing_units = await self._load_existing(parser, output_path)

        progress = UnitProgress(task, len(source_units))
        orchestrator = Orchestrator(
            self.translators[lang], self.config.effective_concurrency, on_unit_done=progress,
        )
        result = await orchestrator.run(
            split(source_units, self.files.max_strings_per_group),
            existing_units,
            self.config.retranslate,
        )

        if result.skipped and existing_units is not None:
            self.summary.skipped.append(label)
            task.title = task.label
            task.skip("up to date")
            return

        if not result.succeeded:
            failed_keys = list(result.failed_units)
            raise UnitTranslationError(
                f"{len(failed_keys)} of {len(source_units)} units failed, output not written",
                unit_key=failed_keys[0],
                context={'units': ", ".join(failed_keys)},
            )

        output = parser.serialize(parser.reconstruct(tree, result.values))
        if isinstance(parser, MarkdownParser):
            output = append_trailer(
                output, self.config.source_lang, self.config.model, [u.key for u in source_units],
            )
        await write_text_file(output_path, output)

        self.summary.written.append(str(output_path))
        task.title = f"{task.label} → {output_path.as_posix()} ({progress.summary()})"


async def translate_files(config: Config, provider_factory: ProviderFactory = create_llm_provider,
                          reporter: Optional[ProgressReporter] = None) -> RunSummary:
    """
    Translate every source file into every target language.

    Args:
        config: Effective configuration; ``config.files`` is required
        provider_factory: Builds the LLM provider (tests inject mocks)
        reporter: Optional console reporter attached to the task events

    Returns:
        RunSummary of written, skipped and failed outputs

    Raises:
        ConfigurationError: no file source configured or source dir missing
        ConnectivityError: the LLM backend is unusable
    """
    if config.files is None:
        raise ConfigurationError("No file source configured (set files.source_dir and files.target_dir)")
    files = config.files
    if not Path(files.source_dir).is_dir():
        raise ConfigurationError(f"Source directory not found: {files.source_dir}")

    sources = discover_source_files(
        files.source_dir, files.target_dir, config.target_langs, files.use_lang_code_as_filename,
    )
    summary = RunSummary()

    info("Translation started", LogType.TRANSLATION_START, {
        'source_lang': config.source_lang,
        'target_langs': config.target_langs,
        'model': config.model,
        'provider': config.provider,
        'source': files.source_dir,
    })

    provider = build_provider(config, provider_factory)
    try:
        translators = build_translators(config, provider)
        for translator in translators.values():
            await translator.ensure_ready()

        if not sources:
            warning(f"No translatable files found in {files.source_dir}")
            return summary
        info(f"Found {len(sources)} file(s) to translate into {len(config.target_langs)} language(s)")

        event_bus = EventBus()
        if reporter is not None:
            reporter.attach(event_bus)
            reporter.start_bar(len(sources) * len(config.target_langs), "Files")

        pipeline = FilePipeline(config, translators, summary)
        root = pipeline.build_tree(sources)
        try:
            await TaskRunner(event_bus, sequential=config.sequential).run(root)
        finally:
            if reporter is not None:
                reporter.close()
        raise_fatal(root)
    finally:
        await provider.close()

    info("Translation finished", LogType.TRANSLATION_END, {'stats': summary.stats()})
    return summary
