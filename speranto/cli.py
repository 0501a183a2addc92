"""
Command-line interface.

    speranto [options]        translate files (Markdown, JSON, JS/TS)
    speranto db -c FILE       translate database rows

Option precedence: command line > config file > environment (.env) defaults.
"""
import argparse
import asyncio
import os
import sys
from pathlib import Path
from typing import List, Optional

from speranto import __version__
from speranto.config import (
    CONFIG_FILE_NAMES,
    DEFAULT_SOURCE_DIR,
    DEFAULT_TARGET_DIR,
    Config,
    FileConfig,
    load_config_file,
    write_config_file,
)
from speranto.core.exceptions import ConfigurationError, ConnectivityError
from speranto.core.llm.factory import available_providers
from speranto.translate_database import translate_database
from speranto.translate_files import RunSummary, translate_files
from speranto.utils.progress import ProgressReporter
from speranto.utils.unified_logger import LogType, setup_cli_logger


def _comma_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(',') if item.strip()]


def _add_common_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("-m", "--model", default=None, help="Model to use for translation.")
    parser.add_argument("-t", "--temperature", type=float, default=None, help="Temperature for translation.")
    parser.add_argument("-s", "--source-lang", default=None, help="Source language code.")
    parser.add_argument("-l", "--target-langs", type=_comma_list, default=None,
                        help="Target language codes (comma-separated).")
    parser.add_argument("-p", "--provider", default=None, choices=available_providers(),
                        help="LLM provider.")
    parser.add_argument("-k", "--api-key", default=None, help="API key for the LLM provider.")
    parser.add_argument("--api-endpoint", default=None, help="Custom API endpoint (Ollama or OpenAI compatible).")
    parser.add_argument("--instructions-dir", default=None,
                        help="Directory with per-language instructions ({lang}.md).")
    parser.add_argument("--retranslate", action="store_true", default=None,
                        help="Translate everything again, ignoring existing translations.")
    parser.add_argument("--sequential", action="store_true", default=None,
                        help="Run one request at a time.")
    parser.add_argument("--verbose", action="store_true", default=None,
                        help="Log prompts and responses.")
    parser.add_argument("--no-color", action="store_true", help="Disable colored output.")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="speranto",
        description="Incremental LLM translation for Markdown, JSON, JS/TS files and database rows.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-c", "--config", default=None,
                        help=f"Path to config file (default: {' or '.join(CONFIG_FILE_NAMES)} if present).")
    _add_common_options(parser)
    parser.add_argument("-i", "--source-dir", default=None,
                        help=f"Source directory (default: {DEFAULT_SOURCE_DIR}).")
    parser.add_argument("-o", "--target-dir", default=None,
                        help=f"Target directory, [lang] is replaced by the language code (default: {DEFAULT_TARGET_DIR}).")
    parser.add_argument("--use-lang-code-as-filename", action="store_true", default=None,
                        help="Name outputs after the language code (en.json -> es.json).")
    parser.add_argument("--as-config", action="store_true",
                        help="Write the current options to the config file and exit.")

    subparsers = parser.add_subparsers(dest="command")
    db_parser = subparsers.add_parser("db", help="Translate content in database tables.")
    db_parser.add_argument("-c", "--config", dest="db_config", required=True,
                           help="Path to the config file with a 'database' section.")
    _add_common_options(db_parser)
    return parser


def resolve_config(args: argparse.Namespace, config_path: Optional[str]) -> Config:
    """Merge config file values with the options given on the command line."""
    config = Config.from_dict(load_config_file(config_path))
    config = config.with_overrides(
        model=args.model,
        temperature=args.temperature,
        source_lang=args.source_lang,
        target_langs=args.target_langs,
        provider=args.provider,
        api_key=args.api_key,
        api_endpoint=args.api_endpoint,
        instructions_dir=args.instructions_dir,
        retranslate=args.retranslate,
        sequential=args.sequential,
        verbose=args.verbose,
    )

    if args.command != "db":
        files = config.files or FileConfig(source_dir=DEFAULT_SOURCE_DIR, target_dir=DEFAULT_TARGET_DIR)
        if args.source_dir is not None:
            files.source_dir = args.source_dir
        if args.target_dir is not None:
            files.target_dir = args.target_dir
        if args.use_lang_code_as_filename is not None:
            files.use_lang_code_as_filename = args.use_lang_code_as_filename
        config.files = files

    if not config.target_langs:
        raise ConfigurationError("No target languages configured")
    return config


def _confirm_overwrite(path: Path) -> bool:
    print(f"Warning: {path} already exists and will be overwritten.")
    try:
        answer = input("Continue? [y/N] ")
    except EOFError:
        return False
    return answer.strip().lower() == 'y'


def _report(summary: RunSummary, logger) -> int:
    for failure in summary.failed:
        logger.error(failure)
    return 0 if summary.succeeded else 1


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    enable_colors = not args.no_color and not os.getenv('NO_COLOR')
    logger = setup_cli_logger(enable_colors=enable_colors, verbose=bool(args.verbose))

    try:
        if args.command == "db":
            config = resolve_config(args, args.db_config)
            reporter = ProgressReporter(logger)
            summary = asyncio.run(translate_database(config, reporter=reporter))
            return _report(summary, logger)

        if args.as_config:
            target = Path(args.config or CONFIG_FILE_NAMES[0])
            config = resolve_config(args, args.config if args.config and target.exists() else None)
            if target.exists() and not _confirm_overwrite(target):
                print("Aborted.")
                return 0
            write_config_file(config, str(target))
            print(f"Config written to {target}")
            return 0

        config = resolve_config(args, args.config)
        logger.info(
            f"File naming strategy: {'use language codes' if config.files.use_lang_code_as_filename else 'keep original names'}"
        )
        reporter = ProgressReporter(logger, show_bar=sys.stderr.isatty())
        summary = asyncio.run(translate_files(config, reporter=reporter))
        return _report(summary, logger)

    except (ConfigurationError, ConnectivityError) as e:
        logger.error(e.message, LogType.ERROR_DETAIL, {
            'details': e.context,
            'remediation': getattr(e, 'remediation', None),
        })
        return 1
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())
