"""
Centralized configuration
"""
import os
import logging
from pathlib import Path
from dataclasses import dataclass, field, asdict
from typing import Optional, List, Dict, Any

import yaml
from dotenv import load_dotenv

from speranto.core.exceptions import ConfigurationError

# Setup debug logger for configuration
_config_logger = logging.getLogger('config')

# Check for DEBUG_MODE early (before .env is loaded, check environment)
_debug_mode = os.getenv('DEBUG_MODE', 'false').lower() == 'true'
if _debug_mode:
    logging.basicConfig(level=logging.DEBUG, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    _config_logger.setLevel(logging.DEBUG)

_env_file = Path.cwd() / '.env'
_dotenv_result = load_dotenv(_env_file)
if _debug_mode:
    _config_logger.debug(f"Looking for .env at: {_env_file.absolute()} (loaded: {_dotenv_result})")

# Load from environment variables with defaults
DEFAULT_MODEL = os.getenv('DEFAULT_MODEL', 'mistral-large-latest')
DEFAULT_TEMPERATURE = float(os.getenv('DEFAULT_TEMPERATURE', '0.0'))
REQUEST_TIMEOUT = int(os.getenv('REQUEST_TIMEOUT', '300'))

# LLM Provider configuration
LLM_PROVIDER = os.getenv('LLM_PROVIDER', 'mistral')  # 'mistral', 'openai' or 'ollama'
LLM_API_KEY = os.getenv('LLM_API_KEY', '')
OPENAI_API_KEY = os.getenv('OPENAI_API_KEY', '')
MISTRAL_API_KEY = os.getenv('MISTRAL_API_KEY', '')
OPENAI_API_ENDPOINT = os.getenv('OPENAI_API_ENDPOINT', 'https://api.openai.com/v1')
MISTRAL_API_ENDPOINT = os.getenv('MISTRAL_API_ENDPOINT', 'https://api.mistral.ai/v1')
OLLAMA_API_ENDPOINT = os.getenv('OLLAMA_API_ENDPOINT', 'http://localhost:11434')

# Default languages and directories
DEFAULT_SOURCE_LANGUAGE = os.getenv('DEFAULT_SOURCE_LANGUAGE', 'en')
DEFAULT_TARGET_LANGUAGES = [
    lang.strip() for lang in os.getenv('DEFAULT_TARGET_LANGUAGES', 'es').split(',') if lang.strip()
]
DEFAULT_SOURCE_DIR = os.getenv('DEFAULT_SOURCE_DIR', './content')
DEFAULT_TARGET_DIR = os.getenv('DEFAULT_TARGET_DIR', './content/[lang]')

# Concurrency and batching
DEFAULT_CONCURRENCY = int(os.getenv('DEFAULT_CONCURRENCY', '10'))
MAX_STRINGS_PER_GROUP = int(os.getenv('MAX_STRINGS_PER_GROUP', '50'))

# Database translation tables
DEFAULT_TRANSLATION_TABLE_SUFFIX = '_translations'
DEFAULT_DB_SCHEMA = 'public'

# Config files looked up in the working directory when --config is not given
CONFIG_FILE_NAMES = ('speranto.config.yaml', 'speranto.config.yml')

# Attribution appended to every translated Markdown file
MARKDOWN_TRAILER = "---\n\n_This page was automatically translated from {source_lang} by {model}._\n"

# Debug mode (reload after .env is loaded)
DEBUG_MODE = os.getenv('DEBUG_MODE', 'false').lower() == 'true'

if DEBUG_MODE or _debug_mode:
    _config_logger.setLevel(logging.DEBUG)
    _config_logger.debug(f"   DEFAULT_MODEL: {DEFAULT_MODEL}")
    _config_logger.debug(f"   LLM_PROVIDER: {LLM_PROVIDER}")
    _config_logger.debug(f"   LLM_API_KEY: {'***' + LLM_API_KEY[-4:] if LLM_API_KEY else '(not set)'}")
    _config_logger.debug(f"   DEFAULT_CONCURRENCY: {DEFAULT_CONCURRENCY}")
    _config_logger.debug(f"   MAX_STRINGS_PER_GROUP: {MAX_STRINGS_PER_GROUP}")


def _get(data: Dict[str, Any], snake: str, default: Any = None) -> Any:
    """Read a key accepting both snake_case and camelCase spellings."""
    if snake in data:
        return data[snake]
    head, *rest = snake.split('_')
    camel = head + ''.join(part.capitalize() for part in rest)
    return data.get(camel, default)


@dataclass
class TableConfig:
    """A database table whose rows are translated."""
    name: str
    columns: List[str]
    schema: Optional[str] = None
    id_column: str = 'id'

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TableConfig':
        if not data.get('name'):
            raise ConfigurationError("Table configuration requires a 'name'")
        columns = data.get('columns') or []
        if not columns:
            raise ConfigurationError(f"Table '{data['name']}' has no columns to translate")
        return cls(
            name=data['name'],
            columns=list(columns),
            schema=data.get('schema'),
            id_column=_get(data, 'id_column', 'id'),
        )


@dataclass
class DatabaseConfig:
    """Database translation source."""
    type: str
    connection: str
    tables: List[TableConfig] = field(default_factory=list)
    translation_table_suffix: str = DEFAULT_TRANSLATION_TABLE_SUFFIX
    concurrency: int = DEFAULT_CONCURRENCY

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DatabaseConfig':
        if not data.get('type'):
            raise ConfigurationError("Database configuration requires a 'type'")
        if not data.get('connection'):
            raise ConfigurationError(
                "Database configuration requires a 'connection' "
                "(file path for SQLite, URL for PostgreSQL)"
            )
        return cls(
            type=data['type'],
            connection=data['connection'],
            tables=[TableConfig.from_dict(t) for t in data.get('tables') or []],
            translation_table_suffix=_get(data, 'translation_table_suffix', DEFAULT_TRANSLATION_TABLE_SUFFIX),
            concurrency=int(data.get('concurrency', DEFAULT_CONCURRENCY)),
        )


@dataclass
class FileConfig:
    """File translation source."""
    source_dir: str
    target_dir: str
    use_lang_code_as_filename: bool = False
    max_strings_per_group: int = MAX_STRINGS_PER_GROUP

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'FileConfig':
        return cls(
            source_dir=_get(data, 'source_dir', DEFAULT_SOURCE_DIR),
            target_dir=_get(data, 'target_dir', DEFAULT_TARGET_DIR),
            use_lang_code_as_filename=bool(_get(data, 'use_lang_code_as_filename', False)),
            max_strings_per_group=int(_get(data, 'max_strings_per_group', MAX_STRINGS_PER_GROUP)),
        )


@dataclass
class Config:
    """Unified configuration for file and database translation runs"""

    # Core settings
    model: str = DEFAULT_MODEL
    temperature: float = DEFAULT_TEMPERATURE
    source_lang: str = DEFAULT_SOURCE_LANGUAGE
    target_langs: List[str] = field(default_factory=lambda: list(DEFAULT_TARGET_LANGUAGES))

    # LLM Provider settings
    provider: str = LLM_PROVIDER
    api_key: Optional[str] = None
    api_endpoint: Optional[str] = None

    # Behaviour
    verbose: bool = False
    instructions_dir: Optional[str] = None
    retranslate: bool = False
    sequential: bool = False
    concurrency: int = DEFAULT_CONCURRENCY

    # Translation sources
    files: Optional[FileConfig] = None
    database: Optional[DatabaseConfig] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Config':
        """Create config from a config-file mapping (camelCase or snake_case keys)"""
        target_langs = _get(data, 'target_langs', DEFAULT_TARGET_LANGUAGES)
        if isinstance(target_langs, str):
            target_langs = [lang.strip() for lang in target_langs.split(',') if lang.strip()]

        files = data.get('files')
        # Legacy flat layout: sourceDir/targetDir at the top level
        if files is None and (_get(data, 'source_dir') or _get(data, 'target_dir')):
            files = {
                'source_dir': _get(data, 'source_dir', DEFAULT_SOURCE_DIR),
                'target_dir': _get(data, 'target_dir', DEFAULT_TARGET_DIR),
                'use_lang_code_as_filename': _get(data, 'use_lang_code_as_filename', False),
                'max_strings_per_group': _get(data, 'max_strings_per_group', MAX_STRINGS_PER_GROUP),
            }

        database = data.get('database')

        return cls(
            model=data.get('model', DEFAULT_MODEL),
            temperature=float(data.get('temperature', DEFAULT_TEMPERATURE)),
            source_lang=_get(data, 'source_lang', DEFAULT_SOURCE_LANGUAGE),
            target_langs=list(target_langs),
            provider=data.get('provider', LLM_PROVIDER),
            api_key=_get(data, 'api_key'),
            api_endpoint=_get(data, 'api_endpoint'),
            verbose=bool(data.get('verbose', False)),
            instructions_dir=_get(data, 'instructions_dir'),
            retranslate=bool(data.get('retranslate', False)),
            sequential=bool(data.get('sequential', False)),
            concurrency=int(data.get('concurrency', DEFAULT_CONCURRENCY)),
            files=FileConfig.from_dict(files) if files else None,
            database=DatabaseConfig.from_dict(database) if database else None,
        )

    def with_overrides(self, **overrides: Any) -> 'Config':
        """Return a copy with every non-None override applied"""
        values = {k: v for k, v in overrides.items() if v is not None}
        data = {**self.__dict__, **values}
        return Config(**data)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization"""
        data = {
            'model': self.model,
            'temperature': self.temperature,
            'source_lang': self.source_lang,
            'target_langs': list(self.target_langs),
            'provider': self.provider,
        }
        if self.api_key:
            data['api_key'] = self.api_key
        if self.api_endpoint:
            data['api_endpoint'] = self.api_endpoint
        if self.instructions_dir:
            data['instructions_dir'] = self.instructions_dir
        for flag in ('verbose', 'retranslate', 'sequential'):
            if getattr(self, flag):
                data[flag] = True
        if self.files:
            data['files'] = asdict(self.files)
        if self.database:
            data['database'] = asdict(self.database)
        return data

    @property
    def effective_concurrency(self) -> int:
        return 1 if self.sequential else max(1, self.concurrency)


def find_config_file(config_path: Optional[str] = None) -> Optional[Path]:
    """Resolve the config file path; None when no default file exists."""
    if config_path:
        path = Path(config_path)
        if not path.exists():
            raise ConfigurationError(f"Config file not found: {config_path}")
        return path
    for name in CONFIG_FILE_NAMES:
        candidate = Path.cwd() / name
        if candidate.exists():
            return candidate
    return None


def load_config_file(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load the raw config mapping from a YAML file.

    Args:
        config_path: Explicit path; when omitted the working directory is
            searched for speranto.config.yaml / speranto.config.yml

    Returns:
        The parsed mapping, or an empty dict when no default file exists
    """
    path = find_config_file(config_path)
    if path is None:
        return {}
    _config_logger.debug(f"Loading config from {path}")
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")
    return data


def write_config_file(config: Config, config_path: str) -> Path:
    """Write the effective options as YAML (used by --as-config)."""
    path = Path(config_path)
    with open(path, 'w', encoding='utf-8') as f:
        yaml.safe_dump(config.to_dict(), f, sort_keys=False, allow_unicode=True)
    return path
