"""
Console logging for speranto runs.

One process-wide UnifiedLogger prints timestamped, colored lines. Messages
tagged with a LogType get a dedicated layout (run banners, task transitions,
raw LLM traffic in verbose mode, error remediation hints).
"""
import os
import sys
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, Optional


class LogLevel(Enum):
    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40


class LogType(Enum):
    """Message kinds with their own console layout"""
    GENERAL = "general"
    LLM_REQUEST = "llm_request"
    LLM_RESPONSE = "llm_response"
    TASK_STATE = "task_state"
    TRANSLATION_START = "translation_start"
    TRANSLATION_END = "translation_end"
    ERROR_DETAIL = "error_detail"


class Colors:
    """ANSI escape codes, empty when NO_COLOR is set or stdout is not a terminal"""
    _off = os.environ.get('NO_COLOR') is not None or not sys.stdout.isatty()

    BANNER = '' if _off else '\033[93m'
    TEXT = '' if _off else '\033[97m'
    MUTED = '' if _off else '\033[90m'
    PROMPT = '' if _off else '\033[38;5;214m'
    OK = '' if _off else '\033[92m'
    FAIL = '' if _off else '\033[91m'
    RESET = '' if _off else '\033[0m'

    @classmethod
    def disable(cls):
        cls.BANNER = cls.TEXT = cls.MUTED = cls.PROMPT = cls.OK = cls.FAIL = cls.RESET = ''


_STATE_COLORS = {
    'skipped': lambda: Colors.BANNER,
    'failed': lambda: Colors.FAIL,
    'done': lambda: Colors.OK,
}


class UnifiedLogger:
    """
    Console logger shared by the file and database pipelines.

    Args:
        name: Logger identifier
        enable_colors: Use ANSI colors
        min_level: Lowest level printed
        writer: Line sink, ``print`` when None; the progress reporter sets
            ``tqdm.write`` while a bar is on screen
    """

    def __init__(self, name: str = "speranto", enable_colors: bool = True,
                 min_level: LogLevel = LogLevel.INFO,
                 writer: Optional[Callable[[str], None]] = None):
        self.name = name
        self.min_level = min_level
        self.writer = writer
        self.started_at: Optional[datetime] = None
        if not enable_colors:
            Colors.disable()

        self._layouts = {
            LogType.LLM_REQUEST: self._llm_request,
            LogType.LLM_RESPONSE: self._llm_response,
            LogType.TASK_STATE: self._task_state,
            LogType.TRANSLATION_START: self._run_started,
            LogType.TRANSLATION_END: self._run_finished,
            LogType.ERROR_DETAIL: self._error_detail,
        }

    @staticmethod
    def _clock() -> str:
        return datetime.now().strftime("%H:%M:%S")

    def _emit(self, text: str):
        if self.writer is not None:
            self.writer(text)
        else:
            print(text, flush=True)

    def _plain(self, level: LogLevel, message: str) -> str:
        color = {
            LogLevel.DEBUG: Colors.MUTED,
            LogLevel.WARNING: Colors.BANNER,
            LogLevel.ERROR: Colors.FAIL,
        }.get(level, Colors.TEXT)
        prefix = "" if level == LogLevel.INFO else f"[{level.name}] "
        return f"{color}[{self._clock()}] {prefix}{message}{Colors.RESET}"

    def _llm_request(self, message: str, data: Dict[str, Any]) -> str:
        lines = [
            f"{Colors.BANNER}{'-' * 72}{Colors.RESET}",
            f"{Colors.BANNER}[{self._clock()}] -> {data.get('unit', '?')} "
            f"({data.get('target_lang', '?')}, {data.get('model', '?')}){Colors.RESET}",
        ]
        if data.get('system_prompt'):
            lines.append(f"{Colors.MUTED}{data['system_prompt']}{Colors.RESET}")
        lines.append(f"{Colors.PROMPT}{data.get('prompt', '')}{Colors.RESET}")
        return '\n'.join(lines)

    def _llm_response(self, message: str, data: Dict[str, Any]) -> str:
        header = f"{Colors.OK}[{self._clock()}] <- {data.get('unit', '?')}"
        if 'execution_time' in data:
            header += f" in {data['execution_time']:.2f}s"
        return f"{header}{Colors.RESET}\n{Colors.OK}{data.get('response', '')}{Colors.RESET}"

    def _task_state(self, message: str, data: Dict[str, Any]) -> str:
        state = data.get('state') or ''
        color = _STATE_COLORS.get(state, lambda: Colors.MUTED)()
        text = f"{data.get('label', message)}: {state}"
        if data.get('detail'):
            text += f" ({data['detail']})"
        return f"{color}[{self._clock()}] {text}{Colors.RESET}"

    def _run_started(self, message: str, data: Dict[str, Any]) -> str:
        self.started_at = datetime.now()
        targets = ', '.join(data.get('target_langs') or []) or '?'
        lines = [
            f"{Colors.BANNER}{message.upper()}{Colors.RESET}",
            f"{Colors.TEXT}{data.get('source_lang', '?')} -> {targets}{Colors.RESET}",
            f"{Colors.MUTED}{data.get('model', '?')} via {data.get('provider', '?')}{Colors.RESET}",
        ]
        if data.get('source'):
            lines.append(f"{Colors.TEXT}Source: {data['source']}{Colors.RESET}")
        return '\n'.join(lines)

    def _run_finished(self, message: str, data: Dict[str, Any]) -> str:
        stats = data.get('stats', {})
        lines = [f"\n{Colors.TEXT}{message.upper()}{Colors.RESET}"]
        if self.started_at is not None:
            lines.append(f"{Colors.MUTED}Duration: {datetime.now() - self.started_at}{Colors.RESET}")
            self.started_at = None
        lines.append(
            f"{Colors.TEXT}Translated: {stats.get('translated', 0)}, "
            f"skipped: {stats.get('skipped', 0)}{Colors.RESET}"
        )
        if stats.get('failed'):
            lines.append(f"{Colors.FAIL}Failed: {stats['failed']}{Colors.RESET}")
        return '\n'.join(lines)

    def _error_detail(self, message: str, data: Dict[str, Any]) -> str:
        lines = [f"{Colors.FAIL}[{self._clock()}] ERROR: {message}{Colors.RESET}"]
        if data.get('details'):
            lines.append(f"{Colors.FAIL}  {data['details']}{Colors.RESET}")
        if data.get('remediation'):
            lines.append(f"{Colors.BANNER}  {data['remediation']}{Colors.RESET}")
        return '\n'.join(lines)

    def log(self, level: LogLevel, message: str,
            log_type: LogType = LogType.GENERAL,
            data: Optional[Dict[str, Any]] = None):
        if level.value < self.min_level.value:
            return
        layout = self._layouts.get(log_type)
        text = layout(message, data or {}) if layout else self._plain(level, message)
        try:
            self._emit(text)
        except UnicodeEncodeError:
            # legacy console codepages
            self._emit(text.encode('ascii', 'replace').decode('ascii'))

    def debug(self, message: str, log_type: LogType = LogType.GENERAL, data: Optional[Dict[str, Any]] = None):
        self.log(LogLevel.DEBUG, message, log_type, data)

    def info(self, message: str, log_type: LogType = LogType.GENERAL, data: Optional[Dict[str, Any]] = None):
        self.log(LogLevel.INFO, message, log_type, data)

    def warning(self, message: str, log_type: LogType = LogType.GENERAL, data: Optional[Dict[str, Any]] = None):
        self.log(LogLevel.WARNING, message, log_type, data)

    def error(self, message: str, log_type: LogType = LogType.GENERAL, data: Optional[Dict[str, Any]] = None):
        self.log(LogLevel.ERROR, message, log_type, data)


_global_logger: Optional[UnifiedLogger] = None


def get_logger(**kwargs) -> UnifiedLogger:
    """Return the process-wide logger, creating it on first use."""
    global _global_logger
    if _global_logger is None:
        _global_logger = UnifiedLogger(**kwargs)
    return _global_logger


def setup_cli_logger(enable_colors: bool = True, verbose: bool = False) -> UnifiedLogger:
    # late import, config pulls in dotenv at import time
    from speranto.config import DEBUG_MODE

    logger = get_logger(enable_colors=enable_colors)
    logger.min_level = LogLevel.DEBUG if (DEBUG_MODE or verbose) else LogLevel.INFO
    if not enable_colors:
        Colors.disable()
    return logger


def debug(message: str, log_type: LogType = LogType.GENERAL, data: Optional[Dict[str, Any]] = None):
    get_logger().log(LogLevel.DEBUG, message, log_type, data)


def info(message: str, log_type: LogType = LogType.GENERAL, data: Optional[Dict[str, Any]] = None):
    get_logger().log(LogLevel.INFO, message, log_type, data)


def warning(message: str, log_type: LogType = LogType.GENERAL, data: Optional[Dict[str, Any]] = None):
    get_logger().log(LogLevel.WARNING, message, log_type, data)


def error(message: str, log_type: LogType = LogType.GENERAL, data: Optional[Dict[str, Any]] = None):
    get_logger().log(LogLevel.ERROR, message, log_type, data)
