"""
Logging setup shared by every Nekovilo module.

Each named logger writes to the operator console through prompt_toolkit and
to one rotating file per bot session under ``logs/``. The console level can be
raised with ``NEKOVILO_LOG_LEVEL`` (e.g. ``INFO``); the file always keeps
DEBUG records.
"""

import logging
import os
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path

from prompt_toolkit import print_formatted_text
from prompt_toolkit.formatted_text import ANSI

LOGS_DIR: Path = (Path(__file__).parents[3] / "logs").resolve()
LOGS_DIR.mkdir(parents=True, exist_ok=True)

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s:%(funcName)s:%(lineno)d] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H-%M-%S"
LOG_LEVEL_ENV = "NEKOVILO_LOG_LEVEL"

LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 3
LOG_REUSE_WINDOW_SECONDS = 60

LEVEL_COLORS = {
    logging.DEBUG: "\033[36m",
    logging.INFO: "\033[32m",
    logging.WARNING: "\033[33m",
    logging.ERROR: "\033[31m",
    logging.CRITICAL: "\033[38;5;88m",
}
RESET_COLOR = "\033[0m"

# discord.py/py-cord, the sqlite driver and the HTTP stack log a lot at INFO
NOISY_LOGGERS = [
    "discord", "discord.gateway", "discord.client", "discord.http",
    "aiosqlite", "websockets", "aiohttp", "asyncio",
]

_session_log_path: Path | None = None


class ColorFormatter(logging.Formatter):
    """Formatter that colors the whole line by level (cyan DEBUG up to dark red CRITICAL)."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        color = LEVEL_COLORS.get(record.levelno)
        if not color:
            return line
        return f"{color}{line}{RESET_COLOR}"


class PromptToolkitHandler(logging.Handler):
    """
    Handler that prints records with ``print_formatted_text``.

    Writing through prompt_toolkit keeps log lines above the console prompt
    instead of tearing through whatever the operator is typing.
    """

    def __init__(self, formatter: logging.Formatter | None = None):
        super().__init__()
        if formatter is not None:
            self.setFormatter(formatter)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            print_formatted_text(ANSI(self.format(record)))
        except Exception:
            self.handleError(record)


def should_use_color() -> bool:
    """Return True when stderr is an interactive terminal."""
    try:
        return sys.stderr.isatty()
    except Exception:
        return False


def console_level() -> int:
    """Console threshold from ``NEKOVILO_LOG_LEVEL``; DEBUG when unset or unknown."""
    name = os.getenv(LOG_LEVEL_ENV, "").strip().upper()
    level = logging.getLevelName(name) if name else logging.DEBUG
    return level if isinstance(level, int) else logging.DEBUG


def _timestamped_log_path() -> Path:
    return LOGS_DIR / f"{datetime.now().strftime(DATE_FORMAT)}.log"


def get_log_filepath() -> Path:
    """
    Path of the log file for this session.

    Resolved once. A log from today that was touched within the last
    ``LOG_REUSE_WINDOW_SECONDS`` is continued, so a console ``restart``
    (which re-execs the process) keeps writing to the same file.
    """
    global _session_log_path

    if _session_log_path is not None:
        return _session_log_path

    todays_logs = list(LOGS_DIR.glob(f"{datetime.now():%Y-%m-%d}*.log"))
    latest = max(todays_logs, key=lambda path: path.stat().st_mtime, default=None)
    if latest is not None and datetime.now().timestamp() - latest.stat().st_mtime < LOG_REUSE_WINDOW_SECONDS:
        _session_log_path = latest
    else:
        _session_log_path = _timestamped_log_path()
    return _session_log_path


def _console_handler() -> logging.Handler:
    formatter_cls = ColorFormatter if should_use_color() else logging.Formatter
    handler = PromptToolkitHandler(formatter_cls(LOG_FORMAT, datefmt=DATE_FORMAT))
    handler.setLevel(console_level())
    return handler


def _file_handler() -> logging.Handler:
    handler = RotatingFileHandler(
        get_log_filepath(),
        maxBytes=LOG_FILE_MAX_BYTES,
        backupCount=LOG_FILE_BACKUPS,
        encoding="utf-8",
    )
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    return handler


def setup_logger(logger_name: str) -> logging.Logger:
    """Attach the console and file handlers to ``logger_name`` once and return it."""
    logger = logging.getLogger(logger_name)
    if logger.handlers:
        return logger

    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    logger.addHandler(_console_handler())
    logger.addHandler(_file_handler())
    return logger


def get_logger(logger_name: str) -> logging.Logger:
    """Return the Nekovilo logger for a component, e.g. ``get_logger("trigger_cache")``."""
    return setup_logger(logger_name)


def quiet_noisy_loggers() -> None:
    """Cap third-party loggers at ERROR and drop any handlers they installed."""
    for name in NOISY_LOGGERS:
        noisy = logging.getLogger(name)
        noisy.setLevel(logging.ERROR)
        noisy.propagate = False
        noisy.handlers = []


def handle_exception(exception_type, exception_instance, exception_traceback) -> None:
    """``sys.excepthook`` that logs uncaught errors; Ctrl+C keeps the default behaviour."""
    if issubclass(exception_type, KeyboardInterrupt):
        sys.__excepthook__(exception_type, exception_instance, exception_traceback)
        return
    logging.error("Uncaught exception", exc_info=(exception_type, exception_instance, exception_traceback))


quiet_noisy_loggers()
sys.excepthook = handle_exception
