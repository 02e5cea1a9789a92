"""Structured logging for FeatureLab.

Every structlog line is rendered once and written to the log file; `serve`
also mirrors it to stdout. Standard library loggers (uvicorn, sqlalchemy)
go to the same file through a rotating handler.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Any, TextIO

import structlog
from structlog.types import Processor

from .config import LoggingConfig, Settings, get_settings


class _TeeLoggerFactory:
    """Hands out loggers that share one line-buffered log file."""

    def __init__(self, file_path: Path, echo: TextIO | None = None) -> None:
        self._file = open(file_path, "a", buffering=1)
        self._echo = echo

    def __call__(self, *args: Any, **kwargs: Any) -> "_TeeLogger":
        return _TeeLogger(self._file, self._echo)


class _TeeLogger:
    def __init__(self, file: TextIO, echo: TextIO | None) -> None:
        self._file = file
        self._echo = echo

    def msg(self, message: str) -> None:
        self._file.write(message + "\n")
        if self._echo is not None:
            print(message, file=self._echo, flush=True)

    log = debug = info = warn = warning = msg
    fatal = failure = err = error = critical = msg


def _renderers(log_format: str) -> list[Processor]:
    if log_format == "json":
        return [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    # No ANSI colors, the same lines go to the file
    return [structlog.dev.ConsoleRenderer(colors=False)]


def _stdlib_handlers(config: LoggingConfig, log_file: Path, echo: bool) -> list[logging.Handler]:
    handlers: list[logging.Handler] = [
        logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=config.max_size_mb * 1024 * 1024,
            backupCount=config.backup_count,
        )
    ]
    if echo:
        handlers.append(logging.StreamHandler(sys.stdout))
    return handlers


def setup_logging(
    level: str | None = None,
    format_type: str | None = None,
    settings: Settings | None = None,
    echo: bool = True,
) -> Path:
    """
    Set up structured logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_type: Output format ('json' or 'text')
        settings: Settings to read defaults from (global settings when omitted)
        echo: Also write log lines to stdout

    Returns:
        The log file path
    """
    settings = settings or get_settings()
    log_level = getattr(logging, (level or settings.logging.level).upper())
    log_format = format_type or settings.logging.format

    log_file = Path(settings.logging.file).expanduser()
    log_file.parent.mkdir(parents=True, exist_ok=True)

    logging.basicConfig(
        format="%(message)s",
        level=log_level,
        handlers=_stdlib_handlers(settings.logging, log_file, echo),
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.UnicodeDecoder(),
            *_renderers(log_format),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=_TeeLoggerFactory(log_file, sys.stdout if echo else None),
        cache_logger_on_first_use=True,
    )
    return log_file

def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """
    Get a logger instance.

    Args:
        name: Logger name (usually __name__ of the calling module)

    Returns:
        Configured structured logger
    """
    return structlog.get_logger(name)
