"""Logging configuration for agentloop."""

import logging
import sys
from pathlib import Path
from typing import TextIO

import structlog

from agentloop.config import get_config

# Open handle when logging.file is set, closed on reconfiguration
_log_file: TextIO | None = None


def _open_log_file(path: str) -> TextIO:
    global _log_file
    if _log_file is not None:
        _log_file.close()
    log_path = Path(path).expanduser()
    log_path.parent.mkdir(parents=True, exist_ok=True)
    _log_file = open(log_path, "a", encoding="utf-8", buffering=1)
    return _log_file


def configure_logging() -> None:
    """Configure structured logging from the global config.

    Events go to ``logging.file`` when set, to stderr otherwise. A file always
    gets JSON lines so runs can be inspected after the fact.
    """
    global _log_file
    config = get_config()

    log_level = getattr(logging, config.logging.level.upper(), logging.INFO)

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if config.logging.file:
        output = _open_log_file(config.logging.file)
        processors.append(structlog.processors.JSONRenderer())
    else:
        if _log_file is not None:
            _log_file.close()
            _log_file = None
        output = sys.stderr
        if config.logging.format == "console":
            processors.append(structlog.dev.ConsoleRenderer())
        else:
            processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=output),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Get a logger instance.

    Args:
        name: Optional logger name (usually __name__)
    """
    if name:
        return structlog.get_logger(name)
    return structlog.get_logger()


log = get_logger(__name__)
