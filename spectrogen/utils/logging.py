"""
Structured logging utilities for the Spectrogram Generator.

JSON lines for log files and machine consumption, colored text for the
terminal. Per-regeneration context (source file, generation number) is
attached with :func:`create_logger_with_context`.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

TEXT_FORMAT = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"
TEXT_DATEFMT = "%H:%M:%S"

# librosa pulls in numba, whose compiler logs flood DEBUG output
NOISY_LOGGERS = ("numba", "PIL", "audioread", "matplotlib")

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", None, None)).keys()
) | {"message", "asctime"}


def _context_fields(record: logging.LogRecord) -> Dict[str, Any]:
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _RESERVED_ATTRS and not key.startswith("_")
    }


class JSONFormatter(logging.Formatter):
    """One JSON object per line; ``extra`` fields land under ``context``."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "time": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "where": f"{record.module}.{record.funcName}:{record.lineno}",
        }

        context = _context_fields(record)
        if context:
            entry["context"] = context
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class ColoredFormatter(logging.Formatter):
    """Colors the level name for terminal output."""

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[1;31m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        levelname = record.levelname
        color = self.LEVEL_COLORS.get(record.levelno)
        if color:
            record.levelname = f"{color}{levelname}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = levelname


def setup_logging(
    level: str = "INFO",
    log_format: str = "text",
    log_file: Optional[str] = None,
    max_bytes: int = 10485760,
    backup_count: int = 5,
    console_enabled: bool = True,
    colored: bool = True,
    quiet: Iterable[str] = NOISY_LOGGERS,
) -> None:
    """
    Configure application-wide logging.

    Args:
        level: Root log level name
        log_format: Console format, "text" or "json"
        log_file: Optional rotating log file (always JSON)
        max_bytes: Rotation size for the log file
        backup_count: Rotated files to keep
        console_enabled: Log to stderr
        colored: Colorize text output when stderr is a terminal
        quiet: Third-party loggers capped at WARNING
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper()))
    for handler in list(root.handlers):
        root.removeHandler(handler)

    if console_enabled:
        console = logging.StreamHandler(sys.stderr)
        if log_format == "json":
            console.setFormatter(JSONFormatter())
        elif colored and sys.stderr.isatty():
            console.setFormatter(ColoredFormatter(TEXT_FORMAT, TEXT_DATEFMT))
        else:
            console.setFormatter(logging.Formatter(TEXT_FORMAT, TEXT_DATEFMT))
        root.addHandler(console)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        rotating = RotatingFileHandler(
            log_file, maxBytes=max_bytes, backupCount=backup_count
        )
        rotating.setFormatter(JSONFormatter())
        root.addHandler(rotating)

    for name in quiet:
        logging.getLogger(name).setLevel(logging.WARNING)


def configure_from_config(section: Dict[str, Any], verbose: bool = False) -> None:
    """Apply the ``logging`` config section; ``verbose`` forces DEBUG."""
    setup_logging(
        level="DEBUG" if verbose else section.get("level", "INFO"),
        log_format=section.get("format", "text"),
        log_file=section.get("file"),
        max_bytes=section.get("max_bytes", 10485760),
        backup_count=section.get("backup_count", 5),
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


class LoggerAdapter(logging.LoggerAdapter):
    """Merges persistent context with per-call ``extra``."""

    def process(self, msg, kwargs):
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


def create_logger_with_context(
    name: str, context: Dict[str, Any]
) -> LoggerAdapter:
    """
    Create a logger with persistent context.

    Example:
        log = create_logger_with_context("engine", {"source": "birdsong.wav"})
        log.info("Regenerating spectrogram")
        # JSON output carries {"context": {"source": "birdsong.wav"}}
    """
    return LoggerAdapter(get_logger(name), context)
