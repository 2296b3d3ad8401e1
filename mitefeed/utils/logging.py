"""
MiteFeed Logging Configuration
=============================

Logging setup for the library and the CLI: colored console output while
developing, JSON lines in rotating files, and component loggers that stamp
every record with the feed or subscription being worked on.
"""

import json
import logging
import logging.handlers
import sys
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional


# Context keys lifted to the top level of structured records
CONTEXT_FIELDS = ("component", "feed_url", "subscription_id")

# Third-party loggers that are too chatty below WARNING
QUIET_LOGGERS = ("aiohttp", "asyncio", "urllib3")

# LogRecord attributes that are not user-supplied extras
_RESERVED_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__
) | {"message", "asctime", "taskName"}


def _record_extras(record: logging.LogRecord) -> Dict[str, Any]:
    return {k: v for k, v in record.__dict__.items() if k not in _RESERVED_ATTRS}


class StructuredFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        extras = _record_extras(record)

        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in CONTEXT_FIELDS:
            if field in extras:
                entry[field] = extras.pop(field)
        if extras:
            entry["extra"] = extras
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, ensure_ascii=False, default=str)


class ColoredConsoleFormatter(logging.Formatter):
    """Compact, colored single-line records for terminals."""

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, "")
        clock = time.strftime("%H:%M:%S", time.localtime(record.created))
        source = getattr(record, "component", record.name)

        line = f"{color}{clock} {record.levelname:<8}{self.RESET} [{source}] {record.getMessage()}"

        feed_url = getattr(record, "feed_url", None)
        if feed_url:
            line += f" ({feed_url})"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)

        return line


def _console_handler(structured: bool) -> logging.Handler:
    # stderr keeps command output on stdout clean
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(StructuredFormatter() if structured else ColoredConsoleFormatter())
    return handler


def _file_handler(log_file: str, max_file_size: int, backup_count: int) -> logging.Handler:
    path = Path(log_file)
    path.parent.mkdir(parents=True, exist_ok=True)

    handler = logging.handlers.RotatingFileHandler(
        path, maxBytes=max_file_size, backupCount=backup_count, encoding="utf-8"
    )
    handler.setFormatter(StructuredFormatter())
    return handler


def setup_logger(
    name: str = "mitefeed",
    level: str = "INFO",
    log_file: Optional[str] = None,
    console: bool = True,
    structured: bool = False,
    max_file_size: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> logging.Logger:
    """(Re)configure logger ``name``, replacing any handlers it already has.

    Args:
        name: Logger name
        level: Level name such as ``"DEBUG"``
        log_file: Rotating JSON log file; None for no file output
        console: Log to stderr
        structured: JSON instead of colored text on the console
        max_file_size: Rotation threshold in bytes
        backup_count: Rotated files to keep

    Returns:
        The configured logger
    """
    logger = logging.getLogger(name)
    logger.setLevel(level.upper())

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if console:
        logger.addHandler(_console_handler(structured))
    if log_file:
        logger.addHandler(_file_handler(log_file, max_file_size, backup_count))

    return logger


class LoggerAdapter(logging.LoggerAdapter):
    """Adds fixed context to every record; per-call ``extra`` wins on conflicts."""

    def process(self, msg: Any, kwargs: Dict[str, Any]) -> tuple:
        kwargs["extra"] = {**self.extra, **(kwargs.get("extra") or {})}
        return msg, kwargs


def get_logger_for_component(
    component_name: str,
    feed_url: Optional[str] = None,
    subscription_id: Optional[str] = None,
) -> LoggerAdapter:
    """Logger named ``mitefeed.<component_name>`` carrying feed context.

    Args:
        component_name: Component such as ``feed_fetcher`` or ``feed_parser``
        feed_url: Feed being processed (optional)
        subscription_id: Subscription being processed (optional)
    """
    context = {"component": component_name}
    if feed_url:
        context["feed_url"] = feed_url
    if subscription_id:
        context["subscription_id"] = subscription_id

    return LoggerAdapter(logging.getLogger(f"mitefeed.{component_name}"), context)


def configure_application_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = "logs/mitefeed.log",
    enable_console: bool = True,
    structured_logging: bool = False,
    max_file_size_mb: int = 10,
    backup_count: int = 5,
) -> None:
    """Configure the ``mitefeed`` logger tree for an application run."""
    setup_logger(
        name="mitefeed",
        level=log_level,
        log_file=log_file,
        console=enable_console,
        structured=structured_logging,
        max_file_size=max_file_size_mb * 1024 * 1024,
        backup_count=backup_count,
    )

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


class PerformanceLogger:
    """Times a block and logs its duration; failures are logged at WARNING."""

    def __init__(self, logger, operation: str, **context):
        self.logger = logger
        self.operation = operation
        self.context = context
        self._started: Optional[float] = None

    def __enter__(self) -> "PerformanceLogger":
        self._started = time.perf_counter()
        self.logger.debug(f"Starting {self.operation}", extra=self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        duration = time.perf_counter() - self._started
        context = {**self.context, "duration_seconds": round(duration, 3), "success": exc_type is None}

        if exc_type is None:
            self.logger.debug(f"Completed {self.operation} in {duration:.3f}s", extra=context)
        else:
            self.logger.warning(f"Failed {self.operation} after {duration:.3f}s", extra=context)
