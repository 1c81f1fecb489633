"""Opt-in logging setup for tokenbucketsim.

The library is silent by default: importing it installs a NullHandler on
the ``tokenbucketsim`` logger and nothing else. Call one of the helpers
below to see engine and driver activity.

    import tokenbucketsim

    tokenbucketsim.enable_console_logging(level="DEBUG")  # every injection and admission
    tokenbucketsim.enable_file_logging("runs/sim.log")     # rotating file
    tokenbucketsim.enable_json_logging()                    # one JSON object per line
    tokenbucketsim.configure_from_env()                     # TBS_LOGGING & co.

Environment variables:
    TBS_LOGGING: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    TBS_LOG_FILE: Path to log file (enables rotating file logging)
    TBS_LOG_JSON: Set to "1" for JSON output
"""

from __future__ import annotations

import json
import logging
import os
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Literal

__all__ = [
    "configure_from_env",
    "disable_logging",
    "enable_console_logging",
    "enable_file_logging",
    "enable_json_logging",
    "set_level",
    "set_module_level",
]

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

DEFAULT_MAX_BYTES = 10 * 1024 * 1024  # 10 MB
DEFAULT_BACKUP_COUNT = 5

LOGGER_NAME = "tokenbucketsim"

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class JsonFormatter(logging.Formatter):
    """One JSON object per record: timestamp, level, logger, message."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data)


def _get_level(level: str | int) -> int:
    if isinstance(level, int):
        return level
    return getattr(logging, level.upper(), logging.INFO)


def _get_logger() -> logging.Logger:
    return logging.getLogger(LOGGER_NAME)


def _attach(handler: logging.Handler, level: LogLevel | int, formatter: logging.Formatter) -> None:
    logger = _get_logger()
    logger.setLevel(_get_level(level))
    handler.setLevel(_get_level(level))
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def _clear_handlers() -> None:
    """Remove and close every handler except NullHandler."""
    logger = _get_logger()
    for handler in logger.handlers[:]:
        if not isinstance(handler, logging.NullHandler):
            logger.removeHandler(handler)
            handler.close()


def enable_console_logging(
    level: LogLevel | int = "INFO",
    format: str = DEFAULT_FORMAT,
    date_format: str = DEFAULT_DATE_FORMAT,
) -> logging.StreamHandler:
    """Log to stderr.

    Returns:
        The created StreamHandler.
    """
    handler = logging.StreamHandler()
    _attach(handler, level, logging.Formatter(format, date_format))
    return handler


def enable_file_logging(
    path: str | Path,
    level: LogLevel | int = "INFO",
    max_bytes: int = DEFAULT_MAX_BYTES,
    backup_count: int = DEFAULT_BACKUP_COUNT,
    json_format: bool = False,
) -> RotatingFileHandler:
    """Log to a size-rotated file.

    Args:
        path: Log file path. Parent directories are created automatically.
        level: Log level name or int.
        max_bytes: Size at which the file is rotated.
        backup_count: Number of rotated files to keep.
        json_format: Write JsonFormatter lines instead of plain text.

    Returns:
        The created RotatingFileHandler.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    handler = RotatingFileHandler(path, maxBytes=max_bytes, backupCount=backup_count)
    formatter = JsonFormatter() if json_format else logging.Formatter(DEFAULT_FORMAT, DEFAULT_DATE_FORMAT)
    _attach(handler, level, formatter)
    return handler


def enable_json_logging(level: LogLevel | int = "INFO") -> logging.StreamHandler:
    """Log JSON lines to stderr."""
    handler = logging.StreamHandler()
    _attach(handler, level, JsonFormatter())
    return handler


def configure_from_env() -> None:
    """Configure logging from TBS_LOGGING, TBS_LOG_FILE and TBS_LOG_JSON.

    Does nothing when neither a level nor a file is set.
    """
    level = os.environ.get("TBS_LOGGING", "").upper()
    log_file = os.environ.get("TBS_LOG_FILE", "")
    use_json = os.environ.get("TBS_LOG_JSON", "") == "1"

    if not level and not log_file:
        return

    level = level or "INFO"
    if log_file:
        enable_file_logging(log_file, level=level, json_format=use_json)
    elif use_json:
        enable_json_logging(level=level)
    else:
        enable_console_logging(level=level)


def set_level(level: LogLevel | int) -> None:
    _get_logger().setLevel(_get_level(level))


def set_module_level(module: str, level: LogLevel | int) -> None:
    """Set the level of one submodule, e.g. ``set_module_level("engine", "DEBUG")``."""
    logging.getLogger(f"{LOGGER_NAME}.{module}").setLevel(_get_level(level))


def disable_logging() -> None:
    """Remove all handlers and silence the library logger."""
    logger = _get_logger()
    _clear_handlers()
    logger.addHandler(logging.NullHandler())
    logger.setLevel(logging.CRITICAL + 1)
