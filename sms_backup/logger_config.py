"""
Logging configuration for SMS Backup.

Configures the root logger through dictConfig so the CLI, the API and the
tests can all (re)configure logging the same way.

Environment Variables:
    LOG_LEVEL: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
               Falls back to INFO when unset or unrecognised.

Usage:
    from sms_backup.logger_config import setup_logging
    setup_logging()                      # level from LOG_LEVEL
    setup_logging(level=logging.DEBUG)   # explicit level
    setup_logging(log_file="backup.log") # also log to a rotating file
"""

import logging
import logging.config
import os
from typing import Optional

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Rotating log file: 5 MB, three backups
LOG_FILE_MAX_BYTES = 5_242_880
LOG_FILE_BACKUPS = 3


def get_log_level() -> int:
    """
    Read the log level from the LOG_LEVEL environment variable.

    Returns:
        Logging level constant, INFO if the variable is missing or invalid.
    """
    level_name = os.getenv("LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, None)

    if not isinstance(level, int):
        return logging.INFO

    return level


def _console_handler(level: int) -> dict:
    # stdout carries the CLI's report, logs go to stderr
    return {
        "class": "logging.StreamHandler",
        "level": level,
        "formatter": "standard",
        "stream": "ext://sys.stderr",
    }


def _file_handler(level: int, log_file: str) -> dict:
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "level": level,
        "formatter": "standard",
        "filename": log_file,
        "maxBytes": LOG_FILE_MAX_BYTES,
        "backupCount": LOG_FILE_BACKUPS,
        "encoding": "utf-8",
    }


def build_logging_config(level: int, format_string: str, log_file: Optional[str] = None) -> dict:
    """Return the dictConfig mapping used by setup_logging."""
    handlers = {"console": _console_handler(level)}
    if log_file:
        handlers["file"] = _file_handler(level, log_file)

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {"format": format_string, "datefmt": DATE_FORMAT},
        },
        "handlers": handlers,
        "root": {"level": level, "handlers": list(handlers)},
    }


def setup_logging(
    level: Optional[int] = None,
    format_string: Optional[str] = None,
    log_file: Optional[str] = None,
) -> None:
    """
    Configure logging for the application.

    Safe to call more than once; each call replaces the previous handlers.

    Args:
        level: Logging level. If None, read from LOG_LEVEL (default INFO).
        format_string: Optional custom format string.
        log_file: Optional path of a rotating log file.
    """
    if level is None:
        level = get_log_level()

    logging.config.dictConfig(build_logging_config(level, format_string or DEFAULT_FORMAT, log_file))
