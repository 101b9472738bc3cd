"""
Logging configuration for advanced_exclude.

Provides:
- Module loggers through get_logger(__name__)
- A custom TRACE level for per-entry reconciliation detail
- stderr output by default, optional rotating log file
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional

# Define TRACE level (lower number = more detailed)
TRACE_LEVEL = 5
logging.addLevelName(TRACE_LEVEL, "TRACE")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def trace(logger: logging.Logger, message: str, *args: object) -> None:
    """Log a message at TRACE level."""
    if logger.isEnabledFor(TRACE_LEVEL):
        logger.log(TRACE_LEVEL, message, *args)


def resolve_level(log_level: Optional[str] = None) -> int:
    """
    Resolve a level name to a numeric logging level.

    The explicit argument wins, then ADVANCED_EXCLUDE_LOG_LEVEL, then LOG_LEVEL.
    Unknown names fall back to WARNING.

    Example:
        >>> resolve_level("trace")
        5
        >>> resolve_level("debug")
        10
    """
    level_str = log_level or os.environ.get("ADVANCED_EXCLUDE_LOG_LEVEL") or os.environ.get("LOG_LEVEL", "WARNING")
    if level_str.upper() == "TRACE":
        return TRACE_LEVEL
    level = getattr(logging, level_str.upper(), logging.WARNING)
    return level if isinstance(level, int) else logging.WARNING


def configure_logging(
    log_level: Optional[str] = None,
    log_file: Optional[str] = None,
    max_bytes: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5,
) -> None:
    """
    Configure logging for the command-line tool.

    Args:
        log_level: Override log level (defaults to environment or WARNING)
        log_file: Path to a log file; when given, records go to a rotating file
            and only warnings and above reach stderr
        max_bytes: Maximum size of log file before rotation
        backup_count: Number of backup files to keep
    """
    level = resolve_level(log_level)

    package_logger = logging.getLogger("advanced_exclude")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))

    if log_file:
        file_handler = RotatingFileHandler(log_file, maxBytes=max_bytes, backupCount=backup_count)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        file_handler.setLevel(level)
        package_logger.addHandler(file_handler)
        console_handler.setLevel(max(level, logging.WARNING))
    else:
        console_handler.setLevel(level)

    package_logger.addHandler(console_handler)
    package_logger.setLevel(level)
    package_logger.propagate = False

    # watchdog is chatty at DEBUG
    logging.getLogger("watchdog").setLevel(logging.WARNING)

    package_logger.debug("Logging configured - Level: %s", logging.getLevelName(level))


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with the given name.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)
