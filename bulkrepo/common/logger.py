"""Logging setup for bulkrepo.

Every module logs through a child of the ``bulkrepo`` logger, so configuring
that one logger from the command line governs the whole package. Console
output is terse; the optional log file carries ISO 8601 timestamps and the
emitting module.
"""

import logging
import logging.handlers
import os
from typing import Optional, Union

CONSOLE_FORMAT = "%(levelname)s: %(message)s"
FILE_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s] %(message)s"
FILE_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

LEVEL_NAMES = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _resolve_level(level: Union[str, int]) -> int:
    if isinstance(level, int):
        return level
    level_upper = level.upper()
    if level_upper not in LEVEL_NAMES:
        raise ValueError(
            f"Invalid log level: {level}. Must be one of: {', '.join(LEVEL_NAMES)}"
        )
    return getattr(logging, level_upper)


def setup_logger(
    name: str,
    level: Union[str, int] = "INFO",
    log_dir: Optional[str] = None,
    console_format: str = CONSOLE_FORMAT,
    file_format: str = FILE_FORMAT,
    console_logging: bool = True,
    max_bytes: int = 10485760,  # 10MB
    backup_count: int = 5,
) -> logging.Logger:
    """Configure ``name`` with a stderr handler and an optional log file.

    Calling it again only changes the level; handlers are added once.

    Args:
        name: Logger name (``bulkrepo`` configures every module logger)
        level: Level name (DEBUG, INFO, WARNING, ERROR, CRITICAL) or number
        log_dir: Directory for ``<name>.log``; no file logging when None
        console_format: Format of console records
        file_format: Format of log file records
        console_logging: Enable the stderr handler
        max_bytes: Maximum log file size before rotation
        backup_count: Number of rotated log files to keep

    Returns:
        Configured logger instance

    Raises:
        ValueError: If the level name is unknown
    """
    logger = logging.getLogger(name)
    logger.setLevel(_resolve_level(level))

    if logger.handlers:
        return logger

    if console_logging:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(logging.Formatter(console_format))
        logger.addHandler(console_handler)

    if log_dir is not None:
        os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            os.path.join(log_dir, f"{name}.log"),
            maxBytes=max_bytes,
            backupCount=backup_count,
        )
        file_handler.setFormatter(
            logging.Formatter(file_format, datefmt=FILE_DATE_FORMAT)
        )
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger by name, normally ``bulkrepo.<area>``."""
    return logging.getLogger(name)
