"""
Logging configuration for the skill router.

Console output plus an optional rotating log file.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = "./logs/skill_router.log",
    max_bytes: int = 10 * 1024 * 1024,  # 10 MB
    backup_count: int = 5,
    log_format: str = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s",
) -> logging.Logger:
    """
    Configure logging for the ``skill_router`` logger hierarchy.

    Args:
        log_level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Log file path, or None for console only
        max_bytes: Maximum size of a single log file
        backup_count: Number of rotated files to keep
        log_format: Format string for all handlers

    Returns:
        The configured ``skill_router`` logger
    """
    level = getattr(logging, log_level.upper())

    logger = logging.getLogger("skill_router")
    logger.setLevel(level)

    # Clear existing handlers so repeated setup does not duplicate output
    logger.handlers.clear()

    formatter = logging.Formatter(fmt=log_format, datefmt="%Y-%m-%d %H:%M:%S")

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            filename=str(log_path),
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8"
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logging.getLogger("langchain").setLevel(logging.WARNING)

    logger.info(f"Logging initialized: level={log_level}, file={log_file}")
    return logger


def setup_logging_from_config(logging_config) -> logging.Logger:
    """Configure logging from a ``config.LoggingConfig`` section."""
    return setup_logging(
        log_level=logging_config.level,
        log_file=logging_config.file,
        max_bytes=logging_config.max_bytes,
        backup_count=logging_config.backup_count,
        log_format=logging_config.format,
    )


__all__ = ["setup_logging", "setup_logging_from_config"]
