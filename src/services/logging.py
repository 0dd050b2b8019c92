"""Logging configuration for the API server and maintenance scripts.

Provides dual output (stdout + file) with configurable level via LOG_LEVEL env var.
Default: INFO. Set LOG_LEVEL=WARNING for production, DEBUG for verbose output.
"""

import logging
import os
import sys
from pathlib import Path

# Map string level names to logging constants
LOG_LEVEL_MAP = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def get_log_level() -> int:
    """Get logging level from LOG_LEVEL environment variable.

    Returns:
        Logging level constant (default: INFO)
    """
    level_str = os.getenv("LOG_LEVEL", "INFO").upper()
    return LOG_LEVEL_MAP.get(level_str, logging.INFO)


def _attach_handlers(logger: logging.Logger, log_path: Path, fmt: str, level: int) -> None:
    # ISO format: [YYYY-MM-DD HH:MM:SS]
    formatter = logging.Formatter(fmt=fmt, datefmt="%Y-%m-%d %H:%M:%S")

    # Remove any existing handlers to avoid duplicates
    logger.handlers.clear()

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setLevel(level)
    stdout_handler.setFormatter(formatter)
    logger.addHandler(stdout_handler)

    file_handler = logging.FileHandler(log_path)
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)


def setup_server_logging(log_file: str = "logs/server.log") -> None:
    """
    Configure root logger for the API server.

    Args:
        log_file: Path to log file (default: logs/server.log)

    Behavior:
        - Sets up all loggers to output to both stdout and file
        - ISO format timestamps for consistency
    """
    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    log_level = get_log_level()
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    _attach_handlers(
        root_logger,
        log_path,
        "[%(asctime)s] %(name)s - %(levelname)s - %(message)s",
        log_level,
    )


def setup_script_logging(
    name: str = "ipl.backfill", log_file: str = "logs/backfill.log"
) -> logging.Logger:
    """
    Set up a named logger for offline scripts (stdout + file).

    Args:
        name: Logger name
        log_file: Path to log file (relative to project root)

    Returns:
        Configured logger instance
    """
    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    log_level = get_log_level()
    logger = logging.getLogger(name)
    logger.setLevel(log_level)
    logger.propagate = False
    _attach_handlers(logger, log_path, "[%(asctime)s] %(levelname)s %(message)s", log_level)
    return logger


__all__ = ["get_log_level", "setup_server_logging", "setup_script_logging"]
