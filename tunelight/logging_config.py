"""Logging setup for Tunelight.

Console output is for humans; ``<log_dir>/tunelight.log`` holds one JSON
object per line with every structured field passed to ``log_with_context``.
Each record carries an ``event_type`` so a run can be followed with jq,
for example ``jq 'select(.event_type == "poll_artwork_changed")'``.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

from pythonjsonlogger import jsonlogger

LOG_FILE_NAME = "tunelight.log"
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5

# httpx logs every poll and WLED push at INFO; Pillow logs plugin imports
QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn.access", "PIL")


def _json_file_handler(log_dir: Path) -> logging.Handler:
    log_dir.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        log_dir / LOG_FILE_NAME,
        maxBytes=LOG_FILE_MAX_BYTES,
        backupCount=LOG_FILE_BACKUPS,
        encoding="utf-8",
    )
    handler.setFormatter(
        jsonlogger.JsonFormatter(
            "%(asctime)s %(name)s %(levelname)s %(message)s %(filename)s %(lineno)d",
            timestamp=True,
        )
    )
    # Receives whatever the root logger lets through
    handler.setLevel(logging.DEBUG)
    return handler


def _console_handler(level: int) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    handler.setLevel(level)
    return handler


def setup_logging(log_level: str = "INFO", log_dir: Path | None = None) -> logging.Logger:
    """Configure the root logger for the app.

    Args:
        log_level: Console level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_dir: Directory for the rotating JSON log, ./logs by default

    Returns:
        The configured root logger
    """
    if log_dir is None:
        log_dir = Path(__file__).parent.parent / "logs"
    level = getattr(logging, log_level.upper())

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    root_logger.addHandler(_json_file_handler(log_dir))
    root_logger.addHandler(_console_handler(level))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root_logger


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def log_with_context(
    logger: logging.Logger,
    level: str,
    message: str,
    **extra_fields: Any,
) -> None:
    """Log ``message`` with structured fields attached to the record.

    Example:
        log_with_context(
            logger,
            "info",
            "Command sent to WLED",
            device_ip="192.168.1.50",
            event_type="wled_sent",
        )

    Args:
        logger: Logger instance
        level: Log level name (debug, info, warning, error, critical)
        message: Human-readable message
        **extra_fields: JSON fields such as artwork_url, device_ip or event_type
    """
    log_method = getattr(logger, level.lower())
    log_method(message, extra=extra_fields)
