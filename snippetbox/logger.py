"""Centralized logging configuration for the application."""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Optional

from .config import Settings

logger = logging.getLogger("snippetbox")


class _BelowErrorFilter(logging.Filter):
    """Pass only records below ERROR so they stay off stderr."""

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno < logging.ERROR


class JSONFormatter(logging.Formatter):
    def format(self, record):
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data)


def configure_logging(settings: Optional[Settings] = None) -> logging.Logger:
    """Configure the application logger with console and optional file handlers.

    Informational records go to stdout; errors go to stderr together with the
    file and line they were raised from. Without ``settings`` only the console
    handlers are installed, at INFO.
    """
    level = settings.LOG_LEVEL if settings else "INFO"
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Prevent duplicate handlers if logger already configured
    if logger.handlers:
        return logger

    info_handler = logging.StreamHandler(sys.stdout)
    info_handler.addFilter(_BelowErrorFilter())
    info_handler.setFormatter(logging.Formatter(
        fmt='%(asctime)s %(levelname)-8s [%(name)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    ))
    logger.addHandler(info_handler)

    error_handler = logging.StreamHandler(sys.stderr)
    error_handler.setLevel(logging.ERROR)
    error_handler.setFormatter(logging.Formatter(
        fmt='%(asctime)s %(levelname)-8s [%(name)s] %(pathname)s:%(lineno)d: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    ))
    logger.addHandler(error_handler)

    # File handler (optional)
    if settings and settings.LOG_FILE:
        try:
            file_handler = logging.FileHandler(settings.LOG_FILE)
            if settings.LOG_FORMAT == "json":
                file_handler.setFormatter(JSONFormatter())
            else:
                file_handler.setFormatter(logging.Formatter(
                    fmt='%(asctime)s %(levelname)-8s [%(name)s] %(message)s',
                    datefmt='%Y-%m-%d %H:%M:%S'
                ))
            logger.addHandler(file_handler)
        except OSError as e:
            logger.error(f"Failed to create file handler for {settings.LOG_FILE}: {e}")

    return logger
