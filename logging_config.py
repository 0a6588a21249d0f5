"""
Logging Configuration

Centralized logging configuration for the station tracker.
Library modules log through logging.getLogger(__name__) under the
"station_tracker" namespace; the CLI calls configure_logging() once.

HTTP client libraries log every request at INFO. With a refresh loop that
would drown the tracker's own output, so they are held at WARNING unless
DEBUG is requested.

Usage:
    from logging_config import configure_logging, get_logger

    configure_logging(logging.INFO)
    logger = get_logger(__name__)
    logger.info("Elements loaded from cache")
"""

import logging
import sys
from typing import Optional

# Default logging format
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

PACKAGE_LOGGER = "station_tracker"

# Third-party loggers quieted below DEBUG
NOISY_LOGGERS = ("httpx", "httpcore", "asyncio")


def configure_logging(level: int = logging.INFO, log_file: Optional[str] = None) -> None:
    """
    Configure logging for the tracker process.

    Parameters
    ----------
    level : int
        Level for the tracker's own loggers (e.g., logging.DEBUG)
    log_file : str, optional
        Path to log file. If None, logs only to console.
    """
    handlers = [logging.StreamHandler(sys.stdout)]

    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        handlers=handlers,
        force=True,
    )

    logging.getLogger(PACKAGE_LOGGER).setLevel(level)
    third_party_level = level if level <= logging.DEBUG else max(level, logging.WARNING)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(third_party_level)


def get_logger(name: str = PACKAGE_LOGGER) -> logging.Logger:
    """
    Get a logger instance.

    Parameters
    ----------
    name : str
        Name of the logger (default: the tracker's package logger)

    Returns
    -------
    logging.Logger
        Logger instance
    """
    return logging.getLogger(name)
