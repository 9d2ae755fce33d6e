"""
Logging configuration for Halvcycle.

Console output stays terse by default; --verbose switches to DEBUG with the
full timestamped format and an optional log file records everything.
"""

import logging
import sys
from pathlib import Path

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

CONSOLE_FORMAT = "%(levelname)-8s | %(message)s"

ROOT_LOGGER_NAME = "halvcycle"

_loggers: dict[str, logging.Logger] = {}


def setup_logging(
    level: int = logging.INFO,
    log_file: Path | None = None,
    verbose: bool = False,
) -> None:
    """
    Configure the halvcycle logger hierarchy.

    Args:
        level: Console logging level (default: INFO)
        log_file: Optional path to a log file (always written at DEBUG)
        verbose: If True, force DEBUG and use the detailed console format
    """
    if verbose:
        level = logging.DEBUG
        console_format = LOG_FORMAT
    else:
        console_format = CONSOLE_FORMAT

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(logging.DEBUG if log_file else level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(console_format, LOG_DATE_FORMAT))
    root_logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, LOG_DATE_FORMAT))
        root_logger.addHandler(file_handler)

    # HTTP libraries log every connection at DEBUG
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("requests").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Get a module logger inside the halvcycle namespace.

    Usage:
        from utils.logging import get_logger
        logger = get_logger(__name__)

        logger.info("Analysing cycle %d", event.cycle)
        logger.debug("Post-halving window: %d samples", len(window))

    Args:
        name: Module name (usually __name__)

    Returns:
        Logger instance
    """
    if not name.startswith(ROOT_LOGGER_NAME):
        name = f"{ROOT_LOGGER_NAME}.{name}"

    if name not in _loggers:
        _loggers[name] = logging.getLogger(name)

    return _loggers[name]
