from __future__ import annotations

import logging
import sys

"""Logging initialization for the importer (INFO|WARN|ERROR|SUMMARY prefixes).

All modules log through ``logging.getLogger(__name__)`` under the
``sku_import`` namespace; this module owns the single stdout handler.
``--debug`` on the CLI lowers both the logger and the handler to DEBUG,
which surfaces the detector decisions (orientation shares, stale AI
suggestions).
"""

__all__ = [
    "LOGGER_NAME",
    "SUMMARY_LEVEL",
    "LabeledFormatter",
    "setup_logging",
    "get_logger",
    "log_summary",
    "reset_logging",
]

LOGGER_NAME = "sku_import"

# INFO(20) と WARNING(30) の間
SUMMARY_LEVEL = 25

_logger: logging.Logger | None = None


class LabeledFormatter(logging.Formatter):
    """Formats records as ``LABEL message``."""

    LEVEL_LABELS = {
        logging.DEBUG: "DEBUG",
        logging.INFO: "INFO",
        logging.WARNING: "WARN",
        logging.ERROR: "ERROR",
        logging.CRITICAL: "CRITICAL",
        SUMMARY_LEVEL: "SUMMARY",
    }

    def format(self, record: logging.LogRecord) -> str:
        level_label = self.LEVEL_LABELS.get(record.levelno, record.levelname)
        return f"{level_label} {record.getMessage()}"


def _apply_level(logger: logging.Logger, level: int) -> None:
    logger.setLevel(level)
    for handler in logger.handlers:
        handler.setLevel(level)


def setup_logging(debug: bool = False) -> logging.Logger:
    """Configure the importer logger.

    The handler is created once; later calls only adjust the level, so
    ``setup_logging(debug=True)`` after a plain call switches to DEBUG.

    Args:
        debug: log DEBUG records too.

    Returns:
        The ``sku_import`` logger.
    """
    global _logger
    level = logging.DEBUG if debug else logging.INFO
    if _logger is not None:
        if debug and _logger.level != logging.DEBUG:
            _apply_level(_logger, level)
            _logger.debug("debug mode enabled")
        return _logger

    logging.addLevelName(SUMMARY_LEVEL, "SUMMARY")
    logger = logging.getLogger(LOGGER_NAME)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(LabeledFormatter())
    logger.addHandler(handler)
    logger.propagate = False
    _apply_level(logger, level)

    _logger = logger
    if debug:
        logger.debug("debug mode enabled")
    return logger


def get_logger() -> logging.Logger:
    if _logger is None:
        return setup_logging()
    return _logger


def log_summary(message: str) -> None:
    """Log ``message`` at the SUMMARY level."""
    get_logger().log(SUMMARY_LEVEL, message)


def reset_logging() -> None:
    """Forget the configured logger. Mainly for tests."""
    global _logger
    if _logger is not None:
        for handler in _logger.handlers[:]:
            _logger.removeHandler(handler)
    _logger = None
