from __future__ import annotations

import logging
import sys
from typing import TextIO

"""Logging initialization with labeled prefixes.

Console output uses one label per line (INFO|WARN|ERROR|SUMMARY) followed by
the message. The SUMMARY level sits between INFO and WARNING so the final
summary line is printed even when INFO is filtered out by a handler.

Durable diagnostics (the errors log file) are handled separately by
``dkan_importer.logging.error_log``.
"""

__all__ = [
    "SUMMARY_LEVEL",
    "LabeledFormatter",
    "setup_logging",
    "get_logger",
    "enable_debug",
    "log_summary",
    "reset_logging",
]

LOGGER_NAME = "dkan_importer"

# INFO(20) と WARNING(30) の間
SUMMARY_LEVEL = 25

_LABELS = {
    logging.DEBUG: "DEBUG",
    logging.INFO: "INFO",
    SUMMARY_LEVEL: "SUMMARY",
    logging.WARNING: "WARN",
    logging.ERROR: "ERROR",
    logging.CRITICAL: "CRITICAL",
}

_logger: logging.Logger | None = None


class LabeledFormatter(logging.Formatter):
    """``<LABEL> <message>``; tracebacks, when attached, follow on later lines."""

    def __init__(self) -> None:
        super().__init__("%(label)s %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        record.label = _LABELS.get(record.levelno, record.levelname)
        return super().format(record)


def setup_logging(stream: TextIO | None = None, level: int = logging.INFO) -> logging.Logger:
    """Attach one labeled console handler to the ``dkan_importer`` logger.

    Package modules log through ``logging.getLogger(__name__)`` and reach this
    handler as children. Calling it again returns the configured logger.

    Args:
        stream: console stream, ``sys.stdout`` when omitted
        level: threshold for both the logger and its handler
    """
    global _logger
    if _logger is not None:
        return _logger

    logging.addLevelName(SUMMARY_LEVEL, "SUMMARY")
    logger = logging.getLogger(LOGGER_NAME)
    for stale in list(logger.handlers):
        logger.removeHandler(stale)

    console = logging.StreamHandler(stream if stream is not None else sys.stdout)
    console.setFormatter(LabeledFormatter())
    console.setLevel(level)
    logger.addHandler(console)
    logger.setLevel(level)
    # root 側へ流さない (二重出力防止)
    logger.propagate = False

    _logger = logger
    return logger


def get_logger() -> logging.Logger:
    """Get the configured application logger (configuring it on first use)."""
    if _logger is None:
        return setup_logging()
    return _logger


def enable_debug() -> None:
    logger = get_logger()
    for handler in logger.handlers:
        handler.setLevel(logging.DEBUG)
    logger.setLevel(logging.DEBUG)
    logger.debug("debug mode enabled")


def log_summary(message: str) -> None:
    """Log a message at SUMMARY level."""
    get_logger().log(SUMMARY_LEVEL, message)


def reset_logging() -> None:
    """Forget the configured logger and detach its console handler (tests)."""
    global _logger
    if _logger is not None:
        for handler in list(_logger.handlers):
            _logger.removeHandler(handler)
    _logger = None
