"""Logging configuration for ResumeLM.

API keys travel with every AI call, so the console handler carries a filter
that masks anything that looks like a credential before it is written.
"""

from __future__ import annotations

import logging
import sys

from resumelm.utils.text import redact_secrets

# Logger name for the application (matches the package name so module
# loggers created with logging.getLogger(__name__) are children of it)
LOGGER_NAME = "resumelm"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_configured = False


class RedactingFilter(logging.Filter):
    """Mask bearer tokens and provider keys in formatted log messages."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = redact_secrets(message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def configure_logging(
    level: str | None = None,
    format_string: str = LOG_FORMAT,
    date_format: str = DATE_FORMAT,
) -> logging.Logger:
    """Configure and return the application logger.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
               Defaults to the configured settings level, then INFO.
        format_string: Format string for log messages.
        date_format: Format string for timestamps.

    Returns:
        The configured application logger.
    """
    global _configured

    logger = logging.getLogger(LOGGER_NAME)

    if level is None:
        from resumelm.config.settings import get_settings

        level = get_settings().log_level
    log_level = getattr(logging, level.upper(), logging.INFO)
    logger.setLevel(log_level)

    if not _configured:
        logger.handlers.clear()

        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(log_level)
        handler.setFormatter(logging.Formatter(format_string, datefmt=date_format))
        handler.addFilter(RedactingFilter())
        logger.addHandler(handler)
        logger.propagate = False

        _configured = True
    else:
        for handler in logger.handlers:
            handler.setLevel(log_level)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a child logger, e.g. get_logger("pipeline") -> resumelm.pipeline."""
    return logging.getLogger(f"{LOGGER_NAME}.{name}")


def reset_logging() -> None:
    """Reset logging configuration (useful for testing)."""
    global _configured

    logger = logging.getLogger(LOGGER_NAME)
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True

    _configured = False
