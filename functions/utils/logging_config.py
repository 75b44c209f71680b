# functions/utils/logging_config.py
"""
Centralized logging configuration for Cloud Functions.
Import this module FIRST in main.py to ensure proper logging setup.
"""
import logging
import sys
import traceback
from typing import Any, Optional

# Global flag to prevent re-initialization
_LOGGING_CONFIGURED = False


def setup_cloud_logging(level: int = logging.INFO, force: bool = False) -> None:
    """
    Configure logging for Google Cloud Functions.

    Args:
        level: Logging level (default: INFO)
        force: Force reconfiguration even if already configured
    """
    global _LOGGING_CONFIGURED

    if _LOGGING_CONFIGURED and not force:
        return

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)

    # Simple format for Cloud Logging (it adds its own metadata)
    formatter = logging.Formatter('%(levelname)s: [%(name)s] %(message)s')
    handler.setFormatter(formatter)

    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    _LOGGING_CONFIGURED = True

    root_logger.info(f"Logging configured for Cloud Functions (level={logging.getLevelName(level)})")
    sys.stdout.flush()


def get_logger(name: str, level: Optional[int] = None) -> logging.Logger:
    """
    Get a properly configured logger.

    Args:
        name: Logger name (usually __name__)
        level: Optional override level

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    if level is not None:
        logger.setLevel(level)

    # Ensure propagation is enabled
    logger.propagate = True

    return logger


def format_fields(**fields: Any) -> str:
    """Render fields as space separated key=value pairs, skipping None values."""
    return ' '.join(f"{k}={v}" for k, v in fields.items() if v is not None)


def log_event(logger: logging.Logger, event: str, level: int = logging.INFO, **fields: Any) -> None:
    """
    Log a structured event line: ``event key=value ...``.

    Args:
        logger: Logger instance
        event: Event name (snake_case)
        level: Logging level for the event
        **fields: Event attributes
    """
    rendered = format_fields(**fields)
    logger.log(level, f"{event} {rendered}" if rendered else event)


def log_error(logger: logging.Logger, error: Exception, context: str = "") -> None:
    """
    Log error with full context.

    Args:
        logger: Logger instance
        error: Exception object
        context: Additional context string
    """
    logger.error(f"ERROR: {type(error).__name__}: {str(error)}")

    if context:
        logger.error(f"Context: {context}")

    tb = ''.join(traceback.format_exception(type(error), error, error.__traceback__))
    logger.error(f"Traceback:\n{tb}")
    sys.stdout.flush()
