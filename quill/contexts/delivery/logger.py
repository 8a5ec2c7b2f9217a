"""
Delivery context logger.

Provides logging interface for delivery context with automatic [deliver] prefix.
All delivery modules should import from this module, not from utils.logger directly.
"""

from loguru import logger

CONTEXT_PREFIX = "[deliver]"


def _log_info(message: str) -> None:
    """Log info message with [deliver] prefix."""
    logger.info(f"{CONTEXT_PREFIX} {message}")


def _log_error(message: str) -> None:
    """Log error message with [deliver] prefix."""
    logger.error(f"{CONTEXT_PREFIX} {message}")


def _log_warning(message: str) -> None:
    """Log warning message with [deliver] prefix."""
    logger.warning(f"{CONTEXT_PREFIX} {message}")


def _log_debug(message: str) -> None:
    """Log debug message with [deliver] prefix."""
    logger.debug(f"{CONTEXT_PREFIX} {message}")


def _log_exception(message: str) -> None:
    """Log error message with [deliver] prefix and the active traceback."""
    logger.exception(f"{CONTEXT_PREFIX} {message}")
