"""
Templating context logger.

Provides logging interface for templating context with automatic [template] prefix.
All templating modules should import from this module, not from loguru directly.
Nothing logged here ever includes résumé content.
"""

from typing import Optional

from loguru import logger

CONTEXT_PREFIX = "[template]"


# Wrapper functions with automatic [template] prefix


def _log_info(message: str) -> None:
    """Log info message with [template] prefix."""
    logger.info(f"{CONTEXT_PREFIX} {message}")


def _log_success(message: str) -> None:
    """Log success message with [template] prefix."""
    logger.success(f"{CONTEXT_PREFIX} {message}")


def _log_error(message: str) -> None:
    """Log error message with [template] prefix."""
    logger.error(f"{CONTEXT_PREFIX} {message}")


def _log_warning(message: str) -> None:
    """Log warning message with [template] prefix."""
    logger.warning(f"{CONTEXT_PREFIX} {message}")


def _log_debug(message: str) -> None:
    """Log debug message with [template] prefix."""
    logger.debug(f"{CONTEXT_PREFIX} {message}")


# High-level templating-specific logging helpers


def log_registry_loaded(template_count: int, variant_count: int, templates_path) -> None:
    """Log the result of loading packaged templates."""
    _log_info(f"Loaded {template_count} template(s), {variant_count} locale variant(s)")
    _log_debug(f"  Templates path: {templates_path}")


def log_injection_rejected(field: Optional[str], pattern: str) -> None:
    """
    Log a rejected free-text value.

    The pattern only ever reaches the server log; callers receive the field path.
    """
    _log_warning(f"Forbidden control sequence {pattern!r} in field '{field or '<unknown>'}'")


def log_render_result(template_id: str, locale: str, source_length: Optional[int], error=None) -> None:
    """Log the outcome of rendering one template variant."""
    if error is not None:
        _log_error(f"Rendering {template_id}/{locale} failed: {error}")
    else:
        _log_debug(f"Rendered {template_id}/{locale}: {source_length} characters")
