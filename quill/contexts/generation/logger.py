"""
Generation context logger.

Provides logging interface for generation context with automatic [generate] prefix.
All generation modules should import from this module, not from utils.logger directly.
"""

from loguru import logger

CONTEXT_PREFIX = "[generate]"


# Wrapper functions with automatic [generate] prefix


def _log_info(message: str) -> None:
    """Log info message with [generate] prefix."""
    logger.info(f"{CONTEXT_PREFIX} {message}")


def _log_success(message: str) -> None:
    """Log success message with [generate] prefix."""
    logger.success(f"{CONTEXT_PREFIX} {message}")


def _log_error(message: str) -> None:
    """Log error message with [generate] prefix."""
    logger.error(f"{CONTEXT_PREFIX} {message}")


def _log_warning(message: str) -> None:
    """Log warning message with [generate] prefix."""
    logger.warning(f"{CONTEXT_PREFIX} {message}")


def _log_debug(message: str) -> None:
    """Log debug message with [generate] prefix."""
    logger.debug(f"{CONTEXT_PREFIX} {message}")


def log_generation_start(request_id: str, template_id: str, locale: str) -> None:
    """Log start of a generation attempt."""
    _log_info(f"Generating {request_id} (template={template_id}, locale={locale})")


def log_generation_result(
    request_id: str, stage: str, duration_ms: int, error=None  # GenerationError or None
) -> None:
    """
    Log the outcome of a generation attempt.

    Client-side failures (validation, security) log at warning level; everything
    else that fails logs at error level with the full server-side message.
    """
    if error is None:
        _log_success(f"{request_id}: delivered ({duration_ms} ms)")
        return

    kind = getattr(error, "kind", None)
    message = f"{request_id}: failed after stage '{stage}' ({duration_ms} ms): {error}"
    if kind is not None and kind.value in ("validation", "security"):
        _log_warning(message)
    else:
        _log_error(message)
