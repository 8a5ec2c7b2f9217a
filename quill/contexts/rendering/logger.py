"""
Rendering context logger.

Provides logging interface for rendering context with automatic [render] prefix.
All rendering modules should import from this module, not from utils.logger directly.
"""

from typing import List, Optional

from loguru import logger

CONTEXT_PREFIX = "[render]"


# Wrapper functions with automatic [render] prefix


def _log_info(message: str) -> None:
    """Log info message with [render] prefix."""
    logger.info(f"{CONTEXT_PREFIX} {message}")


def _log_success(message: str) -> None:
    """Log success message with [render] prefix."""
    logger.success(f"{CONTEXT_PREFIX} {message}")


def _log_error(message: str) -> None:
    """Log error message with [render] prefix."""
    logger.error(f"{CONTEXT_PREFIX} {message}")


def _log_warning(message: str) -> None:
    """Log warning message with [render] prefix."""
    logger.warning(f"{CONTEXT_PREFIX} {message}")


def _log_debug(message: str) -> None:
    """Log debug message with [render] prefix."""
    logger.debug(f"{CONTEXT_PREFIX} {message}")


# High-level rendering-specific logging helpers


def log_compilation_start(request_id: Optional[str], sandbox_name: str, source_length: int) -> None:
    """Log start of compilation with context."""
    _log_info(f"Starting compilation: {request_id or '<no request id>'}")
    _log_debug(f"  Sandbox: {sandbox_name}")
    _log_debug(f"  Source: {source_length} characters")


def log_compilation_success(
    request_id: Optional[str],
    pdf_size: int,
    page_count: Optional[int],
    duration_ms: int,
) -> None:
    """Log successful compilation."""
    pages = f"{page_count} page(s)" if page_count is not None else "unknown page count"
    _log_success(f"{request_id}: {pdf_size} bytes, {pages} ({duration_ms} ms)")


def log_compilation_failure(
    request_id: Optional[str],
    error,  # CompilationError or CompilationTimeoutError
    duration_ms: int,
    verbose: bool = False,
) -> None:
    """
    Log a failed compilation with full server-side diagnostics.

    Args:
        request_id: Correlation id
        error: The raised error; TeX errors and output tail are logged when present
        duration_ms: Time spent before failing
        verbose: Show more parsed errors (default: False)
    """
    _log_error(f"Compilation failed for {request_id}: {error.message} ({duration_ms} ms)")

    errors: List[str] = getattr(error, "errors", [])
    error_limit = 10 if verbose else 5
    for i, err in enumerate(errors[:error_limit], 1):
        _log_error(f"  Error {i}: {err}")
    if len(errors) > error_limit:
        _log_error(f"  ... and {len(errors) - error_limit} more errors")

    # Use opt(raw=True) to bypass format template and preserve original formatting
    log_excerpt = getattr(error, "log_excerpt", "")
    if log_excerpt:
        logger.opt(raw=True).debug(
            f"\n{'=' * 80}\nCOMPILER OUTPUT (tail):\n{'=' * 80}\n{log_excerpt}\n"
        )
