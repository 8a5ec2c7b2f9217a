"""
Shared utilities for Quill.

Common functionality used across contexts:
- Logger setup
- Audit event logging
- Timestamps
- PDF inspection
"""

from quill.utils.event_logging import log_generation_event
from quill.utils.timestamp import elapsed_ms, now, now_exact

__all__ = ["log_generation_event", "elapsed_ms", "now", "now_exact"]
