"""
Generation audit events.

Each pipeline attempt emits exactly one structured event. Events are logged through
loguru (bound with ``audit=True`` so sinks can filter them) and, when
GENERATION_EVENTS_FILE is set, appended to that file in JSON Lines format.

Events never contain résumé content. The caller id is reduced to a short salted
hash so events can be correlated per caller without identifying them.

Usage:
    from quill.utils.event_logging import log_generation_event

    log_generation_event(
        request_id="3f1c...",
        template_id="engineering",
        locale="en",
        caller_id="user-42",
        outcome="success",
        stage="delivered",
        duration_ms=812,
        pdf_bytes=48213,
    )
"""

import hashlib
import json
import os
import threading
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from loguru import logger

from quill.utils.timestamp import now_exact

load_dotenv()
_events_file = os.getenv("GENERATION_EVENTS_FILE")
GENERATION_EVENTS_FILE = Path(_events_file) if _events_file else None
CALLER_HASH_SALT = os.getenv("CALLER_HASH_SALT", "quill")

# Serialises appends from concurrent workers
_write_lock = threading.Lock()


def hash_caller_id(caller_id: Optional[str]) -> Optional[str]:
    """Return a short, salted SHA-256 digest of the caller id (None stays None)."""
    if not caller_id:
        return None
    digest = hashlib.sha256(f"{CALLER_HASH_SALT}:{caller_id}".encode("utf-8")).hexdigest()
    return digest[:16]


def log_generation_event(
    request_id: str,
    template_id: str,
    locale: str,
    caller_id: Optional[str],
    outcome: str,
    stage: str,
    duration_ms: int,
    error_kind: Optional[str] = None,
    events_file: Optional[Path] = None,
    **extra_fields,
) -> dict:
    """
    Emit one audit event for a generation attempt.

    Args:
        request_id: Correlation id of the attempt
        template_id: Requested template
        locale: Requested locale (as received)
        caller_id: Raw caller identity, hashed before it is written
        outcome: "success" or "failure"
        stage: Last stage reached ("received", "validated", "rendered", "compiled", "delivered")
        duration_ms: Wall time of the attempt
        error_kind: ErrorKind value for failures
        events_file: Override for GENERATION_EVENTS_FILE
        **extra_fields: Additional non-PII fields (e.g. pdf_bytes, page_count)

    Returns:
        The event dict that was emitted
    """
    event = {
        "timestamp": now_exact(),
        "event_type": "resume_generation",
        "request_id": request_id,
        "template_id": template_id,
        "locale": locale,
        "caller": hash_caller_id(caller_id),
        "outcome": outcome,
        "stage": stage,
        "error_kind": error_kind,
        "duration_ms": duration_ms,
        **extra_fields,
    }
    line = json.dumps(event, default=str)

    logger.bind(audit=True).info(f"[audit] {line}")

    target = events_file or GENERATION_EVENTS_FILE
    if target is not None:
        target.parent.mkdir(parents=True, exist_ok=True)
        with _write_lock:
            with open(target, "a", encoding="utf-8") as f:
                f.write(line + "\n")

    return event


def read_generation_events(events_file: Optional[Path] = None, n: int = 10) -> list[dict]:
    """
    Return the last n audit events from the events file (most recent last).

    Malformed lines are skipped.
    """
    target = events_file or GENERATION_EVENTS_FILE
    if target is None or not target.exists():
        return []

    events = []
    with open(target, "r", encoding="utf-8") as f:
        for line in f:
            try:
                events.append(json.loads(line.strip()))
            except json.JSONDecodeError:
                continue

    return events[-n:] if len(events) > n else events
