"""
Delivery boundary helpers.

Framework-agnostic pieces of the HTTP surface:
- payload size cap, enforced before any parsing
- locale negotiation from Accept-Language
- PDF response headers (attachment, generation time, hardening headers)
- error mapping: one exhaustive table from ErrorKind to status code, with
  localized, caller-safe messages

Callers see field-level detail only for validation and security errors. Every
other failure gets a generic message plus the correlation id; paths, tracebacks
and compiler output stay in the server log.
"""

import json
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from dotenv import load_dotenv
from omegaconf import OmegaConf

from quill.contexts.delivery.logger import _log_error, _log_warning
from quill.contexts.rendering.compiler import CompiledDocument
from quill.contexts.templating.registries import normalize_locale
from quill.exceptions import (
    CompilationTimeoutError,
    ErrorKind,
    GenerationError,
    PayloadTooLargeError,
    SecurityViolation,
    ValidationError,
)

load_dotenv()

MAX_PAYLOAD_BYTES = int(os.getenv("MAX_PAYLOAD_BYTES", "102400"))
CONTENT_SECURITY_POLICY = os.getenv(
    "CONTENT_SECURITY_POLICY", "default-src 'none'; frame-ancestors 'none'; sandbox"
)

DEFAULT_LOCALE = "en"
PDF_FILENAME = "resume.pdf"
MESSAGES_PATH = Path(__file__).parent / "messages"

# Status code per error kind. Checked for completeness at import time.
ERROR_STATUS: Mapping[ErrorKind, int] = MappingProxyType(
    {
        ErrorKind.VALIDATION: 400,
        ErrorKind.SECURITY: 400,
        ErrorKind.TEMPLATE: 422,
        ErrorKind.COMPILATION: 500,
        ErrorKind.TIMEOUT: 504,
    }
)
PAYLOAD_TOO_LARGE_STATUS = 413
INTERNAL_ERROR_STATUS = 500

_unmapped = set(ErrorKind) - set(ERROR_STATUS)
if _unmapped:
    raise RuntimeError(f"ERROR_STATUS has no status for: {sorted(k.value for k in _unmapped)}")

SECURITY_HEADERS = MappingProxyType(
    {
        "Content-Security-Policy": CONTENT_SECURITY_POLICY,
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "DENY",
        "Referrer-Policy": "strict-origin-when-cross-origin",
        "Cache-Control": "no-store",
    }
)

_LANGUAGE_TAG_REGEX = re.compile(r"^(\*|[A-Za-z]{1,8}(-[A-Za-z0-9]{1,8})*)$")


# Payload


def check_payload_size(size: Optional[int], limit: int = MAX_PAYLOAD_BYTES) -> None:
    """
    Reject payloads above the cap.

    Args:
        size: Declared (Content-Length) or actual body size in bytes; None skips the check
        limit: Maximum accepted size

    Raises:
        PayloadTooLargeError: If size > limit
    """
    if size is not None and size > limit:
        _log_warning(f"Rejected payload of {size} bytes (limit {limit})")
        raise PayloadTooLargeError(size=size, limit=limit)


def decode_payload(body: bytes, limit: int = MAX_PAYLOAD_BYTES) -> Dict[str, Any]:
    """
    Enforce the size cap, then decode a JSON object.

    Raises:
        PayloadTooLargeError: If the body exceeds the cap (checked before decoding)
        ValidationError: If the body is not a JSON object
    """
    check_payload_size(len(body), limit)
    try:
        payload = json.loads(body.decode("utf-8"))
    except (ValueError, RecursionError) as e:
        # UnicodeDecodeError and JSONDecodeError are both ValueErrors
        raise ValidationError(f"Malformed JSON request body: {e}") from e

    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    return payload


# Locale


def parse_accept_language(header: Optional[str], default: str = DEFAULT_LOCALE) -> str:
    """
    Pick the preferred language from an Accept-Language header.

    The entry with the highest q-value wins (first one on ties) and is reduced to its
    primary subtag. A missing or unusable header, or '*', yields ``default``.

    Example:
        >>> parse_accept_language("fr-CH, es;q=0.9, en;q=0.8")
        'fr'
        >>> parse_accept_language("de;q=0.5, es-MX;q=0.9")
        'es'
    """
    if not header:
        return default

    best_tag, best_q = None, 0.0
    for entry in header.split(","):
        tag, *params = [piece.strip() for piece in entry.split(";")]
        if not tag or not _LANGUAGE_TAG_REGEX.match(tag):
            continue

        q = 1.0
        for param in params:
            name, _, value = param.partition("=")
            if name.strip().lower() == "q":
                try:
                    q = float(value)
                except ValueError:
                    q = 0.0

        if q > best_q:
            best_tag, best_q = tag, q

    if best_tag is None or best_tag == "*":
        return default
    return normalize_locale(best_tag)


# Success


def pdf_response_headers(document: CompiledDocument, locale: str) -> Dict[str, str]:
    """Headers for a delivered PDF."""
    return {
        "Content-Disposition": f'attachment; filename="{PDF_FILENAME}"',
        "X-Generation-Time-Ms": str(document.duration_ms),
        "Content-Language": normalize_locale(locale),
        **SECURITY_HEADERS,
    }


# Errors


class MessageCatalog:
    """
    Localized caller-facing error messages, loaded once from packaged YAML.

    Unknown locales fall back to English; these are boundary messages, not résumé
    templates, so a fallback is always preferable to no message.
    """

    def __init__(self, messages_path: Path = MESSAGES_PATH):
        self._catalogs = MappingProxyType(
            {
                path.stem: OmegaConf.to_container(OmegaConf.load(path), resolve=True)
                for path in sorted(messages_path.glob("*.yaml"))
            }
        )
        if DEFAULT_LOCALE not in self._catalogs:
            raise RuntimeError(f"No '{DEFAULT_LOCALE}' error messages found in {messages_path}")

    @property
    def locales(self):
        return tuple(self._catalogs)

    def get(self, locale: Optional[str], kind: str, key: str, **params) -> str:
        catalog = self._catalogs.get(normalize_locale(locale), self._catalogs[DEFAULT_LOCALE])
        entry = catalog["errors"].get(kind) or self._catalogs[DEFAULT_LOCALE]["errors"][kind]
        return entry[key].format(**params)


@dataclass(frozen=True)
class ErrorResponse:
    """
    Caller-safe error response.

    Attributes:
        status_code: HTTP status
        body: JSON-serializable problem description
        headers: Extra response headers
    """

    status_code: int
    body: Dict[str, Any]
    headers: Dict[str, str] = field(default_factory=lambda: dict(SECURITY_HEADERS))


_default_catalog: Optional[MessageCatalog] = None


def get_message_catalog() -> MessageCatalog:
    global _default_catalog
    if _default_catalog is None:
        _default_catalog = MessageCatalog()
    return _default_catalog


def _problem(
    status: int, kind: str, correlation_id: str, locale: str, catalog: MessageCatalog, **params
) -> Dict[str, Any]:
    return {
        "status": status,
        "errorKind": kind,
        "title": catalog.get(locale, kind, "title"),
        "detail": catalog.get(locale, kind, "detail", correlation_id=correlation_id, **params),
        "correlationId": correlation_id,
    }


def error_response(
    error: GenerationError,
    correlation_id: str,
    locale: Optional[str] = DEFAULT_LOCALE,
    catalog: Optional[MessageCatalog] = None,
) -> ErrorResponse:
    """
    Map a pipeline error to a caller-safe response.

    Status codes: validation 400 (413 for oversized payloads), security 400,
    template 422, compilation 500, timeout 504.

    Args:
        error: The error, exactly as raised by the pipeline
        correlation_id: Request id to quote to the caller
        locale: Locale for the message text
        catalog: Message source (default: packaged messages)
    """
    catalog = catalog or get_message_catalog()
    locale = normalize_locale(locale)
    kind = error.kind

    if isinstance(error, PayloadTooLargeError):
        body = _problem(
            PAYLOAD_TOO_LARGE_STATUS, "payload_too_large", correlation_id, locale, catalog,
            limit=error.limit,
        )
        body["errorKind"] = kind.value
        return ErrorResponse(PAYLOAD_TOO_LARGE_STATUS, body)

    status = ERROR_STATUS[kind]
    if kind is ErrorKind.SECURITY:
        field_path = error.field if isinstance(error, SecurityViolation) else None
        body = _problem(status, kind.value, correlation_id, locale, catalog, field=field_path or "")
        body["field"] = field_path
    else:
        body = _problem(status, kind.value, correlation_id, locale, catalog)

    if kind is ErrorKind.VALIDATION:
        body["errors"] = [
            {"field": e.field, "message": e.message} for e in getattr(error, "errors", [])
        ]
        if not body["errors"]:
            body["errors"] = [{"field": None, "message": error.message}]
    elif kind is ErrorKind.TIMEOUT:
        body["hint"] = catalog.get(locale, kind.value, "hint")
        if isinstance(error, CompilationTimeoutError) and error.timeout_s:
            body["timeoutSeconds"] = error.timeout_s
    else:
        _log_error(f"{correlation_id}: {kind.value} error returned as {status}")

    return ErrorResponse(status, body)


def internal_error_response(
    correlation_id: str, locale: Optional[str] = DEFAULT_LOCALE, catalog: Optional[MessageCatalog] = None
) -> ErrorResponse:
    """Response for failures outside the taxonomy (bugs). Never carries details."""
    catalog = catalog or get_message_catalog()
    body = _problem(INTERNAL_ERROR_STATUS, "internal", correlation_id, normalize_locale(locale), catalog)
    return ErrorResponse(INTERNAL_ERROR_STATUS, body)
