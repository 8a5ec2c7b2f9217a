"""
Delivery Context

Responsibilities:
- Enforces the payload size cap before any parsing
- Negotiates the response locale from Accept-Language
- Maps pipeline errors to status codes and localized, caller-safe messages
- Builds PDF response headers

Owns: ERROR_STATUS table, error message catalogs, response headers
Never: Runs the pipeline, exposes paths, tracebacks or compiler output to callers
"""

from quill.contexts.delivery.boundary import (
    ERROR_STATUS,
    MAX_PAYLOAD_BYTES,
    SECURITY_HEADERS,
    ErrorResponse,
    MessageCatalog,
    check_payload_size,
    decode_payload,
    error_response,
    internal_error_response,
    parse_accept_language,
    pdf_response_headers,
)

__all__ = [
    "ERROR_STATUS",
    "MAX_PAYLOAD_BYTES",
    "SECURITY_HEADERS",
    "ErrorResponse",
    "MessageCatalog",
    "check_payload_size",
    "decode_payload",
    "error_response",
    "internal_error_response",
    "parse_accept_language",
    "pdf_response_headers",
]
