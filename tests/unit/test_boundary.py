"""Unit tests for delivery boundary helpers."""

import json
import sys

import pytest

from quill.contexts.delivery.boundary import (
    ERROR_STATUS,
    SECURITY_HEADERS,
    MessageCatalog,
    check_payload_size,
    decode_payload,
    error_response,
    internal_error_response,
    parse_accept_language,
    pdf_response_headers,
)
from quill.contexts.rendering.compiler import CompiledDocument
from quill.exceptions import (
    CompilationError,
    CompilationTimeoutError,
    ErrorKind,
    FieldError,
    PayloadTooLargeError,
    SecurityViolation,
    TemplateError,
    ValidationError,
)

CORRELATION_ID = "0123456789abcdef"


# Payload


@pytest.mark.unit
def test_payload_at_limit_is_accepted():
    body = json.dumps({"x": "a" * 100}).encode()
    assert decode_payload(body, limit=len(body)) == {"x": "a" * 100}


@pytest.mark.unit
def test_payload_over_limit_is_rejected_before_parsing():
    """102401 bytes of garbage fails on size, never reaching the JSON decoder."""
    with pytest.raises(PayloadTooLargeError) as exc_info:
        decode_payload(b"{" * 102401)

    assert exc_info.value.size == 102401
    assert exc_info.value.limit == 102400


@pytest.mark.unit
def test_check_payload_size_ignores_unknown_size():
    check_payload_size(None)


@pytest.mark.unit
@pytest.mark.parametrize("body", [b"{not json", b"\xff\xfe", b"[1, 2, 3]", b'"text"'])
def test_decode_payload_rejects_non_objects(body):
    with pytest.raises(ValidationError):
        decode_payload(body)


@pytest.mark.unit
def test_decode_payload_rejects_deep_nesting():
    body = b'{"basics": ' + b"[" * 50000 + b"]" * 50000 + b"}"
    assert len(body) < 102400

    with pytest.raises(ValidationError):
        decode_payload(body)


@pytest.mark.unit
@pytest.mark.skipif(not hasattr(sys, "get_int_max_str_digits"), reason="no integer digit limit")
def test_decode_payload_rejects_huge_integer_literals():
    body = b'{"basics": {"name": ' + b"1" * 5000 + b"}}"

    with pytest.raises(ValidationError):
        decode_payload(body)


# Accept-Language


@pytest.mark.unit
@pytest.mark.parametrize(
    "header, expected",
    [
        (None, "en"),
        ("", "en"),
        ("es", "es"),
        ("es-MX,es;q=0.9,en;q=0.8", "es"),
        ("fr-CH, fr;q=0.9, en;q=0.8", "fr"),
        ("en;q=0.5, es;q=0.9", "es"),
        ("de, es", "de"),
        ("*", "en"),
        ("es;q=0", "en"),
        ("not a tag!, es;q=0.3", "es"),
        ("en;q=abc, es;q=0.1", "es"),
    ],
)
def test_parse_accept_language(header, expected):
    assert parse_accept_language(header) == expected


# Headers


@pytest.mark.unit
def test_pdf_response_headers():
    document = CompiledDocument(pdf_bytes=b"%PDF-1.4", duration_ms=812)

    headers = pdf_response_headers(document, "es-MX")

    assert headers["Content-Disposition"] == 'attachment; filename="resume.pdf"'
    assert headers["X-Generation-Time-Ms"] == "812"
    assert headers["Content-Language"] == "es"
    assert headers["X-Content-Type-Options"] == "nosniff"
    assert headers["X-Frame-Options"] == "DENY"
    assert "default-src 'none'" in headers["Content-Security-Policy"]


# Error mapping


@pytest.mark.unit
def test_every_error_kind_has_a_status():
    assert set(ERROR_STATUS) == set(ErrorKind)


@pytest.mark.unit
@pytest.mark.parametrize(
    "error, status",
    [
        (ValidationError("bad", [FieldError("basics.name", "must not be blank")]), 400),
        (PayloadTooLargeError(size=102401, limit=102400), 413),
        (SecurityViolation(field="basics.summary", pattern="\\input"), 400),
        (TemplateError("Template 'x' not found", template_id="x"), 422),
        (CompilationError("exit 1", exit_code=1, log_excerpt="/tmp/quill-abc/resume.tex:12"), 500),
        (CompilationTimeoutError("Compilation exceeded 6s", timeout_s=6), 504),
    ],
)
def test_error_status_codes(error, status):
    response = error_response(error, CORRELATION_ID)

    assert response.status_code == status
    assert response.body["status"] == status
    assert response.body["errorKind"] == error.kind.value
    assert response.body["correlationId"] == CORRELATION_ID
    assert response.headers["X-Content-Type-Options"] == "nosniff"


@pytest.mark.unit
def test_validation_response_lists_fields():
    error = ValidationError(
        "Invalid resume data",
        [FieldError("basics.email", "is not a valid email address"), FieldError("work[1].endDate", "cannot be before startDate")],
    )

    body = error_response(error, CORRELATION_ID).body

    assert body["errors"] == [
        {"field": "basics.email", "message": "is not a valid email address"},
        {"field": "work[1].endDate", "message": "cannot be before startDate"},
    ]


@pytest.mark.unit
def test_security_response_names_field_but_not_pattern():
    body = error_response(SecurityViolation(field="work[0].summary", pattern="\\write18"), CORRELATION_ID).body

    assert body["field"] == "work[0].summary"
    assert "work[0].summary" in body["detail"]
    assert "write18" not in json.dumps(body)


@pytest.mark.unit
def test_compilation_response_hides_internals():
    error = CompilationError(
        "Compiler exited with status 1",
        exit_code=1,
        errors=["Undefined control sequence."],
        log_excerpt="! Undefined control sequence. /tmp/quill-abc/resume.tex",
    )

    body = error_response(error, CORRELATION_ID).body
    serialized = json.dumps(body)

    assert CORRELATION_ID in body["detail"]
    assert "/tmp" not in serialized
    assert "Undefined control sequence" not in serialized
    assert "status 1" not in serialized


@pytest.mark.unit
def test_timeout_response_has_hint():
    body = error_response(CompilationTimeoutError("slow", timeout_s=6), CORRELATION_ID).body

    assert body["hint"]
    assert body["timeoutSeconds"] == 6


@pytest.mark.unit
def test_error_messages_are_localized():
    error = TemplateError("Template 'x' not found", template_id="x")

    english = error_response(error, CORRELATION_ID, locale="en").body
    spanish = error_response(error, CORRELATION_ID, locale="es").body
    fallback = error_response(error, CORRELATION_ID, locale="ja").body

    assert english["title"] != spanish["title"]
    assert fallback["title"] == english["title"]


@pytest.mark.unit
def test_internal_error_response():
    response = internal_error_response(CORRELATION_ID)

    assert response.status_code == 500
    assert response.body["errorKind"] == "internal"
    assert CORRELATION_ID in response.body["detail"]


@pytest.mark.unit
def test_message_catalogs_cover_the_same_keys():
    catalog = MessageCatalog()
    assert set(catalog.locales) >= {"en", "es"}

    for locale in catalog.locales:
        for kind in [k.value for k in ErrorKind] + ["payload_too_large", "internal"]:
            assert catalog.get(locale, kind, "title")


@pytest.mark.unit
def test_security_headers_are_immutable():
    with pytest.raises(TypeError):
        SECURITY_HEADERS["X-Frame-Options"] = "ALLOWALL"
