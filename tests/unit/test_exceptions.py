"""Unit tests for the generation error taxonomy."""

import pytest

from quill.exceptions import (
    CompilationCancelled,
    CompilationError,
    CompilationTimeoutError,
    ErrorKind,
    FieldError,
    GenerationError,
    PayloadTooLargeError,
    SecurityViolation,
    TemplateError,
    ValidationError,
)


@pytest.mark.unit
@pytest.mark.parametrize(
    "error, kind",
    [
        (ValidationError("bad"), ErrorKind.VALIDATION),
        (PayloadTooLargeError(size=200, limit=100), ErrorKind.VALIDATION),
        (SecurityViolation(field="basics.name", pattern="\\input"), ErrorKind.SECURITY),
        (TemplateError("missing"), ErrorKind.TEMPLATE),
        (CompilationError("exit 1"), ErrorKind.COMPILATION),
        (CompilationCancelled(), ErrorKind.COMPILATION),
        (CompilationTimeoutError("slow", timeout_s=6), ErrorKind.TIMEOUT),
    ],
)
def test_every_error_carries_its_kind(error, kind):
    """Each error type is tagged with exactly one kind."""
    assert isinstance(error, GenerationError)
    assert error.kind is kind
    assert error.stage is None


@pytest.mark.unit
def test_validation_error_lists_field_errors_in_message():
    """Field errors are kept and summarized in the message."""
    errors = [FieldError("basics.name", "must not be blank"), FieldError("work[1].endDate", "cannot be before startDate")]
    error = ValidationError("Invalid resume data", errors)

    assert error.errors == errors
    assert "basics.name: must not be blank" in str(error)
    assert "work[1].endDate" in str(error)


@pytest.mark.unit
def test_validation_error_truncates_long_error_lists():
    """Only the first five field errors are spelled out."""
    errors = [FieldError(f"work[{i}].name", "must not be blank") for i in range(8)]
    error = ValidationError("Invalid resume data", errors)

    assert len(error.errors) == 8
    assert "and 3 more" in error.message


@pytest.mark.unit
def test_payload_too_large_reports_size_and_limit():
    error = PayloadTooLargeError(size=102401, limit=102400)

    assert isinstance(error, ValidationError)
    assert error.size == 102401
    assert error.limit == 102400
    assert "102400" in str(error)


@pytest.mark.unit
def test_security_violation_keeps_pattern_server_side():
    error = SecurityViolation(field="work[0].summary", pattern="\\write18")

    assert error.field == "work[0].summary"
    assert error.pattern == "\\write18"
    assert "work[0].summary" in str(error)


@pytest.mark.unit
def test_template_error_includes_original_error():
    original = KeyError("months")
    error = TemplateError("Failed to render", template_id="engineering", locale="en", original_error=original)

    assert error.template_id == "engineering"
    assert error.locale == "en"
    assert "Original error" in str(error)


@pytest.mark.unit
def test_compilation_timeout_is_builtin_timeout():
    """Generic TimeoutError handlers also catch compilation timeouts."""
    with pytest.raises(TimeoutError):
        raise CompilationTimeoutError("Compilation exceeded 6s", timeout_s=6)


@pytest.mark.unit
def test_cancelled_is_a_compilation_error():
    error = CompilationCancelled()
    assert isinstance(error, CompilationError)
    assert "cancelled" in error.message
