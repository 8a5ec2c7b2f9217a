"""Unit tests for GenerationRequest intake."""

import pytest

from quill.contexts.intake.request import GenerationRequest
from quill.exceptions import ValidationError


@pytest.mark.unit
def test_from_payload_nested_layout(minimal_resume):
    request = GenerationRequest.from_payload(
        {"templateId": "engineering", "resume": minimal_resume}, locale="es", caller_id="user-42"
    )

    assert request.template_id == "engineering"
    assert request.resume == minimal_resume
    assert request.locale == "es"
    assert request.caller_id == "user-42"
    assert len(request.request_id) == 32


@pytest.mark.unit
def test_from_payload_flat_layout(minimal_resume):
    """basics/work/... may sit next to templateId."""
    request = GenerationRequest.from_payload({"templateId": "engineering", **minimal_resume})

    assert request.resume == minimal_resume
    assert request.locale == "en"


@pytest.mark.unit
def test_body_locale_wins_over_header_locale(minimal_resume):
    request = GenerationRequest.from_payload(
        {"templateId": "engineering", "locale": "es-MX", "resume": minimal_resume}, locale="en"
    )
    assert request.locale == "es-MX"


@pytest.mark.unit
def test_from_payload_keeps_given_request_id(minimal_resume):
    request = GenerationRequest.from_payload(
        {"templateId": "engineering", "resume": minimal_resume}, request_id="abc123"
    )
    assert request.request_id == "abc123"


@pytest.mark.unit
@pytest.mark.parametrize(
    "payload, field",
    [
        ({"resume": {"basics": {"name": "Jane"}}}, "templateId"),
        ({"templateId": "  ", "resume": {}}, "templateId"),
        ({"templateId": "engineering", "resume": ["not", "an", "object"]}, "resume"),
        ({"templateId": "engineering", "locale": 7, "resume": {}}, "locale"),
    ],
)
def test_from_payload_rejects_invalid_requests(payload, field):
    with pytest.raises(ValidationError) as exc_info:
        GenerationRequest.from_payload(payload)
    assert exc_info.value.errors[0].field == field


@pytest.mark.unit
def test_request_ids_are_unique(minimal_resume):
    first = GenerationRequest("engineering", minimal_resume)
    second = GenerationRequest("engineering", minimal_resume)
    assert first.request_id != second.request_id
