"""Unit tests for shared utilities (audit events, PDF helpers, timing)."""

import json
import time

import pytest

from quill.utils.event_logging import hash_caller_id, log_generation_event, read_generation_events
from quill.utils.pdf_processing import extract_text, is_pdf, page_count
from quill.utils.timestamp import elapsed_ms


def _emit(events_file, **overrides):
    fields = dict(
        request_id="req-1",
        template_id="engineering",
        locale="en",
        caller_id="user-42",
        outcome="success",
        stage="delivered",
        duration_ms=12,
        events_file=events_file,
    )
    fields.update(overrides)
    return log_generation_event(**fields)


@pytest.mark.unit
def test_hash_caller_id_is_stable_and_opaque():
    assert hash_caller_id("user-42") == hash_caller_id("user-42")
    assert hash_caller_id("user-42") != hash_caller_id("user-43")
    assert "user-42" not in hash_caller_id("user-42")
    assert len(hash_caller_id("user-42")) == 16
    assert hash_caller_id(None) is None


@pytest.mark.unit
def test_log_generation_event_appends_json_lines(events_file):
    _emit(events_file, pdf_bytes=1234)
    _emit(events_file, request_id="req-2", outcome="failure", stage="rendered", error_kind="compilation")

    lines = events_file.read_text().splitlines()
    assert len(lines) == 2
    first = json.loads(lines[0])
    assert first["event_type"] == "resume_generation"
    assert first["pdf_bytes"] == 1234
    assert first["caller"] == hash_caller_id("user-42")
    assert json.loads(lines[1])["error_kind"] == "compilation"


@pytest.mark.unit
def test_read_generation_events_returns_latest(events_file):
    for i in range(5):
        _emit(events_file, request_id=f"req-{i}")
    with open(events_file, "a") as f:
        f.write("not json\n")

    events = read_generation_events(events_file, n=2)
    assert [e["request_id"] for e in events] == ["req-3", "req-4"]


@pytest.mark.unit
def test_read_generation_events_missing_file(tmp_path):
    assert read_generation_events(tmp_path / "none.jsonl") == []


@pytest.mark.unit
def test_pdf_helpers(pdf_bytes, tmp_path):
    assert is_pdf(pdf_bytes)
    assert not is_pdf(b"")
    assert not is_pdf(b"<html>")

    assert page_count(pdf_bytes) == 1
    path = tmp_path / "doc.pdf"
    path.write_bytes(pdf_bytes)
    assert page_count(path) == 1

    assert extract_text(pdf_bytes).strip() == ""


@pytest.mark.unit
def test_page_count_of_garbage_is_none():
    assert page_count(b"%PDF-1.4 truncated") is None


@pytest.mark.unit
def test_elapsed_ms():
    start = time.perf_counter()
    time.sleep(0.01)
    assert elapsed_ms(start) >= 10
