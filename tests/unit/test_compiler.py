"""Unit tests for LatexCompiler (slot pool and output verification)."""

import threading
import time

import pytest

from quill.contexts.rendering.compiler import (
    CompiledDocument,
    LatexCompiler,
    create_sandbox,
)
from quill.contexts.rendering.docker_sandbox import DockerSandbox
from quill.contexts.rendering.subprocess_sandbox import SubprocessSandbox
from quill.exceptions import CompilationCancelled, CompilationError, CompilationTimeoutError


@pytest.mark.unit
def test_create_sandbox_backends(tmp_path):
    assert isinstance(create_sandbox("subprocess", work_root=tmp_path), SubprocessSandbox)
    assert isinstance(create_sandbox("docker", work_root=tmp_path), DockerSandbox)

    with pytest.raises(ValueError):
        create_sandbox("vm")


@pytest.mark.unit
def test_compile_returns_verified_document(fake_sandbox, pdf_bytes):
    compiler = LatexCompiler(fake_sandbox, max_concurrent=2)

    document = compiler.compile("source", request_id="req-1")

    assert isinstance(document, CompiledDocument)
    assert document.pdf_bytes == pdf_bytes
    assert document.size == len(pdf_bytes)
    assert document.page_count == 1
    assert document.request_id == "req-1"
    assert document.duration_ms >= 0
    assert fake_sandbox.sources == ["source"]


@pytest.mark.unit
def test_compile_rejects_non_pdf_output(make_sandbox):
    compiler = LatexCompiler(make_sandbox(result=b"<html>not a pdf</html>"))

    with pytest.raises(CompilationError):
        compiler.compile("source")


@pytest.mark.unit
def test_compile_propagates_sandbox_errors_and_frees_slot(make_sandbox):
    compiler = LatexCompiler(make_sandbox(error=CompilationError("exit 1", exit_code=1)), max_concurrent=1)

    for _ in range(3):
        with pytest.raises(CompilationError):
            compiler.compile("source")


@pytest.mark.unit
def test_slot_exhaustion_is_timeout(make_sandbox):
    """With every slot busy, a caller gives up after slot_wait_s."""
    sandbox = make_sandbox(delay_s=5)
    compiler = LatexCompiler(sandbox, max_concurrent=1, slot_wait_s=0.1)

    release = threading.Event()

    def hold_slot():
        with pytest.raises(CompilationCancelled):
            compiler.compile("first", cancel_event=release)

    holder = threading.Thread(target=hold_slot)
    holder.start()
    try:
        while sandbox.calls == 0:
            time.sleep(0.01)

        with pytest.raises(CompilationTimeoutError) as exc_info:
            compiler.compile("second")
        assert exc_info.value.timeout_s == 0.1
    finally:
        release.set()
        holder.join()

    assert sandbox.sources == ["first"]


@pytest.mark.unit
def test_max_concurrent_must_be_positive(fake_sandbox):
    with pytest.raises(ValueError):
        LatexCompiler(fake_sandbox, max_concurrent=0)
