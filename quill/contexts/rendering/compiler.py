"""
LaTeX Compilation Module

Wraps a Sandbox with a fixed pool of compilation slots and verifies its output.

At most SANDBOX_MAX_CONCURRENT compiler processes run at once. A caller waits at
most SANDBOX_SLOT_WAIT_SECONDS for a slot; running out of capacity is reported as
CompilationTimeoutError (resource exhaustion), like an exceeded deadline.
"""

import os
import threading
import time
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from quill.contexts.rendering.docker_sandbox import DockerSandbox
from quill.contexts.rendering.logger import (
    log_compilation_failure,
    log_compilation_start,
    log_compilation_success,
)
from quill.contexts.rendering.sandbox import Sandbox
from quill.contexts.rendering.subprocess_sandbox import SubprocessSandbox
from quill.exceptions import CompilationError, CompilationTimeoutError
from quill.utils.pdf_processing import is_pdf, page_count
from quill.utils.timestamp import elapsed_ms

load_dotenv()

SANDBOX_BACKEND = os.getenv("SANDBOX_BACKEND", "subprocess")
SANDBOX_MAX_CONCURRENT = int(os.getenv("SANDBOX_MAX_CONCURRENT", "4"))
SANDBOX_SLOT_WAIT_SECONDS = float(os.getenv("SANDBOX_SLOT_WAIT_SECONDS", "2"))

SANDBOX_BACKENDS = {
    "subprocess": SubprocessSandbox,
    "docker": DockerSandbox,
}


def create_sandbox(backend: str = SANDBOX_BACKEND, **kwargs) -> Sandbox:
    """
    Instantiate the configured sandbox implementation.

    Args:
        backend: "subprocess" or "docker"
        **kwargs: Passed to the sandbox constructor

    Raises:
        ValueError: If the backend is unknown
    """
    try:
        sandbox_class = SANDBOX_BACKENDS[backend]
    except KeyError:
        raise ValueError(
            f"Unknown sandbox backend '{backend}'. Choose from: {', '.join(SANDBOX_BACKENDS)}"
        ) from None
    return sandbox_class(**kwargs)


@dataclass(frozen=True)
class CompiledDocument:
    """
    PDF produced for one request. Delivered once, never stored.

    Attributes:
        pdf_bytes: The PDF file
        duration_ms: Compile time including slot wait
        page_count: Pages in the PDF (None if unreadable)
        request_id: Correlation id of the request
    """

    pdf_bytes: bytes
    duration_ms: int
    page_count: Optional[int] = None
    request_id: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.pdf_bytes)


class LatexCompiler:
    """
    Bounded-concurrency front end to a Sandbox.

    Example:
        compiler = LatexCompiler(create_sandbox("subprocess"), max_concurrent=4)
        document = compiler.compile(latex_source, request_id="3f1c...")
    """

    def __init__(
        self,
        sandbox: Optional[Sandbox] = None,
        max_concurrent: int = SANDBOX_MAX_CONCURRENT,
        slot_wait_s: float = SANDBOX_SLOT_WAIT_SECONDS,
    ):
        """
        Args:
            sandbox: Isolation backend (default: create_sandbox())
            max_concurrent: Number of compilation slots
            slot_wait_s: Longest wait for a free slot
        """
        if max_concurrent < 1:
            raise ValueError(f"max_concurrent must be at least 1, got {max_concurrent}")

        self.sandbox = sandbox if sandbox is not None else create_sandbox()
        self.max_concurrent = max_concurrent
        self.slot_wait_s = slot_wait_s
        self._slots = threading.BoundedSemaphore(max_concurrent)

    def compile(
        self,
        source: str,
        request_id: Optional[str] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> CompiledDocument:
        """
        Compile LaTeX source into a verified PDF.

        Args:
            source: Complete LaTeX document
            request_id: Correlation id for logs
            cancel_event: Set to abort the compilation

        Returns:
            CompiledDocument

        Raises:
            CompilationError: Toolchain failure or output that is not a PDF
            CompilationTimeoutError: Deadline exceeded or no slot within slot_wait_s
            CompilationCancelled: cancel_event was set
        """
        start = time.perf_counter()

        if not self._slots.acquire(timeout=self.slot_wait_s):
            error = CompilationTimeoutError(
                f"No compilation slot available within {self.slot_wait_s}s "
                f"({self.max_concurrent} in use)",
                timeout_s=self.slot_wait_s,
            )
            log_compilation_failure(request_id, error, elapsed_ms(start))
            raise error

        try:
            log_compilation_start(request_id, self.sandbox.name, len(source))
            pdf_bytes = self.sandbox.compile(source, cancel_event=cancel_event)
            if not is_pdf(pdf_bytes):
                raise CompilationError("Compiler output is not a PDF document")
        except (CompilationError, CompilationTimeoutError) as e:
            log_compilation_failure(request_id, e, elapsed_ms(start))
            raise
        finally:
            self._slots.release()

        pages = page_count(pdf_bytes)
        duration_ms = elapsed_ms(start)
        log_compilation_success(request_id, len(pdf_bytes), pages, duration_ms)

        return CompiledDocument(
            pdf_bytes=pdf_bytes,
            duration_ms=duration_ms,
            page_count=pages,
            request_id=request_id,
        )
