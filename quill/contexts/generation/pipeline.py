"""
Generation Pipeline

Linear state machine with no internal retries:

    RECEIVED -> VALIDATED -> RENDERED -> COMPILED -> DELIVERED

    Stage      Error                     Meaning
    validate   ValidationError           business-rule violation in input
    scan       SecurityViolation         forbidden control sequence detected
    render     TemplateError             missing/broken template or binding
    compile    CompilationError          external toolchain failure
    compile    CompilationTimeoutError   time budget or capacity exhausted

Errors propagate unchanged to the caller. Every attempt, successful or not, emits
exactly one PII-free audit event (see quill.utils.event_logging).
"""

import threading
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from quill.contexts.generation.logger import log_generation_result, log_generation_start
from quill.contexts.intake.request import GenerationRequest
from quill.contexts.intake.resume_data_structure import ResumeData
from quill.contexts.intake.resume_parser import parse_resume
from quill.contexts.rendering.compiler import CompiledDocument, LatexCompiler
from quill.contexts.templating.registries import TemplateRegistry
from quill.contexts.templating.renderer import TemplateRenderer
from quill.exceptions import CompilationCancelled, ErrorKind, GenerationError
from quill.utils.event_logging import log_generation_event
from quill.utils.timestamp import elapsed_ms


class Stage(str, Enum):
    """Last stage a request reached."""

    RECEIVED = "received"
    VALIDATED = "validated"
    RENDERED = "rendered"
    COMPILED = "compiled"
    DELIVERED = "delivered"


@dataclass(frozen=True)
class GenerationResult:
    """
    Tagged outcome of one attempt, for callers that prefer a value to an exception.

    Exactly one of ``document`` and ``error`` is set.

    Attributes:
        request_id: Correlation id
        stage: Last stage reached
        document: The compiled PDF on success
        error: The pipeline error on failure
    """

    request_id: str
    stage: Stage
    document: Optional[CompiledDocument] = None
    error: Optional[GenerationError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def error_kind(self) -> Optional[ErrorKind]:
        return self.error.kind if self.error is not None else None


class GenerationPipeline:
    """
    Orchestrates validate -> resolve -> render -> compile for one request.

    Holds no per-request state, so one instance serves all threads.

    Example:
        pipeline = GenerationPipeline(TemplateRegistry(), LatexCompiler())
        document = pipeline.generate(GenerationRequest("engineering", resume_dict, "en-US"))
    """

    def __init__(
        self,
        registry: TemplateRegistry,
        compiler: LatexCompiler,
        renderer: Optional[TemplateRenderer] = None,
        events_file: Optional[Path] = None,
    ):
        """
        Args:
            registry: Immutable template registry, built once at startup
            compiler: Slot-bounded sandbox compiler
            renderer: Template renderer (default: TemplateRenderer())
            events_file: Override for GENERATION_EVENTS_FILE
        """
        self.registry = registry
        self.compiler = compiler
        self.renderer = renderer or TemplateRenderer()
        self.events_file = events_file

    def generate(
        self, request: GenerationRequest, cancel_event: Optional[threading.Event] = None
    ) -> CompiledDocument:
        """
        Run one request through every stage.

        Args:
            request: The generation request
            cancel_event: Set to abort an in-flight compilation

        Returns:
            CompiledDocument for the request

        Raises:
            ValidationError, SecurityViolation, TemplateError, CompilationError,
            CompilationTimeoutError: Unchanged from the stage that failed
        """
        start = time.perf_counter()
        stage = Stage.RECEIVED
        log_generation_start(request.request_id, request.template_id, request.locale)

        try:
            resume = (
                request.resume
                if isinstance(request.resume, ResumeData)
                else parse_resume(request.resume)
            )
            stage = Stage.VALIDATED

            resolved = self.registry.resolve(request.template_id, request.locale)
            source = self.renderer.render(resume, resolved)
            stage = Stage.RENDERED

            document = self.compiler.compile(
                source, request_id=request.request_id, cancel_event=cancel_event
            )
            stage = Stage.COMPILED
        except Exception as e:
            # One audit event per attempt, expected error or not; then propagate unchanged
            self._record(request, start, stage, error=e)
            raise

        stage = Stage.DELIVERED
        self._record(request, start, stage, document=document)
        return document

    def try_generate(
        self, request: GenerationRequest, cancel_event: Optional[threading.Event] = None
    ) -> GenerationResult:
        """
        Like generate(), but returns a GenerationResult instead of raising pipeline errors.

        Unexpected (non-pipeline) exceptions still propagate.
        """
        try:
            document = self.generate(request, cancel_event=cancel_event)
        except GenerationError as e:
            return GenerationResult(
                request_id=request.request_id, stage=e.stage or Stage.RECEIVED, error=e
            )
        return GenerationResult(
            request_id=request.request_id, stage=Stage.DELIVERED, document=document
        )

    def _record(
        self,
        request: GenerationRequest,
        start: float,
        stage: Stage,
        document: Optional[CompiledDocument] = None,
        error: Optional[BaseException] = None,
    ) -> None:
        duration_ms = elapsed_ms(start)
        if isinstance(error, GenerationError):
            error.stage = stage

        log_generation_result(request.request_id, stage.value, duration_ms, error)

        if error is None:
            outcome, error_kind = "success", None
        elif isinstance(error, CompilationCancelled):
            outcome, error_kind = "cancelled", error.kind.value
        elif isinstance(error, GenerationError):
            outcome, error_kind = "failure", error.kind.value
        else:
            outcome, error_kind = "failure", "internal"

        extra = {}
        if document is not None:
            extra = {"pdf_bytes": document.size, "page_count": document.page_count}

        log_generation_event(
            request_id=request.request_id,
            template_id=request.template_id,
            locale=request.locale,
            caller_id=request.caller_id,
            outcome=outcome,
            stage=stage.value,
            duration_ms=duration_ms,
            error_kind=error_kind,
            events_file=self.events_file,
            **extra,
        )
