"""
Generation error taxonomy.

Every failure of the generation pipeline is one of five kinds. The kind is carried
on the exception as an ``ErrorKind`` tag so the delivery boundary can map errors
with a single exhaustive table instead of chains of isinstance checks.

    ErrorKind.VALIDATION   ValidationError          client data broke a business rule
    ErrorKind.SECURITY     SecurityViolation        forbidden control sequence in user text
    ErrorKind.TEMPLATE     TemplateError            missing/broken template or binding
    ErrorKind.COMPILATION  CompilationError         external toolchain failure
    ErrorKind.TIMEOUT      CompilationTimeoutError  time budget or sandbox capacity exhausted

Exceptions are raised where the failure happens and propagate unchanged to the
boundary; nothing in between wraps or re-types them.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional


class ErrorKind(str, Enum):
    """Discriminant shared by all generation errors."""

    VALIDATION = "validation"
    SECURITY = "security"
    TEMPLATE = "template"
    COMPILATION = "compilation"
    TIMEOUT = "timeout"


@dataclass(frozen=True)
class FieldError:
    """
    A single field-scoped validation problem.

    Attributes:
        field: Dotted path of the offending field (e.g. 'work[1].endDate')
        message: Human-readable description of the problem
    """

    field: str
    message: str

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


class GenerationError(Exception):
    """
    Base class for all pipeline errors. Subclasses set ``kind``.

    Attributes:
        message: Server-side description (may contain details never shown to callers)
        stage: Last pipeline stage reached, filled in by the pipeline
    """

    kind: ErrorKind

    def __init__(self, message: str):
        self.message = message
        self.stage = None
        super().__init__(message)


class ValidationError(GenerationError):
    """
    Raised when input data violates a business rule.

    Attributes:
        errors: Field-scoped problems, safe to show to the caller
    """

    kind = ErrorKind.VALIDATION

    def __init__(self, message: str, errors: Optional[List[FieldError]] = None):
        self.errors = list(errors or [])
        if self.errors:
            details = "; ".join(str(e) for e in self.errors[:5])
            if len(self.errors) > 5:
                details += f"; ... and {len(self.errors) - 5} more"
            message = f"{message} ({details})"
        super().__init__(message)


class PayloadTooLargeError(ValidationError):
    """Raised before any parsing when the raw request body exceeds the size cap."""

    def __init__(self, size: int, limit: int):
        self.size = size
        self.limit = limit
        super().__init__(f"Request payload too large: {size} bytes. Maximum allowed: {limit} bytes")


class SecurityViolation(GenerationError):
    """
    Raised when a free-text field contains a forbidden document-control sequence.

    Attributes:
        field: Dotted path of the offending field
        pattern: The deny-list entry that matched. Server-side diagnostics only,
                 never returned to the caller.
    """

    kind = ErrorKind.SECURITY

    def __init__(self, field: Optional[str], pattern: str):
        self.field = field
        self.pattern = pattern
        location = f" in field '{field}'" if field else ""
        super().__init__(f"Forbidden control sequence {pattern!r} detected{location}")


class TemplateError(GenerationError):
    """
    Raised when a template cannot be resolved or rendered.

    Attributes:
        template_id: Template that was requested
        locale: Locale that was requested (if relevant)
        original_error: Underlying Jinja2/IO error, if any
    """

    kind = ErrorKind.TEMPLATE

    def __init__(
        self,
        message: str,
        template_id: Optional[str] = None,
        locale: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        self.template_id = template_id
        self.locale = locale
        self.original_error = original_error

        parts = [message]
        if original_error:
            parts.append(f"Original error: {original_error}")
        super().__init__("\n".join(parts))


class CompilationError(GenerationError):
    """
    Raised when the external compiler fails or produces no usable PDF.

    Attributes:
        exit_code: Compiler exit status (None if it never ran to completion)
        errors: Parsed TeX errors, server-side diagnostics only
        log_excerpt: Tail of the compiler output, server-side diagnostics only
    """

    kind = ErrorKind.COMPILATION

    def __init__(
        self,
        message: str,
        exit_code: Optional[int] = None,
        errors: Optional[List[str]] = None,
        log_excerpt: str = "",
    ):
        self.exit_code = exit_code
        self.errors = list(errors or [])
        self.log_excerpt = log_excerpt
        super().__init__(message)


class CompilationCancelled(CompilationError):
    """Raised inside the worker when the caller cancelled an in-flight compilation."""

    def __init__(self, message: str = "Compilation cancelled by caller"):
        super().__init__(message)


class CompilationTimeoutError(GenerationError, TimeoutError):
    """
    Raised when compilation exceeds its time budget or no sandbox slot frees up in time.

    Also a builtin ``TimeoutError`` so generic timeout handlers catch it.

    Attributes:
        timeout_s: The budget that was exceeded
    """

    kind = ErrorKind.TIMEOUT

    def __init__(self, message: str, timeout_s: Optional[float] = None):
        self.timeout_s = timeout_s
        super().__init__(message)
