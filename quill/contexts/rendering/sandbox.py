"""
Sandbox capability.

A sandbox turns LaTeX source into PDF bytes by running an external compiler in an
isolated, resource-capped environment. The pipeline only sees ``Sandbox.compile``;
the isolation technology (restricted subprocess, container, ...) is a swappable
implementation.

Contract for every implementation:
- A fresh working area per call, released on every exit path
  (success, error, timeout, cancellation).
- A hard wall-clock deadline across all compiler passes:
  exceeded -> CompilationTimeoutError.
- Non-zero exit or missing output -> CompilationError.
- ``cancel_event`` set while running -> compiler terminated, CompilationCancelled.
"""

import os
import re
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Tuple

from dotenv import load_dotenv

load_dotenv()

SANDBOX_TIMEOUT_SECONDS = float(os.getenv("SANDBOX_TIMEOUT_SECONDS", "6"))
SANDBOX_MEMORY_MB = int(os.getenv("SANDBOX_MEMORY_MB", "512"))
SANDBOX_CPU_SECONDS = int(os.getenv("SANDBOX_CPU_SECONDS", "5"))
SANDBOX_MAX_FILE_MB = int(os.getenv("SANDBOX_MAX_FILE_MB", "16"))
SANDBOX_MAX_OPEN_FILES = int(os.getenv("SANDBOX_MAX_OPEN_FILES", "256"))
SANDBOX_MAX_PROCESSES = int(os.getenv("SANDBOX_MAX_PROCESSES", "64"))
SANDBOX_NUM_PASSES = int(os.getenv("SANDBOX_NUM_PASSES", "1"))

TEX_FILENAME = "resume.tex"
PDF_FILENAME = "resume.pdf"
LOG_FILENAME = "resume.log"
OUTPUT_FILENAME = "compiler-output.txt"

# Characters of compiler output kept for server-side diagnostics
LOG_EXCERPT_CHARS = 4000


@dataclass(frozen=True)
class SandboxLimits:
    """
    Resource ceilings for one compilation.

    A value of 0 disables that ceiling.

    Attributes:
        timeout_s: Wall-clock budget across all passes
        memory_mb: Address space (subprocess) or container memory
        cpu_seconds: CPU time per compiler process
        max_file_mb: Largest file the compiler may write
        max_open_files: Open file descriptors per process
        max_processes: Process count inside a container
    """

    timeout_s: float = SANDBOX_TIMEOUT_SECONDS
    memory_mb: int = SANDBOX_MEMORY_MB
    cpu_seconds: int = SANDBOX_CPU_SECONDS
    max_file_mb: int = SANDBOX_MAX_FILE_MB
    max_open_files: int = SANDBOX_MAX_OPEN_FILES
    max_processes: int = SANDBOX_MAX_PROCESSES

    def __post_init__(self):
        if self.timeout_s <= 0:
            raise ValueError(f"timeout_s must be positive, got {self.timeout_s}")


class Sandbox(ABC):
    """Capability: compile LaTeX source into PDF bytes in isolation."""

    name = "sandbox"

    @abstractmethod
    def compile(self, source: str, cancel_event: Optional[threading.Event] = None) -> bytes:
        """
        Compile LaTeX source.

        Args:
            source: Complete LaTeX document
            cancel_event: When set, the running compiler is killed and the call
                          raises CompilationCancelled

        Returns:
            PDF bytes

        Raises:
            CompilationError: Non-zero exit or no output
            CompilationTimeoutError: Deadline exceeded
            CompilationCancelled: cancel_event was set
        """


def parse_latex_log(log_content: str) -> Tuple[List[str], List[str]]:
    """
    Parse LaTeX log file for errors and warnings.

    Args:
        log_content: Content of the .log file

    Returns:
        Tuple of (errors, warnings)
    """
    errors = []
    warnings = []

    # LaTeX error pattern: "! Error message"
    error_pattern = re.compile(r"^! (.+)$", re.MULTILINE)
    for match in error_pattern.finditer(log_content):
        errors.append(match.group(1).strip())

    # Additional error patterns that don't start with "!"
    additional_error_patterns = [
        r"Undefined control sequence",
        r"File ended while scanning use of",
        r"Emergency stop",
        r"I can't write on file",
        r"Not writing to .* \(openout_any = p\)",
    ]
    for pattern in additional_error_patterns:
        match = re.search(rf"({pattern}.*?)$", log_content, re.MULTILINE)
        if match and match.group(1) not in errors:
            errors.append(match.group(1))

    # Common warning patterns
    warning_patterns = [
        r"LaTeX Warning: (.+)",
        r"Package \w+ Warning: (.+)",
        r"Overfull \\hbox \((.+)\)",
        r"Underfull \\hbox \((.+)\)",
    ]
    for pattern in warning_patterns:
        for match in re.finditer(pattern, log_content, re.MULTILINE):
            warnings.append(match.group(1).strip())

    return errors, warnings
