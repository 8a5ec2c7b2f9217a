"""
Rendering Context

Responsibilities:
- Compiles LaTeX source into PDF bytes inside an isolated sandbox
- Enforces wall-clock deadlines, resource ceilings and a bounded number of concurrent compilations
- Tears down the working area and compiler processes on every exit path
- Verifies the compiler output is a PDF

Owns: Sandbox implementations, rlimit launcher, compilation slots
Never: Sees résumé data or templates, only finished LaTeX source
"""

from quill.contexts.rendering.compiler import (
    CompiledDocument,
    LatexCompiler,
    create_sandbox,
)
from quill.contexts.rendering.docker_sandbox import DockerSandbox
from quill.contexts.rendering.sandbox import Sandbox, SandboxLimits
from quill.contexts.rendering.subprocess_sandbox import SubprocessSandbox

__all__ = [
    "Sandbox",
    "SandboxLimits",
    "SubprocessSandbox",
    "DockerSandbox",
    "LatexCompiler",
    "CompiledDocument",
    "create_sandbox",
]
