"""
Generation Context

Responsibilities:
- Orchestrates validate -> resolve -> render -> compile for one request
- Emits exactly one audit event per attempt
- Dispatches blocking generations onto a dedicated worker pool and propagates cancellation

Owns: Pipeline state machine, GenerationResult, async dispatch
Never: Translates errors into responses (delivery does that)
"""

from quill.contexts.generation.pipeline import (
    GenerationPipeline,
    GenerationResult,
    Stage,
)
from quill.contexts.generation.service import GenerationService

__all__ = [
    "GenerationPipeline",
    "GenerationResult",
    "GenerationService",
    "Stage",
]
