"""
Intake Context

Responsibilities:
- Defines the résumé data model (immutable, self-validating value objects)
- Parses JSON Resume payloads into validated ResumeData, reporting every field error
- Builds the per-call GenerationRequest

Owns: Résumé data model, business-rule validation, request intake
Never: Escapes text for LaTeX or touches templates
"""

from quill.contexts.intake.request import GenerationRequest
from quill.contexts.intake.resume_data_structure import (
    Basics,
    Education,
    PartialDate,
    ResumeData,
    WorkExperience,
)
from quill.contexts.intake.resume_parser import load_resume_file, parse_resume

__all__ = [
    "GenerationRequest",
    "parse_resume",
    "load_resume_file",
    # Data structure classes
    "ResumeData",
    "Basics",
    "WorkExperience",
    "Education",
    "PartialDate",
]
