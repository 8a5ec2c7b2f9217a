"""
Templating Context

Responsibilities:
- Guards every free-text value (injection scan, then LaTeX escaping)
- Loads packaged LaTeX templates once into an immutable registry keyed by (template_id, locale)
- Renders validated résumé data into LaTeX source

Owns: Injection guard, template registry and locale resolution, LaTeX rendering
Never: Runs the LaTeX compiler
"""

from quill.contexts.templating.injection_guard import (
    escape,
    escape_url,
    find_injection,
    guard,
    scan_for_injection,
)
from quill.contexts.templating.registries import (
    ResolvedTemplate,
    TemplateMetadata,
    TemplateRegistry,
    normalize_locale,
)
from quill.contexts.templating.renderer import TemplateRenderer

__all__ = [
    # Injection guard
    "scan_for_injection",
    "find_injection",
    "escape",
    "escape_url",
    "guard",
    # Registry
    "TemplateRegistry",
    "TemplateMetadata",
    "ResolvedTemplate",
    "normalize_locale",
    # Rendering
    "TemplateRenderer",
]
