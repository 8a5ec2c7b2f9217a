"""
Quill - sandboxed LaTeX résumé-to-PDF generation

Turns structured résumé data into a print-ready PDF by rendering a LaTeX template
and compiling it with an external TeX toolchain inside an isolated sandbox.

Architecture:
- Intake Context: Résumé data model, validation and request intake
- Templating Context: Injection guard, template registry and rendering
- Rendering Context: Sandboxed LaTeX compilation
- Generation Context: Pipeline orchestration and async dispatch
- Delivery Context: Boundary helpers mapping results and errors to responses
"""

__version__ = "0.1.0"
