#!/usr/bin/env python3
"""
Résumé PDF Generation CLI

Generates PDFs from JSON/YAML résumé files through the same pipeline the HTTP API uses,
lists registered templates, scans résumé files for forbidden LaTeX, and serves the API.

Commands:
    generate  - Generate a PDF from a résumé file
    templates - List registered templates and locales
    scan      - Report free-text fields containing forbidden LaTeX sequences
    events    - Show recent generation audit events
    serve     - Run the HTTP API

Examples:\n

    generate_pdf.py generate data/jane.json                          # engineering/en, jane.pdf

    generate_pdf.py generate data/jane.yaml -t engineering -l es     # Spanish labels

    generate_pdf.py generate data/jane.json --backend docker -v      # Containerized compile

    generate_pdf.py scan data/untrusted.json                         # Injection report
"""

import os
from pathlib import Path
from typing import Any, Iterator, Optional, Tuple

import typer
import uvicorn
from dotenv import load_dotenv
from typing_extensions import Annotated

from quill.contexts.generation.pipeline import GenerationPipeline
from quill.contexts.intake.request import GenerationRequest
from quill.contexts.intake.resume_parser import load_resume_file
from quill.contexts.rendering.compiler import SANDBOX_BACKEND, LatexCompiler, create_sandbox
from quill.contexts.templating.injection_guard import find_injection
from quill.contexts.templating.registries import TemplateRegistry
from quill.exceptions import CompilationError, GenerationError, ValidationError
from quill.utils.event_logging import read_generation_events
from quill.utils.logger import setup_logger
from quill.utils.pdf_processing import extract_text
from quill.utils.timestamp import now

load_dotenv()
LOGS_PATH = Path(os.getenv("LOGS_PATH", "outs/logs"))

app = typer.Typer(
    help="Generate sandboxed LaTeX résumé PDFs from structured data",
    add_completion=False,
    invoke_without_command=True,
)


@app.callback()
def main(ctx: typer.Context):
    """Show help by default when no command is provided."""
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


def _walk_strings(value: Any, path: str = "") -> Iterator[Tuple[str, str]]:
    """Yield (dotted path, text) for every string in nested dicts/lists."""
    if isinstance(value, str):
        yield path, value
    elif isinstance(value, dict):
        for key, item in value.items():
            yield from _walk_strings(item, f"{path}.{key}" if path else str(key))
    elif isinstance(value, list):
        for index, item in enumerate(value):
            yield from _walk_strings(item, f"{path}[{index}]")


@app.command("generate")
def generate_command(
    resume_file: Annotated[
        Path,
        typer.Argument(help="Résumé data file (.json, .yaml or .yml)", exists=True, dir_okay=False),
    ],
    template_id: Annotated[
        str,
        typer.Option("--template", "-t", help="Registered template id"),
    ] = "engineering",
    locale: Annotated[
        str,
        typer.Option("--locale", "-l", help="Locale tag (e.g. en, es, en-US)"),
    ] = "en",
    output: Annotated[
        Optional[Path],
        typer.Option("--output", "-o", help="PDF path (default: next to the résumé file)"),
    ] = None,
    backend: Annotated[
        str,
        typer.Option("--backend", "-b", help="Sandbox backend: subprocess or docker"),
    ] = SANDBOX_BACKEND,
    preview: Annotated[
        bool,
        typer.Option("--preview", help="Print the text of the generated PDF"),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show debug logging"),
    ] = False,
):
    """
    Generate a PDF from a résumé file.

    Examples:\n

        $ generate_pdf.py generate data/jane.json                    # Default template

        $ generate_pdf.py generate data/jane.json -l es -o out.pdf   # Spanish, custom path
    """
    setup_logger(
        context_name="generate",
        log_dir=LOGS_PATH / f"generate_{now()}",
        extra_provenance={"Resume": resume_file, "Template": template_id, "Sandbox": backend},
        console_level="DEBUG" if verbose else "INFO",
    )

    output = output or resume_file.with_suffix(".pdf")
    typer.secho(f"\nGenerating: {resume_file.name}", fg=typer.colors.BLUE, bold=True)
    typer.echo(f"Template: {template_id} ({locale})")
    typer.echo("")

    try:
        pipeline = GenerationPipeline(
            TemplateRegistry(), LatexCompiler(create_sandbox(backend))
        )
        request = GenerationRequest(
            template_id=template_id, resume=load_resume_file(resume_file), locale=locale
        )
        document = pipeline.generate(request)
    except ValueError as e:
        typer.secho(f"Error: {e}\n", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    except ValidationError as e:
        typer.secho("✗ Invalid résumé data", fg=typer.colors.RED, bold=True)
        if not e.errors:
            typer.secho(f"  - {e.message}", fg=typer.colors.RED)
        for error in e.errors[:10]:
            typer.secho(f"  - {error}", fg=typer.colors.RED)
        if len(e.errors) > 10:
            typer.echo(f"  ... and {len(e.errors) - 10} more")
        raise typer.Exit(code=1)
    except CompilationError as e:
        typer.secho(f"✗ Compilation failed: {e.message}", fg=typer.colors.RED, bold=True)
        for error in e.errors[:10]:
            typer.secho(f"  - {error}", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    except GenerationError as e:
        typer.secho(f"✗ {e.kind.value.capitalize()} error: {e.message}", fg=typer.colors.RED, bold=True)
        raise typer.Exit(code=1)

    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(document.pdf_bytes)

    typer.secho("✓ Generation succeeded", fg=typer.colors.GREEN, bold=True)
    typer.echo(f"  Pages: {document.page_count if document.page_count is not None else '?'}")
    typer.echo(f"  Size: {document.size} bytes in {document.duration_ms} ms")
    typer.echo(f"  PDF: {output}")

    if preview:
        typer.echo("")
        typer.echo(extract_text(document.pdf_bytes))
    typer.echo("")


@app.command("templates")
def templates_command():
    """List registered templates and their supported locales."""
    registry = TemplateRegistry()
    typer.secho(f"\n{len(registry)} template(s)\n", fg=typer.colors.BLUE, bold=True)
    for metadata in registry.list_templates():
        typer.secho(f"  {metadata.id}", bold=True, nl=False)
        typer.echo(f"  v{metadata.version}  [{', '.join(metadata.supported_locales)}]")
        if metadata.description:
            typer.echo(f"      {metadata.description}")
    typer.echo("")


@app.command("scan")
def scan_command(
    resume_file: Annotated[
        Path,
        typer.Argument(help="Résumé data file (.json, .yaml or .yml)", exists=True, dir_okay=False),
    ],
):
    """
    Report every string field containing a forbidden LaTeX sequence.

    Exits 1 when anything is found, so it can gate untrusted input.
    """
    try:
        data = load_resume_file(resume_file)
    except ValidationError as e:
        typer.secho(f"Error: {e.message}\n", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    findings = []
    for path, text in _walk_strings(data):
        pattern = find_injection(text)
        if pattern is not None:
            findings.append((path, pattern))

    if not findings:
        typer.secho("✓ No forbidden sequences found", fg=typer.colors.GREEN, bold=True)
        raise typer.Exit(code=0)

    typer.secho(f"✗ {len(findings)} field(s) rejected", fg=typer.colors.RED, bold=True)
    for path, pattern in findings:
        typer.secho(f"  - {path}: {pattern}", fg=typer.colors.RED)
    raise typer.Exit(code=1)


@app.command("events")
def events_command(
    count: Annotated[int, typer.Option("--count", "-n", help="Number of events to show", min=1)] = 10,
    events_file: Annotated[
        Optional[Path],
        typer.Option("--file", "-f", help="Events file (default: GENERATION_EVENTS_FILE)"),
    ] = None,
):
    """Show the most recent generation audit events."""
    events = read_generation_events(events_file, n=count)
    if not events:
        typer.echo("No generation events recorded (is GENERATION_EVENTS_FILE set?)")
        raise typer.Exit()

    for event in events:
        color = typer.colors.GREEN if event.get("outcome") == "success" else typer.colors.RED
        typer.secho(
            f"{event.get('timestamp', '?')}  {event.get('outcome', '?'):<9} "
            f"{event.get('template_id')}/{event.get('locale')}  {event.get('duration_ms')} ms  "
            f"{event.get('error_kind') or ''}  {event.get('request_id')}",
            fg=color,
        )


@app.command("serve")
def serve_command(
    host: Annotated[str, typer.Option(help="Bind address")] = "127.0.0.1",
    port: Annotated[int, typer.Option(help="Bind port")] = 8000,
):
    """Run the HTTP API with uvicorn."""
    uvicorn.run("quill.api.main:app", host=host, port=port, access_log=False)


if __name__ == "__main__":
    app()
