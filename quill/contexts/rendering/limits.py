"""
Resource-limit launcher.

Applies POSIX rlimits to itself and then replaces itself with the given command,
so the limits hold for the compiler and everything it spawns:

    python -m quill.contexts.rendering.limits --cpu 5 --memory-mb 512 -- pdflatex resume.tex

Running as a separate process keeps ``preexec_fn`` (unsafe with threads) out of
the server.
"""

import os
import resource
from typing import List

import typer
from typing_extensions import Annotated

# Exit status when the command cannot be executed (same as a shell)
EXIT_EXEC_FAILED = 127

MEGABYTE = 1024 * 1024

app = typer.Typer(add_completion=False)


def _set_limit(kind: int, value: int) -> None:
    """Lower soft and hard limit to value, never above the current hard limit."""
    _, hard = resource.getrlimit(kind)
    if hard != resource.RLIM_INFINITY:
        value = min(value, hard)
    resource.setrlimit(kind, (value, value))


def apply_limits(
    cpu_seconds: int = 0,
    memory_mb: int = 0,
    file_size_mb: int = 0,
    open_files: int = 0,
) -> None:
    """Apply the given ceilings to the current process. Zero means unchanged."""
    if cpu_seconds:
        _set_limit(resource.RLIMIT_CPU, cpu_seconds)
    if memory_mb:
        _set_limit(resource.RLIMIT_AS, memory_mb * MEGABYTE)
    if file_size_mb:
        _set_limit(resource.RLIMIT_FSIZE, file_size_mb * MEGABYTE)
    if open_files:
        _set_limit(resource.RLIMIT_NOFILE, open_files)
    _set_limit(resource.RLIMIT_CORE, 0)


def build_launcher_args(
    cpu_seconds: int, memory_mb: int, file_size_mb: int, open_files: int
) -> List[str]:
    """Arguments for ``python -m quill.contexts.rendering.limits`` before the ``--``."""
    return [
        "--cpu",
        str(cpu_seconds),
        "--memory-mb",
        str(memory_mb),
        "--file-size-mb",
        str(file_size_mb),
        "--open-files",
        str(open_files),
    ]


@app.command()
def main(
    command: Annotated[List[str], typer.Argument(help="Command to execute (after --)")],
    cpu: Annotated[int, typer.Option("--cpu", help="CPU seconds")] = 0,
    memory_mb: Annotated[int, typer.Option("--memory-mb", help="Address space in MB")] = 0,
    file_size_mb: Annotated[int, typer.Option("--file-size-mb", help="Largest writable file in MB")] = 0,
    open_files: Annotated[int, typer.Option("--open-files", help="Open file descriptors")] = 0,
):
    """Apply resource limits, then exec COMMAND."""
    apply_limits(cpu, memory_mb, file_size_mb, open_files)
    try:
        os.execvp(command[0], command)
    except OSError as e:
        typer.echo(f"limits: cannot execute {command[0]}: {e}", err=True)
        raise typer.Exit(code=EXIT_EXEC_FAILED)


if __name__ == "__main__":
    app()
