"""
Restricted-subprocess sandbox.

Runs the LaTeX compiler as a local child process with:
- a fresh temporary working directory per call (removed on every exit path)
- a scrubbed environment: HOME and TEXMFOUTPUT point at the working directory,
  kpathsea in paranoid mode for reads and writes, shell escape off
- ``-no-shell-escape -interaction=nonstopmode -halt-on-error``
- POSIX rlimits applied by the ``limits`` launcher before exec
- its own session, so timeout or cancellation kills the whole process group
- an optional isolation prefix for network denial, e.g.
  SANDBOX_ISOLATION_PREFIX="unshare --net --map-root-user"

Without an isolation prefix the compiler keeps the host's network access, so this
backend alone does not provide a network-less sandbox. Set the prefix, or use
DockerSandbox (``--network none``), wherever that property is required. A warning
is logged when a sandbox is created without one.
"""

import os
import shlex
import shutil
import signal
import subprocess
import sys
import tempfile
import threading
import time
import uuid
from pathlib import Path
from typing import List, Optional, Sequence

from dotenv import load_dotenv

from quill.contexts.rendering.limits import build_launcher_args
from quill.contexts.rendering.logger import _log_debug, _log_error, _log_warning
from quill.contexts.rendering.sandbox import (
    LOG_EXCERPT_CHARS,
    LOG_FILENAME,
    OUTPUT_FILENAME,
    PDF_FILENAME,
    SANDBOX_NUM_PASSES,
    TEX_FILENAME,
    Sandbox,
    SandboxLimits,
    parse_latex_log,
)
from quill.exceptions import CompilationCancelled, CompilationError, CompilationTimeoutError

load_dotenv()

LATEX_COMPILER = os.getenv("LATEX_COMPILER", "pdflatex")
COMPILER_FLAGS = ("-no-shell-escape", "-interaction=nonstopmode", "-halt-on-error")
SANDBOX_ISOLATION_PREFIX = shlex.split(os.getenv("SANDBOX_ISOLATION_PREFIX", ""))
_work_root = os.getenv("SANDBOX_WORK_ROOT")
SANDBOX_WORK_ROOT = Path(_work_root) if _work_root else None

# Directory holding the quill package, so the launcher imports without installation
PACKAGE_ROOT = Path(__file__).resolve().parents[3]

# How often the wait loop checks the deadline and the cancel event
POLL_INTERVAL_S = 0.05
WORKDIR_PREFIX = "quill-"


class SubprocessSandbox(Sandbox):
    """
    Compile in a restricted local subprocess.

    Example:
        sandbox = SubprocessSandbox(limits=SandboxLimits(timeout_s=6))
        pdf_bytes = sandbox.compile(latex_source)
    """

    name = "subprocess"

    def __init__(
        self,
        compiler_command: Optional[Sequence[str]] = None,
        limits: Optional[SandboxLimits] = None,
        work_root: Optional[Path] = None,
        isolation_prefix: Optional[Sequence[str]] = None,
        num_passes: int = SANDBOX_NUM_PASSES,
        use_limits_launcher: bool = True,
    ):
        """
        Args:
            compiler_command: Compiler executable and flags; the .tex file name is
                              appended. Defaults to LATEX_COMPILER with safe flags.
            limits: Resource ceilings (defaults from environment)
            work_root: Parent of per-call working directories (default: system temp)
            isolation_prefix: Command prefix for extra isolation (default: SANDBOX_ISOLATION_PREFIX)
            num_passes: Compiler passes; all share one deadline
            use_limits_launcher: Wrap the command in the rlimit launcher
        """
        self.compiler_command = list(compiler_command or [LATEX_COMPILER, *COMPILER_FLAGS])
        self.limits = limits or SandboxLimits()
        self.work_root = Path(work_root) if work_root else SANDBOX_WORK_ROOT
        self.isolation_prefix = list(
            SANDBOX_ISOLATION_PREFIX if isolation_prefix is None else isolation_prefix
        )
        self.num_passes = max(1, num_passes)
        self.use_limits_launcher = use_limits_launcher

        if not self.isolation_prefix:
            _log_warning(
                "No SANDBOX_ISOLATION_PREFIX set: the compiler runs with host network access"
            )

        if self.work_root is not None:
            self.work_root.mkdir(parents=True, exist_ok=True)

    # Command and environment

    def build_command(self, workdir: Path, run_id: str) -> List[str]:
        """Full argv for one compiler pass, run with cwd=workdir."""
        command = [*self.isolation_prefix, *self.compiler_command, TEX_FILENAME]
        if not self.use_limits_launcher:
            return command

        limits = self.limits
        launcher = [sys.executable, "-m", "quill.contexts.rendering.limits"]
        launcher += build_launcher_args(
            limits.cpu_seconds, limits.memory_mb, limits.max_file_mb, limits.max_open_files
        )
        return [*launcher, "--", *command]

    def build_env(self, workdir: Path) -> dict:
        """Minimal environment; nothing from the server process leaks in except PATH."""
        env = {
            "PATH": os.environ.get("PATH", os.defpath),
            "LANG": "C.UTF-8",
            "HOME": str(workdir),
            "TMPDIR": str(workdir),
            "TEXMFOUTPUT": str(workdir),
            "TEXMFVAR": str(workdir / ".texmf-var"),
            "openout_any": "p",
            "openin_any": "p",
            "shell_escape": "f",
        }
        if self.use_limits_launcher:
            env["PYTHONPATH"] = str(PACKAGE_ROOT)
        return env

    def release(self, run_id: str) -> None:
        """Hook for implementations holding resources outside the working directory."""

    # Lifecycle

    def compile(self, source: str, cancel_event: Optional[threading.Event] = None) -> bytes:
        if cancel_event is not None and cancel_event.is_set():
            raise CompilationCancelled()

        run_id = uuid.uuid4().hex[:12]
        workdir = Path(tempfile.mkdtemp(prefix=WORKDIR_PREFIX, dir=self.work_root))
        deadline = time.monotonic() + self.limits.timeout_s
        _log_debug(f"Sandbox {run_id}: working directory {workdir}")

        try:
            (workdir / TEX_FILENAME).write_text(source, encoding="utf-8")

            returncode = 0
            for pass_number in range(1, self.num_passes + 1):
                returncode = self._run_pass(workdir, run_id, deadline, cancel_event)
                _log_debug(f"Sandbox {run_id}: pass {pass_number} exited with {returncode}")
                if returncode != 0:
                    break

            return self._collect_output(workdir, returncode)
        finally:
            self.release(run_id)
            self._remove_workdir(workdir)

    def _run_pass(
        self,
        workdir: Path,
        run_id: str,
        deadline: float,
        cancel_event: Optional[threading.Event],
    ) -> int:
        command = self.build_command(workdir, run_id)

        # Output goes to a file so a chatty compiler can never block on a full pipe
        with open(workdir / OUTPUT_FILENAME, "ab") as output:
            try:
                process = subprocess.Popen(
                    command,
                    cwd=workdir,
                    env=self.build_env(workdir),
                    stdin=subprocess.DEVNULL,
                    stdout=output,
                    stderr=subprocess.STDOUT,
                    start_new_session=True,
                )
            except OSError as e:
                raise CompilationError(f"Cannot start compiler: {e}") from e

            try:
                return self._wait(process, deadline, cancel_event)
            finally:
                self._kill_process_group(process)

    def _wait(
        self,
        process: subprocess.Popen,
        deadline: float,
        cancel_event: Optional[threading.Event],
    ) -> int:
        while True:
            if cancel_event is not None and cancel_event.is_set():
                _log_warning(f"Compilation cancelled, killing process group {process.pid}")
                raise CompilationCancelled()

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                _log_warning(f"Compilation exceeded {self.limits.timeout_s}s, killing process group {process.pid}")
                raise CompilationTimeoutError(
                    f"Compilation exceeded {self.limits.timeout_s}s time budget",
                    timeout_s=self.limits.timeout_s,
                )

            try:
                return process.wait(timeout=min(POLL_INTERVAL_S, remaining))
            except subprocess.TimeoutExpired:
                continue

    @staticmethod
    def _kill_process_group(process: subprocess.Popen) -> None:
        """Kill the compiler and anything it spawned. Safe after a normal exit."""
        try:
            os.killpg(process.pid, signal.SIGKILL)
        except ProcessLookupError:
            pass
        process.wait()

    def _collect_output(self, workdir: Path, returncode: int) -> bytes:
        log_path = workdir / LOG_FILENAME
        errors, warnings = [], []
        if log_path.exists():
            # pdflatex writes log files in latin-1 encoding
            errors, warnings = parse_latex_log(log_path.read_text(encoding="latin-1"))
        if warnings:
            _log_debug(f"{len(warnings)} LaTeX warnings")

        pdf_path = workdir / PDF_FILENAME
        if returncode != 0:
            raise CompilationError(
                f"Compiler exited with status {returncode}",
                exit_code=returncode,
                errors=errors,
                log_excerpt=self._output_tail(workdir),
            )
        if not pdf_path.exists() or pdf_path.stat().st_size == 0:
            raise CompilationError(
                "Compiler produced no PDF output",
                exit_code=returncode,
                errors=errors or ["PDF file was not generated"],
                log_excerpt=self._output_tail(workdir),
            )
        return pdf_path.read_bytes()

    @staticmethod
    def _output_tail(workdir: Path) -> str:
        output_path = workdir / OUTPUT_FILENAME
        if not output_path.exists():
            return ""
        text = output_path.read_text(encoding="utf-8", errors="replace")
        return text[-LOG_EXCERPT_CHARS:]

    @staticmethod
    def _remove_workdir(workdir: Path) -> None:
        try:
            shutil.rmtree(workdir)
        except FileNotFoundError:
            pass
        except OSError as e:
            # Called from finally: never raise over the original outcome
            _log_error(f"Failed to remove sandbox working directory {workdir}: {e}")
