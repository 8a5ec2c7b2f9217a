"""
Container sandbox.

Same lifecycle as SubprocessSandbox, but each compilation runs in a throwaway
container: no network, read-only root filesystem, all capabilities dropped,
no privilege escalation, capped memory/CPU/process count, unprivileged user.
Only the per-call working directory is mounted (at /work).

The container is force-removed on every exit path, since killing the docker
client alone does not stop it.
"""

import os
import subprocess
from pathlib import Path
from typing import List, Optional, Sequence

from dotenv import load_dotenv

from quill.contexts.rendering.logger import _log_debug, _log_warning
from quill.contexts.rendering.sandbox import TEX_FILENAME, SandboxLimits
from quill.contexts.rendering.subprocess_sandbox import SubprocessSandbox

load_dotenv()

DOCKER_BINARY = os.getenv("DOCKER_BINARY", "docker")
SANDBOX_DOCKER_IMAGE = os.getenv("SANDBOX_DOCKER_IMAGE", "texlive/texlive:latest-small")
SANDBOX_DOCKER_CPUS = os.getenv("SANDBOX_DOCKER_CPUS", "1.0")

CONTAINER_WORKDIR = "/work"
CONTAINER_NAME_PREFIX = "quill-"
REMOVE_TIMEOUT_S = 10


class DockerSandbox(SubprocessSandbox):
    """
    Compile inside a disposable Docker container.

    Example:
        sandbox = DockerSandbox(image="texlive/texlive:latest-small")
        pdf_bytes = sandbox.compile(latex_source)
    """

    name = "docker"

    def __init__(
        self,
        image: str = SANDBOX_DOCKER_IMAGE,
        compiler_command: Optional[Sequence[str]] = None,
        limits: Optional[SandboxLimits] = None,
        work_root: Optional[Path] = None,
        docker_binary: str = DOCKER_BINARY,
        cpus: str = SANDBOX_DOCKER_CPUS,
        **kwargs,
    ):
        """
        Args:
            image: TeX Live image to run
            compiler_command: Compiler and flags inside the container
            limits: Resource ceilings mapped onto docker run flags
            work_root: Host parent of per-call working directories
            docker_binary: Docker CLI executable
            cpus: Value for --cpus
        """
        super().__init__(
            compiler_command=compiler_command,
            limits=limits,
            work_root=work_root,
            isolation_prefix=(),
            use_limits_launcher=False,
            **kwargs,
        )
        self.image = image
        self.docker_binary = docker_binary
        self.cpus = cpus

    @staticmethod
    def container_name(run_id: str) -> str:
        return f"{CONTAINER_NAME_PREFIX}{run_id}"

    def build_command(self, workdir: Path, run_id: str) -> List[str]:
        limits = self.limits
        command = [
            self.docker_binary,
            "run",
            "--rm",
            "--name",
            self.container_name(run_id),
            "--network",
            "none",
            "--read-only",
            "--tmpfs",
            "/tmp:rw,noexec,nosuid,size=64m",
            "--cap-drop",
            "ALL",
            "--security-opt",
            "no-new-privileges",
            "--cpus",
            self.cpus,
            "--user",
            f"{os.getuid()}:{os.getgid()}",
            "--volume",
            f"{workdir}:{CONTAINER_WORKDIR}:rw",
            "--workdir",
            CONTAINER_WORKDIR,
        ]
        if limits.memory_mb:
            command += ["--memory", f"{limits.memory_mb}m", "--memory-swap", f"{limits.memory_mb}m"]
        if limits.max_processes:
            command += ["--pids-limit", str(limits.max_processes)]
        if limits.cpu_seconds:
            command += ["--ulimit", f"cpu={limits.cpu_seconds}:{limits.cpu_seconds}"]
        if limits.max_file_mb:
            file_size = limits.max_file_mb * 1024 * 1024
            command += ["--ulimit", f"fsize={file_size}:{file_size}"]

        for key, value in self.container_env().items():
            command += ["--env", f"{key}={value}"]

        return [*command, self.image, *self.compiler_command, TEX_FILENAME]

    @staticmethod
    def container_env() -> dict:
        return {
            "HOME": CONTAINER_WORKDIR,
            "TEXMFOUTPUT": CONTAINER_WORKDIR,
            "TEXMFVAR": f"{CONTAINER_WORKDIR}/.texmf-var",
            "openout_any": "p",
            "openin_any": "p",
            "shell_escape": "f",
        }

    def build_env(self, workdir: Path) -> dict:
        # The docker client needs the server's environment (DOCKER_HOST, certs, ...);
        # the container gets only container_env()
        return dict(os.environ)

    def release(self, run_id: str) -> None:
        """Force-remove the container, whether or not it is still running."""
        name = self.container_name(run_id)
        try:
            result = subprocess.run(
                [self.docker_binary, "rm", "--force", name],
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.PIPE,
                timeout=REMOVE_TIMEOUT_S,
                check=False,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            _log_warning(f"Could not remove container {name}: {e}")
            return

        if result.returncode == 0:
            _log_debug(f"Removed container {name}")

