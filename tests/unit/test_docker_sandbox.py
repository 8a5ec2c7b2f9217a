"""Unit tests for DockerSandbox command construction (no Docker daemon needed)."""

import subprocess

import pytest

from quill.contexts.rendering.docker_sandbox import DockerSandbox
from quill.contexts.rendering.sandbox import SandboxLimits


@pytest.fixture
def sandbox(tmp_path):
    return DockerSandbox(
        image="texlive/texlive:latest-small",
        compiler_command=["pdflatex", "-no-shell-escape"],
        limits=SandboxLimits(timeout_s=6, memory_mb=512, cpu_seconds=5, max_file_mb=16, max_processes=64),
        work_root=tmp_path,
        docker_binary="docker",
        cpus="1.0",
    )


def _value_after(command, flag):
    return command[command.index(flag) + 1]


@pytest.mark.unit
def test_container_is_isolated(sandbox, tmp_path):
    command = sandbox.build_command(tmp_path / "run", "abc123")

    assert command[:3] == ["docker", "run", "--rm"]
    assert _value_after(command, "--name") == "quill-abc123"
    assert _value_after(command, "--network") == "none"
    assert "--read-only" in command
    assert _value_after(command, "--cap-drop") == "ALL"
    assert _value_after(command, "--security-opt") == "no-new-privileges"
    assert _value_after(command, "--memory") == "512m"
    assert _value_after(command, "--pids-limit") == "64"
    assert _value_after(command, "--volume") == f"{tmp_path / 'run'}:/work:rw"


@pytest.mark.unit
def test_container_runs_compiler_on_resume_tex(sandbox, tmp_path):
    command = sandbox.build_command(tmp_path / "run", "abc123")

    image_index = command.index("texlive/texlive:latest-small")
    assert command[image_index + 1:] == ["pdflatex", "-no-shell-escape", "resume.tex"]
    assert "openout_any=p" in command
    assert "shell_escape=f" in command


@pytest.mark.unit
def test_docker_sandbox_skips_limits_launcher(sandbox):
    assert sandbox.use_limits_launcher is False
    assert sandbox.isolation_prefix == []


@pytest.mark.unit
def test_release_force_removes_container(sandbox, monkeypatch):
    calls = []

    def fake_run(command, **kwargs):
        calls.append(command)
        return subprocess.CompletedProcess(command, 0, b"", b"")

    monkeypatch.setattr(subprocess, "run", fake_run)
    sandbox.release("abc123")

    assert calls == [["docker", "rm", "--force", "quill-abc123"]]


@pytest.mark.unit
def test_release_tolerates_missing_docker(sandbox, monkeypatch):
    def fake_run(command, **kwargs):
        raise FileNotFoundError("docker")

    monkeypatch.setattr(subprocess, "run", fake_run)
    sandbox.release("abc123")
