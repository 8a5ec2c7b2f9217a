"""Unit tests for the rlimit launcher."""

import resource
import sys

import pytest
from typer.testing import CliRunner

from quill.contexts.rendering import limits

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="POSIX rlimits required")

runner = CliRunner()


@pytest.mark.unit
def test_build_launcher_args():
    assert limits.build_launcher_args(5, 512, 16, 256) == [
        "--cpu", "5", "--memory-mb", "512", "--file-size-mb", "16", "--open-files", "256",
    ]


@pytest.mark.unit
def test_apply_limits_sets_requested_ceilings(monkeypatch):
    applied = {}
    monkeypatch.setattr(resource, "getrlimit", lambda kind: (resource.RLIM_INFINITY, resource.RLIM_INFINITY))
    monkeypatch.setattr(resource, "setrlimit", lambda kind, value: applied.__setitem__(kind, value))

    limits.apply_limits(cpu_seconds=5, memory_mb=512, file_size_mb=0, open_files=256)

    assert applied[resource.RLIMIT_CPU] == (5, 5)
    assert applied[resource.RLIMIT_AS] == (512 * 1024 * 1024,) * 2
    assert applied[resource.RLIMIT_NOFILE] == (256, 256)
    assert applied[resource.RLIMIT_CORE] == (0, 0)
    assert resource.RLIMIT_FSIZE not in applied


@pytest.mark.unit
def test_apply_limits_never_raises_above_hard_limit(monkeypatch):
    applied = {}
    monkeypatch.setattr(resource, "getrlimit", lambda kind: (100, 100))
    monkeypatch.setattr(resource, "setrlimit", lambda kind, value: applied.__setitem__(kind, value))

    limits.apply_limits(open_files=4096)

    assert applied[resource.RLIMIT_NOFILE] == (100, 100)


@pytest.mark.unit
def test_main_execs_command_after_limits(monkeypatch):
    calls = {}
    monkeypatch.setattr(limits, "apply_limits", lambda *args: calls.setdefault("limits", args))
    monkeypatch.setattr(limits.os, "execvp", lambda file, args: calls.setdefault("exec", args))

    result = runner.invoke(limits.app, ["--cpu", "3", "--", "pdflatex", "resume.tex"])

    assert result.exit_code == 0
    assert calls["limits"] == (3, 0, 0, 0)
    assert calls["exec"] == ["pdflatex", "resume.tex"]


@pytest.mark.unit
def test_main_exits_127_when_command_missing(monkeypatch):
    monkeypatch.setattr(limits, "apply_limits", lambda *args: None)

    def fail(file, args):
        raise FileNotFoundError(file)

    monkeypatch.setattr(limits.os, "execvp", fail)
    result = runner.invoke(limits.app, ["--", "no-such-compiler"])

    assert result.exit_code == limits.EXIT_EXEC_FAILED
