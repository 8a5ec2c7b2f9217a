"""Shared test configuration, fixtures and fakes."""

import sys
import threading
from pathlib import Path
from typing import List, Optional

import pytest

from quill.contexts.rendering.sandbox import Sandbox
from quill.contexts.templating.registries import TemplateRegistry
from quill.exceptions import CompilationCancelled


def minimal_pdf_bytes(num_pages: int = 1) -> bytes:
    """A small but structurally valid PDF with blank pages."""
    kids = " ".join(f"{3 + i} 0 R" for i in range(num_pages))
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        f"<< /Type /Pages /Kids [{kids}] /Count {num_pages} >>".encode(),
    ]
    objects += [b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] >>"] * num_pages

    out = b"%PDF-1.4\n"
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += f"{number} 0 obj\n".encode() + body + b"\nendobj\n"

    xref_offset = len(out)
    out += f"xref\n0 {len(objects) + 1}\n0000000000 65535 f \n".encode()
    for offset in offsets:
        out += f"{offset:010d} 00000 n \n".encode()
    out += (
        f"trailer\n<< /Size {len(objects) + 1} /Root 1 0 R >>\n"
        f"startxref\n{xref_offset}\n%%EOF\n"
    ).encode()
    return out


@pytest.fixture
def pdf_bytes() -> bytes:
    return minimal_pdf_bytes()


# Fake compilers: Python scripts invoked as "<python> <script> resume.tex" in the workdir

_FAKE_COMPILERS = {
    "ok": """
from pathlib import Path
Path("resume.pdf").write_bytes({pdf!r})
Path("resume.log").write_text("This is a fake TeX log\\n")
print("fake compiler: wrote resume.pdf")
""",
    "fail": """
from pathlib import Path
Path("resume.log").write_text("! Undefined control sequence.\\nl.12 \\\\oops\\n")
print("! Undefined control sequence.")
raise SystemExit(1)
""",
    "no_output": """
print("fake compiler: produced nothing")
""",
    "slow": """
import time
time.sleep(30)
""",
    "record_env": """
import json, os
from pathlib import Path
Path({record!r}).write_text(json.dumps({{"cwd": os.getcwd(), "env": dict(os.environ)}}))
Path("resume.pdf").write_bytes({pdf!r})
""",
}


@pytest.fixture
def fake_compiler(tmp_path):
    """
    Factory returning a compiler_command for a named fake compiler.

    Usage:
        sandbox = SubprocessSandbox(compiler_command=fake_compiler("ok"), ...)
    """

    def make(kind: str, record: Optional[Path] = None) -> List[str]:
        script = tmp_path / f"fake_{kind}.py"
        script.write_text(
            _FAKE_COMPILERS[kind].format(pdf=minimal_pdf_bytes(), record=str(record))
        )
        return [sys.executable, str(script)]

    return make


class FakeSandbox(Sandbox):
    """In-memory sandbox recording what it was asked to compile."""

    name = "fake"

    def __init__(self, result: Optional[bytes] = None, error: Optional[Exception] = None, delay_s: float = 0):
        self.result = result if result is not None else minimal_pdf_bytes()
        self.error = error
        self.delay_s = delay_s
        self.sources: List[str] = []
        self.cancelled = threading.Event()

    def compile(self, source: str, cancel_event: Optional[threading.Event] = None) -> bytes:
        self.sources.append(source)
        if self.delay_s and cancel_event is not None and cancel_event.wait(self.delay_s):
            self.cancelled.set()
            raise CompilationCancelled()
        if self.error is not None:
            raise self.error
        return self.result

    @property
    def calls(self) -> int:
        return len(self.sources)


@pytest.fixture
def fake_sandbox() -> FakeSandbox:
    return FakeSandbox()


@pytest.fixture
def make_sandbox():
    """Factory for FakeSandbox with a custom result, error or delay."""
    return FakeSandbox


@pytest.fixture(scope="session")
def registry() -> TemplateRegistry:
    """The packaged templates, loaded once."""
    return TemplateRegistry()


@pytest.fixture
def minimal_resume() -> dict:
    return {"basics": {"name": "Jane Doe", "email": "jane@example.com"}, "work": [{"company": "A&B Corp"}]}


@pytest.fixture
def full_resume() -> dict:
    return {
        "basics": {
            "name": "Jane Doe",
            "label": "Software Engineer",
            "email": "jane.doe@example.com",
            "phone": "+1 (555) 010-2000",
            "url": "https://janedoe.dev",
            "summary": "Backend engineer, 10% better every quarter.",
            "location": {"city": "Austin", "region": "TX", "countryCode": "US"},
            "profiles": [{"network": "GitHub", "username": "janedoe", "url": "https://github.com/janedoe"}],
        },
        "work": [
            {
                "name": "Initech",
                "position": "Senior Engineer",
                "startDate": "2021-03",
                "highlights": ["Cut p99 latency by 40%", "Led migration to Python 3.12"],
            },
            {
                "name": "Globex",
                "position": "Engineer",
                "startDate": "2017-06",
                "endDate": "2021-02",
                "url": "https://globex.example.com",
            },
        ],
        "education": [
            {
                "institution": "State University",
                "area": "Computer Science",
                "studyType": "BSc",
                "startDate": "2013",
                "endDate": "2017",
                "score": "3.8",
            }
        ],
        "skills": [{"name": "Backend", "keywords": ["Python", "Go", "PostgreSQL"]}],
        "languages": [{"language": "English", "fluency": "Native"}, {"language": "Spanish", "fluency": "Fluent"}],
        "projects": [{"name": "quill", "description": "PDF generator", "keywords": ["LaTeX"]}],
    }


@pytest.fixture
def events_file(tmp_path) -> Path:
    return tmp_path / "events.jsonl"
