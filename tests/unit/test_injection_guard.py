"""Unit tests for the injection guard and LaTeX escaper."""

import pytest

from quill.contexts.templating.injection_guard import (
    escape,
    escape_url,
    find_injection,
    guard,
    scan_for_injection,
)
from quill.exceptions import SecurityViolation


@pytest.mark.unit
@pytest.mark.parametrize(
    "text, pattern",
    [
        (r"\input{/etc/passwd}", r"\input"),
        (r"see \include{secrets}", r"\include"),
        (r"\immediate\write18{rm -rf /}", r"\immediate"),
        (r"\write18{id}", r"\write18"),
        (r"\openout5=leak.txt", r"\openout"),
        (r"\def\x{1}", r"\def"),
        (r"\catcode`\@=11", r"\catcode"),
        (r"\directlua{os.exit()}", r"\directlua"),
        (r"\end{document}", r"\end"),
        ("^^5cinput{/etc/passwd}", "^^"),
    ],
)
def test_find_injection_detects_forbidden_sequences(text, pattern):
    assert find_injection(text) == pattern


@pytest.mark.unit
@pytest.mark.parametrize(
    "text",
    [
        "Plain text",
        "A&B Corp",
        "Improved throughput by 50%",
        r"\textbf{bold} is fine, it gets escaped",
        "x^2 + y^2",
        "",
        None,
    ],
)
def test_find_injection_ignores_harmless_text(text):
    assert find_injection(text) is None


@pytest.mark.unit
def test_control_word_must_end_at_non_letter():
    """'\\endgroup' and '\\definition' are not '\\end' / '\\def'."""
    assert find_injection(r"\endgroup") is None
    assert find_injection(r"\definition") is None
    assert find_injection(r"\def ") == r"\def"


@pytest.mark.unit
def test_scan_for_injection_raises_with_field():
    with pytest.raises(SecurityViolation) as exc_info:
        scan_for_injection(r"Hi \input{/etc/passwd}", field="work[0].summary")

    assert exc_info.value.field == "work[0].summary"
    assert exc_info.value.pattern == r"\input"


@pytest.mark.unit
@pytest.mark.parametrize(
    "text, expected",
    [
        ("A&B Corp", r"A\&B Corp"),
        ("50%", r"50\%"),
        ("$100", r"\$100"),
        ("#1", r"\#1"),
        ("snake_case", r"snake\_case"),
        ("{braces}", r"\{braces\}"),
        ("~home", r"\textasciitilde{}home"),
        ("x^2", r"x\textasciicircum{}2"),
        ("a<b>c", r"a\textless{}b\textgreater{}c"),
        ("back\\slash", r"back\textbackslash{}slash"),
    ],
)
def test_escape_special_characters(text, expected):
    assert escape(text) == expected


@pytest.mark.unit
def test_escape_is_single_pass():
    """The braces produced by escaping a backslash are not escaped again."""
    assert escape("\\{") == r"\textbackslash{}\{"


@pytest.mark.unit
def test_escape_collapses_line_breaks_and_drops_control_chars():
    assert escape("line one\nline two\r\n\tend") == "line one line two end"
    assert escape("bell\x07char") == "bellchar"


@pytest.mark.unit
def test_escape_empty():
    assert escape(None) == ""
    assert escape("") == ""


@pytest.mark.unit
def test_escape_url_only_touches_percent_and_hash():
    assert escape_url("https://example.com/a%20b#top") == r"https://example.com/a\%20b\#top"
    assert escape_url("https://example.com/path_with_underscore") == "https://example.com/path_with_underscore"


@pytest.mark.unit
def test_guard_scans_then_escapes():
    assert guard("R&D", field="basics.label") == r"R\&D"
    with pytest.raises(SecurityViolation):
        guard(r"\write18{curl evil}", field="basics.label")
