"""
Injection guard and LaTeX escaper.

Jinja2 performs no autoescaping for LaTeX output, and pdflatex can read files and
(with shell escape) run commands. Every free-text value therefore passes through
``guard`` before it is bound to a template slot:

    1. scan_for_injection: reject text containing a forbidden control word
       (file inclusion, shell/file output, macro redefinition) or a TeX ``^^``
       character-code escape. Raises SecurityViolation.
    2. escape: rewrite every LaTeX special character into its literal form.

Escaping alone already neutralizes control words (the backslash becomes
``\\textbackslash{}``). The scan exists so injection attempts are rejected and
logged instead of silently printed.
"""

import re
from typing import Optional

from quill.contexts.templating.latex_patterns import (
    EscapePatterns,
    RawCharacterPatterns,
    forbidden_commands,
)
from quill.contexts.templating.logger import log_injection_rejected
from quill.exceptions import SecurityViolation

# Longest names first so 'write18' wins over 'write'. A control word ends at the
# first non-letter, hence the negative lookahead.
_FORBIDDEN_REGEX = re.compile(
    r"\\("
    + "|".join(re.escape(name) for name in sorted(forbidden_commands(), key=len, reverse=True))
    + r")(?![A-Za-z])"
)

_ESCAPE_TABLE = EscapePatterns.as_dict()
_ESCAPE_REGEX = re.compile("|".join(re.escape(ch) for ch in _ESCAPE_TABLE))
_URL_ESCAPE_TABLE = dict(EscapePatterns.URL_REPLACEMENTS)
_URL_ESCAPE_REGEX = re.compile("|".join(re.escape(ch) for ch in _URL_ESCAPE_TABLE))

# Line breaks inside a macro argument end the paragraph and break compilation
_WHITESPACE_REGEX = re.compile(r"[\t\r\n\v\f]+")
_CONTROL_CHAR_REGEX = re.compile(r"[\x00-\x08\x0e-\x1f\x7f]")


def find_injection(text: Optional[str]) -> Optional[str]:
    """
    Return the first forbidden sequence in text, or None if the text is clean.

    The returned pattern includes the leading backslash (e.g. "\\input").
    """
    if not text:
        return None

    match = _FORBIDDEN_REGEX.search(text)
    if match:
        return "\\" + match.group(1)

    if RawCharacterPatterns.CHARCODE_ESCAPE in text:
        return RawCharacterPatterns.CHARCODE_ESCAPE

    return None


def scan_for_injection(text: Optional[str], field: Optional[str] = None) -> None:
    """
    Reject text containing a forbidden LaTeX control sequence.

    Args:
        text: Free-text value supplied by the caller
        field: Dotted path of the value, recorded on the violation

    Raises:
        SecurityViolation: If a forbidden sequence is present. The matched pattern
                           is logged here and kept on the exception for server-side
                           diagnostics only.
    """
    pattern = find_injection(text)
    if pattern is None:
        return

    log_injection_rejected(field, pattern)
    raise SecurityViolation(field=field, pattern=pattern)


def escape(text: Optional[str]) -> str:
    """
    Escape LaTeX special characters in a single pass.

    ``\\ & % $ # _ { } ~ ^ < >`` become their literal forms. Line breaks and tabs
    collapse to a single space and other control characters are dropped.
    "A&B Corp" becomes "A\\&B Corp".
    """
    if not text:
        return ""

    text = _CONTROL_CHAR_REGEX.sub("", text)
    text = _WHITESPACE_REGEX.sub(" ", text)
    return _ESCAPE_REGEX.sub(lambda m: _ESCAPE_TABLE[m.group(0)], text)


def escape_url(url: Optional[str]) -> str:
    """
    Escape a validated http(s) URL for use as an ``\\href`` target.

    URL validation already rules out backslashes, braces and whitespace, so only
    '%' and '#' need escaping.
    """
    if not url:
        return ""
    return _URL_ESCAPE_REGEX.sub(lambda m: _URL_ESCAPE_TABLE[m.group(0)], url)


def guard(text: Optional[str], field: Optional[str] = None) -> str:
    """Scan then escape. The only way free text should reach a template."""
    scan_for_injection(text, field)
    return escape(text)


def guard_url(url: Optional[str], field: Optional[str] = None) -> str:
    """Scan then escape for ``\\href`` targets."""
    scan_for_injection(url, field)
    return escape_url(url)
