"""
LaTeX Pattern Constants

Centralized LaTeX pattern strings used by the injection guard and escaper.
Organized into frozen dataclasses by category for immutability and clear grouping.
"""

from dataclasses import dataclass
from typing import Dict, Tuple


@dataclass(frozen=True)
class FileInclusionCommands:
    """
    Control words that read files from disk into the document.
    """
    COMMANDS: Tuple[str, ...] = (
        "input",
        "@@input",
        "include",
        "includeonly",
        "InputIfFileExists",
        "openin",
        "read",
        "readline",
        "verbatiminput",
        "lstinputlisting",
        "includegraphics",
        "includepdf",
    )


@dataclass(frozen=True)
class ShellAndOutputCommands:
    """
    Control words that write files, run shell commands or reach the engine directly.
    """
    COMMANDS: Tuple[str, ...] = (
        "write",
        "write18",
        "immediate",
        "openout",
        "closeout",
        "ShellEscape",
        "directlua",
        "latelua",
        "luaexec",
        "special",
        "pdfprimitive",
    )


@dataclass(frozen=True)
class MacroRedefinitionCommands:
    """
    Control words that define or rewire macros, catcodes or document setup.
    """
    COMMANDS: Tuple[str, ...] = (
        "def",
        "edef",
        "gdef",
        "xdef",
        "let",
        "futurelet",
        "newcommand",
        "renewcommand",
        "providecommand",
        "DeclareRobustCommand",
        "newenvironment",
        "renewenvironment",
        "catcode",
        "uccode",
        "lccode",
        "csname",
        "expandafter",
        "makeatletter",
        "usepackage",
        "RequirePackage",
        "documentclass",
        "endinput",
        "end",
        "begin",
    )


@dataclass(frozen=True)
class RawCharacterPatterns:
    """
    Character sequences that are dangerous regardless of any control word.

    TeX reads ``^^5c`` as a backslash, which would smuggle a control word past a
    scan that only looks for literal backslashes.
    """
    CHARCODE_ESCAPE: str = "^^"


@dataclass(frozen=True)
class EscapePatterns:
    """
    Replacement text for every character with special meaning in LaTeX.

    Applied in a single left-to-right pass, so replacements are never re-escaped.
    """
    REPLACEMENTS: Tuple[Tuple[str, str], ...] = (
        ("\\", r"\textbackslash{}"),
        ("&", r"\&"),
        ("%", r"\%"),
        ("$", r"\$"),
        ("#", r"\#"),
        ("_", r"\_"),
        ("{", r"\{"),
        ("}", r"\}"),
        ("~", r"\textasciitilde{}"),
        ("^", r"\textasciicircum{}"),
        ("<", r"\textless{}"),
        (">", r"\textgreater{}"),
    )

    # Only '%' and '#' need escaping inside \href targets
    URL_REPLACEMENTS: Tuple[Tuple[str, str], ...] = (
        ("%", r"\%"),
        ("#", r"\#"),
    )

    @classmethod
    def as_dict(cls) -> Dict[str, str]:
        """Return the text replacement table as a dict."""
        return dict(cls.REPLACEMENTS)


def forbidden_commands() -> Tuple[str, ...]:
    """All forbidden control words (without the leading backslash)."""
    return (
        FileInclusionCommands.COMMANDS
        + ShellAndOutputCommands.COMMANDS
        + MacroRedefinitionCommands.COMMANDS
    )
