"""Error taxonomy for the conversion pipeline."""

from __future__ import annotations


class ConversionError(Exception):
    """Base for all errors raised while converting source to pseudocode."""

    code: str = "CONVERSION_ERROR"

    def __init__(self, msg: str, line: int = 0, col: int = 0):
        self.msg: str = msg
        self.line: int = line
        self.col: int = col
        if line > 0:
            super().__init__(msg + " at line " + str(line) + " col " + str(col))
        else:
            super().__init__(msg)


class LexicalError(ConversionError):
    """Unrecognized character or unterminated literal."""

    code = "LEXICAL_ERROR"


class ParseError(ConversionError):
    """Unexpected or missing token."""

    code = "SYNTAX_ERROR"


class UnsupportedConstructError(ConversionError):
    """AST construct with no lowering in the target dialect."""

    code = "UNSUPPORTED_CONSTRUCT"


class RecursionLimitExceeded(ConversionError):
    """Nesting deeper than the configured maximum depth."""

    code = "RECURSION_LIMIT"


class CycleDetected(ConversionError):
    """A node was revisited along a single conversion path."""

    code = "CYCLE_DETECTED"


def caret_excerpt(source: str, line: int, col: int) -> str:
    """Render the offending source line with a caret under the column."""
    lines = source.split("\n")
    if line < 1 or line > len(lines):
        return ""
    text = lines[line - 1].replace("\t", " ").rstrip()
    pointer = " " * max(col - 1, 0) + "^"
    return text + "\n" + pointer
