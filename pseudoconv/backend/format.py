"""Output normalisation and a block-structure check for generated pseudocode.

Indentation is produced once, structurally, during generation. This pass
never re-indents: it only normalises whitespace and reports lines whose
block keywords or indentation do not pair up.
"""

from __future__ import annotations

from dataclasses import dataclass

TAB_WIDTH = 3

# Block openers, matched on the leading text of a stripped line.
OPENERS: tuple[tuple[str, str], ...] = (
    ("IF ", "IF"),
    ("WHILE ", "WHILE"),
    ("FOR ", "FOR"),
    ("CASE OF ", "CASE"),
    ("PROCEDURE ", "PROCEDURE"),
    ("FUNCTION ", "FUNCTION"),
)

# Closer keyword -> the opener it ends.
CLOSERS: dict[str, str] = {
    "ENDIF": "IF",
    "ENDWHILE": "WHILE",
    "ENDFOR": "FOR",
    "NEXT": "FOR",
    "UNTIL": "REPEAT",
    "ENDCASE": "CASE",
    "ENDPROCEDURE": "PROCEDURE",
    "ENDFUNCTION": "FUNCTION",
}


@dataclass(frozen=True)
class FormatIssue:
    """A structural problem found in the output; line is 1-indexed."""

    line: int
    message: str

    def __str__(self) -> str:
        return "line " + str(self.line) + ": " + self.message


def format_lines(lines: list[str]) -> str:
    """Join generated lines into the final text.

    Tabs are expanded, trailing whitespace is stripped, runs of blank lines
    collapse to one, leading and trailing blank lines are dropped, and the
    text ends with exactly one newline. Idempotent.
    """
    out: list[str] = []
    for chunk in lines:
        for raw in chunk.split("\n"):
            line = raw.expandtabs(TAB_WIDTH).rstrip()
            if line == "" and (not out or out[-1] == ""):
                continue
            out.append(line)
    while out and out[-1] == "":
        out.pop()
    if not out:
        return ""
    return "\n".join(out) + "\n"


def _indent_of(line: str) -> int:
    return len(line) - len(line.lstrip(" "))


def _opener(text: str) -> str | None:
    if text == "REPEAT":
        return "REPEAT"
    for prefix, keyword in OPENERS:
        if text.startswith(prefix):
            return keyword
    return None


def _is_assignment(text: str) -> bool:
    """`NAME ← value`, where NAME may spell a block keyword."""
    parts = text.split(" ", 2)
    return len(parts) > 1 and parts[1] == "←"


def _closer(text: str) -> str | None:
    word = text.split(" ", 1)[0]
    if word in CLOSERS:
        return word
    return None


def check_structure(lines: list[str]) -> list[FormatIssue]:
    """Pair block openers with closers using a single stack.

    Comments and blank lines are ignored. ELSE and ELSE IF must sit inside an
    IF at the IF's own indentation.
    """
    issues: list[FormatIssue] = []
    stack: list[tuple[str, int, int]] = []
    for lineno, line in enumerate(lines, start=1):
        text = line.strip()
        if text == "" or text.startswith("//") or _is_assignment(text):
            continue
        indent = _indent_of(line)
        if text == "ELSE" or text.startswith("ELSE IF "):
            if not stack or stack[-1][0] != "IF":
                issues.append(FormatIssue(lineno, text.split(" THEN")[0] + " outside IF"))
            elif stack[-1][1] != indent:
                issues.append(
                    FormatIssue(
                        lineno,
                        "ELSE indented "
                        + str(indent)
                        + ", IF at line "
                        + str(stack[-1][2])
                        + " indented "
                        + str(stack[-1][1]),
                    )
                )
            continue
        closer = _closer(text)
        if closer is not None:
            wanted = CLOSERS[closer]
            if not stack:
                issues.append(FormatIssue(lineno, closer + " without " + wanted))
                continue
            keyword, opened_indent, opened_line = stack.pop()
            if keyword != wanted:
                issues.append(
                    FormatIssue(
                        lineno,
                        closer + " closes " + keyword + " opened at line " + str(opened_line),
                    )
                )
            elif opened_indent != indent:
                issues.append(
                    FormatIssue(
                        lineno,
                        closer
                        + " indented "
                        + str(indent)
                        + ", "
                        + keyword
                        + " at line "
                        + str(opened_line)
                        + " indented "
                        + str(opened_indent),
                    )
                )
            continue
        opener = _opener(text)
        if opener is not None:
            stack.append((opener, indent, lineno))
    for keyword, _, opened_line in reversed(stack):
        issues.append(FormatIssue(opened_line, keyword + " is never closed"))
    return issues
