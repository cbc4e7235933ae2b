"""Diagnostics collected during a conversion."""

from __future__ import annotations

from dataclasses import dataclass

SEVERITY_WARNING = "warning"
SEVERITY_ERROR = "error"

# Warning codes
UNSUPPORTED_CONSTRUCT = "UNSUPPORTED_CONSTRUCT"
APPROXIMATED = "APPROXIMATED"
TYPE_FALLBACK = "TYPE_FALLBACK"
FALLTHROUGH = "FALLTHROUGH"
FORMAT_MISMATCH = "FORMAT_MISMATCH"


@dataclass(frozen=True)
class Diagnostic:
    """A warning or error with an optional source location and caret excerpt."""

    code: str
    message: str
    severity: str = SEVERITY_WARNING
    line: int | None = None
    column: int | None = None
    excerpt: str = ""

    def __str__(self) -> str:
        where = ""
        if self.line is not None:
            where = str(self.line) + ":" + str(self.column or 0) + ": "
        return where + self.severity + " [" + self.code + "] " + self.message

    def __repr__(self) -> str:
        return (
            "Diagnostic("
            + self.severity
            + ", "
            + self.code
            + ", "
            + repr(self.message)
            + ", "
            + str(self.line)
            + ")"
        )


class Diagnostics:
    """Ordered diagnostic sink plus the set of source features seen."""

    def __init__(self) -> None:
        self.items: list[Diagnostic] = []
        self.features: set[str] = set()

    def add(
        self,
        code: str,
        message: str,
        severity: str = SEVERITY_WARNING,
        line: int | None = None,
        column: int | None = None,
        excerpt: str = "",
    ) -> None:
        self.items.append(Diagnostic(code, message, severity, line, column, excerpt))

    def add_warning(
        self, code: str, message: str, line: int | None = None, column: int | None = None
    ) -> None:
        self.add(code, message, SEVERITY_WARNING, line, column)

    def add_error(
        self, code: str, message: str, line: int | None = None, column: int | None = None
    ) -> None:
        self.add(code, message, SEVERITY_ERROR, line, column)

    def use(self, feature: str) -> None:
        self.features.add(feature)

    def errors(self) -> list[Diagnostic]:
        return [d for d in self.items if d.severity == SEVERITY_ERROR]

    def ok(self) -> bool:
        return len(self.errors()) == 0
