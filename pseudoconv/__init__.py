"""pseudoconv: Java and TypeScript to IGCSE pseudocode."""

from __future__ import annotations

from .convert import (
    ConversionMetadata,
    ConversionResult,
    convert,
    convert_java,
    convert_typescript,
)
from .diagnostics import Diagnostic
from .errors import (
    ConversionError,
    CycleDetected,
    LexicalError,
    ParseError,
    RecursionLimitExceeded,
    UnsupportedConstructError,
)
from .options import ConversionOptions

__version__ = "0.1.0"

__all__ = [
    "ConversionError",
    "ConversionMetadata",
    "ConversionOptions",
    "ConversionResult",
    "CycleDetected",
    "Diagnostic",
    "LexicalError",
    "ParseError",
    "RecursionLimitExceeded",
    "UnsupportedConstructError",
    "convert",
    "convert_java",
    "convert_typescript",
]
