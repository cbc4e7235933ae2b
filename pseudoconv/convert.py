"""Public entry point: source text in, pseudocode and diagnostics out."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, replace

from .backend.format import check_structure, format_lines
from .diagnostics import FORMAT_MISMATCH, SEVERITY_ERROR, Diagnostic
from .errors import ConversionError, RecursionLimitExceeded, caret_excerpt
from .frontend.parse import parse
from .middleend.context import ConversionContext
from .middleend.engine import Engine
from .options import ConversionOptions, normalize_language

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConversionMetadata:
    source_language: str
    conversion_time_ms: float
    lines_processed: int
    features_used: tuple[str, ...]


@dataclass(frozen=True)
class ConversionResult:
    """Outcome of one conversion. pseudocode is empty when a fatal error occurred."""

    pseudocode: str
    warnings: tuple[Diagnostic, ...]
    success: bool
    metadata: ConversionMetadata

    def errors(self) -> tuple[Diagnostic, ...]:
        return tuple(d for d in self.warnings if d.severity == SEVERITY_ERROR)


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000.0


def _with_excerpt(diag: Diagnostic, source: str) -> Diagnostic:
    if diag.line is None or diag.excerpt:
        return diag
    return replace(diag, excerpt=caret_excerpt(source, diag.line, diag.column or 1))


def convert(
    source_code: str,
    source_language: str,
    options: ConversionOptions | None = None,
) -> ConversionResult:
    """Convert Java or TypeScript source to pseudocode.

    Lexical, syntax, depth and cycle errors end the call with success=False
    and a single error diagnostic. Unsupported constructs degrade to a
    placeholder line and a diagnostic; they are errors only in strict mode.
    Raises ValueError for an unknown language.
    """
    language = normalize_language(source_language)
    if options is None:
        options = ConversionOptions()
    started = time.perf_counter()
    lines_processed = len(source_code.splitlines())
    ctx = ConversionContext.fresh(options, language)
    try:
        program = parse(source_code, language, options.max_depth)
        logger.debug(
            "parsed %d top-level statements in %.2f ms",
            len(program.body),
            _elapsed_ms(started),
        )
        try:
            lines = Engine().convert(program, ctx)
        except RecursionError:
            raise RecursionLimitExceeded(
                "nesting exceeds the interpreter stack", program.pos.line, program.pos.col
            ) from None
    except ConversionError as e:
        logger.debug("conversion failed: %s", e)
        error = Diagnostic(
            e.code,
            e.msg,
            SEVERITY_ERROR,
            e.line or None,
            e.col or None,
            caret_excerpt(source_code, e.line, e.col) if e.line else "",
        )
        return ConversionResult(
            "",
            (error,),
            False,
            ConversionMetadata(language, _elapsed_ms(started), lines_processed, ()),
        )
    pseudocode = format_lines(lines)
    for issue in check_structure(pseudocode.splitlines()):
        ctx.diagnostics.add_warning(FORMAT_MISMATCH, "output " + str(issue))
    diagnostics = tuple(_with_excerpt(d, source_code) for d in ctx.diagnostics.items)
    elapsed = _elapsed_ms(started)
    logger.debug(
        "converted %d source lines to %d pseudocode lines in %.2f ms",
        lines_processed,
        len(lines),
        elapsed,
    )
    return ConversionResult(
        pseudocode,
        diagnostics,
        ctx.diagnostics.ok(),
        ConversionMetadata(
            language, elapsed, lines_processed, tuple(sorted(ctx.diagnostics.features))
        ),
    )


def convert_java(source_code: str, options: ConversionOptions | None = None) -> ConversionResult:
    return convert(source_code, "java", options)


def convert_typescript(
    source_code: str, options: ConversionOptions | None = None
) -> ConversionResult:
    return convert(source_code, "typescript", options)
