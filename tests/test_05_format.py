"""Formatter and structure check tests."""

import importlib
from pathlib import Path

import pytest

from conftest import discover_tests
from pseudoconv import convert
from pseudoconv.backend import FormatIssue, check_structure, format_lines
from pseudoconv.diagnostics import FORMAT_MISMATCH

CONVERT_DIR = Path(__file__).parent / "03_convert"


def test_whitespace_is_normalised():
    lines = ["", "a", "", "", "b  ", "\tc", "", ""]
    assert format_lines(lines) == "a\n\nb\n   c\n"


def test_embedded_newlines_are_split():
    assert format_lines(["a\n\n\nb"]) == "a\n\nb\n"


def test_empty_output():
    assert format_lines([]) == ""
    assert format_lines(["", "   "]) == ""


@pytest.mark.parametrize(
    "lines",
    [
        ["IF x THEN", "   y ← 1", "ENDIF"],
        ["", "a  ", "", "", "\tb", ""],
        ["// CLASS Main", "", "", "PROCEDURE p()", "ENDPROCEDURE", ""],
    ],
)
def test_format_is_idempotent(lines: list[str]):
    once = format_lines(lines)
    assert format_lines(once.splitlines()) == once


def test_balanced_blocks():
    lines = [
        "FUNCTION f(n : INTEGER) RETURNS INTEGER",
        "   IF n > 0 THEN",
        "      RETURN n",
        "   ELSE IF n < 0 THEN",
        "      RETURN -n",
        "   ELSE",
        "      RETURN 0",
        "   ENDIF",
        "ENDFUNCTION",
        "REPEAT",
        "   // comments are ignored: IF",
        "UNTIL TRUE",
        "CASE OF x",
        "   1 : OUTPUT 1",
        "ENDCASE",
        "FOR EACH v IN xs",
        "NEXT v",
    ]
    assert check_structure(lines) == []


def test_mismatched_closer():
    issues = check_structure(["IF x THEN", "ENDWHILE"])
    assert issues == [FormatIssue(2, "ENDWHILE closes IF opened at line 1")]


def test_unclosed_opener():
    issues = check_structure(["WHILE x DO", "   x ← x - 1"])
    assert issues == [FormatIssue(1, "WHILE is never closed")]


def test_closer_without_opener():
    assert check_structure(["ENDIF"]) == [FormatIssue(1, "ENDIF without IF")]


def test_closer_indentation_must_match():
    issues = check_structure(["IF x THEN", "   y ← 1", "   ENDIF"])
    assert issues == [FormatIssue(3, "ENDIF indented 3, IF at line 1 indented 0")]


def test_else_outside_if():
    issues = check_structure(["WHILE x DO", "ELSE", "ENDWHILE"])
    assert issues == [FormatIssue(2, "ELSE outside IF")]


def test_else_indentation():
    issues = check_structure(["IF x THEN", "   ELSE", "ENDIF"])
    assert issues == [FormatIssue(2, "ELSE indented 3, IF at line 1 indented 0")]


def test_keyword_named_variables_are_assignments():
    lines = ["NEXT ← 1", "UNTIL ← NEXT", "IF ← 2", "ENDIF ← 3"]
    assert check_structure(lines) == []


def test_keyword_named_variable_in_conversion():
    result = convert("int NEXT = 1;\nNEXT = NEXT + 1;", "java")
    assert result.pseudocode == "DECLARE NEXT : INTEGER\nNEXT ← 1\nNEXT ← NEXT + 1\n"
    assert result.warnings == ()


def test_issue_text():
    assert str(FormatIssue(3, "ENDIF without IF")) == "line 3: ENDIF without IF"


def test_structure_problem_becomes_warning(monkeypatch):
    pipeline = importlib.import_module("pseudoconv.convert")
    monkeypatch.setattr(pipeline, "format_lines", lambda lines: "IF x THEN\n")
    result = convert("int x = 1;", "java")
    assert result.success
    mismatches = [d for d in result.warnings if d.code == FORMAT_MISMATCH]
    assert [d.message for d in mismatches] == ["output line 1: IF is never closed"]


@pytest.mark.parametrize(
    "source,language",
    [pytest.param(src, lang, id=tid) for tid, src, _, lang in discover_tests(CONVERT_DIR)],
)
def test_converted_output_is_well_formed(source: str, language: str):
    result = convert(source, language)
    assert not [d for d in result.warnings if d.code == FORMAT_MISMATCH]
    assert format_lines(result.pseudocode.splitlines()) == result.pseudocode
