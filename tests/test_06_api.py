"""Public API tests: options, results, diagnostics and negation."""

import pytest

from pseudoconv import (
    ConversionOptions,
    Diagnostic,
    convert,
    convert_java,
    convert_typescript,
)
from pseudoconv.diagnostics import (
    APPROXIMATED,
    FALLTHROUGH,
    TYPE_FALLBACK,
    UNSUPPORTED_CONSTRUCT,
)
from pseudoconv.frontend.parse import parse
from pseudoconv.middleend import ConversionContext
from pseudoconv.middleend.exprs import ExprConverter
from pseudoconv.options import normalize_language


# ── Options ──────────────────────────────────────────────────


@pytest.mark.parametrize(
    "kwargs",
    [
        {"indent_size": 0},
        {"indent_size": 9},
        {"indent_size": True},
        {"max_depth": 0},
        {"custom_mappings": {"Widget": 1}},
    ],
)
def test_invalid_options(kwargs: dict):
    with pytest.raises(ValueError):
        ConversionOptions(**kwargs)


def test_language_aliases():
    assert normalize_language("TS") == "typescript"
    assert normalize_language(" Java ") == "java"
    with pytest.raises(ValueError):
        normalize_language("python")


def test_unknown_language_raises():
    with pytest.raises(ValueError):
        convert("x = 1;", "cobol")


def test_indent_size():
    result = convert("if (true) { x = 1; }", "java", ConversionOptions(indent_size=4))
    assert result.pseudocode == "IF TRUE THEN\n    x ← 1\nENDIF\n"


def test_comments_can_be_dropped():
    source = "import java.util.Scanner;\nclass A {\n    static void f() {\n    }\n}\n"
    result = convert(source, "java", ConversionOptions(include_comments=False))
    assert result.pseudocode == "PROCEDURE f()\nENDPROCEDURE\n"


def test_custom_call_mapping():
    options = ConversionOptions(custom_mappings={"Utils.show": "OUTPUT"})
    result = convert('Utils.show("hi");', "java", options)
    assert result.pseudocode == 'OUTPUT "hi"\n'


def test_custom_type_mapping():
    options = ConversionOptions(custom_mappings={"Widget": "INTEGER"})
    result = convert("Widget w;", "java", options)
    assert result.pseudocode == "DECLARE w : INTEGER\n"
    assert result.warnings == ()


def test_unknown_type_falls_back_to_string():
    result = convert("Widget w;", "java")
    assert result.success
    assert result.pseudocode == "DECLARE w : STRING\n"
    assert [d.code for d in result.warnings] == [TYPE_FALLBACK]


def test_integer_division_option():
    options = ConversionOptions(integer_division=True)
    result = convert("let h = 7 / 2;", "typescript", options)
    assert result.pseudocode == "DECLARE h : INTEGER\nh ← 7 DIV 2\n"


def test_text_name_guess():
    source = "System.out.println(name + x);"
    assert convert(source, "java").pseudocode == "OUTPUT name + x\n"
    options = ConversionOptions(assume_text_names=True)
    assert convert(source, "java", options).pseudocode == "OUTPUT name, x\n"


# ── Results ──────────────────────────────────────────────────


def test_metadata():
    result = convert_java("int x = 5;\nSystem.out.println(x);\n")
    meta = result.metadata
    assert meta.source_language == "java"
    assert meta.lines_processed == 2
    assert meta.conversion_time_ms >= 0
    assert "output" in meta.features_used
    assert list(meta.features_used) == sorted(meta.features_used)


def test_typescript_alias():
    result = convert_typescript("let n: number = 1;")
    assert result.metadata.source_language == "typescript"
    assert result.pseudocode == "DECLARE n : REAL\nn ← 1\n"


def test_repeated_conversions_are_independent():
    source = "while (true) { break; }"
    first = convert(source, "java")
    second = convert(source, "java")
    assert first.pseudocode == second.pseudocode
    assert "ExitLoop1" in second.pseudocode


def test_syntax_error_result():
    result = convert("int x = ;", "java")
    assert not result.success
    assert result.pseudocode == ""
    (error,) = result.errors()
    assert error.code == "SYNTAX_ERROR"
    assert (error.line, error.column) == (1, 9)
    assert error.excerpt == "int x = ;\n        ^"


def test_lexical_error_result():
    result = convert("int x = 5 # 3;", "java")
    assert not result.success
    assert result.errors()[0].code == "LEXICAL_ERROR"


def test_unsupported_construct_is_a_warning():
    result = convert("int a = 1;\nint b = a > 0 ? a : 0;\n", "java")
    assert result.success
    (warning,) = result.warnings
    assert warning.code == UNSUPPORTED_CONSTRUCT
    assert warning.severity == "warning"
    assert warning.line == 2
    assert warning.excerpt.startswith("int b = a > 0 ? a : 0;\n")


def test_strict_mode_makes_unsupported_an_error():
    options = ConversionOptions(strict_mode=True)
    result = convert("int a = 1;\nint b = a > 0 ? a : 0;\n", "java", options)
    assert not result.success
    assert [d.code for d in result.errors()] == [UNSUPPORTED_CONSTRUCT]
    assert "// UNSUPPORTED: conditional expression (?:)" in result.pseudocode


def test_strict_mode_rejects_approximations():
    options = ConversionOptions(strict_mode=True)
    result = convert("try { x = 1; } finally { x = 2; }", "java", options)
    assert not result.success
    assert result.pseudocode == "// UNSUPPORTED: try statement\n"


def test_try_finally_is_approximated():
    result = convert("try { x = 1; } finally { x = 2; }", "java")
    assert result.success
    assert result.pseudocode == "// TRY\nx ← 1\n// FINALLY\nx ← 2\n"
    assert [d.code for d in result.warnings] == [APPROXIMATED]


def test_fallthrough_copies_following_body():
    source = (
        "switch (n) {\n"
        "    case 1:\n"
        "        a = 1;\n"
        "    case 2:\n"
        "        a = 2;\n"
        "        break;\n"
        "}\n"
    )
    result = convert(source, "java")
    assert result.pseudocode == (
        "CASE OF n\n"
        "   1 :\n"
        "      a ← 1\n"
        "      a ← 2\n"
        "   2 : a ← 2\n"
        "ENDCASE\n"
    )
    assert [d.code for d in result.warnings] == [FALLTHROUGH]


def test_braced_case_body_does_not_fall_through():
    source = (
        "switch (x) {\n"
        "    case 1: { System.out.println(\"a\"); break; }\n"
        "    case 2: System.out.println(\"b\"); break;\n"
        "}\n"
    )
    result = convert(source, "java")
    assert result.pseudocode == 'CASE OF x\n   1 : OUTPUT "a"\n   2 : OUTPUT "b"\nENDCASE\n'
    assert result.warnings == ()


def test_break_outside_loop_is_unsupported():
    result = convert("break;", "java")
    assert result.pseudocode == "// UNSUPPORTED: break outside a loop\n"


def test_for_in_over_keys_is_unsupported():
    source = "let total = 0;\nfor (const k in scores) {\n    console.log(k);\n}\n"
    result = convert(source, "typescript")
    assert result.success
    assert result.pseudocode == (
        "DECLARE total : REAL\ntotal ← 0\n// UNSUPPORTED: for...in loop over keys\n"
    )
    (warning,) = result.warnings
    assert warning.code == UNSUPPORTED_CONSTRUCT
    assert (warning.line, warning.column) == (2, 1)


def test_for_in_and_for_of_are_told_apart():
    keys, values = parse("for (const k in o) {}\nfor (const v of o) {}", "typescript").body
    assert keys.over_keys
    assert not values.over_keys


def test_diagnostic_text():
    assert str(Diagnostic("X", "msg", "warning", 2, 5)) == "2:5: warning [X] msg"
    assert str(Diagnostic("X", "msg", "error")) == "error [X] msg"


# ── Negation ─────────────────────────────────────────────────


def _negate(text: str) -> str:
    program = parse("f(" + text + ");", "java")
    call = program.body[-1].expr
    ctx = ConversionContext.fresh(ConversionOptions(), "java")
    return ExprConverter().negate(call.args[0], ctx)


@pytest.mark.parametrize(
    "source,expected",
    [
        ("a < b", "a >= b"),
        ("a == b", "a <> b"),
        ("a >= b", "a < b"),
        ("a + b > c", "a + b <= c"),
        ("a < b && c > d", "a >= b OR c <= d"),
        ("a < b || c", "a >= b AND NOT c"),
        ("(a || b) && c", "NOT a AND NOT b OR NOT c"),
        ("(a && b) || c", "(NOT a OR NOT b) AND NOT c"),
        ("!done", "done"),
        ("true", "FALSE"),
        ("x", "NOT x"),
        ("s.isEmpty()", "LENGTH(s) <> 0"),
    ],
)
def test_negation(source: str, expected: str):
    assert _negate(source) == expected


@pytest.mark.parametrize("links", [1, 3, 6])
def test_else_if_chain_has_one_endif(links: int):
    source = "if (x == 0) { y = 0; }"
    for k in range(1, links + 1):
        source += " else if (x == " + str(k) + ") { y = " + str(k) + "; }"
    source += " else { y = -1; }"
    result = convert(source, "java")
    assert result.pseudocode.count("ENDIF") == 1
    assert result.pseudocode.count("ELSE IF") == links
