"""Tokenizer tests."""

import pytest

from pseudoconv.errors import LexicalError
from pseudoconv.frontend.tokens import (
    TK_CHAR,
    TK_EOF,
    TK_IDENT,
    TK_INT,
    TK_OP,
    TK_REAL,
    TK_STRING,
    tokenize,
)


def kinds(source: str, language: str = "java") -> list[tuple[str, str]]:
    return [(t.type, t.value) for t in tokenize(source, language)]


def test_declaration_tokens():
    assert kinds("int x = 42;") == [
        ("int", "int"),
        (TK_IDENT, "x"),
        (TK_OP, "="),
        (TK_INT, "42"),
        (TK_OP, ";"),
        (TK_EOF, ""),
    ]


def test_keywords_depend_on_language():
    assert tokenize("let", "java")[0].type == TK_IDENT
    assert tokenize("let", "typescript")[0].type == "let"
    assert tokenize("int", "typescript")[0].type == TK_IDENT


def test_real_and_suffixed_numbers():
    toks = tokenize("3.14 2.5f 10L 7d")
    assert [(t.type, t.value) for t in toks[:-1]] == [
        (TK_REAL, "3.14"),
        (TK_REAL, "2.5"),
        (TK_INT, "10"),
        (TK_REAL, "7"),
    ]
    assert toks[1].text == "2.5f"


def test_member_access_on_integer_is_not_real():
    toks = tokenize("a[1].b")
    assert (toks[2].type, toks[2].value) == (TK_INT, "1")
    assert toks[4].value == "."


def test_string_escapes_are_decoded():
    tok = tokenize('"a\\tb\\"c"')[0]
    assert tok.type == TK_STRING
    assert tok.value == 'a\tb"c'
    assert tok.text == '"a\\tb\\"c"'


def test_char_literal():
    tok = tokenize("'x'")[0]
    assert tok.type == TK_CHAR
    assert tok.value == "x"


def test_template_literal_is_a_string():
    tok = tokenize("`hi`", "typescript")[0]
    assert tok.type == TK_STRING
    assert tok.value == "hi"


def test_greedy_operators():
    values = [t.value for t in tokenize("a === b && c !== d || e >= f", "typescript")]
    assert values == ["a", "===", "b", "&&", "c", "!==", "d", "||", "e", ">=", "f", ""]


def test_nested_generic_closers_stay_separate():
    values = [t.value for t in tokenize("Map<String, List<Integer>>")]
    assert values[-3:] == [">", ">", ""]


def test_comments_are_skipped_and_lines_tracked():
    toks = tokenize("// one\n/* two\n three */ x")
    assert toks[0].value == "x"
    assert toks[0].line == 3
    assert toks[0].col == 11


def test_offsets_cover_source_text():
    source = 'String s = "hi";'
    for tok in tokenize(source)[:-1]:
        assert source[tok.offset : tok.end] == tok.text


@pytest.mark.parametrize(
    "source,message",
    [
        ("int x = 5 # 3;", "unexpected character: '#'"),
        ('"open', "unterminated string literal"),
        ('"line\nbreak"', "unterminated string literal"),
        ("/* never closed", "unterminated block comment"),
        ("12abc", "invalid numeric literal"),
    ],
)
def test_lexical_errors(source: str, message: str):
    with pytest.raises(LexicalError) as exc:
        tokenize(source)
    assert message in exc.value.msg


def test_lexical_error_position():
    with pytest.raises(LexicalError) as exc:
        tokenize("x = 1;\n  y = #;")
    assert (exc.value.line, exc.value.col) == (2, 7)


def test_unknown_language():
    with pytest.raises(ValueError):
        tokenize("x", "cobol")
