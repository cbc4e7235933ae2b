"""Tokenizer for Java and TypeScript sources: lexes into a flat token list."""

from __future__ import annotations

from ..errors import LexicalError


# Token type constants
TK_INT = "INT"
TK_REAL = "REAL"
TK_STRING = "STRING"
TK_CHAR = "CHAR"
TK_IDENT = "IDENT"
TK_OP = "OP"
TK_EOF = "EOF"

JAVA_KEYWORDS: set[str] = {
    "abstract",
    "boolean",
    "break",
    "byte",
    "case",
    "catch",
    "char",
    "class",
    "continue",
    "default",
    "do",
    "double",
    "else",
    "extends",
    "false",
    "final",
    "finally",
    "float",
    "for",
    "if",
    "implements",
    "import",
    "instanceof",
    "int",
    "interface",
    "long",
    "new",
    "null",
    "package",
    "private",
    "protected",
    "public",
    "return",
    "short",
    "static",
    "switch",
    "this",
    "throw",
    "throws",
    "true",
    "try",
    "void",
    "while",
}

TS_KEYWORDS: set[str] = {
    "break",
    "case",
    "catch",
    "class",
    "const",
    "continue",
    "default",
    "do",
    "else",
    "export",
    "extends",
    "false",
    "finally",
    "for",
    "function",
    "if",
    "implements",
    "import",
    "interface",
    "let",
    "new",
    "null",
    "private",
    "protected",
    "public",
    "readonly",
    "return",
    "static",
    "switch",
    "this",
    "throw",
    "true",
    "try",
    "undefined",
    "var",
    "void",
    "while",
}

LANGUAGES: dict[str, set[str]] = {
    "java": JAVA_KEYWORDS,
    "typescript": TS_KEYWORDS,
}

# Multi-character operators, sorted by length descending for greedy matching
MULTI_OPS: list[str] = [
    "===",
    "!==",
    "==",
    "!=",
    "<=",
    ">=",
    "&&",
    "||",
    "++",
    "--",
    "+=",
    "-=",
    "*=",
    "/=",
    "%=",
    "=>",
]

SINGLE_OPS: set[str] = {
    "+",
    "-",
    "*",
    "/",
    "%",
    "&",
    "|",
    "!",
    "<",
    ">",
    "=",
    "(",
    ")",
    "[",
    "]",
    "{",
    "}",
    ",",
    ";",
    ":",
    ".",
    "?",
    "@",
}

ESCAPE_MAP: dict[str, str] = {
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "\\": "\\",
    '"': '"',
    "'": "'",
    "0": "\0",
    "`": "`",
}

NUMBER_SUFFIXES: set[str] = {"L", "l", "F", "f", "D", "d"}


class Token:
    """A token with type, value, source text, and position.

    `value` is the decoded payload (unescaped string contents, bare number
    digits); `text` is the exact source slice so `offset + len(text)` is the
    end of the token.
    """

    __slots__ = ("type", "value", "text", "line", "col", "offset")

    def __init__(
        self, type_: str, value: str, text: str, line: int, col: int, offset: int
    ):
        object.__setattr__(self, "type", type_)
        object.__setattr__(self, "value", value)
        object.__setattr__(self, "text", text)
        object.__setattr__(self, "line", line)
        object.__setattr__(self, "col", col)
        object.__setattr__(self, "offset", offset)

    def __setattr__(self, name: str, value: object) -> None:
        raise AttributeError("Token is immutable")

    @property
    def end(self) -> int:
        return self.offset + len(self.text)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Token):
            return NotImplemented
        return (
            self.type == other.type
            and self.value == other.value
            and self.offset == other.offset
        )

    def __hash__(self) -> int:
        return hash((self.type, self.value, self.offset))

    def __repr__(self) -> str:
        return (
            "Token("
            + self.type
            + ", "
            + repr(self.value)
            + ", "
            + str(self.line)
            + ", "
            + str(self.col)
            + ")"
        )


def _is_digit(c: str) -> bool:
    return c >= "0" and c <= "9"


def _is_alpha(c: str) -> bool:
    return (
        (c >= "a" and c <= "z") or (c >= "A" and c <= "Z") or c == "_" or c == "$"
    )


def _is_alnum(c: str) -> bool:
    return _is_alpha(c) or _is_digit(c)


def keywords_for(language: str) -> set[str]:
    if language not in LANGUAGES:
        raise ValueError("unsupported source language: " + repr(language))
    return LANGUAGES[language]


def tokenize(source: str, language: str = "java") -> list[Token]:
    """Tokenize source into a flat list ending with TK_EOF."""
    keywords = keywords_for(language)
    tokens: list[Token] = []
    pos = 0
    line = 1
    col = 1
    length = len(source)

    while pos < length:
        c = source[pos]

        # Newlines
        if c == "\n":
            pos += 1
            line += 1
            col = 1
            continue

        # Whitespace
        if c == " " or c == "\t" or c == "\r" or c == "\f":
            pos += 1
            col += 1
            continue

        # Line comment: //
        if c == "/" and pos + 1 < length and source[pos + 1] == "/":
            while pos < length and source[pos] != "\n":
                pos += 1
                col += 1
            continue

        # Block comment: /* ... */
        if c == "/" and pos + 1 < length and source[pos + 1] == "*":
            start_line = line
            start_col = col
            pos += 2
            col += 2
            while pos < length and not (
                source[pos] == "*" and pos + 1 < length and source[pos + 1] == "/"
            ):
                if source[pos] == "\n":
                    line += 1
                    col = 1
                else:
                    col += 1
                pos += 1
            if pos >= length:
                raise LexicalError("unterminated block comment", start_line, start_col)
            pos += 2
            col += 2
            continue

        start_pos = pos
        start_line = line
        start_col = col

        # Number: int or real, with an optional Java suffix
        if _is_digit(c):
            while pos < length and _is_digit(source[pos]):
                pos += 1
                col += 1
            is_real = False
            if pos < length and source[pos] == ".":
                if pos + 1 < length and _is_digit(source[pos + 1]):
                    is_real = True
                    pos += 1
                    col += 1
                    while pos < length and _is_digit(source[pos]):
                        pos += 1
                        col += 1
            digits = source[start_pos:pos]
            if pos < length and source[pos] in NUMBER_SUFFIXES:
                if source[pos] not in ("L", "l"):
                    is_real = True
                pos += 1
                col += 1
            if pos < length and _is_alpha(source[pos]):
                raise LexicalError(
                    "invalid numeric literal: " + source[start_pos : pos + 1],
                    start_line,
                    start_col,
                )
            raw = source[start_pos:pos]
            tokens.append(
                Token(
                    TK_REAL if is_real else TK_INT,
                    digits,
                    raw,
                    start_line,
                    start_col,
                    start_pos,
                )
            )
            continue

        # Quoted literal: "...", '...', or a template literal without substitutions
        if c == '"' or c == "'" or c == "`":
            quote = c
            pos += 1
            col += 1
            chars: list[str] = []
            while pos < length and source[pos] != quote:
                if source[pos] == "\n" and quote != "`":
                    raise LexicalError(
                        "unterminated string literal", start_line, start_col
                    )
                if source[pos] == "\\":
                    if pos + 1 >= length:
                        break
                    esc = source[pos + 1]
                    chars.append(ESCAPE_MAP.get(esc, esc))
                    pos += 2
                    col += 2
                    continue
                if source[pos] == "\n":
                    line += 1
                    col = 0
                chars.append(source[pos])
                pos += 1
                col += 1
            if pos >= length:
                raise LexicalError("unterminated string literal", start_line, start_col)
            pos += 1  # skip closing quote
            col += 1
            raw = source[start_pos:pos]
            kind = TK_CHAR if quote == "'" else TK_STRING
            tokens.append(
                Token(kind, "".join(chars), raw, start_line, start_col, start_pos)
            )
            continue

        # Identifier or keyword
        if _is_alpha(c):
            while pos < length and _is_alnum(source[pos]):
                pos += 1
                col += 1
            word = source[start_pos:pos]
            if word in keywords:
                tokens.append(Token(word, word, word, start_line, start_col, start_pos))
            else:
                tokens.append(
                    Token(TK_IDENT, word, word, start_line, start_col, start_pos)
                )
            continue

        # Multi-character operators
        matched = False
        for op in MULTI_OPS:
            op_len = len(op)
            if pos + op_len <= length and source[pos : pos + op_len] == op:
                tokens.append(Token(TK_OP, op, op, start_line, start_col, start_pos))
                pos += op_len
                col += op_len
                matched = True
                break
        if matched:
            continue

        # Single-character operators and punctuators
        if c in SINGLE_OPS:
            tokens.append(Token(TK_OP, c, c, start_line, start_col, start_pos))
            pos += 1
            col += 1
            continue

        raise LexicalError("unexpected character: " + repr(c), line, col)

    tokens.append(Token(TK_EOF, "", "", line, col, pos))
    return tokens
