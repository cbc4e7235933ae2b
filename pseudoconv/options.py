"""Conversion options."""

from __future__ import annotations

from dataclasses import dataclass, field

SOURCE_LANGUAGES: tuple[str, ...] = ("java", "typescript")

LANGUAGE_ALIASES: dict[str, str] = {
    "java": "java",
    "typescript": "typescript",
    "ts": "typescript",
}

DEFAULT_INDENT_SIZE = 3
DEFAULT_MAX_DEPTH = 50


@dataclass(frozen=True)
class ConversionOptions:
    """Caller-tunable knobs for one conversion.

    custom_mappings overrides the type table (`"ArrayList": "ARRAY"`) and
    dotted call names (`"Utils.show": "OUTPUT"`). integer_division forces `/`
    to DIV everywhere; assume_text_names turns on the name-based guess for
    string concatenation when types are unknown.
    """

    indent_size: int = DEFAULT_INDENT_SIZE
    include_comments: bool = True
    strict_mode: bool = False
    custom_mappings: dict[str, str] = field(default_factory=dict)
    max_depth: int = DEFAULT_MAX_DEPTH
    integer_division: bool = False
    assume_text_names: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.indent_size, int) or isinstance(self.indent_size, bool):
            raise ValueError("indent_size must be an integer")
        if self.indent_size < 1 or self.indent_size > 8:
            raise ValueError("indent_size must be between 1 and 8")
        if not isinstance(self.max_depth, int) or self.max_depth < 1:
            raise ValueError("max_depth must be a positive integer")
        for key, value in self.custom_mappings.items():
            if not isinstance(key, str) or not isinstance(value, str):
                raise ValueError("custom_mappings must map strings to strings")

    @property
    def indent_unit(self) -> str:
        return " " * self.indent_size


def normalize_language(language: str) -> str:
    """Canonical language name; raises ValueError for anything unsupported."""
    key = language.strip().lower() if isinstance(language, str) else ""
    if key not in LANGUAGE_ALIASES:
        raise ValueError(
            "unsupported source language: "
            + repr(language)
            + " (expected one of "
            + ", ".join(SOURCE_LANGUAGES)
            + ")"
        )
    return LANGUAGE_ALIASES[key]
