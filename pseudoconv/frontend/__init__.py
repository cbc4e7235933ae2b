"""Frontend: source text to AST."""

from .parse import Parser, parse
from .tokens import Token, tokenize

__all__ = ["Parser", "Token", "parse", "tokenize"]
