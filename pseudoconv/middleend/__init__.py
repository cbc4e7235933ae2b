"""Middleend: AST to pseudocode lines."""

from .context import ConversionContext
from .engine import Engine
from .guard import RecursionGuard

__all__ = ["ConversionContext", "Engine", "RecursionGuard"]
