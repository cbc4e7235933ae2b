"""Recursion and cycle guard for AST traversal.

The guard is a backtracking path check, not a memo: a node is marked when
conversion enters it and unmarked when conversion leaves it, so identical
sibling subtrees are each converted independently while a node reappearing
below itself is rejected.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from ..errors import CycleDetected, RecursionLimitExceeded
from ..frontend.ast import Node


class RecursionGuard:
    """Explicit path stack plus a membership set kept in sync with it."""

    def __init__(self, max_depth: int):
        self.max_depth: int = max_depth
        self._path: list[tuple[str, int, int]] = []
        self._on_path: set[tuple[str, int, int]] = set()

    @property
    def path(self) -> tuple[tuple[str, int, int], ...]:
        return tuple(self._path)

    def __len__(self) -> int:
        return len(self._path)

    @contextmanager
    def visit(self, node: Node, depth: int) -> Iterator[None]:
        if depth >= self.max_depth:
            raise RecursionLimitExceeded(
                "maximum depth "
                + str(self.max_depth)
                + " exceeded at "
                + node.kind,
                node.pos.line,
                node.pos.col,
            )
        ident = node.identity()
        if ident in self._on_path:
            raise CycleDetected(
                "cycle detected at " + node.kind, node.pos.line, node.pos.col
            )
        self._path.append(ident)
        self._on_path.add(ident)
        try:
            yield
        finally:
            self._path.pop()
            self._on_path.discard(ident)
