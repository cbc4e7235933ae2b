"""Context objects passed through conversion."""

from __future__ import annotations

from dataclasses import dataclass, field, replace

from ..diagnostics import Diagnostics
from ..options import ConversionOptions
from .guard import RecursionGuard


class Scope:
    """Lexical scope mapping variable names to pseudocode types."""

    def __init__(self, parent: Scope | None = None) -> None:
        self.parent: Scope | None = parent
        self.names: dict[str, str] = {}

    def declare(self, name: str, typ: str) -> None:
        self.names[name] = typ

    def lookup(self, name: str) -> str | None:
        scope: Scope | None = self
        while scope is not None:
            if name in scope.names:
                return scope.names[name]
            scope = scope.parent
        return None

    def child(self) -> Scope:
        return Scope(self)


class FlagAllocator:
    """Numbers the boolean sentinels introduced for break and continue."""

    def __init__(self) -> None:
        self.count: int = 0

    def next_id(self) -> int:
        self.count += 1
        return self.count


@dataclass(frozen=True)
class LoopFrame:
    """Sentinel names of the innermost loop; None when the loop needs none."""

    exit_flag: str | None = None
    skip_flag: str | None = None


@dataclass(frozen=True)
class ConversionContext:
    """Per-call conversion state.

    Shared per call: options, guard, diagnostics, signatures, flags. Copied
    per descent with dataclasses.replace: depth, indent, scope, loop, switch
    state and the else-chain flag, so those changes stay local to one path.
    """

    options: ConversionOptions
    language: str
    guard: RecursionGuard
    diagnostics: Diagnostics
    scope: Scope
    signatures: dict[str, str | None] = field(default_factory=dict)
    flags: FlagAllocator = field(default_factory=FlagAllocator)
    depth: int = 0
    indent_level: int = 0
    loop: LoopFrame | None = None
    in_switch: bool = False
    case_flag: str | None = None
    else_chain: bool = False
    class_name: str | None = None

    @classmethod
    def fresh(cls, options: ConversionOptions, language: str) -> ConversionContext:
        return cls(
            options=options,
            language=language,
            guard=RecursionGuard(options.max_depth),
            diagnostics=Diagnostics(),
            scope=Scope(),
        )

    @property
    def max_depth(self) -> int:
        return self.options.max_depth

    @property
    def integer_division(self) -> bool:
        return self.options.integer_division

    @property
    def assume_text_names(self) -> bool:
        return self.options.assume_text_names

    def descend(self, **changes: object) -> ConversionContext:
        return replace(self, depth=self.depth + 1, **changes)  # type: ignore[arg-type]

    def indented(self, levels: int = 1) -> ConversionContext:
        return replace(self, indent_level=self.indent_level + levels, else_chain=False)

    def with_scope(self) -> ConversionContext:
        return replace(self, scope=self.scope.child())

    def pad(self) -> str:
        return self.options.indent_unit * self.indent_level

    def line(self, text: str) -> str:
        return self.pad() + text

    def comment(self, text: str) -> list[str]:
        if not self.options.include_comments:
            return []
        return [self.line("// " + text)]

    def in_loop(self, frame: LoopFrame) -> ConversionContext:
        return replace(self, loop=frame, in_switch=False, case_flag=None)

    def in_body(self) -> ConversionContext:
        """Fresh callable body: no enclosing loop or switch, own scope."""
        return replace(
            self,
            scope=self.scope.child(),
            loop=None,
            in_switch=False,
            case_flag=None,
            else_chain=False,
        )
