"""Source AST: parse-time node definitions shared by Java and TypeScript."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field, fields


# ============================================================
# POSITION
# ============================================================


@dataclass(frozen=True)
class Pos:
    """Source span: 1-indexed line/col of the first token, 0-indexed offsets."""

    line: int
    col: int
    offset: int = 0
    end: int = 0


@dataclass
class Node:
    """Base for all AST nodes."""

    pos: Pos

    @property
    def kind(self) -> str:
        return type(self).__name__

    def identity(self) -> tuple[str, int, int]:
        """Structural identity: node kind plus source span."""
        return (self.kind, self.pos.offset, self.pos.end)


# ============================================================
# TYPES
# ============================================================


@dataclass
class TypeRef(Node):
    """Declared type: `int`, `String[]`, `Array<number>`, `List<String>`."""

    name: str
    args: list[TypeRef] = field(default_factory=list)
    dims: int = 0

    def is_array(self) -> bool:
        return self.dims > 0 or (self.name == "Array" and len(self.args) == 1)

    def element(self) -> TypeRef:
        if self.dims > 0:
            return TypeRef(self.pos, self.name, self.args, self.dims - 1)
        return self.args[0]


# ============================================================
# EXPRESSIONS
# ============================================================


@dataclass
class Expr(Node):
    """Base for all expressions."""


@dataclass
class Literal(Expr):
    """lit_kind is one of: int, real, string, char, bool, null."""

    value: str
    lit_kind: str


@dataclass
class Identifier(Expr):
    name: str


@dataclass
class BinaryExpression(Expr):
    op: str
    left: Expr
    right: Expr


@dataclass
class UnaryExpression(Expr):
    op: str
    operand: Expr


@dataclass
class UpdateExpression(Expr):
    """`i++`, `--i`. prefix is True for the `++i` form."""

    op: str
    target: Expr
    prefix: bool


@dataclass
class Assignment(Expr):
    """`target op value` where op is `=` or a compound assignment."""

    op: str
    target: Expr
    value: Expr


@dataclass
class ConditionalExpression(Expr):
    """cond ? then : otherwise."""

    cond: Expr
    then: Expr
    otherwise: Expr


@dataclass
class MemberAccess(Expr):
    obj: Expr
    member: str


@dataclass
class IndexExpression(Expr):
    obj: Expr
    index: Expr


@dataclass
class MethodCall(Expr):
    """callee is an Identifier or MemberAccess."""

    callee: Expr
    args: list[Expr]

    def dotted_name(self) -> str | None:
        return dotted_name(self.callee)


@dataclass
class ArrayLiteral(Expr):
    """`[1, 2, 3]` or a Java `{1, 2, 3}` initializer."""

    elements: list[Expr]


@dataclass
class NewArray(Expr):
    """`new int[n]` or `new int[] {1, 2}`."""

    elem_type: TypeRef
    sizes: list[Expr]
    init: ArrayLiteral | None = None


@dataclass
class NewObject(Expr):
    type: TypeRef
    args: list[Expr]


@dataclass
class CastExpression(Expr):
    """`(int) x` or TypeScript `x as number`."""

    type: TypeRef
    expr: Expr


@dataclass
class LambdaExpression(Expr):
    """`(a, b) => a + b`. Kept only so it can be reported; it has no lowering."""

    params: list[Parameter]
    body: Block | Expr


def dotted_name(expr: Expr) -> str | None:
    """Flatten `a.b.c` into a dotted string, None if any part is not a name."""
    if isinstance(expr, Identifier):
        return expr.name
    if isinstance(expr, MemberAccess):
        base = dotted_name(expr.obj)
        if base is None:
            return None
        return base + "." + expr.member
    return None


# ============================================================
# STATEMENTS
# ============================================================


@dataclass
class Stmt(Node):
    """Base for all statements."""


@dataclass
class Declarator(Node):
    """One `name [= init]` of a declaration. type overrides the shared type."""

    name: str
    init: Expr | None = None
    type: TypeRef | None = None
    dims: int = 0


@dataclass
class VariableDeclaration(Stmt):
    """`final int x = 1, y;` or `const x: number = 1;`."""

    modifiers: list[str]
    type: TypeRef | None
    declarators: list[Declarator]

    def is_constant(self) -> bool:
        return (
            "final" in self.modifiers
            or "static" in self.modifiers
            or "const" in self.modifiers
            or "readonly" in self.modifiers
        )


@dataclass
class Block(Stmt):
    body: list[Stmt]


@dataclass
class ExpressionStatement(Stmt):
    expr: Expr


@dataclass
class IfStatement(Stmt):
    """orelse is a Block, another IfStatement (an else-if link), or None."""

    cond: Expr
    then: Stmt
    orelse: Stmt | None = None


@dataclass
class ForStatement(Stmt):
    """for (init; cond; update) body."""

    init: list[Stmt]
    cond: Expr | None
    update: list[Expr]
    body: Stmt


@dataclass
class EnhancedForStatement(Stmt):
    """for (T x : xs) / for (const x of xs). over_keys marks for (k in obj)."""

    var_type: TypeRef | None
    name: str
    iterable: Expr
    body: Stmt
    over_keys: bool = False


@dataclass
class WhileStatement(Stmt):
    cond: Expr
    body: Stmt


@dataclass
class DoWhileStatement(Stmt):
    body: Stmt
    cond: Expr


@dataclass
class SwitchCase(Node):
    """One `case test:` or `default:` label and the statements after it."""

    test: Expr | None
    body: list[Stmt]

    def is_default(self) -> bool:
        return self.test is None


@dataclass
class SwitchStatement(Stmt):
    discriminant: Expr
    cases: list[SwitchCase]


@dataclass
class BreakStatement(Stmt):
    pass


@dataclass
class ContinueStatement(Stmt):
    pass


@dataclass
class ReturnStatement(Stmt):
    value: Expr | None = None


@dataclass
class ThrowStatement(Stmt):
    value: Expr


@dataclass
class CatchClause(Node):
    name: str
    type: TypeRef | None
    body: Block


@dataclass
class TryStatement(Stmt):
    block: Block
    handlers: list[CatchClause]
    finalizer: Block | None = None


# ============================================================
# DECLARATIONS
# ============================================================


@dataclass
class Parameter(Node):
    name: str
    type: TypeRef | None


@dataclass
class MethodDeclaration(Stmt):
    """A method, constructor, or TypeScript function. body is None for abstract methods."""

    name: str
    modifiers: list[str]
    return_type: TypeRef | None
    params: list[Parameter]
    body: Block | None
    is_constructor: bool = False


@dataclass
class ClassDeclaration(Stmt):
    name: str
    modifiers: list[str]
    superclass: str | None
    interfaces: list[str]
    members: list[Stmt]


@dataclass
class InterfaceDeclaration(Stmt):
    name: str


@dataclass
class ImportDeclaration(Stmt):
    path: str


@dataclass
class Program(Node):
    """Root of the tree."""

    language: str
    body: list[Stmt]


# ============================================================
# TRAVERSAL
# ============================================================


def children(node: Node) -> list[Node]:
    """Direct child nodes in field order."""
    out: list[Node] = []
    for f in fields(node):
        value = getattr(node, f.name)
        if isinstance(value, Node):
            out.append(value)
        elif isinstance(value, list):
            for item in value:
                if isinstance(item, Node):
                    out.append(item)
    return out


def walk(node: Node) -> Iterator[Node]:
    """Pre-order traversal without recursion. A node reached twice is yielded once."""
    stack: list[Node] = [node]
    seen: set[int] = set()
    while stack:
        current = stack.pop()
        if id(current) in seen:
            continue
        seen.add(id(current))
        yield current
        stack.extend(reversed(children(current)))
