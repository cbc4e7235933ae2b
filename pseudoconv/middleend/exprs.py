"""Expression lowering: renders source expressions as single-line pseudocode."""

from __future__ import annotations

from ..diagnostics import APPROXIMATED
from ..errors import UnsupportedConstructError
from ..frontend.ast import (
    ArrayLiteral,
    Assignment,
    BinaryExpression,
    CastExpression,
    ConditionalExpression,
    Expr,
    Identifier,
    IndexExpression,
    LambdaExpression,
    Literal,
    MemberAccess,
    MethodCall,
    NewArray,
    NewObject,
    UnaryExpression,
    UpdateExpression,
)
from . import types
from .builtins import (
    COMPARISON_METHODS,
    CONVERSION_FUNCTIONS,
    MATH_FUNCTIONS,
    STRING_METHODS,
    int_literal,
    is_output_call,
    is_stream_read,
)
from .context import ConversionContext

# Binding power of rendered pseudocode, keyed by source operator.
PREC_NOT = 3
PREC_COMPARE = 4
PREC_ADD = 5
PREC_UNARY = 7
PREC_POWER = 8
PREC_ATOM = 9

_BIN_PREC: dict[str, int] = {
    "||": 1,
    "&&": 2,
    "==": PREC_COMPARE,
    "!=": PREC_COMPARE,
    "===": PREC_COMPARE,
    "!==": PREC_COMPARE,
    "<": PREC_COMPARE,
    ">": PREC_COMPARE,
    "<=": PREC_COMPARE,
    ">=": PREC_COMPARE,
    "+": PREC_ADD,
    "-": PREC_ADD,
    "&": PREC_ADD,
    "*": 6,
    "/": 6,
    "%": 6,
}

BINARY_OPS: dict[str, str] = {
    "==": "=",
    "===": "=",
    "!=": "<>",
    "!==": "<>",
    "<": "<",
    ">": ">",
    "<=": "<=",
    ">=": ">=",
    "&&": "AND",
    "||": "OR",
    "%": "MOD",
    "+": "+",
    "-": "-",
    "*": "*",
    "/": "/",
    "&": "&",
}

# Source comparison -> its logical complement.
NEGATED_COMPARISON: dict[str, str] = {
    "<": ">=",
    ">=": "<",
    ">": "<=",
    "<=": ">",
    "==": "!=",
    "!=": "==",
    "===": "!==",
    "!==": "===",
}


def precedence(expr: Expr) -> int:
    """Binding power of the pseudocode an expression renders to."""
    match expr:
        case BinaryExpression(op=op):
            return _BIN_PREC.get(op, 0)
        case UnaryExpression(op="!"):
            return PREC_NOT
        case UnaryExpression(op="-"):
            if int_literal(expr.operand) is not None:
                return PREC_ATOM
            return PREC_UNARY
        case UnaryExpression():
            return precedence(expr.operand)
        case MethodCall(callee=MemberAccess(member=member)) if member in COMPARISON_METHODS:
            return PREC_COMPARE
        case MethodCall() if expr.dotted_name() == "Math.pow":
            return PREC_POWER
        case Assignment() | ConditionalExpression() | UpdateExpression():
            return 0
    return PREC_ATOM


def _escape(text: str) -> str:
    return text.replace("\n", "\\n").replace("\t", "\\t").replace("\r", "\\r")


def constant_int(expr: Expr) -> int | None:
    """Integer value of a literal or a negated literal."""
    value = int_literal(expr)
    if value is not None:
        return value
    if isinstance(expr, UnaryExpression) and expr.op == "-":
        inner = int_literal(expr.operand)
        if inner is not None:
            return -inner
    return None


class ExprConverter:
    """Stateless expression renderer; every node passes through the guard."""

    def render(self, expr: Expr, ctx: ConversionContext) -> str:
        with ctx.guard.visit(expr, ctx.depth):
            return self._render(expr, ctx.descend())

    def _render(self, expr: Expr, ctx: ConversionContext) -> str:
        match expr:
            case Literal():
                return self._literal(expr, ctx)
            case Identifier(name="this"):
                raise UnsupportedConstructError(
                    "'this' used as a value", expr.pos.line, expr.pos.col
                )
            case Identifier(name=name):
                return name
            case BinaryExpression():
                return self._binary(expr, ctx)
            case UnaryExpression():
                return self._unary(expr, ctx)
            case MemberAccess():
                return self._member(expr, ctx)
            case IndexExpression():
                return self._index(expr, ctx)
            case MethodCall():
                return self._call(expr, ctx)
            case CastExpression():
                return self._cast(expr, ctx)
            case NewObject(type=typ, args=[arg]) if typ.name == "String":
                return self.render(arg, ctx)
            case UpdateExpression() | Assignment():
                raise UnsupportedConstructError(
                    "assignment inside an expression", expr.pos.line, expr.pos.col
                )
            case ConditionalExpression():
                raise UnsupportedConstructError(
                    "conditional expression (?:)", expr.pos.line, expr.pos.col
                )
            case LambdaExpression():
                raise UnsupportedConstructError(
                    "lambda expression", expr.pos.line, expr.pos.col
                )
            case ArrayLiteral() | NewArray():
                raise UnsupportedConstructError(
                    "array value outside a declaration", expr.pos.line, expr.pos.col
                )
            case NewObject(type=typ):
                raise UnsupportedConstructError(
                    "object creation 'new " + typ.name + "'", expr.pos.line, expr.pos.col
                )
        raise UnsupportedConstructError(
            "expression kind " + expr.kind, expr.pos.line, expr.pos.col
        )

    def _literal(self, lit: Literal, ctx: ConversionContext) -> str:
        match lit.lit_kind:
            case "string":
                return '"' + _escape(lit.value) + '"'
            case "char":
                return "'" + _escape(lit.value) + "'"
            case "bool":
                return lit.value.upper()
            case "real":
                return lit.value if "." in lit.value else lit.value + ".0"
            case "null":
                ctx.diagnostics.add_warning(
                    APPROXIMATED,
                    "'" + lit.value + "' has no pseudocode equivalent, rendered as NULL",
                    lit.pos.line,
                    lit.pos.col,
                )
                return "NULL"
        return lit.value

    # ── Operators ────────────────────────────────────────────

    def operator(self, expr: BinaryExpression, ctx: ConversionContext) -> str:
        op = expr.op
        if op == "instanceof":
            raise UnsupportedConstructError(
                "instanceof check", expr.pos.line, expr.pos.col
            )
        if op == "+" and types.is_concatenation(expr.left, expr.right, ctx):
            ctx.diagnostics.use("string-concatenation")
            return "&"
        if op == "/" and self._is_integer_division(expr, ctx):
            return "DIV"
        return BINARY_OPS[op]

    def _is_integer_division(self, expr: BinaryExpression, ctx: ConversionContext) -> bool:
        if ctx.integer_division:
            return True
        if ctx.language != "java":
            return False
        lt = types.infer(expr.left, ctx)
        rt = types.infer(expr.right, ctx)
        return lt == types.INTEGER and rt == types.INTEGER

    def operand(
        self, child: Expr, parent_prec: int, is_right: bool, ctx: ConversionContext
    ) -> str:
        text = self.render(child, ctx)
        child_prec = precedence(child)
        if (
            child_prec < parent_prec
            or (is_right and child_prec == parent_prec)
            or (child_prec == PREC_COMPARE and parent_prec == PREC_COMPARE)
        ):
            return "(" + text + ")"
        return text

    def _binary(self, expr: BinaryExpression, ctx: ConversionContext) -> str:
        op = self.operator(expr, ctx)
        prec = _BIN_PREC[expr.op]
        left = self.operand(expr.left, prec, False, ctx)
        right = self.operand(expr.right, prec, True, ctx)
        return left + " " + op + " " + right

    def _unary(self, expr: UnaryExpression, ctx: ConversionContext) -> str:
        if expr.op == "!":
            return "NOT " + self.operand(expr.operand, PREC_UNARY, False, ctx)
        if expr.op == "-":
            if int_literal(expr.operand) is not None:
                return "-" + self.render(expr.operand, ctx)
            return "-" + self.operand(expr.operand, PREC_UNARY, False, ctx)
        return self.render(expr.operand, ctx)

    # ── Negation ─────────────────────────────────────────────

    def negate(self, expr: Expr, ctx: ConversionContext) -> str:
        """Logical complement rendered algebraically; NOT only when nothing flips."""
        return self.negation(expr, ctx)[0]

    def negation(self, expr: Expr, ctx: ConversionContext) -> tuple[str, int]:
        with ctx.guard.visit(expr, ctx.depth):
            flipped = self._flip(expr, ctx.descend())
        if flipped is not None:
            return flipped
        return "NOT " + self.operand(expr, PREC_UNARY, False, ctx), PREC_NOT

    def _flip(self, expr: Expr, ctx: ConversionContext) -> tuple[str, int] | None:
        match expr:
            case BinaryExpression(op=op, left=left, right=right) if op in NEGATED_COMPARISON:
                flipped = BINARY_OPS[NEGATED_COMPARISON[op]]
                lhs = self.operand(left, PREC_COMPARE, False, ctx)
                rhs = self.operand(right, PREC_COMPARE, True, ctx)
                return lhs + " " + flipped + " " + rhs, PREC_COMPARE
            case BinaryExpression(op="&&", left=left, right=right):
                lhs, _ = self.negation(left, ctx)
                rhs, _ = self.negation(right, ctx)
                return lhs + " OR " + rhs, 1
            case BinaryExpression(op="||", left=left, right=right):
                lhs, lp = self.negation(left, ctx)
                rhs, rp = self.negation(right, ctx)
                if lp < 2:
                    lhs = "(" + lhs + ")"
                if rp < 2:
                    rhs = "(" + rhs + ")"
                return lhs + " AND " + rhs, 2
            case UnaryExpression(op="!", operand=operand):
                return self.render(operand, ctx), precedence(operand)
            case Literal(lit_kind="bool", value=value):
                return ("FALSE" if value == "true" else "TRUE"), PREC_ATOM
            case MethodCall(callee=MemberAccess(member="isEmpty", obj=obj), args=[]):
                return "LENGTH(" + self.render(obj, ctx) + ") <> 0", PREC_COMPARE
        return None

    # ── Access ───────────────────────────────────────────────

    def _member(self, expr: MemberAccess, ctx: ConversionContext) -> str:
        if expr.member == "length":
            ctx.diagnostics.use("length")
            return "LENGTH(" + self.render(expr.obj, ctx) + ")"
        if isinstance(expr.obj, Identifier) and expr.obj.name == "this":
            return expr.member
        return self.render(expr.obj, ctx) + "." + expr.member

    def _index(self, expr: IndexExpression, ctx: ConversionContext) -> str:
        indices: list[Expr] = []
        base: Expr = expr
        while isinstance(base, IndexExpression):
            indices.insert(0, base.index)
            base = base.obj
        if len(indices) == 1 and types.infer(base, ctx) == types.STRING:
            return (
                "MID("
                + self.render(base, ctx)
                + ", "
                + self.plus(indices[0], 1, ctx)
                + ", 1)"
            )
        ctx.diagnostics.use("arrays")
        rendered = [self.render(i, ctx) for i in indices]
        return self.render(base, ctx) + "[" + ", ".join(rendered) + "]"

    # ── Calls ────────────────────────────────────────────────

    def args(self, call: MethodCall, ctx: ConversionContext) -> list[str]:
        return [self.render(a, ctx) for a in call.args]

    def _call(self, call: MethodCall, ctx: ConversionContext) -> str:
        name = call.dotted_name()
        custom = ctx.options.custom_mappings
        if name is not None and name in custom:
            return custom[name] + "(" + ", ".join(self.args(call, ctx)) + ")"
        if is_stream_read(call):
            raise UnsupportedConstructError(
                "input call inside an expression", call.pos.line, call.pos.col
            )
        if is_output_call(call):
            raise UnsupportedConstructError(
                "output call inside an expression", call.pos.line, call.pos.col
            )
        if name is not None and name in MATH_FUNCTIONS:
            return self._math(name, call, ctx)
        if name is not None and name in CONVERSION_FUNCTIONS and len(call.args) == 1:
            return CONVERSION_FUNCTIONS[name] + "(" + self.render(call.args[0], ctx) + ")"
        callee = call.callee
        if isinstance(callee, MemberAccess):
            obj = callee.obj
            if isinstance(obj, Identifier) and obj.name == "this":
                return callee.member + "(" + ", ".join(self.args(call, ctx)) + ")"
            if callee.member in STRING_METHODS and self._is_text_receiver(obj, ctx):
                return self._string_method(callee.member, obj, call, ctx)
            if callee.member == "toString" and not call.args:
                return "NUM_TO_STR(" + self.render(obj, ctx) + ")"
            return (
                self.render(obj, ctx)
                + "."
                + callee.member
                + "("
                + ", ".join(self.args(call, ctx))
                + ")"
            )
        if isinstance(callee, Identifier):
            return callee.name + "(" + ", ".join(self.args(call, ctx)) + ")"
        raise UnsupportedConstructError(
            "call through a computed callee", call.pos.line, call.pos.col
        )

    def _is_text_receiver(self, obj: Expr, ctx: ConversionContext) -> bool:
        typ = types.infer(obj, ctx)
        return typ is None or typ == types.STRING or types.is_array(typ)

    def _math(self, name: str, call: MethodCall, ctx: ConversionContext) -> str:
        template, arity = MATH_FUNCTIONS[name]
        if len(call.args) != arity:
            raise UnsupportedConstructError(
                name + " expects " + str(arity) + " argument(s)",
                call.pos.line,
                call.pos.col,
            )
        ctx.diagnostics.use("math")
        if name == "Math.pow":
            base = self.operand(call.args[0], PREC_POWER, False, ctx)
            exponent = self.operand(call.args[1], PREC_POWER, True, ctx)
            return template.format(base, exponent)
        return template.format(*self.args(call, ctx))

    def _string_method(
        self, member: str, obj: Expr, call: MethodCall, ctx: ConversionContext
    ) -> str:
        ctx.diagnostics.use("string-methods")
        s = self.render(obj, ctx)
        args = call.args
        match member, len(args):
            case ("length" | "size"), 0:
                return "LENGTH(" + s + ")"
            case "toUpperCase", 0:
                return "UCASE(" + s + ")"
            case "toLowerCase", 0:
                return "LCASE(" + s + ")"
            case "charAt", 1:
                return "MID(" + s + ", " + self.plus(args[0], 1, ctx) + ", 1)"
            case "substring", 1:
                return (
                    "SUBSTRING("
                    + s
                    + ", "
                    + self.plus(args[0], 1, ctx)
                    + ", LENGTH("
                    + s
                    + ") - "
                    + self.operand(args[0], PREC_ADD, True, ctx)
                    + ")"
                )
            case "substring", 2:
                return (
                    "SUBSTRING("
                    + s
                    + ", "
                    + self.plus(args[0], 1, ctx)
                    + ", "
                    + self.difference(args[1], args[0], ctx)
                    + ")"
                )
            case "equals", 1:
                return s + " = " + self.operand(args[0], PREC_COMPARE, True, ctx)
            case "equalsIgnoreCase", 1:
                return "LCASE(" + s + ") = LCASE(" + self.render(args[0], ctx) + ")"
            case "isEmpty", 0:
                return "LENGTH(" + s + ") = 0"
            case "startsWith", 1:
                p = self.render(args[0], ctx)
                return "LEFT(" + s + ", LENGTH(" + p + ")) = " + p
            case "endsWith", 1:
                p = self.render(args[0], ctx)
                return "RIGHT(" + s + ", LENGTH(" + p + ")) = " + p
        raise UnsupportedConstructError(
            "string method " + member + " with " + str(len(args)) + " argument(s)",
            call.pos.line,
            call.pos.col,
        )

    # ── Arithmetic helpers ───────────────────────────────────

    def plus(self, expr: Expr, k: int, ctx: ConversionContext) -> str:
        """Render `expr + k`, folding integer constants."""
        value = constant_int(expr)
        if value is not None:
            return str(value + k)
        if k == 0:
            return self.render(expr, ctx)
        text = self.operand(expr, PREC_ADD, False, ctx)
        if k < 0:
            return text + " - " + str(-k)
        return text + " + " + str(k)

    def difference(self, high: Expr, low: Expr, ctx: ConversionContext) -> str:
        """Render `high - low`, folding integer constants."""
        hv = constant_int(high)
        lv = constant_int(low)
        if hv is not None and lv is not None:
            return str(hv - lv)
        if lv == 0:
            return self.render(high, ctx)
        return (
            self.operand(high, PREC_ADD, False, ctx)
            + " - "
            + self.operand(low, PREC_ADD, True, ctx)
        )

    def _cast(self, expr: CastExpression, ctx: ConversionContext) -> str:
        target = types.TYPE_TABLES[ctx.language].get(expr.type.name)
        source = types.infer(expr.expr, ctx)
        if target == types.INTEGER:
            if source == types.CHAR:
                return "ASC(" + self.render(expr.expr, ctx) + ")"
            if source != types.INTEGER:
                return "INT(" + self.render(expr.expr, ctx) + ")"
        if target == types.CHAR and source == types.INTEGER:
            return "CHR(" + self.render(expr.expr, ctx) + ")"
        return self.render(expr.expr, ctx)
