"""Type table and a minimal type inference pass for operator selection."""

from __future__ import annotations

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
    Literal,
    MemberAccess,
    MethodCall,
    NewArray,
    NewObject,
    TypeRef,
    UnaryExpression,
    UpdateExpression,
)
from ..diagnostics import TYPE_FALLBACK
from .context import ConversionContext

INTEGER = "INTEGER"
REAL = "REAL"
STRING = "STRING"
CHAR = "CHAR"
BOOLEAN = "BOOLEAN"

ARRAY_PREFIX = "ARRAY OF "

JAVA_TYPES: dict[str, str] = {
    "int": INTEGER,
    "long": INTEGER,
    "short": INTEGER,
    "byte": INTEGER,
    "Integer": INTEGER,
    "Long": INTEGER,
    "Short": INTEGER,
    "Byte": INTEGER,
    "double": REAL,
    "float": REAL,
    "Double": REAL,
    "Float": REAL,
    "boolean": BOOLEAN,
    "Boolean": BOOLEAN,
    "char": CHAR,
    "Character": CHAR,
    "String": STRING,
}

TS_TYPES: dict[str, str] = {
    "number": REAL,
    "string": STRING,
    "boolean": BOOLEAN,
    "String": STRING,
    "Number": REAL,
    "Boolean": BOOLEAN,
}

TYPE_TABLES: dict[str, dict[str, str]] = {
    "java": JAVA_TYPES,
    "typescript": TS_TYPES,
}

# Collections whose single type argument is their element type.
LIST_TYPES: set[str] = {"Array", "ArrayList", "List", "LinkedList", "ReadonlyArray"}

NUMERIC: set[str] = {INTEGER, REAL}

TEXT_NAME_HINTS: tuple[str, ...] = ("name", "message", "str")

# Return types of recognised library calls, keyed by the trailing member name.
METHOD_RESULT_TYPES: dict[str, str] = {
    "length": INTEGER,
    "indexOf": INTEGER,
    "compareTo": INTEGER,
    "nextInt": INTEGER,
    "nextLong": INTEGER,
    "nextDouble": REAL,
    "nextFloat": REAL,
    "nextBoolean": BOOLEAN,
    "nextLine": STRING,
    "next": STRING,
    "readLine": STRING,
    "toUpperCase": STRING,
    "toLowerCase": STRING,
    "trim": STRING,
    "substring": STRING,
    "charAt": CHAR,
    "equals": BOOLEAN,
    "equalsIgnoreCase": BOOLEAN,
    "isEmpty": BOOLEAN,
    "contains": BOOLEAN,
    "startsWith": BOOLEAN,
    "endsWith": BOOLEAN,
    "includes": BOOLEAN,
    "toString": STRING,
    "toFixed": STRING,
}

DOTTED_RESULT_TYPES: dict[str, str] = {
    "Integer.parseInt": INTEGER,
    "Long.parseLong": INTEGER,
    "Double.parseDouble": REAL,
    "Float.parseFloat": REAL,
    "String.valueOf": STRING,
    "Math.random": REAL,
    "Math.sqrt": REAL,
    "Math.pow": REAL,
    "Math.round": INTEGER,
    "Math.floor": INTEGER,
    "Math.ceil": INTEGER,
    "Math.trunc": INTEGER,
    "parseInt": INTEGER,
    "parseFloat": REAL,
    "Number": REAL,
    "String": STRING,
    "prompt": STRING,
}


def array_of(element: str) -> str:
    return ARRAY_PREFIX + element


def is_array(typ: str | None) -> bool:
    return typ is not None and typ.startswith(ARRAY_PREFIX)


def element_of(typ: str | None) -> str | None:
    if typ is None or not is_array(typ):
        return None
    return typ[len(ARRAY_PREFIX) :]


def resolve_type(ref: TypeRef, ctx: ConversionContext) -> str:
    """Map a declared type to a pseudocode type name, arrays as `ARRAY OF T`."""
    if ref.dims > 0:
        return array_of(resolve_type(ref.element(), ctx))
    if ref.name in LIST_TYPES and len(ref.args) == 1:
        return array_of(resolve_type(ref.args[0], ctx))
    return scalar_type(ref.name, ctx, ref.pos.line, ref.pos.col)


def scalar_type(name: str, ctx: ConversionContext, line: int = 0, col: int = 0) -> str:
    """Closed table lookup; unknown names fall back to STRING (or fail in strict mode)."""
    custom = ctx.options.custom_mappings
    if name in custom:
        return custom[name]
    table = TYPE_TABLES[ctx.language]
    if name in table:
        return table[name]
    if ctx.options.strict_mode:
        raise UnsupportedConstructError("no pseudocode type for '" + name + "'", line, col)
    ctx.diagnostics.add_warning(
        TYPE_FALLBACK,
        "unknown type '" + name + "' declared as STRING",
        line or None,
        col or None,
    )
    return STRING


def literal_type(lit: Literal, language: str) -> str | None:
    """Pseudocode type of a literal. TypeScript numbers are all REAL."""
    if lit.lit_kind == "int" and language == "typescript":
        return REAL
    return {
        "int": INTEGER,
        "real": REAL,
        "string": STRING,
        "char": CHAR,
        "bool": BOOLEAN,
    }.get(lit.lit_kind)


def _looks_textual(expr: Expr) -> bool:
    if not isinstance(expr, Identifier):
        return False
    lowered = expr.name.lower()
    return any(hint in lowered for hint in TEXT_NAME_HINTS)


def infer(expr: Expr, ctx: ConversionContext) -> str | None:
    """Best-effort static type of an expression, None when unknown."""
    match expr:
        case Literal():
            return literal_type(expr, ctx.language)
        case Identifier(name=name):
            return ctx.scope.lookup(name)
        case BinaryExpression(op=op, left=left, right=right):
            return _infer_binary(op, left, right, ctx)
        case UnaryExpression(op="!"):
            return BOOLEAN
        case UnaryExpression(operand=operand):
            return infer(operand, ctx)
        case UpdateExpression(target=target):
            return infer(target, ctx)
        case Assignment(target=target):
            return infer(target, ctx)
        case ConditionalExpression(then=then, otherwise=otherwise):
            return infer(then, ctx) or infer(otherwise, ctx)
        case CastExpression(type=typ):
            table = TYPE_TABLES[ctx.language]
            return table.get(typ.name)
        case IndexExpression(obj=obj):
            base = infer(obj, ctx)
            if base == STRING:
                return CHAR
            return element_of(base)
        case MemberAccess(member="length"):
            return INTEGER
        case MethodCall():
            return _infer_call(expr, ctx)
        case NewArray(elem_type=elem):
            return array_of(TYPE_TABLES[ctx.language].get(elem.name, STRING))
        case ArrayLiteral(elements=elements):
            if elements:
                inner = infer(elements[0], ctx)
                if inner is not None:
                    return array_of(inner)
            return None
        case NewObject(type=typ):
            if typ.name == "String":
                return STRING
            if typ.name in LIST_TYPES and typ.args:
                return array_of(TYPE_TABLES[ctx.language].get(typ.args[0].name, STRING))
            return None
    return None


def _infer_binary(op: str, left: Expr, right: Expr, ctx: ConversionContext) -> str | None:
    if op in ("==", "!=", "===", "!==", "<", ">", "<=", ">=", "&&", "||", "instanceof"):
        return BOOLEAN
    lt = infer(left, ctx)
    rt = infer(right, ctx)
    if op == "+":
        if is_concatenation(left, right, ctx, lt, rt):
            return STRING
    if op == "%":
        return INTEGER if lt != REAL and rt != REAL else REAL
    if op == "/" and ctx.integer_division and lt in NUMERIC and rt in NUMERIC:
        return INTEGER
    if lt == INTEGER and rt == INTEGER:
        if op == "/" and ctx.language == "typescript":
            return REAL
        return INTEGER
    if lt in NUMERIC and rt in NUMERIC:
        return REAL
    if lt == CHAR and rt in NUMERIC or rt == CHAR and lt in NUMERIC:
        return INTEGER
    return lt or rt


def is_concatenation(
    left: Expr,
    right: Expr,
    ctx: ConversionContext,
    lt: str | None = None,
    rt: str | None = None,
) -> bool:
    """True when `left + right` joins text rather than adding numbers."""
    if lt is None:
        lt = infer(left, ctx)
    if rt is None:
        rt = infer(right, ctx)
    if lt == STRING or rt == STRING:
        return True
    if ctx.assume_text_names:
        return (lt is None and _looks_textual(left)) or (
            rt is None and _looks_textual(right)
        )
    return False


def _infer_call(call: MethodCall, ctx: ConversionContext) -> str | None:
    name = call.dotted_name()
    if name is not None:
        if name in DOTTED_RESULT_TYPES:
            return DOTTED_RESULT_TYPES[name]
        if name in ctx.signatures:
            return ctx.signatures[name]
    if isinstance(call.callee, MemberAccess):
        return METHOD_RESULT_TYPES.get(call.callee.member)
    return None


def lookup_type(ref: TypeRef, ctx: ConversionContext) -> str | None:
    """Table lookup without diagnostics; None when the type is not in the table."""
    if ref.dims > 0:
        inner = lookup_type(ref.element(), ctx)
        return array_of(inner) if inner is not None else None
    if ref.name in LIST_TYPES and len(ref.args) == 1:
        inner = lookup_type(ref.args[0], ctx)
        return array_of(inner) if inner is not None else None
    custom = ctx.options.custom_mappings
    if ref.name in custom:
        return custom[ref.name]
    return TYPE_TABLES[ctx.language].get(ref.name)
