"""Library calls with a direct pseudocode spelling."""

from __future__ import annotations

from ..frontend.ast import (
    Expr,
    Literal,
    MemberAccess,
    MethodCall,
    NewObject,
    VariableDeclaration,
)

OUTPUT_CALLEES: set[str] = {
    "System.out.println",
    "System.out.print",
    "System.out.printf",
    "System.err.println",
    "System.err.print",
    "console.log",
    "console.error",
    "console.info",
    "process.stdout.write",
    "OUTPUT",
    "print",
    "println",
}

# Output calls whose first argument is a format string rather than a value.
FORMAT_OUTPUT_CALLEES: set[str] = {"System.out.printf"}

# Reader methods that consume one line or token of input, on any receiver.
INPUT_METHODS: set[str] = {
    "next",
    "nextLine",
    "nextInt",
    "nextLong",
    "nextDouble",
    "nextFloat",
    "nextBoolean",
    "readLine",
}

INPUT_CALLEES: set[str] = {"prompt", "readline", "input", "INPUT"}

# Conversions that may wrap an input call: `Integer.parseInt(sc.nextLine())`.
PARSE_WRAPPERS: set[str] = {
    "Integer.parseInt",
    "Integer.valueOf",
    "Long.parseLong",
    "Double.parseDouble",
    "Double.valueOf",
    "Float.parseFloat",
    "Boolean.parseBoolean",
    "parseInt",
    "parseFloat",
    "Number",
}

# Reader objects whose construction disappears from the output.
READER_TYPES: set[str] = {"Scanner", "BufferedReader", "InputStreamReader"}

STRING_METHODS: set[str] = {
    "length",
    "toUpperCase",
    "toLowerCase",
    "charAt",
    "substring",
    "equals",
    "equalsIgnoreCase",
    "isEmpty",
    "startsWith",
    "endsWith",
    "size",
}

# Calls rendered as comparisons bind like comparison operators.
COMPARISON_METHODS: set[str] = {
    "equals",
    "equalsIgnoreCase",
    "isEmpty",
    "startsWith",
    "endsWith",
}

# name -> (pseudocode template, arity). `{0}` is the first rendered argument.
MATH_FUNCTIONS: dict[str, tuple[str, int]] = {
    "Math.round": ("ROUND({0}, 0)", 1),
    "Math.random": ("RANDOM()", 0),
    "Math.floor": ("INT({0})", 1),
    "Math.trunc": ("INT({0})", 1),
    "Math.pow": ("{0} ^ {1}", 2),
    "Math.sqrt": ("SQRT({0})", 1),
    "Math.abs": ("ABS({0})", 1),
    "Math.max": ("MAX({0}, {1})", 2),
    "Math.min": ("MIN({0}, {1})", 2),
}

CONVERSION_FUNCTIONS: dict[str, str] = {
    "Integer.parseInt": "STR_TO_NUM",
    "Integer.valueOf": "STR_TO_NUM",
    "Long.parseLong": "STR_TO_NUM",
    "Double.parseDouble": "STR_TO_NUM",
    "Double.valueOf": "STR_TO_NUM",
    "Float.parseFloat": "STR_TO_NUM",
    "parseInt": "STR_TO_NUM",
    "parseFloat": "STR_TO_NUM",
    "Number": "STR_TO_NUM",
    "String.valueOf": "NUM_TO_STR",
    "Integer.toString": "NUM_TO_STR",
    "String": "NUM_TO_STR",
}


def is_output_call(expr: Expr) -> bool:
    return isinstance(expr, MethodCall) and expr.dotted_name() in OUTPUT_CALLEES


def is_stream_read(expr: Expr) -> bool:
    """True for a call that reads from the user, possibly wrapped in a parse call."""
    if not isinstance(expr, MethodCall):
        return False
    name = expr.dotted_name()
    if name in INPUT_CALLEES:
        return True
    if name in PARSE_WRAPPERS and len(expr.args) == 1:
        return is_stream_read(expr.args[0])
    if isinstance(expr.callee, MemberAccess) and expr.callee.member in INPUT_METHODS:
        return len(expr.args) == 0
    return False


def input_prompt(expr: Expr) -> Expr | None:
    """Prompt argument of `prompt("...")`-style reads, if any."""
    if not isinstance(expr, MethodCall):
        return None
    name = expr.dotted_name()
    if name in INPUT_CALLEES and expr.args:
        return expr.args[0]
    if name in PARSE_WRAPPERS and len(expr.args) == 1:
        return input_prompt(expr.args[0])
    return None


def is_reader_construction(decl: VariableDeclaration) -> bool:
    """`Scanner sc = new Scanner(System.in);` and friends produce no pseudocode."""
    for d in decl.declarators:
        if not isinstance(d.init, NewObject) or d.init.type.name not in READER_TYPES:
            return False
    return True


def int_literal(expr: Expr) -> int | None:
    if isinstance(expr, Literal) and expr.lit_kind == "int":
        return int(expr.value)
    return None
