"""Statement lowering: source AST to indented pseudocode lines.

Every handler takes a node and a context and returns the lines for that node,
already indented to the context's level. Handlers are looked up in a table
keyed by node class; each dispatch passes through the recursion guard.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import replace

from ..diagnostics import (
    APPROXIMATED,
    FALLTHROUGH,
    TYPE_FALLBACK,
    UNSUPPORTED_CONSTRUCT,
)
from ..errors import UnsupportedConstructError
from ..frontend.ast import (
    ArrayLiteral,
    Assignment,
    BinaryExpression,
    Block,
    BreakStatement,
    ClassDeclaration,
    ContinueStatement,
    Declarator,
    DoWhileStatement,
    EnhancedForStatement,
    Expr,
    ExpressionStatement,
    ForStatement,
    Identifier,
    IfStatement,
    ImportDeclaration,
    InterfaceDeclaration,
    Literal,
    MethodCall,
    MethodDeclaration,
    NewArray,
    NewObject,
    Node,
    Program,
    ReturnStatement,
    Stmt,
    SwitchCase,
    SwitchStatement,
    ThrowStatement,
    TryStatement,
    TypeRef,
    UnaryExpression,
    UpdateExpression,
    VariableDeclaration,
    WhileStatement,
    walk,
)
from . import types
from .builtins import (
    FORMAT_OUTPUT_CALLEES,
    input_prompt,
    is_output_call,
    is_reader_construction,
    is_stream_read,
)
from .context import ConversionContext, LoopFrame
from .exprs import PREC_ADD, PREC_ATOM, ExprConverter, constant_int, precedence

logger = logging.getLogger(__name__)

Handler = Callable[[Node, ConversionContext], list[str]]

# Loop comparison with the loop variable on the right, mirrored to the left.
_MIRRORED: dict[str, str] = {"<": ">", ">": "<", "<=": ">=", ">=": "<="}

_COMPOUND_OPS: dict[str, str] = {
    "+=": "+",
    "-=": "-",
    "*=": "*",
    "/=": "/",
    "%=": "%",
}

_CASE_TERMINATORS = (ReturnStatement, ContinueStatement, ThrowStatement)


def _jump_targets(stmt: Stmt, in_switch: bool) -> set[str]:
    """Which of break/continue can leave `stmt` towards the enclosing loop."""
    found: set[str] = set()
    stack: list[tuple[Node, bool]] = [(stmt, in_switch)]
    seen: set[tuple[int, bool]] = set()
    while stack:
        node, switched = stack.pop()
        if (id(node), switched) in seen:
            continue
        seen.add((id(node), switched))
        match node:
            case BreakStatement():
                if not switched:
                    found.add("break")
            case ContinueStatement():
                found.add("continue")
            case Block(body=body):
                stack.extend((s, switched) for s in body)
            case IfStatement(then=then, orelse=orelse):
                stack.append((then, switched))
                if orelse is not None:
                    stack.append((orelse, switched))
            case SwitchStatement(cases=cases):
                for case in cases:
                    stack.extend((s, True) for s in case.body)
            case TryStatement(block=block, handlers=handlers, finalizer=finalizer):
                stack.append((block, switched))
                stack.extend((h.body, switched) for h in handlers)
                if finalizer is not None:
                    stack.append((finalizer, switched))
    return found


def _breaks_case(stmts: list[Stmt]) -> bool:
    """True when a break nested in `stmts` leaves the enclosing switch."""
    return any("break" in _jump_targets(s, False) for s in stmts)


def _assigns(body: Stmt, name: str) -> bool:
    """True when `body` writes to or redeclares the variable `name`."""
    for node in walk(body):
        match node:
            case Assignment(target=Identifier(name=target)) if target == name:
                return True
            case UpdateExpression(target=Identifier(name=target)) if target == name:
                return True
            case Declarator(name=declared) if declared == name:
                return True
    return False


def _mentions(expr: Expr, name: str) -> bool:
    return any(isinstance(n, Identifier) and n.name == name for n in walk(expr))


def _step(update: Expr, var: str) -> int | None:
    """Constant increment of a for-loop update clause, None if not constant."""
    match update:
        case UpdateExpression(op="++", target=Identifier(name=n)) if n == var:
            return 1
        case UpdateExpression(op="--", target=Identifier(name=n)) if n == var:
            return -1
        case Assignment(op="+=", target=Identifier(name=n), value=value) if n == var:
            return constant_int(value)
        case Assignment(op="-=", target=Identifier(name=n), value=value) if n == var:
            k = constant_int(value)
            return -k if k is not None else None
        case Assignment(
            op="=",
            target=Identifier(name=n),
            value=BinaryExpression(op=("+" | "-") as op, left=Identifier(name=m), right=value),
        ) if n == var and m == var:
            k = constant_int(value)
            if k is None:
                return None
            return k if op == "+" else -k
    return None


def _is_constant_value(expr: Expr) -> bool:
    if isinstance(expr, Literal):
        return expr.lit_kind != "null"
    return (
        isinstance(expr, UnaryExpression)
        and expr.op == "-"
        and isinstance(expr.operand, Literal)
    )


def _innermost(typ: str) -> str:
    while types.is_array(typ):
        typ = types.element_of(typ) or types.STRING
    return typ


class Engine:
    """Table-driven lowering of statements and declarations."""

    def __init__(self) -> None:
        self.exprs = ExprConverter()
        self._handlers: dict[type, Handler] = {
            Program: self._program,
            ImportDeclaration: self._import,
            InterfaceDeclaration: self._interface,
            ClassDeclaration: self._class,
            MethodDeclaration: self._method,
            VariableDeclaration: self._declaration,
            Block: self._block,
            ExpressionStatement: self._expression_statement,
            IfStatement: self._if,
            WhileStatement: self._while,
            DoWhileStatement: self._do_while,
            ForStatement: self._for,
            EnhancedForStatement: self._for_each,
            SwitchStatement: self._switch,
            BreakStatement: self._break,
            ContinueStatement: self._continue,
            ReturnStatement: self._return,
            ThrowStatement: self._throw,
            TryStatement: self._try,
        }

    # ── Dispatch ─────────────────────────────────────────────

    def convert(self, node: Node, ctx: ConversionContext) -> list[str]:
        """Lower one node. Expressions render to a single line."""
        if isinstance(node, Expr):
            return [ctx.line(self.exprs.render(node, ctx))]
        with ctx.guard.visit(node, ctx.depth):
            handler = self._handlers.get(type(node))
            if handler is None:
                raise UnsupportedConstructError(
                    "no lowering for " + node.kind, node.pos.line, node.pos.col
                )
            return handler(node, ctx.descend())

    def statement(self, stmt: Stmt, ctx: ConversionContext) -> list[str]:
        """Lower one statement, degrading unsupported constructs to a placeholder."""
        try:
            return self.convert(stmt, ctx)
        except UnsupportedConstructError as e:
            line = e.line or None
            col = e.col or None
            if ctx.options.strict_mode:
                ctx.diagnostics.add_error(UNSUPPORTED_CONSTRUCT, e.msg, line, col)
            else:
                ctx.diagnostics.add_warning(UNSUPPORTED_CONSTRUCT, e.msg, line, col)
            logger.warning("unsupported construct at line %d: %s", e.line, e.msg)
            return [ctx.line("// UNSUPPORTED: " + e.msg)]

    def _sequence(self, stmts: list[Stmt], ctx: ConversionContext) -> list[str]:
        """Lower a statement list; code after a possible break/continue is guarded."""
        lines: list[str] = []
        for i, stmt in enumerate(stmts):
            lines.extend(self.statement(stmt, ctx))
            rest = stmts[i + 1 :]
            guard = self._rest_guard(stmt, ctx)
            if guard is not None and rest:
                inner = self._sequence(rest, ctx.indented())
                if inner:
                    lines.append(ctx.line("IF " + guard + " THEN"))
                    lines.extend(inner)
                    lines.append(ctx.line("ENDIF"))
                return lines
        return lines

    def _rest_guard(self, stmt: Stmt, ctx: ConversionContext) -> str | None:
        parts: list[str] = []
        if ctx.in_switch and ctx.case_flag is not None and _breaks_case([stmt]):
            parts.append("NOT " + ctx.case_flag)
        if ctx.loop is not None:
            targets = _jump_targets(stmt, ctx.in_switch)
            if "break" in targets and ctx.loop.exit_flag is not None:
                parts.append("NOT " + ctx.loop.exit_flag)
            if "continue" in targets and ctx.loop.skip_flag is not None:
                parts.append("NOT " + ctx.loop.skip_flag)
        if not parts:
            return None
        return " AND ".join(parts)

    def _body(self, stmt: Stmt, ctx: ConversionContext) -> list[str]:
        if isinstance(stmt, Block):
            return self.statement(stmt, ctx)
        return self._sequence([stmt], ctx)

    def _declarations(self, stmts: list[Stmt], ctx: ConversionContext) -> list[str]:
        """Top-level or class-member list; callables are set off by blank lines."""
        lines: list[str] = []
        after_callable = False
        for stmt in stmts:
            out = self.statement(stmt, ctx)
            if not out:
                continue
            is_callable = isinstance(stmt, (MethodDeclaration, ClassDeclaration))
            if lines and (is_callable or after_callable):
                lines.append("")
            lines.extend(out)
            after_callable = is_callable
        return lines

    # ── Declarations ─────────────────────────────────────────

    def _program(self, node: Program, ctx: ConversionContext) -> list[str]:
        self._collect_signatures(node, ctx)
        return self._declarations(node.body, ctx)

    def _collect_signatures(self, node: Program, ctx: ConversionContext) -> None:
        for n in walk(node):
            if isinstance(n, MethodDeclaration) and n.return_type is not None:
                ctx.signatures[n.name] = types.lookup_type(n.return_type, ctx)

    def _import(self, node: ImportDeclaration, ctx: ConversionContext) -> list[str]:
        return ctx.comment(node.path)

    def _interface(self, node: InterfaceDeclaration, ctx: ConversionContext) -> list[str]:
        if ctx.options.strict_mode:
            raise UnsupportedConstructError(
                "interface " + node.name, node.pos.line, node.pos.col
            )
        ctx.diagnostics.add_warning(
            APPROXIMATED,
            "interface " + node.name + " kept as a comment",
            node.pos.line,
            node.pos.col,
        )
        return ctx.comment("INTERFACE " + node.name)

    def _class(self, node: ClassDeclaration, ctx: ConversionContext) -> list[str]:
        ctx.diagnostics.use("classes")
        lines = ctx.comment("CLASS " + node.name)
        if node.superclass is not None:
            lines += ctx.comment("INHERITS " + node.superclass)
        if node.interfaces:
            lines += ctx.comment("IMPLEMENTS " + ", ".join(node.interfaces))
        member_ctx = replace(ctx.in_body(), class_name=node.name)
        lines.extend(self._declarations(node.members, member_ctx))
        return lines

    def _static_note(self, node: Stmt, ctx: ConversionContext) -> list[str]:
        if isinstance(node, MethodDeclaration):
            if "static" in node.modifiers and not self._is_main(node, ctx):
                return ctx.comment("static")
        elif isinstance(node, VariableDeclaration):
            constant = all(
                d.init is not None and _is_constant_value(d.init) for d in node.declarators
            )
            if "static" in node.modifiers and not constant:
                return ctx.comment("static")
        return []

    def _is_main(self, node: MethodDeclaration, ctx: ConversionContext) -> bool:
        return (
            ctx.language == "java"
            and node.name == "main"
            and "static" in node.modifiers
            and ctx.class_name is not None
        )

    def _method(self, node: MethodDeclaration, ctx: ConversionContext) -> list[str]:
        note = self._static_note(node, ctx)
        if node.body is None:
            return note + ctx.comment("abstract " + node.name)
        if self._is_main(node, ctx):
            logger.debug("flattening main of %s", ctx.class_name)
            return self._sequence(node.body.body, ctx.in_body())
        ctx.diagnostics.use("subroutines")
        body_ctx = ctx.in_body().indented()
        params: list[str] = []
        for p in node.params:
            if p.type is not None:
                typ = types.resolve_type(p.type, ctx)
            else:
                typ = self._fallback_type(p.name, p, ctx)
            body_ctx.scope.declare(p.name, typ)
            params.append(p.name + " : " + typ)
        body = self._sequence(node.body.body, body_ctx)
        name = node.name
        lines = list(note)
        if node.is_constructor:
            name = ctx.class_name or node.name
            lines += ctx.comment("constructor")
        returns = self._return_type(node, body_ctx)
        signature = name + "(" + ", ".join(params) + ")"
        if returns is None:
            lines.append(ctx.line("PROCEDURE " + signature))
            lines.extend(body)
            lines.append(ctx.line("ENDPROCEDURE"))
        else:
            lines.append(ctx.line("FUNCTION " + signature + " RETURNS " + returns))
            lines.extend(body)
            lines.append(ctx.line("ENDFUNCTION"))
        return lines

    def _return_type(self, node: MethodDeclaration, ctx: ConversionContext) -> str | None:
        """Declared return type, else the type of the first valued return."""
        if node.is_constructor:
            return None
        if node.return_type is not None:
            return types.resolve_type(node.return_type, ctx)
        assert node.body is not None
        for n in walk(node.body):
            if isinstance(n, ReturnStatement) and n.value is not None:
                typ = types.infer(n.value, ctx)
                if typ is None:
                    typ = self._fallback_type(node.name, node, ctx)
                ctx.signatures[node.name] = typ
                return typ
        return None

    def _fallback_type(self, name: str, node: Node, ctx: ConversionContext) -> str:
        if ctx.options.strict_mode:
            raise UnsupportedConstructError(
                "cannot determine the type of '" + name + "'",
                node.pos.line,
                node.pos.col,
            )
        ctx.diagnostics.add_warning(
            TYPE_FALLBACK,
            "type of '" + name + "' unknown, declared as STRING",
            node.pos.line,
            node.pos.col,
        )
        return types.STRING

    def _declaration(self, node: VariableDeclaration, ctx: ConversionContext) -> list[str]:
        if is_reader_construction(node):
            ctx.diagnostics.use("input")
            return []
        lines = self._static_note(node, ctx)
        for d in node.declarators:
            lines.extend(self._declarator(node, d, ctx))
        return lines

    def _declarator(
        self, node: VariableDeclaration, d: Declarator, ctx: ConversionContext
    ) -> list[str]:
        ref = d.type or node.type
        if ref is not None and d.dims:
            ref = TypeRef(ref.pos, ref.name, ref.args, ref.dims + d.dims)
        if ref is not None:
            typ = types.resolve_type(ref, ctx)
        else:
            inferred = types.infer(d.init, ctx) if d.init is not None else None
            typ = inferred or self._fallback_type(d.name, d, ctx)
        ctx.scope.declare(d.name, typ)
        if types.is_array(typ):
            return self._array_declaration(d, typ, ctx)
        init = d.init
        if init is not None and node.is_constant() and _is_constant_value(init):
            ctx.diagnostics.use("constants")
            return [ctx.line("CONSTANT " + d.name + " = " + self.exprs.render(init, ctx))]
        lines = [ctx.line("DECLARE " + d.name + " : " + typ)]
        if init is None:
            return lines
        if is_stream_read(init):
            lines.extend(self._input(d.name, init, ctx))
        else:
            lines.append(ctx.line(d.name + " ← " + self.exprs.render(init, ctx)))
        return lines

    def _array_declaration(
        self, d: Declarator, typ: str, ctx: ConversionContext
    ) -> list[str]:
        ctx.diagnostics.use("arrays")
        base = _innermost(typ)
        init: Expr | None = d.init
        if isinstance(init, NewArray) and init.init is not None:
            init = init.init
        if isinstance(init, NewArray) and init.sizes:
            bounds = ", ".join("0:" + self.exprs.plus(s, -1, ctx) for s in init.sizes)
            return [ctx.line("DECLARE " + d.name + " : ARRAY[" + bounds + "] OF " + base)]
        if isinstance(init, ArrayLiteral) and init.elements:
            return self._array_literal(d.name, init, base, ctx)
        if init is None or isinstance(init, (ArrayLiteral, NewArray, NewObject)):
            ctx.diagnostics.add_warning(
                TYPE_FALLBACK,
                "size of array '" + d.name + "' unknown, declared as ARRAY[0:0]",
                d.pos.line,
                d.pos.col,
            )
            return [ctx.line("DECLARE " + d.name + " : ARRAY[0:0] OF " + base)]
        value = self.exprs.render(init, ctx)
        return [
            ctx.line(
                "DECLARE " + d.name + " : ARRAY[0:LENGTH(" + value + ") - 1] OF " + base
            ),
            ctx.line(d.name + " ← " + value),
        ]

    def _array_literal(
        self, name: str, init: ArrayLiteral, base: str, ctx: ConversionContext
    ) -> list[str]:
        rows = init.elements
        if all(isinstance(r, ArrayLiteral) and r.elements for r in rows):
            width = max(len(r.elements) for r in rows if isinstance(r, ArrayLiteral))
            bounds = "0:" + str(len(rows) - 1) + ", 0:" + str(width - 1)
            lines = [ctx.line("DECLARE " + name + " : ARRAY[" + bounds + "] OF " + base)]
            for i, row in enumerate(rows):
                assert isinstance(row, ArrayLiteral)
                for j, cell in enumerate(row.elements):
                    value = self.exprs.render(cell, ctx)
                    lines.append(
                        ctx.line(name + "[" + str(i) + ", " + str(j) + "] ← " + value)
                    )
            return lines
        bounds = "0:" + str(len(rows) - 1)
        lines = [ctx.line("DECLARE " + name + " : ARRAY[" + bounds + "] OF " + base)]
        for i, cell in enumerate(rows):
            lines.append(
                ctx.line(name + "[" + str(i) + "] ← " + self.exprs.render(cell, ctx))
            )
        return lines

    # ── Simple statements ────────────────────────────────────

    def _block(self, node: Block, ctx: ConversionContext) -> list[str]:
        return self._sequence(node.body, ctx.with_scope())

    def _expression_statement(
        self, node: ExpressionStatement, ctx: ConversionContext
    ) -> list[str]:
        return self._effect(node.expr, ctx)

    def _effect(self, expr: Expr, ctx: ConversionContext) -> list[str]:
        """Lower an expression evaluated for its side effect."""
        match expr:
            case Assignment(op="=", target=target, value=Assignment() as inner):
                lines = self._effect(inner, ctx)
                return lines + [
                    ctx.line(
                        self.exprs.render(target, ctx)
                        + " ← "
                        + self.exprs.render(inner.target, ctx)
                    )
                ]
            case Assignment(op="=", target=target, value=value):
                text = self.exprs.render(target, ctx)
                if is_stream_read(value):
                    return self._input(text, value, ctx)
                return [ctx.line(text + " ← " + self.exprs.render(value, ctx))]
            case Assignment(op=op, target=target, value=value) if op in _COMPOUND_OPS:
                combined = BinaryExpression(expr.pos, _COMPOUND_OPS[op], target, value)
                return [
                    ctx.line(
                        self.exprs.render(target, ctx)
                        + " ← "
                        + self.exprs.render(combined, ctx)
                    )
                ]
            case UpdateExpression(op=op, target=target):
                text = self.exprs.operand(target, PREC_ADD, False, ctx)
                sign = " + 1" if op == "++" else " - 1"
                return [ctx.line(self.exprs.render(target, ctx) + " ← " + text + sign)]
            case MethodCall() if self._is_output(expr, ctx):
                return self._output(expr, ctx)
            case MethodCall():
                return [ctx.line("CALL " + self.exprs.render(expr, ctx))]
        raise UnsupportedConstructError(
            expr.kind + " used as a statement", expr.pos.line, expr.pos.col
        )

    def _is_output(self, call: MethodCall, ctx: ConversionContext) -> bool:
        name = call.dotted_name()
        if name is not None and name in ctx.options.custom_mappings:
            return ctx.options.custom_mappings[name] == "OUTPUT"
        return is_output_call(call)

    def _output(self, call: MethodCall, ctx: ConversionContext) -> list[str]:
        ctx.diagnostics.use("output")
        if call.dotted_name() in FORMAT_OUTPUT_CALLEES:
            ctx.diagnostics.add_warning(
                APPROXIMATED,
                "format string output as a plain value",
                call.pos.line,
                call.pos.col,
            )
        items: list[str] = []
        for arg in call.args:
            items.extend(self._output_items(arg, ctx))
        if not items:
            return [ctx.line('OUTPUT ""')]
        return [ctx.line("OUTPUT " + ", ".join(items))]

    def _output_items(self, expr: Expr, ctx: ConversionContext) -> list[str]:
        """Split a string concatenation into separate OUTPUT items."""
        if (
            isinstance(expr, BinaryExpression)
            and expr.op == "+"
            and types.is_concatenation(expr.left, expr.right, ctx)
        ):
            with ctx.guard.visit(expr, ctx.depth):
                inner = ctx.descend()
                return self._output_items(expr.left, inner) + self._output_items(
                    expr.right, inner
                )
        return [self.exprs.render(expr, ctx)]

    def _input(self, target: str, read: Expr, ctx: ConversionContext) -> list[str]:
        ctx.diagnostics.use("input")
        lines: list[str] = []
        prompt = input_prompt(read)
        if prompt is not None:
            lines.append(ctx.line("OUTPUT " + self.exprs.render(prompt, ctx)))
        lines.append(ctx.line("INPUT " + target))
        return lines

    def _return(self, node: ReturnStatement, ctx: ConversionContext) -> list[str]:
        if node.value is None:
            return [ctx.line("RETURN")]
        return [ctx.line("RETURN " + self.exprs.render(node.value, ctx))]

    def _throw(self, node: ThrowStatement, ctx: ConversionContext) -> list[str]:
        if ctx.options.strict_mode:
            raise UnsupportedConstructError("throw statement", node.pos.line, node.pos.col)
        ctx.diagnostics.add_warning(
            APPROXIMATED, "throw kept as a comment", node.pos.line, node.pos.col
        )
        value = node.value
        what = value.type.name if isinstance(value, NewObject) else value.kind
        return ctx.comment("THROW " + what)

    def _try(self, node: TryStatement, ctx: ConversionContext) -> list[str]:
        if ctx.options.strict_mode:
            raise UnsupportedConstructError("try statement", node.pos.line, node.pos.col)
        ctx.diagnostics.add_warning(
            APPROXIMATED,
            "try/catch flattened, handlers kept as comments",
            node.pos.line,
            node.pos.col,
        )
        lines = ctx.comment("TRY")
        lines.extend(self._body(node.block, ctx))
        for handler in node.handlers:
            caught = handler.type.name if handler.type is not None else "error"
            lines += ctx.comment("CATCH " + handler.name + " : " + caught)
        if node.finalizer is not None:
            lines += ctx.comment("FINALLY")
            lines.extend(self._body(node.finalizer, ctx))
        return lines

    # ── Conditionals ─────────────────────────────────────────

    def _if(self, node: IfStatement, ctx: ConversionContext) -> list[str]:
        ctx.diagnostics.use("selection")
        keyword = "ELSE IF " if ctx.else_chain else "IF "
        lines = [ctx.line(keyword + self.exprs.render(node.cond, ctx) + " THEN")]
        lines.extend(self._body(node.then, ctx.indented()))
        orelse = node.orelse
        if isinstance(orelse, IfStatement):
            lines.extend(self.statement(orelse, replace(ctx, else_chain=True)))
        elif orelse is not None:
            lines.append(ctx.line("ELSE"))
            lines.extend(self._body(orelse, ctx.indented()))
        if not ctx.else_chain:
            lines.append(ctx.line("ENDIF"))
        return lines

    def _switch(self, node: SwitchStatement, ctx: ConversionContext) -> list[str]:
        ctx.diagnostics.use("selection")
        groups = self._case_groups(node, ctx)
        lines: list[str] = []
        case_flag: str | None = None
        if any(_breaks_case(body) for _, body in groups):
            ctx.diagnostics.use("loop-flags")
            case_flag = "ExitCase" + str(ctx.flags.next_id())
            lines.append(ctx.line("DECLARE " + case_flag + " : BOOLEAN"))
        lines.append(ctx.line("CASE OF " + self.exprs.render(node.discriminant, ctx)))
        label_ctx = ctx.indented()
        body_ctx = replace(ctx.indented(2), in_switch=True, case_flag=case_flag)
        for labels, body in groups:
            head = "OTHERWISE" if labels is None else ", ".join(labels)
            scoped = body_ctx.with_scope()
            rendered = self._sequence(body, scoped)
            if case_flag is not None and _breaks_case(body):
                rendered.insert(0, scoped.line(case_flag + " ← FALSE"))
            if len(rendered) == 1:
                lines.append(label_ctx.line(head + " : " + rendered[0].lstrip()))
            else:
                lines.append(label_ctx.line(head + " :"))
                lines.extend(rendered)
        lines.append(ctx.line("ENDCASE"))
        return lines

    def _case_groups(
        self, node: SwitchStatement, ctx: ConversionContext
    ) -> list[tuple[list[str] | None, list[Stmt]]]:
        """(labels, body) per distinct body; labels is None for the default group."""
        groups: list[tuple[list[str] | None, list[Stmt]]] = []
        default: tuple[list[str] | None, list[Stmt]] | None = None
        pending: list[str] = []
        has_default = False
        for i, case in enumerate(node.cases):
            if case.test is None:
                has_default = True
            else:
                pending.append(self.exprs.render(case.test, ctx))
            if not case.body and i + 1 < len(node.cases):
                continue
            body = self._case_body(node.cases, i, ctx)
            if has_default:
                default = (None, body)
            else:
                groups.append((pending, body))
            pending = []
            has_default = False
        if default is not None:
            groups.append(default)
        return groups

    def _case_body(
        self, cases: list[SwitchCase], start: int, ctx: ConversionContext
    ) -> list[Stmt]:
        body: list[Stmt] = []
        for i in range(start, len(cases)):
            if i == start + 1:
                ctx.diagnostics.add_warning(
                    FALLTHROUGH,
                    "case falls through, following body copied",
                    cases[start].pos.line,
                    cases[start].pos.col,
                )
            if self._case_statements(cases[i].body, body, ctx):
                return body
        return body

    def _case_statements(
        self, stmts: list[Stmt], body: list[Stmt], ctx: ConversionContext
    ) -> bool:
        """Append statements to `body` up to the case terminator; True once reached.

        Braced blocks are opened so `case 1: { ...; break; }` ends at its break.
        """
        for stmt in stmts:
            if isinstance(stmt, BreakStatement):
                return True
            if isinstance(stmt, Block):
                with ctx.guard.visit(stmt, ctx.depth):
                    if self._case_statements(stmt.body, body, ctx.descend()):
                        return True
                continue
            body.append(stmt)
            if isinstance(stmt, _CASE_TERMINATORS):
                return True
        return False

    # ── Loops ────────────────────────────────────────────────

    def _loop_frame(
        self, body: Stmt, ctx: ConversionContext
    ) -> tuple[LoopFrame, list[str]]:
        """Allocate the sentinels a loop body needs and declare them."""
        targets = _jump_targets(body, False)
        if not targets:
            return LoopFrame(), []
        ctx.diagnostics.use("loop-flags")
        n = str(ctx.flags.next_id())
        lines: list[str] = []
        exit_flag: str | None = None
        skip_flag: str | None = None
        if "break" in targets:
            exit_flag = "ExitLoop" + n
            lines.append(ctx.line("DECLARE " + exit_flag + " : BOOLEAN"))
            lines.append(ctx.line(exit_flag + " ← FALSE"))
        if "continue" in targets:
            skip_flag = "SkipRest" + n
            lines.append(ctx.line("DECLARE " + skip_flag + " : BOOLEAN"))
        return LoopFrame(exit_flag, skip_flag), lines

    def _loop_body(
        self, body: Stmt, frame: LoopFrame, ctx: ConversionContext
    ) -> list[str]:
        inner = ctx.indented().in_loop(frame)
        lines: list[str] = []
        if frame.skip_flag is not None:
            lines.append(inner.line(frame.skip_flag + " ← FALSE"))
        lines.extend(self._body(body, inner))
        return lines

    def _condition(self, cond: Expr | None, frame: LoopFrame, ctx: ConversionContext) -> str:
        if cond is None:
            text, prec = "TRUE", PREC_ATOM
        else:
            text, prec = self.exprs.render(cond, ctx), precedence(cond)
        if frame.exit_flag is None:
            return text
        if prec < 2:
            text = "(" + text + ")"
        return text + " AND NOT " + frame.exit_flag

    def _while(self, node: WhileStatement, ctx: ConversionContext) -> list[str]:
        ctx.diagnostics.use("iteration")
        frame, lines = self._loop_frame(node.body, ctx)
        lines.append(ctx.line("WHILE " + self._condition(node.cond, frame, ctx) + " DO"))
        lines.extend(self._loop_body(node.body, frame, ctx))
        lines.append(ctx.line("ENDWHILE"))
        return lines

    def _do_while(self, node: DoWhileStatement, ctx: ConversionContext) -> list[str]:
        ctx.diagnostics.use("iteration")
        frame, lines = self._loop_frame(node.body, ctx)
        lines.append(ctx.line("REPEAT"))
        lines.extend(self._loop_body(node.body, frame, ctx))
        until = self.exprs.negate(node.cond, ctx)
        if frame.exit_flag is not None:
            until += " OR " + frame.exit_flag
        lines.append(ctx.line("UNTIL " + until))
        return lines

    def _for(self, node: ForStatement, ctx: ConversionContext) -> list[str]:
        ctx.diagnostics.use("iteration")
        scoped = ctx.with_scope()
        counted = self._count_pattern(node)
        if counted is None or "break" in _jump_targets(node.body, False):
            return self._for_as_while(node, scoped)
        var, start, bound, op, step = counted
        lines: list[str] = []
        if isinstance(node.init[0], VariableDeclaration):
            scoped.scope.declare(var, types.INTEGER)
        frame, pre = self._loop_frame(node.body, scoped)
        lines.extend(pre)
        match op:
            case "<":
                end = self.exprs.plus(bound, -1, scoped)
            case ">":
                end = self.exprs.plus(bound, 1, scoped)
            case _:
                end = self.exprs.render(bound, scoped)
        header = "FOR " + var + " ← " + self.exprs.render(start, scoped) + " TO " + end
        if step != 1:
            header += " STEP " + str(step)
        lines.append(ctx.line(header))
        lines.extend(self._loop_body(node.body, frame, scoped))
        lines.append(ctx.line("NEXT " + var))
        return lines

    def _count_pattern(self, node: ForStatement) -> tuple[str, Expr, Expr, str, int] | None:
        """(var, start, bound, comparison, step) of a countable three-clause for."""
        if len(node.init) != 1 or node.cond is None or len(node.update) != 1:
            return None
        match node.init[0]:
            case VariableDeclaration(declarators=[Declarator(name=var, init=start)]):
                pass
            case ExpressionStatement(
                expr=Assignment(op="=", target=Identifier(name=var), value=start)
            ):
                pass
            case _:
                return None
        if start is None:
            return None
        cond = node.cond
        if not isinstance(cond, BinaryExpression) or cond.op not in _MIRRORED:
            return None
        if isinstance(cond.left, Identifier) and cond.left.name == var:
            op, bound = cond.op, cond.right
        elif isinstance(cond.right, Identifier) and cond.right.name == var:
            op, bound = _MIRRORED[cond.op], cond.left
        else:
            return None
        step = _step(node.update[0], var)
        if not step:
            return None
        if (op in ("<", "<=")) != (step > 0):
            return None
        if _mentions(bound, var) or _assigns(node.body, var):
            return None
        return var, start, bound, op, step

    def _for_as_while(self, node: ForStatement, ctx: ConversionContext) -> list[str]:
        """init; WHILE cond DO body; update ENDWHILE."""
        lines: list[str] = []
        for init in node.init:
            lines.extend(self.statement(init, ctx))
        frame, pre = self._loop_frame(node.body, ctx)
        lines.extend(pre)
        lines.append(ctx.line("WHILE " + self._condition(node.cond, frame, ctx) + " DO"))
        lines.extend(self._loop_body(node.body, frame, ctx))
        inner = ctx.indented()
        if node.update and frame.exit_flag is not None:
            lines.append(inner.line("IF NOT " + frame.exit_flag + " THEN"))
            for update in node.update:
                lines.extend(self._effect(update, inner.indented()))
            lines.append(inner.line("ENDIF"))
        else:
            for update in node.update:
                lines.extend(self._effect(update, inner))
        lines.append(ctx.line("ENDWHILE"))
        return lines

    def _for_each(self, node: EnhancedForStatement, ctx: ConversionContext) -> list[str]:
        if node.over_keys:
            raise UnsupportedConstructError(
                "for...in loop over keys", node.pos.line, node.pos.col
            )
        ctx.diagnostics.use("iteration")
        scoped = ctx.with_scope()
        if node.var_type is not None:
            elem: str | None = types.resolve_type(node.var_type, ctx)
        else:
            elem = types.element_of(types.infer(node.iterable, ctx))
        if elem is not None:
            scoped.scope.declare(node.name, elem)
        frame, lines = self._loop_frame(node.body, scoped)
        iterable = self.exprs.render(node.iterable, scoped)
        lines.append(ctx.line("FOR EACH " + node.name + " IN " + iterable))
        if frame.exit_flag is None:
            lines.extend(self._loop_body(node.body, frame, scoped))
        else:
            inner = scoped.indented().in_loop(frame)
            if frame.skip_flag is not None:
                lines.append(inner.line(frame.skip_flag + " ← FALSE"))
            lines.append(inner.line("IF NOT " + frame.exit_flag + " THEN"))
            lines.extend(self._body(node.body, inner.indented()))
            lines.append(inner.line("ENDIF"))
        lines.append(ctx.line("NEXT " + node.name))
        return lines

    # ── Jumps ────────────────────────────────────────────────

    def _break(self, node: BreakStatement, ctx: ConversionContext) -> list[str]:
        if ctx.in_switch and ctx.case_flag is not None:
            return [ctx.line(ctx.case_flag + " ← TRUE")]
        if ctx.loop is None or ctx.loop.exit_flag is None:
            raise UnsupportedConstructError("break outside a loop", node.pos.line, node.pos.col)
        return [ctx.line(ctx.loop.exit_flag + " ← TRUE")]

    def _continue(self, node: ContinueStatement, ctx: ConversionContext) -> list[str]:
        if ctx.loop is None or ctx.loop.skip_flag is None:
            raise UnsupportedConstructError(
                "continue outside a loop", node.pos.line, node.pos.col
            )
        return [ctx.line(ctx.loop.skip_flag + " ← TRUE")]
