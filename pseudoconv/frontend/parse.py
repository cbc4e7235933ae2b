"""Parser: recursive descent for statements, precedence climbing for expressions."""

from __future__ import annotations

import logging

from ..errors import ParseError, RecursionLimitExceeded
from .ast import (
    ArrayLiteral,
    Assignment,
    BinaryExpression,
    Block,
    BreakStatement,
    CastExpression,
    CatchClause,
    ClassDeclaration,
    ConditionalExpression,
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
    IndexExpression,
    InterfaceDeclaration,
    LambdaExpression,
    Literal,
    MemberAccess,
    MethodCall,
    MethodDeclaration,
    NewArray,
    NewObject,
    Parameter,
    Pos,
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
)
from .tokens import (
    TK_CHAR,
    TK_EOF,
    TK_IDENT,
    TK_INT,
    TK_OP,
    TK_REAL,
    TK_STRING,
    Token,
    tokenize,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 50

ASSIGN_OPS: set[str] = {"=", "+=", "-=", "*=", "/=", "%="}

# Binding power of binary operators, lowest first. Assignment and the
# conditional operator sit below this table and are parsed separately.
BINARY_PRECEDENCE: dict[str, int] = {
    "||": 1,
    "&&": 2,
    "==": 3,
    "!=": 3,
    "===": 3,
    "!==": 3,
    "<": 4,
    ">": 4,
    "<=": 4,
    ">=": 4,
    "instanceof": 4,
    "+": 5,
    "-": 5,
    "&": 5,
    "*": 6,
    "/": 6,
    "%": 6,
}

JAVA_PRIMITIVES: set[str] = {
    "int",
    "long",
    "short",
    "byte",
    "double",
    "float",
    "boolean",
    "char",
    "void",
}

MODIFIERS: set[str] = {
    "public",
    "private",
    "protected",
    "static",
    "final",
    "abstract",
    "export",
    "readonly",
    "synchronized",
    "transient",
    "volatile",
    "native",
    "declare",
    "async",
    "default",
}

NULL_TYPES: set[str] = {"null", "undefined"}


class Parser:
    """Recursive descent parser for Java and TypeScript."""

    def __init__(
        self, tokens: list[Token], language: str, max_depth: int = DEFAULT_MAX_DEPTH
    ):
        self.tokens: list[Token] = tokens
        self.language: str = language
        self.max_depth: int = max_depth
        self.pos: int = 0
        self.depth: int = 0

    # ── Helpers ──────────────────────────────────────────────

    def current(self) -> Token:
        return self.tokens[self.pos]

    def peek(self, offset: int) -> Token:
        idx = self.pos + offset
        if idx >= len(self.tokens):
            return self.tokens[len(self.tokens) - 1]
        return self.tokens[idx]

    def advance(self) -> Token:
        tok = self.tokens[self.pos]
        if tok.type != TK_EOF:
            self.pos += 1
        return tok

    def at(self, value: str) -> bool:
        tok = self.current()
        return tok.value == value and tok.type not in (TK_STRING, TK_CHAR)

    def at_type(self, type_: str) -> bool:
        return self.current().type == type_

    def at_ident(self) -> bool:
        return self.current().type == TK_IDENT

    def expect(self, value: str) -> Token:
        if not self.at(value):
            raise self.error("expected '" + value + "', got " + self._describe())
        return self.advance()

    def expect_ident(self) -> Token:
        tok = self.current()
        if tok.type != TK_IDENT:
            raise self.error("expected identifier, got " + self._describe())
        return self.advance()

    def error(self, msg: str) -> ParseError:
        tok = self.current()
        return ParseError(msg, tok.line, tok.col)

    def _describe(self) -> str:
        tok = self.current()
        if tok.type == TK_EOF:
            return "end of input"
        return "'" + tok.text + "'"

    def _span(self, start: Token) -> Pos:
        """Span from start through the last consumed token."""
        last = self.tokens[self.pos - 1] if self.pos > 0 else start
        return Pos(start.line, start.col, start.offset, max(last.end, start.end))

    def _span_from(self, pos: Pos) -> Pos:
        last = self.tokens[self.pos - 1]
        return Pos(pos.line, pos.col, pos.offset, last.end)

    def _enter(self) -> None:
        self.depth += 1
        if self.depth > self.max_depth:
            tok = self.current()
            raise RecursionLimitExceeded(
                "nesting exceeds maximum depth of " + str(self.max_depth),
                tok.line,
                tok.col,
            )

    def _is_java(self) -> bool:
        return self.language == "java"

    # ── Top Level ────────────────────────────────────────────

    def parse_program(self) -> Program:
        start = self.current()
        body: list[Stmt] = []
        while not self.at_type(TK_EOF):
            if self.at(";"):
                self.advance()
                continue
            body.append(self.parse_top_level())
        return Program(self._span(start), self.language, body)

    def parse_top_level(self) -> Stmt:
        self._skip_annotations()
        if self.at("import") or self.at("package"):
            return self.parse_import()
        if self.at("export") and self.peek(1).value in ("{", "*"):
            return self.parse_import()
        i = self._skip_modifiers(self.pos)
        tok = self.tokens[i]
        if tok.value == "class":
            return self.parse_class()
        if tok.value == "interface":
            return self.parse_interface()
        if tok.value == "function":
            return self.parse_function()
        if self._is_java() and self._is_method_start():
            return self.parse_java_method(None)
        return self.parse_stmt()

    def _skip_annotations(self) -> None:
        while self.at("@") and self.peek(1).type == TK_IDENT:
            self.advance()
            self.advance()
            while self.at(".") and self.peek(1).type == TK_IDENT:
                self.advance()
                self.advance()
            if self.at("("):
                self._skip_balanced("(", ")")

    def _skip_balanced(self, open_: str, close: str) -> None:
        self.expect(open_)
        depth = 1
        while depth > 0:
            if self.at_type(TK_EOF):
                raise self.error("expected '" + close + "', got end of input")
            tok = self.advance()
            if tok.type == TK_OP and tok.value == open_:
                depth += 1
            elif tok.type == TK_OP and tok.value == close:
                depth -= 1

    def _skip_modifiers(self, i: int) -> int:
        while self.tokens[i].value in MODIFIERS and self.tokens[i].type != TK_STRING:
            # `readonly` and friends are plain names in other positions
            if self.tokens[i + 1].value in ("(", "=", ":", ";"):
                break
            i += 1
        return i

    def parse_modifiers(self) -> list[str]:
        mods: list[str] = []
        end = self._skip_modifiers(self.pos)
        while self.pos < end:
            mods.append(self.advance().value)
        return mods

    def parse_import(self) -> ImportDeclaration:
        """Import = ( 'import' | 'package' | 'export' ) ... ';'"""
        start = self.current()
        parts: list[str] = []
        depth = 0
        while not (self.at(";") and depth == 0):
            if self.at_type(TK_EOF):
                raise self.error("expected ';' after import, got end of input")
            tok = self.advance()
            if tok.value == "{":
                depth += 1
            elif tok.value == "}":
                depth -= 1
            parts.append(tok.text)
        self.expect(";")
        path = ""
        for i, part in enumerate(parts):
            if i > 0 and part not in (".", ",", ";") and parts[i - 1] != ".":
                path += " "
            path += part
        return ImportDeclaration(self._span(start), path)

    def parse_interface(self) -> InterfaceDeclaration:
        start = self.current()
        self.parse_modifiers()
        self.expect("interface")
        name_tok = self.expect_ident()
        while not self.at("{"):
            if self.at_type(TK_EOF):
                raise self.error("expected '{', got end of input")
            self.advance()
        self._skip_balanced("{", "}")
        return InterfaceDeclaration(self._span(start), name_tok.value)

    def parse_class(self) -> ClassDeclaration:
        """Class = Modifiers 'class' IDENT [ '<' ... '>' ] [ 'extends' Type ] [ 'implements' Type,* ] ClassBody"""
        start = self.current()
        modifiers = self.parse_modifiers()
        self.expect("class")
        name_tok = self.expect_ident()
        if self.at("<"):
            self._skip_balanced("<", ">")
        superclass: str | None = None
        interfaces: list[str] = []
        if self.at("extends"):
            self.advance()
            superclass = self.parse_type().name
        if self.at("implements"):
            self.advance()
            interfaces.append(self.parse_type().name)
            while self.at(","):
                self.advance()
                interfaces.append(self.parse_type().name)
        self.expect("{")
        members: list[Stmt] = []
        while not self.at("}"):
            if self.at_type(TK_EOF):
                raise self.error("expected '}' to close class " + name_tok.value)
            if self.at(";"):
                self.advance()
                continue
            members.append(self.parse_member(name_tok.value))
        self.expect("}")
        return ClassDeclaration(
            self._span(start), name_tok.value, modifiers, superclass, interfaces, members
        )

    def parse_member(self, class_name: str) -> Stmt:
        self._skip_annotations()
        i = self._skip_modifiers(self.pos)
        tok = self.tokens[i]
        if tok.value == "class":
            return self.parse_class()
        if tok.value == "interface":
            return self.parse_interface()
        if tok.value == "{":
            self.parse_modifiers()
            return self.parse_block()
        if self._is_java():
            if tok.value == class_name and self.tokens[i + 1].value == "(":
                return self.parse_java_method(class_name)
            if self._is_method_start():
                return self.parse_java_method(None)
            return self.parse_java_field()
        return self.parse_ts_member()

    # ── Java declarations ────────────────────────────────────

    def _scan_type(self, i: int) -> int | None:
        """Lookahead over a type starting at token i; returns the index after it."""
        tok = self.tokens[i]
        if tok.type != TK_IDENT and tok.value not in JAVA_PRIMITIVES:
            return None
        i += 1
        while self.tokens[i].value == "." and self.tokens[i + 1].type == TK_IDENT:
            i += 2
        if self.tokens[i].value == "<" and self.tokens[i].type == TK_OP:
            depth = 0
            while True:
                t = self.tokens[i]
                if t.type == TK_OP and t.value == "<":
                    depth += 1
                elif t.type == TK_OP and t.value == ">":
                    depth -= 1
                    if depth == 0:
                        i += 1
                        break
                elif not (
                    t.type == TK_IDENT
                    or t.value in JAVA_PRIMITIVES
                    or t.value in (",", ".", "?", "[", "]", "extends")
                ):
                    return None
                i += 1
        while self.tokens[i].value == "[" and self.tokens[i + 1].value == "]":
            i += 2
        return i

    def _is_local_decl(self) -> bool:
        i = self.pos
        while self.tokens[i].value == "final":
            i += 1
        j = self._scan_type(i)
        if j is None or self.tokens[j].type != TK_IDENT:
            return False
        return self.tokens[j + 1].value in ("=", ";", ",", "[", ":")

    def _is_method_start(self) -> bool:
        i = self._skip_modifiers(self.pos)
        if self.tokens[i].value == "<":
            return True
        j = self._scan_type(i)
        if j is None or self.tokens[j].type != TK_IDENT:
            return False
        return self.tokens[j + 1].value == "("

    def parse_java_method(self, constructor_of: str | None) -> MethodDeclaration:
        """Method = Modifiers [ TypeParams ] ( Type IDENT | ClassName ) Params [ 'throws' ... ] ( Block | ';' )"""
        start = self.current()
        modifiers = self.parse_modifiers()
        if self.at("<"):
            self._skip_balanced("<", ">")
        return_type: TypeRef | None = None
        if constructor_of is None:
            return_type = self.parse_type()
        name_tok = self.expect_ident()
        params = self.parse_params()
        if self.at("throws"):
            self.advance()
            self.parse_type()
            while self.at(","):
                self.advance()
                self.parse_type()
        body: Block | None = None
        if self.at(";"):
            self.advance()
        else:
            body = self.parse_block()
        if return_type is not None and return_type.name == "void":
            return_type = None
        return MethodDeclaration(
            self._span(start),
            name_tok.value,
            modifiers,
            return_type,
            params,
            body,
            constructor_of is not None,
        )

    def parse_params(self) -> list[Parameter]:
        """Params = '(' ( Param ( ',' Param )* )? ')'"""
        self.expect("(")
        params: list[Parameter] = []
        if not self.at(")"):
            params.append(self.parse_param())
            while self.at(","):
                self.advance()
                params.append(self.parse_param())
        self.expect(")")
        return params

    def parse_param(self) -> Parameter:
        start = self.current()
        self._skip_annotations()
        if self._is_java():
            while self.at("final"):
                self.advance()
            typ = self.parse_type()
            if self.at(".") and self.peek(1).value == "." and self.peek(2).value == ".":
                self.advance()
                self.advance()
                self.advance()
                typ.dims += 1
            name_tok = self.expect_ident()
            while self.at("[") and self.peek(1).value == "]":
                self.advance()
                self.advance()
                typ.dims += 1
            return Parameter(self._span(start), name_tok.value, typ)
        self.parse_modifiers()
        name_tok = self.expect_ident()
        if self.at("?"):
            self.advance()
        ts_type: TypeRef | None = None
        if self.at(":"):
            self.advance()
            ts_type = self.parse_type()
        if self.at("="):
            self.advance()
            self.parse_expr()
        return Parameter(self._span(start), name_tok.value, ts_type)

    def parse_java_field(self) -> VariableDeclaration:
        start = self.current()
        modifiers = self.parse_modifiers()
        typ = self.parse_type()
        declarators = self.parse_declarators()
        self.expect(";")
        return VariableDeclaration(self._span(start), modifiers, typ, declarators)

    # ── TypeScript declarations ──────────────────────────────

    def parse_function(self) -> MethodDeclaration:
        """Function = Modifiers 'function' IDENT Params [ ':' Type ] Block"""
        start = self.current()
        modifiers = self.parse_modifiers()
        self.expect("function")
        name_tok = self.expect_ident()
        if self.at("<"):
            self._skip_balanced("<", ">")
        params = self.parse_params()
        return_type = self._parse_ts_return_type()
        body = self.parse_block()
        return MethodDeclaration(
            self._span(start), name_tok.value, modifiers, return_type, params, body
        )

    def _parse_ts_return_type(self) -> TypeRef | None:
        if not self.at(":"):
            return None
        self.advance()
        typ = self.parse_type()
        if typ.name == "void":
            return None
        return typ

    def parse_ts_member(self) -> Stmt:
        start = self.current()
        modifiers = self.parse_modifiers()
        name_tok = self.current()
        if name_tok.type != TK_IDENT:
            raise self.error("expected class member, got " + self._describe())
        self.advance()
        if self.at("("):
            is_ctor = name_tok.value == "constructor"
            params = self.parse_params()
            return_type = self._parse_ts_return_type()
            body = self.parse_block()
            return MethodDeclaration(
                self._span(start),
                name_tok.value,
                modifiers,
                return_type,
                params,
                body,
                is_ctor,
            )
        if self.at("?"):
            self.advance()
        typ: TypeRef | None = None
        if self.at(":"):
            self.advance()
            typ = self.parse_type()
        init: Expr | None = None
        if self.at("="):
            self.advance()
            init = self.parse_var_init()
        self.expect(";")
        decl = Declarator(self._span(name_tok), name_tok.value, init, typ)
        return VariableDeclaration(self._span(start), modifiers, None, [decl])

    # ── Types ────────────────────────────────────────────────

    def parse_type(self) -> TypeRef:
        """Type = BaseType ( '|' BaseType )*  (null members dropped)"""
        start = self.current()
        members = [self.parse_base_type()]
        while self.at("|"):
            self.advance()
            members.append(self.parse_base_type())
        kept = [m for m in members if m.name not in NULL_TYPES]
        if not kept:
            return members[0]
        if len(kept) == 1:
            chosen = kept[0]
            return TypeRef(self._span(start), chosen.name, chosen.args, chosen.dims)
        return TypeRef(self._span(start), "|".join(m.name for m in kept))

    def parse_base_type(self) -> TypeRef:
        """BaseType = ( IDENT ( '.' IDENT )* | Primitive ) [ '<' Type,* '>' ] ( '[' ']' )*"""
        start = self.current()
        if self.at("?"):
            self.advance()
            name = "Object"
            if self.at("extends") or self.at("super"):
                self.advance()
                return self.parse_type()
        elif self.at("("):
            raise self.error("function types are not supported")
        elif start.type == TK_IDENT or start.value in JAVA_PRIMITIVES or start.value in (
            "void",
            "null",
            "undefined",
        ):
            name = self.advance().value
            while self.at(".") and self.peek(1).type == TK_IDENT:
                self.advance()
                name += "." + self.advance().value
        else:
            raise self.error("expected type, got " + self._describe())
        args: list[TypeRef] = []
        if self.at("<"):
            self.advance()
            if not self.at(">"):
                args.append(self.parse_type())
                while self.at(","):
                    self.advance()
                    args.append(self.parse_type())
            self.expect(">")
        dims = 0
        while self.at("[") and self.peek(1).value == "]":
            self.advance()
            self.advance()
            dims += 1
        return TypeRef(self._span(start), name, args, dims)

    # ── Statements ───────────────────────────────────────────

    def parse_block(self) -> Block:
        start = self.current()
        self.expect("{")
        stmts: list[Stmt] = []
        while not self.at("}"):
            if self.at_type(TK_EOF):
                raise self.error("expected '}', got end of input")
            if self.at(";"):
                self.advance()
                continue
            stmts.append(self.parse_stmt())
        self.expect("}")
        return Block(self._span(start), stmts)

    def parse_stmt(self) -> Stmt:
        self._enter()
        try:
            return self._parse_stmt()
        finally:
            self.depth -= 1

    def _parse_stmt(self) -> Stmt:
        self._skip_annotations()
        tok = self.current()
        if tok.type == TK_OP:
            if tok.value == "{":
                return self.parse_block()
            if tok.value == ";":
                self.advance()
                return Block(self._span(tok), [])
        if tok.type != TK_STRING and tok.type != TK_CHAR:
            value = tok.value
            if value == "if":
                return self.parse_if()
            if value == "for":
                return self.parse_for()
            if value == "while":
                return self.parse_while()
            if value == "do":
                return self.parse_do_while()
            if value == "switch":
                return self.parse_switch()
            if value == "break" or value == "continue":
                return self.parse_jump()
            if value == "return":
                return self.parse_return()
            if value == "throw":
                return self.parse_throw()
            if value == "try":
                return self.parse_try()
            if value == "class":
                return self.parse_class()
            if not self._is_java():
                if value in ("let", "const", "var"):
                    decl = self.parse_ts_var_decl()
                    self.expect(";")
                    return decl
                if value == "function":
                    return self.parse_function()
            elif value == "final" or self._is_local_decl():
                decl = self.parse_java_var_decl()
                self.expect(";")
                return decl
        return self.parse_expr_stmt()

    def parse_java_var_decl(self) -> VariableDeclaration:
        """LocalDecl = 'final'* Type Declarator ( ',' Declarator )*"""
        start = self.current()
        modifiers: list[str] = []
        while self.at("final"):
            modifiers.append(self.advance().value)
        typ = self.parse_type()
        declarators = self.parse_declarators()
        return VariableDeclaration(self._span(start), modifiers, typ, declarators)

    def parse_declarators(self) -> list[Declarator]:
        declarators = [self.parse_declarator()]
        while self.at(","):
            self.advance()
            declarators.append(self.parse_declarator())
        return declarators

    def parse_declarator(self) -> Declarator:
        """Declarator = IDENT ( '[' ']' )* [ '=' VarInit ]"""
        start = self.current()
        name_tok = self.expect_ident()
        dims = 0
        while self.at("[") and self.peek(1).value == "]":
            self.advance()
            self.advance()
            dims += 1
        init: Expr | None = None
        if self.at("="):
            self.advance()
            init = self.parse_var_init()
        return Declarator(self._span(start), name_tok.value, init, None, dims)

    def parse_var_init(self) -> Expr:
        """VarInit = '{' VarInit,* '}' | Expr"""
        if self.at("{") and self._is_java():
            return self.parse_brace_initializer()
        return self.parse_expr()

    def parse_brace_initializer(self) -> ArrayLiteral:
        start = self.current()
        self.expect("{")
        elements: list[Expr] = []
        while not self.at("}"):
            elements.append(self.parse_var_init())
            if not self.at(","):
                break
            self.advance()
        self.expect("}")
        return ArrayLiteral(self._span(start), elements)

    def parse_ts_var_decl(self) -> VariableDeclaration:
        """VarDecl = ( 'let' | 'const' | 'var' ) TsDeclarator ( ',' TsDeclarator )*"""
        start = self.current()
        keyword = self.advance().value
        modifiers = ["const"] if keyword == "const" else []
        declarators = [self.parse_ts_declarator()]
        while self.at(","):
            self.advance()
            declarators.append(self.parse_ts_declarator())
        return VariableDeclaration(self._span(start), modifiers, None, declarators)

    def parse_ts_declarator(self) -> Declarator:
        start = self.current()
        name_tok = self.expect_ident()
        typ: TypeRef | None = None
        if self.at(":"):
            self.advance()
            typ = self.parse_type()
        init: Expr | None = None
        if self.at("="):
            self.advance()
            init = self.parse_expr()
        return Declarator(self._span(start), name_tok.value, init, typ)

    def parse_if(self) -> IfStatement:
        """If = 'if' '(' Expr ')' Stmt [ 'else' Stmt ]"""
        start = self.current()
        self.expect("if")
        self.expect("(")
        cond = self.parse_expr()
        self.expect(")")
        then = self.parse_stmt()
        orelse: Stmt | None = None
        if self.at("else"):
            self.advance()
            orelse = self.parse_stmt()
        return IfStatement(self._span(start), cond, then, orelse)

    def _is_foreach(self) -> bool:
        """Lookahead scan: from '(' to its matching ')' for a top-level ':' (Java) or 'of'/'in' (TypeScript).

        Nested parentheses are tracked so a ':' or 'in' inside a nested
        expression is not mistaken for the loop separator; a top-level ';'
        proves a three-clause loop.
        """
        depth = 0
        pending_ternary = 0
        i = self.pos
        num_tokens = len(self.tokens)
        while i < num_tokens:
            tok = self.tokens[i]
            if tok.type == TK_EOF:
                return False
            if tok.type == TK_OP and tok.value in ("(", "[", "{"):
                depth += 1
            elif tok.type == TK_OP and tok.value in (")", "]", "}"):
                depth -= 1
                if depth == 0:
                    return False
            elif depth == 1:
                if tok.type == TK_OP and tok.value == ";":
                    return False
                if self._is_java():
                    if tok.type == TK_OP and tok.value == "?":
                        pending_ternary += 1
                    elif tok.type == TK_OP and tok.value == ":":
                        if pending_ternary == 0:
                            return True
                        pending_ternary -= 1
                elif tok.type == TK_IDENT and tok.value in ("of", "in"):
                    return True
            i += 1
        return False

    def parse_for(self) -> Stmt:
        """For = 'for' '(' ( ForEachHead | Init? ';' Expr? ';' Update? ) ')' Stmt"""
        start = self.current()
        self.expect("for")
        if not self.at("("):
            raise self.error("expected '(', got " + self._describe())
        if self._is_foreach():
            return self._parse_foreach_rest(start)
        self.expect("(")
        init: list[Stmt] = []
        if not self.at(";"):
            if not self._is_java() and self.current().value in ("let", "const", "var"):
                init.append(self.parse_ts_var_decl())
            elif self._is_java() and (self.at("final") or self._is_local_decl()):
                init.append(self.parse_java_var_decl())
            else:
                first = self.current()
                init.append(ExpressionStatement(self._span(first), self.parse_expr()))
                while self.at(","):
                    self.advance()
                    nxt = self.current()
                    expr = self.parse_expr()
                    init.append(ExpressionStatement(self._span(nxt), expr))
        self.expect(";")
        cond: Expr | None = None
        if not self.at(";"):
            cond = self.parse_expr()
        self.expect(";")
        update: list[Expr] = []
        if not self.at(")"):
            update.append(self.parse_expr())
            while self.at(","):
                self.advance()
                update.append(self.parse_expr())
        self.expect(")")
        body = self.parse_stmt()
        return ForStatement(self._span(start), init, cond, update, body)

    def _parse_foreach_rest(self, start: Token) -> EnhancedForStatement:
        self.expect("(")
        var_type: TypeRef | None = None
        over_keys = False
        if self._is_java():
            while self.at("final"):
                self.advance()
            var_type = self.parse_type()
            name_tok = self.expect_ident()
            self.expect(":")
        else:
            if self.current().value in ("let", "const", "var"):
                self.advance()
            name_tok = self.expect_ident()
            if self.at(":"):
                self.advance()
                var_type = self.parse_type()
            if not (self.at("of") or self.at("in")):
                raise self.error("expected 'of', got " + self._describe())
            over_keys = self.advance().value == "in"
        iterable = self.parse_expr()
        self.expect(")")
        body = self.parse_stmt()
        return EnhancedForStatement(
            self._span(start), var_type, name_tok.value, iterable, body, over_keys
        )

    def parse_while(self) -> WhileStatement:
        """While = 'while' '(' Expr ')' Stmt"""
        start = self.current()
        self.expect("while")
        self.expect("(")
        cond = self.parse_expr()
        self.expect(")")
        body = self.parse_stmt()
        return WhileStatement(self._span(start), cond, body)

    def parse_do_while(self) -> DoWhileStatement:
        """DoWhile = 'do' Stmt 'while' '(' Expr ')' ';'"""
        start = self.current()
        self.expect("do")
        body = self.parse_stmt()
        self.expect("while")
        self.expect("(")
        cond = self.parse_expr()
        self.expect(")")
        self.expect(";")
        return DoWhileStatement(self._span(start), body, cond)

    def parse_switch(self) -> SwitchStatement:
        """Switch = 'switch' '(' Expr ')' '{' ( ( 'case' Expr | 'default' ) ':' Stmt* )* '}'"""
        start = self.current()
        self.expect("switch")
        self.expect("(")
        discriminant = self.parse_expr()
        self.expect(")")
        self.expect("{")
        cases: list[SwitchCase] = []
        while not self.at("}"):
            case_start = self.current()
            test: Expr | None = None
            if self.at("case"):
                self.advance()
                test = self.parse_expr()
            elif self.at("default"):
                self.advance()
            else:
                raise self.error("expected 'case' or 'default', got " + self._describe())
            self.expect(":")
            body: list[Stmt] = []
            while not (self.at("case") or self.at("default") or self.at("}")):
                if self.at_type(TK_EOF):
                    raise self.error("expected '}', got end of input")
                body.append(self.parse_stmt())
            cases.append(SwitchCase(self._span(case_start), test, body))
        self.expect("}")
        return SwitchStatement(self._span(start), discriminant, cases)

    def parse_jump(self) -> Stmt:
        start = self.advance()
        if self.at_ident():
            raise self.error("labeled " + start.value + " is not supported")
        self.expect(";")
        if start.value == "break":
            return BreakStatement(self._span(start))
        return ContinueStatement(self._span(start))

    def parse_return(self) -> ReturnStatement:
        start = self.current()
        self.expect("return")
        value: Expr | None = None
        if not self.at(";"):
            value = self.parse_expr()
        self.expect(";")
        return ReturnStatement(self._span(start), value)

    def parse_throw(self) -> ThrowStatement:
        start = self.current()
        self.expect("throw")
        value = self.parse_expr()
        self.expect(";")
        return ThrowStatement(self._span(start), value)

    def parse_try(self) -> TryStatement:
        """Try = 'try' Block ( 'catch' '(' [Type] IDENT [':' Type] ')' Block )* [ 'finally' Block ]"""
        start = self.current()
        self.expect("try")
        if self.at("("):
            raise self.error("try-with-resources is not supported")
        block = self.parse_block()
        handlers: list[CatchClause] = []
        while self.at("catch"):
            catch_start = self.advance()
            name = "e"
            catch_type: TypeRef | None = None
            if self.at("("):
                self.advance()
                if self._is_java():
                    catch_type = self.parse_type()
                    while self.at("|"):
                        self.advance()
                        self.parse_type()
                    name = self.expect_ident().value
                else:
                    name = self.expect_ident().value
                    if self.at(":"):
                        self.advance()
                        catch_type = self.parse_type()
                self.expect(")")
            body = self.parse_block()
            handlers.append(CatchClause(self._span(catch_start), name, catch_type, body))
        finalizer: Block | None = None
        if self.at("finally"):
            self.advance()
            finalizer = self.parse_block()
        if not handlers and finalizer is None:
            raise self.error("expected 'catch' or 'finally' after try block")
        return TryStatement(self._span(start), block, handlers, finalizer)

    def parse_expr_stmt(self) -> ExpressionStatement:
        start = self.current()
        expr = self.parse_expr()
        self.expect(";")
        return ExpressionStatement(self._span(start), expr)

    # ── Expressions ──────────────────────────────────────────

    def parse_expr(self) -> Expr:
        self._enter()
        try:
            return self.parse_assignment()
        finally:
            self.depth -= 1

    def parse_assignment(self) -> Expr:
        """Assignment = Conditional [ AssignOp Assignment ]  (right-associative)"""
        if self._is_arrow_start():
            return self.parse_lambda()
        target = self.parse_conditional()
        tok = self.current()
        if tok.type == TK_OP and tok.value in ASSIGN_OPS:
            if not isinstance(target, (Identifier, MemberAccess, IndexExpression)):
                raise self.error("invalid assignment target")
            op = self.advance().value
            value = self.parse_assignment()
            return Assignment(self._span_from(target.pos), op, target, value)
        return target

    def parse_conditional(self) -> Expr:
        """Conditional = Binary(1) [ '?' Assignment ':' Assignment ]"""
        cond = self.parse_binary(1)
        if self.at("?"):
            self.advance()
            then = self.parse_assignment()
            self.expect(":")
            otherwise = self.parse_assignment()
            return ConditionalExpression(self._span_from(cond.pos), cond, then, otherwise)
        return cond

    def parse_binary(self, min_prec: int) -> Expr:
        """Precedence climbing over BINARY_PRECEDENCE; all binary operators are left-associative."""
        left = self.parse_unary()
        while True:
            tok = self.current()
            if tok.type == TK_STRING or tok.type == TK_CHAR:
                break
            prec = BINARY_PRECEDENCE.get(tok.value)
            if prec is None or prec < min_prec:
                break
            op = self.advance().value
            if op == "instanceof":
                right: Expr = self.parse_type()
            else:
                right = self.parse_binary(prec + 1)
            left = BinaryExpression(self._span_from(left.pos), op, left, right)
        return left

    def parse_unary(self) -> Expr:
        """Unary = ( '!' | '-' | '+' ) Unary | ( '++' | '--' ) Unary | Cast | Postfix"""
        tok = self.current()
        if tok.type == TK_OP:
            if tok.value in ("!", "-", "+"):
                self.advance()
                operand = self.parse_unary()
                return UnaryExpression(self._span(tok), tok.value, operand)
            if tok.value in ("++", "--"):
                self.advance()
                target = self.parse_unary()
                return UpdateExpression(self._span(tok), tok.value, target, True)
            if tok.value == "(" and self._is_java() and self._is_cast():
                self.advance()
                typ = self.parse_type()
                self.expect(")")
                operand = self.parse_unary()
                return CastExpression(self._span(tok), typ, operand)
        return self.parse_postfix()

    def _is_cast(self) -> bool:
        """Lookahead: '(' Type ')' followed by the start of an operand."""
        j = self._scan_type(self.pos + 1)
        if j is None or self.tokens[j].value != ")":
            return False
        first = self.tokens[self.pos + 1]
        if first.value in JAVA_PRIMITIVES:
            return True
        nxt = self.tokens[j + 1]
        if nxt.type in (TK_IDENT, TK_INT, TK_REAL, TK_STRING, TK_CHAR):
            return True
        return nxt.value in ("(", "this", "new", "!")

    def parse_postfix(self) -> Expr:
        """Postfix = Primary ( '.' IDENT | '[' Expr ']' | '(' Args ')' | '++' | '--' | 'as' Type )*"""
        expr = self.parse_primary()
        while True:
            tok = self.current()
            if self.at("."):
                self.advance()
                name_tok = self.current()
                if name_tok.type == TK_EOF or name_tok.type == TK_OP:
                    raise self.error("expected member name after '.'")
                self.advance()
                expr = MemberAccess(self._span_from(expr.pos), expr, name_tok.value)
            elif self.at("["):
                self.advance()
                index = self.parse_expr()
                self.expect("]")
                expr = IndexExpression(self._span_from(expr.pos), expr, index)
            elif self.at("("):
                args = self.parse_args()
                expr = MethodCall(self._span_from(expr.pos), expr, args)
            elif tok.type == TK_OP and tok.value in ("++", "--"):
                self.advance()
                expr = UpdateExpression(self._span_from(expr.pos), tok.value, expr, False)
            elif not self._is_java() and tok.type == TK_IDENT and tok.value == "as":
                self.advance()
                typ = self.parse_type()
                expr = CastExpression(self._span_from(expr.pos), typ, expr)
            elif not self._is_java() and self.at("!") and self._is_non_null_assertion():
                self.advance()
            else:
                break
        return expr

    def _is_non_null_assertion(self) -> bool:
        nxt = self.peek(1)
        return nxt.type == TK_OP and nxt.value in (".", ")", ";", ",", "]", "[")

    def parse_args(self) -> list[Expr]:
        """Args = '(' ( Expr ( ',' Expr )* )? ')'"""
        self.expect("(")
        args: list[Expr] = []
        if not self.at(")"):
            args.append(self.parse_expr())
            while self.at(","):
                self.advance()
                args.append(self.parse_expr())
        self.expect(")")
        return args

    def parse_primary(self) -> Expr:
        """Parse a primary expression."""
        tok = self.current()

        # Literals
        if tok.type == TK_INT:
            self.advance()
            return Literal(self._span(tok), tok.value, "int")
        if tok.type == TK_REAL:
            self.advance()
            return Literal(self._span(tok), tok.value, "real")
        if tok.type == TK_STRING:
            self.advance()
            return Literal(self._span(tok), tok.value, "string")
        if tok.type == TK_CHAR:
            self.advance()
            if self._is_java():
                if len(tok.value) != 1:
                    raise ParseError(
                        "invalid character literal " + tok.text, tok.line, tok.col
                    )
                return Literal(self._span(tok), tok.value, "char")
            return Literal(self._span(tok), tok.value, "string")

        # Keyword literals
        if tok.value == "true" or tok.value == "false":
            self.advance()
            return Literal(self._span(tok), tok.value, "bool")
        if tok.value == "null" or tok.value == "undefined":
            self.advance()
            return Literal(self._span(tok), tok.value, "null")

        # Identifier (`this` is a keyword but valid in expression position)
        if tok.type == TK_IDENT or tok.value == "this":
            self.advance()
            return Identifier(self._span(tok), tok.value)

        if tok.value == "new":
            return self.parse_new()

        if tok.value == "(":
            self.advance()
            inner = self.parse_expr()
            self.expect(")")
            return inner

        if tok.value == "[":
            self.advance()
            elements: list[Expr] = []
            while not self.at("]"):
                elements.append(self.parse_expr())
                if not self.at(","):
                    break
                self.advance()
            self.expect("]")
            return ArrayLiteral(self._span(tok), elements)

        raise self.error("expected expression, got " + self._describe())

    def parse_new(self) -> Expr:
        """New = 'new' BaseType ( '[' Expr? ']' )+ [ ArrayInit ] | 'new' BaseType Args"""
        start = self.current()
        self.expect("new")
        type_start = self.current()
        name = self.advance().value
        while self.at(".") and self.peek(1).type == TK_IDENT:
            self.advance()
            name += "." + self.advance().value
        args_t: list[TypeRef] = []
        if self.at("<"):
            self.advance()
            if not self.at(">"):
                args_t.append(self.parse_type())
                while self.at(","):
                    self.advance()
                    args_t.append(self.parse_type())
            self.expect(">")
        typ = TypeRef(self._span(type_start), name, args_t)
        if self.at("["):
            sizes: list[Expr] = []
            dims = 0
            while self.at("["):
                self.advance()
                if not self.at("]"):
                    sizes.append(self.parse_expr())
                self.expect("]")
                dims += 1
            init: ArrayLiteral | None = None
            if self.at("{"):
                init = self.parse_brace_initializer()
            if not sizes and init is None:
                raise self.error("array creation needs a size or an initializer")
            elem = TypeRef(typ.pos, typ.name, typ.args, dims - 1)
            return NewArray(self._span(start), elem, sizes, init)
        args = self.parse_args()
        if self.at("{"):
            raise self.error("anonymous classes are not supported")
        return NewObject(self._span(start), typ, args)

    def _is_arrow_start(self) -> bool:
        """Lookahead: IDENT '=>' or '(' ... ')' [ ':' Type ] '=>'."""
        tok = self.current()
        if tok.type == TK_IDENT and self.peek(1).value == "=>":
            return True
        if tok.type != TK_OP or tok.value != "(":
            return False
        depth = 0
        i = self.pos
        while i < len(self.tokens):
            t = self.tokens[i]
            if t.type == TK_EOF:
                return False
            if t.type == TK_OP and t.value == "(":
                depth += 1
            elif t.type == TK_OP and t.value == ")":
                depth -= 1
                if depth == 0:
                    nxt = self.tokens[i + 1]
                    return nxt.value == "=>" or (
                        nxt.value == ":" and not self._is_java() and self._arrow_after_type(i + 2)
                    )
            i += 1
        return False

    def _arrow_after_type(self, i: int) -> bool:
        j = self._scan_type(i)
        return j is not None and self.tokens[j].value == "=>"

    def parse_lambda(self) -> LambdaExpression:
        """Lambda = ( IDENT | Params [ ':' Type ] ) '=>' ( Block | Assignment )"""
        start = self.current()
        params: list[Parameter] = []
        if self.at_ident():
            name_tok = self.advance()
            params.append(Parameter(self._span(name_tok), name_tok.value, None))
        else:
            params = self.parse_params()
            if self.at(":"):
                self.advance()
                self.parse_type()
        self.expect("=>")
        body: Block | Expr
        if self.at("{"):
            body = self.parse_block()
        else:
            body = self.parse_assignment()
        return LambdaExpression(self._span(start), params, body)


def parse(
    source: str, language: str = "java", max_depth: int = DEFAULT_MAX_DEPTH
) -> Program:
    """Parse source text into a Program. Raises LexicalError, ParseError or RecursionLimitExceeded."""
    tokens = tokenize(source, language)
    logger.debug("tokenized %d tokens (%s)", len(tokens), language)
    parser = Parser(tokens, language, max_depth)
    try:
        return parser.parse_program()
    except RecursionError:
        tok = parser.current()
        raise RecursionLimitExceeded(
            "nesting exceeds the interpreter stack", tok.line, tok.col
        ) from None
