from __future__ import annotations
from dataclasses import dataclass, field
from typing import Union

from lark import Token, Transformer, v_args
from lark.tree import Meta


def meta_from_token(token: Token) -> Meta:
    """build position info for a node that is made from a single token"""
    meta = Meta()
    meta.empty = False
    meta.line = token.line
    meta.column = token.column
    meta.end_line = token.end_line
    meta.end_column = token.end_column
    meta.start_pos = token.start_pos
    meta.end_pos = token.end_pos
    return meta


# nodes compare by identity: passes key dicts on them, and the rewriter
# checks "did this node change" with `is`
@dataclass(eq=False)
class Ast:
    meta: Meta | None = field(repr=False)


@dataclass(eq=False)
class AstExpr(Ast):
    pass


@dataclass(eq=False)
class AstStmt(Ast):
    pass


@dataclass(eq=False)
class AstNumber(AstExpr):
    raw: str
    """the literal exactly as written in the source"""


@dataclass(eq=False)
class AstString(AstExpr):
    raw: str
    """the literal exactly as written, quotes included"""

    @property
    def value(self) -> str:
        return self.raw[1:-1]


@dataclass(eq=False)
class AstBoolean(AstExpr):
    value: bool


@dataclass(eq=False)
class AstNull(AstExpr):
    pass


@dataclass(eq=False)
class AstIdent(AstExpr):
    name: str


@dataclass(eq=False)
class AstArray(AstExpr):
    elements: list[AstExpr]


@dataclass(eq=False)
class AstGetAttr(AstExpr):
    parent: AstExpr
    attr: str


@dataclass(eq=False)
class AstIndexExpr(AstExpr):
    parent: AstExpr
    item: AstExpr


@dataclass(eq=False)
class AstFuncCall(AstExpr):
    func: AstExpr
    args: list[AstExpr]


@dataclass(eq=False)
class AstNew(AstExpr):
    func: AstExpr
    args: list[AstExpr]


@dataclass(eq=False)
class AstBinaryOp(AstExpr):
    lhs: AstExpr
    op: str
    rhs: AstExpr


@dataclass(eq=False)
class AstUnaryOp(AstExpr):
    op: str
    val: AstExpr


@dataclass(eq=False)
class AstUpdate(AstExpr):
    op: str
    prefix: bool
    target: AstExpr


@dataclass(eq=False)
class AstAssign(AstExpr):
    lhs: AstExpr
    op: str
    rhs: AstExpr


@dataclass(eq=False)
class AstTernary(AstExpr):
    condition: AstExpr
    if_true: AstExpr
    if_false: AstExpr


@dataclass(eq=False)
class AstImportName(Ast):
    name: str
    alias: str | None

    @property
    def local(self) -> str:
        return self.alias if self.alias is not None else self.name


@dataclass(eq=False)
class AstImport(AstStmt):
    module: AstString
    default: str | None
    names: list[AstImportName] | None
    """None when the statement has no braces at all"""
    namespace: str | None

    def bindings(self) -> list[str]:
        """the local names this import declares"""
        local_names = []
        if self.default is not None:
            local_names.append(self.default)
        if self.namespace is not None:
            local_names.append(self.namespace)
        for name in self.names or []:
            local_names.append(name.local)
        return local_names


@dataclass(eq=False)
class AstVarDecl(Ast):
    name: AstIdent
    init: AstExpr | None


@dataclass(eq=False)
class AstVarStmt(AstStmt):
    kind: str
    decls: list[AstVarDecl]


@dataclass(eq=False)
class AstExprStmt(AstStmt):
    expr: AstExpr


@dataclass(eq=False)
class AstReturn(AstStmt):
    value: AstExpr | None


@dataclass(eq=False)
class AstBlock(AstStmt):
    stmts: list[AstStmt]


@dataclass(eq=False)
class AstIf(AstStmt):
    condition: AstExpr
    body: AstBlock
    orelse: Union[AstBlock, AstIf, None]


@dataclass(eq=False)
class AstWhile(AstStmt):
    condition: AstExpr
    body: AstBlock


@dataclass(eq=False)
class AstFor(AstStmt):
    init: Union[AstVarStmt, AstExpr, None]
    condition: AstExpr | None
    update: AstExpr | None
    body: AstBlock


@dataclass(eq=False)
class AstDef(AstStmt):
    name: AstIdent
    params: list[AstIdent]
    body: AstBlock


@dataclass(eq=False)
class AstEmpty(AstStmt):
    pass


@dataclass(eq=False)
class AstProgram(Ast):
    stmts: list[AstStmt]


@v_args(meta=True, inline=True)
class DecimalifyTransformer(Transformer):
    """turns the lark parse tree into Ast nodes"""

    def _ident(self, token: Token) -> AstIdent:
        return AstIdent(meta_from_token(token), str(token))

    def _string(self, token: Token) -> AstString:
        return AstString(meta_from_token(token), str(token))

    def _operator(self, meta, token):
        return str(token)

    assign_op = _operator
    or_op = _operator
    and_op = _operator
    eq_op = _operator
    rel_op = _operator
    add_op = _operator
    mul_op = _operator
    pow_op = _operator
    unary_op = _operator
    update_op = _operator
    var_kind = _operator

    def program(self, meta, *stmts):
        return AstProgram(meta, list(stmts))

    # import clauses come back as (default, names, namespace)
    def default_clause(self, meta, name):
        return str(name), None, None

    def default_named_clause(self, meta, name, names):
        return str(name), names, None

    def named_clause(self, meta, names):
        return None, names, None

    def namespace_clause(self, meta, namespace):
        return None, None, str(namespace)

    def default_namespace_clause(self, meta, name, namespace):
        return str(name), None, str(namespace)

    def named_imports(self, meta, *specifiers):
        return list(specifiers)

    def import_specifier(self, meta, name, alias):
        return AstImportName(meta, str(name), str(alias) if alias is not None else None)

    def import_stmt(self, meta, clause, module):
        default, names, namespace = clause
        return AstImport(meta, self._string(module), default, names, namespace)

    def bare_import(self, meta, module):
        return AstImport(meta, self._string(module), None, None, None)

    def var_stmt(self, meta, kind, *decls):
        return AstVarStmt(meta, kind, list(decls))

    def var_declarator(self, meta, name, init):
        return AstVarDecl(meta, self._ident(name), init)

    def function_def(self, meta, name, params, body):
        return AstDef(meta, self._ident(name), params, body)

    def params(self, meta, *names):
        return [self._ident(name) for name in names]

    def return_stmt(self, meta, value):
        return AstReturn(meta, value)

    def if_stmt(self, meta, condition, body, orelse):
        return AstIf(meta, condition, body, orelse)

    def while_stmt(self, meta, condition, body):
        return AstWhile(meta, condition, body)

    def for_stmt(self, meta, init, condition, update, body):
        return AstFor(meta, init, condition, update, body)

    def block(self, meta, *stmts):
        return AstBlock(meta, list(stmts))

    def expr_stmt(self, meta, expr):
        return AstExprStmt(meta, expr)

    def empty_stmt(self, meta):
        return AstEmpty(meta)

    def assign(self, meta, lhs, op, rhs):
        return AstAssign(meta, lhs, op, rhs)

    def ternary(self, meta, condition, if_true, if_false):
        return AstTernary(meta, condition, if_true, if_false)

    def binary_op(self, meta, lhs, op, rhs):
        return AstBinaryOp(meta, lhs, op, rhs)

    def unary_expr(self, meta, op, val):
        return AstUnaryOp(meta, op, val)

    def postfix_update(self, meta, target, op):
        return AstUpdate(meta, op, False, target)

    def prefix_update(self, meta, op, target):
        return AstUpdate(meta, op, True, target)

    def member(self, meta, parent, attr):
        return AstGetAttr(meta, parent, str(attr))

    def index(self, meta, parent, item):
        return AstIndexExpr(meta, parent, item)

    def call(self, meta, func, args):
        return AstFuncCall(meta, func, args)

    def new_expr(self, meta, func, args):
        return AstNew(meta, func, args)

    def arguments(self, meta, *args):
        return list(args)

    def number(self, meta, token):
        return AstNumber(meta, str(token))

    def string(self, meta, token):
        return AstString(meta, str(token))

    def const_true(self, meta):
        return AstBoolean(meta, True)

    def const_false(self, meta):
        return AstBoolean(meta, False)

    def const_null(self, meta):
        return AstNull(meta)

    def ident(self, meta, token):
        return AstIdent(meta, str(token))

    def array(self, meta, *elements):
        return AstArray(meta, list(elements))
