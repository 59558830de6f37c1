from __future__ import annotations

from decimalify.syntax import (
    Ast,
    AstArray,
    AstAssign,
    AstBinaryOp,
    AstBlock,
    AstBoolean,
    AstDef,
    AstEmpty,
    AstExprStmt,
    AstFor,
    AstFuncCall,
    AstGetAttr,
    AstIdent,
    AstIf,
    AstImport,
    AstImportName,
    AstIndexExpr,
    AstNew,
    AstNull,
    AstNumber,
    AstProgram,
    AstReturn,
    AstString,
    AstTernary,
    AstUnaryOp,
    AstUpdate,
    AstVarDecl,
    AstVarStmt,
    AstWhile,
)
from decimalify.visitors import Emitter, child_nodes

# operator precedence, higher binds tighter
ASSIGNMENT = 2
CONDITIONAL = 3
BINARY_PRECEDENCE = {
    "||": 4,
    "&&": 5,
    "==": 9,
    "!=": 9,
    "===": 9,
    "!==": 9,
    "<": 10,
    "<=": 10,
    ">": 10,
    ">=": 10,
    "+": 12,
    "-": 12,
    "*": 13,
    "/": 13,
    "%": 13,
    "**": 14,
}
UNARY = 15
UPDATE = 16
POSTFIX = 18
PRIMARY = 20


def precedence(node: Ast) -> int:
    if isinstance(node, AstAssign):
        return ASSIGNMENT
    if isinstance(node, AstTernary):
        return CONDITIONAL
    if isinstance(node, AstBinaryOp):
        return BINARY_PRECEDENCE[node.op]
    if isinstance(node, AstUnaryOp):
        return UNARY
    if isinstance(node, AstUpdate):
        return UPDATE
    if isinstance(node, (AstFuncCall, AstNew, AstGetAttr, AstIndexExpr)):
        return POSTFIX
    return PRIMARY


def is_member_chain(node: Ast) -> bool:
    """true for `a` and `a.b.c`, the callees `new` takes without parentheses"""
    while isinstance(node, AstGetAttr):
        node = node.parent
    return isinstance(node, AstIdent)


class Printer(Emitter):
    """Serializes a tree back to JavaScript, adding parentheses where precedence needs them."""

    indent_unit = "    "

    def __init__(self):
        super().__init__()
        self.depth = 0

    def operand(self, node: Ast, min_precedence: int) -> str:
        text = self.emit(node)
        if precedence(node) < min_precedence:
            return f"({text})"
        return text

    def arguments(self, args: list) -> str:
        return ", ".join(self.operand(arg, ASSIGNMENT) for arg in args)

    def statement(self, node: Ast) -> str:
        text = self.emit(node)
        if isinstance(node, AstVarStmt):
            text += ";"
        return self.indent_unit * self.depth + text + "\n"

    def emit_AstProgram(self, node: AstProgram):
        return "".join(self.statement(stmt) for stmt in node.stmts)

    def emit_AstBlock(self, node: AstBlock):
        if not node.stmts:
            return "{ }"
        self.depth += 1
        body = "".join(self.statement(stmt) for stmt in node.stmts)
        self.depth -= 1
        return "{\n" + body + self.indent_unit * self.depth + "}"

    def emit_AstImport(self, node: AstImport):
        clauses = []
        if node.default is not None:
            clauses.append(node.default)
        if node.namespace is not None:
            clauses.append(f"* as {node.namespace}")
        if node.names is not None:
            if node.names:
                clauses.append("{ " + ", ".join(self.emit(n) for n in node.names) + " }")
            else:
                clauses.append("{}")
        if not clauses:
            return f"import {node.module.raw};"
        return f"import {', '.join(clauses)} from {node.module.raw};"

    def emit_AstImportName(self, node: AstImportName):
        if node.alias is None:
            return node.name
        return f"{node.name} as {node.alias}"

    def emit_AstVarStmt(self, node: AstVarStmt):
        # no semicolon, so that the for loop header can reuse this
        return f"{node.kind} " + ", ".join(self.emit(decl) for decl in node.decls)

    def emit_AstVarDecl(self, node: AstVarDecl):
        if node.init is None:
            return node.name.name
        return f"{node.name.name} = {self.operand(node.init, ASSIGNMENT)}"

    def emit_AstExprStmt(self, node: AstExprStmt):
        return self.emit(node.expr) + ";"

    def emit_AstReturn(self, node: AstReturn):
        if node.value is None:
            return "return;"
        return f"return {self.emit(node.value)};"

    def emit_AstIf(self, node: AstIf):
        text = f"if ({self.emit(node.condition)}) {self.emit(node.body)}"
        if node.orelse is not None:
            text += f" else {self.emit(node.orelse)}"
        return text

    def emit_AstWhile(self, node: AstWhile):
        return f"while ({self.emit(node.condition)}) {self.emit(node.body)}"

    def emit_AstFor(self, node: AstFor):
        init = self.emit(node.init) if node.init is not None else ""
        condition = " " + self.emit(node.condition) if node.condition is not None else ""
        update = " " + self.emit(node.update) if node.update is not None else ""
        return f"for ({init};{condition};{update}) {self.emit(node.body)}"

    def emit_AstDef(self, node: AstDef):
        params = ", ".join(param.name for param in node.params)
        return f"function {node.name.name}({params}) {self.emit(node.body)}"

    def emit_AstEmpty(self, node: AstEmpty):
        return ";"

    def emit_AstNumber(self, node: AstNumber):
        return node.raw

    def emit_AstString(self, node: AstString):
        return node.raw

    def emit_AstBoolean(self, node: AstBoolean):
        return "true" if node.value else "false"

    def emit_AstNull(self, node: AstNull):
        return "null"

    def emit_AstIdent(self, node: AstIdent):
        return node.name

    def emit_AstArray(self, node: AstArray):
        return f"[{self.arguments(node.elements)}]"

    def emit_AstGetAttr(self, node: AstGetAttr):
        parent = self.operand(node.parent, POSTFIX)
        if isinstance(node.parent, AstNumber) and node.parent.raw.isdigit():
            # `1.toFixed` would read as a decimal point
            parent = f"({parent})"
        return f"{parent}.{node.attr}"

    def emit_AstIndexExpr(self, node: AstIndexExpr):
        return f"{self.operand(node.parent, POSTFIX)}[{self.emit(node.item)}]"

    def emit_AstFuncCall(self, node: AstFuncCall):
        return f"{self.operand(node.func, POSTFIX)}({self.arguments(node.args)})"

    def emit_AstNew(self, node: AstNew):
        func = self.emit(node.func)
        if not is_member_chain(node.func):
            func = f"({func})"
        return f"new {func}({self.arguments(node.args)})"

    def emit_AstBinaryOp(self, node: AstBinaryOp):
        op_precedence = BINARY_PRECEDENCE[node.op]
        if node.op == "**":
            # right associative, and a unary base must be parenthesized
            lhs = self.operand(node.lhs, UPDATE)
            rhs = self.operand(node.rhs, op_precedence)
        else:
            lhs = self.operand(node.lhs, op_precedence)
            rhs = self.operand(node.rhs, op_precedence + 1)
        return f"{lhs} {node.op} {rhs}"

    def emit_AstUnaryOp(self, node: AstUnaryOp):
        val = self.operand(node.val, UNARY)
        if node.op.isalpha() or val.startswith(node.op):
            # `typeof x`, and `- -x` rather than `--x`
            return f"{node.op} {val}"
        return f"{node.op}{val}"

    def emit_AstUpdate(self, node: AstUpdate):
        if node.prefix:
            return f"{node.op}{self.operand(node.target, UNARY)}"
        return f"{self.operand(node.target, POSTFIX)}{node.op}"

    def emit_AstAssign(self, node: AstAssign):
        return f"{self.operand(node.lhs, POSTFIX)} {node.op} {self.operand(node.rhs, ASSIGNMENT)}"

    def emit_AstTernary(self, node: AstTernary):
        condition = self.operand(node.condition, CONDITIONAL + 1)
        if_true = self.operand(node.if_true, ASSIGNMENT)
        if_false = self.operand(node.if_false, ASSIGNMENT)
        return f"{condition} ? {if_true} : {if_false}"


def print_ast(node: Ast) -> str:
    return Printer().emit(node)


def format_tree(node: Ast) -> str:
    """one line per node naming its class, indented with dashes by depth"""
    lines = []

    def dump(n: Ast, depth: int):
        lines.append(" " + "-" * max(0, depth * 4 - 2) + " " + type(n).__name__)
        for child in child_nodes(n):
            dump(child, depth + 1)

    dump(node, 0)
    return "\n".join(lines)
