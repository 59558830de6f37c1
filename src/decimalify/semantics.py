from __future__ import annotations
from typing import Union

from decimalify.state import (
    BLOCK_SCOPED_KINDS,
    CompileState,
    Scope,
    Symbol,
    SymbolKind,
)
from decimalify.syntax import (
    Ast,
    AstAssign,
    AstBlock,
    AstDef,
    AstFor,
    AstGetAttr,
    AstIdent,
    AstImport,
    AstIndexExpr,
    AstProgram,
    AstUpdate,
    AstVarStmt,
)
from decimalify.visitors import TopDownVisitor, Visitor, child_nodes

# names the runtime provides without a declaration
GLOBAL_NAMES = frozenset(
    {
        "Math",
        "console",
        "undefined",
        "NaN",
        "Infinity",
        "Number",
        "String",
        "Boolean",
        "Array",
        "Object",
        "JSON",
        "parseInt",
        "parseFloat",
        "isNaN",
        "isFinite",
        "Error",
        "Date",
        "require",
        "module",
        "exports",
        "globalThis",
        "window",
        "document",
        "process",
    }
)


class CreateScopes:
    """Records the scope every node is evaluated in.

    The program and each function body get a function scope, which `var`
    declarations hoist to. Every other block, and each for loop header, gets
    a block scope that is a child of the enclosing one.
    """

    def run(self, start: Ast, state: CompileState):
        self._walk(start, state, None)

    def _walk(self, node: Ast, state: CompileState, scope: Scope | None):
        if isinstance(node, AstProgram):
            program_scope = Scope(parent=None, is_function=True)
            state.enclosing_scope[node] = program_scope
            for stmt in node.stmts:
                self._walk(stmt, state, program_scope)
            return

        if isinstance(node, AstDef):
            self._walk_def(node, state, scope)
            return

        if isinstance(node, AstFor):
            state.enclosing_scope[node] = scope
            # `let` in the loop header is visible in the body only
            header_scope = Scope(parent=scope)
            self._walk_children(node, state, header_scope)
            return

        if isinstance(node, AstBlock):
            self._walk_block(node, state, scope)
            return

        state.enclosing_scope[node] = scope
        self._walk_children(node, state, scope)

    def _walk_def(self, node: AstDef, state: CompileState, scope: Scope):
        state.enclosing_scope[node] = scope
        # the function's own name belongs to the enclosing scope
        self._walk(node.name, state, scope)

        func_scope = Scope(parent=scope, is_function=True)
        for param in node.params:
            self._walk(param, state, func_scope)

        # the body shares the parameters' scope
        state.enclosing_scope[node.body] = func_scope
        for stmt in node.body.stmts:
            self._walk(stmt, state, func_scope)

    def _walk_block(self, node: AstBlock, state: CompileState, scope: Scope):
        block_scope = Scope(parent=scope)
        state.enclosing_scope[node] = block_scope
        for stmt in node.stmts:
            self._walk(stmt, state, block_scope)

    def _walk_children(self, node: Ast, state: CompileState, scope: Scope):
        for child in child_nodes(node):
            self._walk(child, state, scope)


def _redeclaration_error(existing: Symbol, kind: SymbolKind, name: str) -> str | None:
    """the message for declaring `name` as `kind` over `existing`, or None if that's allowed"""
    if kind in BLOCK_SCOPED_KINDS or existing.kind in BLOCK_SCOPED_KINDS:
        return f"Cannot redeclare block-scoped variable '{name}'."
    if kind == SymbolKind.IMPORT or existing.kind == SymbolKind.IMPORT:
        return f"Duplicate identifier '{name}'."
    if kind == SymbolKind.PARAM and existing.kind == SymbolKind.PARAM:
        return f"Duplicate identifier '{name}'."
    # var over var, function over var and so on are fine in plain JS
    return None


class CreateDeclarations(TopDownVisitor):
    """Adds every import binding, variable, function and parameter to its scope,
    and reports names declared twice where the language does not allow it."""

    def declare(
        self,
        scope: Scope,
        name: str,
        kind: SymbolKind,
        declaration: Ast,
        state: CompileState,
    ):
        existing = scope.symbols.get(name)
        if existing is not None:
            msg = _redeclaration_error(existing, kind, name)
            if msg is not None:
                state.err(msg, declaration)
            # keep the first declaration
            return
        scope.symbols[name] = Symbol(name, kind, declaration)

    def visit_AstImport(self, node: AstImport, state: CompileState):
        scope = state.enclosing_scope[node]
        for name in node.bindings():
            self.declare(scope, name, SymbolKind.IMPORT, node, state)

    def visit_AstVarStmt(self, node: AstVarStmt, state: CompileState):
        kind = SymbolKind(node.kind)
        scope = state.enclosing_scope[node]
        if kind == SymbolKind.VAR:
            scope = scope.function_scope()
        for decl in node.decls:
            state.declaring_idents.add(decl.name)
            self.declare(scope, decl.name.name, kind, decl.name, state)

    def visit_AstDef(self, node: AstDef, state: CompileState):
        state.declaring_idents.add(node.name)
        self.declare(
            state.enclosing_scope[node], node.name.name, SymbolKind.FUNCTION, node.name, state
        )

        func_scope = state.enclosing_scope[node.body]
        for param in node.params:
            state.declaring_idents.add(param)
            self.declare(func_scope, param.name, SymbolKind.PARAM, param, state)


class ResolveNames(Visitor):
    """links each referencing identifier to the symbol it names"""

    def visit_AstIdent(self, node: AstIdent, state: CompileState):
        scope = state.enclosing_scope[node]
        sym = scope.lookup(node.name)
        if node in state.declaring_idents:
            state.resolved_symbols[node] = sym
            return
        if sym is None:
            if node.name in GLOBAL_NAMES:
                return
            state.err(f"Cannot find name '{node.name}'.", node)
            return
        state.resolved_symbols[node] = sym


class CheckAssignments(Visitor):
    """assignments and updates must target a variable or a property, and never a constant"""

    def visit_AstAssign_AstUpdate(
        self, node: Union[AstAssign, AstUpdate], state: CompileState
    ):
        target = node.lhs if isinstance(node, AstAssign) else node.target
        if isinstance(target, (AstGetAttr, AstIndexExpr)):
            return
        if not isinstance(target, AstIdent):
            if isinstance(node, AstAssign):
                state.err(
                    "The left-hand side of an assignment expression must be a variable or a property access.",
                    target,
                )
            else:
                state.err(
                    "The operand of an increment or decrement operator must be a variable or a property access.",
                    target,
                )
            return

        sym = state.resolved_symbols.get(target)
        if sym is None:
            return
        if sym.kind == SymbolKind.CONST:
            state.err(f"Cannot assign to '{target.name}' because it is a constant.", target)
        elif sym.kind == SymbolKind.IMPORT:
            state.err(f"Cannot assign to '{target.name}' because it is an import.", target)
