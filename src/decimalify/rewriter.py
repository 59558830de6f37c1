from __future__ import annotations
from dataclasses import dataclass, replace
from enum import Enum
import sys
from typing import Union

import decimalify.error
from decimalify.error import Colors, UnsupportedNodeKind
from decimalify.rules import DEFAULT_RULES, RewriteRules
from decimalify.state import CompileState
from decimalify.syntax import (
    Ast,
    AstBinaryOp,
    AstExpr,
    AstFuncCall,
    AstGetAttr,
    AstIdent,
    AstNew,
    AstNumber,
    AstVarDecl,
)
from decimalify.visitors import iter_child_fields


# The node shapes the rewriter distinguishes. Anything it cannot use is
# `Other`, which keeps the node and its kind name for the error message.


@dataclass(frozen=True)
class Literal:
    node: AstNumber


@dataclass(frozen=True)
class BinaryOp:
    node: AstBinaryOp
    method: str
    """the precision type method that performs the operator"""


@dataclass(frozen=True)
class Call:
    node: AstFuncCall
    namespace: str | None
    method: str | None


@dataclass(frozen=True)
class Other:
    node: Ast
    kind: str


Classification = Union[Literal, BinaryOp, Call, Other]


def split_callee(func: AstExpr) -> tuple[str | None, str | None]:
    """returns (namespace, method) for a callee of the form `namespace.method`"""
    if not isinstance(func, AstGetAttr):
        return None, None
    namespace = func.parent.name if isinstance(func.parent, AstIdent) else None
    return namespace, func.attr


def classify(node: Ast, rules: RewriteRules = DEFAULT_RULES) -> Classification:
    if isinstance(node, AstNumber):
        return Literal(node)
    if isinstance(node, AstBinaryOp) and node.op in rules.operator_methods:
        return BinaryOp(node, rules.operator_methods[node.op])
    if isinstance(node, AstFuncCall):
        namespace, method = split_callee(node.func)
        return Call(node, namespace, method)
    return Other(node, type(node).__name__)


def ensure_fixed_point(node: Ast, rules: RewriteRules = DEFAULT_RULES) -> AstExpr:
    """
    Returns an expression equivalent to `node` that is safe to hand to the
    precision type: the literal itself, or a rewritten precision expression.
    Raises UnsupportedNodeKind for anything else, including identifiers,
    strings, unary expressions and non-arithmetic binary operators.
    """
    classified = classify(node, rules)
    if isinstance(classified, Literal):
        return node
    if isinstance(classified, BinaryOp):
        return rewrite_binary_expression(node, rules)
    if isinstance(classified, Call):
        return rewrite_call_expression(node, rules)
    raise UnsupportedNodeKind(node)


def rewrite_binary_expression(
    node: AstBinaryOp, rules: RewriteRules = DEFAULT_RULES
) -> AstExpr:
    """
    `a <op> b` becomes `new <Type>(a).<method>(b)`, with both operands made
    fixed point first. Operators without a method are returned unchanged and
    their operands are not looked at.
    """
    method = rules.operator_methods.get(node.op)
    if method is None:
        return node

    lhs = ensure_fixed_point(node.lhs, rules)
    rhs = ensure_fixed_point(node.rhs, rules)

    construct = AstNew(node.meta, AstIdent(node.meta, rules.precision_type), [lhs])
    return AstFuncCall(node.meta, AstGetAttr(node.meta, construct, method), [rhs])


def rewrite_call_expression(
    node: AstFuncCall, rules: RewriteRules = DEFAULT_RULES
) -> AstExpr:
    """
    `Math.<fn>(args)` becomes `<Type>.<mapped fn>(args)` for functions in the
    rules' static method table. The argument list is reused as is.
    """
    namespace, method = split_callee(node.func)
    if namespace is None or namespace != rules.math_namespace:
        return node
    static_method = rules.static_methods.get(method)
    if static_method is None:
        return node

    precision_type = AstIdent(node.func.parent.meta, rules.precision_type)
    return AstFuncCall(
        node.meta, AstGetAttr(node.func.meta, precision_type, static_method), node.args
    )


class ParentSlot(Enum):
    DECLARATION_INITIALIZER = "init"
    CALL_ARGUMENT = "args"


def parent_slot(parent: Ast, node: Ast) -> ParentSlot | None:
    """the position `node` holds in `parent`, if it is one a rewrite may replace"""
    if isinstance(parent, AstVarDecl) and parent.init is node:
        return ParentSlot.DECLARATION_INITIALIZER
    if isinstance(parent, AstFuncCall) and any(arg is node for arg in parent.args):
        return ParentSlot.CALL_ARGUMENT
    return None


class DecimalifyExpressions:
    """
    Walks the whole tree parents first, rewriting arithmetic and Math calls.

    Each node is rewritten before its children are visited, and the walk then
    continues into whichever node was kept. A rewrite is only kept when the
    node sits in a ParentSlot; anywhere else the rewrite is dropped and the
    original node stays. Nodes are never mutated: a parent whose child changed
    is rebuilt, and run() returns the new root.

    When `strict` is set, an arithmetic operand that cannot be made fixed
    point raises UnsupportedNodeKind. Otherwise the expression is left alone
    and a warning is recorded.
    """

    def __init__(self, rules: RewriteRules = DEFAULT_RULES, strict: bool = True):
        self.rules = rules
        self.strict = strict

    def run(self, start: Ast, state: CompileState) -> Ast:
        return self.walk(start, None, state)

    def rewrite(self, node: Ast, state: CompileState) -> Ast:
        try:
            if isinstance(node, AstBinaryOp):
                return rewrite_binary_expression(node, self.rules)
            if isinstance(node, AstFuncCall):
                return rewrite_call_expression(node, self.rules)
        except UnsupportedNodeKind as e:
            if self.strict:
                raise
            state.warn(f"arithmetic left unconverted. {e.msg}", e.node)
        return node

    def walk(self, node: Ast, parent: Ast | None, state: CompileState) -> Ast:
        retained = node
        if parent is not None:
            rewritten = self.rewrite(node, state)
            if rewritten is not node:
                if parent_slot(parent, node) is not None:
                    retained = rewritten
                else:
                    state.discarded_rewrites.append(node)
                    if decimalify.error.debug:
                        print(
                            Colors.dim(
                                f"discarding rewrite of {type(node).__name__} "
                                f"inside {type(parent).__name__}"
                            ),
                            file=sys.stderr,
                        )

        changes = {}
        for name, value in iter_child_fields(retained):
            if isinstance(value, list):
                new_items = [self.walk(item, retained, state) for item in value]
                if any(new is not old for new, old in zip(new_items, value)):
                    changes[name] = new_items
            else:
                new_value = self.walk(value, retained, state)
                if new_value is not value:
                    changes[name] = new_value

        if changes:
            retained = replace(retained, **changes)
        return retained
