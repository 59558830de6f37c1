from __future__ import annotations
from dataclasses import fields
from typing import Iterator, Union

from decimalify.state import CompileState
from decimalify.syntax import Ast


def iter_child_fields(node: Ast) -> Iterator[tuple[str, Union[Ast, list]]]:
    """yields (field name, value) for every field holding a node or a list of nodes"""
    for f in fields(node):
        if f.name == "meta":
            continue
        value = getattr(node, f.name)
        if isinstance(value, (Ast, list)):
            yield f.name, value


def child_nodes(node: Ast) -> Iterator[Ast]:
    """yields the direct children of a node in source order"""
    for _, value in iter_child_fields(node):
        if isinstance(value, list):
            yield from (item for item in value if isinstance(item, Ast))
        else:
            yield value


class _Dispatcher:
    """
    Maps node classes to handler methods by name. A handler named
    `<prefix>AstFoo_AstBar` handles both AstFoo and AstBar. Handlers for a
    base class (e.g. AstExpr) apply to every subclass without its own handler.
    """

    prefix = "visit_"

    def __init__(self):
        self.handlers = {}
        for attr in dir(type(self)):
            if not attr.startswith(self.prefix) or attr == self.prefix + "default":
                continue
            for class_name in attr[len(self.prefix) :].split("_"):
                self.handlers[class_name] = getattr(self, attr)

    def handler_for(self, node: Ast):
        for cls in type(node).__mro__:
            handler = self.handlers.get(cls.__name__)
            if handler is not None:
                return handler
        return getattr(self, self.prefix + "default")


class Visitor(_Dispatcher):
    """visits every node in the tree, children before their parent"""

    def run(self, start: Ast, state: CompileState):
        for child in child_nodes(start):
            self.run(child, state)
        self.handler_for(start)(start, state)

    def visit_default(self, node: Ast, state: CompileState):
        pass


class TopDownVisitor(_Dispatcher):
    """visits every node in the tree, parents before their children"""

    def run(self, start: Ast, state: CompileState):
        self.handler_for(start)(start, state)
        for child in child_nodes(start):
            self.run(child, state)

    def visit_default(self, node: Ast, state: CompileState):
        pass


class Emitter(_Dispatcher):
    """produces output for a node by calling the matching emit_ method"""

    prefix = "emit_"

    def emit(self, node: Ast):
        return self.handler_for(node)(node)

    def emit_default(self, node: Ast):
        raise NotImplementedError(f"cannot emit {type(node).__name__}")
