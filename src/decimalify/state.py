from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum

from decimalify.error import CompileError
from decimalify.syntax import Ast, AstIdent


class SymbolKind(Enum):
    IMPORT = "import"
    LET = "let"
    CONST = "const"
    VAR = "var"
    FUNCTION = "function"
    PARAM = "param"


BLOCK_SCOPED_KINDS = (SymbolKind.LET, SymbolKind.CONST)


@dataclass
class Symbol:
    name: str
    kind: SymbolKind
    declaration: Ast
    """the node which declares the symbol"""


@dataclass(eq=False)
class Scope:
    parent: Scope | None = None
    is_function: bool = False
    """true for the program scope and function scopes, which `var` declarations hoist to"""
    symbols: dict[str, Symbol] = field(default_factory=dict)

    def lookup(self, name: str) -> Symbol | None:
        scope = self
        while scope is not None:
            sym = scope.symbols.get(name)
            if sym is not None:
                return sym
            scope = scope.parent
        return None

    def function_scope(self) -> Scope:
        scope = self
        while not scope.is_function:
            scope = scope.parent
        return scope


@dataclass
class CompileState:
    """a collection of input, internal and output state variables and maps for one file"""

    file_name: str | None = None
    input_lines: list[str] | None = field(default=None, repr=False)

    enclosing_scope: dict[Ast, Scope] = field(default_factory=dict, repr=False)
    """map of node to the scope it is evaluated in"""
    declaring_idents: set[AstIdent] = field(default_factory=set, repr=False)
    """identifiers which declare a name rather than reference one"""
    resolved_symbols: dict[AstIdent, Symbol] = field(default_factory=dict, repr=False)
    """reference to its singular resolution"""

    discarded_rewrites: list[Ast] = field(default_factory=list, repr=False)
    """nodes which had a rewrite computed for them that their parent could not take"""

    errors: list[CompileError] = field(default_factory=list)
    """a list of all compile errors generated by passes"""

    warnings: list[CompileError] = field(default_factory=list)
    """a list of all warnings generated by passes"""

    def err(self, msg, n):
        """adds a compile error to internal state"""
        self.errors.append(CompileError(msg, n, self.file_name, self.input_lines))

    def warn(self, msg, n):
        self.warnings.append(
            CompileError(
                "Warning: " + msg, n, self.file_name, self.input_lines, warning=True
            )
        )
