from __future__ import annotations
from dataclasses import replace

from decimalify.rules import DEFAULT_RULES, RewriteRules
from decimalify.state import CompileState
from decimalify.syntax import AstImport, AstProgram, AstString


def is_precision_import(stmt, rules: RewriteRules = DEFAULT_RULES) -> bool:
    return (
        isinstance(stmt, AstImport)
        and stmt.module.value == rules.module
        and rules.precision_type in stmt.bindings()
    )


def has_precision_import(program: AstProgram, rules: RewriteRules = DEFAULT_RULES) -> bool:
    """true if a top level import from the precision module already binds the type's name"""
    return any(is_precision_import(stmt, rules) for stmt in program.stmts)


def precision_import(rules: RewriteRules = DEFAULT_RULES) -> AstImport:
    return AstImport(None, AstString(None, f'"{rules.module}"'), rules.precision_type, None, None)


class EnsurePrecisionImport:
    """
    Makes sure the program imports the precision type under the name the
    rewriter uses, by putting an import in front of every other statement
    when there isn't one already. Running it twice changes nothing.
    """

    def __init__(self, rules: RewriteRules = DEFAULT_RULES):
        self.rules = rules

    def run(self, program: AstProgram, state: CompileState) -> AstProgram:
        if has_precision_import(program, self.rules):
            return program
        return replace(program, stmts=[precision_import(self.rules)] + program.stmts)
