from __future__ import annotations
import sys

from decimalify.compiler import text_to_ast, transform_ast
from decimalify.printer import print_ast
from decimalify.rules import DEFAULT_RULES, RewriteRules
from decimalify.state import CompileState


def load(
    source: str,
    file_name: str = "source.js",
    rules: RewriteRules = DEFAULT_RULES,
    strict: bool = True,
) -> str:
    """
    Module loader hook: takes the text of a module and returns it with the
    precision import in place and its arithmetic rewritten.

    Raises TransformError (SyntaxErrorDuringParse or UnsupportedNodeKind)
    when the module can't be transformed. Warnings from lenient mode are
    printed to stderr.
    """
    state = CompileState(file_name=file_name, input_lines=source.splitlines())
    program = transform_ast(text_to_ast(source), state, rules, strict)
    for warning in state.warnings:
        print(warning.render(), file=sys.stderr)
    return print_ast(program)

