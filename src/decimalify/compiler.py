from __future__ import annotations
import argparse
from dataclasses import dataclass, field, replace
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
import sys

from lark import Lark, UnexpectedInput
from lark.exceptions import VisitError

import decimalify.error
from decimalify.error import (
    CompileError,
    SyntaxErrorDuringParse,
    TransformError,
    syntax_error_from_lark,
)
from decimalify.imports import EnsurePrecisionImport
from decimalify.printer import format_tree, print_ast
from decimalify.rewriter import DecimalifyExpressions
from decimalify.rules import DEFAULT_RULES, PRESETS, RewriteRules
from decimalify.semantics import (
    CheckAssignments,
    CreateDeclarations,
    CreateScopes,
    ResolveNames,
)
from decimalify.state import CompileState
from decimalify.syntax import AstProgram, DecimalifyTransformer

# Load grammar once at module level
_grammar_path = Path(__file__).parent / "grammar.lark"
_grammar_str = _grammar_path.read_text()

# the LALR parser keeps no state between parses, so one instance is reused
_parser = Lark(
    _grammar_str,
    start="program",
    parser="lalr",
    propagate_positions=True,
    maybe_placeholders=True,
)

TOO_DEEPLY_NESTED = "Maximum recursion depth exceeded (code is too deeply nested)"
DEFAULT_OUTPUT_SUFFIX = ".decimal.js"


def text_to_ast(text: str) -> AstProgram:
    """parses JavaScript source, raising SyntaxErrorDuringParse if it isn't valid"""
    try:
        tree = _parser.parse(text)
    except UnexpectedInput as e:
        raise syntax_error_from_lark(e) from e
    try:
        return DecimalifyTransformer().transform(tree)
    except RecursionError:
        raise SyntaxErrorDuringParse(TOO_DEEPLY_NESTED)
    except VisitError as e:
        # VisitError wraps exceptions that occur during tree transformation
        if isinstance(e.orig_exc, RecursionError):
            raise SyntaxErrorDuringParse(TOO_DEEPLY_NESTED) from e
        raise


def transform_ast(
    program: AstProgram,
    state: CompileState,
    rules: RewriteRules = DEFAULT_RULES,
    strict: bool = True,
) -> AstProgram:
    """returns the program with the precision import in place and its arithmetic rewritten"""
    transform_passes = [
        # the import goes first so that it is never rewritten
        EnsurePrecisionImport(rules),
        DecimalifyExpressions(rules, strict),
    ]
    try:
        for transform_pass in transform_passes:
            program = transform_pass.run(program, state)
    except RecursionError:
        raise TransformError(TOO_DEEPLY_NESTED)
    return program


def check_ast(program: AstProgram, state: CompileState) -> list[CompileError]:
    """runs the checks on a rewritten program, stopping after the first one that finds errors"""
    check_passes = [
        # based on position of node in tree, figure out which scope it is in
        CreateScopes(),
        # imports, variables, functions and params go into their scopes
        CreateDeclarations(),
        ResolveNames(),
        CheckAssignments(),
    ]
    for check_pass in check_passes:
        check_pass.run(program, state)
        if len(state.errors) != 0:
            break
    return state.errors


@dataclass
class SourceFile:
    file_name: str
    text: str = field(repr=False)
    program: AstProgram = field(repr=False)
    warnings: list[CompileError] = field(default_factory=list)

    @property
    def lines(self) -> list[str]:
        return self.text.splitlines()


@dataclass
class CompilerOptions:
    no_emit_on_error: bool = True
    out_dir: str | None = None
    """where emitted files go. None puts each next to its source as <stem>.decimal.js"""
    strict: bool = True
    """fail on arithmetic that can't be converted, rather than warn and leave it"""
    rules: RewriteRules = DEFAULT_RULES


@dataclass
class EmitResult:
    emit_skipped: bool
    diagnostics: list[CompileError] = field(default_factory=list)
    emitted_files: list[str] = field(default_factory=list)


class CompilerHost:
    """reads, parses and writes files for a Program"""

    def __init__(self, options: CompilerOptions | None = None):
        self.options = options or CompilerOptions()

    def read_file(self, file_name: str) -> str | None:
        try:
            return Path(file_name).read_text()
        except OSError:
            return None

    def write_file(self, file_name: str, text: str):
        path = Path(file_name)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text)

    def get_source_file(self, file_name: str, text: str | None = None) -> SourceFile | None:
        """
        Returns the parsed file, or None if it can't be read. Raises
        TransformError if the text does not parse.
        """
        if text is None:
            text = self.read_file(file_name)
        if text is None:
            return None
        return SourceFile(file_name, text, text_to_ast(text))


class DecimalifyHost(CompilerHost):
    """a CompilerHost whose source files come back with their arithmetic already rewritten"""

    def get_source_file(self, file_name: str, text: str | None = None) -> SourceFile | None:
        source = super().get_source_file(file_name, text)
        if source is None:
            return None
        state = CompileState(file_name=source.file_name, input_lines=source.lines)
        program = transform_ast(
            source.program, state, self.options.rules, self.options.strict
        )
        return replace(source, program=program, warnings=state.warnings)


class Program:
    """a set of source files loaded through a host, which can be checked and emitted together"""

    def __init__(
        self,
        file_names: list[str],
        options: CompilerOptions | None = None,
        host: CompilerHost | None = None,
    ):
        self.options = options or CompilerOptions()
        self.host = host or DecimalifyHost(self.options)
        self.source_files: list[SourceFile] = []
        self.load_errors: list[CompileError] = []
        self._diagnostics: list[CompileError] | None = None

        for file_name in file_names:
            self._load(file_name)

    def _load(self, file_name: str):
        text = self.host.read_file(file_name)
        if text is None:
            self.load_errors.append(CompileError(f"File '{file_name}' not found."))
            return
        try:
            source = self.host.get_source_file(file_name, text)
        except TransformError as e:
            self.load_errors.append(
                CompileError(e.msg, e.node, file_name, text.splitlines())
            )
            return
        self.source_files.append(source)

    @property
    def warnings(self) -> list[CompileError]:
        return [w for source in self.source_files for w in source.warnings]

    def output_path(self, source: SourceFile) -> Path:
        source_path = Path(source.file_name)
        if self.options.out_dir is None:
            # next to the source, under a name that can't be the source itself
            out_dir, suffix = source_path.parent, DEFAULT_OUTPUT_SUFFIX
        else:
            out_dir, suffix = Path(self.options.out_dir), ".js"
        return out_dir / (source_path.stem + suffix)

    def _overwrites_input(self, source: SourceFile) -> bool:
        return self.output_path(source).resolve() == Path(source.file_name).resolve()

    def get_pre_emit_diagnostics(self) -> list[CompileError]:
        if self._diagnostics is not None:
            return self._diagnostics

        diagnostics = list(self.load_errors)
        for source in self.source_files:
            if self._overwrites_input(source):
                diagnostics.append(
                    CompileError(
                        f"Cannot write file '{self.output_path(source)}' because it would overwrite input file."
                    )
                )
            state = CompileState(file_name=source.file_name, input_lines=source.lines)
            diagnostics.extend(check_ast(source.program, state))

        self._diagnostics = diagnostics
        return diagnostics

    def emit(self) -> EmitResult:
        if self.options.no_emit_on_error and self.get_pre_emit_diagnostics():
            return EmitResult(emit_skipped=True)

        result = EmitResult(emit_skipped=False)
        for source in self.source_files:
            if self._overwrites_input(source):
                continue
            out_path = str(self.output_path(source))
            self.host.write_file(out_path, print_ast(source.program))
            result.emitted_files.append(out_path)
        return result


def compile_files(file_names: list[str], options: CompilerOptions | None = None) -> int:
    """
    Rewrites, checks and emits the given files, printing every diagnostic to
    stderr. Returns 1 if nothing was emitted because of errors, otherwise 0.
    """
    program = Program(file_names, options)
    emit_result = program.emit()

    for warning in program.warnings:
        print(warning.render(), file=sys.stderr)
    for diagnostic in program.get_pre_emit_diagnostics() + emit_result.diagnostics:
        print(diagnostic.render(), file=sys.stderr)

    return 1 if emit_result.emit_skipped else 0


def print_files(
    file_names: list[str], options: CompilerOptions | None = None, dump_tree: bool = False
) -> int:
    """runs each file through the loader transform and prints the result to stdout"""
    options = options or CompilerOptions()
    host = DecimalifyHost(options)
    exit_code = 0
    for file_name in file_names:
        text = host.read_file(file_name)
        if text is None:
            print(CompileError(f"File '{file_name}' not found.").render(), file=sys.stderr)
            exit_code = 1
            continue
        try:
            source = host.get_source_file(file_name, text)
        except TransformError as e:
            error = CompileError(e.msg, e.node, file_name, text.splitlines())
            print(error.render(), file=sys.stderr)
            exit_code = 1
            continue
        for warning in source.warnings:
            print(warning.render(), file=sys.stderr)
        if dump_tree:
            print(format_tree(source.program))
        else:
            print(print_ast(source.program), end="")
    return exit_code


def _package_version() -> str:
    try:
        return version("decimalify")
    except PackageNotFoundError:
        return "unknown"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="decimalify",
        description="Rewrites JavaScript arithmetic into calls on an arbitrary precision decimal type.",
    )
    parser.add_argument("files", nargs="+", metavar="FILE", help="JavaScript source files")
    parser.add_argument(
        "--out-dir",
        default=None,
        metavar="DIR",
        help="Directory to emit rewritten files to (default: <stem>.decimal.js next to each source)",
    )
    parser.add_argument(
        "--library",
        choices=sorted(PRESETS),
        default=DEFAULT_RULES.module,
        help=f"Precision library to rewrite against (default: {DEFAULT_RULES.module})",
    )
    parser.add_argument(
        "--lenient",
        action="store_true",
        help="Warn about arithmetic that can't be converted and leave it as is, instead of failing",
    )
    parser.add_argument(
        "--print",
        action="store_true",
        help="Print the rewritten source to stdout instead of checking and emitting it",
    )
    parser.add_argument(
        "--dump-tree",
        action="store_true",
        help="Print the rewritten syntax tree to stdout",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Show stack traces with diagnostics and report discarded rewrites",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {_package_version()}"
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)

    decimalify.error.debug = args.debug

    options = CompilerOptions(
        out_dir=args.out_dir,
        strict=not args.lenient,
        rules=PRESETS[args.library],
    )

    if args.print or args.dump_tree:
        return print_files(args.files, options, dump_tree=args.dump_tree)
    return compile_files(args.files, options)


if __name__ == "__main__":
    sys.exit(main())
