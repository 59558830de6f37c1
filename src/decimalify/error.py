from __future__ import annotations
from dataclasses import dataclass, field
import sys
import traceback
from typing import Any

from lark import Token, UnexpectedCharacters, UnexpectedEOF, UnexpectedInput, UnexpectedToken


# ANSI color codes (only used if outputting to a terminal)
class Colors:
    RED = "\033[31m"
    YELLOW = "\033[33m"
    CYAN = "\033[36m"
    BOLD = "\033[1m"
    DIM = "\033[2m"
    RESET = "\033[0m"

    @classmethod
    def enabled(cls) -> bool:
        return sys.stderr.isatty()

    @classmethod
    def red(cls, s: str) -> str:
        return f"{cls.RED}{s}{cls.RESET}" if cls.enabled() else s

    @classmethod
    def yellow(cls, s: str) -> str:
        return f"{cls.YELLOW}{s}{cls.RESET}" if cls.enabled() else s

    @classmethod
    def cyan(cls, s: str) -> str:
        return f"{cls.CYAN}{s}{cls.RESET}" if cls.enabled() else s

    @classmethod
    def bold(cls, s: str) -> str:
        return f"{cls.BOLD}{s}{cls.RESET}" if cls.enabled() else s

    @classmethod
    def dim(cls, s: str) -> str:
        return f"{cls.DIM}{s}{cls.RESET}" if cls.enabled() else s


# assigned in main
debug = False


# the number of lines to show around a compile error
COMPILER_ERROR_CONTEXT_LINE_COUNT = 1


class TransformError(Exception):
    """Aborts the transform of a single file."""

    def __init__(self, msg: str, node=None):
        self.msg = msg
        self.node = node
        super().__init__(msg)


class UnsupportedNodeKind(TransformError):
    """Raised when an arithmetic operand cannot be turned into a fixed point expression."""

    def __init__(self, node):
        self.kind = type(node).__name__
        super().__init__(f"Don't know what to do with this node: {self.kind}", node)


class SyntaxErrorDuringParse(TransformError):
    """Raised when the source text does not parse."""


def syntax_error_from_lark(err: UnexpectedInput) -> SyntaxErrorDuringParse:
    if isinstance(err, UnexpectedToken):
        if err.token.type == "$END":
            return SyntaxErrorDuringParse("Unexpected end of input", err.token)
        return SyntaxErrorDuringParse(f"Unexpected token '{err.token}'", err.token)
    if isinstance(err, UnexpectedCharacters):
        char = err.char if err.char is not None else ""
        position = Token("INVALID", char, err.pos_in_stream, err.line, err.column)
        return SyntaxErrorDuringParse(f"Invalid character '{char}'", position)
    if isinstance(err, UnexpectedEOF):
        return SyntaxErrorDuringParse("Unexpected end of input")
    return SyntaxErrorDuringParse("Invalid syntax")


@dataclass
class CompileError:
    msg: str
    node: Any = None
    file_name: str | None = None
    input_lines: list[str] | None = field(default=None, repr=False)
    warning: bool = False
    """warnings render in yellow rather than red"""

    def __post_init__(self):
        self.stack_trace = "\n".join(traceback.format_stack(limit=8)[:-1])

    @property
    def meta(self):
        """the position of the offending node, or None if it has none"""
        if self.node is None:
            return None
        meta = self.node if isinstance(self.node, Token) else getattr(self.node, "meta", None)
        if meta is None or getattr(meta, "line", None) is None:
            return None
        return meta

    @property
    def location(self) -> str | None:
        if self.file_name is None:
            return None
        meta = self.meta
        if meta is None:
            return self.file_name
        return f"{self.file_name} ({meta.line},{meta.column})"

    def __str__(self):
        location = self.location
        if location is None:
            return self.msg
        return f"{location}: {self.msg}"

    def _color(self, s: str) -> str:
        return Colors.yellow(s) if self.warning else Colors.red(s)

    def render(self) -> str:
        """the diagnostic line, colored for a terminal, followed by the offending source"""
        stack_trace_optional = f"{self.stack_trace}\n" if debug else ""
        location = self.location
        if location is None:
            return f"{stack_trace_optional}{Colors.bold(self._color(self.msg))}"
        result = f"{stack_trace_optional}{Colors.cyan(location)}: {Colors.bold(self._color(self.msg))}"
        excerpt = self.excerpt()
        if excerpt:
            result += "\n" + excerpt
        return result

    def excerpt(self) -> str:
        meta = self.meta
        if meta is None or not self.input_lines:
            return ""

        source_start_line = meta.line - 1 - COMPILER_ERROR_CONTEXT_LINE_COUNT
        source_start_line = max(0, source_start_line)
        # end_line can be None for the $END token
        end_line = meta.end_line if meta.end_line is not None else meta.line
        source_end_line = end_line - 1 + COMPILER_ERROR_CONTEXT_LINE_COUNT
        source_end_line = min(len(self.input_lines) - 1, source_end_line)

        source_to_display: list[str] = self.input_lines[
            source_start_line : source_end_line + 1
        ]

        line_number_space = 6 if source_end_line < 998 else 10

        # right justified line number, then a |, then the line. lines of a
        # multiline node are marked with a >
        source_to_display = [
            (
                ("> " if meta.line - 1 <= source_start_line + line_idx < end_line - 1 else "")
                + str(source_start_line + line_idx + 1)
            ).rjust(line_number_space)
            + " | "
            + line
            for line_idx, line in enumerate(source_to_display)
        ]

        if end_line - meta.line > 1:
            # don't try to underline a multiline node
            return "\n".join(source_to_display)

        node_start_line_in_ctx = meta.line - 1 - source_start_line
        end_column = meta.end_column if meta.end_column is not None else meta.column + 1
        caret_str = "^" * max(1, end_column - meta.column)
        error_highlight = " " * (meta.column - 1 + line_number_space + 3) + self._color(caret_str)
        source_to_display.insert(node_start_line_in_ctx + 1, error_highlight)
        return "\n".join(source_to_display)
