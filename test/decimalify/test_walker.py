import pytest

import decimalify.error
from decimalify.compiler import text_to_ast
from decimalify.error import Colors, CompileError, UnsupportedNodeKind
from decimalify.printer import print_ast
from decimalify.rewriter import (
    DecimalifyExpressions,
    ParentSlot,
    parent_slot,
)
from decimalify.rules import BIG_JS
from decimalify.state import CompileState
from decimalify.syntax import AstFuncCall, AstNew, AstVarStmt
from decimalify.test_helpers import (
    assert_transform,
    assert_transform_failure,
    parse_expr,
    transform,
)


def walk(source: str, strict: bool = True, rules=None):
    """run only the expression pass, without the import"""
    state = CompileState(file_name="<test>", input_lines=source.splitlines())
    program = text_to_ast(source)
    walker = DecimalifyExpressions(rules, strict) if rules else DecimalifyExpressions(strict=strict)
    return program, walker.run(program, state), state


class TestParentSlot:
    def test_declaration_initializer(self):
        decl = text_to_ast("let x = 1 + 2;").stmts[0].decls[0]
        assert parent_slot(decl, decl.init) == ParentSlot.DECLARATION_INITIALIZER

    def test_declaration_name_is_not_a_slot(self):
        decl = text_to_ast("let x = 1;").stmts[0].decls[0]
        assert parent_slot(decl, decl.name) is None

    def test_call_argument(self):
        call = parse_expr("f(1 + 2)")
        assert parent_slot(call, call.args[0]) == ParentSlot.CALL_ARGUMENT

    def test_callee_is_not_a_slot(self):
        call = parse_expr("f(1)")
        assert parent_slot(call, call.func) is None

    def test_other_parents(self):
        binary = parse_expr("(1 + 2) * 3")
        assert parent_slot(binary, binary.lhs) is None
        assign = parse_expr("x = 1 + 2")
        assert parent_slot(assign, assign.rhs) is None


class TestDeclarations:
    def test_initializer_rewritten(self):
        assert_transform("let x = 1 + 2;", "let x = new Decimal(1).plus(2);\n")

    def test_literals_preserved(self):
        program, result, _ = walk("let x = 1 + 2;")
        init = result.stmts[0].decls[0].init
        assert isinstance(init, AstFuncCall)
        construct = init.func.parent
        assert isinstance(construct, AstNew)
        assert construct.args[0].raw == "1"
        assert init.args[0].raw == "2"

    def test_every_declarator(self):
        assert_transform(
            "const a = 1 * 2, b, c = 3 / 4;",
            "const a = new Decimal(1).times(2), b, c = new Decimal(3).div(4);\n",
        )

    def test_var_and_const(self):
        assert_transform("var a = 0.1 - 0.2;", "var a = new Decimal(0.1).minus(0.2);\n")

    def test_nested_in_function(self):
        assert_transform(
            "function f() {\n    let x = 2 * 3;\n    return x;\n}",
            "function f() {\n    let x = new Decimal(2).times(3);\n    return x;\n}\n",
        )

    def test_trig_initializer(self):
        assert_transform("let y = Math.sin(x);", "let y = Decimal.sin(x);\n")

    def test_trig_argument_kept(self):
        program, result, _ = walk("let y = Math.sin(x);")
        before = program.stmts[0].decls[0].init
        after = result.stmts[0].decls[0].init
        assert after is not before
        assert after.args[0] is before.args[0]

    def test_unmatched_call_unchanged(self):
        assert_transform("let y = Math.log(x);", "let y = Math.log(x);\n")


class TestCallArguments:
    def test_single_argument(self):
        assert_transform("f(1 + 2);", "f(new Decimal(1).plus(2));\n")

    def test_callee_and_arity_unchanged(self):
        _, result, _ = walk("f(1 + 2);")
        call = result.stmts[0].expr
        assert call.func.name == "f"
        assert len(call.args) == 1

    def test_positional_with_siblings(self):
        assert_transform("f(x, 1 / 3, 2);", "f(x, new Decimal(1).div(3), 2);\n")

    def test_method_call_argument(self):
        assert_transform(
            "console.log(0.1 + 0.2);", "console.log(new Decimal(0.1).plus(0.2));\n"
        )

    def test_nested_calls(self):
        assert_transform("f(g(1 - 2));", "f(g(new Decimal(1).minus(2)));\n")

    def test_trig_argument_of_call(self):
        assert_transform("f(Math.cos(1));", "f(Decimal.cos(1));\n")


class TestPassthrough:
    def test_comparison_left_alone(self):
        assert_transform("let b = 1 < 2;", "let b = 1 < 2;\n")

    def test_comparison_with_identifiers_left_alone(self):
        # the comparison is not arithmetic, so its operands are never classified
        assert_transform("let b = x < y;", "let b = x < y;\n")

    def test_unary_left_alone(self):
        assert_transform("let n = -1;", "let n = -1;\n")

    def test_remainder_left_alone(self):
        assert_transform("let r = 5 % 2;", "let r = 5 % 2;\n")

    def test_exponent_left_alone(self):
        assert_transform("let p = 2 ** 10;", "let p = 2 ** 10;\n")

    def test_increment_left_alone(self):
        assert_transform("i++;", "i++;\n")

    def test_program_without_arithmetic_unchanged(self):
        program, result, state = walk("let s = 'a';\nf(x);")
        assert result is program
        assert state.discarded_rewrites == []


class TestDiscardedRewrites:
    def test_expression_statement(self):
        program, result, state = walk("1 + 2;")
        assert result is program
        assert state.discarded_rewrites == [program.stmts[0].expr]

    def test_assignment(self):
        assert_transform("x = 1 + 2;", "x = 1 + 2;\n")

    def test_return(self):
        assert_transform(
            "function f() {\n    return 1 + 2;\n}",
            "function f() {\n    return 1 + 2;\n}\n",
        )

    def test_array_element(self):
        assert_transform("let a = [1 + 2];", "let a = [1 + 2];\n")

    def test_nested_operand_of_rewritten_initializer(self):
        # the outer rewrite already converted the inner expression
        assert_transform(
            "let x = (1 + 2) * 3;",
            "let x = new Decimal(new Decimal(1).plus(2)).times(3);\n",
        )

    def test_argument_inside_discarded_expression_still_rewritten(self):
        assert_transform("x = f(1 + 2);", "x = f(new Decimal(1).plus(2));\n")

    def test_debug_reports_discard(self, capsys):
        decimalify.error.debug = True
        walk("1 + 2;")
        assert "discarding rewrite of AstBinaryOp inside AstExprStmt" in capsys.readouterr().err

    def test_quiet_without_debug(self, capsys):
        decimalify.error.debug = False
        walk("1 + 2;")
        assert capsys.readouterr().err == ""


class TestStrictness:
    def test_strict_fails_on_identifier_operand(self):
        e = assert_transform_failure("let y = x + 1;")
        assert isinstance(e, UnsupportedNodeKind)
        assert e.kind == "AstIdent"
        assert e.node.meta.line == 1

    def test_strict_fails_on_unary_operand(self):
        e = assert_transform_failure("let y = -1 + 2;")
        assert e.kind == "AstUnaryOp"

    def test_strict_fails_even_when_rewrite_would_be_discarded(self):
        e = assert_transform_failure("total = total + 1;")
        assert e.kind == "AstIdent"

    def test_lenient_leaves_expression(self):
        output, state = transform("let y = x + 1;", strict=False)
        assert output.endswith("let y = x + 1;\n")
        assert len(state.warnings) == 1
        assert state.errors == []

    def test_lenient_warning(self):
        _, state = transform("let a = 1;\nlet y = a * 2;", strict=False)
        (warning,) = state.warnings
        assert warning.msg == (
            "Warning: arithmetic left unconverted. Don't know what to do with this node: AstIdent"
        )
        assert str(warning) == f"<test> (2,9): {warning.msg}"

    def test_lenient_warning_colored_apart_from_errors(self, monkeypatch):
        monkeypatch.setattr(Colors, "enabled", classmethod(lambda cls: True))
        _, state = transform("let a = 1;\nlet y = a * 2;", strict=False)
        (warning,) = state.warnings
        assert warning.warning
        rendered = warning.render()
        assert f"{Colors.YELLOW}{warning.msg}{Colors.RESET}" in rendered
        assert Colors.RED not in rendered

        e = assert_transform_failure("let y = x + 1;")
        error = CompileError(e.msg, e.node, "<test>", ["let y = x + 1;"])
        assert f"{Colors.RED}{e.msg}{Colors.RESET}" in error.render()

    def test_lenient_still_rewrites_the_rest(self):
        output, state = transform("let y = x + 1;\nlet z = 1 + 2;", strict=False)
        assert output.endswith("let y = x + 1;\nlet z = new Decimal(1).plus(2);\n")
        assert len(state.warnings) == 1


class TestPureReconstruction:
    def test_original_tree_untouched(self):
        program, result, _ = walk("let x = 1 + 2;\nf(3 * 4);")
        assert result is not program
        assert print_ast(program) == "let x = 1 + 2;\nf(3 * 4);\n"

    def test_unchanged_statements_shared(self):
        program, result, _ = walk("let s = 'a';\nlet x = 1 + 2;")
        assert result.stmts[0] is program.stmts[0]
        assert result.stmts[1] is not program.stmts[1]
        assert isinstance(result.stmts[1], AstVarStmt)

    def test_walk_is_stable(self):
        _, first, state = walk("let x = 1 + 2;\nf(3 * 4);")
        second = DecimalifyExpressions().run(first, state)
        assert second is first


class TestOtherLibraries:
    def test_big_js(self):
        assert_transform("let x = 1 / 3;", "let x = new Big(1).div(3);\n", rules=BIG_JS)

    def test_big_js_leaves_trig(self):
        assert_transform("let y = Math.sin(1);", "let y = Math.sin(1);\n", rules=BIG_JS)

    @pytest.mark.parametrize("strict", [True, False])
    def test_rules_passed_to_walker(self, strict):
        _, result, _ = walk("let x = 1 + 2;", strict=strict, rules=BIG_JS)
        assert print_ast(result) == "let x = new Big(1).plus(2);\n"
