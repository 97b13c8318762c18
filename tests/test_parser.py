"""
Parser Test Suite
=================
Covers statement parsing, word splitting, the compiled Grammar, and every
compile-time failure.

Usage:
    python -m unittest tests.test_parser -v
"""
import sys
import os
import unittest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from lscript.commands import CommandKind
from lscript.errors import (
    ArityError, EvaluationError, LexError, ParseError, UnboundVariableError,
    WeightError,
)
from lscript.grammar import Module, word_to_string
from lscript.nodes import BinaryOpNode
from lscript.parser import compile_source, parse_expression


def compile_body(body, name="Test"):
    return compile_source(f"lsystem {name} {{\n{body}\n}}")


KOCH = """
lsystem Koch {
  let angle = 90;
  axiom F;
  replace F by F+F-F-F+F;
  interpret F as DrawLine(1);
  interpret + as RotateLeft(angle);
  interpret - as RotateRight(angle);
}
"""


# ─────────────────────────────────────────────
#  Well-formed scripts
# ─────────────────────────────────────────────

class TestParseScripts(unittest.TestCase):
    """Tests for well-formed scripts and the compiled Grammar."""

    def test_koch(self):
        grammar = compile_source(KOCH)
        self.assertEqual(grammar.name, "Koch")
        self.assertEqual(grammar.axiom, (Module("F"),))
        self.assertEqual(len(grammar.productions), 1)
        self.assertEqual(
            "".join(t.symbol for t in grammar.productions[0].successor), "F+F-F-F+F")
        self.assertEqual(set(grammar.interpretations), {"F", "+", "-"})
        self.assertEqual(grammar.constants["angle"], 90.0)

    def test_word_tokens_split_into_symbols(self):
        grammar = compile_body("axiom 0; replace 0 by 1[0]0;")
        successor = grammar.productions[0].successor
        self.assertEqual([t.symbol for t in successor], ["1", "[", "0", "]", "0"])

    def test_identifier_run_splits(self):
        grammar = compile_body("axiom ABA;")
        self.assertEqual(word_to_string(grammar.axiom), "ABA")

    def test_parameters_attach_to_last_symbol(self):
        grammar = compile_body("axiom FA(1, 2 + 3);")
        self.assertEqual(grammar.axiom, (Module("F"), Module("A", (1.0, 5.0))))
        self.assertEqual(grammar.arities["A"], 2)
        self.assertEqual(grammar.arities["F"], 0)

    def test_let_refers_to_earlier_constants(self):
        grammar = compile_body("let a = 2; let b = a * 3; axiom A(b);")
        self.assertEqual(dict(grammar.constants), {"a": 2.0, "b": 6.0})
        self.assertEqual(grammar.axiom, (Module("A", (6.0,)),))

    def test_context_sensitive_production(self):
        grammar = compile_body("axiom BAC; replace B < A > C by AA;")
        production = grammar.productions[0]
        self.assertEqual(production.predecessor.symbol, "A")
        self.assertEqual([p.symbol for p in production.left_context], ["B"])
        self.assertEqual([p.symbol for p in production.right_context], ["C"])
        self.assertTrue(production.is_context_sensitive)

    def test_multi_symbol_left_context_keeps_word_order(self):
        grammar = compile_body("axiom BCA; replace BC < A by X;")
        self.assertEqual([p.symbol for p in grammar.productions[0].left_context], ["B", "C"])

    def test_condition_and_weight(self):
        grammar = compile_body(
            "let w = 2; axiom A(1); replace A(x) by A(x + 1) when x < 3 : w * 1.5;")
        production = grammar.productions[0]
        self.assertIsInstance(production.condition, BinaryOpNode)
        self.assertEqual(production.weight, 3.0)
        self.assertEqual(production.predecessor.params, ("x",))

    def test_default_weight(self):
        grammar = compile_body("axiom A; replace A by B;")
        self.assertEqual(grammar.productions[0].weight, 1.0)

    def test_empty_successor(self):
        grammar = compile_body("axiom AX; replace X by ;")
        self.assertEqual(grammar.productions[0].successor, ())

    def test_empty_successor_with_condition(self):
        grammar = compile_body("axiom X(1); replace X(n) by when n > 0;")
        self.assertEqual(grammar.productions[0].successor, ())
        self.assertIsNotNone(grammar.productions[0].condition)

    def test_multi_symbol_interpret(self):
        grammar = compile_body("axiom FG; interpret F G as DrawLine(1);")
        self.assertEqual(grammar.interpretations["F"].command,
                         grammar.interpretations["G"].command)
        self.assertEqual(grammar.interpretations["F"].command.info.kind, CommandKind.DRAW_LINE)

    def test_interpret_with_parameters(self):
        grammar = compile_body("axiom F(2); interpret F(len) as DrawLeaf(len * 2);")
        rule = grammar.interpretations["F"]
        self.assertEqual(rule.params, ("len",))
        self.assertEqual(rule.command.info.kind, CommandKind.DRAW_LEAF)

    def test_command_without_arguments(self):
        grammar = compile_body("axiom [X]; interpret [ as PushStack; interpret ] as PopStack; "
                               "interpret X as Noop;")
        self.assertEqual(grammar.interpretations["["].command.info.kind, CommandKind.PUSH)
        self.assertEqual(grammar.interpretations["X"].command.args, ())

    def test_ignore(self):
        grammar = compile_body("ignore + - &; axiom F;")
        self.assertEqual(grammar.ignored, frozenset("+-&"))

    def test_structural_glyph_symbols(self):
        grammar = compile_body("axiom F|^&/\\.<>;")
        self.assertEqual(word_to_string(grammar.axiom), "F|^&/\\.<>")

    def test_comments(self):
        grammar = compile_body("# leading comment\naxiom F; # trailing\n")
        self.assertEqual(word_to_string(grammar.axiom), "F")

    def test_grammar_is_read_only(self):
        grammar = compile_source(KOCH)
        with self.assertRaises(TypeError):
            grammar.constants["angle"] = 1.0
        with self.assertRaises(AttributeError):
            grammar.name = "Other"

    def test_production_str(self):
        grammar = compile_body("axiom A(1); replace A(x) by A(x+1)B when x < 3 : 2;")
        self.assertEqual(str(grammar.productions[0]), "A(x) -> A((x+1))B when (x<3) : 2")

    def test_module_str(self):
        self.assertEqual(str(Module("F", (2.0, 0.5))), "F(2,0.5)")
        self.assertEqual(str(Module("F", (float("inf"),))), "F(inf)")
        self.assertEqual(str(Module("F", (float("nan"),))), "F(nan)")


# ─────────────────────────────────────────────
#  Expressions
# ─────────────────────────────────────────────

class TestParseExpression(unittest.TestCase):
    """Tests for expression precedence and expression errors."""

    def test_multiplication_binds_tighter(self):
        node = parse_expression("1 + 2 * 3")
        self.assertEqual(node.operator, "+")
        self.assertEqual(node.right.operator, "*")

    def test_power_is_right_associative(self):
        node = parse_expression("2 ^ 3 ^ 2")
        self.assertEqual(node.operator, "^")
        self.assertEqual(node.right.operator, "^")

    def test_or_is_lowest(self):
        node = parse_expression("a & b | c")
        self.assertEqual(node.operator, "|")
        self.assertEqual(node.left.operator, "&")

    def test_relational_below_additive(self):
        node = parse_expression("x + 1 < y")
        self.assertEqual(node.operator, "<")

    def test_trailing_tokens_rejected(self):
        with self.assertRaises(ParseError):
            parse_expression("1 2")

    def test_unknown_function(self):
        with self.assertRaises(ParseError) as ctx:
            parse_expression("sine(1)")
        self.assertIn("Unknown function", str(ctx.exception))

    def test_empty_range_rejected(self):
        with self.assertRaises(ParseError):
            parse_expression("2..1")


# ─────────────────────────────────────────────
#  Failures
# ─────────────────────────────────────────────

class TestParseErrors(unittest.TestCase):
    """Tests for compile-time failures."""

    def test_missing_axiom(self):
        with self.assertRaises(ParseError) as ctx:
            compile_body("replace F by FF;")
        self.assertIn("Missing axiom", str(ctx.exception))

    def test_duplicate_axiom(self):
        with self.assertRaises(ParseError) as ctx:
            compile_body("axiom F;\naxiom G;")
        self.assertIn("Duplicate axiom", str(ctx.exception))
        self.assertEqual(ctx.exception.line, 3)

    def test_empty_axiom(self):
        with self.assertRaises(ParseError):
            compile_body("axiom ;")

    def test_unknown_command(self):
        with self.assertRaises(ParseError) as ctx:
            compile_body("axiom F; interpret F as Fly(1);")
        self.assertIn("Unknown command 'Fly'", str(ctx.exception))

    def test_duplicate_interpretation(self):
        with self.assertRaises(ParseError) as ctx:
            compile_body("axiom F; interpret F as DrawLine(1); interpret F as MoveForward(1);")
        self.assertIn("Duplicate interpretation", str(ctx.exception))

    def test_duplicate_parameter_name(self):
        with self.assertRaises(ParseError) as ctx:
            compile_body("axiom A(1, 2); replace A(x, x) by A(x, x);")
        self.assertIn("Duplicate parameter name 'x'", str(ctx.exception))

    def test_duplicate_name_across_context(self):
        with self.assertRaises(ParseError):
            compile_body("axiom B(1)A(2); replace B(x) < A(x) by A(x);")

    def test_arity_mismatch_between_axiom_and_production(self):
        with self.assertRaises(ArityError):
            compile_body("axiom A(1); replace A by AA;")

    def test_arity_mismatch_in_successor(self):
        with self.assertRaises(ArityError):
            compile_body("axiom A(1); replace A(x) by A(x)A;")

    def test_arity_mismatch_with_interpretation(self):
        with self.assertRaises(ArityError):
            compile_body("axiom F(1); interpret F as DrawLine(1);")

    def test_command_argument_count(self):
        with self.assertRaises(ArityError) as ctx:
            compile_body("axiom F; interpret F as DrawLine;")
        self.assertIn("DrawLine takes 1 argument(s), got 0", str(ctx.exception))
        with self.assertRaises(ArityError):
            compile_body("axiom F; interpret F as PushStack(1);")

    def test_negative_weight(self):
        with self.assertRaises(WeightError):
            compile_body("axiom F; replace F by FF : -1;")

    def test_zero_sum_group(self):
        with self.assertRaises(WeightError):
            compile_body("axiom F; replace F by FF : 0; replace F by F : 0;")

    def test_zero_weight_in_positive_group_allowed(self):
        grammar = compile_body("axiom F; replace F by FF : 0; replace F by F : 1;")
        self.assertEqual(len(grammar.productions), 2)

    def test_weight_error_is_arity_error(self):
        self.assertTrue(issubclass(WeightError, ArityError))

    def test_predecessor_must_be_one_symbol(self):
        with self.assertRaises(ParseError):
            compile_body("axiom AB; replace AB by A;")

    def test_bracket_in_context_rejected(self):
        with self.assertRaises(ParseError) as ctx:
            compile_body("axiom [A; replace [ < A by A;")
        self.assertIn("Brackets", str(ctx.exception))

    def test_missing_semicolon(self):
        with self.assertRaises(ParseError) as ctx:
            compile_body("axiom F\nreplace F by FF;")
        self.assertIn("Missing ';'", str(ctx.exception))

    def test_unbalanced_block(self):
        with self.assertRaises(ParseError):
            compile_source("lsystem Open { axiom F;")

    def test_header_required(self):
        with self.assertRaises(ParseError):
            compile_source("axiom F;")

    def test_text_after_block(self):
        with self.assertRaises(ParseError):
            compile_source("lsystem A { axiom F; } extra")

    def test_errors_are_accumulated(self):
        """Parsing resumes after ';' and reports every error at once."""
        source = "lsystem Bad {\n  axiom F;\n  replace by F;\n  interpret F as ;\n}"
        with self.assertRaises(ParseError) as ctx:
            compile_source(source)
        error = ctx.exception
        self.assertEqual(len(error.diagnostics), 2)
        self.assertEqual([d.line for d in error.diagnostics], [3, 4])
        self.assertIn("2 parse error(s)", str(error))

    def test_unbound_constant(self):
        with self.assertRaises(UnboundVariableError):
            compile_body("let a = b + 1; axiom F;")

    def test_range_not_allowed_in_let(self):
        with self.assertRaises(EvaluationError):
            compile_body("let a = 0..1; axiom F;")

    def test_range_not_allowed_in_axiom_or_weight(self):
        """Both are evaluated once at compile time, with no random source."""
        with self.assertRaises(EvaluationError):
            compile_body("axiom A(0..1);")
        with self.assertRaises(EvaluationError):
            compile_body("axiom A; replace A by B : 0..1;")

    def test_infinite_constant(self):
        with self.assertRaises(EvaluationError):
            compile_body("let a = 10^300*10^300; axiom A(1); replace A(x) by A(a-a);")

    def test_lex_error_propagates(self):
        with self.assertRaises(LexError):
            compile_body("axiom F$;")

    def test_invalid_symbol_in_word(self):
        with self.assertRaises(ParseError):
            compile_body("axiom F_G;")


if __name__ == "__main__":
    unittest.main()
