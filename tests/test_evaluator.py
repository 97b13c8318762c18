"""
Evaluator Test Suite
====================
Usage:
    python -m unittest tests.test_evaluator -v
"""
import sys
import os
import math
import unittest

import numpy as np

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from lscript.errors import DivisionByZeroError, EvaluationError, UnboundVariableError
from lscript.evaluator import Evaluator
from lscript.parser import parse_expression


def ev(source, bindings=None, constants=None, rng=None):
    return Evaluator(constants, rng).evaluate(parse_expression(source), bindings)


class TestArithmetic(unittest.TestCase):
    """Tests for arithmetic operators and precedence."""

    def test_precedence(self):
        self.assertEqual(ev("1 + 2 * 3"), 7.0)
        self.assertEqual(ev("(1 + 2) * 3"), 9.0)
        self.assertEqual(ev("10 - 4 - 3"), 3.0)

    def test_real_division(self):
        self.assertEqual(ev("10 / 4"), 2.5)

    def test_floating_modulo(self):
        self.assertEqual(ev("7 % 3"), 1.0)
        self.assertEqual(ev("7.5 % 2"), 1.5)
        self.assertEqual(ev("-7 % 3"), -1.0)

    def test_power_right_associative(self):
        self.assertEqual(ev("2 ^ 3 ^ 2"), 512.0)

    def test_unary_binds_tighter_than_power(self):
        """-2 ^ 2 is (-2) ^ 2."""
        self.assertEqual(ev("-2 ^ 2"), 4.0)

    def test_unary(self):
        self.assertEqual(ev("-3 + +2"), -1.0)
        self.assertEqual(ev("--3"), 3.0)

    def test_result_is_float(self):
        self.assertIsInstance(ev("1 + 1"), float)


class TestLogic(unittest.TestCase):
    """Tests for relational and logical operators."""

    def test_relational(self):
        self.assertEqual(ev("3 > 2"), 1.0)
        self.assertEqual(ev("3 < 2"), 0.0)
        self.assertEqual(ev("2 = 2"), 1.0)
        self.assertEqual(ev("2 = 3"), 0.0)
        self.assertEqual(ev("1 <= 1"), 1.0)
        self.assertEqual(ev("1 >= 2"), 0.0)
        self.assertEqual(ev("1 != 1"), 0.0)

    def test_logical(self):
        self.assertEqual(ev("1 & 0"), 0.0)
        self.assertEqual(ev("2 & 3"), 1.0)
        self.assertEqual(ev("0 | 2"), 1.0)
        self.assertEqual(ev("0 | 0"), 0.0)
        self.assertEqual(ev("!0"), 1.0)
        self.assertEqual(ev("!3"), 0.0)

    def test_and_binds_tighter_than_or(self):
        self.assertEqual(ev("1 | 1 & 0"), 1.0)

    def test_short_circuit(self):
        self.assertEqual(ev("0 & (1 / 0)"), 0.0)
        self.assertEqual(ev("1 | missing"), 1.0)

    def test_truthy(self):
        evaluator = Evaluator()
        self.assertTrue(evaluator.truthy(parse_expression("x > 1"), {"x": 2.0}))
        self.assertFalse(evaluator.truthy(parse_expression("x > 1"), {"x": 0.5}))


class TestScope(unittest.TestCase):
    """Tests for bindings and constants."""

    def test_bindings(self):
        self.assertEqual(ev("x * y", {"x": 2.0, "y": 4.0}), 8.0)

    def test_constants(self):
        self.assertEqual(ev("angle / 2", constants={"angle": 90.0}), 45.0)

    def test_bindings_shadow_constants(self):
        self.assertEqual(ev("x", {"x": 5.0}, {"x": 1.0}), 5.0)

    def test_bindings_do_not_leak_into_constants(self):
        evaluator = Evaluator({"x": 1.0})
        evaluator.evaluate(parse_expression("x"), {"x": 5.0, "y": 2.0})
        self.assertEqual(evaluator.constants, {"x": 1.0})

    def test_unbound(self):
        with self.assertRaises(UnboundVariableError) as ctx:
            ev("x + 1")
        self.assertIn("'x'", str(ctx.exception))
        self.assertEqual((ctx.exception.line, ctx.exception.col), (1, 1))


class TestFunctions(unittest.TestCase):
    """Tests for the built-in math functions."""

    def test_builtins(self):
        self.assertEqual(ev("max(2, 3)"), 3.0)
        self.assertEqual(ev("min(2, 3)"), 2.0)
        self.assertEqual(ev("sqrt(16)"), 4.0)
        self.assertEqual(ev("abs(-2.5)"), 2.5)
        self.assertEqual(ev("floor(2.7) + ceil(2.2)"), 5.0)
        self.assertAlmostEqual(ev("atan2(1, 1)"), math.pi / 4)
        self.assertAlmostEqual(ev("cos(0) + sin(0)"), 1.0)
        self.assertAlmostEqual(ev("log(exp(2))"), 2.0)

    def test_domain_error(self):
        with self.assertRaises(EvaluationError):
            ev("sqrt(-1)")
        with self.assertRaises(EvaluationError):
            ev("log(0)")

    def test_wrong_argument_count(self):
        with self.assertRaises(EvaluationError):
            ev("max(1)")


class TestFailures(unittest.TestCase):
    """Tests for evaluation failures."""

    def test_division_by_zero(self):
        with self.assertRaises(DivisionByZeroError):
            ev("1 / 0")
        with self.assertRaises(DivisionByZeroError):
            ev("5 % (2 - 2)")

    def test_division_by_zero_is_arithmetic_error(self):
        with self.assertRaises(ArithmeticError):
            ev("1 / x", {"x": 0.0})

    def test_zero_to_negative_power(self):
        with self.assertRaises(DivisionByZeroError):
            ev("0 ^ -1")

    def test_complex_power(self):
        with self.assertRaises(EvaluationError):
            ev("(0 - 8) ^ 0.5")

    def test_overflow(self):
        with self.assertRaises(EvaluationError):
            ev("10 ^ 1000")

    def test_infinite_product(self):
        """Overflow outside of ^ is caught as well."""
        with self.assertRaises(EvaluationError):
            ev("10 ^ 300 * 10 ^ 300")

    def test_non_finite_binding(self):
        with self.assertRaises(EvaluationError):
            ev("x - x", {"x": float("inf")})
        with self.assertRaises(EvaluationError):
            ev("x", {"x": float("nan")})


class TestRanges(unittest.TestCase):
    """Tests for seeded random ranges."""

    def test_range_in_bounds(self):
        rng = np.random.default_rng(7)
        for _ in range(50):
            value = ev("0.5..1.5", rng=rng)
            self.assertGreaterEqual(value, 0.5)
            self.assertLess(value, 1.5)

    def test_range_is_seeded(self):
        first = [ev("0..10", rng=np.random.default_rng(3)) for _ in range(3)]
        second = [ev("0..10", rng=np.random.default_rng(3)) for _ in range(3)]
        self.assertEqual(first, second)

    def test_range_in_expression(self):
        value = ev("x + 1..2", {"x": 10.0}, rng=np.random.default_rng(1))
        self.assertGreaterEqual(value, 11.0)
        self.assertLess(value, 12.0)

    def test_range_without_generator(self):
        with self.assertRaises(EvaluationError):
            ev("0..1")


if __name__ == "__main__":
    unittest.main()
