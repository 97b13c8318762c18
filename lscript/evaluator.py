"""
lscript Expression Evaluator
============================
Tree-walking evaluator for parameter expressions.

Every value is a finite float; a result of inf or NaN raises
EvaluationError. Relational and logical operators produce 1.0 or
0.0 and treat any nonzero operand as true. Identifiers resolve against the
bindings of the matched module first, then the script's `let` constants.
"""
import math
from collections import ChainMap
from typing import Callable, Mapping

import numpy as np

from .errors import DivisionByZeroError, EvaluationError, UnboundVariableError
from .nodes import (
    ASTNode, BinaryOpNode, CallNode, NumberNode, RangeNode, UnaryOpNode,
    VariableNode,
)


FUNCTIONS: dict[str, tuple[int, Callable[..., float]]] = {
    "sin": (1, math.sin),
    "cos": (1, math.cos),
    "tan": (1, math.tan),
    "asin": (1, math.asin),
    "acos": (1, math.acos),
    "atan": (1, math.atan),
    "atan2": (2, math.atan2),
    "sqrt": (1, math.sqrt),
    "abs": (1, abs),
    "min": (2, min),
    "max": (2, max),
    "floor": (1, math.floor),
    "ceil": (1, math.ceil),
    "exp": (1, math.exp),
    "log": (1, math.log),
}


def _bool(value: bool) -> float:
    return 1.0 if value else 0.0


class Evaluator:
    """
    Evaluates expression nodes to floats.

    Usage:
        evaluator = Evaluator(constants={"angle": 90.0}, rng=np.random.default_rng(7))
        value = evaluator.evaluate(node, {"x": 2.0})

    The random generator is only consulted by `low..high` range nodes.
    """

    def __init__(self, constants: Mapping[str, float] | None = None,
                 rng: np.random.Generator | None = None):
        self.constants = dict(constants or {})
        self.rng = rng

    def evaluate(self, node: ASTNode, bindings: Mapping[str, float] | None = None) -> float:
        """Evaluate node with module parameters bound on top of the constants."""
        return self._eval(node, ChainMap(dict(bindings or {}), self.constants))

    def truthy(self, node: ASTNode, bindings: Mapping[str, float] | None = None) -> bool:
        """Evaluate a condition: nonzero is true."""
        return self.evaluate(node, bindings) != 0.0

    def _eval(self, node: ASTNode, scope: Mapping[str, float]) -> float:
        method = f"_eval_{node.node_type.lower()}"
        evaluator = getattr(self, method, None)
        if evaluator is None:
            raise EvaluationError(f"Unknown node type: {node.node_type}", node.line, node.col)
        value = evaluator(node, scope)
        if not math.isfinite(value):
            raise EvaluationError(f"Expression produced {value}", node.line, node.col)
        return value

    # ─────────────────────────────────────────────────────────
    #  Leaves
    # ─────────────────────────────────────────────────────────

    def _eval_number(self, node: NumberNode, scope: Mapping[str, float]) -> float:
        return float(node.value)

    def _eval_variable(self, node: VariableNode, scope: Mapping[str, float]) -> float:
        if node.name in scope:
            return float(scope[node.name])
        raise UnboundVariableError(f"Unbound variable '{node.name}'", node.line, node.col)

    def _eval_range(self, node: RangeNode, scope: Mapping[str, float]) -> float:
        if self.rng is None:
            raise EvaluationError(
                f"Random range {node.low}..{node.high} needs a random source "
                f"(not allowed in let or axiom)",
                node.line, node.col,
            )
        return float(self.rng.uniform(node.low, node.high))

    # ─────────────────────────────────────────────────────────
    #  Operators
    # ─────────────────────────────────────────────────────────

    def _eval_unaryop(self, node: UnaryOpNode, scope: Mapping[str, float]) -> float:
        value = self._eval(node.operand, scope)
        match node.operator:
            case "-":
                return -value
            case "+":
                return value
            case "!":
                return _bool(value == 0.0)
            case _:
                raise EvaluationError(f"Unknown unary operator: {node.operator}", node.line, node.col)

    def _eval_binaryop(self, node: BinaryOpNode, scope: Mapping[str, float]) -> float:
        op = node.operator

        # Logical operators short-circuit
        if op == "&":
            return _bool(self._eval(node.left, scope) != 0.0
                         and self._eval(node.right, scope) != 0.0)
        if op == "|":
            return _bool(self._eval(node.left, scope) != 0.0
                         or self._eval(node.right, scope) != 0.0)

        left = self._eval(node.left, scope)
        right = self._eval(node.right, scope)

        match op:
            case "+":
                return left + right
            case "-":
                return left - right
            case "*":
                return left * right
            case "/":
                if right == 0.0:
                    raise DivisionByZeroError("Division by zero", node.line, node.col)
                return left / right
            case "%":
                if right == 0.0:
                    raise DivisionByZeroError("Modulo by zero", node.line, node.col)
                return math.fmod(left, right)
            case "^":
                return self._power(left, right, node)
            case "<":
                return _bool(left < right)
            case ">":
                return _bool(left > right)
            case "=":
                return _bool(left == right)
            case "<=":
                return _bool(left <= right)
            case ">=":
                return _bool(left >= right)
            case "!=":
                return _bool(left != right)
            case _:
                raise EvaluationError(f"Unknown operator: {op}", node.line, node.col)

    def _power(self, base: float, exponent: float, node: ASTNode) -> float:
        if base == 0.0 and exponent < 0.0:
            raise DivisionByZeroError("Zero raised to a negative power", node.line, node.col)
        try:
            result = base ** exponent
        except OverflowError as exc:
            raise EvaluationError(f"Overflow in {base}^{exponent}", node.line, node.col) from exc
        if isinstance(result, complex):
            raise EvaluationError(
                f"{base}^{exponent} has no real value", node.line, node.col)
        return float(result)

    # ─────────────────────────────────────────────────────────
    #  Function calls
    # ─────────────────────────────────────────────────────────

    def _eval_call(self, node: CallNode, scope: Mapping[str, float]) -> float:
        entry = FUNCTIONS.get(node.func_name)
        if entry is None:
            raise UnboundVariableError(f"Unknown function '{node.func_name}'", node.line, node.col)
        arity, fn = entry
        if len(node.args) != arity:
            raise EvaluationError(
                f"{node.func_name}() takes {arity} argument(s), got {len(node.args)}",
                node.line, node.col,
            )
        args = [self._eval(a, scope) for a in node.args]
        try:
            return float(fn(*args))
        except (ValueError, OverflowError) as exc:
            raise EvaluationError(f"{node.func_name}() failed: {exc}", node.line, node.col) from exc
