"""
lscript Errors
==============
Every failure the engine reports derives from LScriptError and carries the
source position (line/col) when one is known. Runtime errors raised while
rewriting or interpreting name the offending module instead.
"""
from dataclasses import dataclass


class LScriptError(Exception):
    """Base class for all lscript errors."""

    def __init__(self, message: str, line: int = 0, col: int = 0):
        self.message = message
        self.line = line
        self.col = col
        super().__init__(self._format())

    def _format(self) -> str:
        if self.line:
            return f"{self.message} at L{self.line}:{self.col}"
        return self.message


class LexError(LScriptError):
    """Unrecognized character in script source."""


@dataclass
class Diagnostic:
    """A single parse problem with location."""
    message: str
    line: int
    col: int

    def __str__(self) -> str:
        return f"  L{self.line}:{self.col}: {self.message}"


class ParseError(LScriptError):
    """Malformed script. Carries every diagnostic collected during the parse."""

    def __init__(self, message: str, line: int = 0, col: int = 0,
                 diagnostics: list[Diagnostic] | None = None):
        self.diagnostics = list(diagnostics or [])
        super().__init__(message, line, col)

    @classmethod
    def from_diagnostics(cls, diagnostics: list[Diagnostic]) -> "ParseError":
        first = diagnostics[0]
        if len(diagnostics) == 1:
            return cls(first.message, first.line, first.col, diagnostics)
        lines = "\n".join(str(d) for d in diagnostics)
        return cls(
            f"{len(diagnostics)} parse error(s):\n{lines}",
            first.line, first.col, diagnostics,
        )

    def _format(self) -> str:
        if len(self.diagnostics) > 1:
            return self.message
        return super()._format()


class ArityError(LScriptError):
    """Parameter count mismatch between a module and a declaration."""


class WeightError(ArityError):
    """Negative production weight, or a stochastic group summing to zero."""


class EvaluationError(LScriptError):
    """An expression could not be evaluated."""


class UnboundVariableError(EvaluationError):
    """Identifier not bound by the module parameters or a let constant."""


class DivisionByZeroError(EvaluationError, ArithmeticError):
    """Division or modulo by zero inside an expression."""


class UnknownSymbolError(LScriptError):
    """No interpretation rule for a symbol met by the turtle."""


class StackUnderflowError(LScriptError):
    """Branch close with no matching branch open."""


class UnclosedBranchError(LScriptError):
    """Branches still open when interpretation finished."""


class PolygonStateError(LScriptError):
    """Polygon command used outside an open polygon, or polygon left open."""


class ConfigurationError(LScriptError, ValueError):
    """Invalid engine configuration value."""


class GrowthLimitError(LScriptError):
    """A generation grew past the configured module limit."""
