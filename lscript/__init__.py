# lscript: L-system scripting engine
"""
lscript: a parametric, stochastic, context-sensitive L-system engine.
Scripts compile into a Grammar, are rewritten generation by generation,
and are interpreted by a 3-D turtle into an ordered vertex stream.
"""
from .commands import COMMAND_REGISTRY, CommandInfo, CommandKind
from .config import DEFAULT_SEED, EngineConfig
from .engine import LSystem, LSystemFactory, RunResult
from .errors import (
    LScriptError, LexError, ParseError, ArityError, WeightError,
    EvaluationError, UnboundVariableError, DivisionByZeroError,
    UnknownSymbolError, StackUnderflowError, UnclosedBranchError,
    PolygonStateError, ConfigurationError, GrowthLimitError,
)
from .evaluator import Evaluator
from .geometry import thicken, vertex_buffer
from .grammar import Grammar, Module, Production, Word, word_from_symbols, word_to_string
from .lexer import Lexer, Token, TokenType
from .parser import Parser, compile_source, parse_expression
from .rewriter import Rewriter
from .turtle import OutputVertex, TurtleInterpreter, TurtleOutput, TurtleState

__version__ = "0.1.0"
__all__ = [
    "COMMAND_REGISTRY", "CommandInfo", "CommandKind",
    "DEFAULT_SEED", "EngineConfig",
    "LSystem", "LSystemFactory", "RunResult",
    "LScriptError", "LexError", "ParseError", "ArityError", "WeightError",
    "EvaluationError", "UnboundVariableError", "DivisionByZeroError",
    "UnknownSymbolError", "StackUnderflowError", "UnclosedBranchError",
    "PolygonStateError", "ConfigurationError", "GrowthLimitError",
    "Evaluator",
    "thicken", "vertex_buffer",
    "Grammar", "Module", "Production", "Word", "word_from_symbols", "word_to_string",
    "Lexer", "Token", "TokenType",
    "Parser", "compile_source", "parse_expression",
    "Rewriter",
    "OutputVertex", "TurtleInterpreter", "TurtleOutput", "TurtleState",
]
