"""
lscript Grammar Model
=====================
The immutable objects a compiled script is made of.

    Module     one symbol with bound numeric parameters
    Word       tuple of Modules, one generation
    Production predecessor (+ contexts, condition, weight) -> successor
    Grammar    everything the parser produced for one `lsystem` block
"""
import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from .commands import CommandInfo
from .nodes import ASTNode, format_expression


def format_number(value: float) -> str:
    """Render 2.0 as `2` and 2.5 as `2.5`."""
    if not math.isfinite(value):
        return repr(value)
    if value == int(value):
        return str(int(value))
    return repr(value)


@dataclass(frozen=True)
class Module:
    """A symbol instance with bound numeric parameters."""
    symbol: str
    params: tuple[float, ...] = ()

    @property
    def arity(self) -> int:
        return len(self.params)

    def __str__(self) -> str:
        if not self.params:
            return self.symbol
        return f"{self.symbol}({','.join(format_number(p) for p in self.params)})"


Word = tuple[Module, ...]


def word_to_string(word: Word) -> str:
    """Concatenate modules with no separators: `F+F(2)[X]`."""
    return "".join(str(m) for m in word)


def word_from_symbols(symbols: str) -> Word:
    """Build an unparameterized word from a string of symbols."""
    return tuple(Module(ch) for ch in symbols if not ch.isspace())


@dataclass(frozen=True)
class ModulePattern:
    """A symbol with the parameter names it binds when matched."""
    symbol: str
    params: tuple[str, ...] = ()
    line: int = 0
    col: int = 0

    @property
    def arity(self) -> int:
        return len(self.params)

    def __str__(self) -> str:
        if not self.params:
            return self.symbol
        return f"{self.symbol}({','.join(self.params)})"


@dataclass(frozen=True)
class ModuleTemplate:
    """A successor/axiom module: symbol plus argument expressions."""
    symbol: str
    args: tuple[ASTNode, ...] = ()
    line: int = 0
    col: int = 0

    @property
    def arity(self) -> int:
        return len(self.args)

    def __str__(self) -> str:
        if not self.args:
            return self.symbol
        return f"{self.symbol}({','.join(format_expression(a) for a in self.args)})"


@dataclass(frozen=True)
class Production:
    """
    A rewrite rule.

    Left context patterns are stored in word order, so for `B C < A` the
    module immediately before A must match C, and the one before that B.
    """
    predecessor: ModulePattern
    successor: tuple[ModuleTemplate, ...] = ()
    left_context: tuple[ModulePattern, ...] = ()
    right_context: tuple[ModulePattern, ...] = ()
    condition: ASTNode | None = None
    weight: float = 1.0
    line: int = 0
    col: int = 0

    @property
    def group_key(self) -> tuple:
        """Productions sharing this key form one stochastic group."""
        return (
            (self.predecessor.symbol, self.predecessor.arity),
            tuple((p.symbol, p.arity) for p in self.left_context),
            tuple((p.symbol, p.arity) for p in self.right_context),
        )

    @property
    def is_context_sensitive(self) -> bool:
        return bool(self.left_context or self.right_context)

    def __str__(self) -> str:
        lhs = str(self.predecessor)
        if self.left_context:
            lhs = "".join(str(p) for p in self.left_context) + " < " + lhs
        if self.right_context:
            lhs = lhs + " > " + "".join(str(p) for p in self.right_context)
        text = f"{lhs} -> {''.join(str(t) for t in self.successor)}"
        if self.condition is not None:
            text += f" when {format_expression(self.condition)}"
        if self.weight != 1.0:
            text += f" : {format_number(self.weight)}"
        return text


@dataclass(frozen=True)
class Command:
    """A resolved command template: table entry plus argument expressions."""
    info: CommandInfo
    args: tuple[ASTNode, ...] = ()


@dataclass(frozen=True)
class InterpretationRule:
    """Maps one symbol (with named parameters) to a turtle command."""
    symbol: str
    params: tuple[str, ...]
    command: Command
    line: int = 0
    col: int = 0


@dataclass(frozen=True, eq=False)
class Grammar:
    """A compiled `lsystem` block. Built once by the parser, never mutated."""
    name: str
    axiom: Word
    productions: tuple[Production, ...] = ()
    interpretations: Mapping[str, InterpretationRule] = field(default_factory=dict)
    constants: Mapping[str, float] = field(default_factory=dict)
    arities: Mapping[str, int] = field(default_factory=dict)
    ignored: frozenset[str] = frozenset()

    def __post_init__(self):
        # Mappings are exposed as read-only views
        for name in ("interpretations", "constants", "arities"):
            object.__setattr__(self, name, MappingProxyType(dict(getattr(self, name))))
