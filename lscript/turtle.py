"""
lscript Turtle Interpreter
==========================
Walks a final Word once, left to right, and turns it into an ordered
vertex stream plus any polygons the script closes.

Turtle frame at rest:

    forward  +Y
    up       +Z
    right    +X

Rotations follow the right-hand rule about their axis: yaw about up,
pitch about right, roll about forward. Positive yaw turns counter-clockwise
seen from above.
"""
import logging
from dataclasses import dataclass, field
from typing import Callable

import numpy as np

from .commands import CommandInfo, CommandKind
from .config import EngineConfig
from .errors import (
    ArityError, PolygonStateError, StackUnderflowError, UnclosedBranchError,
    UnknownSymbolError,
)
from .evaluator import Evaluator
from .geometry import vertex_buffer
from .grammar import Grammar, Module, Word

logger = logging.getLogger(__name__)

Vector = tuple[float, float, float]


def _frozen(values) -> np.ndarray:
    array = np.array(values, dtype=np.float64)
    array.setflags(write=False)
    return array


def _rotate(vector: np.ndarray, axis: np.ndarray, angle: float) -> np.ndarray:
    """Rodrigues rotation of vector about the unit axis."""
    cos, sin = np.cos(angle), np.sin(angle)
    return (vector * cos
            + np.cross(axis, vector) * sin
            + axis * np.dot(axis, vector) * (1.0 - cos))


# ─────────────────────────────────────────────────────────────
#  State
# ─────────────────────────────────────────────────────────────

@dataclass(frozen=True, eq=False)
class TurtleState:
    """Immutable position and orientation. Every operation returns a new state."""
    position: np.ndarray
    forward: np.ndarray
    up: np.ndarray
    right: np.ndarray

    def __post_init__(self):
        for name in ("position", "forward", "up", "right"):
            object.__setattr__(self, name, _frozen(getattr(self, name)))

    @classmethod
    def initial(cls, origin: Vector = (0.0, 0.0, 0.0)) -> "TurtleState":
        return cls(position=origin, forward=(0.0, 1.0, 0.0),
                   up=(0.0, 0.0, 1.0), right=(1.0, 0.0, 0.0))

    def moved(self, distance: float) -> "TurtleState":
        return TurtleState(self.position + self.forward * distance,
                           self.forward, self.up, self.right)

    def yawed(self, angle: float) -> "TurtleState":
        return TurtleState(self.position,
                           _rotate(self.forward, self.up, angle),
                           self.up,
                           _rotate(self.right, self.up, angle))

    def pitched(self, angle: float) -> "TurtleState":
        return TurtleState(self.position,
                           _rotate(self.forward, self.right, angle),
                           _rotate(self.up, self.right, angle),
                           self.right)

    def rolled(self, angle: float) -> "TurtleState":
        return TurtleState(self.position,
                           self.forward,
                           _rotate(self.up, self.forward, angle),
                           _rotate(self.right, self.forward, angle))

    def point(self) -> Vector:
        return tuple(float(v) for v in self.position)


@dataclass(frozen=True)
class OutputVertex:
    """One emitted position with its leaf flag."""
    position: Vector
    leaf: bool = False

    def as_record(self) -> tuple[float, float, float, float]:
        x, y, z = self.position
        return (x, y, z, 1.0 if self.leaf else 0.0)


@dataclass
class TurtleOutput:
    """Everything one interpretation pass produced."""
    vertices: list[OutputVertex] = field(default_factory=list)
    polygons: list[tuple[Vector, ...]] = field(default_factory=list)

    def vertex_buffer(self) -> np.ndarray:
        """float32 (n, 4) records (x, y, z, leaf)."""
        return vertex_buffer(self.vertices)

    def __len__(self) -> int:
        return len(self.vertices)


@dataclass
class _Run:
    """Mutable bookkeeping for a single interpret() call."""
    state: TurtleState
    stack: list[TurtleState] = field(default_factory=list)
    open_polygons: list[list[Vector]] = field(default_factory=list)
    output: TurtleOutput = field(default_factory=TurtleOutput)


# ─────────────────────────────────────────────────────────────
#  Interpreter
# ─────────────────────────────────────────────────────────────

class TurtleInterpreter:
    """
    Interprets words through a Grammar's interpretation table.

    Usage:
        turtle = TurtleInterpreter(grammar, EngineConfig(angle_unit="degrees"))
        output = turtle.interpret(word)
        buffer = output.vertex_buffer()

    The interpreter keeps no state between calls, so interpreting the same
    word twice gives the same stream (as long as no `a..b` ranges are
    evaluated from a shared generator).
    """

    def __init__(self, grammar: Grammar, config: EngineConfig | None = None,
                 rng: np.random.Generator | None = None):
        self.grammar = grammar
        self.config = config or EngineConfig()
        self.rng = rng if rng is not None else np.random.default_rng(self.config.seed)
        self.evaluator = Evaluator(grammar.constants, self.rng)

        self._handlers: dict[CommandKind, Callable[[_Run, float, int, Module], None]] = {
            CommandKind.MOVE: self._draw,
            CommandKind.DRAW_LINE: self._draw,
            CommandKind.DRAW_LEAF: self._draw_leaf,
            CommandKind.YAW: self._yaw,
            CommandKind.PITCH: self._pitch,
            CommandKind.ROLL: self._roll,
            CommandKind.PUSH: self._push,
            CommandKind.POP: self._pop,
            CommandKind.START_POLYGON: self._start_polygon,
            CommandKind.RECORD_VERTEX: self._record_vertex,
            CommandKind.END_POLYGON: self._end_polygon,
            CommandKind.NOOP: self._noop,
        }

    def initial_state(self) -> TurtleState:
        """Start state: configured origin, then the configured yaw, pitch and roll."""
        yaw, pitch, roll = (self.config.to_radians(a) for a in self.config.rotation)
        return (TurtleState.initial(self.config.origin)
                .yawed(yaw).pitched(pitch).rolled(roll))

    def interpret(self, word: Word) -> TurtleOutput:
        """Walk word once and return the emitted vertices and polygons."""
        run = _Run(state=self.initial_state())
        if self.config.emit_origin:
            run.output.vertices.append(OutputVertex(run.state.point(), leaf=False))

        for index, module in enumerate(word):
            info, value = self._resolve(module, index)
            self._handlers[info.kind](run, value, index, module)

        if run.open_polygons:
            raise PolygonStateError(
                f"{len(run.open_polygons)} polygon(s) still open at end of word"
            )
        if run.stack:
            raise UnclosedBranchError(
                f"{len(run.stack)} branch(es) still open at end of word"
            )

        logger.debug("%s: %d module(s) -> %d vertices, %d polygon(s)",
                     self.grammar.name, len(word),
                     len(run.output.vertices), len(run.output.polygons))
        return run.output

    def _resolve(self, module: Module, index: int) -> tuple[CommandInfo, float]:
        """Look up the module's command and evaluate its (signed) argument."""
        rule = self.grammar.interpretations.get(module.symbol)
        if rule is None:
            raise UnknownSymbolError(
                f"No interpretation for symbol '{module.symbol}' (module {index})"
            )
        if len(rule.params) != module.arity:
            raise ArityError(
                f"Module {index} '{module}' has {module.arity} parameter(s), "
                f"interpretation of '{rule.symbol}' expects {len(rule.params)}",
                rule.line, rule.col,
            )
        info = rule.command.info
        if not rule.command.args:
            return info, 0.0
        bindings = dict(zip(rule.params, module.params))
        value = self.evaluator.evaluate(rule.command.args[0], bindings)
        return info, value * info.sign

    # ─────────────────────────────────────────────────────────
    #  Command handlers
    # ─────────────────────────────────────────────────────────

    def _advance(self, run: _Run, distance: float, leaf: bool):
        run.state = run.state.moved(distance * self.config.scale)
        run.output.vertices.append(OutputVertex(run.state.point(), leaf=leaf))

    def _draw(self, run: _Run, value: float, index: int, module: Module):
        self._advance(run, value, leaf=False)

    def _draw_leaf(self, run: _Run, value: float, index: int, module: Module):
        self._advance(run, value, leaf=True)

    def _yaw(self, run: _Run, value: float, index: int, module: Module):
        run.state = run.state.yawed(self.config.to_radians(value))

    def _pitch(self, run: _Run, value: float, index: int, module: Module):
        run.state = run.state.pitched(self.config.to_radians(value))

    def _roll(self, run: _Run, value: float, index: int, module: Module):
        run.state = run.state.rolled(self.config.to_radians(value))

    def _push(self, run: _Run, value: float, index: int, module: Module):
        run.stack.append(run.state)

    def _pop(self, run: _Run, value: float, index: int, module: Module):
        if not run.stack:
            raise StackUnderflowError(
                f"Branch close '{module.symbol}' at module {index} with an empty stack"
            )
        run.state = run.stack.pop()

    def _start_polygon(self, run: _Run, value: float, index: int, module: Module):
        run.open_polygons.append([])

    def _record_vertex(self, run: _Run, value: float, index: int, module: Module):
        if not run.open_polygons:
            raise PolygonStateError(
                f"RecordPolygonVertex at module {index} '{module}' with no open polygon"
            )
        run.open_polygons[-1].append(run.state.point())

    def _end_polygon(self, run: _Run, value: float, index: int, module: Module):
        if not run.open_polygons:
            raise PolygonStateError(
                f"EndPolygon at module {index} '{module}' with no open polygon"
            )
        run.output.polygons.append(tuple(run.open_polygons.pop()))

    def _noop(self, run: _Run, value: float, index: int, module: Module):
        pass
