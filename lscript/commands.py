"""
lscript Command Table
=====================
The closed set of turtle commands an `interpret` statement may name.
Every name maps to one CommandInfo; aliases share a CommandKind and differ
only in the sign applied to their argument. The table is fixed at import
time; the turtle dispatches on CommandKind, never on the name.
"""
from dataclasses import dataclass
from enum import Enum, auto


class CommandKind(Enum):
    """Turtle behaviours."""
    MOVE           = auto()  # advance, emit non-leaf vertex
    DRAW_LINE      = auto()  # advance, emit non-leaf vertex
    DRAW_LEAF      = auto()  # advance, emit leaf vertex
    YAW            = auto()  # rotate about up
    PITCH          = auto()  # rotate about right
    ROLL           = auto()  # rotate about forward
    PUSH           = auto()  # save state
    POP            = auto()  # restore state
    START_POLYGON  = auto()
    RECORD_VERTEX  = auto()
    END_POLYGON    = auto()
    NOOP           = auto()


@dataclass(frozen=True)
class CommandInfo:
    """
    A named turtle command.

      - name:        Name used in scripts (`interpret F as DrawLine(1);`)
      - kind:        Behaviour the turtle dispatches on
      - arity:       Number of arguments the command takes
      - sign:        Multiplier applied to the argument (aliases such as
                     RotateRight are Yaw with sign -1)
      - description: One line for `lscript --commands`
    """
    name: str
    kind: CommandKind
    arity: int
    sign: float = 1.0
    description: str = ""


def _command(name: str, kind: CommandKind, arity: int,
             sign: float = 1.0, description: str = "") -> tuple[str, CommandInfo]:
    return name, CommandInfo(name, kind, arity, sign, description)


COMMAND_REGISTRY: dict[str, CommandInfo] = dict([
    _command("MoveForward", CommandKind.MOVE, 1,
             description="Advance by distance, emit a vertex"),
    _command("DrawLine", CommandKind.DRAW_LINE, 1,
             description="Advance by distance, emit a vertex"),
    _command("DrawLeaf", CommandKind.DRAW_LEAF, 1,
             description="Advance by distance, emit a leaf vertex"),

    _command("Yaw", CommandKind.YAW, 1,
             description="Rotate about the up axis"),
    _command("RotateLeft", CommandKind.YAW, 1,
             description="Yaw counter-clockwise seen from above"),
    _command("RotateRight", CommandKind.YAW, 1, sign=-1.0,
             description="Yaw clockwise seen from above"),
    _command("Pitch", CommandKind.PITCH, 1,
             description="Rotate about the right axis"),
    _command("PitchUp", CommandKind.PITCH, 1,
             description="Pitch the nose towards up"),
    _command("PitchDown", CommandKind.PITCH, 1, sign=-1.0,
             description="Pitch the nose away from up"),
    _command("Roll", CommandKind.ROLL, 1,
             description="Rotate about the forward axis"),
    _command("RollRight", CommandKind.ROLL, 1,
             description="Roll about forward, right-hand rule"),
    _command("RollLeft", CommandKind.ROLL, 1, sign=-1.0,
             description="Roll about forward, left-hand rule"),

    _command("PushStack", CommandKind.PUSH, 0,
             description="Save the turtle state"),
    _command("StartBranch", CommandKind.PUSH, 0,
             description="Save the turtle state"),
    _command("PopStack", CommandKind.POP, 0,
             description="Restore the last saved state"),
    _command("EndBranch", CommandKind.POP, 0,
             description="Restore the last saved state"),

    _command("StartPolygon", CommandKind.START_POLYGON, 0,
             description="Open a polygon accumulator"),
    _command("RecordPolygonVertex", CommandKind.RECORD_VERTEX, 0,
             description="Add the current position to the open polygon"),
    _command("EndPolygon", CommandKind.END_POLYGON, 0,
             description="Close and emit the open polygon"),

    _command("Noop", CommandKind.NOOP, 0,
             description="Do nothing"),
])

# Symbols besides letters and digits that may appear in a word
STRUCTURAL_SYMBOLS = frozenset("+-|^&/\\[]<.>")

BRANCH_OPEN = "["
BRANCH_CLOSE = "]"


def is_symbol(ch: str) -> bool:
    """True if ch is a legal single-character alphabet symbol."""
    return len(ch) == 1 and (ch.isascii() and ch.isalnum() or ch in STRUCTURAL_SYMBOLS)


def lookup(name: str) -> CommandInfo | None:
    """Look up a command by its script name."""
    return COMMAND_REGISTRY.get(name)


def describe_all() -> str:
    """Return a formatted table of all commands for `lscript --commands`."""
    width = max(len(name) for name in COMMAND_REGISTRY)
    lines = [f"{'Command'.ljust(width)}  Args  Description",
             f"{'-' * width}  ----  {'-' * 40}"]
    for name, info in COMMAND_REGISTRY.items():
        lines.append(f"{name.ljust(width)}  {str(info.arity).center(4)}  {info.description}")
    return "\n".join(lines)
