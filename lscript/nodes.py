"""
lscript Expression Nodes
========================
AST nodes for parameter expressions: conditions, successor arguments,
command arguments, weights and `let` values. Produced by the Parser,
walked by the Evaluator.
"""
from dataclasses import dataclass, field


@dataclass
class ASTNode:
    """Base class for all expression nodes."""
    node_type: str = ""
    line: int = 0
    col: int = 0


@dataclass
class NumberNode(ASTNode):
    """A numeric literal."""
    value: float = 0.0

    def __post_init__(self):
        self.node_type = "Number"


@dataclass
class VariableNode(ASTNode):
    """A reference to a module parameter or a let constant."""
    name: str = ""

    def __post_init__(self):
        self.node_type = "Variable"


@dataclass
class UnaryOpNode(ASTNode):
    """-x, +x, !x."""
    operator: str = ""
    operand: ASTNode | None = None

    def __post_init__(self):
        self.node_type = "UnaryOp"


@dataclass
class BinaryOpNode(ASTNode):
    """left <op> right."""
    operator: str = ""
    left: ASTNode | None = None
    right: ASTNode | None = None

    def __post_init__(self):
        self.node_type = "BinaryOp"


@dataclass
class RangeNode(ASTNode):
    """A random draw: `low..high`."""
    low: float = 0.0
    high: float = 0.0

    def __post_init__(self):
        self.node_type = "Range"


@dataclass
class CallNode(ASTNode):
    """A built-in function call: sin(a), max(a, b)."""
    func_name: str = ""
    args: list[ASTNode] = field(default_factory=list)

    def __post_init__(self):
        self.node_type = "Call"


def format_expression(node: ASTNode) -> str:
    """Render an expression back to script syntax (fully parenthesized)."""
    if isinstance(node, NumberNode):
        value = node.value
        return str(int(value)) if value == int(value) else repr(value)
    if isinstance(node, VariableNode):
        return node.name
    if isinstance(node, RangeNode):
        return f"{node.low}..{node.high}"
    if isinstance(node, UnaryOpNode):
        return f"{node.operator}{format_expression(node.operand)}"
    if isinstance(node, BinaryOpNode):
        return f"({format_expression(node.left)}{node.operator}{format_expression(node.right)})"
    if isinstance(node, CallNode):
        return f"{node.func_name}({', '.join(format_expression(a) for a in node.args)})"
    return f"<{node.node_type}>"
