import math
from enum import Enum
from typing import Optional, Union

from Engine.errors import depth_guarded

# Absolute tolerance used for zero tests and numeric equality.
EPSILON = 1e-12


# --- Operator and function codes ---
class Operator(str, Enum):
    ADD = '+'
    SUB = '-'
    MUL = '*'
    DIV = '/'
    POW = '^'

    def apply(self, x: float, y: float) -> float:
        if self is Operator.ADD:
            return x + y
        if self is Operator.SUB:
            return x - y
        if self is Operator.MUL:
            return x * y
        if self is Operator.DIV:
            return x / y
        return ieee_pow(x, y)


class Function(str, Enum):
    SIN = 'sin'
    COS = 'cos'
    TAN = 'tan'
    LN = 'ln'

    @property
    def code(self) -> str:
        """One-letter suffix used in postfix output."""
        return _FUNCTION_CODES[self]

    def apply(self, x: float) -> float:
        if self is Function.LN:
            return math.log(x)
        fn = {Function.SIN: math.sin, Function.COS: math.cos, Function.TAN: math.tan}[self]
        try:
            return fn(x)
        except ValueError:
            # sin/cos/tan of +-inf
            return math.nan


_FUNCTION_CODES = {
    Function.SIN: 's',
    Function.COS: 'c',
    Function.TAN: 't',
    Function.LN: 'l',
}


def function_from_name(name: str) -> Function:
    """Accepts a full function name (``sin``) or its letter code (``s``)."""
    for fn, code in _FUNCTION_CODES.items():
        if name == fn.value or name == code:
            return fn
    raise ValueError(f"Unknown function '{name}'")


def ieee_pow(x: float, y: float) -> float:
    """pow() that returns inf/nan instead of raising, like C's pow."""
    try:
        return math.pow(x, y)
    except OverflowError:
        negative = x < 0 and float(y).is_integer() and int(y) % 2 == 1
        return -math.inf if negative else math.inf
    except ValueError:
        if x == 0 and y < 0:
            negative = math.copysign(1.0, x) < 0 and float(y).is_integer() and int(y) % 2 == 1
            return -math.inf if negative else math.inf
        return math.nan


# --- Expression Tree Nodes ---
class Node:
    __slots__ = ()

    @depth_guarded
    def __eq__(self, other):
        if not isinstance(other, Node):
            return NotImplemented
        return structurally_equal(self, other)

    __hash__ = None


class Number(Node):
    __slots__ = ('value',)

    def __init__(self, value: float):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"Number value must be numeric, got {value!r}")
        self.value = float(value)

    def __repr__(self):
        return f"Number({self.value!r})"


class Variable(Node):
    __slots__ = ('name',)

    def __init__(self, name: str):
        if not (isinstance(name, str) and len(name) == 1 and 'a' <= name <= 'z'):
            raise ValueError(f"Variable must be a single lowercase letter, got {name!r}")
        self.name = name

    def __repr__(self):
        return f"Variable({self.name!r})"


class UnaryFunc(Node):
    __slots__ = ('function', 'child')

    def __init__(self, function: Union[Function, str], child: Node):
        if not isinstance(child, Node):
            raise ValueError("Unary function requires an operand")
        self.function = function if isinstance(function, Function) else function_from_name(function)
        self.child = child

    def __repr__(self):
        return f"UnaryFunc({self.function.value!r}, {self.child!r})"


class BinaryOp(Node):
    __slots__ = ('op', 'left', 'right')

    def __init__(self, op: Union[Operator, str], left: Node, right: Node):
        if not isinstance(left, Node) or not isinstance(right, Node):
            raise ValueError("Binary operator requires two operands")
        self.op = Operator(op)
        self.left = left
        self.right = right

    def __repr__(self):
        return f"BinaryOp({self.op.value!r}, {self.left!r}, {self.right!r})"


# --- Helpers ---
def is_number(node: Optional[Node], target: Optional[float] = None) -> bool:
    if not isinstance(node, Number):
        return False
    return target is None or abs(node.value - target) < EPSILON


def clone_node(node: Optional[Node]) -> Optional[Node]:
    """Deep copy of a subtree; the copy shares no node with the source."""
    if node is None:
        return None
    if isinstance(node, Number):
        return Number(node.value)
    if isinstance(node, Variable):
        return Variable(node.name)
    if isinstance(node, UnaryFunc):
        return UnaryFunc(node.function, clone_node(node.child))
    return BinaryOp(node.op, clone_node(node.left), clone_node(node.right))


def structurally_equal(a: Optional[Node], b: Optional[Node]) -> bool:
    """Node-by-node equality; operand order matters, numbers compare within EPSILON."""
    if a is None or b is None:
        return a is None and b is None
    if type(a) is not type(b):
        return False
    if isinstance(a, Number):
        return a.value == b.value or abs(a.value - b.value) < EPSILON
    if isinstance(a, Variable):
        return a.name == b.name
    if isinstance(a, UnaryFunc):
        return a.function is b.function and structurally_equal(a.child, b.child)
    return (
        a.op is b.op
        and structurally_equal(a.left, b.left)
        and structurally_equal(a.right, b.right)
    )


def children(node: Node):
    if isinstance(node, UnaryFunc):
        return (node.child,)
    if isinstance(node, BinaryOp):
        return (node.left, node.right)
    return ()
