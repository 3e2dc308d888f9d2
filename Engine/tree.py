import logging
from typing import Iterable, Mapping, Optional, Set

from Engine.errors import EmptyExpression, depth_guarded
from Engine.nodes import (
    BinaryOp, Node, Number, UnaryFunc, Variable,
    children, clone_node, function_from_name, structurally_equal,
)
from Engine.serializer import to_infix, to_latex, to_postfix

# --- Logger Setup ---
logger = logging.getLogger(__name__)


class Tree:
    """An expression rooted at one node, plus the postfix text it was read from.

    Trees are values: every operation returns a new Tree and leaves its input
    alone. ``root`` is ``None`` for the empty expression.
    """

    __slots__ = ('root', 'postfix_raw', 'infix')

    def __init__(self, root: Optional[Node] = None, postfix_raw: Optional[str] = None):
        if root is not None and not isinstance(root, Node):
            raise ValueError(f"Tree root must be a Node, got {type(root).__name__}")
        self.root = root
        self.postfix_raw = to_postfix(root) if postfix_raw is None else postfix_raw
        self.infix = to_infix(root)

    @classmethod
    def empty(cls) -> 'Tree':
        return cls(None, "")

    @property
    def is_empty(self) -> bool:
        return self.root is None

    @depth_guarded
    def __eq__(self, other):
        if not isinstance(other, Tree):
            return NotImplemented
        return structurally_equal(self.root, other.root)

    __hash__ = None

    def __repr__(self):
        return f"Tree({self.infix!r})"

    @depth_guarded
    def clone(self) -> 'Tree':
        return Tree(clone_node(self.root), self.postfix_raw)

    def to_postfix(self) -> str:
        return to_postfix(self.root)

    def to_infix(self) -> str:
        return self.infix

    def to_latex(self) -> str:
        return to_latex(self.root)

    def collect_variables(self) -> Set[str]:
        return collect_variables(self)

    def substitute_bound_variables(self, bindings: Mapping[str, float]) -> 'Tree':
        return substitute_bound_variables(self, bindings)

    def size(self) -> int:
        return sum(1 for _ in _walk(self.root))

    def depth(self) -> int:
        return _depth(self.root)


def _walk(node):
    stack = [node] if node is not None else []
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(children(current)))


def _depth(node) -> int:
    deepest = 0
    stack = [(node, 1)] if node is not None else []
    while stack:
        current, level = stack.pop()
        deepest = max(deepest, level)
        stack.extend((child, level + 1) for child in children(current))
    return deepest


def clone(tree: Tree) -> Tree:
    return tree.clone()


def collect_variables(tree: Tree) -> Set[str]:
    return {node.name for node in _walk(tree.root) if isinstance(node, Variable)}


@depth_guarded
def substitute_bound_variables(tree: Tree, bindings: Mapping[str, float]) -> Tree:
    """Replace every variable that has a binding with a number leaf."""

    def substitute(node):
        if isinstance(node, Variable):
            if node.name in bindings:
                return Number(float(bindings[node.name]))
            return Variable(node.name)
        if isinstance(node, Number):
            return Number(node.value)
        if isinstance(node, UnaryFunc):
            return UnaryFunc(node.function, substitute(node.child))
        return BinaryOp(node.op, substitute(node.left), substitute(node.right))

    if tree.is_empty:
        return Tree.empty()
    result = Tree(substitute(tree.root))
    logger.debug("Substituted %s into %s -> %s", sorted(bindings), tree.infix, result.infix)
    return result


@depth_guarded
def wrap_in_function(tree: Tree, function_name: str, path: Iterable[str] = ()) -> Tree:
    """Wrap the subtree at ``path`` in sin/cos/tan/ln.

    ``path`` lists child steps from the root: ``"l"`` for the left (or only)
    child, ``"r"`` for the right child of a binary operator.
    """
    if tree.is_empty:
        raise EmptyExpression()
    function = function_from_name(function_name)
    steps = list(path)

    def rebuild(node, depth):
        if depth == len(steps):
            return UnaryFunc(function, clone_node(node))
        step = steps[depth]
        if isinstance(node, UnaryFunc) and step == 'l':
            return UnaryFunc(node.function, rebuild(node.child, depth + 1))
        if isinstance(node, BinaryOp) and step == 'l':
            return BinaryOp(node.op, rebuild(node.left, depth + 1), clone_node(node.right))
        if isinstance(node, BinaryOp) and step == 'r':
            return BinaryOp(node.op, clone_node(node.left), rebuild(node.right, depth + 1))
        raise LookupError(f"Path {''.join(steps)!r} leaves the expression at step {depth}")

    return Tree(rebuild(tree.root, 0))
