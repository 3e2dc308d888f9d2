import logging
from typing import Mapping

from Engine.errors import DivisionByZero, DomainError, EmptyExpression, UnboundVariable, depth_guarded
from Engine.nodes import EPSILON, Function, Number, Operator, UnaryFunc, Variable
from Engine.tree import Tree

# --- Logger Setup ---
logger = logging.getLogger(__name__)


@depth_guarded
def evaluate(tree: Tree, bindings: Mapping[str, float]) -> float:
    """Numerically evaluate ``tree`` with the given variable values.

    Raises UnboundVariable, DivisionByZero or DomainError (ln of a
    non-positive number); the first failure aborts the whole evaluation.
    """
    if tree.is_empty:
        raise EmptyExpression()
    try:
        return _eval_node(tree.root, bindings)
    except (UnboundVariable, DivisionByZero, DomainError) as e:
        logger.debug("Evaluation of %s failed: %s", tree.infix, e)
        raise


def _eval_node(node, bindings):
    if isinstance(node, Number):
        return node.value

    if isinstance(node, Variable):
        if node.name not in bindings:
            raise UnboundVariable(node.name)
        return float(bindings[node.name])

    if isinstance(node, UnaryFunc):
        x = _eval_node(node.child, bindings)
        if node.function is Function.LN and x <= 0:
            raise DomainError(node.function.value, x)
        return node.function.apply(x)

    x = _eval_node(node.left, bindings)
    y = _eval_node(node.right, bindings)
    if node.op is Operator.DIV and abs(y) < EPSILON:
        raise DivisionByZero()
    return node.op.apply(x, y)
