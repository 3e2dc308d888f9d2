import logging

from Engine.errors import EmptyOperand, InvalidOperator, depth_guarded
from Engine.nodes import BinaryOp, Operator, clone_node
from Engine.tree import Tree

# --- Logger Setup ---
logger = logging.getLogger(__name__)


@depth_guarded
def compose(first: Tree, second: Tree, op: str) -> Tree:
    """Combine two expressions as ``(first) op (second)``; both inputs are copied."""
    try:
        operator = Operator(op)
    except ValueError:
        raise InvalidOperator(str(op)) from None
    if first.is_empty or second.is_empty:
        raise EmptyOperand()

    root = BinaryOp(operator, clone_node(first.root), clone_node(second.root))
    result = Tree(root, first.postfix_raw + second.postfix_raw + operator.value)
    logger.debug("Composed %s %s %s", first.infix, operator.value, second.infix)
    return result
