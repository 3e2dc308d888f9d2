import logging
from typing import List, Optional, Tuple

from Engine.errors import depth_guarded
from Engine.nodes import (
    EPSILON, BinaryOp, Function, Node, Number, Operator, UnaryFunc, Variable,
    clone_node, is_number, structurally_equal,
)
from Engine.tree import Tree

# --- Logger Setup ---
logger = logging.getLogger(__name__)


def _flatten(node: Node, op: Operator, out: List[Node]) -> List[Node]:
    """Collect the operands of a maximal chain of ``op`` nodes, left to right."""
    if isinstance(node, BinaryOp) and node.op is op:
        _flatten(node.left, op, out)
        _flatten(node.right, op, out)
    else:
        out.append(node)
    return out


def _coefficient_and_base(term: Node) -> Tuple[Optional[Node], float]:
    if isinstance(term, Number):
        return None, term.value
    if isinstance(term, BinaryOp) and term.op is Operator.MUL:
        left_const = isinstance(term.left, Number)
        right_const = isinstance(term.right, Number)
        if right_const and not left_const:
            return term.left, term.right.value
        if left_const and not right_const:
            return term.right, term.left.value
    return term, 1.0


def _same_base(a: Optional[Node], b: Optional[Node]) -> bool:
    if a is None or b is None:
        return a is None and b is None
    return structurally_equal(a, b)


# --- Expression Simplifier ---
class Simplifier:
    """Bottom-up rewriter: constant folding, like-term and like-factor
    aggregation, then the usual identities. The input is never modified."""

    def run(self, node: Node) -> Node:
        if isinstance(node, (Number, Variable)):
            return clone_node(node)

        if isinstance(node, UnaryFunc):
            arg = self.run(node.child)
            if isinstance(arg, Number):
                if not (node.function is Function.LN and arg.value <= 0):
                    return Number(node.function.apply(arg.value))
            return UnaryFunc(node.function, arg)

        left = self.run(node.left)
        right = self.run(node.right)
        return self._rewrite(node.op, left, right)

    def _rewrite(self, op: Operator, left: Node, right: Node) -> Node:
        # Constant fold
        if isinstance(left, Number) and isinstance(right, Number):
            if not (op is Operator.DIV and abs(right.value) < EPSILON):
                return Number(op.apply(left.value, right.value))

        node = BinaryOp(op, left, right)

        if op is Operator.ADD:
            merged = self._merge_terms(node)
            if merged is not None:
                return merged

        if op is Operator.MUL:
            merged = self._merge_factors(node)
            if merged is not None:
                return merged

        return self._eliminate_identity(node)

    def _merge_terms(self, node: BinaryOp) -> Optional[Node]:
        """a + a + a -> a * 3, a*4 + a*5 -> a * 9."""
        terms = _flatten(node, Operator.ADD, [])

        grouped: List[Tuple[Optional[Node], float]] = []
        for term in terms:
            base, coef = _coefficient_and_base(term)
            for i, (group_base, total) in enumerate(grouped):
                if _same_base(group_base, base):
                    grouped[i] = (group_base, total + coef)
                    break
            else:
                grouped.append((base, coef))

        if len(grouped) >= len(terms):
            return None

        result = None
        for base, coef in grouped:
            if abs(coef) < EPSILON:
                continue
            if base is None:
                term = Number(coef)
            elif abs(coef - 1.0) < EPSILON:
                term = clone_node(base)
            else:
                term = BinaryOp('*', clone_node(base), Number(coef))
            result = term if result is None else BinaryOp('+', result, term)

        if result is None:
            return Number(0)
        logger.debug("Merged %d terms into %d", len(terms), len(grouped))
        return self.run(result)

    def _merge_factors(self, node: BinaryOp) -> Optional[Node]:
        """a * a * a -> a ^ 3, 2 * a * 3 -> 6 * a."""
        factors = _flatten(node, Operator.MUL, [])

        product = 1.0
        symbolic: List[Node] = []
        for factor in factors:
            if isinstance(factor, Number):
                product *= factor.value
            else:
                symbolic.append(factor)

        if abs(product) < EPSILON:
            return Number(0)

        grouped: List[Tuple[Node, int]] = []
        for factor in symbolic:
            for i, (group_factor, count) in enumerate(grouped):
                if structurally_equal(group_factor, factor):
                    grouped[i] = (group_factor, count + 1)
                    break
            else:
                grouped.append((factor, 1))

        expected = len(symbolic) + (0 if abs(product - 1.0) < EPSILON else 1)
        folded_numbers = len(factors) > expected
        merged_factors = len(grouped) < len(symbolic)
        if not (folded_numbers or merged_factors):
            return None

        result = None if abs(product - 1.0) < EPSILON else Number(product)
        for factor, count in grouped:
            if count == 1:
                term = clone_node(factor)
            else:
                term = BinaryOp('^', clone_node(factor), Number(count))
            result = term if result is None else BinaryOp('*', result, term)

        if result is None:
            return Number(product)
        return self.run(result)

    def _eliminate_identity(self, node: BinaryOp) -> Node:
        op, left, right = node.op, node.left, node.right

        if op is Operator.ADD:
            if is_number(right, 0.0):
                return left
            if is_number(left, 0.0):
                return right
        elif op is Operator.SUB:
            if is_number(right, 0.0):
                return left
        elif op is Operator.MUL:
            if is_number(right, 0.0) or is_number(left, 0.0):
                return Number(0)
            if is_number(right, 1.0):
                return left
            if is_number(left, 1.0):
                return right
        elif op is Operator.DIV:
            if is_number(right, 1.0):
                return left
        elif op is Operator.POW:
            if is_number(right, 0.0):
                return Number(1)
            if is_number(right, 1.0):
                return left
        return node


@depth_guarded
def simplify(tree: Tree) -> Tree:
    """Return a reduced copy of ``tree``.

    Only fails with ExpressionTooDeep when the tree is nested past what the
    interpreter stack allows.
    """
    if tree.is_empty:
        return Tree.empty()
    result = Tree(Simplifier().run(tree.root))
    logger.debug("Simplified %s -> %s", tree.infix, result.infix)
    return result
