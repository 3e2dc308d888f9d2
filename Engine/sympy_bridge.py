import sympy as sp

from Engine.errors import depth_guarded
from Engine.nodes import Function, Number, Operator, UnaryFunc, Variable
from Engine.tree import Tree

SYMPY_FUNCTIONS = {
    Function.SIN: sp.sin,
    Function.COS: sp.cos,
    Function.TAN: sp.tan,
    Function.LN: sp.log,
}


def node_to_sympy(node) -> sp.Expr:
    if isinstance(node, Number):
        if node.value.is_integer():
            return sp.Integer(int(node.value))
        return sp.Float(node.value)
    if isinstance(node, Variable):
        return sp.Symbol(node.name)
    if isinstance(node, UnaryFunc):
        return SYMPY_FUNCTIONS[node.function](node_to_sympy(node.child))

    left = node_to_sympy(node.left)
    right = node_to_sympy(node.right)
    if node.op is Operator.ADD:
        return sp.Add(left, right)
    if node.op is Operator.SUB:
        return sp.Add(left, sp.Mul(sp.Integer(-1), right))
    if node.op is Operator.MUL:
        return sp.Mul(left, right)
    if node.op is Operator.DIV:
        return sp.Mul(left, sp.Pow(right, sp.Integer(-1)))
    return sp.Pow(left, right)


@depth_guarded
def to_sympy(tree: Tree) -> sp.Expr:
    """SymPy expression equivalent to ``tree`` (empty tree maps to 0)."""
    if tree.is_empty:
        return sp.Integer(0)
    return node_to_sympy(tree.root)
