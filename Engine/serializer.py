"""Text renderings of expression trees: postfix, fully parenthesised infix and LaTeX."""

from typing import List, Optional

from Engine.errors import depth_guarded
from Engine.nodes import BinaryOp, Node, Number, Operator, UnaryFunc, Variable


def format_number(value: float) -> str:
    """Default decimal formatting (six significant digits, no trailing zeros)."""
    return f"{value:g}"


def format_literal(value: float) -> str:
    """Exact decimal text for a bracketed postfix literal."""
    if value.is_integer():
        return str(int(value))
    return repr(value)


# --- Postfix ---
def to_postfix(node: Optional[Node]) -> str:
    parts: List[str] = []
    stack = [node] if node is not None else []
    while stack:
        item = stack.pop()
        if isinstance(item, str):
            parts.append(item)
        elif isinstance(item, Number):
            value = item.value
            if value.is_integer() and 0 <= value <= 9:
                parts.append(str(int(value)))
            else:
                parts.append(f"[{format_literal(value)}]")
        elif isinstance(item, Variable):
            parts.append(item.name)
        elif isinstance(item, UnaryFunc):
            stack.extend((item.function.code, item.child))
        else:
            stack.extend((item.op.value, item.right, item.left))
    return "".join(parts)


# --- Infix ---
def to_infix(node: Optional[Node]) -> str:
    parts: List[str] = []
    # pending text and nodes, rightmost first
    stack = [node] if node is not None else []
    while stack:
        item = stack.pop()
        if isinstance(item, str):
            parts.append(item)
        elif isinstance(item, Number):
            parts.append(format_number(item.value))
        elif isinstance(item, Variable):
            parts.append(item.name)
        elif isinstance(item, UnaryFunc):
            stack.extend((")", item.child, f"{item.function.value}("))
        else:
            stack.extend((")", item.right, f" {item.op.value} ", item.left, "("))
    return "".join(parts)


# --- LaTeX ---
PRECEDENCE = {
    Operator.ADD: 1,
    Operator.SUB: 1,
    Operator.MUL: 2,
    Operator.DIV: 2,
    Operator.POW: 3,
}


@depth_guarded
def to_latex(node: Optional[Node]) -> str:
    return _latex(node)


def _latex(node):
    if node is None:
        return ""
    if isinstance(node, Number):
        return format_number(node.value)
    if isinstance(node, Variable):
        return node.name
    if isinstance(node, UnaryFunc):
        return f"\\{node.function.value}({_latex(node.child)})"

    op = node.op

    def format_child(child_node, is_left_child=False):
        child_latex = _latex(child_node)
        if not isinstance(child_node, BinaryOp):
            return child_latex

        op_prec = PRECEDENCE[op]
        child_prec = PRECEDENCE[child_node.op]

        if child_prec < op_prec:
            return f"({child_latex})"
        if child_prec == op_prec:
            if op is Operator.POW and is_left_child:
                return f"({child_latex})"
            if op is not Operator.POW and not is_left_child:
                return f"({child_latex})"
        return child_latex

    left_latex = format_child(node.left, True)
    right_latex = format_child(node.right)

    if op is Operator.ADD:
        return f"{left_latex} + {right_latex}"
    if op is Operator.SUB:
        return f"{left_latex} - {right_latex}"
    if op is Operator.MUL:
        is_left_const = isinstance(node.left, Number)
        is_right_const = isinstance(node.right, Number)

        # -1 * x reads as -x
        if is_left_const and node.left.value == -1.0 and not is_right_const:
            return f"-{right_latex}"
        # 4x
        if is_left_const and not is_right_const:
            return f"{left_latex}{right_latex}"
        return f"{left_latex} \\cdot {right_latex}"
    if op is Operator.DIV:
        return f"\\frac{{{_latex(node.left)}}}{{{_latex(node.right)}}}"
    return f"{{{left_latex}}}^{{{right_latex}}}"
