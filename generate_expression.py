import random

from sympy import latex

from Engine.nodes import BinaryOp, Number, Variable
from Engine.sympy_bridge import to_sympy
from Engine.tree import Tree


def generate_random_expression(variables, num_terms=3, max_depth=2, seed=None):

    rng = random.Random(seed)
    variables = [Variable(v) if isinstance(v, str) else v for v in variables]

    operators = ["+", "-", "*", "/", "^"]

    def create_leaf():
        if rng.random() < 0.7:
            return Variable(rng.choice(variables).name)  # variable
        else:
            return Number(rng.randint(1, 9))  # single digit constant

    # Exponents are small positive constants so x^y style terms never appear.
    def safe_exponent():
        return Number(rng.randint(1, 5))

    def create_node(current_depth):
        if current_depth >= max_depth or rng.random() < 0.4:
            return create_leaf()

        op = rng.choice(operators)
        left = create_node(current_depth + 1)

        if op == "^":
            return BinaryOp(op, left, safe_exponent())

        right = create_node(current_depth + 1)
        return BinaryOp(op, left, right)

    root = create_node(0)
    for _ in range(num_terms - 1):
        root = BinaryOp("+", root, create_node(0))

    tree = Tree(root)

    # Return the tree, its postfix text, and its LaTeX representation
    return tree, tree.postfix_raw, latex(to_sympy(tree))


if __name__ == '__main__':
    tree, postfix, expr_latex = generate_random_expression(['x', 'y'], num_terms=2, max_depth=3)
    print(f"Generated Expression: {tree.infix}")
    print(f"Generated Expression Postfix: {postfix}")
    print(f"Generated Expression LaTeX: {expr_latex}")
