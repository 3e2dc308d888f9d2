import sympy as sp

from Engine.parser import build_from_postfix
from Engine.sympy_bridge import to_sympy
from Engine.tree import Tree, wrap_in_function
from generate_expression import generate_random_expression


def test_same_seed_same_expression():
    first = generate_random_expression(['x', 'y'], seed=7)
    second = generate_random_expression(['x', 'y'], seed=7)
    assert first[1] == second[1]
    assert first[0] == second[0]


def test_generated_expression_uses_given_variables():
    for seed in range(10):
        tree, postfix, expr_latex = generate_random_expression(['x', 'y'], num_terms=2, max_depth=3, seed=seed)
        assert tree.collect_variables() <= {'x', 'y'}
        assert build_from_postfix(postfix) == tree
        assert isinstance(expr_latex, str) and expr_latex


def test_to_sympy():
    a, b, c, x = sp.symbols('a b c x')
    assert to_sympy(build_from_postfix("ab+c*")) == (a + b) * c
    assert to_sympy(build_from_postfix("ab-")) == a - b
    assert to_sympy(build_from_postfix("ab/")) == a / b
    assert to_sympy(build_from_postfix("x[2.5]^")) == x ** sp.Float(2.5)
    assert to_sympy(wrap_in_function(build_from_postfix("x"), "ln")) == sp.log(x)
    assert to_sympy(Tree.empty()) == 0
