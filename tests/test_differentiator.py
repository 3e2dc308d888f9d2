import math

import pytest
import sympy as sp

from conftest import node_ids
from Engine import differentiator
from Engine.differentiator import Differentiator, compute_derivative, derivative
from Engine.errors import EmptyExpression, EvalError, UnsupportedFunction, UnsupportedOperator
from Engine.evaluator import evaluate
from Engine.nodes import BinaryOp, Function, Number, Variable
from Engine.parser import build_from_postfix
from Engine.simplifier import simplify
from Engine.sympy_bridge import to_sympy
from Engine.tree import Tree, wrap_in_function
from generate_expression import generate_random_expression


def test_square_simplifies_to_single_term():
    result = simplify(derivative(build_from_postfix("xx*"), 'x'))
    assert result.root == BinaryOp('*', Variable('x'), Number(2))
    assert result.infix == "(x * 2)"


@pytest.mark.parametrize("text, variable, expected", [
    ("7", 'x', 0),
    ("x", 'x', 1),
    ("y", 'x', 0),
])
def test_leaves(text, variable, expected):
    assert derivative(build_from_postfix(text), variable).root == Number(expected)


def test_sum_and_difference():
    assert derivative(build_from_postfix("xy+"), 'x').infix == "(1 + 0)"
    assert derivative(build_from_postfix("xy-"), 'y').infix == "(0 - 1)"


def test_product_rule():
    assert derivative(build_from_postfix("xy*"), 'x').infix == "((1 * y) + (x * 0))"


def test_quotient_rule():
    assert derivative(build_from_postfix("xy/"), 'x').infix == "(((1 * y) - (x * 0)) / (y ^ 2))"


def test_constant_power_rule():
    assert derivative(build_from_postfix("x3^"), 'x').infix == "((3 * (x ^ 2)) * 1)"
    assert simplify(derivative(build_from_postfix("x3^"), 'x')).infix == "(3 * (x ^ 2))"


def test_trivial_exponents():
    assert derivative(build_from_postfix("x1^"), 'x').root == Number(1)
    assert derivative(build_from_postfix("x0^"), 'x').root == Number(0)


def test_variable_exponent_uses_logarithmic_differentiation():
    result = derivative(build_from_postfix("xx^"), 'x')
    assert result.infix == "((x ^ x) * ((1 * ln(x)) + (x * (1 / x))))"
    assert evaluate(result, {"x": 2}) == pytest.approx(4 * (math.log(2) + 1))


@pytest.mark.parametrize("function, expected", [
    ("sin", "(cos(x) * 1)"),
    ("cos", "((-1 * sin(x)) * 1)"),
    ("tan", "((1 / (cos(x) ^ 2)) * 1)"),
    ("ln", "(1 / x)"),
])
def test_chain_rule(function, expected):
    tree = wrap_in_function(build_from_postfix("x"), function)
    assert derivative(tree, 'x').infix == expected


def test_result_shares_no_nodes_with_input():
    tree = build_from_postfix("xy*x/")
    before = tree.infix
    result = derivative(tree, 'x')
    assert tree.infix == before
    assert not node_ids(tree.root) & node_ids(result.root)


def test_empty_tree():
    with pytest.raises(EmptyExpression):
        derivative(Tree.empty(), 'x')


def test_missing_function_rule(monkeypatch):
    monkeypatch.delitem(differentiator.FUNCTION_RULES, Function.SIN)
    with pytest.raises(UnsupportedFunction):
        derivative(wrap_in_function(build_from_postfix("x"), "sin"), 'x')


def test_unknown_operator_code():
    tree = build_from_postfix("xy+")
    tree.root.op = '%'
    with pytest.raises(UnsupportedOperator) as excinfo:
        derivative(tree, 'x')
    assert excinfo.value.details == {"operator": "%"}


def test_steps_are_recorded():
    diff = Differentiator('x')
    diff.run(build_from_postfix("xx*"))
    keys = [step["parts"][0]["explanation_key"] for step in diff.steps]
    assert keys[0] == "initial_expression"
    assert "productRule_start" in keys
    assert keys[-1] == "productRule_result"


def test_compute_derivative():
    result = compute_derivative("xx*", 'x')
    assert result["derivative_infix"] == "(x * 2)"
    assert result["derivative_postfix"] == "x2*"
    assert result["steps"][-1]["id"] == "final_derivative"
    assert result["execution_time_ms"] >= 0


def test_compute_derivative_reports_errors():
    result = compute_derivative("x+", 'x')
    assert result["error"]["code"] == "insufficient_operands"


def _central_difference(tree, v, h=1e-6):
    return (evaluate(tree, {"x": v + h}) - evaluate(tree, {"x": v - h})) / (2 * h)


@pytest.mark.parametrize("text, function", [
    ("xx*", None),
    ("x3^x2*+", None),
    ("1x/", None),
    ("x1+x2+/", None),
    ("xx^", None),
    ("x", "sin"),
    ("xx*", "cos"),
    ("x", "tan"),
    ("x1+", "ln"),
    ("x2^1+", "ln"),
])
@pytest.mark.parametrize("v", [0.5, 1.2, 2.0])
def test_matches_finite_difference(text, function, v):
    tree = build_from_postfix(text)
    if function:
        tree = wrap_in_function(tree, function)
    d = derivative(tree, 'x')
    expected = _central_difference(tree, v)
    assert evaluate(d, {"x": v}) == pytest.approx(expected, rel=1e-3, abs=1e-3)
    assert evaluate(simplify(d), {"x": v}) == pytest.approx(expected, rel=1e-3, abs=1e-3)


@pytest.mark.parametrize("seed", range(15))
def test_matches_sympy(seed):
    tree, _, _ = generate_random_expression(['x', 'y'], num_terms=3, max_depth=2, seed=seed)
    x, y = sp.symbols('x y')
    expected_expr = sp.diff(to_sympy(tree), x)
    d = derivative(tree, 'x')

    for v in (0.5, 1.5, 2.5):
        bindings = {"x": v, "y": 1.25}
        try:
            actual = evaluate(d, bindings)
        except EvalError:
            continue
        expected = expected_expr.subs({x: sp.Rational(str(v)), y: sp.Rational(5, 4)}).evalf()
        if not (expected.is_real and expected.is_finite):
            continue
        assert actual == pytest.approx(float(expected), rel=1e-6, abs=1e-6)
