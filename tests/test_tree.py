import math

import pytest

from conftest import node_ids
from Engine.errors import EmptyExpression
from Engine.nodes import BinaryOp, Function, Number, UnaryFunc, Variable, function_from_name
from Engine.parser import build_from_postfix
from Engine.tree import Tree, collect_variables, substitute_bound_variables, wrap_in_function


@pytest.mark.parametrize("factory", [
    lambda: Variable('A'),
    lambda: Variable('ab'),
    lambda: Variable(''),
    lambda: Number('1'),
    lambda: Number(True),
    lambda: BinaryOp('%', Number(1), Number(2)),
    lambda: BinaryOp('+', Number(1), None),
    lambda: UnaryFunc('sqrt', Variable('x')),
    lambda: UnaryFunc('sin', None),
])
def test_invalid_nodes_are_rejected(factory):
    with pytest.raises(ValueError):
        factory()


def test_structural_equality():
    assert Number(1) == Number(1 + 1e-13)
    assert Number(1) != Number(1.001)
    assert build_from_postfix("xy*") != build_from_postfix("yx*")
    assert build_from_postfix("xy*") == build_from_postfix("x y *")
    assert UnaryFunc('sin', Variable('x')) != UnaryFunc('cos', Variable('x'))
    assert Variable('x') != Number(1)


def test_infinite_numbers_are_equal():
    assert Number(math.inf) == Number(math.inf)
    assert Number(-math.inf) == Number(-math.inf)
    assert Number(math.inf) != Number(-math.inf)
    assert Number(math.inf) != Number(1e300)


def test_clone_is_deep():
    tree = build_from_postfix("ab+c*")
    copy = tree.clone()
    assert copy == tree
    assert copy.postfix_raw == tree.postfix_raw
    assert not node_ids(tree.root) & node_ids(copy.root)


def test_collect_variables():
    assert collect_variables(build_from_postfix("ab+a*")) == {'a', 'b'}
    assert build_from_postfix("23+").collect_variables() == set()


def test_substitute_bound_variables():
    tree = build_from_postfix("ab+c*")
    result = substitute_bound_variables(tree, {"a": 2, "c": 12.5})
    assert result.infix == "((2 + b) * 12.5)"
    assert result.to_postfix() == "2b+[12.5]*"
    assert tree.infix == "((a + b) * c)"
    assert not node_ids(tree.root) & node_ids(result.root)


def test_substitute_on_empty_tree():
    assert substitute_bound_variables(Tree.empty(), {"a": 1}).is_empty


def test_wrap_root():
    tree = wrap_in_function(build_from_postfix("ab+"), "sin")
    assert tree.root == UnaryFunc(Function.SIN, BinaryOp('+', Variable('a'), Variable('b')))
    assert tree.infix == "sin((a + b))"


def test_wrap_by_path():
    source = build_from_postfix("ab+c*")
    tree = wrap_in_function(source, "ln", "lr")
    assert tree.infix == "((a + ln(b)) * c)"
    assert tree.to_postfix() == "abl+c*"
    assert source.infix == "((a + b) * c)"

    nested = wrap_in_function(wrap_in_function(source, "c", "r"), "tan", ["r", "l"])
    assert nested.infix == "((a + b) * cos(tan(c)))"


def test_wrap_errors():
    tree = build_from_postfix("ab+")
    with pytest.raises(LookupError):
        wrap_in_function(tree, "sin", "rr")
    with pytest.raises(ValueError):
        wrap_in_function(tree, "sqrt")
    with pytest.raises(EmptyExpression):
        wrap_in_function(Tree.empty(), "sin")


def test_function_from_name():
    assert function_from_name("ln") is Function.LN
    assert function_from_name("t") is Function.TAN
    assert Function.COS.code == 'c'


def test_size_and_depth():
    tree = build_from_postfix("ab+c*")
    assert tree.size() == 5
    assert tree.depth() == 3
    assert Tree.empty().size() == 0
