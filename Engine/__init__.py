"""Symbolic engine for postfix expressions: parse, evaluate, differentiate,
simplify, compose and render binary expression trees."""

from Engine.composer import compose
from Engine.differentiator import Differentiator, compute_derivative, derivative
from Engine.evaluator import evaluate
from Engine.parser import build_from_postfix
from Engine.simplifier import Simplifier, simplify
from Engine.tree import Tree, clone, collect_variables, substitute_bound_variables, wrap_in_function

__all__ = [
    "Tree",
    "build_from_postfix",
    "evaluate",
    "derivative",
    "Differentiator",
    "compute_derivative",
    "simplify",
    "Simplifier",
    "compose",
    "clone",
    "collect_variables",
    "substitute_bound_variables",
    "wrap_in_function",
]
