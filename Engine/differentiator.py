import logging
import time
import tracemalloc

from Engine.errors import (
    EmptyExpression, EngineError, UnsupportedFunction, UnsupportedOperator, depth_guarded,
)
from Engine.nodes import (
    EPSILON, BinaryOp, Function, Number, Operator, UnaryFunc, Variable, clone_node,
)
from Engine.parser import build_from_postfix
from Engine.serializer import to_latex
from Engine.simplifier import simplify
from Engine.tree import Tree

# --- Logger Setup ---
logger = logging.getLogger(__name__)


# --- Chain rule outer derivatives f'(u); the caller multiplies by du ---
def _sin_rule(u, du):
    return BinaryOp('*', UnaryFunc(Function.COS, clone_node(u)), du)


def _cos_rule(u, du):
    neg_sin = BinaryOp('*', Number(-1), UnaryFunc(Function.SIN, clone_node(u)))
    return BinaryOp('*', neg_sin, du)


def _tan_rule(u, du):
    cos_squared = BinaryOp('^', UnaryFunc(Function.COS, clone_node(u)), Number(2))
    return BinaryOp('*', BinaryOp('/', Number(1), cos_squared), du)


def _ln_rule(u, du):
    return BinaryOp('/', du, clone_node(u))


FUNCTION_RULES = {
    Function.SIN: _sin_rule,
    Function.COS: _cos_rule,
    Function.TAN: _tan_rule,
    Function.LN: _ln_rule,
}


# --- Derivative Computation with Step-by-Step Logging ---
class Differentiator:
    def __init__(self, variable):
        self.variable = variable
        self.steps = []

    def _add_step(self, node, rule_key, explanation, prefix="= "):
        self.steps.append({
            "id": f"step_{len(self.steps)}_{rule_key}",
            "prefix": prefix,
            "parts": [{"latex": to_latex(node), "explanation_key": rule_key}],
            "explanation_text": explanation
        })

    @depth_guarded
    def run(self, tree: Tree) -> Tree:
        if tree.is_empty:
            raise EmptyExpression()
        self._add_step(tree.root, "initial_expression", "Differentiating the expression:",
                       prefix=f"\\frac{{\\partial}}{{\\partial {self.variable}}}")
        return Tree(self._differentiate(tree.root))

    def _differentiate(self, node):
        # Base cases: constants or variables
        if isinstance(node, Number):
            self._add_step(node, "constantRule", "The derivative of a constant is 0.")
            return Number(0)
        if isinstance(node, Variable):
            if node.name == self.variable:
                self._add_step(node, "variableRule", f"The derivative of {self.variable} is 1.")
                return Number(1)
            self._add_step(node, "constantRule", f"{node.name} is constant with respect to {self.variable}.")
            return Number(0)

        if isinstance(node, UnaryFunc):
            return self._apply_chain_rule(node)

        op = node.op
        u, v = node.left, node.right

        if op in (Operator.ADD, Operator.SUB):
            self._add_step(node, "sumRule_start", "Applying the Sum/Difference Rule.")
            result_node = BinaryOp(op, self._differentiate(u), self._differentiate(v))
            self._add_step(result_node, "sumRule_result", "Result of the Sum/Difference Rule.")
            return result_node

        if op is Operator.MUL:
            self._add_step(node, "productRule_start", "Applying the Product Rule: ")
            du = self._differentiate(u)
            dv = self._differentiate(v)
            result_node = BinaryOp('+',
                                   BinaryOp('*', du, clone_node(v)),
                                   BinaryOp('*', clone_node(u), dv))
            self._add_step(result_node, "productRule_result", "Result of the Product Rule.")
            return result_node

        if op is Operator.DIV:
            self._add_step(node, "quotientRule_start", "Applying the Quotient Rule: ")
            du = self._differentiate(u)
            dv = self._differentiate(v)
            num = BinaryOp('-', BinaryOp('*', du, clone_node(v)), BinaryOp('*', clone_node(u), dv))
            den = BinaryOp('^', clone_node(v), Number(2))
            result_node = BinaryOp('/', num, den)
            self._add_step(result_node, "quotientRule_result", "Result of the Quotient Rule.")
            return result_node

        if op is Operator.POW:
            if isinstance(v, Number):  # Power Rule: f(x)^n
                self._add_step(node, "powerRule_start", "Applying the Power Rule: ")
                n = v.value
                du = self._differentiate(u)
                if abs(n) < EPSILON:
                    result_node = Number(0)
                elif abs(n - 1.0) < EPSILON:
                    result_node = du
                else:
                    power = BinaryOp('^', clone_node(u), Number(n - 1.0))
                    result_node = BinaryOp('*', BinaryOp('*', Number(n), power), du)
                self._add_step(result_node, "powerRule_result", "Result of the Power Rule.")
                return result_node

            # u^v = e^(v ln u): u^v * (dv*ln(u) + v*(du/u))
            self._add_step(node, "exponentialRule_start", "Applying logarithmic differentiation: ")
            du = self._differentiate(u)
            dv = self._differentiate(v)
            term1 = BinaryOp('*', dv, UnaryFunc(Function.LN, clone_node(u)))
            term2 = BinaryOp('*', clone_node(v), BinaryOp('/', du, clone_node(u)))
            outer = BinaryOp('^', clone_node(u), clone_node(v))
            result_node = BinaryOp('*', outer, BinaryOp('+', term1, term2))
            self._add_step(result_node, "exponentialRule_result", "Result of logarithmic differentiation.")
            return result_node

        # only reachable if a node carries an op outside Operator
        raise UnsupportedOperator(str(getattr(op, 'value', op)))

    def _apply_chain_rule(self, node):
        fn = node.function
        rule = FUNCTION_RULES.get(fn)
        if rule is None:
            raise UnsupportedFunction(fn.value)
        rule_name = fn.value.capitalize() + " Rule"
        self._add_step(node, f"{fn.value}Rule_start", f"Applying the Chain Rule for {fn.value}: ")
        du = self._differentiate(node.child)
        result_node = rule(node.child, du)
        self._add_step(result_node, f"{fn.value}Rule_result", f"Result of the {rule_name}.")
        return result_node


def derivative(tree: Tree, variable: str) -> Tree:
    """Symbolic partial derivative of ``tree`` with respect to ``variable``."""
    return Differentiator(variable).run(tree)


# --- Main Compute Function ---
def compute_derivative(expression_str, variable_str):
    tracemalloc.start()
    start_time = time.perf_counter()

    try:
        # 1. Parse the postfix text
        expression_tree = build_from_postfix(expression_str)

        # 2. Differentiate with step tracking
        differentiator = Differentiator(variable_str)
        derivative_tree = differentiator.run(expression_tree)

        # 3. Simplify the result before displaying
        simplified_tree = simplify(derivative_tree)

        steps = differentiator.steps

        # 4. Format final result
        derivative_latex = simplified_tree.to_latex()
        steps.append({
            "id": "final_derivative",
            "prefix": "= ",
            "parts": [{"latex": derivative_latex, "explanation_key": "final_derivative"}],
            "explanation_text": "The final derivative is:"
        })

    except EngineError as e:
        logger.error(f"Error computing derivative for '{expression_str}': {e}")
        end_time = time.perf_counter()
        _, peak_memory = tracemalloc.get_traced_memory()
        return {
            "error": e.to_dict(),
            "derivative_latex": f"\\text{{Error: {e.message}}}",
            "steps": [{"id": "error", "prefix": "Error:", "parts": [], "explanation_text": e.message}],
            "execution_time_ms": (end_time - start_time) * 1000,
            "peak_memory_bytes": peak_memory,
        }
    finally:
        end_time = time.perf_counter()
        _, peak_memory = tracemalloc.get_traced_memory()
        tracemalloc.stop()

    return {
        "derivative_postfix": simplified_tree.to_postfix(),
        "derivative_infix": simplified_tree.to_infix(),
        "derivative_latex": derivative_latex,
        "steps": steps,
        "execution_time_ms": (end_time - start_time) * 1000,
        "peak_memory_bytes": peak_memory,
    }
