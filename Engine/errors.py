"""Error types raised by the expression engine.

Every error carries a machine readable ``code`` and a ``details`` mapping so the
service layer can hand it back to the caller as a plain JSON value.
"""

import functools
from typing import Any, Dict, Optional


class EngineError(ValueError):
    """Base class for every failure the engine reports."""

    code = "engine_error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = dict(details or {})

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": dict(self.details),
        }


# --- Parse errors ---
class ParseError(EngineError):
    code = "parse_error"


class InvalidToken(ParseError):
    code = "invalid_token"

    def __init__(self, char: str, position: Optional[int] = None):
        details = {"char": char}
        if position is not None:
            details["position"] = position
        super().__init__(f"Invalid character '{char}' in postfix expression", details)
        self.char = char


class InsufficientOperands(ParseError):
    code = "insufficient_operands"

    def __init__(self, operator: Optional[str] = None):
        super().__init__(
            "Not enough operands for operator" + (f" '{operator}'" if operator else ""),
            {"operator": operator} if operator else None,
        )


class MalformedExpression(ParseError):
    code = "malformed_expression"

    def __init__(self, remaining: int):
        super().__init__(
            f"Malformed expression: {remaining} entries left on the stack, expected 1",
            {"remaining": remaining},
        )


# --- Evaluation errors ---
class EvalError(EngineError):
    code = "eval_error"


class UnboundVariable(EvalError):
    code = "unbound_variable"

    def __init__(self, name: str):
        super().__init__(f"Variable '{name}' has no value", {"variable": name})
        self.name = name


class DivisionByZero(EvalError):
    code = "division_by_zero"

    def __init__(self):
        super().__init__("Division by zero")


class DomainError(EvalError):
    code = "domain_error"

    def __init__(self, function: str, argument: float):
        super().__init__(
            f"{function} is undefined for argument {argument}",
            {"function": function, "argument": argument},
        )
        self.function = function
        self.argument = argument


# --- Derivative errors ---
class DerivError(EngineError):
    code = "deriv_error"


class UnsupportedOperator(DerivError):
    code = "unsupported_operator"

    def __init__(self, operator: str):
        super().__init__(f"No derivative rule for operator '{operator}'", {"operator": operator})


class UnsupportedFunction(DerivError):
    code = "unsupported_function"

    def __init__(self, function: str):
        super().__init__(f"No derivative rule for function '{function}'", {"function": function})


class EmptyExpression(DerivError, EvalError):
    code = "empty_expression"

    def __init__(self):
        super().__init__("Expression is empty")


# --- Size limits ---
class ExpressionTooDeep(EngineError):
    code = "expression_too_deep"

    def __init__(self):
        super().__init__("Expression is nested too deeply to process")


def depth_guarded(func):
    """Report running out of stack inside ``func`` as ExpressionTooDeep."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except RecursionError:
            raise ExpressionTooDeep() from None

    return wrapper


# --- Compose errors ---
class ComposeError(EngineError):
    code = "compose_error"


class InvalidOperator(ComposeError):
    code = "invalid_operator"

    def __init__(self, operator: str):
        super().__init__(f"'{operator}' is not a binary operator", {"operator": operator})


class EmptyOperand(ComposeError):
    code = "empty_operand"

    def __init__(self):
        super().__init__("Both operands must be non-empty expressions")


__all__ = [
    "EngineError",
    "ParseError",
    "InvalidToken",
    "InsufficientOperands",
    "MalformedExpression",
    "EvalError",
    "UnboundVariable",
    "DivisionByZero",
    "DomainError",
    "DerivError",
    "UnsupportedOperator",
    "UnsupportedFunction",
    "EmptyExpression",
    "ExpressionTooDeep",
    "depth_guarded",
    "ComposeError",
    "InvalidOperator",
    "EmptyOperand",
]
