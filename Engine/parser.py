import logging
import re
from typing import List

from Engine.errors import InsufficientOperands, InvalidToken, MalformedExpression
from Engine.nodes import BinaryOp, Number, Variable
from Engine.tree import Tree

# --- Logger Setup ---
logger = logging.getLogger(__name__)

# --- Tokenizer: one character per token, except bracketed literals ---
TOKEN_NUMBER = 'NUMBER'
TOKEN_LITERAL = 'LITERAL'
TOKEN_VARIABLE = 'VARIABLE'
TOKEN_OPERATOR = 'OPERATOR'


class Token:
    def __init__(self, type, value, position):
        self.type = type
        self.value = value
        self.position = position

    def __repr__(self):
        return f"Token({self.type}, '{self.value}')"


class Tokenizer:
    TOKEN_SPECS = [
        (r'[0-9]', TOKEN_NUMBER),
        (r'[a-z]', TOKEN_VARIABLE),
        (r'[\+\-\*\/^]', TOKEN_OPERATOR),
        (r'\[([^\[\]]*)\]', TOKEN_LITERAL),
        (r'\s+', None),  # Skip whitespace
    ]
    _COMPILED_SPECS = [(re.compile(pattern), ttype) for pattern, ttype in TOKEN_SPECS]

    def __init__(self, text):
        self.text = text

    def __iter__(self):
        pos = 0
        while pos < len(self.text):
            for regex, ttype in self._COMPILED_SPECS:
                match = regex.match(self.text, pos)
                if match:
                    break
            else:
                raise InvalidToken(self.text[pos], pos)

            if ttype == TOKEN_LITERAL:
                try:
                    value = float(match.group(1))
                except ValueError:
                    raise InvalidToken('[', pos) from None
                yield Token(ttype, value, pos)
            elif ttype:
                yield Token(ttype, match.group(0), pos)
            pos = match.end()


# --- Builder: operand stack ---
def build_from_postfix(text: str) -> Tree:
    """Build an expression tree from postfix text such as ``"ab+c*"``.

    Digits become number leaves, lowercase letters become variables and each of
    ``+ - * / ^`` pops its right then its left operand. ``[2.5]`` reads as a
    single numeric literal.
    """
    stack: List = []
    try:
        for token in Tokenizer(text):
            if token.type == TOKEN_NUMBER:
                stack.append(Number(int(token.value)))
            elif token.type == TOKEN_LITERAL:
                stack.append(Number(token.value))
            elif token.type == TOKEN_VARIABLE:
                stack.append(Variable(token.value))
            else:
                if len(stack) < 2:
                    raise InsufficientOperands(token.value)
                right = stack.pop()
                left = stack.pop()
                stack.append(BinaryOp(token.value, left, right))

        if len(stack) != 1:
            raise MalformedExpression(len(stack))
    except Exception as e:
        logger.debug("Failed to parse postfix %r: %s", text, e)
        stack.clear()
        raise

    return Tree(stack.pop(), text.strip())

