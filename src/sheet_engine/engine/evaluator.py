"""Closed-grammar arithmetic evaluator.

Formulas often come from remote character records, so arithmetic is never
handed to ``eval``. Input is tokenized in one left-to-right scan, parsed by
recursive descent into a small AST, and the AST is walked to a number.

Grammar::

    expression -> term (('+' | '-') term)*
    term       -> factor (('*' | '/') factor)*
    factor     -> NUMBER | call | '(' expression ')' | '-' factor
    call       -> FUNCTION '(' expression (',' expression)* ')'

``max`` and ``min`` take two or more arguments; ``floor``, ``ceil`` and
``round`` take exactly one. Function names may carry a ``Math.`` prefix.

Input is bounded: at most ``MAX_EXPRESSION_TOKENS`` tokens and
``MAX_EXPRESSION_DEPTH`` levels of nesting, and every intermediate result
must be finite.

Example:
    >>> evaluate("2+3*4")
    14.0
    >>> evaluate("max(2,7,3)")
    7.0
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import StrEnum

from sheet_engine.core.constants import MAX_EXPRESSION_DEPTH, MAX_EXPRESSION_TOKENS
from sheet_engine.core.exceptions import MalformedExpressionError


class TokenType(StrEnum):
    """Lexical token types."""

    NUMBER = "number"
    OPERATOR = "operator"
    FUNCTION = "function"
    LPAREN = "lparen"
    RPAREN = "rparen"
    COMMA = "comma"


class Operator(StrEnum):
    """Binary arithmetic operators."""

    ADD = "+"
    SUB = "-"
    MUL = "*"
    DIV = "/"


class Function(StrEnum):
    """Functions callable from an expression."""

    FLOOR = "floor"
    CEIL = "ceil"
    ROUND = "round"
    MAX = "max"
    MIN = "min"

    @property
    def is_variadic(self) -> bool:
        """Whether the function takes two or more arguments."""
        return self in (Function.MAX, Function.MIN)


@dataclass(frozen=True)
class Token:
    """A lexical token and its offset in the source text."""

    type: TokenType
    text: str
    position: int


@dataclass(frozen=True)
class Number:
    """Numeric literal."""

    value: float


@dataclass(frozen=True)
class UnaryOp:
    """Unary minus."""

    operand: Node


@dataclass(frozen=True)
class BinaryOp:
    """Binary arithmetic operation."""

    op: Operator
    left: Node
    right: Node


@dataclass(frozen=True)
class Call:
    """Function call."""

    function: Function
    args: tuple[Node, ...]


Node = Number | UnaryOp | BinaryOp | Call

_MATH_PREFIX = "Math."
_FUNCTION_NAMES = frozenset(function.value for function in Function)
_SINGLE_CHAR_TOKENS = {
    "+": TokenType.OPERATOR,
    "-": TokenType.OPERATOR,
    "*": TokenType.OPERATOR,
    "/": TokenType.OPERATOR,
    "(": TokenType.LPAREN,
    ")": TokenType.RPAREN,
    ",": TokenType.COMMA,
}


# =============================================================================
# Tokenizer
# =============================================================================


def tokenize(expression: str) -> list[Token]:
    """Split an expression into tokens.

    Args:
        expression: Arithmetic expression.

    Returns:
        Tokens in source order.

    Raises:
        MalformedExpressionError: On any character outside the grammar.
    """
    tokens: list[Token] = []
    i = 0
    length = len(expression)

    while i < length:
        char = expression[i]

        if char.isspace():
            i += 1
            continue

        if char.isdigit() or char == ".":
            start = i
            while i < length and (expression[i].isdigit() or expression[i] == "."):
                i += 1
            text = expression[start:i]
            try:
                value = float(text)
            except ValueError as exc:
                raise MalformedExpressionError(
                    f"Invalid number {text!r}",
                    expression=expression,
                    position=start,
                ) from exc
            if not math.isfinite(value):
                raise MalformedExpressionError(
                    "Number out of range",
                    expression=expression,
                    position=start,
                )
            tokens.append(Token(TokenType.NUMBER, text, start))
            continue

        if char in _SINGLE_CHAR_TOKENS:
            tokens.append(Token(_SINGLE_CHAR_TOKENS[char], char, i))
            i += 1
            continue

        if char.isalpha():
            start = i
            if expression.startswith(_MATH_PREFIX, i):
                i += len(_MATH_PREFIX)
            name_start = i
            while i < length and expression[i].isalpha():
                i += 1
            name = expression[name_start:i]
            if name in _FUNCTION_NAMES:
                tokens.append(Token(TokenType.FUNCTION, name, start))
                continue
            raise MalformedExpressionError(
                f"Unexpected character {char!r}",
                expression=expression,
                position=start,
                character=char,
            )

        raise MalformedExpressionError(
            f"Unexpected character {char!r}",
            expression=expression,
            position=i,
            character=char,
        )

    return tokens


# =============================================================================
# Parser
# =============================================================================


class _Parser:
    """Recursive-descent parser over a token list."""

    def __init__(self, tokens: list[Token], expression: str | None) -> None:
        self._tokens = tokens
        self._pos = 0
        self._depth = 0
        self._expression = expression

    def _peek(self) -> Token | None:
        return self._tokens[self._pos] if self._pos < len(self._tokens) else None

    def _advance(self) -> Token:
        token = self._peek()
        if token is None:
            raise self._error("Unexpected end of expression")
        self._pos += 1
        return token

    def _error(self, message: str, token: Token | None = None) -> MalformedExpressionError:
        return MalformedExpressionError(
            message,
            expression=self._expression,
            position=token.position if token else None,
        )

    def _expect(self, token_type: TokenType, message: str) -> Token:
        token = self._peek()
        if token is None or token.type is not token_type:
            raise self._error(message, token)
        self._pos += 1
        return token

    def parse(self) -> Node:
        if not self._tokens:
            raise self._error("Empty expression")
        if len(self._tokens) > MAX_EXPRESSION_TOKENS:
            raise self._error(f"Expression longer than {MAX_EXPRESSION_TOKENS} tokens")
        node = self._expression_rule()
        trailing = self._peek()
        if trailing is not None:
            raise self._error(f"Unexpected token {trailing.text!r}", trailing)
        return node

    def _expression_rule(self) -> Node:
        node = self._term()
        while (token := self._peek()) is not None and token.text in (Operator.ADD, Operator.SUB):
            self._pos += 1
            node = BinaryOp(Operator(token.text), node, self._term())
        return node

    def _term(self) -> Node:
        node = self._factor()
        while (token := self._peek()) is not None and token.text in (Operator.MUL, Operator.DIV):
            self._pos += 1
            node = BinaryOp(Operator(token.text), node, self._factor())
        return node

    def _factor(self) -> Node:
        self._depth += 1
        try:
            if self._depth > MAX_EXPRESSION_DEPTH:
                raise self._error(f"Expression nested deeper than {MAX_EXPRESSION_DEPTH}", self._peek())
            return self._primary()
        finally:
            self._depth -= 1

    def _primary(self) -> Node:
        token = self._advance()

        if token.type is TokenType.NUMBER:
            return Number(float(token.text))

        if token.type is TokenType.OPERATOR and token.text == Operator.SUB:
            return UnaryOp(self._factor())

        if token.type is TokenType.LPAREN:
            node = self._expression_rule()
            self._expect(TokenType.RPAREN, "Expected ')'")
            return node

        if token.type is TokenType.FUNCTION:
            function = Function(token.text)
            self._expect(TokenType.LPAREN, f"Expected '(' after {function}")
            args = [self._expression_rule()]
            while (sep := self._peek()) is not None and sep.type is TokenType.COMMA:
                self._pos += 1
                args.append(self._expression_rule())
            self._expect(TokenType.RPAREN, f"Expected ')' after {function} arguments")
            if function.is_variadic and len(args) < 2:
                raise self._error(f"{function} needs at least two arguments", token)
            if not function.is_variadic and len(args) != 1:
                raise self._error(f"{function} takes exactly one argument", token)
            return Call(function, tuple(args))

        raise self._error(f"Unexpected token {token.text!r}", token)


def parse(tokens: list[Token], *, expression: str | None = None) -> Node:
    """Parse tokens into an AST.

    Args:
        tokens: Output of ``tokenize``.
        expression: Source text, used for error context.

    Returns:
        Root node of the AST.

    Raises:
        MalformedExpressionError: On empty input, mismatched parentheses,
            missing arguments or trailing tokens.
    """
    return _Parser(tokens, expression).parse()


# =============================================================================
# Evaluation
# =============================================================================


def evaluate_node(node: Node) -> float:
    """Evaluate an AST node.

    ``round`` rounds halves up.

    Args:
        node: Node to evaluate.

    Returns:
        Numeric result, always finite.

    Raises:
        MalformedExpressionError: On division by zero, or when a result
            overflows to infinity.
    """
    value = _compute(node)
    if not math.isfinite(value):
        raise MalformedExpressionError("Result out of range")
    return value


def _compute(node: Node) -> float:
    match node:
        case Number(value=value):
            return value
        case UnaryOp(operand=operand):
            return -evaluate_node(operand)
        case BinaryOp(op=Operator.ADD, left=left, right=right):
            return evaluate_node(left) + evaluate_node(right)
        case BinaryOp(op=Operator.SUB, left=left, right=right):
            return evaluate_node(left) - evaluate_node(right)
        case BinaryOp(op=Operator.MUL, left=left, right=right):
            return evaluate_node(left) * evaluate_node(right)
        case BinaryOp(op=Operator.DIV, left=left, right=right):
            divisor = evaluate_node(right)
            if divisor == 0:
                raise MalformedExpressionError("Division by zero")
            return evaluate_node(left) / divisor
        case Call(function=Function.FLOOR, args=(arg,)):
            return float(math.floor(evaluate_node(arg)))
        case Call(function=Function.CEIL, args=(arg,)):
            return float(math.ceil(evaluate_node(arg)))
        case Call(function=Function.ROUND, args=(arg,)):
            return float(math.floor(evaluate_node(arg) + 0.5))
        case Call(function=Function.MAX, args=args):
            return max(evaluate_node(arg) for arg in args)
        case Call(function=Function.MIN, args=args):
            return min(evaluate_node(arg) for arg in args)
    raise MalformedExpressionError(f"Cannot evaluate node {node!r}")


def evaluate(expression: str) -> float:
    """Evaluate an arithmetic expression.

    Args:
        expression: Arithmetic expression.

    Returns:
        Numeric result.

    Raises:
        MalformedExpressionError: If the expression is not in the grammar,
            exceeds the size limits, divides by zero or overflows.

    Example:
        >>> evaluate("floor(7/2)")
        3.0
    """
    try:
        return evaluate_node(parse(tokenize(expression), expression=expression))
    except MalformedExpressionError as exc:
        if "expression" not in exc.details:
            raise MalformedExpressionError(exc.message, expression=expression, details=dict(exc.details)) from exc
        raise


__all__ = [
    "TokenType",
    "Operator",
    "Function",
    "Token",
    "Number",
    "UnaryOp",
    "BinaryOp",
    "Call",
    "Node",
    "tokenize",
    "parse",
    "evaluate_node",
    "evaluate",
]
