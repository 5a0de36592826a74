"""
Template expression language.

The text between ``<%`` and ``%>`` is a single expression in a small,
closed language.  Only the functions handed to ``evaluate`` can be called,
so a template can compute values but cannot reach anything else.

Grammar::

    expression  := conditional
    conditional := or_expr ( "?" expression ":" expression )?
    or_expr     := and_expr ( "||" and_expr )*
    and_expr    := equality ( "&&" equality )*
    equality    := additive ( ("==" | "!=" | "===" | "!==") additive )*
    additive    := unary ( "+" unary )*
    unary       := "!" unary | primary
    primary     := STRING | NUMBER | TEMPLATE | "true" | "false" | "null"
                 | NAME "(" [ expression ( "," expression )* ] ")"
                 | "(" expression ")"

Strings are quoted with ``'`` or ``"``; backtick strings interpolate
``${ expression }``.  ``&&``, ``||`` and ``?:`` short-circuit.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, Union

from shapes.core.errors import ExpressionError, ExpressionSyntaxError

Value = Union[str, int, float, bool, None]
Function = Callable[..., Value]

_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "0": "\0", "\\": "\\", "'": "'", '"': '"', "`": "`", "$": "$"}
_OPERATORS = ("===", "!==", "==", "!=", "&&", "||", "+", "!", "?", ":", "(", ")", ",")
_KEYWORDS = {"true": True, "false": False, "null": None}
_STRICT = {"===": "==", "!==": "!="}


# ── Tokens ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class Token:
    kind: str  # "string", "number", "template", "name", "op", "end"
    value: Any
    pos: int


def tokenize(source: str) -> list[Token]:
    """Split an expression into tokens.

    Raises:
        ExpressionSyntaxError: On an unknown character or unterminated string.
    """
    tokens: list[Token] = []
    i = 0
    n = len(source)

    while i < n:
        ch = source[i]

        if ch.isspace():
            i += 1
        elif ch in "'\"":
            start = i
            text, i = _read_quoted(source, i)
            tokens.append(Token("string", text, start))
        elif ch == "`":
            start = i
            parts, i = _read_template(source, i)
            tokens.append(Token("template", parts, start))
        elif ch.isdigit() or (ch == "." and i + 1 < n and source[i + 1].isdigit()):
            start = i
            while i < n and (source[i].isdigit() or source[i] == "."):
                i += 1
            literal = source[start:i]
            try:
                number: int | float = float(literal) if "." in literal else int(literal)
            except ValueError:
                raise ExpressionSyntaxError(f"Invalid number '{literal}' at {start}") from None
            tokens.append(Token("number", number, start))
        elif ch.isalpha() or ch == "_":
            start = i
            while i < n and (source[i].isalnum() or source[i] == "_"):
                i += 1
            tokens.append(Token("name", source[start:i], start))
        else:
            for op in _OPERATORS:
                if source.startswith(op, i):
                    tokens.append(Token("op", op, i))
                    i += len(op)
                    break
            else:
                raise ExpressionSyntaxError(f"Unexpected character '{ch}' at {i}")

    tokens.append(Token("end", None, n))
    return tokens


def _read_quoted(source: str, start: int) -> tuple[str, int]:
    quote = source[start]
    out: list[str] = []
    i = start + 1
    while i < len(source):
        ch = source[i]
        if ch == "\\" and i + 1 < len(source):
            out.append(_ESCAPES.get(source[i + 1], source[i + 1]))
            i += 2
        elif ch == quote:
            return "".join(out), i + 1
        else:
            out.append(ch)
            i += 1
    raise ExpressionSyntaxError(f"Unterminated string starting at {start}")


def _read_template(source: str, start: int) -> tuple[list[str | Node], int]:
    """Read a backtick string into literal text and parsed ``${}`` nodes."""
    parts: list[str | Node] = []
    text: list[str] = []
    i = start + 1
    while i < len(source):
        ch = source[i]
        if ch == "\\" and i + 1 < len(source):
            text.append(_ESCAPES.get(source[i + 1], source[i + 1]))
            i += 2
        elif ch == "`":
            if text:
                parts.append("".join(text))
            return parts, i + 1
        elif source.startswith("${", i):
            if text:
                parts.append("".join(text))
                text = []
            end = _find_closing_brace(source, i + 2)
            parts.append(parse(source[i + 2:end]))
            i = end + 1
        else:
            text.append(ch)
            i += 1
    raise ExpressionSyntaxError(f"Unterminated template string starting at {start}")


def _find_closing_brace(source: str, start: int) -> int:
    depth = 0
    i = start
    while i < len(source):
        ch = source[i]
        if ch in "'\"":
            _, i = _read_quoted(source, i)
            continue
        if ch == "`":
            _, i = _read_template(source, i)
            continue
        if ch == "{":
            depth += 1
        elif ch == "}":
            if depth == 0:
                return i
            depth -= 1
        i += 1
    raise ExpressionSyntaxError(f"Unterminated '${{' at {start - 2}")


# ── Syntax tree ─────────────────────────────────────────────────


@dataclass(frozen=True)
class Literal:
    value: Value


@dataclass(frozen=True)
class Interpolation:
    parts: tuple[Union[str, "Node"], ...]


@dataclass(frozen=True)
class Call:
    name: str
    args: tuple["Node", ...]


@dataclass(frozen=True)
class Not:
    operand: "Node"


@dataclass(frozen=True)
class Binary:
    op: str
    left: "Node"
    right: "Node"


@dataclass(frozen=True)
class Conditional:
    test: "Node"
    then: "Node"
    otherwise: "Node"


Node = Union[Literal, Interpolation, Call, Not, Binary, Conditional]


class _Parser:
    def __init__(self, tokens: list[Token]) -> None:
        self.tokens = tokens
        self.index = 0

    @property
    def current(self) -> Token:
        return self.tokens[self.index]

    def advance(self) -> Token:
        token = self.tokens[self.index]
        self.index += 1
        return token

    def accept(self, *ops: str) -> str | None:
        token = self.current
        if token.kind == "op" and token.value in ops:
            self.index += 1
            return token.value
        return None

    def expect(self, op: str) -> None:
        if self.accept(op) is None:
            raise self.error(f"expected '{op}'")

    def error(self, message: str) -> ExpressionSyntaxError:
        token = self.current
        found = "end of expression" if token.kind == "end" else repr(token.value)
        return ExpressionSyntaxError(f"Syntax error at {token.pos}: {message}, found {found}")

    def parse(self) -> Node:
        if self.current.kind == "end":
            raise self.error("expected an expression")
        node = self.expression()
        if self.current.kind != "end":
            raise self.error("unexpected trailing input")
        return node

    def expression(self) -> Node:
        test = self.or_expr()
        if self.accept("?"):
            then = self.expression()
            self.expect(":")
            otherwise = self.expression()
            return Conditional(test, then, otherwise)
        return test

    def or_expr(self) -> Node:
        node = self.and_expr()
        while self.accept("||"):
            node = Binary("||", node, self.and_expr())
        return node

    def and_expr(self) -> Node:
        node = self.equality()
        while self.accept("&&"):
            node = Binary("&&", node, self.equality())
        return node

    def equality(self) -> Node:
        node = self.additive()
        while True:
            op = self.accept("===", "!==", "==", "!=")
            if op is None:
                return node
            node = Binary(_STRICT.get(op, op), node, self.additive())

    def additive(self) -> Node:
        node = self.unary()
        while self.accept("+"):
            node = Binary("+", node, self.unary())
        return node

    def unary(self) -> Node:
        if self.accept("!"):
            return Not(self.unary())
        return self.primary()

    def primary(self) -> Node:
        token = self.current
        if token.kind in ("string", "number"):
            self.advance()
            return Literal(token.value)
        if token.kind == "template":
            self.advance()
            return Interpolation(tuple(token.value))
        if token.kind == "name":
            self.advance()
            if token.value in _KEYWORDS:
                return Literal(_KEYWORDS[token.value])
            if self.accept("(") is None:
                raise ExpressionSyntaxError(
                    f"Unknown name '{token.value}' at {token.pos}; only function calls are allowed"
                )
            args: list[Node] = []
            if self.accept(")") is None:
                args.append(self.expression())
                while self.accept(","):
                    args.append(self.expression())
                self.expect(")")
            return Call(token.value, tuple(args))
        if self.accept("("):
            node = self.expression()
            self.expect(")")
            return node
        raise self.error("expected a value")


def parse(source: str) -> Node:
    """Parse an expression into a syntax tree.

    Raises:
        ExpressionSyntaxError: If the source is not a single well-formed
            expression.
    """
    return _Parser(tokenize(source)).parse()


# ── Evaluation ──────────────────────────────────────────────────


def evaluate(source: str | Node, functions: Mapping[str, Function]) -> Value:
    """Evaluate an expression.

    Args:
        source: Expression text, or an already parsed node.
        functions: The only callables the expression may use, by name.

    Raises:
        ExpressionSyntaxError: If the source does not parse.
        ExpressionError: On a call to a function not in ``functions``.
        Anything raised by the functions themselves.
    """
    node = parse(source) if isinstance(source, str) else source
    return _eval(node, functions)


def _eval(node: Node, functions: Mapping[str, Function]) -> Value:
    if isinstance(node, Literal):
        return node.value

    if isinstance(node, Interpolation):
        return "".join(
            part if isinstance(part, str) else to_text(_eval(part, functions))
            for part in node.parts
        )

    if isinstance(node, Call):
        fn = functions.get(node.name)
        if fn is None:
            available = ", ".join(sorted(functions)) or "none"
            raise ExpressionError(f"Unknown function '{node.name}' (available: {available})")
        return fn(*(_eval(arg, functions) for arg in node.args))

    if isinstance(node, Not):
        return not truthy(_eval(node.operand, functions))

    if isinstance(node, Conditional):
        branch = node.then if truthy(_eval(node.test, functions)) else node.otherwise
        return _eval(branch, functions)

    left = _eval(node.left, functions)
    if node.op == "&&":
        return _eval(node.right, functions) if truthy(left) else left
    if node.op == "||":
        return left if truthy(left) else _eval(node.right, functions)

    right = _eval(node.right, functions)
    if node.op == "+":
        if _is_number(left) and _is_number(right):
            return left + right  # type: ignore[operator]
        return to_text(left) + to_text(right)
    if node.op == "==":
        return _equals(left, right)
    if node.op == "!=":
        return not _equals(left, right)

    raise ExpressionError(f"Unsupported operator '{node.op}'")


def _is_number(value: Value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _equals(left: Value, right: Value) -> bool:
    if _is_number(left) and _is_number(right):
        return left == right
    return type(left) is type(right) and left == right


def truthy(value: Value) -> bool:
    """``None``, ``False``, ``0`` and ``""`` are false; everything else is true."""
    return bool(value)


def to_text(value: Value) -> str:
    """The string a value is spliced into a template as."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)
