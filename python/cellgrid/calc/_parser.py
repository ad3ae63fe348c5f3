"""Formula parser: reference extraction, tokenizer and recursive descent parser.

Formula bodies are four-operator arithmetic over numbers and cell
references::

    expr    := term (("+" | "-") term)*
    term    := unary (("*" | "/") unary)*
    unary   := ("+" | "-") unary | primary
    primary := NUMBER | REF | "(" expr ")"

Unary minus is decided by position in the grammar, so ``3-4-5`` is two
subtractions and ``A1*-2`` multiplies by a negated literal.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Union

from cellgrid._cell import CellPosition
from cellgrid._utils import column_label_to_index
from cellgrid.calc._errors import InvalidExpression

# ---------------------------------------------------------------------------
# Regex patterns
# ---------------------------------------------------------------------------

# Plain letters+digits scan, used when a body does not tokenize
_CELL_REF_RE = re.compile(r"([A-Z]+)([0-9]+)", re.IGNORECASE)

# No exponent suffix: letters+digits after a number always scan as a reference
_NUMBER_RE = re.compile(r"[0-9]+\.?[0-9]*|\.[0-9]+")
_REF_RE = re.compile(r"([A-Za-z]+)([0-9]+)")
_WHITESPACE_RE = re.compile(r"\s+")

OPERATORS = "+-*/"

# Deepest parenthesis nesting the parser accepts
MAX_NESTING = 100


# ---------------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Token:
    kind: str  # "number", "ref", "op", "(", ")"
    text: str
    pos: int
    value: float | CellPosition | None = None


def _make_reference(label: str, digits: str) -> CellPosition | None:
    """Position for ``label`` + ``digits`` (1-based row), None for row 0."""
    row = int(digits) - 1
    if row < 0:
        return None
    return CellPosition(column_label_to_index(label.upper()), row)


def tokenize(body: str) -> list[Token]:
    """Split a formula body (no leading ``=``) into tokens.

    Whitespace is removed before scanning, so ``"1 2"`` reads as ``12``.
    """
    body = _WHITESPACE_RE.sub("", body)
    tokens: list[Token] = []
    i = 0
    length = len(body)
    while i < length:
        ch = body[i]
        if ch in OPERATORS:
            tokens.append(Token("op", ch, i))
            i += 1
            continue
        if ch in "()":
            tokens.append(Token(ch, ch, i))
            i += 1
            continue
        m = _NUMBER_RE.match(body, i)
        if m:
            tokens.append(Token("number", m.group(), i, float(m.group())))
            i = m.end()
            continue
        m = _REF_RE.match(body, i)
        if m:
            pos = _make_reference(m.group(1), m.group(2))
            if pos is None:
                raise InvalidExpression(f"Invalid cell reference {m.group()!r}")
            tokens.append(Token("ref", m.group().upper(), i, pos))
            i = m.end()
            continue
        raise InvalidExpression(f"Unexpected character {ch!r} at position {i}")
    return tokens


# ---------------------------------------------------------------------------
# Expression tree
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Number:
    value: float


@dataclass(frozen=True)
class Reference:
    position: CellPosition


@dataclass(frozen=True)
class UnaryOp:
    op: str
    operand: Node


@dataclass(frozen=True)
class BinaryOp:
    op: str
    left: Node
    right: Node


Node = Union[Number, Reference, UnaryOp, BinaryOp]


class _Parser:
    def __init__(self, tokens: list[Token]) -> None:
        self._tokens = tokens
        self._i = 0
        self._depth = 0

    def _peek(self) -> Token | None:
        if self._i < len(self._tokens):
            return self._tokens[self._i]
        return None

    def _next(self) -> Token:
        tok = self._peek()
        if tok is None:
            raise InvalidExpression("Unexpected end of expression")
        self._i += 1
        return tok

    def parse(self) -> Node:
        if not self._tokens:
            raise InvalidExpression("Empty expression")
        node = self._expr()
        tok = self._peek()
        if tok is not None:
            if tok.kind == ")":
                raise InvalidExpression(f"Unbalanced ')' at position {tok.pos}")
            raise InvalidExpression(f"Unexpected {tok.text!r} at position {tok.pos}")
        return node

    def _expr(self) -> Node:
        node = self._term()
        while True:
            tok = self._peek()
            if tok is None or tok.kind != "op" or tok.text not in "+-":
                return node
            self._i += 1
            node = BinaryOp(tok.text, node, self._term())

    def _term(self) -> Node:
        node = self._unary()
        while True:
            tok = self._peek()
            if tok is None or tok.kind != "op" or tok.text not in "*/":
                return node
            self._i += 1
            node = BinaryOp(tok.text, node, self._unary())

    def _unary(self) -> Node:
        # Prefix signs are collected in a loop, then wrapped innermost first
        signs: list[str] = []
        tok = self._peek()
        while tok is not None and tok.kind == "op" and tok.text in "+-":
            signs.append(tok.text)
            self._i += 1
            tok = self._peek()
        node = self._primary()
        for sign in reversed(signs):
            node = UnaryOp(sign, node)
        return node

    def _primary(self) -> Node:
        tok = self._next()
        if tok.kind == "number":
            return Number(tok.value)  # type: ignore[arg-type]
        if tok.kind == "ref":
            return Reference(tok.value)  # type: ignore[arg-type]
        if tok.kind == "(":
            if self._depth >= MAX_NESTING:
                raise InvalidExpression(
                    f"Parentheses nested deeper than {MAX_NESTING} at position {tok.pos}"
                )
            self._depth += 1
            node = self._expr()
            self._depth -= 1
            close = self._peek()
            if close is None or close.kind != ")":
                raise InvalidExpression(f"Unbalanced '(' at position {tok.pos}")
            self._i += 1
            return node
        raise InvalidExpression(f"Unexpected {tok.text!r} at position {tok.pos}")


def parse(body: str) -> Node:
    """Parse a formula body into an expression tree.

    Raises InvalidExpression for empty bodies, unknown characters,
    unbalanced parentheses and dangling operators.
    """
    return _Parser(tokenize(body)).parse()


# ---------------------------------------------------------------------------
# Reference extraction
# ---------------------------------------------------------------------------


def parse_references(body: str) -> list[CellPosition]:
    """All cell references in a formula body, first occurrence order, no duplicates.

    Bodies that fail to tokenize still yield the references a plain
    letters+digits scan finds, so broken formulas keep their edges for
    cycle detection.
    """
    try:
        found = [t.value for t in tokenize(body) if t.kind == "ref"]
    except InvalidExpression:
        found = [
            _make_reference(m.group(1), m.group(2))
            for m in _CELL_REF_RE.finditer(body)
        ]
    refs: list[CellPosition] = []
    seen: set[CellPosition] = set()
    for pos in found:
        if pos is not None and pos not in seen:
            refs.append(pos)  # type: ignore[arg-type]
            seen.add(pos)  # type: ignore[arg-type]
    return refs


def formula_body(formula: str) -> str:
    """Strip the leading ``=`` if present."""
    return formula[1:] if formula.startswith("=") else formula
