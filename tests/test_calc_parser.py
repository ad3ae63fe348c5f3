"""Tests for cellgrid.calc tokenizer, parser and reference extraction."""

from __future__ import annotations

import pytest

from cellgrid import CellPosition
from cellgrid.calc._errors import InvalidExpression
from cellgrid.calc._parser import (
    MAX_NESTING,
    BinaryOp,
    Number,
    Reference,
    UnaryOp,
    formula_body,
    parse,
    parse_references,
    tokenize,
)

A1 = CellPosition(0, 0)
B1 = CellPosition(1, 0)
B2 = CellPosition(1, 1)
E1 = CellPosition(4, 0)


class TestTokenize:
    def test_kinds(self) -> None:
        tokens = tokenize("1 + A1*(B2)")
        assert [t.kind for t in tokens] == ["number", "op", "ref", "op", "(", "ref", ")"]

    def test_whitespace_ignored(self) -> None:
        assert [t.text for t in tokenize(" 1 +\t2 ")] == ["1", "+", "2"]

    def test_reference_values(self) -> None:
        tokens = tokenize("A1+b2")
        assert tokens[0].value == A1
        assert tokens[2].text == "B2"
        assert tokens[2].value == B2

    def test_number_forms(self) -> None:
        values = [t.value for t in tokenize("12+1.5+.25+3.") if t.kind == "number"]
        assert values == [12.0, 1.5, 0.25, 3.0]

    def test_letters_after_number_scan_as_reference(self) -> None:
        tokens = tokenize("2E1")
        assert [t.kind for t in tokens] == ["number", "ref"]
        assert tokens[1].value == E1

    @pytest.mark.parametrize("body", ["1&2", "A1:A5", "SUM", "1 % 2", "A0", "\u0663", "A\u0663"])
    def test_rejected(self, body: str) -> None:
        with pytest.raises(InvalidExpression):
            tokenize(body)


class TestParse:
    def test_left_associative_subtraction(self) -> None:
        assert parse("3-4-5") == BinaryOp(
            "-", BinaryOp("-", Number(3.0), Number(4.0)), Number(5.0),
        )

    def test_precedence(self) -> None:
        assert parse("1+2*3") == BinaryOp(
            "+", Number(1.0), BinaryOp("*", Number(2.0), Number(3.0)),
        )

    def test_parentheses(self) -> None:
        assert parse("(1+2)*3") == BinaryOp(
            "*", BinaryOp("+", Number(1.0), Number(2.0)), Number(3.0),
        )

    def test_unary_minus_after_operator(self) -> None:
        assert parse("A1*-2") == BinaryOp("*", Reference(A1), UnaryOp("-", Number(2.0)))

    def test_leading_unary(self) -> None:
        assert parse("-A1+B1") == BinaryOp("+", UnaryOp("-", Reference(A1)), Reference(B1))

    def test_bare_number(self) -> None:
        assert parse("42") == Number(42.0)

    def test_whitespace_removed_everywhere(self) -> None:
        assert parse("1 2") == Number(12.0)
        assert parse("A 1 + 1") == BinaryOp("+", Reference(A1), Number(1.0))

    @pytest.mark.parametrize(
        "body",
        ["", "   ", "(1+2", "1+2)", "1+", "*2", "()", "A1 B1", "1..2", "(1+2))", "2E1", "1e3"],
    )
    def test_invalid(self, body: str) -> None:
        with pytest.raises(InvalidExpression):
            parse(body)

    def test_unbalanced_message(self) -> None:
        with pytest.raises(InvalidExpression, match="Unbalanced"):
            parse("(1+2")

    def test_long_operator_chain(self) -> None:
        node = parse("+".join(["A1"] * 3000))
        assert isinstance(node, BinaryOp)
        assert node.right == Reference(A1)

    def test_long_sign_chain(self) -> None:
        node = parse("-" * 3000 + "1")
        assert isinstance(node, UnaryOp)

    def test_nesting_limit(self) -> None:
        depth = MAX_NESTING
        assert parse("(" * depth + "1" + ")" * depth) == Number(1.0)
        with pytest.raises(InvalidExpression, match="nested"):
            parse("(" * (depth + 1) + "1" + ")" * (depth + 1))

    def test_very_deep_nesting_is_invalid(self) -> None:
        with pytest.raises(InvalidExpression):
            parse("(" * 5000 + "1" + ")" * 5000)


class TestParseReferences:
    def test_order_and_dedupe(self) -> None:
        assert parse_references("A1+B2*A1") == [A1, B2]

    def test_no_references(self) -> None:
        assert parse_references("10+5") == []

    def test_exponent_form_is_a_reference(self) -> None:
        assert parse_references("1E5+B1") == [CellPosition(4, 4), B1]

    def test_broken_body_still_scanned(self) -> None:
        assert parse_references("A1&B1") == [A1, B1]

    def test_row_zero_skipped(self) -> None:
        assert parse_references("A0+B1") == [B1]

    def test_formula_body(self) -> None:
        assert formula_body("=A1") == "A1"
        assert formula_body("A1") == "A1"
