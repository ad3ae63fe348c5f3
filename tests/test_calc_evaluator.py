"""Tests for cellgrid.calc expression evaluation and number formatting."""

from __future__ import annotations

import math

import pytest

from cellgrid import CellPosition, CellStore
from cellgrid.calc import (
    DivisionByZero,
    FormulaError,
    InvalidExpression,
    MalformedFormula,
    evaluate,
    evaluate_expression,
    format_number,
    parse_numeric,
)


def _store(**cells: str) -> CellStore:
    store = CellStore()
    for ref, value in cells.items():
        store[ref] = value
    return store


class TestEvaluate:
    def test_cell_references(self) -> None:
        assert evaluate("=A1+B1", _store(A1="2", B1="3")) == 5

    @pytest.mark.parametrize(
        ("formula", "expected"),
        [
            ("=10+5*2", 20),
            ("=(10+5)*2", 30),
            ("=3-4-5", -6),
            ("=2*-3", -6),
            ("=-(2+3)", -5),
            ("=--2", 2),
            ("=8/2/2", 2),
            ("=((1+2)*(3+4))", 21),
            ("= 1 + 2 ", 3),
            ("=7", 7),
            ("=1.5*2", 3),
            ("=.5+1", 1.5),
            ("=10/4", 2.5),
            ("=0/5", 0),
        ],
    )
    def test_arithmetic(self, formula: str, expected: float) -> None:
        assert evaluate(formula, CellStore()) == expected

    def test_missing_reference_is_zero(self) -> None:
        assert evaluate("=A1+5", CellStore()) == 5

    def test_lowercase_references(self) -> None:
        assert evaluate("=a1*b1", _store(A1="2", B1="3")) == 6

    def test_negative_reference_operand(self) -> None:
        assert evaluate("=A1*-2", _store(A1="-4")) == 8

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("hello", 0), ("12abc", 12), (" 7", 7), ("-1.5", -1.5), ("1e2", 100)],
    )
    def test_literal_coercion(self, raw: str, expected: float) -> None:
        assert evaluate("=A1", _store(A1=raw)) == expected

    def test_formula_cell_uses_display_value(self) -> None:
        store = _store(A1="=1+1")
        store["A1"].display_value = "2"
        assert evaluate("=A1*3", store) == 6

    def test_formula_cell_with_sentinel_is_zero(self) -> None:
        store = _store(A1="=1/0")
        store["A1"].display_value = "#ERROR!"
        assert evaluate("=A1+4", store) == 4

    def test_formula_cell_infinity_display(self) -> None:
        store = _store(A1="=A2*10")
        store["A1"].display_value = "Infinity"
        assert math.isinf(evaluate("=A1", store))


class TestErrors:
    def test_division_by_zero(self) -> None:
        with pytest.raises(DivisionByZero, match="Division by zero"):
            evaluate("=A1/B1", _store(A1="4", B1="0"))

    def test_division_by_zero_expression(self) -> None:
        with pytest.raises(DivisionByZero):
            evaluate("=1/(2-2)", CellStore())

    def test_division_by_missing_cell(self) -> None:
        with pytest.raises(DivisionByZero):
            evaluate("=5/Z9", CellStore())

    def test_malformed_formula(self) -> None:
        with pytest.raises(MalformedFormula, match="Formula must start with ="):
            evaluate("A1+1", CellStore())

    @pytest.mark.parametrize("formula", ["=", "=1+", "=(1", "=1&2", "=A1:A5", "=SUM(A1)", "=2E1"])
    def test_invalid_expression(self, formula: str) -> None:
        with pytest.raises(InvalidExpression):
            evaluate(formula, CellStore())

    def test_not_a_number_result(self) -> None:
        with pytest.raises(InvalidExpression):
            evaluate("=A1*10-A1*10", _store(A1="1e308"))

    def test_common_base(self) -> None:
        for exc in (DivisionByZero, InvalidExpression, MalformedFormula):
            assert issubclass(exc, FormulaError)


class TestEvaluateExpression:
    def test_resolver_receives_positions(self) -> None:
        seen: list[CellPosition] = []

        def resolve(pos: CellPosition) -> float:
            seen.append(pos)
            return 21.0

        assert evaluate_expression("A1*2", resolve) == 42
        assert seen == [CellPosition(0, 0)]

    def test_overflow_is_infinite(self) -> None:
        assert evaluate_expression("A1*10", lambda pos: 1e308) == math.inf

    def test_long_chain(self) -> None:
        body = "+".join(["A1"] * 3000)
        assert evaluate_expression(body, lambda pos: 1.0) == 3000

    def test_long_chain_of_negations(self) -> None:
        assert evaluate_expression("-" * 3001 + "2", lambda pos: 0.0) == -2

    def test_left_operand_resolved_first(self) -> None:
        seen: list[CellPosition] = []

        def resolve(pos: CellPosition) -> float:
            seen.append(pos)
            return 1.0

        evaluate_expression("A1-B1*C1", resolve)
        assert seen == [CellPosition(0, 0), CellPosition(1, 0), CellPosition(2, 0)]


class TestFormatNumber:
    @pytest.mark.parametrize(
        ("value", "text"),
        [
            (5.0, "5"),
            (-5.0, "-5"),
            (100.0, "100"),
            (0.5, "0.5"),
            (1234.5, "1234.5"),
            (0.1 + 0.2, "0.30000000000000004"),
            (1 / 3, "0.3333333333333333"),
            (1e20, "100000000000000000000"),
            (1e21, "1e+21"),
            (2.5e25, "2.5e+25"),
            (0.000001, "0.000001"),
            (1e-7, "1e-7"),
            (1.5e-7, "1.5e-7"),
            (-0.0, "0"),
            (math.inf, "Infinity"),
            (-math.inf, "-Infinity"),
            (math.nan, "NaN"),
        ],
    )
    def test_format(self, value: float, text: str) -> None:
        assert format_number(value) == text

    def test_round_trips_through_parse(self) -> None:
        for value in (0.1 + 0.2, 1 / 3, 1e21, 1.5e-7, -123.456):
            assert parse_numeric(format_number(value)) == value


class TestParseNumeric:
    @pytest.mark.parametrize(
        ("text", "value"),
        [
            ("42", 42.0),
            ("  3.5x", 3.5),
            ("-2", -2.0),
            (".5", 0.5),
            ("1e3", 1000.0),
            ("1e", 1.0),
            ("abc", 0.0),
            ("", 0.0),
            ("#ERROR!", 0.0),
            ("#CIRC!", 0.0),
            ("NaN", 0.0),
        ],
    )
    def test_prefix(self, text: str, value: float) -> None:
        assert parse_numeric(text) == value

    def test_infinity(self) -> None:
        assert parse_numeric("Infinity") == math.inf
        assert parse_numeric("-Infinity") == -math.inf
