"""Formula error kinds and the display sentinels they map to."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from cellgrid._cell import CellPosition

CIRC_SENTINEL = "#CIRC!"
ERROR_SENTINEL = "#ERROR!"


class FormulaError(Exception):
    """Base class for failures that end up as a cell's error sentinel."""

    sentinel = ERROR_SENTINEL


class MalformedFormula(FormulaError):
    """The formula text lacks the leading ``=`` marker."""

    def __init__(self, message: str = "Formula must start with =") -> None:
        super().__init__(message)


class DivisionByZero(FormulaError):
    def __init__(self, message: str = "Division by zero") -> None:
        super().__init__(message)


class InvalidExpression(FormulaError):
    """The body does not reduce to a single number."""

    def __init__(self, message: str = "Invalid expression") -> None:
        super().__init__(message)


class CircularReference(FormulaError):
    """A formula depends, directly or transitively, on itself.

    Raised by the dependency graph and reported by the cycle detector;
    never raised by expression evaluation.
    """

    sentinel = CIRC_SENTINEL

    def __init__(
        self,
        message: str = "Circular reference detected",
        cells: list[CellPosition] | None = None,
    ) -> None:
        super().__init__(message)
        self.cells = list(cells) if cells else []
