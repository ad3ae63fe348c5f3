"""Formula evaluation and the recalculation pass.

Formulas are parsed into an expression tree (see ``_parser``) and evaluated
in one pass over the tree; cell references are resolved to numbers as the
tree is walked. A recalculation pass rewrites the display value of every
formula cell in the store:

1. cells whose references lead back onto their own path get ``#CIRC!``,
2. the rest are evaluated in dependency order, so a formula always reads
   values already computed in the same pass,
3. any evaluation failure leaves ``#ERROR!`` plus the message on that cell
   and the pass moves on.
"""

from __future__ import annotations

import logging
import math
import re
from decimal import Decimal
from typing import TYPE_CHECKING, Callable

from cellgrid.calc._cycles import has_cycle
from cellgrid.calc._errors import (
    CIRC_SENTINEL,
    ERROR_SENTINEL,
    DivisionByZero,
    FormulaError,
    InvalidExpression,
    MalformedFormula,
)
from cellgrid.calc._graph import DependencyGraph
from cellgrid.calc._parser import BinaryOp, Node, Number, Reference, UnaryOp, parse
from cellgrid.calc._protocol import CellDelta, RecalcResult

if TYPE_CHECKING:
    from cellgrid._cell import CellPosition
    from cellgrid._store import CellStore

logger = logging.getLogger(__name__)

CIRCULAR_MESSAGE = "Circular reference detected"

Resolver = Callable[["CellPosition"], float]

# ---------------------------------------------------------------------------
# Numbers <-> display text
# ---------------------------------------------------------------------------

_NUMERIC_PREFIX_RE = re.compile(
    r"[+-]?(?:Infinity|(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?)"
)


def parse_numeric(text: str) -> float:
    """Longest leading number in *text*, or 0.0 when there is none.

    ``"12abc"`` reads as 12 and ``"#ERROR!"`` as 0, which is how cell
    contents are coerced when a formula references them.
    """
    m = _NUMERIC_PREFIX_RE.match(text.lstrip())
    if not m:
        return 0.0
    token = m.group()
    if token.endswith("Infinity"):
        return -math.inf if token.startswith("-") else math.inf
    return float(token)


def format_number(value: float) -> str:
    """Shortest round-trip decimal text for *value*.

    Digits come from ``repr``; layout switches to exponent form for
    magnitudes ``>= 1e21`` or ``< 1e-6`` (``1e+21``, ``1e-7``). Integral
    values carry no fractional part.
    """
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value == 0:
        return "0"
    sign = "-" if value < 0 else ""
    _, digit_tuple, exponent = Decimal(repr(abs(value))).normalize().as_tuple()
    digits = "".join(str(d) for d in digit_tuple)
    k = len(digits)
    n = k + exponent  # position of the decimal point relative to the digits

    if k <= n <= 21:
        text = digits + "0" * (n - k)
    elif 0 < n <= 21:
        text = f"{digits[:n]}.{digits[n:]}"
    elif -6 < n <= 0:
        text = "0." + "0" * (-n) + digits
    else:
        e = n - 1
        mantissa = digits[0] + (f".{digits[1:]}" if k > 1 else "")
        text = f"{mantissa}e{'+' if e >= 0 else '-'}{abs(e)}"
    return sign + text


# ---------------------------------------------------------------------------
# Expression evaluation
# ---------------------------------------------------------------------------


def cell_value(store: CellStore, position: CellPosition) -> float:
    """Numeric value a formula sees for the cell at *position*.

    Empty cells are 0, literal cells are their raw text read as a number,
    formula cells are their current display text read as a number.
    """
    cell = store.get(position)
    if cell is None:
        return 0.0
    if cell.is_formula:
        return parse_numeric(cell.display_value)
    return parse_numeric(cell.raw_value)


def _binary_op(left: float, op: str, right: float) -> float:
    if op == "+":
        return left + right
    if op == "-":
        return left - right
    if op == "*":
        return left * right
    if op == "/":
        if right == 0:
            raise DivisionByZero()
        return left / right
    raise InvalidExpression(f"Unknown operator: {op}")


def evaluate_tree(node: Node, resolve: Resolver) -> float:
    """Evaluate a parsed expression tree.

    Walks the tree post-order with an explicit stack, left operand before
    right, so long operator chains do not grow the Python call stack.
    """
    values: list[float] = []
    stack: list[tuple[Node, bool]] = [(node, False)]
    while stack:
        current, operands_done = stack.pop()
        if isinstance(current, Number):
            values.append(current.value)
        elif isinstance(current, Reference):
            values.append(float(resolve(current.position)))
        elif isinstance(current, UnaryOp):
            if operands_done:
                value = values.pop()
                values.append(-value if current.op == "-" else value)
            else:
                stack.append((current, True))
                stack.append((current.operand, False))
        elif isinstance(current, BinaryOp):
            if operands_done:
                right = values.pop()
                left = values.pop()
                values.append(_binary_op(left, current.op, right))
            else:
                stack.append((current, True))
                stack.append((current.right, False))
                stack.append((current.left, False))
        else:
            raise InvalidExpression(f"Unknown expression node: {current!r}")
    return values.pop()


def evaluate_expression(body: str, resolve: Resolver) -> float:
    """Evaluate a formula body (leading ``=`` already removed).

    A result that is not a number (``inf - inf``) is an InvalidExpression.
    """
    result = evaluate_tree(parse(body), resolve)
    if math.isnan(result):
        raise InvalidExpression()
    return result


def evaluate(formula: str, store: CellStore) -> float:
    """Evaluate *formula* (starting with ``=``) against *store*.

    Raises MalformedFormula, InvalidExpression or DivisionByZero.
    """
    if not formula.startswith("="):
        raise MalformedFormula()
    return evaluate_expression(formula[1:], lambda pos: cell_value(store, pos))


# ---------------------------------------------------------------------------
# Recalculation
# ---------------------------------------------------------------------------


class SheetEvaluator:
    """Recalculates every formula cell of a CellStore.

    Usage::

        evaluator = SheetEvaluator()
        evaluator.load(store)
        result = evaluator.calculate()
        print(result.deltas)
    """

    def __init__(self) -> None:
        self._store: CellStore | None = None
        self._graph = DependencyGraph()

    @property
    def graph(self) -> DependencyGraph:
        """Dependency graph built by the most recent pass."""
        return self._graph

    def load(self, store: CellStore) -> None:
        """Bind *store*; the graph is rebuilt from it on every pass."""
        self._store = store

    def calculate(self) -> RecalcResult:
        """Run one full pass over the loaded store, mutating it in place."""
        if self._store is None:
            raise RuntimeError("Call load() before calculate()")
        store = self._store

        formula_cells = store.formula_cells()
        self._graph = DependencyGraph.from_store(store)
        old_values = {cell.position: cell.display_value for cell in formula_cells}

        circular: list[CellPosition] = []
        pending: set[CellPosition] = set()
        for cell in formula_cells:
            if has_cycle(cell.raw_value, cell.position, store):
                logger.debug("Circular reference at %s: %r", cell.position, cell.raw_value)
                cell.display_value = CIRC_SENTINEL
                cell.error = CIRCULAR_MESSAGE
                circular.append(cell.position)
            else:
                pending.add(cell.position)

        order = self._graph.topological_order(pending)
        errors: list[CellPosition] = []
        for position in order:
            cell = store[position]
            try:
                value = evaluate(cell.raw_value, store)
            except FormulaError as e:
                logger.debug("Cannot evaluate formula %r in %s: %s", cell.raw_value, position, e)
                cell.display_value = ERROR_SENTINEL
                cell.error = str(e)
                errors.append(position)
            else:
                cell.display_value = format_number(value)
                cell.error = None

        deltas = tuple(
            CellDelta(
                position=cell.position,
                old_value=old_values[cell.position],
                new_value=cell.display_value,
                formula=cell.raw_value,
                error=cell.error,
            )
            for cell in formula_cells
            if cell.display_value != old_values[cell.position]
        )

        return RecalcResult(
            deltas=deltas,
            order=tuple(order),
            circular_cells=tuple(circular),
            error_cells=tuple(errors),
            total_formula_cells=len(formula_cells),
        )

    def recalculate(self, store: CellStore) -> CellStore:
        self.load(store)
        self.calculate()
        return store


def recalculate(store: CellStore) -> CellStore:
    """Recompute every formula cell in *store* in place and return it."""
    return SheetEvaluator().recalculate(store)
