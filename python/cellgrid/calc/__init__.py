"""cellgrid.calc - Formula evaluation engine for cellgrid stores."""

from cellgrid.calc._cycles import find_cycle, has_cycle
from cellgrid.calc._errors import (
    CIRC_SENTINEL,
    ERROR_SENTINEL,
    CircularReference,
    DivisionByZero,
    FormulaError,
    InvalidExpression,
    MalformedFormula,
)
from cellgrid.calc._evaluator import (
    SheetEvaluator,
    evaluate,
    evaluate_expression,
    format_number,
    parse_numeric,
    recalculate,
)
from cellgrid.calc._graph import DependencyGraph
from cellgrid.calc._parser import parse, parse_references, tokenize
from cellgrid.calc._protocol import CalcEngine, CellDelta, RecalcResult

__all__ = [
    "CIRC_SENTINEL",
    "CalcEngine",
    "CellDelta",
    "CircularReference",
    "DependencyGraph",
    "DivisionByZero",
    "ERROR_SENTINEL",
    "FormulaError",
    "InvalidExpression",
    "MalformedFormula",
    "RecalcResult",
    "SheetEvaluator",
    "evaluate",
    "evaluate_expression",
    "find_cycle",
    "format_number",
    "has_cycle",
    "parse",
    "parse_numeric",
    "parse_references",
    "recalculate",
    "tokenize",
]
