"""CalcEngine protocol and result dataclasses."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from cellgrid._cell import CellPosition
    from cellgrid._store import CellStore


@dataclass(frozen=True)
class CellDelta:
    """A single formula cell's display change from recalculation."""

    position: CellPosition
    old_value: str
    new_value: str
    formula: str  # the formula that produced new_value
    error: str | None = None


@dataclass(frozen=True)
class RecalcResult:
    """Outcome of one full recalculation pass."""

    deltas: tuple[CellDelta, ...]  # cells whose display value changed
    order: tuple[CellPosition, ...] = ()  # evaluation order of non-circular cells
    circular_cells: tuple[CellPosition, ...] = ()
    error_cells: tuple[CellPosition, ...] = ()
    total_formula_cells: int = 0

    @property
    def changed_cells(self) -> list[CellPosition]:
        return [d.position for d in self.deltas]

    @property
    def ok(self) -> bool:
        """True when no formula cell ended with an error sentinel."""
        return not self.circular_cells and not self.error_cells


@runtime_checkable
class CalcEngine(Protocol):
    """Protocol for formula recalculation engines."""

    def load(self, store: CellStore) -> None:
        """Bind the cell store the engine reads and writes."""
        ...

    def calculate(self) -> RecalcResult:
        """Recompute every formula cell of the loaded store."""
        ...

    def recalculate(self, store: CellStore) -> CellStore:
        """Load *store*, run a full pass and return the same store."""
        ...
