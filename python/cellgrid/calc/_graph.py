"""Dependency graph for formula cells with topological ordering."""

from __future__ import annotations

from collections import deque
from typing import TYPE_CHECKING

from cellgrid.calc._errors import CircularReference
from cellgrid.calc._parser import formula_body, parse_references

if TYPE_CHECKING:
    from cellgrid._cell import CellPosition
    from cellgrid._store import CellStore


class DependencyGraph:
    """Tracks formula cell dependencies for evaluation ordering.

    Formula cells are kept in registration order, which breaks ties in
    :meth:`topological_order`.
    """

    __slots__ = ("dependencies", "dependents", "formulas")

    def __init__(self) -> None:
        # cell -> cells it reads from
        self.dependencies: dict[CellPosition, set[CellPosition]] = {}
        # cell -> cells that read from it (reverse edges)
        self.dependents: dict[CellPosition, set[CellPosition]] = {}
        # cell -> formula string
        self.formulas: dict[CellPosition, str] = {}

    def add_formula(self, position: CellPosition, formula: str) -> None:
        """Register a formula cell and its dependencies."""
        self.remove_formula(position)
        self.formulas[position] = formula
        refs = parse_references(formula_body(formula))
        self.dependencies[position] = set(refs)
        for ref in refs:
            self.dependents.setdefault(ref, set()).add(position)

    def remove_formula(self, position: CellPosition) -> None:
        if position not in self.formulas:
            return
        del self.formulas[position]
        for ref in self.dependencies.pop(position, set()):
            users = self.dependents.get(ref)
            if users is not None:
                users.discard(position)
                if not users:
                    del self.dependents[ref]

    def topological_order(self, cells: set[CellPosition] | None = None) -> list[CellPosition]:
        """Return formula cells in evaluation order (Kahn's algorithm).

        Restricted to *cells* when given. Raises CircularReference if the
        considered cells contain a cycle.
        """
        formula_cells = [c for c in self.formulas if cells is None or c in cells]
        if not formula_cells:
            return []
        members = set(formula_cells)

        # Only count deps that are themselves considered formula cells
        in_degree: dict[CellPosition, int] = {
            cell: len(self.dependencies.get(cell, set()) & members) for cell in formula_cells
        }
        rank = {cell: i for i, cell in enumerate(formula_cells)}

        queue: deque[CellPosition] = deque(c for c in formula_cells if in_degree[c] == 0)
        order: list[CellPosition] = []
        while queue:
            cell = queue.popleft()
            order.append(cell)
            ready = []
            for dep in self.dependents.get(cell, set()):
                if dep in members:
                    in_degree[dep] -= 1
                    if in_degree[dep] == 0:
                        ready.append(dep)
            queue.extend(sorted(ready, key=rank.__getitem__))

        if len(order) != len(formula_cells):
            missing = [c for c in formula_cells if in_degree[c] > 0]
            names = ", ".join(c.to_a1() for c in missing)
            raise CircularReference(
                f"Circular reference detected involving: {names}", cells=missing,
            )

        return order

    @classmethod
    def from_store(cls, store: CellStore) -> DependencyGraph:
        """Build a dependency graph from every formula cell in *store*."""
        graph = cls()
        for cell in store.formula_cells():
            graph.add_formula(cell.position, cell.raw_value)
        return graph
