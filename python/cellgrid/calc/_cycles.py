"""Circular reference detection over the formula reference graph."""

from __future__ import annotations

from collections.abc import Iterator
from typing import TYPE_CHECKING

from cellgrid.calc._parser import formula_body, parse_references

if TYPE_CHECKING:
    from cellgrid._cell import CellPosition
    from cellgrid._store import CellStore


def find_cycle(
    formula: str, position: CellPosition, store: CellStore,
) -> list[CellPosition] | None:
    """Return the first reference cycle reachable from *position*, or None.

    *formula* stands in for the start cell's own content. Every other
    referenced cell is followed only if it exists and is a formula cell.
    The returned path starts at *position* and ends with the repeated cell,
    e.g. ``[A1, B1, A1]``, or ``[C1, A1, B1, A1]`` when C1 only leads
    into the cycle.

    Depth-first with an explicit stack: a cell is on the path from the
    moment it is entered until all of its references are explored, so only
    a return to a cell on the active path counts as a cycle. Diamonds
    (two routes to one cell) do not.
    """

    def refs_of(pos: CellPosition) -> Iterator[CellPosition]:
        if pos == position:
            return iter(parse_references(formula_body(formula)))
        cell = store.get(pos)
        if cell is None or not cell.is_formula:
            return iter(())
        return iter(parse_references(formula_body(cell.raw_value)))

    path: list[CellPosition] = [position]
    on_path: set[CellPosition] = {position}
    # Cells whose reachable subgraph is already known to be acyclic
    done: set[CellPosition] = set()
    stack: list[Iterator[CellPosition]] = [refs_of(position)]

    while stack:
        ref = next(stack[-1], None)
        if ref is None:
            stack.pop()
            finished = path.pop()
            on_path.discard(finished)
            done.add(finished)
            continue
        if ref in on_path:
            return path + [ref]
        if ref in done:
            continue
        if ref != position:
            cell = store.get(ref)
            if cell is None or not cell.is_formula:
                continue
        path.append(ref)
        on_path.add(ref)
        stack.append(refs_of(ref))

    return None


def has_cycle(formula: str, position: CellPosition, store: CellStore) -> bool:
    """True when evaluating *formula* at *position* would revisit a cell on its own path."""
    return find_cycle(formula, position, store) is not None
