"""CellStore: the mapping of positions to cell data that the engine reads and writes."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any, Union

from cellgrid._cell import CellData, CellPosition, cell_key

PositionLike = Union[CellPosition, tuple[int, int], str]


def to_position(key: PositionLike) -> CellPosition:
    """Accept ``CellPosition``, zero-based ``(col, row)`` or ``"A1"``."""
    if isinstance(key, CellPosition):
        return key
    if isinstance(key, str):
        return CellPosition.from_a1(key)
    if isinstance(key, tuple) and len(key) == 2:
        return CellPosition(int(key[0]), int(key[1]))
    raise TypeError(f"Cannot interpret {key!r} as a cell position")


class CellStore:
    """Cell data keyed by ``"{col}-{row}"``, iterated in insertion order.

    A position without an entry is empty. Setting a cell to ``""`` removes
    its entry rather than storing an empty literal.
    """

    __slots__ = ("_cells",)

    def __init__(self, cells: dict[str, CellData] | None = None) -> None:
        self._cells: dict[str, CellData] = dict(cells) if cells else {}

    # ------------------------------------------------------------------
    # Cell access
    # ------------------------------------------------------------------

    def get(self, key: PositionLike) -> CellData | None:
        return self._cells.get(cell_key(to_position(key)))

    def __getitem__(self, key: PositionLike) -> CellData:
        """``store["A1"]`` -> CellData; ``KeyError`` for empty cells."""
        pos = to_position(key)
        try:
            return self._cells[cell_key(pos)]
        except KeyError:
            raise KeyError(f"Cell {pos.to_a1()} is empty") from None

    def __setitem__(self, key: PositionLike, value: Any) -> None:
        """``store["A1"] = "=B1*2"`` -- shorthand for :meth:`set_value`."""
        self.set_value(key, value)

    def __delitem__(self, key: PositionLike) -> None:
        del self._cells[cell_key(to_position(key))]

    def __contains__(self, key: object) -> bool:
        try:
            pos = to_position(key)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return False
        return cell_key(pos) in self._cells

    def set_value(self, key: PositionLike, value: Any) -> CellData | None:
        """Store what the user typed, overwriting any previous entry.

        Non-string values are stored as their ``str()``. Returns the new
        entry, or None when the cell was cleared.
        """
        pos = to_position(key)
        raw = value if isinstance(value, str) else str(value)
        k = cell_key(pos)
        if raw == "":
            self._cells.pop(k, None)
            return None
        data = CellData(raw_value=raw, display_value=raw, position=pos)
        self._cells[k] = data
        return data

    def clear(self) -> None:
        self._cells.clear()

    # ------------------------------------------------------------------
    # Iteration
    # ------------------------------------------------------------------

    def __iter__(self) -> Iterator[CellPosition]:
        return (data.position for data in list(self._cells.values()))

    def __len__(self) -> int:
        return len(self._cells)

    def items(self) -> Iterator[tuple[CellPosition, CellData]]:
        for data in list(self._cells.values()):
            yield data.position, data

    def formula_cells(self) -> list[CellData]:
        """Formula entries in store order."""
        return [data for data in self._cells.values() if data.is_formula]

    def copy(self) -> CellStore:
        """Deep-enough copy: cell data objects are duplicated."""
        return CellStore({
            k: CellData(d.raw_value, d.display_value, d.position, d.error)
            for k, d in self._cells.items()
        })

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, dict[str, Any]]:
        return {k: d.to_dict() for k, d in self._cells.items()}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CellStore:
        """Rebuild a store from :meth:`to_dict` output, verbatim."""
        if not isinstance(data, dict):
            raise ValueError(f"Invalid cell mapping: {type(data).__name__}")
        cells: dict[str, CellData] = {}
        for k, raw in data.items():
            cell = CellData.from_dict(raw)
            if CellPosition.from_key(k) != cell.position:
                raise ValueError(f"Cell key {k!r} does not match position {cell.position.to_dict()}")
            cells[k] = cell
        return cls(cells)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CellStore):
            return NotImplemented
        return self._cells == other._cells

    def __repr__(self) -> str:
        return f"<CellStore cells={len(self._cells)}>"
