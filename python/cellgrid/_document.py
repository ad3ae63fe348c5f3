"""Document: a cell store plus the UI state persisted alongside it.

The document is the persisted unit. Every edit goes through
:meth:`Document.update_cell`, which writes the raw value and then runs a
full recalculation before anyone can read the store again.
"""

from __future__ import annotations

import json
import os
import threading
from typing import Any

from cellgrid._cell import CellPosition
from cellgrid._store import CellStore, PositionLike, to_position
from cellgrid._utils import index_to_column_label
from cellgrid.calc import RecalcResult, SheetEvaluator

DEFAULT_ROWS = 18
DEFAULT_COLS = 15


def _optional_position(data: Any) -> CellPosition | None:
    return None if data is None else CellPosition.from_dict(data)


class Document:
    """A spreadsheet session: cells, selection, editing cursor and grid size.

    Selection, editing cursor and grid size are carried for the UI and
    round-tripped through snapshots; the engine does not interpret them.
    """

    def __init__(self, rows: int = DEFAULT_ROWS, cols: int = DEFAULT_COLS) -> None:
        if rows < 1 or cols < 1:
            raise ValueError(f"Grid must have at least one row and column, got {rows}x{cols}")
        self.cells = CellStore()
        self.selected_cell: CellPosition | None = None
        self.editing_cell: CellPosition | None = None
        self.rows = rows
        self.cols = cols
        self._evaluator = SheetEvaluator()
        self._lock = threading.RLock()
        self.last_result: RecalcResult | None = None

    # ------------------------------------------------------------------
    # Edits
    # ------------------------------------------------------------------

    def update_cell(self, key: PositionLike, value: Any) -> RecalcResult:
        """Set a cell's raw value (``""`` deletes it) and recalculate everything."""
        with self._lock:
            self.cells.set_value(key, value)
            self.editing_cell = None
            return self.recalculate()

    def recalculate(self) -> RecalcResult:
        with self._lock:
            self._evaluator.load(self.cells)
            self.last_result = self._evaluator.calculate()
            return self.last_result

    def __getitem__(self, key: PositionLike) -> str:
        """``doc["A1"]`` -> display text, ``""`` for an empty cell."""
        with self._lock:
            cell = self.cells.get(key)
            return "" if cell is None else cell.display_value

    def __setitem__(self, key: PositionLike, value: Any) -> None:
        self.update_cell(key, value)

    # ------------------------------------------------------------------
    # UI state
    # ------------------------------------------------------------------

    def select_cell(self, key: PositionLike) -> None:
        position = to_position(key)
        with self._lock:
            self.selected_cell = position
            self.editing_cell = None

    def start_editing(self, key: PositionLike) -> None:
        position = to_position(key)
        with self._lock:
            self.editing_cell = position

    def stop_editing(self) -> None:
        with self._lock:
            self.editing_cell = None

    def column_headers(self) -> list[str]:
        return [index_to_column_label(i) for i in range(self.cols)]

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Plain structure for storage, with the persisted field names."""
        with self._lock:
            return {
                "cells": self.cells.to_dict(),
                "selectedCell": self.selected_cell.to_dict() if self.selected_cell else None,
                "editingCell": self.editing_cell.to_dict() if self.editing_cell else None,
                "rows": self.rows,
                "cols": self.cols,
            }

    def load_state(self, data: dict[str, Any]) -> None:
        """Replace the whole document with a snapshot, verbatim.

        Display values are taken as stored; call :meth:`recalculate` to
        rebuild them.
        """
        if not isinstance(data, dict):
            raise ValueError(f"Invalid document snapshot: {type(data).__name__}")
        rows = data.get("rows", DEFAULT_ROWS)
        cols = data.get("cols", DEFAULT_COLS)
        if not isinstance(rows, int) or not isinstance(cols, int) or rows < 1 or cols < 1:
            raise ValueError(f"Invalid grid size: {rows!r}x{cols!r}")
        cells = CellStore.from_dict(data.get("cells", {}))
        selected = _optional_position(data.get("selectedCell"))
        editing = _optional_position(data.get("editingCell"))
        with self._lock:
            self.cells = cells
            self.selected_cell = selected
            self.editing_cell = editing
            self.rows = rows
            self.cols = cols
            self.last_result = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Document:
        doc = cls()
        doc.load_state(data)
        return doc

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_json(cls, text: str) -> Document:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid document JSON: {e}") from e
        return cls.from_dict(data)

    def save(self, filename: str | os.PathLike[str]) -> None:
        """Write the snapshot as JSON to *filename*."""
        with open(filename, "w", encoding="utf-8") as f:
            f.write(self.to_json())

    def __repr__(self) -> str:
        return f"<Document {self.rows}x{self.cols} cells={len(self.cells)}>"
