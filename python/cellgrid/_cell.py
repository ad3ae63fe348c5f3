"""Cell positions and cell data."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from cellgrid._utils import a1_to_colrow, colrow_to_a1

FORMULA_MARKER = "="


@dataclass(frozen=True, order=True)
class CellPosition:
    """Zero-based grid coordinate. Equal col/row means the same cell."""

    col: int
    row: int

    def __post_init__(self) -> None:
        if self.col < 0 or self.row < 0:
            raise ValueError(f"Cell position must be non-negative, got ({self.col}, {self.row})")

    @property
    def key(self) -> str:
        return cell_key(self)

    @classmethod
    def from_key(cls, key: str) -> CellPosition:
        """Inverse of :func:`cell_key`."""
        col, sep, row = key.partition("-")
        if not sep or not col.isdigit() or not row.isdigit():
            raise ValueError(f"Invalid cell key: {key!r}")
        return cls(int(col), int(row))

    @classmethod
    def from_a1(cls, ref: str) -> CellPosition:
        col, row = a1_to_colrow(ref)
        return cls(col, row)

    def to_a1(self) -> str:
        return colrow_to_a1(self.col, self.row)

    def to_dict(self) -> dict[str, int]:
        return {"col": self.col, "row": self.row}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CellPosition:
        try:
            col, row = data["col"], data["row"]
        except (KeyError, TypeError) as e:
            raise ValueError(f"Invalid cell position: {data!r}") from e
        if not isinstance(col, int) or not isinstance(row, int):
            raise ValueError(f"Invalid cell position: {data!r}")
        return cls(col, row)

    def __str__(self) -> str:
        return self.to_a1()


def cell_key(position: CellPosition) -> str:
    """Composite store key for *position*, e.g. ``"2-0"`` for C1."""
    return f"{position.col}-{position.row}"


@dataclass
class CellData:
    """What the user typed plus what the grid shows.

    ``display_value`` equals ``raw_value`` for literal cells and is rewritten
    by every recalculation pass for formula cells. ``error`` holds the
    message behind an error sentinel.
    """

    raw_value: str
    display_value: str
    position: CellPosition
    error: str | None = field(default=None)

    @property
    def is_formula(self) -> bool:
        return self.raw_value.startswith(FORMULA_MARKER)

    def to_dict(self) -> dict[str, Any]:
        """Serialize with the persisted field names."""
        data: dict[str, Any] = {
            "rawValue": self.raw_value,
            "displayValue": self.display_value,
            "position": self.position.to_dict(),
        }
        if self.error is not None:
            data["error"] = self.error
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CellData:
        if not isinstance(data, dict):
            raise ValueError(f"Invalid cell data: {data!r}")
        raw = data.get("rawValue")
        display = data.get("displayValue", raw)
        error = data.get("error")
        if not isinstance(raw, str) or not isinstance(display, str):
            raise ValueError(f"Invalid cell data: {data!r}")
        if error is not None and not isinstance(error, str):
            raise ValueError(f"Invalid cell error: {error!r}")
        return cls(
            raw_value=raw,
            display_value=display,
            position=CellPosition.from_dict(data.get("position")),
            error=error,
        )
