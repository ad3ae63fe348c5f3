"""Column label and A1 reference conversions (all indices zero-based)."""

from __future__ import annotations

import re

_A1_RE = re.compile(r"^([A-Z]+)([0-9]+)$", re.IGNORECASE)


def column_label_to_index(label: str) -> int:
    """Convert a column label to its zero-based index ("A" -> 0, "AA" -> 26).

    The label is read as a base-26 numeral with digits A=1 .. Z=26.
    Only upper-case labels are accepted; callers normalize case.
    """
    if not label:
        raise ValueError("Column label must not be empty")
    result = 0
    for ch in label:
        if not "A" <= ch <= "Z":
            raise ValueError(f"Invalid column label: {label!r}")
        result = result * 26 + (ord(ch) - 64)
    return result - 1


def index_to_column_label(index: int) -> str:
    """Convert a zero-based column index to its label (26 -> "AA")."""
    if index < 0:
        raise ValueError(f"Column index must be non-negative, got {index}")
    letters: list[str] = []
    while index >= 0:
        letters.append(chr(65 + index % 26))
        index = index // 26 - 1
    return "".join(reversed(letters))


def a1_to_colrow(ref: str) -> tuple[int, int]:
    """Convert "B3" to zero-based ``(col, row)`` == ``(1, 2)``."""
    m = _A1_RE.match(ref.strip())
    if not m:
        raise ValueError(f"Invalid cell reference: {ref!r}")
    row = int(m.group(2))
    if row < 1:
        raise ValueError(f"Invalid cell reference: {ref!r}")
    return column_label_to_index(m.group(1).upper()), row - 1


def colrow_to_a1(col: int, row: int) -> str:
    """Convert zero-based ``(col, row)`` to an A1 reference."""
    if row < 0:
        raise ValueError(f"Row index must be non-negative, got {row}")
    return f"{index_to_column_label(col)}{row + 1}"
