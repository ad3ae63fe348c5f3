"""cellgrid — a grid of cells whose formulas stay in step with their inputs.

Usage::

    from cellgrid import Document, load_document

    doc = Document()
    doc["A1"] = "2"
    doc["B1"] = "3"
    doc["C1"] = "=(A1+B1)*2"
    print(doc["C1"])  # "10"
    doc.save("sheet.json")

    doc = load_document("sheet.json")
"""

import os

from cellgrid._cell import FORMULA_MARKER, CellData, CellPosition, cell_key
from cellgrid._document import DEFAULT_COLS, DEFAULT_ROWS, Document
from cellgrid._store import CellStore
from cellgrid._utils import (
    a1_to_colrow,
    colrow_to_a1,
    column_label_to_index,
    index_to_column_label,
)

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "CellData",
    "CellPosition",
    "CellStore",
    "DEFAULT_COLS",
    "DEFAULT_ROWS",
    "Document",
    "FORMULA_MARKER",
    "a1_to_colrow",
    "cell_key",
    "colrow_to_a1",
    "column_label_to_index",
    "index_to_column_label",
    "load_document",
]


def load_document(filename: str | os.PathLike[str], recalculate: bool = True) -> Document:
    """Open a document saved with :meth:`Document.save`.

    Parameters
    ----------
    recalculate : bool
        If True (the default), run a full recalculation after loading so
        display values are rebuilt from the raw values.
    """
    with open(filename, encoding="utf-8") as f:
        doc = Document.from_json(f.read())
    if recalculate:
        doc.recalculate()
    return doc
