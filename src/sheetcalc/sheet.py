"""In-memory cells and the label-keyed sheet that holds them."""

from __future__ import annotations

import re
from typing import Iterable, Iterator, Sequence

from sheetcalc.formulas.errors import CellLabelError

_LABEL_RE = re.compile(r"^[A-Z]+[1-9][0-9]*$")


class Cell:
    """A single sheet cell.

    Holds the cell's formula tokens together with the value and error left
    by its most recent evaluation.  An empty formula means the cell has no
    value.
    """

    def __init__(
        self,
        label: str,
        formula: Sequence[str] = (),
        value: float = 0.0,
        error: str = "",
    ) -> None:
        if not Cell.is_valid_cell_label(label):
            raise CellLabelError(label)
        self.label = label
        self._formula = tuple(formula)
        self._value = float(value)
        self._error = error

    @staticmethod
    def is_valid_cell_label(label: str) -> bool:
        """True for labels like ``A1`` or ``AB12`` (column letters, then row >= 1)."""
        return _LABEL_RE.match(label) is not None

    def get_formula(self) -> tuple[str, ...]:
        return self._formula

    def set_formula(self, formula: Sequence[str]) -> None:
        self._formula = tuple(formula)

    def get_value(self) -> float:
        return self._value

    def set_value(self, value: float) -> None:
        self._value = float(value)

    def get_error(self) -> str:
        return self._error

    def set_error(self, error: str) -> None:
        self._error = error

    def __repr__(self) -> str:
        return (
            f"Cell({self.label!r}, formula={list(self._formula)!r}, "
            f"value={self._value!r}, error={self._error!r})"
        )


class SheetMemory:
    """Cells keyed by label, kept in insertion order."""

    def __init__(self, cells: Iterable[Cell] = ()) -> None:
        self._cells: dict[str, Cell] = {}
        for cell in cells:
            self.set_cell(cell)

    def get_cell_by_label(self, label: str) -> Cell | None:
        """Return the cell at *label*, or ``None`` if nothing is stored there.

        Raises:
            CellLabelError: If *label* is not a valid cell label.
        """
        if not Cell.is_valid_cell_label(label):
            raise CellLabelError(label)
        return self._cells.get(label)

    def set_cell(self, cell: Cell) -> None:
        self._cells[cell.label] = cell

    def labels(self) -> list[str]:
        return list(self._cells)

    def cells(self) -> Iterator[Cell]:
        return iter(self._cells.values())

    def __len__(self) -> int:
        return len(self._cells)

    def __contains__(self, label: object) -> bool:
        return label in self._cells
