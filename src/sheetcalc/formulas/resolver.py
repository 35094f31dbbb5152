"""Substitution of cell references with their current values.

The resolver walks a formula once, replacing every reference token with the
referenced cell's value as a numeric literal and inserting an implicit
``*`` in front of parentheses that follow a term.
"""

from __future__ import annotations

from typing import Protocol, Sequence

from sheetcalc.formulas.errors import ErrorMessages, FormulaError, FormulaRefError
from sheetcalc.formulas.numbers import format_number
from sheetcalc.formulas.tokens import MULTIPLY, OPEN_PAREN, is_reference_token


# ---------------------------------------------------------------------------
# Collaborator protocols
# ---------------------------------------------------------------------------


class CellLike(Protocol):
    """What the resolver needs from a referenced cell."""

    def get_formula(self) -> Sequence[str]: ...

    def get_value(self) -> float: ...

    def get_error(self) -> str: ...


class CellLookup(Protocol):
    """Label-keyed cell storage, e.g. ``sheetcalc.sheet.SheetMemory``."""

    def get_cell_by_label(self, label: str) -> CellLike | None: ...


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


def resolve_cell_token(label: str, memory: CellLookup) -> str:
    """Return the text of the value held by the cell at *label*.

    Raises:
        FormulaRefError: If the cell is missing, has no formula, carries an
            error of its own, or the lookup itself fails.  A cell error is
            forwarded verbatim as the exception message.
    """
    try:
        cell = memory.get_cell_by_label(label)
        if cell is None or len(cell.get_formula()) == 0:
            raise FormulaRefError(label)
        error = cell.get_error()
        if error:
            raise FormulaRefError(label, message=error)
        return format_number(cell.get_value())
    except FormulaRefError:
        raise
    except Exception as exc:
        raise FormulaRefError(label) from exc


def resolve_references(formula: Sequence[str], memory: CellLookup) -> list[str]:
    """Resolve references and implicit multiplication in *formula*.

    The implicit ``*`` is inserted before every ``(`` that is not the first
    token and whose original predecessor is not literally ``*``.  This fires
    after operators and other parentheses too (``1+(2)`` becomes
    ``1+*(2)``, which then fails to reduce); the behaviour is kept as is
    for compatibility with existing sheets.

    Returns:
        The resolved token list.

    Raises:
        FormulaRefError: On any reference failure (see ``resolve_cell_token``).
        FormulaError: With ``emptyFormula`` if nothing remains to evaluate.
    """
    resolved: list[str] = []
    for i, token in enumerate(formula):
        if is_reference_token(token):
            resolved.append(resolve_cell_token(token, memory))
        elif token == OPEN_PAREN and i > 0 and formula[i - 1] != MULTIPLY:
            resolved.append(MULTIPLY)
            resolved.append(token)
        else:
            resolved.append(token)

    if not resolved:
        raise FormulaError(ErrorMessages.emptyFormula)
    return resolved
