"""Error catalog and exception types for formula evaluation."""

from __future__ import annotations


class ErrorMessages:
    """Error strings surfaced through ``FormulaEvaluator.error``.

    The exact values are part of the sheet file compatibility surface;
    several kinds intentionally share ``#ERR``.
    """

    partial = "#ERR"
    divideByZero = "#DIV/0!"
    invalidCell = "#REF!"
    invalidFormula = "#ERR"
    invalidNumber = "#ERR"
    invalidOperator = "#ERR"
    missingParentheses = "#ERR"
    # Not an error as such: marks a cell whose formula is empty.
    emptyFormula = "#EMPTY!"


class FormulaError(Exception):
    """Base class for all formula-related errors.

    Attributes:
        message: The catalog message reported to the caller.
    """

    def __init__(self, message: str, detail: str | None = None) -> None:
        self.message = message
        self.detail = detail
        full = message if detail is None else f"{message} ({detail})"
        super().__init__(full)


class FormulaRefError(FormulaError):
    """A cell reference could not be turned into a value.

    Attributes:
        label: The reference token that failed.
    """

    def __init__(self, label: str, message: str = ErrorMessages.invalidCell) -> None:
        self.label = label
        super().__init__(message, detail=f"reference {label!r}")


class CellLabelError(FormulaError):
    """A string that is not a valid cell label was used as one."""

    def __init__(self, label: str) -> None:
        self.label = label
        super().__init__(ErrorMessages.invalidCell, detail=f"invalid cell label {label!r}")


class WorkbookError(Exception):
    """A workbook file is missing required structure or holds bad cells."""
