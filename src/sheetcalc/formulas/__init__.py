"""Formula resolution and evaluation over pre-split tokens.

Public API::

    from sheetcalc.formulas import FormulaEvaluator, evaluate_formula, ErrorMessages
"""

from sheetcalc.formulas.errors import (
    CellLabelError,
    ErrorMessages,
    FormulaError,
    FormulaRefError,
    WorkbookError,
)
from sheetcalc.formulas.evaluator import (
    EvaluationResult,
    FormulaEvaluator,
    calculate,
    evaluate_formula,
)
from sheetcalc.formulas.resolver import resolve_references

__all__ = [
    "CellLabelError",
    "ErrorMessages",
    "EvaluationResult",
    "FormulaError",
    "FormulaEvaluator",
    "FormulaRefError",
    "WorkbookError",
    "calculate",
    "evaluate_formula",
    "resolve_references",
]
