"""Two-stack evaluator for resolved formula token sequences.

Supports:
- ``+ - * /`` with the usual precedence, left-associative
- parentheses
- numeric literals assembled from consecutive digit / decimal-point tokens

Evaluation never raises: every failure ends up as an error message in the
returned ``EvaluationResult``.
"""

from __future__ import annotations

import math
from typing import Sequence

from pydantic import BaseModel, ConfigDict

from sheetcalc.formulas.errors import ErrorMessages, FormulaError
from sheetcalc.formulas.numbers import is_canonical_number, is_numeric_text, parse_float
from sheetcalc.formulas.resolver import CellLookup, resolve_references
from sheetcalc.formulas.tokens import (
    CLOSE_PAREN,
    OPEN_PAREN,
    OPERATOR_PRECEDENCE,
    is_numeric_fragment,
    is_operator,
)


class EvaluationResult(BaseModel):
    """Outcome of evaluating one formula.

    ``result`` is only meaningful when ``error`` is empty.  On failure it may
    still hold a placeholder: ``inf`` when nothing was computed, or the
    partial operand left when a reduction step ran out of operands.
    """

    model_config = ConfigDict(frozen=True)

    result: float
    error: str = ""

    @property
    def ok(self) -> bool:
        return self.error == ""


# ---------------------------------------------------------------------------
# Reduction
# ---------------------------------------------------------------------------


class _CalculationFailure(FormulaError):
    """Internal: aborts ``calculate`` with a (value, message) pair."""

    def __init__(self, message: str, value: float | None = None) -> None:
        self.value = value
        super().__init__(message)


def _divide(left: float, right: float) -> float:
    # IEEE semantics instead of ZeroDivisionError.
    if right == 0:
        if left == 0 or math.isnan(left):
            return math.nan
        return math.copysign(math.inf, left) * math.copysign(1.0, right)
    return left / right


def _apply(op: str, left: float, right: float) -> float:
    if op == "+":
        return left + right
    if op == "-":
        return left - right
    if op == "*":
        return left * right
    return _divide(left, right)


def _reduce_top(operands: list[float], operators: list[str]) -> None:
    """Pop one operator and combine the two topmost operands with it."""
    if len(operands) < 2:
        raise _CalculationFailure(
            ErrorMessages.invalidFormula,
            operands[0] if operands else None,
        )
    op = operators.pop()
    if op == OPEN_PAREN:
        # Only reachable in the final drain: an unclosed "(".
        raise _CalculationFailure(ErrorMessages.missingParentheses, operands[0])
    right = operands.pop()
    left = operands.pop()
    operands.append(_apply(op, left, right))


def _push_number(buffer: str, operands: list[float]) -> None:
    if not is_canonical_number(buffer):
        raise _CalculationFailure(ErrorMessages.invalidNumber)
    operands.append(parse_float(buffer))


def calculate(tokens: Sequence[str]) -> tuple[float | None, str]:
    """Evaluate a resolved infix token sequence.

    Operators are applied as soon as precedence allows, so the operand
    stack always holds the values computed so far.

    Returns:
        ``(value, "")`` on success, otherwise ``(value_or_None, message)``:

        - ``(None, invalidNumber)`` for a non-canonical numeric literal
        - ``(partial_or_None, invalidFormula)`` when a reduction lacks operands
        - ``(0, missingParentheses)`` when nothing is left on the stack
        - ``(inf, divideByZero)`` when the single result is not finite
        - ``(None, invalidFormula)`` when more than one value remains
    """
    operands: list[float] = []
    operators: list[str] = []
    buffer = ""

    try:
        for token in tokens:
            if is_numeric_fragment(token):
                buffer += token
                continue

            if buffer:
                _push_number(buffer, operands)
                buffer = ""

            if is_operator(token):
                while (
                    operators
                    and operators[-1] != OPEN_PAREN
                    and OPERATOR_PRECEDENCE[operators[-1]] >= OPERATOR_PRECEDENCE[token]
                ):
                    _reduce_top(operands, operators)
                operators.append(token)
            elif token == OPEN_PAREN:
                operators.append(token)
            elif token == CLOSE_PAREN:
                while operators and operators[-1] != OPEN_PAREN:
                    _reduce_top(operands, operators)
                if operators:
                    operators.pop()
            # Anything else carries no meaning here and is skipped.

        if buffer:
            _push_number(buffer, operands)

        while operators:
            _reduce_top(operands, operators)
    except _CalculationFailure as exc:
        return exc.value, exc.message

    if not operands:
        return 0.0, ErrorMessages.missingParentheses
    if len(operands) == 1:
        if not math.isfinite(operands[0]):
            return math.inf, ErrorMessages.divideByZero
        return operands[0], ""
    return None, ErrorMessages.invalidFormula


# ---------------------------------------------------------------------------
# Public entry points
# ---------------------------------------------------------------------------


def evaluate_formula(formula: Sequence[str], memory: CellLookup) -> EvaluationResult:
    """Resolve references in *formula* and compute its value.

    Args:
        formula: Pre-split tokens, e.g. ``["A1", "+", "1"]``.
        memory: Cell lookup used to resolve references.

    Returns:
        The evaluation result.  A calculation that yields no value is
        reported as ``invalidFormula`` whatever its own message was.
    """
    try:
        tokens = resolve_references(formula, memory)
    except FormulaError as exc:
        return EvaluationResult(result=math.inf, error=exc.message)

    value, message = calculate(tokens)
    if value is None:
        return EvaluationResult(result=math.inf, error=ErrorMessages.invalidFormula)
    return EvaluationResult(result=value, error=message)


_NOT_EVALUATED = EvaluationResult(result=math.inf)


class FormulaEvaluator:
    """Evaluator bound to one sheet, remembering its last result.

    Usage::

        ev = FormulaEvaluator(memory)
        ev.evaluate(["A1", "*", "2"])
        if not ev.error:
            print(ev.result)
    """

    def __init__(self, memory: CellLookup) -> None:
        self._sheet_memory = memory
        self._last = _NOT_EVALUATED

    def evaluate(self, formula: Sequence[str]) -> EvaluationResult:
        """Evaluate *formula*; the outcome is also kept for ``result``/``error``."""
        self._last = evaluate_formula(formula, self._sheet_memory)
        return self._last

    @property
    def result(self) -> float:
        return self._last.result

    @property
    def error(self) -> str:
        return self._last.error

    def is_number(self, token: str) -> bool:
        return is_numeric_text(token)

    def is_cell_reference(self, token: str) -> bool:
        # Local import to avoid a cycle with sheetcalc.sheet
        from sheetcalc.sheet import Cell

        return Cell.is_valid_cell_label(token)

    def get_cell_value(self, token: str) -> tuple[float, str]:
        """Look up a referenced cell's value.

        Returns:
            ``(0, error)`` if the cell carries an error other than the
            empty-formula marker, ``(0, invalidCell)`` if its formula is empty
            or the cell does not exist, else ``(value, "")``.
        """
        cell = self._sheet_memory.get_cell_by_label(token)
        if cell is None:
            return 0.0, ErrorMessages.invalidCell

        error = cell.get_error()
        if error != "" and error != ErrorMessages.emptyFormula:
            return 0.0, error
        if len(cell.get_formula()) == 0:
            return 0.0, ErrorMessages.invalidCell
        return cell.get_value(), ""
