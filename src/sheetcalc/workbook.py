"""Workbook files and whole-sheet recalculation.

A workbook is a YAML file mapping cell labels to their formula tokens and
last computed value/error::

    version: 1
    cells:
      A1: {formula: ["5"], value: 5}
      B1: {formula: ["A1", "+", "1"]}

Recalculation evaluates every cell once, in declaration order, and stores
each outcome back on its cell.  A reference sees the referenced cell's
state at that moment, so cells that depend on later cells may need another
pass; dependency ordering is left to the caller.
"""

from __future__ import annotations

import uuid
from pathlib import Path
from typing import Any

import yaml

from sheetcalc.formulas.errors import WorkbookError
from sheetcalc.formulas.evaluator import EvaluationResult, evaluate_formula
from sheetcalc.logging.events import EventType, emit, emit_info, make_cell_event
from sheetcalc.sheet import Cell, SheetMemory


# ---------------------------------------------------------------------------
# Loading / saving
# ---------------------------------------------------------------------------


def _token_text(label: str, token: Any) -> str:
    # Numbers must be quoted: YAML would drop their original text.
    if not isinstance(token, str):
        raise WorkbookError(f"Cell {label}: formula tokens must be strings, got {token!r}")
    return token


def _cell_from_spec(label: str, spec: Any) -> Cell:
    if not Cell.is_valid_cell_label(label):
        raise WorkbookError(f"Invalid cell label: {label!r}")
    if spec is None:
        spec = {}
    if not isinstance(spec, dict):
        raise WorkbookError(f"Cell {label}: expected a mapping, got {type(spec).__name__}")

    formula = spec.get("formula") or []
    if not isinstance(formula, list):
        raise WorkbookError(f"Cell {label}: 'formula' must be a list of tokens")

    value = spec.get("value", 0)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise WorkbookError(f"Cell {label}: 'value' must be a number, got {value!r}")

    error = spec.get("error") or ""
    return Cell(
        label,
        formula=[_token_text(label, t) for t in formula],
        value=value,
        error=str(error),
    )


def load_workbook(path: Path) -> SheetMemory:
    """Load a workbook YAML file into a ``SheetMemory``.

    Raises:
        FileNotFoundError: If *path* does not exist.
        WorkbookError: If the file is not a valid workbook.
    """
    path = Path(path)
    try:
        spec = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except FileNotFoundError:
        raise
    except yaml.YAMLError as exc:
        raise WorkbookError(f"{path}: invalid YAML: {exc}") from exc
    except (UnicodeDecodeError, OSError) as exc:
        raise WorkbookError(f"{path}: cannot read workbook: {exc}") from exc

    if not isinstance(spec, dict):
        raise WorkbookError(f"{path}: expected a mapping at top level")
    cells = spec.get("cells") or {}
    if not isinstance(cells, dict):
        raise WorkbookError(f"{path}: 'cells' must be a mapping of label -> cell")

    memory = SheetMemory(_cell_from_spec(str(label), cell) for label, cell in cells.items())
    emit_info(
        EventType.workbook_loaded,
        f"Loaded {len(memory)} cells from {path.name}",
        {"path": str(path), "n_cells": len(memory)},
    )
    return memory


def dump_workbook(memory: SheetMemory) -> dict[str, Any]:
    """Return the YAML-ready mapping for *memory*."""
    cells: dict[str, Any] = {}
    for cell in memory.cells():
        entry: dict[str, Any] = {
            "formula": list(cell.get_formula()),
            "value": cell.get_value(),
        }
        if cell.get_error():
            entry["error"] = cell.get_error()
        cells[cell.label] = entry
    return {"version": 1, "cells": cells}


def save_workbook(memory: SheetMemory, path: Path) -> None:
    """Write *memory* to *path* as a workbook YAML file."""
    path = Path(path)
    path.write_text(yaml.safe_dump(dump_workbook(memory), default_flow_style=None, sort_keys=False))
    emit_info(
        EventType.workbook_saved,
        f"Saved {len(memory)} cells to {path.name}",
        {"path": str(path), "n_cells": len(memory)},
    )


# ---------------------------------------------------------------------------
# Recalculation
# ---------------------------------------------------------------------------


class RecalcResult:
    """Outcome of one recalculation pass.

    Attributes:
        recalc_id: Identifier used for the per-recalc event log.
        results: Evaluation result per cell label, in evaluation order.
    """

    def __init__(self, recalc_id: str, results: dict[str, EvaluationResult]) -> None:
        self.recalc_id = recalc_id
        self.results = results

    @property
    def errors(self) -> dict[str, str]:
        """Labels of failed cells mapped to their error message."""
        return {label: r.error for label, r in self.results.items() if r.error}


def recalculate(memory: SheetMemory, *, recalc_id: str | None = None) -> RecalcResult:
    """Evaluate every cell of *memory* once and store the outcomes.

    Each cell's value and error are overwritten with its new evaluation
    result, and one event per cell goes to the event log.
    """
    recalc_id = recalc_id or uuid.uuid4().hex[:12]
    emit_info(
        EventType.recalc_started,
        f"Recalculating {len(memory)} cells",
        {"recalc_id": recalc_id, "n_cells": len(memory)},
        recalc_id=recalc_id,
    )

    results: dict[str, EvaluationResult] = {}
    for cell in memory.cells():
        formula = cell.get_formula()
        outcome = evaluate_formula(formula, memory)
        cell.set_value(outcome.result)
        cell.set_error(outcome.error)
        results[cell.label] = outcome
        emit(
            make_cell_event(cell.label, formula, outcome.result, outcome.error, recalc_id=recalc_id),
            recalc_id=recalc_id,
        )

    recalc = RecalcResult(recalc_id, results)
    emit_info(
        EventType.recalc_completed,
        f"Recalculated {len(results)} cells ({len(recalc.errors)} errors)",
        {"recalc_id": recalc_id, "n_cells": len(results), "n_errors": len(recalc.errors)},
        recalc_id=recalc_id,
    )
    return recalc
