"""Shared fixtures for sheetcalc tests."""

from __future__ import annotations

import pytest

from sheetcalc.sheet import Cell, SheetMemory


@pytest.fixture(autouse=True)
def _detach_event_sink():
    """Keep the module-level event sink from leaking between tests."""
    from sheetcalc.logging.events import reset_sink

    reset_sink()
    yield
    reset_sink()


@pytest.fixture
def memory() -> SheetMemory:
    """A small sheet whose stored values match their formulas."""
    return SheetMemory([
        Cell("A1", ["5"], 5),
        Cell("A2", ["-", "3"], -3),
        Cell("B1", ["1", ".", "5"], 1.5),
        Cell("C1", ["1", "/", "0"], float("inf"), "#DIV/0!"),
        Cell("D1", [], 0),
        Cell("E1", ["A1", "*", "2"], 10),
        Cell("F1", ["3"], 3),
    ])
