"""sheetcalc -- single-cell spreadsheet formula evaluation engine."""

__version__ = "0.3.0"
