"""Structured event logging for sheetcalc.

Provides a unified event schema, filesystem NDJSON sink, and safe
emit helpers that never raise uncaught exceptions.
"""

from sheetcalc.logging.events import (
    EventLevel,
    EventType,
    SheetcalcEvent,
    clip_context,
    emit,
    emit_error,
    emit_info,
    emit_warning,
    error_code_for,
    make_cell_event,
    reset_sink,
    set_project_dir,
)
from sheetcalc.logging.sink import EventSink

__all__ = [
    "EventLevel",
    "EventSink",
    "EventType",
    "SheetcalcEvent",
    "clip_context",
    "emit",
    "emit_error",
    "emit_info",
    "emit_warning",
    "error_code_for",
    "make_cell_event",
    "reset_sink",
    "set_project_dir",
]
