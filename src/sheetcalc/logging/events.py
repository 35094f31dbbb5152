"""Unified event schema and module-level emit helpers.

All timestamps use UTC ISO-8601 with ``Z`` suffix.  The ``emit()``
family of functions is safe to call from any context -- failures are
swallowed and printed to stderr.
"""

from __future__ import annotations

import sys
import time
import traceback
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from sheetcalc.formulas.errors import ErrorMessages


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class EventLevel(str, Enum):
    info = "info"
    warning = "warning"
    error = "error"


class EventType(str, Enum):
    # Workbook files
    workbook_loaded = "workbook_loaded"
    workbook_saved = "workbook_saved"

    # Recalculation lifecycle
    recalc_started = "recalc_started"
    recalc_completed = "recalc_completed"

    # Per-cell outcomes
    cell_evaluated = "cell_evaluated"
    cell_error = "cell_error"

    # Ad-hoc evaluation from the CLI
    formula_evaluated = "formula_evaluated"


# ---------------------------------------------------------------------------
# Error codes
# ---------------------------------------------------------------------------

REFERENCE_ERROR = "reference_error"
DIVIDE_BY_ZERO = "divide_by_zero"
EMPTY_FORMULA = "empty_formula"
FORMULA_ERROR = "formula_error"

_ERROR_CODES: dict[str, str] = {
    ErrorMessages.invalidCell: REFERENCE_ERROR,
    ErrorMessages.divideByZero: DIVIDE_BY_ZERO,
    ErrorMessages.emptyFormula: EMPTY_FORMULA,
}


def error_code_for(message: str) -> str:
    """Map an evaluation error message to a stable error code.

    Messages that share ``#ERR`` (and errors propagated from other cells
    that are not in the catalog) all map to ``formula_error``.
    """
    return _ERROR_CODES.get(message, FORMULA_ERROR)


# ---------------------------------------------------------------------------
# Context clipping
# ---------------------------------------------------------------------------

_MAX_VALUE_LEN = 256
_MAX_LIST_LEN = 64


def clip_context(context: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of *context* with oversized values shortened.

    Rules:
    - String values longer than 256 chars are truncated.
    - Lists (e.g. formula tokens) keep their first 64 items.
    - Nested dicts are clipped recursively.
    """
    out: dict[str, Any] = {}
    for k, v in context.items():
        out[k] = _clip_value(v)
    return out


def _clip_value(v: Any) -> Any:
    if isinstance(v, dict):
        return clip_context(v)
    if isinstance(v, (list, tuple)):
        items = [_clip_value(item) for item in v[:_MAX_LIST_LEN]]
        if len(v) > _MAX_LIST_LEN:
            items.append("...[truncated]")
        return items
    if isinstance(v, str) and len(v) > _MAX_VALUE_LEN:
        return v[:_MAX_VALUE_LEN] + "...[truncated]"
    return v


# ---------------------------------------------------------------------------
# Attribution invariants
# ---------------------------------------------------------------------------

_CELL_EVENT_REQUIRED = {"label"}

_EVENT_REQUIRED_KEYS: dict[str, set[str]] = {
    EventType.workbook_loaded.value: {"path"},
    EventType.workbook_saved.value: {"path"},
    EventType.recalc_started.value: {"recalc_id"},
    EventType.recalc_completed.value: {"recalc_id"},
    EventType.cell_evaluated.value: _CELL_EVENT_REQUIRED,
    EventType.cell_error.value: _CELL_EVENT_REQUIRED,
    EventType.formula_evaluated.value: set(),
}


def _validate_attribution(event: SheetcalcEvent) -> SheetcalcEvent:
    """Check required context keys; downgrade to warning if missing."""
    key = event.event_type.value if isinstance(event.event_type, EventType) else event.event_type
    required = _EVENT_REQUIRED_KEYS.get(key, set())
    if not required:
        return event
    missing = required - set(event.context.keys())
    if missing:
        ctx = dict(event.context)
        ctx["_missing_attribution"] = sorted(missing)
        return event.model_copy(update={"level": EventLevel.warning, "context": ctx})
    return event


# ---------------------------------------------------------------------------
# Helper constructors for consistent attribution
# ---------------------------------------------------------------------------


def make_cell_event(
    label: str,
    formula: list[str] | tuple[str, ...],
    result: float,
    error: str,
    *,
    recalc_id: str | None = None,
) -> SheetcalcEvent:
    """Build the outcome event for one evaluated cell."""
    ctx: dict[str, Any] = {"label": label, "formula": list(formula)}
    if recalc_id is not None:
        ctx["recalc_id"] = recalc_id
    if error:
        ctx["error"] = error
        return SheetcalcEvent(
            level=EventLevel.warning,
            event_type=EventType.cell_error,
            message=f"{label}: {error}",
            context=ctx,
            error_code=error_code_for(error),
        )
    ctx["result"] = result
    return SheetcalcEvent(
        level=EventLevel.info,
        event_type=EventType.cell_evaluated,
        message=f"{label} = {result!r}",
        context=ctx,
    )


# ---------------------------------------------------------------------------
# Event model
# ---------------------------------------------------------------------------


def _utc_now() -> str:
    """Return current UTC timestamp in ISO-8601 with Z suffix."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


class SheetcalcEvent(BaseModel):
    """A single structured log event."""

    schema_version: int = 1
    ts: str = Field(default_factory=_utc_now)
    level: EventLevel
    event_type: EventType
    context: dict[str, Any] = Field(default_factory=dict)
    message: str = ""
    error_code: str | None = None


# ---------------------------------------------------------------------------
# Module-level sink reference
# ---------------------------------------------------------------------------

# Lazily initialised when ``set_project_dir`` is called.
_sink: Any = None  # EventSink | None


def set_project_dir(project_dir: Any) -> None:
    """Configure the module-level event sink for a project directory.

    This should be called early in a CLI command.  If it is never called,
    ``emit()`` silently discards events.

    Reads ``logging_fsync`` and ``logging_tail_bytes`` from the project
    config (``sheetcalc.yaml``) to configure the sink.
    """
    global _sink
    from pathlib import Path

    from sheetcalc.logging.sink import EventSink
    from sheetcalc.project import load_project_config

    project_dir = Path(project_dir)

    fsync = False
    tail_bytes = None
    try:
        cfg = load_project_config(project_dir)
        fsync = bool(cfg.get("logging_fsync", False))
        tb = cfg.get("logging_tail_bytes")
        if tb is not None:
            tail_bytes = int(tb)
    except Exception:
        _stderr_warning(f"could not read logging config: {traceback.format_exc()}")

    _sink = EventSink(project_dir, fsync=fsync, tail_bytes=tail_bytes)


def reset_sink() -> None:
    """Detach the module-level sink; later events are discarded."""
    global _sink
    _sink = None


def _get_sink() -> Any:
    """Return the module-level sink, or None."""
    return _sink


# ---------------------------------------------------------------------------
# Rate-limited stderr warnings
# ---------------------------------------------------------------------------

_last_stderr_ts: float | None = None
_STDERR_INTERVAL_SECS = 60.0


def _stderr_warning(msg: str) -> None:
    """Print a warning to stderr, rate-limited to one per 60 seconds."""
    global _last_stderr_ts
    now = time.monotonic()
    if _last_stderr_ts is not None and now - _last_stderr_ts < _STDERR_INTERVAL_SECS:
        return
    _last_stderr_ts = now
    try:
        print(f"[sheetcalc] {msg}", file=sys.stderr)
    except Exception:
        pass


# ---------------------------------------------------------------------------
# Safe emit helpers
# ---------------------------------------------------------------------------


def emit(event: SheetcalcEvent, *, recalc_id: str | None = None) -> None:
    """Write an event to the global log and optionally to a per-recalc log.

    **Never raises.**  On failure, prints a rate-limited warning to stderr.

    Applies context clipping and attribution validation before writing.
    """
    try:
        sink = _get_sink()
        if sink is None:
            return
        event = event.model_copy(update={"context": clip_context(event.context)})
        event = _validate_attribution(event)
        sink.write(event, recalc_id=recalc_id)
    except Exception:
        _stderr_warning(f"logging failed: {traceback.format_exc()}")


def emit_info(
    event_type: EventType,
    message: str,
    context: dict[str, Any] | None = None,
    *,
    recalc_id: str | None = None,
) -> None:
    """Convenience: emit an info-level event."""
    emit(
        SheetcalcEvent(
            level=EventLevel.info,
            event_type=event_type,
            message=message,
            context=context or {},
        ),
        recalc_id=recalc_id,
    )


def emit_warning(
    event_type: EventType,
    message: str,
    context: dict[str, Any] | None = None,
    *,
    error_code: str | None = None,
    recalc_id: str | None = None,
) -> None:
    """Convenience: emit a warning-level event."""
    emit(
        SheetcalcEvent(
            level=EventLevel.warning,
            event_type=event_type,
            message=message,
            context=context or {},
            error_code=error_code,
        ),
        recalc_id=recalc_id,
    )


def emit_error(
    event_type: EventType,
    message: str,
    context: dict[str, Any] | None = None,
    *,
    error_code: str | None = None,
    recalc_id: str | None = None,
) -> None:
    """Convenience: emit an error-level event."""
    emit(
        SheetcalcEvent(
            level=EventLevel.error,
            event_type=event_type,
            message=message,
            context=context or {},
            error_code=error_code,
        ),
        recalc_id=recalc_id,
    )
