"""Tests for the sheetcalc structured event logging system."""

from __future__ import annotations

import json
from pathlib import Path

import pytest


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """Create a minimal project directory."""
    (tmp_path / "logs").mkdir()
    return tmp_path


@pytest.fixture
def sink(project_dir: Path):
    from sheetcalc.logging.sink import EventSink

    return EventSink(project_dir)


# ---------------------------------------------------------------------------
# A) Event schema
# ---------------------------------------------------------------------------


class TestSheetcalcEvent:
    def test_event_defaults(self):
        from sheetcalc.logging.events import EventLevel, EventType, SheetcalcEvent

        evt = SheetcalcEvent(
            level=EventLevel.info,
            event_type=EventType.recalc_started,
            message="hello",
        )
        assert evt.schema_version == 1
        assert evt.ts.endswith("Z")
        assert evt.level == "info"
        assert evt.event_type == "recalc_started"
        assert evt.context == {}
        assert evt.error_code is None

    def test_event_serialization(self):
        from sheetcalc.logging.events import EventLevel, EventType, SheetcalcEvent

        evt = SheetcalcEvent(
            level=EventLevel.warning,
            event_type=EventType.cell_error,
            message="A1: #REF!",
            context={"label": "A1"},
        )
        d = evt.model_dump()
        assert d["level"] == "warning"
        assert d["event_type"] == "cell_error"
        assert d["context"] == {"label": "A1"}

    def test_all_event_types_exist(self):
        from sheetcalc.logging.events import EventType

        expected = {
            "workbook_loaded", "workbook_saved",
            "recalc_started", "recalc_completed",
            "cell_evaluated", "cell_error",
            "formula_evaluated",
        }
        assert {e.value for e in EventType} == expected

    def test_error_codes(self):
        from sheetcalc.logging.events import error_code_for

        assert error_code_for("#REF!") == "reference_error"
        assert error_code_for("#DIV/0!") == "divide_by_zero"
        assert error_code_for("#EMPTY!") == "empty_formula"
        assert error_code_for("#ERR") == "formula_error"
        assert error_code_for("something else") == "formula_error"

    def test_make_cell_event_success(self):
        from sheetcalc.logging.events import make_cell_event

        evt = make_cell_event("B2", ("A1", "+", "1"), 6.0, "", recalc_id="r1")
        assert evt.level == "info"
        assert evt.event_type == "cell_evaluated"
        assert evt.context == {"label": "B2", "formula": ["A1", "+", "1"], "recalc_id": "r1", "result": 6.0}
        assert evt.error_code is None

    def test_make_cell_event_error(self):
        from sheetcalc.logging.events import make_cell_event

        evt = make_cell_event("B2", ["A1"], float("inf"), "#REF!")
        assert evt.level == "warning"
        assert evt.event_type == "cell_error"
        assert evt.error_code == "reference_error"
        assert "result" not in evt.context
        assert evt.context["error"] == "#REF!"


# ---------------------------------------------------------------------------
# B) Context clipping
# ---------------------------------------------------------------------------


class TestClipContext:
    def test_short_values_untouched(self):
        from sheetcalc.logging.events import clip_context

        ctx = {"label": "A1", "n": 3, "formula": ["1", "+", "2"]}
        assert clip_context(ctx) == ctx

    def test_long_string_truncated(self):
        from sheetcalc.logging.events import clip_context

        out = clip_context({"message": "x" * 300})
        assert out["message"].endswith("...[truncated]")
        assert len(out["message"]) == 256 + len("...[truncated]")

    def test_long_list_truncated(self):
        from sheetcalc.logging.events import clip_context

        out = clip_context({"formula": ["1"] * 100})
        assert len(out["formula"]) == 65
        assert out["formula"][-1] == "...[truncated]"

    def test_nested(self):
        from sheetcalc.logging.events import clip_context

        out = clip_context({"outer": {"inner": "y" * 300}})
        assert out["outer"]["inner"].endswith("...[truncated]")


# ---------------------------------------------------------------------------
# C) Filesystem NDJSON sink
# ---------------------------------------------------------------------------


class TestEventSink:
    def test_write_creates_global_log(self, sink, project_dir):
        from sheetcalc.logging.events import EventLevel, EventType, SheetcalcEvent

        sink.write(SheetcalcEvent(
            level=EventLevel.info,
            event_type=EventType.recalc_started,
            message="test recalc",
        ))

        log_path = project_dir / "logs" / "events.ndjson"
        lines = log_path.read_text().strip().splitlines()
        assert len(lines) == 1
        parsed = json.loads(lines[0])
        assert parsed["message"] == "test recalc"
        assert parsed["level"] == "info"

    def test_write_creates_per_recalc_log(self, sink, project_dir):
        from sheetcalc.logging.events import EventLevel, EventType, SheetcalcEvent

        sink.write(
            SheetcalcEvent(level=EventLevel.info, event_type=EventType.recalc_completed, message="done"),
            recalc_id="recalc_001",
        )
        assert (project_dir / "logs" / "recalc" / "recalc_001.ndjson").exists()
        assert len(sink.read_recalc_log("recalc_001")) == 1

    def test_unsafe_recalc_id_ignored(self, sink, project_dir):
        from sheetcalc.logging.events import EventLevel, EventType, SheetcalcEvent

        sink.write(
            SheetcalcEvent(level=EventLevel.info, event_type=EventType.recalc_completed),
            recalc_id="../escape",
        )
        assert not (project_dir / "logs" / "escape.ndjson").exists()
        assert sink.read_recalc_log("../escape") == []

    def test_json_sort_keys(self, sink, project_dir):
        from sheetcalc.logging.events import EventLevel, EventType, SheetcalcEvent

        sink.write(SheetcalcEvent(level=EventLevel.info, event_type=EventType.recalc_started, message="m"))
        parsed = json.loads((project_dir / "logs" / "events.ndjson").read_text().strip())
        keys = list(parsed.keys())
        assert keys == sorted(keys)

    def test_read_global_filters(self, sink):
        from sheetcalc.logging.events import make_cell_event

        sink.write(make_cell_event("A1", ["1"], 1.0, ""))
        sink.write(make_cell_event("B1", ["1", "/", "0"], float("inf"), "#DIV/0!"))
        sink.write(make_cell_event("A1", ["2"], 2.0, ""))

        recent = sink.read_global()
        assert [e["context"]["label"] for e in recent] == ["A1", "B1", "A1"]
        assert recent[0]["context"]["result"] == 2.0

        warnings = sink.read_global(level="warning")
        assert len(warnings) == 1
        assert warnings[0]["error_code"] == "divide_by_zero"

        assert len(sink.read_global(event_type="cell_evaluated")) == 2
        assert len(sink.read_global(label="A1")) == 2
        assert len(sink.read_global(limit=1)) == 1

    def test_corrupt_lines_skipped(self, sink, project_dir):
        log_path = project_dir / "logs" / "events.ndjson"
        log_path.write_text('{"message": "ok"}\nnot json\n\n')
        assert sink.read_global() == [{"message": "ok"}]

    def test_tail_read_drops_partial_line(self, project_dir):
        from sheetcalc.logging.sink import EventSink

        log_path = project_dir / "logs" / "events.ndjson"
        lines = [json.dumps({"i": i, "pad": "z" * 40}) for i in range(50)]
        log_path.write_text("\n".join(lines) + "\n")

        small = EventSink(project_dir, tail_bytes=200)
        events = small.read_global(limit=2000)
        assert 0 < len(events) < 50
        assert events[0]["i"] == 49


# ---------------------------------------------------------------------------
# D) Module-level emit helpers
# ---------------------------------------------------------------------------


class TestEmit:
    def test_emit_without_sink_is_noop(self, project_dir):
        from sheetcalc.logging.events import EventType, emit_info

        emit_info(EventType.formula_evaluated, "nothing configured")
        assert not (project_dir / "logs" / "events.ndjson").exists()

    def test_emit_after_set_project_dir(self, project_dir):
        from sheetcalc.logging.events import EventType, emit_error, set_project_dir

        set_project_dir(project_dir)
        emit_error(EventType.formula_evaluated, "bad formula", {"formula": ["+"]}, error_code="formula_error")

        parsed = json.loads((project_dir / "logs" / "events.ndjson").read_text().strip())
        assert parsed["level"] == "error"
        assert parsed["error_code"] == "formula_error"
        assert parsed["context"] == {"formula": ["+"]}

    def test_reset_sink_detaches(self, project_dir):
        from sheetcalc.logging import events

        events.set_project_dir(project_dir)
        events.reset_sink()
        events.emit_info(events.EventType.formula_evaluated, "after reset")
        assert not (project_dir / "logs" / "events.ndjson").exists()
        assert not hasattr(events, "_project_dir")

    def test_missing_attribution_downgrades(self, project_dir):
        from sheetcalc.logging.events import EventLevel, EventType, SheetcalcEvent, emit, set_project_dir

        set_project_dir(project_dir)
        emit(SheetcalcEvent(level=EventLevel.info, event_type=EventType.cell_evaluated, message="no label"))

        parsed = json.loads((project_dir / "logs" / "events.ndjson").read_text().strip())
        assert parsed["level"] == "warning"
        assert parsed["context"]["_missing_attribution"] == ["label"]

    def test_emit_never_raises(self, project_dir, monkeypatch):
        from sheetcalc.logging import events
        from sheetcalc.logging.events import EventType, emit_info, set_project_dir

        set_project_dir(project_dir)

        def _boom(*args, **kwargs):
            raise OSError("disk full")

        monkeypatch.setattr(events._sink, "write", _boom)
        emit_info(EventType.formula_evaluated, "ignored")

    def test_fsync_config_is_read(self, project_dir):
        from sheetcalc.logging import events
        from sheetcalc.logging.events import set_project_dir

        (project_dir / "sheetcalc.yaml").write_text("logging_fsync: true\nlogging_tail_bytes: 1024\n")
        set_project_dir(project_dir)
        assert events._sink._fsync is True
        assert events._sink._tail_bytes == 1024
