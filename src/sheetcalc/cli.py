"""Command-line interface for sheetcalc."""

from __future__ import annotations

import json
from pathlib import Path

import click

from sheetcalc import __version__


@click.group()
@click.version_option(version=__version__, prog_name="sheetcalc")
def main() -> None:
    """sheetcalc -- spreadsheet cell formula evaluation.

    Formulas are given as pre-split tokens, e.g. ``A1 + ( 2 * B1 )``.
    """


# ---------------------------------------------------------------------------
# helpers
# ---------------------------------------------------------------------------


def _load_or_fail(path: Path):
    from sheetcalc.formulas.errors import WorkbookError
    from sheetcalc.workbook import load_workbook

    try:
        return load_workbook(path)
    except FileNotFoundError:
        raise click.ClickException(f"Workbook not found: {path}")
    except WorkbookError as e:
        raise click.ClickException(str(e))


def _format_outcome(result: float, error: str) -> str:
    from sheetcalc.formulas.numbers import format_number

    return error if error else format_number(result)


# ---------------------------------------------------------------------------
# New
# ---------------------------------------------------------------------------


@main.command()
@click.argument("directory", type=click.Path())
def new(directory: str) -> None:
    """Scaffold a new project with a demo workbook at DIRECTORY."""
    from sheetcalc.project import scaffold_project

    try:
        result = scaffold_project(Path(directory))
    except FileExistsError as e:
        raise click.ClickException(str(e))
    click.echo(f"Created project at {result}")


# ---------------------------------------------------------------------------
# Eval
# ---------------------------------------------------------------------------


@main.command("eval", context_settings={"ignore_unknown_options": True})
@click.argument("workbook", type=click.Path(exists=True, dir_okay=False))
@click.argument("tokens", nargs=-1)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
@click.option(
    "--log-project",
    "log_project",
    default=None,
    type=click.Path(exists=True, file_okay=False),
    help="Record the evaluation in this project's event log.",
)
@click.pass_context
def eval_cmd(
    ctx: click.Context,
    workbook: str,
    tokens: tuple[str, ...],
    as_json: bool,
    log_project: str | None,
) -> None:
    """Evaluate the formula TOKENS against the cells of WORKBOOK.

    Tokens that look like options, such as a negative number ``-3``,
    are kept as tokens.  Put options before WORKBOOK, or separate the
    tokens with ``--``.

    Exits with status 1 when the formula evaluates to an error.
    """
    from sheetcalc.formulas.evaluator import evaluate_formula
    from sheetcalc.logging.events import EventType, emit_info, emit_warning, error_code_for, set_project_dir

    if log_project:
        set_project_dir(Path(log_project))

    memory = _load_or_fail(Path(workbook))
    outcome = evaluate_formula(list(tokens), memory)

    context = {"workbook": workbook, "formula": list(tokens)}
    if outcome.error:
        emit_warning(
            EventType.formula_evaluated,
            f"Formula failed: {outcome.error}",
            {**context, "error": outcome.error},
            error_code=error_code_for(outcome.error),
        )
    else:
        emit_info(
            EventType.formula_evaluated,
            f"Formula = {outcome.result!r}",
            {**context, "result": outcome.result},
        )

    if as_json:
        click.echo(json.dumps({
            "formula": list(tokens),
            "result": None if outcome.error else outcome.result,
            "error": outcome.error,
        }, indent=2))
    else:
        click.echo(_format_outcome(outcome.result, outcome.error))

    if outcome.error:
        ctx.exit(1)


# ---------------------------------------------------------------------------
# Recalc
# ---------------------------------------------------------------------------


@main.command()
@click.argument("project_dir", type=click.Path(exists=True, file_okay=False))
@click.option("--no-save", is_flag=True, help="Do not write results back to the workbook.")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def recalc(project_dir: str, no_save: bool, as_json: bool) -> None:
    """Recalculate every cell of the project workbook."""
    from sheetcalc.logging.events import set_project_dir
    from sheetcalc.project import workbook_path
    from sheetcalc.workbook import recalculate, save_workbook

    pdir = Path(project_dir)
    set_project_dir(pdir)
    try:
        wb_path = workbook_path(pdir)
    except ValueError as e:
        raise click.ClickException(str(e))

    memory = _load_or_fail(wb_path)
    recalc_result = recalculate(memory)
    if not no_save:
        save_workbook(memory, wb_path)

    if as_json:
        click.echo(json.dumps({
            "recalc_id": recalc_result.recalc_id,
            "cells": {
                label: {"result": None if r.error else r.result, "error": r.error}
                for label, r in recalc_result.results.items()
            },
        }, indent=2))
        return

    for label, r in recalc_result.results.items():
        click.echo(f"{label:<6} {_format_outcome(r.result, r.error)}")
    n_err = len(recalc_result.errors)
    click.echo(f"Recalculated {len(recalc_result.results)} cells, {n_err} with errors (recalc {recalc_result.recalc_id})")


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


@main.command()
@click.argument("project_dir", type=click.Path(exists=True, file_okay=False))
@click.option("--level", default=None, type=click.Choice(["info", "warning", "error"]))
@click.option("--type", "event_type", default=None, help="Filter by event type.")
@click.option("--label", default=None, help="Filter by cell label.")
@click.option("--limit", default=50, show_default=True, type=int)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def events(
    project_dir: str,
    level: str | None,
    event_type: str | None,
    label: str | None,
    limit: int,
    as_json: bool,
) -> None:
    """Show recent events from the project event log."""
    from sheetcalc.logging.sink import EventSink
    from sheetcalc.project import load_project_config

    pdir = Path(project_dir)
    try:
        cfg = load_project_config(pdir)
    except ValueError as e:
        raise click.ClickException(str(e))
    sink = EventSink(pdir, tail_bytes=cfg.get("logging_tail_bytes"))
    found = sink.read_global(level=level, event_type=event_type, label=label, limit=limit)

    if as_json:
        click.echo(json.dumps(found, indent=2))
        return
    if not found:
        click.echo("No events found.")
        return
    for e in found:
        code = f" [{e['error_code']}]" if e.get("error_code") else ""
        click.echo(f"{e.get('ts', '')}  {e.get('level', ''):<7} {e.get('event_type', '')}{code}  {e.get('message', '')}")
