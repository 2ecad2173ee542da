from __future__ import annotations

from datetime import timedelta
from typing import Optional

from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from branding import STATUS_SYMBOLS
from pipeline.model import RunOutcome, RunResult, StageStatus
from ui.console import UI_CONSOLE

RESULT_STYLES: dict[RunResult, str] = {
    RunResult.SUCCESS: "green",
    RunResult.UNSTABLE: "yellow",
    RunResult.FAILURE: "red",
    RunResult.ABORTED: "magenta",
}

STATUS_STYLES: dict[StageStatus, str] = {
    StageStatus.PASSED: "green",
    StageStatus.TOLERATED: "yellow",
    StageStatus.SKIPPED: "dim",
    StageStatus.FAILED: "red",
    StageStatus.TIMED_OUT: "red",
    StageStatus.ABORTED: "magenta",
}


def _stage_table(outcome: RunOutcome) -> Table:
    table = Table(show_header=True, header_style="bold", box=None, expand=True)
    table.add_column("#", justify="right", width=3)
    table.add_column("Stage")
    table.add_column("Result", justify="center")
    table.add_column("Exit", justify="right")
    table.add_column("Time", justify="right")

    for i, s in enumerate(outcome.stages, start=1):
        style = STATUS_STYLES.get(s.status, "")
        symbol = STATUS_SYMBOLS.get(s.status.value, "")
        exit_code = "" if s.status == StageStatus.SKIPPED else str(s.exit_code)
        took = "" if s.status == StageStatus.SKIPPED else f"{s.duration_seconds:.1f}s"
        table.add_row(
            str(i),
            s.name,
            Text(f"{symbol} {s.status.value}", style=style),
            exit_code,
            took,
        )
    return table


def _totals(outcome: RunOutcome) -> Optional[Table]:
    totals = Table.grid(padding=(0, 1))
    totals.add_column(justify="right", style="dim")
    totals.add_column(justify="left")

    if outcome.report is not None:
        r = outcome.report
        totals.add_row(
            "Tests:",
            f"{r.passed} passed, {r.failed} failed, {r.errored} errored, {r.skipped} skipped",
        )
    if outcome.coverage is not None:
        totals.add_row("Coverage:", f"{outcome.coverage.percent}% lines")
    if outcome.artifacts is not None:
        totals.add_row(
            "Artifacts:",
            f"{len(outcome.artifacts.files)} file(s) -> {outcome.artifacts.destination}",
        )
    if outcome.archive_error:
        totals.add_row("Archive:", Text(outcome.archive_error, style="yellow"))

    failed_post = [p for p in outcome.post if not p.ok]
    if failed_post:
        totals.add_row(
            "Post actions:",
            Text(f"{len(failed_post)} of {len(outcome.post)} failed", style="yellow"),
        )

    return totals if totals.row_count else None


def render_summary(outcome: RunOutcome) -> Panel:
    style = RESULT_STYLES[outcome.overall]
    duration = timedelta(seconds=int(outcome.duration_seconds))

    header = Text.assemble(
        (f"{outcome.pipeline}\n", "bold"),
        ("Result: ", "dim"),
        (outcome.overall.value.upper(), f"bold {style}"),
        ("\nDuration: ", "dim"),
        (str(duration), "bold"),
    )

    parts = [header, Text(""), _stage_table(outcome)]
    totals = _totals(outcome)
    if totals is not None:
        parts.extend([Text(""), totals])

    return Panel(
        Group(*parts),
        title="Run Summary",
        subtitle=outcome.run_id or None,
        border_style=style,
    )


def print_summary(outcome: RunOutcome, console: Console | None = None) -> None:
    (console or UI_CONSOLE).print(render_summary(outcome))
