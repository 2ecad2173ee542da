from rich.console import Console

from pipeline.model import (
    CoverageSummary,
    PostActionRecord,
    ReportSummary,
    RunOutcome,
    RunResult,
    StageResult,
    StageStatus,
)
from ui import print_summary, render_summary


def _render(outcome) -> str:
    console = Console(record=True, width=100, color_system=None)
    console.print(render_summary(outcome))
    return console.export_text()


def test_summary_lists_stages_and_result():
    outcome = RunOutcome(
        overall=RunResult.FAILURE,
        pipeline="python-ci",
        run_id="r42",
        stages=[
            StageResult(name="Setup Environment", status=StageStatus.PASSED, exit_code=0),
            StageResult(name="Install Dependencies", status=StageStatus.FAILED, exit_code=2),
            StageResult(name="Run Tests", status=StageStatus.SKIPPED, exit_code=-1),
        ],
    )

    text = _render(outcome)

    assert "python-ci" in text
    assert "FAILURE" in text
    assert "Setup Environment" in text
    assert "Install Dependencies" in text
    assert "skipped" in text
    assert "r42" in text


def test_summary_shows_totals_when_present():
    outcome = RunOutcome(
        overall=RunResult.UNSTABLE,
        pipeline="python-ci",
        stages=[StageResult(name="Run Tests", status=StageStatus.TOLERATED, exit_code=1)],
        report=ReportSummary(passed=9, failed=1),
        coverage=CoverageSummary(line_rate=0.875),
        post=[PostActionRecord(slot="always", command="false", exit_code=1, error="x")],
    )

    text = _render(outcome)

    assert "UNSTABLE" in text
    assert "9 passed, 1 failed" in text
    assert "87.5% lines" in text
    assert "1 of 1 failed" in text


def test_summary_without_totals():
    outcome = RunOutcome(
        overall=RunResult.SUCCESS,
        pipeline="demo",
        stages=[StageResult(name="A", status=StageStatus.PASSED, exit_code=0)],
    )

    text = _render(outcome)

    assert "Tests:" not in text
    assert "SUCCESS" in text


def test_print_summary_uses_given_console():
    console = Console(record=True, width=80, color_system=None)
    outcome = RunOutcome(
        overall=RunResult.ABORTED,
        pipeline="demo",
        stages=[StageResult(name="A", status=StageStatus.ABORTED, exit_code=-15)],
    )

    print_summary(outcome, console=console)

    assert "ABORTED" in console.export_text()
