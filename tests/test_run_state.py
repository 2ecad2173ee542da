import time

import pytest

from pipeline.model import ReportSummary, RunResult, StageResult, StageStatus
from pipeline.run_state import RunMetadata, RunState


def _state(timeout=60.0):
    return RunState(metadata=RunMetadata(run_id="r1", pipeline="demo", timeout_seconds=timeout))


def _stage(name, status, code=0):
    return StageResult(name=name, status=status, exit_code=code)


def test_success_when_everything_passes():
    s = _state()
    s.record(_stage("a", StageStatus.PASSED))
    assert s.finalize() == RunResult.SUCCESS


def test_tolerated_failure_is_not_failure():
    s = _state()
    s.record(_stage("a", StageStatus.TOLERATED, 1))
    assert not s.blocked
    assert s.finalize() == RunResult.SUCCESS


def test_report_problems_make_run_unstable():
    s = _state()
    s.record(_stage("a", StageStatus.PASSED))
    s.report = ReportSummary(passed=3, failed=1)
    assert s.finalize() == RunResult.UNSTABLE


def test_hard_failure_beats_report():
    s = _state()
    s.record(_stage("a", StageStatus.FAILED, 2))
    s.report = ReportSummary(failed=1)

    assert s.blocked
    assert s.stop_reason == "failed:a"
    assert s.finalize() == RunResult.FAILURE


def test_timeout_forces_failure():
    s = _state()
    s.record(_stage("a", StageStatus.TIMED_OUT, -15))
    assert s.timed_out
    assert s.finalize() == RunResult.FAILURE


def test_abort_wins_over_everything():
    s = _state()
    s.record(_stage("a", StageStatus.FAILED, 1))
    s.mark_aborted("signal:SIGINT")
    assert s.finalize() == RunResult.ABORTED


def test_budget_tracking():
    s = _state(timeout=0.05)
    assert s.remaining() <= 0.05
    time.sleep(0.1)
    assert s.budget_exhausted()
    assert s.remaining() == 0.0


def test_result_is_computed_once_and_frozen_after_finish():
    s = _state()
    s.record(_stage("a", StageStatus.PASSED))
    s.finalize()

    with pytest.raises(RuntimeError):
        s.finalize()

    outcome = s.finish()
    assert outcome.overall == RunResult.SUCCESS
    assert outcome.run_id == "r1"

    with pytest.raises(RuntimeError):
        s.record(_stage("b", StageStatus.PASSED))


def test_finish_requires_finalize():
    with pytest.raises(RuntimeError):
        _state().finish()
