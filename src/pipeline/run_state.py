from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Optional

from pipeline.model import (
    ArtifactSet,
    CoverageSummary,
    PostActionRecord,
    ReportSummary,
    RunOutcome,
    RunResult,
    StageResult,
    StageStatus,
)


@dataclass
class RunMetadata:
    run_id: str
    pipeline: str
    timeout_seconds: float
    started_at: float = field(default_factory=time.time)
    finished_at: Optional[float] = None


@dataclass
class RunState:
    """
    Canonical runtime state for one pipeline execution.

    This object is mutated by the runner only. Stage results are append-only,
    the result is set exactly once, and nothing changes after `finish()`.
    """

    metadata: RunMetadata
    stages: list[StageResult] = field(default_factory=list)

    result: Optional[RunResult] = None
    stop_reason: Optional[str] = None
    timed_out: bool = False
    aborted: bool = False

    report: Optional[ReportSummary] = None
    coverage: Optional[CoverageSummary] = None
    artifacts: Optional[ArtifactSet] = None
    archive_error: Optional[str] = None
    post: list[PostActionRecord] = field(default_factory=list)

    _deadline: float = field(default=0.0, init=False, repr=False)
    _finished: bool = field(default=False, init=False, repr=False)

    def __post_init__(self) -> None:
        self._deadline = time.monotonic() + self.metadata.timeout_seconds

    # ------------------------------------------------------------------
    # Budget
    # ------------------------------------------------------------------

    @property
    def deadline(self) -> float:
        return self._deadline

    def remaining(self) -> float:
        return max(0.0, self._deadline - time.monotonic())

    def budget_exhausted(self) -> bool:
        return time.monotonic() >= self._deadline

    # ------------------------------------------------------------------
    # Stage bookkeeping
    # ------------------------------------------------------------------

    def record(self, result: StageResult) -> None:
        self._guard()
        self.stages.append(result)

        if result.status == StageStatus.TIMED_OUT:
            self.timed_out = True
            self.stop_reason = self.stop_reason or f"timeout:{result.name}"
        elif result.status == StageStatus.ABORTED:
            self.aborted = True
            self.stop_reason = self.stop_reason or f"aborted:{result.name}"
        elif result.status == StageStatus.FAILED:
            self.stop_reason = self.stop_reason or f"failed:{result.name}"

    def mark_timed_out(self, reason: str) -> None:
        self._guard()
        self.timed_out = True
        self.stop_reason = self.stop_reason or reason

    def mark_aborted(self, reason: str) -> None:
        self._guard()
        self.aborted = True
        self.stop_reason = self.stop_reason or reason

    @property
    def blocked(self) -> bool:
        return self.timed_out or self.aborted or any(s.hard_failure for s in self.stages)

    # ------------------------------------------------------------------
    # Completion
    # ------------------------------------------------------------------

    def finalize(self) -> RunResult:
        """
        Derive the single run result. Called once, before post actions.
        """
        self._guard()
        if self.result is not None:
            raise RuntimeError("run result already finalized")

        if self.aborted:
            self.result = RunResult.ABORTED
        elif self.timed_out or any(s.hard_failure for s in self.stages):
            self.result = RunResult.FAILURE
        elif self.report is not None and self.report.has_problems:
            self.result = RunResult.UNSTABLE
        else:
            self.result = RunResult.SUCCESS
        return self.result

    def add_post_record(self, record: PostActionRecord) -> None:
        self._guard()
        self.post.append(record)

    def finish(self) -> RunOutcome:
        self._guard()
        if self.result is None:
            raise RuntimeError("finish() before finalize()")

        self.metadata.finished_at = time.time()
        self._finished = True

        return RunOutcome(
            overall=self.result,
            stages=list(self.stages),
            run_id=self.metadata.run_id,
            pipeline=self.metadata.pipeline,
            started_at=self.metadata.started_at,
            finished_at=self.metadata.finished_at,
            report=self.report,
            coverage=self.coverage,
            artifacts=self.artifacts,
            archive_error=self.archive_error,
            post=list(self.post),
        )

    def _guard(self) -> None:
        if self._finished:
            raise RuntimeError("run state is frozen after finish()")
