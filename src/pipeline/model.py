from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Optional


def _freeze(mapping: Mapping[str, str] | None) -> Mapping[str, str]:
    return MappingProxyType(dict(mapping or {}))


# ------------------------------------------------------------
# Outcomes
# ------------------------------------------------------------


class RunResult(str, Enum):
    SUCCESS = "success"
    UNSTABLE = "unstable"
    FAILURE = "failure"
    ABORTED = "aborted"


class StageStatus(str, Enum):
    PASSED = "passed"
    FAILED = "failed"
    TOLERATED = "tolerated"
    TIMED_OUT = "timed_out"
    ABORTED = "aborted"
    SKIPPED = "skipped"


# ------------------------------------------------------------
# Definition
# ------------------------------------------------------------


@dataclass(frozen=True)
class Stage:
    name: str
    command: str
    best_effort: bool = False
    environment: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "environment", _freeze(self.environment))


@dataclass(frozen=True)
class PostActions:
    always: tuple[str, ...] = ()
    success: tuple[str, ...] = ()
    failure: tuple[str, ...] = ()
    unstable: tuple[str, ...] = ()

    def branch_for(self, result: RunResult) -> tuple[str, tuple[str, ...]]:
        """
        The single outcome branch to run after `always`.

        Aborted runs take the failure branch.
        """
        if result == RunResult.SUCCESS:
            return "success", self.success
        if result == RunResult.UNSTABLE:
            return "unstable", self.unstable
        return "failure", self.failure


@dataclass(frozen=True)
class ArtifactSpec:
    globs: tuple[str, ...]
    allow_empty: bool = True


@dataclass(frozen=True)
class ReportSpec:
    junit: Optional[str] = None
    coverage: Optional[str] = None


@dataclass(frozen=True)
class Pipeline:
    name: str
    stages: tuple[Stage, ...]
    timeout_seconds: float
    post: PostActions = field(default_factory=PostActions)
    environment: Mapping[str, str] = field(default_factory=dict)
    artifacts: Optional[ArtifactSpec] = None
    report: Optional[ReportSpec] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "stages", tuple(self.stages))
        object.__setattr__(self, "environment", _freeze(self.environment))

    def stage_names(self) -> list[str]:
        return [s.name for s in self.stages]


# ------------------------------------------------------------
# Results
# ------------------------------------------------------------


@dataclass(frozen=True)
class StageResult:
    name: str
    status: StageStatus
    exit_code: int
    duration_seconds: float = 0.0
    reason: Optional[str] = None

    @property
    def hard_failure(self) -> bool:
        return self.status in (StageStatus.FAILED, StageStatus.TIMED_OUT)


@dataclass(frozen=True)
class ReportSummary:
    passed: int = 0
    failed: int = 0
    errored: int = 0
    skipped: int = 0

    @property
    def total(self) -> int:
        return self.passed + self.failed + self.errored + self.skipped

    @property
    def has_problems(self) -> bool:
        return self.failed > 0 or self.errored > 0

    def __add__(self, other: "ReportSummary") -> "ReportSummary":
        return ReportSummary(
            passed=self.passed + other.passed,
            failed=self.failed + other.failed,
            errored=self.errored + other.errored,
            skipped=self.skipped + other.skipped,
        )


@dataclass(frozen=True)
class CoverageSummary:
    line_rate: float
    branch_rate: Optional[float] = None
    lines_covered: Optional[int] = None
    lines_valid: Optional[int] = None

    @property
    def percent(self) -> float:
        return round(self.line_rate * 100.0, 2)


@dataclass(frozen=True)
class ArtifactSet:
    destination: Path
    matches: Mapping[str, tuple[str, ...]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "matches",
            MappingProxyType({k: tuple(v) for k, v in dict(self.matches).items()}),
        )

    @property
    def files(self) -> tuple[str, ...]:
        seen: dict[str, None] = {}
        for paths in self.matches.values():
            for p in paths:
                seen.setdefault(p, None)
        return tuple(seen)

    @property
    def empty(self) -> bool:
        return not self.files


@dataclass(frozen=True)
class PostActionRecord:
    slot: str
    command: str
    exit_code: Optional[int]
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.exit_code == 0


@dataclass(frozen=True)
class RunOutcome:
    overall: RunResult
    stages: list[StageResult]
    run_id: str = ""
    pipeline: str = ""
    started_at: float = 0.0
    finished_at: float = 0.0
    report: Optional[ReportSummary] = None
    coverage: Optional[CoverageSummary] = None
    artifacts: Optional[ArtifactSet] = None
    archive_error: Optional[str] = None
    post: list[PostActionRecord] = field(default_factory=list)

    @property
    def duration_seconds(self) -> float:
        return round(max(0.0, self.finished_at - self.started_at), 2)

    def stage(self, name: str) -> Optional[StageResult]:
        for s in self.stages:
            if s.name == name:
                return s
        return None

    def executed(self) -> list[str]:
        return [s.name for s in self.stages if s.status != StageStatus.SKIPPED]
