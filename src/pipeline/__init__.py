"""
Pipeline engine package.

model       - immutable pipeline / result types
definition  - JSON pipeline loading + validation
variables   - run variable map + command expansion
process     - shell command execution with deadline + abort
cancel      - abort token + signal wiring
artifacts   - glob-based artifact archiving
reports     - JUnit / Cobertura parsing
run_state   - mutable per-run accumulator owned by the runner
"""
from __future__ import annotations

from pipeline.model import (
    ArtifactSet,
    ArtifactSpec,
    CoverageSummary,
    Pipeline,
    PostActionRecord,
    PostActions,
    ReportSpec,
    ReportSummary,
    RunOutcome,
    RunResult,
    Stage,
    StageResult,
    StageStatus,
)

__all__ = [
    "ArtifactSet",
    "ArtifactSpec",
    "CoverageSummary",
    "Pipeline",
    "PostActionRecord",
    "PostActions",
    "ReportSpec",
    "ReportSummary",
    "RunOutcome",
    "RunResult",
    "Stage",
    "StageResult",
    "StageStatus",
]
