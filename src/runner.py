from __future__ import annotations

import json
import logging
import re
from dataclasses import asdict
from datetime import datetime
from pathlib import Path
from types import MappingProxyType
from typing import Callable, Mapping, Optional

from branding import PIPEWRIGHT_HEADER, PIPEWRIGHT_SECTION_END, STATUS_SYMBOLS
from env import get_env, run_artifacts_dir
from logger import get_logger
from pipeline import artifacts as _artifacts
from pipeline import process as _process
from pipeline import reports as _reports
from pipeline.cancel import AbortToken
from pipeline.errors import (
    ABORT_REQUESTED,
    POST_ACTION_ERROR,
    STAGE_FAILURE,
    TIMEOUT_EXCEEDED,
    ArchiveError,
    ReportParseError,
)
from pipeline.model import (
    Pipeline,
    PostActionRecord,
    RunOutcome,
    RunResult,
    Stage,
    StageResult,
    StageStatus,
)
from pipeline.process import ProcessResult
from pipeline.run_state import RunMetadata, RunState
from pipeline.variables import build_variables, command_environment, expand, stage_environment

log = get_logger("pipewright.runner")
stage_log = get_logger("pipewright.stage")

# CLI exit codes per final result
EXIT_CODES: dict[RunResult, int] = {
    RunResult.SUCCESS: 0,
    RunResult.UNSTABLE: 10,
    RunResult.FAILURE: 20,
    RunResult.ABORTED: 130,
}


def exit_code_for(result: RunResult) -> int:
    return EXIT_CODES[result]


# ------------------------------------------------------------
# Helpers
# ------------------------------------------------------------


def _log_header(title: str) -> None:
    log.info(PIPEWRIGHT_HEADER(title).rstrip("\n"))


def _log_footer() -> None:
    log.info(PIPEWRIGHT_SECTION_END())


_CHILD_LEVEL_RE = re.compile(
    r"""
    ^\s*
    (?:
        \[\s*(DEBUG|INFO|WARNING|ERROR|CRITICAL)\s*\]
        |
        (DEBUG|INFO|WARNING|ERROR|CRITICAL)
    )
    \s+
    (.*\S)?\s*$
    """,
    re.VERBOSE,
)

_LEVEL_MAP: dict[str, int] = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def _parse_child_level(line: str) -> tuple[int | None, str]:
    m = _CHILD_LEVEL_RE.match(line)
    if not m:
        return None, line.rstrip()

    lvl = (m.group(1) or m.group(2) or "").upper()
    rest = (m.group(3) or "").rstrip()
    return _LEVEL_MAP.get(lvl), rest


def _forwarder(quiet: bool) -> Optional[Callable[[str, str], None]]:
    if quiet:
        return None

    def _on_line(stream: str, line: str) -> None:
        if not line:
            return
        level, msg = _parse_child_level(line)
        if level is None:
            level = logging.INFO
        stage_log.log(level, msg)

    return _on_line


def _infer_status(proc: ProcessResult, best_effort: bool) -> tuple[StageStatus, Optional[str]]:
    if proc.aborted:
        return StageStatus.ABORTED, ABORT_REQUESTED
    if proc.timed_out:
        return StageStatus.TIMED_OUT, TIMEOUT_EXCEEDED
    if proc.exit_code == 0:
        return StageStatus.PASSED, None
    if best_effort:
        return StageStatus.TOLERATED, f"exit {proc.exit_code} (best effort)"
    return StageStatus.FAILED, f"{STAGE_FAILURE}: exit {proc.exit_code}"


# ------------------------------------------------------------
# Core execution
# ------------------------------------------------------------


def _run_stage(
    *,
    index: int,
    total: int,
    stage: Stage,
    state: RunState,
    workspace: Path,
    variables: Mapping[str, str],
    abort: Optional[AbortToken],
    quiet: bool,
    kill_grace: float,
    max_lines: int,
) -> StageResult:
    if not quiet:
        _log_header(f"Stage {index}/{total}: {stage.name}")

    proc = _process.execute(
        expand(stage.command, variables),
        cwd=workspace,
        env=stage_environment(stage, variables),
        timeout=state.remaining(),
        abort=abort,
        on_line=_forwarder(quiet),
        kill_grace=kill_grace,
        max_lines=max_lines,
    )

    status, reason = _infer_status(proc, stage.best_effort)
    result = StageResult(
        name=stage.name,
        status=status,
        exit_code=proc.exit_code,
        duration_seconds=proc.duration_seconds,
        reason=reason,
    )

    symbol = STATUS_SYMBOLS.get(status.value, "")
    if status == StageStatus.PASSED:
        log.info(f"{symbol} Stage {index} END: {stage.name} ({status.value})")
    elif status == StageStatus.TOLERATED:
        log.warning(f"{symbol} Stage {index} END: {stage.name} ({status.value}, {reason})")
    else:
        log.error(f"{symbol} Stage {index} END: {stage.name} ({status.value}, {reason})")

    if not quiet:
        _log_footer()

    return result


def _collect_reports(state: RunState, pipeline: Pipeline, workspace: Path) -> None:
    spec = pipeline.report
    if spec is None:
        return

    if spec.junit:
        state.report = _reports.collect_reports(spec.junit, workspace)
        if state.report is not None:
            r = state.report
            log.info(
                f"Tests: {r.passed} passed, {r.failed} failed, "
                f"{r.errored} errored, {r.skipped} skipped"
            )

    if spec.coverage:
        path = workspace / spec.coverage
        if not path.is_file():
            log.warning(f"Coverage report not found: {spec.coverage}")
            return
        try:
            state.coverage = _reports.parse_coverage(path)
        except ReportParseError as e:
            log.warning(f"No coverage summary available: {e}")
            return
        log.info(f"Coverage: {state.coverage.percent}% lines")


def _archive(
    state: RunState, pipeline: Pipeline, workspace: Path, destination: Path
) -> None:
    spec = pipeline.artifacts
    if spec is None:
        return

    try:
        state.artifacts = _artifacts.archive(
            spec.globs,
            workspace=workspace,
            destination=destination,
            allow_empty=spec.allow_empty,
        )
    except ArchiveError as e:
        state.archive_error = str(e)
        log.error(f"Artifact archiving failed: {e}")


def _run_post_actions(
    *,
    slot: str,
    commands: tuple[str, ...],
    state: RunState,
    workspace: Path,
    variables: Mapping[str, str],
    post_timeout: float,
    kill_grace: float,
    max_lines: int,
    quiet: bool,
) -> None:
    for command in commands:
        expanded = expand(command, variables)
        log.info(f"post[{slot}]: {expanded}")

        try:
            proc = _process.execute(
                expanded,
                cwd=workspace,
                env=command_environment(variables),
                timeout=post_timeout,
                on_line=_forwarder(quiet),
                kill_grace=kill_grace,
                max_lines=max_lines,
            )
        except Exception as e:
            log.exception(f"{POST_ACTION_ERROR}: post[{slot}] raised")
            state.add_post_record(
                PostActionRecord(slot=slot, command=expanded, exit_code=None, error=str(e))
            )
            continue

        error: Optional[str] = None
        if proc.timed_out:
            error = f"{POST_ACTION_ERROR}: timed out after {post_timeout:g}s"
        elif proc.exit_code != 0:
            error = f"{POST_ACTION_ERROR}: exit {proc.exit_code}"

        if error:
            log.warning(f"post[{slot}] failed ({error}); result unchanged")

        state.add_post_record(
            PostActionRecord(slot=slot, command=expanded, exit_code=proc.exit_code, error=error)
        )


def run_pipeline(
    pipeline: Pipeline,
    *,
    workspace: str | Path | None = None,
    overrides: Mapping[str, str] | None = None,
    abort: AbortToken | None = None,
    run_id: str | None = None,
    artifacts_dest: str | Path | None = None,
    quiet: bool | None = None,
) -> RunOutcome:
    """
    Execute `pipeline` once and return its outcome.

    Stages run strictly in order under one shared wall-clock budget. The
    first hard failure, timeout, or abort stops the main sequence. The result
    is computed once, then artifacts are archived and post actions run.
    Nothing after the result can change it.
    """
    env = get_env()

    resolved_ws = Path(workspace).resolve() if workspace else env.workspace
    resolved_run_id = (
        run_id
        or env.run_id
        or datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
    )
    dest = (
        Path(artifacts_dest)
        if artifacts_dest
        else run_artifacts_dir(pipeline.name, resolved_run_id)
    )
    ctx_quiet = bool(quiet) if quiet is not None else env.quiet

    variables = build_variables(
        pipeline,
        workspace=str(resolved_ws),
        run_id=resolved_run_id,
        overrides=overrides,
    )

    state = RunState(
        metadata=RunMetadata(
            run_id=resolved_run_id,
            pipeline=pipeline.name,
            timeout_seconds=pipeline.timeout_seconds,
        )
    )

    log.info(f"Pipeline: {pipeline.name} (run {resolved_run_id})")
    log.info(f"Workspace: {resolved_ws}")
    log.info(f"Timeout: {pipeline.timeout_seconds:g}s across {len(pipeline.stages)} stage(s)")

    # --------------------------------------------------------
    # Main sequence
    # --------------------------------------------------------

    total = len(pipeline.stages)
    for i, stage in enumerate(pipeline.stages, start=1):
        if not state.blocked:
            if abort is not None and abort.requested:
                state.mark_aborted(f"aborted:before:{stage.name}")
            elif state.budget_exhausted():
                state.mark_timed_out(f"timeout:before:{stage.name}")

        if state.blocked:
            state.record(
                StageResult(
                    name=stage.name,
                    status=StageStatus.SKIPPED,
                    exit_code=-1,
                    reason=f"blocked_by_{state.stop_reason}",
                )
            )
            continue

        state.record(
            _run_stage(
                index=i,
                total=total,
                stage=stage,
                state=state,
                workspace=resolved_ws,
                variables=variables,
                abort=abort,
                quiet=ctx_quiet,
                kill_grace=env.kill_grace,
                max_lines=env.max_captured_lines,
            )
        )

    # --------------------------------------------------------
    # Result
    # --------------------------------------------------------

    _collect_reports(state, pipeline, resolved_ws)
    result = state.finalize()

    if result == RunResult.SUCCESS:
        log.info(f"Result: {result.value}")
    elif result == RunResult.UNSTABLE:
        log.warning(f"Result: {result.value} (test failures reported)")
    else:
        log.error(f"Result: {result.value} ({state.stop_reason})")

    # --------------------------------------------------------
    # Post phase (never changes the result)
    # --------------------------------------------------------

    _archive(state, pipeline, resolved_ws, dest)

    post_vars = MappingProxyType({**variables, "RUN_RESULT": result.value})
    branch, branch_commands = pipeline.post.branch_for(result)

    for slot, commands in (("always", pipeline.post.always), (branch, branch_commands)):
        if not commands:
            continue
        if not ctx_quiet:
            _log_header(f"Post: {slot}")
        _run_post_actions(
            slot=slot,
            commands=commands,
            state=state,
            workspace=resolved_ws,
            variables=post_vars,
            post_timeout=env.post_timeout,
            kill_grace=env.kill_grace,
            max_lines=env.max_captured_lines,
            quiet=ctx_quiet,
        )
        if not ctx_quiet:
            _log_footer()

    outcome = state.finish()
    log.info(f"RUN_STATUS={outcome.overall.value}")
    return outcome


# ------------------------------------------------------------
# Persistence
# ------------------------------------------------------------


def outcome_to_dict(outcome: RunOutcome) -> dict:
    data = {
        "pipeline": outcome.pipeline,
        "run_id": outcome.run_id,
        "result": outcome.overall.value,
        "started_at": outcome.started_at,
        "finished_at": outcome.finished_at,
        "duration_seconds": outcome.duration_seconds,
        "stages": [
            {**asdict(s), "status": s.status.value} for s in outcome.stages
        ],
        "report": None,
        "coverage": None,
        "artifacts": None,
        "archive_error": outcome.archive_error,
        "post": [asdict(p) for p in outcome.post],
    }
    if outcome.report is not None:
        data["report"] = {**asdict(outcome.report), "total": outcome.report.total}
    if outcome.coverage is not None:
        data["coverage"] = asdict(outcome.coverage)
    if outcome.artifacts is not None:
        data["artifacts"] = {
            "destination": str(outcome.artifacts.destination),
            "matches": {k: list(v) for k, v in outcome.artifacts.matches.items()},
        }
    return data


def write_summary(outcome: RunOutcome, path: str | Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(outcome_to_dict(outcome), indent=2), encoding="utf-8")
    return path
