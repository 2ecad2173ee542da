from __future__ import annotations

import argparse
from dataclasses import replace
from datetime import datetime
from pathlib import Path

from branding import PIPEWRIGHT_BANNER, PIPEWRIGHT_HEADER
from env import ConfigError, get_env, run_artifacts_dir


# ------------------------------------------------------------
# Parser
# ------------------------------------------------------------


def build_run_parser(subparsers: argparse._SubParsersAction) -> None:
    run = subparsers.add_parser(
        "run", help="Run a pipeline by name or path to its JSON definition"
    )

    run.add_argument("pipeline", help="Pipeline name (pipelines/<name>.json) or path")
    run.add_argument("--workspace", help="Working directory for stages (default: cwd)")
    run.add_argument(
        "--timeout", type=float, help="Override the pipeline's global timeout (seconds)"
    )
    run.add_argument(
        "--var",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Set a pipeline variable (repeatable)",
    )
    run.add_argument("--artifacts-dir", help="Explicit archive destination for this run")
    run.add_argument("--no-summary", action="store_true", help="Skip the summary panel")
    run.add_argument("--verbose", action="store_true")
    run.add_argument("--quiet", action="store_true")


# ------------------------------------------------------------
# Handler
# ------------------------------------------------------------


def handle_run(args: argparse.Namespace) -> int:
    from logger import init_logging, get_logger
    from pipeline.cancel import AbortToken, install_signal_handlers
    from pipeline.definition import load_pipeline, resolve_pipeline_path
    from pipeline.variables import parse_assignments
    from runner import exit_code_for, run_pipeline, write_summary
    from ui import print_summary

    init_logging()
    log = get_logger("pipewright")

    if not args.quiet:
        log.info(PIPEWRIGHT_BANNER)
    log.info("Pipewright starting")
    log.info("Command: run")

    try:
        env = get_env()
        path = resolve_pipeline_path(args.pipeline)
        pipeline = load_pipeline(path)
        overrides = parse_assignments(args.var)
        if args.timeout is not None:
            if args.timeout <= 0:
                raise ConfigError("--timeout must be positive")
            pipeline = replace(pipeline, timeout_seconds=args.timeout)
    except ConfigError as e:
        log.error(f"Configuration error: {e}")
        return 2

    log.info(PIPEWRIGHT_HEADER(f"Pipeline {pipeline.name}"))
    log.info(f"Definition: {path}")
    log.info(f"Stages: {', '.join(pipeline.stage_names())}")

    run_id = env.run_id or datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
    destination = (
        Path(args.artifacts_dir).expanduser().resolve()
        if args.artifacts_dir
        else run_artifacts_dir(pipeline.name, run_id)
    )

    token = AbortToken()
    restore = install_signal_handlers(token)
    try:
        outcome = run_pipeline(
            pipeline,
            workspace=env.workspace,
            overrides=overrides,
            abort=token,
            run_id=run_id,
            artifacts_dest=destination,
            quiet=args.quiet,
        )
    finally:
        restore()

    try:
        summary_path = write_summary(outcome, destination / "summary.json")
        log.info(f"Summary written: {summary_path}")
    except OSError as e:
        log.warning(f"Could not write run summary: {e}")

    if not args.quiet and not args.no_summary:
        print_summary(outcome)

    return exit_code_for(outcome.overall)
