#!/usr/bin/env python3
from __future__ import annotations

import argparse
import sys
from pathlib import Path

from bootstrap import bootstrap_base_env, bootstrap_run_context


def _dispatch_help(argv: list[str]) -> int:
    # Support:
    #   pipewright help
    #   pipewright help run
    #   pipewright run help
    argv = [a for a in argv if a != "help"]

    try:
        build_parser().parse_args(argv + ["--help"])
    except SystemExit:
        pass
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="pipewright", description="Run CI pipelines defined as JSON stage lists"
    )

    sub = p.add_subparsers(dest="command", required=True)

    help_cmd = sub.add_parser("help", help="Show help")
    help_cmd.add_argument("path", nargs="*", help="Command path to show help for")
    help_cmd.set_defaults(_help=True)

    # Keep imports inside builder to avoid early side effects.
    from cli.cli_env import build_env_parser
    from cli.cli_run import build_run_parser
    from cli.cli_pipelines import build_pipelines_parser
    from cli.cli_runs import build_runs_parser
    from cli.cli_logs import build_logs_parser

    build_env_parser(sub)
    build_run_parser(sub)
    build_pipelines_parser(sub)
    build_runs_parser(sub)
    build_logs_parser(sub)

    return p


def _pipeline_context(args: argparse.Namespace) -> str | None:
    target = getattr(args, "pipeline", None)
    if not isinstance(target, str) or not target or target == "help":
        return None
    # Log directories are keyed by name, even when a path was given.
    return Path(target).stem


def main(argv: list[str] | None = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)

    # Load .env and base environment early
    bootstrap_base_env()

    parser = build_parser()
    if not argv:
        parser.print_help()
        return 0

    args, unknown = parser.parse_known_args(argv)

    # Unified help routing
    if getattr(args, "_help", False) or (unknown and unknown[-1] == "help"):
        return _dispatch_help(argv)
    if getattr(args, "pipeline", None) == "help":
        return _dispatch_help(argv)
    if unknown:
        parser.error(f"unrecognized arguments: {' '.join(unknown)}")

    # Stamp run context early (so stages inherit it)
    bootstrap_run_context(
        command=args.command,
        pipeline=_pipeline_context(args) if args.command == "run" else None,
        workspace=getattr(args, "workspace", None),
        verbose=bool(getattr(args, "verbose", False)),
        quiet=bool(getattr(args, "quiet", False)),
    )

    # Dispatch
    if args.command == "env":
        from cli.cli_env import handle_env

        return handle_env(args)

    if args.command == "run":
        from cli.cli_run import handle_run

        return handle_run(args)

    if args.command == "pipelines":
        from cli.cli_pipelines import handle_pipelines

        return handle_pipelines(args)

    if args.command == "runs":
        from cli.cli_runs import handle_runs

        return handle_runs(args)

    if args.command == "logs":
        from cli.cli_logs import handle_logs

        return handle_logs(args)

    raise RuntimeError(f"Unknown command: {args.command}")


if __name__ == "__main__":
    raise SystemExit(main())
