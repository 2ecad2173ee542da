from __future__ import annotations

import argparse

from cli.common import (
    dispatch_subparser_help,
    format_mtime,
    infer_run_status,
    list_run_files,
    print_table,
    print_tail,
    resolve_log_dir,
)


# ============================================================================
# CLI wiring
# ============================================================================


def build_runs_parser(sub: argparse._SubParsersAction) -> None:
    p = sub.add_parser("runs", help="Inspect past runs (log-driven)")
    sp = p.add_subparsers(dest="runs_cmd", required=True)

    help_p = sp.add_parser("help", help="Show help for runs")
    help_p.add_argument("path", nargs="*", help="Subcommand path")
    help_p.set_defaults(_help_parser=p)

    list_p = sp.add_parser("list", help="List runs")
    list_p.add_argument("--pipeline", help="Pipeline name (logs/run/<pipeline>/)")
    list_p.add_argument("--dir", help="Explicit log directory")

    latest_p = sp.add_parser("latest", help="Show latest run")
    latest_p.add_argument("--pipeline", help="Pipeline name (logs/run/<pipeline>/)")
    latest_p.add_argument("--dir", help="Explicit log directory")

    show_p = sp.add_parser("show", help="Show a specific run")
    show_p.add_argument("run_id", help="Run id or log filename stem")
    show_p.add_argument("--pipeline", help="Pipeline name (logs/run/<pipeline>/)")
    show_p.add_argument("--dir", help="Explicit log directory")
    show_p.add_argument("--tail", type=int, default=40, help="Lines to show from end")


def handle_runs(args: argparse.Namespace) -> int:
    if args.runs_cmd == "help":
        return dispatch_subparser_help(
            args._help_parser, list(getattr(args, "path", []) or [])
        )

    log_dir = resolve_log_dir(pipeline=args.pipeline, explicit=args.dir)
    runs = list_run_files(log_dir)

    if args.runs_cmd == "list":
        rows = [
            [
                r.run_id,
                r.pipeline,
                infer_run_status(r.path),
                format_mtime(r.mtime),
                f"{r.size} bytes",
            ]
            for r in runs
        ]
        print_table(["run_id", "pipeline", "result", "time", "size"], rows)
        return 0

    if args.runs_cmd == "latest":
        if not runs:
            print("No runs found")
            return 1

        r = runs[0]
        print(
            f"{r.run_id}  {r.pipeline}  {infer_run_status(r.path)}  "
            f"{format_mtime(r.mtime)}  {r.path}"
        )
        return 0

    if args.runs_cmd == "show":
        name = args.run_id
        match = next(
            (
                r
                for r in runs
                if r.run_id == name or r.path.name == name or r.run_id.endswith(name)
            ),
            None,
        )

        if match is None:
            print(f"Run not found: {name}")
            return 1

        print(f"Run:      {match.run_id}")
        print(f"Pipeline: {match.pipeline}")
        print(f"Path:     {match.path}")
        print(f"Time:     {format_mtime(match.mtime)}")
        print(f"Size:     {match.size} bytes")
        print(f"Result:   {infer_run_status(match.path)}")
        print()

        print_tail(match.path, args.tail)
        return 0

    return 1
