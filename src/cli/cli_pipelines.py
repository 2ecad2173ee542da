from __future__ import annotations

import argparse
import json

from env import pipelines_dir
from cli.common import dispatch_subparser_help
from pipeline.definition import (
    iter_pipeline_names,
    load_json,
    load_pipeline,
    parse_pipeline,
    resolve_pipeline_path,
)
from pipeline.errors import PipelineDefinitionError


def build_pipelines_parser(subparsers: argparse._SubParsersAction) -> None:
    pipelines = subparsers.add_parser("pipelines", help="Inspect pipeline definitions")
    psub = pipelines.add_subparsers(dest="pipelines_cmd", required=True)

    help_p = psub.add_parser("help", help="Show help for pipelines")
    help_p.add_argument("path", nargs="*", help="Subcommand path (e.g. show, validate)")
    help_p.set_defaults(action="help", _help_parser=pipelines)

    list_p = psub.add_parser("list", help="List pipelines")
    list_p.set_defaults(action="list")

    show = psub.add_parser("show", help="Show a pipeline (stages + JSON)")
    show.add_argument("name", help="Pipeline name or path")
    show.set_defaults(action="show")

    validate = psub.add_parser("validate", help="Validate pipelines")
    validate.add_argument(
        "name", nargs="?", help="Pipeline name or path (omit to validate all pipelines)"
    )
    validate.set_defaults(action="validate")


def handle_pipelines(args: argparse.Namespace) -> int:
    if args.action == "help":
        parser: argparse.ArgumentParser = args._help_parser
        return dispatch_subparser_help(parser, list(getattr(args, "path", []) or []))

    action = args.action

    if action == "list":
        names = list(iter_pipeline_names())
        if not names:
            print(f"No pipelines found in {pipelines_dir()}")
            return 0
        for name in names:
            print(name)
        return 0

    if action == "show":
        try:
            path = resolve_pipeline_path(args.name)
            pipeline = load_pipeline(path)
        except PipelineDefinitionError as e:
            raise SystemExit(str(e)) from e

        print(f"Pipeline:  {pipeline.name}")
        print(f"File:      {path}")
        print(f"Timeout:   {pipeline.timeout_seconds:g}s")
        print("Stages:")
        for i, s in enumerate(pipeline.stages, start=1):
            flag = " (best effort)" if s.best_effort else ""
            print(f"  {i}. {s.name}{flag}")
        post = pipeline.post
        for slot in ("always", "success", "failure", "unstable"):
            print(f"post.{slot:<9} {len(getattr(post, slot))} command(s)")
        if pipeline.artifacts is not None:
            print(f"artifacts: {', '.join(pipeline.artifacts.globs)}")
        if pipeline.report is not None:
            print(f"report:    junit={pipeline.report.junit} coverage={pipeline.report.coverage}")
        print("")
        print(json.dumps(load_json(path), indent=2))
        return 0

    if action == "validate":
        targets = [args.name] if args.name else list(iter_pipeline_names())
        if not targets:
            print("No pipelines found")
            return 0

        ok = True

        for name in targets:
            print(f"\n{name}:")

            try:
                path = resolve_pipeline_path(name)
                data = load_json(path)
                print("  ✓ JSON valid")
                pipeline = parse_pipeline(data, default_name=path.stem)
            except PipelineDefinitionError as e:
                print(f"  ✗ {e}")
                ok = False
                continue

            print(f"  ✓ {len(pipeline.stages)} stage(s), timeout {pipeline.timeout_seconds:g}s")

        return 0 if ok else 1

    raise SystemExit(f"Unknown pipelines action: {action}")
