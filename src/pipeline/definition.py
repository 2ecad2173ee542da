from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterable, Optional

from env import get_env, pipelines_dir
from pipeline.errors import PipelineDefinitionError
from pipeline.model import ArtifactSpec, Pipeline, PostActions, ReportSpec, Stage

_POST_SLOTS = ("always", "success", "failure", "unstable")


# ------------------------------------------------------------
# Lookup
# ------------------------------------------------------------


def iter_pipeline_names() -> Iterable[str]:
    root = pipelines_dir()
    if not root.exists():
        return []
    return (p.stem for p in sorted(root.glob("*.json")))


def resolve_pipeline_path(name_or_path: str | Path) -> Path:
    """
    Accept either a path to a JSON file or a bare pipeline name
    (looked up as <pipelines_dir>/<name>.json).
    """
    candidate = Path(name_or_path).expanduser()
    if candidate.is_file():
        return candidate.resolve()

    named = pipelines_dir() / f"{name_or_path}.json"
    if named.is_file():
        return named

    raise PipelineDefinitionError(f"Pipeline not found: {name_or_path}")


def load_json(path: Path) -> dict:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise PipelineDefinitionError(f"{path.name}: invalid JSON ({e})") from e
    except OSError as e:
        raise PipelineDefinitionError(f"{path}: unreadable ({e})") from e

    if not isinstance(data, dict):
        raise PipelineDefinitionError(f"{path.name}: top level must be an object")
    return data


# ------------------------------------------------------------
# Parsing
# ------------------------------------------------------------


def _commands(value: Any, where: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise PipelineDefinitionError(f"{where}: expected a string or list of strings")
    return tuple(v for v in value if v.strip())


def _string_map(value: Any, where: str) -> dict[str, str]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise PipelineDefinitionError(f"{where}: expected an object")
    return {str(k): str(v) for k, v in value.items()}


def _flag(value: Any, default: bool, where: str) -> bool:
    if value is None:
        return default
    if not isinstance(value, bool):
        raise PipelineDefinitionError(f"{where}: expected true or false")
    return value


def _optional_path(value: Any, where: str) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise PipelineDefinitionError(f"{where}: expected a string")
    return value.strip() or None


def _parse_stage(raw: Any, index: int) -> Stage:
    if not isinstance(raw, dict):
        raise PipelineDefinitionError(f"stages[{index}]: expected an object")

    name = str(raw.get("name") or "").strip()
    if not name:
        raise PipelineDefinitionError(f"stages[{index}]: missing name")

    command = raw.get("command")
    if isinstance(command, list):
        # A list is a multi-line script that stops at the first failing line.
        command = "\n".join(["set -e", *(str(c) for c in command)])
    if not isinstance(command, str) or not command.strip():
        raise PipelineDefinitionError(f"stage '{name}': missing command")

    return Stage(
        name=name,
        command=command,
        best_effort=_flag(raw.get("best_effort"), False, f"stage '{name}'.best_effort"),
        environment=_string_map(raw.get("environment"), f"stage '{name}'.environment"),
    )


def _parse_post(raw: Any) -> PostActions:
    if raw is None:
        return PostActions()
    if not isinstance(raw, dict):
        raise PipelineDefinitionError("post: expected an object")

    unknown = sorted(set(raw) - set(_POST_SLOTS))
    if unknown:
        raise PipelineDefinitionError(f"post: unknown slot(s): {', '.join(unknown)}")

    return PostActions(**{slot: _commands(raw.get(slot), f"post.{slot}") for slot in _POST_SLOTS})


def _parse_artifacts(raw: Any) -> Optional[ArtifactSpec]:
    if raw is None:
        return None
    if isinstance(raw, list):
        raw = {"globs": raw}
    if not isinstance(raw, dict):
        raise PipelineDefinitionError("artifacts: expected an object or list of globs")

    globs = _commands(raw.get("globs"), "artifacts.globs")
    if not globs:
        return None
    return ArtifactSpec(
        globs=globs,
        allow_empty=_flag(raw.get("allow_empty"), True, "artifacts.allow_empty"),
    )


def _parse_report(raw: Any) -> Optional[ReportSpec]:
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise PipelineDefinitionError("report: expected an object")

    junit = _optional_path(raw.get("junit"), "report.junit")
    coverage = _optional_path(raw.get("coverage"), "report.coverage")
    if junit is None and coverage is None:
        return None
    return ReportSpec(junit=junit, coverage=coverage)


def parse_pipeline(
    data: dict, *, default_name: str = "", default_timeout: float | None = None
) -> Pipeline:
    name = str(data.get("name") or default_name).strip()
    if not name:
        raise PipelineDefinitionError("pipeline missing required field: name")

    raw_stages = data.get("stages")
    if not isinstance(raw_stages, list) or not raw_stages:
        raise PipelineDefinitionError(f"pipeline '{name}': needs at least one stage")

    stages = [_parse_stage(s, i) for i, s in enumerate(raw_stages)]

    seen: set[str] = set()
    for s in stages:
        if s.name in seen:
            raise PipelineDefinitionError(
                f"pipeline '{name}': duplicate stage name '{s.name}'"
            )
        seen.add(s.name)

    timeout = data.get("timeout_seconds")
    if timeout is None:
        timeout = default_timeout if default_timeout is not None else get_env().default_timeout
    try:
        timeout = float(timeout)
    except (TypeError, ValueError) as e:
        raise PipelineDefinitionError(
            f"pipeline '{name}': timeout_seconds must be a number"
        ) from e
    if timeout <= 0:
        raise PipelineDefinitionError(f"pipeline '{name}': timeout_seconds must be positive")

    return Pipeline(
        name=name,
        stages=tuple(stages),
        timeout_seconds=timeout,
        post=_parse_post(data.get("post")),
        environment=_string_map(data.get("environment"), "environment"),
        artifacts=_parse_artifacts(data.get("artifacts")),
        report=_parse_report(data.get("report")),
    )


def load_pipeline(path: str | Path, *, default_timeout: float | None = None) -> Pipeline:
    path = Path(path)
    return parse_pipeline(
        load_json(path), default_name=path.stem, default_timeout=default_timeout
    )
