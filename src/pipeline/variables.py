from __future__ import annotations

import os
import re
from types import MappingProxyType
from typing import Iterable, Mapping

from env import ConfigError
from pipeline.model import Pipeline, Stage

_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_REF_RE = re.compile(r"\$(?:\{([A-Za-z_][A-Za-z0-9_]*)\}|([A-Za-z_][A-Za-z0-9_]*))")


def parse_assignments(items: Iterable[str] | None) -> dict[str, str]:
    """Parse CLI `KEY=VALUE` overrides."""
    out: dict[str, str] = {}
    for item in items or []:
        if "=" not in item:
            raise ConfigError(f"Invalid variable (expected KEY=VALUE): {item}")
        k, v = item.split("=", 1)
        k = k.strip()
        if not _NAME_RE.match(k):
            raise ConfigError(f"Invalid variable name: {k!r}")
        out[k] = v
    return out


def build_variables(
    pipeline: Pipeline,
    *,
    workspace: str,
    run_id: str,
    overrides: Mapping[str, str] | None = None,
) -> Mapping[str, str]:
    """
    Immutable variable map for one run.

    Precedence (last wins): built-ins, pipeline environment, CLI overrides.
    """
    values: dict[str, str] = {
        "WORKSPACE": str(workspace),
        "RUN_ID": run_id,
        "PIPELINE_NAME": pipeline.name,
    }
    for k, v in pipeline.environment.items():
        values[k] = expand(v, values)
    values.update(overrides or {})
    return MappingProxyType(values)


def expand(command: str, variables: Mapping[str, str]) -> str:
    """
    Substitute `${NAME}` / `$NAME` for known names.
    Unknown references are left for the shell.
    """

    def _sub(m: re.Match) -> str:
        name = m.group(1) or m.group(2)
        if name in variables:
            return variables[name]
        return m.group(0)

    return _REF_RE.sub(_sub, command)


def command_environment(
    variables: Mapping[str, str], extra: Mapping[str, str] | None = None
) -> dict[str, str]:
    """Subprocess environment: inherited env, run variables, then `extra` (expanded)."""
    env = os.environ.copy()
    env.update(variables)
    env.update({k: expand(v, variables) for k, v in (extra or {}).items()})
    return env


def stage_environment(stage: Stage, variables: Mapping[str, str]) -> dict[str, str]:
    return command_environment(variables, stage.environment)
