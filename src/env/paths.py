from __future__ import annotations

import os
from pathlib import Path

# ---------------------------------------------------------------------
# Project root
# ---------------------------------------------------------------------

# This file lives in src/env/, so project root is two levels up
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


# ---------------------------------------------------------------------
# Base directories (override-friendly)
# ---------------------------------------------------------------------


def _resolve_dir(env_var: str, default: Path, *, create: bool = True) -> Path:
    """
    Resolve a directory path from an environment variable or default.

    Resolved on every call so overrides stamped after import still apply.
    """
    raw = os.environ.get(env_var)
    path = Path(raw).expanduser().resolve() if raw else default
    if create:
        path.mkdir(parents=True, exist_ok=True)
    return path


def logs_dir() -> Path:
    return _resolve_dir("PIPEWRIGHT_LOGS_DIR", PROJECT_ROOT / "logs")


def artifacts_dir() -> Path:
    return _resolve_dir("PIPEWRIGHT_ARTIFACTS_DIR", PROJECT_ROOT / "artifacts")


def pipelines_dir() -> Path:
    # Pipeline definitions are read-only input; never create on lookup.
    return _resolve_dir(
        "PIPEWRIGHT_PIPELINES_DIR", PROJECT_ROOT / "pipelines", create=False
    )


def workspace_dir() -> Path:
    raw = os.environ.get("PIPEWRIGHT_WORKSPACE")
    return Path(raw).expanduser().resolve() if raw else Path.cwd().resolve()


# ---------------------------------------------------------------------
# Run layout helpers
# ---------------------------------------------------------------------


def run_artifacts_dir(pipeline: str, run_id: str) -> Path:
    """
    Destination for one run's archived files and summary.
    """
    return artifacts_dir() / pipeline / run_id


def module_logs_dir(module: str) -> Path:
    """
    Base log directory for a CLI module (e.g. run, pipelines).
    """
    path = logs_dir() / module
    path.mkdir(parents=True, exist_ok=True)
    return path


def pipeline_logs_dir(module: str, pipeline: str) -> Path:
    """
    Log directory for a specific pipeline under a module.
    """
    path = logs_dir() / module / pipeline
    path.mkdir(parents=True, exist_ok=True)
    return path
